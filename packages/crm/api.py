"""FastAPI application exposing the CRM procedures.

One route per procedure under ``/rpc``:
- queries are ``GET`` with the input JSON-encoded in the ``input`` parameter
- mutations are ``POST`` with a JSON body
Procedures that record or filter by the caller resolve it from a bearer
token, or from ``X-User-ID`` when header identity is trusted.
"""

from __future__ import annotations

import datetime as dt
from typing import Callable, Generator, TypeVar

import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from . import schemas
from .errors import AuthenticationError, CRMError
from .security import TokenManager
from .service import AuthResult, CRMDatabase, CRMService, init_engine
from .settings import CRMSettings

__all__ = ["create_app", "CRMSettings", "QUERY_PROCEDURES", "MUTATION_PROCEDURES"]

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

QUERY_PROCEDURES = frozenset(
    {
        "healthcheck",
        "getCompanies",
        "getTeams",
        "getUsers",
        "getProjects",
        "getProject",
        "getProjectWikiHistory",
        "getProjectTasks",
        "getProjectNotes",
    }
)
MUTATION_PROCEDURES = frozenset(
    {
        "signup",
        "login",
        "createCompany",
        "createTeam",
        "createUser",
        "createProject",
        "updateProject",
        "createProjectWiki",
        "createTask",
        "updateTask",
        "createNote",
        "updateNote",
    }
)


def rpc_input(model: type[ModelT]) -> Callable[..., ModelT]:
    """Dependency parsing a query procedure's JSON ``input`` parameter."""

    def _parse(raw: str = Query("{}", alias="input")) -> ModelT:
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise RequestValidationError(
                exc.errors(include_url=False, include_context=False)
            ) from None

    return _parse


def _auth_response(result: AuthResult) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        user=schemas.UserResponse.model_validate(result.user),
        token=result.token,
    )


def create_app(settings: CRMSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application for the CRM."""

    settings = settings or CRMSettings()
    engine = init_engine(settings)
    database = CRMDatabase(engine=engine)
    if engine.dialect.name == "sqlite":
        # PostgreSQL schemas are provisioned by `crm db-init`
        database.create_all()
    tokens = TokenManager(settings)

    app = FastAPI(
        title="Construction CRM API",
        version="1.0.0",
        description="Companies, teams, users, projects, tasks, notes, and project wiki",
    )
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_session() -> Generator[Session, None, None]:
        session = database.session()
        try:
            yield session
        finally:
            session.close()

    def get_service(session: Session = Depends(get_session)) -> CRMService:
        return CRMService(session=session, settings=settings, tokens=tokens)

    def get_current_user(request: Request) -> int:
        """Resolve the caller's user id from the request headers."""
        authorization = request.headers.get("Authorization")
        if authorization:
            scheme, _, credentials = authorization.partition(" ")
            if scheme.lower() != "bearer" or not credentials.strip():
                raise AuthenticationError("Unsupported authorization scheme")
            return tokens.verify(credentials.strip())

        if settings.trust_user_header:
            raw_user_id = request.headers.get("X-User-ID")
            if raw_user_id:
                try:
                    return int(raw_user_id)
                except ValueError:
                    raise AuthenticationError("Invalid X-User-ID header") from None

        raise AuthenticationError("Authentication required")

    @app.exception_handler(CRMError)
    async def _handle_crm_error(request: Request, exc: CRMError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.code, "message": exc.message}},
        )

    @app.exception_handler(Exception)
    async def _handle_errors(request: Request, exc: Exception):
        logger.error("rpc.unhandled_error", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "Internal server error",
                }
            },
        )

    @app.get("/rpc/healthcheck", response_model=schemas.HealthResponse)
    def healthcheck() -> schemas.HealthResponse:
        return schemas.HealthResponse(
            status="ok", timestamp=dt.datetime.now(dt.timezone.utc)
        )

    # ========================================================================
    # Authentication
    # ========================================================================

    @app.post("/rpc/signup", response_model=schemas.AuthResponse, status_code=201)
    def signup(
        request: schemas.SignupRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.AuthResponse:
        return _auth_response(service.signup(request))

    @app.post("/rpc/login", response_model=schemas.AuthResponse)
    def login(
        request: schemas.LoginRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.AuthResponse:
        return _auth_response(service.login(request))

    # ========================================================================
    # Companies, teams, users
    # ========================================================================

    @app.post("/rpc/createCompany", response_model=schemas.CompanyResponse, status_code=201)
    def create_company(
        request: schemas.CompanyCreateRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.CompanyResponse:
        return schemas.CompanyResponse.model_validate(service.create_company(request))

    @app.get("/rpc/getCompanies", response_model=list[schemas.CompanyResponse])
    def get_companies(
        service: CRMService = Depends(get_service),
    ) -> list[schemas.CompanyResponse]:
        return [schemas.CompanyResponse.model_validate(c) for c in service.list_companies()]

    @app.post("/rpc/createTeam", response_model=schemas.TeamResponse, status_code=201)
    def create_team(
        request: schemas.TeamCreateRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.TeamResponse:
        return schemas.TeamResponse.model_validate(service.create_team(request))

    @app.get("/rpc/getTeams", response_model=list[schemas.TeamResponse])
    def get_teams(
        service: CRMService = Depends(get_service),
    ) -> list[schemas.TeamResponse]:
        return [schemas.TeamResponse.model_validate(t) for t in service.list_teams()]

    @app.post("/rpc/createUser", response_model=schemas.UserResponse, status_code=201)
    def create_user(
        request: schemas.UserCreateRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.UserResponse:
        return schemas.UserResponse.model_validate(service.create_user(request))

    @app.get("/rpc/getUsers", response_model=list[schemas.UserResponse])
    def get_users(
        service: CRMService = Depends(get_service),
    ) -> list[schemas.UserResponse]:
        return [schemas.UserResponse.model_validate(u) for u in service.list_users()]

    # ========================================================================
    # Projects
    # ========================================================================

    @app.post("/rpc/createProject", response_model=schemas.ProjectResponse, status_code=201)
    def create_project(
        request: schemas.ProjectCreateRequest,
        service: CRMService = Depends(get_service),
        user_id: int = Depends(get_current_user),
    ) -> schemas.ProjectResponse:
        return schemas.ProjectResponse.model_validate(
            service.create_project(request, user_id)
        )

    @app.get("/rpc/getProjects", response_model=list[schemas.ProjectResponse])
    def get_projects(
        service: CRMService = Depends(get_service),
    ) -> list[schemas.ProjectResponse]:
        return [schemas.ProjectResponse.model_validate(p) for p in service.list_projects()]

    @app.get("/rpc/getProject", response_model=schemas.ProjectResponse)
    def get_project(
        request: schemas.ProjectLookupRequest = Depends(rpc_input(schemas.ProjectLookupRequest)),
        service: CRMService = Depends(get_service),
    ) -> schemas.ProjectResponse:
        return schemas.ProjectResponse.model_validate(service.get_project(request.id))

    @app.post("/rpc/updateProject", response_model=schemas.ProjectResponse)
    def update_project(
        request: schemas.ProjectUpdateRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.ProjectResponse:
        return schemas.ProjectResponse.model_validate(service.update_project(request))

    # ========================================================================
    # Project wiki
    # ========================================================================

    @app.post(
        "/rpc/createProjectWiki",
        response_model=schemas.WikiEntryResponse,
        status_code=201,
    )
    def create_project_wiki(
        request: schemas.WikiCreateRequest,
        service: CRMService = Depends(get_service),
        user_id: int = Depends(get_current_user),
    ) -> schemas.WikiEntryResponse:
        return schemas.WikiEntryResponse.model_validate(
            service.create_wiki_entry(request, user_id)
        )

    @app.get(
        "/rpc/getProjectWikiHistory",
        response_model=list[schemas.WikiEntryResponse],
    )
    def get_project_wiki_history(
        request: schemas.ProjectScopedRequest = Depends(rpc_input(schemas.ProjectScopedRequest)),
        service: CRMService = Depends(get_service),
    ) -> list[schemas.WikiEntryResponse]:
        return [
            schemas.WikiEntryResponse.model_validate(entry)
            for entry in service.list_wiki_history(request)
        ]

    # ========================================================================
    # Tasks
    # ========================================================================

    @app.post("/rpc/createTask", response_model=schemas.TaskResponse, status_code=201)
    def create_task(
        request: schemas.TaskCreateRequest,
        service: CRMService = Depends(get_service),
        user_id: int = Depends(get_current_user),
    ) -> schemas.TaskResponse:
        return schemas.TaskResponse.model_validate(service.create_task(request, user_id))

    @app.get("/rpc/getProjectTasks", response_model=list[schemas.TaskResponse])
    def get_project_tasks(
        request: schemas.ProjectScopedRequest = Depends(rpc_input(schemas.ProjectScopedRequest)),
        service: CRMService = Depends(get_service),
    ) -> list[schemas.TaskResponse]:
        return [
            schemas.TaskResponse.model_validate(t)
            for t in service.list_project_tasks(request)
        ]

    @app.post("/rpc/updateTask", response_model=schemas.TaskResponse)
    def update_task(
        request: schemas.TaskUpdateRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.TaskResponse:
        return schemas.TaskResponse.model_validate(service.update_task(request))

    # ========================================================================
    # Notes
    # ========================================================================

    @app.post("/rpc/createNote", response_model=schemas.NoteResponse, status_code=201)
    def create_note(
        request: schemas.NoteCreateRequest,
        service: CRMService = Depends(get_service),
        user_id: int = Depends(get_current_user),
    ) -> schemas.NoteResponse:
        return schemas.NoteResponse.model_validate(service.create_note(request, user_id))

    @app.get("/rpc/getProjectNotes", response_model=list[schemas.NoteResponse])
    def get_project_notes(
        request: schemas.ProjectScopedRequest = Depends(rpc_input(schemas.ProjectScopedRequest)),
        service: CRMService = Depends(get_service),
        user_id: int = Depends(get_current_user),
    ) -> list[schemas.NoteResponse]:
        return [
            schemas.NoteResponse.model_validate(n)
            for n in service.list_project_notes(request, user_id)
        ]

    @app.post("/rpc/updateNote", response_model=schemas.NoteResponse)
    def update_note(
        request: schemas.NoteUpdateRequest,
        service: CRMService = Depends(get_service),
    ) -> schemas.NoteResponse:
        return schemas.NoteResponse.model_validate(service.update_note(request))

    return app
