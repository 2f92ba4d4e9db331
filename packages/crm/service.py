"""Service layer for the CRM.

Each public method maps one validated RPC input to its database statements:
- directory (companies, teams, users) and authentication
- projects and the versioned project wiki
- tasks and notes, including the private-note visibility rule
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import structlog
from sqlalchemy import and_, create_engine, event, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from . import schemas
from .errors import (
    AuthenticationError,
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
)
from .models import (
    AuthCredential,
    Base,
    Company,
    Note,
    Project,
    Task,
    Team,
    User,
    WikiEntry,
)
from .schema.enums import ENUM_DEFINITIONS
from .security import (
    TokenManager,
    burn_password_check,
    hash_password,
    verify_password,
)
from .settings import CRMSettings

__all__ = ["CRMDatabase", "CRMService", "AuthResult", "init_engine"]

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
_CENTS = Decimal("0.01")


def init_engine(settings: CRMSettings) -> Engine:
    """Create an SQLAlchemy engine for *settings.database_url*."""

    database_url = settings.database_url
    if database_url.startswith("postgres://"):
        database_url = "postgresql+psycopg://" + database_url[len("postgres://") :]
    elif database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    engine_kwargs: dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # TestClient and the uvicorn threadpool share connections across threads
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite:"):
            from sqlalchemy.pool import StaticPool

            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 20

    engine = create_engine(database_url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


class CRMDatabase:
    """Session factory and schema bootstrap."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self) -> Session:
        return self._session_factory()

    def create_enum_types(self) -> int:
        """Create the PostgreSQL enum types; returns how many statements ran."""
        if self.engine.dialect.name != "postgresql":
            return 0
        with self.engine.begin() as conn:
            for definition in ENUM_DEFINITIONS:
                conn.exec_driver_sql(definition.render_sql())
        return len(ENUM_DEFINITIONS)

    def create_all(self, *, with_enum_types: bool = True):
        """Create enum types (PostgreSQL only) and all tables."""
        if with_enum_types:
            self.create_enum_types()
        Base.metadata.create_all(self.engine)


@dataclass(slots=True)
class AuthResult:
    user: User
    token: Optional[str] = None


def _to_numeric(value: Optional[float]) -> Optional[Decimal]:
    """Convert an API number to the ``numeric(15,2)`` storage value."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


class CRMService:
    """CRM operations bound to one database session."""

    def __init__(
        self,
        session: Session,
        settings: CRMSettings,
        tokens: TokenManager | None = None,
    ):
        self.session = session
        self.settings = settings
        self.tokens = tokens or TokenManager(settings)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _require_reference(self, model: type[Base], entity_id: int, label: str) -> None:
        if self.session.get(model, entity_id) is None:
            raise InvalidReferenceError.missing(label, entity_id)

    def _commit(self, instance: Base, conflict_message: str) -> None:
        """Commit the pending unit of work and reload *instance*."""
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning(
                "integrity_error",
                entity=type(instance).__name__,
                error=str(exc.orig),
            )
            raise ConflictError(conflict_message) from exc
        self.session.refresh(instance)

    # ========================================================================
    # Companies
    # ========================================================================

    def create_company(self, request: schemas.CompanyCreateRequest) -> Company:
        company = Company(
            name=request.name,
            industry=request.industry,
            website=request.website,
        )
        self.session.add(company)
        self._commit(company, "Company conflicts with an existing record")
        logger.info("company.created", company_id=company.id)
        return company

    def list_companies(self) -> list[Company]:
        return list(self.session.execute(select(Company).order_by(Company.id)).scalars())

    # ========================================================================
    # Teams
    # ========================================================================

    def create_team(self, request: schemas.TeamCreateRequest) -> Team:
        team = Team(name=request.name, description=request.description)
        self.session.add(team)
        self._commit(team, "Team conflicts with an existing record")
        logger.info("team.created", team_id=team.id)
        return team

    def list_teams(self) -> list[Team]:
        return list(self.session.execute(select(Team).order_by(Team.id)).scalars())

    # ========================================================================
    # Users and authentication
    # ========================================================================

    def create_user(self, request: schemas.UserCreateRequest) -> User:
        if request.team_id is not None:
            self._require_reference(Team, request.team_id, "Team")

        user = User(
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            team_id=request.team_id,
        )
        self.session.add(user)
        self._commit(user, "User with this email already exists")
        logger.info("user.created", user_id=user.id, team_id=user.team_id)
        return user

    def list_users(self) -> list[User]:
        return list(self.session.execute(select(User).order_by(User.id)).scalars())

    def _credential_by_email(self, email: str) -> AuthCredential | None:
        return (
            self.session.execute(
                select(AuthCredential).where(AuthCredential.email == email).limit(1)
            )
            .scalars()
            .first()
        )

    def signup(self, request: schemas.SignupRequest) -> AuthResult:
        """Create a profile and its credential in a single transaction."""
        if self._credential_by_email(request.email) is not None:
            raise ConflictError("User with this email already exists")

        user = User(
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            team_id=None,
        )
        try:
            self.session.add(user)
            self.session.flush()
            self.session.add(
                AuthCredential(
                    user_id=user.id,
                    email=request.email,
                    hashed_password=hash_password(request.password),
                )
            )
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("auth.signup_conflict", error=str(exc.orig))
            raise ConflictError("User with this email already exists") from exc
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(user)
        logger.info("auth.signup", user_id=user.id)
        return AuthResult(user=user, token=self.tokens.issue(user.id).token)

    def login(self, request: schemas.LoginRequest) -> AuthResult:
        """Verify credentials; unknown email and wrong password fail identically."""
        credential = self._credential_by_email(request.email)
        if credential is None:
            burn_password_check(request.password)
            logger.info("auth.login_failed", reason="unknown_email")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(request.password, credential.hashed_password):
            logger.info("auth.login_failed", reason="password_mismatch", user_id=credential.user_id)
            raise AuthenticationError(INVALID_CREDENTIALS)

        user = self.session.get(User, credential.user_id)
        if user is None:
            logger.warning("auth.orphaned_credential", credential_id=credential.id)
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("auth.login", user_id=user.id)
        return AuthResult(user=user, token=self.tokens.issue(user.id).token)

    # ========================================================================
    # Projects
    # ========================================================================

    def create_project(
        self, request: schemas.ProjectCreateRequest, user_id: int
    ) -> Project:
        self._require_reference(Company, request.company_id, "Company")
        self._require_reference(User, user_id, "User")

        project = Project(
            name=request.name,
            description=request.description,
            status=request.status,
            estimated_value=_to_numeric(request.estimated_value),
            start_date=request.start_date,
            end_date=request.end_date,
            company_id=request.company_id,
            created_by=user_id,
        )
        self.session.add(project)
        self._commit(project, "Project conflicts with an existing record")
        logger.info("project.created", project_id=project.id, company_id=project.company_id)
        return project

    def list_projects(self) -> list[Project]:
        return list(self.session.execute(select(Project).order_by(Project.id)).scalars())

    def get_project(self, project_id: int) -> Project:
        project = self.session.get(Project, project_id)
        if not project:
            raise NotFoundError.missing("Project", project_id)
        return project

    def update_project(self, request: schemas.ProjectUpdateRequest) -> Project:
        project = self.session.get(Project, request.id)
        if not project:
            raise NotFoundError.missing("Project", request.id)

        changes = request.changes()
        if "company_id" in changes:
            self._require_reference(Company, changes["company_id"], "Company")
        if "estimated_value" in changes:
            changes["estimated_value"] = _to_numeric(changes["estimated_value"])

        for field, value in changes.items():
            setattr(project, field, value)
        project.updated_at = func.now()

        self._commit(project, "Project conflicts with an existing record")
        logger.info("project.updated", project_id=project.id, fields=sorted(changes))
        return project

    # ========================================================================
    # Project wiki
    # ========================================================================

    def create_wiki_entry(
        self, request: schemas.WikiCreateRequest, user_id: int
    ) -> WikiEntry:
        """Save a new wiki revision numbered after the project's latest one."""
        self._require_reference(Project, request.project_id, "Project")
        self._require_reference(User, user_id, "User")

        latest = (
            self.session.execute(
                select(WikiEntry)
                .where(WikiEntry.project_id == request.project_id)
                .order_by(WikiEntry.version.desc())
            )
            .scalars()
            .first()
        )
        next_version = (latest.version + 1) if latest else 1

        entry = WikiEntry(
            project_id=request.project_id,
            title=request.title,
            content=request.content,
            version=next_version,
            created_by=user_id,
        )
        self.session.add(entry)
        self._commit(entry, "Wiki was updated concurrently; retry the save")
        logger.info(
            "wiki.created", project_id=entry.project_id, version=entry.version
        )
        return entry

    def list_wiki_history(self, request: schemas.ProjectScopedRequest) -> list[WikiEntry]:
        return list(
            self.session.execute(
                select(WikiEntry)
                .where(WikiEntry.project_id == request.project_id)
                .order_by(WikiEntry.version.desc())
            ).scalars()
        )

    # ========================================================================
    # Tasks
    # ========================================================================

    def create_task(self, request: schemas.TaskCreateRequest, user_id: int) -> Task:
        self._require_reference(Project, request.project_id, "Project")
        if request.assigned_to is not None:
            self._require_reference(User, request.assigned_to, "User")
        self._require_reference(User, user_id, "User")

        task = Task(
            title=request.title,
            description=request.description,
            status=request.status,
            priority=request.priority,
            due_date=request.due_date,
            project_id=request.project_id,
            assigned_to=request.assigned_to,
            created_by=user_id,
        )
        self.session.add(task)
        self._commit(task, "Task conflicts with an existing record")
        logger.info("task.created", task_id=task.id, project_id=task.project_id)
        return task

    def list_project_tasks(self, request: schemas.ProjectScopedRequest) -> list[Task]:
        return list(
            self.session.execute(
                select(Task)
                .where(Task.project_id == request.project_id)
                .order_by(Task.id)
            ).scalars()
        )

    def update_task(self, request: schemas.TaskUpdateRequest) -> Task:
        task = self.session.get(Task, request.id)
        if not task:
            raise NotFoundError.missing("Task", request.id)

        changes = request.changes()
        if changes.get("assigned_to") is not None:
            self._require_reference(User, changes["assigned_to"], "User")

        for field, value in changes.items():
            setattr(task, field, value)
        task.updated_at = func.now()

        self._commit(task, "Task conflicts with an existing record")
        logger.info("task.updated", task_id=task.id, fields=sorted(changes))
        return task

    # ========================================================================
    # Notes
    # ========================================================================

    def create_note(self, request: schemas.NoteCreateRequest, user_id: int) -> Note:
        self._require_reference(Project, request.project_id, "Project")
        self._require_reference(User, user_id, "User")

        note = Note(
            content=request.content,
            is_private=request.is_private,
            project_id=request.project_id,
            created_by=user_id,
        )
        self.session.add(note)
        self._commit(note, "Note conflicts with an existing record")
        logger.info(
            "note.created",
            note_id=note.id,
            project_id=note.project_id,
            is_private=note.is_private,
        )
        return note

    def list_project_notes(
        self, request: schemas.ProjectScopedRequest, user_id: int
    ) -> list[Note]:
        """Public notes of the project plus the caller's own private notes."""
        visible = or_(
            Note.is_private == False,  # noqa: E712
            and_(Note.is_private == True, Note.created_by == user_id),  # noqa: E712
        )
        return list(
            self.session.execute(
                select(Note)
                .where(Note.project_id == request.project_id, visible)
                .order_by(Note.created_at, Note.id)
            ).scalars()
        )

    def update_note(self, request: schemas.NoteUpdateRequest) -> Note:
        note = self.session.get(Note, request.id)
        if not note:
            raise NotFoundError.missing("Note", request.id)

        note.content = request.content
        note.updated_at = func.now()
        self._commit(note, "Note conflicts with an existing record")
        logger.info("note.updated", note_id=note.id)
        return note
