"""HTTP client for the CRM RPC API."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import requests

from .api import MUTATION_PROCEDURES, QUERY_PROCEDURES

__all__ = ["CRMClient", "CRMClientError"]

JSONDict = Dict[str, Any]


class CRMClientError(RuntimeError):
    """Non-2xx response from the CRM API."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


class CRMClient:
    """Thin wrapper issuing procedure calls the way the web dashboard does."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:2022",
        *,
        token: Optional[str] = None,
        user_id: Optional[int] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user_id = user_id
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        elif self.user_id is not None:
            headers["X-User-ID"] = str(self.user_id)
        return headers

    def call(self, procedure: str, payload: Optional[JSONDict] = None) -> Any:
        """Invoke *procedure* and return the decoded JSON result."""
        url = f"{self.base_url}/rpc/{procedure}"
        if procedure in QUERY_PROCEDURES:
            params = {"input": json.dumps(payload)} if payload is not None else None
            response = self.session.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
        elif procedure in MUTATION_PROCEDURES:
            response = self.session.post(
                url, json=payload or {}, headers=self._headers(), timeout=self.timeout
            )
        else:
            raise ValueError(f"Unknown procedure: {procedure}")

        if response.status_code >= 400:
            raise _error_from_response(response)
        return response.json()

    # ------------------------------------------------------------------ auth
    def signup(self, email: str, password: str, first_name: str, last_name: str) -> JSONDict:
        result = self.call(
            "signup",
            {
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
            },
        )
        self.token = result.get("token")
        return result

    def login(self, email: str, password: str) -> JSONDict:
        result = self.call("login", {"email": email, "password": password})
        self.token = result.get("token")
        return result

    # ------------------------------------------------------------- directory
    def create_company(
        self, name: str, industry: Optional[str] = None, website: Optional[str] = None
    ) -> JSONDict:
        return self.call("createCompany", {"name": name, "industry": industry, "website": website})

    def get_companies(self) -> List[JSONDict]:
        return self.call("getCompanies")

    def create_team(self, name: str, description: Optional[str] = None) -> JSONDict:
        return self.call("createTeam", {"name": name, "description": description})

    def get_teams(self) -> List[JSONDict]:
        return self.call("getTeams")

    def create_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        team_id: Optional[int] = None,
    ) -> JSONDict:
        return self.call(
            "createUser",
            {
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "team_id": team_id,
            },
        )

    def get_users(self) -> List[JSONDict]:
        return self.call("getUsers")

    # -------------------------------------------------------------- projects
    def create_project(self, **fields: Any) -> JSONDict:
        return self.call("createProject", fields)

    def get_projects(self) -> List[JSONDict]:
        return self.call("getProjects")

    def get_project(self, project_id: int) -> JSONDict:
        return self.call("getProject", {"id": project_id})

    def update_project(self, project_id: int, **changes: Any) -> JSONDict:
        return self.call("updateProject", {"id": project_id, **changes})

    def create_project_wiki(self, project_id: int, title: str, content: str) -> JSONDict:
        return self.call(
            "createProjectWiki",
            {"project_id": project_id, "title": title, "content": content},
        )

    def get_project_wiki_history(self, project_id: int) -> List[JSONDict]:
        return self.call("getProjectWikiHistory", {"project_id": project_id})

    # ------------------------------------------------------------ work items
    def create_task(self, **fields: Any) -> JSONDict:
        return self.call("createTask", fields)

    def get_project_tasks(self, project_id: int) -> List[JSONDict]:
        return self.call("getProjectTasks", {"project_id": project_id})

    def update_task(self, task_id: int, **changes: Any) -> JSONDict:
        return self.call("updateTask", {"id": task_id, **changes})

    def create_note(self, project_id: int, content: str, is_private: bool = False) -> JSONDict:
        return self.call(
            "createNote",
            {"project_id": project_id, "content": content, "is_private": is_private},
        )

    def get_project_notes(self, project_id: int) -> List[JSONDict]:
        return self.call("getProjectNotes", {"project_id": project_id})

    def update_note(self, note_id: int, content: str) -> JSONDict:
        return self.call("updateNote", {"id": note_id, "content": content})


def _error_from_response(response: requests.Response) -> CRMClientError:
    try:
        body = response.json()
    except ValueError:
        return CRMClientError(response.status_code, "HTTP_ERROR", response.text)

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return CRMClientError(
            response.status_code,
            str(error.get("code", "HTTP_ERROR")),
            str(error.get("message", "")),
        )
    # FastAPI request validation errors
    detail = body.get("detail") if isinstance(body, dict) else body
    return CRMClientError(response.status_code, "BAD_REQUEST", json.dumps(detail))
