"""Pydantic schemas for CRM RPC inputs and outputs."""

from __future__ import annotations

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, ClassVar, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .models import ProjectStatus, TaskPriority, TaskStatus

__all__ = [
    # Directory
    "CompanyCreateRequest",
    "CompanyResponse",
    "TeamCreateRequest",
    "TeamResponse",
    "UserCreateRequest",
    "UserResponse",
    # Auth
    "SignupRequest",
    "LoginRequest",
    "AuthResponse",
    # Projects
    "ProjectCreateRequest",
    "ProjectUpdateRequest",
    "ProjectLookupRequest",
    "ProjectScopedRequest",
    "ProjectResponse",
    "WikiCreateRequest",
    "WikiEntryResponse",
    # Work items
    "TaskCreateRequest",
    "TaskUpdateRequest",
    "TaskResponse",
    "NoteCreateRequest",
    "NoteUpdateRequest",
    "NoteResponse",
    "HealthResponse",
]

BCRYPT_MAX_PASSWORD_BYTES = 72
# numeric(15,2)
MAX_ESTIMATED_VALUE = 9_999_999_999_999.99
CENTS = Decimal("0.01")
# schemes whose URLs must carry a host
HOST_REQUIRED_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})


class PartialUpdateRequest(BaseModel):
    """Base for update inputs: only fields the caller sent are written."""

    NON_NULLABLE: ClassVar[tuple[str, ...]] = ()

    id: int

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> "PartialUpdateRequest":
        for name in self.NON_NULLABLE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Return the explicitly provided fields, excluding ``id``."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


# ========================================================================
# Companies, teams, users
# ========================================================================


class CompanyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    industry: Optional[str] = None
    website: Optional[str] = None

    @field_validator("website")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        parsed = urlparse(value)
        if not parsed.scheme:
            raise ValueError("website must be an absolute URL")
        if parsed.scheme in HOST_REQUIRED_SCHEMES and not parsed.netloc:
            raise ValueError(f"{parsed.scheme} URL must include a host")
        return value


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    industry: Optional[str]
    website: Optional[str]
    created_at: dt.datetime
    updated_at: dt.datetime


class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    created_at: dt.datetime
    updated_at: dt.datetime


class UserCreateRequest(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    team_id: Optional[int] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    team_id: Optional[int]
    created_at: dt.datetime
    updated_at: dt.datetime


# ========================================================================
# Authentication
# ========================================================================


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def _fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    user: UserResponse
    token: Optional[str] = None


# ========================================================================
# Projects and wiki
# ========================================================================


def _check_estimated_value(value: Optional[float]) -> Optional[float]:
    # stored rounded to cents, so a positive amount must survive the rounding
    if value is not None and Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP) <= 0:
        raise ValueError("estimated_value must be at least 0.01")
    return value


def _estimated_value_field():
    return Field(None, gt=0, le=MAX_ESTIMATED_VALUE, allow_inf_nan=False)


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    estimated_value: Optional[float] = _estimated_value_field()
    start_date: Optional[dt.datetime] = None
    end_date: Optional[dt.datetime] = None
    company_id: int

    _estimated_value_cents = field_validator("estimated_value")(_check_estimated_value)


class ProjectUpdateRequest(PartialUpdateRequest):
    NON_NULLABLE: ClassVar[tuple[str, ...]] = ("name", "status", "company_id")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    estimated_value: Optional[float] = _estimated_value_field()
    start_date: Optional[dt.datetime] = None
    end_date: Optional[dt.datetime] = None
    company_id: Optional[int] = None

    _estimated_value_cents = field_validator("estimated_value")(_check_estimated_value)


class ProjectLookupRequest(BaseModel):
    id: int


class ProjectScopedRequest(BaseModel):
    """Input for queries filtered by project (tasks, notes, wiki history)."""

    project_id: int


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    status: ProjectStatus
    estimated_value: Optional[float]
    start_date: Optional[dt.datetime]
    end_date: Optional[dt.datetime]
    company_id: int
    created_by: int
    created_at: dt.datetime
    updated_at: dt.datetime

    @field_validator("estimated_value", mode="before")
    @classmethod
    def _numeric_to_float(cls, value: Any) -> Any:
        # numeric(15,2) comes back as Decimal (or str on some drivers)
        if isinstance(value, (Decimal, str)):
            return float(value)
        return value


class WikiCreateRequest(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1)
    content: str


class WikiEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    title: str
    content: str
    version: int
    created_by: int
    created_at: dt.datetime


# ========================================================================
# Tasks and notes
# ========================================================================


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[dt.datetime] = None
    project_id: int
    assigned_to: Optional[int] = None


class TaskUpdateRequest(PartialUpdateRequest):
    NON_NULLABLE: ClassVar[tuple[str, ...]] = ("title", "status", "priority")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[dt.datetime] = None
    assigned_to: Optional[int] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[dt.datetime]
    project_id: int
    assigned_to: Optional[int]
    created_by: int
    created_at: dt.datetime
    updated_at: dt.datetime


class NoteCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    is_private: bool = False
    project_id: int


class NoteUpdateRequest(BaseModel):
    id: int
    content: str = Field(..., min_length=1)


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    is_private: bool
    project_id: int
    created_by: int
    created_at: dt.datetime
    updated_at: dt.datetime


class HealthResponse(BaseModel):
    status: str
    timestamp: dt.datetime
