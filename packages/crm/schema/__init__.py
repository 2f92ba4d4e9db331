"""CRM schema helpers shared between ORM models and database bootstrap."""

from .enums import (
    CRMEnum,
    EnumDefinition,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
    ENUM_DEFINITIONS,
    ENUM_DEFINITION_BY_NAME,
    render_enum_sql,
    pg_enum,
)

__all__ = [
    "CRMEnum",
    "EnumDefinition",
    "ProjectStatus",
    "TaskStatus",
    "TaskPriority",
    "ENUM_DEFINITIONS",
    "ENUM_DEFINITION_BY_NAME",
    "render_enum_sql",
    "pg_enum",
]
