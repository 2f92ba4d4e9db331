"""Canonical CRM enum definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

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


class CRMEnum(str, Enum):
    """Base class for CRM enums stored as PostgreSQL enum types."""

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(item.value for item in cls)


class ProjectStatus(CRMEnum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(CRMEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(CRMEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class EnumDefinition:
    """Metadata describing a PostgreSQL enum type."""

    name: str
    values: tuple[str, ...]
    enum_cls: type[CRMEnum]

    def render_sql(self) -> str:
        values_sql = ",".join(f"'{value}'" for value in self.values)
        return (
            "DO $$ BEGIN\n"
            f"  CREATE TYPE {self.name} AS ENUM ({values_sql});\n"
            "EXCEPTION WHEN duplicate_object THEN NULL; END $$;"
        )


ENUM_DEFINITIONS: tuple[EnumDefinition, ...] = (
    EnumDefinition("project_status", ProjectStatus.values(), ProjectStatus),
    EnumDefinition("task_status", TaskStatus.values(), TaskStatus),
    EnumDefinition("task_priority", TaskPriority.values(), TaskPriority),
)

ENUM_DEFINITION_BY_NAME: Mapping[str, EnumDefinition] = {
    definition.name: definition for definition in ENUM_DEFINITIONS
}

ENUM_DEFINITION_BY_CLASS: Mapping[type[CRMEnum], EnumDefinition] = {
    definition.enum_cls: definition for definition in ENUM_DEFINITIONS
}


def render_enum_sql() -> str:
    """Return ``CREATE TYPE`` statements for all CRM enums."""

    return "\n\n".join(definition.render_sql() for definition in ENUM_DEFINITIONS)


def pg_enum(enum_cls: type[CRMEnum]):
    """Return a SQLAlchemy ``ENUM`` tied to the canonical definition.

    Values (not member names) are persisted so the stored labels match the
    ``CREATE TYPE`` statements above.
    """

    from sqlalchemy.dialects.postgresql import ENUM as PgEnum

    definition = ENUM_DEFINITION_BY_CLASS[enum_cls]
    return PgEnum(
        enum_cls,
        name=definition.name,
        create_type=False,
        values_callable=lambda members: [member.value for member in members],
    )
