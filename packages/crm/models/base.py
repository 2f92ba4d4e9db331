"""Shared SQLAlchemy base and enum helpers for CRM models."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import ENUM as PgEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..schema.enums import ProjectStatus, TaskPriority, TaskStatus, pg_enum

__all__ = [
    "Base",
    "TimestampMixin",
    "ProjectStatus",
    "TaskStatus",
    "TaskPriority",
    "project_status_enum",
    "task_status_enum",
    "task_priority_enum",
]


class Base(DeclarativeBase):
    """Declarative base class shared by all CRM models."""


class TimestampMixin:
    """``created_at``/``updated_at`` columns filled by the database."""

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# Enum helper factories -----------------------------------------------------

def project_status_enum() -> PgEnum:
    """Return a configured ENUM for the ``project_status`` type."""

    return pg_enum(ProjectStatus)


def task_status_enum() -> PgEnum:
    """Return a configured ENUM for the ``task_status`` type."""

    return pg_enum(TaskStatus)


def task_priority_enum() -> PgEnum:
    """Return a configured ENUM for the ``task_priority`` type."""

    return pg_enum(TaskPriority)
