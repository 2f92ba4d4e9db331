"""Task and note models."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import (
    Base,
    TaskPriority,
    TaskStatus,
    TimestampMixin,
    task_priority_enum,
    task_status_enum,
)

if TYPE_CHECKING:  # pragma: no cover
    from .projects import Project

__all__ = ["Task", "Note"]


class Task(TimestampMixin, Base):
    """Actionable item within a project."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("tasks_project_id_idx", "project_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[TaskStatus] = mapped_column(
        task_status_enum(),
        nullable=False,
        default=TaskStatus.TODO,
        server_default=TaskStatus.TODO.value,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        task_priority_enum(),
        nullable=False,
        default=TaskPriority.MEDIUM,
        server_default=TaskPriority.MEDIUM.value,
    )
    due_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", onupdate="NO ACTION", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_to: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", onupdate="NO ACTION", ondelete="SET NULL")
    )
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", onupdate="NO ACTION", ondelete="NO ACTION"),
        nullable=False,
    )

    project: Mapped["Project"] = relationship(back_populates="tasks")


class Note(TimestampMixin, Base):
    """Free-text project annotation, public or private to its author."""

    __tablename__ = "notes"
    __table_args__ = (
        Index("notes_project_id_created_at_idx", "project_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_private: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", onupdate="NO ACTION", ondelete="CASCADE"),
        nullable=False,
    )
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", onupdate="NO ACTION", ondelete="NO ACTION"),
        nullable=False,
    )

    project: Mapped["Project"] = relationship(back_populates="notes")
