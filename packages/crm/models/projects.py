"""Project and project wiki models."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, ProjectStatus, TimestampMixin, project_status_enum

if TYPE_CHECKING:  # pragma: no cover
    from .directory import Company
    from .work import Note, Task

__all__ = ["Project", "WikiEntry"]


class Project(TimestampMixin, Base):
    """Unit of work for a company."""

    __tablename__ = "projects"
    __table_args__ = (
        Index("projects_company_id_idx", "company_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ProjectStatus] = mapped_column(
        project_status_enum(),
        nullable=False,
        default=ProjectStatus.PLANNING,
        server_default=ProjectStatus.PLANNING.value,
    )
    estimated_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    start_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", onupdate="NO ACTION", ondelete="NO ACTION"),
        nullable=False,
    )
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", onupdate="NO ACTION", ondelete="NO ACTION"),
        nullable=False,
    )

    company: Mapped["Company"] = relationship(back_populates="projects")
    wiki_entries: Mapped[list["WikiEntry"]] = relationship(
        back_populates="project",
        order_by="WikiEntry.version",
    )
    tasks: Mapped[list["Task"]] = relationship(back_populates="project")
    notes: Mapped[list["Note"]] = relationship(back_populates="project")


class WikiEntry(Base):
    """One saved revision of a project's wiki page."""

    __tablename__ = "project_wiki"
    __table_args__ = (
        UniqueConstraint("project_id", "version", name="project_wiki_version_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", onupdate="NO ACTION", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", onupdate="NO ACTION", ondelete="NO ACTION"),
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    project: Mapped[Project] = relationship(back_populates="wiki_entries")
