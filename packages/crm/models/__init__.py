"""CRM SQLAlchemy models organized by domain."""

from .base import (
    Base,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
)
from .directory import AuthCredential, Company, Team, User
from .projects import Project, WikiEntry
from .work import Note, Task

__all__ = [
    "Base",
    "Company",
    "Team",
    "User",
    "AuthCredential",
    "Project",
    "WikiEntry",
    "Task",
    "Note",
    "ProjectStatus",
    "TaskStatus",
    "TaskPriority",
]
