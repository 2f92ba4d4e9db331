"""Construction CRM: data models, service layer, RPC API, and client."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    # Models
    "Base",
    "Company",
    "Team",
    "User",
    "AuthCredential",
    "Project",
    "WikiEntry",
    "Task",
    "Note",
    # API
    "create_app",
    "CRMSettings",
    # Service
    "CRMService",
    "CRMDatabase",
    "init_engine",
    # Client
    "CRMClient",
    "CRMClientError",
]

_MODULE_BY_NAME = {
    **dict.fromkeys(
        [
            "Base", "Company", "Team", "User", "AuthCredential",
            "Project", "WikiEntry", "Task", "Note",
        ],
        ".models",
    ),
    "create_app": ".api",
    "CRMSettings": ".settings",
    "CRMService": ".service",
    "CRMDatabase": ".service",
    "init_engine": ".service",
    "CRMClient": ".client",
    "CRMClientError": ".client",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - thin import shim
    module_name = _MODULE_BY_NAME.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    value = getattr(import_module(module_name, __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - introspection helper
    return sorted(__all__ + ["schema", "schemas", "errors", "security"])
