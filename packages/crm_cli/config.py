"""Runtime configuration shared by CLI command handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from packages.crm.settings import CRMSettings


@dataclass(frozen=True)
class RuntimeConfig:
    """Resolved configuration for command handlers."""

    settings: CRMSettings
    log_level: str


def build_runtime_config(
    *, log_level: str, database_url: Optional[str] = None
) -> RuntimeConfig:
    """Construct a :class:`RuntimeConfig`, honouring a ``--database-url`` override."""

    settings = CRMSettings()
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})
    return RuntimeConfig(settings=settings, log_level=log_level)
