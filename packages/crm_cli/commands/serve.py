"""CLI command for the CRM API server."""

from __future__ import annotations

import os
from argparse import Namespace, _SubParsersAction

import structlog
import uvicorn

from ..config import RuntimeConfig

__all__ = ["register", "run"]

logger = structlog.get_logger(__name__)


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("serve", help="Start the CRM RPC API server")
    parser.add_argument("--host", help="Host to bind (env: CRM_HOST, default: 127.0.0.1)")
    parser.add_argument(
        "--port", type=int, help="Port to bind (env: CRM_PORT or SERVER_PORT, default: 2022)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.set_defaults(handler=run, default_log_format="json")


def run(args: Namespace, config: RuntimeConfig) -> None:
    """Start the CRM API server."""
    from packages.crm.api import create_app

    settings = config.settings
    host = getattr(args, "host", None) or settings.host
    port = getattr(args, "port", None) or settings.port
    logger.info("server.starting", host=host, port=port, docs=f"http://{host}:{port}/docs")

    if getattr(args, "reload", False):
        # the reloader re-imports the factory, so overrides travel via the environment
        os.environ["CRM_DATABASE_URL"] = settings.database_url
        uvicorn.run(
            "packages.crm.api:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_level=config.log_level.lower(),
        )
        return

    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )
