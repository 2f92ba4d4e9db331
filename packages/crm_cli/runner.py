"""Command-line entry point for the CRM.

``crm serve`` logs one JSON object per line so a log collector can ingest
the API's events; the provisioning and ``call`` commands log ``key=value``
lines meant for a terminal. ``--log-format`` overrides either default.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, List, Optional

import structlog

from . import commands
from .config import RuntimeConfig, build_runtime_config

CommandHandler = Callable[[argparse.Namespace, RuntimeConfig], None]

LOG_FORMATS = ("auto", "json", "kv")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crm",
        description="Serve, provision, and call the construction CRM API.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG). Default: INFO",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=os.getenv("CRM_LOG_FORMAT", "auto"),
        help="json or kv (key=value); auto picks json for serve, kv otherwise",
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        help="Override the database URL (env: CRM_DATABASE_URL or DATABASE_URL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    commands.register(subparsers)
    return parser


def resolve_log_format(args: argparse.Namespace) -> str:
    requested = getattr(args, "log_format", "auto")
    if requested != "auto":
        return requested
    # commands advertise their preferred format through set_defaults
    return getattr(args, "default_log_format", "kv")


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.processors.KeyValueRenderer(
        key_order=["timestamp", "level", "event", "logger"],
        drop_missing=True,
    )


def configure_logging(level_name: str, log_format: str = "kv") -> None:
    """Route structlog and stdlib records (uvicorn, SQLAlchemy) to one stderr handler."""
    level_value = getattr(logging, level_name.upper(), logging.INFO)
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    ]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            *shared_processors,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level_value)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    logging.basicConfig(level=level_value, handlers=[handler], force=True)


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler: CommandHandler = getattr(args, "handler", None)
    if not callable(handler):
        parser.error("Command handler missing")

    level_name = str(getattr(args, "log_level", "INFO")).upper()
    configure_logging(level_name, resolve_log_format(args))

    runtime = build_runtime_config(
        log_level=level_name,
        database_url=getattr(args, "database_url", None),
    )
    structlog.contextvars.bind_contextvars(command=args.command)
    try:
        handler(args, runtime)
    finally:
        structlog.contextvars.clear_contextvars()


if __name__ == "__main__":  # pragma: no cover
    main()
