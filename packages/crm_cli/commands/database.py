"""Database provisioning commands."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

import structlog

from packages.crm.schema.enums import render_enum_sql
from packages.crm.service import CRMDatabase, init_engine

from ..config import RuntimeConfig

__all__ = ["register"]

logger = structlog.get_logger(__name__)


def register(subparsers: _SubParsersAction) -> None:
    db_init = subparsers.add_parser(
        "db-init", help="Create enum types (PostgreSQL) and all CRM tables"
    )
    db_init.add_argument(
        "--skip-enums",
        action="store_true",
        help="Do not create enum types (they already exist or are managed elsewhere)",
    )
    db_init.set_defaults(handler=_cmd_db_init)

    enums_sql = subparsers.add_parser(
        "enums-sql", help="Print CREATE TYPE statements for the CRM enums"
    )
    enums_sql.set_defaults(handler=_cmd_enums_sql)


def _cmd_db_init(args: Namespace, config: RuntimeConfig) -> None:
    engine = init_engine(config.settings)
    try:
        database = CRMDatabase(engine)
        database.create_all(with_enum_types=not getattr(args, "skip_enums", False))
        logger.info("db.initialized", dialect=engine.dialect.name)
        print(f"✓ CRM tables created ({engine.dialect.name})")
    finally:
        engine.dispose()


def _cmd_enums_sql(args: Namespace, config: RuntimeConfig) -> None:
    print("-- Generated via `crm enums-sql`; do not edit manually.")
    print(render_enum_sql())
