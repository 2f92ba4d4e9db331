"""Command registrations for the CRM CLI."""

from __future__ import annotations

from argparse import _SubParsersAction

from . import call, database, serve

__all__ = ["register"]


def register(subparsers: _SubParsersAction) -> None:
    """Register all CLI commands with *subparsers*."""

    serve.register(subparsers)
    database.register(subparsers)
    call.register(subparsers)
