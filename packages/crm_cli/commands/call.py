"""Invoke a CRM procedure over HTTP."""

from __future__ import annotations

import json
import os
import sys
from argparse import Namespace, _SubParsersAction

from packages.crm.api import MUTATION_PROCEDURES, QUERY_PROCEDURES
from packages.crm.client import CRMClient, CRMClientError

from ..config import RuntimeConfig

__all__ = ["register", "run"]


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("call", help="Call an RPC procedure and print the JSON result")
    parser.add_argument(
        "procedure",
        choices=sorted(QUERY_PROCEDURES | MUTATION_PROCEDURES),
        metavar="procedure",
        help="Procedure name, e.g. getProjects or createCompany",
    )
    parser.add_argument("--input", dest="payload", help="JSON input object")
    parser.add_argument(
        "--base-url",
        default=os.getenv("CRM_BASE_URL"),
        help="API base URL (env: CRM_BASE_URL, default: http://<host>:<port>)",
    )
    identity = parser.add_mutually_exclusive_group()
    identity.add_argument("--token", default=os.getenv("CRM_TOKEN"), help="Bearer token (env: CRM_TOKEN)")
    identity.add_argument("--user-id", type=int, help="Send X-User-ID instead of a token")
    parser.set_defaults(handler=run)


def run(args: Namespace, config: RuntimeConfig) -> None:
    payload = None
    if args.payload:
        try:
            payload = json.loads(args.payload)
        except json.JSONDecodeError as exc:
            raise SystemExit(f"--input is not valid JSON: {exc}") from None

    base_url = args.base_url or f"http://{config.settings.host}:{config.settings.port}"
    client = CRMClient(base_url, token=args.token, user_id=args.user_id)
    try:
        result = client.call(args.procedure, payload)
    except CRMClientError as exc:
        print(json.dumps({"error": {"code": exc.code, "message": exc.message}}), file=sys.stderr)
        raise SystemExit(1) from None

    print(json.dumps(result, ensure_ascii=False, indent=2))
