"""Run the CRM CLI from a source checkout: ``python main.py serve``."""

from __future__ import annotations

from packages.crm_cli.runner import main

__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover
    main()
