"""Top-level namespace for the CRM service (``packages.crm``) and its CLI (``packages.crm_cli``)."""
