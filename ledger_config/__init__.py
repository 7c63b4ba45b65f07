"""
Ledger configuration (``ledger_config``).

YAML-backed chart of accounts and settings, parsed into frozen dataclasses.

Usage:
    from ledger_config import load_chart_definitions, load_settings

    chart = load_chart_definitions()
    AccountService(session).seed_chart(chart.accounts, actor_id=actor)
"""

from ledger_config.loader import (
    DEFAULTS_DIR,
    compute_checksum,
    load_chart_definitions,
    load_settings,
    load_yaml_file,
)
from ledger_config.schema import AccountDefinition, ChartDefinition, LedgerSettings

__all__ = [
    "AccountDefinition",
    "ChartDefinition",
    "DEFAULTS_DIR",
    "LedgerSettings",
    "compute_checksum",
    "load_chart_definitions",
    "load_settings",
    "load_yaml_file",
]
