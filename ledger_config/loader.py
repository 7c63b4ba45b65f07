"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the YAML files under ``ledger_config/defaults`` (or caller-supplied
paths) and parses them into typed ``ledger_config.schema`` dataclasses.

Architecture position
---------------------
**Config layer**.  Depends on the kernel only for account-type parsing;
the kernel never imports this package.

Invariants enforced
-------------------
* Every account definition has a number, a name and a valid AccountType.
* Account numbers are unique within a chart.
* Unknown settings sections are rejected.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Bad account type  -> ``InvalidAccountTypeError``.
* Duplicate numbers or unknown sections  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import AccountDefinition, ChartDefinition, LedgerSettings
from ledger_kernel.domain.taxonomy import parse_account_type
from ledger_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULTS_DIR = Path(__file__).parent / "defaults"
DEFAULT_CHART_PATH = DEFAULTS_DIR / "chart_of_accounts.yaml"
DEFAULT_SETTINGS_PATH = DEFAULTS_DIR / "settings.yaml"

_SETTINGS_SECTIONS = frozenset({"reporting", "inventory", "posting_accounts"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_account_definition(data: dict[str, Any]) -> AccountDefinition:
    """
    Parse an ``AccountDefinition`` from a dict.

    Raises:
        KeyError: if ``number``, ``name`` or ``type`` is missing.
        InvalidAccountTypeError: if ``type`` is not an AccountType value.
    """
    account_type = parse_account_type(data["type"])
    sub_category = data.get("sub_category")
    return AccountDefinition(
        number=str(data["number"]),
        name=str(data["name"]),
        type=account_type.value,
        sub_category=str(sub_category) if sub_category is not None else None,
        opening_balance=Decimal(str(data.get("opening_balance", "0"))),
    )


def parse_chart(data: dict[str, Any]) -> ChartDefinition:
    """
    Parse a ``ChartDefinition`` from the top-level chart document.

    Preconditions:
        - ``data`` has an ``accounts`` list.
    Postconditions:
        - Account numbers are unique.
    Raises:
        KeyError: if ``accounts`` or a required account key is missing.
        ValueError: on duplicate account numbers.
    """
    accounts = tuple(parse_account_definition(item) for item in data["accounts"])
    seen: set[str] = set()
    for account in accounts:
        if account.number in seen:
            raise ValueError(f"Duplicate account number in chart: {account.number}")
        seen.add(account.number)
    return ChartDefinition(
        version=int(data.get("version", 1)),
        accounts=accounts,
        checksum=compute_checksum(data),
    )


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse ``LedgerSettings`` from the settings document.

    Raises:
        ValueError: if an unknown section is present or a section is not a
            mapping.
    """
    unknown = set(data) - _SETTINGS_SECTIONS
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")
    sections: dict[str, dict[str, Any]] = {}
    for name in _SETTINGS_SECTIONS:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Settings section '{name}' must be a mapping")
        sections[name] = dict(section)
    return LedgerSettings(**sections, checksum=compute_checksum(data))


def load_chart_definitions(path: Path | None = None) -> ChartDefinition:
    """Load and parse a chart of accounts file (default: bundled chart)."""
    path = path or DEFAULT_CHART_PATH
    chart = parse_chart(load_yaml_file(path))
    logger.info(
        "chart_definitions_loaded",
        extra={
            "path": str(path),
            "version": chart.version,
            "account_count": len(chart.accounts),
            "checksum": chart.checksum,
        },
    )
    return chart


def load_settings(path: Path | None = None) -> LedgerSettings:
    """Load and parse a settings file (default: bundled settings)."""
    path = path or DEFAULT_SETTINGS_PATH
    settings = parse_settings(load_yaml_file(path))
    logger.info(
        "settings_loaded",
        extra={"path": str(path), "checksum": settings.checksum},
    )
    return settings


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Preconditions:
        - ``data`` must be JSON-serializable (via ``json.dumps`` with
          ``default=str``).
    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
