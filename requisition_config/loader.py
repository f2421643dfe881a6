"""
Configuration Loader (``requisition_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``WorkflowSettings``.  Runtime callers go through
``requisition_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Money-like values are parsed from strings into ``Decimal``; a float in
  the YAML is rejected so tier bounds are never binary approximations.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id``  -> ``KeyError`` propagates.
* Bad values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from requisition_config.schema import WorkflowSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _decimal(value: Any, name: str, default: str) -> Decimal:
    if value is None:
        return Decimal(default)
    if isinstance(value, float):
        raise ValueError(f"{name} must be quoted or an integer, not a float: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} is not a decimal: {value!r}") from exc


def parse_settings(data: dict[str, Any]) -> WorkflowSettings:
    """Parse a raw YAML document into ``WorkflowSettings``."""
    thresholds = data.get("approval_thresholds") or {}
    budget = data.get("budget") or {}
    sequence = data.get("sequence") or {}

    return WorkflowSettings(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        finance_manager_max=_decimal(
            thresholds.get("finance_manager_max"), "finance_manager_max", "100",
        ),
        technical_director_max=_decimal(
            thresholds.get("technical_director_max"), "technical_director_max", "500",
        ),
        budget_low_water_mark=_decimal(budget.get("low_water_mark"), "low_water_mark", "100"),
        budget_warning_percent=_decimal(budget.get("warning_percent"), "warning_percent", "80"),
        sequence_prefix=str(sequence.get("prefix", "REQ")),
        checksum=compute_checksum(data),
    )


def validate_settings(settings: WorkflowSettings) -> list[str]:
    """Return a list of problems; empty when the settings are usable."""
    errors: list[str] = []
    if settings.finance_manager_max < 0:
        errors.append("finance_manager_max must be non-negative")
    if settings.technical_director_max <= settings.finance_manager_max:
        errors.append("technical_director_max must be greater than finance_manager_max")
    if settings.budget_low_water_mark < 0:
        errors.append("budget low_water_mark must be non-negative")
    if not (0 < settings.budget_warning_percent <= 100):
        errors.append("budget warning_percent must be in (0, 100]")
    if not settings.sequence_prefix.strip():
        errors.append("sequence prefix must be non-empty")
    return errors


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
