"""
Workflow settings schema.

The human-authored source artifact: YAML is parsed into this frozen type
by the loader and translated for the kernel by ``bridges``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class WorkflowSettings:
    """Validated requisition workflow settings."""

    config_id: str
    version: int
    finance_manager_max: Decimal = Decimal("100")
    technical_director_max: Decimal = Decimal("500")
    budget_low_water_mark: Decimal = Decimal("100")
    budget_warning_percent: Decimal = Decimal("80")
    sequence_prefix: str = "REQ"
    checksum: str = ""
