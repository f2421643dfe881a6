"""
Workflow policy (``requisition_kernel.domain.policy``).

The tunable numbers the kernel runs on, bundled into one frozen value so
services take a single argument.  Built from YAML by
``requisition_config.bridges.build_workflow_policy``; the kernel never
reads configuration itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from requisition_kernel.domain.budget import DEFAULT_LOW_WATER_MARK, DEFAULT_WARNING_PERCENT
from requisition_kernel.domain.routing import DEFAULT_THRESHOLDS, ApprovalThresholds


@dataclass(frozen=True)
class WorkflowPolicy:
    thresholds: ApprovalThresholds = DEFAULT_THRESHOLDS
    low_water_mark: Decimal = DEFAULT_LOW_WATER_MARK
    warning_percent: Decimal = DEFAULT_WARNING_PERCENT
    sequence_prefix: str = "REQ"

    def __post_init__(self) -> None:
        if self.low_water_mark < 0:
            raise ValueError("low_water_mark must be non-negative")
        if not (0 < self.warning_percent <= 100):
            raise ValueError("warning_percent must be in (0, 100]")
        if not self.sequence_prefix:
            raise ValueError("sequence_prefix must be non-empty")


DEFAULT_POLICY = WorkflowPolicy()
