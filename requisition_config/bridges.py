"""
Config -> Kernel Bridges.

Converts ``WorkflowSettings`` into the kernel's ``WorkflowPolicy``.  This
lives here (the producer) because the kernel must NEVER import
requisition_config.

Usage:
    from requisition_config import get_active_config
    from requisition_config.bridges import build_workflow_policy

    policy = build_workflow_policy(get_active_config())
"""

from __future__ import annotations

from requisition_config.schema import WorkflowSettings
from requisition_kernel.domain.policy import WorkflowPolicy
from requisition_kernel.domain.routing import ApprovalThresholds


def build_workflow_policy(settings: WorkflowSettings) -> WorkflowPolicy:
    return WorkflowPolicy(
        thresholds=ApprovalThresholds(
            finance_manager_max=settings.finance_manager_max,
            technical_director_max=settings.technical_director_max,
        ),
        low_water_mark=settings.budget_low_water_mark,
        warning_percent=settings.budget_warning_percent,
        sequence_prefix=settings.sequence_prefix,
    )
