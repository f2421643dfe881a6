"""
Requisition Kernel

The approval-routing and budget-gating core of a purchase-requisition
workflow:
- Currency normalization to a USD reference amount
- Department budget gating with a fixed low-water mark
- Amount-tiered approval routing (HOD -> tier approver -> Accountant)
- A guarded, optimistic-concurrency requisition state machine
- Append-only, hash-chained audit trail
"""

__version__ = "0.1.0"
