"""
Typed Exception Hierarchy for the Requisition Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (HTTP handlers, form-submit handlers, batch jobs) must
map every failure to a precise user-facing condition: "add a comment",
"access denied", "please refresh".  Matching on message text is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way:
    try:
        service.apply_action(req_id, actor, RequisitionAction.REJECT)
    except Exception as e:
        if "comment" in str(e):
            ...

Example - RIGHT way:
    try:
        service.apply_action(req_id, actor, RequisitionAction.REJECT)
    except ValidationError as e:
        api_response(code=e.code, field=e.field)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RequisitionKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingConversionError
    |   +-- UnsupportedCurrencyError
    |   +-- ProofOfPaymentRequiredError
    |
    +-- BudgetExhaustedError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedTransitionError
    |   |   +-- SelfApprovalError
    |   +-- UnauthorizedOperationError
    |
    +-- InvalidStateError
    +-- ConflictError
    +-- RequisitionNotFoundError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                        | When Raised
----------------------------|---------------------------------------------------
VALIDATION_ERROR            | Missing/invalid input (e.g. comment on reject/wait)
MISSING_CONVERSION          | Non-USD requisition without a USD equivalent
UNSUPPORTED_CURRENCY        | Currency outside USD/ZWG/GBP/EUR
PROOF_OF_PAYMENT_REQUIRED   | Completion attempted without an attached POP
BUDGET_EXHAUSTED            | Department remaining budget at/below low-water mark
UNAUTHORIZED_TRANSITION     | Actor role is not the role the router authorizes
SELF_APPROVAL               | Same actor approving at a second stage
UNAUTHORIZED_OPERATION      | Non-admin budget administration, non-accountant POP
INVALID_STATE               | Terminal / incompatible state, duplicate action
CONFLICT                    | Optimistic-concurrency loss on a transition
REQUISITION_NOT_FOUND       | Unknown requisition id
AUDIT_CHAIN_BROKEN          | Audit hash chain validation failed
IMMUTABILITY_VIOLATION      | UPDATE/DELETE on an append-only record

===============================================================================
PROPAGATION
===============================================================================

All of these are local, synchronous failures returned to the caller.  The
kernel never retries; retry is the caller re-issuing the user's intent.
Notification and audit delivery failures never surface here -- the event
bus logs and swallows them.
"""

from decimal import Decimal


class RequisitionKernelError(Exception):
    """
    Base exception for all requisition kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "REQUISITION_KERNEL_ERROR"


# Validation


class ValidationError(RequisitionKernelError):
    """Caller supplied missing or invalid input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class MissingConversionError(ValidationError):
    """Non-USD requisition submitted without a USD equivalent."""

    code: str = "MISSING_CONVERSION"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"A USD equivalent is required for {currency} requisitions",
            field="usd_equivalent",
        )


class UnsupportedCurrencyError(ValidationError):
    """Currency code is not one the workflow accepts."""

    code: str = "UNSUPPORTED_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unsupported currency: {currency}", field="currency")


class ProofOfPaymentRequiredError(ValidationError):
    """Completion attempted before a proof of payment was attached."""

    code: str = "PROOF_OF_PAYMENT_REQUIRED"

    def __init__(self, requisition_id: str):
        self.requisition_id = requisition_id
        super().__init__(
            f"Proof of payment must be attached before completing "
            f"requisition {requisition_id}",
            field="proof_of_payment",
        )


# Budget


class BudgetExhaustedError(RequisitionKernelError):
    """Department budget is at or below the low-water mark."""

    code: str = "BUDGET_EXHAUSTED"

    def __init__(self, department: str, remaining: Decimal, low_water_mark: Decimal):
        self.department = department
        self.remaining = remaining
        self.low_water_mark = low_water_mark
        super().__init__(
            f"Budget exhausted for {department}: remaining {remaining} "
            f"is at or below {low_water_mark}"
        )


# Authorization


class AuthorizationError(RequisitionKernelError):
    """Base exception for access-denied conditions."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedTransitionError(AuthorizationError):
    """Actor is not the one the approval router currently authorizes."""

    code: str = "UNAUTHORIZED_TRANSITION"

    def __init__(
        self,
        requisition_id: str,
        actor_role: str,
        required_role: str | None,
        reason: str = "",
    ):
        self.requisition_id = requisition_id
        self.actor_role = actor_role
        self.required_role = required_role
        self.reason = reason
        message = (
            f"Role {actor_role} may not act on requisition {requisition_id}; "
            f"awaiting {required_role or 'nobody'}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SelfApprovalError(UnauthorizedTransitionError):
    """Actor already approved this requisition at an earlier stage."""

    code: str = "SELF_APPROVAL"

    def __init__(self, requisition_id: str, actor_id: str, actor_role: str):
        self.actor_id = actor_id
        super().__init__(
            requisition_id,
            actor_role,
            actor_role,
            reason=f"actor {actor_id} already approved this requisition",
        )


class UnauthorizedOperationError(AuthorizationError):
    """Actor role may not perform an administrative or payment operation."""

    code: str = "UNAUTHORIZED_OPERATION"

    def __init__(self, operation: str, actor_role: str, required_role: str):
        self.operation = operation
        self.actor_role = actor_role
        self.required_role = required_role
        super().__init__(
            f"{operation} requires role {required_role}, got {actor_role}"
        )


# Lifecycle


class InvalidStateError(RequisitionKernelError):
    """Action is incompatible with the requisition's current state."""

    code: str = "INVALID_STATE"

    def __init__(self, requisition_id: str, status: str, action: str, reason: str = ""):
        self.requisition_id = requisition_id
        self.status = status
        self.action = action
        self.reason = reason
        message = f"Cannot {action} requisition {requisition_id} in status {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConflictError(RequisitionKernelError):
    """
    Optimistic concurrency loss.

    Another writer transitioned the requisition between this caller's
    read and write.  Recover by reloading and re-deciding.
    """

    code: str = "CONFLICT"

    def __init__(self, requisition_id: str, expected_version: int, expected_status: str):
        self.requisition_id = requisition_id
        self.expected_version = expected_version
        self.expected_status = expected_status
        super().__init__(
            f"Requisition {requisition_id} was just updated by someone else "
            f"(expected version {expected_version}, status {expected_status}); "
            "please refresh"
        )


class RequisitionNotFoundError(RequisitionKernelError):
    """Requisition with given ID was not found."""

    code: str = "REQUISITION_NOT_FOUND"

    def __init__(self, requisition_id: str):
        self.requisition_id = requisition_id
        super().__init__(f"Requisition not found: {requisition_id}")


# Audit


class AuditError(RequisitionKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, entry_id: str, expected_hash: str, actual_hash: str):
        self.entry_id = entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at entry {entry_id}: "
            f"expected hash {expected_hash}, got {actual_hash}"
        )


class ImmutabilityViolationError(RequisitionKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
