"""
Module: requisition_kernel.services.requisition_service
Responsibility:
    Write-side facade for the requisition lifecycle: creation behind the
    budget gate, approver decisions through the state machine, and proof
    of payment attachment.  Contains NO routing or transition logic of
    its own; every decision is made by ``domain.state_machine`` and
    ``domain.routing``.

Architecture:
    Kernel > Services -- owns the transaction boundary.

        requisition_service.py  -->  domain.state_machine  (apply_action)
        requisition_service.py  -->  domain.budget         (gate arithmetic)
        requisition_service.py  -->  RequisitionStore / DocumentStore (flush-only)
        requisition_service.py  -->  EventBus              (after commit only)

Invariants enforced:
    - Each public method commits on success and rolls back on any error.
    - Events are published only after the commit succeeded, so no
      subscriber ever observes a transition that was rolled back.
    - The budget gate is evaluated inside the creating transaction with
      the department budget row locked.
    - Transitions are persisted with compare-and-set on (id, version,
      status).

Failure modes:
    - ValidationError family: bad input, missing comment, missing proof.
    - BudgetExhaustedError: department at or below the low-water mark.
    - UnauthorizedTransitionError / SelfApprovalError / UnauthorizedOperationError.
    - InvalidStateError: terminal, duplicate or impossible action.
    - ConflictError: stale ``expected_version`` or lost compare-and-set.
    - RequisitionNotFoundError: unknown id.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from requisition_kernel.domain.budget import can_submit, remaining_budget, used_amount
from requisition_kernel.domain.clock import Clock, SystemClock
from requisition_kernel.domain.currency import Currency, parse_amount, parse_currency, to_usd
from requisition_kernel.domain.events import (
    RequisitionEvent,
    RequisitionEventType,
    event_from_outcome,
)
from requisition_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from requisition_kernel.domain.ports import DocumentStore, RequisitionStore
from requisition_kernel.domain.requisition import (
    SUBMITTER_ROLES,
    Actor,
    Department,
    Requisition,
    RequisitionAction,
    RequisitionType,
    Role,
)
from requisition_kernel.domain.routing import ApprovalStage, approval_stage
from requisition_kernel.domain.state_machine import apply_action, parse_action
from requisition_kernel.exceptions import (
    BudgetExhaustedError,
    ConflictError,
    InvalidStateError,
    UnauthorizedOperationError,
    UnauthorizedTransitionError,
    ValidationError,
)
from requisition_kernel.logging_config import LogContext, get_logger
from requisition_kernel.services.document_store import SqlDocumentStore
from requisition_kernel.services.event_bus import EventBus
from requisition_kernel.services.requisition_store import SqlRequisitionStore
from requisition_kernel.services.sequence_service import (
    SequenceService,
    format_sequence_number,
)

logger = get_logger("services.requisition")


def parse_department(value: Department | str) -> Department:
    try:
        return Department(value)
    except ValueError:
        raise ValidationError(f"Unknown department: {value!r}", field="department") from None


def _parse_type(value: RequisitionType | str) -> RequisitionType:
    try:
        return RequisitionType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown requisition type: {value!r}", field="requisition_type",
        ) from None


class RequisitionService:
    """
    Orchestrates the requisition lifecycle.

    Contract:
        Callers supply a live SQLAlchemy Session and, optionally, a Clock,
        a WorkflowPolicy and an EventBus.  Store and document collaborators
        default to the SQLAlchemy implementations over the same session.

    Guarantees:
        - Returned requisitions are frozen snapshots of what was committed.
        - At most one event is published per successful call.

    Non-goals:
        - Does NOT deliver notifications or write audit rows itself; bus
          subscribers do, after commit.
        - Does NOT read configuration; thresholds arrive in ``policy``.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock | None = None,
        policy: WorkflowPolicy = DEFAULT_POLICY,
        event_bus: EventBus | None = None,
        store: RequisitionStore | None = None,
        documents: DocumentStore | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy
        self._bus = event_bus or EventBus()
        self._store = store or SqlRequisitionStore(session)
        self._documents = documents or SqlDocumentStore(session, self._clock)
        self._sequences = SequenceService(session)

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    # =========================================================================
    # Creation
    # =========================================================================

    def create_requisition(
        self,
        actor: Actor,
        title: str,
        department: Department | str,
        amount: Decimal | int | str,
        currency: Currency | str,
        usd_equivalent: Decimal | int | str | None = None,
        requisition_type: RequisitionType | str = RequisitionType.STANDARD,
        deviation_reason: str | None = None,
        budget_code: str = "",
        description: str = "",
    ) -> Requisition:
        """
        Submit a new requisition in ``pending`` status.

        Preconditions:
            - ``actor`` is a preparer or an HOD.
            - The department's remaining budget is above the low-water mark.

        Postconditions:
            - Requisition persisted with version 1 and a fresh sequence
              number; ``requisition_submitted`` published after commit.

        Raises:
            UnauthorizedTransitionError: actor role may not submit.
            ValidationError: empty title, bad amount, deviation without reason.
            MissingConversionError: non-USD without a USD equivalent.
            BudgetExhaustedError: department budget gate closed.
        """
        with LogContext.bind(actor_id=str(actor.id)):
            try:
                requisition = self._create(
                    actor=actor,
                    title=title,
                    department=department,
                    amount=amount,
                    currency=currency,
                    usd_equivalent=usd_equivalent,
                    requisition_type=requisition_type,
                    deviation_reason=deviation_reason,
                    budget_code=budget_code,
                    description=description,
                )
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning(
                    "requisition_create_failed",
                    extra={"department": str(getattr(department, "value", department))},
                    exc_info=True,
                )
                raise

            logger.info(
                "requisition_submitted",
                extra={
                    "requisition_id": str(requisition.id),
                    "sequence_number": requisition.sequence_number,
                    "department": requisition.department.value,
                    "amount": str(requisition.amount),
                    "currency": requisition.currency.value,
                    "usd_equivalent": str(requisition.usd_equivalent),
                },
            )

        self._bus.publish(RequisitionEvent(
            event_type=RequisitionEventType.SUBMITTED,
            requisition=requisition,
            actor=actor,
            occurred_at=requisition.submitted_date,
            next_role=Role.HOD,
        ))
        return requisition

    def _create(
        self,
        *,
        actor: Actor,
        title: str,
        department: Department | str,
        amount: Decimal | int | str,
        currency: Currency | str,
        usd_equivalent: Decimal | int | str | None,
        requisition_type: RequisitionType | str,
        deviation_reason: str | None,
        budget_code: str,
        description: str,
    ) -> Requisition:
        if actor.role not in SUBMITTER_ROLES:
            raise UnauthorizedTransitionError(
                "new", actor.role.value, Role.PREPARER.value,
                reason="only preparers and HODs may submit requisitions",
            )

        dept = parse_department(department)
        req_type = _parse_type(requisition_type)

        clean_title = (title or "").strip()
        if not clean_title:
            raise ValidationError("title required", field="title")

        reason = (deviation_reason or "").strip() or None
        if req_type is RequisitionType.DEVIATION and reason is None:
            raise ValidationError(
                "deviation reason required for deviation requisitions",
                field="deviation_reason",
            )

        native = parse_amount(amount, "amount")
        resolved_currency = parse_currency(currency)
        usd = to_usd(native, resolved_currency, usd_equivalent)

        self._check_budget_gate(dept)

        seq = self._sequences.next_value(SequenceService.REQUISITION)
        requisition = Requisition(
            id=uuid4(),
            sequence_number=format_sequence_number(self._policy.sequence_prefix, seq),
            title=clean_title,
            department=dept,
            amount=native,
            currency=resolved_currency,
            usd_equivalent=usd,
            submitted_by_actor_id=actor.id,
            submitted_date=self._clock.now(),
            requisition_type=req_type,
            budget_code=budget_code or "",
            description=description or "",
            deviation_reason=reason,
        )
        self._store.add_requisition(requisition)
        return requisition

    def _check_budget_gate(self, department: Department) -> None:
        # Row lock first so a concurrent submitter waits for our decision.
        total = self._store.load_department_budget(department, for_update=True)
        used = used_amount(self._store.list_requisitions_by_department(department), department)
        remaining = remaining_budget(total, used)
        mark = self._policy.low_water_mark
        if not can_submit(remaining, mark):
            logger.warning(
                "budget_gate_blocked",
                extra={
                    "department": department.value,
                    "total_budget": str(total),
                    "used": str(used),
                    "remaining": str(remaining),
                    "low_water_mark": str(mark),
                },
            )
            raise BudgetExhaustedError(department.value, remaining, mark)

    # =========================================================================
    # Decisions
    # =========================================================================

    def apply_action(
        self,
        requisition_id: UUID,
        actor: Actor,
        action: RequisitionAction | str,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> Requisition:
        """
        Apply an approver decision to a requisition.

        Preconditions:
            - ``actor`` is the role the router currently authorizes.
            - ``expected_version``, when given, matches the stored version.

        Postconditions:
            - The new snapshot is committed (version + 1, one decision
              appended) and its event published.

        Raises:
            See the module docstring; validation order is the state
            machine's, with the version check last.
        """
        with LogContext.bind(actor_id=str(actor.id), requisition_id=str(requisition_id)):
            try:
                action = parse_action(action)
                before = self._store.load_requisition(requisition_id)
                outcome = apply_action(
                    before,
                    actor,
                    action,
                    comment,
                    now=self._clock.now(),
                    proof_of_payment_attached=self._documents.has_proof_of_payment(before.id),
                    thresholds=self._policy.thresholds,
                )
                if expected_version is not None and expected_version != before.version:
                    raise ConflictError(str(before.id), expected_version, before.status.value)
                self._store.save_transition(outcome.before, outcome.after)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning(
                    "requisition_action_failed",
                    extra={"action": action, "actor_role": actor.role.value},
                    exc_info=True,
                )
                raise

            logger.info(
                "requisition_transitioned",
                extra={
                    "action": action.value,
                    "actor_role": actor.role.value,
                    "from_status": outcome.before.status.value,
                    "to_status": outcome.after.status.value,
                    "version": outcome.after.version,
                    "next_role": outcome.next_role.value if outcome.next_role else None,
                },
            )

        self._bus.publish(event_from_outcome(outcome, actor))
        return outcome.after

    # =========================================================================
    # Proof of payment
    # =========================================================================

    def attach_proof_of_payment(self, actor: Actor, requisition_id: UUID, file_ref: str) -> None:
        """
        Record a proof-of-payment reference ahead of completion.

        Raises:
            UnauthorizedOperationError: actor is not an Accountant.
            ValidationError: empty ``file_ref``.
            InvalidStateError: requisition is not at the payment stage.
        """
        with LogContext.bind(actor_id=str(actor.id), requisition_id=str(requisition_id)):
            try:
                if actor.role is not Role.ACCOUNTANT:
                    raise UnauthorizedOperationError(
                        "attach_proof_of_payment", actor.role.value, Role.ACCOUNTANT.value,
                    )
                ref = (file_ref or "").strip()
                if not ref:
                    raise ValidationError("file reference required", field="file_ref")

                requisition = self._store.load_requisition(requisition_id)
                if approval_stage(requisition) is not ApprovalStage.PAYMENT:
                    raise InvalidStateError(
                        str(requisition.id),
                        requisition.status.value,
                        "attach_proof_of_payment",
                        reason="requisition is not awaiting payment",
                    )

                now = self._clock.now()
                self._documents.attach_proof_of_payment(requisition.id, ref, actor.id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("proof_of_payment_attach_failed", exc_info=True)
                raise

        self._bus.publish(RequisitionEvent(
            event_type=RequisitionEventType.PROOF_ATTACHED,
            requisition=requisition,
            actor=actor,
            occurred_at=now,
            details=(
                f"{actor.role.label} attached proof of payment to "
                f"{requisition.sequence_number}: {ref}"
            ),
        ))
