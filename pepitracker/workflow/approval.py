"""Mini README: Approval state machine shared by every reviewable record.

Structure:
    * ApprovalFlow - adapter describing one record kind: its table, editable
      fields, rejection field and what approval generates.
    * FundRequestFlow - approval issues the requested cash to the agent.
    * CiPaymentFlow - approval needs the commander's signature and records the
      payment as spending by the paying agent.
    * TransactionReviewFlow - plain review of agent-submitted transactions.
    * ApprovalWorkflow - submit, approve, reject, edit, resubmit, delete and
      read operations for one flow.

States::

    pending --approve--> approved   (terminal)
    pending --reject---> rejected --resubmit--> pending

Every transition is a conditional write on ``status`` through
``RecordStore.compare_and_update``; if another reviewer got there first the
write does not happen and ``AlreadyProcessed`` is raised. Approvals that
generate a transaction run inside ``RecordStore.atomic()``: the status
change, the new transaction and the link back to it commit together, and a
failure while building the transaction rolls all three back before
``LinkageFailed`` is raised.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..agents import Agent
from ..errors import (
    AlreadyProcessed,
    InvalidField,
    LinkageFailed,
    MissingSignature,
    NotPending,
    NotRejected,
)
from ..finance import ci_payments, requests
from ..finance import ledger as transactions
from ..finance.ci_payments import CiPayment
from ..finance.ledger import ApprovalStatus, Transaction, TransactionSubtype, TransactionType
from ..finance.requests import FundRequest
from ..logging_utils import get_logger
from ..receipts import ReceiptAllocator, ReceiptKind
from ..results import MutationResult
from ..storage import KEY_FIELDS, RecordKind, RecordStore
from ..utils.clock import Clock, utc_now
from ..utils.fields import Coercer, coerce_updates, optional_text
from .policy import AuthorizationPolicy, Operation, subject_of

if TYPE_CHECKING:
    from ..books import BookRegistry

LOGGER = get_logger(__name__)


class ApprovalFlow:
    """Describe how one record kind moves through the approval states."""

    kind: RecordKind
    editable_fields: Dict[str, Coercer] = {}
    reason_field = "rejection_reason"
    timestamp_field = "created_at"

    def validate(self, record: Any) -> None:
        """Check a record before it is stored or resubmitted."""

    def approval_changes(self, record: Any, signature: Optional[str]) -> Dict[str, Any]:
        """Extra fields written when the record is approved."""

        return {}

    def build_transaction(
        self, record: Any, actor: Agent, now: datetime, allocator: ReceiptAllocator, new_id: str
    ) -> Optional[Transaction]:
        """Transaction generated by approving ``record`` (``None`` for none)."""

        return None

    def rejection_changes(self, record: Any) -> Dict[str, Any]:
        return {}

    def resubmission_changes(self, record: Any, now: datetime) -> Dict[str, Any]:
        return {}


class FundRequestFlow(ApprovalFlow):
    kind = RecordKind.FUND_REQUEST
    editable_fields = requests.EDITABLE_FIELDS
    timestamp_field = "requested_at"

    def validate(self, record: FundRequest) -> None:
        if not record.agent_signature:
            raise MissingSignature("A fund request must carry the requesting agent's signature.")

    def build_transaction(
        self, record: FundRequest, actor: Agent, now: datetime, allocator: ReceiptAllocator, new_id: str
    ) -> Transaction:
        return Transaction(
            transaction_id=new_id,
            book_id=record.book_id,
            transaction_type=TransactionType.ISSUANCE,
            amount=record.amount,
            status=ApprovalStatus.APPROVED,
            receipt_number=allocator.allocate(ReceiptKind.ISSUANCE, now.date()),
            created_by=actor.agent_id,
            created_at=now,
            agent_id=record.agent_id,
            subtype=TransactionSubtype.FUND_REQUEST,
            description="Fund request approved",
            case_number=record.case_number,
            document_reference=record.agent_signature,
            reviewed_by=actor.agent_id,
            reviewed_at=now,
            source_record_id=record.request_id,
        )

    def resubmission_changes(self, record: FundRequest, now: datetime) -> Dict[str, Any]:
        return {"transaction_id": None, "requested_at": now}


class CiPaymentFlow(ApprovalFlow):
    kind = RecordKind.CI_PAYMENT
    editable_fields = ci_payments.EDITABLE_FIELDS

    def validate(self, record: CiPayment) -> None:
        ci_payments.validate_signatures(record)

    def approval_changes(self, record: CiPayment, signature: Optional[str]) -> Dict[str, Any]:
        signature = optional_text(signature)
        if signature is None:
            raise MissingSignature("Approving a CI payment requires the commander's signature.")
        return {"commander_signature": signature}

    def build_transaction(
        self, record: CiPayment, actor: Agent, now: datetime, allocator: ReceiptAllocator, new_id: str
    ) -> Transaction:
        return Transaction(
            transaction_id=new_id,
            book_id=record.book_id,
            transaction_type=TransactionType.SPENDING,
            amount=record.amount,
            status=ApprovalStatus.APPROVED,
            receipt_number=allocator.allocate(ReceiptKind.SPENDING, now.date()),
            created_by=actor.agent_id,
            created_at=now,
            agent_id=record.paying_agent_id,
            subtype=TransactionSubtype.CI_PAYMENT,
            description=f"CI payment {record.receipt_number}",
            spending_category="CI Payment",
            case_number=record.case_number,
            paid_to=record.paid_to,
            reviewed_by=actor.agent_id,
            reviewed_at=now,
            source_record_id=record.payment_id,
        )

    def rejection_changes(self, record: CiPayment) -> Dict[str, Any]:
        return {"commander_signature": None}

    def resubmission_changes(self, record: CiPayment, now: datetime) -> Dict[str, Any]:
        return {"commander_signature": None, "transaction_id": None}


class TransactionReviewFlow(ApprovalFlow):
    kind = RecordKind.TRANSACTION
    editable_fields = transactions.EDITABLE_FIELDS
    reason_field = "review_notes"

    def validate(self, record: Transaction) -> None:
        if record.transaction_type is TransactionType.RETURN and record.agent_id is None:
            raise InvalidField("A return must name the agent handing the cash back.")


class ApprovalWorkflow:
    """Drive records of one kind through submission and review."""

    def __init__(
        self,
        store: RecordStore,
        books: "BookRegistry",
        allocator: ReceiptAllocator,
        flow: ApprovalFlow,
        *,
        policy: Optional[AuthorizationPolicy] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._books = books
        self._allocator = allocator
        self._flow = flow
        self._policy = policy or AuthorizationPolicy()
        self._clock = clock

    @property
    def kind(self) -> RecordKind:
        return self._flow.kind

    def _label(self, record_id: str) -> str:
        return f"{self.kind.value} {record_id}"

    # ------------------------------------------------------------------ reads
    def get(self, record_id: str, actor: Optional[Agent]) -> Any:
        record = self._store.require(self.kind, record_id)
        self._policy.require(actor, Operation.READ, record)
        return record

    def list(
        self,
        actor: Optional[Agent],
        *,
        book_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
        agent_id: Optional[str] = None,
    ) -> List[Any]:
        """Records visible to ``actor``, newest first."""

        actor = self._policy.authenticate(actor)
        filters: Dict[str, Any] = {}
        if book_id is not None:
            filters["book_id"] = book_id
        if status is not None:
            filters["status"] = status
        records = self._store.query(self.kind, **filters)
        if agent_id is not None:
            records = [record for record in records if subject_of(record) == agent_id]
        records = [record for record in records if self._policy.can(actor, Operation.READ, record)]
        return sorted(
            records,
            key=lambda record: (getattr(record, self._flow.timestamp_field), getattr(record, KEY_FIELDS[self.kind])),
            reverse=True,
        )

    # ------------------------------------------------------------------ mutations
    def submit(self, record: Any, actor: Optional[Agent]) -> MutationResult:
        """Store a newly created record after policy and book checks."""

        self._policy.require(actor, Operation.CREATE, record)
        self._books.require_open(record.book_id)
        self._flow.validate(record)
        stored = self._store.insert(self.kind, record)
        record_id = getattr(stored, KEY_FIELDS[self.kind])
        LOGGER.info(
            "%s submitted by %s for %s (status %s)",
            self._label(record_id),
            actor.agent_id,
            stored.amount,
            stored.status.value,
        )
        return MutationResult(self.kind, "created", stored)

    def approve(self, record_id: str, actor: Optional[Agent], signature: Optional[str] = None) -> MutationResult:
        """Approve a pending record, creating and linking its transaction."""

        self._policy.require(actor, Operation.APPROVE)
        record = self._store.require(self.kind, record_id)
        if record.status is not ApprovalStatus.PENDING:
            LOGGER.warning("%s already %s; approval refused", self._label(record_id), record.status.value)
            raise AlreadyProcessed(f"This {self.kind.value} has already been {record.status.value}.")
        self._books.require_open(record.book_id)
        extra = self._flow.approval_changes(record, signature)

        now = self._clock()
        with self._store.atomic():
            updated = self._store.compare_and_update(
                self.kind,
                record_id,
                expected=ApprovalStatus.PENDING,
                changes={"status": ApprovalStatus.APPROVED, "reviewed_by": actor.agent_id, "reviewed_at": now, **extra},
            )
            if updated is None:
                LOGGER.warning("%s was processed concurrently; approval by %s refused", self._label(record_id), actor.agent_id)
                raise AlreadyProcessed(f"This {self.kind.value} has already been processed.")
            linked = None
            try:
                candidate = self._flow.build_transaction(updated, actor, now, self._allocator, self._store.new_id())
                if candidate is not None:
                    linked = self._store.insert(RecordKind.TRANSACTION, candidate)
                    updated = self._store.update(self.kind, record_id, transaction_id=linked.transaction_id)
            except Exception as error:
                LOGGER.error("Linking a transaction to %s failed: %s", self._label(record_id), error)
                raise LinkageFailed(
                    f"Approval of {self.kind.value} {record_id} was rolled back: {error}"
                ) from error

        LOGGER.info(
            "%s approved by %s%s",
            self._label(record_id),
            actor.agent_id,
            f" -> transaction {linked.transaction_id} ({linked.receipt_number})" if linked else "",
        )
        return MutationResult(self.kind, "approved", updated, linked)

    def reject(self, record_id: str, actor: Optional[Agent], reason: Optional[str] = None) -> MutationResult:
        """Reject a pending record, storing the reviewer's reason."""

        self._policy.require(actor, Operation.REJECT)
        record = self._store.require(self.kind, record_id)
        changes = {
            "status": ApprovalStatus.REJECTED,
            "reviewed_by": actor.agent_id,
            "reviewed_at": self._clock(),
            self._flow.reason_field: optional_text(reason),
            **self._flow.rejection_changes(record),
        }
        updated = self._store.compare_and_update(self.kind, record_id, expected=ApprovalStatus.PENDING, changes=changes)
        if updated is None:
            current = self._store.require(self.kind, record_id)
            LOGGER.warning("%s already %s; rejection refused", self._label(record_id), current.status.value)
            raise AlreadyProcessed(f"This {self.kind.value} has already been {current.status.value}.")
        LOGGER.info("%s rejected by %s (reason: %s)", self._label(record_id), actor.agent_id, optional_text(reason))
        return MutationResult(self.kind, "rejected", updated)

    def _prepare_updates(self, record: Any, updates: Mapping[str, Any]) -> Dict[str, Any]:
        coerced = coerce_updates(updates, self._flow.editable_fields)
        self._flow.validate(replace(record, **coerced))
        return coerced

    def resubmit(self, record_id: str, updates: Mapping[str, Any], actor: Optional[Agent]) -> MutationResult:
        """Apply the owner's corrections to a rejected record and reset it to pending."""

        record = self._store.require(self.kind, record_id)
        self._policy.require(actor, Operation.RESUBMIT, record)
        if record.status is not ApprovalStatus.REJECTED:
            raise NotRejected(f"Only rejected records can be resubmitted; this one is {record.status.value}.")
        coerced = self._prepare_updates(record, updates)
        now = self._clock()
        changes = {
            **coerced,
            "status": ApprovalStatus.PENDING,
            "reviewed_by": None,
            "reviewed_at": None,
            self._flow.reason_field: None,
            "updated_at": now,
            **self._flow.resubmission_changes(record, now),
        }
        updated = self._store.compare_and_update(self.kind, record_id, expected=ApprovalStatus.REJECTED, changes=changes)
        if updated is None:
            raise NotRejected(f"{self._label(record_id)} changed status before it could be resubmitted.")
        LOGGER.info("%s resubmitted by %s", self._label(record_id), actor.agent_id)
        return MutationResult(self.kind, "resubmitted", updated)

    def edit(self, record_id: str, updates: Mapping[str, Any], actor: Optional[Agent]) -> MutationResult:
        """Correct a record that is still pending review (its owner or an admin)."""

        record = self._store.require(self.kind, record_id)
        self._policy.require(actor, Operation.EDIT, record)
        if record.status is not ApprovalStatus.PENDING:
            raise NotPending("Only pending records can be edited; use resubmit for rejected ones.")
        coerced = self._prepare_updates(record, updates)
        updated = self._store.compare_and_update(
            self.kind,
            record_id,
            expected=ApprovalStatus.PENDING,
            changes={**coerced, "updated_at": self._clock()},
        )
        if updated is None:
            raise NotPending(f"{self._label(record_id)} was reviewed before the edit was saved.")
        LOGGER.info("%s edited by %s: %s", self._label(record_id), actor.agent_id, sorted(coerced))
        return MutationResult(self.kind, "edited", updated)

    def delete(self, record_id: str, actor: Optional[Agent]) -> MutationResult:
        """Delete a record that has not been approved."""

        with self._store.atomic():
            record = self._store.require(self.kind, record_id)
            self._policy.require(actor, Operation.DELETE, record)
            self._store.delete(self.kind, record_id)
        LOGGER.info("%s deleted by %s", self._label(record_id), actor.agent_id)
        return MutationResult(self.kind, "deleted", record)
