"""Mini README: Transaction records that make up a book's ledger.

Structure:
    * TransactionType - issuance, spending or return.
    * TransactionSubtype - explicit tag separating initial funding, top-ups
      and workflow generated movements from ordinary entries.
    * ApprovalStatus - pending, approved or rejected (shared by all records).
    * Transaction - dataclass storing one movement of cash.
    * classify_legacy_subtype / transaction_from_legacy - import helpers that
      translate the old description and receipt-prefix conventions into the
      explicit subtype field.

Amounts are always positive ``Decimal`` values; the direction of a movement
comes from its type. A transaction with ``agent_id=None`` is a pool-level
movement (initial funding, a top-up, or spending paid straight from the
safe).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..utils.fields import (
    Coercer,
    optional_text,
    parse_datetime,
    parse_optional_date,
    record_as_dict,
)
from ..utils.money import parse_amount


class TransactionType(str, Enum):
    """Enumerate the supported movement categories."""

    ISSUANCE = "issuance"
    SPENDING = "spending"
    RETURN = "return"

    @classmethod
    def from_str(cls, value: str) -> "TransactionType":
        """Coerce arbitrary casing into a valid transaction type."""

        try:
            normalised = value.strip().lower()
            return cls(normalised)
        except (ValueError, AttributeError) as error:
            raise ValueError(f"Unsupported transaction type: {value}") from error


class TransactionSubtype(str, Enum):
    """Explicit origin of a transaction."""

    STANDARD = "standard"
    INITIAL_FUNDING = "initial_funding"
    TOP_UP = "top_up"
    FUND_REQUEST = "fund_request"
    CI_PAYMENT = "ci_payment"


class ApprovalStatus(str, Enum):
    """Review status shared by transactions, fund requests and CI payments."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(slots=True)
class Transaction:
    """Represent a single movement of funds within a book."""

    transaction_id: str
    book_id: str
    transaction_type: TransactionType
    amount: Decimal
    status: ApprovalStatus
    receipt_number: str
    created_by: str
    created_at: datetime
    agent_id: Optional[str] = None
    subtype: TransactionSubtype = TransactionSubtype.STANDARD
    description: Optional[str] = None
    spending_category: Optional[str] = None
    case_number: Optional[str] = None
    paid_to: Optional[str] = None
    ecr_number: Optional[str] = None
    date_to_evidence: Optional[date] = None
    document_reference: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    updated_at: Optional[datetime] = None
    source_record_id: Optional[str] = None

    @property
    def is_pool_level(self) -> bool:
        return self.agent_id is None

    @property
    def is_approved(self) -> bool:
        return self.status is ApprovalStatus.APPROVED

    def as_dict(self) -> Dict[str, Any]:
        """Export the transaction with serialisable values."""

        return record_as_dict(self)


# Fields an owner may change while a transaction is pending or being resubmitted.
EDITABLE_FIELDS: Dict[str, Coercer] = {
    "amount": parse_amount,
    "description": optional_text,
    "spending_category": optional_text,
    "case_number": optional_text,
    "paid_to": optional_text,
    "ecr_number": optional_text,
    "date_to_evidence": parse_optional_date,
    "document_reference": optional_text,
}


def classify_legacy_subtype(
    transaction_type: TransactionType,
    agent_id: Optional[str],
    description: Optional[str] = None,
    receipt_number: Optional[str] = None,
) -> TransactionSubtype:
    """Map the historical string conventions onto an explicit subtype.

    Only used when importing rows written before the subtype field existed.
    Pool-level issuances whose description mentions "initial funding" or whose
    receipt starts with ``INIT`` become initial funding; an ``ADD`` receipt
    prefix marks a top-up. Every other pool-level issuance is also a top-up.
    """

    if transaction_type is not TransactionType.ISSUANCE or agent_id is not None:
        return TransactionSubtype.STANDARD
    receipt = (receipt_number or "").upper()
    text = (description or "").lower()
    if receipt.startswith("INIT") or "initial funding" in text:
        return TransactionSubtype.INITIAL_FUNDING
    return TransactionSubtype.TOP_UP


def transaction_from_legacy(row: Mapping[str, Any]) -> Transaction:
    """Build a Transaction from a legacy export row (``pepi_book_id`` etc.)."""

    transaction_type = TransactionType.from_str(str(row["transaction_type"]))
    agent_id = optional_text(row.get("agent_id"))
    description = optional_text(row.get("description"))
    receipt_number = optional_text(row.get("receipt_number")) or f"LEGACY-{row['id']}"
    created_at = parse_datetime(row["created_at"])
    updated_raw = row.get("updated_at")
    return Transaction(
        transaction_id=str(row["id"]),
        book_id=str(row.get("pepi_book_id") or row.get("book_id")),
        transaction_type=transaction_type,
        amount=parse_amount(row["amount"]),
        status=ApprovalStatus(str(row.get("status") or "approved").lower()),
        receipt_number=receipt_number,
        created_by=str(row.get("created_by") or "legacy-import"),
        created_at=created_at,
        agent_id=agent_id,
        subtype=classify_legacy_subtype(transaction_type, agent_id, description, receipt_number),
        description=description,
        spending_category=optional_text(row.get("spending_category")),
        case_number=optional_text(row.get("case_number")),
        paid_to=optional_text(row.get("paid_to")),
        ecr_number=optional_text(row.get("ecr_number")),
        date_to_evidence=parse_optional_date(row.get("date_to_evidence")),
        review_notes=optional_text(row.get("review_notes")),
        updated_at=parse_datetime(updated_raw) if updated_raw else None,
    )
