"""Mini README: Confidential-informant (CI) payment records.

Structure:
    * CiPayment - a spending-style record carrying multi-party signatures.
    * validate_signatures - enforce the signature capture rules.
    * EDITABLE_FIELDS - fields the paying agent may change before approval.

A CI payment needs the paying agent's and the informant's signatures, and a
witness signature only together with the witness' printed name. A commander
approves it by adding their own signature; rejection wipes that signature so
a resubmitted payment is signed afresh. Signatures are opaque references
into the external blob store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from ..errors import MissingSignature
from ..utils.fields import Coercer, optional_text, parse_date, record_as_dict, required_text
from ..utils.money import parse_amount
from .ledger import ApprovalStatus


@dataclass(slots=True)
class CiPayment:
    """Payment to a confidential informant awaiting commander approval."""

    payment_id: str
    book_id: str
    paying_agent_id: str
    amount: Decimal
    payment_date: date
    receipt_number: str
    paying_agent_printed_name: str
    paying_agent_signature: str
    ci_signature: str
    created_by: str
    created_at: datetime
    status: ApprovalStatus = ApprovalStatus.PENDING
    paid_to: Optional[str] = None
    case_number: Optional[str] = None
    pepi_receipt_number: Optional[str] = None
    witness_printed_name: Optional[str] = None
    witness_signature: Optional[str] = None
    commander_signature: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    transaction_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return record_as_dict(self)


def validate_signatures(payment: CiPayment) -> None:
    """Raise ``MissingSignature`` when the capture rules are not met."""

    if not payment.paying_agent_signature:
        raise MissingSignature("The paying agent's signature is required.")
    if not payment.ci_signature:
        raise MissingSignature("The informant's signature is required.")
    if payment.witness_signature and not payment.witness_printed_name:
        raise MissingSignature("A witness signature needs the witness' printed name.")


EDITABLE_FIELDS: Dict[str, Coercer] = {
    "amount": parse_amount,
    "payment_date": parse_date,
    "paid_to": optional_text,
    "case_number": optional_text,
    "pepi_receipt_number": optional_text,
    "paying_agent_printed_name": required_text,
    "paying_agent_signature": required_text,
    "ci_signature": required_text,
    "witness_printed_name": optional_text,
    "witness_signature": optional_text,
}
