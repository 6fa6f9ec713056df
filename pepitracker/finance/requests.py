"""Mini README: Fund requests raised by agents.

Structure:
    * FundRequest - an agent's petition for an issuance from the active book.
    * EDITABLE_FIELDS - fields the requesting agent may change on resubmission.

A request starts pending. Approval links it to exactly one issuance
transaction through ``transaction_id``; rejection records a reason; the
agent may edit and resubmit a rejected request, which clears the review
fields again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from ..utils.fields import Coercer, optional_text, record_as_dict, required_text
from ..utils.money import parse_amount
from .ledger import ApprovalStatus


@dataclass(slots=True)
class FundRequest:
    """Agent request for cash from the pool."""

    request_id: str
    agent_id: str
    book_id: str
    amount: Decimal
    agent_signature: str
    requested_at: datetime
    status: ApprovalStatus = ApprovalStatus.PENDING
    case_number: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    transaction_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return record_as_dict(self)


EDITABLE_FIELDS: Dict[str, Coercer] = {
    "amount": parse_amount,
    "case_number": optional_text,
    "agent_signature": required_text,
}
