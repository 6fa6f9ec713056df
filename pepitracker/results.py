"""Mini README: Result payload returned by every state-changing operation.

``MutationResult`` carries the inserted or updated record, plus the
transaction an approval or book operation generated, so the caller can fan
the change out to an audit log or a notification channel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .finance.ledger import Transaction
from .storage import RecordKind


@dataclass(slots=True)
class MutationResult:
    """What changed, and the record as it now stands."""

    kind: RecordKind
    action: str
    record: Any
    linked_transaction: Optional[Transaction] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "action": self.action,
            "record": self.record.as_dict() if self.record is not None else None,
            "linked_transaction": self.linked_transaction.as_dict() if self.linked_transaction else None,
        }
