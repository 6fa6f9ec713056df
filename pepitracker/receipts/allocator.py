"""Mini README: Human-readable, collision-resistant receipt numbers.

Structure:
    * ReceiptKind - prefix table for each kind of movement.
    * ReceiptAllocator - draws ``PREFIX-YYMMDD-XXXXXX`` identifiers.

The random part uses ``secrets`` over an alphabet without look-alike
characters (no 0/O or 1/I/L) so receipts survive being read aloud or copied
by hand. The allocator checks the store's receipt index and redraws on a
collision; the store re-checks on insert, so the index is the final
authority on uniqueness.
"""

from __future__ import annotations

import secrets
from datetime import date
from enum import Enum
from typing import Callable, Optional

from ..errors import ReceiptExhausted
from ..finance.ledger import TransactionSubtype, TransactionType
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"


class ReceiptKind(str, Enum):
    """Receipt prefixes, one per kind of movement."""

    ISSUANCE = "ISS"
    SPENDING = "SPD"
    RETURN = "RET"
    INITIAL_FUNDING = "INIT"
    TOP_UP = "ADD"
    CI_PAYMENT = "CI"

    @classmethod
    def for_transaction(
        cls, transaction_type: TransactionType, subtype: TransactionSubtype = TransactionSubtype.STANDARD
    ) -> "ReceiptKind":
        """Pick the prefix for a transaction of the given type and subtype."""

        if subtype is TransactionSubtype.INITIAL_FUNDING:
            return cls.INITIAL_FUNDING
        if subtype is TransactionSubtype.TOP_UP:
            return cls.TOP_UP
        return {
            TransactionType.ISSUANCE: cls.ISSUANCE,
            TransactionType.SPENDING: cls.SPENDING,
            TransactionType.RETURN: cls.RETURN,
        }[transaction_type]


class ReceiptAllocator:
    """Generate receipt numbers that are unique within the store."""

    def __init__(
        self,
        is_taken: Callable[[str], bool],
        *,
        code_length: int = 6,
        max_attempts: int = 8,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._is_taken = is_taken
        self._code_length = code_length
        self._max_attempts = max_attempts
        self._today = today

    def _draw(self, kind: ReceiptKind, on: date) -> str:
        code = "".join(secrets.choice(ALPHABET) for _ in range(self._code_length))
        return f"{kind.value}-{on:%y%m%d}-{code}"

    def allocate(self, kind: ReceiptKind, on: Optional[date] = None) -> str:
        """Return a fresh receipt number for ``kind`` dated ``on`` (default today)."""

        on = on or self._today()
        for attempt in range(1, self._max_attempts + 1):
            candidate = self._draw(kind, on)
            if not self._is_taken(candidate):
                LOGGER.debug("Allocated receipt %s on attempt %s", candidate, attempt)
                return candidate
            LOGGER.warning("Receipt collision on %s (attempt %s)", candidate, attempt)
        raise ReceiptExhausted(
            f"Could not allocate a unique {kind.value} receipt after {self._max_attempts} attempts."
        )
