"""Mini README: Tests for receipt number allocation."""

from __future__ import annotations

import re
from datetime import date

import pytest

from pepitracker.errors import ReceiptExhausted
from pepitracker.finance import TransactionSubtype, TransactionType
from pepitracker.receipts import ReceiptAllocator, ReceiptKind
from pepitracker.receipts.allocator import ALPHABET


def test_receipt_format() -> None:
    allocator = ReceiptAllocator(lambda receipt: False, code_length=6)

    receipt = allocator.allocate(ReceiptKind.CI_PAYMENT, date(2025, 3, 7))

    assert re.fullmatch(rf"CI-250307-[{ALPHABET}]{{6}}", receipt)


def test_collisions_are_redrawn() -> None:
    taken = []

    def is_taken(receipt: str) -> bool:
        taken.append(receipt)
        return len(taken) < 3

    receipt = ReceiptAllocator(is_taken, today=lambda: date(2025, 1, 1)).allocate(ReceiptKind.SPENDING)

    assert receipt == taken[-1]
    assert len(taken) == 3


def test_allocation_gives_up_after_limit() -> None:
    allocator = ReceiptAllocator(lambda receipt: True, max_attempts=3)

    with pytest.raises(ReceiptExhausted):
        allocator.allocate(ReceiptKind.ISSUANCE)


@pytest.mark.parametrize(
    ("transaction_type", "subtype", "expected"),
    [
        (TransactionType.ISSUANCE, TransactionSubtype.STANDARD, ReceiptKind.ISSUANCE),
        (TransactionType.ISSUANCE, TransactionSubtype.INITIAL_FUNDING, ReceiptKind.INITIAL_FUNDING),
        (TransactionType.ISSUANCE, TransactionSubtype.TOP_UP, ReceiptKind.TOP_UP),
        (TransactionType.SPENDING, TransactionSubtype.STANDARD, ReceiptKind.SPENDING),
        (TransactionType.RETURN, TransactionSubtype.STANDARD, ReceiptKind.RETURN),
    ],
)
def test_prefix_for_transaction(transaction_type, subtype, expected) -> None:
    assert ReceiptKind.for_transaction(transaction_type, subtype) is expected
