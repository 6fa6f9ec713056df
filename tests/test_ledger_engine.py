"""Mini README: Tests for balance derivation in the ledger engine.

Structure:
    * test_fiscal_year_walkthrough - issue, spend and return against a fresh book.
    * test_balances_ignore_insertion_order - the fold is order independent.
    * test_spending_only_book_goes_negative - no funding, only spending.
    * initial funding tests - explicit tag first, earliest pool issuance second.
    * as-of tests - date windows over created_at.
    * legacy import tests - subtype classification of historical rows.
"""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from pepitracker.errors import InvalidField, UnknownBook
from pepitracker.finance import (
    ApprovalStatus,
    Transaction,
    TransactionSubtype,
    TransactionType,
    classify_legacy_subtype,
    compute_balances,
    transaction_from_legacy,
)
from pepitracker.finance.engine import find_initial_funding

BASE = datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc)


def _tx(
    transaction_id: str,
    transaction_type: TransactionType,
    amount: str,
    *,
    agent_id: Optional[str] = None,
    status: ApprovalStatus = ApprovalStatus.APPROVED,
    subtype: TransactionSubtype = TransactionSubtype.STANDARD,
    minutes: int = 0,
    book_id: str = "book-2025",
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        book_id=book_id,
        transaction_type=transaction_type,
        amount=Decimal(amount),
        status=status,
        receipt_number=f"TEST-{transaction_id}",
        created_by="admin",
        created_at=BASE + timedelta(minutes=minutes),
        agent_id=agent_id,
        subtype=subtype,
    )


def test_fiscal_year_walkthrough(tracker, admin, agent_a, book) -> None:
    """Issuing moves cash to the agent, spending drains the pool, returns refill the safe."""

    balances = tracker.balances(book.book_id)
    assert balances.pool_balance == Decimal("1000.00")
    assert balances.starting_amount == Decimal("1000.00")

    tracker.submit_transaction(admin, "issuance", "300", agent_id=agent_a.agent_id, book_id=book.book_id)
    balances = tracker.balances(book.book_id)
    assert balances.cash_on_hand(agent_a.agent_id) == Decimal("300.00")
    assert balances.pool_balance == Decimal("1000.00")
    assert balances.safe_cash == Decimal("700.00")

    tracker.submit_transaction(admin, "spending", "120", agent_id=agent_a.agent_id, book_id=book.book_id)
    balances = tracker.balances(book.book_id)
    assert balances.pool_balance == Decimal("880.00")
    assert balances.cash_on_hand(agent_a.agent_id) == Decimal("180.00")
    assert balances.safe_cash == Decimal("700.00")

    tracker.submit_transaction(admin, "return", "50", agent_id=agent_a.agent_id, book_id=book.book_id)
    balances = tracker.balances(book.book_id)
    assert balances.cash_on_hand(agent_a.agent_id) == Decimal("130.00")
    assert balances.pool_balance == Decimal("880.00")
    assert balances.safe_cash == Decimal("750.00")
    assert balances.total_returned == Decimal("50.00")
    assert balances.safe_cash == balances.pool_balance - balances.agents_cash_on_hand


def test_balances_ignore_insertion_order() -> None:
    transactions = [
        _tx("t1", TransactionType.ISSUANCE, "1000", subtype=TransactionSubtype.INITIAL_FUNDING),
        _tx("t2", TransactionType.ISSUANCE, "300", agent_id="a", minutes=1),
        _tx("t3", TransactionType.SPENDING, "120", agent_id="a", minutes=2),
        _tx("t4", TransactionType.RETURN, "50", agent_id="a", minutes=3),
        _tx("t5", TransactionType.ISSUANCE, "200", subtype=TransactionSubtype.TOP_UP, minutes=4),
        _tx("t6", TransactionType.SPENDING, "75", minutes=5),
        _tx("t7", TransactionType.ISSUANCE, "400", agent_id="b", status=ApprovalStatus.PENDING, minutes=6),
    ]
    expected = compute_balances("book-2025", transactions).as_dict()

    shuffled = list(transactions)
    for seed in range(5):
        random.Random(seed).shuffle(shuffled)
        assert compute_balances("book-2025", shuffled).as_dict() == expected

    assert expected["pool_balance"] == "1005.00"
    assert expected["total_added"] == "200.00"
    assert expected["pending_count"] == 1


def test_spending_only_book_goes_negative() -> None:
    balances = compute_balances("book-2025", [_tx("s1", TransactionType.SPENDING, "40")])

    assert balances.starting_amount == Decimal("0.00")
    assert balances.pool_balance == Decimal("-40.00")
    assert balances.safe_cash == Decimal("-40.00")
    assert balances.initial_funding_id is None


def test_empty_book_is_all_zero() -> None:
    balances = compute_balances("book-2025", [])

    assert balances.pool_balance == Decimal("0.00")
    assert balances.agents == {}
    assert balances.approved_count == 0


def test_other_books_and_unapproved_rows_are_ignored() -> None:
    transactions = [
        _tx("t1", TransactionType.ISSUANCE, "500", subtype=TransactionSubtype.INITIAL_FUNDING),
        _tx("t2", TransactionType.SPENDING, "100", agent_id="a", status=ApprovalStatus.REJECTED),
        _tx("t3", TransactionType.ISSUANCE, "900", book_id="book-2024"),
    ]
    balances = compute_balances("book-2025", transactions)

    assert balances.pool_balance == Decimal("500.00")
    assert balances.cash_on_hand("a") == Decimal("0.00")


def test_agent_spending_without_issuance_is_negative_cash() -> None:
    transactions = [
        _tx("t1", TransactionType.ISSUANCE, "500", subtype=TransactionSubtype.INITIAL_FUNDING),
        _tx("t2", TransactionType.SPENDING, "60", agent_id="a", minutes=1),
    ]
    balances = compute_balances("book-2025", transactions)

    assert balances.cash_on_hand("a") == Decimal("-60.00")
    assert balances.safe_cash == Decimal("500.00")


def test_tagged_initial_funding_wins_over_earlier_issuance() -> None:
    transactions = [
        _tx("t1", TransactionType.ISSUANCE, "250", subtype=TransactionSubtype.TOP_UP),
        _tx("t2", TransactionType.ISSUANCE, "1000", subtype=TransactionSubtype.INITIAL_FUNDING, minutes=5),
    ]
    balances = compute_balances("book-2025", transactions)

    assert balances.initial_funding_id == "t2"
    assert balances.starting_amount == Decimal("1000.00")
    assert balances.total_added == Decimal("250.00")


def test_untagged_initial_funding_falls_back_to_earliest_standard() -> None:
    transactions = [
        _tx("b", TransactionType.ISSUANCE, "700", minutes=1),
        _tx("z", TransactionType.ISSUANCE, "900"),
        _tx("a", TransactionType.ISSUANCE, "100"),
        _tx("early", TransactionType.ISSUANCE, "50", subtype=TransactionSubtype.TOP_UP, minutes=-5),
    ]

    seed = find_initial_funding(transactions)

    assert seed is not None and seed.transaction_id == "a"
    balances = compute_balances("book-2025", transactions)
    assert balances.starting_amount == Decimal("100.00")
    assert balances.total_added == Decimal("1650.00")


def test_top_ups_alone_are_never_initial_funding() -> None:
    transactions = [
        _tx("t1", TransactionType.ISSUANCE, "500", subtype=TransactionSubtype.TOP_UP),
        _tx("t2", TransactionType.ISSUANCE, "200", subtype=TransactionSubtype.TOP_UP, minutes=1),
    ]

    assert find_initial_funding(transactions) is None
    balances = compute_balances("book-2025", transactions)
    assert balances.initial_funding_id is None
    assert balances.starting_amount == Decimal("0.00")
    assert balances.total_added == Decimal("700.00")
    assert balances.pool_balance == Decimal("700.00")


def test_zero_start_book_reports_top_up_as_added(tracker, admin) -> None:
    book = tracker.books.create_book(2025, "0", admin).record
    tracker.books.add_funds(book.book_id, "500", None, admin)

    balances = tracker.balances(book.book_id)

    assert balances.starting_amount == Decimal("0.00")
    assert balances.total_added == Decimal("500.00")
    assert balances.pool_balance == Decimal("500.00")
    assert balances.initial_funding_id is None


def test_window_without_seed_reports_top_up_as_added(tracker, admin, book, clock) -> None:
    clock.jump(datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc))
    tracker.books.add_funds(book.book_id, "200", None, admin)

    march = tracker.balances_as_of(book.book_id, start=date(2025, 3, 1), end=date(2025, 3, 31))

    assert march.starting_amount == Decimal("0.00")
    assert march.total_added == Decimal("200.00")
    assert march.pool_balance == Decimal("200.00")
    activity = tracker.monthly_summary(admin, 2025, 3).activity
    assert activity.starting_amount == Decimal("0.00")
    assert activity.total_added == Decimal("200.00")


def test_balances_as_of_windows(tracker, admin, agent_a, book, clock) -> None:
    clock.jump(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))
    tracker.submit_transaction(admin, "issuance", "300", agent_id=agent_a.agent_id, book_id=book.book_id)
    clock.jump(datetime(2025, 4, 2, 9, 0, tzinfo=timezone.utc))
    tracker.submit_transaction(admin, "spending", "100", agent_id=agent_a.agent_id, book_id=book.book_id)

    end_of_march = tracker.balances_as_of(book.book_id, end=date(2025, 3, 31))
    assert end_of_march.pool_balance == Decimal("1000.00")
    assert end_of_march.cash_on_hand(agent_a.agent_id) == Decimal("300.00")

    april = tracker.balances_as_of(book.book_id, start=date(2025, 4, 1), end=date(2025, 4, 30))
    assert april.total_spent == Decimal("100.00")
    assert april.starting_amount == Decimal("0.00")
    assert april.pool_balance == Decimal("-100.00")

    with pytest.raises(InvalidField):
        tracker.balances_as_of(book.book_id, start=date(2025, 5, 1), end=date(2025, 4, 1))


def test_unknown_book_is_reported(tracker) -> None:
    with pytest.raises(UnknownBook):
        tracker.ledger.balances("missing")


@pytest.mark.parametrize(
    ("description", "receipt", "expected"),
    [
        ("Initial funding for 2024", "ISS-240101-AAAA", TransactionSubtype.INITIAL_FUNDING),
        (None, "INIT-240101-AAAA", TransactionSubtype.INITIAL_FUNDING),
        ("Quarterly allocation", "ADD-240401-AAAA", TransactionSubtype.TOP_UP),
        ("Quarterly allocation", None, TransactionSubtype.TOP_UP),
    ],
)
def test_classify_legacy_pool_issuances(description, receipt, expected) -> None:
    assert classify_legacy_subtype(TransactionType.ISSUANCE, None, description, receipt) is expected


def test_classify_legacy_agent_rows_are_standard() -> None:
    subtype = classify_legacy_subtype(TransactionType.ISSUANCE, "agent-1", "Initial funding", "INIT-1")
    assert subtype is TransactionSubtype.STANDARD


def test_transaction_from_legacy_row() -> None:
    row = {
        "id": 17,
        "pepi_book_id": "book-2024",
        "transaction_type": "Issuance",
        "amount": "2500",
        "description": "Initial funding for PEPI book 2024",
        "created_at": "2024-01-02T08:30:00Z",
    }

    transaction = transaction_from_legacy(row)

    assert transaction.transaction_id == "17"
    assert transaction.book_id == "book-2024"
    assert transaction.status is ApprovalStatus.APPROVED
    assert transaction.subtype is TransactionSubtype.INITIAL_FUNDING
    assert transaction.receipt_number == "LEGACY-17"
    assert transaction.created_at.tzinfo is not None
