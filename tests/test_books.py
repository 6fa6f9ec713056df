"""Mini README: Tests for fiscal-year book management.

Covers auto-activation, the single-active-book rule, initial funding and
top-up transactions, closing, and the admin-only guard.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from pepitracker.errors import (
    ActiveBookExists,
    ClosedBook,
    DuplicatePeriod,
    InactiveBook,
    InvalidAmount,
    InvalidField,
    NotAdmin,
    UnknownBook,
)
from pepitracker.finance import TransactionSubtype


def test_first_book_activates_and_records_initial_funding(tracker, admin) -> None:
    result = tracker.books.create_book(2025, "1000", admin)

    assert result.action == "created"
    assert result.record.is_active
    funding = result.linked_transaction
    assert funding is not None
    assert funding.subtype is TransactionSubtype.INITIAL_FUNDING
    assert funding.agent_id is None
    assert funding.receipt_number.startswith("INIT-250115-")
    assert tracker.balances().initial_funding_id == funding.transaction_id
    balances = tracker.balances()
    assert balances.pool_balance == balances.safe_cash == Decimal("1000.00")


def test_second_book_waits_until_activated(tracker, admin, book) -> None:
    result = tracker.books.create_book(2026, "500", admin)

    assert not result.record.is_active
    assert result.linked_transaction is None
    assert tracker.books.active_book().book_id == book.book_id
    with pytest.raises(ActiveBookExists):
        tracker.books.activate_book(result.record.book_id, admin)


def test_duplicate_year_is_rejected(tracker, admin, book) -> None:
    with pytest.raises(DuplicatePeriod):
        tracker.books.create_book(2025, "10", admin)


@pytest.mark.parametrize("year", [1899, 10000, "twenty"])
def test_year_must_be_sensible(tracker, admin, year) -> None:
    with pytest.raises(InvalidField):
        tracker.books.create_book(year, "10", admin)


def test_negative_starting_amount_is_rejected(tracker, admin) -> None:
    with pytest.raises(InvalidAmount):
        tracker.books.create_book(2025, "-1", admin)


def test_zero_starting_amount_records_no_funding(tracker, admin) -> None:
    result = tracker.books.create_book(2025, "0", admin)

    assert result.record.is_active
    assert result.linked_transaction is None
    assert tracker.balances().pool_balance == Decimal("0.00")


def test_close_then_activate_next_book(tracker, admin, agent_a, book) -> None:
    tracker.submit_transaction(admin, "spending", "150", agent_id=agent_a.agent_id, book_id=book.book_id)
    next_book = tracker.books.create_book(2026, "800", admin).record

    closed = tracker.books.close_book(book.book_id, admin).record
    assert closed.is_closed and not closed.is_active
    assert closed.closing_balance == Decimal("850.00")
    assert closed.closed_at is not None

    activated = tracker.books.activate_book(next_book.book_id, admin)
    assert activated.action == "activated"
    assert activated.linked_transaction.subtype is TransactionSubtype.INITIAL_FUNDING
    assert tracker.balances().pool_balance == Decimal("800.00")

    with pytest.raises(ClosedBook):
        tracker.books.activate_book(book.book_id, admin)


def test_activating_active_book_is_unchanged(tracker, admin, book) -> None:
    result = tracker.books.activate_book(book.book_id, admin)

    assert result.action == "unchanged"
    assert len(tracker.ledger.transactions(book.book_id)) == 1


def test_add_funds_records_top_up(tracker, admin, book) -> None:
    result = tracker.books.add_funds(book.book_id, "250.50", None, admin)

    top_up = result.record
    assert top_up.subtype is TransactionSubtype.TOP_UP
    assert top_up.receipt_number.startswith("ADD-")
    assert top_up.description == "Funds added to 2025 book"
    balances = tracker.balances()
    assert balances.total_added == Decimal("250.50")
    assert balances.pool_balance == Decimal("1250.50")
    assert balances.starting_amount == Decimal("1000.00")


def test_add_funds_needs_an_open_active_book(tracker, admin, book) -> None:
    inactive = tracker.books.create_book(2026, "0", admin).record
    with pytest.raises(InactiveBook):
        tracker.books.add_funds(inactive.book_id, "10", None, admin)

    tracker.books.close_book(book.book_id, admin)
    with pytest.raises(ClosedBook):
        tracker.books.add_funds(book.book_id, "10", None, admin)


def test_book_management_is_admin_only(tracker, agent_a, book) -> None:
    with pytest.raises(NotAdmin):
        tracker.books.create_book(2026, "10", agent_a)
    with pytest.raises(NotAdmin):
        tracker.books.add_funds(book.book_id, "10", None, agent_a)
    with pytest.raises(NotAdmin):
        tracker.books.close_book(book.book_id, agent_a)


def test_unknown_book_lookup(tracker) -> None:
    with pytest.raises(UnknownBook):
        tracker.books.get_book("nope")


def test_no_active_book(tracker, admin) -> None:
    with pytest.raises(InactiveBook):
        tracker.balances()
