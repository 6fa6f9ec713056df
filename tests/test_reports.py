"""Mini README: Tests for monthly summaries and agent statements."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from pepitracker.errors import InvalidField, NotOwner
from pepitracker.reports import month_bounds


def _march_and_april(tracker, admin, agent_a, book, clock) -> None:
    clock.jump(datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc))
    tracker.submit_transaction(admin, "issuance", "400", agent_id=agent_a.agent_id, book_id=book.book_id)
    clock.jump(datetime(2025, 3, 20, 10, 0, tzinfo=timezone.utc))
    tracker.submit_transaction(admin, "spending", "90", agent_id=agent_a.agent_id, book_id=book.book_id)
    clock.jump(datetime(2025, 4, 3, 10, 0, tzinfo=timezone.utc))
    tracker.submit_transaction(admin, "return", "60", agent_id=agent_a.agent_id, book_id=book.book_id)


def test_month_bounds() -> None:
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(InvalidField):
        month_bounds(2024, 13)


def test_monthly_summary(tracker, admin, agent_a, book, clock) -> None:
    _march_and_april(tracker, admin, agent_a, book, clock)

    march = tracker.monthly_summary(admin, 2025, 3)

    assert march.opening.pool_balance == Decimal("1000.00")
    assert march.opening.safe_cash == Decimal("1000.00")
    assert march.closing.pool_balance == Decimal("910.00")
    assert march.closing.cash_on_hand(agent_a.agent_id) == Decimal("310.00")
    assert march.activity.total_issued_to_agents == Decimal("400.00")
    assert march.activity.total_spent == Decimal("90.00")
    assert march.as_dict()["start"] == "2025-03-01"


def test_agent_statement_running_cash(tracker, admin, agent_a, book, clock) -> None:
    _march_and_april(tracker, admin, agent_a, book, clock)

    statement = tracker.agent_statement(agent_a, book_id=book.book_id)

    assert [line.change for line in statement.lines] == [Decimal("400.00"), Decimal("-90.00"), Decimal("-60.00")]
    assert [line.cash_on_hand for line in statement.lines] == [
        Decimal("400.00"),
        Decimal("310.00"),
        Decimal("250.00"),
    ]
    assert statement.closing_cash == tracker.balances().cash_on_hand(agent_a.agent_id)

    april = tracker.agent_statement(admin, agent_a.agent_id, start=date(2025, 4, 1))
    assert april.opening_cash == Decimal("310.00")
    assert april.closing_cash == Decimal("250.00")
    assert len(april.lines) == 1


def test_agents_only_see_their_own_statement(tracker, agent_a, agent_b, book) -> None:
    with pytest.raises(NotOwner):
        tracker.agent_statement(agent_b, agent_a.agent_id)
