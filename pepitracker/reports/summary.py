"""Mini README: Period summaries and agent statements.

Structure:
    * month_bounds - first and last day of a calendar month.
    * PeriodSummary / monthly_summary - opening balances, closing balances
      and the period's own activity for a monthly memo.
    * StatementLine / AgentStatement / agent_statement - one agent's approved
      movements with a running cash-on-hand figure.

Both reports are thin views over ``LedgerEngine``. Every figure comes from
``compute_balances`` (directly or through ``balances_as_of``); nothing here
adds or subtracts amounts on its own, so reports cannot drift from the
dashboard numbers.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ..errors import InvalidField
from ..finance.engine import BookBalances, LedgerEngine, compute_balances
from ..finance.ledger import ApprovalStatus, Transaction
from ..logging_utils import get_logger
from ..utils.money import ZERO

LOGGER = get_logger(__name__)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    if not 1 <= month <= 12:
        raise InvalidField(f"Month {month} is out of range.")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


@dataclass(slots=True)
class PeriodSummary:
    """Balances at the edges of a period plus the period's own activity."""

    book_id: str
    start: date
    end: date
    opening: BookBalances
    closing: BookBalances
    activity: BookBalances

    def as_dict(self) -> Dict[str, Any]:
        return {
            "book_id": self.book_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "opening": self.opening.as_dict(),
            "closing": self.closing.as_dict(),
            "activity": self.activity.as_dict(),
        }


def monthly_summary(engine: LedgerEngine, book_id: str, year: int, month: int) -> PeriodSummary:
    """Summarise one calendar month of a book."""

    start, end = month_bounds(year, month)
    summary = PeriodSummary(
        book_id=book_id,
        start=start,
        end=end,
        opening=engine.balances_as_of(book_id, end=start - timedelta(days=1)),
        closing=engine.balances_as_of(book_id, end=end),
        activity=engine.balances_as_of(book_id, start, end),
    )
    LOGGER.info(
        "Monthly summary %04d-%02d for book %s: pool %s -> %s",
        year,
        month,
        book_id,
        summary.opening.pool_balance,
        summary.closing.pool_balance,
    )
    return summary


@dataclass(slots=True)
class StatementLine:
    transaction: Transaction
    change: Decimal
    cash_on_hand: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "transaction": self.transaction.as_dict(),
            "change": str(self.change),
            "cash_on_hand": str(self.cash_on_hand),
        }


@dataclass(slots=True)
class AgentStatement:
    """Approved movements of one agent with running cash on hand."""

    book_id: str
    agent_id: str
    start: Optional[date]
    end: Optional[date]
    opening_cash: Decimal
    closing_cash: Decimal = ZERO
    lines: List[StatementLine] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "book_id": self.book_id,
            "agent_id": self.agent_id,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "opening_cash": str(self.opening_cash),
            "closing_cash": str(self.closing_cash),
            "lines": [line.as_dict() for line in self.lines],
        }


def agent_statement(
    engine: LedgerEngine,
    book_id: str,
    agent_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> AgentStatement:
    """Build the statement of ``agent_id`` over ``[start, end]``."""

    opening = ZERO
    if start is not None:
        opening = engine.balances_as_of(book_id, end=start - timedelta(days=1)).cash_on_hand(agent_id)
    statement = AgentStatement(book_id=book_id, agent_id=agent_id, start=start, end=end, opening_cash=opening)

    running = opening
    for transaction in engine.transactions(book_id):
        if transaction.agent_id != agent_id or transaction.status is not ApprovalStatus.APPROVED:
            continue
        day = transaction.created_at.date()
        if (start is not None and day < start) or (end is not None and day > end):
            continue
        change = compute_balances(book_id, [transaction]).cash_on_hand(agent_id)
        running += change
        statement.lines.append(StatementLine(transaction=transaction, change=change, cash_on_hand=running))
    statement.closing_cash = running
    LOGGER.debug("Statement for agent %s in book %s has %s lines", agent_id, book_id, len(statement.lines))
    return statement
