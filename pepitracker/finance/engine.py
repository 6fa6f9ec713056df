"""Mini README: Ledger engine deriving balances from a book's transactions.

Structure:
    * AgentPosition - approved issuance, spending and returns of one agent.
    * BookBalances - every figure the dashboards, reports and book closing
      display for one book.
    * find_initial_funding - stable rule identifying the seed transaction.
    * compute_balances - the single pure fold from transactions to balances.
    * LedgerEngine - store-backed helpers (current balances, date-range
      "as-of" balances, one agent's cash on hand).

Rules applied by ``compute_balances`` (approved transactions only; pending
and rejected ones never count):

    pool balance  = pool-level issuances (initial funding + top-ups)
                    - all spending, whoever spent it
    agent cash    = issued to the agent - spent by the agent - returned by the agent
    safe cash     = pool balance - cash currently held by all agents

A return moves cash from an agent's hand back into the safe. Spending has
already left the pool total, so a return changes agent cash and safe cash
but never the pool balance. Every sum is commutative, so the result does
not depend on the order transactions are supplied in. Nothing here is
cached: balances are recomputed from the record set on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..errors import InvalidField, UnknownBook
from ..logging_utils import get_logger
from ..storage import RecordKind, RecordStore
from ..utils.money import ZERO
from .ledger import ApprovalStatus, Transaction, TransactionSubtype, TransactionType

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class AgentPosition:
    """Approved movements of one agent within a book."""

    agent_id: str
    issued: Decimal = ZERO
    spent: Decimal = ZERO
    returned: Decimal = ZERO

    @property
    def cash_on_hand(self) -> Decimal:
        return self.issued - self.spent - self.returned

    def as_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "issued": str(self.issued),
            "spent": str(self.spent),
            "returned": str(self.returned),
            "cash_on_hand": str(self.cash_on_hand),
        }


@dataclass(slots=True)
class BookBalances:
    """Derived balances of one book."""

    book_id: str
    starting_amount: Decimal = ZERO
    total_added: Decimal = ZERO
    total_issued_to_agents: Decimal = ZERO
    total_spent: Decimal = ZERO
    total_returned: Decimal = ZERO
    pool_balance: Decimal = ZERO
    agents_cash_on_hand: Decimal = ZERO
    safe_cash: Decimal = ZERO
    approved_count: int = 0
    pending_count: int = 0
    initial_funding_id: Optional[str] = None
    agents: Dict[str, AgentPosition] = field(default_factory=dict)

    def cash_on_hand(self, agent_id: str) -> Decimal:
        """Cash currently held by ``agent_id`` (zero when they have no movements)."""

        position = self.agents.get(agent_id)
        return position.cash_on_hand if position else ZERO

    def as_dict(self) -> Dict[str, Any]:
        return {
            "book_id": self.book_id,
            "starting_amount": str(self.starting_amount),
            "total_added": str(self.total_added),
            "total_issued_to_agents": str(self.total_issued_to_agents),
            "total_spent": str(self.total_spent),
            "total_returned": str(self.total_returned),
            "pool_balance": str(self.pool_balance),
            "agents_cash_on_hand": str(self.agents_cash_on_hand),
            "safe_cash": str(self.safe_cash),
            "approved_count": self.approved_count,
            "pending_count": self.pending_count,
            "initial_funding_id": self.initial_funding_id,
            "agents": {agent_id: position.as_dict() for agent_id, position in sorted(self.agents.items())},
        }


def _is_pool_issuance(transaction: Transaction) -> bool:
    return transaction.transaction_type is TransactionType.ISSUANCE and transaction.agent_id is None


def find_initial_funding(transactions: Iterable[Transaction]) -> Optional[Transaction]:
    """Return the transaction that seeds a book's starting balance.

    The approved pool-level issuance tagged ``initial_funding`` wins; without
    a tag, the earliest untagged (``standard``) approved pool-level issuance
    by ``(created_at, transaction_id)`` is used. Top-ups are never treated as
    initial funding, so a set holding only top-ups has none. Several tagged
    candidates resolve by the same ordering.
    """

    candidates = [
        transaction
        for transaction in transactions
        if transaction.status is ApprovalStatus.APPROVED and _is_pool_issuance(transaction)
    ]
    tagged = [
        transaction for transaction in candidates if transaction.subtype is TransactionSubtype.INITIAL_FUNDING
    ]
    pool = tagged or [
        transaction for transaction in candidates if transaction.subtype is TransactionSubtype.STANDARD
    ]
    if not pool:
        return None
    return min(pool, key=lambda transaction: (transaction.created_at, transaction.transaction_id))


def compute_balances(book_id: str, transactions: Iterable[Transaction]) -> BookBalances:
    """Fold the transactions of ``book_id`` into its balances.

    Transactions belonging to other books are ignored. A book without
    transactions yields zeroed balances.
    """

    scoped: List[Transaction] = [transaction for transaction in transactions if transaction.book_id == book_id]
    balances = BookBalances(book_id=book_id)
    seed = find_initial_funding(scoped)
    if seed is not None:
        balances.initial_funding_id = seed.transaction_id
        balances.starting_amount = seed.amount

    pool_issued = ZERO
    for transaction in scoped:
        if transaction.status is ApprovalStatus.PENDING:
            balances.pending_count += 1
            continue
        if transaction.status is not ApprovalStatus.APPROVED:
            continue
        balances.approved_count += 1
        amount = transaction.amount
        position = None
        if transaction.agent_id is not None:
            position = balances.agents.setdefault(transaction.agent_id, AgentPosition(transaction.agent_id))

        if transaction.transaction_type is TransactionType.ISSUANCE:
            if position is None:
                pool_issued += amount
            else:
                position.issued += amount
                balances.total_issued_to_agents += amount
        elif transaction.transaction_type is TransactionType.SPENDING:
            balances.total_spent += amount
            if position is not None:
                position.spent += amount
        elif transaction.transaction_type is TransactionType.RETURN:
            # pool balance is untouched; the cash goes back into the safe
            if position is not None:
                position.returned += amount
                balances.total_returned += amount

    balances.total_added = pool_issued - balances.starting_amount
    balances.pool_balance = pool_issued - balances.total_spent
    balances.agents_cash_on_hand = sum(
        (position.cash_on_hand for position in balances.agents.values()), ZERO
    )
    balances.safe_cash = balances.pool_balance - balances.agents_cash_on_hand
    LOGGER.debug(
        "Balances for book %s -> pool=%s safe=%s agents=%s approved=%s pending=%s",
        book_id,
        balances.pool_balance,
        balances.safe_cash,
        balances.agents_cash_on_hand,
        balances.approved_count,
        balances.pending_count,
    )
    return balances


class LedgerEngine:
    """Read-only balance queries over the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _require_book(self, book_id: str) -> None:
        if self._store.get(RecordKind.BOOK, book_id) is None:
            raise UnknownBook(f"No book with id {book_id}.")

    def transactions(self, book_id: str) -> List[Transaction]:
        """Return every transaction of a book, oldest first."""

        self._require_book(book_id)
        transactions = self._store.query(RecordKind.TRANSACTION, book_id=book_id)
        return sorted(transactions, key=lambda transaction: (transaction.created_at, transaction.transaction_id))

    def balances(self, book_id: str) -> BookBalances:
        return compute_balances(book_id, self.transactions(book_id))

    def balances_as_of(
        self,
        book_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> BookBalances:
        """Recompute balances over transactions created within ``[start, end]``.

        Either bound may be omitted. The initial funding is identified within
        the filtered set, so a window that starts after the book was funded
        reports only the movements inside it.
        """

        if start is not None and end is not None and start > end:
            raise InvalidField(f"Range start {start} is after range end {end}.")
        window = [
            transaction
            for transaction in self.transactions(book_id)
            if (start is None or transaction.created_at.date() >= start)
            and (end is None or transaction.created_at.date() <= end)
        ]
        LOGGER.debug("As-of query for book %s [%s, %s] covers %s transactions", book_id, start, end, len(window))
        return compute_balances(book_id, window)

    def agent_cash_on_hand(self, book_id: str, agent_id: str) -> Decimal:
        return self.balances(book_id).cash_on_hand(agent_id)
