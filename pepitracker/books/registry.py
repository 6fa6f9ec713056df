"""Mini README: Fiscal-year books and the single active book.

Structure:
    * Book - a fiscal period with an immutable starting amount.
    * BookRegistry - creates, activates, funds and closes books, and answers
      which book is currently active.

At most one book is active across the system and a closed book never
becomes active again. The first book created activates itself; later books
start inactive until an admin activates them once the current one is
closed. Activating a book records its starting amount as an approved
pool-level issuance tagged ``initial_funding`` in the same atomic block, so
the ledger engine always has a seed transaction to start from. Adding funds
records a ``top_up`` issuance the same way; both are approved immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..agents import Agent
from ..errors import (
    ActiveBookExists,
    ClosedBook,
    DuplicatePeriod,
    InactiveBook,
    InvalidField,
    UnknownBook,
)
from ..finance.engine import compute_balances, find_initial_funding
from ..finance.ledger import ApprovalStatus, Transaction, TransactionSubtype, TransactionType
from ..logging_utils import get_logger
from ..receipts import ReceiptAllocator, ReceiptKind
from ..results import MutationResult
from ..storage import RecordKind, RecordStore
from ..utils.clock import Clock, utc_now
from ..utils.fields import optional_text, record_as_dict
from ..utils.money import parse_amount, parse_non_negative
from ..workflow.policy import AuthorizationPolicy, Operation

LOGGER = get_logger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 9999


@dataclass(slots=True)
class Book:
    """Fiscal period owning a pool of funds."""

    book_id: str
    year: int
    starting_amount: Decimal
    created_by: str
    created_at: datetime
    is_active: bool = False
    is_closed: bool = False
    closed_at: Optional[datetime] = None
    closing_balance: Optional[Decimal] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return record_as_dict(self)


class BookRegistry:
    """Manage books and the funding transactions they generate."""

    def __init__(
        self,
        store: RecordStore,
        allocator: ReceiptAllocator,
        *,
        policy: Optional[AuthorizationPolicy] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._policy = policy or AuthorizationPolicy()
        self._clock = clock

    # ------------------------------------------------------------------ queries
    def get_book(self, book_id: str) -> Book:
        book = self._store.get(RecordKind.BOOK, book_id)
        if book is None:
            raise UnknownBook(f"No book with id {book_id}.")
        return book

    def list_books(self) -> List[Book]:
        """Return books with the most recent fiscal year first."""

        return sorted(self._store.query(RecordKind.BOOK), key=lambda book: book.year, reverse=True)

    def active_book(self) -> Optional[Book]:
        active = self._store.query(RecordKind.BOOK, is_active=True)
        return active[0] if active else None

    def require_open(self, book_id: str) -> Book:
        """Return the book if it is active and not closed."""

        book = self.get_book(book_id)
        if book.is_closed:
            raise ClosedBook(f"Book {book.year} is closed.")
        if not book.is_active:
            raise InactiveBook(f"Book {book.year} is not the active book.")
        return book

    # ------------------------------------------------------------------ mutations
    def create_book(self, year: int, starting_amount: Any, actor: Optional[Agent]) -> MutationResult:
        """Create the book for ``year``; activate it when no other book is active."""

        self._policy.require(actor, Operation.MANAGE_BOOKS)
        try:
            year = int(year)
        except (TypeError, ValueError) as error:
            raise InvalidField(f"Year {year!r} is not a number.") from error
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise InvalidField(f"Year {year} is out of range.")
        amount = parse_non_negative(starting_amount)
        now = self._clock()

        with self._store.atomic():
            if self._store.query(RecordKind.BOOK, year=year):
                raise DuplicatePeriod(f"A book for {year} already exists.")
            activate = self.active_book() is None
            book = self._store.insert(
                RecordKind.BOOK,
                Book(
                    book_id=self._store.new_id(),
                    year=year,
                    starting_amount=amount,
                    created_by=actor.agent_id,
                    created_at=now,
                    is_active=activate,
                ),
            )
            funding = self._record_initial_funding(book, actor) if activate else None

        LOGGER.info(
            "Created book %s (%s) starting=%s active=%s", book.year, book.book_id, book.starting_amount, book.is_active
        )
        return MutationResult(RecordKind.BOOK, "created", book, funding)

    def activate_book(self, book_id: str, actor: Optional[Agent]) -> MutationResult:
        """Make ``book_id`` the active book, seeding its initial funding if missing."""

        self._policy.require(actor, Operation.MANAGE_BOOKS)
        with self._store.atomic():
            book = self.get_book(book_id)
            if book.is_closed:
                raise ClosedBook(f"Book {book.year} is closed and cannot be reactivated.")
            if book.is_active:
                return MutationResult(RecordKind.BOOK, "unchanged", book)
            current = self.active_book()
            if current is not None:
                raise ActiveBookExists(f"Book {current.year} is still active; close it first.")
            book = self._store.update(RecordKind.BOOK, book_id, is_active=True, updated_at=self._clock())
            funding = None
            existing = self._store.query(RecordKind.TRANSACTION, book_id=book_id)
            if find_initial_funding(existing) is None:
                funding = self._record_initial_funding(book, actor)
        LOGGER.info("Activated book %s (%s)", book.year, book.book_id)
        return MutationResult(RecordKind.BOOK, "activated", book, funding)

    def close_book(self, book_id: str, actor: Optional[Agent]) -> MutationResult:
        """Close a book, capturing its pool balance as the closing balance.

        Closing an already closed book rewrites the same fields; callers that
        care should check ``is_closed`` first.
        """

        self._policy.require(actor, Operation.MANAGE_BOOKS)
        with self._store.atomic():
            book = self._store.require(RecordKind.BOOK, book_id)
            balances = compute_balances(book_id, self._store.query(RecordKind.TRANSACTION, book_id=book_id))
            now = self._clock()
            book = self._store.update(
                RecordKind.BOOK,
                book_id,
                is_active=False,
                is_closed=True,
                closed_at=now,
                closing_balance=balances.pool_balance,
                updated_at=now,
            )
        LOGGER.info("Closed book %s (%s) with balance %s", book.year, book.book_id, book.closing_balance)
        return MutationResult(RecordKind.BOOK, "closed", book)

    def add_funds(self, book_id: str, amount: Any, description: Optional[str], actor: Optional[Agent]) -> MutationResult:
        """Top up the active book with an auto-approved pool-level issuance."""

        self._policy.require(actor, Operation.MANAGE_BOOKS)
        value = parse_amount(amount)
        with self._store.atomic():
            book = self._store.require(RecordKind.BOOK, book_id)
            if book.is_closed:
                raise ClosedBook(f"Book {book.year} is closed.")
            if not book.is_active:
                raise InactiveBook(f"Book {book.year} is not active.")
            transaction = self._insert_pool_issuance(
                book,
                value,
                TransactionSubtype.TOP_UP,
                optional_text(description) or f"Funds added to {book.year} book",
                actor,
            )
        LOGGER.info("Added %s to book %s (receipt %s)", value, book.year, transaction.receipt_number)
        return MutationResult(RecordKind.TRANSACTION, "created", transaction)

    # ------------------------------------------------------------------ helpers
    def _record_initial_funding(self, book: Book, actor: Agent) -> Optional[Transaction]:
        if book.starting_amount <= 0:
            LOGGER.debug("Book %s starts empty; no initial funding recorded", book.year)
            return None
        return self._insert_pool_issuance(
            book,
            book.starting_amount,
            TransactionSubtype.INITIAL_FUNDING,
            f"Initial funding for {book.year} book",
            actor,
        )

    def _insert_pool_issuance(
        self,
        book: Book,
        amount: Decimal,
        subtype: TransactionSubtype,
        description: str,
        actor: Agent,
    ) -> Transaction:
        now = self._clock()
        kind = ReceiptKind.for_transaction(TransactionType.ISSUANCE, subtype)
        return self._store.insert(
            RecordKind.TRANSACTION,
            Transaction(
                transaction_id=self._store.new_id(),
                book_id=book.book_id,
                transaction_type=TransactionType.ISSUANCE,
                amount=amount,
                status=ApprovalStatus.APPROVED,
                receipt_number=self._allocator.allocate(kind, now.date()),
                created_by=actor.agent_id,
                created_at=now,
                subtype=subtype,
                description=description,
                reviewed_by=actor.agent_id,
                reviewed_at=now,
            ),
        )
