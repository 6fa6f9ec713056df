"""Mini README: In-memory record store with conditional writes.

Structure:
    * RecordKind - the record tables the tracker persists.
    * RecordChange - fire-and-forget notification payload.
    * RecordStore - CRUD, query and compare-and-update primitives plus an
      all-or-nothing ``atomic()`` block.

The store is the storage boundary the engine relies on for concurrency
safety. Every status transition is a ``compare_and_update`` call: it writes
only when the current value of the guarded field still equals the expected
value, so two reviewers racing on the same record produce exactly one
winner. ``atomic()`` holds the store lock for a block of writes, snapshots
the tables first and restores them when the block raises, which is how an
approval and the transaction it creates succeed or fail together.

Records are slotted dataclasses. The store keeps its own copies and hands
out copies, so callers can never mutate stored state by accident; writes go
through ``update`` with explicit field changes.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..errors import DuplicateReceipt, InvalidField, NotFound
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


class RecordKind(str, Enum):
    """Tables held by the store."""

    BOOK = "book"
    AGENT = "agent"
    TRANSACTION = "transaction"
    FUND_REQUEST = "fund_request"
    CI_PAYMENT = "ci_payment"


KEY_FIELDS: Dict[RecordKind, str] = {
    RecordKind.BOOK: "book_id",
    RecordKind.AGENT: "agent_id",
    RecordKind.TRANSACTION: "transaction_id",
    RecordKind.FUND_REQUEST: "request_id",
    RecordKind.CI_PAYMENT: "payment_id",
}

# Kinds whose ``receipt_number`` must be unique across the whole system.
RECEIPT_KINDS = frozenset({RecordKind.TRANSACTION, RecordKind.CI_PAYMENT})


@dataclass(frozen=True, slots=True)
class RecordChange:
    """Signal that a record of ``kind`` was inserted, updated or deleted."""

    kind: RecordKind
    record_id: str
    action: str


Listener = Callable[[RecordChange], None]


class RecordStore:
    """Thread-safe in-memory tables keyed by record identifier."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: Dict[RecordKind, Dict[str, Any]] = {kind: {} for kind in RecordKind}
        self._receipts: Dict[str, Tuple[RecordKind, str]] = {}
        self._listeners: List[Listener] = []
        self._depth = 0
        self._queued: List[RecordChange] = []
        LOGGER.debug("Record store initialised with tables: %s", [kind.value for kind in RecordKind])

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    # ------------------------------------------------------------------ notifications
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return a callable that removes it."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, changes: List[RecordChange]) -> None:
        if not changes:
            return
        with self._lock:
            listeners = list(self._listeners)
        for change in changes:
            for listener in listeners:
                try:
                    listener(change)
                except Exception:  # pragma: no cover - logged, the commit already happened
                    LOGGER.exception(
                        "Change listener failed for %s %s (%s)", change.kind.value, change.record_id, change.action
                    )

    def _collect(self, change: RecordChange) -> List[RecordChange]:
        """Queue ``change`` inside an atomic block, otherwise return it for delivery."""

        if self._depth:
            self._queued.append(change)
            return []
        return [change]

    # ------------------------------------------------------------------ atomic blocks
    @contextmanager
    def atomic(self) -> Iterator["RecordStore"]:
        """Run a block of writes all-or-nothing under the store lock.

        Nested blocks join the outermost one. Notifications are delivered once
        the outermost block commits and discarded when it rolls back.
        """

        delivered: List[RecordChange] = []
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                tables_snapshot = {kind: dict(table) for kind, table in self._tables.items()}
                receipts_snapshot = dict(self._receipts)
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._tables = tables_snapshot
                    self._receipts = receipts_snapshot
                    LOGGER.warning("Atomic block rolled back %s queued change(s)", len(self._queued))
                    self._queued = []
                raise
            self._depth -= 1
            if outermost:
                delivered, self._queued = self._queued, []
        self._emit(delivered)

    # ------------------------------------------------------------------ reads
    def get(self, kind: RecordKind, record_id: str) -> Optional[Any]:
        with self._lock:
            record = self._tables[kind].get(record_id)
            return replace(record) if record is not None else None

    def require(self, kind: RecordKind, record_id: str) -> Any:
        """Return the record or raise ``NotFound``."""

        record = self.get(kind, record_id)
        if record is None:
            raise NotFound(f"No {kind.value} with id {record_id}.")
        return record

    def query(
        self,
        kind: RecordKind,
        predicate: Optional[Callable[[Any], bool]] = None,
        **filters: Any,
    ) -> List[Any]:
        """Return copies of records whose attributes equal every filter value."""

        with self._lock:
            records = list(self._tables[kind].values())
        matched = []
        for record in records:
            if any(getattr(record, name) != value for name, value in filters.items()):
                continue
            if predicate is not None and not predicate(record):
                continue
            matched.append(replace(record))
        return matched

    def receipt_taken(self, receipt_number: str) -> bool:
        with self._lock:
            return receipt_number in self._receipts

    # ------------------------------------------------------------------ writes
    def insert(self, kind: RecordKind, record: Any) -> Any:
        """Store a new record, enforcing unique ids and receipt numbers."""

        record_id = getattr(record, KEY_FIELDS[kind])
        with self._lock:
            table = self._tables[kind]
            if record_id in table:
                raise InvalidField(f"{kind.value} {record_id} already exists.")
            receipt = getattr(record, "receipt_number", None) if kind in RECEIPT_KINDS else None
            if receipt is not None:
                if receipt in self._receipts:
                    raise DuplicateReceipt(f"Receipt number {receipt} is already in use.")
                self._receipts[receipt] = (kind, record_id)
            table[record_id] = replace(record)
            changes = self._collect(RecordChange(kind, record_id, "inserted"))
        LOGGER.debug("Inserted %s %s", kind.value, record_id)
        self._emit(changes)
        return replace(record)

    def update(self, kind: RecordKind, record_id: str, **changes: Any) -> Any:
        """Apply ``changes`` to an existing record unconditionally."""

        with self._lock:
            current = self._tables[kind].get(record_id)
            if current is None:
                raise NotFound(f"No {kind.value} with id {record_id}.")
            updated = self._write(kind, record_id, current, changes)
            emitted = self._collect(RecordChange(kind, record_id, "updated"))
        self._emit(emitted)
        return updated

    def compare_and_update(
        self,
        kind: RecordKind,
        record_id: str,
        *,
        expected: Any,
        changes: Dict[str, Any],
        field: str = "status",
    ) -> Optional[Any]:
        """Write ``changes`` only if ``field`` still equals ``expected``.

        Returns the updated record, or ``None`` when the guard did not hold.
        Raises ``NotFound`` when the record is absent.
        """

        with self._lock:
            current = self._tables[kind].get(record_id)
            if current is None:
                raise NotFound(f"No {kind.value} with id {record_id}.")
            if getattr(current, field) != expected:
                LOGGER.debug(
                    "Conditional update of %s %s skipped: %s is %s, expected %s",
                    kind.value,
                    record_id,
                    field,
                    getattr(current, field),
                    expected,
                )
                return None
            updated = self._write(kind, record_id, current, changes)
            emitted = self._collect(RecordChange(kind, record_id, "updated"))
        self._emit(emitted)
        return updated

    def _write(self, kind: RecordKind, record_id: str, current: Any, changes: Dict[str, Any]) -> Any:
        if KEY_FIELDS[kind] in changes and changes[KEY_FIELDS[kind]] != record_id:
            raise InvalidField(f"The identifier of {kind.value} {record_id} cannot change.")
        updated = replace(current, **changes)
        if kind in RECEIPT_KINDS:
            old_receipt = getattr(current, "receipt_number", None)
            new_receipt = getattr(updated, "receipt_number", None)
            if new_receipt != old_receipt:
                if new_receipt in self._receipts:
                    raise DuplicateReceipt(f"Receipt number {new_receipt} is already in use.")
                self._receipts.pop(old_receipt, None)
                self._receipts[new_receipt] = (kind, record_id)
        self._tables[kind][record_id] = updated
        return replace(updated)

    def delete(self, kind: RecordKind, record_id: str) -> Any:
        """Remove a record and release its receipt number."""

        with self._lock:
            current = self._tables[kind].pop(record_id, None)
            if current is None:
                raise NotFound(f"No {kind.value} with id {record_id}.")
            if kind in RECEIPT_KINDS:
                self._receipts.pop(getattr(current, "receipt_number", None), None)
            emitted = self._collect(RecordChange(kind, record_id, "deleted"))
        LOGGER.debug("Deleted %s %s", kind.value, record_id)
        self._emit(emitted)
        return current
