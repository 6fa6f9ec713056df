"""Mini README: Storage boundary for the funds tracker.

Exports the in-memory ``RecordStore`` used by every service. A persistent
implementation only needs to offer the same CRUD, query, conditional-update
and atomic-block primitives.
"""

from .store import KEY_FIELDS, RecordChange, RecordKind, RecordStore

__all__ = ["KEY_FIELDS", "RecordChange", "RecordKind", "RecordStore"]
