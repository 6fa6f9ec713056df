"""Mini README: Fiscal-year book management.

Exports the ``Book`` record and the ``BookRegistry`` that owns the single
active book.
"""

from .registry import Book, BookRegistry

__all__ = ["Book", "BookRegistry"]
