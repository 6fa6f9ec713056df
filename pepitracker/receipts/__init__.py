"""Mini README: Receipt numbering for approved movements.

Exports ``ReceiptAllocator`` and the ``ReceiptKind`` prefix table.
"""

from .allocator import ReceiptAllocator, ReceiptKind

__all__ = ["ReceiptAllocator", "ReceiptKind"]
