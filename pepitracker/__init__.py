"""Mini README: Core package initializer for the PEPI funds tracker.

The tracker derives book, agent and safe-cash balances from the approved
transactions of a fiscal-year book and runs the approval workflow for fund
requests, CI payments and agent-submitted transactions. ``FundsTracker`` is
the usual entry point; the sub-packages can also be used on their own.
"""

from .logging_utils import get_logger
from .tracker import FundsTracker

__all__ = ["FundsTracker", "get_logger"]
