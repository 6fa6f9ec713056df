"""Mini README: Ledger records and balance derivation for the funds tracker.

This package groups the record types that move money (transactions, fund
requests, CI payments) and the ledger engine that folds approved
transactions into book, agent and safe-cash balances. The engine is the only
place balances are computed; every view calls it.
"""

from .ci_payments import CiPayment
from .engine import AgentPosition, BookBalances, LedgerEngine, compute_balances
from .ledger import (
    ApprovalStatus,
    Transaction,
    TransactionSubtype,
    TransactionType,
    classify_legacy_subtype,
    transaction_from_legacy,
)
from .requests import FundRequest

__all__ = [
    "AgentPosition",
    "ApprovalStatus",
    "BookBalances",
    "CiPayment",
    "FundRequest",
    "LedgerEngine",
    "Transaction",
    "TransactionSubtype",
    "TransactionType",
    "classify_legacy_subtype",
    "compute_balances",
    "transaction_from_legacy",
]
