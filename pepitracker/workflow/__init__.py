"""Mini README: Authorization and approval workflow for reviewable records.

``policy`` answers who may do what to which record; ``approval`` holds the
pending/approved/rejected state machine and the flow adapters for fund
requests, CI payments and agent-submitted transactions.
"""

from .approval import (
    ApprovalFlow,
    ApprovalWorkflow,
    CiPaymentFlow,
    FundRequestFlow,
    TransactionReviewFlow,
)
from .policy import AuthorizationPolicy, Operation, subject_of

__all__ = [
    "ApprovalFlow",
    "ApprovalWorkflow",
    "AuthorizationPolicy",
    "CiPaymentFlow",
    "FundRequestFlow",
    "Operation",
    "TransactionReviewFlow",
    "subject_of",
]
