"""Mini README: Role and ownership rules for every tracker operation.

Structure:
    * Operation - the operations the policy understands.
    * subject_of - the agent a record is about (its owner).
    * AuthorizationPolicy - ``can`` predicate plus ``require``, which raises
      the specific authorization error instead of returning ``False``.

Rules:
    * A missing or inactive actor is ``Unauthenticated``.
    * Book and agent management, approval and rejection are admin-only
      (``NotAdmin``).
    * Non-admins create records only for themselves (``ImpersonationDenied``).
    * Non-admins read only their own records (``NotOwner``).
    * Resubmitting belongs to the record's subject alone; editing is open to
      the subject and to admins. Neither is allowed once the record is
      approved (``Forbidden``).
    * Admins delete any record, owners delete their own, but an approved
      record can never be deleted by anyone (``Forbidden``).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from ..agents import Agent
from ..errors import (
    AuthorizationError,
    Forbidden,
    ImpersonationDenied,
    NotAdmin,
    NotOwner,
    Unauthenticated,
)
from ..finance.ci_payments import CiPayment
from ..finance.ledger import ApprovalStatus
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    EDIT = "edit"
    RESUBMIT = "resubmit"
    APPROVE = "approve"
    REJECT = "reject"
    DELETE = "delete"
    MANAGE_BOOKS = "manage_books"
    MANAGE_AGENTS = "manage_agents"


ADMIN_ONLY = frozenset({Operation.APPROVE, Operation.REJECT, Operation.MANAGE_BOOKS, Operation.MANAGE_AGENTS})
OWNER_OR_ADMIN = frozenset({Operation.READ, Operation.EDIT})


def subject_of(record: Any) -> Optional[str]:
    """Return the agent id a record belongs to (``None`` for pool-level records)."""

    if isinstance(record, CiPayment):
        return record.paying_agent_id
    return getattr(record, "agent_id", None)


class AuthorizationPolicy:
    """Decide whether an actor may perform an operation on a record."""

    def can(self, actor: Optional[Agent], operation: Operation, record: Any = None) -> bool:
        try:
            self.require(actor, operation, record)
        except AuthorizationError:
            return False
        return True

    def authenticate(self, actor: Optional[Agent]) -> Agent:
        """Return ``actor`` if it is present and active."""

        if actor is None:
            raise Unauthenticated("An authenticated actor is required.")
        if not actor.is_active:
            raise Unauthenticated(f"Agent {actor.agent_id} is inactive.")
        return actor

    def require(self, actor: Optional[Agent], operation: Operation, record: Any = None) -> Agent:
        """Return ``actor`` when allowed, otherwise raise the matching error."""

        actor = self.authenticate(actor)

        if operation in ADMIN_ONLY:
            if not actor.is_admin:
                LOGGER.warning("Agent %s denied %s: admin role required", actor.agent_id, operation.value)
                raise NotAdmin(f"Admin privileges are required to {operation.value.replace('_', ' ')}.")
            return actor

        subject = subject_of(record) if record is not None else None
        is_owner = subject is not None and subject == actor.agent_id
        is_approved = getattr(record, "status", None) is ApprovalStatus.APPROVED

        if operation is Operation.CREATE:
            if not actor.is_admin and not is_owner:
                LOGGER.warning("Agent %s tried to create a record for %s", actor.agent_id, subject)
                raise ImpersonationDenied("Agents may only submit records for themselves.")
            return actor

        if operation in OWNER_OR_ADMIN:
            if not actor.is_admin and not is_owner:
                LOGGER.warning("Agent %s denied %s on a record owned by %s", actor.agent_id, operation.value, subject)
                raise NotOwner(f"Agents may only {operation.value} their own records.")
            if operation is Operation.EDIT and is_approved:
                raise Forbidden("Approved records are final; edit is not allowed.")
            return actor

        if operation is Operation.RESUBMIT:
            if not is_owner:
                LOGGER.warning("Agent %s denied resubmit on a record owned by %s", actor.agent_id, subject)
                raise NotOwner("Only the submitting agent may resubmit this record.")
            if is_approved:
                raise Forbidden("Approved records are final; resubmit is not allowed.")
            return actor

        if operation is Operation.DELETE:
            if is_approved:
                LOGGER.warning("Agent %s tried to delete an approved record", actor.agent_id)
                raise Forbidden("Approved records can never be deleted.")
            if not actor.is_admin and not is_owner:
                raise NotOwner("Agents may only delete their own records.")
            return actor

        raise AuthorizationError(f"Unknown operation {operation!r}.")
