"""Mini README: Service facade wiring the tracker components together.

Structure:
    * FundsTracker - owns the record store, agent directory, book registry,
      ledger engine, receipt allocator and the three approval workflows, and
      builds new records (transactions, fund requests, CI payments) before
      handing them to the matching workflow.

The web interface, the CLI and the tests all talk to a ``FundsTracker``.
Operations take the acting ``Agent`` explicitly (resolved from an identity
with ``resolve``) and a book id; omitting the book id means "the active
book", looked up from the registry at call time.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from .agents import Agent, AgentDirectory, AgentRole
from .books import BookRegistry
from .configuration import TrackerSettings, get_settings
from .errors import InactiveBook, InvalidField, MissingSignature, NotFound, NotOwner
from .finance import BookBalances, CiPayment, FundRequest, LedgerEngine, Transaction
from .finance.ledger import ApprovalStatus, TransactionSubtype, TransactionType
from .logging_utils import get_logger
from .receipts import ReceiptAllocator, ReceiptKind
from .reports import AgentStatement, PeriodSummary, agent_statement, monthly_summary
from .results import MutationResult
from .storage import RecordStore
from .utils.clock import Clock, utc_now
from .utils.fields import Coercer, optional_text, parse_optional_date, required_text
from .utils.money import parse_amount
from .workflow import (
    ApprovalWorkflow,
    AuthorizationPolicy,
    CiPaymentFlow,
    FundRequestFlow,
    Operation,
    TransactionReviewFlow,
)

LOGGER = get_logger(__name__)


def _field(name: str, coercer: Coercer, value: Any) -> Any:
    try:
        return coercer(value)
    except (TypeError, ValueError) as error:
        raise InvalidField(f"Field '{name}' has an invalid value: {value!r}") from error


class FundsTracker:
    """Entry point for every tracker operation."""

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        *,
        settings: Optional[TrackerSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or RecordStore()
        self.policy = AuthorizationPolicy()
        self.agents = AgentDirectory(self.store)
        self.allocator = ReceiptAllocator(
            self.store.receipt_taken,
            code_length=self.settings.receipt_code_length,
            max_attempts=self.settings.receipt_max_attempts,
            today=lambda: clock().date(),
        )
        self.books = BookRegistry(self.store, self.allocator, policy=self.policy, clock=clock)
        self.ledger = LedgerEngine(self.store)
        self.transactions = self._workflow(TransactionReviewFlow(), clock)
        self.fund_requests = self._workflow(FundRequestFlow(), clock)
        self.ci_payments = self._workflow(CiPaymentFlow(), clock)
        self._clock = clock
        LOGGER.debug("Funds tracker initialised (environment=%s)", self.settings.environment)

    def _workflow(self, flow: Any, clock: Clock) -> ApprovalWorkflow:
        return ApprovalWorkflow(self.store, self.books, self.allocator, flow, policy=self.policy, clock=clock)

    # ------------------------------------------------------------------ agents
    def resolve(self, identity: Optional[str]) -> Agent:
        return self.agents.resolve(identity)

    def register_agent(self, actor: Optional[Agent], name: str, **details: Any) -> Agent:
        self.policy.require(actor, Operation.MANAGE_AGENTS)
        return self.agents.register(name, **details)

    def set_agent_active(self, actor: Optional[Agent], agent_id: str, is_active: bool) -> Agent:
        self.policy.require(actor, Operation.MANAGE_AGENTS)
        return self.agents.set_active(agent_id, is_active)

    # ------------------------------------------------------------------ queries
    def resolve_book_id(self, book_id: Optional[str] = None) -> str:
        """Return ``book_id`` or, when omitted, the active book's id."""

        if book_id:
            return book_id
        active = self.books.active_book()
        if active is None:
            raise InactiveBook("There is no active book.")
        return active.book_id

    def balances(self, book_id: Optional[str] = None) -> BookBalances:
        return self.ledger.balances(self.resolve_book_id(book_id))

    def balances_as_of(
        self, book_id: Optional[str] = None, start: Optional[date] = None, end: Optional[date] = None
    ) -> BookBalances:
        return self.ledger.balances_as_of(self.resolve_book_id(book_id), start, end)

    def monthly_summary(self, actor: Optional[Agent], year: int, month: int, book_id: Optional[str] = None) -> PeriodSummary:
        self.policy.authenticate(actor)
        return monthly_summary(self.ledger, self.resolve_book_id(book_id), year, month)

    def agent_statement(
        self,
        actor: Optional[Agent],
        agent_id: Optional[str] = None,
        *,
        book_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AgentStatement:
        """Statement for ``agent_id``; agents may only pull their own."""

        actor = self.policy.authenticate(actor)
        agent_id = agent_id or actor.agent_id
        if not actor.is_admin and agent_id != actor.agent_id:
            raise NotOwner("Agents may only view their own statement.")
        return agent_statement(self.ledger, self.resolve_book_id(book_id), agent_id, start, end)

    def _subject_for(self, actor: Optional[Agent], agent_id: Optional[str]) -> Optional[str]:
        """Default the subject to the actor for non-admins and check it exists."""

        actor = self.policy.authenticate(actor)
        if agent_id is None and not actor.is_admin:
            agent_id = actor.agent_id
        if agent_id is not None and self.agents.find(agent_id) is None:
            raise NotFound(f"No agent with id {agent_id}.")
        return agent_id

    # ------------------------------------------------------------------ record creation
    def submit_transaction(
        self,
        actor: Optional[Agent],
        transaction_type: Any,
        amount: Any,
        *,
        book_id: Optional[str] = None,
        agent_id: Optional[str] = None,
        description: Optional[str] = None,
        spending_category: Optional[str] = None,
        case_number: Optional[str] = None,
        paid_to: Optional[str] = None,
        ecr_number: Optional[str] = None,
        date_to_evidence: Any = None,
        document_reference: Optional[str] = None,
    ) -> MutationResult:
        """Record a movement; admins' entries are approved immediately."""

        agent_id = self._subject_for(actor, agent_id)
        kind = _field("transaction_type", TransactionType.from_str, transaction_type)
        value = parse_amount(amount)
        now = self._clock()
        approved = actor.is_admin
        transaction = Transaction(
            transaction_id=self.store.new_id(),
            book_id=self.resolve_book_id(book_id),
            transaction_type=kind,
            amount=value,
            status=ApprovalStatus.APPROVED if approved else ApprovalStatus.PENDING,
            receipt_number=self.allocator.allocate(ReceiptKind.for_transaction(kind), now.date()),
            created_by=actor.agent_id,
            created_at=now,
            agent_id=agent_id,
            subtype=TransactionSubtype.STANDARD,
            description=optional_text(description),
            spending_category=optional_text(spending_category),
            case_number=optional_text(case_number),
            paid_to=optional_text(paid_to),
            ecr_number=optional_text(ecr_number),
            date_to_evidence=_field("date_to_evidence", parse_optional_date, date_to_evidence),
            document_reference=optional_text(document_reference),
            reviewed_by=actor.agent_id if approved else None,
            reviewed_at=now if approved else None,
        )
        return self.transactions.submit(transaction, actor)

    def submit_fund_request(
        self,
        actor: Optional[Agent],
        amount: Any,
        agent_signature: Optional[str],
        *,
        book_id: Optional[str] = None,
        agent_id: Optional[str] = None,
        case_number: Optional[str] = None,
    ) -> MutationResult:
        """File a pending request for cash from the book."""

        agent_id = self._subject_for(actor, agent_id)
        signature = optional_text(agent_signature)
        if signature is None:
            raise MissingSignature("A fund request must carry the requesting agent's signature.")
        now = self._clock()
        request = FundRequest(
            request_id=self.store.new_id(),
            agent_id=agent_id,
            book_id=self.resolve_book_id(book_id),
            amount=parse_amount(amount),
            agent_signature=signature,
            requested_at=now,
            case_number=optional_text(case_number),
        )
        return self.fund_requests.submit(request, actor)

    def submit_ci_payment(
        self,
        actor: Optional[Agent],
        amount: Any,
        *,
        paying_agent_printed_name: str,
        paying_agent_signature: Optional[str],
        ci_signature: Optional[str],
        payment_date: Any = None,
        book_id: Optional[str] = None,
        paying_agent_id: Optional[str] = None,
        paid_to: Optional[str] = None,
        case_number: Optional[str] = None,
        pepi_receipt_number: Optional[str] = None,
        witness_printed_name: Optional[str] = None,
        witness_signature: Optional[str] = None,
    ) -> MutationResult:
        """File a pending CI payment awaiting commander approval."""

        paying_agent_id = self._subject_for(actor, paying_agent_id)
        now = self._clock()
        payment = CiPayment(
            payment_id=self.store.new_id(),
            book_id=self.resolve_book_id(book_id),
            paying_agent_id=paying_agent_id,
            amount=parse_amount(amount),
            payment_date=_field("payment_date", parse_optional_date, payment_date) or now.date(),
            receipt_number=self.allocator.allocate(ReceiptKind.CI_PAYMENT, now.date()),
            paying_agent_printed_name=_field("paying_agent_printed_name", required_text, paying_agent_printed_name),
            paying_agent_signature=optional_text(paying_agent_signature) or "",
            ci_signature=optional_text(ci_signature) or "",
            created_by=actor.agent_id,
            created_at=now,
            paid_to=optional_text(paid_to),
            case_number=optional_text(case_number),
            pepi_receipt_number=optional_text(pepi_receipt_number),
            witness_printed_name=optional_text(witness_printed_name),
            witness_signature=optional_text(witness_signature),
        )
        return self.ci_payments.submit(payment, actor)

    # ------------------------------------------------------------------ demo data
    def seed_demo(self, year: Optional[int] = None, starting_amount: Any = Decimal("10000.00")) -> Dict[str, str]:
        """Populate an empty store with an admin, two agents and an active book."""

        admin = self.agents.register("Demo Admin", role=AgentRole.ADMIN, identity="admin@pepi.local", badge_number="A-001")
        alpha = self.agents.register("Agent Alpha", identity="alpha@pepi.local", badge_number="1042")
        bravo = self.agents.register("Agent Bravo", identity="bravo@pepi.local", badge_number="1077")
        book = self.books.create_book(year or self._clock().year, starting_amount, admin).record
        self.submit_transaction(admin, TransactionType.ISSUANCE, "1500.00", agent_id=alpha.agent_id, book_id=book.book_id)
        self.submit_transaction(
            alpha,
            TransactionType.SPENDING,
            "250.00",
            book_id=book.book_id,
            spending_category="Buy money",
            case_number="24-0193",
        )
        self.submit_fund_request(bravo, "600.00", "blob://signatures/bravo-demo", book_id=book.book_id)
        LOGGER.info("Seeded demo data into book %s", book.year)
        return {
            "admin": admin.agent_id,
            "alpha": alpha.agent_id,
            "bravo": bravo.agent_id,
            "book": book.book_id,
        }
