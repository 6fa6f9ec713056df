"""Mini README: FastAPI-powered JSON API for the PEPI funds tracker.

Structure:
    * create_application - application factory wiring routes to a
      ``FundsTracker`` and mapping tracker errors onto HTTP responses.
    * STATUS_BY_CATEGORY - error category to HTTP status code table.

Every route except ``/health`` needs the caller's identity in the
``X-Actor`` header; it is resolved to an active agent before anything else
happens. Form fields carry new records, JSON bodies carry edit and
resubmission payloads. Errors are returned as
``{"error": category, "code": code, "detail": message}``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Form, Header, Request
from fastapi.responses import JSONResponse

from ..configuration import get_settings
from ..errors import NotFound, TrackerError
from ..finance.ledger import ApprovalStatus
from ..logging_utils import get_logger
from ..tracker import FundsTracker
from ..utils.money import format_currency
from ..workflow import ApprovalWorkflow

LOGGER = get_logger(__name__)

STATUS_BY_CATEGORY: Dict[str, int] = {
    "validation": 400,
    "authorization": 403,
    "conflict": 409,
    "not_found": 404,
    "state": 409,
    "fatal": 500,
}


def _status_for(error: TrackerError) -> int:
    if error.code == "Unauthenticated":
        return 401
    return STATUS_BY_CATEGORY.get(error.category, 400)


def create_application(tracker: Optional[FundsTracker] = None) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = get_settings()
    app = FastAPI(title="PEPI Funds Tracker", version="0.1.0")
    if tracker is None:
        tracker = FundsTracker(settings=settings)
        if settings.seed_demo_data:
            seeded = tracker.seed_demo()
            LOGGER.info("Demo data seeded; admin identity is admin@pepi.local (book %s)", seeded["book"])
    workflows: Dict[str, ApprovalWorkflow] = {
        "transactions": tracker.transactions,
        "fund-requests": tracker.fund_requests,
        "ci-payments": tracker.ci_payments,
    }

    @app.exception_handler(TrackerError)
    async def tracker_error(request: Request, error: TrackerError) -> JSONResponse:
        status = _status_for(error)
        log = LOGGER.error if status >= 500 else LOGGER.info
        log("%s %s -> %s %s: %s", request.method, request.url.path, status, error.code, error.message)
        return JSONResponse(error.as_dict(), status_code=status)

    def workflow_for(kind: str) -> ApprovalWorkflow:
        try:
            return workflows[kind]
        except KeyError:
            raise NotFound(f"Unknown record collection '{kind}'.") from None

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok", "environment": settings.environment})

    # ------------------------------------------------------------------ agents
    @app.get("/me")
    async def me(x_actor: Optional[str] = Header(None)) -> JSONResponse:
        return JSONResponse(tracker.resolve(x_actor).as_dict())

    @app.get("/agents")
    async def list_agents(x_actor: Optional[str] = Header(None)) -> JSONResponse:
        tracker.resolve(x_actor)
        return JSONResponse({"agents": [agent.as_dict() for agent in tracker.agents.list_agents(active_only=True)]})

    @app.post("/agents")
    async def register_agent(
        name: str = Form(...),
        role: str = Form("agent"),
        identity: Optional[str] = Form(None),
        badge_number: Optional[str] = Form(None),
        email: Optional[str] = Form(None),
        phone: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        agent = tracker.register_agent(
            tracker.resolve(x_actor),
            name,
            role=role,
            identity=identity,
            badge_number=badge_number,
            email=email,
            phone=phone,
        )
        return JSONResponse(agent.as_dict(), status_code=201)

    @app.post("/agents/{agent_id}/active")
    async def set_agent_active(agent_id: str, is_active: bool = Form(...), x_actor: Optional[str] = Header(None)) -> JSONResponse:
        agent = tracker.set_agent_active(tracker.resolve(x_actor), agent_id, is_active)
        return JSONResponse(agent.as_dict())

    # ------------------------------------------------------------------ books
    @app.get("/books")
    async def list_books(x_actor: Optional[str] = Header(None)) -> JSONResponse:
        tracker.resolve(x_actor)
        active = tracker.books.active_book()
        return JSONResponse(
            {
                "books": [book.as_dict() for book in tracker.books.list_books()],
                "active_book_id": active.book_id if active else None,
            }
        )

    @app.post("/books")
    async def create_book(
        year: int = Form(...),
        starting_amount: str = Form(...),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = tracker.books.create_book(year, starting_amount, tracker.resolve(x_actor))
        return JSONResponse(result.as_dict(), status_code=201)

    @app.post("/books/{book_id}/activate")
    async def activate_book(book_id: str, x_actor: Optional[str] = Header(None)) -> JSONResponse:
        return JSONResponse(tracker.books.activate_book(book_id, tracker.resolve(x_actor)).as_dict())

    @app.post("/books/{book_id}/close")
    async def close_book(book_id: str, x_actor: Optional[str] = Header(None)) -> JSONResponse:
        return JSONResponse(tracker.books.close_book(book_id, tracker.resolve(x_actor)).as_dict())

    @app.post("/books/{book_id}/funds")
    async def add_funds(
        book_id: str,
        amount: str = Form(...),
        description: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = tracker.books.add_funds(book_id, amount, description, tracker.resolve(x_actor))
        return JSONResponse(result.as_dict(), status_code=201)

    # ------------------------------------------------------------------ balances and reports
    @app.get("/balances")
    async def balances(
        book_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        actor = tracker.resolve(x_actor)
        if start is None and end is None:
            snapshot = tracker.balances(book_id)
        else:
            snapshot = tracker.balances_as_of(book_id, start, end)
        payload: Dict[str, Any] = snapshot.as_dict()
        if not actor.is_admin:
            # Agents see the book totals and their own position only.
            payload["agents"] = {key: value for key, value in payload["agents"].items() if key == actor.agent_id}
        payload["display"] = {
            "pool_balance": format_currency(snapshot.pool_balance, settings.currency_code),
            "safe_cash": format_currency(snapshot.safe_cash, settings.currency_code),
            "agents_cash_on_hand": format_currency(snapshot.agents_cash_on_hand, settings.currency_code),
        }
        LOGGER.debug("Balances for book %s served to %s", snapshot.book_id, actor.agent_id)
        return JSONResponse(payload)

    @app.get("/reports/monthly")
    async def monthly_report(
        year: int,
        month: int,
        book_id: Optional[str] = None,
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        summary = tracker.monthly_summary(tracker.resolve(x_actor), year, month, book_id)
        return JSONResponse(summary.as_dict())

    @app.get("/reports/agents/{agent_id}")
    async def agent_report(
        agent_id: str,
        book_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        statement = tracker.agent_statement(tracker.resolve(x_actor), agent_id, book_id=book_id, start=start, end=end)
        return JSONResponse(statement.as_dict())

    # ------------------------------------------------------------------ record creation
    @app.post("/transactions")
    async def create_transaction(
        transaction_type: str = Form(...),
        amount: str = Form(...),
        book_id: Optional[str] = Form(None),
        agent_id: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        spending_category: Optional[str] = Form(None),
        case_number: Optional[str] = Form(None),
        paid_to: Optional[str] = Form(None),
        ecr_number: Optional[str] = Form(None),
        date_to_evidence: Optional[str] = Form(None),
        document_reference: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = tracker.submit_transaction(
            tracker.resolve(x_actor),
            transaction_type,
            amount,
            book_id=book_id,
            agent_id=agent_id,
            description=description,
            spending_category=spending_category,
            case_number=case_number,
            paid_to=paid_to,
            ecr_number=ecr_number,
            date_to_evidence=date_to_evidence,
            document_reference=document_reference,
        )
        return JSONResponse(result.as_dict(), status_code=201)

    @app.post("/fund-requests")
    async def create_fund_request(
        amount: str = Form(...),
        agent_signature: Optional[str] = Form(None),
        book_id: Optional[str] = Form(None),
        agent_id: Optional[str] = Form(None),
        case_number: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = tracker.submit_fund_request(
            tracker.resolve(x_actor),
            amount,
            agent_signature,
            book_id=book_id,
            agent_id=agent_id,
            case_number=case_number,
        )
        return JSONResponse(result.as_dict(), status_code=201)

    @app.post("/ci-payments")
    async def create_ci_payment(
        amount: str = Form(...),
        paying_agent_printed_name: str = Form(...),
        paying_agent_signature: Optional[str] = Form(None),
        ci_signature: Optional[str] = Form(None),
        payment_date: Optional[str] = Form(None),
        book_id: Optional[str] = Form(None),
        paying_agent_id: Optional[str] = Form(None),
        paid_to: Optional[str] = Form(None),
        case_number: Optional[str] = Form(None),
        pepi_receipt_number: Optional[str] = Form(None),
        witness_printed_name: Optional[str] = Form(None),
        witness_signature: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = tracker.submit_ci_payment(
            tracker.resolve(x_actor),
            amount,
            paying_agent_printed_name=paying_agent_printed_name,
            paying_agent_signature=paying_agent_signature,
            ci_signature=ci_signature,
            payment_date=payment_date,
            book_id=book_id,
            paying_agent_id=paying_agent_id,
            paid_to=paid_to,
            case_number=case_number,
            pepi_receipt_number=pepi_receipt_number,
            witness_printed_name=witness_printed_name,
            witness_signature=witness_signature,
        )
        return JSONResponse(result.as_dict(), status_code=201)

    # ------------------------------------------------------------------ review workflow
    @app.get("/{kind}")
    async def list_records(
        kind: str,
        book_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
        agent_id: Optional[str] = None,
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        workflow = workflow_for(kind)
        records = workflow.list(tracker.resolve(x_actor), book_id=book_id, status=status, agent_id=agent_id)
        return JSONResponse({"records": [record.as_dict() for record in records]})

    @app.get("/{kind}/{record_id}")
    async def get_record(kind: str, record_id: str, x_actor: Optional[str] = Header(None)) -> JSONResponse:
        record = workflow_for(kind).get(record_id, tracker.resolve(x_actor))
        return JSONResponse(record.as_dict())

    @app.post("/{kind}/{record_id}/approve")
    async def approve_record(
        kind: str,
        record_id: str,
        signature: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = workflow_for(kind).approve(record_id, tracker.resolve(x_actor), signature)
        return JSONResponse(result.as_dict())

    @app.post("/{kind}/{record_id}/reject")
    async def reject_record(
        kind: str,
        record_id: str,
        reason: Optional[str] = Form(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = workflow_for(kind).reject(record_id, tracker.resolve(x_actor), reason)
        return JSONResponse(result.as_dict())

    @app.post("/{kind}/{record_id}/resubmit")
    async def resubmit_record(
        kind: str,
        record_id: str,
        updates: Optional[Dict[str, Any]] = Body(None),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = workflow_for(kind).resubmit(record_id, updates or {}, tracker.resolve(x_actor))
        return JSONResponse(result.as_dict())

    @app.patch("/{kind}/{record_id}")
    async def edit_record(
        kind: str,
        record_id: str,
        updates: Dict[str, Any] = Body(...),
        x_actor: Optional[str] = Header(None),
    ) -> JSONResponse:
        result = workflow_for(kind).edit(record_id, updates, tracker.resolve(x_actor))
        return JSONResponse(result.as_dict())

    @app.delete("/{kind}/{record_id}")
    async def delete_record(kind: str, record_id: str, x_actor: Optional[str] = Header(None)) -> JSONResponse:
        result = workflow_for(kind).delete(record_id, tracker.resolve(x_actor))
        return JSONResponse(result.as_dict())

    return app
