"""Mini README: Entry point CLI for the PEPI funds tracker.

This script exposes a Typer CLI with two commands:
    * run - start the FastAPI JSON API with uvicorn, drawing host, port and
      log level from ``PEPI_`` environment variables when not given.
    * demo - seed an in-memory tracker, walk a fund request through approval
      and print the resulting balances.
"""

from __future__ import annotations

import typer
import uvicorn

from pepitracker import FundsTracker
from pepitracker.configuration import get_settings
from pepitracker.finance import ApprovalStatus
from pepitracker.logging_utils import configure_root_logger
from pepitracker.utils.money import format_currency

cli = typer.Typer(help="Launch and explore the PEPI funds tracker.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(settings.log_level)

    # 0.0.0.0 and :: are bind addresses, not browsable ones.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting the funds tracker on {effective_host}:{effective_port}.\n"
        f"API docs: http://{browser_host}:{effective_port}/docs"
        + (" (send an X-Actor header such as admin@pepi.local)." if settings.seed_demo_data else "")
    )
    uvicorn.run(
        "pepitracker.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command()
def demo(
    year: int = typer.Option(None, help="Fiscal year of the demo book."),
    starting_amount: str = typer.Option("10000.00", help="Starting amount of the demo book."),
) -> None:
    """Seed demo data, approve a fund request and print the balances."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    tracker = FundsTracker(settings=settings)
    seeded = tracker.seed_demo(year, starting_amount)
    admin = tracker.agents.get(seeded["admin"])
    for request in tracker.fund_requests.list(admin, status=ApprovalStatus.PENDING):
        tracker.fund_requests.approve(request.request_id, admin)

    balances = tracker.balances(seeded["book"])
    currency = settings.currency_code
    typer.echo(f"Book {tracker.books.get_book(seeded['book']).year}")
    typer.echo(f"  Starting amount:      {format_currency(balances.starting_amount, currency)}")
    typer.echo(f"  Pool balance:         {format_currency(balances.pool_balance, currency)}")
    typer.echo(f"  Agents cash on hand:  {format_currency(balances.agents_cash_on_hand, currency)}")
    typer.echo(f"  Safe cash:            {format_currency(balances.safe_cash, currency)}")
    for agent_id, position in sorted(balances.agents.items()):
        name = tracker.agents.get(agent_id).name
        typer.echo(f"  {name:<20}  {format_currency(position.cash_on_hand, currency)}")


if __name__ == "__main__":
    cli()
