"""Mini README: Report views built on the ledger engine.

Exports the monthly summary and agent statement helpers used by the API and
CLI.
"""

from .summary import AgentStatement, PeriodSummary, agent_statement, month_bounds, monthly_summary

__all__ = ["AgentStatement", "PeriodSummary", "agent_statement", "month_bounds", "monthly_summary"]
