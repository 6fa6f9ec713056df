"""Mini README: Agent records and identity resolution.

Exports the ``AgentDirectory`` that maps authenticated identities onto
agents, together with the ``Agent`` record and ``AgentRole`` enum.
"""

from .directory import Agent, AgentDirectory, AgentRole

__all__ = ["Agent", "AgentDirectory", "AgentRole"]
