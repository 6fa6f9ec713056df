"""Mini README: Agent directory and identity resolution.

Structure:
    * AgentRole - ``agent`` or ``admin``.
    * Agent - dataclass describing a task force member.
    * AgentDirectory - registers agents and resolves an authenticated
      identity into the acting ``Agent``.

The directory never checks credentials. The identity provider in front of
the tracker authenticates the caller and hands over an identity reference;
``resolve`` only maps that reference onto an active agent record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import InvalidField, Unauthenticated
from ..logging_utils import get_logger
from ..storage import RecordKind, RecordStore
from ..utils.fields import optional_text, record_as_dict, required_text

LOGGER = get_logger(__name__)


class AgentRole(str, Enum):
    """Roles an agent record can carry."""

    AGENT = "agent"
    ADMIN = "admin"

    @classmethod
    def from_str(cls, value: object) -> "AgentRole":
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise InvalidField(f"Unsupported role: {value}") from error


@dataclass(slots=True)
class Agent:
    """Task force member who can hold cash or review movements."""

    agent_id: str
    name: str
    role: AgentRole = AgentRole.AGENT
    identity: Optional[str] = None
    badge_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == AgentRole.ADMIN

    def as_dict(self) -> Dict[str, Any]:
        return record_as_dict(self)


class AgentDirectory:
    """Registry of agents backed by the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def register(
        self,
        name: str,
        *,
        role: object = AgentRole.AGENT,
        identity: Optional[str] = None,
        badge_number: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> Agent:
        """Add an agent, keeping identity references unique."""

        role = AgentRole.from_str(role.value if isinstance(role, AgentRole) else role)
        try:
            name = required_text(name)
        except ValueError as error:
            raise InvalidField("Agents need a display name.") from error
        identity = optional_text(identity)
        with self._store.atomic():
            if identity and self._store.query(RecordKind.AGENT, identity=identity):
                raise InvalidField(f"Identity {identity} is already linked to an agent.")
            agent = self._store.insert(
                RecordKind.AGENT,
                Agent(
                    agent_id=agent_id or self._store.new_id(),
                    name=name,
                    role=role,
                    identity=identity,
                    badge_number=optional_text(badge_number),
                    email=optional_text(email),
                    phone=optional_text(phone),
                ),
            )
        LOGGER.info("Registered %s '%s' (%s)", agent.role.value, agent.name, agent.agent_id)
        return agent

    def get(self, agent_id: str) -> Agent:
        return self._store.require(RecordKind.AGENT, agent_id)

    def find(self, agent_id: Optional[str]) -> Optional[Agent]:
        if agent_id is None:
            return None
        return self._store.get(RecordKind.AGENT, agent_id)

    def list_agents(self, *, active_only: bool = False) -> List[Agent]:
        """Return agents sorted by name."""

        agents = self._store.query(RecordKind.AGENT)
        if active_only:
            agents = [agent for agent in agents if agent.is_active]
        return sorted(agents, key=lambda agent: (agent.name.lower(), agent.agent_id))

    def resolve(self, identity: Optional[str]) -> Agent:
        """Map an authenticated identity onto an active agent."""

        if not identity:
            raise Unauthenticated("No authenticated identity was supplied.")
        matches = self._store.query(RecordKind.AGENT, identity=identity)
        if not matches:
            LOGGER.warning("Identity %s has no agent record", identity)
            raise Unauthenticated(f"Identity {identity} is not linked to an agent.")
        agent = matches[0]
        if not agent.is_active:
            LOGGER.warning("Inactive agent %s attempted to act", agent.agent_id)
            raise Unauthenticated(f"Agent {agent.name} is inactive.")
        return agent

    def set_active(self, agent_id: str, is_active: bool) -> Agent:
        agent = self._store.update(RecordKind.AGENT, agent_id, is_active=is_active)
        LOGGER.info("Agent %s is_active=%s", agent_id, is_active)
        return agent
