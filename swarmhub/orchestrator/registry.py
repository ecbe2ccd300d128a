"""AgentRegistry: the roster of agents known to a hub session.

Entries are never removed. Unregistering marks an agent completed, so its
history still counts toward success rates and summaries.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from swarmhub.models import Agent, AgentStatus

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Ordered agent roster. Callers hold the hub lock around mutations."""

    def __init__(self) -> None:
        # dicts keep insertion order; overwriting a key keeps its position
        self._agents: Dict[str, Agent] = {}

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    # ── Public API ──

    def register(
        self,
        agent_id: str,
        capabilities: Optional[Iterable[str]] = None,
        *,
        name: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> Agent:
        """Register or re-register an agent as active."""
        agent = Agent(
            id=agent_id,
            name=name or agent_id,
            type=agent_type or "",
            capabilities=list(capabilities or []),
        )
        if agent_id in self._agents:
            logger.debug("Re-registering agent %s", agent_id)
        self._agents[agent_id] = agent
        logger.info(
            "Registered agent %s (%s) with capabilities %s",
            agent_id, agent.type or "untyped", ", ".join(agent.capabilities) or "none",
        )
        return agent

    def unregister(self, agent_id: str) -> Optional[Agent]:
        """Mark an agent completed. Unknown ids are ignored."""
        agent = self._agents.get(agent_id)
        if agent is None:
            logger.debug("Unregister for unknown agent %s ignored", agent_id)
            return None
        updated = agent.model_copy(update={
            "status": AgentStatus.COMPLETED,
            "unregistered_at": datetime.now(timezone.utc).isoformat(),
        })
        self._agents[agent_id] = updated
        logger.info("Agent %s completed", agent_id)
        return updated

    def get(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get(agent_id)

    def all(self) -> List[Agent]:
        return list(self._agents.values())

    def active_agents(self) -> List[Agent]:
        return [a for a in self._agents.values() if a.is_active]

    # ── Persistence ──

    def to_state(self) -> List[Dict[str, Any]]:
        return [a.model_dump(mode="json") for a in self._agents.values()]

    def load_state(self, agents: Optional[List[Dict[str, Any]]]) -> None:
        loaded: Dict[str, Agent] = {}
        for data in agents or []:
            agent = Agent.model_validate(data)
            loaded[agent.id] = agent
        self._agents = loaded
