"""TaskRouter: ranks active agents for a task and picks one, or abstains.

Routing algorithm:
1. Copy a snapshot of hub state
2. Resolve the required capability (declared, else inferred)
3. Embed the task and find similar past issues (LIVE index only)
4. Score every active agent: capability, semantic history, success rate
5. Stable sort by total; ties keep registration order
6. Abstain when the top score is under the confidence floor

Output is advisory. The router never assigns work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from swarmhub.memory.knowledge import HubSnapshot
from swarmhub.models import Agent, Alternative, RoutingTask
from swarmhub.orchestrator.scorer import AgentScorer, ScoreBreakdown, ScoringContext

logger = logging.getLogger(__name__)

NO_AGENTS_REASON = "No active agents available"


@dataclass
class RoutingDecision:
    agent: Optional[Agent] = None
    confidence: float = 0.0
    reason: str = ""
    justification: List[str] = field(default_factory=list)
    alternatives: List[Alternative] = field(default_factory=list)
    required_capability: Optional[str] = None
    scores: List[ScoreBreakdown] = field(default_factory=list)

    @property
    def agent_id(self) -> Optional[str]:
        return self.agent.id if self.agent else None

    @property
    def agent_name(self) -> Optional[str]:
        return self.agent.name if self.agent else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent": self.agent_name,
            "agent_id": self.agent_id,
            "confidence": self.confidence,
            "reason": self.reason,
            "justification": list(self.justification),
            "alternatives": [a.model_dump() for a in self.alternatives],
            "required_capability": self.required_capability,
        }


class TaskRouter:
    """Routes tasks to agents using the multi-signal scorer."""

    def __init__(self, scorer: AgentScorer, snapshot_provider: Optional[Callable[[], HubSnapshot]] = None) -> None:
        self._scorer = scorer
        self._snapshot_provider = snapshot_provider

    def _snapshot(self, snapshot: Optional[HubSnapshot]) -> HubSnapshot:
        if snapshot is not None:
            return snapshot
        if self._snapshot_provider is None:
            return HubSnapshot()
        return self._snapshot_provider()

    def _rank(self, task: RoutingTask, snapshot: HubSnapshot) -> Tuple[ScoringContext, List[Tuple[Agent, ScoreBreakdown]]]:
        context = self._scorer.prepare(task, snapshot)
        ranked = [(agent, self._scorer.score(agent, context)) for agent in snapshot.active_agents()]
        # sorted() is stable, so equal totals stay in registration order
        return context, sorted(ranked, key=lambda pair: pair[1].total, reverse=True)

    def rank(self, task: Any, snapshot: Optional[HubSnapshot] = None) -> List[Tuple[Agent, ScoreBreakdown]]:
        """All active agents as (agent, breakdown), best first."""
        snapshot = self._snapshot(snapshot)
        if not snapshot.active_agents():
            return []
        return self._rank(RoutingTask.coerce(task), snapshot)[1]

    def recommend(
        self,
        task: Any,
        min_confidence: float = 0.3,
        max_candidates: int = 5,
        snapshot: Optional[HubSnapshot] = None,
    ) -> RoutingDecision:
        task = RoutingTask.coerce(task)
        snapshot = self._snapshot(snapshot)
        if not snapshot.active_agents():
            logger.debug("No active agents for task '%s'", task.title)
            return RoutingDecision(reason=NO_AGENTS_REASON)

        context, ranked = self._rank(task, snapshot)
        top_agent, top = ranked[0]
        alternatives = [
            Alternative(agent_id=agent.id, name=agent.name, confidence=breakdown.total)
            for agent, breakdown in ranked[1:max(1, max_candidates)]
        ]
        scores = [breakdown for _, breakdown in ranked]

        if top.total < min_confidence:
            reason = f"Low confidence ({top.total * 100:.0f}% < {min_confidence * 100:.0f}% threshold)"
            logger.info("No recommendation for '%s': %s", task.title, reason)
            return RoutingDecision(
                confidence=top.total,
                reason=reason,
                alternatives=alternatives,
                required_capability=context.required_capability,
                scores=scores,
            )

        logger.info(
            "Recommended %s for '%s' (confidence %.2f: %s)",
            top_agent.name, task.title, top.total, top.reason,
        )
        return RoutingDecision(
            agent=top_agent,
            confidence=top.total,
            reason=top.reason,
            justification=list(top.justification),
            alternatives=alternatives,
            required_capability=context.required_capability,
            scores=scores,
        )
