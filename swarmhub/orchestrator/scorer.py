"""AgentScorer: blends capability, semantic history and success rate.

Scoring happens in two phases. ``prepare`` does the slow part once per task
(embedding the task text and searching past issues); ``score`` is then a
pure function of one agent and that prepared context. The hub calls both
without holding its lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from swarmhub.configs.base import RoutingConfig
from swarmhub.memory.knowledge import HubSnapshot
from swarmhub.models import Agent, RoutingTask
from swarmhub.orchestrator.capabilities import CapabilityMatcher
from swarmhub.orchestrator.performance import PerformanceTracker

logger = logging.getLogger(__name__)


@dataclass
class ScoreBreakdown:
    agent_id: str
    capability: float = 0.0
    semantic: float = 0.0
    success: float = 0.0
    total: float = 0.0
    justification: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return ", ".join(self.justification) if self.justification else "no specific match"

    def to_dict(self) -> Dict[str, object]:
        return {
            "agent_id": self.agent_id,
            "capability": self.capability,
            "semantic": self.semantic,
            "success": self.success,
            "total": self.total,
            "justification": list(self.justification),
        }


@dataclass
class ScoringContext:
    """Everything about one task that every agent is scored against."""
    task: RoutingTask
    snapshot: HubSnapshot
    required_capability: Optional[str]
    performance: PerformanceTracker
    # (issue_id, similarity) for past issues near the task text, best first
    similar_issues: List[Tuple[str, float]] = field(default_factory=list)
    # resolver agent id -> similarities of the similar issues it resolved
    resolved_similar: Dict[str, List[float]] = field(default_factory=dict)


class AgentScorer:
    def __init__(self, index, matcher: Optional[CapabilityMatcher] = None, config: Optional[RoutingConfig] = None):
        self.index = index
        self.matcher = matcher or CapabilityMatcher()
        self.config = config or RoutingConfig()

    def prepare(self, task, snapshot: HubSnapshot) -> ScoringContext:
        task = RoutingTask.coerce(task)
        required = self.matcher.required_capability(
            task.required_capability, task.type, task.title, infer=self.config.infer_capability,
        )
        similar = self._similar_issues(task)

        # resolution state comes from the snapshot, not from index metadata
        resolvers = {i.id: i.resolved_by for i in snapshot.issues if not i.is_open and i.resolved_by}
        resolved_similar: Dict[str, List[float]] = {}
        for issue_id, similarity in similar:
            resolver = resolvers.get(issue_id)
            if resolver:
                resolved_similar.setdefault(resolver, []).append(similarity)

        return ScoringContext(
            task=task,
            snapshot=snapshot,
            required_capability=required,
            performance=PerformanceTracker.from_snapshot(snapshot),
            similar_issues=similar,
            resolved_similar=resolved_similar,
        )

    def _similar_issues(self, task: RoutingTask) -> List[Tuple[str, float]]:
        if self.index is None or not self.index.is_live:
            return []
        k = self.config.semantic_search_k
        if task.vector:
            hits = self.index.search(task.vector, k=k, record_type="issue")
        else:
            text = task.text()
            if not text:
                return []
            hits = self.index.search_text(text, k=k, record_type="issue")
        # the same issue may have been indexed more than once; keep its best score
        best: Dict[str, float] = {}
        for hit in hits:
            if hit.score > best.get(hit.id, -1.0):
                best[hit.id] = hit.score
        return sorted(best.items(), key=lambda item: item[1], reverse=True)

    def score(self, agent: Agent, context: ScoringContext) -> ScoreBreakdown:
        breakdown = ScoreBreakdown(agent_id=agent.id)

        match = self.matcher.match(agent.capabilities, context.required_capability)
        breakdown.capability = match.score
        if match.exact:
            breakdown.justification.append(f"has {match.matched} capability")
        elif match.matched:
            breakdown.justification.append(f"has related capability: {match.matched}")

        resolved_scores = context.resolved_similar.get(agent.id, [])
        if resolved_scores:
            breakdown.semantic = sum(resolved_scores) / len(resolved_scores)
            breakdown.justification.append(f"resolved {len(resolved_scores)} similar issue(s)")

        stats = context.performance.stats(agent.id)
        breakdown.success = stats.success_rate
        if stats.resolved:
            breakdown.justification.append(f"{stats.resolved}/{stats.associated} issues resolved")

        breakdown.total = self.combine(breakdown.capability, breakdown.semantic, breakdown.success)
        return breakdown

    def combine(self, capability: float, semantic: float, success: float) -> float:
        """Weighted sum. Weights are not renormalized for missing signals."""
        cfg = self.config
        total = (
            cfg.capability_weight * capability
            + cfg.semantic_weight * semantic
            + cfg.success_weight * success
        )
        return min(1.0, max(0.0, total))
