"""Per-agent track record derived from the issue and fix history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from swarmhub.models import Finding, Fix, Issue


@dataclass
class AgentStats:
    agent_id: str
    associated: int = 0   # issues reported by or resolved by the agent
    resolved: int = 0     # issues resolved by the agent
    open: int = 0         # associated issues still open
    findings: int = 0
    fixes: int = 0

    @property
    def success_rate(self) -> float:
        return self.resolved / self.associated if self.associated else 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "agent_id": self.agent_id,
            "total_issues": self.associated,
            "resolved_issues": self.resolved,
            "open_issues": self.open,
            "findings": self.findings,
            "fixes": self.fixes,
            "success_rate": round(self.success_rate, 4),
        }


class PerformanceTracker:
    """Computes success rates in one pass over a snapshot."""

    def __init__(self) -> None:
        self._stats: Dict[str, AgentStats] = {}

    @classmethod
    def from_records(
        cls,
        issues: Iterable[Issue],
        findings: Iterable[Finding] = (),
        fixes: Iterable[Fix] = (),
    ) -> "PerformanceTracker":
        tracker = cls()
        for issue in issues:
            involved = {issue.agent_id}
            if issue.resolved_by:
                involved.add(issue.resolved_by)
            for agent_id in involved:
                stats = tracker._entry(agent_id)
                stats.associated += 1
                if issue.is_open:
                    stats.open += 1
            if issue.resolved_by:
                tracker._entry(issue.resolved_by).resolved += 1
        for finding in findings:
            tracker._entry(finding.agent_id).findings += 1
        for fix in fixes:
            tracker._entry(fix.agent_id).fixes += 1
        return tracker

    @classmethod
    def from_snapshot(cls, snapshot) -> "PerformanceTracker":
        return cls.from_records(snapshot.issues, snapshot.findings, snapshot.fixes)

    def _entry(self, agent_id: str) -> AgentStats:
        stats = self._stats.get(agent_id)
        if stats is None:
            stats = self._stats[agent_id] = AgentStats(agent_id)
        return stats

    def stats(self, agent_id: str) -> AgentStats:
        return self._stats.get(agent_id) or AgentStats(agent_id)

    def success_rate(self, agent_id: str) -> float:
        stats = self._stats.get(agent_id)
        return stats.success_rate if stats else 0.0
