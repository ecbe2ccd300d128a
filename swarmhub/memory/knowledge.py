"""Append-only findings, issues, fixes and recommendations.

The store is not thread-safe on its own. The hub holds the lock that
serializes every mutation and hands readers an immutable ``HubSnapshot``
instead of the live lists.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from swarmhub.models import (
    Agent,
    Finding,
    Fix,
    HelpRequest,
    HelpStatus,
    Issue,
    IssueStatus,
    Recommendation,
)

logger = logging.getLogger(__name__)


# ── Filters ──


def filter_findings(
    findings: Iterable[Finding],
    *,
    type: Optional[str] = None,
    severity: Optional[str] = None,
    category: Optional[str] = None,
    file: Optional[str] = None,
) -> List[Finding]:
    """Exact match on type/severity/category, substring match on file."""
    results = []
    for finding in findings:
        if type and finding.type != type:
            continue
        if severity and finding.severity != severity:
            continue
        if category and finding.category != category:
            continue
        if file and file not in (finding.file or ""):
            continue
        results.append(finding)
    return results


def filter_issues(
    issues: Iterable[Issue],
    *,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    type: Optional[str] = None,
    file: Optional[str] = None,
) -> List[Issue]:
    """Exact match on status/severity/type, substring match on file."""
    if status:
        try:
            status = IssueStatus(status)
        except ValueError:
            return []
    results = []
    for issue in issues:
        if status and issue.status is not status:
            continue
        if severity and issue.severity != severity:
            continue
        if type and issue.type != type:
            continue
        if file and file not in (issue.file or ""):
            continue
        results.append(issue)
    return results


# ── Snapshot ──


@dataclass(frozen=True)
class HubSnapshot:
    """Consistent point-in-time copy of the hub's state."""
    agents: Tuple[Agent, ...] = ()
    findings: Tuple[Finding, ...] = ()
    issues: Tuple[Issue, ...] = ()
    fixes: Tuple[Fix, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()
    help_requests: Tuple[HelpRequest, ...] = ()
    context: Dict[str, Any] = field(default_factory=dict)

    def active_agents(self) -> List[Agent]:
        return [a for a in self.agents if a.is_active]

    def agent(self, agent_id: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def issue(self, issue_id: str) -> Optional[Issue]:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None


# ── Store ──


class KnowledgeStore:
    """Shared findings, issues, fixes, recommendations and help requests."""

    def __init__(self) -> None:
        self.findings: List[Finding] = []
        self.issues: List[Issue] = []
        self.fixes: List[Fix] = []
        self.recommendations: List[Recommendation] = []
        self.help_requests: List[HelpRequest] = []
        self.context: Dict[str, Any] = {}
        self._issue_pos: Dict[str, int] = {}
        self._help_pos: Dict[str, int] = {}

    def add_finding(self, finding: Finding) -> Finding:
        self.findings.append(finding)
        return finding

    def add_issue(self, issue: Issue) -> Issue:
        self._issue_pos[issue.id] = len(self.issues)
        self.issues.append(issue)
        return issue

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        pos = self._issue_pos.get(issue_id)
        return self.issues[pos] if pos is not None else None

    def add_fix(self, fix: Fix) -> Optional[Issue]:
        """Append *fix*; returns the issue it resolved, if any."""
        self.fixes.append(fix)
        if not fix.issue_id:
            return None
        return self.resolve_issue(fix.issue_id, fix.agent_id, at=fix.timestamp)

    def resolve_issue(self, issue_id: str, agent_id: str, at: Optional[str] = None) -> Optional[Issue]:
        """open -> resolved, at most once. Unknown or resolved ids are a no-op."""
        pos = self._issue_pos.get(issue_id)
        if pos is None:
            logger.debug("Fix references unknown issue %s", issue_id)
            return None
        issue = self.issues[pos]
        if not issue.is_open:
            logger.debug("Issue %s already resolved by %s", issue_id, issue.resolved_by)
            return None
        resolved = issue.resolved(agent_id, at)
        self.issues[pos] = resolved
        return resolved

    def add_recommendation(self, recommendation: Recommendation) -> Recommendation:
        self.recommendations.append(recommendation)
        return recommendation

    def add_help_request(self, request: HelpRequest) -> HelpRequest:
        self._help_pos[request.id] = len(self.help_requests)
        self.help_requests.append(request)
        return request

    def assign_help_request(self, request_id: str, agent_id: str) -> Optional[HelpRequest]:
        pos = self._help_pos.get(request_id)
        if pos is None:
            return None
        updated = self.help_requests[pos].model_copy(
            update={"status": HelpStatus.ASSIGNED, "assigned_to": agent_id}
        )
        self.help_requests[pos] = updated
        return updated

    def snapshot(self, agents: Sequence[Agent] = ()) -> HubSnapshot:
        return HubSnapshot(
            agents=tuple(agents),
            findings=tuple(self.findings),
            issues=tuple(self.issues),
            fixes=tuple(self.fixes),
            recommendations=tuple(self.recommendations),
            help_requests=tuple(self.help_requests),
            context=copy.deepcopy(self.context),
        )

    # ── Persistence ──

    def to_state(self) -> Dict[str, Any]:
        return {
            "findings": [f.model_dump(mode="json") for f in self.findings],
            "issues": [i.model_dump(mode="json") for i in self.issues],
            "fixes": [f.model_dump(mode="json") for f in self.fixes],
            "recommendations": [r.model_dump(mode="json") for r in self.recommendations],
            "help_requests": [h.model_dump(mode="json") for h in self.help_requests],
            "context": dict(self.context),
        }

    def load_state(self, state: Dict[str, Any]) -> None:
        """Replace contents with *state*; missing keys mean empty collections.

        Every record is validated before anything is replaced, so a
        ``ValidationError`` leaves the store as it was.
        """
        findings = [Finding.model_validate(f) for f in state.get("findings") or []]
        issues = [Issue.model_validate(i) for i in state.get("issues") or []]
        fixes = [Fix.model_validate(f) for f in state.get("fixes") or []]
        recommendations = [
            Recommendation.model_validate(r) for r in state.get("recommendations") or []
        ]
        help_requests = [
            HelpRequest.model_validate(h) for h in state.get("help_requests") or []
        ]

        self.findings = findings
        self.issues = issues
        self.fixes = fixes
        self.recommendations = recommendations
        self.help_requests = help_requests
        self.context = copy.deepcopy(dict(state.get("context") or {}))
        self._issue_pos = {issue.id: pos for pos, issue in enumerate(self.issues)}
        self._help_pos = {req.id: pos for pos, req in enumerate(self.help_requests)}
