"""CoordinationHub: shared knowledge and advisory routing for an agent swarm.

Agents report findings, issues and fixes through the hub. Each new issue is
routed to the best-suited active agent, and the pick is recorded as a
recommendation. Nothing here makes an agent act.

Concurrency model: one RLock serializes every mutation together with its
flush to disk. Reads and routing copy a ``HubSnapshot`` under the lock and
do their work (embedding, vector search, scoring) after releasing it.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from swarmhub.configs.base import HubConfig
from swarmhub.configs.capabilities import DEFAULT_AGENT_PROFILES
from swarmhub.db.state_store import StateStore, StateStoreError
from swarmhub.memory.knowledge import HubSnapshot, KnowledgeStore, filter_findings, filter_issues
from swarmhub.models import (
    Agent,
    Finding,
    Fix,
    HelpRequest,
    Issue,
    Recommendation,
    RoutingTask,
)
from swarmhub.observability import metrics
from swarmhub.orchestrator.capabilities import CapabilityMatcher
from swarmhub.orchestrator.performance import PerformanceTracker
from swarmhub.orchestrator.registry import AgentRegistry
from swarmhub.orchestrator.router import RoutingDecision, TaskRouter
from swarmhub.orchestrator.scorer import AgentScorer
from swarmhub.retrieval.index import EmbeddingIndex
from swarmhub.utils.factory import StateStoreFactory

logger = logging.getLogger(__name__)

_STATE_FILENAMES = {"json": "coordination.json", "sqlite": "coordination.db"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CoordinationHub:
    """In-process coordination hub for one swarm session.

    Usage:
        hub = CoordinationHub(HubConfig(session_dir="/tmp/run-1"))
        hub.initialize()
        hub.register_agent("sec-1", ["security-analysis"], name="SecurityBot")
        issue = hub.report_issue("scanner", {"title": "SQL injection",
                                             "required_capability": "security-analysis"})
        hub.report_fix("sec-1", {"description": "parameterized query", "issue_id": issue.id})
    """

    def __init__(
        self,
        config: Optional[HubConfig] = None,
        *,
        index: Optional[EmbeddingIndex] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self.config = config or HubConfig()
        self._lock = threading.RLock()

        self.registry = AgentRegistry()
        self.knowledge = KnowledgeStore()

        self._index_degraded_reason: Optional[str] = None
        self.index = index if index is not None else EmbeddingIndex.from_config(
            self.config, on_degrade=self._on_index_degraded,
        )

        self.matcher = CapabilityMatcher.from_config(self.config.capabilities)
        self.scorer = AgentScorer(self.index, self.matcher, self.config.routing)
        self.router = TaskRouter(self.scorer, self.snapshot)

        self._store = state_store if state_store is not None else self._create_state_store()
        self._durable = self._store is not None

    def _create_state_store(self) -> Optional[StateStore]:
        persistence = self.config.persistence
        path = persistence.path
        if path is None and persistence.provider in _STATE_FILENAMES:
            path = os.path.join(self.config.session_dir, _STATE_FILENAMES[persistence.provider])
        try:
            return StateStoreFactory.create(persistence.provider, path, session_id=self.config.session_id)
        except StateStoreError as exc:
            logger.warning("State store unavailable, running in memory only: %s", exc)
            return None

    def _on_index_degraded(self, reason: str) -> None:
        self._index_degraded_reason = reason

    # ── Lifecycle ──

    def initialize(self) -> bool:
        """Restore persisted state. Returns True if a saved session was loaded."""
        if self._store is None:
            return False
        try:
            state = self._store.load()
        except StateStoreError as exc:
            logger.warning("Could not load hub state (%s), starting empty: %s", exc.code, exc.message)
            return False
        if state is None:
            logger.info("No saved session %s, starting empty", self.config.session_id)
            return False

        registry, knowledge = AgentRegistry(), KnowledgeStore()
        try:
            registry.load_state(state.get("agents"))
            knowledge.load_state(state)
        except ValidationError as exc:
            logger.warning(
                "Saved session %s has invalid records, starting empty: %s",
                self.config.session_id, exc,
            )
            return False

        with self._lock:
            self.registry = registry
            self.knowledge = knowledge
            snapshot = self._snapshot_locked()
        logger.info(
            "Restored session %s: %d agents, %d findings, %d issues, %d fixes",
            self.config.session_id, len(snapshot.agents), len(snapshot.findings),
            len(snapshot.issues), len(snapshot.fixes),
        )

        if self.config.reindex_on_load:
            self._reindex(snapshot)
        return True

    def _reindex(self, snapshot: HubSnapshot) -> None:
        records = [
            (f.id, f.text(), "finding", self._finding_metadata(f)) for f in snapshot.findings if f.text()
        ] + [
            (i.id, i.text(), "issue", self._issue_metadata(i)) for i in snapshot.issues if i.text()
        ]
        stored = self.index.add_texts(records)
        logger.info(
            "Re-indexed %d of %d records (%d findings, %d issues)",
            stored, len(records), len(snapshot.findings), len(snapshot.issues),
        )

    def close(self) -> None:
        self.index.close()
        if self._store is not None:
            self._store.close()

    def __enter__(self) -> "CoordinationHub":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── State & persistence ──

    @property
    def durable(self) -> bool:
        """False when there is no store or the last flush failed."""
        return self._durable

    def _state(self) -> Dict[str, Any]:
        return {"agents": self.registry.to_state(), **self.knowledge.to_state()}

    def _flush(self) -> None:
        """Persist current state. Caller holds the lock. Never raises."""
        if self._store is None:
            return
        try:
            self._store.save(self._state())
        except StateStoreError as exc:
            self._flush_failed(exc.code, exc.message)
            return
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            self._flush_failed("serialize_failed", str(exc))
            return
        if not self._durable:
            logger.info("Hub state flush recovered")
        self._durable = True

    def _flush_failed(self, code: str, message: str) -> None:
        logger.warning("Hub state flush failed (%s): %s", code, message)
        metrics.increment("flush_failures")
        self._durable = False

    def _snapshot_locked(self) -> HubSnapshot:
        return self.knowledge.snapshot(self.registry.all())

    def snapshot(self) -> HubSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _agent_name(self, agent_id: str) -> Optional[str]:
        agent = self.registry.get(agent_id)
        return agent.name if agent else None

    # ── Agents ──

    def register_agent(
        self,
        agent_id: str,
        capabilities: Optional[Iterable[str]] = None,
        *,
        name: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> Agent:
        with metrics.measure("register_agent"), self._lock:
            agent = self.registry.register(agent_id, capabilities, name=name, agent_type=agent_type)
            self._flush()
        return agent

    def unregister_agent(self, agent_id: str) -> Optional[Agent]:
        with metrics.measure("unregister_agent"), self._lock:
            agent = self.registry.unregister(agent_id)
            if agent is not None:
                self._flush()
        return agent

    def register_from_config(
        self,
        agents: Mapping[str, Any],
        caps_map: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> List[Agent]:
        """Register agents from a name -> definition mapping.

        Capabilities come from ``caps_map[name]`` when present, else from the
        default profile for the agent's type, else the custom profile.
        """
        caps_map = caps_map or {}
        registered = []
        for name, definition in agents.items():
            if isinstance(definition, Mapping):
                agent_type = definition.get("type") or "custom"
            else:
                agent_type = getattr(definition, "type", None) or "custom"
            if name in caps_map:
                profile = caps_map[name]
            else:
                profile = DEFAULT_AGENT_PROFILES.get(agent_type, DEFAULT_AGENT_PROFILES["custom"])
            registered.append(self.register_agent(
                name,
                profile.get("capabilities") or [self.matcher.default_capability],
                name=name,
                agent_type=agent_type,
            ))
        return registered

    # ── Findings ──

    def share_finding(self, agent_id: str, finding: Mapping[str, Any]) -> Finding:
        with metrics.measure("share_finding"):
            with self._lock:
                record = Finding.from_payload(agent_id, self._agent_name(agent_id), finding)
                self.knowledge.add_finding(record)
                self._flush()
            metrics.increment("findings_shared")
            logger.info("Finding shared by %s: %s", agent_id, record.summary)

            self._index_finding(record)
            self.notify_relevant_agents(record)
        return record

    def _index_finding(self, finding: Finding) -> None:
        text = finding.text()
        if text:
            self.index.add_text(finding.id, text, "finding", self._finding_metadata(finding))

    @staticmethod
    def _finding_metadata(finding: Finding) -> Dict[str, Any]:
        return {
            "agent_id": finding.agent_id,
            "severity": finding.severity,
            "category": finding.category,
        }

    def notify_relevant_agents(self, finding: Finding) -> List[str]:
        """Ids of other active agents whose capabilities match the finding."""
        tags = set(finding.tags)
        notified = []
        for agent in self.snapshot().active_agents():
            if agent.id == finding.agent_id:
                continue
            if any(cap in tags or cap == finding.type for cap in agent.capabilities):
                notified.append(agent.id)
                logger.debug("Finding %s relevant to %s", finding.id, agent.id)
        return notified

    def query_findings(
        self,
        type: Optional[str] = None,
        severity: Optional[str] = None,
        category: Optional[str] = None,
        file: Optional[str] = None,
    ) -> List[Finding]:
        return filter_findings(
            self.snapshot().findings, type=type, severity=severity, category=category, file=file,
        )

    # ── Issues ──

    def report_issue(self, agent_id: str, issue: Mapping[str, Any]) -> Issue:
        """Record an open issue and publish an advisory recommendation for it."""
        with metrics.measure("report_issue"):
            with self._lock:
                record = Issue.from_payload(agent_id, self._agent_name(agent_id), issue)
                self.knowledge.add_issue(record)
                self._flush()
            metrics.increment("issues_reported")
            logger.info("Issue reported by %s: %s", agent_id, record.title)

            vector = self._index_issue(record)
            self.dispatch_issue(record, vector=vector)
        return record

    def _index_issue(self, issue: Issue) -> Optional[List[float]]:
        """Embed and store *issue*; returns its vector for routing."""
        text = issue.text()
        if not text:
            return None
        vector = self.index.embed(text)
        self.index.store(issue.id, vector, {**self._issue_metadata(issue), "type": "issue", "text": text})
        return vector

    @staticmethod
    def _issue_metadata(issue: Issue) -> Dict[str, Any]:
        return {"agent_id": issue.agent_id, "severity": issue.severity}

    def dispatch_issue(self, issue: Issue, vector: Optional[List[float]] = None) -> RoutingDecision:
        """Route *issue* and store the pick as a Recommendation.

        *vector* is the issue's embedding when the caller already has it.
        """
        routing = self.config.routing
        decision = self.router.recommend(
            RoutingTask.from_issue(issue, vector=vector),
            min_confidence=routing.dispatch_min_confidence,
            max_candidates=routing.dispatch_max_candidates,
            snapshot=self.snapshot(),
        )
        if decision.agent is None:
            metrics.increment("routing_abstentions")
            logger.info("No specialist for issue %s: %s", issue.id, decision.reason)
            return decision

        recommendation = Recommendation(
            issue_id=issue.id,
            recommended_agent=decision.agent.name,
            recommended_agent_id=decision.agent.id,
            confidence=decision.confidence,
            reason=decision.reason,
            justification=decision.justification,
            alternatives=decision.alternatives,
        )
        with self._lock:
            self.knowledge.add_recommendation(recommendation)
            self._flush()
        metrics.increment("recommendations_made")
        return decision

    def report_fix(self, agent_id: str, fix: Mapping[str, Any]) -> Fix:
        """Record a fix; resolves the referenced issue if it is still open."""
        with metrics.measure("report_fix"):
            with self._lock:
                record = Fix.from_payload(agent_id, self._agent_name(agent_id), fix)
                resolved = self.knowledge.add_fix(record)
                self._flush()
            metrics.increment("fixes_reported")
            if resolved is not None:
                metrics.increment("issues_resolved")
                logger.info("Issue %s resolved by %s", resolved.id, agent_id)
        return record

    def query_issues(
        self,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        type: Optional[str] = None,
        file: Optional[str] = None,
    ) -> List[Issue]:
        return filter_issues(
            self.snapshot().issues, status=status, severity=severity, type=type, file=file,
        )

    # ── Routing ──

    def recommend(
        self,
        task: Union[RoutingTask, Issue, Mapping[str, Any]],
        min_confidence: Optional[float] = None,
        max_candidates: Optional[int] = None,
    ) -> RoutingDecision:
        """Advisory routing decision for *task*. Nothing is stored."""
        routing = self.config.routing
        with metrics.measure("recommend"):
            return self.router.recommend(
                task,
                min_confidence=routing.dispatch_min_confidence if min_confidence is None else min_confidence,
                max_candidates=routing.dispatch_max_candidates if max_candidates is None else max_candidates,
                snapshot=self.snapshot(),
            )

    def recommend_agent_for_task(self, task: Mapping[str, Any]) -> RoutingDecision:
        """Exploratory routing for a workflow task (lower bar, fewer candidates)."""
        routing = self.config.routing
        return self.recommend(
            RoutingTask.from_mapping(task),
            min_confidence=routing.task_min_confidence,
            max_candidates=routing.task_max_candidates,
        )

    # ── Help requests ──

    def request_help(self, agent_id: str, request: Mapping[str, Any]) -> HelpRequest:
        with metrics.measure("request_help"):
            with self._lock:
                record = HelpRequest.from_payload(agent_id, self._agent_name(agent_id), request)
                self.knowledge.add_help_request(record)
                self._flush()
            logger.info("Help requested by %s: %s", agent_id, record.description or record.title)

            helper = self.find_helper_agent(record)
            if helper is None:
                return record
            with self._lock:
                assigned = self.knowledge.assign_help_request(record.id, helper.id) or record
                self._flush()
            logger.info("Help request %s routed to %s", record.id, helper.name)
        return assigned

    def find_helper_agent(self, request: Union[HelpRequest, Mapping[str, Any]]) -> Optional[Agent]:
        """Route on title/description when present, else first agent with the capability."""
        if isinstance(request, Mapping):
            request = HelpRequest.from_payload("", None, request)
        if request.title or request.description:
            task = RoutingTask(
                title=request.title or request.description or "",
                description=request.description or "",
                required_capability=request.capability,
            )
            return self.recommend(task).agent
        for agent in self.snapshot().active_agents():
            if request.capability and request.capability in agent.capabilities:
                return agent
        return None

    # ── Reporting ──

    def recommendations_for(self, agent_id: str) -> List[Dict[str, Any]]:
        """Advisory work items for one agent: solvable issues and related findings."""
        snapshot = self.snapshot()
        agent = snapshot.agent(agent_id)
        if agent is None:
            return []

        items: List[Dict[str, Any]] = []
        solvable = [
            issue for issue in snapshot.issues
            if issue.is_open and issue.required_capability in agent.capabilities
        ]
        if solvable:
            items.append({
                "type": "issue_resolution",
                "priority": "high",
                "message": f"Found {len(solvable)} issues you can resolve",
                "issues": solvable[:5],
            })

        related = [
            finding for finding in snapshot.findings
            if finding.agent_id != agent_id and agent.type and finding.category == agent.type
        ]
        if related:
            items.append({
                "type": "context",
                "priority": "medium",
                "message": f"Review {len(related)} related findings from other agents",
                "findings": related[:3],
            })
        return items

    def agent_stats(self, agent_id: str) -> Dict[str, Any]:
        snapshot = self.snapshot()
        stats = PerformanceTracker.from_snapshot(snapshot).stats(agent_id).to_dict()
        agent = snapshot.agent(agent_id)
        stats["name"] = agent.name if agent else None
        stats["status"] = agent.status.value if agent else None
        return stats

    def summary(self) -> Dict[str, Any]:
        snapshot = self.snapshot()
        open_issues = sum(1 for i in snapshot.issues if i.is_open)
        active = len(snapshot.active_agents())
        return {
            "session_id": self.config.session_id,
            "total_findings": len(snapshot.findings),
            "total_issues": len(snapshot.issues),
            "open_issues": open_issues,
            "resolved_issues": len(snapshot.issues) - open_issues,
            "total_fixes": len(snapshot.fixes),
            "recommendations": len(snapshot.recommendations),
            "help_requests": len(snapshot.help_requests),
            "active_agents": active,
            "completed_agents": len(snapshot.agents) - active,
            "durable": self._durable,
            "index": self.index.stats(),
            "context": snapshot.context,
        }

    # ── Semantic search ──

    def search_similar_findings(self, text: str, k: int = 5) -> List[Dict[str, Any]]:
        return self._search_similar(text, k, "finding")

    def search_similar_issues(self, text: str, k: int = 5) -> List[Dict[str, Any]]:
        return self._search_similar(text, k, "issue")

    def _search_similar(self, text: str, k: int, record_type: str) -> List[Dict[str, Any]]:
        if not self.index.is_available():
            return []
        hits = self.index.search_text(text, k=k, record_type=record_type)
        snapshot = self.snapshot()
        records = {r.id: r for r in (snapshot.findings if record_type == "finding" else snapshot.issues)}
        results = []
        seen = set()
        for hit in hits:
            if hit.id in seen:
                continue
            seen.add(hit.id)
            results.append({"id": hit.id, "score": hit.score, record_type: records.get(hit.id)})
        return results

    # ── Workflow context ──

    def initialize_workflow(self, name: str, goal: Optional[str] = None) -> Dict[str, Any]:
        context = {"name": name, "goal": goal, "started_at": _now()}
        with self._lock:
            self.knowledge.context["workflow"] = context
            self._flush()
        logger.info("Coordinating workflow %s", name)
        return context

    def initialize_pipeline(
        self,
        name: str,
        goal: Optional[str] = None,
        strategy: Optional[str] = None,
    ) -> Dict[str, Any]:
        context = {"name": name, "goal": goal, "strategy": strategy, "started_at": _now()}
        with self._lock:
            self.knowledge.context["pipeline"] = context
            self._flush()
        logger.info("Coordinating pipeline %s (%s)", name, strategy or "default")
        return context

    def coordinate_step(
        self,
        step: Mapping[str, Any],
        previous_results: Iterable[Mapping[str, Any]] = (),
    ) -> Dict[str, Any]:
        """Summarize earlier step results, optionally sharing them as a finding."""
        insights: Dict[str, Any] = {"total_issues_found": 0, "critical_issues": []}
        for result in previous_results:
            issues = (result.get("result") or {}).get("issues") or []
            insights["total_issues_found"] += len(issues)
            insights["critical_issues"].extend(i for i in issues if i.get("severity") == "critical")

        if step.get("share_insights"):
            self.share_finding("coordinator", {
                "type": "coordination-insight",
                "summary": step.get("description", ""),
                "insights": dict(insights, critical_issues=list(insights["critical_issues"])),
                "upcoming_agents": list(step.get("upcoming_agents") or []),
            })
        return insights
