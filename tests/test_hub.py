"""End-to-end tests for CoordinationHub."""

import pytest

from swarmhub.hub import CoordinationHub
from swarmhub.models import AgentStatus, HelpStatus, IssueStatus
from swarmhub.observability import metrics
from swarmhub.retrieval.index import IndexMode

from conftest import offline_config


# ── Agents ──

class TestAgents:
    def test_register_and_unregister(self, hub):
        hub.register_agent("sec-1", ["security-analysis"], name="SecurityBot", agent_type="security")
        hub.unregister_agent("sec-1")
        agent = hub.snapshot().agent("sec-1")
        assert agent.status is AgentStatus.COMPLETED
        assert hub.summary()["completed_agents"] == 1

    def test_unregister_unknown(self, hub):
        assert hub.unregister_agent("ghost") is None

    def test_register_from_config(self, hub):
        agents = hub.register_from_config(
            {"sec": {"type": "security"}, "odd": {"type": "mystery"}, "mine": {"type": "ui"}},
            caps_map={"mine": {"capabilities": ["accessibility"]}},
        )
        by_id = {a.id: a for a in agents}
        assert "security-analysis" in by_id["sec"].capabilities
        assert by_id["odd"].capabilities == ["general"]
        assert by_id["mine"].capabilities == ["accessibility"]
        assert by_id["mine"].type == "ui"

    def test_register_from_config_objects(self, hub):
        class AgentDef:
            type = "testing"

        agent = hub.register_from_config({"qa": AgentDef()})[0]
        assert "testing" in agent.capabilities


# ── Issues, fixes, recommendations ──

class TestIssueLifecycle:
    def test_security_bot_scenario(self, hub):
        hub.register_agent("sec-1", ["security-analysis"], name="SecurityBot")
        hub.register_agent("style-1", ["code-style"], name="StyleBot")
        issue = hub.report_issue("scanner", {
            "title": "SQL injection",
            "description": "user input concatenated into query",
            "required_capability": "security-analysis",
        })
        recs = hub.snapshot().recommendations
        assert len(recs) == 1
        rec = recs[0]
        assert rec.issue_id == issue.id
        assert rec.recommended_agent == "SecurityBot"
        assert rec.confidence >= 0.4
        assert any("security-analysis" in clause for clause in rec.justification)
        # advisory only: the issue stays open and unassigned
        assert hub.snapshot().issue(issue.id).status is IssueStatus.OPEN

    def test_quantum_debugging_abstains(self, hub):
        hub.register_agent("sec-1", ["security-analysis"])
        hub.register_agent("qa-1", ["testing"])
        decision = hub.recommend(
            {"title": "entangled qubits", "required_capability": "quantum-debugging"},
            min_confidence=0.3,
        )
        assert decision.agent is None
        hub.report_issue("scanner", {"title": "entangled qubits", "required_capability": "quantum-debugging"})
        assert hub.snapshot().recommendations == ()
        assert metrics.get_summary()["hub"]["routing_abstentions"] == 1

    def test_no_agents(self, hub):
        decision = hub.recommend({"title": "anything"})
        assert decision.agent is None
        assert decision.confidence == 0

    def test_fix_resolves_once(self, hub):
        issue = hub.report_issue("scanner", {"title": "XSS in comments"})
        hub.report_fix("fixer-1", {"description": "escape output", "issue_id": issue.id})
        hub.report_fix("fixer-2", {"description": "also escape", "issue_id": issue.id})
        stored = hub.snapshot().issue(issue.id)
        assert stored.status is IssueStatus.RESOLVED
        assert stored.resolved_by == "fixer-1"
        assert len(hub.snapshot().fixes) == 2
        assert metrics.get_summary()["hub"]["issues_resolved"] == 1

    def test_fix_for_unknown_issue(self, hub):
        fix = hub.report_fix("fixer", {"description": "x", "issueId": "missing"})
        assert fix.issue_id == "missing"
        assert len(hub.snapshot().fixes) == 1

    def test_success_rate_two_thirds(self, hub):
        hub.register_agent("bot", ["testing"])
        ids = [hub.report_issue("bot", {"title": f"flaky check {i}"}).id for i in range(3)]
        hub.report_fix("bot", {"issue_id": ids[0]})
        hub.report_fix("bot", {"issue_id": ids[1]})
        assert hub.agent_stats("bot")["success_rate"] == pytest.approx(2 / 3, abs=1e-4)
        breakdown = hub.router.rank({"title": "new flaky check"}, snapshot=hub.snapshot())[0][1]
        assert breakdown.success == pytest.approx(2 / 3)

    def test_semantic_history_drives_routing(self, hub):
        hub.register_agent("alpha", [], name="Alpha")
        hub.register_agent("beta", [], name="Beta")
        old = hub.report_issue("scanner", {"title": "race condition in cache eviction"})
        hub.report_fix("beta", {"issue_id": old.id})
        decision = hub.recommend({"title": "race condition in cache eviction"}, min_confidence=0.0)
        assert decision.agent_id == "beta"
        assert any("similar issue" in clause for clause in decision.justification)

    def test_report_embeds_issue_once(self, hub, embedder):
        hub.register_agent("beta", ["testing"], name="Beta")
        old = hub.report_issue("scanner", {"title": "race condition in cache eviction"})
        hub.report_fix("beta", {"issue_id": old.id})
        embedder.calls = 0

        hub.report_issue("scanner", {"title": "race condition in cache eviction"})
        assert embedder.calls == 1
        rec = hub.snapshot().recommendations[-1]
        assert rec.recommended_agent_id == "beta"
        assert any("similar issue" in clause for clause in rec.justification)

    def test_query_issues(self, hub):
        a = hub.report_issue("s", {"title": "a", "severity": "high", "file": "src/db/pool.py"})
        hub.report_issue("s", {"title": "b", "severity": "low"})
        hub.report_fix("f", {"issue_id": a.id})
        assert [i.title for i in hub.query_issues(status="open")] == ["b"]
        assert [i.title for i in hub.query_issues(file="db/")] == ["a"]


# ── Findings ──

class TestFindings:
    def test_share_and_query(self, hub):
        hub.share_finding("sec-1", {"summary": "hardcoded AWS key", "type": "secret", "severity": "critical",
                                    "file": "config/settings.py"})
        hub.share_finding("sec-1", {"summary": "weak hash", "type": "crypto", "severity": "high"})
        assert len(hub.query_findings(type="secret")) == 1
        assert len(hub.query_findings(file="settings")) == 1
        assert len(hub.query_findings()) == 2

    def test_notify_relevant_agents(self, hub):
        hub.register_agent("author", ["secret-scanning"])
        hub.register_agent("scanner", ["secret-scanning"])
        hub.register_agent("typed", ["secret"])
        hub.register_agent("styler", ["code-style"])
        hub.register_agent("gone", ["secret-scanning"])
        hub.unregister_agent("gone")
        finding = hub.share_finding("author", {"summary": "token in repo", "type": "secret",
                                               "tags": ["secret-scanning"]})
        assert hub.notify_relevant_agents(finding) == ["scanner", "typed"]

    def test_search_similar(self, hub):
        f = hub.share_finding("a", {"summary": "connection pool exhausted under load"})
        hub.share_finding("a", {"summary": "button label typo"})
        i = hub.report_issue("a", {"title": "connection pool exhausted"})
        findings = hub.search_similar_findings("connection pool exhausted", k=1)
        assert findings[0]["id"] == f.id
        assert findings[0]["finding"].summary == "connection pool exhausted under load"
        issues = hub.search_similar_issues("connection pool exhausted", k=3)
        assert issues[0]["id"] == i.id
        assert issues[0]["issue"].is_open


# ── Help requests & advisory listings ──

class TestHelpAndRecommendations:
    def test_help_routed_by_description(self, hub):
        hub.register_agent("sec-1", ["security-analysis"], name="SecurityBot")
        request = hub.request_help("ui-1", {"description": "review auth flow", "capability": "security-analysis"})
        assert request.status is HelpStatus.ASSIGNED
        assert request.assigned_to == "sec-1"

    def test_help_by_capability_only(self, hub):
        hub.register_agent("qa-1", ["linting"])
        hub.register_agent("qa-2", ["testing"])
        request = hub.request_help("dev", {"capability": "testing"})
        assert request.assigned_to == "qa-2"

    def test_help_without_helper_stays_pending(self, hub):
        request = hub.request_help("dev", {"capability": "testing"})
        assert request.status is HelpStatus.PENDING
        assert len(hub.snapshot().help_requests) == 1

    def test_recommendations_for(self, hub):
        hub.register_agent("sec-1", ["security-analysis"], agent_type="security")
        for n in range(7):
            hub.report_issue("scanner", {"title": f"vuln {n}", "required_capability": "security-analysis"})
        hub.share_finding("scanner", {"summary": "open port", "category": "security"})
        hub.share_finding("sec-1", {"summary": "own finding", "category": "security"})
        items = hub.recommendations_for("sec-1")
        assert [item["priority"] for item in items] == ["high", "medium"]
        assert len(items[0]["issues"]) == 5
        assert items[0]["message"] == "Found 7 issues you can resolve"
        assert [f.summary for f in items[1]["findings"]] == ["open port"]

    def test_recommendations_for_unknown(self, hub):
        assert hub.recommendations_for("ghost") == []

    def test_recommend_agent_for_task(self, hub):
        hub.register_agent("perf-1", ["optimization"], name="PerfBot")
        decision = hub.recommend_agent_for_task({"name": "Speed up performance of search"})
        assert decision.agent_name == "PerfBot"
        assert decision.required_capability == "optimization"


# ── Workflow & summary ──

class TestWorkflow:
    def test_workflow_and_pipeline_context(self, hub):
        hub.initialize_workflow("nightly", goal="zero criticals")
        hub.initialize_pipeline("fix-all", goal="green build", strategy="sequential")
        context = hub.snapshot().context
        assert context["workflow"]["goal"] == "zero criticals"
        assert context["pipeline"]["strategy"] == "sequential"
        context["workflow"]["goal"] = "edited by reader"
        assert hub.summary()["context"]["workflow"]["goal"] == "zero criticals"

    def test_coordinate_step_shares_insights(self, hub):
        results = [
            {"result": {"issues": [{"severity": "critical"}, {"severity": "low"}]}},
            {"result": {"issues": [{"severity": "critical"}]}},
            {"result": None},
        ]
        insights = hub.coordinate_step({"description": "after scan", "share_insights": True}, results)
        assert insights["total_issues_found"] == 3
        assert len(insights["critical_issues"]) == 2
        shared = hub.query_findings(type="coordination-insight")
        assert shared[0].agent_id == "coordinator"
        assert shared[0].extra["insights"]["total_issues_found"] == 3

    def test_summary(self, hub):
        hub.register_agent("a", ["testing"])
        issue = hub.report_issue("a", {"title": "t"})
        hub.report_issue("a", {"title": "u"})
        hub.report_fix("a", {"issue_id": issue.id})
        hub.share_finding("a", {"summary": "f"})
        summary = hub.summary()
        assert summary["total_findings"] == 1
        assert summary["open_issues"] == 1
        assert summary["resolved_issues"] == 1
        assert summary["total_fixes"] == 1
        assert summary["active_agents"] == 1
        assert summary["index"]["mode"] == "live"


# ── Degraded index ──

class TestDegraded:
    def test_hub_without_backend_still_routes(self, degraded_hub):
        degraded_hub.register_agent("sec-1", ["security-analysis"], name="SecurityBot")
        degraded_hub.report_issue("scanner", {"title": "SQL injection", "required_capability": "security-analysis"})
        assert degraded_hub.index.mode is IndexMode.DEGRADED
        assert degraded_hub.snapshot().recommendations[0].recommended_agent == "SecurityBot"

    def test_failing_backend_degrades_hub(self):
        from swarmhub.retrieval.index import EmbeddingIndex
        from conftest import FailingEmbedder

        hub = CoordinationHub(offline_config(), index=EmbeddingIndex(FailingEmbedder(), dims=16))
        hub.register_agent("a", ["testing"])
        issue = hub.report_issue("s", {"title": "flaky test"})
        hub.report_fix("a", {"issue_id": issue.id})
        decision = hub.recommend({"title": "flaky test"})
        assert all(score.semantic == 0.0 for score in decision.scores)
        assert hub.index.mode is IndexMode.DEGRADED
        hub.close()
