"""Tests for capability matching, the agent registry and performance tracking."""

import pytest

from swarmhub.configs.base import CapabilityConfig
from swarmhub.models import AgentStatus, Issue, IssueStatus
from swarmhub.orchestrator.capabilities import CapabilityMatcher
from swarmhub.orchestrator.performance import PerformanceTracker
from swarmhub.orchestrator.registry import AgentRegistry


# ── CapabilityMatcher ──

class TestCapabilityMatcher:
    def test_exact_match(self):
        match = CapabilityMatcher().match(["security-analysis"], "security-analysis")
        assert match.score == 1.0
        assert match.exact
        assert match.matched == "security-analysis"

    def test_related_match(self):
        match = CapabilityMatcher().match(["secret-scanning"], "security-analysis")
        assert match.score == 0.5
        assert not match.exact
        assert match.matched == "secret-scanning"

    def test_no_match(self):
        assert CapabilityMatcher().match(["code-style"], "security-analysis").score == 0.0

    def test_unknown_capability(self):
        assert CapabilityMatcher().match(["testing"], "quantum-debugging").score == 0.0

    def test_no_requirement(self):
        assert CapabilityMatcher().match(["testing"], None).score == 0.0

    def test_exact_beats_related(self):
        match = CapabilityMatcher().match(["vulnerability-detection", "security-analysis"], "security-analysis")
        assert match.score == 1.0

    def test_custom_graph(self):
        matcher = CapabilityMatcher(related={"rust": ["systems"]})
        assert matcher.match(["systems"], "rust").score == 0.5
        assert matcher.match(["secret-scanning"], "security-analysis").score == 0.0

    def test_from_config(self):
        config = CapabilityConfig(related={"a": ["b"]}, inference={"db": "database"}, default_capability="misc")
        matcher = CapabilityMatcher.from_config(config)
        assert matcher.related("a") == ["b"]
        assert matcher.infer("db-migration", "") == "database"
        assert matcher.infer("", "nothing here") == "misc"


class TestCapabilityInference:
    @pytest.mark.parametrize("type_,title,expected", [
        ("api", "", "api-integration"),
        ("", "Slow performance on search", "optimization"),
        ("", "Security hole in auth", "security-analysis"),
        ("", "Flaky test in CI", "testing"),
        ("", "Style nits", "code-style"),
        ("", "Something odd", "general"),
    ])
    def test_keywords(self, type_, title, expected):
        assert CapabilityMatcher().infer(type_, title) == expected

    def test_declared_capability_wins(self):
        matcher = CapabilityMatcher()
        assert matcher.required_capability("testing", "security", "security bug") == "testing"

    def test_inference_can_be_disabled(self):
        assert CapabilityMatcher().required_capability(None, "api", "api", infer=False) is None


# ── AgentRegistry ──

class TestAgentRegistry:
    def test_register_and_get(self):
        registry = AgentRegistry()
        agent = registry.register("a1", ["testing", "testing", "linting"], name="Tester", agent_type="testing")
        assert agent.capabilities == ["testing", "linting"]
        assert agent.status is AgentStatus.ACTIVE
        assert registry.get("a1").name == "Tester"

    def test_reregister_keeps_position(self):
        registry = AgentRegistry()
        registry.register("a1", ["x"])
        registry.register("a2", ["y"])
        registry.register("a1", ["z"])
        assert [a.id for a in registry.all()] == ["a1", "a2"]
        assert registry.get("a1").capabilities == ["z"]
        assert len(registry) == 2

    def test_unregister_marks_completed(self):
        registry = AgentRegistry()
        registry.register("a1", ["x"])
        agent = registry.unregister("a1")
        assert agent.status is AgentStatus.COMPLETED
        assert agent.unregistered_at is not None
        assert "a1" in registry
        assert registry.active_agents() == []

    def test_unregister_unknown_is_noop(self):
        assert AgentRegistry().unregister("ghost") is None

    def test_state_round_trip(self):
        registry = AgentRegistry()
        registry.register("a1", ["x"], name="One")
        registry.register("a2", ["y"], name="Two")
        registry.unregister("a2")
        restored = AgentRegistry()
        restored.load_state(registry.to_state())
        assert restored.all() == registry.all()


# ── PerformanceTracker ──

def _issue(reporter, resolver=None):
    issue = Issue(agent_id=reporter, title="t")
    return issue.resolved(resolver) if resolver else issue


class TestPerformanceTracker:
    def test_two_of_three(self):
        issues = [_issue("bot", "bot"), _issue("bot", "bot"), _issue("bot")]
        tracker = PerformanceTracker.from_records(issues)
        assert tracker.success_rate("bot") == pytest.approx(2 / 3)
        stats = tracker.stats("bot")
        assert (stats.associated, stats.resolved, stats.open) == (3, 2, 1)

    def test_resolving_others_issues_counts(self):
        issues = [_issue("scanner", "fixer"), _issue("scanner")]
        tracker = PerformanceTracker.from_records(issues)
        assert tracker.success_rate("fixer") == 1.0
        assert tracker.success_rate("scanner") == 0.0

    def test_no_history(self):
        tracker = PerformanceTracker.from_records([])
        assert tracker.success_rate("nobody") == 0.0
        assert tracker.stats("nobody").to_dict()["total_issues"] == 0

    def test_rate_never_exceeds_one(self):
        issues = [_issue("a", "b") for _ in range(4)] + [_issue("b")]
        tracker = PerformanceTracker.from_records(issues)
        assert tracker.success_rate("b") == pytest.approx(4 / 5)

    def test_status_of_resolved_issue(self):
        assert _issue("a", "b").status is IssueStatus.RESOLVED
