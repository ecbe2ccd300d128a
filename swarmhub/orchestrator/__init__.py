from swarmhub.orchestrator.capabilities import CapabilityMatch, CapabilityMatcher
from swarmhub.orchestrator.performance import AgentStats, PerformanceTracker
from swarmhub.orchestrator.registry import AgentRegistry
from swarmhub.orchestrator.router import RoutingDecision, TaskRouter
from swarmhub.orchestrator.scorer import AgentScorer, ScoreBreakdown, ScoringContext

__all__ = [
    "AgentRegistry",
    "CapabilityMatch",
    "CapabilityMatcher",
    "AgentStats",
    "PerformanceTracker",
    "AgentScorer",
    "ScoreBreakdown",
    "ScoringContext",
    "RoutingDecision",
    "TaskRouter",
]
