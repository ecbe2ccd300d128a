"""swarmhub package exports.

swarmhub: coordination hub for a swarm of code-fixing agents
- Shared knowledge: findings, issues, fixes, help requests
- Advisory routing: capability + semantic history + success rate
- Semantic index with a deterministic hash fallback

Quick Start:
    from swarmhub import CoordinationHub, HubConfig

    hub = CoordinationHub(HubConfig(session_dir="/tmp/run-1"))
    hub.register_agent("sec-1", ["security-analysis"], name="SecurityBot")
    hub.report_issue("scanner", {"title": "SQL injection",
                                 "required_capability": "security-analysis"})
"""

from swarmhub.hub import CoordinationHub
from swarmhub.configs.base import (
    HubConfig,
    EmbedderConfig,
    IndexConfig,
    RoutingConfig,
    CapabilityConfig,
    PersistenceConfig,
)
from swarmhub.models import Agent, Finding, Issue, Fix, Recommendation, HelpRequest, RoutingTask
from swarmhub.retrieval.index import EmbeddingIndex, IndexMode
from swarmhub.orchestrator.router import RoutingDecision

__version__ = "0.1.0"
__all__ = [
    "CoordinationHub",
    # Records
    "Agent",
    "Finding",
    "Issue",
    "Fix",
    "Recommendation",
    "HelpRequest",
    "RoutingTask",
    "RoutingDecision",
    # Index
    "EmbeddingIndex",
    "IndexMode",
    # Config
    "HubConfig",
    "EmbedderConfig",
    "IndexConfig",
    "RoutingConfig",
    "CapabilityConfig",
    "PersistenceConfig",
]
