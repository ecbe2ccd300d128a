"""Records shared through the coordination hub.

Every record has a fixed core schema. Payload keys outside that schema are
kept in ``extra`` so agents can attach whatever context they like without it
leaking into routing. ``extra`` is converted to plain JSON types when the
record is built (unknown objects become their ``str``), so every record can
be persisted and none shares containers with the caller's payload.

Records are frozen. State changes (an issue being resolved, an agent
finishing) replace the record in its collection, so a snapshot taken
earlier never changes under a reader. Nested ``tags`` and ``extra`` values
are shared with the hub and must be treated as read-only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import to_jsonable_python


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uid() -> str:
    return str(uuid.uuid4())


# camelCase keys sent by agent runtimes that speak JSON
_KEY_ALIASES = {
    "requiredCapability": "required_capability",
    "issueId": "issue_id",
    "agentId": "agent_id",
    "agentName": "agent_name",
}


def _split_payload(payload: Optional[Mapping[str, Any]], known: Iterable[str]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split *payload* into (core fields, extension fields)."""
    known = set(known)
    core: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in (payload or {}).items():
        key = _KEY_ALIASES.get(key, key)
        if key in known:
            core[key] = value
        else:
            extra[key] = value
    return core, to_jsonable_python(extra, fallback=str)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


_FINDING_FIELDS = ("summary", "description", "type", "category", "severity", "file", "tags")
_ISSUE_FIELDS = ("title", "description", "required_capability", "severity", "type", "file")


class AgentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class IssueStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class HelpStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Agent(_Record):
    id: str
    name: str = ""
    type: str = ""
    capabilities: List[str] = Field(default_factory=list)
    status: AgentStatus = AgentStatus.ACTIVE
    registered_at: str = Field(default_factory=_now)
    unregistered_at: Optional[str] = None

    @field_validator("capabilities", mode="before")
    @classmethod
    def _unique_capabilities(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        seen: List[str] = []
        for cap in v:
            cap = str(cap).strip()
            if cap and cap not in seen:
                seen.append(cap)
        return seen

    @property
    def is_active(self) -> bool:
        return self.status is AgentStatus.ACTIVE


class Finding(_Record):
    id: str = Field(default_factory=_uid)
    agent_id: str
    agent_name: Optional[str] = None
    summary: str = ""
    description: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    file: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_now)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, agent_id: str, agent_name: Optional[str], payload: Mapping[str, Any]) -> "Finding":
        core, extra = _split_payload(payload, _FINDING_FIELDS + ("message",))
        message = core.pop("message", None)
        summary = core.pop("summary", None) or message or core.get("description") or ""
        if message and message != summary:
            extra["message"] = message
        tags = core.pop("tags", None) or []
        if isinstance(tags, str):
            tags = [tags]
        return cls(
            agent_id=agent_id,
            agent_name=agent_name,
            summary=str(summary),
            tags=[str(t) for t in tags],
            extra=extra,
            **{k: _opt_str(v) for k, v in core.items()},
        )

    def text(self) -> str:
        """Text used for semantic indexing."""
        return (self.description or self.extra.get("message") or self.summary or "").strip()


class Issue(_Record):
    id: str = Field(default_factory=_uid)
    agent_id: str
    agent_name: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    required_capability: Optional[str] = None
    severity: Optional[str] = None
    type: Optional[str] = None
    file: Optional[str] = None
    status: IssueStatus = IssueStatus.OPEN
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    timestamp: str = Field(default_factory=_now)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, agent_id: str, agent_name: Optional[str], payload: Mapping[str, Any]) -> "Issue":
        core, extra = _split_payload(payload, _ISSUE_FIELDS)
        return cls(
            agent_id=agent_id,
            agent_name=agent_name,
            title=str(core.pop("title", None) or ""),
            extra=extra,
            **{k: _opt_str(v) for k, v in core.items()},
        )

    @property
    def is_open(self) -> bool:
        return self.status is IssueStatus.OPEN

    def resolved(self, agent_id: str, at: Optional[str] = None) -> "Issue":
        """Copy of this issue marked resolved by *agent_id*."""
        return self.model_copy(update={
            "status": IssueStatus.RESOLVED,
            "resolved_by": agent_id,
            "resolved_at": at or _now(),
        })

    def text(self) -> str:
        return f"{self.title or ''} {self.description or ''}".strip()


class Fix(_Record):
    id: str = Field(default_factory=_uid)
    agent_id: str
    agent_name: Optional[str] = None
    description: str = ""
    issue_id: Optional[str] = None
    timestamp: str = Field(default_factory=_now)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, agent_id: str, agent_name: Optional[str], payload: Mapping[str, Any]) -> "Fix":
        core, extra = _split_payload(payload, ("description", "issue_id", "summary"))
        description = core.pop("description", None) or core.pop("summary", None) or ""
        if core.get("summary"):
            extra["summary"] = core["summary"]
        return cls(
            agent_id=agent_id,
            agent_name=agent_name,
            description=str(description),
            issue_id=_opt_str(core.get("issue_id")),
            extra=extra,
        )


class Alternative(_Record):
    agent_id: str
    name: str
    confidence: float


class Recommendation(_Record):
    issue_id: str
    recommended_agent: str
    recommended_agent_id: str
    confidence: float
    reason: str = ""
    justification: List[str] = Field(default_factory=list)
    alternatives: List[Alternative] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_now)

    @field_validator("confidence")
    @classmethod
    def _unit_interval(cls, v: float) -> float:
        return min(1.0, max(0.0, float(v)))


class HelpRequest(_Record):
    id: str = Field(default_factory=_uid)
    requesting_agent_id: str
    requesting_agent_name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    capability: Optional[str] = None
    status: HelpStatus = HelpStatus.PENDING
    assigned_to: Optional[str] = None
    timestamp: str = Field(default_factory=_now)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, agent_id: str, agent_name: Optional[str], payload: Mapping[str, Any]) -> "HelpRequest":
        core, extra = _split_payload(payload, ("title", "description", "capability"))
        return cls(
            requesting_agent_id=agent_id,
            requesting_agent_name=agent_name,
            extra=extra,
            **{k: _opt_str(v) for k, v in core.items()},
        )


@dataclass
class RoutingTask:
    """What the router scores agents against.

    Built from an ``Issue``, a help request, or a free-form task mapping.
    Every field is optional; an absent field contributes no signal.
    ``vector`` carries an embedding of ``text()`` when the caller already
    has one, so the scorer can search without embedding again.
    """
    title: str = ""
    description: str = ""
    type: str = ""
    required_capability: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    vector: Optional[List[float]] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_issue(cls, issue: Issue, vector: Optional[List[float]] = None) -> "RoutingTask":
        return cls(
            title=issue.title or "",
            description=issue.description or "",
            type=issue.type or "",
            required_capability=issue.required_capability,
            vector=vector,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RoutingTask":
        core, extra = _split_payload(
            data, ("title", "name", "description", "goal", "type", "required_capability")
        )
        title = core.get("title") or core.get("name") or core.get("description") or ""
        description = core.get("description") or core.get("goal") or ""
        return cls(
            title=str(title),
            description=str(description),
            type=str(core.get("type") or ""),
            required_capability=_opt_str(core.get("required_capability")),
            extra=extra,
        )

    @classmethod
    def coerce(cls, task: Any) -> "RoutingTask":
        if isinstance(task, RoutingTask):
            return task
        if isinstance(task, Issue):
            return cls.from_issue(task)
        if isinstance(task, Mapping):
            return cls.from_mapping(task)
        return cls()

    def text(self) -> str:
        return f"{self.title or ''} {self.description or ''}".strip()
