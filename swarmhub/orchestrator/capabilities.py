"""Capability matching over a related-capability graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from swarmhub.configs.capabilities import (
    CAPABILITY_KEYWORDS,
    DEFAULT_CAPABILITY,
    RELATED_CAPABILITIES,
)

logger = logging.getLogger(__name__)

EXACT_MATCH = 1.0
RELATED_MATCH = 0.5


@dataclass(frozen=True)
class CapabilityMatch:
    score: float = 0.0
    matched: Optional[str] = None  # the agent capability that matched
    exact: bool = False


class CapabilityMatcher:
    """Scores an agent's declared capabilities against a required one."""

    def __init__(
        self,
        related: Optional[Mapping[str, Iterable[str]]] = None,
        inference: Optional[Mapping[str, str]] = None,
        default_capability: str = DEFAULT_CAPABILITY,
    ) -> None:
        source = RELATED_CAPABILITIES if related is None else related
        self._related: Dict[str, List[str]] = {k: list(v) for k, v in source.items()}
        self._inference: Dict[str, str] = dict(CAPABILITY_KEYWORDS if inference is None else inference)
        self.default_capability = default_capability

    @classmethod
    def from_config(cls, config) -> "CapabilityMatcher":
        """Build from a ``CapabilityConfig``."""
        return cls(config.related, config.inference, config.default_capability)

    def related(self, capability: str) -> List[str]:
        return list(self._related.get(capability, []))

    def infer(self, type_: Optional[str], title: Optional[str]) -> str:
        """Guess a capability from keywords in the type or title."""
        type_ = (type_ or "").lower()
        title = (title or "").lower()
        for keyword, capability in self._inference.items():
            if keyword in type_ or keyword in title:
                return capability
        return self.default_capability

    def required_capability(
        self,
        required: Optional[str],
        type_: Optional[str] = None,
        title: Optional[str] = None,
        *,
        infer: bool = True,
    ) -> Optional[str]:
        if required:
            return required
        if not infer:
            return None
        return self.infer(type_, title)

    def match(self, capabilities: Iterable[str], required: Optional[str]) -> CapabilityMatch:
        if not required:
            return CapabilityMatch()
        capabilities = list(capabilities or [])
        if required in capabilities:
            return CapabilityMatch(EXACT_MATCH, required, exact=True)
        for candidate in self._related.get(required, []):
            if candidate in capabilities:
                return CapabilityMatch(RELATED_MATCH, candidate)
        return CapabilityMatch()
