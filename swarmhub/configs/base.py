import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from swarmhub.configs.capabilities import (
    CAPABILITY_KEYWORDS,
    DEFAULT_CAPABILITY,
    RELATED_CAPABILITIES,
)


_VALID_EMBEDDER_PROVIDERS = {"ollama", "openai", "none"}
_VALID_VECTOR_PROVIDERS = {"memory"}
_VALID_PERSISTENCE_PROVIDERS = {"json", "sqlite", "none"}


class EmbedderConfig(BaseModel):
    provider: str = Field(default="ollama")
    config: Dict[str, Any] = Field(
        default_factory=lambda: {
            "host": os.getenv("OLLAMA_HOST", "http://localhost:11434"),
            "model": "nomic-embed-text",
        }
    )

    @field_validator("provider")
    @classmethod
    def _valid_provider(cls, v: str) -> str:
        v = str(v).strip().lower()
        if v not in _VALID_EMBEDDER_PROVIDERS:
            raise ValueError(f"Unknown embedder provider '{v}'. Valid: {sorted(_VALID_EMBEDDER_PROVIDERS)}")
        return v


class VectorStoreConfig(BaseModel):
    provider: str = Field(default="memory")
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("provider")
    @classmethod
    def _valid_provider(cls, v: str) -> str:
        v = str(v).strip().lower()
        if v not in _VALID_VECTOR_PROVIDERS:
            raise ValueError(f"Unknown vector store provider '{v}'. Valid: {sorted(_VALID_VECTOR_PROVIDERS)}")
        return v


class IndexConfig(BaseModel):
    """Configuration for the semantic embedding index."""
    dims: int = 384  # fallback dimension until a backend call succeeds
    backend_timeout: float = 30.0  # seconds per embedding call
    max_workers: int = 4

    @field_validator("dims")
    @classmethod
    def _valid_dims(cls, v: int) -> int:
        v = int(v)
        if v < 1 or v > 65536:
            raise ValueError(f"dims must be 1-65536, got {v}")
        return v

    @field_validator("backend_timeout")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        return max(0.01, float(v))

    @field_validator("max_workers")
    @classmethod
    def _clamp_workers(cls, v: int) -> int:
        return min(32, max(1, int(v)))


class RoutingConfig(BaseModel):
    """Weights and thresholds for multi-signal agent routing."""
    capability_weight: float = 0.4
    semantic_weight: float = 0.4
    success_weight: float = 0.2
    # advisory dispatch when an issue is reported
    dispatch_min_confidence: float = 0.3
    dispatch_max_candidates: int = 5
    # exploratory "which agent for this task" queries
    task_min_confidence: float = 0.2
    task_max_candidates: int = 3
    semantic_search_k: int = 10
    infer_capability: bool = True

    @field_validator(
        "capability_weight", "semantic_weight", "success_weight",
        "dispatch_min_confidence", "task_min_confidence",
    )
    @classmethod
    def _clamp_unit_float(cls, v: float) -> float:
        return min(1.0, max(0.0, float(v)))

    @field_validator("dispatch_max_candidates", "task_max_candidates", "semantic_search_k")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        return max(1, int(v))

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> "RoutingConfig":
        total = self.capability_weight + self.semantic_weight + self.success_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"routing weights must sum to 1.0, got {total:.4f}")
        return self


class CapabilityConfig(BaseModel):
    """Related-capability graph and keyword inference table."""
    related: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in RELATED_CAPABILITIES.items()}
    )
    inference: Dict[str, str] = Field(default_factory=lambda: dict(CAPABILITY_KEYWORDS))
    default_capability: str = DEFAULT_CAPABILITY


class PersistenceConfig(BaseModel):
    provider: str = Field(default="json")
    path: Optional[str] = None  # defaults under the session directory

    @field_validator("provider")
    @classmethod
    def _valid_provider(cls, v: str) -> str:
        v = str(v).strip().lower()
        if v not in _VALID_PERSISTENCE_PROVIDERS:
            raise ValueError(f"Unknown persistence provider '{v}'. Valid: {sorted(_VALID_PERSISTENCE_PROVIDERS)}")
        return v


class HubConfig(BaseModel):
    session_dir: str = Field(
        default_factory=lambda: os.path.join(os.getcwd(), ".swarmhub", "session")
    )
    session_id: str = "default"
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    capabilities: CapabilityConfig = Field(default_factory=CapabilityConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    reindex_on_load: bool = False  # re-embed restored findings/issues on initialize()

    @field_validator("session_id")
    @classmethod
    def _non_empty_session(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("session_id must not be empty")
        return v
