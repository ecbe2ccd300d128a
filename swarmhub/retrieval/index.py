"""EmbeddingIndex: text to vectors, vectors to nearest neighbours.

The index is a best-effort cache, not a source of truth:

* ``embed`` never raises. It calls the configured backend under a hard
  timeout while the index is LIVE. The first failure moves the index to
  DEGRADED for the rest of its lifetime, and from then on every vector comes
  from the deterministic hash generator.
* The first successful backend call fixes the vector dimension. Later
  responses of another length are fitted to it, never the other way round.
* ``search`` never raises; internal errors produce an empty result.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from swarmhub.embeddings.base import BaseEmbedder, EmbeddingBackendError
from swarmhub.embeddings.hashing import HashEmbedder
from swarmhub.observability import metrics
from swarmhub.utils.math import fit_dimension, unit_score
from swarmhub.utils.parallel import ParallelExecutor
from swarmhub.vector_stores.base import MemoryResult, VectorStoreBase
from swarmhub.vector_stores.memory import InMemoryVectorStore

logger = logging.getLogger(__name__)

DegradeHook = Callable[[str], None]


class IndexMode(str, Enum):
    LIVE = "live"          # backend in use
    DEGRADED = "degraded"  # hash fallback, permanent


@dataclass(frozen=True)
class EmbeddedRecord:
    """One stored vector and what it was computed from."""
    id: str
    vector: List[float]
    type: str
    text: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            **self.metadata,
            "type": self.type,
            "text": self.text,
            "timestamp": self.timestamp,
        }


class EmbeddingIndex:
    """Semantic index over findings and issues with a one-way fallback."""

    def __init__(
        self,
        embedder: Optional[BaseEmbedder] = None,
        vector_store: Optional[VectorStoreBase] = None,
        *,
        dims: int = 384,
        backend_timeout: float = 30.0,
        max_workers: int = 4,
        on_degrade: Optional[DegradeHook] = None,
    ) -> None:
        self._embedder = embedder
        self._store = vector_store if vector_store is not None else InMemoryVectorStore()
        self._default_dims = dims
        self._dims: Optional[int] = None
        self._timeout = backend_timeout
        self._executor = ParallelExecutor(max_workers=max_workers)
        self._fallback = HashEmbedder({"dims": dims})
        self._on_degrade = on_degrade
        self._lock = threading.Lock()

        self._mode = IndexMode.LIVE
        self._degrade_reason: Optional[str] = None
        if embedder is None:
            self._mode = IndexMode.DEGRADED
            self._degrade_reason = "no embedding backend configured"
            logger.info("Embedding index running on hash fallback: %s", self._degrade_reason)

    @classmethod
    def from_config(cls, config: Any, on_degrade: Optional[DegradeHook] = None) -> "EmbeddingIndex":
        """Build an index from a ``HubConfig``."""
        from swarmhub.utils.factory import EmbedderFactory, VectorStoreFactory

        embedder_config = dict(config.embedder.config)
        embedder_config.setdefault("timeout", config.index.backend_timeout)
        try:
            embedder = EmbedderFactory.create(config.embedder.provider, embedder_config)
        except ImportError as exc:
            logger.warning("Embedding backend '%s' unavailable: %s", config.embedder.provider, exc)
            embedder = None
        store = VectorStoreFactory.create(config.vector_store.provider, config.vector_store.config)
        return cls(
            embedder,
            store,
            dims=config.index.dims,
            backend_timeout=config.index.backend_timeout,
            max_workers=config.index.max_workers,
            on_degrade=on_degrade,
        )

    # ── State ──

    @property
    def mode(self) -> IndexMode:
        return self._mode

    @property
    def is_live(self) -> bool:
        return self._mode is IndexMode.LIVE

    @property
    def dims(self) -> int:
        """Fixed dimension once known, else the configured default."""
        return self._dims if self._dims is not None else self._default_dims

    def is_available(self) -> bool:
        """True when the backing vector store can accept and answer queries."""
        return self._store is not None

    def count(self) -> int:
        try:
            return len(self._store.list())
        except Exception:
            logger.debug("Vector store count failed", exc_info=True)
            return 0

    def stats(self) -> Dict[str, Any]:
        return {
            "mode": self._mode.value,
            "dims": self.dims,
            "dims_fixed": self._dims is not None,
            "records": self.count(),
            "backend": self._embedder.describe() if self._embedder else None,
            "degrade_reason": self._degrade_reason,
        }

    # ── Embedding ──

    def embed(self, text: str) -> List[float]:
        """Return a vector for *text*. Never raises."""
        text = text or ""
        if self._mode is IndexMode.LIVE:
            try:
                vector = self._executor.run_with_timeout(
                    self._embedder.embed, text, timeout=self._timeout
                )
                vector = self._validate(vector)
            except FuturesTimeout:
                self._degrade(f"backend timed out after {self._timeout}s")
            except Exception as exc:
                self._degrade(str(exc) or exc.__class__.__name__)
            else:
                return self._accept(vector)
        return self._fallback.embed(text, dims=self._fix_fallback_dims())

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Vectors for *texts* in order, one backend batch call. Never raises."""
        texts = [text or "" for text in texts]
        if not texts:
            return []
        if self._mode is IndexMode.LIVE:
            try:
                vectors = self._executor.run_with_timeout(
                    self._embedder.embed_batch, texts, timeout=self._timeout
                )
                if not isinstance(vectors, (list, tuple)) or len(vectors) != len(texts):
                    raise EmbeddingBackendError(
                        f"backend returned {len(vectors or [])} embeddings for {len(texts)} texts"
                    )
                vectors = [self._validate(vector) for vector in vectors]
            except FuturesTimeout:
                self._degrade(f"backend timed out after {self._timeout}s")
            except Exception as exc:
                self._degrade(str(exc) or exc.__class__.__name__)
            else:
                return [self._accept(vector) for vector in vectors]
        dims = self._fix_fallback_dims()
        return [self._fallback.embed(text, dims=dims) for text in texts]

    def _validate(self, vector: Any) -> List[float]:
        if not isinstance(vector, (list, tuple)) or not vector:
            raise EmbeddingBackendError("backend returned an empty or non-list embedding")
        return [float(x) for x in vector]

    def _accept(self, vector: List[float]) -> List[float]:
        with self._lock:
            if self._dims is None:
                self._dims = len(vector)
                logger.info("Embedding dimension fixed at %d", self._dims)
                return vector
            expected = self._dims
        if len(vector) != expected:
            logger.warning(
                "Embedding dimension mismatch: got %d, expected %d; fitting to %d",
                len(vector), expected, expected,
            )
            return fit_dimension(vector, expected)
        return vector

    def _fix_fallback_dims(self) -> int:
        with self._lock:
            if self._dims is None:
                self._dims = self._default_dims
            return self._dims

    def _degrade(self, reason: str) -> None:
        with self._lock:
            if self._mode is IndexMode.DEGRADED:
                return
            self._mode = IndexMode.DEGRADED
            self._degrade_reason = reason
        backend = self._embedder.describe() if self._embedder else "none"
        logger.warning(
            "Embedding backend %s unavailable, falling back to hash embeddings: %s",
            backend, reason,
        )
        metrics.increment("index_degradations")
        if self._on_degrade is not None:
            try:
                self._on_degrade(reason)
            except Exception:
                logger.exception("on_degrade hook failed")

    # ── Storage & search ──

    def store(self, record_id: str, vector: List[float], metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Append a record. Duplicate ids are kept. Returns False if rejected."""
        metadata = dict(metadata or {})
        expected = self._dims
        if expected is not None and len(vector) != expected:
            logger.warning(
                "Refusing to store %s: vector has %d dims, index uses %d",
                record_id, len(vector), expected,
            )
            return False
        record = EmbeddedRecord(
            id=record_id,
            vector=list(vector),
            type=str(metadata.pop("type", "record")),
            text=str(metadata.pop("text", "")),
            metadata=metadata,
        )
        try:
            self._store.insert([record.vector], payloads=[record.to_payload()], ids=[record.id])
            return True
        except Exception as exc:
            logger.warning("Failed to store embedding %s: %s", record_id, exc)
            return False

    def add_text(self, record_id: str, text: str, record_type: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Embed *text* and store it under *record_id* in one step."""
        vector = self.embed(text)
        return self.store(record_id, vector, {**(metadata or {}), "type": record_type, "text": text})

    def add_texts(self, records: List[Tuple[str, str, str, Dict[str, Any]]]) -> int:
        """Batch form of ``add_text`` over (id, text, type, metadata) tuples.

        Returns how many records were stored.
        """
        vectors = self.embed_many([text for _, text, _, _ in records])
        stored = 0
        for (record_id, text, record_type, metadata), vector in zip(records, vectors):
            if self.store(record_id, vector, {**(metadata or {}), "type": record_type, "text": text}):
                stored += 1
        return stored

    def search(self, query_vector: List[float], k: int = 5, record_type: Optional[str] = None) -> List[MemoryResult]:
        """Up to *k* nearest records, scores clamped to [0, 1]. Never raises."""
        if k <= 0 or not query_vector:
            return []
        try:
            filters = {"type": record_type} if record_type else None
            hits = self._store.search(query_vector, limit=k, filters=filters)
            return [MemoryResult(id=h.id, score=unit_score(h.score), payload=dict(h.payload)) for h in hits]
        except Exception as exc:
            logger.warning("Vector search failed: %s", exc)
            return []

    def search_text(self, text: str, k: int = 5, record_type: Optional[str] = None) -> List[MemoryResult]:
        return self.search(self.embed(text), k=k, record_type=record_type)

    def close(self) -> None:
        self._executor.shutdown()
        self._store.close()
