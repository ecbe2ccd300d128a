"""In-process vector store.

Append-only list of (id, vector, payload) rows scanned linearly on search.
Duplicate ids are kept as separate rows.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Tuple

from swarmhub.utils.math import cosine_similarity_batch
from swarmhub.vector_stores.base import MemoryResult, VectorStoreBase


def matches_filters(payload: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    if not filters:
        return True
    return all(payload.get(key) == value for key, value in filters.items())


class InMemoryVectorStore(VectorStoreBase):
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.collection_name = self.config.get("collection_name", "swarmhub_records")
        self._rows: List[Tuple[str, List[float], Dict[str, Any]]] = []
        self._lock = threading.RLock()

    def insert(self, vectors, payloads=None, ids=None) -> None:
        payloads = payloads or [{} for _ in vectors]
        if ids is None:
            raise ValueError("InMemoryVectorStore.insert requires explicit ids")
        if not (len(vectors) == len(payloads) == len(ids)):
            raise ValueError("vectors, payloads and ids must have the same length")
        with self._lock:
            for vid, vec, payload in zip(ids, vectors, payloads):
                self._rows.append((vid, list(vec), dict(payload)))

    def search(self, vectors, limit=5, filters=None) -> List[MemoryResult]:
        with self._lock:
            rows = [row for row in self._rows if matches_filters(row[2], filters)]
        similarities = cosine_similarity_batch(vectors, [vec for _, vec, _ in rows])
        scored = [
            MemoryResult(id=vid, score=score, payload=payload)
            for (vid, _, payload), score in zip(rows, similarities)
        ]
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:limit]

    def get(self, vector_id: str) -> Optional[MemoryResult]:
        with self._lock:
            for vid, _, payload in self._rows:
                if vid == vector_id:
                    return MemoryResult(id=vid, payload=payload)
        return None

    def list(self, filters=None, limit=None) -> List[MemoryResult]:
        with self._lock:
            rows = list(self._rows)
        results = [
            MemoryResult(id=vid, payload=payload)
            for vid, _, payload in rows
            if matches_filters(payload, filters)
        ]
        return results[:limit] if limit else results

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def col_info(self) -> Dict[str, Any]:
        return {"name": self.collection_name, "count": self.count()}

    def reset(self) -> None:
        with self._lock:
            self._rows.clear()
