"""Shared math utilities for swarmhub.

This module is the single canonical source for cosine similarity and related
numerical operations. All other modules should import from here.
"""

import math as _math
from typing import List, Optional


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    na = _math.sqrt(sum(x * x for x in a))
    nb = _math.sqrt(sum(x * x for x in b))
    return dot / (na * nb) if na and nb else 0.0


def cosine_similarity(a: Optional[List[float]], b: Optional[List[float]]) -> float:
    """Compute cosine similarity between two vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    return _cosine(a, b)


def cosine_similarity_batch(
    query: List[float], store: List[List[float]]
) -> List[float]:
    """Compute cosine similarity of *query* against every vector in *store*."""
    if not query or not store:
        return [0.0] * len(store)
    return [cosine_similarity(query, v) for v in store]


def unit_score(similarity: float) -> float:
    """Clamp a raw cosine similarity into the [0, 1] score range."""
    return min(1.0, max(0.0, float(similarity)))


def fit_dimension(vector: List[float], dims: int) -> List[float]:
    """Truncate or zero-pad *vector* to exactly *dims* components."""
    if len(vector) >= dims:
        return list(vector[:dims])
    return list(vector) + [0.0] * (dims - len(vector))
