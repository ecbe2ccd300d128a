"""Deterministic hash-based embeddings.

Used by the embedding index once its backend has been written off. The
vectors carry no meaning; they only keep the index's shape intact so stores
and searches keep working.
"""

import hashlib
import math
from typing import List, Optional

from swarmhub.embeddings.base import BaseEmbedder


def text_seed(text: str) -> int:
    """Stable 32-bit seed for *text*, identical across processes."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


class HashEmbedder(BaseEmbedder):
    """Seeded hash expanded into ``sin``-wave components in [0, 1]."""

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.dims = int(self.config.get("dims", 384))

    def embed(self, text: str, dims: Optional[int] = None) -> List[float]:
        size = dims or self.dims
        seed = text_seed(text or "")
        return [math.sin(seed + i) * 0.5 + 0.5 for i in range(size)]
