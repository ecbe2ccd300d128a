"""Shared fixtures: deterministic embedders and hubs that never touch the network."""

import re
import threading
import time
import zlib

import pytest

from swarmhub.configs.base import EmbedderConfig, HubConfig, PersistenceConfig
from swarmhub.embeddings.base import BaseEmbedder, EmbeddingBackendError
from swarmhub.hub import CoordinationHub
from swarmhub.observability import metrics
from swarmhub.retrieval.index import EmbeddingIndex


class BagOfWordsEmbedder(BaseEmbedder):
    """Word-count vector over hashed buckets. Shared words mean high cosine."""

    def __init__(self, dims=32):
        super().__init__({"model": "bag-of-words"})
        self.dims = dims
        self.calls = 0
        self.batches = 0

    def embed(self, text):
        self.calls += 1
        vector = [0.0] * self.dims
        for word in re.findall(r"[a-z0-9]+", (text or "").lower()):
            vector[zlib.crc32(word.encode()) % self.dims] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector

    def embed_batch(self, texts):
        self.batches += 1
        return [self.embed(text) for text in texts]


class FailingEmbedder(BaseEmbedder):
    def __init__(self):
        super().__init__({"model": "always-down"})
        self.calls = 0

    def embed(self, text):
        self.calls += 1
        raise EmbeddingBackendError("connection refused")


class SlowEmbedder(BaseEmbedder):
    def __init__(self, delay=1.0):
        super().__init__({"model": "slow"})
        self.delay = delay
        self.release = threading.Event()

    def embed(self, text):
        self.release.wait(self.delay)
        return [1.0, 0.0, 0.0]


class ScriptedEmbedder(BaseEmbedder):
    """Returns queued vectors in order, then repeats the last one."""

    def __init__(self, *vectors):
        super().__init__({"model": "scripted"})
        self.vectors = list(vectors)

    def embed(self, text):
        if len(self.vectors) > 1:
            return self.vectors.pop(0)
        return self.vectors[0]


def offline_config(tmp_path=None, **overrides):
    """HubConfig with no embedding backend and (by default) no persistence."""
    persistence = overrides.pop("persistence", PersistenceConfig(provider="none"))
    kwargs = {
        "embedder": EmbedderConfig(provider="none"),
        "persistence": persistence,
    }
    if tmp_path is not None:
        kwargs["session_dir"] = str(tmp_path / "session")
    kwargs.update(overrides)
    return HubConfig(**kwargs)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def embedder():
    return BagOfWordsEmbedder()


@pytest.fixture
def live_index(embedder):
    index = EmbeddingIndex(embedder, backend_timeout=5.0)
    yield index
    index.close()


@pytest.fixture
def hub(live_index):
    h = CoordinationHub(offline_config(), index=live_index)
    yield h
    h.close()


@pytest.fixture
def degraded_hub():
    h = CoordinationHub(offline_config())
    yield h
    h.close()
