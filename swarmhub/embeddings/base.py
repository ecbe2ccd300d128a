from abc import ABC, abstractmethod
from typing import List, Optional


class EmbeddingBackendError(RuntimeError):
    """An embedding backend could not produce a vector."""


class BaseEmbedder(ABC):
    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        pass

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple texts. Default: sequential fallback."""
        return [self.embed(text) for text in texts]

    def describe(self) -> str:
        """Short human-readable backend label for logs and stats."""
        model = self.config.get("model")
        name = self.__class__.__name__
        return f"{name}({model})" if model else name
