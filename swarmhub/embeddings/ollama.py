"""Ollama embedding provider for local embeddings."""

import os
from typing import List, Optional

from swarmhub.embeddings.base import BaseEmbedder, EmbeddingBackendError


class OllamaEmbedder(BaseEmbedder):
    """Embedding provider using Ollama for local embeddings.

    Supports embedding models available through Ollama (nomic-embed-text,
    mxbai-embed-large, all-minilm, etc.). No API key required.
    """

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.host = self.config.get("host") or os.getenv("OLLAMA_HOST", "http://localhost:11434")
        self.model = self.config.get("model", "nomic-embed-text")
        self.timeout = self.config.get("timeout", 30)

        self._client = None
        self._init_client()

    def _init_client(self):
        """Initialize the Ollama client."""
        try:
            import ollama
            self._client = ollama.Client(host=self.host, timeout=self.timeout)
        except ImportError as exc:
            raise ImportError(
                "Install ollama package to use OllamaEmbedder: pip install ollama"
            ) from exc

    def embed(self, text: str) -> List[float]:
        """Generate embeddings using Ollama.

        Args:
            text: The text to embed.

        Returns:
            List of floats representing the embedding vector.

        Raises:
            EmbeddingBackendError: the server is unreachable or returned no vector.
        """
        if self._client is None:
            self._init_client()

        try:
            response = self._client.embed(
                model=self.model,
                input=text,
            )
        except Exception as e:
            if "connection" in str(e).lower():
                raise EmbeddingBackendError(
                    f"Cannot connect to Ollama at {self.host}. "
                    "Make sure Ollama is running: https://ollama.ai"
                ) from e
            raise EmbeddingBackendError(f"Ollama embedding failed (model={self.model}): {e}") from e

        # Response can be {"embeddings": [[...]]} or {"embedding": [...]}
        embeddings = response.get("embeddings")
        if embeddings and isinstance(embeddings, list) and len(embeddings) > 0:
            return list(embeddings[0])
        embedding = response.get("embedding")
        if embedding:
            return list(embedding)
        raise EmbeddingBackendError(f"Invalid embedding response from Ollama (model={self.model})")

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts in one ``/api/embed`` request."""
        if not texts:
            return []
        if self._client is None:
            self._init_client()
        try:
            response = self._client.embed(model=self.model, input=list(texts))
        except Exception as e:
            raise EmbeddingBackendError(f"Ollama batch embedding failed (model={self.model}): {e}") from e

        embeddings = response.get("embeddings") or []
        if len(embeddings) != len(texts):
            raise EmbeddingBackendError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} texts (model={self.model})"
            )
        return [list(embedding) for embedding in embeddings]
