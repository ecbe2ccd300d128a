from typing import Any, Dict, Optional


class EmbedderFactory:
    @classmethod
    def create(cls, provider: str, config: Dict[str, Any]):
        if provider == "ollama":
            from swarmhub.embeddings.ollama import OllamaEmbedder

            return OllamaEmbedder(config)
        if provider == "openai":
            from swarmhub.embeddings.openai import OpenAIEmbedder

            return OpenAIEmbedder(config)
        if provider == "none":
            return None
        raise ValueError(f"Unsupported embedder provider: {provider}")


class VectorStoreFactory:
    @classmethod
    def create(cls, provider: str, config: Dict[str, Any]):
        if provider == "memory":
            from swarmhub.vector_stores.memory import InMemoryVectorStore

            return InMemoryVectorStore(config)
        raise ValueError(f"Unsupported vector store provider: {provider}")


class StateStoreFactory:
    @classmethod
    def create(cls, provider: str, path: Optional[str], session_id: str = "default"):
        if provider == "json":
            from swarmhub.db.state_store import JsonStateStore

            return JsonStateStore(path)
        if provider == "sqlite":
            from swarmhub.db.state_store import SqliteStateStore

            return SqliteStateStore(path, session_id=session_id)
        if provider == "none":
            return None
        raise ValueError(f"Unsupported persistence provider: {provider}")
