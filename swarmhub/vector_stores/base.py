from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class MemoryResult:
    """Standard result type returned by all vector store implementations."""
    id: str
    score: float = 0.0
    payload: Dict[str, Any] = field(default_factory=dict)


class VectorStoreBase(ABC):
    @abstractmethod
    def insert(self, vectors: List[List[float]], payloads: Optional[List[Dict[str, Any]]] = None, ids: Optional[List[str]] = None) -> None:
        pass

    @abstractmethod
    def search(self, vectors: List[float], limit: int = 5, filters: Optional[Dict[str, Any]] = None) -> List[MemoryResult]:
        pass

    @abstractmethod
    def get(self, vector_id: str) -> Optional[MemoryResult]:
        pass

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[MemoryResult]:
        pass

    @abstractmethod
    def col_info(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def reset(self) -> None:
        pass

    def close(self) -> None:
        """Release resources. Override in subclasses that hold connections."""
        pass
