"""
In-memory command vector index ranked by cosine similarity.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .types import QueryResult, VectorRecord


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 for zero or mismatched vectors."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.size == 0:
        return 0.0

    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    return float(np.dot(va, vb) / (na * nb))


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    @abstractmethod
    def add(self, record: VectorRecord) -> None:
        """Add or replace a single vector record."""
        pass

    @abstractmethod
    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records."""
        pass

    @abstractmethod
    def search(self, query_vector: Sequence[float], top_k: Optional[int] = None,
               candidates: Optional[Iterable[str]] = None) -> List[QueryResult]:
        """Rank stored vectors against the query."""
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all records from the store."""
        pass


class CommandVectorIndex(IVectorStore):
    """Command descriptor vectors kept in registration order.

    Re-adding an id replaces its vector but keeps its original position, so
    equal similarities always rank in registration order.
    """

    def __init__(self):
        self._records: Dict[str, VectorRecord] = {}
        self._normalized: Dict[str, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def add(self, record: VectorRecord) -> None:
        self._records[record.id] = record

        vector = np.asarray(record.vector if record.vector is not None else [], dtype=np.float64)
        norm = np.linalg.norm(vector) if vector.size else 0.0
        # Zero vectors stay zero and score 0.0 against everything
        self._normalized[record.id] = vector / norm if norm > 0 else vector

    def batch_add(self, records: List[VectorRecord]) -> None:
        for record in records:
            self.add(record)

    def search(self, query_vector: Sequence[float], top_k: Optional[int] = None,
               candidates: Optional[Iterable[str]] = None) -> List[QueryResult]:
        """
        Rank stored vectors by cosine similarity to the query.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of results (all when None)
            candidates: Restrict ranking to these ids; unknown ids are ignored

        Returns:
            QueryResults sorted by descending score; a zero query returns []
        """
        query = np.asarray(query_vector, dtype=np.float64)
        norm = np.linalg.norm(query) if query.size else 0.0
        if norm == 0 or not self._records:
            return []
        query = query / norm

        allowed = set(candidates) if candidates is not None else None
        scored = []
        for record_id, stored in self._normalized.items():
            if allowed is not None and record_id not in allowed:
                continue
            score = float(np.dot(query, stored)) if stored.shape == query.shape else 0.0
            scored.append((record_id, score))

        # sorted() is stable: ties keep registration order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)
        if top_k is not None:
            scored = scored[:top_k]

        return [
            QueryResult(id=record_id, score=score, metadata=self._records[record_id].metadata)
            for record_id, score in scored
        ]

    def delete(self, record_id: str) -> None:
        self._records.pop(record_id, None)
        self._normalized.pop(record_id, None)

    def clear(self) -> None:
        self._records.clear()
        self._normalized.clear()
