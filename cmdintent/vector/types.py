"""
Vector layer types: embedding results, cache entries and index records.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

EmbeddingVector = List[float]


@dataclass
class EmbeddingResult:
    """Represents the outcome of embedding a single text."""

    embedding: EmbeddingVector
    """The embedding vector (L2-normalized, or all zeros for empty text)"""

    from_cache: bool = False
    """Whether the vector was served from the embedding cache"""

    method: str = "heuristic"
    """Which backend produced the vector: 'model' or 'heuristic'"""


@dataclass
class CacheEntry:
    """A cached embedding plus the metadata needed to invalidate it."""

    embedding: EmbeddingVector
    model_version: str
    content_hash: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "embedding": self.embedding,
            "modelVersion": self.model_version,
            "contentHash": self.content_hash,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            embedding=list(data["embedding"]),
            model_version=str(data["modelVersion"]),
            content_hash=str(data["contentHash"]),
            created_at=str(data["createdAt"]),
        )


@dataclass
class VectorRecord:
    """A vector stored in a command index."""

    id: str
    """Identifier of the owning command"""

    vector: Optional[EmbeddingVector]
    """The vector representation of the command descriptor"""

    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass
class QueryResult:
    """Represents a ranked hit from a command index."""

    id: str
    score: float
    """Cosine similarity of the match"""

    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass
class LoadProgress:
    """Model load progress reported to an init() callback."""

    status: str
    """'loading', 'ready' or 'fallback'"""

    model_name: str
    error: Optional[str] = None
    """Why loading failed, for 'fallback'"""
