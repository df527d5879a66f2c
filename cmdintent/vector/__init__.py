"""
Embedding layer: providers, the embedding service, its cache and the command vector index.
"""

from .types import EmbeddingVector, EmbeddingResult, CacheEntry, VectorRecord, QueryResult, LoadProgress
from .cache import EmbeddingCache, compute_content_hash
from .index import IVectorStore, CommandVectorIndex, cosine_similarity
from .embeddings import (
    IEmbeddingProvider,
    HeuristicEmbedding,
    SentenceTransformerEmbedding,
    ServiceState,
    EmbeddingsService,
    create_embeddings_service,
    heuristic_version,
)

__all__ = [
    'EmbeddingVector',
    'EmbeddingResult',
    'CacheEntry',
    'VectorRecord',
    'QueryResult',
    'LoadProgress',
    'EmbeddingCache',
    'compute_content_hash',
    'IVectorStore',
    'CommandVectorIndex',
    'cosine_similarity',
    'IEmbeddingProvider',
    'HeuristicEmbedding',
    'SentenceTransformerEmbedding',
    'ServiceState',
    'EmbeddingsService',
    'create_embeddings_service',
    'heuristic_version',
]
