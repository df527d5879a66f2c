"""
Embedding providers and the embedding service.

Two interchangeable providers sit behind IEmbeddingProvider: a
sentence-transformers model and a deterministic, model-free heuristic.
EmbeddingsService picks between them from its explicit state and never lets a
model failure reach the caller.
"""

from abc import ABC, abstractmethod
from enum import Enum
import asyncio
import hashlib
import re
from collections import Counter
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from sentence_transformers import SentenceTransformer

from ..core import config
from ..core.errors import EmbeddingBatchMismatchError
from ..util.logging import logger
from .cache import EmbeddingCache
from .types import EmbeddingResult, EmbeddingVector, LoadProgress

ProgressCallback = Callable[[LoadProgress], None]

_WORD_RE = re.compile(r"[a-z0-9]+")


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> EmbeddingVector:
        """Generate embedding vector for given text."""
        pass

    def embed_texts(self, texts: List[str]) -> List[EmbeddingVector]:
        """Generate embedding vectors for several texts."""
        return [self.embed_text(text) for text in texts]

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class HeuristicEmbedding(IEmbeddingProvider):
    """Deterministic hashed-feature embedding used when no model is available.

    Word tokens and padded character trigrams are hashed (md5) into a fixed
    number of non-negative buckets and the result is L2-normalized. Texts that
    share words or word fragments land close together; that is all the
    semantic quality this provider promises.
    """

    WORD_WEIGHT = 1.0
    TRIGRAM_WEIGHT = 0.5

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    @staticmethod
    def tokenize(text: str) -> List[str]:
        words = _WORD_RE.findall(text.lower())
        if not words:
            # Symbol-only text still gets features
            words = text.lower().split()
        return words

    def _bucket(self, feature: str) -> int:
        digest = hashlib.md5(feature.encode("utf-8")).hexdigest()
        return int(digest[:8], 16) % self.dimension

    def embed_text(self, text: str) -> EmbeddingVector:
        """Embed text; empty or whitespace-only text yields the zero vector."""
        vector = np.zeros(self.dimension, dtype=np.float64)
        if not text or not text.strip():
            return vector.tolist()

        for word, count in Counter(self.tokenize(text)).items():
            vector[self._bucket("w:" + word)] += self.WORD_WEIGHT * count
            padded = f"#{word}#"
            for i in range(len(padded) - 2):
                vector[self._bucket("g:" + padded[i:i + 3])] += self.TRIGRAM_WEIGHT * count

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.tolist()
        return (vector / norm).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Defaults to BAAI/bge-small-en-v1.5 (384 dimensions). Vectors are
    normalized by the model so cosine similarity is a plain dot product.
    """

    def __init__(self, model_name: str = "BAAI/bge-small-en-v1.5"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def load(self) -> "SentenceTransformerEmbedding":
        """Eagerly load the model (may download it). Raises on failure."""
        _ = self.model
        return self

    def embed_text(self, text: str) -> EmbeddingVector:
        """Generate embedding vector using sentence transformers."""
        return self.embed_texts([text])[0]

    def embed_texts(self, texts: List[str]) -> List[EmbeddingVector]:
        embeddings = self.model.encode(texts, convert_to_numpy=True, normalize_embeddings=True)
        return [row.tolist() for row in embeddings]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class ServiceState(str, Enum):
    """Lifecycle of an EmbeddingsService."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY_MODEL = "ready_model"
    READY_FALLBACK = "ready_fallback"


def heuristic_version(dimension: int) -> str:
    """Version tag for cached heuristic vectors of the given dimension."""
    return f"heuristic-{dimension}"


def load_sentence_transformer(model_name: str) -> IEmbeddingProvider:
    """Default backend loader: a fully loaded sentence-transformers provider."""
    return SentenceTransformerEmbedding(model_name).load()


class EmbeddingsService:
    """
    Embedding service with lazy model loading, caching and heuristic fallback.

    Construction is cheap. The model is loaded on the first embed() or an
    explicit init(); concurrent callers share a single load. If loading fails
    for any reason the service settles in READY_FALLBACK for good (until
    reload_model()) and serves heuristic vectors.
    """

    def __init__(self, enabled: Optional[bool] = None, model_name: Optional[str] = None,
                 model_version: Optional[str] = None, cache: Optional[EmbeddingCache] = None,
                 cache_path: Optional[Path] = None, dimension: Optional[int] = None,
                 backend_loader: Optional[Callable[[], IEmbeddingProvider]] = None):
        """
        Initialize the embeddings service.

        Args:
            enabled: Allow loading the real model; False means heuristic only
            model_name: Model name to use, defaults to config setting
            model_version: Version tag stored with cached vectors
            cache: Pre-built cache (cache_path is ignored when given)
            cache_path: Location of the cache file
            dimension: Heuristic embedding dimension
            backend_loader: Zero-argument callable returning a loaded provider
        """
        self.enabled = config.is_embedding_model_enabled() if enabled is None else enabled
        self.model_name = model_name or config.EMBED_MODEL_NAME
        self.model_version = model_version or config.EMBEDDING_MODEL_VERSION
        self.cache = cache or EmbeddingCache(self.model_version, cache_path, model_id=self.model_name)
        self.heuristic = HeuristicEmbedding(dimension or config.EMBED_DIM)
        self._backend_loader = backend_loader or (lambda: load_sentence_transformer(self.model_name))

        self._provider: Optional[IEmbeddingProvider] = None
        self._init_task: Optional[asyncio.Future] = None
        self._initialized = False
        self.state = self._initial_state()

    def _initial_state(self) -> ServiceState:
        # A disabled service never loads a model, so it is in fallback from the start
        return ServiceState.UNINITIALIZED if self.enabled else ServiceState.READY_FALLBACK

    async def init(self, progress_callback: Optional[ProgressCallback] = None) -> None:
        """
        Load cache and model. Idempotent; concurrent calls share one attempt.

        Args:
            progress_callback: Receives LoadProgress updates while the model loads.
                Only the call that starts the load reports progress.
        """
        if self._initialized:
            return

        if self._init_task is None or self._init_task.done():
            self._init_task = asyncio.ensure_future(self._do_init(progress_callback))

        await self._init_task

    def _report(self, progress_callback: Optional[ProgressCallback], status: str, error: Optional[str] = None) -> None:
        if progress_callback is None:
            return
        try:
            progress_callback(LoadProgress(status=status, model_name=self.model_name, error=error))
        except Exception as e:
            logger.log_embedding_operation("progress", "failed", {"error": f"{type(e).__name__}: {e}"})

    async def _do_init(self, progress_callback: Optional[ProgressCallback] = None) -> None:
        if self.enabled:
            self.state = ServiceState.LOADING

        await asyncio.to_thread(self.cache.load)

        if not self.enabled:
            self.cache.model_version = self._active_version()
            self._initialized = True
            logger.log_embedding_operation("init", "heuristic", {"reason": "model disabled"})
            return

        # First use may download the model
        logger.log_embedding_operation("load", "started", {"model": self.model_name})
        self._report(progress_callback, "loading")

        try:
            self._provider = await asyncio.to_thread(self._backend_loader)
        except Exception as e:
            self._provider = None
            self.state = ServiceState.READY_FALLBACK
            error = f"{type(e).__name__}: {e}"
            logger.log_embedding_operation("init", "fallback", {
                "model": self.model_name,
                "error": error,
            })
            self._report(progress_callback, "fallback", error)
        else:
            self.state = ServiceState.READY_MODEL
            logger.log_embedding_operation("init", "success", {"model": self.model_name})
            self._report(progress_callback, "ready")

        self.cache.model_version = self._active_version()
        self._initialized = True

    def _active_method(self) -> str:
        return "model" if self.state is ServiceState.READY_MODEL else "heuristic"

    def _active_version(self) -> str:
        # Heuristic vectors are cached apart from model vectors
        if self.state is ServiceState.READY_MODEL:
            return self.model_version
        return heuristic_version(self.heuristic.dimension)

    async def _compute(self, texts: List[str]) -> Tuple[List[EmbeddingVector], str]:
        """Embed texts with whichever backend the current state selects."""
        if self.state is ServiceState.READY_MODEL:
            # Blank text maps to the zero vector for every backend
            dimension = self._provider.get_dimension()
            non_blank = [i for i, text in enumerate(texts) if text.strip()]
            vectors: List[EmbeddingVector] = [[0.0] * dimension for _ in texts]
            try:
                if non_blank:
                    computed = await asyncio.to_thread(
                        self._provider.embed_texts, [texts[i] for i in non_blank]
                    )
                    for i, vector in zip(non_blank, computed):
                        vectors[i] = vector
                return vectors, "model"
            except Exception as e:
                logger.log_embedding_operation("embed", "failed", {
                    "texts": len(texts),
                    "error": f"{type(e).__name__}: {e}",
                })

        return self.heuristic.embed_texts(texts), "heuristic"

    async def embed(self, text: str, owner_key: Optional[str] = None) -> EmbeddingResult:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed
            owner_key: Optional cache owner (e.g. a command name); enables caching

        Returns:
            EmbeddingResult with vector, cache flag and backend method
        """
        await self.init()

        if owner_key:
            cached = self.cache.get(owner_key, text)
            if cached is not None:
                return EmbeddingResult(embedding=cached, from_cache=True, method=self._active_method())

        vectors, method = await self._compute([text])
        if owner_key and method == self._active_method():
            self.cache.set(owner_key, text, vectors[0])

        return EmbeddingResult(embedding=vectors[0], from_cache=False, method=method)

    async def embed_batch(self, texts: List[str], owner_keys: Optional[List[str]] = None) -> List[EmbeddingResult]:
        """
        Generate embeddings for multiple texts; only cache misses are computed.

        Raises:
            EmbeddingBatchMismatchError: owner_keys given with a different length than texts
        """
        if owner_keys is not None and len(owner_keys) != len(texts):
            raise EmbeddingBatchMismatchError(len(texts), len(owner_keys))

        await self.init()

        results: List[Optional[EmbeddingResult]] = [None] * len(texts)
        pending: List[int] = []

        for i, text in enumerate(texts):
            owner = owner_keys[i] if owner_keys else None
            if owner:
                cached = self.cache.get(owner, text)
                if cached is not None:
                    results[i] = EmbeddingResult(embedding=cached, from_cache=True, method=self._active_method())
                    continue
            pending.append(i)

        if pending:
            vectors, method = await self._compute([texts[i] for i in pending])
            for i, vector in zip(pending, vectors):
                owner = owner_keys[i] if owner_keys else None
                if owner and method == self._active_method():
                    self.cache.set(owner, texts[i], vector)
                results[i] = EmbeddingResult(embedding=vector, from_cache=False, method=method)

        return results

    async def get_or_compute(self, owner_key: str, content: str) -> EmbeddingResult:
        """Cached embedding for an owner's content, computing it on a miss."""
        return await self.embed(content, owner_key)

    def is_using_fallback(self) -> bool:
        return self.state is ServiceState.READY_FALLBACK

    def reset(self) -> None:
        """Forget the loaded model; the next init() loads again."""
        self.state = self._initial_state()
        self._provider = None
        self._init_task = None
        self._initialized = False

    async def reload_model(self, progress_callback: Optional[ProgressCallback] = None) -> bool:
        """Retry loading the model. Returns True if the model is now in use."""
        self.reset()
        await self.init(progress_callback)
        return self.state is ServiceState.READY_MODEL

    async def save_cache(self) -> bool:
        """Flush the cache to disk if it changed. Never raises."""
        return await asyncio.to_thread(self.cache.save)

    def get_status(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "initialized": self._initialized,
            "fallback_mode": self.is_using_fallback(),
            "model_name": self.model_name,
            "cache_stats": self.cache.get_stats(),
        }


def create_embeddings_service(**overrides) -> EmbeddingsService:
    """Build an EmbeddingsService from environment configuration."""
    return EmbeddingsService(**overrides)
