"""
Persistent embedding cache with content-hash and model-version invalidation.

Entries are keyed by "<owner>:<content hash>". A lookup only hits when the
stored model version equals the cache's current model version, so stale
vectors are never returned. Each owner holds at most one live entry.
"""

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..core.config import EMBED_MODEL_NAME, resolve_cache_path
from ..util.logging import logger
from .types import CacheEntry, EmbeddingVector

# Bump when the on-disk layout changes; mismatching files are discarded
CACHE_VERSION = "1.0"


def compute_content_hash(content: str) -> str:
    """SHA-256 of the content, truncated to 16 hex characters."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


class EmbeddingCache:
    """JSON-backed embedding cache."""

    def __init__(self, model_version: str, cache_path: Optional[Path] = None, model_id: str = EMBED_MODEL_NAME):
        """
        Args:
            model_version: Version tag of the embedding model/config producing vectors
            cache_path: Location of the backing JSON file (resolved from config if omitted)
            model_id: Model identifier recorded in the file header
        """
        self.model_version = model_version
        self.model_id = model_id
        self.cache_path = Path(cache_path) if cache_path is not None else resolve_cache_path()
        self._entries: Dict[str, CacheEntry] = {}
        self._dirty = False

    @property
    def dirty(self) -> bool:
        """Whether there are changes not yet written by save()."""
        return self._dirty

    def load(self) -> None:
        """
        Load the cache from disk.

        A missing, unreadable, corrupt or differently-versioned file leaves an
        empty cache behind; this never raises.
        """
        self._entries = {}
        self._dirty = False

        if not self.cache_path.exists():
            return

        try:
            with open(self.cache_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.log_cache_operation("load", "failed", {"path": str(self.cache_path), "error": str(e)})
            return

        if not self._valid_store(raw):
            logger.log_cache_operation("load", "discarded", {"path": str(self.cache_path)})
            return

        for key, data in raw["entries"].items():
            try:
                self._entries[key] = CacheEntry.from_dict(data)
            except (KeyError, TypeError, ValueError):
                # Skip malformed entries, keep the rest
                continue

        logger.log_cache_operation("load", "success", {"entries": len(self._entries)})

    @staticmethod
    def _valid_store(raw: Any) -> bool:
        return (
            isinstance(raw, dict)
            and raw.get("version") == CACHE_VERSION
            and isinstance(raw.get("modelId"), str)
            and isinstance(raw.get("entries"), dict)
        )

    def save(self) -> bool:
        """
        Persist the cache if it changed since the last save.

        Returns:
            True when the file was written, False when nothing changed or the write failed
        """
        if not self._dirty:
            return False

        store = {
            "version": CACHE_VERSION,
            "modelId": self.model_id,
            "entries": {key: entry.to_dict() for key, entry in self._entries.items()},
        }

        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_path, "w", encoding="utf-8") as f:
                json.dump(store, f)
        except OSError as e:
            logger.log_cache_operation("save", "failed", {"path": str(self.cache_path), "error": str(e)})
            return False

        self._dirty = False
        logger.log_cache_operation("save", "success", {"entries": len(self._entries)})
        return True

    @staticmethod
    def _key(owner: str, content_hash: str) -> str:
        return f"{owner}:{content_hash}"

    def get(self, owner: str, content: str) -> Optional[EmbeddingVector]:
        """Return the cached embedding, or None on a miss or model version mismatch."""
        entry = self._entries.get(self._key(owner, compute_content_hash(content)))
        if entry is None or entry.model_version != self.model_version:
            return None
        return entry.embedding

    def set(self, owner: str, content: str, embedding: EmbeddingVector) -> None:
        """Store an embedding, replacing every previous entry for the owner."""
        content_hash = compute_content_hash(content)
        self._delete_owner(owner)
        self._entries[self._key(owner, content_hash)] = CacheEntry(
            embedding=list(embedding),
            model_version=self.model_version,
            content_hash=content_hash,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._dirty = True

    def has(self, owner: str, content: str) -> bool:
        return self.get(owner, content) is not None

    def delete(self, owner: str) -> None:
        """Remove all entries for an owner regardless of content hash."""
        self._delete_owner(owner)

    def _delete_owner(self, owner: str) -> None:
        # Owners may contain ":" themselves; the hash suffix never does
        for key in [k for k in self._entries if k.rsplit(":", 1)[0] == owner]:
            del self._entries[key]
            self._dirty = True

    def clear(self) -> None:
        if self._entries:
            self._entries.clear()
            self._dirty = True

    def get_stats(self) -> Dict[str, Any]:
        return {
            "entries": len(self._entries),
            "model_id": self.model_id,
            "version": CACHE_VERSION,
            "model_version": self.model_version,
            "path": str(self.cache_path),
        }

    def get_stale_entries(self, max_age_seconds: float) -> List[str]:
        """Keys of entries older than max_age_seconds."""
        now = datetime.now(timezone.utc)
        stale = []
        for key, entry in self._entries.items():
            try:
                created = datetime.fromisoformat(entry.created_at)
            except ValueError:
                stale.append(key)
                continue
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            if (now - created).total_seconds() > max_age_seconds:
                stale.append(key)
        return stale

    def remove_keys(self, keys: List[str]) -> int:
        """Remove specific cache keys (e.g. from get_stale_entries). Returns the number removed."""
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        if removed:
            self._dirty = True
        return removed

    def get_with_version_info(self, owner: str, content: str) -> Optional[CacheEntry]:
        """Return the entry for this content regardless of model version."""
        return self._entries.get(self._key(owner, compute_content_hash(content)))

    def has_version_drift(self, owner: str, content: str) -> bool:
        """True when an entry exists for this content but was built by another model version."""
        entry = self.get_with_version_info(owner, content)
        return entry is not None and entry.model_version != self.model_version

    def get_stale_version_entries(self, current_versions: Optional[Iterable[str]] = None) -> List[str]:
        """Keys of entries built by a version outside current_versions (default: model_version)."""
        current = set(current_versions) if current_versions is not None else {self.model_version}
        return [key for key, entry in self._entries.items() if entry.model_version not in current]
