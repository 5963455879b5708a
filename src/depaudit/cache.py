"""
Artifact class cache for depaudit.

Listing the classes of an archive is the most repeated I/O in an analysis:
``main`` and ``test`` usually resolve the same jars. Listings are memoized
for the lifetime of the cache object and, when enabled, persisted with
diskcache so unchanged jars are not reopened on the next run.
"""

import hashlib
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from diskcache import Cache

from .logging_config import get_logger

logger = get_logger(__name__)

ClassListing = Tuple[str, ...]


class ArtifactClassCache:
    """
    Two-level cache of ``archive path -> sorted class names``.

    Features:
    - In-memory layer shared by every configuration of a run
    - Optional SQLite-backed persistent layer (diskcache)
    - Keys include file size and modification time, so a rebuilt jar
      never serves a stale listing
    - Thread-safe hit/miss accounting
    """

    def __init__(self, cache_dir: str = ".depaudit-cache", enabled: bool = False):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for persistent cache storage
            enabled: Whether the persistent layer is enabled
        """
        self.enabled = enabled
        self._memory: Dict[str, ClassListing] = {}
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

        if self.enabled:
            self.cache: Optional[Cache] = Cache(cache_dir)
            logger.debug(f"Artifact class cache initialized at {cache_dir}")
        else:
            self.cache = None

    @staticmethod
    def _key(path: Path) -> Optional[str]:
        """Cache key from file metadata; None for paths that cannot be keyed.

        Directories are never keyed: their mtime does not change when a
        nested class file does.
        """
        try:
            if path.is_dir():
                return None
            stat = path.stat()
        except OSError:
            return None
        key_data = f"{path.resolve()}:{stat.st_mtime_ns}:{stat.st_size}"
        return hashlib.sha256(key_data.encode()).hexdigest()

    def classes_for(self, path: Path, loader: Callable[[Path], ClassListing]) -> ClassListing:
        """Return the class listing for ``path``, calling ``loader`` on a miss.

        Errors raised by ``loader`` propagate and nothing is cached.
        """
        key = self._key(path)
        if key is not None:
            with self._lock:
                cached = self._memory.get(key)
            if cached is None:
                cached = self._get_persistent(key)
                if cached is not None:
                    with self._lock:
                        self._memory[key] = cached
            if cached is not None:
                with self._lock:
                    self.hits += 1
                logger.debug(f"Artifact class cache hit for {path}")
                return cached

        with self._lock:
            self.misses += 1
        logger.debug(f"Artifact class cache miss for {path}")
        listing = tuple(loader(path))
        if key is not None:
            with self._lock:
                self._memory[key] = listing
            self._set_persistent(key, listing)
        return listing

    def _get_persistent(self, key: str) -> Optional[ClassListing]:
        if self.cache is None:
            return None
        try:
            value = self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None
        return tuple(value) if value is not None else None

    def _set_persistent(self, key: str, listing: ClassListing) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, list(listing))
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")

    def clear(self) -> None:
        """Clear both cache layers."""
        with self._lock:
            self._memory.clear()
        if self.cache is None:
            return
        try:
            self.cache.clear()
            logger.info("Cache cleared")
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")

    def stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        stats = {
            "enabled": self.enabled,
            "hits": self.hits,
            "misses": self.misses,
            "memory_entries": len(self._memory),
        }
        if self.cache is not None:
            try:
                stats["size"] = len(self.cache)
                stats["directory"] = self.cache.directory
            except Exception as e:
                logger.warning(f"Cache stats failed: {e}")
                stats["error"] = str(e)
        return stats

    def close(self) -> None:
        """Close cache (cleanup)."""
        if self.cache is not None:
            self.cache.close()
