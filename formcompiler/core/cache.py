"""
Bounded LRU cache of compiled schemas.

Keys are content hashes of the metadata, so two equal metadata values
share a slot regardless of object identity. Bookkeeping is serialized by
a lock; concurrent misses on the same key wait for a single build.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field

from pydantic import BaseModel

from formcompiler.core.builder import CompiledSchema, SchemaBuilder
from formcompiler.core.schema import FormMetadata
from formcompiler.core.utils import memory_usage_mb

logger = logging.getLogger(__name__)

# Default capacity: a small double-digit number of distinct forms
DEFAULT_CACHE_MAX_SIZE = 50


@dataclass
class CacheEntry:
    """A compiled schema stored under its metadata hash."""

    key: str
    schema: CompiledSchema
    last_accessed: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        """Update the last accessed timestamp."""
        self.last_accessed = time.monotonic()


class CacheStats(BaseModel):
    """Point-in-time view of the cache."""

    size: int
    max_size: int
    hit_rate: float
    memory_usage: float
    hits: int
    misses: int


class CompilationCache:
    """LRU cache in front of the schema builder.

    Args:
        max_size: Maximum number of compiled schemas kept.
        builder: Builder used on a miss.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_MAX_SIZE, builder: SchemaBuilder | None = None):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")

        self.max_size = max_size
        self._builder = builder or SchemaBuilder()
        # Ordered from least to most recently accessed
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._build_locks: dict[str, threading.Lock] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get_or_compile(self, metadata: FormMetadata) -> CompiledSchema:
        """Return the compiled schema for the metadata, building it on a miss."""
        schema, _ = self.lookup(metadata)
        return schema

    def lookup(self, metadata: FormMetadata) -> tuple[CompiledSchema, bool]:
        """Like get_or_compile, also reporting whether it was a cache hit."""
        key = metadata.content_hash()

        with self._lock:
            schema = self._get_entry(key)
            if schema is not None:
                return schema, True
            build_lock = self._build_locks.setdefault(key, threading.Lock())

        with build_lock:
            # Another caller may have built it while we waited
            with self._lock:
                schema = self._get_entry(key)
                if schema is not None:
                    return schema, True

            try:
                schema = self._builder.build(metadata, key)
                with self._lock:
                    self._misses += 1
                    self._insert(key, schema)
            finally:
                with self._lock:
                    self._build_locks.pop(key, None)

        return schema, False

    def clear(self) -> None:
        """Drop every entry and reset the hit / miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.debug("Compilation cache cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total) * 100 if total else 0.0
            return CacheStats(
                size=len(self._entries),
                max_size=self.max_size,
                hit_rate=hit_rate,
                memory_usage=memory_usage_mb(),
                hits=self._hits,
                misses=self._misses,
            )

    def keys(self) -> list[str]:
        """Cached keys, least recently accessed first."""
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    # -----------------------------------------------------------------
    # Internal helpers (caller holds self._lock)
    # -----------------------------------------------------------------

    def _get_entry(self, key: str) -> CompiledSchema | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        entry.touch()
        self._entries.move_to_end(key)
        self._hits += 1
        logger.debug("Cache hit for %s", key[:12])
        return entry.schema

    def _insert(self, key: str, schema: CompiledSchema) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
            self._entries[key] = CacheEntry(key=key, schema=schema)
            return

        while len(self._entries) >= self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug("Evicted least recently used schema %s", evicted_key[:12])

        self._entries[key] = CacheEntry(key=key, schema=schema)
