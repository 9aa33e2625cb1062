"""Resolution cache.

Two tiers:
- MemoryCacheLayer: bounded LRU with per-entry TTL, safe for concurrent use
- JsonFileCacheLayer: optional persistent layer, one JSON document per key

Writes are idempotent (same key, equivalent response), so concurrent callers
racing on a miss only waste work.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import Protocol
from typing import runtime_checkable

from .enums import InstallationType
from .models import PathResolutionRequest
from .models import PathResolutionResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_MEMORY_ENTRIES = 1000

# Only files this layer wrote; the directory may be shared.
_ENTRY_NAME = re.compile(r"^[0-9a-f]{64}\.(json|tmp)$")


@dataclass(frozen=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    memory_entries: int = 0
    persistent_hits: int = 0
    evictions: int = 0

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, float | int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": round(self.hit_ratio, 4),
            "memory_entries": self.memory_entries,
            "persistent_hits": self.persistent_hits,
            "evictions": self.evictions,
        }


@runtime_checkable
class PathResolutionCache(Protocol):
    """Interface the service depends on; tests substitute fakes."""

    def get(self, request: PathResolutionRequest) -> PathResolutionResponse | None: ...

    def put(self, request: PathResolutionRequest, response: PathResolutionResponse) -> None: ...

    def should_cache(self, request: PathResolutionRequest) -> bool: ...

    def clear(self) -> None: ...

    def stats(self) -> CacheStats: ...


class MemoryCacheLayer:
    """Thread-safe LRU keyed by cache key with per-entry expiry."""

    def __init__(self, max_entries: int = DEFAULT_MAX_MEMORY_ENTRIES, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, PathResolutionResponse]] = OrderedDict()
        self._lock = threading.Lock()
        self.evictions = 0

    def get(self, key: str) -> PathResolutionResponse | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, response = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return response

    def put(self, key: str, response: PathResolutionResponse, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, response)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class JsonFileCacheLayer:
    """Persistent layer storing each response as ``{sha256(key)}.json``.

    Document format::

        {"key": ..., "expires_at": <unix time>, "cached_at": <iso>, "response": {...}}
    """

    def __init__(self, cache_dir: Path, clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir)
        self._clock = clock

    def _file_for(self, key: str) -> Path:
        return self.cache_dir / f"{hashlib.sha256(key.encode('utf-8')).hexdigest()}.json"

    def get(self, key: str) -> PathResolutionResponse | None:
        cache_file = self._file_for(key)
        if not cache_file.exists():
            return None
        try:
            document = json.loads(cache_file.read_text(encoding="utf-8"))
            if document.get("key") != key or float(document.get("expires_at", 0)) <= self._clock():
                cache_file.unlink(missing_ok=True)
                return None
            return PathResolutionResponse.from_dict(document["response"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Could not read cache entry {cache_file}: {e}")
            return None

    def put(self, key: str, response: PathResolutionResponse, ttl_seconds: int) -> None:
        document = {
            "key": key,
            "expires_at": self._clock() + ttl_seconds,
            "cached_at": datetime.now(UTC).isoformat(timespec="seconds"),
            "response": response.to_dict(),
        }
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache_file = self._file_for(key)
            tmp_file = cache_file.with_suffix(".tmp")
            tmp_file.write_text(json.dumps(document, indent=2), encoding="utf-8")
            tmp_file.replace(cache_file)
        except OSError as e:
            logger.warning(f"Could not write cache entry for {key}: {e}")

    def clear(self) -> None:
        """Delete cache entries and leftover temp files, leaving the directory in place."""
        for cache_file in self._owned_files():
            cache_file.unlink(missing_ok=True)

    def _owned_files(self) -> list[Path]:
        if not self.cache_dir.is_dir():
            return []
        return sorted(p for p in self.cache_dir.iterdir() if p.is_file() and _ENTRY_NAME.match(p.name))

    def entries(self) -> list[Path]:
        return [p for p in self._owned_files() if p.suffix == ".json"]

    def size_bytes(self) -> int:
        return sum(f.stat().st_size for f in self.entries())


class MultiLayerPathResolutionCache:
    """Memory layer in front of an optional persistent layer.

    A persistent hit is promoted into the memory layer.
    """

    def __init__(
        self,
        memory: MemoryCacheLayer | None = None,
        persistent: JsonFileCacheLayer | None = None,
    ):
        self.memory = memory or MemoryCacheLayer()
        self.persistent = persistent
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._persistent_hits = 0

    def should_cache(self, request: PathResolutionRequest) -> bool:
        """Requests with caching disabled, caller validation rules or AUTO_DETECT bypass the cache."""
        if not request.cache_options.enabled:
            return False
        if request.validation_rules:
            return False
        return request.installation_type != InstallationType.AUTO_DETECT

    def get(self, request: PathResolutionRequest) -> PathResolutionResponse | None:
        key = request.cache_key
        options = request.cache_options

        response = self.memory.get(key) if options.use_memory_cache else None
        from_persistent = False
        if response is None and options.use_persistent_cache and self.persistent is not None:
            response = self.persistent.get(key)
            from_persistent = response is not None
            if response is not None and options.use_memory_cache:
                self.memory.put(key, response, options.ttl_seconds)

        with self._lock:
            if response is None:
                self._misses += 1
            else:
                self._hits += 1
                if from_persistent:
                    self._persistent_hits += 1
        return response

    def put(self, request: PathResolutionRequest, response: PathResolutionResponse) -> None:
        if not response.is_cacheable:
            return
        key = request.cache_key
        options = request.cache_options
        if options.use_memory_cache:
            self.memory.put(key, response, options.ttl_seconds)
        if options.use_persistent_cache and self.persistent is not None:
            self.persistent.put(key, response, options.ttl_seconds)

    def clear(self) -> None:
        self.memory.clear()
        if self.persistent is not None:
            self.persistent.clear()
        with self._lock:
            self._hits = self._misses = self._persistent_hits = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                memory_entries=len(self.memory),
                persistent_hits=self._persistent_hits,
                evictions=self.memory.evictions,
            )
