"""Compressed, versioned, quota-limited cache for pipeline results.

Values are JSON-serialized, zlib-compressed and base64-encoded into a
text envelope alongside metadata (timestamp, version, sizes). Entries
live in an injected store under an explicit namespace prefix:

- MemoryStore: in-process dict, used for sessions and tests.
- RedisStore: durable store on the lazily connected Redis client.

Both stores enforce a byte quota. A write that would not fit returns
False instead of raising. Entries that are stale, carry another
version, or fail to decode are evicted when read, so they are never
served. The cache does no locking; callers serialize concurrent writers
to the same key.
"""

import base64
import binascii
import json
import logging
import time
import zlib
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

import redis

from app.config import settings

logger = logging.getLogger(__name__)

# Lazy-initialized Redis client (None if unavailable)
_redis_client: Optional[redis.Redis] = None
_redis_checked = False


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis client, or None if Redis is unavailable."""
    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client
    _redis_checked = True
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        _redis_client = client
        logger.info("Redis connected: %s", settings.REDIS_URL)
    except Exception as e:
        logger.warning("Redis unavailable, caching disabled: %s", e)
        _redis_client = None
    return _redis_client


class QuotaExceededError(Exception):
    """A store write would exceed the store's byte quota."""


# ── Stores ──

class CacheStore(ABC):
    """Key/value store with a byte quota over keys and values."""

    quota_bytes: int

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Raises QuotaExceededError if the write would not fit."""

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]: ...

    @abstractmethod
    def used_bytes(self, prefix: str = "") -> int: ...


class MemoryStore(CacheStore):
    """In-process key/value store with a byte quota."""

    def __init__(self, quota_bytes: int = settings.CACHE_QUOTA_BYTES):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        used = self.used_bytes() - self._size(key, self._data.get(key))
        if used + self._size(key, value) > self.quota_bytes:
            raise QuotaExceededError(f"Writing {key} would exceed {self.quota_bytes} bytes")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]

    def used_bytes(self, prefix: str = "") -> int:
        return sum(self._size(k, v) for k, v in self._data.items() if k.startswith(prefix))

    @staticmethod
    def _size(key: str, value: Optional[str]) -> int:
        return 0 if value is None else len(key) + len(value)


class RedisStore(CacheStore):
    """Durable store on Redis. The quota covers keys under ``prefix``."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        prefix: str = settings.CACHE_NAMESPACE,
        quota_bytes: int = settings.CACHE_QUOTA_BYTES,
    ):
        self.client = client if client is not None else get_redis()
        if self.client is None:
            raise ConnectionError(f"Redis unavailable at {settings.REDIS_URL}")
        self.prefix = prefix
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str) -> None:
        existing = self.client.strlen(key)
        current = len(key) + existing if existing else 0
        if self.used_bytes(self.prefix) - current + len(key) + len(value) > self.quota_bytes:
            raise QuotaExceededError(f"Writing {key} would exceed {self.quota_bytes} bytes")
        self.client.set(key, value)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def keys(self, prefix: str = "") -> list[str]:
        return list(self.client.scan_iter(match=f"{prefix}*", count=200))

    def used_bytes(self, prefix: str = "") -> int:
        return sum(len(k) + self.client.strlen(k) for k in self.keys(prefix))


# ── Entries ──

@dataclass
class CacheMetadata:
    timestamp: float        # epoch seconds
    version: str
    size: int               # serialized JSON length
    compressed_size: int    # stored payload length
    compressed: bool = True

    @classmethod
    def from_dict(cls, meta: dict) -> "CacheMetadata":
        """Coerce stored metadata. Unknown keys are ignored; bad types raise."""
        if not isinstance(meta, dict):
            raise TypeError(f"metadata must be an object, got {type(meta).__name__}")
        version = meta["version"]
        if not isinstance(version, str):
            raise TypeError(f"version must be a string, got {type(version).__name__}")
        timestamp = float(meta["timestamp"])
        if timestamp != timestamp:
            raise ValueError("timestamp is NaN")
        return cls(
            timestamp=timestamp,
            version=version,
            size=int(meta["size"]),
            compressed_size=int(meta["compressed_size"]),
            compressed=bool(meta.get("compressed", True)),
        )


@dataclass
class CacheEntry:
    key: str
    metadata: CacheMetadata
    data: str  # base64 of zlib-compressed JSON

    def to_json(self) -> str:
        return json.dumps({"metadata": asdict(self.metadata), "data": self.data})

    @classmethod
    def from_json(cls, key: str, raw: str) -> "CacheEntry":
        doc = json.loads(raw)
        if not isinstance(doc, dict):
            raise TypeError(f"cache entry must be an object, got {type(doc).__name__}")
        data = doc["data"]
        if not isinstance(data, str):
            raise TypeError(f"payload must be a string, got {type(data).__name__}")
        return cls(key=key, metadata=CacheMetadata.from_dict(doc["metadata"]), data=data)


@dataclass
class CacheStats:
    entries: int
    total_size: int
    usage_percent: float


def compress_value(value: Any) -> tuple[str, int]:
    """Serialize and compress. Returns (payload, serialized length)."""
    serialized = json.dumps(value, separators=(",", ":"))
    payload = base64.b64encode(zlib.compress(serialized.encode("utf-8"))).decode("ascii")
    return payload, len(serialized)


def decompress_value(payload: str) -> Any:
    raw = zlib.decompress(base64.b64decode(payload, validate=True))
    return json.loads(raw.decode("utf-8"))


class CompressedCache:
    """Namespaced compressed cache over an injected store."""

    def __init__(
        self,
        store: CacheStore,
        namespace: str = settings.CACHE_NAMESPACE,
        version: str = settings.CACHE_VERSION,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.namespace = namespace
        self.version = version
        self.clock = clock

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def set(self, key: str, value: Any, version: Optional[str] = None) -> bool:
        """Compress and store ``value``. Returns False if it cannot be stored."""
        try:
            payload, size = compress_value(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize cache value {key}: {e}")
            return False

        entry = CacheEntry(
            key=key,
            metadata=CacheMetadata(
                timestamp=self.clock(),
                version=version or self.version,
                size=size,
                compressed_size=len(payload),
            ),
            data=payload,
        )
        full_key = self._full_key(key)
        try:
            self.store.set(full_key, entry.to_json())
        except QuotaExceededError:
            logger.warning(
                f"Data too large for cache ({len(payload)} bytes compressed): {key}"
            )
            return False
        except redis.exceptions.RedisError as e:
            logger.warning(f"Failed to cache {key}: {e}")
            return False

        ratio = len(payload) / size * 100 if size else 100.0
        logger.info(f"Cached {key} ({size} -> {len(payload)} bytes, {ratio:.1f}% of original)")
        return True

    def get(self, key: str) -> Optional[CacheEntry]:
        """Stored entry, or None if absent, unreadable or another version."""
        try:
            raw = self.store.get(self._full_key(key))
        except redis.exceptions.RedisError as e:
            logger.warning(f"Cache read error for {key}: {e}")
            return None
        if raw is None:
            return None

        try:
            entry = CacheEntry.from_json(key, raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable cache entry {key}, evicting: {e}")
            self.clear(key)
            return None

        if entry.metadata.version != self.version:
            logger.info(
                f"Cache entry {key} has version {entry.metadata.version}, "
                f"expected {self.version}; evicting"
            )
            self.clear(key)
            return None
        return entry

    def is_valid(self, entry: CacheEntry, ttl: float, now: Optional[float] = None) -> bool:
        """True while ``now - timestamp <= ttl`` (seconds)."""
        if now is None:
            now = self.clock()
        age = now - entry.metadata.timestamp
        if age > ttl:
            logger.info(f"Cache expired: {age:.0f}s old (max: {ttl:.0f}s)")
            return False
        return True

    def get_decompressed(self, key: str) -> Optional[Any]:
        """Decoded value, or None. Corrupt entries are evicted."""
        entry = self.get(key)
        if entry is None:
            return None
        try:
            return decompress_value(entry.data)
        except (ValueError, TypeError, zlib.error, binascii.Error, UnicodeDecodeError) as e:
            logger.warning(f"Failed to decompress cached {key}, evicting: {e}")
            self.clear(key)
            return None

    def get_fresh(self, key: str, ttl: float) -> Optional[Any]:
        """Decoded value if present and within ``ttl``; stale entries are evicted."""
        entry = self.get(key)
        if entry is None:
            return None
        if not self.is_valid(entry, ttl):
            self.clear(key)
            return None
        return self.get_decompressed(key)

    def clear(self, key: Optional[str] = None) -> None:
        """Remove one entry, or every entry under this namespace."""
        try:
            if key is not None:
                self.store.delete(self._full_key(key))
                logger.debug(f"Cleared cache: {key}")
                return
            keys = self.store.keys(self.namespace)
            for full_key in keys:
                self.store.delete(full_key)
            logger.info(f"Cleared all cache entries ({len(keys)} items)")
        except redis.exceptions.RedisError as e:
            logger.warning(f"Cache clear error: {e}")

    def stats(self) -> CacheStats:
        entries = len(self.store.keys(self.namespace))
        total = self.store.used_bytes(self.namespace)
        quota = self.store.quota_bytes
        return CacheStats(
            entries=entries,
            total_size=total,
            usage_percent=total / quota * 100 if quota else 0.0,
        )


def get_default_cache() -> CompressedCache:
    """Cache on the configured backend, falling back to memory."""
    if settings.CACHE_BACKEND == "redis":
        client = get_redis()
        if client is not None:
            return CompressedCache(RedisStore(client=client))
        logger.warning("Redis cache backend unavailable, using in-memory cache")
    return CompressedCache(MemoryStore())
