# File: modelschema/cache.py
"""
ModelSchema - Cache Layer
==========================
Caches parsed schemas (by content and by file) and validation results.

Storage is pluggable through ``CacheStore``:

- ``InMemoryCacheStore``: process-local dict with per-key TTL.
- ``RedisCacheStore``: shared Redis backend; values are pickled and written
  with ``SETEX``.  Any Redis failure surfaces as ``CacheUnavailable``.

``SchemaCache`` sits on top of a store and fails soft: a store outage is
logged and counted, and the caller sees a miss.

Keys::

    <prefix>content:<sha256 of canonical document>[:<model>]
    <prefix>file:<sha256 of resolved path | mtime_ns>
    <prefix>validation:<sha256 of canonical schema set>

Example::

    cache = SchemaCache(InMemoryCacheStore())
    schema = cache.get_schema_by_content(text)
    if schema is None:
        schema = parser.parse(text)
        cache.put_schema_by_content(text, schema)
"""

from __future__ import annotations

import hashlib
import logging
import pickle
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

import redis
import yaml

from modelschema.config import CacheSettings
from modelschema.errors import CacheUnavailable
from modelschema.models import Schema
from modelschema.utils import canonical_json, fingerprint, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.cache")

NAMESPACES: tuple = ("content", "file", "validation")


# ---------------------------------------------------------------------------
# Fingerprints
# ---------------------------------------------------------------------------


def content_fingerprint(content: Union[str, bytes]) -> str:
    """
    SHA-256 of the decoded document in canonical JSON form.

    Documents that decode to the same value share a fingerprint regardless
    of whitespace or quoting.  Content that does not decode is hashed as-is.
    """
    raw: bytes = content.encode("utf-8") if isinstance(content, str) else content
    try:
        data: Any = yaml.safe_load(raw.decode("utf-8"))
        return sha256_hex(canonical_json(data))
    except (UnicodeDecodeError, yaml.YAMLError, TypeError):
        return hashlib.sha256(raw).hexdigest()


def file_fingerprint(path: Union[str, Path]) -> str:
    """
    SHA-256 of the resolved path and its modification time.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    resolved: Path = Path(path).resolve()
    mtime_ns: int = resolved.stat().st_mtime_ns
    return sha256_hex(f"{resolved}|{mtime_ns}")


def schema_set_fingerprint(schemas: Union[Schema, Iterable[Schema]]) -> str:
    schema_list: List[Schema] = [schemas] if isinstance(schemas, Schema) else list(schemas)
    return fingerprint([schema.to_dict() for schema in schema_list])


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class CacheStore(ABC):
    """Minimal key/value contract the schema cache relies on."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Value for *key*, or ``None`` when absent or expired."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: int = 0) -> None:
        """Store *value*; ``ttl`` of 0 means no expiry."""

    @abstractmethod
    def forget(self, key: str) -> bool:
        """Remove *key*. Returns True if something was removed."""

    @abstractmethod
    def flush(self) -> None:
        """Remove every entry this store owns."""


@dataclass
class CacheEntry:
    """Stored value with its write time and lifetime."""

    value: Any
    timestamp: float = field(default_factory=time.time)
    ttl: int = 0

    def is_expired(self) -> bool:
        return self.ttl > 0 and time.time() - self.timestamp > self.ttl


class InMemoryCacheStore(CacheStore):
    """Thread-safe dict store. Expired entries are dropped on read."""

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock: threading.Lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry: Optional[CacheEntry] = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: str, value: Any, ttl: int = 0) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, ttl=ttl)

    def forget(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCacheStore(CacheStore):
    """
    Redis-backed store.

    Args:
        client: A ``redis.Redis`` compatible client (``fakeredis`` works).
        prefix: Prepended to every key; ``flush`` only deletes keys under it.
    """

    def __init__(self, client: Any, prefix: str = "") -> None:
        self._redis: Any = client
        self.prefix: str = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> "RedisCacheStore":
        return cls(redis.from_url(url, decode_responses=False), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw: Optional[bytes] = self._redis.get(self._key(key))
        except redis.RedisError as exc:
            raise CacheUnavailable(f"Redis get failed for '{key}': {exc}") from exc
        if raw is None:
            return None
        try:
            return pickle.loads(raw)
        except Exception as exc:  # noqa: BLE001
            raise CacheUnavailable(f"Undecodable cache entry for '{key}': {exc}") from exc

    def put(self, key: str, value: Any, ttl: int = 0) -> None:
        try:
            payload: bytes = pickle.dumps(value)
        except Exception as exc:  # noqa: BLE001
            raise CacheUnavailable(f"Cannot serialise cache entry for '{key}': {exc}") from exc
        try:
            if ttl > 0:
                self._redis.setex(self._key(key), ttl, payload)
            else:
                self._redis.set(self._key(key), payload)
        except redis.RedisError as exc:
            raise CacheUnavailable(f"Redis put failed for '{key}': {exc}") from exc

    def forget(self, key: str) -> bool:
        try:
            return bool(self._redis.delete(self._key(key)))
        except redis.RedisError as exc:
            raise CacheUnavailable(f"Redis delete failed for '{key}': {exc}") from exc

    def flush(self) -> None:
        try:
            keys: List[Any] = list(self._redis.scan_iter(match=f"{self.prefix}*"))
            if keys:
                self._redis.delete(*keys)
        except redis.RedisError as exc:
            raise CacheUnavailable(f"Redis flush failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Schema cache
# ---------------------------------------------------------------------------


class SchemaCache:
    """
    Schema and validation-result cache over a ``CacheStore``.

    All operations are no-ops while disabled.  ``CacheUnavailable`` from the
    store is caught, logged and counted under ``errors``.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        settings: Optional[CacheSettings] = None,
    ) -> None:
        self.store: CacheStore = store if store is not None else InMemoryCacheStore()
        self.settings: CacheSettings = settings or CacheSettings()
        self.enabled: bool = self.settings.enabled
        self._keys: Dict[str, Set[str]] = {ns: set() for ns in NAMESPACES}
        self._lock: threading.Lock = threading.Lock()
        self.hits: int = 0
        self.misses: int = 0
        self.writes: int = 0
        self.errors: int = 0

    # -- Keys ---------------------------------------------------------------

    def _make_key(self, namespace: str, digest: str, suffix: Optional[str] = None) -> str:
        key: str = f"{self.settings.key_prefix}{namespace}:{digest}"
        return f"{key}:{suffix}" if suffix else key

    def content_key(self, content: Union[str, bytes], model: Optional[str] = None) -> str:
        return self._make_key("content", content_fingerprint(content), model)

    def file_key(self, path: Union[str, Path]) -> str:
        return self._make_key("file", file_fingerprint(path))

    def validation_key(self, schemas: Union[Schema, Iterable[Schema]]) -> str:
        return self._make_key("validation", schema_set_fingerprint(schemas))

    # -- Store access -------------------------------------------------------

    def _get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            value: Optional[Any] = self.store.get(key)
        except CacheUnavailable as exc:
            logger.warning("Cache read failed, treating as miss: %s", exc)
            with self._lock:
                self.errors += 1
                self.misses += 1
            return None
        with self._lock:
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
        return value

    def _put(self, namespace: str, key: str, value: Any) -> None:
        if not self.enabled:
            return
        try:
            self.store.put(key, value, self.settings.ttl)
        except CacheUnavailable as exc:
            logger.warning("Cache write skipped: %s", exc)
            with self._lock:
                self.errors += 1
            return
        with self._lock:
            self.writes += 1
            self._keys[namespace].add(key)

    def _forget(self, namespace: str, key: str) -> bool:
        if not self.enabled:
            return False
        with self._lock:
            self._keys[namespace].discard(key)
        try:
            return self.store.forget(key)
        except CacheUnavailable as exc:
            logger.warning("Cache forget failed for '%s': %s", key, exc)
            with self._lock:
                self.errors += 1
            return False

    # -- Schemas by content -------------------------------------------------

    def get_schema_by_content(
        self, content: Union[str, bytes], model: Optional[str] = None
    ) -> Optional[Any]:
        return self._get(self.content_key(content, model))

    def put_schema_by_content(
        self, content: Union[str, bytes], schema: Any, model: Optional[str] = None
    ) -> None:
        self._put("content", self.content_key(content, model), schema)

    def forget_schema_by_content(
        self, content: Union[str, bytes], model: Optional[str] = None
    ) -> bool:
        return self._forget("content", self.content_key(content, model))

    # -- Schemas by file ----------------------------------------------------

    def get_schema_by_file(self, path: Union[str, Path]) -> Optional[Any]:
        if not self.enabled:
            return None
        return self._get(self.file_key(path))

    def put_schema_by_file(self, path: Union[str, Path], schema: Any) -> None:
        if not self.enabled:
            return
        self._put("file", self.file_key(path), schema)

    def forget_schema_by_file(self, path: Union[str, Path]) -> bool:
        if not self.enabled:
            return False
        return self._forget("file", self.file_key(path))

    # -- Validation results -------------------------------------------------

    def get_validation(self, schemas: Union[Schema, Iterable[Schema]]) -> Optional[Any]:
        return self._get(self.validation_key(schemas))

    def put_validation(self, schemas: Union[Schema, Iterable[Schema]], result: Any) -> None:
        self._put("validation", self.validation_key(schemas), result)

    def forget_validation(self, schemas: Union[Schema, Iterable[Schema]]) -> bool:
        return self._forget("validation", self.validation_key(schemas))

    # -- Bulk ---------------------------------------------------------------

    def forget_all(self, namespace: Optional[str] = None) -> int:
        """Forget every key written through this cache, optionally one namespace only."""
        if namespace is not None and namespace not in self._keys:
            raise ValueError(
                f"Unknown cache namespace '{namespace}'. Expected one of: {', '.join(NAMESPACES)}."
            )
        namespaces: List[str] = [namespace] if namespace else list(NAMESPACES)
        removed: int = 0
        for ns in namespaces:
            with self._lock:
                keys: List[str] = sorted(self._keys[ns])
            for key in keys:
                if self._forget(ns, key):
                    removed += 1
        logger.debug("Forgot %d cache entr(ies) in %s.", removed, namespaces)
        return removed

    def clear_all(self) -> None:
        """Flush the underlying store and reset the key index."""
        with self._lock:
            for keys in self._keys.values():
                keys.clear()
        try:
            self.store.flush()
        except CacheUnavailable as exc:
            logger.warning("Cache flush failed: %s", exc)
            with self._lock:
                self.errors += 1
        logger.info("Schema cache cleared.")

    # -- Toggles & stats ----------------------------------------------------

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    @property
    def hit_rate(self) -> float:
        total: int = self.hits + self.misses
        return self.hits / total if total else 0.0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": self.enabled,
                "ttl": self.settings.ttl,
                "prefix": self.settings.key_prefix,
                "hits": self.hits,
                "misses": self.misses,
                "writes": self.writes,
                "errors": self.errors,
                "hit_rate": self.hit_rate,
                "indexed_keys": {ns: len(keys) for ns, keys in self._keys.items()},
            }

    def __repr__(self) -> str:
        state: str = "enabled" if self.enabled else "disabled"
        return f"<SchemaCache {type(self.store).__name__} {state} hits={self.hits}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "content_fingerprint",
    "file_fingerprint",
    "schema_set_fingerprint",
    "CacheStore",
    "CacheEntry",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "SchemaCache",
]

logger.debug("modelschema.cache loaded: %d public symbols.", len(__all__))
