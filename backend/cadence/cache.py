"""
Key-value cache used to memoize lookups.

The cache is an optimization only: every caller must fall through to the
store or the oracle on a miss, and a failing backend behaves like a miss.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from cadence.config import settings

logger = logging.getLogger(__name__)


class CacheTTL:
    SHORT = settings.cache_ttl_short
    MEDIUM = settings.cache_ttl_medium
    LONG = settings.cache_ttl_long


class CacheKeys:
    PATTERNS_ALL = "patterns:all"
    RULES_ALL = "merchant:rules:all"

    @staticmethod
    def patterns_by_merchant(merchant_id: str) -> str:
        return f"patterns:merchant:{merchant_id}"

    @staticmethod
    def merchant(merchant_id: str) -> str:
        return f"merchant:{merchant_id}"

    @staticmethod
    def merchant_search(params: str) -> str:
        return f"merchants:search:{params}"

    @staticmethod
    def normalization(description: str) -> str:
        return f"merchant:normalize:{description}"

    @staticmethod
    def rule_match(description: str) -> str:
        return f"merchant:rules:match:{description}"

    @staticmethod
    def transaction(transaction_id: str) -> str:
        return f"transaction:{transaction_id}"


class Cache(ABC):
    """Async cache interface. Values must be JSON serializable."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        ...

    async def cleanup_expired(self) -> int:
        return 0


class MemoryCache(Cache):
    """Process-local cache. Values are stored serialized so callers never share objects."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, json.dumps(value, default=str))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def cleanup_expired(self) -> int:
        now = self._clock()
        doomed = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


class DatabaseCache(Cache):
    """
    Cache persisted in the cache_entries table.

    Each operation runs in its own short session so cache writes never join
    (or roll back) the caller's unit of work.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[Any]:
        from cadence.models.cache_entry import CacheEntry

        db = self._session_factory()
        try:
            entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
            if entry is None:
                return None
            if entry.expires_at < datetime.utcnow():
                db.delete(entry)
                db.commit()
                return None
            return entry.value
        except Exception as e:
            logger.error(f"Failed to read cache key {key}: {e}")
            db.rollback()
            return None
        finally:
            db.close()

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        from cadence.models.cache_entry import CacheEntry

        db = self._session_factory()
        try:
            expires_at = datetime.utcnow() + timedelta(seconds=ttl_seconds)
            payload = json.loads(json.dumps(value, default=str))
            entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
            if entry is None:
                db.add(CacheEntry(key=key, value=payload, expires_at=expires_at))
            else:
                entry.value = payload
                entry.expires_at = expires_at
            db.commit()
        except Exception as e:
            logger.error(f"Failed to write cache key {key}: {e}")
            db.rollback()
        finally:
            db.close()

    async def delete(self, key: str) -> None:
        from cadence.models.cache_entry import CacheEntry

        db = self._session_factory()
        try:
            db.query(CacheEntry).filter(CacheEntry.key == key).delete(synchronize_session=False)
            db.commit()
        except Exception as e:
            logger.error(f"Failed to delete cache key {key}: {e}")
            db.rollback()
        finally:
            db.close()

    async def delete_prefix(self, prefix: str) -> int:
        from cadence.models.cache_entry import CacheEntry

        db = self._session_factory()
        try:
            removed = db.query(CacheEntry).filter(
                CacheEntry.key.startswith(prefix, autoescape=True)
            ).delete(synchronize_session=False)
            db.commit()
            return removed
        except Exception as e:
            logger.error(f"Failed to delete cache prefix {prefix}: {e}")
            db.rollback()
            return 0
        finally:
            db.close()

    async def cleanup_expired(self) -> int:
        from cadence.models.cache_entry import CacheEntry

        db = self._session_factory()
        try:
            removed = db.query(CacheEntry).filter(
                CacheEntry.expires_at < datetime.utcnow()
            ).delete(synchronize_session=False)
            db.commit()
            return removed
        except Exception as e:
            logger.error(f"Failed to clean up expired cache entries: {e}")
            db.rollback()
            return 0
        finally:
            db.close()


_cache: Optional[Cache] = None

def get_cache() -> Cache:
    global _cache
    if _cache is None:
        if settings.cache_backend == "database":
            from cadence.database import SessionLocal
            _cache = DatabaseCache(SessionLocal)
        else:
            _cache = MemoryCache()
    return _cache
