from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import threading

from loguru import logger
import redis

from monety.core.config import get_settings
from monety.services.redis_client import get_redis_client


class RecordLockTimeout(RuntimeError):
    pass


@dataclass
class _LocalLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class RecordLockService:
    """Serializes read-modify-write cycles on a single user record.

    Uses a redis lock when a server is reachable so that several API workers
    share the same critical section, and an in-process lock otherwise.
    """

    def __init__(self, redis_client: redis.Redis | None = None, *, use_redis: bool = True) -> None:
        self._redis = redis_client if redis_client is not None else (get_redis_client() if use_redis else None)
        self._memory_locks: dict[str, _LocalLock] = {}
        self._registry_lock = threading.Lock()

    def _checkout_local(self, key: str) -> threading.Lock:
        with self._registry_lock:
            entry = self._memory_locks.get(key)
            if entry is None:
                entry = _LocalLock()
                self._memory_locks[key] = entry
            entry.holders += 1
            return entry.lock

    def _return_local(self, key: str) -> None:
        # Entries live only while some thread holds or waits for them.
        with self._registry_lock:
            entry = self._memory_locks.get(key)
            if entry is None:
                return
            entry.holders -= 1
            if entry.holders <= 0:
                del self._memory_locks[key]

    @contextmanager
    def hold(
        self,
        record_id: str,
        *,
        timeout_seconds: int | None = None,
        ttl_seconds: int | None = None,
    ) -> Iterator[None]:
        settings = get_settings()
        timeout = max(1, int(timeout_seconds or settings.record_lock_timeout_seconds))
        ttl = max(timeout, int(ttl_seconds or settings.record_lock_ttl_seconds))
        key = f"monety:record-lock:{record_id}"

        redis_lock = None
        if self._redis is not None:
            try:
                candidate = self._redis.lock(key, timeout=ttl, blocking_timeout=timeout)
                if not candidate.acquire():
                    raise RecordLockTimeout(f"Record {record_id} is busy")
                redis_lock = candidate
            except redis.RedisError as exc:
                logger.warning("Redis record lock unavailable, using local lock", extra={"error": str(exc)})

        if redis_lock is not None:
            try:
                yield
            finally:
                try:
                    redis_lock.release()
                except redis.RedisError as exc:
                    logger.warning("Redis record lock release failed", extra={"error": str(exc)})
            return

        memory_lock = self._checkout_local(key)
        try:
            if not memory_lock.acquire(timeout=timeout):
                raise RecordLockTimeout(f"Record {record_id} is busy")
            try:
                yield
            finally:
                memory_lock.release()
        finally:
            self._return_local(key)


record_lock_service = RecordLockService(use_redis=get_settings().record_lock_use_redis)
