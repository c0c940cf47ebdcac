# repository/lock_repository.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, List, Optional, Protocol
from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError, RedisError
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import LOCKS
from util.errors import NamespaceBusyError

logger = logging.getLogger(__name__)


class NamespaceLocks(Protocol):
    def hold(self, *namespace_ids: str) -> AsyncContextManager[None]: ...


class NamespaceLockRepository:
    """
    Per-namespace advisory locks on top of redis-py's Lock.

    hold() takes every named namespace in sorted order so two callers locking the
    same pair cannot deadlock. A lock auto-expires after `timeout_seconds` so a
    crashed holder never blocks a namespace forever.
    """

    def __init__(
        self,
        redis: Optional[Redis] = None,
        timeout_seconds: float = settings.LOCK_TIMEOUT_SECONDS,
        blocking_timeout_seconds: float = settings.LOCK_BLOCKING_TIMEOUT_SECONDS,
    ) -> None:
        self._redis = redis
        self._timeout = float(timeout_seconds)
        self._blocking_timeout = float(blocking_timeout_seconds)

    async def _client(self) -> Redis:
        return self._redis if self._redis is not None else await get_redis()

    @staticmethod
    def _key(namespace_id: str) -> str:
        return f"{LOCKS}:{namespace_id}"

    @asynccontextmanager
    async def hold(self, *namespace_ids: str) -> AsyncIterator[None]:
        r = await self._client()
        held: List[Lock] = []
        try:
            for ns in sorted(set(namespace_ids)):
                lock = r.lock(
                    self._key(ns),
                    timeout=self._timeout,
                    blocking_timeout=self._blocking_timeout,
                )
                try:
                    acquired = await lock.acquire()
                except RedisError as e:
                    raise NamespaceBusyError(f"cannot lock namespace {ns}: {e}") from e
                if not acquired:
                    logger.warning("lock.busy namespace=%s", ns)
                    raise NamespaceBusyError(f"namespace {ns} is locked by another operation")
                held.append(lock)
            yield
        finally:
            for lock in reversed(held):
                try:
                    await lock.release()
                except LockError:
                    # Expired while held; someone else may own it now.
                    logger.warning("lock.release.expired key=%s", _name(lock))


def _name(lock: Lock) -> str:
    name = lock.name
    return name.decode("utf-8") if isinstance(name, (bytes, bytearray)) else str(name)
