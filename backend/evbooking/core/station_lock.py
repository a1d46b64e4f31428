from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
import logging
import threading
from typing import Dict, Iterator, Optional, Tuple

from redis import Redis
from redis.exceptions import LockError, RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import ServiceBusyException

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_LOCAL_LOCKS: Dict[Tuple[str, date], threading.Lock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()


def _lock_key(station_id: str, day: date) -> str:
    return f"station:{station_id}:{day.isoformat()}:mutex"


def _namespaced_key(key: str) -> str:
    return f"evbooking:lock:{key}"


def _prune_local_locks(today: date) -> None:
    """Drop unheld locks for local days that can no longer be booked. Caller holds the guard."""
    # Local dates trail UTC by at most a day
    horizon = today - timedelta(days=1)
    stale = [
        key for key, lock in _LOCAL_LOCKS.items() if key[1] < horizon and not lock.locked()
    ]
    for key in stale:
        del _LOCAL_LOCKS[key]


def _local_lock(station_id: str, day: date) -> threading.Lock:
    key = (station_id, day)
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(key)
        if lock is None:
            _prune_local_locks(datetime.now(timezone.utc).date())
            lock = threading.Lock()
            _LOCAL_LOCKS[key] = lock
        return lock


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(settings.redis_url, decode_responses=True)
            client.ping()
        except RedisError as exc:
            logger.warning("station_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _acquire_redis_lock(key: str, ttl_s: int, wait_s: float):  # type: ignore[no-untyped-def]
    """Return an acquired redis lock, ``None`` when Redis is unusable."""
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_station_lock("acquire", "redis_unavailable")
        return None
    lock = client.lock(_namespaced_key(key), timeout=ttl_s, blocking_timeout=wait_s)
    try:
        acquired = lock.acquire()
    except RedisError as exc:
        prometheus_metrics.record_station_lock("acquire", "error")
        logger.warning(
            "station_lock_redis_acquire_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        return None
    if not acquired:
        prometheus_metrics.record_station_lock("acquire", "blocked")
        raise ServiceBusyException(
            "Station is busy processing another booking, please retry",
            code="STATION_BUSY",
            details={"lock_key": key},
        )
    return lock


@contextmanager
def station_day_lock(
    station_id: str,
    day: date,
    *,
    ttl_s: Optional[int] = None,
    wait_s: Optional[float] = None,
) -> Iterator[None]:
    """
    Serialize capacity check + write for one station and local calendar day.

    The process-local lock is always taken; the Redis lock is layered on top
    when ``redis_url`` is configured so several workers share the guard. A
    Redis outage degrades to the local lock and the post-commit recount.
    """
    key = _lock_key(station_id, day)
    ttl = ttl_s or settings.station_lock_ttl_seconds
    wait = wait_s or settings.station_lock_wait_seconds

    local = _local_lock(station_id, day)
    if not local.acquire(timeout=wait):
        prometheus_metrics.record_station_lock("acquire", "blocked")
        raise ServiceBusyException(
            "Station is busy processing another booking, please retry",
            code="STATION_BUSY",
            details={"lock_key": key},
        )
    try:
        redis_lock = _acquire_redis_lock(key, ttl, wait)
        prometheus_metrics.record_station_lock("acquire", "success")
        try:
            yield
        finally:
            if redis_lock is not None:
                try:
                    redis_lock.release()
                    prometheus_metrics.record_station_lock("release", "success")
                except (LockError, RedisError) as exc:
                    prometheus_metrics.record_station_lock("release", "error")
                    logger.warning(
                        "station_lock_redis_release_failed",
                        extra={"lock_key": key, "error": str(exc)},
                    )
    finally:
        local.release()
