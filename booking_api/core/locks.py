# booking_api/core/locks.py
"""
Booking locks

Conflict detection and the appointment write are two separate store
operations. Every booking write (create, reschedule, detail update) runs
inside `acquire(business_id, resource_id)` so that two requests for the same
bookable scope cannot both pass the conflict check before either commits.

Resource-less bookings occupy the whole business, so they share a single
business-wide scope key.
"""
import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterable, Optional

from redis.exceptions import LockError

from booking_api.config.redis import RedisKeys
from booking_api.config.settings import get_settings
from booking_api.core.exceptions import ConflictError, ERR_BOOKING_BUSY

logger = logging.getLogger(__name__)

BUSINESS_SCOPE = "business"


def booking_scope(resource_id) -> str:
    """Scope a booking occupies: its resource, or the whole business"""
    return str(resource_id) if resource_id else BUSINESS_SCOPE


def lock_key(business_id, resource_id) -> str:
    return RedisKeys.BOOKING_LOCK.format(
        business_id=business_id,
        scope=booking_scope(resource_id),
    )


class BookingLockProvider:
    """Mutual exclusion for one (business, resource) booking scope"""

    def acquire(self, business_id, resource_id=None):
        raise NotImplementedError

    @contextmanager
    def acquire_many(self, business_id, resource_ids: Iterable):
        """
        Hold several scopes at once, acquired in sorted key order.
        A None resource id stands for the business scope.
        """
        scopes = {booking_scope(rid): rid for rid in resource_ids}
        with ExitStack() as stack:
            for scope in sorted(scopes):
                stack.enter_context(self.acquire(business_id, scopes[scope]))
            yield


class InProcessLockProvider(BookingLockProvider):
    """Keyed threading locks; correct for a single worker process"""

    def __init__(self, wait_seconds: Optional[float] = None):
        self.wait_seconds = (
            wait_seconds if wait_seconds is not None
            else get_settings().BOOKING_LOCK_WAIT_SECONDS
        )
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def acquire(self, business_id, resource_id=None):
        key = lock_key(business_id, resource_id)
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.wait_seconds):
            logger.warning(f"Timed out waiting for booking lock {key}")
            raise ConflictError(ERR_BOOKING_BUSY)
        try:
            yield
        finally:
            lock.release()


class RedisLockProvider(BookingLockProvider):
    """Distributed lock shared by every worker pointing at the same Redis"""

    def __init__(
            self,
            client,
            timeout_seconds: Optional[float] = None,
            wait_seconds: Optional[float] = None
    ):
        settings = get_settings()
        self.client = client
        self.timeout_seconds = timeout_seconds or settings.BOOKING_LOCK_TIMEOUT_SECONDS
        self.wait_seconds = (
            wait_seconds if wait_seconds is not None
            else settings.BOOKING_LOCK_WAIT_SECONDS
        )

    @contextmanager
    def acquire(self, business_id, resource_id=None):
        key = lock_key(business_id, resource_id)
        lock = self.client.lock(
            key,
            timeout=self.timeout_seconds,
            blocking_timeout=self.wait_seconds,
        )
        if not lock.acquire():
            logger.warning(f"Timed out waiting for booking lock {key}")
            raise ConflictError(ERR_BOOKING_BUSY)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Expired before release; the unique index still guards the write
                logger.warning(f"Booking lock {key} expired before release")


_default_provider: Optional[BookingLockProvider] = None


def get_lock_provider() -> BookingLockProvider:
    """Process-wide lock provider selected by BOOKING_LOCK_BACKEND"""
    global _default_provider
    if _default_provider is None:
        backend = get_settings().BOOKING_LOCK_BACKEND.lower()
        if backend == "redis":
            from booking_api.config.redis import get_redis

            _default_provider = RedisLockProvider(get_redis())
        else:
            _default_provider = InProcessLockProvider()
        logger.info(f"Booking lock backend: {backend}")
    return _default_provider
