# booking_api/utils/clock.py
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current instant, timezone-aware UTC. Services take a clock so tests can pin it."""
    return datetime.now(timezone.utc)
