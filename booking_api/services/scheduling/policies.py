# booking_api/services/scheduling/policies.py
"""
Booking policy rules.

Each rule is a pure function returning None when the request is allowed, or
the failure message when it is not. `PolicyGuard.require` turns a failure
into the matching domain error.
"""
from datetime import date, datetime
from typing import Iterable, Optional

from booking_api.core.exceptions import (
    PolicyViolationError,
    ERR_CANCEL_WINDOW,
    ERR_DATE_IN_PAST,
    ERR_RESCHEDULE_LIMIT,
    ERR_RESOURCE_NOT_ALLOWED,
    ERR_RESOURCE_REQUIRED,
    ERR_SAME_DAY,
    ERR_START_TIME_PAST,
)

# Customers may move an appointment once. Business.reschedule_limit is stored
# and exposed but deliberately not consulted here.
SELF_SERVICE_RESCHEDULE_LIMIT = 1


def same_day_allowed(allow_same_day: bool, requested_date: date, today: date) -> Optional[str]:
    if not allow_same_day and requested_date == today:
        return ERR_SAME_DAY
    return None


def not_in_past(requested_date: date, today: date) -> Optional[str]:
    if requested_date < today:
        return ERR_DATE_IN_PAST
    return None


def start_not_in_past(start_utc: datetime, now_utc: datetime) -> Optional[str]:
    if start_utc <= now_utc:
        return ERR_START_TIME_PAST
    return None


def within_cancellation_window(
        start: datetime,
        now: datetime,
        cancellation_hours: int,
        is_platform_operator: bool = False
) -> Optional[str]:
    """Cancellation needs at least `cancellation_hours` of notice"""
    if is_platform_operator:
        return None
    hours_ahead = (start - now).total_seconds() / 3600
    if hours_ahead < cancellation_hours:
        return ERR_CANCEL_WINDOW
    return None


def reschedule_allowed(current_reschedule_count: int) -> Optional[str]:
    if (current_reschedule_count or 0) >= SELF_SERVICE_RESCHEDULE_LIMIT:
        return ERR_RESCHEDULE_LIMIT
    return None


def resource_eligible(allowed_resource_ids: Iterable, candidate_resource_id=None) -> Optional[str]:
    """An empty allowed set means any resource (or none) may serve the service"""
    allowed = {str(rid) for rid in allowed_resource_ids or ()}
    if not allowed:
        return None
    if not candidate_resource_id:
        return ERR_RESOURCE_REQUIRED
    if str(candidate_resource_id) not in allowed:
        return ERR_RESOURCE_NOT_ALLOWED
    return None


class PolicyGuard:
    """Raises PolicyViolationError for a failed rule"""

    @staticmethod
    def require(failure: Optional[str]) -> None:
        if failure:
            raise PolicyViolationError(failure)
