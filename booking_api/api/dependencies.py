# ============================================================================
# booking_api/api/dependencies.py
# Request-scoped collaborators for the scheduling routes
# ============================================================================
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Header, Path
from sqlalchemy.orm import Session

from booking_api.config.database import get_db
from booking_api.core.actor import Actor, ActorRole
from booking_api.core.exceptions import ForbiddenError, InvalidInputError
from booking_api.core.locks import BookingLockProvider, get_lock_provider
from booking_api.models.business import Business
from booking_api.services.directory.directory_service import DirectoryService, parse_optional_id
from booking_api.utils.clock import utc_now

ADMIN_ROLES = {ActorRole.PLATFORM_ADMIN, ActorRole.OWNER, ActorRole.STAFF}


def get_clock() -> Callable[[], datetime]:
    """Overridden in tests to pin "now" """
    return utc_now


def get_booking_locks() -> BookingLockProvider:
    return get_lock_provider()


def get_admin_actor(
        x_actor_role: Optional[str] = Header(None),
        x_actor_resource_id: Optional[str] = Header(None)
) -> Actor:
    """
    Caller identity for admin routes.

    Authentication happens at the gateway; it forwards the authorised role and,
    for staff, the resource the member is bound to.
    """
    try:
        role = ActorRole(x_actor_role) if x_actor_role else None
    except ValueError:
        raise InvalidInputError("Invalid actor role.")
    if role not in ADMIN_ROLES:
        raise ForbiddenError("Admin access required.")

    resource_id = parse_optional_id(x_actor_resource_id, "actorResourceId")
    if role == ActorRole.STAFF and not resource_id:
        raise ForbiddenError("Staff must be bound to a resource.")

    # Only staff are resource-scoped
    return Actor(role=role, resource_id=resource_id if role == ActorRole.STAFF else None)


def get_public_business(
        slug: str = Path(..., description="Business slug"),
        db: Session = Depends(get_db)
) -> Business:
    return DirectoryService.get_active_business(db, slug=slug)


def get_admin_business(
        business_id: str = Path(..., description="Business id"),
        db: Session = Depends(get_db)
) -> Business:
    return DirectoryService.get_active_business(db, business_id=business_id)
