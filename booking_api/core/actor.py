# booking_api/core/actor.py
"""
Already-authorized caller identity.

Authentication and role checks happen upstream; the scheduling core only
needs to know whether the caller is a platform operator and whether it is
scoped to a single resource.
"""
import enum
from dataclasses import dataclass
from typing import Optional
from uuid import UUID


class ActorRole(str, enum.Enum):
    PLATFORM_ADMIN = "platform_admin"
    OWNER = "owner"
    STAFF = "staff"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Actor:
    role: ActorRole = ActorRole.CUSTOMER
    resource_id: Optional[UUID] = None  # Staff bound to one chair/professional

    @property
    def is_platform_operator(self) -> bool:
        return self.role == ActorRole.PLATFORM_ADMIN

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    @classmethod
    def customer(cls) -> "Actor":
        return cls(role=ActorRole.CUSTOMER)
