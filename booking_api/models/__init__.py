# booking_api/models/__init__.py
from .base import Base, UTCDateTime
from .business import Business, BusinessHours
from .resource import Resource
from .service import Service, service_allowed_resources
from .block import Block
from .appointment import Appointment
from .audit_log import AuditLog

__all__ = [
    "Base",
    "UTCDateTime",
    "Business",
    "BusinessHours",
    "Resource",
    "Service",
    "service_allowed_resources",
    "Block",
    "Appointment",
    "AuditLog",
]
