# booking_api/schemas/scheduling.py
"""
Request/response models for the scheduling API.

Wire names are camelCase (serviceId, startTime, ...); Python attributes stay
snake_case. startTime strings are passed through untouched so the service
layer can apply business-local parsing.
"""
from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value.strip()


# ============================================================================
# Availability
# ============================================================================

class SlotResponse(CamelModel):
    """Free slot (UTC instants) and the resources able to serve it"""
    start_time: datetime
    end_time: datetime
    resource_ids: List[UUID] = Field(default_factory=list)


class AvailabilityResponse(CamelModel):
    slots: List[SlotResponse] = Field(default_factory=list)


# ============================================================================
# Public business profile
# ============================================================================

class BusinessHoursResponse(CamelModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    open_time: str
    close_time: str


class BusinessPoliciesResponse(CamelModel):
    cancellation_hours: int
    reschedule_limit: int
    allow_same_day: bool


class ServiceSummary(CamelModel):
    id: UUID
    name: str
    duration_minutes: int
    allowed_resource_ids: List[UUID] = Field(default_factory=list)


class ResourceSummary(CamelModel):
    id: UUID
    name: str


class PublicBusinessResponse(CamelModel):
    id: UUID
    name: str
    slug: str
    timezone: str
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    hours: List[BusinessHoursResponse] = Field(default_factory=list)
    policies: BusinessPoliciesResponse
    services: List[ServiceSummary] = Field(default_factory=list)
    resources: List[ResourceSummary] = Field(default_factory=list)


# ============================================================================
# Appointments
# ============================================================================

class AppointmentCreateRequest(CamelModel):
    """Booking request; startTime is ISO-8601, business-local or with offset"""
    service_id: str
    resource_id: Optional[str] = None
    customer_name: str = Field(..., max_length=200)
    customer_phone: str = Field(..., max_length=20)
    start_time: str

    @field_validator("customer_name", "customer_phone", "start_time")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _require_text(v)


class AppointmentCreatedResponse(CamelModel):
    appointment_id: UUID
    start_time: datetime
    end_time: datetime
    resource_id: Optional[UUID] = None


class AppointmentResponse(CamelModel):
    id: UUID
    business_id: UUID
    service_id: UUID
    resource_id: Optional[UUID] = None
    customer_name: str
    customer_phone: str
    start_time: datetime
    end_time: datetime
    status: str
    reschedule_count: int = 0
    last_rescheduled_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            business_id=appointment.business_id,
            service_id=appointment.service_id,
            resource_id=appointment.resource_id,
            customer_name=appointment.customer_name,
            customer_phone=appointment.customer_phone,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status,
            reschedule_count=appointment.reschedule_count or 0,
            last_rescheduled_at=appointment.last_rescheduled_at,
        )


class AppointmentListResponse(CamelModel):
    appointments: List[AppointmentResponse] = Field(default_factory=list)


class CancelRequest(CamelModel):
    customer_phone: str

    @field_validator("customer_phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _require_text(v)


class RescheduleRequest(CamelModel):
    customer_phone: str
    start_time: str

    @field_validator("customer_phone", "start_time")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _require_text(v)


class CustomerDetailsUpdateRequest(CamelModel):
    """Customer edits name and/or phone; `customerPhone` proves ownership"""
    customer_phone: str
    customer_name: Optional[str] = Field(None, max_length=200)
    new_customer_phone: Optional[str] = Field(None, max_length=20)


class StatusUpdateRequest(CamelModel):
    status: str  # booked | cancelled | completed


class AdminAppointmentUpdateRequest(CamelModel):
    service_id: Optional[str] = None
    resource_id: Optional[str] = None
    start_time: Optional[str] = None


class StatusOkResponse(BaseModel):
    status: str = "ok"


# ============================================================================
# Blocks
# ============================================================================

class BlockCreateRequest(CamelModel):
    resource_id: Optional[str] = None
    start_time: str
    end_time: str
    reason: Optional[str] = Field(None, max_length=255)


class BlockResponse(CamelModel):
    id: UUID
    business_id: UUID
    resource_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = None

    @classmethod
    def from_model(cls, block) -> "BlockResponse":
        return cls(
            id=block.id,
            business_id=block.business_id,
            resource_id=block.resource_id,
            start_time=block.start_time,
            end_time=block.end_time,
            reason=block.reason,
        )
