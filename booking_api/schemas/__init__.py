# booking_api/schemas/__init__.py
from .scheduling import (
    SlotResponse,
    AvailabilityResponse,
    BusinessHoursResponse,
    BusinessPoliciesResponse,
    ServiceSummary,
    ResourceSummary,
    PublicBusinessResponse,
    AppointmentCreateRequest,
    AppointmentCreatedResponse,
    AppointmentResponse,
    AppointmentListResponse,
    CancelRequest,
    RescheduleRequest,
    CustomerDetailsUpdateRequest,
    StatusUpdateRequest,
    AdminAppointmentUpdateRequest,
    StatusOkResponse,
    BlockCreateRequest,
    BlockResponse,
)
