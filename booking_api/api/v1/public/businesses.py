# ============================================================================
# booking_api/api/v1/public/businesses.py
# Anonymous customer endpoints - thin HTTP layer
# ============================================================================
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from booking_api.api.dependencies import get_booking_locks, get_clock, get_public_business
from booking_api.config.database import get_db
from booking_api.core.actor import Actor
from booking_api.core.locks import BookingLockProvider
from booking_api.models.business import Business
from booking_api.models.service import Service
from booking_api.schemas.scheduling import (
    AppointmentCreateRequest,
    AppointmentCreatedResponse,
    AppointmentListResponse,
    AppointmentResponse,
    AvailabilityResponse,
    BusinessHoursResponse,
    BusinessPoliciesResponse,
    CancelRequest,
    CustomerDetailsUpdateRequest,
    PublicBusinessResponse,
    ResourceSummary,
    RescheduleRequest,
    ServiceSummary,
    SlotResponse,
    StatusOkResponse,
)
from booking_api.services.appointment.appointment_service import AppointmentService
from booking_api.services.directory.directory_service import DirectoryService
from booking_api.services.scheduling.slot_generator import SlotGenerator

router = APIRouter(prefix="/public/businesses", tags=["public"])


@router.get("/{slug}", response_model=PublicBusinessResponse)
def get_business_profile(
        business: Business = Depends(get_public_business),
        db: Session = Depends(get_db)
):
    """Public profile: hours, booking policies, active services and resources"""
    services = db.query(Service).filter(
        Service.business_id == business.id,
        Service.is_active == True,  # noqa: E712
    ).order_by(Service.name).all()
    resources = DirectoryService.list_active_resources(db, business.id)

    return PublicBusinessResponse(
        id=business.id,
        name=business.name,
        slug=business.slug,
        timezone=business.timezone,
        contact_phone=business.contact_phone,
        address=business.address,
        hours=[
            BusinessHoursResponse(day_of_week=h.day_of_week, open_time=h.open_time, close_time=h.close_time)
            for h in business.hours
        ],
        policies=BusinessPoliciesResponse(**business.policies_dict()),
        services=[
            ServiceSummary(
                id=s.id,
                name=s.name,
                duration_minutes=s.duration_minutes,
                allowed_resource_ids=sorted(s.allowed_resource_ids, key=str),
            )
            for s in services
        ],
        resources=[ResourceSummary(id=r.id, name=r.name) for r in resources],
    )


@router.get("/{slug}/availability", response_model=AvailabilityResponse)
def get_availability(
        slug: str = Path(...),
        date: Optional[str] = Query(None, description="Business-local date, YYYY-MM-DD"),
        service_id: Optional[str] = Query(None, alias="serviceId"),
        resource_id: Optional[str] = Query(None, alias="resourceId"),
        db: Session = Depends(get_db),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    """
    Free slots for a service on a date.
    Missing date or serviceId yields an empty list rather than an error.
    """
    if not date or not service_id:
        return AvailabilityResponse(slots=[])

    slots = SlotGenerator(db, clock=clock).get_availability(slug, date, service_id, resource_id)
    return AvailabilityResponse(slots=[
        SlotResponse(start_time=s.start_time, end_time=s.end_time, resource_ids=s.resource_ids)
        for s in slots
    ])


@router.post("/{slug}/appointments", response_model=AppointmentCreatedResponse, status_code=201)
def create_appointment(
        payload: AppointmentCreateRequest,
        business: Business = Depends(get_public_business),
        db: Session = Depends(get_db),
        locks: BookingLockProvider = Depends(get_booking_locks),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    appointment = AppointmentService(db, lock_provider=locks, clock=clock).create_appointment(
        business,
        service_id=payload.service_id,
        resource_id=payload.resource_id,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        start_time=payload.start_time,
        actor=Actor.customer(),
    )
    return AppointmentCreatedResponse(
        appointment_id=appointment.id,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        resource_id=appointment.resource_id,
    )


@router.get("/{slug}/appointments", response_model=AppointmentListResponse)
def list_appointments_by_phone(
        phone: Optional[str] = Query(None, description="Phone used when booking"),
        business: Business = Depends(get_public_business),
        db: Session = Depends(get_db),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    """Upcoming non-cancelled appointments for a phone number"""
    appointments = AppointmentService(db, clock=clock).upcoming_for_phone(business, phone)
    return AppointmentListResponse(appointments=[AppointmentResponse.from_model(a) for a in appointments])


@router.post("/{slug}/appointments/{appointment_id}/cancel", response_model=StatusOkResponse)
def cancel_appointment(
        payload: CancelRequest,
        appointment_id: str = Path(...),
        business: Business = Depends(get_public_business),
        db: Session = Depends(get_db),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    AppointmentService(db, clock=clock).cancel_appointment(
        business, appointment_id, Actor.customer(), customer_phone=payload.customer_phone
    )
    return StatusOkResponse()


@router.post("/{slug}/appointments/{appointment_id}/reschedule", response_model=StatusOkResponse)
def reschedule_appointment(
        payload: RescheduleRequest,
        appointment_id: str = Path(...),
        business: Business = Depends(get_public_business),
        db: Session = Depends(get_db),
        locks: BookingLockProvider = Depends(get_booking_locks),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    AppointmentService(db, lock_provider=locks, clock=clock).reschedule_appointment(
        business, appointment_id, payload.customer_phone, payload.start_time
    )
    return StatusOkResponse()


@router.patch("/{slug}/appointments/{appointment_id}", response_model=AppointmentResponse)
def update_customer_details(
        payload: CustomerDetailsUpdateRequest,
        appointment_id: str = Path(...),
        business: Business = Depends(get_public_business),
        db: Session = Depends(get_db)
):
    appointment = AppointmentService(db).update_customer_details(
        business,
        appointment_id,
        customer_phone=payload.customer_phone,
        customer_name=payload.customer_name,
        new_customer_phone=payload.new_customer_phone,
    )
    return AppointmentResponse.from_model(appointment)
