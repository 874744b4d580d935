# ============================================================================
# booking_api/api/v1/admin/appointments.py
# Owner / staff / platform endpoints - actor resolved by get_admin_actor
# ============================================================================
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from booking_api.api.dependencies import (
    get_admin_actor,
    get_admin_business,
    get_booking_locks,
    get_clock,
)
from booking_api.config.database import get_db
from booking_api.core.actor import Actor
from booking_api.core.exceptions import ForbiddenError, ERR_STAFF_SCOPE
from booking_api.core.locks import BookingLockProvider
from booking_api.models.business import Business
from booking_api.schemas.scheduling import (
    AdminAppointmentUpdateRequest,
    AppointmentCreateRequest,
    AppointmentResponse,
    StatusUpdateRequest,
)
from booking_api.services.appointment.appointment_query_service import AppointmentQueryService
from booking_api.services.appointment.appointment_service import AppointmentService
from booking_api.services.directory.directory_service import parse_optional_id

router = APIRouter(prefix="/admin/businesses/{business_id}/appointments", tags=["admin-appointments"])


@router.get("")
def list_appointments(
        date: Optional[str] = Query(None, description="Business-local day, YYYY-MM-DD"),
        date_from: Optional[str] = Query(None, alias="from", description="Range start day (inclusive)"),
        date_to: Optional[str] = Query(None, alias="to", description="Range end day (inclusive)"),
        resource_id: Optional[str] = Query(None, alias="resourceId"),
        status: Optional[str] = Query(None, description="booked, cancelled or completed"),
        search: Optional[str] = Query(None, description="Customer name or phone"),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db)
):
    """
    Appointments of the business with filters.
    Staff only see appointments on their own resource.
    """
    result = AppointmentQueryService.list_appointments(
        db=db,
        business=business,
        actor=actor,
        day=date,
        date_from=date_from,
        date_to=date_to,
        resource_id=parse_optional_id(resource_id, "resourceId"),
        status=status,
        search=search,
        skip=skip,
        limit=limit,
    )
    result["appointments"] = [
        AppointmentResponse.from_model(appt).model_dump(by_alias=True, mode="json")
        for appt in result["appointments"]
    ]
    return result


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
        payload: AppointmentCreateRequest,
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db),
        locks: BookingLockProvider = Depends(get_booking_locks),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    """Book on behalf of a customer. Staff may only book their own resource."""
    resource_id = payload.resource_id
    if actor.resource_id:
        requested = parse_optional_id(resource_id, "resourceId")
        if requested and requested != actor.resource_id:
            raise ForbiddenError(ERR_STAFF_SCOPE)
        resource_id = str(actor.resource_id)

    appointment = AppointmentService(db, lock_provider=locks, clock=clock).create_appointment(
        business,
        service_id=payload.service_id,
        resource_id=resource_id,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        start_time=payload.start_time,
        require_future_start=False,
        actor=actor,
    )
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
        payload: AdminAppointmentUpdateRequest,
        appointment_id: str = Path(...),
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db),
        locks: BookingLockProvider = Depends(get_booking_locks),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    appointment = AppointmentService(db, lock_provider=locks, clock=clock).update_appointment_details(
        business,
        appointment_id,
        actor,
        service_id=payload.service_id,
        resource_id=payload.resource_id,
        start_time=payload.start_time,
    )
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def update_status(
        payload: StatusUpdateRequest,
        appointment_id: str = Path(...),
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db),
        clock: Callable[[], datetime] = Depends(get_clock)
):
    appointment = AppointmentService(db, clock=clock).update_status(
        business, appointment_id, payload.status, actor
    )
    return AppointmentResponse.from_model(appointment)
