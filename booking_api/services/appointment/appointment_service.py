# ============================================================================
# booking_api/services/appointment/appointment_service.py
# Appointment lifecycle - the only writer of appointments
# ============================================================================
"""
Appointment lifecycle: create, cancel, complete, customer reschedule,
admin detail update and customer contact update.

States: booked -> cancelled | completed (both terminal).

Every write that creates occupancy runs validate -> conflict check -> write
-> commit while holding the booking lock for the target scope; the partial
unique index on booked appointments turns any remaining race into a
ConflictError at commit time.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_api.core.actor import Actor
from booking_api.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PolicyViolationError,
    ERR_APPOINTMENT_CONFLICT,
    ERR_APPOINTMENT_NOT_FOUND,
    ERR_INVALID_STATUS,
    ERR_NO_UPDATES,
    ERR_NOT_BOOKED,
    ERR_OUTSIDE_HOURS,
    ERR_PHONE_MISMATCH,
    ERR_RESCHEDULE_LIMIT,
    ERR_STAFF_SCOPE,
)
from booking_api.core.locks import BookingLockProvider, booking_scope, get_lock_provider
from booking_api.models.appointment import (
    Appointment,
    APPOINTMENT_STATUSES,
    STATUS_BOOKED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
)
from booking_api.models.business import Business
from booking_api.models.service import Service
from booking_api.services.audit.audit_service import AuditService
from booking_api.services.directory.directory_service import (
    DirectoryService,
    parse_id,
    parse_optional_id,
)
from booking_api.services.scheduling import policies
from booking_api.services.scheduling.conflict_checker import ConflictChecker
from booking_api.services.scheduling.policies import PolicyGuard
from booking_api.services.scheduling.time_window import TimeWindowResolver
from booking_api.utils.clock import utc_now
from booking_api.utils.phone import normalize_phone_to_e164, phones_match

logger = logging.getLogger(__name__)


class AppointmentService:
    """Handles appointment state transitions"""

    def __init__(
            self,
            db: Session,
            lock_provider: Optional[BookingLockProvider] = None,
            clock: Optional[Callable[[], datetime]] = None
    ):
        self.db = db
        self.locks = lock_provider or get_lock_provider()
        self.clock = clock or utc_now

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self):
        """Commit on success; roll back on any failure, mapping races to Conflict"""
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Booking write rejected by store constraint: {e.orig}")
            raise ConflictError(ERR_APPOINTMENT_CONFLICT) from e
        except Exception:
            self.db.rollback()
            raise

    def _find_appointment(
            self,
            business_id: UUID,
            appointment_id: Union[str, UUID],
            resource_scope: Optional[UUID] = None
    ) -> Appointment:
        query = self.db.query(Appointment).filter(
            Appointment.id == parse_id(appointment_id, "appointmentId"),
            Appointment.business_id == business_id,
        )
        if resource_scope:
            query = query.filter(Appointment.resource_id == resource_scope)

        appointment = query.first()
        if not appointment:
            raise NotFoundError(ERR_APPOINTMENT_NOT_FOUND)
        return appointment

    @staticmethod
    def _require_booked(appointment: Appointment) -> None:
        if appointment.status != STATUS_BOOKED:
            raise PolicyViolationError(ERR_NOT_BOOKED)

    @staticmethod
    def _require_phone(appointment: Appointment, customer_phone: str) -> None:
        if not phones_match(appointment.customer_phone, customer_phone):
            raise ForbiddenError(ERR_PHONE_MISMATCH)

    def _resolve_resource(self, business: Business, service: Service, resource_id) -> Optional[UUID]:
        """Validate an optional resource against the directory and the service"""
        resource_uuid = parse_optional_id(resource_id, "resourceId")
        if resource_uuid:
            DirectoryService.get_active_resource(self.db, business.id, resource_uuid)
        PolicyGuard.require(policies.resource_eligible(service.allowed_resource_ids, resource_uuid))
        return resource_uuid

    @staticmethod
    def _resolve_interval(business: Business, service: Service, start_local: datetime):
        """UTC [start, end) for the service, required to fit that day's opening window"""
        end_local = TimeWindowResolver.step(start_local, service.duration_minutes)
        window = TimeWindowResolver.resolve(business, start_local.date())
        if window is None or not window.contains(start_local, end_local):
            raise PolicyViolationError(ERR_OUTSIDE_HOURS)
        return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)

    def _parse_start(self, business: Business, start_time: str) -> datetime:
        return TimeWindowResolver.parse_local_start(start_time, TimeWindowResolver.zone_for(business))

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_appointment(
            self,
            business: Business,
            service_id: Union[str, UUID],
            customer_name: str,
            customer_phone: str,
            start_time: str,
            resource_id: Union[str, UUID, None] = None,
            require_future_start: bool = True,
            actor: Optional[Actor] = None
    ) -> Appointment:
        """
        Book a new appointment. Nothing is written unless every check passes.

        Admin bookings skip the strictly-future start check
        (`require_future_start=False`), customer bookings never do.
        """
        actor = actor or Actor.customer()
        service = DirectoryService.get_active_service(self.db, business.id, service_id)
        resource_uuid = self._resolve_resource(business, service, resource_id)

        start_local = self._parse_start(business, start_time)
        if require_future_start:
            PolicyGuard.require(policies.start_not_in_past(start_local, self.clock()))
        start_utc, end_utc = self._resolve_interval(business, service, start_local)

        with self.locks.acquire(business.id, resource_uuid):
            with self._transaction():
                ConflictChecker.assert_no_conflict(
                    self.db, business.id, start_utc, end_utc, resource_uuid
                )
                appointment = Appointment(
                    business_id=business.id,
                    service_id=service.id,
                    resource_id=resource_uuid,
                    booking_scope=booking_scope(resource_uuid),
                    customer_name=customer_name.strip(),
                    customer_phone=customer_phone.strip(),
                    start_time=start_utc,
                    end_time=end_utc,
                    status=STATUS_BOOKED,
                    reschedule_count=0,
                    reminder_sent_hours=[],
                )
                self.db.add(appointment)
                self.db.flush()
        self.db.refresh(appointment)

        logger.info(
            f"Booked appointment {appointment.id} for business {business.id} "
            f"resource {resource_uuid or '-'} at {start_utc.isoformat()}"
        )
        AuditService.record(
            self.db, business.id, "appointment.created", appointment.id, actor.role.value,
            {"start_time": start_utc.isoformat(), "resource_id": str(resource_uuid) if resource_uuid else None},
        )
        return appointment

    # ------------------------------------------------------------------
    # Cancel / complete
    # ------------------------------------------------------------------

    def cancel_appointment(
            self,
            business: Business,
            appointment_id: Union[str, UUID],
            actor: Actor,
            customer_phone: Optional[str] = None
    ) -> Appointment:
        """
        booked -> cancelled.

        Customers must match the booking phone. Everyone except a platform
        operator must respect the cancellation window. Cancelling an already
        cancelled appointment is a no-op.
        """
        appointment = self._find_appointment(business.id, appointment_id, actor.resource_id)
        if actor.is_customer:
            self._require_phone(appointment, customer_phone)

        if appointment.status == STATUS_CANCELLED:
            return appointment
        self._require_booked(appointment)

        PolicyGuard.require(policies.within_cancellation_window(
            appointment.start_time,
            self.clock(),
            business.cancellation_hours,
            is_platform_operator=actor.is_platform_operator,
        ))

        with self._transaction():
            appointment.status = STATUS_CANCELLED

        logger.info(f"Cancelled appointment {appointment.id} (by {actor.role.value})")
        AuditService.record(self.db, business.id, "appointment.cancelled", appointment.id, actor.role.value)
        return appointment

    def update_status(
            self,
            business: Business,
            appointment_id: Union[str, UUID],
            status: str,
            actor: Actor
    ) -> Appointment:
        """
        Administrative status transition.

        Same-status requests are no-ops; terminal appointments never change
        status.
        """
        if status not in APPOINTMENT_STATUSES:
            raise InvalidInputError(ERR_INVALID_STATUS)

        if status == STATUS_CANCELLED:
            return self.cancel_appointment(business, appointment_id, actor)

        appointment = self._find_appointment(business.id, appointment_id, actor.resource_id)
        if appointment.status == status:
            return appointment
        self._require_booked(appointment)

        # booked -> completed
        with self._transaction():
            appointment.status = STATUS_COMPLETED

        logger.info(f"Completed appointment {appointment.id} (by {actor.role.value})")
        AuditService.record(self.db, business.id, "appointment.completed", appointment.id, actor.role.value)
        return appointment

    # ------------------------------------------------------------------
    # Time changes
    # ------------------------------------------------------------------

    def reschedule_appointment(
            self,
            business: Business,
            appointment_id: Union[str, UUID],
            customer_phone: str,
            start_time: str
    ) -> Appointment:
        """
        Customer self-service move. Allowed once per appointment regardless
        of the business's configured reschedule_limit.
        """
        appointment = self._find_appointment(business.id, appointment_id)
        self._require_phone(appointment, customer_phone)
        self._require_booked(appointment)
        PolicyGuard.require(policies.reschedule_allowed(appointment.reschedule_count))

        start_local = self._parse_start(business, start_time)
        now = self.clock()
        PolicyGuard.require(policies.start_not_in_past(start_local, now))

        # Service unchanged; it may have been deactivated since booking
        service = DirectoryService.get_service(self.db, business.id, appointment.service_id, active_only=False)
        start_utc, end_utc = self._resolve_interval(business, service, start_local)

        with self.locks.acquire(business.id, appointment.resource_id):
            with self._transaction():
                # Another request may have moved or cancelled it since it was loaded
                self.db.refresh(appointment)
                self._require_booked(appointment)
                PolicyGuard.require(policies.reschedule_allowed(appointment.reschedule_count))

                ConflictChecker.assert_no_conflict(
                    self.db, business.id, start_utc, end_utc,
                    appointment.resource_id, exclude_appointment_id=appointment.id,
                )
                seen_count = appointment.reschedule_count or 0
                updated = self.db.query(Appointment).filter(
                    Appointment.id == appointment.id,
                    Appointment.status == STATUS_BOOKED,
                    Appointment.reschedule_count == seen_count,
                ).update(
                    {
                        Appointment.start_time: start_utc,
                        Appointment.end_time: end_utc,
                        Appointment.reschedule_count: seen_count + 1,
                        Appointment.last_rescheduled_at: now,
                    },
                    synchronize_session=False,
                )
                if not updated:
                    raise PolicyViolationError(ERR_RESCHEDULE_LIMIT)
        self.db.refresh(appointment)

        logger.info(f"Rescheduled appointment {appointment.id} to {start_utc.isoformat()}")
        AuditService.record(
            self.db, business.id, "appointment.rescheduled", appointment.id, "customer",
            {"start_time": start_utc.isoformat(), "reschedule_count": appointment.reschedule_count},
        )
        return appointment

    def update_appointment_details(
            self,
            business: Business,
            appointment_id: Union[str, UUID],
            actor: Actor,
            service_id: Union[str, UUID, None] = None,
            resource_id: Union[str, UUID, None] = None,
            start_time: Optional[str] = None
    ) -> Appointment:
        """
        Administrative edit of service, resource and/or start time.

        Re-runs eligibility, opening-hours and conflict checks but does not
        consume the customer reschedule counter.
        """
        if service_id is None and resource_id is None and start_time is None:
            raise InvalidInputError(ERR_NO_UPDATES)

        appointment = self._find_appointment(business.id, appointment_id)
        if actor.resource_id and appointment.resource_id != actor.resource_id:
            raise ForbiddenError(ERR_STAFF_SCOPE)
        self._require_booked(appointment)

        service = DirectoryService.get_active_service(
            self.db, business.id, service_id if service_id is not None else appointment.service_id
        )
        target_resource = resource_id if resource_id not in (None, "") else appointment.resource_id
        resource_uuid = self._resolve_resource(business, service, target_resource)
        if actor.resource_id and resource_uuid != actor.resource_id:
            raise ForbiddenError(ERR_STAFF_SCOPE)

        if start_time is not None:
            start_local = self._parse_start(business, start_time)
        else:
            start_local = appointment.start_time.astimezone(TimeWindowResolver.zone_for(business))
        start_utc, end_utc = self._resolve_interval(business, service, start_local)

        with self.locks.acquire(business.id, resource_uuid):
            with self._transaction():
                ConflictChecker.assert_no_conflict(
                    self.db, business.id, start_utc, end_utc,
                    resource_uuid, exclude_appointment_id=appointment.id,
                )
                appointment.service_id = service.id
                appointment.resource_id = resource_uuid
                appointment.booking_scope = booking_scope(resource_uuid)
                appointment.start_time = start_utc
                appointment.end_time = end_utc

        logger.info(f"Updated appointment {appointment.id} details (by {actor.role.value})")
        AuditService.record(
            self.db, business.id, "appointment.updated", appointment.id, actor.role.value,
            {
                "service_id": str(service.id),
                "resource_id": str(resource_uuid) if resource_uuid else None,
                "start_time": start_utc.isoformat(),
            },
        )
        return appointment

    # ------------------------------------------------------------------
    # Customer contact details
    # ------------------------------------------------------------------

    def update_customer_details(
            self,
            business: Business,
            appointment_id: Union[str, UUID],
            customer_phone: str,
            customer_name: Optional[str] = None,
            new_customer_phone: Optional[str] = None
    ) -> Appointment:
        """Customer edits their own name/phone; the time slot is untouched"""
        appointment = self._find_appointment(business.id, appointment_id)
        self._require_phone(appointment, customer_phone)

        updates = {}
        if customer_name and customer_name.strip():
            updates["customer_name"] = customer_name.strip()
        if new_customer_phone:
            normalized = normalize_phone_to_e164(new_customer_phone)
            if normalized:
                updates["customer_phone"] = normalized
        if not updates:
            raise InvalidInputError(ERR_NO_UPDATES)

        with self._transaction():
            for field_name, value in updates.items():
                setattr(appointment, field_name, value)

        AuditService.record(
            self.db, business.id, "appointment.contact_updated", appointment.id, "customer",
            {"fields": sorted(updates)},
        )
        return appointment

    # ------------------------------------------------------------------
    # Reads used by the public surface
    # ------------------------------------------------------------------

    def upcoming_for_phone(self, business: Business, phone: Optional[str]):
        """Upcoming, non-cancelled appointments for a phone; short input returns nothing"""
        if not phone or len(phone.strip()) < 7:
            return []

        zone = TimeWindowResolver.zone_for(business)
        today_local = self.clock().astimezone(zone).date()
        day_start_utc = datetime.combine(today_local, datetime.min.time(), tzinfo=zone).astimezone(timezone.utc)

        return self.db.query(Appointment).filter(
            Appointment.business_id == business.id,
            Appointment.customer_phone == phone.strip(),
            Appointment.status != STATUS_CANCELLED,
            Appointment.start_time >= day_start_utc,
        ).order_by(Appointment.start_time.asc()).all()
