# ============================================================================
# booking_api/services/appointment/appointment_query_service.py
# Read-only appointment queries - no FastAPI dependencies, fully testable
# ============================================================================
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_api.core.actor import Actor
from booking_api.core.exceptions import InvalidInputError, ERR_INVALID_STATUS
from booking_api.models.appointment import Appointment, APPOINTMENT_STATUSES
from booking_api.models.business import Business
from booking_api.services.scheduling.time_window import TimeWindowResolver
from booking_api.utils.phone import normalize_phone_to_e164

PHONE_SEARCH_PATTERN = re.compile(r"^[\d\s+()\-]{7,}$")


class AppointmentQueryService:
    """Admin-side appointment listing"""

    @staticmethod
    def _local_day_start_utc(business: Business, local_date: date) -> datetime:
        zone = TimeWindowResolver.zone_for(business)
        return datetime.combine(local_date, datetime.min.time(), tzinfo=zone).astimezone(timezone.utc)

    @staticmethod
    def list_appointments(
            db: Session,
            business: Business,
            actor: Actor,
            day: Optional[str] = None,
            date_from: Optional[str] = None,
            date_to: Optional[str] = None,
            resource_id: Optional[UUID] = None,
            status: Optional[str] = None,
            search: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """
        Paginated appointments of a business, ordered by start time.

        Dates are business-local calendar days. `day` wins over the
        `date_from`/`date_to` range. Staff actors only ever see their own
        resource.
        """
        query = db.query(Appointment).filter(Appointment.business_id == business.id)

        if day:
            local_day = TimeWindowResolver.parse_local_date(day)
            query = query.filter(
                Appointment.start_time >= AppointmentQueryService._local_day_start_utc(business, local_day),
                Appointment.start_time < AppointmentQueryService._local_day_start_utc(
                    business, local_day + timedelta(days=1)
                ),
            )
        else:
            # Range filter keeps anything overlapping [from 00:00, to+1 00:00)
            if date_from:
                local_from = TimeWindowResolver.parse_local_date(date_from)
                query = query.filter(
                    Appointment.end_time > AppointmentQueryService._local_day_start_utc(business, local_from)
                )
            if date_to:
                local_to = TimeWindowResolver.parse_local_date(date_to)
                query = query.filter(
                    Appointment.start_time < AppointmentQueryService._local_day_start_utc(
                        business, local_to + timedelta(days=1)
                    )
                )

        scoped_resource = actor.resource_id or resource_id
        if scoped_resource:
            query = query.filter(Appointment.resource_id == scoped_resource)

        if status:
            if status not in APPOINTMENT_STATUSES:
                raise InvalidInputError(ERR_INVALID_STATUS)
            query = query.filter(Appointment.status == status)

        if search and search.strip():
            term = search.strip()
            conditions = [
                Appointment.customer_name.ilike(f"%{term}%"),
                Appointment.customer_phone.ilike(f"%{term}%"),
            ]
            if PHONE_SEARCH_PATTERN.match(term):
                normalized = normalize_phone_to_e164(term)
                if normalized:
                    conditions.append(Appointment.customer_phone == normalized)
            query = query.filter(or_(*conditions))

        total = query.count()
        appointments = query.order_by(Appointment.start_time.asc()).offset(skip).limit(limit).all()

        return {
            "business_id": str(business.id),
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "date": day,
                "from": date_from,
                "to": date_to,
                "resource_id": str(scoped_resource) if scoped_resource else None,
                "status": status,
                "search": search,
            },
            "appointments": appointments
        }
