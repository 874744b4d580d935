# booking_api/services/scheduling/conflict_checker.py
"""
Overlap detection against booked appointments and blocks.

Intervals are half-open: [a, b) and [c, d) overlap iff a < d and c < b.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_api.core.exceptions import ConflictError, ERR_APPOINTMENT_CONFLICT
from booking_api.models.appointment import Appointment, STATUS_BOOKED
from booking_api.models.block import Block

logger = logging.getLogger(__name__)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval intersection"""
    return a_start < b_end and b_start < a_end


def overlaps_any(start: datetime, end: datetime, intervals: Iterable[Tuple[datetime, datetime]]) -> bool:
    return any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in intervals)


class ConflictChecker:
    """Store-backed conflict queries used by every booking write"""

    @staticmethod
    def booked_overlap_query(
            db: Session,
            business_id: UUID,
            start_utc: datetime,
            end_utc: datetime,
            resource_id: Optional[UUID] = None,
            exclude_appointment_id: Optional[UUID] = None
    ):
        """
        Booked appointments overlapping the interval.

        Without a resource_id the query is not filtered by resource: a
        resource-less booking occupies the whole business.
        """
        query = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.status == STATUS_BOOKED,
            Appointment.start_time < end_utc,
            Appointment.end_time > start_utc,
        )
        if resource_id:
            query = query.filter(Appointment.resource_id == resource_id)
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query

    @staticmethod
    def block_overlap_query(
            db: Session,
            business_id: UUID,
            start_utc: datetime,
            end_utc: datetime,
            resource_id: Optional[UUID] = None
    ):
        """Blocks overlapping the interval; a resource also matches global blocks"""
        query = db.query(Block).filter(
            Block.business_id == business_id,
            Block.start_time < end_utc,
            Block.end_time > start_utc,
        )
        if resource_id:
            query = query.filter(or_(Block.resource_id == resource_id, Block.resource_id.is_(None)))
        return query

    @staticmethod
    def has_conflict(
            db: Session,
            business_id: UUID,
            start_utc: datetime,
            end_utc: datetime,
            resource_id: Optional[UUID] = None,
            exclude_appointment_id: Optional[UUID] = None
    ) -> bool:
        appointments = ConflictChecker.booked_overlap_query(
            db, business_id, start_utc, end_utc, resource_id, exclude_appointment_id
        ).count()
        blocks = ConflictChecker.block_overlap_query(
            db, business_id, start_utc, end_utc, resource_id
        ).count()

        if appointments or blocks:
            logger.info(
                f"Conflict for business {business_id} resource {resource_id or '-'} "
                f"[{start_utc.isoformat()}, {end_utc.isoformat()}): "
                f"{appointments} appointment(s), {blocks} block(s)"
            )
            return True
        return False

    @staticmethod
    def assert_no_conflict(
            db: Session,
            business_id: UUID,
            start_utc: datetime,
            end_utc: datetime,
            resource_id: Optional[UUID] = None,
            exclude_appointment_id: Optional[UUID] = None
    ) -> None:
        if ConflictChecker.has_conflict(
            db, business_id, start_utc, end_utc, resource_id, exclude_appointment_id
        ):
            raise ConflictError(ERR_APPOINTMENT_CONFLICT)
