# booking_api/services/scheduling/slot_generator.py
"""
Free-slot enumeration for one business day.

The day is walked on a fixed, non-overlapping grid of the service duration
starting at opening time. Appointments and blocks are fetched once and
tested in memory with the same half-open overlap rule the ConflictChecker
uses, so a slot reported free is also accepted by the checker.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.models.appointment import Appointment, STATUS_BOOKED
from booking_api.models.block import Block
from booking_api.models.business import Business
from booking_api.models.service import Service
from booking_api.services.directory.directory_service import (
    DirectoryService,
    parse_optional_id,
)
from booking_api.services.scheduling import policies
from booking_api.services.scheduling.conflict_checker import overlaps_any
from booking_api.services.scheduling.policies import PolicyGuard
from booking_api.services.scheduling.time_window import TimeWindowResolver
from booking_api.utils.clock import utc_now

logger = logging.getLogger(__name__)

Interval = Tuple[datetime, datetime]


@dataclass
class Slot:
    start_time: datetime
    end_time: datetime
    resource_ids: List[UUID] = field(default_factory=list)


class SlotGenerator:
    """Computes availability for a business, service and date"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or utc_now

    def get_availability(
            self,
            slug: str,
            date_str: str,
            service_id: Union[str, UUID],
            resource_id: Union[str, UUID, None] = None
    ) -> List[Slot]:
        """
        Public availability query.

        Date policies (not in the past, same-day allowed) are checked before
        any slot computation.
        """
        business = DirectoryService.get_active_business(self.db, slug=slug)
        local_date = TimeWindowResolver.parse_local_date(date_str)
        today = TimeWindowResolver.today(business, self.clock())

        PolicyGuard.require(policies.not_in_past(local_date, today))
        PolicyGuard.require(policies.same_day_allowed(business.allow_same_day, local_date, today))

        service = DirectoryService.get_active_service(self.db, business.id, service_id)
        resource_filter = parse_optional_id(resource_id, "resourceId")

        return self.generate(business, service, local_date, resource_filter)

    def eligible_resource_ids(
            self,
            business: Business,
            service: Service,
            resource_filter: Optional[UUID] = None
    ) -> List[UUID]:
        """Active resources, narrowed by the service's allowed set and the filter"""
        candidates = None
        allowed = service.allowed_resource_ids
        if allowed:
            candidates = set(allowed)
        if resource_filter:
            candidates = {resource_filter} if candidates is None else candidates & {resource_filter}

        resources = DirectoryService.list_active_resources(self.db, business.id, candidates)
        return [r.id for r in resources]

    def _busy_intervals(
            self,
            business_id: UUID,
            open_utc: datetime,
            close_utc: datetime
    ) -> Tuple[Dict[UUID, List[Interval]], List[Interval]]:
        """
        One fetch of booked appointments and blocks intersecting the day,
        partitioned per resource plus a business-wide list.
        """
        per_resource: Dict[UUID, List[Interval]] = defaultdict(list)
        business_wide: List[Interval] = []

        appointments = self.db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.status == STATUS_BOOKED,
            Appointment.start_time < close_utc,
            Appointment.end_time > open_utc,
        ).all()
        for appt in appointments:
            interval = (appt.start_time, appt.end_time)
            if appt.resource_id:
                per_resource[appt.resource_id].append(interval)
            else:
                # A resource-less booking occupies the whole business
                business_wide.append(interval)

        blocks = self.db.query(Block).filter(
            Block.business_id == business_id,
            Block.start_time < close_utc,
            Block.end_time > open_utc,
        ).all()
        for block in blocks:
            interval = (block.start_time, block.end_time)
            if block.resource_id:
                per_resource[block.resource_id].append(interval)
            else:
                business_wide.append(interval)

        return per_resource, business_wide

    def generate(
            self,
            business: Business,
            service: Service,
            local_date: date,
            resource_filter: Optional[UUID] = None
    ) -> List[Slot]:
        window = TimeWindowResolver.resolve(business, local_date)
        if window is None:
            logger.debug(f"Business {business.id} closed on {local_date.isoformat()}")
            return []

        resource_ids = self.eligible_resource_ids(business, service, resource_filter)
        if not resource_ids:
            return []

        open_utc, close_utc = window.open_utc, window.close_utc
        per_resource, business_wide = self._busy_intervals(business.id, open_utc, close_utc)
        step = timedelta(minutes=service.duration_minutes)

        slots: Dict[datetime, Slot] = {}
        for resource_id in resource_ids:
            busy = per_resource.get(resource_id, []) + business_wide

            cursor = open_utc
            while cursor + step <= close_utc:
                slot_end = cursor + step
                if not overlaps_any(cursor, slot_end, busy):
                    slot = slots.get(cursor)
                    if slot is None:
                        slot = slots[cursor] = Slot(start_time=cursor, end_time=slot_end)
                    slot.resource_ids.append(resource_id)
                cursor = slot_end

        result = [slots[start] for start in sorted(slots)]

        now = self.clock()
        if local_date == TimeWindowResolver.today(business, now):
            result = [slot for slot in result if slot.start_time > now.astimezone(timezone.utc)]

        logger.info(
            f"Availability for business {business.id} service {service.id} "
            f"on {local_date.isoformat()}: {len(result)} slot(s)"
        )
        return result
