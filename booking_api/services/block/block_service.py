# booking_api/services/block/block_service.py
"""
Manual unavailability (holidays, lunch, maintenance).

Blocks are read-only input to availability and conflict checks; this service
is the only place they are created or removed.
"""
import logging
from datetime import timezone
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.core.actor import Actor
from booking_api.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    ERR_BLOCK_APPOINTMENT_CONFLICT,
    ERR_BLOCK_NOT_FOUND,
    ERR_BLOCK_RANGE,
    ERR_STAFF_SCOPE,
)
from booking_api.core.locks import BookingLockProvider, get_lock_provider
from booking_api.models.block import Block
from booking_api.models.business import Business
from booking_api.services.audit.audit_service import AuditService
from booking_api.services.directory.directory_service import (
    DirectoryService,
    parse_id,
    parse_optional_id,
)
from booking_api.services.scheduling.conflict_checker import ConflictChecker
from booking_api.services.scheduling.time_window import TimeWindowResolver

logger = logging.getLogger(__name__)


class BlockService:

    @staticmethod
    def list_blocks(
            db: Session,
            business: Business,
            actor: Actor,
            resource_id: Union[str, UUID, None] = None
    ) -> List[Block]:
        """Blocks of the business; a resource filter also returns global blocks"""
        query = db.query(Block).filter(Block.business_id == business.id)
        scoped_resource = actor.resource_id or parse_optional_id(resource_id, "resourceId")
        if scoped_resource:
            query = query.filter((Block.resource_id == scoped_resource) | (Block.resource_id.is_(None)))
        return query.order_by(Block.start_time.asc()).all()

    @staticmethod
    def create_block(
            db: Session,
            business: Business,
            actor: Actor,
            start_time: str,
            end_time: str,
            resource_id: Union[str, UUID, None] = None,
            reason: Optional[str] = None,
            lock_provider: Optional[BookingLockProvider] = None
    ) -> Block:
        """
        Create a block. A block may not cover time already held by a booked
        appointment; those must be cancelled or moved first.

        The overlap check and the insert run under the booking locks of every
        scope the block covers: its resource, or for a global block the
        business scope plus each active resource.
        """
        resource_uuid = parse_optional_id(resource_id, "resourceId")
        if actor.resource_id:
            if resource_uuid and resource_uuid != actor.resource_id:
                raise ForbiddenError(ERR_STAFF_SCOPE)
            resource_uuid = actor.resource_id
        if resource_uuid:
            DirectoryService.get_active_resource(db, business.id, resource_uuid)

        zone = TimeWindowResolver.zone_for(business)
        start_utc = TimeWindowResolver.parse_local_start(start_time, zone).astimezone(timezone.utc)
        end_utc = TimeWindowResolver.parse_local_start(end_time, zone).astimezone(timezone.utc)
        if end_utc <= start_utc:
            raise InvalidInputError(ERR_BLOCK_RANGE)

        if resource_uuid:
            scopes = [resource_uuid]
        else:
            scopes = [None] + [r.id for r in DirectoryService.list_active_resources(db, business.id)]

        locks = lock_provider or get_lock_provider()
        with locks.acquire_many(business.id, scopes):
            try:
                overlapping = ConflictChecker.booked_overlap_query(
                    db, business.id, start_utc, end_utc, resource_uuid
                ).count()
                if overlapping:
                    raise ConflictError(ERR_BLOCK_APPOINTMENT_CONFLICT)

                block = Block(
                    business_id=business.id,
                    resource_id=resource_uuid,
                    start_time=start_utc,
                    end_time=end_utc,
                    reason=(reason or "").strip() or None,
                )
                db.add(block)
                db.commit()
            except Exception:
                db.rollback()
                raise
        db.refresh(block)

        logger.info(
            f"Created block {block.id} for business {business.id} "
            f"resource {resource_uuid or 'all'} [{start_utc.isoformat()}, {end_utc.isoformat()})"
        )
        AuditService.record(
            db, business.id, "block.created", block.id, actor.role.value,
            {"resource_id": str(resource_uuid) if resource_uuid else None, "reason": block.reason},
        )
        return block

    @staticmethod
    def delete_block(
            db: Session,
            business: Business,
            actor: Actor,
            block_id: Union[str, UUID]
    ) -> None:
        query = db.query(Block).filter(
            Block.id == parse_id(block_id, "blockId"),
            Block.business_id == business.id,
        )
        if actor.resource_id:
            query = query.filter(Block.resource_id == actor.resource_id)

        block = query.first()
        if not block:
            raise NotFoundError(ERR_BLOCK_NOT_FOUND)

        deleted_id = block.id
        try:
            db.delete(block)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Deleted block {deleted_id} for business {business.id}")
        AuditService.record(db, business.id, "block.deleted", deleted_id, actor.role.value)
