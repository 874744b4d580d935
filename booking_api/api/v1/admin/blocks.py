# booking_api/api/v1/admin/blocks.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.orm import Session

from booking_api.api.dependencies import get_admin_actor, get_admin_business, get_booking_locks
from booking_api.config.database import get_db
from booking_api.core.actor import Actor
from booking_api.core.locks import BookingLockProvider
from booking_api.models.business import Business
from booking_api.schemas.scheduling import BlockCreateRequest, BlockResponse
from booking_api.services.block.block_service import BlockService

router = APIRouter(prefix="/admin/businesses/{business_id}/blocks", tags=["admin-blocks"])


@router.get("", response_model=List[BlockResponse])
def list_blocks(
        resource_id: Optional[str] = Query(None, alias="resourceId"),
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db)
):
    blocks = BlockService.list_blocks(db, business, actor, resource_id)
    return [BlockResponse.from_model(b) for b in blocks]


@router.post("", response_model=BlockResponse, status_code=201)
def create_block(
        payload: BlockCreateRequest,
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db),
        locks: BookingLockProvider = Depends(get_booking_locks)
):
    """Mark time unavailable; omit resourceId to block the whole business"""
    block = BlockService.create_block(
        db,
        business,
        actor,
        start_time=payload.start_time,
        end_time=payload.end_time,
        resource_id=payload.resource_id,
        reason=payload.reason,
        lock_provider=locks,
    )
    return BlockResponse.from_model(block)


@router.delete("/{block_id}", status_code=204)
def delete_block(
        block_id: str = Path(...),
        business: Business = Depends(get_admin_business),
        actor: Actor = Depends(get_admin_actor),
        db: Session = Depends(get_db)
):
    BlockService.delete_block(db, business, actor, block_id)
    return Response(status_code=204)
