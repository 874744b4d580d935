# booking_api/models/block.py
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid, CheckConstraint
from sqlalchemy.sql import func
import uuid
from booking_api.models.base import Base, UTCDateTime


class Block(Base):
    """Manual unavailability; no resource_id means the whole business is blocked"""
    __tablename__ = "blocks"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_blocks_positive_range"),
        Index("ix_blocks_business_range", "business_id", "start_time", "end_time"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    resource_id = Column(Uuid, ForeignKey("resources.id", ondelete="CASCADE"), nullable=True)

    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    reason = Column(String(255), nullable=True)  # "Holiday", "Lunch", etc.

    created_at = Column(DateTime(timezone=True), server_default=func.now())
