# booking_api/models/audit_log.py
from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.sql import func
import uuid
from booking_api.models.base import Base


class AuditLog(Base):
    """Append-only record of scheduling writes"""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, nullable=False, index=True)
    action = Column(String(50), nullable=False)  # appointment.created, block.deleted, ...
    entity_id = Column(Uuid, nullable=True)
    actor_role = Column(String(30), nullable=True)
    payload = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
