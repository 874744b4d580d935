# booking_api/models/service.py
"""
Service Model - Structured service definitions
Each service belongs to one business; its duration is the slot grid unit.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Boolean, DateTime, Table, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from booking_api.models.base import Base


# Resources allowed to serve a service; no rows means any active resource
service_allowed_resources = Table(
    "service_allowed_resources",
    Base.metadata,
    Column("service_id", Uuid, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
    Column("resource_id", Uuid, ForeignKey("resources.id", ondelete="CASCADE"), primary_key=True),
)


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    allowed_resources = relationship(
        "Resource",
        secondary=service_allowed_resources,
        lazy="selectin",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    @property
    def allowed_resource_ids(self):
        return {r.id for r in self.allowed_resources}

