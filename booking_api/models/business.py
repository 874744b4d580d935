# booking_api/models/business.py
"""
Business Model

The scheduling core treats businesses as read-only context: timezone,
weekly opening hours and booking policies.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from booking_api.config.settings import get_settings
from booking_api.models.base import Base

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    contact_phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)

    # IANA zone used to interpret opening hours and requested dates
    timezone = Column(String(50), nullable=False, default=lambda: get_settings().DEFAULT_TIMEZONE)
    status = Column(String(20), nullable=False, default=STATUS_ACTIVE)  # active, inactive

    # Booking policies
    cancellation_hours = Column(Integer, nullable=False, default=lambda: get_settings().DEFAULT_CANCELLATION_HOURS)
    reschedule_limit = Column(Integer, nullable=False, default=1)  # Advisory only
    allow_same_day = Column(Boolean, nullable=False, default=True)

    hours = relationship(
        "BusinessHours",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="BusinessHours.day_of_week",
        lazy="selectin",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Business(id={self.id}, slug={self.slug})>"

    def hours_for_day(self, day_of_week: int):
        """Opening-hours entry for 0=Sunday..6=Saturday, or None when closed"""
        return next((h for h in self.hours if h.day_of_week == day_of_week), None)

    def policies_dict(self):
        return {
            "cancellation_hours": self.cancellation_hours,
            "reschedule_limit": self.reschedule_limit,
            "allow_same_day": self.allow_same_day,
        }


class BusinessHours(Base):
    __tablename__ = "business_hours"

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    open_time = Column(String(5), nullable=False)  # HH:MM format
    close_time = Column(String(5), nullable=False)  # HH:MM format

    business = relationship("Business", back_populates="hours")

    def __repr__(self):
        return f"<BusinessHours(business_id={self.business_id}, day={self.day_of_week})>"
