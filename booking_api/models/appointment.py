# booking_api/models/appointment.py
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, JSON, Uuid, CheckConstraint
from sqlalchemy.sql import func
import uuid
from booking_api.models.base import Base, UTCDateTime

STATUS_BOOKED = "booked"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"
APPOINTMENT_STATUSES = (STATUS_BOOKED, STATUS_CANCELLED, STATUS_COMPLETED)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_positive_range"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=False, index=True)
    resource_id = Column(Uuid, ForeignKey("resources.id"), nullable=True)

    # str(resource_id), or "business" when the booking occupies the whole business
    booking_scope = Column(String(64), nullable=False)

    # Customer info
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(20), nullable=False, index=True)

    # UTC instants; end = start + service duration at write time
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)

    # Status tracking
    status = Column(String(20), nullable=False, default=STATUS_BOOKED)  # booked, cancelled, completed
    reschedule_count = Column(Integer, nullable=False, default=0)
    last_rescheduled_at = Column(UTCDateTime, nullable=True)

    # Reminder hours already sent (marker only, sending happens elsewhere)
    reminder_sent_hours = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Appointment(id={self.id}, status={self.status}, start={self.start_time})>"



Index("ix_appointments_business_range", Appointment.business_id, Appointment.start_time, Appointment.end_time)
Index("ix_appointments_resource_range", Appointment.resource_id, Appointment.start_time, Appointment.end_time)

# Store-level double-booking guard: one booked appointment per scope and start
Index(
    "uq_appointments_booked_scope_start",
    Appointment.business_id,
    Appointment.booking_scope,
    Appointment.start_time,
    unique=True,
    postgresql_where=Appointment.status == STATUS_BOOKED,
    sqlite_where=Appointment.status == STATUS_BOOKED,
)
