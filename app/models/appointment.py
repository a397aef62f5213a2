from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Boolean, Text, Index, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Statuses that hold a professional's time slot
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.ACCEPTED)
TERMINAL_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)
# Statuses a professional may set
PROFESSIONAL_STATUSES = (
    AppointmentStatus.ACCEPTED,
    AppointmentStatus.REJECTED,
    AppointmentStatus.COMPLETED,
)

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "ix_appointments_professional_slot",
            "health_professional_id", "appointment_date", "appointment_time",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    health_professional_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(5), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING, nullable=False)
    rejection_reason = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    meeting_link = Column(String(500), nullable=True)
    is_urgent = Column(Boolean, default=False, nullable=False)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User", foreign_keys=[patient_id])
    health_professional = relationship("User", foreign_keys=[health_professional_id])

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, patient_id={self.patient_id}, "
            f"health_professional_id={self.health_professional_id}, "
            f"date='{self.appointment_date} {self.appointment_time}', status='{self.status}')>"
        )
