from pydantic import field_validator, model_validator
from datetime import date, datetime
from typing import List, Optional
import re

from .common import CamelModel, Pagination
from ..core.security import UserRole
from ..models.appointment import AppointmentStatus, PROFESSIONAL_STATUSES

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
MEETING_LINK_PATTERN = re.compile(r"^https?://\S+$")


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AppointmentCreate(CamelModel):
    health_professional_id: int
    appointment_date: date
    appointment_time: str
    description: str
    is_urgent: bool = False

    @field_validator("appointment_date", mode="before")
    @classmethod
    def parse_date(cls, value):
        # Clients may send a full ISO datetime; only the calendar day is kept
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and ("T" in value or " " in value.strip()):
            try:
                return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
            except ValueError:
                raise ValueError("Please provide a valid date in ISO format")
        return value

    @field_validator("appointment_date")
    @classmethod
    def date_in_future(cls, value: date) -> date:
        if value <= datetime.utcnow().date():
            raise ValueError("Appointment date must be in the future")
        return value

    @field_validator("appointment_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        match = TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError("Please provide time in HH:MM format")
        hours, minutes = match.groups()
        return f"{int(hours):02d}:{minutes}"

    @field_validator("description")
    @classmethod
    def check_description(cls, value: str) -> str:
        value = value.strip()
        if not 10 <= len(value) <= 500:
            raise ValueError("Description must be between 10 and 500 characters")
        return value


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    meeting_link: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, value: AppointmentStatus) -> AppointmentStatus:
        if value not in PROFESSIONAL_STATUSES:
            raise ValueError("Status must be accepted, rejected, or completed")
        return value

    @field_validator("rejection_reason")
    @classmethod
    def check_rejection_reason(cls, value: Optional[str]) -> Optional[str]:
        value = _strip_optional(value)
        if value is not None and len(value) > 200:
            raise ValueError("Rejection reason cannot exceed 200 characters")
        return value

    @field_validator("notes")
    @classmethod
    def check_notes(cls, value: Optional[str]) -> Optional[str]:
        value = _strip_optional(value)
        if value is not None and len(value) > 1000:
            raise ValueError("Notes cannot exceed 1000 characters")
        return value

    @field_validator("meeting_link")
    @classmethod
    def check_meeting_link(cls, value: Optional[str]) -> Optional[str]:
        value = _strip_optional(value)
        if value is None:
            return value
        if len(value) > 500 or not MEETING_LINK_PATTERN.match(value):
            raise ValueError("Please provide a valid meeting link")
        return value

    @model_validator(mode="after")
    def reason_required_for_rejection(self):
        if self.status == AppointmentStatus.REJECTED and not self.rejection_reason:
            raise ValueError("Rejection reason is required when rejecting an appointment")
        return self


class AppointmentParty(CamelModel):
    id: int
    name: str
    email: str
    user_type: Optional[UserRole] = None


class AppointmentResponse(CamelModel):
    id: int
    patient: AppointmentParty
    health_professional: AppointmentParty
    appointment_date: date
    appointment_time: str
    description: str
    status: AppointmentStatus
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    meeting_link: Optional[str] = None
    is_urgent: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentList(CamelModel):
    appointments: List[AppointmentResponse]
    pagination: Pagination
