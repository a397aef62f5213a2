from sqlalchemy.orm import Session, joinedload
from typing import List, Optional, Tuple
import logging

from ..models.user import User
from ..models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from ..core.security import UserRole
from ..core.exceptions import NotFoundError, ConflictError, ValidationFailure
from ..schemas.appointment import AppointmentCreate, AppointmentStatusUpdate

logger = logging.getLogger(__name__)

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.health_professional),
        )

    def create_appointment(self, patient: User, data: AppointmentCreate) -> Appointment:
        """Book a pending appointment with an active health professional."""
        professional = self.db.query(User).filter(
            User.id == data.health_professional_id,
            User.user_type == UserRole.HEALTH_PROFESSIONAL,
            User.is_active == True,
        ).first()

        if not professional:
            raise NotFoundError("Health professional not found or inactive")

        # Read-then-write; concurrent bookings of one slot are not serialized
        conflict = self.db.query(Appointment).filter(
            Appointment.health_professional_id == professional.id,
            Appointment.appointment_date == data.appointment_date,
            Appointment.appointment_time == data.appointment_time,
            Appointment.status.in_(ACTIVE_STATUSES),
        ).first()

        if conflict:
            raise ConflictError("Health professional already has an appointment at this time")

        appointment = Appointment(
            patient_id=patient.id,
            health_professional_id=professional.id,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            description=data.description,
            is_urgent=data.is_urgent,
            status=AppointmentStatus.PENDING,
        )

        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} requested by user {patient.id} "
            f"with professional {professional.id} on "
            f"{appointment.appointment_date} {appointment.appointment_time}"
        )
        return appointment

    def list_appointments(
        self,
        user: User,
        status: Optional[AppointmentStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Appointment], int]:
        """Appointments visible to the caller, newest first."""
        query = self.db.query(Appointment)

        if UserRole(user.user_type).is_health_professional:
            query = query.filter(Appointment.health_professional_id == user.id)
        else:
            query = query.filter(Appointment.patient_id == user.id)

        if status:
            query = query.filter(Appointment.status == status)

        total = query.count()
        appointments = (
            query.options(
                joinedload(Appointment.patient),
                joinedload(Appointment.health_professional),
            )
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    def update_status(
        self,
        appointment_id: int,
        professional: User,
        data: AppointmentStatusUpdate,
    ) -> Appointment:
        """Accept, reject or complete an appointment assigned to the caller."""
        appointment = self._query().filter(
            Appointment.id == appointment_id,
            Appointment.health_professional_id == professional.id,
        ).first()

        if not appointment:
            raise NotFoundError("Appointment not found or you are not authorized to update it")

        if appointment.is_terminal:
            raise ValidationFailure("Cannot update status of completed or cancelled appointments")

        appointment.status = data.status
        if data.status == AppointmentStatus.REJECTED:
            appointment.rejection_reason = data.rejection_reason
        if data.notes:
            appointment.notes = data.notes
        if data.meeting_link:
            appointment.meeting_link = data.meeting_link

        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} marked {data.status.value} by user {professional.id}")
        return appointment

    def cancel_appointment(self, appointment_id: int, patient: User) -> Appointment:
        """Cancel an appointment the caller booked."""
        appointment = self._query().filter(
            Appointment.id == appointment_id,
            Appointment.patient_id == patient.id,
        ).first()

        if not appointment:
            raise NotFoundError("Appointment not found or you are not authorized to cancel it")

        if appointment.status == AppointmentStatus.COMPLETED:
            raise ValidationFailure("Cannot cancel completed appointments")

        appointment.status = AppointmentStatus.CANCELLED

        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} cancelled by user {patient.id}")
        return appointment

    def list_health_professionals(self) -> List[User]:
        return self.db.query(User).filter(
            User.user_type == UserRole.HEALTH_PROFESSIONAL,
            User.is_active == True,
        ).order_by(User.name).all()
