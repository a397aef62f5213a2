from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.config import settings
from ...core.database import get_db
from ...api.deps import get_current_user, get_patient_user, get_health_professional_user
from ...services.appointment_service import AppointmentService
from ...schemas.common import APIResponse, Pagination
from ...schemas.auth import HealthProfessionalProfile, HealthProfessionalList
from ...schemas.appointment import (
    AppointmentCreate, AppointmentStatusUpdate, AppointmentResponse, AppointmentList
)
from ...models.appointment import AppointmentStatus
from ...models.user import User

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post(
    "",
    response_model=APIResponse[AppointmentResponse],
    status_code=status.HTTP_201_CREATED
)
def create_appointment(
    appointment_data: AppointmentCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Request an appointment with a health professional."""
    service = AppointmentService(db)
    appointment = service.create_appointment(current_user, appointment_data)

    return APIResponse(
        message="Appointment request created successfully",
        data=AppointmentResponse.model_validate(appointment)
    )

@router.get("", response_model=APIResponse[AppointmentList])
def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, le=settings.MAX_PAGE),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Appointments for the caller: booked ones for patients, assigned ones for professionals."""
    service = AppointmentService(db)
    appointments, total = service.list_appointments(
        current_user, status=status_filter, page=page, limit=limit
    )

    return APIResponse(
        message="Appointments retrieved successfully",
        data=AppointmentList(
            appointments=[AppointmentResponse.model_validate(a) for a in appointments],
            pagination=Pagination.build(page, limit, total),
        )
    )

@router.get("/health-professionals", response_model=APIResponse[HealthProfessionalList])
def list_health_professionals(
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Active health professionals available for booking."""
    service = AppointmentService(db)
    professionals = service.list_health_professionals()

    return APIResponse(
        message="Health professionals retrieved successfully",
        data=HealthProfessionalList(
            health_professionals=[
                HealthProfessionalProfile.model_validate(p) for p in professionals
            ]
        )
    )

@router.put("/{appointment_id}/status", response_model=APIResponse[AppointmentResponse])
def update_appointment_status(
    appointment_id: int,
    status_data: AppointmentStatusUpdate,
    current_user: User = Depends(get_health_professional_user),
    db: Session = Depends(get_db)
):
    """Accept, reject or complete an assigned appointment."""
    service = AppointmentService(db)
    appointment = service.update_status(appointment_id, current_user, status_data)

    return APIResponse(
        message=f"Appointment {appointment.status.value} successfully",
        data=AppointmentResponse.model_validate(appointment)
    )

@router.delete("/{appointment_id}", response_model=APIResponse[AppointmentResponse])
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Cancel one of the caller's appointments."""
    service = AppointmentService(db)
    appointment = service.cancel_appointment(appointment_id, current_user)

    return APIResponse(
        message="Appointment cancelled successfully",
        data=AppointmentResponse.model_validate(appointment)
    )
