from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from saloony.dependencies.auth import get_current_user_id
from saloony.dependencies.services import get_appointment_service
from saloony.routes.errors import service_errors
from saloony.schemas.appointment import (
    AppointmentListResponse,
    BookingRequest,
    BookingResponse,
    CancelResponse,
    SlotValidationRequest,
    SlotValidationResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from saloony.services import AppointmentService

router = APIRouter()


@router.post("/appointment/validate", response_model=SlotValidationResponse)
def validate_slot(
    req: SlotValidationRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        result = service.validate_slot(
            req.salon_id, req.staff_id, req.start_time, req.end_time, req.duration
        )
        return SlotValidationResponse(**result.as_dict())


@router.post("/appointment/book", response_model=BookingResponse, status_code=201)
def book_appointment(
    req: BookingRequest,
    user_id: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        return service.book(user_id, req)


@router.post("/appointments/cancel/{appointment_id}", response_model=CancelResponse)
def cancel_appointment(
    appointment_id: int,
    user_id: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        return service.cancel(user_id, appointment_id)


@router.post("/salon/appointment/status/{appointment_id}", response_model=StatusUpdateResponse)
def update_appointment_status(
    appointment_id: int,
    req: StatusUpdateRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        return service.update_status(req.salon_id, appointment_id, req.status)


@router.get("/salon/appointments/{salon_id}/{filter_name}", response_model=AppointmentListResponse)
def list_salon_appointments(
    salon_id: int,
    filter_name: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        return service.list_for_salon(salon_id, filter_name)


@router.get("/salon/{salon_id}/appointments/{day}", response_model=AppointmentListResponse)
def salon_appointments_on(
    salon_id: int,
    day: date,
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        return service.scheduled_on(salon_id, day)


@router.get("/appointments/user/{user_id}/{filter_name}", response_model=AppointmentListResponse)
def list_user_appointments(
    user_id: int,
    filter_name: str,
    acting_user_id: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    with service_errors():
        return service.list_for_user(acting_user_id, user_id, filter_name)
