from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from vetcare.constants import Permission, Role
from vetcare.deps import get_appointment_service, get_schedule_service, page_params
from vetcare.errors import InvalidRequestError, UnauthorizedError
from vetcare.schemas import (
    AppointmentCreate,
    AppointmentOut,
    Page,
    PageParams,
    PetAppointmentsOut,
    RescheduleIn,
)
from vetcare.security import Caller, get_current_caller, require_permissions
from vetcare.services.appointment_service import AppointmentService
from vetcare.services.schedule_service import ScheduleService

router = APIRouter(prefix="/appointments", tags=["appointments"])


async def _require_permission_or_owner(
    service: AppointmentService, appointment_id: str, caller: Caller, permission: Permission
) -> bool:
    """Returns True when access rests on ownership alone."""
    if caller.has(permission):
        return False
    if await service.is_owner(appointment_id, caller.id):
        return True
    raise UnauthorizedError("You are not allowed to modify this appointment")


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    caller: Caller = Depends(require_permissions(Permission.SCHEDULE_APPOINTMENT)),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.create(payload, caller.id)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentOut)
async def reschedule_appointment(
    appointment_id: str,
    payload: RescheduleIn,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    owner_only = await _require_permission_or_owner(
        service, appointment_id, caller, Permission.RESCHEDULE_APPOINTMENT
    )
    return await service.reschedule(
        appointment_id, payload.new_date, payload.reason, caller.id, enforce_ownership=owner_only
    )


@router.post("/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    appointment_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    owner_only = await _require_permission_or_owner(
        service, appointment_id, caller, Permission.SCHEDULE_APPOINTMENT
    )
    return await service.cancel(appointment_id, caller.id, enforce_ownership=owner_only)


@router.get("/daily", response_model=Page[AppointmentOut])
async def daily_appointments(
    veterinarian_id: Optional[str] = Query(None, description="Defaults to the calling veterinarian"),
    day: Optional[date] = Query(None, alias="date", description="UTC day, defaults to today"),
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permissions(Permission.VIEW_DAILY_APPOINTMENTS)),
    service: ScheduleService = Depends(get_schedule_service),
):
    """One veterinarian's appointments for a day, with each pet's recent history."""
    vet_id = veterinarian_id or (caller.id if caller.role == Role.VETERINARIAN else None)
    if not vet_id:
        raise InvalidRequestError("veterinarian_id is required")
    return await service.veterinarian_day(vet_id, day, params)


@router.get("/my-pets", response_model=Page[PetAppointmentsOut])
async def my_pets_appointments(
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permissions(Permission.VIEW_PET_APPOINTMENTS)),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.client_pets(caller.id, params)
