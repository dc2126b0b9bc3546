from fastapi import APIRouter, Depends

from vetcare.constants import Role
from vetcare.deps import get_appointment_service, get_schedule_service, page_params
from vetcare.schemas import AppointmentOut, ClientAppointmentOut, Page, PageParams, RescheduleIn
from vetcare.security import Caller, require_roles
from vetcare.services.appointment_service import AppointmentService
from vetcare.services.schedule_service import ScheduleService

router = APIRouter(prefix="/client", tags=["client"])

client_only = require_roles([Role.CLIENT])


@router.get("/appointments", response_model=Page[ClientAppointmentOut])
async def my_appointments(
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(client_only),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Caller's upcoming appointments."""
    return await service.client_upcoming(caller.id, params)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_my_appointment(
    appointment_id: str,
    caller: Caller = Depends(client_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.cancel(appointment_id, caller.id, enforce_ownership=True)


@router.post("/appointments/{appointment_id}/reschedule", response_model=AppointmentOut)
async def reschedule_my_appointment(
    appointment_id: str,
    payload: RescheduleIn,
    caller: Caller = Depends(client_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.reschedule(
        appointment_id, payload.new_date, payload.reason, caller.id, enforce_ownership=True
    )
