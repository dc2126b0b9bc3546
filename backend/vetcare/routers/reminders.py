from fastapi import APIRouter, Depends, Query, Request

from vetcare.config import get_settings
from vetcare.constants import Permission
from vetcare.deps import get_confirmation_service, get_reminder_service
from vetcare.rate_limit import limiter
from vetcare.schemas import ConfirmationOut, ReminderConfigIn, ReminderConfigRecord, SweepResultOut
from vetcare.security import require_permissions
from vetcare.services.confirmation_service import ConfirmationService
from vetcare.services.reminder_service import ReminderService

settings = get_settings()

router = APIRouter(prefix="/reminders", tags=["reminders"])

manage_reminders = [Depends(require_permissions(Permission.MANAGE_REMINDERS))]


@router.get("/config", response_model=ReminderConfigRecord, dependencies=manage_reminders)
async def get_reminder_config(service: ReminderService = Depends(get_reminder_service)):
    return await service.get_config()


@router.put("/config", response_model=ReminderConfigRecord, dependencies=manage_reminders)
async def update_reminder_config(
    payload: ReminderConfigIn,
    service: ReminderService = Depends(get_reminder_service),
):
    return await service.update_config(payload)


@router.post("/sweep", response_model=SweepResultOut, dependencies=manage_reminders)
async def run_reminder_sweep(service: ReminderService = Depends(get_reminder_service)):
    """Run one sweep now. Reports skipped=true when a sweep is already running."""
    return await service.run_sweep()


@router.get("/confirm", response_model=ConfirmationOut)
@limiter.limit(settings.CONFIRM_RATE_LIMIT)
async def confirm_appointment(
    request: Request,
    appointment_id: str = Query(..., alias="id"),
    token: str = Query(..., min_length=1),
    service: ConfirmationService = Depends(get_confirmation_service),
):
    """Public target of the link in reminder e-mails."""
    return await service.confirm(appointment_id, token)
