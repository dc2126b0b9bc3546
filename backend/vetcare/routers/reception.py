from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from vetcare.constants import Permission
from vetcare.deps import get_schedule_service, page_params
from vetcare.schemas import DailyAppointmentOut, Page, PageParams
from vetcare.security import require_permissions
from vetcare.services.schedule_service import ScheduleService

router = APIRouter(
    prefix="/reception",
    tags=["reception"],
    dependencies=[Depends(require_permissions(Permission.VIEW_DAILY_APPOINTMENTS))],
)


@router.get("/appointments/daily", response_model=Page[DailyAppointmentOut])
async def daily_appointments(
    day: Optional[date] = Query(None, alias="date", description="UTC day, defaults to today"),
    params: PageParams = Depends(page_params),
    service: ScheduleService = Depends(get_schedule_service),
):
    """All appointments of the day for the front desk, flattened with contact details."""
    return await service.reception_day(day, params)
