"""
Service wiring used by the routers through ``Depends``.

Each provider builds one process-wide instance over the MongoDB gateways.
Tests replace them with ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Query

from vetcare.config import get_settings
from vetcare.schemas import PageParams
from vetcare.services.appointment_service import AppointmentService
from vetcare.services.appointment_store import AppointmentStore, BeanieAppointmentStore
from vetcare.services.confirmation_service import ConfirmationService
from vetcare.services.directory import BeanieDirectory, DirectoryGateway
from vetcare.services.notifier import Notifier, build_email_channel
from vetcare.services.reminder_service import ReminderService
from vetcare.services.reminder_store import (
    BeanieConfirmationTokenStore,
    BeanieReminderConfigStore,
    ConfirmationTokenStore,
    ReminderConfigStore,
)
from vetcare.services.schedule_service import ScheduleService

settings = get_settings()


@lru_cache()
def get_appointment_store() -> AppointmentStore:
    return BeanieAppointmentStore(timeout=settings.STORE_TIMEOUT_SECONDS)


@lru_cache()
def get_directory() -> DirectoryGateway:
    return BeanieDirectory(timeout=settings.STORE_TIMEOUT_SECONDS)


@lru_cache()
def get_reminder_config_store() -> ReminderConfigStore:
    return BeanieReminderConfigStore(timeout=settings.STORE_TIMEOUT_SECONDS)


@lru_cache()
def get_token_store() -> ConfirmationTokenStore:
    return BeanieConfirmationTokenStore(timeout=settings.STORE_TIMEOUT_SECONDS)


@lru_cache()
def get_notifier() -> Notifier:
    return Notifier(
        build_email_channel(settings),
        timeout=settings.NOTIFY_TIMEOUT_SECONDS,
        date_format=settings.DATE_DISPLAY_FORMAT,
    )


@lru_cache()
def get_appointment_service() -> AppointmentService:
    return AppointmentService(
        get_appointment_store(),
        get_directory(),
        get_notifier(),
        max_attempts=settings.MUTATION_MAX_ATTEMPTS,
    )


@lru_cache()
def get_schedule_service() -> ScheduleService:
    return ScheduleService(
        get_appointment_store(),
        get_directory(),
        max_page_size=settings.MAX_PAGE_SIZE,
    )


@lru_cache()
def get_reminder_service() -> ReminderService:
    return ReminderService(
        get_appointment_store(),
        get_reminder_config_store(),
        get_token_store(),
        get_directory(),
        get_notifier(),
        public_base_url=settings.PUBLIC_BASE_URL,
    )


@lru_cache()
def get_confirmation_service() -> ConfirmationService:
    return ConfirmationService(
        get_appointment_store(),
        get_token_store(),
        max_attempts=settings.MUTATION_MAX_ATTEMPTS,
    )


# ------------------------ Common query parameters ------------------------


def page_params(
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    sort_by: str = Query("appointment_date"),
    sort_direction: str = Query("ASC", pattern="(?i)^(asc|desc)$"),
    filter_by: Optional[str] = Query(None),
    filter_value: Optional[str] = Query(None),
) -> PageParams:
    return PageParams(
        page=page,
        size=size,
        sort_by=sort_by,
        sort_direction=sort_direction,
        filter_by=filter_by,
        filter_value=filter_value,
    )
