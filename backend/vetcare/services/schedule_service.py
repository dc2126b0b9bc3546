"""
Role-scoped, paginated schedule reads.

Day windows are always computed in UTC: ``[00:00, 24:00)`` of the requested
date. Totals come from a separate count over the same predicate as the page.
"""
import asyncio
from datetime import date, datetime
from typing import Callable, List, Optional

from vetcare.constants import (
    FINAL_STATUSES,
    MIN_CANCEL_HOURS,
    MIN_RESCHEDULE_HOURS,
    AppointmentStatus,
)
from vetcare.errors import InvalidRequestError
from vetcare.schemas import (
    AppointmentOut,
    AppointmentRecord,
    ClientAppointmentOut,
    DailyAppointmentOut,
    Page,
    PageParams,
    PetAppointmentsOut,
    PetOut,
)
from vetcare.services.appointment_store import AppointmentQuery, AppointmentStore
from vetcare.services.directory import DirectoryGateway, enrich_appointment, lookup_quietly
from vetcare.services.policy_clock import day_window, is_at_least, utcnow
from vetcare.utils.logger import get_logger

logger = get_logger("schedule_service")

SORTABLE_FIELDS = {"appointment_date", "created_at", "updated_at", "status", "reason"}
FILTERABLE_FIELDS = {"status", "pet_id", "client_id", "veterinarian_id", "reason"}


def advisory_flags(record: AppointmentRecord, now: datetime) -> tuple[bool, bool]:
    """(can_cancel, can_reschedule) hints for UIs."""
    if record.status in FINAL_STATUSES:
        return False, False
    return (
        is_at_least(record.appointment_date, now, MIN_CANCEL_HOURS),
        is_at_least(record.appointment_date, now, MIN_RESCHEDULE_HOURS),
    )


class ScheduleService:
    def __init__(
        self,
        store: AppointmentStore,
        directory: DirectoryGateway,
        *,
        clock: Callable[[], datetime] = utcnow,
        max_page_size: int = 100,
    ):
        self._store = store
        self._directory = directory
        self._clock = clock
        self._max_page_size = max_page_size

    # ---------------------- Query helpers ----------------------

    def _scoped(self, query: AppointmentQuery, params: PageParams) -> AppointmentQuery:
        """Apply the caller's optional single equality filter on top of the view's scope."""
        if not params.filter_by or params.filter_value is None:
            return query
        if params.filter_by not in FILTERABLE_FIELDS:
            raise InvalidRequestError(f"Cannot filter by '{params.filter_by}'")
        if params.filter_by in query.equals:
            raise InvalidRequestError(f"'{params.filter_by}' is already fixed by this view")
        value = params.filter_value
        if params.filter_by == "status":
            try:
                value = AppointmentStatus(value.upper())
            except ValueError:
                raise InvalidRequestError(f"Unknown status '{params.filter_value}'")
        return AppointmentQuery(
            equals={**query.equals, params.filter_by: value},
            date_from=query.date_from,
            date_before=query.date_before,
        )

    def _sort_field(self, params: PageParams) -> str:
        if params.sort_by == "id":
            return "appointment_date"
        if params.sort_by not in SORTABLE_FIELDS:
            raise InvalidRequestError(f"Cannot sort by '{params.sort_by}'")
        return params.sort_by

    async def _fetch_page(self, query: AppointmentQuery, params: PageParams) -> tuple[List[AppointmentRecord], int]:
        if params.size > self._max_page_size:
            raise InvalidRequestError(f"Page size cannot exceed {self._max_page_size}")
        query = self._scoped(query, params)
        sort_by = self._sort_field(params)
        records, total = await asyncio.gather(
            self._store.find(
                query,
                sort_by=sort_by,
                descending=params.sort_direction == "DESC",
                offset=params.offset,
                limit=params.size,
            ),
            self._store.count(query),
        )
        return records, total

    def _today(self) -> date:
        return self._clock().date()

    # ---------------------- Views ----------------------

    async def veterinarian_day(
        self, veterinarian_id: str, day: Optional[date], params: PageParams
    ) -> Page[AppointmentOut]:
        """One veterinarian's appointments on ``day`` (default: today, UTC),
        each with the pet's most recent medical history."""
        start, end = day_window(day or self._today())
        query = AppointmentQuery(
            equals={"veterinarian_id": veterinarian_id}, date_from=start, date_before=end
        )
        records, total = await self._fetch_page(query, params)
        content = await asyncio.gather(
            *(enrich_appointment(self._directory, r, with_history=True) for r in records)
        )
        return Page[AppointmentOut].of(list(content), params, total)

    async def reception_day(self, day: Optional[date], params: PageParams) -> Page[DailyAppointmentOut]:
        start, end = day_window(day or self._today())
        records, total = await self._fetch_page(AppointmentQuery(date_from=start, date_before=end), params)
        now = self._clock()
        content = await asyncio.gather(*(self._daily_row(r, now) for r in records))
        return Page[DailyAppointmentOut].of(list(content), params, total)

    async def _daily_row(self, record: AppointmentRecord, now: datetime) -> DailyAppointmentOut:
        client, vet, pet = await asyncio.gather(
            lookup_quietly(self._directory.get_user(record.client_id), f"client {record.client_id}"),
            lookup_quietly(self._directory.get_user(record.veterinarian_id), f"veterinarian {record.veterinarian_id}"),
            lookup_quietly(self._directory.get_pet(record.pet_id), f"pet {record.pet_id}"),
        )
        can_cancel, can_reschedule = advisory_flags(record, now)
        return DailyAppointmentOut(
            id=record.id,
            appointment_time=record.appointment_date,
            client_id=record.client_id,
            client_name=client.full_name if client else None,
            client_email=client.email if client else None,
            client_phone=client.phone if client else None,
            pet_id=record.pet_id,
            pet_name=pet.name if pet else None,
            pet_species=pet.species if pet else None,
            pet_breed=pet.breed if pet else None,
            veterinarian_id=record.veterinarian_id,
            veterinarian_name=vet.full_name if vet else None,
            status=record.status,
            reason=record.reason,
            can_cancel=can_cancel,
            can_reschedule=can_reschedule,
        )

    async def client_pets(self, caller_id: str, params: PageParams) -> Page[PetAppointmentsOut]:
        """Future appointments of every pet the caller owns, grouped by pet.

        Pagination applies inside each pet's group; pets without upcoming
        appointments are left out.
        """
        now = self._clock()
        pets = await self._directory.list_pets_by_owner(caller_id)
        groups: List[PetAppointmentsOut] = []
        for pet in pets:
            query = AppointmentQuery(equals={"pet_id": pet.id}, date_from=now)
            records, total = await self._fetch_page(query, params)
            if not records:
                continue
            appointments = await asyncio.gather(
                *(enrich_appointment(self._directory, r) for r in records)
            )
            groups.append(PetAppointmentsOut(pet=PetOut.from_pet(pet), appointments=list(appointments), count=total))
        return Page[PetAppointmentsOut].of(groups, params, len(groups))

    async def client_upcoming(self, caller_id: str, params: PageParams) -> Page[ClientAppointmentOut]:
        now = self._clock()
        query = AppointmentQuery(equals={"client_id": caller_id}, date_from=now)
        records, total = await self._fetch_page(query, params)
        content = await asyncio.gather(*(self._client_row(r, now) for r in records))
        return Page[ClientAppointmentOut].of(list(content), params, total)

    async def _client_row(self, record: AppointmentRecord, now: datetime) -> ClientAppointmentOut:
        vet, pet = await asyncio.gather(
            lookup_quietly(self._directory.get_user(record.veterinarian_id), f"veterinarian {record.veterinarian_id}"),
            lookup_quietly(self._directory.get_pet(record.pet_id), f"pet {record.pet_id}"),
        )
        can_cancel, can_reschedule = advisory_flags(record, now)
        return ClientAppointmentOut(
            id=record.id,
            appointment_date=record.appointment_date,
            reason=record.reason,
            status=record.status,
            veterinarian_name=vet.full_name if vet else None,
            pet=PetOut.from_pet(pet) if pet else None,
            can_cancel=can_cancel,
            can_reschedule=can_reschedule,
        )
