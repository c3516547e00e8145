from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, get_db
from backend.booking.availability import WeeklyAvailability, parse_time_of_day
from backend.booking.conflicts import find_taken_slots
from backend.booking.errors import ProviderNotFoundError, StoreUnavailableError
from backend.booking.slots import label_to_24h, parse_slot_label, slot_start
from backend.booking.store import SqlAlchemyAppointmentStore
from backend.database import ensure_appointment_schema, ensure_provider_schema
from backend.models.provider import Provider
from backend.models.user import User

router = APIRouter(tags=['providers'])

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class AvailabilityRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days: list[int]
    start_time: str = Field(alias='startTime')
    end_time: str = Field(alias='endTime')

    @field_validator('days')
    @classmethod
    def validate_days(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError('Days must be between 0 (Sunday) and 6 (Saturday).')
        return sorted(set(value))

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time_of_day(cls, value: str) -> str:
        normalized = value.strip()
        if parse_time_of_day(normalized) is None:
            raise ValueError('Times must look like "9:00 AM".')
        return normalized

    @model_validator(mode='after')
    def validate_hour_range(self) -> 'AvailabilityRequest':
        if self.to_availability().declared_hour_range() is None:
            raise ValueError('Start time must be at least one full hour before end time.')
        return self

    def to_availability(self) -> WeeklyAvailability:
        return WeeklyAvailability(days=frozenset(self.days), start_time=self.start_time, end_time=self.end_time)


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider_id: int
    days: list[int]
    start_time: str | None = Field(default=None, serialization_alias='startTime')
    end_time: str | None = Field(default=None, serialization_alias='endTime')
    start_hour: int
    end_hour: int
    uses_default_hours: bool


class SlotResponse(BaseModel):
    label: str
    time: str
    start_time: datetime
    is_taken: bool


class DaySlotsResponse(BaseModel):
    provider_id: int
    date: date
    is_bookable: bool
    slots: list[SlotResponse]


def ensure_database_ready() -> None:
    try:
        ensure_provider_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def load_availability(store: SqlAlchemyAppointmentStore, provider_id: int) -> WeeklyAvailability:
    try:
        return WeeklyAvailability.from_document(store.get_availability(provider_id))
    except ProviderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Provider not found.') from exc
    except StoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def build_availability_response(provider_id: int, document: dict | None) -> AvailabilityResponse:
    availability = WeeklyAvailability.from_document(document)
    start_hour, end_hour = availability.hour_range()
    return AvailabilityResponse(
        provider_id=provider_id,
        days=sorted(availability.days),
        start_time=availability.start_time,
        end_time=availability.end_time,
        start_hour=start_hour,
        end_hour=end_hour,
        uses_default_hours=availability.declared_hour_range() is None,
    )


@router.get('/{provider_id}/slots', response_model=DaySlotsResponse)
def list_day_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    store = SqlAlchemyAppointmentStore(db)
    availability = load_availability(store, provider_id)

    if not availability.is_date_bookable(slot_date):
        return DaySlotsResponse(provider_id=provider_id, date=slot_date, is_bookable=False, slots=[])

    taken_slots = find_taken_slots(store, provider_id, slot_date)
    return DaySlotsResponse(
        provider_id=provider_id,
        date=slot_date,
        is_bookable=True,
        slots=[
            SlotResponse(
                label=label,
                time=label_to_24h(label),
                start_time=slot_start(slot_date, label),
                is_taken=label in taken_slots,
            )
            for label in availability.slots_for(slot_date)
        ],
    )


@router.get('/{provider_id}/taken-slots', response_model=list[str])
def list_taken_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    store = SqlAlchemyAppointmentStore(db)
    load_availability(store, provider_id)
    return sorted(find_taken_slots(store, provider_id, slot_date), key=parse_slot_label)


@router.get('/{provider_id}/availability', response_model=AvailabilityResponse, response_model_by_alias=True)
def get_availability(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        provider = db.get(Provider, provider_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if provider is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Provider not found.')

    return build_availability_response(provider.id, provider.availability)


@router.put('/{provider_id}/availability', response_model=AvailabilityResponse, response_model_by_alias=True)
def update_availability(
    provider_id: int,
    data: AvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.id != provider_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Providers can only change their own availability.',
        )

    ensure_database_ready()

    try:
        provider = db.get(Provider, provider_id)
        if provider is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Provider not found.')

        provider.availability = data.to_availability().to_document()
        db.commit()
        db.refresh(provider)

        return build_availability_response(provider.id, provider.availability)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
