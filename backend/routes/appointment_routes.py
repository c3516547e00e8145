from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, computed_field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, get_db
from backend.booking.errors import (
    AppointmentNotFoundError,
    AppointmentWriteError,
    InvalidSlotLabelError,
    InvalidStatusTransitionError,
    NotAppointmentParticipantError,
    ProviderNotFoundError,
    SlotTakenError,
    SlotUnavailableError,
    StaleAppointmentError,
    StoreUnavailableError,
)
from backend.booking.slots import hour_to_label, local_now, parse_slot_label, slot_start
from backend.booking.store import SqlAlchemyAppointmentStore
from backend.booking.writer import book_appointment, transition_appointment
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.service import Service
from backend.models.user import User
from backend.routes.provider_routes import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    service_id: int
    date: date
    slot: str

    @field_validator('slot')
    @classmethod
    def validate_slot(cls, value: str) -> str:
        try:
            return hour_to_label(parse_slot_label(value))
        except InvalidSlotLabelError as exc:
            raise ValueError('Slot must be a whole hour such as "9:00 AM".') from exc


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    consumer_id: int
    provider_id: int
    service_id: int
    status: str
    scheduled_at: datetime

    @computed_field
    @property
    def scheduled_date(self) -> date:
        return self.scheduled_at.date()

    @computed_field
    @property
    def slot(self) -> str:
        return hour_to_label(self.scheduled_at.hour)


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.id == data.provider_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Providers cannot book their own services.',
        )

    # Slots are naive provider wall-clock times, so compare against the booking zone.
    if slot_start(data.date, data.slot) <= local_now():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointments must be scheduled in the future.',
        )

    ensure_database_ready()

    try:
        service = db.get(Service, data.service_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if service is None or service.provider_id != data.provider_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')

    store = SqlAlchemyAppointmentStore(db)
    try:
        appointment = book_appointment(
            store,
            consumer_id=current_user.id,
            provider_id=data.provider_id,
            service_id=data.service_id,
            day=data.date,
            slot_label=data.slot,
        )
    except SlotTakenError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SlotUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Provider not found.') from exc
    except AppointmentWriteError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise database_unavailable() from exc

    return AppointmentResponse.model_validate(appointment, from_attributes=True)


@router.get('', response_model=list[AppointmentResponse])
def list_my_appointments(
    as_role: str = Query(default='consumer', pattern='^(consumer|provider)$'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    owner_column = Appointment.provider_id if as_role == 'provider' else Appointment.consumer_id

    try:
        appointments = db.query(Appointment).filter(
            owner_column == current_user.id,
        ).order_by(Appointment.scheduled_at.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [AppointmentResponse.model_validate(appointment) for appointment in appointments]


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    store = SqlAlchemyAppointmentStore(db)
    try:
        appointment = transition_appointment(
            store,
            appointment_id=appointment_id,
            actor_id=current_user.id,
            new_status=data.status.value,
        )
    except AppointmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.') from exc
    except NotAppointmentParticipantError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except (InvalidStatusTransitionError, StaleAppointmentError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise database_unavailable() from exc

    return AppointmentResponse.model_validate(appointment, from_attributes=True)
