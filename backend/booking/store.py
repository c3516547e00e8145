"""Persistence collaborators for the booking core.

The booking functions only talk to an ``AppointmentStore``. The production
store relies on the partial unique index over ``(provider_id, scheduled_at)``
for non-cancelled rows; that index, not any read-before-write check, decides
which of two racing bookings wins.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.booking.errors import (
    AppointmentNotFoundError,
    AppointmentWriteError,
    ProviderNotFoundError,
    SlotTakenError,
    StaleAppointmentError,
    StoreUnavailableError,
)
from backend.database import SLOT_UNIQUE_INDEX_NAME
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.provider import Provider

logger = logging.getLogger(__name__)

# SQLite reports the indexed columns rather than the index name.
_SLOT_CONFLICT_SIGNATURES = (
    SLOT_UNIQUE_INDEX_NAME,
    'appointments.provider_id, appointments.scheduled_at',
)


class AppointmentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    consumer_id: int
    provider_id: int
    service_id: int
    status: str
    scheduled_at: datetime


class AppointmentStore(Protocol):
    def get_availability(self, provider_id: int) -> dict | None:
        ...

    def list_taken_times(self, provider_id: int, day: date) -> list[datetime]:
        ...

    def insert_appointment(
        self,
        consumer_id: int,
        provider_id: int,
        service_id: int,
        scheduled_at: datetime,
    ) -> AppointmentRecord:
        ...

    def get_appointment(self, appointment_id: int) -> AppointmentRecord:
        ...

    def update_status(self, appointment_id: int, expected_status: str, new_status: str) -> AppointmentRecord:
        ...


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0, 0))
    return start, start + timedelta(days=1)


def is_slot_conflict(exc: IntegrityError) -> bool:
    driver_error = getattr(exc, 'orig', None)
    diagnostics = getattr(driver_error, 'diag', None)
    constraint_name = getattr(diagnostics, 'constraint_name', None)
    if constraint_name:
        return constraint_name == SLOT_UNIQUE_INDEX_NAME

    message = str(driver_error if driver_error is not None else exc)
    return any(signature in message for signature in _SLOT_CONFLICT_SIGNATURES)


class SqlAlchemyAppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    def get_availability(self, provider_id: int) -> dict | None:
        try:
            provider = self.db.get(Provider, provider_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailableError('Could not load provider availability.') from exc

        if provider is None:
            raise ProviderNotFoundError(f'Provider {provider_id} not found.')
        return provider.availability

    def list_taken_times(self, provider_id: int, day: date) -> list[datetime]:
        day_start, day_end = day_bounds(day)
        try:
            rows = self.db.query(Appointment.scheduled_at).filter(
                Appointment.provider_id == provider_id,
                Appointment.status != AppointmentStatus.CANCELLED.value,
                Appointment.scheduled_at >= day_start,
                Appointment.scheduled_at < day_end,
            ).order_by(Appointment.scheduled_at.asc()).all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailableError('Could not load booked times.') from exc

        return [scheduled_at for (scheduled_at,) in rows]

    def insert_appointment(
        self,
        consumer_id: int,
        provider_id: int,
        service_id: int,
        scheduled_at: datetime,
    ) -> AppointmentRecord:
        appointment = Appointment(
            consumer_id=consumer_id,
            provider_id=provider_id,
            service_id=service_id,
            status=AppointmentStatus.PENDING.value,
            scheduled_at=scheduled_at,
        )

        try:
            self.db.add(appointment)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_slot_conflict(exc):
                raise SlotTakenError(provider_id, scheduled_at) from exc
            logger.warning('Appointment insert for provider %s rejected: %s', provider_id, exc.orig)
            raise AppointmentWriteError('The appointment could not be saved.') from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailableError('Could not save the appointment.') from exc

        self.db.refresh(appointment)
        return AppointmentRecord.model_validate(appointment)

    def get_appointment(self, appointment_id: int) -> AppointmentRecord:
        try:
            appointment = self.db.get(Appointment, appointment_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailableError('Could not load the appointment.') from exc

        if appointment is None:
            raise AppointmentNotFoundError(f'Appointment {appointment_id} not found.')
        return AppointmentRecord.model_validate(appointment)

    def update_status(self, appointment_id: int, expected_status: str, new_status: str) -> AppointmentRecord:
        try:
            updated_rows = self.db.query(Appointment).filter(
                Appointment.id == appointment_id,
                Appointment.status == expected_status,
            ).update(
                {Appointment.status: new_status, Appointment.updated_at: datetime.now()},
                synchronize_session=False,
            )
            if updated_rows != 1:
                self.db.rollback()
                raise StaleAppointmentError('This appointment was changed by someone else. Refresh and try again.')
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailableError('Could not update the appointment.') from exc

        self.db.expire_all()
        return self.get_appointment(appointment_id)
