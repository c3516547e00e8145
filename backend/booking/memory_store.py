"""In-memory ``AppointmentStore`` with the same uniqueness contract as the database."""

from datetime import date, datetime
from itertools import count
from threading import Lock

from backend.booking.errors import (
    AppointmentNotFoundError,
    ProviderNotFoundError,
    SlotTakenError,
    StaleAppointmentError,
)
from backend.booking.store import AppointmentRecord, day_bounds
from backend.models.appointment import AppointmentStatus


class InMemoryAppointmentStore:
    def __init__(self, availability: dict[int, dict | None] | None = None):
        self._availability = dict(availability or {})
        self._appointments: dict[int, AppointmentRecord] = {}
        self._ids = count(1)
        self._lock = Lock()

    def add_provider(self, provider_id: int, availability: dict | None = None) -> None:
        self._availability[provider_id] = availability

    def get_availability(self, provider_id: int) -> dict | None:
        if provider_id not in self._availability:
            raise ProviderNotFoundError(f'Provider {provider_id} not found.')
        return self._availability[provider_id]

    def list_taken_times(self, provider_id: int, day: date) -> list[datetime]:
        day_start, day_end = day_bounds(day)
        with self._lock:
            return sorted(
                record.scheduled_at
                for record in self._appointments.values()
                if record.provider_id == provider_id
                and record.status != AppointmentStatus.CANCELLED.value
                and day_start <= record.scheduled_at < day_end
            )

    def insert_appointment(
        self,
        consumer_id: int,
        provider_id: int,
        service_id: int,
        scheduled_at: datetime,
    ) -> AppointmentRecord:
        with self._lock:
            for record in self._appointments.values():
                if (
                    record.provider_id == provider_id
                    and record.scheduled_at == scheduled_at
                    and record.status != AppointmentStatus.CANCELLED.value
                ):
                    raise SlotTakenError(provider_id, scheduled_at)

            record = AppointmentRecord(
                id=next(self._ids),
                consumer_id=consumer_id,
                provider_id=provider_id,
                service_id=service_id,
                status=AppointmentStatus.PENDING.value,
                scheduled_at=scheduled_at,
            )
            self._appointments[record.id] = record
            return record

    def get_appointment(self, appointment_id: int) -> AppointmentRecord:
        with self._lock:
            if appointment_id not in self._appointments:
                raise AppointmentNotFoundError(f'Appointment {appointment_id} not found.')
            return self._appointments[appointment_id]

    def update_status(self, appointment_id: int, expected_status: str, new_status: str) -> AppointmentRecord:
        with self._lock:
            if appointment_id not in self._appointments:
                raise AppointmentNotFoundError(f'Appointment {appointment_id} not found.')

            record = self._appointments[appointment_id]
            if record.status != expected_status:
                raise StaleAppointmentError('This appointment was changed by someone else. Refresh and try again.')

            updated = record.model_copy(update={'status': new_status})
            self._appointments[appointment_id] = updated
            return updated
