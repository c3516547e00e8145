"""Client-side booking flow as an explicit state machine.

State changes go through the pure reducer functions below. ``BookingSession``
drives them from asyncio tasks: every taken-slot fetch is keyed by the date it
was issued for, and a result for a date that is no longer selected is dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Awaitable, Callable, Iterable

from backend.booking.availability import WeeklyAvailability
from backend.booking.conflicts import find_taken_slots
from backend.booking.errors import BookingError, SlotTakenError
from backend.booking.store import AppointmentRecord, AppointmentStore
from backend.booking.writer import book_appointment

logger = logging.getLogger(__name__)

MISSING_SELECTION_MESSAGE = 'Please pick a date and time.'
SLOT_TAKEN_MESSAGE = 'Sorry, that time was just booked. Please choose another slot.'
GENERIC_FAILURE_MESSAGE = 'We could not book this appointment. Please try again.'


@dataclass(frozen=True)
class SlotView:
    label: str
    is_taken: bool


@dataclass(frozen=True)
class BookingState:
    availability: WeeklyAvailability = field(default_factory=WeeklyAvailability.always_available)
    selected_date: date | None = None
    selected_slot: str | None = None
    taken_slots: frozenset[str] = frozenset()
    error: str | None = None
    submitting: bool = False
    booked: AppointmentRecord | None = None

    @property
    def is_date_bookable(self) -> bool:
        return self.selected_date is not None and self.availability.is_date_bookable(self.selected_date)

    def slots(self) -> list[SlotView]:
        if self.selected_date is None:
            return []
        return [
            SlotView(label=label, is_taken=label in self.taken_slots)
            for label in self.availability.slots_for(self.selected_date)
        ]

    def can_submit(self) -> bool:
        return (
            self.selected_date is not None
            and self.selected_slot is not None
            and not self.submitting
            and self.booked is None
        )


def select_date(state: BookingState, day: date) -> BookingState:
    # Taken slots are never carried across dates; they are refetched for the new one.
    return replace(state, selected_date=day, selected_slot=None, taken_slots=frozenset(), error=None)


def select_slot(state: BookingState, label: str) -> BookingState:
    if state.selected_date is None or label in state.taken_slots:
        return state
    if label not in state.availability.slots_for(state.selected_date):
        return state
    return replace(state, selected_slot=label, error=None)


def taken_slots_loaded(state: BookingState, day: date, labels: Iterable[str]) -> BookingState:
    if day != state.selected_date:
        return state

    taken = frozenset(labels)
    selected_slot = None if state.selected_slot in taken else state.selected_slot
    return replace(state, taken_slots=taken, selected_slot=selected_slot)


def taken_slots_failed(state: BookingState, day: date) -> BookingState:
    if day != state.selected_date:
        return state
    return replace(state, taken_slots=frozenset())


def slot_taken(state: BookingState, day: date, label: str) -> BookingState:
    if state.booked is not None:
        return state
    if day != state.selected_date:
        return replace(state, submitting=False, error=SLOT_TAKEN_MESSAGE)
    return replace(
        state,
        taken_slots=state.taken_slots | {label},
        selected_slot=None if state.selected_slot == label else state.selected_slot,
        submitting=False,
        error=SLOT_TAKEN_MESSAGE,
    )


def booking_failed(state: BookingState, message: str) -> BookingState:
    if state.booked is not None:
        return state
    return replace(state, submitting=False, error=message)


def submission_started(state: BookingState) -> BookingState:
    return replace(state, submitting=True, error=None)


def booking_succeeded(state: BookingState, appointment: AppointmentRecord) -> BookingState:
    return replace(state, booked=appointment, submitting=False, error=None)


FetchTakenSlots = Callable[[date], Awaitable[Iterable[str]]]
SubmitBooking = Callable[[date, str], Awaitable[AppointmentRecord]]


class BookingSession:
    def __init__(
        self,
        fetch_taken_slots: FetchTakenSlots,
        submit_booking: SubmitBooking,
        availability: WeeklyAvailability | None = None,
    ):
        self._fetch_taken_slots = fetch_taken_slots
        self._submit_booking = submit_booking
        self._fetch_task: asyncio.Task | None = None
        self.state = BookingState(availability=availability or WeeklyAvailability.always_available())

    def select_date(self, day: date) -> asyncio.Task:
        """Select ``day`` and start fetching its taken slots. Must run inside an event loop."""
        self.state = select_date(self.state, day)

        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()

        self._fetch_task = asyncio.create_task(self._load_taken_slots(day))
        return self._fetch_task

    def select_slot(self, label: str) -> None:
        self.state = select_slot(self.state, label)

    async def _load_taken_slots(self, day: date) -> None:
        try:
            labels = await self._fetch_taken_slots(day)
        except Exception:
            logger.warning('Could not load taken slots for %s; showing every slot as free', day, exc_info=True)
            self.state = taken_slots_failed(self.state, day)
            return

        self.state = taken_slots_loaded(self.state, day, labels)

    async def wait_for_taken_slots(self) -> None:
        if self._fetch_task is None:
            return
        try:
            await self._fetch_task
        except asyncio.CancelledError:
            if self._fetch_task.cancelled():
                return
            raise

    async def submit(self) -> AppointmentRecord | None:
        # A submission already in flight or completed owns the outcome.
        if self.state.submitting or self.state.booked is not None:
            return None
        if not self.state.can_submit():
            self.state = booking_failed(self.state, MISSING_SELECTION_MESSAGE)
            return None

        day = self.state.selected_date
        label = self.state.selected_slot
        self.state = submission_started(self.state)
        try:
            appointment = await self._submit_booking(day, label)
        except SlotTakenError:
            self.state = slot_taken(self.state, day, label)
            return None
        except BookingError as exc:
            self.state = booking_failed(self.state, str(exc))
            return None
        except Exception:
            logger.exception('Booking submission failed for %s %s', day, label)
            self.state = booking_failed(self.state, GENERIC_FAILURE_MESSAGE)
            return None

        self.state = booking_succeeded(self.state, appointment)
        return appointment


async def open_booking_session(
    store: AppointmentStore,
    consumer_id: int,
    provider_id: int,
    service_id: int,
) -> BookingSession:
    """Build a session whose blocking store calls run in worker threads."""
    document = await asyncio.to_thread(store.get_availability, provider_id)

    async def fetch(day: date) -> set[str]:
        return await asyncio.to_thread(find_taken_slots, store, provider_id, day)

    async def submit(day: date, label: str) -> AppointmentRecord:
        return await asyncio.to_thread(
            book_appointment,
            store,
            consumer_id,
            provider_id,
            service_id,
            day,
            label,
        )

    return BookingSession(fetch, submit, WeeklyAvailability.from_document(document))
