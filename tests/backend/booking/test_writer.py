from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from threading import Barrier

import pytest

from backend.booking.errors import (
    AppointmentNotFoundError,
    InvalidStatusTransitionError,
    NotAppointmentParticipantError,
    ProviderNotFoundError,
    SlotTakenError,
    SlotUnavailableError,
    StaleAppointmentError,
)
from backend.booking.memory_store import InMemoryAppointmentStore
from backend.booking.writer import allowed_transitions, book_appointment, transition_appointment
from backend.models.appointment import AppointmentStatus

CONSUMER_ID = 1
OTHER_CONSUMER_ID = 2
PROVIDER_ID = 10
SERVICE_ID = 100
MONDAY = date(2026, 1, 5)
SATURDAY = date(2026, 1, 10)


@pytest.fixture
def store() -> InMemoryAppointmentStore:
    return InMemoryAppointmentStore(
        {PROVIDER_ID: {'days': [1, 2, 3, 4, 5], 'startTime': '9:00 AM', 'endTime': '6:00 PM'}}
    )


def _book(store, consumer_id=CONSUMER_ID, day=MONDAY, label='9:00 AM'):
    return book_appointment(store, consumer_id, PROVIDER_ID, SERVICE_ID, day, label)


def _live_appointments(store, scheduled_at):
    return [
        record
        for record in store._appointments.values()
        if record.provider_id == PROVIDER_ID
        and record.scheduled_at == scheduled_at
        and record.status != AppointmentStatus.CANCELLED.value
    ]


def test_book_appointment_inserts_pending_appointment(store) -> None:
    appointment = _book(store, label='2:00 PM')

    assert appointment.status == 'pending'
    assert appointment.scheduled_at == datetime(2026, 1, 5, 14, 0)
    assert appointment.consumer_id == CONSUMER_ID
    assert appointment.provider_id == PROVIDER_ID
    assert appointment.service_id == SERVICE_ID


def test_book_appointment_rejects_taken_slot(store) -> None:
    _book(store)

    with pytest.raises(SlotTakenError) as exception_info:
        _book(store, consumer_id=OTHER_CONSUMER_ID)

    assert exception_info.value.provider_id == PROVIDER_ID
    assert exception_info.value.scheduled_at == datetime(2026, 1, 5, 9, 0)


def test_retrying_a_successful_booking_reports_slot_taken(store) -> None:
    _book(store)

    with pytest.raises(SlotTakenError):
        _book(store)

    assert len(_live_appointments(store, datetime(2026, 1, 5, 9, 0))) == 1


def test_book_appointment_rejects_day_outside_schedule(store) -> None:
    with pytest.raises(SlotUnavailableError):
        _book(store, day=SATURDAY)


def test_book_appointment_rejects_hour_outside_schedule(store) -> None:
    with pytest.raises(SlotUnavailableError):
        _book(store, label='6:00 PM')


def test_book_appointment_rejects_unknown_provider(store) -> None:
    with pytest.raises(ProviderNotFoundError):
        book_appointment(store, CONSUMER_ID, 999, SERVICE_ID, MONDAY, '9:00 AM')


def test_concurrent_bookings_for_same_slot_have_exactly_one_winner(store) -> None:
    attempts = 8
    barrier = Barrier(attempts)

    def attempt(consumer_id: int):
        barrier.wait()
        try:
            return _book(store, consumer_id=consumer_id)
        except SlotTakenError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=attempts) as executor:
        results = list(executor.map(attempt, range(1, attempts + 1)))

    winners = [result for result in results if not isinstance(result, SlotTakenError)]
    losers = [result for result in results if isinstance(result, SlotTakenError)]

    assert len(winners) == 1
    assert len(losers) == attempts - 1
    assert _live_appointments(store, datetime(2026, 1, 5, 9, 0)) == winners


def test_cancelled_slot_can_be_booked_again(store) -> None:
    first = _book(store)
    transition_appointment(store, first.id, CONSUMER_ID, 'cancelled')

    second = _book(store, consumer_id=OTHER_CONSUMER_ID)

    assert second.id != first.id
    assert second.status == 'pending'
    assert _live_appointments(store, second.scheduled_at) == [second]


def test_provider_confirms_then_completes(store) -> None:
    appointment = _book(store)

    confirmed = transition_appointment(store, appointment.id, PROVIDER_ID, 'confirmed')
    completed = transition_appointment(store, appointment.id, PROVIDER_ID, 'completed')

    assert confirmed.status == 'confirmed'
    assert completed.status == 'completed'


@pytest.mark.parametrize('actor_id', [CONSUMER_ID, PROVIDER_ID])
def test_either_party_can_cancel_pending_or_confirmed(store, actor_id: int) -> None:
    pending = _book(store, label='9:00 AM')
    confirmed = _book(store, label='10:00 AM')
    transition_appointment(store, confirmed.id, PROVIDER_ID, 'confirmed')

    assert transition_appointment(store, pending.id, actor_id, 'cancelled').status == 'cancelled'
    assert transition_appointment(store, confirmed.id, actor_id, 'cancelled').status == 'cancelled'


@pytest.mark.parametrize(
    ('setup', 'actor_id', 'target'),
    [
        ([], CONSUMER_ID, 'confirmed'),
        ([], PROVIDER_ID, 'completed'),
        ([], PROVIDER_ID, 'pending'),
        (['confirmed'], CONSUMER_ID, 'completed'),
        (['confirmed', 'completed'], PROVIDER_ID, 'cancelled'),
        (['cancelled'], PROVIDER_ID, 'confirmed'),
        (['cancelled'], CONSUMER_ID, 'pending'),
    ],
)
def test_disallowed_transitions_leave_status_intact(store, setup, actor_id, target) -> None:
    appointment = _book(store)
    for status in setup:
        transition_appointment(store, appointment.id, PROVIDER_ID, status)
    before = store.get_appointment(appointment.id).status

    with pytest.raises(InvalidStatusTransitionError):
        transition_appointment(store, appointment.id, actor_id, target)

    assert store.get_appointment(appointment.id).status == before


def test_outsider_cannot_change_appointment(store) -> None:
    appointment = _book(store)

    with pytest.raises(NotAppointmentParticipantError):
        transition_appointment(store, appointment.id, OTHER_CONSUMER_ID, 'cancelled')


def test_transition_on_missing_appointment(store) -> None:
    with pytest.raises(AppointmentNotFoundError):
        transition_appointment(store, 404, PROVIDER_ID, 'confirmed')


def test_update_status_is_compare_and_set(store) -> None:
    appointment = _book(store)
    store.update_status(appointment.id, 'pending', 'cancelled')

    with pytest.raises(StaleAppointmentError):
        store.update_status(appointment.id, 'pending', 'confirmed')

    assert store.get_appointment(appointment.id).status == 'cancelled'


def test_allowed_transitions_by_role() -> None:
    assert allowed_transitions('pending', 'provider') == {'confirmed', 'cancelled'}
    assert allowed_transitions('pending', 'consumer') == {'cancelled'}
    assert allowed_transitions('confirmed', 'provider') == {'completed', 'cancelled'}
    assert allowed_transitions('confirmed', 'consumer') == {'cancelled'}
    assert allowed_transitions('completed', 'provider') == set()
    assert allowed_transitions('cancelled', 'consumer') == set()
