from datetime import date, datetime

from backend.booking.conflicts import find_taken_slots
from backend.booking.errors import StoreUnavailableError
from backend.booking.memory_store import InMemoryAppointmentStore

MONDAY = date(2026, 1, 5)


def _store_with_bookings(*scheduled_times: datetime) -> InMemoryAppointmentStore:
    store = InMemoryAppointmentStore({10: None, 11: None})
    for scheduled_at in scheduled_times:
        store.insert_appointment(consumer_id=1, provider_id=10, service_id=5, scheduled_at=scheduled_at)
    return store


def test_find_taken_slots_returns_labels_for_selected_day_only() -> None:
    store = _store_with_bookings(
        datetime(2026, 1, 4, 23, 0),
        datetime(2026, 1, 5, 0, 0),
        datetime(2026, 1, 5, 9, 0),
        datetime(2026, 1, 5, 14, 0),
        datetime(2026, 1, 6, 0, 0),
    )

    assert find_taken_slots(store, 10, MONDAY) == {'12:00 AM', '9:00 AM', '2:00 PM'}


def test_find_taken_slots_ignores_cancelled_appointments() -> None:
    store = _store_with_bookings(datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 10, 0))
    store.update_status(1, 'pending', 'cancelled')

    assert find_taken_slots(store, 10, MONDAY) == {'10:00 AM'}


def test_find_taken_slots_counts_confirmed_and_completed_appointments() -> None:
    store = _store_with_bookings(datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 10, 0))
    store.update_status(1, 'pending', 'confirmed')
    store.update_status(2, 'pending', 'confirmed')
    store.update_status(2, 'confirmed', 'completed')

    assert find_taken_slots(store, 10, MONDAY) == {'9:00 AM', '10:00 AM'}


def test_find_taken_slots_is_scoped_to_provider() -> None:
    store = _store_with_bookings(datetime(2026, 1, 5, 9, 0))

    assert find_taken_slots(store, 11, MONDAY) == set()


def test_find_taken_slots_assumes_nothing_taken_when_store_fails() -> None:
    class FailingStore(InMemoryAppointmentStore):
        def list_taken_times(self, provider_id, day):
            raise StoreUnavailableError('connection refused')

    assert find_taken_slots(FailingStore({10: None}), 10, MONDAY) == set()
