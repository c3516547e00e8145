import logging
from datetime import date

from backend.booking.errors import StoreUnavailableError
from backend.booking.slots import hour_to_label
from backend.booking.store import AppointmentStore

logger = logging.getLogger(__name__)


def find_taken_slots(store: AppointmentStore, provider_id: int, day: date) -> set[str]:
    """Slot labels already held by non-cancelled appointments on ``day``.

    Advisory only: the result can go stale as soon as it is returned, and a
    failed read is reported as "nothing taken" so booking is never blocked by it.
    """
    try:
        taken_times = store.list_taken_times(provider_id, day)
    except StoreUnavailableError:
        logger.warning('Taken-slot lookup failed for provider %s on %s; assuming none taken', provider_id, day, exc_info=True)
        return set()

    return {hour_to_label(scheduled_at.hour) for scheduled_at in taken_times}
