"""Appointment creation and status transitions.

Creation is a single insert in status ``pending``. Whether the slot is still
free is decided by the store's uniqueness constraint, never by an earlier read.

Status transitions::

    pending   --(provider confirms)--> confirmed
    pending   --(either cancels)-----> cancelled
    confirmed --(provider completes)--> completed
    confirmed --(either cancels)-----> cancelled

``completed`` and ``cancelled`` are terminal.
"""

import logging
from datetime import date

from backend.booking.availability import WeeklyAvailability
from backend.booking.errors import (
    InvalidStatusTransitionError,
    NotAppointmentParticipantError,
    SlotTakenError,
)
from backend.booking.slots import slot_start
from backend.booking.store import AppointmentRecord, AppointmentStore
from backend.models.appointment import AppointmentStatus

logger = logging.getLogger(__name__)

CONSUMER = 'consumer'
PROVIDER = 'provider'
EITHER = frozenset({CONSUMER, PROVIDER})

STATUS_TRANSITIONS: dict[str, dict[str, frozenset[str]]] = {
    AppointmentStatus.PENDING.value: {
        AppointmentStatus.CONFIRMED.value: frozenset({PROVIDER}),
        AppointmentStatus.CANCELLED.value: EITHER,
    },
    AppointmentStatus.CONFIRMED.value: {
        AppointmentStatus.COMPLETED.value: frozenset({PROVIDER}),
        AppointmentStatus.CANCELLED.value: EITHER,
    },
    AppointmentStatus.COMPLETED.value: {},
    AppointmentStatus.CANCELLED.value: {},
}


def allowed_transitions(status: str, role: str) -> set[str]:
    return {
        target
        for target, roles in STATUS_TRANSITIONS.get(status, {}).items()
        if role in roles
    }


def book_appointment(
    store: AppointmentStore,
    consumer_id: int,
    provider_id: int,
    service_id: int,
    day: date,
    slot_label: str,
) -> AppointmentRecord:
    availability = WeeklyAvailability.from_document(store.get_availability(provider_id))
    availability.ensure_slot_bookable(day, slot_label)

    scheduled_at = slot_start(day, slot_label)
    try:
        appointment = store.insert_appointment(
            consumer_id=consumer_id,
            provider_id=provider_id,
            service_id=service_id,
            scheduled_at=scheduled_at,
        )
    except SlotTakenError:
        logger.info('Slot %s for provider %s already taken', scheduled_at.isoformat(), provider_id)
        raise

    logger.info(
        'Booked appointment %s: consumer %s with provider %s at %s',
        appointment.id,
        consumer_id,
        provider_id,
        scheduled_at.isoformat(),
    )
    return appointment


def participant_role(appointment: AppointmentRecord, actor_id: int) -> str:
    if actor_id == appointment.provider_id:
        return PROVIDER
    if actor_id == appointment.consumer_id:
        return CONSUMER
    raise NotAppointmentParticipantError('Only the consumer or provider of this appointment can change it.')


def transition_appointment(
    store: AppointmentStore,
    appointment_id: int,
    actor_id: int,
    new_status: str,
) -> AppointmentRecord:
    appointment = store.get_appointment(appointment_id)
    role = participant_role(appointment, actor_id)

    if new_status not in allowed_transitions(appointment.status, role):
        raise InvalidStatusTransitionError(appointment.status, new_status, role)

    updated = store.update_status(appointment_id, appointment.status, new_status)
    logger.info('Appointment %s moved from %s to %s by %s %s', appointment_id, appointment.status, new_status, role, actor_id)
    return updated
