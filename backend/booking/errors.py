"""Exceptions raised by the booking core."""


class BookingError(Exception):
    """Base class for booking failures."""


class InvalidSlotLabelError(BookingError, ValueError):
    """Raised when a slot label is not of the form ``H:00 AM`` / ``H:00 PM``."""


class SlotUnavailableError(BookingError):
    """Raised when a slot lies outside the provider's weekly availability."""


class SlotTakenError(BookingError):
    """Raised when a non-cancelled appointment already holds the provider/timestamp pair."""

    def __init__(self, provider_id: int, scheduled_at, message: str | None = None):
        self.provider_id = provider_id
        self.scheduled_at = scheduled_at
        super().__init__(message or 'This time was just booked. Please choose another slot.')


class ProviderNotFoundError(BookingError, LookupError):
    pass


class AppointmentNotFoundError(BookingError, LookupError):
    pass


class NotAppointmentParticipantError(BookingError):
    """Raised when someone other than the consumer or provider acts on an appointment."""


class InvalidStatusTransitionError(BookingError):
    def __init__(self, current: str, requested: str, role: str):
        self.current = current
        self.requested = requested
        self.role = role
        super().__init__(f'A {role} cannot move an appointment from {current} to {requested}.')


class StaleAppointmentError(BookingError):
    """Raised when the appointment status changed between read and write."""


class AppointmentWriteError(BookingError):
    """Raised when the store rejects an insert for a reason other than a slot conflict."""


class StoreUnavailableError(BookingError):
    """Raised when the backing store cannot be reached or fails a query."""
