"""Weekly availability schedules.

A provider declares the weekdays they take bookings on (Sunday=0 .. Saturday=6)
and a daily start/end time such as ``"9:00 AM"``. A missing document means the
provider is bookable every day during the default hours, and a document whose
times cannot be used falls back to those same default hours rather than
yielding no slots.
"""

import logging
import re
from datetime import date, time

from pydantic import BaseModel, ConfigDict

from backend.booking.errors import SlotUnavailableError
from backend.booking.slots import SlotRange, hour_to_label, parse_slot_label
from backend.core import config

logger = logging.getLogger(__name__)

ALL_WEEKDAYS = frozenset(range(7))

_TIME_OF_DAY_PATTERN = re.compile(r'^(\d{1,2})(?::(\d{2}))?\s*([AaPp]\.?[Mm]\.?)?$')


def parse_time_of_day(value) -> time | None:
    """Parse "9:00 AM", "9 am", "9:30pm" or "17:00"; ``None`` when unusable."""
    if not isinstance(value, str):
        return None

    match = _TIME_OF_DAY_PATTERN.match(value.strip())
    if match is None:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = match.group(3)

    if minute > 59:
        return None

    if meridiem:
        if not 1 <= hour <= 12:
            return None
        hour %= 12
        if meridiem[0].lower() == 'p':
            hour += 12
    elif hour > 23:
        return None

    return time(hour, minute)


def iso_weekday_to_sunday_first(day: date) -> int:
    """Python's Monday=0 weekday converted to Sunday=0 numbering."""
    return (day.weekday() + 1) % 7


def default_hour_range() -> tuple[int, int]:
    return config.DEFAULT_OPEN_HOUR, config.DEFAULT_CLOSE_HOUR


def _coerce_days(raw_days) -> frozenset[int]:
    if raw_days is None:
        return ALL_WEEKDAYS
    if not isinstance(raw_days, (list, tuple, set, frozenset)):
        return ALL_WEEKDAYS

    days = set()
    for raw_day in raw_days:
        if isinstance(raw_day, bool):
            continue
        try:
            weekday = int(raw_day)
        except (TypeError, ValueError):
            continue
        if weekday in ALL_WEEKDAYS:
            days.add(weekday)
    return frozenset(days)


class WeeklyAvailability(BaseModel):
    model_config = ConfigDict(frozen=True)

    days: frozenset[int] = ALL_WEEKDAYS
    start_time: str | None = None
    end_time: str | None = None

    @classmethod
    def always_available(cls) -> 'WeeklyAvailability':
        return cls()

    @classmethod
    def from_document(cls, document) -> 'WeeklyAvailability':
        if not isinstance(document, dict):
            if document is not None:
                logger.warning('Ignoring malformed availability document of type %s', type(document).__name__)
            return cls.always_available()

        start_time = document.get('startTime')
        end_time = document.get('endTime')
        return cls(
            days=_coerce_days(document.get('days')),
            start_time=start_time if isinstance(start_time, str) else None,
            end_time=end_time if isinstance(end_time, str) else None,
        )

    def to_document(self) -> dict:
        return {
            'days': sorted(self.days),
            'startTime': self.start_time,
            'endTime': self.end_time,
        }

    def is_day_bookable(self, weekday: int) -> bool:
        return weekday in self.days

    def is_date_bookable(self, day: date) -> bool:
        return self.is_day_bookable(iso_weekday_to_sunday_first(day))

    def declared_hour_range(self) -> tuple[int, int] | None:
        """The provider's own ``[start, end)`` hours, or ``None`` when they are unusable."""
        start = parse_time_of_day(self.start_time)
        end = parse_time_of_day(self.end_time)
        if start is None or end is None:
            return None

        # Partial hours are trimmed so every slot lies inside the declared window.
        start_hour = start.hour + (1 if start.minute else 0)
        end_hour = 24 if end == time(0, 0) else end.hour

        if start_hour >= end_hour:
            return None
        return start_hour, end_hour

    def hour_range(self) -> tuple[int, int]:
        return self.declared_hour_range() or default_hour_range()

    def slot_range(self) -> SlotRange:
        return SlotRange(*self.hour_range())

    def slots_for(self, day: date):
        if not self.is_date_bookable(day):
            return ()
        return self.slot_range()

    def ensure_slot_bookable(self, day: date, label: str) -> None:
        if not self.is_date_bookable(day):
            raise SlotUnavailableError(f'This provider is not available on {day:%A}s.')

        start_hour, end_hour = self.hour_range()
        if not start_hour <= parse_slot_label(label) < end_hour:
            raise SlotUnavailableError(
                f'{label} is outside this provider\'s hours '
                f'({hour_to_label(start_hour)} to {hour_to_label(end_hour % 24)}).'
            )
