"""One-hour slot labels and their conversions.

Labels are 12-hour clock strings with no minute granularity below the hour
("12:00 AM", "9:00 AM", "12:00 PM", "5:00 PM"). ``hour_to_label`` and
``parse_slot_label`` are exact inverses for every hour 0..23.
"""

import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from backend.booking.errors import InvalidSlotLabelError
from backend.core import config

HOURS_PER_DAY = 24

_SLOT_LABEL_PATTERN = re.compile(r'^(1[0-2]|[1-9]):00 ([AaPp][Mm])$')


def hour_to_label(hour: int) -> str:
    if not 0 <= hour < HOURS_PER_DAY:
        raise ValueError(f'Hour must be between 0 and 23, got {hour}.')

    suffix = 'AM' if hour < 12 else 'PM'
    display_hour = hour % 12 or 12
    return f'{display_hour}:00 {suffix}'


def parse_slot_label(label: str) -> int:
    """Return the 24-hour clock hour a slot label stands for."""
    match = _SLOT_LABEL_PATTERN.match(label.strip()) if isinstance(label, str) else None
    if match is None:
        raise InvalidSlotLabelError(f'Invalid slot label: {label!r}')

    hour = int(match.group(1)) % 12
    if match.group(2).upper() == 'PM':
        hour += 12
    return hour


def label_to_24h(label: str) -> str:
    return f'{parse_slot_label(label):02d}:00'


def slot_start(slot_date: date, label: str) -> datetime:
    return datetime.combine(slot_date, time(parse_slot_label(label), 0))


def local_now(timezone_name: str | None = None) -> datetime:
    """Current naive wall-clock time in the zone slots are booked in.

    Falls back to ``BOOKING_TIMEZONE`` and then to the server clock.
    """
    timezone_name = timezone_name or config.BOOKING_TIMEZONE
    if timezone_name is None:
        return datetime.now()
    return datetime.now(ZoneInfo(timezone_name)).replace(tzinfo=None)


class SlotRange:
    """Ordered one-hour slot labels for ``[start_hour, end_hour)``.

    Iterating twice yields the same labels; nothing is materialised up front.
    """

    def __init__(self, start_hour: int, end_hour: int):
        if not 0 <= start_hour < end_hour <= HOURS_PER_DAY:
            raise ValueError(f'Invalid hour range [{start_hour}, {end_hour}).')
        self.start_hour = start_hour
        self.end_hour = end_hour

    def hours(self) -> range:
        return range(self.start_hour, self.end_hour)

    def __iter__(self):
        return (hour_to_label(hour) for hour in self.hours())

    def __len__(self) -> int:
        return self.end_hour - self.start_hour

    def __contains__(self, label) -> bool:
        try:
            return parse_slot_label(label) in self.hours()
        except InvalidSlotLabelError:
            return False

    def __eq__(self, other) -> bool:
        if not isinstance(other, SlotRange):
            return NotImplemented
        return (self.start_hour, self.end_hour) == (other.start_hour, other.end_hour)

    def __hash__(self) -> int:
        return hash((self.start_hour, self.end_hour))

    def __repr__(self) -> str:
        return f'SlotRange({self.start_hour}, {self.end_hour})'
