from datetime import date, datetime, timedelta, timezone

import pytest

from backend.booking.errors import InvalidSlotLabelError
from backend.booking.slots import SlotRange, hour_to_label, label_to_24h, local_now, parse_slot_label, slot_start
from backend.core import config


@pytest.mark.parametrize(
    ('hour', 'label'),
    [
        (0, '12:00 AM'),
        (1, '1:00 AM'),
        (9, '9:00 AM'),
        (11, '11:00 AM'),
        (12, '12:00 PM'),
        (13, '1:00 PM'),
        (23, '11:00 PM'),
    ],
)
def test_hour_to_label_uses_twelve_hour_clock(hour: int, label: str) -> None:
    assert hour_to_label(hour) == label


@pytest.mark.parametrize('hour', [-1, 24])
def test_hour_to_label_rejects_hours_outside_day(hour: int) -> None:
    with pytest.raises(ValueError):
        hour_to_label(hour)


def test_label_conversions_are_exact_inverses_for_every_hour() -> None:
    for hour in range(24):
        label = hour_to_label(hour)
        assert parse_slot_label(label) == hour
        assert label_to_24h(label) == f'{hour:02d}:00'


def test_parse_slot_label_tolerates_whitespace_and_case() -> None:
    assert parse_slot_label(' 3:00 pm ') == 15


@pytest.mark.parametrize('label', ['', '13:00 PM', '9:30 AM', '09:00 AM', '9:00', 'noon', None])
def test_parse_slot_label_rejects_non_canonical_labels(label) -> None:
    with pytest.raises(InvalidSlotLabelError):
        parse_slot_label(label)


def test_slot_start_combines_date_and_label() -> None:
    assert slot_start(date(2026, 1, 5), '2:00 PM') == datetime(2026, 1, 5, 14, 0)


def test_slot_range_yields_one_label_per_hour() -> None:
    slots = SlotRange(9, 18)

    assert list(slots) == [
        '9:00 AM', '10:00 AM', '11:00 AM', '12:00 PM', '1:00 PM',
        '2:00 PM', '3:00 PM', '4:00 PM', '5:00 PM',
    ]
    assert len(slots) == 9


def test_slot_range_is_restartable() -> None:
    slots = SlotRange(22, 24)

    assert list(slots) == ['10:00 PM', '11:00 PM']
    assert list(slots) == ['10:00 PM', '11:00 PM']


def test_slot_range_count_and_order_for_all_valid_ranges() -> None:
    for start in range(24):
        for end in range(start + 1, 25):
            labels = list(SlotRange(start, end))
            hours = [parse_slot_label(label) for label in labels]

            assert len(labels) == end - start
            assert hours == list(range(start, end))


def test_slot_range_membership() -> None:
    slots = SlotRange(8, 20)

    assert '8:00 AM' in slots
    assert '7:00 PM' in slots
    assert '8:00 PM' not in slots
    assert 'not a slot' not in slots


@pytest.mark.parametrize(('start', 'end'), [(9, 9), (18, 9), (-1, 5), (0, 25)])
def test_slot_range_rejects_invalid_ranges(start: int, end: int) -> None:
    with pytest.raises(ValueError):
        SlotRange(start, end)


def test_local_now_reads_the_configured_booking_timezone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'BOOKING_TIMEZONE', 'Etc/GMT-14')

    before = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=14)
    now = local_now()
    after = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=14)

    assert now.tzinfo is None
    assert before <= now <= after


def test_local_now_explicit_zone_overrides_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'BOOKING_TIMEZONE', 'Etc/GMT-14')

    before = datetime.now(timezone.utc).replace(tzinfo=None)
    now = local_now('UTC')
    after = datetime.now(timezone.utc).replace(tzinfo=None)

    assert before <= now <= after
