"""
Tests de la lógica pura de agenda (sin base de datos)
"""
from datetime import date, datetime, time, timedelta

import pytest

from petcare.scheduling import (
    ALLOWED,
    BusinessHours,
    can_cancel,
    conflicting,
    iter_slots,
    overlaps,
)
from petcare.schemas.booking import Booking, BookingStatus

DAY = date(2030, 3, 4)


def _b(hour, minute=0, duration=60, status="confirmed"):
    return Booking(
        id="b", customer_id="c", service_id="s", pet_id="p",
        start_time=datetime(2030, 3, 4, hour, minute),
        duration=duration, total_price=10, status=status,
    )


def test_overlap_is_half_open():
    t = lambda h, m=0: datetime(2030, 3, 4, h, m)
    assert overlaps(t(10), t(11), t(10, 30), t(11, 30))
    assert not overlaps(t(10), t(11), t(11), t(12))
    assert not overlaps(t(11), t(12), t(10), t(11))


def test_containment_detected_both_ways():
    existing = [_b(10, duration=60)]
    # el candidato contiene a la existente
    assert conflicting(existing, datetime(2030, 3, 4, 9, 30), 120)
    # el candidato está dentro de la existente
    assert conflicting(existing, datetime(2030, 3, 4, 10, 15), 15)


def test_touching_boundaries_do_not_conflict():
    existing = [_b(10, duration=60)]
    assert not conflicting(existing, datetime(2030, 3, 4, 11), 60)
    assert not conflicting(existing, datetime(2030, 3, 4, 9), 60)


@pytest.mark.parametrize("status", ["completed", "cancelled", "no-show"])
def test_non_occupying_statuses_never_conflict(status):
    assert not conflicting([_b(10, status=status)], datetime(2030, 3, 4, 10), 60)


def test_conflicting_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        conflicting([], datetime(2030, 3, 4, 10), 0)


def test_slots_cover_business_day_without_bookings():
    slots = list(iter_slots(BusinessHours(), DAY, 60))
    assert slots[0] == (datetime(2030, 3, 4, 9), datetime(2030, 3, 4, 10))
    assert slots[-1] == (datetime(2030, 3, 4, 17), datetime(2030, 3, 4, 18))
    assert len(slots) == 17
    assert all(end <= datetime(2030, 3, 4, 18) for _, end in slots)


def test_slot_step_is_independent_of_duration():
    slots = list(iter_slots(BusinessHours(), DAY, 45))
    starts = [s for s, _ in slots]
    assert starts[1] - starts[0] == timedelta(minutes=30)
    # 17:00 + 45 min pasaría del cierre
    assert starts[-1] == datetime(2030, 3, 4, 17)
    assert slots[-1][1] == datetime(2030, 3, 4, 17, 45)


def test_duration_longer_than_window_yields_nothing():
    assert list(iter_slots(BusinessHours(), DAY, 10 * 60)) == []


def test_slots_skip_occupied_ranges():
    starts = [s.time() for s, _ in iter_slots(BusinessHours(), DAY, 60, [_b(10)])]
    assert time(9, 0) in starts
    assert time(9, 30) not in starts
    assert time(10, 0) not in starts
    assert time(10, 30) not in starts
    assert time(11, 0) in starts


def test_business_window_uses_local_timezone():
    opens, closes = BusinessHours(tz="Europe/Madrid").window(date(2030, 1, 15))
    # CET = UTC+1 en invierno
    assert opens == datetime(2030, 1, 15, 8, 0)
    assert closes == datetime(2030, 1, 15, 17, 0)


def test_can_cancel_two_hour_boundary():
    now = datetime(2030, 3, 4, 8, 0)
    starting_in = lambda delta: _b(10).model_copy(update={"start_time": now + delta})
    assert not can_cancel(starting_in(timedelta(hours=2, minutes=-1)), now)
    assert not can_cancel(starting_in(timedelta(hours=2)), now)
    assert can_cancel(starting_in(timedelta(hours=2, minutes=1)), now)


@pytest.mark.parametrize("status,expected", [
    ("pending", True),
    ("confirmed", True),
    ("in-progress", True),
    ("no-show", True),
    ("completed", False),
    ("cancelled", False),
])
def test_can_cancel_by_status(status, expected):
    now = datetime(2030, 3, 1, 8, 0)
    assert can_cancel(_b(10, status=status), now) is expected


def test_transitions_only_move_forward():
    assert BookingStatus.confirmed in ALLOWED[BookingStatus.pending]
    assert BookingStatus.pending not in ALLOWED[BookingStatus.confirmed]
    for terminal in (BookingStatus.completed, BookingStatus.cancelled, BookingStatus.no_show):
        assert ALLOWED[terminal] == set()
