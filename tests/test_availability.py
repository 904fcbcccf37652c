from datetime import date
from functools import partial

import pytest

from catalog_pricing.engine.availability import (
    available_slots,
    check_availability,
    find_conflicts,
    validate_interval,
    validate_slot,
)
from catalog_pricing.engine.clock import day_of_week, intervals_overlap
from catalog_pricing.engine.models import AvailabilitySlot, Booking, BookingStatus, ComplimentaryPricing, Item

from conftest import MONDAY, SUNDAY


def make_booking(booking_id, start, end, status=BookingStatus.CONFIRMED, booking_date=MONDAY, item_id="item-massage"):
    return Booking(
        id=booking_id,
        item_id=item_id,
        customer_name="Ada",
        customer_email="ada@example.com",
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        status=status,
    )


def test_day_of_week_starts_on_sunday():
    assert day_of_week(SUNDAY) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2026, 1, 17)) == 6


def test_interval_inside_slot(store):
    result = check_availability(store.get_item("item-massage"), MONDAY, "09:00", "10:00")

    assert result.available
    assert result.slot.start_time == "09:00"


def test_interval_outside_slot(store):
    item = store.get_item("item-massage")

    late = check_availability(item, MONDAY, "16:30", "17:30")
    sunday = check_availability(item, SUNDAY, "10:00", "11:00")

    assert not late.available
    assert late.reason == "Requested time slot is not within available hours"
    assert not sunday.available


def test_item_without_slots_is_always_available():
    item = Item(id="item-x", name="X", pricing=ComplimentaryPricing(), is_bookable=True)

    assert check_availability(item, SUNDAY, "03:00", "04:00").available


def test_overlap_is_half_open():
    assert intervals_overlap("09:00", "10:00", "09:30", "10:30")
    assert not intervals_overlap("09:00", "10:00", "10:00", "11:00")


def test_conflicts_ignore_cancelled_and_other_items():
    bookings = [
        make_booking("bk-1", "09:00", "10:00"),
        make_booking("bk-2", "09:30", "10:30", status=BookingStatus.CANCELLED),
        make_booking("bk-3", "09:00", "10:00", item_id="item-other"),
        make_booking("bk-4", "10:00", "11:00"),
    ]

    conflicts = find_conflicts(bookings, "item-massage", MONDAY, "09:30", "10:30")

    assert [b.id for b in conflicts] == ["bk-1", "bk-4"]


def test_conflicts_can_exclude_a_booking():
    bookings = [make_booking("bk-1", "09:00", "10:00")]

    assert find_conflicts(bookings, "item-massage", MONDAY, "09:00", "10:00", exclude_booking_id="bk-1") == []


def test_slot_occupancy(store):
    item = store.get_item("item-massage")
    item.availability_slots.append(AvailabilitySlot(day=1, start_time="18:00", end_time="20:00", max_bookings=2))
    store.save_booking(make_booking("bk-1", "18:00", "19:00"))
    store.save_booking(make_booking("bk-2", "18:30", "19:30", status=BookingStatus.CANCELLED))

    listing = available_slots(item, MONDAY, partial(store.count_bookings_for_slot, item.id, MONDAY))

    assert [s.slot.start_time for s in listing] == ["09:00", "18:00"]
    assert listing[0].current_bookings == 0 and listing[0].is_available
    assert listing[1].current_bookings == 1 and listing[1].is_available


@pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("11:00", "10:00"), ("9am", "10:00")])
def test_malformed_intervals(start, end):
    assert validate_interval(start, end)


def test_slot_validation():
    assert validate_slot(AvailabilitySlot(day=3, start_time="09:00", end_time="17:00")) == []
    assert len(validate_slot(AvailabilitySlot(day=7, start_time="22:00", end_time="02:00", max_bookings=0))) == 3
