"""
Availability Evaluator - Checks reservations against weekly slots.

Three checks run on every booking attempt:
- check_availability: the interval must sit inside a declared slot
- find_conflicts: no active booking may overlap the interval (hard gate)
- available_slots: per-slot occupancy against max_bookings (advisory)
"""
from datetime import date
from typing import Callable, Iterable, Optional

from .clock import day_of_week, intervals_overlap, is_valid_time, to_minutes
from .models import AvailabilityResult, AvailabilitySlot, Booking, Item, SlotAvailability


def slots_for_day(item: Item, booking_date: date) -> list[AvailabilitySlot]:
    day = day_of_week(booking_date)
    return [slot for slot in item.availability_slots if slot.day == day]


def is_within_slot(start_time: str, end_time: str, slot: AvailabilitySlot) -> bool:
    return (to_minutes(start_time) >= to_minutes(slot.start_time)
            and to_minutes(end_time) <= to_minutes(slot.end_time))


def check_availability(item: Item, booking_date: date, start_time: str, end_time: str) -> AvailabilityResult:
    """An item without slots is always available."""
    if not item.availability_slots:
        return AvailabilityResult(available=True)

    for slot in slots_for_day(item, booking_date):
        if is_within_slot(start_time, end_time, slot):
            return AvailabilityResult(available=True, slot=slot)

    return AvailabilityResult(
        available=False,
        reason="Requested time slot is not within available hours",
    )


def find_conflicts(
    bookings: Iterable[Booking],
    item_id: str,
    booking_date: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: Optional[str] = None,
) -> list[Booking]:
    """Active bookings on the same item and date overlapping [start, end)."""
    conflicts = []
    for booking in bookings:
        if booking.item_id != item_id or booking.booking_date != booking_date:
            continue
        if not booking.is_active:
            continue
        if exclude_booking_id and booking.id == exclude_booking_id:
            continue
        if intervals_overlap(start_time, end_time, booking.start_time, booking.end_time):
            conflicts.append(booking)

    conflicts.sort(key=lambda b: to_minutes(b.start_time))
    return conflicts


def available_slots(
    item: Item,
    booking_date: date,
    count_bookings: Callable[[str, str], int],
) -> list[SlotAvailability]:
    """
    Occupancy of each slot declared for the date's weekday.

    count_bookings(slot_start, slot_end) returns the number of active
    bookings on the item and date overlapping the slot.
    """
    listing = []
    for slot in sorted(slots_for_day(item, booking_date), key=lambda s: to_minutes(s.start_time)):
        count = count_bookings(slot.start_time, slot.end_time)
        listing.append(SlotAvailability(
            slot=slot,
            current_bookings=count,
            is_available=count < slot.max_bookings,
        ))
    return listing


def validate_interval(start_time: str, end_time: str) -> list[str]:
    errors = []
    if not is_valid_time(start_time) or not is_valid_time(end_time):
        errors.append("start_time and end_time must be in HH:MM format")
    elif to_minutes(end_time) <= to_minutes(start_time):
        errors.append("end_time must be after start_time")
    return errors


def validate_slot(slot: AvailabilitySlot) -> list[str]:
    """Slots may not wrap midnight."""
    errors = []
    if slot.day not in range(7):
        errors.append(f"Slot day must be between 0 (Sunday) and 6 (Saturday), got {slot.day}")
    errors.extend(f"Slot {slot.start_time}-{slot.end_time}: {e}" for e in validate_interval(slot.start_time, slot.end_time))
    if slot.max_bookings < 1:
        errors.append("Slot max_bookings must be at least 1")
    return errors
