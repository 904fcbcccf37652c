"""
Booking Service - Reservations against bookable catalog items.

Every booking attempt runs, under the item's lock:
1. Slot check - the interval must sit inside a declared weekly slot
2. Conflict check - no active booking on the item may overlap it
3. Quote - priced at booking_date + start_time, snapshotted on the booking
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from functools import partial
from typing import Optional

from ..config.logging_setup import get_logger
from ..data.catalog_store import CatalogStore
from ..engine.availability import available_slots, check_availability, validate_interval
from ..engine.clock import day_of_week, from_minutes, is_valid_time, to_minutes
from ..engine.errors import (
    AvailabilityViolation,
    InactiveEntity,
    InvalidConfiguration,
    InvalidOperation,
    SchedulingConflict,
)
from ..engine.models import AddonSelection, Booking, BookingStatus, Item, SelectedAddon
from ..engine.quote_engine import QuoteEngine


logger = get_logger(__name__)

UPDATABLE_FIELDS = {
    'booking_date', 'start_time', 'end_time', 'quantity', 'addons',
    'notes', 'customer_name', 'customer_email', 'customer_phone', 'status',
}
# Changes to any of these trigger a full re-quote
REPRICE_FIELDS = {'booking_date', 'start_time', 'end_time', 'quantity', 'addons'}
REQUIRED_FIELDS = {'booking_date', 'start_time', 'end_time', 'quantity', 'customer_name', 'customer_email'}


@dataclass
class BookingRequest:
    """Input for create_booking. end_time defaults to start + the item's booking duration."""
    item_id: str
    customer_name: str
    customer_email: str
    booking_date: date
    start_time: str
    end_time: Optional[str] = None
    quantity: int = 1
    addons: list[AddonSelection] = field(default_factory=list)
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


class BookingService:
    """Creates, reschedules and closes bookings."""

    def __init__(self, store: CatalogStore, quote_engine: Optional[QuoteEngine] = None):
        self.store = store
        self.quote_engine = quote_engine or QuoteEngine(store)

    def create_booking(self, request: BookingRequest) -> Booking:
        item = self.store.get_item(request.item_id)
        self._check_bookable(item)

        errors = []
        if not request.customer_name:
            errors.append("customer_name is required")
        if not request.customer_email:
            errors.append("customer_email is required")
        if request.quantity < 1:
            errors.append("quantity must be at least 1")
        if errors:
            raise InvalidConfiguration("Invalid booking request", errors)

        end_time = request.end_time or self._default_end(item, request.start_time)
        self._check_interval(request.start_time, end_time)

        booking = Booking(
            id=self.store.next_id('bk'),
            item_id=item.id,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            booking_date=request.booking_date,
            start_time=request.start_time,
            end_time=end_time,
            quantity=request.quantity,
            status=BookingStatus.CONFIRMED,
            customer_phone=request.customer_phone,
            notes=request.notes,
        )

        with self.store.item_lock(item.id):
            self._check_slot_and_conflicts(item, booking)
            self._price(item, booking, request.addons)
            self.store.save_booking(booking)

        logger.info(
            f"Created booking {booking.id} for {item.id} on {booking.booking_date} "
            f"{booking.start_time}-{booking.end_time} ({booking.price_breakdown.final_price})"
        )
        return booking

    def update_booking(self, booking_id: str, changes: dict) -> Booking:
        """Apply changes; time changes re-run the slot and conflict checks, pricing inputs re-quote."""
        current = self.store.get_booking(booking_id)
        if current.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            logger.warning(f"Refused update of {current.status.value} booking {booking_id}")
            raise InvalidOperation(f"Cannot update a {current.status.value} booking")

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidConfiguration("Unsupported update fields", [f"Cannot update '{k}'" for k in sorted(unknown)])

        missing = sorted(k for k in REQUIRED_FIELDS & set(changes) if changes[k] in (None, ''))
        if missing:
            raise InvalidConfiguration("Invalid booking update", [f"{k} is required" for k in missing])

        fields = dict(changes)
        addons = fields.pop('addons', None)
        status = fields.pop('status', None)
        if status is not None:
            status = BookingStatus(status)
            if status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
                raise InvalidOperation("Use cancel or complete to close a booking")

        if fields.get('quantity') is not None and fields['quantity'] < 1:
            raise InvalidConfiguration("Invalid booking update", ["quantity must be at least 1"])

        item = self.store.get_item(current.item_id)
        with self.store.item_lock(item.id):
            updated = replace(current, **fields)
            if status is not None:
                updated.status = status

            if {'booking_date', 'start_time', 'end_time'} & set(fields):
                self._check_bookable(item)
                self._check_interval(updated.start_time, updated.end_time)
                self._check_slot_and_conflicts(item, updated)

            if addons is not None or REPRICE_FIELDS & set(fields):
                if addons is None:
                    addons = [AddonSelection(group_id=s.group_id, addon_ids=list(s.addon_ids)) for s in current.selected_addons]
                self._price(item, updated, addons)

            self.store.save_booking(updated)

        logger.info(f"Updated booking {booking_id}: {', '.join(sorted(changes))}")
        return updated

    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        booking = self.store.get_booking(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidOperation("Booking is already cancelled")
        if booking.status == BookingStatus.COMPLETED:
            raise InvalidOperation("Cannot cancel a completed booking")

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now()
        booking.cancellation_reason = reason
        logger.info(f"Cancelled booking {booking_id}" + (f": {reason}" if reason else ""))
        return booking

    def complete_booking(self, booking_id: str) -> Booking:
        booking = self.store.get_booking(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidOperation("Cannot complete a cancelled booking")

        booking.status = BookingStatus.COMPLETED
        logger.info(f"Completed booking {booking_id}")
        return booking

    # -- Queries --

    def get_booking(self, booking_id: str) -> Booking:
        return self.store.get_booking(booking_id)

    def bookings_for_date(self, item_id: str, booking_date: date) -> list[Booking]:
        self.store.get_item(item_id)
        return self.store.bookings_for_date(item_id, booking_date)

    def available_slots(self, item_id: str, booking_date: date) -> dict:
        """Per-slot occupancy for the date; advisory only."""
        item = self.store.get_item(item_id)
        if not item.is_bookable:
            raise AvailabilityViolation(f"Item '{item.name}' is not bookable")

        return {
            'date': booking_date,
            'day_of_week': day_of_week(booking_date),
            'slots': available_slots(item, booking_date, partial(self.store.count_bookings_for_slot, item.id, booking_date)),
        }

    def check_conflicts(
        self,
        item_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> list[Booking]:
        self.store.get_item(item_id)
        self._check_interval(start_time, end_time)
        return self.store.find_overlapping_bookings(item_id, booking_date, start_time, end_time, exclude_booking_id)

    def customer_history(self, customer_email: str) -> list[Booking]:
        """All bookings for an email, newest first."""
        email = customer_email.strip().lower()
        bookings = [b for b in self.store.list_bookings() if b.customer_email.strip().lower() == email]
        return sorted(bookings, key=lambda b: (b.booking_date, to_minutes(b.start_time)), reverse=True)

    def upcoming_bookings(self, item_id: Optional[str] = None, days: int = 7, today: Optional[date] = None) -> list[Booking]:
        """Active bookings from today through today + days."""
        today = today or date.today()
        horizon = today + timedelta(days=days)
        bookings = [
            b for b in self.store.list_bookings()
            if b.is_active
            and b.status != BookingStatus.COMPLETED
            and today <= b.booking_date <= horizon
            and (item_id is None or b.item_id == item_id)
        ]
        return sorted(bookings, key=lambda b: (b.booking_date, to_minutes(b.start_time)))

    # -- Helpers --

    @staticmethod
    def _check_bookable(item: Item):
        if not item.is_bookable:
            logger.warning(f"Refused booking on non-bookable item {item.id}")
            raise AvailabilityViolation(f"Item '{item.name}' is not bookable")
        if not item.is_active:
            raise InactiveEntity(f"Item '{item.name}' is not available")

    @staticmethod
    def _check_interval(start_time: str, end_time: str):
        errors = validate_interval(start_time, end_time)
        if errors:
            raise AvailabilityViolation(errors[0])

    @staticmethod
    def _default_end(item: Item, start_time: str) -> str:
        if not is_valid_time(start_time):
            raise AvailabilityViolation("start_time must be in HH:MM format")
        end = to_minutes(start_time) + item.booking_duration_minutes
        if end >= 24 * 60:
            raise AvailabilityViolation("Booking may not run past midnight")
        return from_minutes(end)

    def _check_slot_and_conflicts(self, item: Item, booking: Booking):
        availability = check_availability(item, booking.booking_date, booking.start_time, booking.end_time)
        if not availability.available:
            logger.warning(f"Refused {item.id} {booking.booking_date} {booking.start_time}-{booking.end_time}: {availability.reason}")
            raise AvailabilityViolation(availability.reason)

        conflicts = self.store.find_overlapping_bookings(
            item.id, booking.booking_date, booking.start_time, booking.end_time,
            exclude_id=booking.id,
        )
        if conflicts:
            logger.warning(f"Refused {item.id} {booking.booking_date} {booking.start_time}-{booking.end_time}: {len(conflicts)} conflict(s)")
            raise SchedulingConflict("Time slot conflicts with existing bookings", conflicts)

    def _price(self, item: Item, booking: Booking, addons):
        moment = datetime.combine(booking.booking_date, datetime.min.time()) + timedelta(minutes=to_minutes(booking.start_time))
        quote = self.quote_engine.quote_item(item, booking.quantity, moment, addons)

        booking.selected_addons = [
            SelectedAddon(
                group_id=detail.group_id,
                addon_ids=[a.id for a in detail.selected_addons],
                price=detail.total_price,
            )
            for detail in quote.addons_details
        ]
        booking.price_breakdown = quote.to_price_breakdown()
