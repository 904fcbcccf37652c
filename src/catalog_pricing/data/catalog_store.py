"""
Catalog Store - In-memory storage for catalog entities and bookings.

Provides the read interface the evaluators consume (get_item,
get_category, get_subcategory, get_addon_groups, find_overlapping_bookings,
count_bookings_for_slot) plus the writes used by the services.

Booking writes are serialized per item: callers hold item_lock() across
their check-then-write, and save_booking() re-checks the non-overlap
constraint under the same lock so no two active bookings on an item can
overlap.
"""
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator, Optional

from ..engine.availability import find_conflicts
from ..engine.clock import intervals_overlap, to_minutes
from ..engine.errors import NotFound, SchedulingConflict
from ..engine.models import AddonGroup, Booking, Category, Item, Subcategory


class CatalogStore:
    """Dict-backed catalog collections keyed by id."""

    def __init__(self):
        self.categories: dict[str, Category] = {}
        self.subcategories: dict[str, Subcategory] = {}
        self.items: dict[str, Item] = {}
        self.addon_groups: dict[str, AddonGroup] = {}
        self.bookings: dict[str, Booking] = {}

        self._lock = threading.RLock()
        self._item_locks: dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._counters: dict[str, int] = defaultdict(int)

    # -- Reads --

    def get_category(self, category_id: str) -> Category:
        try:
            return self.categories[category_id]
        except KeyError:
            raise NotFound("category", category_id)

    def get_subcategory(self, subcategory_id: str) -> Subcategory:
        try:
            return self.subcategories[subcategory_id]
        except KeyError:
            raise NotFound("subcategory", subcategory_id)

    def get_item(self, item_id: str) -> Item:
        try:
            return self.items[item_id]
        except KeyError:
            raise NotFound("item", item_id)

    def get_addon_group(self, group_id: str) -> AddonGroup:
        try:
            return self.addon_groups[group_id]
        except KeyError:
            raise NotFound("add-on group", group_id)

    def get_addon_groups(self, group_ids: Iterable[str]) -> list[AddonGroup]:
        """Groups that exist, in request order; missing ids are skipped."""
        return [self.addon_groups[g] for g in group_ids if g in self.addon_groups]

    def get_booking(self, booking_id: str) -> Booking:
        try:
            return self.bookings[booking_id]
        except KeyError:
            raise NotFound("booking", booking_id)

    def list_categories(self) -> list[Category]:
        return sorted(self.categories.values(), key=lambda c: (c.display_order, c.name))

    def list_subcategories(self, category_id: Optional[str] = None) -> list[Subcategory]:
        subs = [s for s in self.subcategories.values() if category_id is None or s.category_id == category_id]
        return sorted(subs, key=lambda s: (s.display_order, s.name))

    def list_items(self) -> list[Item]:
        return sorted(self.items.values(), key=lambda i: (i.display_order, i.name))

    def list_addon_groups(self) -> list[AddonGroup]:
        return sorted(self.addon_groups.values(), key=lambda g: (g.display_order, g.name))

    def list_bookings(self) -> list[Booking]:
        return list(self.bookings.values())

    def bookings_for_date(self, item_id: str, booking_date: date) -> list[Booking]:
        """Active bookings for an item on a date, ordered by start time."""
        bookings = [
            b for b in list(self.bookings.values())
            if b.item_id == item_id and b.booking_date == booking_date and b.is_active
        ]
        return sorted(bookings, key=lambda b: to_minutes(b.start_time))

    def find_overlapping_bookings(
        self,
        item_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> list[Booking]:
        return find_conflicts(list(self.bookings.values()), item_id, booking_date, start_time, end_time, exclude_id)

    def count_bookings_for_slot(self, item_id: str, booking_date: date, slot_start: str, slot_end: str) -> int:
        return sum(
            1 for b in self.bookings_for_date(item_id, booking_date)
            if intervals_overlap(b.start_time, b.end_time, slot_start, slot_end)
        )

    # -- Writes --

    def next_id(self, prefix: str) -> str:
        with self._lock:
            self._counters[prefix] += 1
            return f"{prefix}-{self._counters[prefix]:04d}"

    def save_category(self, category: Category) -> Category:
        self.categories[category.id] = category
        return category

    def save_subcategory(self, subcategory: Subcategory) -> Subcategory:
        self.subcategories[subcategory.id] = subcategory
        return subcategory

    def save_item(self, item: Item) -> Item:
        self.items[item.id] = item
        return item

    def save_addon_group(self, group: AddonGroup) -> AddonGroup:
        self.addon_groups[group.id] = group
        return group

    def delete_category(self, category_id: str):
        self.categories.pop(category_id, None)

    def delete_subcategory(self, subcategory_id: str):
        self.subcategories.pop(subcategory_id, None)

    def delete_item(self, item_id: str):
        self.items.pop(item_id, None)

    def delete_addon_group(self, group_id: str):
        self.addon_groups.pop(group_id, None)

    @contextmanager
    def item_lock(self, item_id: str) -> Iterator[None]:
        """Serialize booking check-then-write for one item."""
        with self._lock:
            lock = self._item_locks[item_id]
        with lock:
            yield

    def save_booking(self, booking: Booking) -> Booking:
        """
        Insert or replace a booking.

        Active bookings may not overlap another active booking on the same
        item and date; the loser of a race gets SchedulingConflict.
        """
        with self.item_lock(booking.item_id):
            if booking.is_active:
                conflicts = self.find_overlapping_bookings(
                    booking.item_id, booking.booking_date,
                    booking.start_time, booking.end_time,
                    exclude_id=booking.id,
                )
                if conflicts:
                    raise SchedulingConflict("Time slot conflicts with existing bookings", conflicts)
            self.bookings[booking.id] = booking
        return booking
