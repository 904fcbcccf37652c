import os
import sys
from datetime import date
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from catalog_pricing.data.catalog_store import CatalogStore
from catalog_pricing.engine.models import (
    Addon,
    AddonGroup,
    AddonRequirement,
    AvailabilitySlot,
    Category,
    Item,
    SelectionType,
    StaticPricing,
    Subcategory,
    TaxSetting,
)
from catalog_pricing.engine.quote_engine import QuoteEngine
from catalog_pricing.services.booking_service import BookingService
from catalog_pricing.services.catalog_service import CatalogService

# 2026-01-12 is a Monday (day 1); 2026-01-11 a Sunday (day 0)
MONDAY = date(2026, 1, 12)
SUNDAY = date(2026, 1, 11)


@pytest.fixture
def store():
    """
    Spa catalog:
      cat-spa (tax 5%) > sub-massages (inherits) > item-massage (static 100, bookable Mon-Fri 09:00-17:00)
      grp-oil: mandatory single (Lavender 20, Unscented 0)
      grp-extras: optional multiple, max 2 (Hot Stones 15, Towel 2, Retired 99 inactive)
    """
    store = CatalogStore()
    service = CatalogService(store)

    service.create_category(Category(id="cat-spa", name="Spa", tax=TaxSetting.applicable(5)))
    service.create_subcategory(Subcategory(id="sub-massages", category_id="cat-spa", name="Massages"))

    service.create_addon_group(AddonGroup(
        id="grp-oil",
        name="Massage Oil",
        addons=[
            Addon(id="oil-lavender", name="Lavender", price=Decimal("20")),
            Addon(id="oil-unscented", name="Unscented", price=Decimal("0")),
        ],
        selection_type=SelectionType.SINGLE,
        requirement=AddonRequirement.MANDATORY,
    ))
    service.create_addon_group(AddonGroup(
        id="grp-extras",
        name="Extras",
        addons=[
            Addon(id="extra-stones", name="Hot Stones", price=Decimal("15")),
            Addon(id="extra-towel", name="Towel", price=Decimal("2")),
            Addon(id="extra-retired", name="Retired", price=Decimal("99"), is_active=False),
        ],
        selection_type=SelectionType.MULTIPLE,
        max_selections=2,
    ))

    service.create_item(Item(
        id="item-massage",
        name="Massage",
        pricing=StaticPricing(base_price=Decimal("100")),
        subcategory_id="sub-massages",
        addon_group_ids=["grp-oil", "grp-extras"],
        is_bookable=True,
        availability_slots=[AvailabilitySlot(day=d, start_time="09:00", end_time="17:00") for d in range(1, 6)],
    ))
    return store


@pytest.fixture
def catalog_service(store):
    return CatalogService(store)


@pytest.fixture
def quote_engine(store):
    return QuoteEngine(store)


@pytest.fixture
def booking_service(store, quote_engine):
    return BookingService(store, quote_engine)
