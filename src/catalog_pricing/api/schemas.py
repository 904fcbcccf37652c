"""
Request models for the catalog and booking APIs.

Each model converts itself to the engine's dataclasses; responses are the
dataclasses themselves passed through jsonable_encoder.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..engine.models import (
    Addon,
    AddonGroup,
    AddonRequirement,
    AddonSelection,
    AvailabilitySlot,
    BookingStatus,
    Category,
    Discount,
    DiscountType,
    DynamicRule,
    Item,
    PricingType,
    SelectionType,
    Subcategory,
    TaxSetting,
    Tier,
)
from ..engine.pricing_engine import build_pricing_config


# -- Shared pieces --

class TaxIn(BaseModel):
    """applicable=None means inherit from the parent."""
    applicable: Optional[bool] = None
    percentage: Optional[Decimal] = None

    def to_domain(self) -> TaxSetting:
        return TaxSetting.from_flag(self.applicable, self.percentage)


class TierIn(BaseModel):
    min_quantity: int
    max_quantity: int
    price: Decimal


class DiscountIn(BaseModel):
    discount_type: DiscountType
    value: Decimal


class DynamicRuleIn(BaseModel):
    name: str
    start_time: str
    end_time: str
    price: Decimal
    days: list[int] = Field(default_factory=list)
    priority: int = 0


class PricingIn(BaseModel):
    pricing_type: PricingType
    base_price: Optional[Decimal] = None
    default_price: Optional[Decimal] = None
    tiers: list[TierIn] = Field(default_factory=list)
    discount: Optional[DiscountIn] = None
    rules: list[DynamicRuleIn] = Field(default_factory=list)

    def to_domain(self):
        return build_pricing_config(
            self.pricing_type,
            base_price=self.base_price,
            default_price=self.default_price,
            tiers=[Tier(**t.model_dump()) for t in self.tiers],
            discount=Discount(**self.discount.model_dump()) if self.discount else None,
            rules=[DynamicRule(**r.model_dump()) for r in self.rules],
        )


class SlotIn(BaseModel):
    day: int
    start_time: str
    end_time: str
    max_bookings: int = 1
    id: str = ""

    def to_domain(self) -> AvailabilitySlot:
        return AvailabilitySlot(**self.model_dump())


class AddonIn(BaseModel):
    id: str = ""
    name: str
    price: Decimal
    is_active: bool = True
    description: Optional[str] = None

    def to_domain(self) -> Addon:
        return Addon(**self.model_dump())


class AddonSelectionIn(BaseModel):
    group_id: str
    addon_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> AddonSelection:
        return AddonSelection(group_id=self.group_id, addon_ids=list(self.addon_ids))


# -- Categories --

class CategoryCreate(BaseModel):
    id: str = ""
    name: str
    tax: TaxIn = Field(default_factory=TaxIn)
    display_order: int = 0
    description: Optional[str] = None

    def to_domain(self) -> Category:
        return Category(
            id=self.id, name=self.name, tax=self.tax.to_domain(),
            display_order=self.display_order, description=self.description,
        )


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    tax: Optional[TaxIn] = None
    display_order: Optional[int] = None
    description: Optional[str] = None

    def to_updates(self) -> dict:
        updates = self.model_dump(exclude_unset=True)
        if 'tax' in updates:
            updates['tax'] = self.tax.to_domain() if self.tax else TaxSetting.inherit()
        return updates


# -- Subcategories --

class SubcategoryCreate(CategoryCreate):
    category_id: str

    def to_domain(self) -> Subcategory:
        return Subcategory(
            id=self.id, category_id=self.category_id, name=self.name,
            tax=self.tax.to_domain(), display_order=self.display_order,
            description=self.description,
        )


class SubcategoryUpdate(CategoryUpdate):
    category_id: Optional[str] = None


# -- Items --

class ItemCreate(BaseModel):
    id: str = ""
    name: str
    pricing: PricingIn
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    tax: TaxIn = Field(default_factory=TaxIn)
    addon_group_ids: list[str] = Field(default_factory=list)
    is_bookable: bool = False
    availability_slots: list[SlotIn] = Field(default_factory=list)
    booking_duration_minutes: int = 60
    display_order: int = 0
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    def to_domain(self) -> Item:
        return Item(
            id=self.id,
            name=self.name,
            pricing=self.pricing.to_domain(),
            category_id=self.category_id,
            subcategory_id=self.subcategory_id,
            tax=self.tax.to_domain(),
            addon_group_ids=list(self.addon_group_ids),
            is_bookable=self.is_bookable,
            availability_slots=[s.to_domain() for s in self.availability_slots],
            booking_duration_minutes=self.booking_duration_minutes,
            display_order=self.display_order,
            description=self.description,
            tags=list(self.tags),
        )


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    pricing: Optional[PricingIn] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    tax: Optional[TaxIn] = None
    addon_group_ids: Optional[list[str]] = None
    is_bookable: Optional[bool] = None
    availability_slots: Optional[list[SlotIn]] = None
    booking_duration_minutes: Optional[int] = None
    display_order: Optional[int] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None

    def to_updates(self) -> dict:
        updates = self.model_dump(exclude_unset=True)
        if self.pricing is not None:
            updates['pricing'] = self.pricing.to_domain()
        if 'tax' in updates:
            updates['tax'] = self.tax.to_domain() if self.tax else TaxSetting.inherit()
        if self.availability_slots is not None:
            updates['availability_slots'] = [s.to_domain() for s in self.availability_slots]
        return updates


class QuoteRequest(BaseModel):
    quantity: int = Field(1, ge=1)
    as_of: Optional[datetime] = None
    addons: list[AddonSelectionIn] = Field(default_factory=list)


# -- Add-on groups --

class AddonGroupCreate(BaseModel):
    id: str = ""
    name: str
    addons: list[AddonIn] = Field(default_factory=list)
    selection_type: SelectionType = SelectionType.SINGLE
    requirement: AddonRequirement = AddonRequirement.OPTIONAL
    min_selections: int = 0
    max_selections: int = 1
    display_order: int = 0
    description: Optional[str] = None

    def to_domain(self) -> AddonGroup:
        fields = self.model_dump(exclude={'addons'})
        return AddonGroup(addons=[a.to_domain() for a in self.addons], **fields)


class AddonGroupUpdate(BaseModel):
    name: Optional[str] = None
    addons: Optional[list[AddonIn]] = None
    selection_type: Optional[SelectionType] = None
    requirement: Optional[AddonRequirement] = None
    min_selections: Optional[int] = None
    max_selections: Optional[int] = None
    display_order: Optional[int] = None
    description: Optional[str] = None

    def to_updates(self) -> dict:
        updates = self.model_dump(exclude_unset=True)
        if self.addons is not None:
            updates['addons'] = [a.to_domain() for a in self.addons]
        return updates


class AddonUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None


# -- Bookings --

class BookingCreate(BaseModel):
    item_id: str
    customer_name: str
    customer_email: str
    booking_date: date
    start_time: str
    end_time: Optional[str] = None
    quantity: int = 1
    addons: list[AddonSelectionIn] = Field(default_factory=list)
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


class BookingUpdate(BaseModel):
    booking_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    quantity: Optional[int] = None
    addons: Optional[list[AddonSelectionIn]] = None
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status: Optional[BookingStatus] = None

    def to_updates(self) -> dict:
        updates = self.model_dump(exclude_unset=True)
        if self.addons is not None:
            updates['addons'] = [a.to_domain() for a in self.addons]
        return updates


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class ConflictCheckRequest(BaseModel):
    item_id: str
    booking_date: date
    start_time: str
    end_time: str
    exclude_booking_id: Optional[str] = None
