"""
Data models for the catalog pricing engine.

Uses dataclasses for structured, type-safe data representation.
Money values are Decimal throughout; rounding happens only at the tax step.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from .money import ZERO


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class TaxApplicability(str, Enum):
    """Tri-state tax flag; INHERIT defers to the parent entity."""
    APPLICABLE = "applicable"
    NOT_APPLICABLE = "not_applicable"
    INHERIT = "inherit"


class TaxSource(str, Enum):
    SELF = "self"
    SUBCATEGORY = "subcategory"
    CATEGORY = "category"
    DEFAULT = "default"


class PricingType(str, Enum):
    STATIC = "STATIC"
    TIERED = "TIERED"
    COMPLIMENTARY = "COMPLIMENTARY"
    DISCOUNTED = "DISCOUNTED"
    DYNAMIC = "DYNAMIC"


class DiscountType(str, Enum):
    FLAT = "FLAT"
    PERCENTAGE = "PERCENTAGE"


class SelectionType(str, Enum):
    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"


class AddonRequirement(str, Enum):
    OPTIONAL = "OPTIONAL"
    MANDATORY = "MANDATORY"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# ---------------------------------------------------------------------------
# Tax
# ---------------------------------------------------------------------------

@dataclass
class TaxSetting:
    """Tax setting stored on a category, subcategory or item."""
    applicability: TaxApplicability = TaxApplicability.INHERIT
    percentage: Optional[Decimal] = None

    @classmethod
    def applicable(cls, percentage) -> 'TaxSetting':
        return cls(TaxApplicability.APPLICABLE, Decimal(str(percentage)))

    @classmethod
    def not_applicable(cls) -> 'TaxSetting':
        return cls(TaxApplicability.NOT_APPLICABLE)

    @classmethod
    def inherit(cls) -> 'TaxSetting':
        return cls(TaxApplicability.INHERIT)

    @classmethod
    def from_flag(cls, applicable: Optional[bool], percentage=None) -> 'TaxSetting':
        """Build from a nullable flag where None means inherit."""
        if applicable is None:
            return cls.inherit()
        if applicable:
            return cls(TaxApplicability.APPLICABLE,
                       Decimal(str(percentage)) if percentage is not None else None)
        return cls.not_applicable()

    @property
    def is_explicit(self) -> bool:
        return self.applicability != TaxApplicability.INHERIT

    @property
    def is_applicable(self) -> bool:
        return self.applicability == TaxApplicability.APPLICABLE

    def normalized(self) -> 'TaxSetting':
        """Percentage is meaningless unless tax is applicable."""
        if self.is_applicable:
            return TaxSetting(self.applicability, self.percentage)
        return TaxSetting(self.applicability, None)


# ---------------------------------------------------------------------------
# Catalog hierarchy
# ---------------------------------------------------------------------------

@dataclass
class Category:
    """Root of the tax-inheritance chain."""
    id: str
    name: str
    tax: TaxSetting = field(default_factory=TaxSetting)
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


@dataclass
class Subcategory:
    id: str
    category_id: str
    name: str
    tax: TaxSetting = field(default_factory=TaxSetting)
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# Pricing configuration (one variant per pricing type)
# ---------------------------------------------------------------------------

@dataclass
class Tier:
    min_quantity: int
    max_quantity: int
    price: Decimal

    @property
    def label(self) -> str:
        return f"Tier {self.min_quantity}-{self.max_quantity}"


@dataclass
class Discount:
    discount_type: DiscountType
    value: Decimal


@dataclass
class DynamicRule:
    """A time-of-week price override; higher priority wins."""
    name: str
    start_time: str
    end_time: str
    price: Decimal
    days: list[int] = field(default_factory=list)  # empty = every day
    priority: int = 0


@dataclass
class StaticPricing:
    base_price: Optional[Decimal] = None
    pricing_type = PricingType.STATIC


@dataclass
class TieredPricing:
    tiers: list[Tier] = field(default_factory=list)
    default_price: Optional[Decimal] = None
    pricing_type = PricingType.TIERED


@dataclass
class ComplimentaryPricing:
    pricing_type = PricingType.COMPLIMENTARY


@dataclass
class DiscountedPricing:
    base_price: Optional[Decimal] = None
    discount: Optional[Discount] = None
    pricing_type = PricingType.DISCOUNTED


@dataclass
class DynamicPricing:
    rules: list[DynamicRule] = field(default_factory=list)
    default_price: Optional[Decimal] = None
    pricing_type = PricingType.DYNAMIC


PricingConfig = Union[StaticPricing, TieredPricing, ComplimentaryPricing, DiscountedPricing, DynamicPricing]


# ---------------------------------------------------------------------------
# Add-ons
# ---------------------------------------------------------------------------

@dataclass
class Addon:
    id: str
    name: str
    price: Decimal
    is_active: bool = True
    description: Optional[str] = None


@dataclass
class AddonGroup:
    """A named set of add-ons with selection bounds."""
    id: str
    name: str
    addons: list[Addon] = field(default_factory=list)
    selection_type: SelectionType = SelectionType.SINGLE
    requirement: AddonRequirement = AddonRequirement.OPTIONAL
    min_selections: int = 0
    max_selections: int = 1
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None

    @property
    def is_mandatory(self) -> bool:
        return self.requirement == AddonRequirement.MANDATORY

    def get_addon(self, addon_id: str) -> Optional[Addon]:
        for addon in self.addons:
            if addon.id == addon_id:
                return addon
        return None


# ---------------------------------------------------------------------------
# Items and availability
# ---------------------------------------------------------------------------

@dataclass
class AvailabilitySlot:
    """Recurring weekly window; day uses Sunday = 0."""
    day: int
    start_time: str
    end_time: str
    max_bookings: int = 1
    id: str = ""


@dataclass
class Item:
    id: str
    name: str
    pricing: PricingConfig
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    tax: TaxSetting = field(default_factory=TaxSetting)
    addon_group_ids: list[str] = field(default_factory=list)
    is_bookable: bool = False
    availability_slots: list[AvailabilitySlot] = field(default_factory=list)
    booking_duration_minutes: int = 60
    is_active: bool = True
    display_order: int = 0
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

@dataclass
class SelectedAddon:
    """Add-on choice snapshotted on a booking with its price at booking time."""
    group_id: str
    addon_ids: list[str]
    price: Decimal = ZERO


@dataclass
class PriceBreakdown:
    base_price: Decimal
    pricing_type: PricingType
    rule_label: str
    discount_amount: Decimal
    addons_total: Decimal
    subtotal: Decimal
    tax_percentage: Decimal
    tax_amount: Decimal
    final_price: Decimal


@dataclass
class Booking:
    id: str
    item_id: str
    customer_name: str
    customer_email: str
    booking_date: date
    start_time: str
    end_time: str
    quantity: int = 1
    selected_addons: list[SelectedAddon] = field(default_factory=list)
    price_breakdown: Optional[PriceBreakdown] = None
    status: BookingStatus = BookingStatus.PENDING
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """Cancelled bookings no longer occupy their interval."""
        return self.status != BookingStatus.CANCELLED


# ---------------------------------------------------------------------------
# Evaluation results
# ---------------------------------------------------------------------------

@dataclass
class TraceStep:
    """A single step in a resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


def format_trace(trace: list[TraceStep], bullet: str = "→") -> str:
    """Human-readable trace as formatted text."""
    lines = []
    for t in trace:
        if t.value:
            lines.append(f"{bullet} {t.step}: {t.description} = {t.value}")
        else:
            lines.append(f"{bullet} {t.step}: {t.description}")
    return "\n".join(lines)


@dataclass
class PricingResult:
    """Outcome of evaluating one pricing config."""
    pricing_type: PricingType
    rule_label: str
    unit_price: Decimal
    quantity: int
    base_amount: Decimal
    discount_amount: Decimal
    amount: Decimal
    details: dict = field(default_factory=dict)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        self.trace.append(TraceStep(step=step, description=description, value=value))


@dataclass
class TaxResult:
    applicable: bool
    percentage: Decimal
    source: TaxSource
    source_id: Optional[str] = None
    trace: list[TraceStep] = field(default_factory=list)


@dataclass
class AddonSelection:
    """Customer's chosen add-on ids for one group."""
    group_id: str
    addon_ids: list[str] = field(default_factory=list)


@dataclass
class AddonResult:
    group_id: str
    group_name: str
    selected_addons: list[Addon]
    total_price: Decimal


@dataclass
class AvailabilityResult:
    available: bool
    reason: Optional[str] = None
    slot: Optional[AvailabilitySlot] = None


@dataclass
class SlotAvailability:
    slot: AvailabilitySlot
    current_bookings: int
    is_available: bool


@dataclass
class Quote:
    """Complete result of a price calculation."""
    item_id: str
    item_name: str
    category_name: Optional[str]
    subcategory_name: Optional[str]
    pricing_details: PricingResult
    addons_details: list[AddonResult]
    addons_total: Decimal
    subtotal: Decimal
    tax: TaxResult
    tax_amount: Decimal
    final_price: Decimal
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the quote-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        return format_trace(self.trace, bullet="•")

    def to_price_breakdown(self) -> PriceBreakdown:
        """Snapshot stored on bookings; never recomputed afterwards."""
        return PriceBreakdown(
            base_price=self.pricing_details.base_amount,
            pricing_type=self.pricing_details.pricing_type,
            rule_label=self.pricing_details.rule_label,
            discount_amount=self.pricing_details.discount_amount,
            addons_total=self.addons_total,
            subtotal=self.subtotal,
            tax_percentage=self.tax.percentage,
            tax_amount=self.tax_amount,
            final_price=self.final_price,
        )
