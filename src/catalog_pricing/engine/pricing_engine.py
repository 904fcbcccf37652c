"""
Pricing Engine - Computes an item's price from its pricing configuration.

Each of the five pricing variants has its own calculator:
- Static: base price × quantity
- Tiered: unit price from the quantity tier that contains the quantity
- Complimentary: always free
- Discounted: base amount minus a flat or percentage discount
- Dynamic: unit price from the highest-priority time-of-week rule

Evaluation is a pure function of (config, quantity, as_of). Configurations
are validated once at write time with validate_pricing_config().
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .clock import is_valid_time
from .errors import InvalidConfiguration
from .models import (
    PricingConfig, PricingResult, PricingType, DiscountType,
    StaticPricing, TieredPricing, ComplimentaryPricing, DiscountedPricing, DynamicPricing,
)
from .money import ZERO, to_decimal
from .rule_matcher import DynamicRuleMatcher


@dataclass
class ValidationResult:
    """Result of pricing config validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)


class PricingEngine:
    """Dispatches a pricing config to the calculator for its variant."""

    def __init__(self, rule_matcher: Optional[DynamicRuleMatcher] = None):
        self.rule_matcher = rule_matcher or DynamicRuleMatcher()

    def evaluate(self, config: PricingConfig, quantity: int = 1, as_of: Optional[datetime] = None) -> PricingResult:
        """
        Calculate the price for a quantity at a point in time.

        Args:
            config: One of the five pricing variants
            quantity: Units requested (>= 1)
            as_of: Moment used by dynamic pricing; defaults to now

        Returns:
            PricingResult with rule label, amounts and trace
        """
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")

        if isinstance(config, StaticPricing):
            return self._static_price(config, quantity)
        if isinstance(config, TieredPricing):
            return self._tiered_price(config, quantity)
        if isinstance(config, ComplimentaryPricing):
            return self._complimentary_price()
        if isinstance(config, DiscountedPricing):
            return self._discounted_price(config, quantity)
        if isinstance(config, DynamicPricing):
            return self._dynamic_price(config, quantity, as_of or datetime.now())

        # Configs are validated on write; reaching here is an internal fault
        raise TypeError(f"Unknown pricing config: {type(config).__name__}")

    def _static_price(self, config: StaticPricing, quantity: int) -> PricingResult:
        unit_price = to_decimal(config.base_price)
        total = unit_price * quantity

        result = PricingResult(
            pricing_type=PricingType.STATIC,
            rule_label="Fixed Price",
            unit_price=unit_price,
            quantity=quantity,
            base_amount=total,
            discount_amount=ZERO,
            amount=total,
        )
        result.add_trace("Price Resolution", "Fixed price", f"{unit_price}")
        result.add_trace("Extension", f"Quantity {quantity} × {unit_price}", f"{total}")
        return result

    def _tiered_price(self, config: TieredPricing, quantity: int) -> PricingResult:
        sorted_tiers = sorted(config.tiers, key=lambda t: t.min_quantity)

        applicable = None
        for tier in sorted_tiers:
            if tier.min_quantity <= quantity <= tier.max_quantity:
                applicable = tier
                break

        details = {}
        trace_desc = ""
        if applicable:
            unit_price = to_decimal(applicable.price)
            label = applicable.label
            details["tier"] = applicable
            trace_desc = f"Quantity {quantity} in {applicable.label}"
        elif sorted_tiers:
            # Above (or between) every tier: use the highest range
            highest = sorted_tiers[-1]
            unit_price = to_decimal(highest.price)
            label = "overflow"
            details["tier"] = highest
            trace_desc = f"Quantity {quantity} outside all tiers, using {highest.label}"
        else:
            unit_price = to_decimal(config.default_price)
            label = "overflow"
            trace_desc = "No tiers configured, using default price"

        total = unit_price * quantity
        result = PricingResult(
            pricing_type=PricingType.TIERED,
            rule_label=label,
            unit_price=unit_price,
            quantity=quantity,
            base_amount=total,
            discount_amount=ZERO,
            amount=total,
            details=details,
        )
        result.add_trace("Tier Lookup", trace_desc, f"{unit_price}")
        result.add_trace("Extension", f"Quantity {quantity} × {unit_price}", f"{total}")
        return result

    def _complimentary_price(self) -> PricingResult:
        result = PricingResult(
            pricing_type=PricingType.COMPLIMENTARY,
            rule_label="Complimentary",
            unit_price=ZERO,
            quantity=1,
            base_amount=ZERO,
            discount_amount=ZERO,
            amount=ZERO,
        )
        result.add_trace("Price Resolution", "Complimentary item", "0")
        return result

    def _discounted_price(self, config: DiscountedPricing, quantity: int) -> PricingResult:
        unit_price = to_decimal(config.base_price)
        total_base = unit_price * quantity

        discount_amount = ZERO
        label = "No discount"
        discount = config.discount

        if discount is not None:
            value = to_decimal(discount.value)
            if discount.discount_type == DiscountType.FLAT:
                discount_amount = value
                label = f"Flat discount: {value}"
            elif discount.discount_type == DiscountType.PERCENTAGE:
                discount_amount = total_base * value / 100
                label = f"{value}% off"

        # Discount stays within [0, base amount]
        discount_amount = min(max(discount_amount, ZERO), total_base)
        final = total_base - discount_amount

        result = PricingResult(
            pricing_type=PricingType.DISCOUNTED,
            rule_label=label,
            unit_price=unit_price,
            quantity=quantity,
            base_amount=total_base,
            discount_amount=discount_amount,
            amount=final,
            details={"discount": discount} if discount else {},
        )
        result.add_trace("Extension", f"Quantity {quantity} × {unit_price}", f"{total_base}")
        result.add_trace("Discount", label, f"-{discount_amount}")
        return result

    def _dynamic_price(self, config: DynamicPricing, quantity: int, as_of: datetime) -> PricingResult:
        matched = self.rule_matcher.find_matching_rules(config.rules, as_of)

        if matched:
            winner = matched[0]
            unit_price = to_decimal(winner.rule.price)
            label = winner.rule.name
        else:
            winner = None
            unit_price = to_decimal(config.default_price)
            label = "Default Price"

        total = unit_price * quantity
        result = PricingResult(
            pricing_type=PricingType.DYNAMIC,
            rule_label=label,
            unit_price=unit_price,
            quantity=quantity,
            base_amount=total,
            discount_amount=ZERO,
            amount=total,
            details={
                "rule": winner.rule if winner else None,
                "as_of": as_of.isoformat(timespec="minutes"),
            },
        )

        result.add_trace("Rule Lookup", f"{len(matched)} of {len(config.rules)} rules match {as_of:%a %H:%M}")
        if winner:
            result.add_trace("Rule Applied", f"{winner.rule.name} (priority {winner.priority}, {winner.match_reason})", f"{unit_price}")
        else:
            result.add_trace("Fallback", "No rule matched, using default price", f"{unit_price}")
        result.add_trace("Extension", f"Quantity {quantity} × {unit_price}", f"{total}")
        return result


def _is_negative(value) -> bool:
    return value is not None and to_decimal(value) < 0


def validate_pricing_config(config) -> ValidationResult:
    """Validate a pricing configuration before it is saved."""
    result = ValidationResult(valid=True)
    errors = result.errors

    if isinstance(config, StaticPricing):
        if config.base_price is None or _is_negative(config.base_price):
            errors.append("Static pricing requires a valid base_price")

    elif isinstance(config, TieredPricing):
        if not config.tiers:
            errors.append("Tiered pricing requires at least one tier")
        else:
            for i, tier in enumerate(config.tiers, start=1):
                if tier.min_quantity < 0:
                    errors.append(f"Tier {i}: min_quantity cannot be negative")
                if tier.max_quantity < tier.min_quantity:
                    errors.append(f"Tier {i}: max_quantity must be >= min_quantity")
                if tier.price is None or _is_negative(tier.price):
                    errors.append(f"Tier {i}: price must be a non-negative number")

            # Check for overlapping tiers
            tiers = sorted(config.tiers, key=lambda t: t.min_quantity)
            for i in range(len(tiers) - 1):
                if tiers[i].max_quantity >= tiers[i + 1].min_quantity:
                    errors.append(f"Tier overlap detected between {tiers[i].label} and {tiers[i + 1].label}")
        if _is_negative(config.default_price):
            errors.append("default_price cannot be negative")

    elif isinstance(config, DiscountedPricing):
        if config.base_price is None or _is_negative(config.base_price):
            errors.append("Discounted pricing requires a valid base_price")
        if config.discount is None or config.discount.discount_type is None:
            errors.append("Discounted pricing requires discount configuration")
        elif config.discount.value is None or _is_negative(config.discount.value):
            errors.append("Discount value must be a non-negative number")

    elif isinstance(config, DynamicPricing):
        if not config.rules:
            errors.append("Dynamic pricing requires at least one rule")
        if config.default_price is None:
            errors.append("Dynamic pricing requires a default_price")
        elif _is_negative(config.default_price):
            errors.append("default_price cannot be negative")
        for i, rule in enumerate(config.rules, start=1):
            if not rule.name:
                errors.append(f"Rule {i}: name is required")
            if not is_valid_time(rule.start_time) or not is_valid_time(rule.end_time):
                errors.append(f"Rule {i}: start_time and end_time must be in HH:MM format")
            if rule.price is None or _is_negative(rule.price):
                errors.append(f"Rule {i}: price must be a non-negative number")
            if any(d not in range(7) for d in rule.days):
                errors.append(f"Rule {i}: days must be between 0 (Sunday) and 6 (Saturday)")

    elif isinstance(config, ComplimentaryPricing):
        pass

    else:
        errors.append(f"Unknown pricing type: {type(config).__name__}")

    result.valid = not errors
    return result


def ensure_valid_pricing_config(config) -> None:
    """Raise InvalidConfiguration when the config fails validation."""
    validation = validate_pricing_config(config)
    if not validation.valid:
        raise InvalidConfiguration("Invalid pricing configuration", validation.errors)


def build_pricing_config(pricing_type, **fields) -> PricingConfig:
    """Construct the variant for a pricing type from keyword fields."""
    variants = {
        PricingType.STATIC: StaticPricing,
        PricingType.TIERED: TieredPricing,
        PricingType.COMPLIMENTARY: ComplimentaryPricing,
        PricingType.DISCOUNTED: DiscountedPricing,
        PricingType.DYNAMIC: DynamicPricing,
    }
    try:
        if not isinstance(pricing_type, PricingType):
            pricing_type = PricingType(str(pricing_type).strip().upper())
        variant = variants[pricing_type]
    except (KeyError, ValueError):
        raise InvalidConfiguration(
            "Invalid pricing configuration",
            [f"Pricing type must be one of: {', '.join(t.value for t in PricingType)}"],
        )

    accepted = variant.__dataclass_fields__
    return variant(**{k: v for k, v in fields.items() if k in accepted and v is not None})
