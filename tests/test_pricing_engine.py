from datetime import datetime
from decimal import Decimal

import pytest

from catalog_pricing.engine.errors import InvalidConfiguration
from catalog_pricing.engine.models import (
    ComplimentaryPricing,
    Discount,
    DiscountType,
    DiscountedPricing,
    DynamicPricing,
    DynamicRule,
    PricingType,
    StaticPricing,
    Tier,
    TieredPricing,
)
from catalog_pricing.engine.pricing_engine import (
    PricingEngine,
    build_pricing_config,
    ensure_valid_pricing_config,
    validate_pricing_config,
)
from catalog_pricing.engine.rule_matcher import is_time_in_range

# 2026-01-14 is a Wednesday, 2026-01-17 a Saturday
WEDNESDAY_NOON = datetime(2026, 1, 14, 12, 0)


@pytest.fixture
def engine():
    return PricingEngine()


@pytest.fixture
def tiered():
    return TieredPricing(tiers=[
        Tier(1, 9, Decimal("12.00")),
        Tier(10, 49, Decimal("10.50")),
        Tier(50, 99, Decimal("9.00")),
    ])


@pytest.fixture
def court():
    return DynamicPricing(
        default_price=Decimal("20"),
        rules=[
            DynamicRule("Weekday Peak", "17:00", "21:00", Decimal("35"), days=[1, 2, 3, 4, 5], priority=10),
            DynamicRule("Evening", "18:00", "22:00", Decimal("25")),
            DynamicRule("Night Owl", "22:00", "02:00", Decimal("15")),
        ],
    )


def test_static_price_extends_by_quantity(engine):
    result = engine.evaluate(StaticPricing(base_price=Decimal("100")), quantity=2)

    assert result.pricing_type == PricingType.STATIC
    assert result.rule_label == "Fixed Price"
    assert result.amount == Decimal("200")


@pytest.mark.parametrize("quantity,price,label", [
    (1, "12.00", "Tier 1-9"),
    (9, "12.00", "Tier 1-9"),
    (10, "10.50", "Tier 10-49"),
    (49, "10.50", "Tier 10-49"),
    (50, "9.00", "Tier 50-99"),
])
def test_tier_boundaries_select_that_tier(engine, tiered, quantity, price, label):
    result = engine.evaluate(tiered, quantity)

    assert result.unit_price == Decimal(price)
    assert result.rule_label == label
    assert result.amount == Decimal(price) * quantity


def test_quantity_above_every_tier_uses_highest(engine, tiered):
    result = engine.evaluate(tiered, 120)

    assert result.rule_label == "overflow"
    assert result.unit_price == Decimal("9.00")


def test_complimentary_is_free_for_any_quantity(engine):
    result = engine.evaluate(ComplimentaryPricing(), 5)

    assert result.amount == Decimal("0")
    assert result.rule_label == "Complimentary"


def test_percentage_discount(engine):
    config = DiscountedPricing(base_price=Decimal("4.00"), discount=Discount(DiscountType.PERCENTAGE, Decimal("25")))
    result = engine.evaluate(config, 3)

    assert result.base_amount == Decimal("12.00")
    assert result.discount_amount == Decimal("3.00")
    assert result.amount == Decimal("9.00")
    assert result.rule_label == "25% off"


@pytest.mark.parametrize("discount", [
    Discount(DiscountType.FLAT, Decimal("500")),
    Discount(DiscountType.PERCENTAGE, Decimal("100")),
    Discount(DiscountType.PERCENTAGE, Decimal("150")),
])
def test_discount_never_exceeds_base(engine, discount):
    result = engine.evaluate(DiscountedPricing(base_price=Decimal("40"), discount=discount), 1)

    assert result.discount_amount == Decimal("40")
    assert result.amount == Decimal("0")


def test_missing_discount_charges_base(engine):
    result = engine.evaluate(DiscountedPricing(base_price=Decimal("40")), 2)

    assert result.amount == Decimal("80")
    assert result.rule_label == "No discount"


def test_dynamic_falls_back_to_default(engine, court):
    result = engine.evaluate(court, 1, WEDNESDAY_NOON)

    assert result.rule_label == "Default Price"
    assert result.unit_price == Decimal("20")


def test_dynamic_higher_priority_wins(engine, court):
    result = engine.evaluate(court, 2, datetime(2026, 1, 14, 18, 30))

    assert result.rule_label == "Weekday Peak"
    assert result.amount == Decimal("70")


def test_dynamic_day_filter(engine, court):
    # Saturday: the weekday rule is skipped and the every-day rule applies
    result = engine.evaluate(court, 1, datetime(2026, 1, 17, 18, 30))

    assert result.rule_label == "Evening"


def test_dynamic_window_wraps_midnight(engine, court):
    assert engine.evaluate(court, 1, datetime(2026, 1, 14, 23, 30)).rule_label == "Night Owl"
    assert engine.evaluate(court, 1, datetime(2026, 1, 15, 1, 0)).rule_label == "Night Owl"
    assert engine.evaluate(court, 1, datetime(2026, 1, 15, 2, 0)).rule_label == "Default Price"


def test_time_range_edges():
    assert is_time_in_range(22 * 60, "22:00", "02:00")
    assert not is_time_in_range(12 * 60, "22:00", "02:00")
    assert is_time_in_range(9 * 60, "09:00", "10:00")
    assert not is_time_in_range(10 * 60, "09:00", "10:00")


def test_equal_priority_keeps_declaration_order(engine):
    config = DynamicPricing(
        default_price=Decimal("1"),
        rules=[
            DynamicRule("First", "00:00", "23:59", Decimal("5")),
            DynamicRule("Second", "00:00", "23:59", Decimal("6")),
        ],
    )

    assert engine.evaluate(config, 1, WEDNESDAY_NOON).rule_label == "First"


def test_quantity_must_be_positive(engine):
    with pytest.raises(ValueError):
        engine.evaluate(StaticPricing(base_price=Decimal("1")), 0)


def test_validation_rejects_overlapping_tiers():
    config = TieredPricing(tiers=[Tier(1, 10, Decimal("5")), Tier(10, 20, Decimal("4"))])

    result = validate_pricing_config(config)

    assert not result.valid
    assert any("overlap" in e for e in result.errors)


def test_validation_rejects_bad_dynamic_rule():
    config = DynamicPricing(
        default_price=Decimal("10"),
        rules=[DynamicRule("Bad", "25:00", "10:00", Decimal("5"), days=[7])],
    )

    with pytest.raises(InvalidConfiguration) as exc:
        ensure_valid_pricing_config(config)
    assert len(exc.value.errors) == 2


def test_static_requires_base_price():
    assert not validate_pricing_config(StaticPricing()).valid


def test_build_pricing_config_picks_variant():
    config = build_pricing_config("discounted", base_price=Decimal("10"), tiers=[], discount=None)

    assert isinstance(config, DiscountedPricing)
    assert config.base_price == Decimal("10")

    with pytest.raises(InvalidConfiguration):
        build_pricing_config("auction")


@pytest.mark.parametrize("pricing_type", list(PricingType))
def test_build_pricing_config_accepts_enum(pricing_type):
    config = build_pricing_config(pricing_type, tiers=[Tier(1, 5, Decimal("50"))])

    assert config.pricing_type == pricing_type
