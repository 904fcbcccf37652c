from decimal import Decimal

import pytest

from catalog_pricing.engine.errors import InvalidConfiguration, NotFound
from catalog_pricing.engine.models import (
    Category,
    ComplimentaryPricing,
    Item,
    Subcategory,
    TaxApplicability,
    TaxSetting,
    TaxSource,
)
from catalog_pricing.policy.tax_resolver import TaxResolver, ensure_valid_tax_setting


@pytest.fixture
def resolver(store):
    return TaxResolver(store)


def test_item_inherits_category_through_subcategory(store, resolver):
    result = resolver.resolve(store.get_item("item-massage"))

    assert result.applicable is True
    assert result.percentage == Decimal("5")
    assert result.source == TaxSource.CATEGORY
    assert result.source_id == "cat-spa"
    assert [s.step for s in result.trace] == ["Own Setting", "Subcategory", "Category"]


def test_subcategory_setting_beats_category(store, resolver):
    store.get_subcategory("sub-massages").tax = TaxSetting.applicable(12)

    result = resolver.resolve(store.get_item("item-massage"))

    assert result.percentage == Decimal("12")
    assert result.source == TaxSource.SUBCATEGORY
    assert result.source_id == "sub-massages"


def test_item_explicit_not_applicable_wins(store, resolver):
    store.get_item("item-massage").tax = TaxSetting.not_applicable()

    result = resolver.resolve(store.get_item("item-massage"))

    assert result.applicable is False
    assert result.percentage == Decimal("0")
    assert result.source == TaxSource.SELF


def test_all_unset_chain_falls_back_to_default(catalog_service, resolver):
    catalog_service.create_category(Category(id="cat-free", name="Free"))
    catalog_service.create_subcategory(Subcategory(id="sub-free", category_id="cat-free", name="Free Stuff"))
    item = catalog_service.create_item(Item(
        id="item-free", name="Freebie", pricing=ComplimentaryPricing(), subcategory_id="sub-free",
    ))

    result = resolver.resolve(item)

    assert result.applicable is False
    assert result.percentage == Decimal("0")
    assert result.source == TaxSource.DEFAULT
    assert result.source_id is None


def test_item_directly_under_category(catalog_service, resolver):
    item = catalog_service.create_item(Item(
        id="item-direct", name="Gift Card", pricing=ComplimentaryPricing(), category_id="cat-spa",
    ))

    result = resolver.resolve(item)

    assert result.source == TaxSource.CATEGORY
    assert result.percentage == Decimal("5")


def test_category_edit_is_visible_on_next_resolution(store, catalog_service, resolver):
    catalog_service.update_category("cat-spa", {"tax": TaxSetting.applicable(8)})

    assert resolver.resolve(store.get_item("item-massage")).percentage == Decimal("8")


def test_resolve_ref_by_kind(resolver):
    assert resolver.resolve_ref("subcategory", "sub-massages").source == TaxSource.CATEGORY
    assert resolver.resolve_ref("category", "cat-spa").source == TaxSource.SELF

    with pytest.raises(NotFound):
        resolver.resolve_ref("item", "item-missing")


def test_missing_parent_raises_not_found(store, resolver):
    store.get_item("item-massage").subcategory_id = "sub-gone"

    with pytest.raises(NotFound):
        resolver.resolve(store.get_item("item-massage"))


def test_applicable_tax_requires_percentage():
    with pytest.raises(InvalidConfiguration) as exc:
        ensure_valid_tax_setting(TaxSetting(TaxApplicability.APPLICABLE, None))
    assert "Tax percentage is required when tax is applicable" in exc.value.errors

    with pytest.raises(InvalidConfiguration):
        ensure_valid_tax_setting(TaxSetting.applicable(150))


def test_percentage_cleared_when_not_applicable():
    setting = ensure_valid_tax_setting(TaxSetting(TaxApplicability.NOT_APPLICABLE, Decimal("7")))

    assert setting.percentage is None
    assert setting.applicability == TaxApplicability.NOT_APPLICABLE
