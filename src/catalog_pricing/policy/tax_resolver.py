"""
Tax Resolver - Resolves the effective tax rate for a catalog entity.
"""
from decimal import Decimal
from typing import Union

from ..engine.errors import InvalidConfiguration, NotFound
from ..engine.models import Category, Item, Subcategory, TaxResult, TaxSetting, TaxSource, TraceStep
from ..engine.money import ZERO


Taxable = Union[Item, Subcategory, Category]

MAX_TAX_PERCENTAGE = Decimal("100")


class TaxResolver:
    """
    Resolves the effective tax setting for an item, subcategory or category.

    Waterfall precedence:
    1. The entity's own explicit setting
    2. Subcategory setting (items placed in a subcategory)
    3. Category setting
    4. Fallback: not applicable, 0%

    A category without an explicit setting inherits like any other level,
    so an untaxed chain resolves with source=default rather than
    source=category.

    Parents are read from the store on every call, so an edit to a
    category's rate shows up on the next resolution of every descendant.
    """

    def __init__(self, store):
        self.store = store

    def resolve(self, entity: Taxable) -> TaxResult:
        trace = []
        kind = self._kind(entity)

        # 1. Own setting
        if entity.tax.is_explicit:
            trace.append(TraceStep("Own Setting", f"{kind} {entity.id} sets tax explicitly", entity.tax.applicability.value))
            return self._result(entity.tax, TaxSource.SELF, entity.id, trace)
        trace.append(TraceStep("Own Setting", f"{kind} {entity.id} inherits tax"))

        # 2. Subcategory
        category_id = None
        if isinstance(entity, Item):
            if entity.subcategory_id:
                subcategory = self.store.get_subcategory(entity.subcategory_id)
                if subcategory.tax.is_explicit:
                    trace.append(TraceStep("Subcategory", f"Inherited from subcategory {subcategory.id}", subcategory.tax.applicability.value))
                    return self._result(subcategory.tax, TaxSource.SUBCATEGORY, subcategory.id, trace)
                trace.append(TraceStep("Subcategory", f"Subcategory {subcategory.id} inherits tax"))
                category_id = subcategory.category_id
            else:
                category_id = entity.category_id
        elif isinstance(entity, Subcategory):
            category_id = entity.category_id

        # 3. Category
        if category_id:
            category = self.store.get_category(category_id)
            if category.tax.is_explicit:
                trace.append(TraceStep("Category", f"Inherited from category {category.id}", category.tax.applicability.value))
                return self._result(category.tax, TaxSource.CATEGORY, category.id, trace)
            trace.append(TraceStep("Category", f"Category {category.id} has no tax setting"))

        # 4. Fallback
        trace.append(TraceStep("Fallback", "No explicit tax setting in chain, tax not applicable", "0"))
        return TaxResult(applicable=False, percentage=ZERO, source=TaxSource.DEFAULT, source_id=None, trace=trace)

    def resolve_ref(self, kind: str, entity_id: str) -> TaxResult:
        """Resolve by reference: kind is item, subcategory or category."""
        getters = {
            "item": self.store.get_item,
            "subcategory": self.store.get_subcategory,
            "category": self.store.get_category,
        }
        if kind not in getters:
            raise NotFound("entity kind", kind)
        return self.resolve(getters[kind](entity_id))

    def _result(self, setting: TaxSetting, source: TaxSource, source_id: str, trace: list) -> TaxResult:
        applicable = setting.is_applicable
        percentage = Decimal(setting.percentage) if applicable and setting.percentage is not None else ZERO
        return TaxResult(applicable=applicable, percentage=percentage, source=source, source_id=source_id, trace=trace)

    @staticmethod
    def _kind(entity: Taxable) -> str:
        if isinstance(entity, Item):
            return "Item"
        if isinstance(entity, Subcategory):
            return "Subcategory"
        return "Category"


def validate_tax_setting(setting: TaxSetting) -> list[str]:
    errors = []
    if setting.is_applicable:
        if setting.percentage is None:
            errors.append("Tax percentage is required when tax is applicable")
        elif not (ZERO <= Decimal(setting.percentage) <= MAX_TAX_PERCENTAGE):
            errors.append("Tax percentage must be between 0 and 100")
    return errors


def ensure_valid_tax_setting(setting: TaxSetting) -> TaxSetting:
    """Validate, then clear any percentage that does not apply."""
    errors = validate_tax_setting(setting)
    if errors:
        raise InvalidConfiguration("Invalid tax configuration", errors)
    return setting.normalized()
