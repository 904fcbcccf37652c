"""
Quote Engine - End-to-end price quote for one catalog item.

Resolution order:
1. Reject inactive items
2. Evaluate the item's pricing config (quantity, moment)
3. Validate and price each add-on selection
4. Subtotal = pricing amount + add-ons total
5. Resolve effective tax, round tax and final price half-up to cents
"""
from datetime import datetime
from typing import Iterable, Optional

from ..policy.tax_resolver import TaxResolver
from .addon_selector import AddonSelector
from .errors import InactiveEntity, NotFound, SelectionViolation
from .models import AddonSelection, Item, Quote, TaxResult
from .money import ZERO, round_money
from .pricing_engine import PricingEngine


class QuoteEngine:
    """Composes pricing, add-on selection and tax into one quote."""

    def __init__(self, store, money_places: int = 2):
        self.store = store
        self.money_places = money_places
        self.pricing_engine = PricingEngine()
        self.addon_selector = AddonSelector()
        self.tax_resolver = TaxResolver(store)

    def quote(
        self,
        item_id: str,
        quantity: int = 1,
        as_of: Optional[datetime] = None,
        addons: Iterable[AddonSelection] = (),
    ) -> Quote:
        """
        Calculate a quote with full traceability.

        Args:
            item_id: Catalog item to price
            quantity: Units requested
            as_of: Moment used for dynamic pricing
            addons: One AddonSelection per add-on group

        Returns:
            Quote with pricing, add-on, tax details and trace
        """
        return self.quote_item(self.store.get_item(item_id), quantity, as_of, addons)

    def quote_item(
        self,
        item: Item,
        quantity: int = 1,
        as_of: Optional[datetime] = None,
        addons: Iterable[AddonSelection] = (),
    ) -> Quote:
        if not item.is_active:
            raise InactiveEntity(f"Item '{item.name}' is not available")

        pricing = self.pricing_engine.evaluate(item.pricing, quantity, as_of)

        # Add-ons
        selections = {}
        for selection in addons:
            if selection.group_id in selections:
                raise SelectionViolation(f"Add-on group '{selection.group_id}' selected more than once")
            selections[selection.group_id] = selection
        for group_id in selections:
            if group_id not in item.addon_group_ids or group_id not in self.store.addon_groups:
                raise NotFound("add-on group", group_id)

        addons_details = []
        addons_total = ZERO
        for group in self.store.get_addon_groups(item.addon_group_ids):
            selection = selections.get(group.id)
            if selection is None:
                if not (group.is_active and group.is_mandatory):
                    continue
                # Unanswered mandatory group is validated as an empty pick
                selection = AddonSelection(group_id=group.id)
            elif not group.is_active:
                raise InactiveEntity(f"Add-on group '{group.name}' is not available")

            detail = self.addon_selector.select(group, selection.addon_ids)
            addons_details.append(detail)
            addons_total += detail.total_price

        subtotal = pricing.amount + addons_total

        # Tax
        tax = self.tax_resolver.resolve(item)
        tax_amount = round_money(subtotal * tax.percentage / 100, self.money_places)
        final_price = round_money(subtotal + tax_amount, self.money_places)

        category_name, subcategory_name = self._placement_names(item)

        quote = Quote(
            item_id=item.id,
            item_name=item.name,
            category_name=category_name,
            subcategory_name=subcategory_name,
            pricing_details=pricing,
            addons_details=addons_details,
            addons_total=addons_total,
            subtotal=subtotal,
            tax=tax,
            tax_amount=tax_amount,
            final_price=final_price,
        )

        quote.add_trace("Pricing", f"{pricing.pricing_type.value} via {pricing.rule_label}", f"{pricing.amount}")
        for detail in addons_details:
            names = ", ".join(a.name for a in detail.selected_addons) or "none"
            quote.add_trace("Add-ons", f"{detail.group_name}: {names}", f"{detail.total_price}")
        quote.add_trace("Subtotal", f"{pricing.amount} + {addons_total}", f"{subtotal}")
        quote.add_trace("Tax", f"{tax.percentage}% from {tax.source.value}", f"{tax_amount}")
        quote.add_trace("Final Price", f"{subtotal} + {tax_amount}", f"{final_price}")

        return quote

    def resolve_tax(self, kind: str, entity_id: str) -> TaxResult:
        """Effective tax for an entity reference, independent of a quote."""
        return self.tax_resolver.resolve_ref(kind, entity_id)

    def _placement_names(self, item: Item) -> tuple:
        category = self.store.categories.get(item.category_id) if item.category_id else None
        subcategory = self.store.subcategories.get(item.subcategory_id) if item.subcategory_id else None
        return (category.name if category else None, subcategory.name if subcategory else None)
