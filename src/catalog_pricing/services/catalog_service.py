"""
Catalog Service - CRUD operations for categories, subcategories, items and
add-on groups.

Every write passes through write-time validation (tax settings, pricing
configs, add-on group bounds, availability slots) so the evaluators can
assume a valid catalog.
"""
import re
from dataclasses import replace
from typing import Optional

import pandas as pd

from ..config.logging_setup import get_logger
from ..data.catalog_store import CatalogStore
from ..engine.addon_selector import ensure_valid_group
from ..engine.availability import validate_slot
from ..engine.errors import InactiveEntity, InvalidConfiguration, InvalidOperation, NotFound
from ..engine.models import Addon, AddonGroup, AvailabilitySlot, Category, Item, Subcategory
from ..engine.pricing_engine import ensure_valid_pricing_config
from ..policy.tax_resolver import TaxResolver, ensure_valid_tax_setting


logger = get_logger(__name__)

# Fields that update_* may change; lifecycle flags go through delete/restore
CATEGORY_FIELDS = {'name', 'tax', 'display_order', 'description'}
SUBCATEGORY_FIELDS = {'name', 'tax', 'display_order', 'description', 'category_id'}
ITEM_FIELDS = {
    'name', 'pricing', 'category_id', 'subcategory_id', 'tax', 'addon_group_ids',
    'is_bookable', 'availability_slots', 'booking_duration_minutes',
    'display_order', 'description', 'tags',
}
ADDON_GROUP_FIELDS = {
    'name', 'addons', 'selection_type', 'requirement', 'min_selections',
    'max_selections', 'display_order', 'description',
}
# Update fields that may be cleared with None
NULLABLE_FIELDS = {'description', 'category_id', 'subcategory_id'}


def slugify(name: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', str(name).lower()).strip('-')
    return slug[:40] or 'x'


class CatalogService:
    """Service for managing the catalog hierarchy."""

    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store or CatalogStore()
        self.tax_resolver = TaxResolver(self.store)

    # -----------------------------------------------------------------
    # Categories
    # -----------------------------------------------------------------

    def create_category(self, category: Category) -> Category:
        """Create a new category."""
        self._check_unique_name(category.name, self.store.categories.values(), "Category")
        category = replace(category, tax=ensure_valid_tax_setting(category.tax))
        if not category.id:
            category.id = self._generate_id('cat', category.name, self.store.categories)
        elif category.id in self.store.categories:
            raise InvalidOperation(f"Category with ID '{category.id}' already exists")

        self.store.save_category(category)
        logger.info(f"Created category {category.id} ({category.name})")
        return category

    def get_category(self, category_id: str) -> Category:
        return self.store.get_category(category_id)

    def list_categories(self, include_inactive: bool = True) -> list[Category]:
        return [c for c in self.store.list_categories() if include_inactive or c.is_active]

    def update_category(self, category_id: str, updates: dict) -> Category:
        """Update an existing category. Descendants pick up tax edits on their next resolution."""
        current = self.store.get_category(category_id)
        updated = replace(current, **self._pick(updates, CATEGORY_FIELDS))

        if updated.name != current.name:
            self._check_unique_name(updated.name, self.store.categories.values(), "Category", exclude_id=category_id)
        updated.tax = ensure_valid_tax_setting(updated.tax)

        self.store.save_category(updated)
        logger.info(f"Updated category {category_id}")
        return updated

    def delete_category(self, category_id: str) -> Category:
        """Soft delete a category together with its subcategories and items."""
        category = self.store.get_category(category_id)
        category.is_active = False

        for sub in self.store.list_subcategories(category_id):
            sub.is_active = False
        for item in self.store.list_items():
            if item.category_id == category_id:
                item.is_active = False

        logger.info(f"Deactivated category {category_id} and its descendants")
        return category

    def restore_category(self, category_id: str) -> Category:
        category = self.store.get_category(category_id)
        category.is_active = True
        logger.info(f"Restored category {category_id}")
        return category

    def hard_delete_category(self, category_id: str) -> bool:
        """Permanently delete a category that has no subcategories or items."""
        self.store.get_category(category_id)

        if self.store.list_subcategories(category_id):
            raise InvalidOperation("Cannot delete category with existing subcategories")
        if any(i.category_id == category_id for i in self.store.list_items()):
            raise InvalidOperation("Cannot delete category with existing items")

        self.store.delete_category(category_id)
        logger.info(f"Deleted category {category_id}")
        return True

    # -----------------------------------------------------------------
    # Subcategories
    # -----------------------------------------------------------------

    def create_subcategory(self, subcategory: Subcategory) -> Subcategory:
        """Create a subcategory under an existing category."""
        self.store.get_category(subcategory.category_id)
        self._check_unique_name(
            subcategory.name,
            self.store.list_subcategories(subcategory.category_id),
            "Subcategory",
        )
        subcategory = replace(subcategory, tax=ensure_valid_tax_setting(subcategory.tax))
        if not subcategory.id:
            subcategory.id = self._generate_id('sub', subcategory.name, self.store.subcategories)
        elif subcategory.id in self.store.subcategories:
            raise InvalidOperation(f"Subcategory with ID '{subcategory.id}' already exists")

        self.store.save_subcategory(subcategory)
        logger.info(f"Created subcategory {subcategory.id} under {subcategory.category_id}")
        return subcategory

    def get_subcategory(self, subcategory_id: str) -> Subcategory:
        return self.store.get_subcategory(subcategory_id)

    def list_subcategories(self, category_id: Optional[str] = None, include_inactive: bool = True) -> list[Subcategory]:
        return [s for s in self.store.list_subcategories(category_id) if include_inactive or s.is_active]

    def update_subcategory(self, subcategory_id: str, updates: dict) -> Subcategory:
        current = self.store.get_subcategory(subcategory_id)
        updated = replace(current, **self._pick(updates, SUBCATEGORY_FIELDS, nullable={'description'}))

        self.store.get_category(updated.category_id)
        if updated.name != current.name or updated.category_id != current.category_id:
            self._check_unique_name(
                updated.name,
                self.store.list_subcategories(updated.category_id),
                "Subcategory",
                exclude_id=subcategory_id,
            )
        updated.tax = ensure_valid_tax_setting(updated.tax)

        self.store.save_subcategory(updated)

        # Items keep their derived category in step with the subcategory
        if updated.category_id != current.category_id:
            for item in self.store.list_items():
                if item.subcategory_id == subcategory_id:
                    item.category_id = updated.category_id

        logger.info(f"Updated subcategory {subcategory_id}")
        return updated

    def delete_subcategory(self, subcategory_id: str) -> Subcategory:
        """Soft delete a subcategory and its items."""
        subcategory = self.store.get_subcategory(subcategory_id)
        subcategory.is_active = False
        for item in self.store.list_items():
            if item.subcategory_id == subcategory_id:
                item.is_active = False

        logger.info(f"Deactivated subcategory {subcategory_id} and its items")
        return subcategory

    def restore_subcategory(self, subcategory_id: str) -> Subcategory:
        """Reactivate a subcategory; its parent category must be active."""
        subcategory = self.store.get_subcategory(subcategory_id)
        category = self.store.categories.get(subcategory.category_id)
        if category is None or not category.is_active:
            logger.warning(f"Refused to restore subcategory {subcategory_id}: parent category inactive")
            raise InactiveEntity("Cannot restore subcategory - parent category is inactive")

        subcategory.is_active = True
        logger.info(f"Restored subcategory {subcategory_id}")
        return subcategory

    def hard_delete_subcategory(self, subcategory_id: str) -> bool:
        self.store.get_subcategory(subcategory_id)
        if any(i.subcategory_id == subcategory_id for i in self.store.list_items()):
            raise InvalidOperation("Cannot delete subcategory with existing items")

        self.store.delete_subcategory(subcategory_id)
        logger.info(f"Deleted subcategory {subcategory_id}")
        return True

    # -----------------------------------------------------------------
    # Items
    # -----------------------------------------------------------------

    def create_item(self, item: Item) -> Item:
        """Create a new item after validating placement, tax, pricing, add-ons and slots."""
        item = self._validated_item(replace(item))
        if not item.id:
            item.id = self._generate_id('item', item.name, self.store.items)
        elif item.id in self.store.items:
            raise InvalidOperation(f"Item with ID '{item.id}' already exists")

        self._number_slots(item)
        self.store.save_item(item)
        logger.info(f"Created item {item.id} ({item.pricing.pricing_type.value})")
        return item

    def get_item(self, item_id: str) -> Item:
        return self.store.get_item(item_id)

    def get_item_with_tax(self, item_id: str) -> tuple:
        """Item plus its effective tax."""
        item = self.store.get_item(item_id)
        return item, self.tax_resolver.resolve(item)

    def list_items(
        self,
        include_inactive: bool = True,
        category_id: Optional[str] = None,
        subcategory_id: Optional[str] = None,
    ) -> list[Item]:
        items = []
        for item in self.store.list_items():
            if not include_inactive and not item.is_active:
                continue
            if category_id and item.category_id != category_id:
                continue
            if subcategory_id and item.subcategory_id != subcategory_id:
                continue
            items.append(item)
        return items

    def update_item(self, item_id: str, updates: dict) -> Item:
        """Apply a partial update, validated on a copy before it is stored."""
        current = self.store.get_item(item_id)
        fields = self._pick(updates, ITEM_FIELDS)

        # Moving to a new subcategory re-derives the category
        if fields.get('subcategory_id') and 'category_id' not in fields:
            fields['category_id'] = None

        updated = self._validated_item(replace(current, **fields))
        self._number_slots(updated)
        self.store.save_item(updated)
        logger.info(f"Updated item {item_id}")
        return updated

    def delete_item(self, item_id: str) -> Item:
        item = self.store.get_item(item_id)
        item.is_active = False
        logger.info(f"Deactivated item {item_id}")
        return item

    def restore_item(self, item_id: str) -> Item:
        item = self.store.get_item(item_id)
        item.is_active = True
        logger.info(f"Restored item {item_id}")
        return item

    def hard_delete_item(self, item_id: str) -> bool:
        self.store.get_item(item_id)
        self.store.delete_item(item_id)
        logger.info(f"Deleted item {item_id}")
        return True

    def _validated_item(self, item: Item) -> Item:
        errors = []

        if not item.name:
            errors.append("Item name is required")

        # Placement: subcategory implies its category
        if not item.category_id and not item.subcategory_id:
            errors.append("Item must belong to either a category or subcategory")
        if item.subcategory_id:
            subcategory = self.store.get_subcategory(item.subcategory_id)
            if item.category_id and item.category_id != subcategory.category_id:
                errors.append(
                    f"Subcategory '{subcategory.id}' belongs to category "
                    f"'{subcategory.category_id}', not '{item.category_id}'"
                )
            else:
                item.category_id = subcategory.category_id
        if item.category_id:
            self.store.get_category(item.category_id)

        if errors:
            raise InvalidConfiguration("Invalid item", errors)

        item.tax = ensure_valid_tax_setting(item.tax)
        ensure_valid_pricing_config(item.pricing)

        item.addon_group_ids = list(dict.fromkeys(item.addon_group_ids))
        missing = [g for g in item.addon_group_ids if g not in self.store.addon_groups]
        if missing:
            raise InvalidConfiguration("One or more add-on groups not found", [f"Unknown add-on group '{g}'" for g in missing])

        for slot in item.availability_slots:
            errors.extend(validate_slot(slot))
        if item.booking_duration_minutes < 1:
            errors.append("booking_duration_minutes must be at least 1")
        if errors:
            raise InvalidConfiguration("Invalid availability configuration", errors)

        return item

    @staticmethod
    def _number_slots(item: Item):
        """Give slots item-local ids."""
        used = {s.id for s in item.availability_slots if s.id}
        counter = 1
        for slot in item.availability_slots:
            if slot.id:
                continue
            while f"slot-{counter}" in used:
                counter += 1
            slot.id = f"slot-{counter}"
            used.add(slot.id)

    # -----------------------------------------------------------------
    # Add-on groups
    # -----------------------------------------------------------------

    def create_addon_group(self, group: AddonGroup) -> AddonGroup:
        """Create an add-on group; mandatory/single rules normalize its bounds."""
        self._check_unique_name(group.name, self.store.addon_groups.values(), "Add-on group")
        group = replace(group, addons=list(group.addons))
        self._number_addons(group)
        group = ensure_valid_group(group)
        if not group.id:
            group.id = self._generate_id('grp', group.name, self.store.addon_groups)
        elif group.id in self.store.addon_groups:
            raise InvalidOperation(f"Add-on group with ID '{group.id}' already exists")

        self.store.save_addon_group(group)
        logger.info(f"Created add-on group {group.id} ({len(group.addons)} add-ons)")
        return group

    def get_addon_group(self, group_id: str) -> AddonGroup:
        return self.store.get_addon_group(group_id)

    def list_addon_groups(self, include_inactive: bool = True) -> list[AddonGroup]:
        return [g for g in self.store.list_addon_groups() if include_inactive or g.is_active]

    def update_addon_group(self, group_id: str, updates: dict) -> AddonGroup:
        current = self.store.get_addon_group(group_id)
        updated = replace(current, **self._pick(updates, ADDON_GROUP_FIELDS))

        if updated.name != current.name:
            self._check_unique_name(updated.name, self.store.addon_groups.values(), "Add-on group", exclude_id=group_id)
        updated = replace(updated, addons=list(updated.addons))
        self._number_addons(updated)
        updated = ensure_valid_group(updated)

        self.store.save_addon_group(updated)
        logger.info(f"Updated add-on group {group_id}")
        return updated

    def delete_addon_group(self, group_id: str) -> AddonGroup:
        group = self.store.get_addon_group(group_id)
        group.is_active = False
        logger.info(f"Deactivated add-on group {group_id}")
        return group

    def restore_addon_group(self, group_id: str) -> AddonGroup:
        group = self.store.get_addon_group(group_id)
        group.is_active = True
        logger.info(f"Restored add-on group {group_id}")
        return group

    def hard_delete_addon_group(self, group_id: str) -> bool:
        self.store.get_addon_group(group_id)
        users = [i.id for i in self.store.list_items() if group_id in i.addon_group_ids]
        if users:
            raise InvalidOperation(f"Add-on group is attached to items: {', '.join(users)}")

        self.store.delete_addon_group(group_id)
        logger.info(f"Deleted add-on group {group_id}")
        return True

    def add_addon(self, group_id: str, addon: Addon) -> AddonGroup:
        group = self.store.get_addon_group(group_id)
        return self.update_addon_group(group_id, {'addons': group.addons + [replace(addon)]})

    def update_addon(self, group_id: str, addon_id: str, updates: dict) -> AddonGroup:
        group = self.store.get_addon_group(group_id)
        if group.get_addon(addon_id) is None:
            raise NotFound("add-on", addon_id)

        allowed = {'name', 'price', 'is_active', 'description'}
        addons = [
            replace(a, **self._pick(updates, allowed)) if a.id == addon_id else a
            for a in group.addons
        ]
        return self.update_addon_group(group_id, {'addons': addons})

    def remove_addon(self, group_id: str, addon_id: str) -> AddonGroup:
        group = self.store.get_addon_group(group_id)
        if group.get_addon(addon_id) is None:
            raise NotFound("add-on", addon_id)
        return self.update_addon_group(group_id, {'addons': [a for a in group.addons if a.id != addon_id]})

    @staticmethod
    def _number_addons(group: AddonGroup):
        """Give add-ons group-local ids."""
        used = {a.id for a in group.addons if a.id}
        counter = 1
        for addon in group.addons:
            if addon.id:
                continue
            while f"addon-{counter}" in used:
                counter += 1
            addon.id = f"addon-{counter}"
            used.add(addon.id)

    # -----------------------------------------------------------------
    # Listings
    # -----------------------------------------------------------------

    def catalog_frame(self, include_inactive: bool = False) -> pd.DataFrame:
        """One row per item with pricing and effective tax."""
        rows = []
        for item in self.list_items(include_inactive=include_inactive):
            tax = self.tax_resolver.resolve(item)
            pricing = item.pricing
            rows.append({
                'Item ID': item.id,
                'Name': item.name,
                'Description': item.description or '',
                'Tags': ', '.join(item.tags),
                'Category': item.category_id,
                'Subcategory': item.subcategory_id,
                'Pricing Type': pricing.pricing_type.value,
                'Base Price': getattr(pricing, 'base_price', None),
                'Default Price': getattr(pricing, 'default_price', None),
                'Tax Applicable': tax.applicable,
                'Tax %': tax.percentage,
                'Tax Source': tax.source.value,
                'Bookable': item.is_bookable,
                'Active': item.is_active,
            })

        columns = [
            'Item ID', 'Name', 'Description', 'Tags', 'Category', 'Subcategory',
            'Pricing Type', 'Base Price', 'Default Price', 'Tax Applicable',
            'Tax %', 'Tax Source', 'Bookable', 'Active',
        ]
        return pd.DataFrame(rows, columns=columns).set_index('Item ID')

    def search_items(self, search: Optional[str] = None, limit: int = 100) -> pd.DataFrame:
        """Case-insensitive match on name, description or tags."""
        df = self.catalog_frame()
        if search:
            mask = (
                df['Name'].str.contains(search, case=False, na=False, regex=False) |
                df['Description'].str.contains(search, case=False, na=False, regex=False) |
                df['Tags'].str.contains(search, case=False, na=False, regex=False)
            )
            df = df[mask]
        return df.head(limit)

    def get_stats(self) -> dict:
        """Get statistics about the catalog."""
        items = self.store.list_items()
        by_type = {}
        for item in items:
            key = item.pricing.pricing_type.value
            by_type[key] = by_type.get(key, 0) + 1

        return {
            'categories': len(self.store.categories),
            'subcategories': len(self.store.subcategories),
            'items': len(items),
            'active_items': sum(1 for i in items if i.is_active),
            'bookable_items': sum(1 for i in items if i.is_bookable),
            'addon_groups': len(self.store.addon_groups),
            'by_pricing_type': by_type,
        }

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _pick(updates: dict, allowed: set, nullable: set = NULLABLE_FIELDS) -> dict:
        unknown = set(updates) - allowed
        if unknown:
            raise InvalidConfiguration("Unsupported update fields", [f"Cannot update '{k}'" for k in sorted(unknown)])

        errors = [f"'{k}' cannot be null" for k in sorted(updates) if updates[k] is None and k not in nullable]
        if 'name' in updates and updates['name'] is not None and not str(updates['name']).strip():
            errors.append("Name is required")
        if errors:
            raise InvalidConfiguration("Invalid update", errors)
        return dict(updates)

    @staticmethod
    def _check_unique_name(name: str, existing, kind: str, exclude_id: Optional[str] = None):
        for entity in existing:
            if entity.id != exclude_id and entity.name.strip().lower() == str(name).strip().lower():
                raise InvalidOperation(f"{kind} with this name already exists")

    @staticmethod
    def _generate_id(prefix: str, name: str, existing: dict) -> str:
        """Generate a unique id from the name."""
        base = f"{prefix}-{slugify(name)}"
        candidate = base
        counter = 1
        while candidate in existing:
            candidate = f"{base}-{counter}"
            counter += 1
        return candidate
