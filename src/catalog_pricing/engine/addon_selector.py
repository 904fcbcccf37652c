"""
Add-on Selector - Validates and prices a customer's add-on choices.

Selections are first reduced to the group's active add-ons; unknown or
inactive ids are dropped silently. The remaining count must fall within
the group's [min_selections, max_selections] bounds.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from .errors import InvalidConfiguration, SelectionViolation
from .models import AddonGroup, AddonResult, SelectionType
from .money import ZERO, to_decimal


@dataclass
class SelectionCheck:
    """Outcome of a selection validation."""
    valid: bool
    error: Optional[str] = None
    valid_ids: tuple = ()


class AddonSelector:
    """Validates and prices selections against one add-on group."""

    def valid_selections(self, group: AddonGroup, selected_ids) -> list[str]:
        """Selected ids that name an active add-on in the group, de-duplicated."""
        active = {a.id for a in group.addons if a.is_active}
        valid = []
        for addon_id in selected_ids:
            addon_id = str(addon_id)
            if addon_id in active and addon_id not in valid:
                valid.append(addon_id)
        return valid

    def validate(self, group: AddonGroup, selected_ids) -> SelectionCheck:
        valid = self.valid_selections(group, selected_ids)

        if len(valid) < group.min_selections:
            return SelectionCheck(
                valid=False,
                error=f"Minimum {group.min_selections} selection(s) required for {group.name}",
                valid_ids=tuple(valid),
            )

        if len(valid) > group.max_selections:
            return SelectionCheck(
                valid=False,
                error=f"Maximum {group.max_selections} selection(s) allowed for {group.name}",
                valid_ids=tuple(valid),
            )

        return SelectionCheck(valid=True, valid_ids=tuple(valid))

    def price(self, group: AddonGroup, selected_ids) -> Decimal:
        """Sum of the prices of valid, active, selected add-ons."""
        total = ZERO
        for addon_id in self.valid_selections(group, selected_ids):
            total += to_decimal(group.get_addon(addon_id).price)
        return total

    def select(self, group: AddonGroup, selected_ids) -> AddonResult:
        """Validate then price; raises SelectionViolation on a bad count."""
        check = self.validate(group, selected_ids)
        if not check.valid:
            raise SelectionViolation(check.error)

        return AddonResult(
            group_id=group.id,
            group_name=group.name,
            selected_addons=[group.get_addon(addon_id) for addon_id in check.valid_ids],
            total_price=self.price(group, check.valid_ids),
        )


def normalize_group(group: AddonGroup) -> AddonGroup:
    """Mandatory groups need at least one pick; single groups allow one."""
    group = replace(group)
    if group.is_mandatory and group.min_selections < 1:
        group.min_selections = 1
    if group.selection_type == SelectionType.SINGLE:
        group.max_selections = 1
    return group


def validate_group(group: AddonGroup) -> list[str]:
    errors = []

    if not group.name:
        errors.append("Add-on group name is required")
    if group.min_selections < 0:
        errors.append("min_selections cannot be negative")
    if group.max_selections < 1:
        errors.append("max_selections must be at least 1")
    if group.min_selections > group.max_selections:
        errors.append("min_selections cannot be greater than max_selections")

    seen = set()
    for addon in group.addons:
        if not addon.name:
            errors.append("Add-on name is required")
        if addon.price is None or to_decimal(addon.price) < 0:
            errors.append(f"Add-on '{addon.name}': price cannot be negative")
        if addon.id and addon.id in seen:
            errors.append(f"Duplicate add-on id '{addon.id}'")
        seen.add(addon.id)

    return errors


def ensure_valid_group(group: AddonGroup) -> AddonGroup:
    """Normalize, validate, and return the group to store."""
    group = normalize_group(group)
    errors = validate_group(group)
    if errors:
        raise InvalidConfiguration("Invalid add-on group configuration", errors)
    return group
