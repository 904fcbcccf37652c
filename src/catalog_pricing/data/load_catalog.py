"""
Catalog Loader - Builds an in-memory catalog from seed sheets.

Reads one CSV per sheet from a directory, or the same sheets from an .xlsx
workbook:
- categories, subcategories
- addon_groups, addons
- items, tiers, dynamic_rules, availability_slots

Every row goes through CatalogService so write-time validation applies.
Rows that fail are reported, not loaded. A JSON build report with file
hashes, counts, warnings and errors is written to Settings.build_report.
"""
import hashlib
import json
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import Settings, get_settings
from .catalog_store import CatalogStore
from ..engine.errors import CatalogError
from ..engine.models import (
    Addon,
    AddonGroup,
    AddonRequirement,
    AvailabilitySlot,
    Category,
    Discount,
    DiscountType,
    DynamicRule,
    Item,
    SelectionType,
    Subcategory,
    TaxSetting,
    Tier,
)
from ..engine.pricing_engine import build_pricing_config
from ..services.catalog_service import CatalogService


SHEETS = [
    'categories',
    'subcategories',
    'addon_groups',
    'addons',
    'items',
    'tiers',
    'dynamic_rules',
    'availability_slots',
]
REQUIRED_SHEETS = {'categories', 'items'}

# Row parse failures are reported alongside validation failures
ROW_ERRORS = (CatalogError, ValueError, ArithmeticError)


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


# -- Cell helpers --

def _text(row, column: str) -> Optional[str]:
    value = str(row.get(column, '') or '').strip()
    return value or None


def _decimal(row, column: str) -> Optional[Decimal]:
    value = _text(row, column)
    return Decimal(value) if value is not None else None


def _int(row, column: str, default: Optional[int] = None) -> Optional[int]:
    value = _text(row, column)
    return int(float(value)) if value is not None else default


def _flag(row, column: str) -> Optional[bool]:
    """Blank means unset."""
    value = _text(row, column)
    if value is None:
        return None
    return value.lower() in ('true', 'yes', 'y', '1')


def _list(row, column: str) -> list[str]:
    value = _text(row, column)
    return [part.strip() for part in value.split(';') if part.strip()] if value else []


def _tax(row) -> TaxSetting:
    return TaxSetting.from_flag(_flag(row, 'tax_applicable'), _decimal(row, 'tax_percentage'))


# -- Sheet readers --

def read_sheets(source: Path) -> tuple[dict, dict]:
    """
    Read every known sheet from a directory of CSVs or an .xlsx workbook.

    Returns:
        (frames keyed by sheet name, input file info keyed by sheet name)
    """
    frames = {}
    inputs = {}

    if source.suffix.lower() in ('.xlsx', '.xls'):
        book = pd.read_excel(source, sheet_name=None, dtype=str)
        inputs['workbook'] = {"path": str(source), "hash": get_file_hash(source)}
        for name in SHEETS:
            if name in book:
                frames[name] = book[name].fillna('')
        return frames, inputs

    for name in SHEETS:
        path = source / f"{name}.csv"
        if not path.exists():
            continue
        frames[name] = pd.read_csv(path, dtype=str, keep_default_na=False)
        inputs[name] = {"path": str(path), "hash": get_file_hash(path)}

    return frames, inputs


def _rows(frames: dict, name: str) -> list[dict]:
    frame = frames.get(name)
    if frame is None:
        return []
    frame = frame.rename(columns=lambda c: str(c).strip())
    return frame.to_dict(orient='records')


def _group_by(rows: list[dict], key: str) -> dict:
    grouped = defaultdict(list)
    for row in rows:
        grouped[_text(row, key)].append(row)
    return grouped


def _build_pricing(row, tiers: list[dict], rules: list[dict]):
    discount = None
    if _text(row, 'discount_type'):
        discount = Discount(
            discount_type=DiscountType(_text(row, 'discount_type').upper()),
            value=_decimal(row, 'discount_value') or Decimal("0"),
        )

    return build_pricing_config(
        _text(row, 'pricing_type') or 'STATIC',
        base_price=_decimal(row, 'base_price'),
        default_price=_decimal(row, 'default_price'),
        discount=discount,
        tiers=[
            Tier(_int(t, 'min_quantity', 0), _int(t, 'max_quantity', 0), _decimal(t, 'price'))
            for t in tiers
        ],
        rules=[
            DynamicRule(
                name=_text(r, 'name') or 'Rule',
                start_time=_text(r, 'start_time'),
                end_time=_text(r, 'end_time'),
                price=_decimal(r, 'price'),
                days=[int(d) for d in _list(r, 'days')],
                priority=_int(r, 'priority', 0),
            )
            for r in rules
        ],
    )


def load_catalog(
    settings: Optional[Settings] = None,
    source: Optional[Path] = None,
    verbose: bool = True,
) -> tuple[CatalogStore, dict]:
    """
    Build a catalog store from seed sheets.

    Args:
        settings: Optional settings override
        source: Directory of CSVs or .xlsx workbook; defaults to the configured workbook, then catalog_dir
        verbose: Print progress messages

    Returns:
        (store, build report dictionary)
    """
    settings = settings or get_settings()
    source = Path(source) if source else (settings.catalog_workbook or settings.catalog_dir)

    store = CatalogStore()
    service = CatalogService(store)

    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "source": str(source),
        "input_files": {},
        "metrics": {},
        "warnings": [],
        "errors": []
    }

    if not source.exists():
        msg = f"CRITICAL ERROR: {source} not found."
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        _write_report(report, settings, verbose)
        return store, report

    try:
        frames, report["input_files"] = read_sheets(source)
    except (OSError, ValueError) as e:
        msg = f"ERROR: Failed to read {source}. {e}"
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        _write_report(report, settings, verbose)
        return store, report

    for name in SHEETS:
        if name not in frames:
            msg = f"WARNING: {name} sheet not found"
            if name in REQUIRED_SHEETS:
                report["errors"].append(msg)
            else:
                report["warnings"].append(msg)
            if verbose:
                print(msg)

    rejected = []

    def reject(sheet: str, index: int, row: dict, error: Exception):
        entity = _text(row, 'id') or _text(row, 'name') or f"row {index + 2}"
        msg = f"ERROR: {sheet} {entity}: {error}"
        if isinstance(error, CatalogError) and getattr(error, 'errors', None):
            msg += f" ({'; '.join(error.errors)})"
        rejected.append(entity)
        report["errors"].append(msg)
        if verbose:
            print(msg)

    # Categories
    for i, row in enumerate(_rows(frames, 'categories')):
        try:
            service.create_category(Category(
                id=_text(row, 'id') or '',
                name=_text(row, 'name') or '',
                tax=_tax(row),
                display_order=_int(row, 'display_order', 0),
                description=_text(row, 'description'),
            ))
        except ROW_ERRORS as e:
            reject('categories', i, row, e)

    # Subcategories
    for i, row in enumerate(_rows(frames, 'subcategories')):
        try:
            service.create_subcategory(Subcategory(
                id=_text(row, 'id') or '',
                category_id=_text(row, 'category_id'),
                name=_text(row, 'name') or '',
                tax=_tax(row),
                display_order=_int(row, 'display_order', 0),
                description=_text(row, 'description'),
            ))
        except ROW_ERRORS as e:
            reject('subcategories', i, row, e)

    # Add-on groups with their add-ons
    addons_by_group = _group_by(_rows(frames, 'addons'), 'group_id')
    for i, row in enumerate(_rows(frames, 'addon_groups')):
        try:
            group_id = _text(row, 'id') or ''
            service.create_addon_group(AddonGroup(
                id=group_id,
                name=_text(row, 'name') or '',
                addons=[
                    Addon(
                        id=_text(a, 'id') or '',
                        name=_text(a, 'name') or '',
                        price=_decimal(a, 'price') or Decimal("0"),
                        is_active=_flag(a, 'is_active') is not False,
                        description=_text(a, 'description'),
                    )
                    for a in addons_by_group.pop(group_id, [])
                ],
                selection_type=SelectionType((_text(row, 'selection_type') or 'SINGLE').upper()),
                requirement=AddonRequirement((_text(row, 'requirement') or 'OPTIONAL').upper()),
                min_selections=_int(row, 'min_selections', 0),
                max_selections=_int(row, 'max_selections', 1),
                display_order=_int(row, 'display_order', 0),
                description=_text(row, 'description'),
            ))
        except ROW_ERRORS as e:
            reject('addon_groups', i, row, e)

    for group_id in addons_by_group:
        report["warnings"].append(f"WARNING: add-ons reference unknown group '{group_id}'")

    # Items with tiers, dynamic rules and slots
    tiers_by_item = _group_by(_rows(frames, 'tiers'), 'item_id')
    rules_by_item = _group_by(_rows(frames, 'dynamic_rules'), 'item_id')
    slots_by_item = _group_by(_rows(frames, 'availability_slots'), 'item_id')

    for i, row in enumerate(_rows(frames, 'items')):
        item_id = _text(row, 'id') or ''
        try:
            service.create_item(Item(
                id=item_id,
                name=_text(row, 'name') or '',
                pricing=_build_pricing(row, tiers_by_item.get(item_id, []), rules_by_item.get(item_id, [])),
                category_id=_text(row, 'category_id'),
                subcategory_id=_text(row, 'subcategory_id'),
                tax=_tax(row),
                addon_group_ids=_list(row, 'addon_group_ids'),
                is_bookable=bool(_flag(row, 'is_bookable')),
                availability_slots=[
                    AvailabilitySlot(
                        day=_int(s, 'day'),
                        start_time=_text(s, 'start_time'),
                        end_time=_text(s, 'end_time'),
                        max_bookings=_int(s, 'max_bookings', 1),
                    )
                    for s in slots_by_item.get(item_id, [])
                ],
                booking_duration_minutes=_int(row, 'booking_duration_minutes', settings.default_booking_duration),
                display_order=_int(row, 'display_order', 0),
                description=_text(row, 'description'),
                tags=_list(row, 'tags'),
            ))
        except ROW_ERRORS as e:
            reject('items', i, row, e)

    stats = service.get_stats()
    report["metrics"] = {
        "categories": stats['categories'],
        "subcategories": stats['subcategories'],
        "addon_groups": stats['addon_groups'],
        "items": stats['items'],
        "bookable_items": stats['bookable_items'],
        "by_pricing_type": stats['by_pricing_type'],
        "rejected_rows": len(rejected),
    }

    if not report["errors"]:
        report["status"] = "success"
    elif stats['items']:
        report["status"] = "partial"
    else:
        report["status"] = "failed"

    if verbose:
        print(f"\nLOAD COMPLETE: {stats['items']} items in {stats['categories']} categories ({report['status']}).")

    _write_report(report, settings, verbose)
    return store, report


def _write_report(report: dict, settings: Settings, verbose: bool):
    report_path = settings.build_report
    if report_path is None:
        return
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w') as f:
        json.dump(report, f, indent=2)

    if verbose:
        print(f"Build report saved to: {report_path}")


if __name__ == "__main__":
    load_catalog()
