import json
import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest

from catalog_pricing.config.settings import Settings
from catalog_pricing.data.load_catalog import SHEETS, load_catalog
from catalog_pricing.engine.models import AddonSelection, PricingType, TaxSource
from catalog_pricing.engine.quote_engine import QuoteEngine

SAMPLE_DIR = Path(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))) / 'catalog_data'


@pytest.fixture
def settings(tmp_path):
    return Settings(
        project_root=tmp_path,
        catalog_dir=SAMPLE_DIR,
        build_report=tmp_path / 'outputs' / 'build_report.json',
    )


def write_csv(directory: Path, name: str, rows: list[dict]):
    pd.DataFrame(rows).to_csv(directory / f"{name}.csv", index=False)


def test_sample_catalog_loads_cleanly(settings):
    store, report = load_catalog(settings, verbose=False)

    assert report["status"] == "success", report["errors"]
    assert report["metrics"]["items"] == 7
    assert report["metrics"]["by_pricing_type"]["STATIC"] == 3
    assert set(report["input_files"]) == set(SHEETS)
    assert store.get_item("item-tennis-court").pricing.pricing_type == PricingType.DYNAMIC


def test_report_written_as_json(settings):
    load_catalog(settings, verbose=False)

    with open(settings.build_report) as f:
        saved = json.load(f)
    assert saved["status"] == "success"
    assert len(saved["input_files"]["items"]["hash"]) == 12


def test_sample_catalog_quotes(settings):
    store, _ = load_catalog(settings, verbose=False)
    engine = QuoteEngine(store)

    massage = engine.quote("item-swedish-massage", 2, addons=[AddonSelection("grp-oil", ["oil-lavender"])])
    assert massage.final_price == Decimal("231.00")

    croissant = engine.quote("item-croissant", 3)
    assert croissant.tax.source == TaxSource.SUBCATEGORY
    assert croissant.final_price == Decimal("9.00")

    court = engine.quote("item-tennis-court", as_of=datetime(2026, 1, 14, 18, 30))
    assert court.pricing_details.rule_label == "Weekday Peak"
    assert court.final_price == Decimal("41.30")


def test_invalid_rows_reported_not_loaded(tmp_path):
    write_csv(tmp_path, "categories", [
        {"id": "cat-ok", "name": "Ok", "tax_applicable": "true", "tax_percentage": "10"},
        {"id": "cat-bad", "name": "Bad", "tax_applicable": "true", "tax_percentage": ""},
    ])
    write_csv(tmp_path, "items", [
        {"id": "item-ok", "name": "Widget", "category_id": "cat-ok", "pricing_type": "STATIC", "base_price": "5"},
        {"id": "item-lost", "name": "Lost", "subcategory_id": "sub-missing", "pricing_type": "STATIC", "base_price": "5"},
        {"id": "item-free", "name": "Free", "category_id": "cat-ok", "pricing_type": "BARTER"},
    ])
    settings = Settings(project_root=tmp_path, catalog_dir=tmp_path, build_report=tmp_path / 'report.json')

    store, report = load_catalog(settings, verbose=False)

    assert report["status"] == "partial"
    assert report["metrics"]["rejected_rows"] == 3
    assert list(store.items) == ["item-ok"]
    assert any("cat-bad" in e for e in report["errors"])
    assert any("sheet not found" in w for w in report["warnings"])


def test_missing_source_fails(tmp_path):
    settings = Settings(project_root=tmp_path, catalog_dir=tmp_path / 'nope', build_report=None)

    store, report = load_catalog(settings, verbose=False)

    assert report["status"] == "failed"
    assert store.items == {}


def test_workbook_source(tmp_path, settings):
    workbook = tmp_path / 'catalog.xlsx'
    with pd.ExcelWriter(workbook) as writer:
        for name in SHEETS:
            pd.read_csv(SAMPLE_DIR / f"{name}.csv", dtype=str, keep_default_na=False).to_excel(
                writer, sheet_name=name, index=False
            )

    store, report = load_catalog(settings, source=workbook, verbose=False)

    assert report["status"] == "success", report["errors"]
    assert "workbook" in report["input_files"]
    assert len(store.items) == 7
