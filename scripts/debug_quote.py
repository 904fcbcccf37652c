import sys
from datetime import datetime
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from catalog_pricing.data.load_catalog import load_catalog
from catalog_pricing.engine import AddonSelection, QuoteEngine


def show(engine, item_id, quantity=1, as_of=None, addons=()):
    quote = engine.quote(item_id, quantity=quantity, as_of=as_of, addons=addons)
    print(f"\n--- {quote.item_name} x{quantity} ---")
    print(quote.get_trace_text())
    print("Tax resolution:")
    for step in quote.tax.trace:
        print(f"  {step.step}: {step.description}")


def debug():
    store, report = load_catalog(verbose=False)
    print(f"Catalog: {report['status']} ({report['metrics'].get('items', 0)} items)")

    engine = QuoteEngine(store)

    # Static with a mandatory oil and 5% tax from the Spa category
    show(engine, "item-swedish-massage", quantity=2,
         addons=[AddonSelection("grp-oil", ["oil-lavender"])])

    # Tier boundaries
    for qty in (9, 10, 120):
        show(engine, "item-coffee-beans", quantity=qty)

    # Discount in a tax-exempt subcategory
    show(engine, "item-croissant", quantity=3)

    # Dynamic pricing across the day (2026-01-14 is a Wednesday)
    for moment in ("2026-01-14 12:00", "2026-01-14 18:30", "2026-01-14 23:30", "2026-01-17 10:00"):
        show(engine, "item-tennis-court", as_of=datetime.strptime(moment, "%Y-%m-%d %H:%M"))


if __name__ == "__main__":
    debug()
