#!/usr/bin/env python
"""
Build pipeline - loads the seed catalog and runs the test suite.

Usage:
    python scripts/build_all.py
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from catalog_pricing.data.load_catalog import load_catalog


def main():
    print("=" * 60)
    print("CATALOG PRICING BUILD PIPELINE")
    print("=" * 60)
    print()

    # Load catalog
    print("[1/2] Loading seed catalog...")
    _, report = load_catalog(verbose=True)

    if report["status"] != "success":
        print("\n❌ BUILD FAILED")
        for error in report["errors"]:
            print(f"  {error}")
        sys.exit(1)

    print()
    print("[2/2] Running tests...")

    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-v', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    metrics = report['metrics']
    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Categories: {metrics['categories']}")
    print(f"  Subcategories: {metrics['subcategories']}")
    print(f"  Items: {metrics['items']} ({metrics['bookable_items']} bookable)")
    print(f"  Add-on groups: {metrics['addon_groups']}")
    if report["warnings"]:
        print(f"  Warnings: {len(report['warnings'])}")
    print()
    print("Pricing Types:")
    for pricing_type, count in metrics.get('by_pricing_type', {}).items():
        print(f"  {pricing_type}: {count}")


if __name__ == "__main__":
    main()
