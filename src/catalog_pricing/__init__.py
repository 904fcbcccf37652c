"""
Catalog Pricing Package

Rules-evaluation core for a bookable catalog.
Resolves Category → Subcategory → Item tax inheritance, prices items with
one of five pricing strategies plus add-ons, and checks reservations
against weekly availability slots.
"""

__version__ = "1.0.0"
