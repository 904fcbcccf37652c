"""Engine subpackage - pricing, add-on, availability and quote logic."""
from .pricing_engine import PricingEngine
from .quote_engine import QuoteEngine
from .models import AddonSelection, Item, Quote

__all__ = ['PricingEngine', 'QuoteEngine', 'AddonSelection', 'Item', 'Quote']
