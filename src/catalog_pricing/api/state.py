"""
Shared engine state for the API routers.

The catalog is loaded from the seed sheets on first use; reset() swaps in
another store (tests use this to start from a known catalog).
"""
from typing import Optional

from fastapi import HTTPException

from ..config.settings import get_settings
from ..data.catalog_store import CatalogStore
from ..data.load_catalog import load_catalog
from ..engine.errors import CatalogError
from ..engine.quote_engine import QuoteEngine
from ..services.booking_service import BookingService
from ..services.catalog_service import CatalogService


class EngineState:
    """Store plus the services built on it."""

    def __init__(self):
        self.store: Optional[CatalogStore] = None
        self.build_report: dict = {}

    def reset(self, store: Optional[CatalogStore] = None, build_report: Optional[dict] = None):
        settings = get_settings()
        if store is None:
            store, build_report = load_catalog(settings, verbose=False)

        self.store = store
        self.build_report = build_report or {}
        self.catalog = CatalogService(store)
        self.quotes = QuoteEngine(store, money_places=settings.money_places)
        self.bookings = BookingService(store, self.quotes)

    def ensure_loaded(self) -> 'EngineState':
        if self.store is None:
            self.reset()
        return self


engine_state = EngineState()


def get_state() -> EngineState:
    return engine_state.ensure_loaded()


def http_error(error: CatalogError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())
