from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config.settings import get_settings
from .booking_api import router as booking_router
from .catalog_api import router as catalog_router
from .state import get_state

app = FastAPI(
    title="Catalog Pricing API",
    description="Catalog management, price quotes and bookings",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(booking_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Catalog Pricing API Active"}


@app.get("/system/status")
async def get_status():
    settings = get_settings()
    state = get_state()
    report_path = settings.build_report
    has_report = report_path is not None and report_path.exists()
    return {
        "engine_active": True,
        "catalog_status": state.build_report.get("status"),
        "stats": state.catalog.get_stats(),
        "bookings_count": len(state.store.bookings),
        "catalog_last_build": report_path.stat().st_mtime if has_report else None
    }
