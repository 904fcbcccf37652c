"""
Booking API - FastAPI router for reservations.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.encoders import jsonable_encoder

from ..engine.errors import CatalogError
from ..services.booking_service import BookingRequest
from .schemas import BookingCreate, BookingUpdate, CancelRequest, ConflictCheckRequest
from .state import get_state, http_error

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("")
async def create_booking(data: BookingCreate):
    """Check slot and conflicts, quote, and confirm a booking."""
    try:
        request = BookingRequest(
            addons=[a.to_domain() for a in data.addons],
            **data.model_dump(exclude={'addons'}),
        )
        return jsonable_encoder(get_state().bookings.create_booking(request))
    except CatalogError as e:
        raise http_error(e)


@router.get("/upcoming")
async def upcoming_bookings(item_id: Optional[str] = None, days: int = 7):
    return jsonable_encoder(get_state().bookings.upcoming_bookings(item_id=item_id, days=days))


@router.get("/customers/{customer_email}")
async def customer_history(customer_email: str):
    return jsonable_encoder(get_state().bookings.customer_history(customer_email))


@router.post("/conflicts")
async def check_conflicts(req: ConflictCheckRequest):
    """Active bookings that overlap the requested interval."""
    try:
        conflicts = get_state().bookings.check_conflicts(
            req.item_id, req.booking_date, req.start_time, req.end_time, req.exclude_booking_id,
        )
        return {
            "has_conflicts": bool(conflicts),
            "conflicts": jsonable_encoder(conflicts),
        }
    except CatalogError as e:
        raise http_error(e)


@router.get("/items/{item_id}/slots")
async def available_slots(item_id: str, booking_date: date = Query(..., alias="date")):
    try:
        return jsonable_encoder(get_state().bookings.available_slots(item_id, booking_date))
    except CatalogError as e:
        raise http_error(e)


@router.get("/items/{item_id}")
async def bookings_for_date(item_id: str, booking_date: date = Query(..., alias="date")):
    try:
        return jsonable_encoder(get_state().bookings.bookings_for_date(item_id, booking_date))
    except CatalogError as e:
        raise http_error(e)


@router.get("/{booking_id}")
async def get_booking(booking_id: str):
    try:
        return jsonable_encoder(get_state().bookings.get_booking(booking_id))
    except CatalogError as e:
        raise http_error(e)


@router.put("/{booking_id}")
async def update_booking(booking_id: str, updates: BookingUpdate):
    try:
        return jsonable_encoder(get_state().bookings.update_booking(booking_id, updates.to_updates()))
    except CatalogError as e:
        raise http_error(e)


@router.post("/{booking_id}/cancel")
async def cancel_booking(booking_id: str, req: Optional[CancelRequest] = None):
    try:
        reason = req.reason if req else None
        return jsonable_encoder(get_state().bookings.cancel_booking(booking_id, reason))
    except CatalogError as e:
        raise http_error(e)


@router.post("/{booking_id}/complete")
async def complete_booking(booking_id: str):
    try:
        return jsonable_encoder(get_state().bookings.complete_booking(booking_id))
    except CatalogError as e:
        raise http_error(e)
