"""
Error taxonomy for the catalog engine.

Every error is detected locally and propagated to the caller; the API layer
maps status_code onto the HTTP response.
"""
from typing import Optional


class CatalogError(Exception):
    """Base class for all catalog/pricing/booking errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        """JSON-safe detail payload."""
        return {"error": type(self).__name__, "message": self.message}


class NotFound(CatalogError):
    """A referenced entity does not exist."""

    status_code = 404

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind.capitalize()} '{entity_id}' not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidConfiguration(CatalogError):
    """Write-time validation failed."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["errors"] = list(self.errors)
        return detail


class SelectionViolation(CatalogError):
    """Add-on selection count outside the group's bounds."""


class AvailabilityViolation(CatalogError):
    """Requested interval cannot be booked on this item."""


class SchedulingConflict(CatalogError):
    """Requested interval overlaps active bookings."""

    status_code = 409

    def __init__(self, message: str, conflicts: Optional[list] = None):
        super().__init__(message)
        self.conflicts = conflicts or []

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["conflicts"] = [
            {
                "id": b.id,
                "booking_date": b.booking_date.isoformat(),
                "start_time": b.start_time,
                "end_time": b.end_time,
                "customer_name": b.customer_name,
            }
            for b in self.conflicts
        ]
        return detail


class InactiveEntity(CatalogError):
    """Operation targets a soft-deleted entity."""


class InvalidOperation(CatalogError):
    """Operation not allowed in the entity's current state."""
