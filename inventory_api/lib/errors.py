"""
Inventory error taxonomy.

Raised by the unit store, the mutation gateway and the sales feed client.
Routes translate these into HTTP responses through the handler registered
in main.py.
"""
from typing import Optional
from uuid import UUID

from fastapi import Request, status
from fastapi.responses import JSONResponse


class InventoryError(Exception):
    """Base class for unit inventory errors."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "inventory_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnitValidationError(InventoryError):
    """Malformed mutation input, rejected before write."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class UnitNotFoundError(InventoryError):
    """Mutation or lookup targets a unit id that does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, unit_id: UUID):
        super().__init__(f"Unit {unit_id} not found")
        self.unit_id = unit_id


class InvalidTransitionError(InventoryError):
    """Requested status change is not allowed from the unit's current status."""
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class MutationConflictError(InventoryError):
    """Update rejected because updated_at on the server differs from the value the client last read."""
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class FeedUnavailableError(InventoryError):
    """External sales feed could not be fetched or parsed."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "feed_unavailable"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = status_code


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )
