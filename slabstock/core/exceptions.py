"""
Domain exceptions for the slab inventory engine.

Every error carries a stable ``code`` and a ``details`` mapping so callers
(HTTP handlers, job runners) can map them without string matching.
"""

from typing import Any


class SlabstockError(Exception):
    """Base exception for all slabstock errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(SlabstockError):
    """Base exception for storage operations."""

    pass


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class TransactionRequiredError(StorageError):
    """A locking operation was invoked without an open transaction."""

    def __init__(self, operation: str):
        super().__init__(
            f"{operation} requires an open transaction",
            code="TRANSACTION_REQUIRED",
            details={"operation": operation},
        )


# Not Found Exceptions
class NotFoundError(SlabstockError):
    """Referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            code="NOT_FOUND",
            details={"entity": entity, "id": entity_id},
        )


class BatchNotFoundError(NotFoundError):
    """Batch not found."""

    def __init__(self, batch_id: str):
        super().__init__("Batch", batch_id)
        self.code = "BATCH_NOT_FOUND"


class ReservationNotFoundError(NotFoundError):
    """Reservation not found."""

    def __init__(self, reservation_id: str):
        super().__init__("Reservation", reservation_id)
        self.code = "RESERVATION_NOT_FOUND"


class SaleNotFoundError(NotFoundError):
    """Sale not found."""

    def __init__(self, sale_id: str):
        super().__init__("Sale", sale_id)
        self.code = "SALE_NOT_FOUND"


class LeadNotFoundError(NotFoundError):
    """Lead not found."""

    def __init__(self, lead_id: str):
        super().__init__("Lead", lead_id)
        self.code = "LEAD_NOT_FOUND"


# Validation Exceptions
class ValidationError(SlabstockError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class InvalidPriceError(ValidationError):
    """Sale price is below the industry floor."""

    def __init__(self, sale_price: float, floor: float):
        super().__init__(
            field="final_sold_price",
            message=f"Sale price {sale_price:.2f} is below industry price {floor:.2f}",
            value=sale_price,
        )
        self.code = "INVALID_PRICE"
        self.details.update({"sale_price": sale_price, "floor": floor})


class InvalidSlabQuantityError(ValidationError):
    """Slab adjustment would break 0 <= available_slabs <= quantity_slabs."""

    def __init__(self, batch_id: str, requested: int, available: int, total: int):
        super().__init__(
            field="available_slabs",
            message=(
                f"Adjustment of {requested} slabs is out of range "
                f"(available={available}, total={total})"
            ),
            value=requested,
        )
        self.code = "INVALID_SLAB_QUANTITY"
        self.details.update(
            {
                "batch_id": batch_id,
                "requested": requested,
                "available": available,
                "total": total,
            }
        )


class DuplicateBatchCodeError(ValidationError):
    """Batch code already registered for the industry."""

    def __init__(self, industry_id: str, batch_code: str):
        super().__init__(
            field="batch_code",
            message=f"Batch code {batch_code} already exists",
            value=batch_code,
        )
        self.code = "DUPLICATE_BATCH_CODE"
        self.details["industry_id"] = industry_id


# Conflict Exceptions
class ConflictError(SlabstockError):
    """Operation conflicts with current inventory state."""

    pass


class BatchNotAvailableError(ConflictError):
    """Batch failed the availability check under lock."""

    def __init__(self, batch_id: str, status: str | None = None):
        super().__init__(
            f"Batch {batch_id} is not available for reservation",
            code="BATCH_NOT_AVAILABLE",
            details={"batch_id": batch_id, "status": status},
        )


class ReservationExpiredError(ConflictError):
    """Reservation is past its expiry and cannot be confirmed."""

    def __init__(self, reservation_id: str, expires_at: str):
        super().__init__(
            f"Reservation {reservation_id} expired at {expires_at}",
            code="RESERVATION_EXPIRED",
            details={"reservation_id": reservation_id, "expires_at": expires_at},
        )


class ReservationNotActiveError(ConflictError):
    """Reservation is no longer ACTIVE."""

    def __init__(self, reservation_id: str, status: str):
        super().__init__(
            f"Reservation {reservation_id} is not active (status: {status})",
            code="RESERVATION_NOT_ACTIVE",
            details={"reservation_id": reservation_id, "status": status},
        )


class InvalidStatusTransitionError(ConflictError):
    """Requested status transition is not part of the lifecycle."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Invalid {entity} status transition: {current} -> {target}",
            code="INVALID_STATUS_TRANSITION",
            details={"entity": entity, "current": current, "target": target},
        )


class BatchInUseError(ConflictError):
    """Batch is referenced by reservations or sales and cannot be deleted."""

    def __init__(self, batch_id: str, reason: str):
        super().__init__(
            f"Batch {batch_id} cannot be removed: {reason}",
            code="BATCH_IN_USE",
            details={"batch_id": batch_id, "reason": reason},
        )


class ConfigurationError(SlabstockError):
    """Configuration error."""

    pass
