"""Domain Errors

Every failure the booking core can report carries a stable ``ErrorCode``.
The API layer maps codes to transport status; the services never know about
HTTP.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    # Lookup
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    RESERVATION_NOT_FOUND = "RESERVATION_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    DISCOUNT_NOT_FOUND = "DISCOUNT_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"

    # Eligibility
    RESERVATION_NOT_OWNED = "RESERVATION_NOT_OWNED"
    INVALID_STATUS = "INVALID_STATUS"
    PAYMENT_ALREADY_COMPLETED = "PAYMENT_ALREADY_COMPLETED"
    RESERVATION_EXPIRED = "RESERVATION_EXPIRED"
    DISCOUNT_NOT_APPLICABLE = "DISCOUNT_NOT_APPLICABLE"

    # Access / state
    FORBIDDEN = "FORBIDDEN"
    ALREADY_TERMINAL = "ALREADY_TERMINAL"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ROOM_UNAVAILABLE = "ROOM_UNAVAILABLE"
    ROOM_CODE_CONFLICT = "ROOM_CODE_CONFLICT"
    PAYMENT_ALREADY_PROCESSED = "PAYMENT_ALREADY_PROCESSED"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"

    # Storage
    PAYMENT_CREATION_FAILED = "PAYMENT_CREATION_FAILED"
    PAYMENT_UPDATE_FAILED = "PAYMENT_UPDATE_FAILED"
    RESERVATION_UPDATE_FAILED = "RESERVATION_UPDATE_FAILED"
    RESERVATION_CREATION_FAILED = "RESERVATION_CREATION_FAILED"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    ELIGIBILITY = "eligibility"
    CONFLICT = "conflict"
    STORAGE = "storage"
    COMPENSATION = "compensation"


class RepositoryError(Exception):
    """Raised by repositories when the backing store rejects a read or write"""


class BookingError(Exception):
    """Base class for every error the booking core reports to its callers"""

    code: ErrorCode = ErrorCode.INVALID_STATUS
    category: ErrorCategory = ErrorCategory.VALIDATION
    default_message: str = "Booking operation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


# ==================== NOT FOUND ====================

class RoomNotFoundError(BookingError):
    code = ErrorCode.ROOM_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    default_message = "Room not found"


class ReservationNotFoundError(BookingError):
    code = ErrorCode.RESERVATION_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    default_message = "Reservation not found"


class PaymentNotFoundError(BookingError):
    code = ErrorCode.PAYMENT_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    default_message = "Payment not found"


class DiscountNotFoundError(BookingError):
    code = ErrorCode.DISCOUNT_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    default_message = "Discount not found"


class ServiceNotFoundError(BookingError):
    code = ErrorCode.SERVICE_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    default_message = "Add-on service not found"


# ==================== ELIGIBILITY ====================

class ReservationNotOwnedError(BookingError):
    code = ErrorCode.RESERVATION_NOT_OWNED
    category = ErrorCategory.ELIGIBILITY
    default_message = "Reservation belongs to another user"


class InvalidStatusError(BookingError):
    code = ErrorCode.INVALID_STATUS
    category = ErrorCategory.ELIGIBILITY
    default_message = "Reservation is not awaiting payment"


class AlreadyCompletedError(BookingError):
    code = ErrorCode.PAYMENT_ALREADY_COMPLETED
    category = ErrorCategory.ELIGIBILITY
    default_message = "Reservation already has a successful payment"


class ReservationExpiredError(BookingError):
    code = ErrorCode.RESERVATION_EXPIRED
    category = ErrorCategory.ELIGIBILITY
    default_message = "Reservation hold has expired"


class DiscountNotApplicableError(BookingError):
    code = ErrorCode.DISCOUNT_NOT_APPLICABLE
    category = ErrorCategory.ELIGIBILITY
    default_message = "Discount is not applicable to this reservation"


# ==================== ACCESS / STATE ====================

class ForbiddenError(BookingError):
    code = ErrorCode.FORBIDDEN
    category = ErrorCategory.ELIGIBILITY
    default_message = "Access denied"


class AlreadyTerminalError(BookingError):
    code = ErrorCode.ALREADY_TERMINAL
    category = ErrorCategory.CONFLICT
    default_message = "Reservation is already completed or cancelled"


class InvalidTransitionError(BookingError):
    code = ErrorCode.INVALID_TRANSITION
    category = ErrorCategory.CONFLICT
    default_message = "Status transition not allowed"


class RoomUnavailableError(BookingError):
    code = ErrorCode.ROOM_UNAVAILABLE
    category = ErrorCategory.CONFLICT
    default_message = "Room is not available for the selected dates"


class RoomCodeConflictError(BookingError):
    code = ErrorCode.ROOM_CODE_CONFLICT
    category = ErrorCategory.CONFLICT
    default_message = "A room with that code already exists"


class PaymentAlreadyProcessedError(BookingError):
    code = ErrorCode.PAYMENT_ALREADY_PROCESSED
    category = ErrorCategory.CONFLICT
    default_message = "Payment was already processed"


# ==================== STORAGE ====================

class PaymentCreationFailedError(BookingError):
    code = ErrorCode.PAYMENT_CREATION_FAILED
    category = ErrorCategory.STORAGE
    default_message = "Could not create the payment record"


class PaymentUpdateFailedError(BookingError):
    code = ErrorCode.PAYMENT_UPDATE_FAILED
    category = ErrorCategory.STORAGE
    default_message = "Could not update the payment record"


class ReservationCreationFailedError(BookingError):
    code = ErrorCode.RESERVATION_CREATION_FAILED
    category = ErrorCategory.STORAGE
    default_message = "Could not create the reservation"


class ReservationUpdateFailedError(BookingError):
    """Raised after the payment was compensated back to ``failed``"""
    code = ErrorCode.RESERVATION_UPDATE_FAILED
    category = ErrorCategory.COMPENSATION
    default_message = "Could not confirm the reservation; payment was rolled back"
