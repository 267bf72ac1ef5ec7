"""Domain error to HTTP mapping"""
from fastapi import HTTPException, status

from domain.errors import BookingError, ErrorCategory, ErrorCode

_STATUS_BY_CODE = {
    ErrorCode.RESERVATION_NOT_OWNED: status.HTTP_403_FORBIDDEN,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.ALREADY_TERMINAL: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.ROOM_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.ROOM_CODE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.PAYMENT_ALREADY_PROCESSED: status.HTTP_409_CONFLICT,
}

_STATUS_BY_CATEGORY = {
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.STORAGE: status.HTTP_502_BAD_GATEWAY,
    ErrorCategory.COMPENSATION: status.HTTP_502_BAD_GATEWAY,
}


def status_for(exc: BookingError) -> int:
    if exc.code in _STATUS_BY_CODE:
        return _STATUS_BY_CODE[exc.code]
    return _STATUS_BY_CATEGORY.get(exc.category, status.HTTP_400_BAD_REQUEST)


def to_http_exception(exc: BookingError) -> HTTPException:
    return HTTPException(
        status_code=status_for(exc),
        detail={"code": exc.code.value, "message": exc.message}
    )
