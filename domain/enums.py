"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    YAPE = "yape"
    CARD = "card"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    CLEANING = "cleaning"


class UserRole(str, Enum):
    GUEST = "guest"
    RECEPTIONIST = "receptionist"
    ADMIN = "admin"


class DiscountPolicy(str, Enum):
    """What to do with a discount that resolves but is not eligible"""
    IGNORE = "ignore"
    REJECT = "reject"


class HoldReleaseMode(str, Enum):
    LAZY = "lazy"
    EAGER = "eager"
