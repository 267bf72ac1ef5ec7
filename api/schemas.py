"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import Any, Dict, List, Optional

from domain.enums import DiscountType, PaymentMethod, PaymentStatus, ReservationStatus, RoomStatus, UserRole
from domain.value_objects import to_calendar_date


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    code: str
    type: str
    description: Optional[str] = None
    capacity: int
    price_per_night: Decimal
    status: str
    services: Dict[str, bool] = {}
    images: List[str] = []


class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    code: str = Field(min_length=1)
    type: str
    description: Optional[str] = None
    capacity: int = Field(ge=1)
    price_per_night: Decimal = Field(gt=0)
    status: RoomStatus = RoomStatus.AVAILABLE
    services: Dict[str, bool] = {}
    images: List[str] = []


class UpdateRoomRequest(BaseModel):
    """Update room request DTO"""
    code: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    price_per_night: Optional[Decimal] = Field(None, gt=0)
    services: Optional[Dict[str, bool]] = None
    images: Optional[List[str]] = None


class UpdateRoomStatusRequest(BaseModel):
    """Update room status request DTO"""
    status: RoomStatus


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    available: bool


class AddOnServiceResponse(BaseModel):
    """Add-on service response DTO"""
    service_id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    icon: Optional[str] = None


# ============================================================================
# DISCOUNT SCHEMAS
# ============================================================================

class DiscountResponse(BaseModel):
    """Discount response DTO"""
    discount_id: UUID
    code: str
    description: Optional[str] = None
    type: DiscountType
    value: Decimal
    min_nights: int
    valid_until: Optional[date] = None


class ApplicableDiscountsResponse(BaseModel):
    """Applicable discounts response DTO"""
    discounts: List[DiscountResponse]
    is_first_reservation: bool


class CalculateDiscountRequest(BaseModel):
    """Calculate discount request DTO"""
    discount_id: UUID
    subtotal: Decimal = Field(ge=0)


class CalculateDiscountResponse(BaseModel):
    """Calculate discount response DTO"""
    discount: DiscountResponse
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class ServiceLineRequest(BaseModel):
    """Add-on service line request DTO"""
    service_id: UUID
    quantity: int = Field(ge=1, default=1)


class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    guests: int = Field(ge=1, le=10)
    guest_details: Dict[str, Any] = {}
    services: List[ServiceLineRequest] = []
    discount_id: Optional[UUID] = None

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def strip_time(cls, v):
        # clients may send full ISO timestamps; only the calendar date counts
        return to_calendar_date(v)


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: Optional[str] = None


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    user_id: UUID
    room_id: UUID
    check_in: date
    check_out: date
    nights: int
    guests: int
    guest_details: Dict[str, Any] = {}
    total_amount: Decimal
    currency: str
    status: ReservationStatus
    locked_until: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    version: int


class ReservationServiceResponse(BaseModel):
    """Reservation service line response DTO"""
    line_id: UUID
    service_id: UUID
    quantity: int
    subtotal: Decimal


class DiscountApplicationResponse(BaseModel):
    """Discount application response DTO"""
    application_id: UUID
    discount_id: UUID
    discount_amount: Decimal
    created_at: datetime


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================

class CardDataRequest(BaseModel):
    """Masked card details DTO"""
    masked_pan: str = Field(min_length=4)
    expiry: str


class InitiatePaymentRequest(BaseModel):
    """Initiate payment request DTO"""
    reservation_id: UUID
    method: PaymentMethod
    card_data: Optional[CardDataRequest] = None

    @model_validator(mode="after")
    def card_data_required_for_card(self):
        if self.method == PaymentMethod.CARD and self.card_data is None:
            raise ValueError("card_data is required for card payments")
        return self


class InitiatePaymentResponse(BaseModel):
    """Initiate payment response DTO"""
    payment_id: UUID
    transaction_ref: str
    reused: bool


class PaymentResponse(BaseModel):
    """Payment response DTO"""
    payment_id: UUID
    reservation_id: UUID
    method: PaymentMethod
    amount: Decimal
    currency: str
    status: PaymentStatus
    transaction_ref: str
    authorization_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PaymentStatusResponse(BaseModel):
    """Payment with its reservation DTO"""
    payment: PaymentResponse
    reservation: Optional[ReservationResponse] = None


class SettlementCallbackRequest(BaseModel):
    """Settlement outcome posted by a processor"""
    success: bool
    authorization_code: Optional[str] = None
    error_message: Optional[str] = None


class PaymentProcessResponse(BaseModel):
    """Settlement result DTO"""
    success: bool
    payment_id: UUID
    reservation_id: UUID
    status: PaymentStatus
    message: str
    transaction_ref: str
    authorization_code: Optional[str] = None
    error: Optional[str] = None


class EligibilityResponse(BaseModel):
    """Payment eligibility DTO"""
    eligible: bool
    reason: Optional[str] = None
    message: Optional[str] = None


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================

class DashboardStatsResponse(BaseModel):
    """Dashboard stats DTO"""
    total_reservations: int
    pending_payments: int
    check_ins_today: int
    total_rooms: int
    available_rooms: int


class ReleasedHoldsResponse(BaseModel):
    """Released holds DTO"""
    released: int
    reservation_ids: List[UUID]


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole
    disabled: bool
