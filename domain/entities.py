"""Domain Entities - Aggregates"""
import random
import string
import time
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from domain.enums import DiscountType, PaymentMethod, PaymentStatus, ReservationStatus, RoomStatus
from domain.errors import InvalidTransitionError
from domain.value_objects import DateRange

CENTS = Decimal("0.01")

RESERVATION_TRANSITIONS = {
    ReservationStatus.PENDING_PAYMENT: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
        ReservationStatus.COMPLETED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CANCELLED,
        ReservationStatus.COMPLETED,
    }),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Room(BaseModel):
    """Room Aggregate Root Entity"""
    model_config = ConfigDict(from_attributes=True)

    room_id: UUID = Field(default_factory=uuid4)
    code: str
    type: str
    description: Optional[str] = None
    capacity: int = Field(ge=1)
    price_per_night: Decimal = Field(gt=0)
    status: RoomStatus = RoomStatus.AVAILABLE
    services: Dict[str, bool] = Field(default_factory=dict)
    images: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    def has_services(self, names: List[str]) -> bool:
        return all(self.services.get(name) for name in names)


class AddOnService(BaseModel):
    """Catalog entry for an extra sold with a stay (breakfast, parking...)"""
    model_config = ConfigDict(from_attributes=True)

    service_id: UUID = Field(default_factory=uuid4)
    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    icon: Optional[str] = None
    is_active: bool = True


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity

    Status moves along a fixed table; ``locked_until`` is only ever set
    while the reservation is ``pending_payment``.
    """
    model_config = ConfigDict(from_attributes=True)

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References
    user_id: UUID
    room_id: UUID

    # Stay
    date_range: DateRange
    guests: int = Field(ge=1)
    guest_details: Dict[str, Any] = Field(default_factory=dict)
    total_amount: Decimal = Field(ge=0)

    # Status
    status: ReservationStatus = ReservationStatus.PENDING_PAYMENT
    locked_until: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        user_id: UUID,
        room_id: UUID,
        date_range: DateRange,
        guests: int,
        total_amount: Decimal,
        hold_minutes: int,
        guest_details: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> "Reservation":
        """Create a held reservation awaiting payment"""
        now = now or utc_now()
        return Reservation(
            user_id=user_id,
            room_id=room_id,
            date_range=date_range,
            guests=guests,
            guest_details=guest_details or {},
            total_amount=total_amount,
            status=ReservationStatus.PENDING_PAYMENT,
            locked_until=now + timedelta(minutes=hold_minutes),
            created_at=now,
            updated_at=now
        )

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self, now: Optional[datetime] = None) -> None:
        """Confirm after a successful settlement"""
        self._transition(ReservationStatus.CONFIRMED, now)

    def cancel(self, reason: Optional[str] = None, now: Optional[datetime] = None) -> None:
        self._transition(ReservationStatus.CANCELLED, now)
        self.cancellation_reason = reason

    def complete(self, now: Optional[datetime] = None) -> None:
        """Close a stay administratively"""
        self._transition(ReservationStatus.COMPLETED, now)

    def _transition(self, target: ReservationStatus, now: Optional[datetime]) -> None:
        if target not in RESERVATION_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move reservation from {self.status.value} to {target.value}",
                details={"from": self.status.value, "to": target.value}
            )
        self.status = target
        self.locked_until = None
        self.updated_at = now or utc_now()
        self.version += 1

    # ==================== QUERY METHODS ====================
    @property
    def check_in(self) -> date:
        return self.date_range.check_in

    @property
    def check_out(self) -> date:
        return self.date_range.check_out

    def get_nights(self) -> int:
        return self.date_range.nights()

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    def is_terminal(self) -> bool:
        return self.status in (ReservationStatus.CANCELLED, ReservationStatus.COMPLETED)

    def is_hold_expired(self, now: Optional[datetime] = None) -> bool:
        if self.locked_until is None:
            return False
        return (now or utc_now()) > self.locked_until

    def blocks_inventory(self, now: Optional[datetime] = None) -> bool:
        """Whether this reservation keeps its room occupied for its dates"""
        if self.status in (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED):
            return True
        if self.status == ReservationStatus.PENDING_PAYMENT:
            return not self.is_hold_expired(now)
        return False


class ReservationServiceLine(BaseModel):
    """Add-on line item persisted with a reservation"""
    model_config = ConfigDict(from_attributes=True)

    line_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    service_id: UUID
    quantity: int = Field(default=1, ge=1)
    subtotal: Decimal = Field(ge=0)


class Discount(BaseModel):
    """Discount Aggregate Root Entity"""
    model_config = ConfigDict(from_attributes=True)

    discount_id: UUID = Field(default_factory=uuid4)
    code: str
    description: Optional[str] = None
    type: DiscountType
    value: Decimal = Field(ge=0)
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    min_nights: int = Field(default=1, ge=0)
    is_active: bool = True

    def is_in_window(self, today: date) -> bool:
        if self.valid_from is not None and self.valid_from > today:
            return False
        if self.valid_until is not None and self.valid_until < today:
            return False
        return True

    def is_eligible(
        self,
        nights: int,
        today: date,
        prior_reservations: int,
        first_reservation_code: str
    ) -> bool:
        if not self.is_active or not self.is_in_window(today):
            return False
        if nights < self.min_nights:
            return False
        if self.is_first_reservation_only(first_reservation_code):
            return prior_reservations == 0
        return True

    def is_first_reservation_only(self, first_reservation_code: str) -> bool:
        return self.code.upper() == first_reservation_code.upper()

    def compute_amount(self, subtotal: Decimal) -> Decimal:
        if self.type == DiscountType.PERCENTAGE:
            return (subtotal * self.value / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)
        return self.value


class DiscountApplication(BaseModel):
    """Record of a discount used by a reservation"""
    model_config = ConfigDict(from_attributes=True)

    application_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    discount_id: UUID
    discount_amount: Decimal
    created_at: datetime = Field(default_factory=utc_now)


class Payment(BaseModel):
    """Payment Aggregate Root Entity

    One row per attempt. Rows are never deleted; ``metadata`` keeps the audit
    trail (authorization, timings, rollback notes).
    """
    model_config = ConfigDict(from_attributes=True)

    payment_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    method: PaymentMethod
    amount: Decimal = Field(ge=0)
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_ref: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        reservation_id: UUID,
        method: PaymentMethod,
        amount: Decimal,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> "Payment":
        now = now or utc_now()
        meta = dict(metadata or {})
        meta.setdefault("initiated_at", now.isoformat())
        return Payment(
            reservation_id=reservation_id,
            method=method,
            amount=amount,
            status=PaymentStatus.PENDING,
            transaction_ref=Payment._generate_transaction_ref(),
            metadata=meta,
            created_at=now,
            updated_at=now
        )

    # ==================== STATE TRANSITION METHODS ====================
    def mark_success(self, authorization_code: Optional[str], now: Optional[datetime] = None) -> None:
        now = now or utc_now()
        self._require_pending()
        self.status = PaymentStatus.SUCCESS
        self.metadata = {
            **self.metadata,
            "authorization_code": authorization_code,
            "completed_at": now.isoformat(),
            "processing_duration_ms": int((now - self.created_at).total_seconds() * 1000),
        }
        self._touch(now)

    def mark_failed(self, error_message: Optional[str], now: Optional[datetime] = None) -> None:
        now = now or utc_now()
        self._require_pending()
        self.status = PaymentStatus.FAILED
        self.metadata = {
            **self.metadata,
            "error_message": error_message,
            "failed_at": now.isoformat(),
        }
        self._touch(now)

    def roll_back(self, reason: str, now: Optional[datetime] = None) -> None:
        """Compensate a success whose reservation could not be confirmed"""
        now = now or utc_now()
        if self.status != PaymentStatus.SUCCESS:
            raise InvalidTransitionError(f"Cannot roll back payment with status {self.status.value}")
        self.status = PaymentStatus.FAILED
        self.metadata = {
            **self.metadata,
            "rollback_reason": reason,
            "rolled_back_at": now.isoformat(),
        }
        self._touch(now)

    # ==================== QUERY METHODS ====================
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    # ==================== PRIVATE METHODS ====================
    def _require_pending(self) -> None:
        if self.status != PaymentStatus.PENDING:
            raise InvalidTransitionError(f"Payment already processed: {self.status.value}")

    def _touch(self, now: datetime) -> None:
        self.updated_at = now
        self.version += 1

    @staticmethod
    def _generate_transaction_ref() -> str:
        """Human-auditable reference: TXN-<epoch ms>-<9 chars>"""
        suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=9))
        return f"TXN-{int(time.time() * 1000)}-{suffix}"
