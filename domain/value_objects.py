"""Domain Value Objects"""
import hashlib
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def to_calendar_date(value) -> date:
    """Strip any time-of-day so night counts never depend on timezone offsets"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.split("T")[0].strip())
    raise ValueError(f"Unsupported date value: {value!r}")


class DateRange(BaseModel):
    """Value Object for a stay, in calendar dates"""
    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return to_calendar_date(v)

    @model_validator(mode="after")
    def check_out_after_check_in(self):
        if self.check_out <= self.check_in:
            raise ValueError("Check-out must be after check-in")
        return self

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        return self.check_in < other.check_out and other.check_in < self.check_out


class ServiceLine(BaseModel):
    """Add-on service requested with a reservation, subtotal already computed"""
    model_config = ConfigDict(frozen=True)

    service_id: UUID
    quantity: int = Field(default=1, ge=1)
    subtotal: Decimal = Field(ge=0)


class CardData(BaseModel):
    """Masked card details as received from the client"""
    model_config = ConfigDict(frozen=True)

    masked_pan: str = Field(min_length=4)
    expiry: str

    def fingerprint(self) -> str:
        raw = f"{self.masked_pan}|{self.expiry}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()[:16]


class SettlementOutcome(BaseModel):
    """Result reported by a payment processor for one payment attempt"""
    success: bool
    authorization_code: Optional[str] = None
    error_message: Optional[str] = None


class PriceQuote(BaseModel):
    """Breakdown produced by the pricing calculator"""
    nights: int
    nightly_rate: Decimal
    room_subtotal: Decimal
    services_subtotal: Decimal = Decimal("0")
    subtotal: Decimal
    discount_id: Optional[UUID] = None
    discount_code: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    total: Decimal

    @property
    def discount_applied(self) -> bool:
        return self.discount_id is not None and self.discount_amount > 0
