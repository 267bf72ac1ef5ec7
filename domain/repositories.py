"""Domain Repository Interfaces

Implementations raise ``RepositoryError`` when the backing store fails.
Conditional updates (``update_if_status``) return False when the stored row
no longer has the expected status, which is how concurrent transitions lose.
"""
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from domain.entities import (
    AddOnService, Discount, DiscountApplication, Payment, Reservation,
    ReservationServiceLine, Room,
)
from domain.enums import PaymentMethod, PaymentStatus, ReservationStatus, RoomStatus


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_by_code(self, code: str) -> Optional[Room]:
        """Find room by its human code"""
        pass

    @abstractmethod
    async def find_all(self, status: Optional[RoomStatus] = None) -> List[Room]:
        """Find all rooms, optionally by status"""
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        """Update room"""
        pass

    @abstractmethod
    async def delete(self, room_id: UUID) -> bool:
        """Delete room"""
        pass


class ServiceCatalogRepository(ABC):
    """Repository interface for add-on services"""

    @abstractmethod
    async def save(self, service: AddOnService) -> AddOnService:
        pass

    @abstractmethod
    async def find_by_id(self, service_id: UUID) -> Optional[AddOnService]:
        pass

    @abstractmethod
    async def find_active(self) -> List[AddOnService]:
        """Active services ordered by name"""
        pass


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> List[Reservation]:
        """Find reservations of a user, newest first"""
        pass

    @abstractmethod
    async def count_by_user_id(self, user_id: UUID) -> int:
        """Count reservations of a user regardless of status"""
        pass

    @abstractmethod
    async def find_all(
        self,
        status: Optional[ReservationStatus] = None,
        check_in: Optional[date] = None
    ) -> List[Reservation]:
        """Find reservations, newest first, optionally filtered"""
        pass

    @abstractmethod
    async def find_expired_holds(self, now: datetime) -> List[Reservation]:
        """Pending reservations whose hold elapsed before ``now``"""
        pass

    @abstractmethod
    async def find_by_room_id(self, room_id: UUID) -> List[Reservation]:
        """Find reservations of a room"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    async def update_if_status(self, reservation: Reservation, expected_status: ReservationStatus) -> bool:
        """Write ``reservation`` only if the stored status is ``expected_status``"""
        pass

    @abstractmethod
    async def add_service_lines(self, lines: List[ReservationServiceLine]) -> List[ReservationServiceLine]:
        """Persist add-on line items"""
        pass

    @abstractmethod
    async def find_service_lines(self, reservation_id: UUID) -> List[ReservationServiceLine]:
        """Find add-on line items of a reservation"""
        pass


class PaymentRepository(ABC):
    """Repository interface for Payment Aggregate"""

    @abstractmethod
    async def save(self, payment: Payment) -> Payment:
        """Insert a new payment; transaction refs are unique"""
        pass

    @abstractmethod
    async def find_by_id(self, payment_id: UUID) -> Optional[Payment]:
        """Find payment by ID"""
        pass

    @abstractmethod
    async def find_by_reservation_id(self, reservation_id: UUID) -> List[Payment]:
        """All attempts for a reservation, newest first"""
        pass

    @abstractmethod
    async def find_latest_pending(
        self, reservation_id: UUID, method: PaymentMethod, created_since: datetime
    ) -> Optional[Payment]:
        """Most recent pending ``method`` payment created at or after ``created_since``"""
        pass

    @abstractmethod
    async def exists_with_status(self, reservation_id: UUID, status: PaymentStatus) -> bool:
        pass

    @abstractmethod
    async def update_if_status(self, payment: Payment, expected_status: PaymentStatus) -> bool:
        """Write ``payment`` only if the stored status is ``expected_status``"""
        pass


class DiscountRepository(ABC):
    """Repository interface for Discount Aggregate"""

    @abstractmethod
    async def save(self, discount: Discount) -> Discount:
        pass

    @abstractmethod
    async def find_by_id(self, discount_id: UUID) -> Optional[Discount]:
        pass

    @abstractmethod
    async def find_all(self) -> List[Discount]:
        pass

    @abstractmethod
    async def add_application(self, application: DiscountApplication) -> DiscountApplication:
        """Record that a reservation used a discount"""
        pass

    @abstractmethod
    async def find_applications(self, reservation_id: UUID) -> List[DiscountApplication]:
        pass


class AvailabilityOracle(ABC):
    """Authoritative answer on whether a room is free for a stay"""

    @abstractmethod
    async def is_available(self, room_id: UUID, check_in: date, check_out: date) -> bool:
        pass
