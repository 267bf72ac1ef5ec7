"""In-Memory Repository Implementations

Rows are copied on the way in and on the way out so callers never share
mutable state with the store, the same as with a real database.
"""
from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from domain.entities import (
    AddOnService, Discount, DiscountApplication, Payment, Reservation,
    ReservationServiceLine, Room,
)
from domain.enums import PaymentMethod, PaymentStatus, ReservationStatus, RoomStatus
from domain.errors import RepositoryError
from domain.repositories import (
    AvailabilityOracle, DiscountRepository, PaymentRepository, ReservationRepository,
    RoomRepository, ServiceCatalogRepository,
)
from domain.value_objects import DateRange


def _copy(entity):
    return entity.model_copy(deep=True)


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Room] = {}

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        for existing in self._storage.values():
            if existing.code == room.code and existing.room_id != room.room_id:
                raise RepositoryError(f"Duplicate room code {room.code}")
        self._storage[room.room_id] = _copy(room)
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        room = self._storage.get(room_id)
        return _copy(room) if room else None

    async def find_by_code(self, code: str) -> Optional[Room]:
        for room in self._storage.values():
            if room.code == code:
                return _copy(room)
        return None

    async def find_all(self, status: Optional[RoomStatus] = None) -> List[Room]:
        return [
            _copy(r) for r in self._storage.values()
            if status is None or r.status == status
        ]

    async def update(self, room: Room) -> Room:
        if room.room_id not in self._storage:
            raise RepositoryError("Room not found")
        return await self.save(room)

    async def delete(self, room_id: UUID) -> bool:
        if room_id in self._storage:
            del self._storage[room_id]
            return True
        return False


class InMemoryServiceCatalogRepository(ServiceCatalogRepository):
    """In-memory implementation of ServiceCatalogRepository"""

    def __init__(self):
        self._storage: Dict[UUID, AddOnService] = {}

    async def save(self, service: AddOnService) -> AddOnService:
        self._storage[service.service_id] = _copy(service)
        return service

    async def find_by_id(self, service_id: UUID) -> Optional[AddOnService]:
        service = self._storage.get(service_id)
        return _copy(service) if service else None

    async def find_active(self) -> List[AddOnService]:
        active = [_copy(s) for s in self._storage.values() if s.is_active]
        return sorted(active, key=lambda s: s.name)


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}
        self._service_lines: Dict[UUID, List[ReservationServiceLine]] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.reservation_id] = _copy(reservation)
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        reservation = self._storage.get(reservation_id)
        return _copy(reservation) if reservation else None

    async def find_by_user_id(self, user_id: UUID) -> List[Reservation]:
        return self._newest_first(r for r in self._storage.values() if r.user_id == user_id)

    async def count_by_user_id(self, user_id: UUID) -> int:
        return sum(1 for r in self._storage.values() if r.user_id == user_id)

    async def find_all(
        self,
        status: Optional[ReservationStatus] = None,
        check_in: Optional[date] = None
    ) -> List[Reservation]:
        return self._newest_first(
            r for r in self._storage.values()
            if (status is None or r.status == status)
            and (check_in is None or r.check_in == check_in)
        )

    async def find_expired_holds(self, now: datetime) -> List[Reservation]:
        return [
            _copy(r) for r in self._storage.values()
            if r.status == ReservationStatus.PENDING_PAYMENT and r.is_hold_expired(now)
        ]

    async def find_by_room_id(self, room_id: UUID) -> List[Reservation]:
        return [_copy(r) for r in self._storage.values() if r.room_id == room_id]

    async def update(self, reservation: Reservation) -> Reservation:
        if reservation.reservation_id not in self._storage:
            raise RepositoryError("Reservation not found")
        self._storage[reservation.reservation_id] = _copy(reservation)
        return reservation

    async def update_if_status(self, reservation: Reservation, expected_status: ReservationStatus) -> bool:
        # no await between the read and the write
        stored = self._storage.get(reservation.reservation_id)
        if stored is None:
            raise RepositoryError("Reservation not found")
        if stored.status != expected_status:
            return False
        self._storage[reservation.reservation_id] = _copy(reservation)
        return True

    async def add_service_lines(self, lines: List[ReservationServiceLine]) -> List[ReservationServiceLine]:
        for line in lines:
            self._service_lines.setdefault(line.reservation_id, []).append(_copy(line))
        return lines

    async def find_service_lines(self, reservation_id: UUID) -> List[ReservationServiceLine]:
        return [_copy(line) for line in self._service_lines.get(reservation_id, [])]

    @staticmethod
    def _newest_first(reservations) -> List[Reservation]:
        return sorted((_copy(r) for r in reservations), key=lambda r: r.created_at, reverse=True)


class InMemoryPaymentRepository(PaymentRepository):
    """In-memory implementation of PaymentRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Payment] = {}

    async def save(self, payment: Payment) -> Payment:
        for existing in self._storage.values():
            if existing.transaction_ref == payment.transaction_ref:
                raise RepositoryError(f"Duplicate transaction ref {payment.transaction_ref}")
        self._storage[payment.payment_id] = _copy(payment)
        return payment

    async def find_by_id(self, payment_id: UUID) -> Optional[Payment]:
        payment = self._storage.get(payment_id)
        return _copy(payment) if payment else None

    async def find_by_reservation_id(self, reservation_id: UUID) -> List[Payment]:
        payments = [_copy(p) for p in self._storage.values() if p.reservation_id == reservation_id]
        return sorted(payments, key=lambda p: p.created_at, reverse=True)

    async def find_latest_pending(
        self, reservation_id: UUID, method: PaymentMethod, created_since: datetime
    ) -> Optional[Payment]:
        for payment in await self.find_by_reservation_id(reservation_id):
            if (payment.status == PaymentStatus.PENDING and payment.method == method
                    and payment.created_at >= created_since):
                return payment
        return None

    async def exists_with_status(self, reservation_id: UUID, status: PaymentStatus) -> bool:
        return any(
            p.reservation_id == reservation_id and p.status == status
            for p in self._storage.values()
        )

    async def update_if_status(self, payment: Payment, expected_status: PaymentStatus) -> bool:
        # no await between the read and the write
        stored = self._storage.get(payment.payment_id)
        if stored is None:
            raise RepositoryError("Payment not found")
        if stored.status != expected_status:
            return False
        self._storage[payment.payment_id] = _copy(payment)
        return True


class InMemoryDiscountRepository(DiscountRepository):
    """In-memory implementation of DiscountRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Discount] = {}
        self._applications: Dict[UUID, List[DiscountApplication]] = {}

    async def save(self, discount: Discount) -> Discount:
        self._storage[discount.discount_id] = _copy(discount)
        return discount

    async def find_by_id(self, discount_id: UUID) -> Optional[Discount]:
        discount = self._storage.get(discount_id)
        return _copy(discount) if discount else None

    async def find_all(self) -> List[Discount]:
        return [_copy(d) for d in self._storage.values()]

    async def add_application(self, application: DiscountApplication) -> DiscountApplication:
        self._applications.setdefault(application.reservation_id, []).append(_copy(application))
        return application

    async def find_applications(self, reservation_id: UUID) -> List[DiscountApplication]:
        return [_copy(a) for a in self._applications.get(reservation_id, [])]


class InMemoryAvailabilityOracle(AvailabilityOracle):
    """Answers availability from the reservations held in memory"""

    def __init__(self, reservation_repo: InMemoryReservationRepository):
        self.reservation_repo = reservation_repo

    async def is_available(self, room_id: UUID, check_in: date, check_out: date) -> bool:
        requested = DateRange(check_in=check_in, check_out=check_out)
        for reservation in await self.reservation_repo.find_by_room_id(room_id):
            if reservation.blocks_inventory() and reservation.date_range.overlaps(requested):
                return False
        return True


class InMemoryStore:
    """Bundle of repositories sharing one in-memory backing store"""

    def __init__(self):
        self.rooms = InMemoryRoomRepository()
        self.services = InMemoryServiceCatalogRepository()
        self.reservations = InMemoryReservationRepository()
        self.payments = InMemoryPaymentRepository()
        self.discounts = InMemoryDiscountRepository()
        self.availability = InMemoryAvailabilityOracle(self.reservations)
