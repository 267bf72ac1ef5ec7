"""Application Services - Business use cases"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from domain.auth import User
from domain.entities import (
    AddOnService, DiscountApplication, Reservation, ReservationServiceLine, Room, utc_now,
)
from domain.enums import ReservationStatus, RoomStatus
from domain.errors import (
    AlreadyTerminalError, ForbiddenError, RepositoryError, ReservationCreationFailedError,
    ReservationNotFoundError, ReservationUpdateFailedError, RoomCodeConflictError,
    RoomNotFoundError, RoomUnavailableError, ServiceNotFoundError,
)
from domain.repositories import (
    AvailabilityOracle, DiscountRepository, ReservationRepository, RoomRepository,
    ServiceCatalogRepository,
)
from domain.value_objects import DateRange, PriceQuote, ServiceLine
from application.pricing import PricingCalculator

logger = logging.getLogger(__name__)


class ReservationService:
    """Service for the reservation lifecycle: holds, cancellation, completion"""

    def __init__(self,
                 repository: ReservationRepository,
                 room_repo: RoomRepository,
                 availability: AvailabilityOracle,
                 pricing: PricingCalculator,
                 discount_repo: DiscountRepository,
                 hold_minutes: int = 15):
        self.repository = repository
        self.room_repo = room_repo
        self.availability = availability
        self.pricing = pricing
        self.discount_repo = discount_repo
        self.hold_minutes = hold_minutes

    async def create_reservation(
        self,
        user_id: UUID,
        room_id: UUID,
        check_in: Any,
        check_out: Any,
        guests: int,
        guest_details: Optional[Dict[str, Any]] = None,
        services: Optional[List[ServiceLine]] = None,
        discount_id: Optional[UUID] = None
    ) -> Reservation:
        """Place a hold on a room for the requested dates"""
        date_range = DateRange(check_in=check_in, check_out=check_out)
        services = services or []

        if not await self.availability.is_available(room_id, date_range.check_in, date_range.check_out):
            raise RoomUnavailableError(details={
                "room_id": str(room_id),
                "check_in": date_range.check_in.isoformat(),
                "check_out": date_range.check_out.isoformat(),
            })

        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise RoomNotFoundError(details={"room_id": str(room_id)})

        quote = await self.pricing.quote(
            nightly_rate=room.price_per_night,
            date_range=date_range,
            services=services,
            discount_id=discount_id,
            user_id=user_id
        )

        reservation = Reservation.create(
            user_id=user_id,
            room_id=room_id,
            date_range=date_range,
            guests=guests,
            total_amount=quote.total,
            hold_minutes=self.hold_minutes,
            guest_details=guest_details
        )

        try:
            reservation = await self.repository.save(reservation)
        except RepositoryError as e:
            logger.error("Error creating reservation for room %s: %s", room_id, e)
            raise ReservationCreationFailedError(details={"reason": str(e)})

        await self._save_service_lines(reservation, services)
        await self._save_discount_application(reservation, quote)

        logger.info(
            "Reservation %s held until %s (room=%s, total=%s)",
            reservation.reservation_id, reservation.locked_until, room.code, quote.total
        )
        return reservation

    async def _save_service_lines(self, reservation: Reservation, services: List[ServiceLine]) -> None:
        if not services:
            return
        lines = [
            ReservationServiceLine(
                reservation_id=reservation.reservation_id,
                service_id=s.service_id,
                quantity=s.quantity,
                subtotal=s.subtotal
            )
            for s in services
        ]
        try:
            await self.repository.add_service_lines(lines)
        except RepositoryError as e:
            logger.warning("Could not store services for reservation %s: %s", reservation.reservation_id, e)

    async def _save_discount_application(self, reservation: Reservation, quote: PriceQuote) -> None:
        if not quote.discount_applied:
            return
        application = DiscountApplication(
            reservation_id=reservation.reservation_id,
            discount_id=quote.discount_id,
            discount_amount=quote.discount_amount
        )
        try:
            await self.discount_repo.add_application(application)
        except RepositoryError as e:
            logger.warning("Could not store discount for reservation %s: %s", reservation.reservation_id, e)

    async def get_reservation(self, reservation_id: UUID, actor: Optional[User] = None) -> Reservation:
        """Get reservation by ID; with an actor, only the owner or staff may read it"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(details={"reservation_id": str(reservation_id)})
        if actor is not None:
            self._check_access(reservation, actor)
        return reservation

    async def get_reservations_by_user(self, user_id: UUID) -> List[Reservation]:
        return await self.repository.find_by_user_id(user_id)

    async def get_all_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        check_in: Optional[date] = None
    ) -> List[Reservation]:
        return await self.repository.find_all(status=status, check_in=check_in)

    async def get_services(self, reservation_id: UUID, actor: Optional[User] = None) -> List[ReservationServiceLine]:
        await self.get_reservation(reservation_id, actor)
        return await self.repository.find_service_lines(reservation_id)

    async def get_discounts(self, reservation_id: UUID, actor: Optional[User] = None) -> List[DiscountApplication]:
        await self.get_reservation(reservation_id, actor)
        return await self.discount_repo.find_applications(reservation_id)

    async def cancel_reservation(self, reservation_id: UUID, actor: User, reason: Optional[str] = None) -> Reservation:
        """Cancel a reservation; payments are left untouched for audit"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(details={"reservation_id": str(reservation_id)})
        self._check_access(reservation, actor)
        if reservation.is_terminal():
            raise AlreadyTerminalError(details={"status": reservation.status.value})

        reservation.cancel(reason=reason or f"cancelled by {actor.username}")
        try:
            await self.repository.update(reservation)
        except RepositoryError as e:
            logger.error("Error cancelling reservation %s: %s", reservation_id, e)
            raise ReservationUpdateFailedError("Could not cancel the reservation", details={"reason": str(e)})

        logger.info("Reservation %s cancelled by %s", reservation_id, actor.username)
        return reservation

    async def complete_reservation(self, reservation_id: UUID) -> Reservation:
        """Mark a stay as completed (administrative)"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(details={"reservation_id": str(reservation_id)})
        if reservation.is_terminal():
            raise AlreadyTerminalError(details={"status": reservation.status.value})

        reservation.complete()
        try:
            await self.repository.update(reservation)
        except RepositoryError as e:
            logger.error("Error completing reservation %s: %s", reservation_id, e)
            raise ReservationUpdateFailedError("Could not complete the reservation", details={"reason": str(e)})
        return reservation

    async def release_expired_holds(self, now: Optional[datetime] = None) -> List[Reservation]:
        """Cancel every pending reservation whose hold has elapsed"""
        now = now or utc_now()
        released = []
        for reservation in await self.repository.find_expired_holds(now):
            reservation.cancel(reason="hold_expired", now=now)
            try:
                # a settlement may have confirmed it since we read it
                if await self.repository.update_if_status(reservation, ReservationStatus.PENDING_PAYMENT):
                    released.append(reservation)
            except RepositoryError as e:
                logger.error("Error releasing hold %s: %s", reservation.reservation_id, e)
        if released:
            logger.info("Released %d expired holds", len(released))
        return released

    @staticmethod
    def _check_access(reservation: Reservation, actor: User) -> None:
        if not reservation.is_owned_by(actor.user_id) and not actor.is_staff():
            raise ForbiddenError(details={"reservation_id": str(reservation.reservation_id)})


class RoomService:
    """Service for room browsing and inventory administration"""

    def __init__(self,
                 repository: RoomRepository,
                 availability: AvailabilityOracle,
                 reservation_repo: ReservationRepository):
        self.repository = repository
        self.availability = availability
        self.reservation_repo = reservation_repo

    async def search_rooms(
        self,
        room_type: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
        services: Optional[List[str]] = None
    ) -> List[Room]:
        """Available rooms matching the filters, cheapest first"""
        rooms = await self.repository.find_all(status=RoomStatus.AVAILABLE)
        rooms = [
            r for r in rooms
            if (room_type is None or r.type == room_type)
            and (min_price is None or r.price_per_night >= min_price)
            and (max_price is None or r.price_per_night <= max_price)
            and (not services or r.has_services(services))
        ]
        rooms.sort(key=lambda r: r.price_per_night)

        if check_in and check_out:
            date_range = DateRange(check_in=check_in, check_out=check_out)
            rooms = [
                r for r in rooms
                if await self.availability.is_available(r.room_id, date_range.check_in, date_range.check_out)
            ]
        return rooms

    async def get_room(self, room_id: UUID) -> Room:
        room = await self.repository.find_by_id(room_id)
        if not room:
            raise RoomNotFoundError(details={"room_id": str(room_id)})
        return room

    async def check_availability(self, room_id: UUID, check_in: Any, check_out: Any) -> bool:
        date_range = DateRange(check_in=check_in, check_out=check_out)
        return await self.availability.is_available(room_id, date_range.check_in, date_range.check_out)

    async def get_all_rooms(self) -> List[Room]:
        rooms = await self.repository.find_all()
        return sorted(rooms, key=lambda r: r.code)

    async def create_room(self, **fields) -> Room:
        if await self.repository.find_by_code(fields["code"]):
            raise RoomCodeConflictError(details={"code": fields["code"]})
        room = Room(**fields)
        await self.repository.save(room)
        logger.info("Room %s created", room.code)
        return room

    async def update_room(self, room_id: UUID, **changes) -> Room:
        room = await self.get_room(room_id)
        new_code = changes.get("code")
        if new_code and new_code != room.code and await self.repository.find_by_code(new_code):
            raise RoomCodeConflictError(details={"code": new_code})
        updated = room.model_copy(update=changes)
        updated = Room.model_validate(updated.model_dump())
        return await self.repository.update(updated)

    async def update_room_status(self, room_id: UUID, status: RoomStatus) -> Room:
        room = await self.get_room(room_id)
        room.status = status
        return await self.repository.update(room)

    async def delete_room(self, room_id: UUID) -> None:
        if not await self.repository.delete(room_id):
            raise RoomNotFoundError(details={"room_id": str(room_id)})
        logger.info("Room %s deleted", room_id)

    async def get_dashboard_stats(self, today: Optional[date] = None) -> Dict[str, int]:
        today = today or date.today()
        reservations = await self.reservation_repo.find_all()
        rooms = await self.repository.find_all()
        return {
            "total_reservations": len(reservations),
            "pending_payments": sum(1 for r in reservations if r.status == ReservationStatus.PENDING_PAYMENT),
            "check_ins_today": sum(1 for r in reservations if r.check_in == today),
            "total_rooms": len(rooms),
            "available_rooms": sum(1 for r in rooms if r.status == RoomStatus.AVAILABLE),
        }


class CatalogService:
    """Service for the add-on services catalog"""

    def __init__(self, repository: ServiceCatalogRepository):
        self.repository = repository

    async def get_active_services(self) -> List[AddOnService]:
        return await self.repository.find_active()

    async def price_lines(self, requested: Iterable[Tuple[UUID, int]]) -> List[ServiceLine]:
        """Turn (service_id, quantity) pairs into priced lines from the catalog"""
        lines = []
        for service_id, quantity in requested:
            service = await self.repository.find_by_id(service_id)
            if not service or not service.is_active:
                raise ServiceNotFoundError(details={"service_id": str(service_id)})
            lines.append(ServiceLine(
                service_id=service_id,
                quantity=quantity,
                subtotal=service.price * quantity
            ))
        return lines
