"""Logging confirmation notifier

Assembles the receipt summary from the store and logs that the receipt and
e-mail were queued. A PDF renderer or mail client plugs in behind the same
interface.
"""
import logging
from collections import deque
from typing import Any, Deque, Dict, Optional
from uuid import UUID

from application.notifications import ConfirmationNotifier
from domain.enums import PaymentStatus
from domain.errors import ReservationNotFoundError
from infrastructure.repositories.in_memory_repositories import InMemoryStore

logger = logging.getLogger(__name__)


class LoggingConfirmationNotifier(ConfirmationNotifier):

    def __init__(self, store: InMemoryStore, currency: str = "PEN", keep_last: int = 100):
        self.store = store
        self.currency = currency
        # most recent receipts only
        self.sent: Deque[Dict[str, Any]] = deque(maxlen=keep_last)

    async def build_receipt(self, reservation_id: UUID) -> Dict[str, Any]:
        reservation = await self.store.reservations.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(details={"reservation_id": str(reservation_id)})
        room = await self.store.rooms.find_by_id(reservation.room_id)
        payments = await self.store.payments.find_by_reservation_id(reservation_id)
        paid = [p for p in payments if p.status == PaymentStatus.SUCCESS]

        guest: Optional[str] = reservation.guest_details.get("name") if reservation.guest_details else None
        return {
            "reservation_id": str(reservation.reservation_id),
            "guest": guest,
            "room_code": room.code if room else None,
            "room_type": room.type if room else None,
            "check_in": reservation.check_in.isoformat(),
            "check_out": reservation.check_out.isoformat(),
            "nights": reservation.get_nights(),
            "total": f"{reservation.total_amount} {self.currency}",
            "transactions": [p.transaction_ref for p in paid],
        }

    async def send_reservation_confirmation(self, reservation_id: UUID) -> None:
        receipt = await self.build_receipt(reservation_id)
        self.sent.append(receipt)
        logger.info(
            "Receipt and confirmation e-mail queued for reservation %s (%s nights, %s)",
            receipt["reservation_id"], receipt["nights"], receipt["total"]
        )
