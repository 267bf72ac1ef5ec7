"""Confirmation notifications"""
import logging
from abc import ABC, abstractmethod
from uuid import UUID

logger = logging.getLogger(__name__)


class ConfirmationNotifier(ABC):
    """Sends the guest their receipt once a reservation is confirmed"""

    @abstractmethod
    async def send_reservation_confirmation(self, reservation_id: UUID) -> None:
        pass


async def dispatch_confirmation(notifier: ConfirmationNotifier, reservation_id: UUID) -> bool:
    """Run the notifier; a failure here must never affect the payment outcome"""
    try:
        await notifier.send_reservation_confirmation(reservation_id)
    except Exception:
        logger.warning("Confirmation for reservation %s could not be sent", reservation_id, exc_info=True)
        return False
    return True
