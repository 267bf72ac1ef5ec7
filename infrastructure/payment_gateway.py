"""Simulated payment processors

Stand-ins for the Yape and card gateways. In production the outcome comes
from a webhook; here it is produced synchronously so the settlement path can
be exercised end to end.
"""
import asyncio
import logging
import random
import string
from abc import ABC, abstractmethod
from typing import Dict

from domain.enums import PaymentMethod
from domain.value_objects import SettlementOutcome

logger = logging.getLogger(__name__)


def _random_code(length: int) -> str:
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


class SettlementProcessor(ABC):
    """Produces the settlement outcome for one payment attempt"""

    method: PaymentMethod
    decline_message: str

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds

    async def settle(self, force_failure: bool = False) -> SettlementOutcome:
        logger.info("Simulating %s settlement", self.method.value)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if force_failure:
            return SettlementOutcome(success=False, error_message=self.decline_message)
        return SettlementOutcome(success=True, authorization_code=self.authorization_code())

    @abstractmethod
    def authorization_code(self) -> str:
        pass


class YapeSimulator(SettlementProcessor):
    method = PaymentMethod.YAPE
    decline_message = "Payment rejected by the user in Yape"

    def authorization_code(self) -> str:
        return f"YAPE{_random_code(8)}"


class CardSimulator(SettlementProcessor):
    method = PaymentMethod.CARD
    decline_message = "Card declined by the issuing bank"

    def authorization_code(self) -> str:
        return f"AUTH{_random_code(6)}"


def build_processors(delay_seconds: float = 0.0) -> Dict[PaymentMethod, SettlementProcessor]:
    return {
        PaymentMethod.YAPE: YapeSimulator(delay_seconds),
        PaymentMethod.CARD: CardSimulator(delay_seconds),
    }
