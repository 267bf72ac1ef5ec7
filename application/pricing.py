"""Pricing & discount calculation"""
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from domain.entities import Discount
from domain.enums import DiscountPolicy
from domain.errors import DiscountNotApplicableError, DiscountNotFoundError
from domain.repositories import DiscountRepository, ReservationRepository
from domain.value_objects import DateRange, PriceQuote, ServiceLine

logger = logging.getLogger(__name__)


class PricingCalculator:
    """Computes reservation totals and resolves discounts.

    At most one discount applies to a reservation. A discount that resolves
    but is not eligible is handled by ``ineligible_policy``: ignored (the
    reservation is priced without it) or rejected with
    ``DiscountNotApplicableError``.
    """

    def __init__(
        self,
        discount_repo: DiscountRepository,
        reservation_repo: ReservationRepository,
        first_reservation_code: str = "PRIMERAVEZ",
        ineligible_policy: DiscountPolicy = DiscountPolicy.IGNORE
    ):
        self.discount_repo = discount_repo
        self.reservation_repo = reservation_repo
        self.first_reservation_code = first_reservation_code
        self.ineligible_policy = ineligible_policy

    async def quote(
        self,
        nightly_rate: Decimal,
        date_range: DateRange,
        services: Iterable[ServiceLine] = (),
        discount_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        today: Optional[date] = None
    ) -> PriceQuote:
        """
        Price a stay.

        Args:
            nightly_rate: Room price per night
            date_range: Stay in calendar dates
            services: Add-on lines with precomputed subtotals
            discount_id: Optional discount to apply
            user_id: Requesting user, needed for first-reservation discounts
            today: Reference date for discount windows

        Returns:
            PriceQuote with subtotal, discount and total (never negative)

        Raises:
            DiscountNotFoundError: discount_id does not resolve
            DiscountNotApplicableError: discount ineligible under the reject policy
        """
        today = today or date.today()
        nights = date_range.nights()
        room_subtotal = Decimal(nightly_rate) * nights
        services_subtotal = sum((line.subtotal for line in services), Decimal("0"))
        subtotal = room_subtotal + services_subtotal

        discount = None
        discount_amount = Decimal("0")
        if discount_id is not None:
            discount = await self._resolve(discount_id)
            if await self._is_eligible(discount, nights, user_id, today):
                discount_amount = discount.compute_amount(subtotal)
            elif self.ineligible_policy == DiscountPolicy.REJECT:
                raise DiscountNotApplicableError(details={"discount_id": str(discount_id)})
            else:
                logger.info("Ignoring ineligible discount %s (nights=%s)", discount.code, nights)
                discount = None

        return PriceQuote(
            nights=nights,
            nightly_rate=Decimal(nightly_rate),
            room_subtotal=room_subtotal,
            services_subtotal=services_subtotal,
            subtotal=subtotal,
            discount_id=discount.discount_id if discount else None,
            discount_code=discount.code if discount else None,
            discount_amount=discount_amount,
            total=max(Decimal("0"), subtotal - discount_amount)
        )

    async def list_applicable(
        self,
        user_id: UUID,
        nights: int,
        today: Optional[date] = None
    ) -> Tuple[List[Discount], bool]:
        """Discounts a user could apply to a stay of ``nights`` nights"""
        today = today or date.today()
        prior = await self.reservation_repo.count_by_user_id(user_id)
        discounts = await self.discount_repo.find_all()
        applicable = [
            d for d in discounts
            if d.is_eligible(nights, today, prior, self.first_reservation_code)
        ]
        return applicable, prior == 0

    async def calculate(self, discount_id: UUID, subtotal: Decimal) -> Tuple[Discount, Decimal, Decimal]:
        """Preview a discount on a subtotal; returns (discount, amount, total)"""
        discount = await self._resolve(discount_id)
        amount = discount.compute_amount(Decimal(subtotal))
        return discount, amount, max(Decimal("0"), Decimal(subtotal) - amount)

    async def _resolve(self, discount_id: UUID) -> Discount:
        discount = await self.discount_repo.find_by_id(discount_id)
        if discount is None:
            raise DiscountNotFoundError(details={"discount_id": str(discount_id)})
        return discount

    async def _is_eligible(
        self,
        discount: Discount,
        nights: int,
        user_id: Optional[UUID],
        today: date
    ) -> bool:
        prior = 0
        if discount.is_first_reservation_only(self.first_reservation_code):
            if user_id is None:
                return False
            prior = await self.reservation_repo.count_by_user_id(user_id)
        return discount.is_eligible(nights, today, prior, self.first_reservation_code)
