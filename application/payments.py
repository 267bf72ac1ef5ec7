"""Payment Lifecycle - initiation, settlement and compensation"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from domain.entities import Payment, Reservation, utc_now
from domain.enums import PaymentMethod, PaymentStatus, ReservationStatus
from domain.errors import (
    AlreadyCompletedError, BookingError, ErrorCode, InvalidStatusError, InvalidTransitionError,
    PaymentAlreadyProcessedError, PaymentCreationFailedError, PaymentNotFoundError,
    PaymentUpdateFailedError, RepositoryError, ReservationExpiredError, ReservationNotFoundError,
    ReservationNotOwnedError, ReservationUpdateFailedError,
)
from domain.repositories import PaymentRepository, ReservationRepository, RoomRepository
from domain.value_objects import CardData, SettlementOutcome

logger = logging.getLogger(__name__)

ALREADY_PAID = "ALREADY_PAID"


class PaymentInitiation(BaseModel):
    payment_id: UUID
    transaction_ref: str
    reused: bool = False


class PaymentProcessResult(BaseModel):
    success: bool
    payment_id: UUID
    reservation_id: UUID
    status: PaymentStatus
    message: str
    transaction_ref: str
    authorization_code: Optional[str] = None
    error: Optional[ErrorCode] = None


class PaymentStatusView(BaseModel):
    payment: Payment
    reservation: Optional[Reservation] = None


class EligibilityResult(BaseModel):
    eligible: bool
    reason: Optional[str] = None
    message: Optional[str] = None


class PaymentService:
    """Drives a reservation from held to paid.

    A reservation is confirmed only by a successful settlement, and a
    successful payment never survives next to an unconfirmed reservation:
    when the reservation cannot be confirmed the payment is rolled back to
    ``failed``. Both writes are compare-and-swap on the expected status so a
    duplicate callback or a concurrent hold release loses cleanly.
    """

    def __init__(
        self,
        payment_repo: PaymentRepository,
        reservation_repo: ReservationRepository,
        room_repo: Optional[RoomRepository] = None,
        idempotency_window_minutes: int = 5
    ):
        self.payment_repo = payment_repo
        self.reservation_repo = reservation_repo
        self.room_repo = room_repo
        self.idempotency_window = timedelta(minutes=idempotency_window_minutes)

    # ==================== VALIDATION ====================
    async def validate(self, reservation_id: UUID, user_id: UUID, now: Optional[datetime] = None) -> Reservation:
        """
        Check that a user may pay for a reservation.

        Raises:
            ReservationNotFoundError, ReservationNotOwnedError,
            InvalidStatusError, AlreadyCompletedError, ReservationExpiredError
        """
        reservation = await self.reservation_repo.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(details={"reservation_id": str(reservation_id)})

        if not reservation.is_owned_by(user_id):
            raise ReservationNotOwnedError(details={"reservation_id": str(reservation_id)})

        if reservation.status != ReservationStatus.PENDING_PAYMENT:
            raise InvalidStatusError(
                f"Reservation is {reservation.status.value}, not awaiting payment",
                details={"status": reservation.status.value}
            )

        if await self.payment_repo.exists_with_status(reservation_id, PaymentStatus.SUCCESS):
            raise AlreadyCompletedError(details={"reservation_id": str(reservation_id)})

        if reservation.is_hold_expired(now):
            raise ReservationExpiredError(details={
                "locked_until": reservation.locked_until.isoformat()
            })

        return reservation

    async def check_eligibility(self, reservation_id: UUID, user_id: UUID) -> EligibilityResult:
        """Pre-check for clients before showing the payment form"""
        if await self.has_completed_payment(reservation_id):
            return EligibilityResult(
                eligible=False,
                reason=ALREADY_PAID,
                message="This reservation has already been paid"
            )
        try:
            await self.validate(reservation_id, user_id)
        except BookingError as e:
            return EligibilityResult(eligible=False, reason=e.code.value, message=e.message)
        return EligibilityResult(eligible=True)

    # ==================== INITIATION ====================
    async def initiate(
        self,
        reservation_id: UUID,
        user_id: UUID,
        method: PaymentMethod,
        card_data: Optional[CardData] = None,
        now: Optional[datetime] = None
    ) -> PaymentInitiation:
        """Open a payment attempt, reusing a recent pending one"""
        now = now or utc_now()
        reservation = await self.validate(reservation_id, user_id, now)

        existing = await self.payment_repo.find_latest_pending(
            reservation_id, method, now - self.idempotency_window
        )
        if existing:
            logger.info(
                "Reusing pending payment %s for reservation %s",
                existing.transaction_ref, reservation_id
            )
            return PaymentInitiation(
                payment_id=existing.payment_id,
                transaction_ref=existing.transaction_ref,
                reused=True
            )

        payment = Payment.create(
            reservation_id=reservation_id,
            method=method,
            amount=reservation.total_amount,
            metadata=await self._build_metadata(reservation, user_id, card_data),
            now=now
        )
        try:
            await self.payment_repo.save(payment)
        except RepositoryError as e:
            logger.error("Error creating payment for reservation %s: %s", reservation_id, e)
            raise PaymentCreationFailedError(details={"reason": str(e)})

        logger.info(
            "Payment %s initiated for reservation %s (%s %s)",
            payment.transaction_ref, reservation_id, method.value, payment.amount
        )
        return PaymentInitiation(payment_id=payment.payment_id, transaction_ref=payment.transaction_ref)

    async def _build_metadata(self, reservation: Reservation, user_id: UUID, card_data: Optional[CardData]) -> dict:
        metadata = {"user_id": str(user_id)}
        if card_data:
            metadata["card_data"] = card_data.model_dump()
            metadata["card_fingerprint"] = card_data.fingerprint()
        if self.room_repo:
            room = await self.room_repo.find_by_id(reservation.room_id)
            if room:
                metadata["room_code"] = room.code
                metadata["room_type"] = room.type
        return metadata

    # ==================== SETTLEMENT ====================
    async def process(
        self,
        payment_id: UUID,
        outcome: SettlementOutcome,
        now: Optional[datetime] = None
    ) -> PaymentProcessResult:
        """
        Apply a settlement outcome to a pending payment.

        Returns:
            PaymentProcessResult; a declined settlement is a result, not an error

        Raises:
            PaymentNotFoundError: unknown payment
            PaymentAlreadyProcessedError: payment no longer pending
            PaymentUpdateFailedError: the payment write failed
            ReservationUpdateFailedError: confirmation failed, payment rolled back
        """
        now = now or utc_now()
        payment = await self.payment_repo.find_by_id(payment_id)
        if not payment:
            raise PaymentNotFoundError(details={"payment_id": str(payment_id)})

        if not payment.is_pending():
            logger.warning("Duplicate settlement for payment %s (%s)", payment.transaction_ref, payment.status.value)
            raise PaymentAlreadyProcessedError(details={"status": payment.status.value})

        if outcome.success:
            return await self._settle_success(payment, outcome, now)
        return await self._settle_failure(payment, outcome, now)

    async def _settle_success(self, payment: Payment, outcome: SettlementOutcome, now: datetime) -> PaymentProcessResult:
        payment.mark_success(outcome.authorization_code, now)
        await self._swap_payment(payment, PaymentStatus.PENDING)

        try:
            confirmed = await self._confirm_reservation(payment.reservation_id, now)
            failure = None if confirmed else "reservation is no longer awaiting payment"
        except (RepositoryError, InvalidTransitionError) as e:
            failure = str(e)

        if failure is not None:
            await self._compensate(payment, failure, now)
            raise ReservationUpdateFailedError(details={
                "payment_id": str(payment.payment_id),
                "reason": failure,
            })

        logger.info(
            "Payment %s settled, reservation %s confirmed",
            payment.transaction_ref, payment.reservation_id
        )
        return PaymentProcessResult(
            success=True,
            payment_id=payment.payment_id,
            reservation_id=payment.reservation_id,
            status=PaymentStatus.SUCCESS,
            message="Payment processed successfully",
            transaction_ref=payment.transaction_ref,
            authorization_code=outcome.authorization_code
        )

    async def _settle_failure(self, payment: Payment, outcome: SettlementOutcome, now: datetime) -> PaymentProcessResult:
        message = outcome.error_message or "Payment declined"
        payment.mark_failed(message, now)
        await self._swap_payment(payment, PaymentStatus.PENDING)

        logger.info("Payment %s declined: %s", payment.transaction_ref, message)
        return PaymentProcessResult(
            success=False,
            payment_id=payment.payment_id,
            reservation_id=payment.reservation_id,
            status=PaymentStatus.FAILED,
            message=message,
            transaction_ref=payment.transaction_ref,
            error=ErrorCode.PAYMENT_DECLINED
        )

    async def _swap_payment(self, payment: Payment, expected: PaymentStatus) -> None:
        try:
            swapped = await self.payment_repo.update_if_status(payment, expected)
        except RepositoryError as e:
            logger.error("Error updating payment %s: %s", payment.transaction_ref, e)
            raise PaymentUpdateFailedError(details={"reason": str(e)})
        if not swapped:
            raise PaymentAlreadyProcessedError(details={"payment_id": str(payment.payment_id)})

    async def _confirm_reservation(self, reservation_id: UUID, now: datetime) -> bool:
        reservation = await self.reservation_repo.find_by_id(reservation_id)
        if not reservation:
            raise RepositoryError(f"Reservation {reservation_id} disappeared")
        reservation.confirm(now)
        return await self.reservation_repo.update_if_status(reservation, ReservationStatus.PENDING_PAYMENT)

    async def _compensate(self, payment: Payment, reason: str, now: datetime) -> None:
        logger.error(
            "Reservation %s could not be confirmed (%s); rolling back payment %s",
            payment.reservation_id, reason, payment.transaction_ref
        )
        payment.roll_back("Reservation update failed", now)
        try:
            if not await self.payment_repo.update_if_status(payment, PaymentStatus.SUCCESS):
                logger.error("Rollback of payment %s lost a race", payment.transaction_ref)
        except RepositoryError as e:
            logger.error("Rollback of payment %s failed: %s", payment.transaction_ref, e)

    # ==================== QUERIES ====================
    async def get_status(self, payment_id: UUID) -> PaymentStatusView:
        payment = await self.payment_repo.find_by_id(payment_id)
        if not payment:
            raise PaymentNotFoundError(details={"payment_id": str(payment_id)})
        reservation = await self.reservation_repo.find_by_id(payment.reservation_id)
        return PaymentStatusView(payment=payment, reservation=reservation)

    async def get_history(self, reservation_id: UUID) -> List[Payment]:
        return await self.payment_repo.find_by_reservation_id(reservation_id)

    async def has_completed_payment(self, reservation_id: UUID) -> bool:
        return await self.payment_repo.exists_with_status(reservation_id, PaymentStatus.SUCCESS)
