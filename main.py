import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Rooms & catalog
    RoomResponse, CreateRoomRequest, UpdateRoomRequest, UpdateRoomStatusRequest,
    AvailabilityResponse, AddOnServiceResponse,
    # Discounts
    DiscountResponse, ApplicableDiscountsResponse, CalculateDiscountRequest, CalculateDiscountResponse,
    # Reservations
    CreateReservationRequest, CancelReservationRequest, ReservationResponse,
    ReservationServiceResponse, DiscountApplicationResponse,
    # Payments
    InitiatePaymentRequest, InitiatePaymentResponse, PaymentResponse, PaymentStatusResponse,
    SettlementCallbackRequest, PaymentProcessResponse, EligibilityResponse,
    # Admin
    DashboardStatsResponse, ReleasedHoldsResponse,
    # Auth
    Token, UserResponse
)
from api.dependencies import get_current_active_user, get_current_staff_user, fake_users_db, get_user
from api.errors import to_http_exception
from domain.auth import User
from domain.enums import HoldReleaseMode, PaymentMethod, ReservationStatus
from domain.errors import BookingError
from domain.value_objects import CardData, SettlementOutcome
from application.notifications import ConfirmationNotifier, dispatch_confirmation
from application.payments import PaymentService
from application.pricing import PricingCalculator
from application.services import CatalogService, ReservationService, RoomService
from infrastructure.config import Settings, get_settings
from infrastructure.logging_config import configure_logging
from infrastructure.notifications import LoggingConfirmationNotifier
from infrastructure.payment_gateway import build_processors
from infrastructure.repositories.in_memory_repositories import InMemoryStore
from infrastructure.security import verify_password, create_access_token
from infrastructure.seed import seed_demo_data

logger = logging.getLogger(__name__)

router = APIRouter()
api_v1 = APIRouter(prefix="/api/v1")


# Dependency injection
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_reservation_service(request: Request) -> ReservationService:
    return request.app.state.reservation_service

def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service

def get_room_service(request: Request) -> RoomService:
    return request.app.state.room_service

def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service

def get_pricing(request: Request) -> PricingCalculator:
    return request.app.state.pricing

def get_notifier(request: Request) -> ConfirmationNotifier:
    return request.app.state.notifier


# ============================================================================
# HEALTH & AUTH ENDPOINTS
# ============================================================================

@router.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@router.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    settings: Settings = Depends(get_app_settings)
):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# ROOM & CATALOG ENDPOINTS
# ============================================================================

@api_v1.get("/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def search_rooms(
    type: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    services: Optional[str] = Query(None, description="Comma separated room features, e.g. wifi,tv"),
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Search available rooms"""
    try:
        rooms = await service.search_rooms(
            room_type=type,
            min_price=min_price,
            max_price=max_price,
            check_in=check_in,
            check_out=check_out,
            services=[s.strip() for s in services.split(",") if s.strip()] if services else None
        )
        return [_room_to_response(r) for r in rooms]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@api_v1.get("/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get room by ID"""
    try:
        return _room_to_response(await service.get_room(room_id))
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.get("/rooms/{room_id}/availability", response_model=AvailabilityResponse, tags=["Rooms"])
async def check_room_availability(
    room_id: UUID,
    check_in: date,
    check_out: date,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check if a room is free for a date range"""
    try:
        await service.get_room(room_id)
        available = await service.check_availability(room_id, check_in, check_out)
        return AvailabilityResponse(room_id=room_id, check_in=check_in, check_out=check_out, available=available)
    except BookingError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@api_v1.get("/services", response_model=List[AddOnServiceResponse], tags=["Services"])
async def list_services(
    service: CatalogService = Depends(get_catalog_service),
    current_user: User = Depends(get_current_active_user)
):
    """List active add-on services"""
    services = await service.get_active_services()
    return [AddOnServiceResponse(**s.model_dump()) for s in services]

# ============================================================================
# DISCOUNT ENDPOINTS
# ============================================================================

@api_v1.get("/discounts/applicable", response_model=ApplicableDiscountsResponse, tags=["Discounts"])
async def get_applicable_discounts(
    nights: int = Query(1, ge=1),
    pricing: PricingCalculator = Depends(get_pricing),
    current_user: User = Depends(get_current_active_user)
):
    """Discounts the current user could apply to a stay"""
    discounts, is_first = await pricing.list_applicable(current_user.user_id, nights)
    return ApplicableDiscountsResponse(
        discounts=[_discount_to_response(d) for d in discounts],
        is_first_reservation=is_first
    )

@api_v1.post("/discounts/calculate", response_model=CalculateDiscountResponse, tags=["Discounts"])
async def calculate_discount(
    request: CalculateDiscountRequest,
    pricing: PricingCalculator = Depends(get_pricing),
    current_user: User = Depends(get_current_active_user)
):
    """Preview a discount on a subtotal"""
    try:
        discount, amount, total = await pricing.calculate(request.discount_id, request.subtotal)
        return CalculateDiscountResponse(
            discount=_discount_to_response(discount),
            subtotal=request.subtotal,
            discount_amount=amount,
            total=total
        )
    except BookingError as e:
        raise to_http_exception(e)

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@api_v1.post("/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    catalog: CatalogService = Depends(get_catalog_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_active_user)
):
    """Hold a room while the guest pays"""
    try:
        lines = await catalog.price_lines((s.service_id, s.quantity) for s in request.services)
        reservation = await service.create_reservation(
            user_id=current_user.user_id,
            room_id=request.room_id,
            check_in=request.check_in,
            check_out=request.check_out,
            guests=request.guests,
            guest_details=request.guest_details,
            services=lines,
            discount_id=request.discount_id
        )
        return _reservation_to_response(reservation, settings.CURRENCY)
    except BookingError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@api_v1.get("/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_my_reservations(
    service: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_active_user)
):
    """Reservations of the current user, newest first"""
    reservations = await service.get_reservations_by_user(current_user.user_id)
    return [_reservation_to_response(r, settings.CURRENCY) for r in reservations]

@api_v1.get("/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    try:
        reservation = await service.get_reservation(reservation_id, current_user)
        return _reservation_to_response(reservation, settings.CURRENCY)
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.get("/reservations/{reservation_id}/services", response_model=List[ReservationServiceResponse], tags=["Reservations"])
async def get_reservation_services(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Add-on services booked with a reservation"""
    try:
        lines = await service.get_services(reservation_id, current_user)
        return [ReservationServiceResponse(**line.model_dump()) for line in lines]
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.get("/reservations/{reservation_id}/discounts", response_model=List[DiscountApplicationResponse], tags=["Reservations"])
async def get_reservation_discounts(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Discounts applied to a reservation"""
    try:
        applications = await service.get_discounts(reservation_id, current_user)
        return [DiscountApplicationResponse(**a.model_dump()) for a in applications]
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.post("/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: Optional[CancelReservationRequest] = None,
    service: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel reservation"""
    try:
        reservation = await service.cancel_reservation(
            reservation_id=reservation_id,
            actor=current_user,
            reason=request.reason if request else None
        )
        return _reservation_to_response(reservation, settings.CURRENCY)
    except BookingError as e:
        raise to_http_exception(e)

# ============================================================================
# PAYMENT ENDPOINTS
# ============================================================================

@api_v1.post("/payments/initiate", response_model=InitiatePaymentResponse, status_code=201, tags=["Payments"])
async def initiate_payment(
    request: InitiatePaymentRequest,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_active_user)
):
    """Open a payment attempt for a held reservation"""
    try:
        card_data = CardData(**request.card_data.model_dump()) if request.card_data else None
        initiation = await service.initiate(
            reservation_id=request.reservation_id,
            user_id=current_user.user_id,
            method=request.method,
            card_data=card_data
        )
        return InitiatePaymentResponse(**initiation.model_dump())
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.get("/payments/check-eligibility/{reservation_id}", response_model=EligibilityResponse, tags=["Payments"])
async def check_payment_eligibility(
    reservation_id: UUID,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_active_user)
):
    """Whether the current user can pay for a reservation right now"""
    result = await service.check_eligibility(reservation_id, current_user.user_id)
    return EligibilityResponse(**result.model_dump())

@api_v1.get("/payments/history/{reservation_id}", response_model=List[PaymentResponse], tags=["Payments"])
async def get_payment_history(
    reservation_id: UUID,
    service: PaymentService = Depends(get_payment_service),
    reservations: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_active_user)
):
    """All payment attempts for a reservation, newest first"""
    try:
        await reservations.get_reservation(reservation_id, current_user)
        payments = await service.get_history(reservation_id)
        return [_payment_to_response(p, settings.CURRENCY) for p in payments]
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.get("/payments/{payment_id}", response_model=PaymentStatusResponse, tags=["Payments"])
async def get_payment(
    payment_id: UUID,
    service: PaymentService = Depends(get_payment_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_active_user)
):
    """Payment with its reservation"""
    try:
        view = await service.get_status(payment_id)
        _check_payment_access(view.reservation, current_user)
        return PaymentStatusResponse(
            payment=_payment_to_response(view.payment, settings.CURRENCY),
            reservation=_reservation_to_response(view.reservation, settings.CURRENCY) if view.reservation else None
        )
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.post("/payments/simulate/{method}/{payment_id}", response_model=PaymentProcessResponse, tags=["Payments"])
async def simulate_payment(
    method: PaymentMethod,
    payment_id: UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    force: Optional[str] = Query(None, description="Pass 'failed' to simulate a declined payment"),
    service: PaymentService = Depends(get_payment_service),
    notifier: ConfirmationNotifier = Depends(get_notifier),
    current_user: User = Depends(get_current_active_user)
):
    """Run the simulated Yape / card processor against a pending payment"""
    try:
        view = await service.get_status(payment_id)
        _check_payment_access(view.reservation, current_user)
        if view.payment.method != method:
            raise HTTPException(status_code=400, detail=f"Payment was initiated with method {view.payment.method.value}")

        processor = request.app.state.processors[method]
        outcome = await processor.settle(force_failure=(force == "failed"))
        result = await service.process(payment_id, outcome)
        if result.success:
            background_tasks.add_task(dispatch_confirmation, notifier, result.reservation_id)
        return _process_result_to_response(result)
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.post("/payments/{payment_id}/settlement", response_model=PaymentProcessResponse, tags=["Payments"])
async def settlement_callback(
    payment_id: UUID,
    request: SettlementCallbackRequest,
    background_tasks: BackgroundTasks,
    service: PaymentService = Depends(get_payment_service),
    notifier: ConfirmationNotifier = Depends(get_notifier),
    current_user: User = Depends(get_current_staff_user)
):
    """Apply a settlement outcome reported by a processor"""
    try:
        outcome = SettlementOutcome(**request.model_dump())
        result = await service.process(payment_id, outcome)
        if result.success:
            background_tasks.add_task(dispatch_confirmation, notifier, result.reservation_id)
        return _process_result_to_response(result)
    except BookingError as e:
        raise to_http_exception(e)

# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@api_v1.get("/admin/stats", response_model=DashboardStatsResponse, tags=["Admin"])
async def get_dashboard_stats(
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Dashboard counters"""
    return DashboardStatsResponse(**await service.get_dashboard_stats())

@api_v1.get("/admin/reservations", response_model=List[ReservationResponse], tags=["Admin"])
async def get_all_reservations(
    status: Optional[ReservationStatus] = None,
    check_in: Optional[date] = None,
    service: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_staff_user)
):
    """All reservations, optionally filtered"""
    reservations = await service.get_all_reservations(status=status, check_in=check_in)
    return [_reservation_to_response(r, settings.CURRENCY) for r in reservations]

@api_v1.post("/admin/reservations/{reservation_id}/complete", response_model=ReservationResponse, tags=["Admin"])
async def complete_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_staff_user)
):
    """Mark a stay as completed"""
    try:
        reservation = await service.complete_reservation(reservation_id)
        return _reservation_to_response(reservation, settings.CURRENCY)
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.post("/admin/holds/expire", response_model=ReleasedHoldsResponse, tags=["Admin"])
async def expire_holds(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Release every hold whose payment window has elapsed"""
    released = await service.release_expired_holds()
    return ReleasedHoldsResponse(
        released=len(released),
        reservation_ids=[r.reservation_id for r in released]
    )

@api_v1.get("/admin/rooms", response_model=List[RoomResponse], tags=["Admin"])
async def get_all_rooms(
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """All rooms regardless of status"""
    return [_room_to_response(r) for r in await service.get_all_rooms()]

@api_v1.post("/admin/rooms", response_model=RoomResponse, status_code=201, tags=["Admin"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Create room"""
    try:
        room = await service.create_room(**request.model_dump())
        return _room_to_response(room)
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.put("/admin/rooms/{room_id}", response_model=RoomResponse, tags=["Admin"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Update room details"""
    try:
        room = await service.update_room(room_id, **request.model_dump(exclude_unset=True))
        return _room_to_response(room)
    except BookingError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@api_v1.patch("/admin/rooms/{room_id}/status", response_model=RoomResponse, tags=["Admin"])
async def update_room_status(
    room_id: UUID,
    request: UpdateRoomStatusRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Change room status"""
    try:
        room = await service.update_room_status(room_id, request.status)
        return _room_to_response(room)
    except BookingError as e:
        raise to_http_exception(e)

@api_v1.delete("/admin/rooms/{room_id}", status_code=204, tags=["Admin"])
async def delete_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_staff_user)
):
    """Delete room"""
    try:
        await service.delete_room(room_id)
    except BookingError as e:
        raise to_http_exception(e)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _check_payment_access(reservation, user: User) -> None:
    if reservation is not None and not reservation.is_owned_by(user.user_id) and not user.is_staff():
        raise HTTPException(status_code=403, detail="Access denied")

def _room_to_response(room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        code=room.code,
        type=room.type,
        description=room.description,
        capacity=room.capacity,
        price_per_night=room.price_per_night,
        status=room.status.value,
        services=room.services,
        images=room.images
    )

def _discount_to_response(discount) -> DiscountResponse:
    """Convert Discount entity to DiscountResponse"""
    return DiscountResponse(
        discount_id=discount.discount_id,
        code=discount.code,
        description=discount.description,
        type=discount.type,
        value=discount.value,
        min_nights=discount.min_nights,
        valid_until=discount.valid_until
    )

def _reservation_to_response(reservation, currency: str) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        user_id=reservation.user_id,
        room_id=reservation.room_id,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
        nights=reservation.get_nights(),
        guests=reservation.guests,
        guest_details=reservation.guest_details,
        total_amount=reservation.total_amount,
        currency=currency,
        status=reservation.status,
        locked_until=reservation.locked_until,
        cancellation_reason=reservation.cancellation_reason,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
        version=reservation.version
    )

def _payment_to_response(payment, currency: str) -> PaymentResponse:
    """Convert Payment entity to PaymentResponse"""
    return PaymentResponse(
        payment_id=payment.payment_id,
        reservation_id=payment.reservation_id,
        method=payment.method,
        amount=payment.amount,
        currency=currency,
        status=payment.status,
        transaction_ref=payment.transaction_ref,
        authorization_code=payment.metadata.get("authorization_code"),
        error_message=payment.metadata.get("error_message") or payment.metadata.get("rollback_reason"),
        created_at=payment.created_at,
        updated_at=payment.updated_at
    )

def _process_result_to_response(result) -> PaymentProcessResponse:
    data = result.model_dump()
    data["error"] = result.error.value if result.error else None
    return PaymentProcessResponse(**data)

# ============================================================================
# APPLICATION FACTORY
# ============================================================================

async def _sweep_expired_holds(service: ReservationService, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await service.release_expired_holds()
        except Exception:
            logger.exception("Hold sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    await seed_demo_data(app.state.store, settings.FIRST_RESERVATION_DISCOUNT_CODE)

    sweeper = None
    if settings.HOLD_RELEASE_MODE == HoldReleaseMode.EAGER:
        sweeper = asyncio.create_task(
            _sweep_expired_holds(app.state.reservation_service, settings.HOLD_SWEEP_INTERVAL_SECONDS)
        )
        logger.info("Hold sweep every %ss", settings.HOLD_SWEEP_INTERVAL_SECONDS)
    try:
        yield
    finally:
        if sweeper:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InMemoryStore] = None,
    notifier: Optional[ConfirmationNotifier] = None
) -> FastAPI:
    """
    Application factory.

    Every service is built around the given store so tests and callers can
    inject their own backing storage and notifier.
    """
    settings = settings or get_settings()
    store = store or InMemoryStore()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Hotel booking API: room holds, payments and confirmations",
        version=settings.APP_VERSION,
        lifespan=lifespan
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    pricing = PricingCalculator(
        discount_repo=store.discounts,
        reservation_repo=store.reservations,
        first_reservation_code=settings.FIRST_RESERVATION_DISCOUNT_CODE,
        ineligible_policy=settings.DISCOUNT_INELIGIBLE_POLICY
    )
    app.state.settings = settings
    app.state.store = store
    app.state.pricing = pricing
    app.state.reservation_service = ReservationService(
        store.reservations, store.rooms, store.availability, pricing, store.discounts,
        hold_minutes=settings.HOLD_MINUTES
    )
    app.state.payment_service = PaymentService(
        store.payments, store.reservations, store.rooms,
        idempotency_window_minutes=settings.PAYMENT_IDEMPOTENCY_WINDOW_MINUTES
    )
    app.state.room_service = RoomService(store.rooms, store.availability, store.reservations)
    app.state.catalog_service = CatalogService(store.services)
    app.state.processors = build_processors(settings.SIMULATED_SETTLEMENT_DELAY_SECONDS)
    app.state.notifier = notifier or LoggingConfirmationNotifier(store, settings.CURRENCY)

    app.include_router(router)
    app.include_router(api_v1)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
