"""Demo catalog loaded into an empty store at startup"""
import logging
from datetime import date
from decimal import Decimal

from domain.entities import AddOnService, Discount, Room
from domain.enums import DiscountType
from infrastructure.repositories.in_memory_repositories import InMemoryStore

logger = logging.getLogger(__name__)

DEMO_ROOMS = [
    {"code": "101", "type": "simple", "capacity": 1, "price_per_night": Decimal("120.00"),
     "description": "Single room with garden view", "services": {"wifi": True, "tv": True}},
    {"code": "102", "type": "doble", "capacity": 2, "price_per_night": Decimal("180.00"),
     "description": "Double room", "services": {"wifi": True, "tv": True, "minibar": True}},
    {"code": "201", "type": "suite", "capacity": 4, "price_per_night": Decimal("350.00"),
     "description": "Suite with jacuzzi", "services": {"wifi": True, "tv": True, "minibar": True, "jacuzzi": True}},
]

DEMO_SERVICES = [
    {"name": "Breakfast", "price": Decimal("25.00"), "icon": "coffee"},
    {"name": "Airport transfer", "price": Decimal("60.00"), "icon": "car"},
    {"name": "Parking", "price": Decimal("15.00"), "icon": "parking"},
]


def demo_discounts(first_reservation_code: str):
    return [
        {"code": first_reservation_code, "description": "First reservation",
         "type": DiscountType.PERCENTAGE, "value": Decimal("10"), "min_nights": 1},
        {"code": "LARGAESTADIA", "description": "Stays of a week or more",
         "type": DiscountType.PERCENTAGE, "value": Decimal("15"), "min_nights": 7},
        {"code": "FINDE50", "description": "Weekend flat discount",
         "type": DiscountType.FIXED, "value": Decimal("50"), "min_nights": 2,
         "valid_until": date(2099, 12, 31)},
    ]


async def seed_demo_data(store: InMemoryStore, first_reservation_code: str = "PRIMERAVEZ") -> bool:
    """Load the demo catalog; does nothing when rooms already exist"""
    if await store.rooms.find_all():
        return False
    for fields in DEMO_ROOMS:
        await store.rooms.save(Room(**fields))
    for fields in DEMO_SERVICES:
        await store.services.save(AddOnService(**fields))
    for fields in demo_discounts(first_reservation_code):
        await store.discounts.save(Discount(**fields))
    logger.info(
        "Seeded %d rooms, %d services, %d discounts",
        len(DEMO_ROOMS), len(DEMO_SERVICES), len(demo_discounts(first_reservation_code))
    )
    return True
