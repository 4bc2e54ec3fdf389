"""Seed Data — resets the stores and populates a demo company, couriers and orders.

Invariants:
    - Seeding goes through CourierRegistry / OrderLifecycle / ConfigStore only,
      so seeded data satisfies every invariant live data does
    - Delivery history is produced by forwarding the virtual clock between
      transitions, never by writing past timestamps directly
    - Deterministic for a given Random seed

Design Decisions:
    - Addresses carry fixed coordinates: seeding never touches the network
"""

import logging
import random
from dataclasses import replace
from datetime import timedelta

from courier_dispatch.core.domain_types import (
    CourierId, DeliveryType, OrderId, OrderType,
)
from courier_dispatch.core.entities import Courier, Location, Order
from courier_dispatch.core.geo import haversine_km
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.services.courier_registry import CourierRegistry
from courier_dispatch.services.dispatch_context import DispatchContext, store_errors
from courier_dispatch.services.order_lifecycle import OrderLifecycle

logger = logging.getLogger(__name__)

COMPANY_ADDRESS = "Yona Green 7, Petah Tikva, Israel"
COMPANY_LOCATION = Location(32.098799, 34.8979087)

PHONE_PREFIXES = ("050", "051", "052", "053", "054", "055", "058")
EMAIL_DOMAINS = ("@delivery.com", "@fastship.co.il", "@express.net")

COURIER_NAMES = (
    "David Cohen", "Sarah Levi", "Michael Amir", "Rachel Israeli",
    "Yossi Mizrahi", "Tal Shapira", "Noa Goldstein", "Avi Ben-David",
    "Shira Katz", "Eitan Levy", "Maya Friedman", "Ori Peretz",
    "Gal Sharon", "Lior Ben-Ami", "Dana Rosenberg", "Alon Har-Even",
)

ADDRESSES = (
    ("Herzl 45, Tel Aviv, Israel", 32.0853, 34.7818),
    ("Ben Gurion 12, Ramat Gan, Israel", 32.0800, 34.8130),
    ("Rothschild 88, Tel Aviv, Israel", 32.0668, 34.7748),
    ("Dizengoff 120, Tel Aviv, Israel", 32.0827, 34.7753),
    ("Sokolov 22, Ramat Gan, Israel", 32.0891, 34.8237),
    ("Begin 18, Petah Tikva, Israel", 32.0879, 34.8825),
    ("Weizmann 30, Rehovot, Israel", 31.8969, 34.8186),
    ("Nordau 33, Netanya, Israel", 32.3215, 34.8532),
    ("Moshe Sneh 8, Petah Tikva, Israel", 32.0845, 34.8715),
    ("Sirkin 45, Petah Tikva, Israel", 32.0812, 34.8598),
    ("Bialik 115, Ramat Gan, Israel", 32.0856, 34.8142),
    ("Rabbi Akiva 88, Bnei Brak, Israel", 32.0850, 34.8384),
    ("Katznelson 41, Givatayim, Israel", 32.0737, 34.8114),
    ("Eilat 45, Holon, Israel", 32.0186, 34.7751),
    ("Medinat HaYehudim 85, Herzliya, Israel", 32.1656, 34.8434),
    ("Weizmann 125, Kfar Saba, Israel", 32.1845, 34.9078),
    ("Ahuza 145, Raanana, Israel", 32.1867, 34.8723),
    ("Sokolov 77, Hod Hasharon, Israel", 32.1456, 34.8889),
    ("Maccabim 12, Rosh HaAyin, Israel", 32.0934, 34.9567),
    ("HaAtzmaut 45, Yehud, Israel", 32.0334, 34.8912),
    ("Haim Bar Lev 33, Or Yehuda, Israel", 32.0289, 34.8578),
    ("Derech Hashalom 53, Tel Aviv, Israel", 32.0647, 34.7868),
)

CUSTOMER_NAMES = (
    "Dan Israeli", "Maya Katz", "Ori Levy", "Shani Cohen", "Eyal Mizrahi",
    "Gal Sharabi", "Liora Amar", "Ron Goldberg", "Yael Shapiro", "Amit Ben-Zvi",
    "Tamar Avraham", "Noam Klein", "Shir Malka", "Ido Peretz", "Noa Biton",
    "Uri Dahan", "Hila Golan", "Rotem Azulay", "Adi Berkovich", "Yoni Hadad",
    "Michal Gabay", "Shai Ohayon",
)

# (min, max) weight kg, (min, max) volume m3, fragile chance
_PACKAGE_PROFILES = {
    OrderType.RESTAURANT_FOOD: ((0.5, 3.5), (0.01, 0.06), 0.20),
    OrderType.GROCERIES: ((2.0, 17.0), (0.05, 0.20), 0.25),
    OrderType.RETAIL: ((0.2, 8.2), (0.01, 0.11), 0.33),
}


def company_config(base: SystemConfig) -> SystemConfig:
    return replace(
        base,
        company_address=COMPANY_ADDRESS,
        company_latitude=COMPANY_LOCATION.latitude,
        company_longitude=COMPANY_LOCATION.longitude,
        max_delivery_distance=50.0,
    )


def phone_number(rng: random.Random) -> str:
    return rng.choice(PHONE_PREFIXES) + f"{rng.randrange(10_000_000):07d}"


def courier_id(rng: random.Random, taken: set[int]) -> CourierId:
    """Nine-digit id with a Luhn-style check digit, unique within `taken`."""
    while True:
        digits = [rng.randrange(10) for _ in range(8)]
        digits[0] = digits[0] or 1
        total = 0
        for index, digit in enumerate(digits):
            value = digit * (1 if index % 2 == 0 else 2)
            total += value - 9 if value > 9 else value
        candidate = int("".join(map(str, digits)) + str((10 - total % 10) % 10))
        if candidate not in taken:
            taken.add(candidate)
            return CourierId(candidate)


def _seed_couriers(
    registry: CourierRegistry, ctx: DispatchContext, rng: random.Random,
) -> list[Courier]:
    now = ctx.now
    vehicles = list(DeliveryType)
    taken: set[int] = set()
    created = []
    for index, name in enumerate(COURIER_NAMES):
        courier = Courier(
            id=courier_id(rng, taken),
            name=name,
            phone=phone_number(rng),
            email=name.replace(" ", ".").lower() + rng.choice(EMAIL_DOMAINS),
            delivery_type=vehicles[index % len(vehicles)],
            start_working_date=now - timedelta(days=rng.randint(1, 25)),
            location=Location(
                COMPANY_LOCATION.latitude + rng.uniform(-0.01, 0.01),
                COMPANY_LOCATION.longitude + rng.uniform(-0.01, 0.01),
            ),
            is_active=rng.randrange(10) != 0,
            max_delivery_distance=(
                None if rng.randrange(10) < 3 else float(rng.randint(5, 50))
            ),
        )
        created.append(registry.create(courier))
    return created


def _seed_orders(
    lifecycle: OrderLifecycle, ctx: DispatchContext, rng: random.Random,
) -> list[Order]:
    now = ctx.now
    created = []
    for index, ((address, lat, lon), customer) in enumerate(
        zip(ADDRESSES, CUSTOMER_NAMES),
    ):
        order_type = rng.choice(list(OrderType))
        weight, volume, fragile = _PACKAGE_PROFILES[order_type]
        order = Order(
            id=OrderId(0),
            order_type=order_type,
            description=f"Order #{index + 1} - {order_type.value}",
            address=address,
            latitude=lat,
            longitude=lon,
            customer_name=customer,
            customer_phone=phone_number(rng),
            weight=round(rng.uniform(*weight), 2),
            volume=round(rng.uniform(*volume), 3),
            is_fragile=rng.random() < fragile,
            created_at=now,
        )
        created.append(lifecycle.create(order, created_at=now))
    return created


def initialize_db(
    ctx: DispatchContext,
    lifecycle: OrderLifecycle,
    registry: CourierRegistry,
    rng: random.Random | None = None,
) -> dict:
    """Reset everything, then seed couriers, orders and some delivery history."""
    rng = rng or random.Random()
    with ctx.bus.suppressed():
        reset_db(ctx)
        ctx.config.set_config(company_config(ctx.config.get_config()))
        couriers = [c for c in _seed_couriers(registry, ctx, rng) if c.is_active]
        orders = _seed_orders(lifecycle, ctx, rng)

        # Round 1 is delivered, round 2 stays in progress, the rest stay open.
        rounds = [orders[: len(orders) // 3], orders[len(orders) // 3: len(orders) // 2]]
        for round_index, batch in enumerate(rounds):
            busy: list[tuple[Order, Courier]] = []
            free = list(couriers)
            for order in batch:
                courier = next(
                    (c for c in free if _reachable(c, order)), None,
                )
                if courier is None:
                    continue
                free.remove(courier)
                lifecycle.associate_courier_to_order(order.id, courier.id)
                busy.append((order, courier))
            ctx.config.forward_clock(15)
            for order, _ in busy:
                lifecycle.pick_up_order(order.id)
            if round_index == 0:
                ctx.config.forward_clock(30)
                for order, _ in busy:
                    lifecycle.deliver_order(order.id)
    summary = {
        "couriers": len(COURIER_NAMES),
        "active_couriers": len(couriers),
        "orders": len(orders),
    }
    logger.info(f"Database initialized: {summary}")
    return summary


def reset_db(ctx: DispatchContext) -> None:
    """Delete all entities and restore the default config."""
    with ctx.lock, store_errors("reset_db"):
        ctx.deliveries.delete_all()
        ctx.orders.delete_all()
        ctx.couriers.delete_all()
        ctx.config.reset()
    logger.info("Database reset")


def _reachable(courier: Courier, order: Order) -> bool:
    if courier.max_delivery_distance is None:
        return True
    return haversine_km(courier.location, order.location) <= courier.max_delivery_distance
