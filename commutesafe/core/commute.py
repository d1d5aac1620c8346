import uuid
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc

from commutesafe.models.route import (
    CommuteRoute, RouteHistory, RouteHistoryCreate, VehicleType
)

# Quezon City -> OLFU Hilltop, with typical fares in pesos
COMMUTE_ROUTES: List[CommuteRoute] = [
    CommuteRoute(
        id="1",
        name="Jeepney via Commonwealth",
        vehicle_type=VehicleType.JEEPNEY,
        fare=15,
        duration=30,
        distance="5.2 km",
        description=(
            "Most common route. Take the Fairview-bound jeepney along Commonwealth "
            "Avenue. Affordable and frequent trips."
        ),
        stops="Commonwealth → Litex → Hilltop",
        steps=[
            "Walk to the nearest jeepney stop on Commonwealth Ave.",
            "Look for jeepneys with 'Fairview' or 'Hilltop' sign",
            "Ride the jeepney going to Fairview direction",
            "Tell the driver to drop you at OLFU Hilltop",
            "Fare: ₱15 (may vary slightly)",
        ],
    ),
    CommuteRoute(
        id="2",
        name="Bus via EDSA + Jeep",
        vehicle_type=VehicleType.BUS,
        fare=25,
        duration=45,
        distance="8.1 km",
        description=(
            "Take a bus along EDSA to SM Fairview then transfer to jeepney going to "
            "OLFU. Air-conditioned option."
        ),
        stops="EDSA → SM Fairview → OLFU",
        steps=[
            "Go to the nearest EDSA bus stop",
            "Ride a bus going to SM Fairview/Fairview Terminal",
            "Alight at SM Fairview Bus Terminal",
            "Transfer to jeepney going to OLFU Hilltop",
            "Bus Fare: ₱15-20 | Jeep Fare: ₱10",
        ],
    ),
    CommuteRoute(
        id="3",
        name="Tricycle Direct",
        vehicle_type=VehicleType.TRICYCLE,
        fare=50,
        duration=10,
        distance="2.1 km",
        description=(
            "Direct and fastest option if you're nearby. Negotiate fare with the "
            "driver. Best for short distances."
        ),
        stops="Direct to OLFU Gate",
        steps=[
            "Hail a tricycle from your location",
            "Tell the driver: 'OLFU Hilltop, please'",
            "Negotiate the fare (usually ₱50-80)",
            "Direct ride to OLFU main gate",
            "Tip: Agree on fare before riding",
        ],
    ),
    CommuteRoute(
        id="4",
        name="UV Express via Mindanao Ave",
        vehicle_type=VehicleType.VAN,
        fare=20,
        duration=25,
        distance="6.5 km",
        description=(
            "UV Express/FX vans along Mindanao Avenue. Faster than jeepney, "
            "air-conditioned."
        ),
        stops="Trinoma → Mindanao Ave → Hilltop",
        steps=[
            "Go to Trinoma or nearest UV terminal",
            "Look for UV Express going to Fairview",
            "Ride the van along Mindanao Avenue route",
            "Alight at Hilltop/OLFU area",
            "Walk 3-5 minutes to OLFU gate",
        ],
    ),
    CommuteRoute(
        id="5",
        name="Grab/Taxi",
        vehicle_type=VehicleType.CAR,
        fare=150,
        duration=15,
        distance="Varies",
        description=(
            "Most convenient door-to-door option. Book via Grab app. Price varies "
            "based on traffic and distance."
        ),
        stops="Door to Door Service",
        steps=[
            "Open Grab app on your phone",
            "Set pickup: Your current location",
            "Set destination: OLFU Quezon City, Hilltop",
            "Choose GrabCar or GrabShare",
            "Confirm booking and wait for driver",
        ],
    ),
]

SORT_KEYS = {
    "fare": lambda route: (route.fare, route.duration),
    "duration": lambda route: (route.duration, route.fare),
}

def list_routes(
    vehicle_type: Optional[VehicleType] = None,
    max_fare: Optional[int] = None,
    sort_by: Optional[str] = None
) -> List[CommuteRoute]:
    """Route suggestions with fare estimates, optionally filtered and sorted"""
    routes = [
        route for route in COMMUTE_ROUTES
        if (vehicle_type is None or route.vehicle_type == vehicle_type)
        and (max_fare is None or route.fare <= max_fare)
    ]
    if sort_by:
        if sort_by not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_by}")
        routes.sort(key=SORT_KEYS[sort_by])
    return routes

def get_route(route_id: str) -> Optional[CommuteRoute]:
    return next((route for route in COMMUTE_ROUTES if route.id == route_id), None)

def format_step_distance(meters: float) -> str:
    if meters > 1000:
        return f"{meters / 1000:.1f} km"
    return f"{round(meters)} m"

# ============================================
# ROUTE HISTORY
# ============================================

async def save_route_history(db: AsyncSession, user_id: str, route: RouteHistoryCreate) -> RouteHistory:
    entry = RouteHistory(
        user_id=user_id,
        origin=route.origin,
        destination=route.destination,
        route_data=route.route_data
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry

async def get_route_history(db: AsyncSession, user_id: str, limit: int = 10) -> List[RouteHistory]:
    result = await db.execute(
        select(RouteHistory)
        .where(RouteHistory.user_id == user_id)
        .order_by(desc(RouteHistory.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())

async def delete_route_history(db: AsyncSession, user_id: str, route_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(RouteHistory).where(RouteHistory.id == route_id, RouteHistory.user_id == user_id)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        return False

    await db.delete(entry)
    await db.commit()
    return True
