from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Booking, Location, Place, Trip
from ..roles import Role
from ..schemas import LocationBookingStats
from ..security import require_role
from ..services.token_service import Principal

router = APIRouter(prefix="/admin/analytics", tags=["analytics"])


@router.get("/bookings", response_model=List[LocationBookingStats])
async def booking_analytics(
    principal: Principal = Depends(require_role(Role.admin)),
    db: AsyncSession = Depends(get_db),
):
    """
    Booking counts per location, with the mean rating of the location's places.

    Only locations that have at least one booking are listed. Unrated places
    are left out of the rating mean.
    """
    booking_counts = (
        select(Trip.location_id, func.count(Booking.id).label("booking_count"))
        .join(Booking, Booking.trip_id == Trip.id)
        .group_by(Trip.location_id)
        .subquery()
    )
    place_ratings = (
        select(Place.location_id, func.avg(Place.average_rating).label("average_place_rating"))
        .group_by(Place.location_id)
        .subquery()
    )
    result = await db.execute(
        select(
            Location.id,
            Location.name,
            booking_counts.c.booking_count,
            place_ratings.c.average_place_rating,
        )
        .join(booking_counts, booking_counts.c.location_id == Location.id)
        .outerjoin(place_ratings, place_ratings.c.location_id == Location.id)
        .order_by(booking_counts.c.booking_count.desc(), Location.id)
    )

    return [
        LocationBookingStats(
            location_id=row.id,
            location_name=row.name,
            booking_count=row.booking_count,
            average_place_rating=float(row.average_place_rating)
            if row.average_place_rating is not None else None,
        )
        for row in result
    ]
