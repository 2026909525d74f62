import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import get_db
from ..exceptions import NotFound, ValidationFailed
from ..models import Location, Trip
from ..schemas import Paginated, TripCreate, TripDetailResponse, TripResponse, TripUpdate, as_utc
from ..security import require_catalog_admin
from ..services.token_service import Principal
from ..utils import Pagination, apply_updates, ensure_exists, get_or_404, page_body, paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])
admin_router = APIRouter(prefix="/admin/trips", tags=["trips"])


@router.get("", response_model=Paginated[TripResponse])
async def list_trips(
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    items, total = await paginate(db, select(Trip).order_by(Trip.start_date, Trip.id), page)
    return page_body(items, total, page)


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(trip_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Trip).where(Trip.id == trip_id).options(selectinload(Trip.location))
    )
    trip = result.scalar_one_or_none()
    if trip is None:
        raise NotFound("Trip not found")
    return trip


@admin_router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    payload: TripCreate,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    await ensure_exists(db, Location, payload.location_id, "Location")
    trip = Trip(**payload.model_dump(exclude={"type"}), type=payload.type.value)
    db.add(trip)
    await db.commit()
    await db.refresh(trip)
    logger.info(f"Trip {trip.id} created by user {principal.id}")
    return trip


@admin_router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: int,
    payload: TripUpdate,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    trip = await get_or_404(db, Trip, trip_id, "Trip")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("location_id") is not None:
        await ensure_exists(db, Location, changes["location_id"], "Location")

    start_date = changes.get("start_date") or trip.start_date
    end_date = changes.get("end_date") or trip.end_date
    # Stored values read back naive on SQLite
    if as_utc(end_date) < as_utc(start_date):
        raise ValidationFailed("End date must not be before start date")

    apply_updates(trip, changes)
    await db.commit()
    await db.refresh(trip)
    return trip


@admin_router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    trip = await get_or_404(db, Trip, trip_id, "Trip")
    await db.delete(trip)
    await db.commit()
    logger.info(f"Trip {trip_id} deleted by user {principal.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
