import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import get_db
from ..exceptions import Conflict, NotFound
from ..models import Location, Place, Trip
from ..schemas import LocationCreate, LocationDetailResponse, LocationResponse, LocationUpdate, Paginated
from ..security import require_catalog_admin
from ..services.token_service import Principal
from ..utils import Pagination, apply_updates, get_or_404, page_body, paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["locations"])
admin_router = APIRouter(prefix="/admin/locations", tags=["locations"])


@router.get("", response_model=Paginated[LocationResponse])
async def list_locations(
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    items, total = await paginate(db, select(Location).order_by(Location.id), page)
    return page_body(items, total, page)


@router.get("/{location_id}", response_model=LocationDetailResponse)
async def get_location(location_id: int, db: AsyncSession = Depends(get_db)):
    """Location with the places and trips that reference it."""
    result = await db.execute(
        select(Location)
        .where(Location.id == location_id)
        .options(selectinload(Location.places), selectinload(Location.trips))
    )
    location = result.scalar_one_or_none()
    if location is None:
        raise NotFound("Location not found")
    return location


@admin_router.post("", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: LocationCreate,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    location = Location(**payload.model_dump())
    db.add(location)
    await db.commit()
    await db.refresh(location)
    logger.info(f"Location {location.id} created by user {principal.id}")
    return location


@admin_router.put("/{location_id}", response_model=LocationResponse)
async def update_location(
    location_id: int,
    payload: LocationUpdate,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    location = await get_or_404(db, Location, location_id, "Location")
    apply_updates(location, payload.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(location)
    return location


@admin_router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: int,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a location.

    Places and trips are not cascaded; the location must be unreferenced.
    """
    location = await get_or_404(db, Location, location_id, "Location")

    places_count = await db.scalar(
        select(func.count(Place.id)).where(Place.location_id == location_id))
    trips_count = await db.scalar(
        select(func.count(Trip.id)).where(Trip.location_id == location_id))
    if places_count or trips_count:
        raise Conflict(
            f"Location is still referenced by {places_count} place(s) and {trips_count} trip(s)")

    await db.delete(location)
    await db.commit()
    logger.info(f"Location {location_id} deleted by user {principal.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
