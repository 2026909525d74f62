import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import Settings
from ..database import get_db
from ..dependencies import get_settings, get_storage
from ..exceptions import NotFound
from ..models import Location, Place, Review
from ..schemas import (
    Paginated,
    PlaceCategory,
    PlaceCreate,
    PlaceDetailResponse,
    PlaceImageResponse,
    PlaceResponse,
    PlaceUpdate,
)
from ..security import require_catalog_admin
from ..services.storage import StorageService
from ..services.token_service import Principal
from ..utils import Pagination, apply_updates, ensure_exists, get_or_404, page_body, paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/places", tags=["places"])
admin_router = APIRouter(prefix="/admin/places", tags=["places"])


@router.get("", response_model=Paginated[PlaceResponse])
async def list_places(
    location_id: Optional[int] = Query(None),
    category: Optional[PlaceCategory] = Query(None),
    min_rating: Optional[float] = Query(None, ge=1, le=5),
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """Places, optionally filtered by location, category and minimum average rating."""
    stmt = select(Place).order_by(Place.id)
    if location_id is not None:
        stmt = stmt.where(Place.location_id == location_id)
    if category is not None:
        stmt = stmt.where(Place.category == category.value)
    if min_rating is not None:
        stmt = stmt.where(Place.average_rating >= min_rating)
    items, total = await paginate(db, stmt, page)
    return page_body(items, total, page)


@router.get("/recommended", response_model=list[PlaceResponse])
async def recommended_places(
    location_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Best-rated places of a location (average rating at or above the configured threshold)."""
    result = await db.execute(
        select(Place)
        .where(
            Place.location_id == location_id,
            Place.average_rating >= settings.recommended_min_rating,
        )
        .order_by(Place.average_rating.desc(), Place.id)
        .limit(settings.recommended_limit)
    )
    return result.scalars().all()


@router.get("/{place_id}", response_model=PlaceDetailResponse)
async def get_place(place_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Place)
        .where(Place.id == place_id)
        .options(
            selectinload(Place.location),
            selectinload(Place.reviews).selectinload(Review.user),
        )
    )
    place = result.scalar_one_or_none()
    if place is None:
        raise NotFound("Place not found")

    detail = PlaceDetailResponse.model_validate(place)
    detail.review_count = len(detail.reviews)
    return detail


@admin_router.post("", response_model=PlaceResponse, status_code=status.HTTP_201_CREATED)
async def create_place(
    payload: PlaceCreate,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    await ensure_exists(db, Location, payload.location_id, "Location")
    place = Place(
        name=payload.name,
        description=payload.description,
        location_id=payload.location_id,
        category=payload.category.value,
        image_url=payload.image_url,
    )
    db.add(place)
    await db.commit()
    await db.refresh(place)
    logger.info(f"Place {place.id} created by user {principal.id}")
    return place


@admin_router.put("/{place_id}", response_model=PlaceResponse)
async def update_place(
    place_id: int,
    payload: PlaceUpdate,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    place = await get_or_404(db, Place, place_id, "Place")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("location_id") is not None:
        await ensure_exists(db, Location, changes["location_id"], "Location")
    apply_updates(place, changes)
    await db.commit()
    await db.refresh(place)
    return place


@admin_router.delete("/{place_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_place(
    place_id: int,
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a place together with its reviews."""
    place = await get_or_404(db, Place, place_id, "Place")
    await db.delete(place)
    await db.commit()
    logger.info(f"Place {place_id} deleted by user {principal.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.post("/{place_id}/upload", response_model=PlaceImageResponse)
async def upload_place_image(
    place_id: int,
    image: UploadFile = File(...),
    principal: Principal = Depends(require_catalog_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Store an image for the place and make it the place's image."""
    place = await get_or_404(db, Place, place_id, "Place")
    content = await image.read()
    image_url = await storage.save_place_image(place.id, image.filename or "image", content)
    place.image_url = image_url
    await db.commit()
    return PlaceImageResponse(image_url=image_url)
