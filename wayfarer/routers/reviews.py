import logging
from typing import List

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import get_db
from ..dependencies import get_settings, get_storage
from ..exceptions import ValidationFailed
from ..models import Place, Review
from ..roles import Role
from ..schemas import Paginated, ReviewCreate, ReviewImagesResponse, ReviewResponse, ReviewUpdate
from ..security import ensure_owner_or_role, get_principal, require_role
from ..services.rating_service import place_rating_lock, recompute_place_rating
from ..services.storage import StorageService
from ..services.token_service import Principal
from ..utils import Pagination, ensure_exists, get_or_404, page_body, paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("", response_model=Paginated[ReviewResponse])
async def list_reviews(
    place_id: int = Query(...),
    page: Pagination = Depends(pagination_params),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Review).where(Review.place_id == place_id).order_by(Review.id.desc())
    items, total = await paginate(db, stmt, page)
    return page_body(items, total, page)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    await ensure_exists(db, Place, payload.place_id, "Place")

    async with place_rating_lock(payload.place_id):
        review = Review(
            user_id=principal.id,
            place_id=payload.place_id,
            rating=payload.rating,
            comment=payload.comment,
            image_urls=[],
        )
        db.add(review)
        await recompute_place_rating(db, payload.place_id)
        await db.commit()

    await db.refresh(review)
    return review


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: int,
    payload: ReviewUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Update a review; only its author may do so."""
    review = await get_or_404(db, Review, review_id, "Review")
    ensure_owner_or_role(principal, review.user_id)

    async with place_rating_lock(review.place_id):
        if payload.rating is not None:
            review.rating = payload.rating
        if payload.comment is not None:
            review.comment = payload.comment
        await recompute_place_rating(db, review.place_id)
        await db.commit()

    await db.refresh(review)
    return review


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: int,
    principal: Principal = Depends(require_role(Role.admin)),
    db: AsyncSession = Depends(get_db),
):
    review = await get_or_404(db, Review, review_id, "Review")
    place_id = review.place_id

    async with place_rating_lock(place_id):
        await db.delete(review)
        await recompute_place_rating(db, place_id)
        await db.commit()

    logger.info(f"Review {review_id} deleted by user {principal.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{review_id}/images", response_model=ReviewImagesResponse)
async def upload_review_images(
    review_id: int,
    images: List[UploadFile] = File(...),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage: StorageService = Depends(get_storage),
):
    """Attach images to the caller's own review."""
    review = await get_or_404(db, Review, review_id, "Review")
    ensure_owner_or_role(principal, review.user_id)

    existing = list(review.image_urls or [])
    if len(existing) + len(images) > settings.max_review_images:
        raise ValidationFailed(
            f"A review can have at most {settings.max_review_images} images")

    new_urls = []
    for image in images:
        content = await image.read()
        new_urls.append(await storage.save_review_image(review.id, image.filename or "image", content))

    # Reassign so the JSON column is flagged as changed
    review.image_urls = existing + new_urls
    await db.commit()
    return ReviewImagesResponse(image_urls=review.image_urls)
