import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import Forbidden
from ..models import Booking, Trip
from ..roles import Role, meets
from ..schemas import BookingCreate, BookingResponse, BookingStatus, BookingStatusUpdate, Paginated
from ..security import ensure_owner_or_role, get_principal, require_role
from ..services.token_service import Principal
from ..surfaces import ApiSurface, get_api_surface
from ..utils import Pagination, ensure_exists, get_or_404, page_body, paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])
admin_router = APIRouter(prefix="/admin/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a trip for the caller.

    `user_id` may be omitted; when given it must be the caller's own id.
    Bookings start as `pending`.
    """
    if payload.user_id is not None and payload.user_id != principal.id:
        raise Forbidden("Cannot create a booking for another user")

    trip = await ensure_exists(db, Trip, payload.trip_id, "Trip")
    total = payload.total if payload.total is not None else trip.price * payload.guests

    booking = Booking(
        user_id=principal.id,
        trip_id=trip.id,
        guests=payload.guests,
        total=total,
        status=BookingStatus.pending.value,
        booking_date=payload.booking_date or datetime.now(timezone.utc),
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    logger.info(f"Booking {booking.id} created user={principal.id} trip={trip.id}")
    return booking


@router.get("", response_model=Paginated[BookingResponse])
async def list_bookings(
    page: Pagination = Depends(pagination_params),
    principal: Principal = Depends(get_principal),
    surface: ApiSurface = Depends(get_api_surface),
    db: AsyncSession = Depends(get_db),
):
    """
    List bookings.

    On the default surface this is the admin view of every booking. On the
    v2 (mobile) surface it lists the caller's own bookings, whatever the role.
    """
    stmt = select(Booking).order_by(Booking.id)
    if surface == ApiSurface.v2:
        stmt = stmt.where(Booking.user_id == principal.id)
    elif not meets(principal.role, Role.admin):
        raise Forbidden()

    items, total = await paginate(db, stmt, page)
    return page_body(items, total, page)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_or_404(db, Booking, booking_id, "Booking")
    ensure_owner_or_role(principal, booking.user_id, Role.admin)
    return booking


@admin_router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    principal: Principal = Depends(require_role(Role.admin)),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_or_404(db, Booking, booking_id, "Booking")
    previous = booking.status
    booking.status = payload.status.value
    await db.commit()
    await db.refresh(booking)
    logger.info(
        f"Booking {booking.id} status {previous} -> {booking.status} by user {principal.id}")
    return booking
