import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import Conflict
from ..models import Booking, Review, User
from ..roles import Role
from ..schemas import BookingResponse, Paginated, UserAdminUpdate, UserCreate, UserResponse, UserSelfUpdate
from ..security import ensure_owner_or_role, get_principal, hash_password, require_role
from ..services.auth_service import create_user, get_user_by_email
from ..services.token_service import Principal
from ..utils import Pagination, get_or_404, page_body, paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])
admin_router = APIRouter(prefix="/admin/users", tags=["users"])

require_super_admin = require_role(Role.super_admin)


async def _ensure_email_available(db: AsyncSession, email: str, user: User) -> None:
    if email == user.email:
        return
    if await get_user_by_email(db, email) is not None:
        raise Conflict("Email already exists")


@admin_router.get("", response_model=Paginated[UserResponse])
async def list_users(
    page: Pagination = Depends(pagination_params),
    principal: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await paginate(db, select(User).order_by(User.id), page)
    return page_body(items, total, page)


@admin_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_account(
    payload: UserCreate,
    principal: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create an account with any role, including other administrators."""
    user = await create_user(db, payload.email, payload.password, payload.name, payload.role)
    logger.info(f"User {user.id} ({user.role}) created by user {principal.id}")
    return user


@admin_router.get("/{user_id}", response_model=UserResponse)
async def get_user_account(
    user_id: int,
    principal: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_or_404(db, User, user_id, "User")


@admin_router.put("/{user_id}", response_model=UserResponse)
async def update_user_account(
    user_id: int,
    payload: UserAdminUpdate,
    principal: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Change a user's email, name or role.

    A role change is reflected in tokens issued afterwards; tokens already
    issued keep the role they were minted with until they expire.
    """
    user = await get_or_404(db, User, user_id, "User")
    if payload.email is not None:
        await _ensure_email_available(db, payload.email, user)
        user.email = payload.email
    if payload.name is not None:
        user.name = payload.name
    if payload.role is not None and payload.role.value != user.role:
        logger.info(
            f"User {user.id} role {user.role} -> {payload.role.value} by user {principal.id}")
        user.role = payload.role.value

    await db.commit()
    await db.refresh(user)
    return user


@admin_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_account(
    user_id: int,
    principal: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an account that has no bookings or reviews."""
    user = await get_or_404(db, User, user_id, "User")

    bookings_count = await db.scalar(
        select(func.count(Booking.id)).where(Booking.user_id == user_id))
    reviews_count = await db.scalar(
        select(func.count(Review.id)).where(Review.user_id == user_id))
    if bookings_count or reviews_count:
        raise Conflict(
            f"User still has {bookings_count} booking(s) and {reviews_count} review(s)")

    await db.delete(user)
    await db.commit()
    logger.info(f"User {user_id} deleted by user {principal.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    ensure_owner_or_role(principal, user_id, Role.admin)
    return await get_or_404(db, User, user_id, "User")


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    payload: UserSelfUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Update profile fields; the role can only be changed by a super admin."""
    ensure_owner_or_role(principal, user_id, Role.admin)
    user = await get_or_404(db, User, user_id, "User")

    if payload.email is not None:
        await _ensure_email_available(db, payload.email, user)
        user.email = payload.email
    if payload.name is not None:
        user.name = payload.name
    if payload.password is not None:
        user.password_hash = hash_password(payload.password)

    await db.commit()
    await db.refresh(user)
    return user


@router.get("/{user_id}/bookings", response_model=Paginated[BookingResponse])
async def list_user_bookings(
    user_id: int,
    page: Pagination = Depends(pagination_params),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    ensure_owner_or_role(principal, user_id, Role.admin)
    await get_or_404(db, User, user_id, "User")
    stmt = select(Booking).where(Booking.user_id == user_id).order_by(Booking.id)
    items, total = await paginate(db, stmt, page)
    return page_body(items, total, page)
