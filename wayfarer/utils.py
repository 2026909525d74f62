from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Type, TypeVar

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import NotFound, ValidationFailed

ModelT = TypeVar("ModelT")


@dataclass
class Pagination:
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> Pagination:
    return Pagination(limit=limit, offset=offset)


async def paginate(db: AsyncSession, stmt: Select, page: Pagination, options: Sequence[Any] = ()) -> Tuple[Sequence[Any], int]:
    """
    Run `stmt` for one page and count all matching rows.

    Loader `options` apply to the page query only. Returns (items, total).
    """
    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    result = await db.execute(stmt.options(*options).limit(page.limit).offset(page.offset))
    return result.scalars().all(), total or 0


def page_body(items: Sequence[Any], total: int, page: Pagination) -> dict:
    return {"items": items, "total": total, "limit": page.limit, "offset": page.offset}


async def get_or_404(db: AsyncSession, model: Type[ModelT], obj_id: int, label: Optional[str] = None) -> ModelT:
    obj = await db.get(model, obj_id)
    if obj is None:
        raise NotFound(f"{label or model.__name__} not found")
    return obj


async def ensure_exists(db: AsyncSession, model: Type[ModelT], obj_id: int, label: str) -> ModelT:
    """Like `get_or_404`, for ids referenced from a request body (400, not 404)."""
    obj = await db.get(model, obj_id)
    if obj is None:
        raise ValidationFailed(f"{label} does not exist")
    return obj


def apply_updates(obj: Any, changes: dict) -> None:
    """Copy explicitly sent fields onto `obj`; null means unchanged."""
    for field, value in changes.items():
        if value is None:
            continue
        setattr(obj, field, value.value if hasattr(value, "value") else value)
