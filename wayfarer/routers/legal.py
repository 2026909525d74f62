"""
Legal documents (privacy policy, terms of service).

Each kind lives in its own table. At most one document per kind is active;
activation deactivates the others and stamps `published_at` in the same
transaction.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Type, Union

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import NotFound
from ..models import PrivacyPolicy, TermsOfService
from ..roles import Role
from ..schemas import LegalDocumentCreate, LegalDocumentResponse
from ..security import require_role
from ..services.token_service import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/legal", tags=["legal"])

require_legal_admin = require_role(Role.admin)

LegalModel = Union[Type[PrivacyPolicy], Type[TermsOfService]]


class LegalKind(str, Enum):
    privacy_policy = "privacy-policy"
    terms_of_service = "terms-of-service"

    @property
    def model(self) -> LegalModel:
        return _MODELS[self]

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


_MODELS = {
    LegalKind.privacy_policy: PrivacyPolicy,
    LegalKind.terms_of_service: TermsOfService,
}


async def _activate(db: AsyncSession, model: LegalModel, document) -> None:
    # Deactivate every other document of the kind; caller commits
    await db.execute(
        update(model)
        .where(model.is_active.is_(True))
        .values(is_active=False)
    )
    document.is_active = True
    document.published_at = datetime.now(timezone.utc)


@router.get("/{kind}/active", response_model=LegalDocumentResponse)
async def get_active_document(kind: LegalKind, db: AsyncSession = Depends(get_db)):
    model = kind.model
    result = await db.execute(
        select(model)
        .where(model.is_active.is_(True))
        .order_by(model.published_at.desc(), model.id.desc())
        .limit(1)
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFound(f"No active {kind.label} found")
    return document


@router.get("/{kind}", response_model=List[LegalDocumentResponse])
async def list_documents(
    kind: LegalKind,
    principal: Principal = Depends(require_legal_admin),
    db: AsyncSession = Depends(get_db),
):
    model = kind.model
    result = await db.execute(select(model).order_by(model.id.desc()))
    return result.scalars().all()


@router.post("/{kind}", response_model=LegalDocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    kind: LegalKind,
    payload: LegalDocumentCreate,
    principal: Principal = Depends(require_legal_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a document, optionally active.

    An active document replaces the currently active one atomically.
    """
    model = kind.model
    document = model(version=payload.version, content=payload.content, is_active=False)
    try:
        if payload.is_active:
            await _activate(db, model, document)
        db.add(document)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(document)
    logger.info(
        f"{kind.value} {document.id} version={document.version} created "
        f"active={document.is_active} by user {principal.id}")
    return document


@router.post("/{kind}/{document_id}/publish", response_model=LegalDocumentResponse)
async def publish_document(
    kind: LegalKind,
    document_id: int,
    principal: Principal = Depends(require_legal_admin),
    db: AsyncSession = Depends(get_db),
):
    model = kind.model
    document = await db.get(model, document_id)
    if document is None:
        raise NotFound(f"{kind.label.capitalize()} not found")

    try:
        await _activate(db, model, document)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(document)
    logger.info(f"{kind.value} {document.id} published by user {principal.id}")
    return document
