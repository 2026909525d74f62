import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext

from .dependencies import get_token_service
from .exceptions import Forbidden, InvalidToken, Unauthenticated
from .roles import Role, meets
from .services.token_service import Principal, TokenService

logger = logging.getLogger(__name__)

# Bearer scheme for the OpenAPI docs; header parsing errors are reported by get_principal
security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_service: TokenService = Depends(get_token_service),
) -> Principal:
    """
    Authenticate the caller from the `Authorization: Bearer <token>` header.

    The token alone decides identity and role; storage is not consulted, so a
    role change takes effect once a new token is issued.
    """
    if not request.headers.get("Authorization"):
        raise Unauthenticated("No token provided")
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Invalid token")

    try:
        return token_service.verify(credentials.credentials)
    except InvalidToken as e:
        logger.debug(f"Rejected token: {e}")
        raise Unauthenticated("Invalid token")


def require_role(min_role: Role):
    """Dependency factory: caller's rank must be at least `min_role`'s."""

    async def _require_role(principal: Principal = Depends(get_principal)) -> Principal:
        if not meets(principal.role, min_role):
            raise Forbidden()
        return principal

    return _require_role


def require_exact_role(*roles: Role):
    """Dependency factory: caller's role must be one of `roles`; rank is ignored."""
    allowed = frozenset(roles)

    async def _require_exact_role(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            raise Forbidden()
        return principal

    return _require_exact_role


def ensure_owner_or_role(principal: Principal, owner_id: int, min_role: Optional[Role] = None) -> None:
    """
    Allow the resource owner, or any caller ranking at least `min_role`.

    With `min_role=None` only the owner passes.
    """
    if principal.id == owner_id:
        return
    if meets(principal.role, min_role):
        return
    raise Forbidden("Unauthorized")


# Catalog content (locations, places, trips) is operated by admins only;
# super_admin administers accounts and does not inherit this capability.
require_catalog_admin = require_exact_role(Role.admin)
