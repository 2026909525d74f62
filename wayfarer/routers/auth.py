import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_token_service
from ..exceptions import NotFound, Unauthenticated
from ..models import User
from ..schemas import AuthResponse, LoginRequest, Provider, RegisterRequest, SocialLoginRequest, UserResponse
from ..security import get_principal
from ..services.auth_service import authenticate_user, create_user, find_or_create_social_user
from ..services.identity_providers import IdentityProviderError
from ..services.token_service import Principal, TokenService
from ..utils import get_or_404

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Invalid credentials"},
        500: {"description": "Internal server error"}
    }
)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Register a new email/password account.

    New accounts always get the `user` role. Duplicate emails are rejected
    with 400.
    """
    user = await create_user(db, payload.email, payload.password, payload.name)
    return AuthResponse(token=token_service.issue(user), user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Exchange email and password for a token.

    **Usage:**
    Include the token in subsequent requests:
    ```
    Authorization: Bearer <token>
    ```
    """
    user = await authenticate_user(db, payload.email, payload.password)
    if user is None:
        raise Unauthenticated("Invalid credentials")
    return AuthResponse(token=token_service.issue(user), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Current caller's profile, read fresh from storage."""
    return await get_or_404(db, User, principal.id, "User")


@router.post("/{provider}", response_model=AuthResponse)
async def social_login(
    provider: Provider,
    payload: SocialLoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Sign in with a Google, Facebook or Apple credential.

    The credential is verified with the provider; the resulting identity is
    matched to an existing account (by provider id, then email) or a new
    `user` account is created.
    """
    identity_provider = request.app.state.identity_providers.get(provider)
    if identity_provider is None:
        raise NotFound(f"Provider {provider.value} is not configured")

    try:
        profile = await identity_provider.fetch_profile(payload.credential)
    except IdentityProviderError as e:
        logger.warning(f"Social login failed provider={provider.value}: {e}")
        raise Unauthenticated("Authentication failed")

    user = await find_or_create_social_user(db, profile)
    return AuthResponse(token=token_service.issue(user), user=UserResponse.model_validate(user))
