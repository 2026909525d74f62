from fastapi import Request

from .config import Settings
from .services.storage import StorageService
from .services.token_service import TokenService


def get_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage
