import logging
import os
import random
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import Counter, Histogram
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, settings as default_settings
from .database import Database
from .exceptions import APIError, ImageValidationError, InternalError, TooManyRequests
from .rate_limit import RequestRateLimiter
from .routers.analytics import router as analytics_router
from .routers.auth import router as auth_router
from .routers.bookings import admin_router as bookings_admin_router
from .routers.bookings import router as bookings_router
from .routers.health import router as health_router
from .routers.legal import router as legal_router
from .routers.locations import admin_router as locations_admin_router
from .routers.locations import router as locations_router
from .routers.places import admin_router as places_admin_router
from .routers.places import router as places_router
from .routers.reviews import router as reviews_router
from .routers.trips import admin_router as trips_admin_router
from .routers.trips import router as trips_router
from .routers.users import admin_router as users_admin_router
from .routers.users import router as users_router
from .services.identity_providers import build_identity_providers
from .services.storage import StorageService
from .services.token_service import TokenService
from .surfaces import SURFACE_PREFIXES

logger = logging.getLogger(__name__)

# Mounted once per API surface
API_ROUTERS = (
    auth_router,
    locations_router,
    locations_admin_router,
    places_router,
    places_admin_router,
    trips_router,
    trips_admin_router,
    bookings_router,
    bookings_admin_router,
    reviews_router,
    users_router,
    users_admin_router,
    legal_router,
    analytics_router,
)

# Prometheus metrics
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", [
                        "method", "route", "status"])
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5)
)

HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    429: "too_many_requests",
}


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "request_id": _request_id(request)},
    )


def _field_errors(exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(request, 400, "validation_error", "Validation error", _field_errors(exc))

    @app.exception_handler(ImageValidationError)
    async def image_error_handler(request: Request, exc: ImageValidationError):
        return error_response(request, 400, "validation_error", str(exc))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning(f"Integrity error rid={_request_id(request)}: {exc.orig}")
        return error_response(request, 400, "conflict", "Resource conflicts with existing data")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code, "error")
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return error_response(request, exc.status_code, code, message)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or default_settings
    database = database or Database(settings.database_url, echo=settings.debug)
    storage = StorageService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        os.makedirs(storage.media_root, exist_ok=True)
        await database.connect()
        await database.create_tables()
        yield
        await database.disconnect()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="""
## Wayfarer Travel Booking API

Browse destinations, places and trips; book trips and review places.

### Authentication
Send the token returned by `/auth/login` or `/auth/register` as
`Authorization: Bearer <token>`.

### Surfaces
- `/api`: web and administration clients
- `/api/v2`: mobile clients (booking listing returns the caller's own bookings)

### Other endpoints
- **Health Check**: `/health` for service status
- **Metrics**: `/metrics` for monitoring (protected in production)
""",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.token_service = TokenService(settings)
    app.state.storage = storage
    app.state.identity_providers = build_identity_providers(settings)
    rate_limiter = RequestRateLimiter(
        settings.rate_limit_requests, settings.rate_limit_window_seconds)
    app.state.rate_limiter = rate_limiter

    app.include_router(health_router)
    for prefix in SURFACE_PREFIXES.values():
        for api_router in API_ROUTERS:
            app.include_router(api_router, prefix=prefix)

    # Serve uploaded media
    app.mount("/media", StaticFiles(directory=storage.media_root, check_dir=False), name="media")

    # CORS for UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.middleware("http")
    async def add_request_id_and_errors(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        # Lightweight JSON log (sample all in debug)
        if settings.debug or random.random() < settings.log_sample_rate:
            logger.info({
                "event": "request",
                "method": request.method,
                "path": request.url.path,
                "rid": request_id,
            })

        if settings.rate_limit_enabled:
            client_key = request.client.host if request.client else "unknown"
            if not rate_limiter.allow(client_key):
                logger.warning(f"Rate limit exceeded client={client_key} rid={request_id}")
                exc = TooManyRequests("Too many requests, please try again later")
                response = error_response(request, exc.status_code, exc.code, exc.message)
                response.headers["X-Request-ID"] = request_id
                return response

        try:
            start = time.perf_counter()
            response = await call_next(request)
            elapsed = time.perf_counter() - start
            REQUEST_LATENCY.observe(elapsed)
            route = getattr(request.scope.get("route"), "path", request.url.path)
            REQUEST_COUNT.labels(method=request.method,
                                 route=route, status=response.status_code).inc()
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception:
            logger.exception(f"Unhandled error rid={request_id}")
            route = getattr(request.scope.get("route"), "path", request.url.path)
            REQUEST_COUNT.labels(method=request.method,
                                 route=route, status=500).inc()
            exc = InternalError()
            response = error_response(request, exc.status_code, exc.code, exc.message)
            response.headers["X-Request-ID"] = request_id
            return response

    return app


app = create_app()
