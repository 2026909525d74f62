"""Unit tests for API surface resolution and the request rate limiter."""

from datetime import datetime, timedelta, timezone

from wayfarer.database import async_database_url
from wayfarer.rate_limit import RequestRateLimiter
from wayfarer.surfaces import ApiSurface, surface_for_path


def test_surface_for_path():
    assert surface_for_path("/api/bookings") == ApiSurface.default
    assert surface_for_path("/api/v2/bookings") == ApiSurface.v2
    assert surface_for_path("/api/v2") == ApiSurface.v2
    # Only the path segment counts
    assert surface_for_path("/api/v2bookings") == ApiSurface.default


def test_surface_prefixes():
    assert ApiSurface.default.prefix == "/api"
    assert ApiSurface.v2.prefix == "/api/v2"


def test_rate_limiter_refuses_after_limit_within_window():
    limiter = RequestRateLimiter(max_requests=2, window_seconds=60)
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert limiter.allow("1.2.3.4", now)
    assert limiter.allow("1.2.3.4", now)
    assert not limiter.allow("1.2.3.4", now)
    # Other clients are counted separately
    assert limiter.allow("5.6.7.8", now)


def test_rate_limiter_allows_again_after_window():
    limiter = RequestRateLimiter(max_requests=1, window_seconds=60)
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert limiter.allow("client", now)
    assert not limiter.allow("client", now + timedelta(seconds=30))
    assert limiter.allow("client", now + timedelta(seconds=61))


def test_async_database_url_picks_driver():
    assert async_database_url("sqlite:///./app.db").drivername == "sqlite+aiosqlite"
    url = async_database_url("postgresql://u:p@db:5432/wayfarer?sslmode=require")
    assert url.drivername == "postgresql+asyncpg"
    assert url.host == "db"
    assert url.database == "wayfarer"


def test_rate_limiter_forgets_idle_clients():
    limiter = RequestRateLimiter(max_requests=5, window_seconds=60)
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert limiter.allow("idle", now)
    assert limiter.allow("busy", now + timedelta(seconds=50))

    assert limiter.allow("busy", now + timedelta(seconds=90))
    assert set(limiter._log) == {"busy"}
