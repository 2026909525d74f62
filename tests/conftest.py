import itertools
import os
import tempfile
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

# Configure the app before any wayfarer module reads settings
_media_root = tempfile.mkdtemp(prefix="wayfarer-media-")
os.environ["APP_DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_media_root, "unused.db")
os.environ["APP_MEDIA_ROOT"] = _media_root
os.environ["APP_JWT_SECRET_KEY"] = "test-secret-key"
os.environ["APP_DEBUG"] = "false"
os.environ["APP_RATE_LIMIT_ENABLED"] = "false"

from wayfarer.database import Database  # noqa: E402
from wayfarer.main import create_app  # noqa: E402
from wayfarer.models import Location, Place, Trip, User  # noqa: E402
from wayfarer.roles import Role  # noqa: E402
from wayfarer.security import hash_password  # noqa: E402
from wayfarer.services import rating_service  # noqa: E402
from wayfarer.services.token_service import TokenService  # noqa: E402

PASSWORD = "password123"


@pytest.fixture(autouse=True)
def _reset_rating_locks():
    # Locks bind to the event loop that first waits on them
    rating_service._place_locks.clear()
    yield
    rating_service._place_locks.clear()


@pytest_asyncio.fixture
async def database(tmp_path):
    """A connected database on a fresh SQLite file."""
    db = Database(f"sqlite+aiosqlite:///{(tmp_path / 'test.db').as_posix()}")
    await db.connect()
    await db.create_tables()
    yield db
    await db.drop_tables()
    await db.disconnect()


@pytest.fixture
def app(database):
    return create_app(database=database)


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {TokenService().issue(user)}"}


@pytest.fixture
def create_user(database):
    counter = itertools.count(1)

    async def _create_user(role: Role = Role.user, email: str = None, name: str = "Test User",
                           password: str = PASSWORD) -> User:
        async with database.session() as s:
            user = User(
                email=email or f"{role.value}{next(counter)}@example.com",
                password_hash=hash_password(password),
                name=name,
                role=role.value,
                provider="email",
            )
            s.add(user)
            await s.commit()
            await s.refresh(user)
            return user

    return _create_user


@pytest.fixture
def login_as(create_user):
    """Create a user with the given role; returns (user, auth headers)."""

    async def _login_as(role: Role = Role.user, **kwargs):
        user = await create_user(role, **kwargs)
        return user, bearer(user)

    return _login_as


@pytest.fixture
def make_location(database):
    async def _make_location(name: str = "Siem Reap", country: str = "Cambodia") -> Location:
        async with database.session() as s:
            location = Location(name=name, country=country, description="Temple town",
                                lat=13.36, long=103.86)
            s.add(location)
            await s.commit()
            await s.refresh(location)
            return location

    return _make_location


@pytest.fixture
def make_place(database):
    async def _make_place(location_id: int, name: str = "Angkor Wat", category: str = "temple",
                          average_rating: float = None) -> Place:
        async with database.session() as s:
            place = Place(name=name, description="Temple complex", location_id=location_id,
                          category=category, average_rating=average_rating)
            s.add(place)
            await s.commit()
            await s.refresh(place)
            return place

    return _make_place


@pytest.fixture
def make_trip(database):
    async def _make_trip(location_id: int, price: float = 100.0, type: str = "hotel") -> Trip:
        start = datetime(2030, 6, 1, tzinfo=timezone.utc)
        async with database.session() as s:
            trip = Trip(title="Hotel stay", description="Three nights", location_id=location_id,
                        type=type, start_date=start, end_date=start + timedelta(days=3), price=price)
            s.add(trip)
            await s.commit()
            await s.refresh(trip)
            return trip

    return _make_trip


@pytest.fixture
def auth_headers():
    return bearer
