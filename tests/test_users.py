import httpx
import pytest

from wayfarer.roles import Role


@pytest.mark.asyncio
async def test_super_admin_manages_users(client: httpx.AsyncClient, login_as):
    _, headers = await login_as(Role.super_admin)

    r = await client.post("/api/admin/users", json={
        "email": "new.admin@example.com",
        "password": "password123",
        "name": "New Admin",
        "role": "admin",
    }, headers=headers)
    assert r.status_code == 201
    user_id = r.json()["id"]
    assert r.json()["role"] == "admin"

    r = await client.get(f"/api/admin/users/{user_id}", headers=headers)
    assert r.status_code == 200

    r = await client.put(f"/api/admin/users/{user_id}", json={"role": "user", "name": "Demoted"},
                         headers=headers)
    assert r.status_code == 200
    assert r.json()["role"] == "user"
    assert r.json()["name"] == "Demoted"

    r = await client.get("/api/admin/users", headers=headers)
    assert r.json()["total"] == 2

    r = await client.delete(f"/api/admin/users/{user_id}", headers=headers)
    assert r.status_code == 204
    r = await client.get(f"/api/admin/users/{user_id}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [Role.user, Role.admin])
async def test_user_administration_requires_super_admin(client: httpx.AsyncClient, login_as, role):
    _, headers = await login_as(role)
    r = await client.post("/api/admin/users", json={
        "email": "someone@example.com",
        "password": "password123",
        "name": "Someone",
        "role": "user",
    }, headers=headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_created_admin_can_manage_catalog(client: httpx.AsyncClient, login_as):
    _, headers = await login_as(Role.super_admin)
    await client.post("/api/admin/users", json={
        "email": "ops@example.com",
        "password": "password123",
        "name": "Ops",
        "role": "admin",
    }, headers=headers)

    r = await client.post("/api/auth/login", json={"email": "ops@example.com", "password": "password123"})
    admin_headers = {"Authorization": f"Bearer {r.json()['token']}"}
    r = await client.post("/api/admin/locations", json={
        "name": "Kep",
        "country": "Cambodia",
        "description": "Crab market",
        "lat": 10.48,
        "long": 104.32,
    }, headers=admin_headers)
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_duplicate_email_on_update(client: httpx.AsyncClient, login_as, create_user):
    _, headers = await login_as(Role.super_admin)
    await create_user(email="first@example.com")
    second = await create_user(email="second@example.com")

    r = await client.put(f"/api/admin/users/{second.id}", json={"email": "first@example.com"},
                         headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "conflict"


@pytest.mark.asyncio
async def test_user_reads_and_updates_own_profile(client: httpx.AsyncClient, login_as, create_user):
    user, headers = await login_as(Role.user)
    other = await create_user(Role.user)

    r = await client.get(f"/api/users/{user.id}", headers=headers)
    assert r.status_code == 200
    r = await client.get(f"/api/users/{other.id}", headers=headers)
    assert r.status_code == 403

    r = await client.put(f"/api/users/{user.id}", json={"name": "Renamed", "password": "new-password"},
                         headers=headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"
    assert r.json()["role"] == "user"

    r = await client.post("/api/auth/login", json={"email": user.email, "password": "new-password"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_user_bookings(client: httpx.AsyncClient, login_as, make_location, make_trip):
    user, headers = await login_as(Role.user)
    _, stranger = await login_as(Role.user)
    _, admin = await login_as(Role.admin)
    location = await make_location()
    trip = await make_trip(location.id)
    await client.post("/api/bookings", json={"trip_id": trip.id}, headers=headers)

    r = await client.get(f"/api/users/{user.id}/bookings", headers=headers)
    assert r.status_code == 200
    assert r.json()["total"] == 1

    assert (await client.get(f"/api/users/{user.id}/bookings", headers=admin)).status_code == 200
    assert (await client.get(f"/api/users/{user.id}/bookings", headers=stranger)).status_code == 403


@pytest.mark.asyncio
async def test_cannot_delete_user_with_bookings(client: httpx.AsyncClient, login_as, make_location, make_trip):
    user, headers = await login_as(Role.user)
    _, super_admin = await login_as(Role.super_admin)
    location = await make_location()
    trip = await make_trip(location.id)
    await client.post("/api/bookings", json={"trip_id": trip.id}, headers=headers)

    r = await client.delete(f"/api/admin/users/{user.id}", headers=super_admin)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "conflict"
