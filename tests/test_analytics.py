import httpx
import pytest

from wayfarer.roles import Role


@pytest.mark.asyncio
async def test_booking_analytics_per_location(client: httpx.AsyncClient, login_as,
                                              make_location, make_place, make_trip):
    _, user = await login_as(Role.user)
    _, admin = await login_as(Role.admin)

    siem_reap = await make_location()
    kep = await make_location(name="Kep")
    await make_location(name="Kratie")
    await make_place(siem_reap.id, name="Angkor Wat", average_rating=5.0)
    await make_place(siem_reap.id, name="Bayon", average_rating=4.0)
    await make_place(siem_reap.id, name="Unrated")

    siem_reap_trip = await make_trip(siem_reap.id)
    kep_trip = await make_trip(kep.id)
    for _ in range(2):
        await client.post("/api/bookings", json={"trip_id": siem_reap_trip.id}, headers=user)
    await client.post("/api/bookings", json={"trip_id": kep_trip.id}, headers=user)

    r = await client.get("/api/admin/analytics/bookings", headers=admin)
    assert r.status_code == 200
    assert r.json() == [
        {"location_id": siem_reap.id, "location_name": "Siem Reap",
         "booking_count": 2, "average_place_rating": 4.5},
        {"location_id": kep.id, "location_name": "Kep",
         "booking_count": 1, "average_place_rating": None},
    ]


@pytest.mark.asyncio
async def test_analytics_requires_admin(client: httpx.AsyncClient, login_as):
    _, headers = await login_as(Role.user)
    r = await client.get("/api/admin/analytics/bookings", headers=headers)
    assert r.status_code == 403
