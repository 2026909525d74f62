"""Unit tests for request schema validation."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from wayfarer.schemas import (
    BookingCreate,
    LocationCreate,
    RegisterRequest,
    ReviewCreate,
    TripCreate,
    UserCreate,
)


def _trip(**overrides):
    data = {
        "title": "Night bus",
        "description": "Phnom Penh to Siem Reap",
        "location_id": 1,
        "type": "bus",
        "start_date": datetime(2030, 1, 2, tzinfo=timezone.utc),
        "end_date": datetime(2030, 1, 2, 8, tzinfo=timezone.utc),
        "price": 15,
    }
    data.update(overrides)
    return data


def test_trip_accepts_same_day_range():
    trip = TripCreate(**_trip(end_date=datetime(2030, 1, 2, tzinfo=timezone.utc)))
    assert trip.start_date == trip.end_date


def test_trip_rejects_end_before_start():
    with pytest.raises(ValidationError) as exc:
        TripCreate(**_trip(end_date=datetime(2030, 1, 1, tzinfo=timezone.utc)))
    assert "End date must not be before start date" in str(exc.value)


def test_trip_type_is_bus_or_hotel():
    with pytest.raises(ValidationError):
        TripCreate(**_trip(type="flight"))


@pytest.mark.parametrize("rating", [0, 6])
def test_review_rating_out_of_range(rating):
    with pytest.raises(ValidationError):
        ReviewCreate(place_id=1, rating=rating)


def test_location_coordinates_bounds():
    with pytest.raises(ValidationError):
        LocationCreate(name="Nowhere", country="X", description="Off the map", lat=91, long=0)
    with pytest.raises(ValidationError):
        LocationCreate(name="Nowhere", country="X", description="Off the map", lat=0, long=-181)


def test_register_requires_valid_email_and_password_length():
    with pytest.raises(ValidationError):
        RegisterRequest(email="not-an-email", password="password123", name="A")
    with pytest.raises(ValidationError):
        RegisterRequest(email="a@example.com", password="12345", name="A")


def test_user_create_rejects_unknown_role():
    with pytest.raises(ValidationError):
        UserCreate(email="a@example.com", password="password123", name="A", role="owner")


def test_booking_defaults():
    booking = BookingCreate(trip_id=3)
    assert booking.guests == 1
    assert booking.total is None
    assert booking.user_id is None


def test_booking_trip_id_must_be_positive():
    with pytest.raises(ValidationError):
        BookingCreate(trip_id=0)


def test_trip_dates_normalized_to_utc():
    trip = TripCreate(**_trip(start_date="2030-01-02T07:00:00+07:00", end_date="2030-01-02T00:00:00"))
    assert trip.start_date == datetime(2030, 1, 2, tzinfo=timezone.utc)
    assert trip.start_date.utcoffset().total_seconds() == 0
    assert trip.end_date == trip.start_date
