from pydantic import AfterValidator, BaseModel, Field, ConfigDict, EmailStr, model_validator
from typing import Annotated, Optional, List, Generic, TypeVar
from enum import Enum
from datetime import datetime, timezone

from .roles import Role

T = TypeVar("T")


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Stored as UTC wall-clock time, whatever offset the client sent
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class Paginated(BaseModel, Generic[T]):
    items: List[T]
    total: int
    limit: int
    offset: int


# Users & auth

class Provider(str, Enum):
    email = "email"
    google = "google"
    facebook = "facebook"
    apple = "apple"


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    provider: Provider
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


class RegisterRequest(BaseModel):
    email: EmailStr = Field(..., examples=["user@example.com"])
    password: str = Field(..., min_length=6, examples=["password123"])
    name: str = Field(..., min_length=1, examples=["John Doe"])


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., examples=["user@example.com"])
    password: str = Field(..., min_length=1, examples=["password123"])


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class SocialLoginRequest(BaseModel):
    # ID token (Google, Apple) or access token (Facebook) from the client SDK
    credential: str = Field(..., min_length=1)


class SocialProfile(BaseModel):
    """Normalized identity returned by an external identity provider."""
    email: EmailStr
    name: str
    provider: Provider
    provider_id: str


class UserCreate(BaseModel):
    email: EmailStr = Field(..., examples=["johndoe@example.com"])
    password: str = Field(..., min_length=6, examples=["password123"])
    name: str = Field(..., min_length=1, examples=["John Doe"])
    role: Role = Field(..., examples=[Role.admin])


class UserAdminUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1)
    role: Optional[Role] = None


class UserSelfUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=6)


# Locations

class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Siem Reap"])
    country: str = Field(..., min_length=1, examples=["Cambodia"])
    description: str = Field(..., min_length=1,
                             examples=["Home to Angkor Wat"])
    lat: float = Field(..., ge=-90, le=90, examples=[13.4125])
    long: float = Field(..., ge=-180, le=180, examples=[103.867])


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    country: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    long: Optional[float] = Field(None, ge=-180, le=180)


class LocationResponse(LocationBase):
    id: int
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


# Places

class PlaceCategory(str, Enum):
    temple = "temple"
    beach = "beach"
    restaurant = "restaurant"
    market = "market"
    other = "other"


class PlaceCreate(BaseModel):
    name: str = Field(..., min_length=1, examples=["Angkor Wat"])
    description: str = Field(..., min_length=1,
                             examples=["Iconic temple complex"])
    location_id: int = Field(..., gt=0, examples=[1])
    category: PlaceCategory = Field(..., examples=[PlaceCategory.temple])
    image_url: Optional[str] = Field(
        None, max_length=2048, examples=["https://res.cloudinary.com/demo/image/upload/sample.jpg"])


class PlaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    location_id: Optional[int] = Field(None, gt=0)
    category: Optional[PlaceCategory] = None
    image_url: Optional[str] = Field(None, max_length=2048)


class PlaceResponse(BaseModel):
    id: int
    name: str
    description: str
    location_id: int
    category: PlaceCategory
    image_url: Optional[str] = None
    average_rating: Optional[float] = None
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


class ReviewAuthor(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class PlaceReviewSummary(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    user: ReviewAuthor
    model_config = ConfigDict(from_attributes=True)


class PlaceDetailResponse(PlaceResponse):
    location: LocationResponse
    reviews: List[PlaceReviewSummary] = []
    review_count: int = 0


class PlaceImageResponse(BaseModel):
    image_url: str


# Trips

class TripType(str, Enum):
    bus = "bus"
    hotel = "hotel"


class TripCreate(BaseModel):
    title: str = Field(..., min_length=1, examples=["Siem Reap Hotel Stay"])
    description: str = Field(..., min_length=1,
                             examples=["3-night stay in Siem Reap"])
    location_id: int = Field(..., gt=0, examples=[1])
    type: TripType = Field(..., examples=[TripType.hotel])
    start_date: UtcDatetime = Field(..., examples=["2025-06-01T00:00:00Z"])
    end_date: UtcDatetime = Field(..., examples=["2025-06-04T00:00:00Z"])
    price: float = Field(..., ge=0, examples=[150.0])

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class TripUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    location_id: Optional[int] = Field(None, gt=0)
    type: Optional[TripType] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    price: Optional[float] = Field(None, ge=0)


class TripResponse(BaseModel):
    id: int
    title: str
    description: str
    location_id: int
    type: TripType
    start_date: UtcDatetime
    end_date: UtcDatetime
    price: float
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


class TripDetailResponse(TripResponse):
    location: LocationResponse


class LocationDetailResponse(LocationResponse):
    places: List[PlaceResponse] = []
    trips: List[TripResponse] = []


# Bookings

class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class BookingCreate(BaseModel):
    trip_id: int = Field(..., gt=0, examples=[1])
    guests: int = Field(1, ge=1, examples=[2])
    # Defaults to trip price times guests
    total: Optional[float] = Field(None, ge=0, examples=[300.0])
    booking_date: Optional[UtcDatetime] = None
    # Defaults to the caller; booking for someone else is rejected
    user_id: Optional[int] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus = Field(..., examples=[BookingStatus.confirmed])


class BookingResponse(BaseModel):
    id: int
    user_id: int
    trip_id: int
    guests: int
    total: float
    status: BookingStatus
    booking_date: UtcDatetime
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


# Reviews

class ReviewCreate(BaseModel):
    place_id: int = Field(..., gt=0, examples=[1])
    rating: int = Field(..., ge=1, le=5, examples=[4])
    comment: Optional[str] = Field(None, examples=["Great experience!"])


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5, examples=[5])
    comment: Optional[str] = Field(None, examples=["Amazing place!"])


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    place_id: int
    rating: int
    comment: Optional[str] = None
    image_urls: List[str] = []
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


class ReviewImagesResponse(BaseModel):
    image_urls: List[str]


# Legal documents

class LegalDocumentCreate(BaseModel):
    version: str = Field(..., min_length=1, examples=["1.0"])
    content: str = Field(..., min_length=1,
                         examples=["Privacy policy content..."])
    is_active: bool = False


class LegalDocumentResponse(BaseModel):
    id: int
    version: str
    content: str
    is_active: bool
    published_at: Optional[UtcDatetime] = None
    created_at: Optional[UtcDatetime] = None
    model_config = ConfigDict(from_attributes=True)


# Analytics

class LocationBookingStats(BaseModel):
    location_id: int
    location_name: str
    booking_count: int
    average_place_rating: Optional[float] = None
