from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text, Float, UniqueConstraint, JSON, Index, text
from sqlalchemy.orm import declarative_base, declared_attr
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("provider", "provider_id",
                         name="uq_users_provider_provider_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    # Null for social identities
    password_hash = Column(String, nullable=True)
    name = Column(String, nullable=False)
    # user|admin|super_admin
    role = Column(String, nullable=False, server_default="user")
    # email|google|facebook|apple
    provider = Column(String, nullable=False, server_default="email")
    # Present iff provider != email
    provider_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="user")
    reviews = relationship("Review", back_populates="user")


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    country = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    lat = Column(Float, nullable=False)
    long = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    places = relationship("Place", back_populates="location")
    trips = relationship("Trip", back_populates="location")


class Place(Base):
    __tablename__ = "places"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"),
                         nullable=False, index=True)
    # temple|beach|restaurant|market|other
    category = Column(String, nullable=False, index=True)
    image_url = Column(String, nullable=True)
    # Derived from reviews; never written by clients
    average_rating = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    location = relationship("Location", back_populates="places")
    reviews = relationship(
        "Review", back_populates="place", cascade="all, delete-orphan")


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"),
                         nullable=False, index=True)
    type = Column(String, nullable=False)  # bus|hotel
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    location = relationship("Location", back_populates="trips")
    bookings = relationship("Booking", back_populates="trip")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"),
                     nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"),
                     nullable=False, index=True)
    guests = Column(Integer, nullable=False, default=1)
    total = Column(Float, nullable=False)
    # pending|confirmed|cancelled
    status = Column(String, nullable=False, server_default="pending")
    booking_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="bookings")
    trip = relationship("Trip", back_populates="bookings")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"),
                     nullable=False, index=True)
    place_id = Column(Integer, ForeignKey("places.id"),
                      nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    image_urls = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="reviews")
    place = relationship("Place", back_populates="reviews")


class LegalDocumentMixin:
    """Columns shared by every kind of legal document."""

    id = Column(Integer, primary_key=True, index=True)
    version = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @declared_attr
    def __table_args__(cls):
        # At most one active document per kind
        return (
            Index(f"uq_{cls.__tablename__}_active", "is_active", unique=True,
                  postgresql_where=text("is_active"), sqlite_where=text("is_active")),
        )


class PrivacyPolicy(LegalDocumentMixin, Base):
    __tablename__ = "privacy_policies"


class TermsOfService(LegalDocumentMixin, Base):
    __tablename__ = "terms_of_service"
