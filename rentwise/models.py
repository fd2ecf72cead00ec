# SQLAlchemy ORM models for the marketplace tables (users, profiles, properties, reviews).
# Models only describe storage; filtering and authorization live in filters.py and access.py.
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_mixin, relationship

from .db import Base

ROLES = ("tenant", "landlord")
PROPERTY_STATUSES = ("available", "rented", "maintenance")
TRANSPORTATION_KEYS = ("metro", "bus", "bike", "parking")


@declarative_mixin
class TimestampMixin:
    """Common UTC-aware timestamps automatically managed by the database.

    - created_at: set on insert
    - updated_at: set on insert and updated on each modification
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(Base, TimestampMixin):
    """Sign-in identity (email + password hash). Role and contact details live on Profile."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    profile = relationship("Profile", back_populates="user", uselist=False)


class Profile(Base, TimestampMixin):
    """Per-user account record, keyed 1:1 by the user's id.

    Roles:
    - landlord: can list and manage their own properties
    - tenant: can browse and review properties
    """
    __tablename__ = "profiles"

    id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(20), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False, default="")

    user = relationship("User", back_populates="profile")

    __table_args__ = (
        CheckConstraint("role in ('tenant', 'landlord')", name="ck_profiles_role"),
    )


class Property(Base, TimestampMixin):
    """Rental listing created and managed by a landlord.

    landlord_name/email/phone are copied from the landlord's profile at creation
    time and are not refreshed when the profile changes.
    """
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    landlord_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    address = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)
    bedrooms = Column(Integer, nullable=False, default=1)
    bathrooms = Column(Float, nullable=False, default=1)
    square_feet = Column(Integer, nullable=False, default=0)
    is_furnished = Column(Boolean, nullable=False, default=False)
    amenities = Column(JSON, nullable=False, default=list)
    highlights = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    transportation = Column(JSON, nullable=False, default=dict)
    landlord_name = Column(String(255), nullable=False)
    landlord_email = Column(String(255), nullable=False)
    landlord_phone = Column(String(50), nullable=False, default="")
    status = Column(String(20), nullable=False, default="available")
    reviews_count = Column(Integer, nullable=False, default=0)

    reviews = relationship("Review", back_populates="property", cascade="all, delete-orphan", passive_deletes=True)

    # Public listing reads available rows newest first
    __table_args__ = (
        Index("ix_properties_status_created_at", "status", "created_at"),
        CheckConstraint("status in ('available', 'rented', 'maintenance')", name="ck_properties_status"),
    )


class Review(Base, TimestampMixin):
    """Rating and comment left by one user for one property (at most one per pair)."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    reviewer_name = Column(String(255), nullable=False)

    property = relationship("Property", back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("property_id", "user_id", name="uq_reviews_property_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
    )
