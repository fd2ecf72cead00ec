# Pydantic models (request/response DTOs) used by the API layer.
# Keep models minimal and serializable; filtering and authorization live in filters.py and access.py.
from pydantic import BaseModel, Field, ConfigDict, field_validator, EmailStr
from typing import Dict, List, Literal, Optional
from datetime import datetime


# User roles within the system
Role = Literal["landlord", "tenant"]
PropertyStatus = Literal["available", "rented", "maintenance"]
TransportationKey = Literal["metro", "bus", "bike", "parking"]


def _strip(v):
    if isinstance(v, str):
        v = v.strip()
    return v


def _clean_tags(v):
    # One tag per entry; blank lines from a textarea are dropped
    if isinstance(v, list):
        v = [item.strip() for item in v if isinstance(item, str) and item.strip()]
    return v


# Notifications
# Transient message shown to the user after a mutation
class Notification(BaseModel):
    level: Literal["success", "error"]
    text: str


# Properties
# Fields a landlord fills in on the new/edit listing form
class PropertyBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)
    price: int = Field(..., ge=0)
    bedrooms: int = Field(1, ge=0)
    bathrooms: float = Field(1, ge=0, multiple_of=0.5)
    square_feet: int = Field(0, ge=0)
    is_furnished: bool = False
    amenities: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    transportation: Dict[TransportationKey, str] = Field(default_factory=dict)

    @field_validator("title", "description", "address", "location", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)

    @field_validator("amenities", "highlights", "images", mode="before")
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)


# Payload for creating a new property; status always starts as "available"
class PropertyCreate(PropertyBase):
    pass


# Partial update from the edit form; only fields present in the payload are written
class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[int] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0, multiple_of=0.5)
    square_feet: Optional[int] = Field(None, ge=0)
    is_furnished: Optional[bool] = None
    amenities: Optional[List[str]] = None
    highlights: Optional[List[str]] = None
    images: Optional[List[str]] = None
    transportation: Optional[Dict[TransportationKey, str]] = None
    status: Optional[PropertyStatus] = None

    @field_validator("title", "description", "address", "location", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)

    @field_validator("amenities", "highlights", "images", mode="before")
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)


# Response shape when reading a property from the API
class PropertyRead(PropertyBase):
    id: int
    landlord_id: int
    landlord_name: str
    landlord_email: str
    landlord_phone: str
    status: PropertyStatus
    reviews_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Public listing page: filtered rows plus the affordances the caller may see
class PropertyListResponse(BaseModel):
    items: List[PropertyRead]
    total: int
    filtered: bool
    can_create_property: bool
    empty_message: Optional[str] = None
    amenity_options: List[str] = Field(default_factory=list)


# Property detail page
class PropertyDetailResponse(BaseModel):
    property: PropertyRead
    viewer_state: str
    permitted_actions: List[str]


# Returned after creating or updating a listing
class PropertyMutationResponse(BaseModel):
    property: PropertyRead
    notification: Notification


# Reviews
# Request payload for writing (or rewriting) the caller's review
class ReviewSubmit(BaseModel):
    rating: int = Field(5, ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)

    @field_validator("comment", mode="before")
    @classmethod
    def normalize_comment(cls, v: str) -> str:
        return _strip(v)


class ReviewRead(BaseModel):
    id: int
    property_id: int
    user_id: int
    rating: int
    comment: str
    reviewer_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Everything the review panel under a listing needs to render
class ReviewSection(BaseModel):
    property_id: int
    reviews: List[ReviewRead]
    count: int
    average_rating: Optional[float] = None
    my_review: Optional[ReviewRead] = None
    review_state: Optional[str] = None
    can_review: bool = False


# Returned after a review write/delete; the section is re-read after commit
class ReviewMutationResponse(BaseModel):
    mode: Literal["created", "updated", "deleted"]
    notification: Notification
    section: ReviewSection


# Authentication and profile models

# Request payload for user registration (identity + profile seed)
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Role = "tenant"
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field("", max_length=50)

    # Normalize email input to lowercase without surrounding whitespace
    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v

    @field_validator("full_name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)


# API response for a user record
class UserRead(BaseModel):
    id: int
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


class ProfileRead(BaseModel):
    id: int
    role: Role
    full_name: str
    phone: str

    model_config = ConfigDict(from_attributes=True)


# Profile settings form; role cannot be changed after signup
class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("full_name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)


class ProfileMutationResponse(BaseModel):
    profile: ProfileRead
    notification: Notification


# Request payload for logging in
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)

    # Normalize email input to lowercase without surrounding whitespace
    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v


# OAuth2-style token response bundled with the current user and profile
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
    profile: ProfileRead


# Current session, or null when signed out
class SessionRead(BaseModel):
    user: UserRead
    profile: ProfileRead


# Assistant
class AssistantMessage(BaseModel):
    type: Literal["user", "bot"]
    text: str


class AssistantIntro(BaseModel):
    greeting: AssistantMessage
    quick_questions: List[str]


class AssistantAsk(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)

    # Trim surrounding whitespace before validation
    @field_validator("text", mode="before")
    @classmethod
    def normalize_text(cls, v: str) -> str:
        return _strip(v)


class AssistantReply(BaseModel):
    question: AssistantMessage
    answer: AssistantMessage
    matched: bool
