"""Profile Pydantic schemas for API request/response models."""

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

BIOGRAPHY_MIN_LENGTH = 10
BIOGRAPHY_MAX_LENGTH = 500
MAX_INTERESTS = 10
MIN_AGE = 18
MAX_AGE = 100

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class Gender(str, Enum):
    """Gender values stored on a profile."""

    HOMME = "homme"
    FEMME = "femme"

    @classmethod
    def parse(cls, value: object) -> "Gender | None":
        """Lenient parse accepting English aliases; returns None when unknown."""
        if isinstance(value, Gender):
            return value
        if not isinstance(value, str):
            return None
        return _GENDER_ALIASES.get(value.strip().lower())


_GENDER_ALIASES = {
    "homme": Gender.HOMME,
    "male": Gender.HOMME,
    "man": Gender.HOMME,
    "femme": Gender.FEMME,
    "female": Gender.FEMME,
    "woman": Gender.FEMME,
}


class SexualOrientation(str, Enum):
    """Sexual orientation values stored on a profile."""

    HETERO = "hetero"
    HOMO = "homo"
    BI = "bi"

    @classmethod
    def parse(cls, value: object) -> "SexualOrientation | None":
        """Lenient parse; returns None when unknown."""
        if isinstance(value, SexualOrientation):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class PhotoSummary(BaseModel):
    """Photo metadata embedded in profile responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Photo identifier")
    filename: str = Field(description="Stored file name")
    is_profile_picture: bool = Field(default=False, description="Whether this is the profile picture")
    upload_date: datetime | None = Field(default=None, description="Upload timestamp")
    url: str | None = Field(default=None, description="URL serving the image bytes")


class ProfileFields(BaseModel):
    """Profile fields shared by responses."""

    biography: str | None = Field(default=None, description="Free-text biography")
    age: int | None = Field(default=None, description="Age in years")
    gender: Gender | None = Field(default=None, description="Gender")
    sexual_orientation: SexualOrientation | None = Field(default=None, description="Sexual orientation")
    interests: list[str] = Field(default_factory=list, description="Interest tags")
    city: str | None = Field(default=None, description="City")
    latitude: float | None = Field(default=None, description="Latitude")
    longitude: float | None = Field(default=None, description="Longitude")

    @field_validator("interests", mode="before")
    @classmethod
    def none_interests_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class ProfileResponse(ProfileFields):
    """The caller's own complete profile."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int = Field(description="Owning user ID")
    username: str | None = Field(default=None, description="Username")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    email: str | None = Field(default=None, description="Email address")
    last_seen: datetime | None = Field(default=None, description="Last activity timestamp")
    fame_rating: float = Field(default=0, description="Server-computed popularity score")
    photos: list[PhotoSummary] = Field(default_factory=list, description="Photos, profile picture first")
    created_at: datetime | None = Field(default=None, description="Profile creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class PublicProfileResponse(ProfileFields):
    """Another user's profile as seen by the caller."""

    user_id: int = Field(description="Owning user ID")
    username: str | None = Field(default=None, description="Username")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    last_seen: datetime | None = Field(default=None, description="Last activity timestamp")
    fame_rating: float = Field(default=0, description="Server-computed popularity score")
    photos: list[PhotoSummary] = Field(default_factory=list, description="Photos, profile picture first")
    liked_by_me: bool = Field(default=False, description="The caller likes this user")
    likes_me: bool = Field(default=False, description="This user likes the caller")
    is_match: bool = Field(default=False, description="Both users like each other")


class ProfileUpdate(BaseModel):
    """Schema for updating a profile.

    All fields are optional for partial updates. Validation follows the
    same rules as profile completion.
    """

    biography: str | None = Field(default=None, description="Free-text biography")
    age: int | None = Field(default=None, description="Age in years")
    gender: Gender | None = Field(default=None, description="Gender")
    sexual_orientation: SexualOrientation | None = Field(default=None, description="Sexual orientation")
    interests: list[str] | None = Field(default=None, description="Interest tags")
    city: str | None = Field(default=None, max_length=100, description="City")
    latitude: float | None = Field(default=None, ge=-90, le=90, description="Latitude")
    longitude: float | None = Field(default=None, ge=-180, le=180, description="Longitude")

    @field_validator("gender", mode="before")
    @classmethod
    def parse_gender(cls, value: object) -> object:
        if value is None or value == "":
            return None
        gender = Gender.parse(value)
        if gender is None:
            raise ValueError("Genre invalide")
        return gender

    @field_validator("sexual_orientation", mode="before")
    @classmethod
    def parse_orientation(cls, value: object) -> object:
        if value is None or value == "":
            return None
        orientation = SexualOrientation.parse(value)
        if orientation is None:
            raise ValueError("Orientation sexuelle invalide")
        return orientation

    @field_validator("age")
    @classmethod
    def check_age(cls, value: int | None) -> int | None:
        if value is not None and not MIN_AGE <= value <= MAX_AGE:
            raise ValueError(f"L'âge doit être entre {MIN_AGE} et {MAX_AGE} ans")
        return value

    @field_validator("biography")
    @classmethod
    def check_biography(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if len(value) < BIOGRAPHY_MIN_LENGTH:
            raise ValueError(
                f"La biographie doit contenir au moins {BIOGRAPHY_MIN_LENGTH} caractères"
            )
        if len(value) > BIOGRAPHY_MAX_LENGTH:
            raise ValueError(
                f"La biographie ne peut pas dépasser {BIOGRAPHY_MAX_LENGTH} caractères"
            )
        return value

    @field_validator("interests")
    @classmethod
    def check_interests(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        tags: list[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag)
        if len(tags) > MAX_INTERESTS:
            raise ValueError(f"Maximum {MAX_INTERESTS} centres d'intérêt")
        return tags


class UserInfoUpdate(BaseModel):
    """Account identity fields editable by the user."""

    first_name: str = Field(description="First name")
    last_name: str = Field(description="Last name")
    email: str = Field(description="Email address")

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Le prénom est requis")
        return value.strip()

    @field_validator("last_name")
    @classmethod
    def check_last_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Le nom est requis")
        return value.strip()

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("L'email est requis")
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Format d'email invalide")
        return value


class LocationUpdate(BaseModel):
    """Coordinates captured by the browser or picked manually."""

    latitude: float = Field(ge=-90, le=90, description="Latitude")
    longitude: float = Field(ge=-180, le=180, description="Longitude")
    city: str | None = Field(default=None, max_length=100, description="City")


class LocationResponse(BaseModel):
    """A resolved location."""

    latitude: float = Field(description="Latitude")
    longitude: float = Field(description="Longitude")
    city: str = Field(description="City")
    country: str = Field(description="Country")
    region: str | None = Field(default=None, description="Region")
    accuracy: str = Field(default="city", description="'city' for IP lookups, 'default' for the fallback")


class CompletionStatus(BaseModel):
    """Profile completeness, recomputed on every call."""

    is_complete: bool = Field(description="Every required field is filled")
    completion_percentage: int = Field(ge=0, le=100, description="Share of filled fields")
    missing_fields: list[str] = Field(default_factory=list, description="Labels of missing required fields")


class LikeHistoryItem(BaseModel):
    """A like received by the caller."""

    id: int = Field(description="Like identifier")
    liker_id: int = Field(description="User who liked the caller")
    created_at: datetime = Field(description="When the like was given")
    username: str | None = Field(default=None, description="Liker username")
    first_name: str | None = Field(default=None, description="Liker first name")
    last_name: str | None = Field(default=None, description="Liker last name")
    age: int | None = Field(default=None, description="Liker age")
    city: str | None = Field(default=None, description="Liker city")


class VisitHistoryItem(BaseModel):
    """A visit received by the caller."""

    id: int = Field(description="Visit identifier")
    visitor_id: int = Field(description="User who visited the caller")
    visited_at: datetime = Field(description="When the visit happened")
    username: str | None = Field(default=None, description="Visitor username")
    first_name: str | None = Field(default=None, description="Visitor first name")
    last_name: str | None = Field(default=None, description="Visitor last name")
    age: int | None = Field(default=None, description="Visitor age")
    city: str | None = Field(default=None, description="Visitor city")
