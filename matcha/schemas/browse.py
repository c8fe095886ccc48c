"""Browsing Pydantic schemas: candidate filters, sort options and results."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from matcha.schemas.profile import MAX_AGE, MIN_AGE, Gender, PhotoSummary, SexualOrientation


class SortKey(str, Enum):
    """Candidate sort modes."""

    RECOMMENDED = "recommended"
    AGE = "age"
    FAME_RATING = "fame_rating"
    NAME = "name"
    DISTANCE = "distance"
    COMMON_INTERESTS = "common_interests"


class SortOrder(str, Enum):
    """Explicit sort direction overriding the key's default."""

    ASC = "asc"
    DESC = "desc"


class BrowseFilters(BaseModel):
    """Secondary filters applied to candidates before sorting."""

    age_min: int = Field(default=MIN_AGE, ge=MIN_AGE, le=MAX_AGE, description="Minimum age (inclusive)")
    age_max: int = Field(default=MAX_AGE, ge=MIN_AGE, le=MAX_AGE, description="Maximum age (inclusive)")
    fame_rating_min: float = Field(default=0, ge=0, description="Minimum fame rating")
    fame_rating_max: float | None = Field(default=None, ge=0, description="Maximum fame rating")
    max_distance_km: float | None = Field(default=None, gt=0, description="Maximum distance in kilometres")
    location: str | None = Field(default=None, description="Substring the candidate city must contain")
    interests: list[str] = Field(default_factory=list, description="Candidate must share one of these tags")
    min_common_tags: int = Field(default=0, ge=0, description="Minimum exact tag matches with the viewer")

    @field_validator("location")
    @classmethod
    def blank_location_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("interests", mode="before")
    @classmethod
    def split_interests(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [tag.strip() for tag in value if isinstance(tag, str) and tag.strip()]
        return value

    @model_validator(mode="after")
    def check_ranges(self) -> "BrowseFilters":
        if self.age_min > self.age_max:
            raise ValueError("L'âge minimum doit être inférieur ou égal à l'âge maximum")
        if self.fame_rating_max is not None and self.fame_rating_min > self.fame_rating_max:
            raise ValueError("La popularité minimum doit être inférieure ou égale à la popularité maximum")
        return self


class CandidateResponse(BaseModel):
    """A candidate profile with fields derived relative to the viewer."""

    user_id: int = Field(description="Candidate user ID")
    username: str | None = Field(default=None, description="Username")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    age: int | None = Field(default=None, description="Age")
    gender: Gender | None = Field(default=None, description="Gender")
    sexual_orientation: SexualOrientation | None = Field(default=None, description="Sexual orientation")
    biography: str | None = Field(default=None, description="Biography")
    interests: list[str] = Field(default_factory=list, description="Interest tags")
    city: str | None = Field(default=None, description="City")
    fame_rating: float = Field(default=0, description="Fame rating")
    last_seen: datetime | None = Field(default=None, description="Last activity timestamp")
    photos: list[PhotoSummary] = Field(default_factory=list, description="Photos, profile picture first")
    common_interest_count: int = Field(default=0, description="Tags shared with the viewer")
    recommendation_score: float = Field(default=0, description="Weighted recommendation score")
    distance_km: float | None = Field(default=None, description="Distance from the viewer when known")

    @field_validator("gender", mode="before")
    @classmethod
    def lenient_gender(cls, value: object) -> object:
        return Gender.parse(value)

    @field_validator("sexual_orientation", mode="before")
    @classmethod
    def lenient_orientation(cls, value: object) -> object:
        return SexualOrientation.parse(value)

    @field_validator("interests", mode="before")
    @classmethod
    def none_interests_to_empty(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("fame_rating", mode="before")
    @classmethod
    def none_fame_to_zero(cls, value: object) -> object:
        return 0 if value is None else value


class BrowseResponse(BaseModel):
    """A page of ranked candidates."""

    candidates: list[CandidateResponse] = Field(default_factory=list, description="Ranked candidates")
    total: int = Field(description="Candidates matching the filters before pagination")
    sort: SortKey = Field(description="Applied sort key")
    order: SortOrder = Field(description="Applied sort direction")
