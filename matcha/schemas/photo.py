"""Photo Pydantic schemas for API request/response models."""

from pydantic import BaseModel, Field

from matcha.schemas.profile import PhotoSummary


class PhotoListResponse(BaseModel):
    """A user's photos after an upload, deletion or profile-picture change."""

    photos: list[PhotoSummary] = Field(default_factory=list, description="Photos, profile picture first")
    total: int = Field(description="Number of stored photos")
    max_photos: int = Field(description="Maximum number of photos a user can hold")
    message: str | None = Field(default=None, description="User-facing message")
