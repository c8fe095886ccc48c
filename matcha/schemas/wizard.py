"""Profile wizard Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field

from matcha.schemas.profile import CompletionStatus, PhotoSummary


class DraftUpdate(BaseModel):
    """Fields merged into the wizard draft.

    Values are only type-checked here; each step validates its own fields
    when the user moves on.
    """

    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    email: str | None = Field(default=None, description="Email address")
    biography: str | None = Field(default=None, description="Free-text biography")
    age: int | None = Field(default=None, description="Age in years")
    gender: str | None = Field(default=None, description="Gender")
    sexual_orientation: str | None = Field(default=None, description="Sexual orientation")
    interests: list[str] | None = Field(default=None, description="Interest tags")
    city: str | None = Field(default=None, description="City")
    latitude: float | None = Field(default=None, description="Latitude")
    longitude: float | None = Field(default=None, description="Longitude")


class WizardStepInfo(BaseModel):
    index: int = Field(description="Zero-based step position")
    key: str = Field(description="Step identifier")
    title: str = Field(description="Step title")
    description: str = Field(description="Step description")
    optional: bool = Field(default=False, description="Whether the step can be skipped")


class PendingPhotoInfo(BaseModel):
    index: int = Field(description="Position in the pending list")
    filename: str = Field(description="Uploaded file name")
    content_type: str = Field(description="MIME type")
    size: int = Field(description="Size in bytes")


class WizardStateResponse(BaseModel):
    """Current state of the caller's profile wizard."""

    status: str = Field(description="in_progress, finished or abandoned")
    step_index: int = Field(description="Current step position")
    total_steps: int = Field(description="Number of steps")
    current_step: WizardStepInfo = Field(description="The current step")
    steps: list[WizardStepInfo] = Field(default_factory=list, description="All steps in order")
    draft: dict[str, Any] = Field(default_factory=dict, description="Accumulated draft fields")
    photos: list[PhotoSummary] = Field(default_factory=list, description="Stored photos")
    pending_photos: list[PendingPhotoInfo] = Field(default_factory=list, description="Uploads not stored yet")
    completion: CompletionStatus = Field(description="Completeness of the draft")


class WizardTransitionResponse(BaseModel):
    """Result of a wizard transition."""

    ok: bool = Field(description="Whether the transition succeeded")
    message: str | None = Field(default=None, description="User-facing message")
    field_errors: dict[str, str] = Field(default_factory=dict, description="Errors keyed by field")
    missing_fields: list[str] = Field(default_factory=list, description="Missing required fields on finish")
    navigate_to: str | None = Field(default=None, description="Where to go once the wizard is finished")
    state: WizardStateResponse = Field(description="Wizard state after the transition")
