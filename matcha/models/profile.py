"""Profile model type definitions for database operations."""

from datetime import datetime
from typing import TypedDict


class User(TypedDict):
    """users table row representation (account identity, no credentials)."""

    id: int
    username: str
    first_name: str
    last_name: str
    email: str
    last_seen: datetime | None


class Profile(TypedDict):
    """profiles table row representation.

    One row per user. Optional columns stay NULL until the user fills the
    profile wizard in.
    """

    id: int
    user_id: int
    biography: str | None
    age: int | None
    gender: str | None
    sexual_orientation: str | None
    interests: list[str] | None
    city: str | None
    latitude: float | None
    longitude: float | None
    fame_rating: float
    created_at: datetime
    updated_at: datetime


class ProfileColumns(TypedDict, total=False):
    """Columns that can be written on a profile.

    All fields are optional for partial updates.
    """

    biography: str | None
    age: int | None
    gender: str | None
    sexual_orientation: str | None
    interests: list[str] | None
    city: str | None
    latitude: float | None
    longitude: float | None
