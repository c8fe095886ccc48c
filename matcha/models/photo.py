"""Photo model type definitions for database operations."""

from datetime import datetime
from typing import TypedDict


class Photo(TypedDict):
    """photos table row representation.

    ``image_data`` holds a ``data:<mime>;base64,<payload>`` URI and is only
    selected when the image itself is served.
    """

    id: int
    user_id: int
    filename: str
    image_data: str
    mime_type: str
    is_profile_picture: bool
    upload_date: datetime


class PhotoCreate(TypedDict):
    """Data required to insert a photo."""

    user_id: int
    filename: str
    image_data: str
    mime_type: str
    is_profile_picture: bool
