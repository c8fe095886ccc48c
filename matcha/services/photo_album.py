"""Photo collection rules shared by the photo service and the profile wizard.

A photo is either pending (an upload held in memory by a wizard draft) or
persisted (a row in the photos table). When a collection is non-empty,
exactly one persisted photo carries the profile-picture flag.
"""

import io
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Union


@dataclass
class PendingPhoto:
    """An upload that has not been stored yet.

    The buffer is released with ``release()`` once the photo is discarded or
    persisted.
    """

    filename: str
    content_type: str
    buffer: io.BytesIO | None = field(default=None, repr=False)

    @classmethod
    def from_bytes(cls, filename: str, content_type: str, data: bytes) -> "PendingPhoto":
        return cls(filename=filename, content_type=content_type, buffer=io.BytesIO(data))

    @property
    def released(self) -> bool:
        return self.buffer is None

    @property
    def size(self) -> int:
        return self.buffer.getbuffer().nbytes if self.buffer is not None else 0

    def read(self) -> bytes:
        if self.buffer is None:
            raise ValueError(f"Pending photo {self.filename} was already released")
        return self.buffer.getvalue()

    def release(self) -> None:
        if self.buffer is not None:
            self.buffer.close()
            self.buffer = None


@dataclass(frozen=True)
class PersistedPhoto:
    """A stored photo."""

    id: int
    filename: str
    is_profile_picture: bool = False
    url: str | None = None
    upload_date: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any], url: str | None = None) -> "PersistedPhoto":
        return cls(
            id=row["id"],
            filename=row.get("filename") or "",
            is_profile_picture=bool(row.get("is_profile_picture")),
            url=url,
            upload_date=row.get("upload_date"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "is_profile_picture": self.is_profile_picture,
            "url": self.url,
            "upload_date": self.upload_date,
        }


Photo = Union[PendingPhoto, PersistedPhoto]


def profile_picture(photos: list[PersistedPhoto]) -> PersistedPhoto | None:
    return next((photo for photo in photos if photo.is_profile_picture), None)


def normalize_profile_picture(photos: list[PersistedPhoto]) -> list[PersistedPhoto]:
    """Return the collection with exactly one profile picture when non-empty.

    The first flagged photo keeps the flag; if none is flagged, the first
    photo is promoted.
    """
    if not photos:
        return []
    keep = next((i for i, photo in enumerate(photos) if photo.is_profile_picture), 0)
    return [
        photo if photo.is_profile_picture == (i == keep) else replace(photo, is_profile_picture=i == keep)
        for i, photo in enumerate(photos)
    ]


def remove_photo(photos: list[PersistedPhoto], photo_id: int) -> tuple[list[PersistedPhoto], PersistedPhoto | None]:
    """Remove a photo and heal the profile-picture flag.

    Returns:
        The remaining photos, and the photo promoted to profile picture if
        the removed one held the flag.
    """
    removed = next((photo for photo in photos if photo.id == photo_id), None)
    remaining = [photo for photo in photos if photo.id != photo_id]
    if removed is None:
        return normalize_profile_picture(remaining), None

    healed = normalize_profile_picture(remaining)
    promoted = None
    if removed.is_profile_picture and healed:
        promoted = profile_picture(healed)
    return healed, promoted


def set_profile_picture(photos: list[PersistedPhoto], photo_id: int) -> list[PersistedPhoto]:
    """Move the profile-picture flag to ``photo_id``.

    Raises:
        KeyError: If the photo is not part of the collection.
    """
    if not any(photo.id == photo_id for photo in photos):
        raise KeyError(photo_id)
    return [replace(photo, is_profile_picture=photo.id == photo_id) for photo in photos]


def release_pending(photos: list[Photo]) -> list[PersistedPhoto]:
    """Release every pending buffer and keep only persisted photos."""
    persisted: list[PersistedPhoto] = []
    for photo in photos:
        if isinstance(photo, PendingPhoto):
            photo.release()
        else:
            persisted.append(photo)
    return persisted
