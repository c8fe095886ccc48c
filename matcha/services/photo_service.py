"""Photo storage business logic service."""

import base64
import binascii
import logging
import re
import uuid

from matcha.api.middleware.error_handler import APIError, ConflictError, NotFoundError, ValidationError
from matcha.core.config import get_settings
from matcha.core.supabase import get_supabase_client
from matcha.models.photo import Photo, PhotoCreate
from matcha.services.fame_service import FameService
from matcha.services.photo_album import (
    PendingPhoto,
    PersistedPhoto,
    normalize_profile_picture,
    remove_photo,
    set_profile_picture,
)
from matcha.services.profile_service import PHOTO_COLUMNS, photo_url, sort_photo_rows

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
DATA_URI_PATTERN = re.compile(r"^data:([A-Za-z0-9.+/-]+);base64,(.+)$", re.DOTALL)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def encode_data_uri(content_type: str, data: bytes) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(value: str) -> tuple[bytes, str]:
    """Split a stored data URI into bytes and MIME type.

    Raises:
        ValueError: If the value is not a base64 data URI.
    """
    match = DATA_URI_PATTERN.match(value or "")
    if not match:
        raise ValueError("Not a base64 data URI")
    try:
        return base64.b64decode(match.group(2), validate=True), match.group(1)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


class PhotoService:
    """Service for managing a user's photos."""

    def __init__(self) -> None:
        """Initialize photo service with Supabase client."""
        self.client = get_supabase_client()
        self.settings = get_settings()
        self.fame = FameService(self.client)

    async def list_photos(self, user_id: int) -> list[PersistedPhoto]:
        """Get a user's photos, profile picture first.

        Args:
            user_id: The user ID.

        Returns:
            list[PersistedPhoto]: The user's photos.
        """
        response = (
            self.client.table("photos")
            .select(PHOTO_COLUMNS)
            .eq("user_id", user_id)
            .execute()
        )
        return [
            PersistedPhoto.from_row(row, url=photo_url(row["id"]))
            for row in sort_photo_rows(response.data or [])
        ]

    def validate_uploads(self, existing_count: int, uploads: list[PendingPhoto]) -> None:
        """Check upload count, size and type limits.

        Raises:
            ValidationError: If no file is given or a file is too large or not an image.
            ConflictError: If the uploads would exceed the per-user photo limit.
        """
        if not uploads:
            raise ValidationError("Aucune photo fournie")

        max_photos = self.settings.max_photos_per_user
        if existing_count + len(uploads) > max_photos:
            raise ConflictError(
                f"Maximum {max_photos} photos ({existing_count} déjà enregistrée(s))"
            )

        errors = []
        for upload in uploads:
            if upload.content_type not in ALLOWED_MIME_TYPES:
                errors.append(f"{upload.filename} : format non supporté (JPEG, PNG, GIF ou WebP)")
            elif upload.size == 0:
                errors.append(f"{upload.filename} : fichier vide")
            elif upload.size > self.settings.max_photo_size_bytes:
                max_mb = self.settings.max_photo_size_bytes // (1024 * 1024)
                errors.append(f"{upload.filename} : taille maximale {max_mb} Mo")
        if errors:
            raise ValidationError.from_messages(errors, field="photos")

    async def upload_photos(self, user_id: int, uploads: list[PendingPhoto]) -> list[PersistedPhoto]:
        """Store pending uploads.

        The first photo a user ever uploads becomes the profile picture.
        Each pending buffer is released once its photo is stored; a rejected
        batch leaves every buffer untouched.

        Args:
            user_id: The user ID.
            uploads: Pending photos to store.

        Returns:
            list[PersistedPhoto]: The user's full photo list after the upload.
        """
        existing = await self.list_photos(user_id)
        self.validate_uploads(len(existing), uploads)

        for index, upload in enumerate(uploads):
            extension = EXTENSIONS.get(upload.content_type, "jpg")
            row: PhotoCreate = {
                "user_id": user_id,
                "filename": f"photo-{uuid.uuid4().hex}.{extension}",
                "image_data": encode_data_uri(upload.content_type, upload.read()),
                "mime_type": upload.content_type,
                "is_profile_picture": not existing and index == 0,
            }
            self.client.table("photos").insert(row).execute()
            upload.release()

        logger.info("Stored %d photo(s) for user %s", len(uploads), user_id)
        await self.fame.refresh(user_id)
        return await self.list_photos(user_id)

    async def delete_photo(self, user_id: int, photo_id: int) -> list[PersistedPhoto]:
        """Delete a photo, promoting another one if it was the profile picture.

        Raises:
            NotFoundError: If the photo does not belong to the user.
        """
        photos = await self.list_photos(user_id)
        if not any(photo.id == photo_id for photo in photos):
            raise NotFoundError("Photo non trouvée")

        (
            self.client.table("photos")
            .delete()
            .eq("id", photo_id)
            .eq("user_id", user_id)
            .execute()
        )

        remaining, promoted = remove_photo(photos, photo_id)
        if promoted is not None:
            logger.info("Promoting photo %s to profile picture for user %s", promoted.id, user_id)
            (
                self.client.table("photos")
                .update({"is_profile_picture": True})
                .eq("id", promoted.id)
                .eq("user_id", user_id)
                .execute()
            )
        await self.fame.refresh(user_id)
        return remaining

    async def set_profile_picture(self, user_id: int, photo_id: int) -> list[PersistedPhoto]:
        """Make ``photo_id`` the user's only profile picture.

        Raises:
            NotFoundError: If the photo does not belong to the user.
        """
        photos = await self.list_photos(user_id)
        try:
            updated = set_profile_picture(photos, photo_id)
        except KeyError:
            raise NotFoundError("Photo non trouvée") from None

        (
            self.client.table("photos")
            .update({"is_profile_picture": False})
            .eq("user_id", user_id)
            .neq("id", photo_id)
            .execute()
        )
        (
            self.client.table("photos")
            .update({"is_profile_picture": True})
            .eq("id", photo_id)
            .eq("user_id", user_id)
            .execute()
        )
        return updated

    async def repair_profile_picture(self, user_id: int) -> PersistedPhoto | None:
        """Restore the single-profile-picture rule for a user.

        Returns:
            PersistedPhoto | None: The photo holding the flag afterwards.
        """
        photos = await self.list_photos(user_id)
        healed = normalize_profile_picture(photos)
        if healed == photos:
            return next((p for p in healed if p.is_profile_picture), None)

        keep = next(p for p in healed if p.is_profile_picture)
        logger.warning("Repairing profile picture flags for user %s", user_id)
        await self.set_profile_picture(user_id, keep.id)
        return keep

    async def get_image(self, photo_id: int) -> tuple[bytes, str]:
        """Get the bytes and MIME type of a photo.

        Raises:
            NotFoundError: If the photo does not exist.
            APIError: If the stored payload is corrupt.
        """
        response = (
            self.client.table("photos")
            .select("id, image_data, mime_type")
            .eq("id", photo_id)
            .maybe_single()
            .execute()
        )
        row: Photo | None = response.data if response and response.data else None
        if row is None:
            raise NotFoundError("Photo non trouvée")

        try:
            return decode_data_uri(row.get("image_data") or "")
        except ValueError as e:
            logger.error("Corrupt image payload for photo %s: %s", photo_id, e)
            raise APIError("Format d'image invalide") from e
