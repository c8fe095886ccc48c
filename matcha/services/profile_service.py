"""Profile business logic service."""

import logging
from typing import Any

from matcha.api.middleware.error_handler import ConflictError, NotFoundError
from matcha.core.config import get_settings
from matcha.core.supabase import get_supabase_client
from matcha.models.photo import Photo
from matcha.models.profile import Profile, ProfileColumns, User
from matcha.schemas.profile import LocationUpdate, ProfileUpdate, UserInfoUpdate
from matcha.services.fame_service import FameService
from matcha.services.matching import allowed_genders

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, username, first_name, last_name, email, last_seen"
PHOTO_COLUMNS = "id, user_id, filename, is_profile_picture, upload_date, mime_type"


def photo_url(photo_id: int) -> str:
    """Public URL serving a photo's bytes."""
    return f"/api/v1/photos/{photo_id}/image"


def shape_photo(row: Photo) -> dict[str, Any]:
    return {
        "id": row["id"],
        "filename": row.get("filename") or "",
        "is_profile_picture": bool(row.get("is_profile_picture")),
        "upload_date": row.get("upload_date"),
        "url": photo_url(row["id"]),
    }


def sort_photo_rows(rows: list[Photo]) -> list[Photo]:
    """Profile picture first, then upload order."""
    return sorted(
        rows,
        key=lambda r: (not r.get("is_profile_picture"), str(r.get("upload_date") or "")),
    )


def merge_profile(
    user: User | None,
    profile: Profile,
    photos: list[Photo],
) -> dict[str, Any]:
    """Combine users, profiles and photos rows into one profile record."""
    record: dict[str, Any] = {}
    if user:
        record.update(
            {
                "username": user.get("username"),
                "first_name": user.get("first_name"),
                "last_name": user.get("last_name"),
                "email": user.get("email"),
                "last_seen": user.get("last_seen"),
            }
        )
    record.update(profile)
    record.pop("id", None)
    record["user_id"] = profile.get("user_id") or (user or {}).get("id")
    record["interests"] = profile.get("interests") or []
    record["fame_rating"] = profile.get("fame_rating") or 0
    record["photos"] = [shape_photo(p) for p in sort_photo_rows(photos)]
    return record


class ProfileService:
    """Service for reading and writing user profiles."""

    def __init__(self) -> None:
        """Initialize profile service with Supabase client."""
        self.client = get_supabase_client()
        self.fame = FameService(self.client)

    async def get_user(self, user_id: int) -> User | None:
        """Get the account row of a user.

        Args:
            user_id: The user ID.

        Returns:
            User | None: The user row or None if not found.
        """
        response = (
            self.client.table("users")
            .select(USER_COLUMNS)
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    async def get_profile_row(self, user_id: int) -> Profile | None:
        """Get the raw profiles row of a user."""
        response = (
            self.client.table("profiles")
            .select("*")
            .eq("user_id", user_id)
            .execute()
        )
        return response.data[0] if response.data else None

    async def get_photo_rows(self, user_id: int) -> list[Photo]:
        response = (
            self.client.table("photos")
            .select(PHOTO_COLUMNS)
            .eq("user_id", user_id)
            .execute()
        )
        return sort_photo_rows(response.data or [])

    async def get_complete_profile(self, user_id: int) -> dict[str, Any] | None:
        """Get a profile with account fields and photos.

        Args:
            user_id: The user ID.

        Returns:
            dict | None: The merged profile, or None if the user has no
            profile row yet.
        """
        profile = await self.get_profile_row(user_id)
        if profile is None:
            return None

        user = await self.get_user(user_id)
        photos = await self.get_photo_rows(user_id)
        return merge_profile(user, profile, photos)

    async def update_profile(self, user_id: int, data: ProfileUpdate) -> dict[str, Any]:
        """Create or partially update a profile.

        Args:
            user_id: The user ID.
            data: The fields to write; unset and null fields are left untouched.

        Returns:
            dict: The merged profile after the write.
        """
        update_data: ProfileColumns = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        existing = await self.get_profile_row(user_id)

        if existing is None:
            logger.info("Creating profile for user %s", user_id)
            self.client.table("profiles").insert({"user_id": user_id, **update_data}).execute()
            await self.fame.refresh(user_id)
        elif update_data:
            (
                self.client.table("profiles")
                .update(update_data)
                .eq("user_id", user_id)
                .execute()
            )

        profile = await self.get_complete_profile(user_id)
        if profile is None:
            raise NotFoundError("Profil non trouvé")
        return profile

    async def update_location(self, user_id: int, data: LocationUpdate) -> dict[str, Any]:
        """Store coordinates (and the city when known) on a profile."""
        return await self.update_profile(
            user_id,
            ProfileUpdate(latitude=data.latitude, longitude=data.longitude, city=data.city),
        )

    async def update_user_info(self, user_id: int, data: UserInfoUpdate) -> User:
        """Update the account's name and email.

        Raises:
            ConflictError: If the email belongs to another account.
            NotFoundError: If the user does not exist.
        """
        response = (
            self.client.table("users")
            .select("id")
            .eq("email", data.email)
            .execute()
        )
        if any(row.get("id") != user_id for row in response.data or []):
            raise ConflictError("Cet email est déjà utilisé")

        response = (
            self.client.table("users")
            .update(data.model_dump())
            .eq("id", user_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Utilisateur non trouvé")
        return response.data[0]

    async def search_candidates(
        self,
        viewer: dict[str, Any],
        exclude_ids: set[int] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch candidate profiles for a viewer.

        The gender/orientation rule is pushed down to the query; the
        matching engine re-applies it on the result.

        Args:
            viewer: The browsing user's profile.
            exclude_ids: Users to leave out (blocked, rejected).

        Returns:
            list[dict]: Merged candidate profiles in fetch order.
        """
        settings = get_settings()
        exclude = {viewer["user_id"], *(exclude_ids or set())}

        query = (
            self.client.table("profiles")
            .select("*")
            .neq("user_id", viewer["user_id"])
        )
        genders = allowed_genders(viewer.get("gender"), viewer.get("sexual_orientation"))
        if genders is not None:
            query = query.in_("gender", sorted(g.value for g in genders))

        response = query.order("fame_rating", desc=True).limit(settings.browse_fetch_limit).execute()
        profiles = [row for row in response.data or [] if row.get("user_id") not in exclude]
        if not profiles:
            return []

        user_ids = [row["user_id"] for row in profiles]
        users_response = (
            self.client.table("users")
            .select(USER_COLUMNS)
            .in_("id", user_ids)
            .execute()
        )
        users = {row["id"]: row for row in users_response.data or []}

        photos_response = (
            self.client.table("photos")
            .select(PHOTO_COLUMNS)
            .in_("user_id", user_ids)
            .execute()
        )
        photos: dict[int, list[dict[str, Any]]] = {}
        for row in photos_response.data or []:
            photos.setdefault(row["user_id"], []).append(row)

        logger.debug("Fetched %d candidates for user %s", len(profiles), viewer["user_id"])
        return [
            merge_profile(users.get(row["user_id"]), row, photos.get(row["user_id"], []))
            for row in profiles
        ]
