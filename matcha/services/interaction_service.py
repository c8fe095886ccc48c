"""Likes, visits, blocks, reports and rejections between users."""

import logging
from typing import Any

from matcha.api.middleware.error_handler import NotFoundError, ValidationError
from matcha.core.supabase import get_supabase_client
from matcha.models.interaction import Block, Like, Rejection, Visit
from matcha.services.fame_service import FameService

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class InteractionService:
    """Service for user-to-user interactions."""

    def __init__(self) -> None:
        """Initialize interaction service with Supabase client."""
        self.client = get_supabase_client()
        self.fame = FameService(self.client)

    async def _ensure_other_user(self, user_id: int, target_id: int, action: str) -> None:
        if user_id == target_id:
            raise ValidationError(f"Vous ne pouvez pas vous {action} vous-même")

        response = (
            self.client.table("profiles")
            .select("user_id")
            .eq("user_id", target_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Utilisateur non trouvé")

    async def _has_like(self, liker_id: int, liked_id: int) -> bool:
        response = (
            self.client.table("likes")
            .select("id")
            .eq("liker_id", liker_id)
            .eq("liked_id", liked_id)
            .execute()
        )
        return bool(response.data)

    async def like(self, user_id: int, target_id: int) -> bool:
        """Like another user. Liking twice is a no-op.

        Args:
            user_id: The user giving the like.
            target_id: The liked user.

        Returns:
            bool: True if the like is mutual (a match).

        Raises:
            ValidationError: If the user likes themself.
            NotFoundError: If the target has no profile.
        """
        await self._ensure_other_user(user_id, target_id, "liker")

        if not await self._has_like(user_id, target_id):
            self.client.table("likes").insert({"liker_id": user_id, "liked_id": target_id}).execute()
            logger.info("User %s liked user %s", user_id, target_id)

        is_match = await self._has_like(target_id, user_id)
        if is_match:
            logger.info("Match between users %s and %s", user_id, target_id)
            await self.fame.refresh(user_id)
        await self.fame.refresh(target_id)
        return is_match

    async def unlike(self, user_id: int, target_id: int) -> None:
        """Remove a like. Removing a missing like is a no-op."""
        (
            self.client.table("likes")
            .delete()
            .eq("liker_id", user_id)
            .eq("liked_id", target_id)
            .execute()
        )
        await self.fame.refresh(user_id)
        await self.fame.refresh(target_id)

    async def reject(self, user_id: int, target_id: int) -> None:
        """Pass on a user so they stop appearing while browsing."""
        await self._ensure_other_user(user_id, target_id, "rejeter")

        response = (
            self.client.table("rejections")
            .select("id")
            .eq("rejecter_id", user_id)
            .eq("rejected_id", target_id)
            .execute()
        )
        if not response.data:
            self.client.table("rejections").insert(
                {"rejecter_id": user_id, "rejected_id": target_id}
            ).execute()

    async def report(self, user_id: int, target_id: int, reason: str | None = None) -> None:
        """Report a user as a fake account."""
        await self._ensure_other_user(user_id, target_id, "signaler")
        self.client.table("reports").insert(
            {"reporter_id": user_id, "reported_id": target_id, "reason": reason}
        ).execute()
        logger.warning("User %s reported user %s", user_id, target_id)

    async def block(self, user_id: int, target_id: int) -> None:
        """Block a user. Also withdraws the blocker's like."""
        await self._ensure_other_user(user_id, target_id, "bloquer")

        response = (
            self.client.table("blocks")
            .select("id")
            .eq("blocker_id", user_id)
            .eq("blocked_id", target_id)
            .execute()
        )
        if not response.data:
            self.client.table("blocks").insert(
                {"blocker_id": user_id, "blocked_id": target_id}
            ).execute()
        await self.unlike(user_id, target_id)
        logger.info("User %s blocked user %s", user_id, target_id)

    async def blocked_user_ids(self, user_id: int) -> set[int]:
        """Users blocked by, or blocking, ``user_id``."""
        blocked = (
            self.client.table("blocks")
            .select("blocked_id")
            .eq("blocker_id", user_id)
            .execute()
        )
        blockers = (
            self.client.table("blocks")
            .select("blocker_id")
            .eq("blocked_id", user_id)
            .execute()
        )
        blocked_rows: list[Block] = blocked.data or []
        blocker_rows: list[Block] = blockers.data or []
        return {row["blocked_id"] for row in blocked_rows} | {
            row["blocker_id"] for row in blocker_rows
        }

    async def rejected_user_ids(self, user_id: int) -> set[int]:
        response = (
            self.client.table("rejections")
            .select("rejected_id")
            .eq("rejecter_id", user_id)
            .execute()
        )
        rows: list[Rejection] = response.data or []
        return {row["rejected_id"] for row in rows}

    async def is_blocked(self, user_id: int, other_id: int) -> bool:
        return other_id in await self.blocked_user_ids(user_id)

    async def record_visit(self, visitor_id: int, visited_id: int) -> None:
        """Record a profile view. Viewing one's own profile is not recorded."""
        if visitor_id == visited_id:
            return
        self.client.table("visits").insert(
            {"visitor_id": visitor_id, "visited_id": visited_id}
        ).execute()
        await self.fame.refresh(visited_id)

    async def like_status(self, user_id: int, other_id: int) -> dict[str, bool]:
        """Like relationship between two users."""
        liked_by_me = await self._has_like(user_id, other_id)
        likes_me = await self._has_like(other_id, user_id)
        return {
            "liked_by_me": liked_by_me,
            "likes_me": likes_me,
            "is_match": liked_by_me and likes_me,
        }

    async def _people(self, user_ids: list[int]) -> dict[int, dict[str, Any]]:
        """Display fields of several users keyed by user ID."""
        if not user_ids:
            return {}

        users = (
            self.client.table("users")
            .select("id, username, first_name, last_name")
            .in_("id", user_ids)
            .execute()
        )
        profiles = (
            self.client.table("profiles")
            .select("user_id, age, city")
            .in_("user_id", user_ids)
            .execute()
        )

        people: dict[int, dict[str, Any]] = {
            row["id"]: {
                "username": row.get("username"),
                "first_name": row.get("first_name"),
                "last_name": row.get("last_name"),
            }
            for row in users.data or []
        }
        for row in profiles.data or []:
            people.setdefault(row["user_id"], {}).update(
                {"age": row.get("age"), "city": row.get("city")}
            )
        return people

    async def likes_history(self, user_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict[str, Any]]:
        """Likes received by the user, newest first.

        Args:
            user_id: The liked user.
            limit: Maximum number of entries.

        Returns:
            list[dict]: Like rows enriched with the liker's display fields.
        """
        response = (
            self.client.table("likes")
            .select("id, liker_id, created_at")
            .eq("liked_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        rows: list[Like] = response.data or []
        people = await self._people(list({row["liker_id"] for row in rows}))
        return [{**row, **people.get(row["liker_id"], {})} for row in rows]

    async def visits_history(self, user_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict[str, Any]]:
        """Visits received by the user, newest first."""
        response = (
            self.client.table("visits")
            .select("id, visitor_id, visited_at")
            .eq("visited_id", user_id)
            .order("visited_at", desc=True)
            .limit(limit)
            .execute()
        )
        rows: list[Visit] = response.data or []
        people = await self._people(list({row["visitor_id"] for row in rows}))
        return [{**row, **people.get(row["visitor_id"], {})} for row in rows]
