"""Fame rating computation.

The rating is a popularity score in [0, 100] derived from what other users
do with a profile. It is stored on the profiles row so browsing can filter
and sort on it, and is refreshed whenever one of its inputs changes.
"""

import logging

from supabase import Client

from matcha.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

FAME_RATING_MIN = 0
FAME_RATING_MAX = 100

LIKE_POINTS = 1
MATCH_POINTS = 2
PHOTO_POINTS = 2
VISITS_PER_POINT = 10
FULL_ALBUM_SIZE = 5
FULL_ALBUM_BONUS = 5


def compute_fame_rating(likes_received: int, visits_received: int, matches: int, photos: int) -> int:
    """Compute a fame rating from activity counts.

    One point per like received, one per ten visits (rounded half up), two
    per match and two per photo. A full album earns a bonus; every missing
    photo costs a point. The result is clamped to [0, 100].

    Args:
        likes_received: Likes given to the user.
        visits_received: Views of the user's profile.
        matches: Mutual likes.
        photos: Stored photos.

    Returns:
        int: The fame rating.
    """
    visit_points = (visits_received + VISITS_PER_POINT // 2) // VISITS_PER_POINT
    if photos >= FULL_ALBUM_SIZE:
        album_points = FULL_ALBUM_BONUS
    else:
        album_points = photos - FULL_ALBUM_SIZE

    score = (
        likes_received * LIKE_POINTS
        + visit_points
        + matches * MATCH_POINTS
        + photos * PHOTO_POINTS
        + album_points
    )
    return max(FAME_RATING_MIN, min(FAME_RATING_MAX, score))


class FameService:
    """Service keeping stored fame ratings up to date."""

    def __init__(self, supabase_client: Client | None = None) -> None:
        """Initialize fame service.

        Args:
            supabase_client: Client shared with the calling service.
        """
        self.client = supabase_client or get_supabase_client()

    async def activity(self, user_id: int) -> dict[str, int]:
        """Count the inputs of a user's fame rating."""
        received = (
            self.client.table("likes")
            .select("liker_id")
            .eq("liked_id", user_id)
            .execute()
        )
        given = (
            self.client.table("likes")
            .select("liked_id")
            .eq("liker_id", user_id)
            .execute()
        )
        visits = (
            self.client.table("visits")
            .select("id")
            .eq("visited_id", user_id)
            .execute()
        )
        photos = (
            self.client.table("photos")
            .select("id")
            .eq("user_id", user_id)
            .execute()
        )

        likers = {row.get("liker_id") for row in received.data or []}
        liked = {row.get("liked_id") for row in given.data or []}
        return {
            "likes_received": len(received.data or []),
            "visits_received": len(visits.data or []),
            "matches": len(likers & liked),
            "photos": len(photos.data or []),
        }

    async def refresh(self, user_id: int) -> int:
        """Recompute and store a user's fame rating.

        Args:
            user_id: The user whose rating changes.

        Returns:
            int: The new rating.
        """
        rating = compute_fame_rating(**await self.activity(user_id))
        (
            self.client.table("profiles")
            .update({"fame_rating": rating})
            .eq("user_id", user_id)
            .execute()
        )
        logger.debug("Fame rating of user %s is now %s", user_id, rating)
        return rating
