"""Unit tests for InteractionService."""

from unittest.mock import patch

import pytest

from matcha.api.middleware.error_handler import NotFoundError, ValidationError
from matcha.services.interaction_service import InteractionService


@pytest.fixture
def interaction_service(fake_supabase) -> InteractionService:
    """Create InteractionService with mocked client."""
    with patch(
        "matcha.services.interaction_service.get_supabase_client",
        return_value=fake_supabase.client,
    ):
        return InteractionService()


@pytest.fixture
def target_exists(fake_supabase) -> None:
    fake_supabase.set("profiles", [{"user_id": 2}])


class TestLike:
    """Tests for like and unlike."""

    @pytest.mark.asyncio
    async def test_first_like_without_match(self, interaction_service, fake_supabase, target_exists) -> None:
        likes = fake_supabase.set("likes", [], None, [])

        is_match = await interaction_service.like(1, 2)

        assert is_match is False
        likes.insert.assert_called_once_with({"liker_id": 1, "liked_id": 2})

    @pytest.mark.asyncio
    async def test_mutual_like_is_match(self, interaction_service, fake_supabase, target_exists) -> None:
        fake_supabase.set("likes", [], None, [{"id": 9}])

        assert await interaction_service.like(1, 2) is True
        assert fake_supabase.tables["profiles"].update.call_count == 2

    @pytest.mark.asyncio
    async def test_like_refreshes_target_fame(self, interaction_service, fake_supabase, target_exists) -> None:
        fake_supabase.set("likes", [], None, [], [{"liker_id": 1}], [])
        fake_supabase.set("photos", [{"id": i} for i in range(5)])

        await interaction_service.like(1, 2)

        fake_supabase.tables["profiles"].update.assert_called_once_with({"fame_rating": 16})

    @pytest.mark.asyncio
    async def test_like_twice_is_noop(self, interaction_service, fake_supabase, target_exists) -> None:
        likes = fake_supabase.set("likes", [{"id": 3}], [])

        await interaction_service.like(1, 2)

        likes.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_cannot_like_self(self, interaction_service) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await interaction_service.like(1, 1)

        assert exc_info.value.message == "Vous ne pouvez pas vous liker vous-même"

    @pytest.mark.asyncio
    async def test_unknown_target(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("profiles", [])

        with pytest.raises(NotFoundError):
            await interaction_service.like(1, 2)

    @pytest.mark.asyncio
    async def test_unlike(self, interaction_service, fake_supabase) -> None:
        likes = fake_supabase.set("likes", [])

        await interaction_service.unlike(1, 2)

        likes.delete.assert_called_once()
        assert fake_supabase.tables["profiles"].update.call_count == 2


class TestBlockRejectReport:
    """Tests for block, reject and report."""

    @pytest.mark.asyncio
    async def test_block_withdraws_like(self, interaction_service, fake_supabase, target_exists) -> None:
        blocks = fake_supabase.set("blocks", [])
        likes = fake_supabase.set("likes", [])

        await interaction_service.block(1, 2)

        blocks.insert.assert_called_once_with({"blocker_id": 1, "blocked_id": 2})
        likes.delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_block_twice(self, interaction_service, fake_supabase, target_exists) -> None:
        blocks = fake_supabase.set("blocks", [{"id": 1}])

        await interaction_service.block(1, 2)

        blocks.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_reject_is_idempotent(self, interaction_service, fake_supabase, target_exists) -> None:
        rejections = fake_supabase.set("rejections", [{"id": 4}])

        await interaction_service.reject(1, 2)

        rejections.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_report_stores_reason(self, interaction_service, fake_supabase, target_exists) -> None:
        reports = fake_supabase.set("reports", None)

        await interaction_service.report(1, 2, "Faux profil")

        reports.insert.assert_called_once_with({"reporter_id": 1, "reported_id": 2, "reason": "Faux profil"})

    @pytest.mark.asyncio
    async def test_blocked_ids_cover_both_directions(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("blocks", [{"blocked_id": 2}], [{"blocker_id": 3}])

        assert await interaction_service.blocked_user_ids(1) == {2, 3}

    @pytest.mark.asyncio
    async def test_is_blocked(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("blocks", [], [{"blocker_id": 5}])

        assert await interaction_service.is_blocked(1, 5) is True

    @pytest.mark.asyncio
    async def test_rejected_ids(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("rejections", [{"rejected_id": 4}, {"rejected_id": 6}])

        assert await interaction_service.rejected_user_ids(1) == {4, 6}


class TestVisitsAndHistory:
    """Tests for visits, like status and histories."""

    @pytest.mark.asyncio
    async def test_own_visit_not_recorded(self, interaction_service, fake_supabase) -> None:
        visits = fake_supabase.set("visits", None)

        await interaction_service.record_visit(1, 1)
        await interaction_service.record_visit(1, 2)

        visits.insert.assert_called_once_with({"visitor_id": 1, "visited_id": 2})

    @pytest.mark.asyncio
    async def test_visit_refreshes_fame(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("visits", None, [{"id": i} for i in range(5)])
        fake_supabase.set("photos", [{"id": i} for i in range(5)])

        await interaction_service.record_visit(1, 2)

        profiles = fake_supabase.tables["profiles"]
        profiles.update.assert_called_once_with({"fame_rating": 16})
        profiles.eq.assert_called_once_with("user_id", 2)

    @pytest.mark.asyncio
    async def test_like_status(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("likes", [{"id": 1}], [])

        status = await interaction_service.like_status(1, 2)

        assert status == {"liked_by_me": True, "likes_me": False, "is_match": False}

    @pytest.mark.asyncio
    async def test_likes_history_enriched(self, interaction_service, fake_supabase) -> None:
        likes = fake_supabase.set(
            "likes",
            [{"id": 1, "liker_id": 2, "created_at": "2024-03-01T10:00:00"}],
        )
        fake_supabase.set("users", [{"id": 2, "username": "anna", "first_name": "Anna", "last_name": "B"}])
        fake_supabase.set("profiles", [{"user_id": 2, "age": 25, "city": "Nice"}])

        history = await interaction_service.likes_history(1, limit=10)

        likes.limit.assert_called_once_with(10)
        assert history == [
            {
                "id": 1,
                "liker_id": 2,
                "created_at": "2024-03-01T10:00:00",
                "username": "anna",
                "first_name": "Anna",
                "last_name": "B",
                "age": 25,
                "city": "Nice",
            }
        ]

    @pytest.mark.asyncio
    async def test_empty_visits_history(self, interaction_service, fake_supabase) -> None:
        fake_supabase.set("visits", [])

        assert await interaction_service.visits_history(1) == []
        assert "users" not in fake_supabase.tables
