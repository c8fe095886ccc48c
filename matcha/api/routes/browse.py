"""Candidate browsing routes."""

import logging

from fastapi import APIRouter, Query
from pydantic import ValidationError as PydanticValidationError

from matcha.api.deps import CurrentUser
from matcha.api.middleware.error_handler import AuthorizationError, ValidationError
from matcha.core.config import get_settings
from matcha.schemas.browse import BrowseFilters, BrowseResponse, CandidateResponse, SortKey, SortOrder
from matcha.services.completeness import evaluate_completeness
from matcha.services.interaction_service import InteractionService
from matcha.services.matching import DEFAULT_ORDER, rank_candidates
from matcha.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/browse", tags=["browse"])


@router.get(
    "",
    response_model=BrowseResponse,
    summary="Browse candidate profiles",
    description=(
        "Returns candidates compatible with the caller's gender and orientation, "
        "filtered and sorted. Blocked and rejected users are left out."
    ),
)
async def browse(
    user: CurrentUser,
    age_min: int = Query(default=18, description="Minimum age"),
    age_max: int = Query(default=100, description="Maximum age"),
    fame_rating_min: float = Query(default=0, description="Minimum fame rating"),
    fame_rating_max: float | None = Query(default=None, description="Maximum fame rating"),
    max_distance_km: float | None = Query(default=None, description="Maximum distance in kilometres"),
    location: str | None = Query(default=None, description="City substring"),
    interests: str | None = Query(default=None, description="Comma-separated interest tags"),
    min_common_tags: int = Query(default=0, description="Minimum shared tags"),
    sort: SortKey = Query(default=SortKey.RECOMMENDED, description="Sort key"),
    order: SortOrder | None = Query(default=None, description="Sort direction; defaults per key"),
    limit: int | None = Query(default=None, ge=1, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Number of candidates to skip"),
) -> BrowseResponse:
    """Rank candidates for the caller.

    Raises:
        ValidationError: 422 if the filters are inconsistent.
        AuthorizationError: 403 if the caller's profile is incomplete.
    """
    settings = get_settings()

    try:
        filters = BrowseFilters(
            age_min=age_min,
            age_max=age_max,
            fame_rating_min=fame_rating_min,
            fame_rating_max=fame_rating_max,
            max_distance_km=max_distance_km,
            location=location,
            interests=interests,
            min_common_tags=min_common_tags,
        )
    except PydanticValidationError as e:
        messages = [error["msg"].removeprefix("Value error, ") for error in e.errors()]
        raise ValidationError.from_messages(messages, field="filters") from e

    profiles = ProfileService()
    viewer = await profiles.get_complete_profile(user.user_id)
    completion = evaluate_completeness(viewer)
    if viewer is None or not completion.is_complete:
        raise AuthorizationError(
            "Complétez votre profil pour parcourir les profils : " + ", ".join(completion.missing_fields)
        )

    interactions = InteractionService()
    excluded = await interactions.blocked_user_ids(user.user_id)
    excluded |= await interactions.rejected_user_ids(user.user_id)

    candidates = await profiles.search_candidates(viewer, exclude_ids=excluded)
    ranked = rank_candidates(viewer, candidates, filters, sort, order)

    page_size = min(limit or settings.browse_default_limit, settings.browse_max_limit)
    page = ranked[offset:offset + page_size]
    logger.info(
        "Browse for user %s: %d candidates fetched, %d ranked, sort=%s",
        user.user_id,
        len(candidates),
        len(ranked),
        sort.value,
    )

    return BrowseResponse(
        candidates=[CandidateResponse(**candidate.as_dict()) for candidate in page],
        total=len(ranked),
        sort=sort,
        order=order or DEFAULT_ORDER[sort],
    )
