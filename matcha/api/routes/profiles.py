"""Profile API routes."""

import logging

from fastapi import APIRouter, Query, Request

from matcha.api.deps import CurrentUser
from matcha.api.middleware.error_handler import NotFoundError
from matcha.core.geolocation import get_client_ip, get_geolocation_client
from matcha.schemas.common import MessageResponse
from matcha.schemas.interaction import LikesHistoryResponse, VisitsHistoryResponse
from matcha.schemas.profile import (
    CompletionStatus,
    LocationResponse,
    LocationUpdate,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    UserInfoUpdate,
)
from matcha.services.completeness import evaluate_completeness
from matcha.services.interaction_service import DEFAULT_HISTORY_LIMIT, InteractionService
from matcha.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=ProfileResponse,
    summary="Get current user's profile",
    description="Returns the authenticated user's profile with account fields and photos.",
)
async def get_my_profile(user: CurrentUser) -> ProfileResponse:
    """Get the authenticated user's profile.

    Raises:
        NotFoundError: 404 if the user has not created a profile yet.
    """
    service = ProfileService()
    profile = await service.get_complete_profile(user.user_id)
    if profile is None:
        raise NotFoundError("Profil non trouvé")
    return ProfileResponse(**profile)


@router.put(
    "",
    response_model=ProfileResponse,
    summary="Update current user's profile",
    description="Creates the profile if needed, then merges the provided fields.",
)
async def update_my_profile(data: ProfileUpdate, user: CurrentUser) -> ProfileResponse:
    """Partially update the authenticated user's profile.

    Args:
        data: Fields to update; omitted fields keep their value.
        user: The authenticated user context.

    Returns:
        ProfileResponse: The updated profile.
    """
    service = ProfileService()
    profile = await service.update_profile(user.user_id, data)
    return ProfileResponse(**profile)


@router.get(
    "/completion",
    response_model=CompletionStatus,
    summary="Get profile completion status",
    description="Recomputes completeness of the stored profile on every call.",
)
async def get_completion(user: CurrentUser) -> CompletionStatus:
    service = ProfileService()
    return evaluate_completeness(await service.get_complete_profile(user.user_id))


@router.put(
    "/user",
    response_model=MessageResponse,
    summary="Update account information",
    description="Updates first name, last name and email.",
)
async def update_user_info(data: UserInfoUpdate, user: CurrentUser) -> MessageResponse:
    service = ProfileService()
    await service.update_user_info(user.user_id, data)
    return MessageResponse(message="Informations mises à jour")


@router.put(
    "/location",
    response_model=ProfileResponse,
    summary="Update location",
    description="Stores coordinates captured by the browser or picked on a map.",
)
async def update_location(data: LocationUpdate, user: CurrentUser) -> ProfileResponse:
    service = ProfileService()
    profile = await service.update_location(user.user_id, data)
    return ProfileResponse(**profile)


@router.get(
    "/location/ip",
    response_model=LocationResponse,
    summary="Locate the caller by IP address",
    description=(
        "Resolves the caller's IP address to a city. Falls back to the default "
        "location (accuracy 'default') when every provider fails."
    ),
)
async def locate_by_ip(
    request: Request,
    user: CurrentUser,
    save: bool = Query(default=False, description="Store the resolved location on the profile"),
) -> LocationResponse:
    """Resolve the caller's approximate location.

    Args:
        request: The incoming request, used to read the client IP.
        user: The authenticated user context.
        save: Whether to store the location on the profile.

    Returns:
        LocationResponse: The resolved location.
    """
    location = LocationResponse(**await get_geolocation_client().locate(get_client_ip(request)))

    if save:
        service = ProfileService()
        await service.update_location(
            user.user_id,
            LocationUpdate(latitude=location.latitude, longitude=location.longitude, city=location.city),
        )
    return location


@router.get(
    "/history/likes",
    response_model=LikesHistoryResponse,
    summary="Likes received",
)
async def likes_history(
    user: CurrentUser,
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=200, description="Maximum number of entries"),
) -> LikesHistoryResponse:
    service = InteractionService()
    return LikesHistoryResponse(likes=await service.likes_history(user.user_id, limit))


@router.get(
    "/history/visits",
    response_model=VisitsHistoryResponse,
    summary="Visits received",
)
async def visits_history(
    user: CurrentUser,
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=200, description="Maximum number of entries"),
) -> VisitsHistoryResponse:
    service = InteractionService()
    return VisitsHistoryResponse(visits=await service.visits_history(user.user_id, limit))


@router.get(
    "/{user_id}",
    response_model=PublicProfileResponse,
    summary="Get another user's profile",
    description="Returns a user's public profile and records the visit.",
)
async def get_profile(user_id: int, user: CurrentUser) -> PublicProfileResponse:
    """Get a user's public profile.

    Blocked users (in either direction) are reported as not found.

    Raises:
        NotFoundError: 404 if the profile does not exist or is blocked.
    """
    interactions = InteractionService()
    if user_id != user.user_id and await interactions.is_blocked(user.user_id, user_id):
        raise NotFoundError("Profil non trouvé")

    profile = await ProfileService().get_complete_profile(user_id)
    if profile is None:
        raise NotFoundError("Profil non trouvé")

    await interactions.record_visit(user.user_id, user_id)
    status = await interactions.like_status(user.user_id, user_id)
    profile.pop("email", None)
    return PublicProfileResponse(**profile, **status)
