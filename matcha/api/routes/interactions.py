"""Like, reject, report and block routes."""

from fastapi import APIRouter

from matcha.api.deps import CurrentUser
from matcha.schemas.common import MessageResponse
from matcha.schemas.interaction import LikeResponse, ReportRequest
from matcha.services.interaction_service import InteractionService

router = APIRouter(prefix="/profile", tags=["interactions"])


@router.post(
    "/like/{target_id}",
    response_model=LikeResponse,
    summary="Like a user",
    description="Liking is idempotent. Reports whether the like is mutual.",
)
async def like_user(target_id: int, user: CurrentUser) -> LikeResponse:
    service = InteractionService()
    is_match = await service.like(user.user_id, target_id)
    message = "C'est un match !" if is_match else "Like envoyé"
    return LikeResponse(is_match=is_match, message=message)


@router.delete(
    "/like/{target_id}",
    response_model=MessageResponse,
    summary="Unlike a user",
)
async def unlike_user(target_id: int, user: CurrentUser) -> MessageResponse:
    service = InteractionService()
    await service.unlike(user.user_id, target_id)
    return MessageResponse(message="Like retiré")


@router.post(
    "/reject/{target_id}",
    response_model=MessageResponse,
    summary="Pass on a user",
    description="Rejected users no longer appear while browsing.",
)
async def reject_user(target_id: int, user: CurrentUser) -> MessageResponse:
    service = InteractionService()
    await service.reject(user.user_id, target_id)
    return MessageResponse(message="Profil ignoré")


@router.post(
    "/report/{target_id}",
    response_model=MessageResponse,
    summary="Report a fake account",
)
async def report_user(
    target_id: int,
    user: CurrentUser,
    data: ReportRequest | None = None,
) -> MessageResponse:
    service = InteractionService()
    await service.report(user.user_id, target_id, data.reason if data else None)
    return MessageResponse(message="Signalement envoyé")


@router.post(
    "/block/{target_id}",
    response_model=MessageResponse,
    summary="Block a user",
    description="Blocked users disappear from browsing and profile views in both directions.",
)
async def block_user(target_id: int, user: CurrentUser) -> MessageResponse:
    service = InteractionService()
    await service.block(user.user_id, target_id)
    return MessageResponse(message="Utilisateur bloqué")
