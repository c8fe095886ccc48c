"""Photo API routes."""

from fastapi import APIRouter, File, Response, UploadFile, status

from matcha.api.deps import CurrentUser
from matcha.core.config import get_settings
from matcha.schemas.photo import PhotoListResponse
from matcha.schemas.profile import PhotoSummary
from matcha.services.photo_album import PendingPhoto, PersistedPhoto
from matcha.services.photo_service import PhotoService

router = APIRouter(prefix="/photos", tags=["photos"])


async def read_uploads(files: list[UploadFile]) -> list[PendingPhoto]:
    """Buffer multipart uploads as pending photos."""
    pending = []
    for upload in files:
        data = await upload.read()
        pending.append(
            PendingPhoto.from_bytes(
                filename=upload.filename or "photo",
                content_type=upload.content_type or "application/octet-stream",
                data=data,
            )
        )
        await upload.close()
    return pending


def photo_list(photos: list[PersistedPhoto], message: str | None = None) -> PhotoListResponse:
    return PhotoListResponse(
        photos=[PhotoSummary(**photo.as_dict()) for photo in photos],
        total=len(photos),
        max_photos=get_settings().max_photos_per_user,
        message=message,
    )


@router.get(
    "",
    response_model=PhotoListResponse,
    summary="List my photos",
)
async def list_photos(user: CurrentUser) -> PhotoListResponse:
    service = PhotoService()
    return photo_list(await service.list_photos(user.user_id))


@router.post(
    "",
    response_model=PhotoListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload photos",
    description="Uploads up to 5 images (5 MB each). The first photo ever uploaded becomes the profile picture.",
)
async def upload_photos(
    user: CurrentUser,
    photos: list[UploadFile] = File(..., description="Image files"),
) -> PhotoListResponse:
    """Store uploaded photos.

    Raises:
        ValidationError: 422 if a file is not an image or is too large.
        ConflictError: 409 if the photo limit would be exceeded.
    """
    service = PhotoService()
    pending = await read_uploads(photos)
    try:
        stored = await service.upload_photos(user.user_id, pending)
    finally:
        for upload in pending:
            upload.release()
    return photo_list(stored, f"{len(photos)} photo(s) ajoutée(s)")


@router.delete(
    "/{photo_id}",
    response_model=PhotoListResponse,
    summary="Delete a photo",
    description="Deleting the profile picture promotes the first remaining photo.",
)
async def delete_photo(photo_id: int, user: CurrentUser) -> PhotoListResponse:
    service = PhotoService()
    return photo_list(await service.delete_photo(user.user_id, photo_id), "Photo supprimée")


@router.put(
    "/{photo_id}/profile-picture",
    response_model=PhotoListResponse,
    summary="Set the profile picture",
)
async def set_profile_picture(photo_id: int, user: CurrentUser) -> PhotoListResponse:
    service = PhotoService()
    return photo_list(
        await service.set_profile_picture(user.user_id, photo_id),
        "Photo de profil mise à jour",
    )


@router.get(
    "/{photo_id}/image",
    response_class=Response,
    responses={200: {"content": {"image/*": {}}}, 404: {"description": "Photo not found"}},
    summary="Get photo bytes",
)
async def get_photo_image(photo_id: int) -> Response:
    """Serve a photo's image bytes; referenced from ``<img>`` tags, so no bearer token is required."""
    service = PhotoService()
    data, mime_type = await service.get_image(photo_id)
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Cache-Control": "private, max-age=3600"},
    )
