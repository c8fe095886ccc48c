"""Unit tests for PhotoService."""

from unittest.mock import patch

import pytest

from matcha.api.middleware.error_handler import APIError, ConflictError, NotFoundError, ValidationError
from matcha.services.photo_album import PendingPhoto
from matcha.services.photo_service import PhotoService, decode_data_uri, encode_data_uri


def photo_row(photo_id: int, is_profile_picture: bool = False, upload_date: str = "2024-01-01") -> dict:
    return {
        "id": photo_id,
        "user_id": 1,
        "filename": f"photo-{photo_id}.jpg",
        "is_profile_picture": is_profile_picture,
        "upload_date": upload_date,
        "mime_type": "image/jpeg",
    }


def jpeg(name: str = "a.jpg", data: bytes = b"\xff\xd8\xff") -> PendingPhoto:
    return PendingPhoto.from_bytes(name, "image/jpeg", data)


@pytest.fixture
def photo_service(fake_supabase) -> PhotoService:
    """Create PhotoService with mocked client."""
    with patch("matcha.services.photo_service.get_supabase_client", return_value=fake_supabase.client):
        return PhotoService()


class TestDataUri:
    """Tests for the stored image encoding."""

    def test_encode_then_decode(self) -> None:
        data, mime_type = decode_data_uri(encode_data_uri("image/png", b"\x89PNG"))

        assert data == b"\x89PNG"
        assert mime_type == "image/png"

    @pytest.mark.parametrize("value", ["", "not a uri", "data:image/png;base64,@@@"])
    def test_rejects_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            decode_data_uri(value)


class TestValidateUploads:
    """Tests for validate_uploads."""

    def test_no_files(self, photo_service) -> None:
        with pytest.raises(ValidationError):
            photo_service.validate_uploads(0, [])

    def test_limit_exceeded(self, photo_service) -> None:
        with pytest.raises(ConflictError):
            photo_service.validate_uploads(4, [jpeg(), jpeg()])

    def test_unsupported_type_and_empty_file(self, photo_service) -> None:
        uploads = [
            PendingPhoto.from_bytes("doc.pdf", "application/pdf", b"%PDF"),
            jpeg("empty.jpg", b""),
        ]

        with pytest.raises(ValidationError) as exc_info:
            photo_service.validate_uploads(0, uploads)

        messages = [d["msg"] for d in exc_info.value.details]
        assert messages[0].startswith("doc.pdf")
        assert messages[1] == "empty.jpg : fichier vide"

    def test_too_large(self, photo_service) -> None:
        photo_service.settings = photo_service.settings.model_copy(update={"max_photo_size_bytes": 2})

        with pytest.raises(ValidationError):
            photo_service.validate_uploads(0, [jpeg()])


class TestUploadPhotos:
    """Tests for upload_photos."""

    @pytest.mark.asyncio
    async def test_first_upload_becomes_profile_picture(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [], None, None, [photo_row(1, True), photo_row(2)])
        uploads = [jpeg("a.jpg"), jpeg("b.jpg")]

        result = await photo_service.upload_photos(1, uploads)

        rows = [call.args[0] for call in photos.insert.call_args_list]
        assert [row["is_profile_picture"] for row in rows] == [True, False]
        assert rows[0]["image_data"].startswith("data:image/jpeg;base64,")
        assert rows[0]["filename"].endswith(".jpg")
        assert [p.id for p in result] == [1, 2]
        assert all(upload.released for upload in uploads)
        fake_supabase.tables["profiles"].update.assert_called_once_with({"fame_rating": 1})

    @pytest.mark.asyncio
    async def test_existing_profile_picture_is_kept(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1, True)], None, [photo_row(1, True), photo_row(2)])

        await photo_service.upload_photos(1, [jpeg()])

        assert photos.insert.call_args.args[0]["is_profile_picture"] is False

    @pytest.mark.asyncio
    async def test_rejected_upload_keeps_buffers(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(i) for i in range(1, 6)])
        upload = jpeg()

        with pytest.raises(ConflictError):
            await photo_service.upload_photos(1, [upload])

        assert upload.released is False
        assert upload.read() == b"\xff\xd8\xff"
        photos.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_batch_stores_nothing(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [])
        uploads = [jpeg("good.jpg"), PendingPhoto.from_bytes("cv.pdf", "application/pdf", b"%PDF")]

        with pytest.raises(ValidationError):
            await photo_service.upload_photos(1, uploads)

        assert [upload.released for upload in uploads] == [False, False]
        photos.insert.assert_not_called()
        assert "profiles" not in fake_supabase.tables


class TestDeletePhoto:
    """Tests for delete_photo."""

    @pytest.mark.asyncio
    async def test_deleting_profile_picture_promotes_next(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1, True), photo_row(2), photo_row(3)])

        remaining = await photo_service.delete_photo(1, 1)

        assert [p.id for p in remaining] == [2, 3]
        assert remaining[0].is_profile_picture is True
        photos.update.assert_called_once_with({"is_profile_picture": True})

    @pytest.mark.asyncio
    async def test_deleting_other_photo(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1, True), photo_row(2)])

        remaining = await photo_service.delete_photo(1, 2)

        assert [p.id for p in remaining] == [1]
        photos.update.assert_not_called()
        fake_supabase.tables["profiles"].update.assert_called_once_with({"fame_rating": 1})

    @pytest.mark.asyncio
    async def test_unknown_photo(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1, True)])

        with pytest.raises(NotFoundError):
            await photo_service.delete_photo(1, 9)

        photos.delete.assert_not_called()


class TestSetProfilePicture:
    """Tests for set_profile_picture."""

    @pytest.mark.asyncio
    async def test_moves_flag(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1, True), photo_row(2)])

        result = await photo_service.set_profile_picture(1, 2)

        assert [p.id for p in result if p.is_profile_picture] == [2]
        updates = [call.args[0] for call in photos.update.call_args_list]
        assert updates == [{"is_profile_picture": False}, {"is_profile_picture": True}]

    @pytest.mark.asyncio
    async def test_unknown_photo(self, photo_service, fake_supabase) -> None:
        fake_supabase.set("photos", [photo_row(1, True)])

        with pytest.raises(NotFoundError):
            await photo_service.set_profile_picture(1, 9)


class TestRepairProfilePicture:
    """Tests for repair_profile_picture."""

    @pytest.mark.asyncio
    async def test_nothing_to_repair(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1, True), photo_row(2)])

        kept = await photo_service.repair_profile_picture(1)

        assert kept.id == 1
        photos.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_promotes_when_unflagged(self, photo_service, fake_supabase) -> None:
        photos = fake_supabase.set("photos", [photo_row(1), photo_row(2, upload_date="2024-02-01")])

        kept = await photo_service.repair_profile_picture(1)

        assert kept.id == 1
        assert photos.update.call_count == 2

    @pytest.mark.asyncio
    async def test_no_photos(self, photo_service, fake_supabase) -> None:
        fake_supabase.set("photos", [])

        assert await photo_service.repair_profile_picture(1) is None


class TestGetImage:
    """Tests for get_image."""

    @pytest.mark.asyncio
    async def test_returns_bytes(self, photo_service, fake_supabase) -> None:
        fake_supabase.set("photos", {"id": 1, "image_data": encode_data_uri("image/webp", b"RIFF"), "mime_type": "image/webp"})

        data, mime_type = await photo_service.get_image(1)

        assert data == b"RIFF"
        assert mime_type == "image/webp"

    @pytest.mark.asyncio
    async def test_missing(self, photo_service, fake_supabase) -> None:
        fake_supabase.set("photos", None)

        with pytest.raises(NotFoundError):
            await photo_service.get_image(1)

    @pytest.mark.asyncio
    async def test_corrupt_payload(self, photo_service, fake_supabase) -> None:
        fake_supabase.set("photos", {"id": 1, "image_data": "garbage", "mime_type": "image/jpeg"})

        with pytest.raises(APIError) as exc_info:
            await photo_service.get_image(1)

        assert exc_info.value.status_code == 500
