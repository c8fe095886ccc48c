"""Unit tests for photo collection rules."""

import itertools

import pytest

from matcha.services.photo_album import (
    PendingPhoto,
    PersistedPhoto,
    normalize_profile_picture,
    profile_picture,
    release_pending,
    remove_photo,
    set_profile_picture,
)


def album(*flags: bool) -> list[PersistedPhoto]:
    return [
        PersistedPhoto(id=i + 1, filename=f"photo-{i + 1}.jpg", is_profile_picture=flag)
        for i, flag in enumerate(flags)
    ]


def flagged(photos: list[PersistedPhoto]) -> list[int]:
    return [photo.id for photo in photos if photo.is_profile_picture]


class TestPendingPhoto:
    """Tests for PendingPhoto buffers."""

    def test_read_and_release(self) -> None:
        photo = PendingPhoto.from_bytes("a.png", "image/png", b"\x89PNG")

        assert photo.size == 4
        assert photo.read() == b"\x89PNG"

        photo.release()

        assert photo.released is True
        assert photo.size == 0
        with pytest.raises(ValueError):
            photo.read()

    def test_release_twice_is_harmless(self) -> None:
        photo = PendingPhoto.from_bytes("a.png", "image/png", b"data")
        photo.release()
        photo.release()

        assert photo.released is True


class TestNormalizeProfilePicture:
    """Tests for normalize_profile_picture."""

    def test_empty(self) -> None:
        assert normalize_profile_picture([]) == []

    def test_promotes_first_when_none_flagged(self) -> None:
        assert flagged(normalize_profile_picture(album(False, False))) == [1]

    def test_keeps_first_flag_only(self) -> None:
        assert flagged(normalize_profile_picture(album(False, True, True))) == [2]

    def test_preserves_order(self) -> None:
        photos = normalize_profile_picture(album(False, False, True))

        assert [photo.id for photo in photos] == [1, 2, 3]


class TestRemovePhoto:
    """Tests for remove_photo."""

    @pytest.mark.parametrize("flags", list(itertools.product([False, True], repeat=3)))
    @pytest.mark.parametrize("removed_id", [1, 2, 3])
    def test_exactly_one_profile_picture_remains(self, flags, removed_id) -> None:
        remaining, _ = remove_photo(album(*flags), removed_id)

        assert len(remaining) == 2
        assert len(flagged(remaining)) == 1

    def test_removing_profile_picture_promotes_first_remaining(self) -> None:
        remaining, promoted = remove_photo(album(True, False, False), 1)

        assert promoted is not None
        assert promoted.id == 2
        assert flagged(remaining) == [2]

    def test_removing_other_photo_promotes_nothing(self) -> None:
        remaining, promoted = remove_photo(album(False, True, False), 3)

        assert promoted is None
        assert flagged(remaining) == [2]

    def test_removing_last_photo(self) -> None:
        remaining, promoted = remove_photo(album(True), 1)

        assert remaining == []
        assert promoted is None

    def test_unknown_id_leaves_collection(self) -> None:
        remaining, promoted = remove_photo(album(False, True), 9)

        assert [photo.id for photo in remaining] == [1, 2]
        assert promoted is None


class TestSetProfilePicture:
    """Tests for set_profile_picture."""

    def test_moves_flag(self) -> None:
        photos = set_profile_picture(album(True, False, False), 3)

        assert flagged(photos) == [3]
        assert profile_picture(photos).id == 3

    def test_unknown_photo(self) -> None:
        with pytest.raises(KeyError):
            set_profile_picture(album(True), 5)


def test_release_pending_keeps_persisted() -> None:
    pending = PendingPhoto.from_bytes("b.jpg", "image/jpeg", b"jpeg")
    persisted = album(True)[0]

    result = release_pending([pending, persisted])

    assert result == [persisted]
    assert pending.released is True
