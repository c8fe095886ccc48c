"""Unit tests for the async Matcha REST client."""

import json

import httpx
import pytest

from matcha.client.errors import (
    MatchaClientError,
    NetworkError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from matcha.client.matcha_client import MatchaClient, classify_response
from matcha.schemas.browse import BrowseFilters, SortKey, SortOrder
from matcha.schemas.profile import ProfileUpdate
from matcha.schemas.wizard import DraftUpdate

PROFILE_BODY = {"user_id": 1, "gender": "femme", "city": "Lyon", "interests": ["Ski"]}
LOCATION_BODY = {
    "latitude": 45.76,
    "longitude": 4.83,
    "city": "Lyon",
    "country": "France",
    "accuracy": "city",
}
STEP = {"index": 0, "key": "profile", "title": "Profil de rencontre", "description": ""}
STATE_BODY = {
    "status": "in_progress",
    "step_index": 0,
    "total_steps": 3,
    "current_step": STEP,
    "steps": [STEP],
    "completion": {"is_complete": False, "completion_percentage": 29, "missing_fields": ["Photos"]},
}


def make_client(handler, token: str | None = "token") -> tuple[MatchaClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = MatchaClient("http://testserver/", token, transport=httpx.MockTransport(record))
    return client, requests


class TestClassifyResponse:
    """Tests for classify_response."""

    @pytest.mark.parametrize(
        ("status_code", "error_class"),
        [
            (500, NetworkError),
            (503, NetworkError),
            (404, NotFoundError),
            (401, PermissionDenied),
            (403, PermissionDenied),
            (400, ValidationError),
            (409, ValidationError),
            (413, ValidationError),
            (422, ValidationError),
            (429, MatchaClientError),
        ],
    )
    def test_status_mapping(self, status_code, error_class) -> None:
        error = classify_response(httpx.Response(status_code, json={"message": "Erreur"}))

        assert type(error) is error_class
        assert error.status_code == status_code

    def test_application_error_body(self) -> None:
        body = {
            "error": "validation_error",
            "message": "Genre invalide",
            "details": [{"loc": ["body", "gender"], "msg": "Genre invalide", "type": "value_error"}],
        }

        error = classify_response(httpx.Response(422, json=body))

        assert error.message == "Genre invalide"
        assert error.field_errors == {"gender": "Genre invalide"}

    def test_framework_error_body(self) -> None:
        error = classify_response(httpx.Response(401, json={"detail": "Token expiré"}))

        assert error.message == "Token expiré"

    def test_non_json_body(self) -> None:
        error = classify_response(httpx.Response(502, text="Bad Gateway"))

        assert error.message == "Erreur HTTP 502"


class TestRequests:
    """Tests for request building and response parsing."""

    @pytest.mark.asyncio
    async def test_bearer_token_and_base_path(self) -> None:
        client, requests = make_client(lambda r: httpx.Response(200, json=PROFILE_BODY))

        async with client:
            profile = await client.get_own_profile()

        assert profile.city == "Lyon"
        assert requests[0].url.path == "/api/v1/profile"
        assert requests[0].headers["Authorization"] == "Bearer token"

    @pytest.mark.asyncio
    async def test_partial_update_sends_only_set_fields(self) -> None:
        client, requests = make_client(lambda r: httpx.Response(200, json=PROFILE_BODY))

        await client.update_profile(ProfileUpdate(city="Lyon"))

        assert json.loads(requests[0].content) == {"city": "Lyon"}

    @pytest.mark.asyncio
    async def test_browse_query_parameters(self) -> None:
        body = {"candidates": [], "total": 0, "sort": "age", "order": "desc"}
        client, requests = make_client(lambda r: httpx.Response(200, json=body))

        result = await client.browse(
            BrowseFilters(age_min=25, interests=["Ski", "Jazz"]),
            sort=SortKey.AGE,
            order=SortOrder.DESC,
            limit=10,
        )

        params = requests[0].url.params
        assert params["sort"] == "age"
        assert params["order"] == "desc"
        assert params["age_min"] == "25"
        assert params["interests"] == "Ski,Jazz"
        assert params["limit"] == "10"
        assert "age_max" not in params
        assert result.sort is SortKey.AGE

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self) -> None:
        client, requests = make_client(lambda r: httpx.Response(204))

        assert await client.block(2) is None
        assert requests[0].method == "POST"
        assert requests[0].url.path == "/api/v1/profile/block/2"

    @pytest.mark.asyncio
    async def test_upload_is_multipart(self) -> None:
        body = {"photos": [], "total": 1, "max_photos": 5}
        client, requests = make_client(lambda r: httpx.Response(201, json=body))

        await client.upload_photos([("a.jpg", b"\xff\xd8\xff", "image/jpeg")])

        assert requests[0].headers["content-type"].startswith("multipart/form-data")
        assert b'name="photos"' in requests[0].content

    @pytest.mark.asyncio
    async def test_wizard_draft_update(self) -> None:
        client, requests = make_client(lambda r: httpx.Response(200, json=STATE_BODY))

        state = await client.update_wizard_draft(DraftUpdate(city="Lyon"))

        assert requests[0].method == "PATCH"
        assert json.loads(requests[0].content) == {"city": "Lyon"}
        assert state.completion.completion_percentage == 29


class TestFailures:
    """Tests for failure classification."""

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        client, _ = make_client(
            lambda r: httpx.Response(404, json={"error": "not_found", "message": "Profil non trouvé"})
        )

        with pytest.raises(NotFoundError) as exc_info:
            await client.get_profile(9)

        assert exc_info.value.message == "Profil non trouvé"

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = make_client(handler)

        with pytest.raises(NetworkError):
            await client.get_completion()

    @pytest.mark.asyncio
    async def test_unreadable_body(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(NetworkError):
            await client.get_completion()

    @pytest.mark.asyncio
    async def test_unexpected_shape(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(NetworkError):
            await client.get_completion()


class TestResolveLocation:
    """Tests for resolve_location."""

    @pytest.mark.asyncio
    async def test_uses_coordinates_first(self) -> None:
        client, requests = make_client(lambda r: httpx.Response(200, json=PROFILE_BODY))

        location = await client.resolve_location(45.76, 4.83)

        assert location.accuracy == "precise"
        assert [r.url.path for r in requests] == ["/api/v1/profile/location"]

    @pytest.mark.asyncio
    async def test_falls_back_to_ip_lookup(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/location/ip"):
                return httpx.Response(200, json=LOCATION_BODY)
            return httpx.Response(422, json={"message": "Coordonnées invalides"})

        client, requests = make_client(handler)

        location = await client.resolve_location(45.76, 4.83)

        assert location.city == "Lyon"
        assert requests[-1].url.params["save"] == "true"

    @pytest.mark.asyncio
    async def test_gives_up_quietly(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(503))

        assert await client.resolve_location() is None
