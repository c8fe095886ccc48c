"""Unit tests for IP geolocation."""

from unittest.mock import MagicMock

import httpx
import pytest

from matcha.core.config import get_settings
from matcha.core.geolocation import (
    GeolocationClient,
    get_client_ip,
    public_ip,
    validate_coordinates,
)

PRIMARY_BODY = {
    "ip": "8.8.8.8",
    "city": "Lyon",
    "region": "Auvergne-Rhône-Alpes",
    "country_name": "France",
    "latitude": 45.76,
    "longitude": 4.83,
}
FALLBACK_BODY = {
    "status": "success",
    "country": "France",
    "regionName": "Occitanie",
    "city": "Toulouse",
    "lat": 43.6,
    "lon": 1.44,
}


def make_client(handler) -> tuple[GeolocationClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return GeolocationClient(get_settings(), transport=httpx.MockTransport(record)), requests


class TestHelpers:
    """Tests for coordinate and address helpers."""

    @pytest.mark.parametrize(
        ("latitude", "longitude", "expected"),
        [
            (48.85, 2.35, True),
            (-90, 180, True),
            (91, 0, False),
            (0, -181, False),
            ("48.85", 2.35, False),
            (True, 2.35, False),
            (None, None, False),
        ],
    )
    def test_validate_coordinates(self, latitude, longitude, expected) -> None:
        assert validate_coordinates(latitude, longitude) is expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("8.8.8.8", "8.8.8.8"),
            (" 2001:4860:4860::8888 ", "2001:4860:4860::8888"),
            ("192.168.1.10", None),
            ("127.0.0.1", None),
            ("::1", None),
            ("not-an-ip", None),
            (None, None),
        ],
    )
    def test_public_ip(self, value, expected) -> None:
        assert public_ip(value) == expected

    def test_client_ip_prefers_forwarded_for(self) -> None:
        request = MagicMock()
        request.headers = {"x-forwarded-for": "8.8.4.4, 10.0.0.1", "x-real-ip": "1.1.1.1"}

        assert get_client_ip(request) == "8.8.4.4"

    def test_client_ip_from_real_ip(self) -> None:
        request = MagicMock()
        request.headers = {"x-real-ip": "1.1.1.1"}

        assert get_client_ip(request) == "1.1.1.1"

    def test_client_ip_private_peer(self) -> None:
        request = MagicMock()
        request.headers = {}
        request.client.host = "172.17.0.1"

        assert get_client_ip(request) is None


class TestLocate:
    """Tests for GeolocationClient.locate."""

    @pytest.mark.asyncio
    async def test_primary_provider(self) -> None:
        client, requests = make_client(lambda request: httpx.Response(200, json=PRIMARY_BODY))

        location = await client.locate("8.8.8.8")

        assert location["city"] == "Lyon"
        assert location["country"] == "France"
        assert location["accuracy"] == "city"
        assert str(requests[0].url) == "http://ipapi.co/8.8.8.8/json/"

    @pytest.mark.asyncio
    async def test_falls_back_on_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "ipapi.co":
                return httpx.Response(429, json={"error": True, "reason": "RateLimited"})
            return httpx.Response(200, json=FALLBACK_BODY)

        client, requests = make_client(handler)

        location = await client.locate("8.8.8.8")

        assert location["city"] == "Toulouse"
        assert location["region"] == "Occitanie"
        assert requests[-1].url.path == "/json/8.8.8.8"

    @pytest.mark.asyncio
    async def test_falls_back_when_primary_has_no_coordinates(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "ipapi.co":
                return httpx.Response(200, json={"error": True, "reason": "Reserved IP Address"})
            return httpx.Response(200, json=FALLBACK_BODY)

        client, _ = make_client(handler)

        assert (await client.locate("8.8.8.8"))["city"] == "Toulouse"

    @pytest.mark.asyncio
    async def test_default_when_both_fail(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "ipapi.co":
                return httpx.Response(500)
            return httpx.Response(200, json={"status": "fail", "message": "private range"})

        client, _ = make_client(handler)

        location = await client.locate("8.8.8.8")

        assert location["accuracy"] == "default"
        assert location["city"] == "Paris"
        assert location["country"] == "France"

    @pytest.mark.asyncio
    async def test_transport_errors_never_escape(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, requests = make_client(handler)

        location = await client.locate("8.8.8.8")

        assert location["accuracy"] == "default"
        # Each provider is retried once.
        assert len(requests) == 4

    @pytest.mark.asyncio
    async def test_unknown_ip_uses_default_without_lookup(self) -> None:
        client, requests = make_client(lambda request: httpx.Response(200, json=PRIMARY_BODY))

        location = await client.locate(None)

        assert location["accuracy"] == "default"
        assert requests == []
