"""IP geolocation client with timing, retry logic, and provider fallback."""

import ipaddress
import logging
import time
from functools import lru_cache
from typing import Any

import httpx
from fastapi import Request
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from matcha.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 2
MIN_WAIT_SECONDS = 0.5
MAX_WAIT_SECONDS = 2

SLOW_CALL_THRESHOLD_MS = 2000

RETRYABLE_ERRORS = (httpx.TransportError,)


class LocationNotFound(Exception):
    """A provider answered but could not locate the address."""


class GeolocationMetrics:
    """Tracks geolocation lookups for monitoring."""

    def __init__(self, max_samples: int = 200):
        self._samples: list[dict] = []
        self._max_samples = max_samples
        self._total_calls = 0
        self._total_errors = 0
        self._total_defaults = 0

    def record_call(
        self,
        provider: str,
        latency_ms: float,
        error: str | None = None,
    ) -> None:
        """Record a provider call."""
        self._total_calls += 1
        if error:
            self._total_errors += 1

        self._samples.append(
            {
                "provider": provider,
                "latency_ms": round(latency_ms, 2),
                "error": error,
                "timestamp": time.time(),
            }
        )
        if len(self._samples) > self._max_samples:
            self._samples = self._samples[-self._max_samples:]

    def record_default(self) -> None:
        self._total_defaults += 1

    def get_stats(self) -> dict:
        """Get aggregated stats."""
        latencies = sorted(s["latency_ms"] for s in self._samples)
        total = len(latencies)
        return {
            "total_calls": self._total_calls,
            "total_errors": self._total_errors,
            "total_defaults": self._total_defaults,
            "avg_latency_ms": round(sum(latencies) / total, 2) if total else 0,
            "p95_latency_ms": round(latencies[int(total * 0.95)], 2) if total else 0,
        }


_geolocation_metrics: GeolocationMetrics | None = None


def get_geolocation_metrics() -> GeolocationMetrics:
    """Get or create the global geolocation metrics instance."""
    global _geolocation_metrics
    if _geolocation_metrics is None:
        _geolocation_metrics = GeolocationMetrics()
    return _geolocation_metrics


def validate_coordinates(latitude: Any, longitude: Any) -> bool:
    """Check that a latitude/longitude pair is numeric and in range."""
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def public_ip(value: str | None) -> str | None:
    """Return the address if it is a routable public IP, else None."""
    if not value:
        return None
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if address.is_private or address.is_loopback or address.is_link_local or address.is_unspecified:
        return None
    return str(address)


def get_client_ip(request: Request) -> str | None:
    """Public IP of the caller, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return public_ip(forwarded.split(",")[0])
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return public_ip(real_ip)
    return public_ip(request.client.host if request.client else None)


class GeolocationClient:
    """Resolves an IP address to a city-level location.

    Queries the primary provider, then the fallback provider, and finally
    returns the configured default location flagged ``accuracy="default"``.
    Lookups never raise.
    """

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings or get_settings()
        self._transport = transport
        self._metrics = get_geolocation_metrics()

    def default_location(self) -> dict[str, Any]:
        return {
            "latitude": self._settings.default_latitude,
            "longitude": self._settings.default_longitude,
            "city": self._settings.default_city,
            "country": self._settings.default_country,
            "region": "Île-de-France",
            "accuracy": "default",
        }

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
        reraise=True,
    )
    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """GET a JSON document with retry on transport errors."""
        async with httpx.AsyncClient(
            timeout=self._settings.geolocation_timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()

    async def _from_primary(self, ip: str) -> dict[str, Any]:
        data = await self._get_json(f"{self._settings.geolocation_primary_url}/{ip}/json/")
        if data.get("error") or not validate_coordinates(data.get("latitude"), data.get("longitude")):
            raise LocationNotFound(data.get("reason") or "no coordinates")
        return {
            "latitude": data["latitude"],
            "longitude": data["longitude"],
            "city": data.get("city") or "Inconnue",
            "country": data.get("country_name") or "Inconnu",
            "region": data.get("region"),
            "accuracy": "city",
        }

    async def _from_fallback(self, ip: str) -> dict[str, Any]:
        data = await self._get_json(
            f"{self._settings.geolocation_fallback_url}/json/{ip}",
            params={"fields": "status,message,country,regionName,city,lat,lon"},
        )
        if data.get("status") != "success" or not validate_coordinates(data.get("lat"), data.get("lon")):
            raise LocationNotFound(data.get("message") or "lookup failed")
        return {
            "latitude": data["lat"],
            "longitude": data["lon"],
            "city": data.get("city") or "Inconnue",
            "country": data.get("country") or "Inconnu",
            "region": data.get("regionName"),
            "accuracy": "city",
        }

    async def _timed(self, provider: str, lookup: Any, ip: str) -> dict[str, Any] | None:
        start_time = time.perf_counter()
        error_msg = None
        try:
            return await lookup(ip)
        except (httpx.HTTPError, LocationNotFound, ValueError) as e:
            error_msg = f"{type(e).__name__}: {e}"
            logger.warning("Geolocation provider %s failed for %s: %s", provider, ip, error_msg)
            return None
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            self._metrics.record_call(provider=provider, latency_ms=latency_ms, error=error_msg)
            if not error_msg and latency_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning("SLOW geolocation call: provider=%s, latency=%.2fms", provider, latency_ms)

    async def locate(self, ip: str | None) -> dict[str, Any]:
        """Locate an IP address.

        Args:
            ip: Public IP address, or None when unknown.

        Returns:
            dict: latitude, longitude, city, country, region, accuracy.
        """
        if ip:
            for provider, lookup in (("primary", self._from_primary), ("fallback", self._from_fallback)):
                location = await self._timed(provider, lookup, ip)
                if location is not None:
                    logger.info("Located %s via %s provider: %s", ip, provider, location["city"])
                    return location

        self._metrics.record_default()
        logger.info("Using default location for ip=%s", ip)
        return self.default_location()


@lru_cache
def get_geolocation_client() -> GeolocationClient:
    """Get cached geolocation client singleton."""
    return GeolocationClient()
