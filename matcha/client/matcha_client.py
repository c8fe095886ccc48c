"""Async REST client for the Matcha API.

Every failure is classified into one of the errors of
``matcha.client.errors``; transport exceptions never escape.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from matcha.client.errors import (
    MatchaClientError,
    NetworkError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from matcha.schemas.browse import BrowseFilters, BrowseResponse, SortKey, SortOrder
from matcha.schemas.interaction import LikeResponse, LikesHistoryResponse, VisitsHistoryResponse
from matcha.schemas.photo import PhotoListResponse
from matcha.schemas.profile import (
    CompletionStatus,
    LocationResponse,
    LocationUpdate,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    UserInfoUpdate,
)
from matcha.schemas.wizard import DraftUpdate, WizardStateResponse, WizardTransitionResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def _error_message(payload: Any, fallback: str) -> tuple[str, list[dict[str, Any]]]:
    """Extract the server message and details from an error body."""
    if not isinstance(payload, dict):
        return fallback, []
    if isinstance(payload.get("message"), str):
        details = payload.get("details") or []
        return payload["message"], details if isinstance(details, list) else []
    detail = payload.get("detail")
    if isinstance(detail, str):
        return detail, []
    if isinstance(detail, list):
        messages = [d.get("msg", "") for d in detail if isinstance(d, dict)]
        return ", ".join(m for m in messages if m) or fallback, detail
    return fallback, []


def classify_response(response: httpx.Response) -> MatchaClientError:
    """Map an unsuccessful response to a client error."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    status_code = response.status_code
    message, details = _error_message(payload, f"Erreur HTTP {status_code}")

    if status_code >= 500:
        return NetworkError(message, status_code, details)
    if status_code == 404:
        return NotFoundError(message, status_code, details)
    if status_code in (401, 403):
        return PermissionDenied(message, status_code, details)
    if status_code in (400, 409, 413, 422):
        return ValidationError(message, status_code, details)
    return MatchaClientError(message, status_code, details)


class MatchaClient:
    """Typed async client for the ``/api/v1`` endpoints.

    Usage::

        async with MatchaClient("http://localhost:5000", token) as client:
            status = await client.get_completion()
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/api/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "MatchaClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError("Le serveur ne répond pas, veuillez réessayer") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Erreur réseau : {e}") from e

        if response.is_error:
            error = classify_response(response)
            logger.debug("%s %s failed: %s %s", method, path, response.status_code, error.message)
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError("Réponse illisible du serveur", response.status_code) from e

    async def _model(self, model: type[BaseModel], method: str, path: str, **kwargs: Any) -> Any:
        payload = await self._request(method, path, **kwargs)
        try:
            return model.model_validate(payload)
        except ValueError as e:
            raise NetworkError(f"Réponse inattendue du serveur : {e}") from e

    # Profile

    async def get_own_profile(self) -> ProfileResponse:
        return await self._model(ProfileResponse, "GET", "/profile")

    async def get_completion(self) -> CompletionStatus:
        return await self._model(CompletionStatus, "GET", "/profile/completion")

    async def update_profile(self, data: ProfileUpdate) -> ProfileResponse:
        body = data.model_dump(mode="json", exclude_unset=True)
        return await self._model(ProfileResponse, "PUT", "/profile", json=body)

    async def update_user_info(self, data: UserInfoUpdate) -> None:
        await self._request("PUT", "/profile/user", json=data.model_dump(mode="json"))

    async def update_location(self, data: LocationUpdate) -> ProfileResponse:
        return await self._model(ProfileResponse, "PUT", "/profile/location", json=data.model_dump(mode="json"))

    async def get_location_by_ip(self, save: bool = False) -> LocationResponse:
        params = {"save": "true"} if save else None
        return await self._model(LocationResponse, "GET", "/profile/location/ip", params=params)

    async def resolve_location(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> LocationResponse | None:
        """Store the user's location, degrading gracefully.

        Uses the given coordinates when available, then an IP lookup, and
        gives up with a warning (returning None) if both fail.
        """
        if latitude is not None and longitude is not None:
            try:
                profile = await self.update_location(LocationUpdate(latitude=latitude, longitude=longitude))
                return LocationResponse(
                    latitude=latitude,
                    longitude=longitude,
                    city=profile.city or "",
                    country="",
                    accuracy="precise",
                )
            except MatchaClientError as e:
                logger.warning("Storing coordinates failed, trying IP lookup: %s", e.message)

        try:
            return await self.get_location_by_ip(save=True)
        except MatchaClientError as e:
            logger.warning("IP geolocation failed, location left unset: %s", e.message)
            return None

    async def get_profile(self, user_id: int) -> PublicProfileResponse:
        return await self._model(PublicProfileResponse, "GET", f"/profile/{user_id}")

    async def likes_history(self, limit: int = 50) -> LikesHistoryResponse:
        return await self._model(LikesHistoryResponse, "GET", "/profile/history/likes", params={"limit": limit})

    async def visits_history(self, limit: int = 50) -> VisitsHistoryResponse:
        return await self._model(VisitsHistoryResponse, "GET", "/profile/history/visits", params={"limit": limit})

    # Photos

    async def list_photos(self) -> PhotoListResponse:
        return await self._model(PhotoListResponse, "GET", "/photos")

    async def upload_photos(self, files: list[tuple[str, bytes, str]]) -> PhotoListResponse:
        """Upload photos given as ``(filename, data, content_type)`` tuples."""
        multipart = [("photos", (name, data, content_type)) for name, data, content_type in files]
        return await self._model(PhotoListResponse, "POST", "/photos", files=multipart)

    async def delete_photo(self, photo_id: int) -> PhotoListResponse:
        return await self._model(PhotoListResponse, "DELETE", f"/photos/{photo_id}")

    async def set_profile_picture(self, photo_id: int) -> PhotoListResponse:
        return await self._model(PhotoListResponse, "PUT", f"/photos/{photo_id}/profile-picture")

    # Interactions

    async def like(self, user_id: int) -> LikeResponse:
        return await self._model(LikeResponse, "POST", f"/profile/like/{user_id}")

    async def unlike(self, user_id: int) -> None:
        await self._request("DELETE", f"/profile/like/{user_id}")

    async def reject(self, user_id: int) -> None:
        await self._request("POST", f"/profile/reject/{user_id}")

    async def report(self, user_id: int, reason: str | None = None) -> None:
        await self._request("POST", f"/profile/report/{user_id}", json={"reason": reason})

    async def block(self, user_id: int) -> None:
        await self._request("POST", f"/profile/block/{user_id}")

    # Browsing

    async def browse(
        self,
        filters: BrowseFilters | None = None,
        sort: SortKey = SortKey.RECOMMENDED,
        order: SortOrder | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> BrowseResponse:
        params: dict[str, Any] = {"sort": sort.value, "offset": offset}
        if filters is not None:
            for key, value in filters.model_dump(exclude_defaults=True).items():
                params[key] = ",".join(value) if key == "interests" else value
        if order is not None:
            params["order"] = order.value
        if limit is not None:
            params["limit"] = limit
        return await self._model(BrowseResponse, "GET", "/browse", params=params)

    # Wizard

    async def start_wizard(self) -> WizardStateResponse:
        return await self._model(WizardStateResponse, "POST", "/wizard")

    async def get_wizard(self) -> WizardStateResponse:
        return await self._model(WizardStateResponse, "GET", "/wizard")

    async def update_wizard_draft(self, data: DraftUpdate) -> WizardStateResponse:
        body = data.model_dump(mode="json", exclude_unset=True)
        return await self._model(WizardStateResponse, "PATCH", "/wizard/draft", json=body)

    async def add_wizard_photos(self, files: list[tuple[str, bytes, str]]) -> WizardStateResponse:
        multipart = [("photos", (name, data, content_type)) for name, data, content_type in files]
        return await self._model(WizardStateResponse, "POST", "/wizard/photos", files=multipart)

    async def discard_wizard_photo(self, index: int) -> WizardStateResponse:
        return await self._model(WizardStateResponse, "DELETE", f"/wizard/photos/{index}")

    async def wizard_next(self) -> WizardTransitionResponse:
        return await self._model(WizardTransitionResponse, "POST", "/wizard/next")

    async def wizard_previous(self) -> WizardTransitionResponse:
        return await self._model(WizardTransitionResponse, "POST", "/wizard/previous")

    async def wizard_skip(self) -> WizardTransitionResponse:
        return await self._model(WizardTransitionResponse, "POST", "/wizard/skip")

    async def wizard_finish(self) -> WizardTransitionResponse:
        return await self._model(WizardTransitionResponse, "POST", "/wizard/finish")

    async def abandon_wizard(self) -> None:
        await self._request("DELETE", "/wizard")
