"""Multi-step profile completion wizard.

The wizard walks a user through an ordered list of steps. Each step owns a
handler that validates and saves its part of the draft; the controller only
moves between steps and decides when the profile may be finished. Handlers
are passed in explicitly, so the controller has no knowledge of the
persistence layer.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from matcha.api.middleware.error_handler import APIError, ConflictError, NotFoundError
from matcha.schemas.profile import CompletionStatus
from matcha.services.completeness import evaluate_completeness
from matcha.services.photo_album import (
    PendingPhoto,
    PersistedPhoto,
    Photo,
    normalize_profile_picture,
    release_pending,
)

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"
GENERIC_FAILURE_MESSAGE = "Erreur serveur, veuillez réessayer plus tard"


@dataclass
class StepResult:
    """Outcome of a step handler."""

    ok: bool
    message: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str | None = None) -> "StepResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str, field_errors: dict[str, str] | None = None) -> "StepResult":
        return cls(ok=False, message=message, field_errors=field_errors or {})


class WizardStatus(str, Enum):
    """Lifecycle of a wizard."""

    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    ABANDONED = "abandoned"


@dataclass
class WizardDraft:
    """Profile data accumulated across the wizard steps.

    ``fields`` holds profile and account fields. Uploaded photos stay
    pending until the photos step stores them.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    persisted_photos: list[PersistedPhoto] = field(default_factory=list)
    pending_photos: list[PendingPhoto] = field(default_factory=list)

    def update(self, changes: Mapping[str, Any]) -> None:
        """Merge changes field by field; keys not given keep their value."""
        for key, value in changes.items():
            self.fields[key] = value

    def add_pending(self, photo: PendingPhoto) -> None:
        self.pending_photos.append(photo)

    def discard_pending(self, index: int) -> PendingPhoto:
        """Drop a pending upload and release its buffer.

        Raises:
            IndexError: If there is no pending upload at ``index``.
        """
        photo = self.pending_photos.pop(index)
        photo.release()
        return photo

    @property
    def photos(self) -> list[Photo]:
        """Stored photos followed by pending uploads."""
        return [*self.persisted_photos, *self.pending_photos]

    def replace_photos(self, photos: list[PersistedPhoto]) -> None:
        self.persisted_photos = normalize_profile_picture(photos)

    def snapshot(self) -> dict[str, Any]:
        """Profile view of the draft. Only stored photos count."""
        return {
            **self.fields,
            "photos": [photo.as_dict() for photo in self.persisted_photos],
        }

    def release(self) -> None:
        """Release every pending buffer."""
        self.persisted_photos = release_pending(self.photos)
        self.pending_photos = []


class StepHandler(Protocol):
    """Validates and saves one step of the draft."""

    async def validate_and_save(self, draft: WizardDraft) -> StepResult: ...


class Finalizer(Protocol):
    """Persists the completed profile when the wizard finishes."""

    async def finalize(self, draft: WizardDraft) -> StepResult: ...


@dataclass(frozen=True)
class WizardStep:
    """A wizard step and its handler."""

    key: str
    title: str
    description: str
    handler: StepHandler
    optional: bool = False


@dataclass
class TransitionOutcome:
    """Result of a wizard transition reported back to the caller."""

    ok: bool
    step_index: int
    step_key: str
    status: WizardStatus
    message: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    missing_fields: list[str] = field(default_factory=list)
    navigate_to: str | None = None


def _errors_from_api_error(exc: APIError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for detail in exc.details or []:
        loc = detail.get("loc") or []
        key = str(loc[-1]) if loc else "__all__"
        errors.setdefault(key, detail.get("msg", exc.message))
    return errors


class ProfileWizard:
    """State machine driving the profile completion wizard.

    Transitions are serialized: a step save never starts while another
    transition of the same wizard is running.
    """

    def __init__(
        self,
        user_id: int,
        steps: Sequence[WizardStep],
        finalizer: Finalizer,
        draft: WizardDraft | None = None,
        navigate_to: str = DASHBOARD_PATH,
    ) -> None:
        if not steps:
            raise ValueError("A wizard needs at least one step")
        self.user_id = user_id
        self.steps = list(steps)
        self.finalizer = finalizer
        self.draft = draft or WizardDraft()
        self.navigate_to = navigate_to
        self.current_index = 0
        self.status = WizardStatus.IN_PROGRESS
        self._lock = asyncio.Lock()

    @property
    def current_step(self) -> WizardStep:
        return self.steps[self.current_index]

    @property
    def is_last_step(self) -> bool:
        return self.current_index == len(self.steps) - 1

    @property
    def is_terminal(self) -> bool:
        return self.status is not WizardStatus.IN_PROGRESS

    def _ensure_open(self) -> None:
        if self.status is WizardStatus.FINISHED:
            raise ConflictError("Le profil a déjà été finalisé")
        if self.status is WizardStatus.ABANDONED:
            raise ConflictError("Cette complétion de profil a été abandonnée")

    def _outcome(self, result: StepResult | None = None, **kwargs: Any) -> TransitionOutcome:
        ok = kwargs.pop("ok", result.ok if result else True)
        return TransitionOutcome(
            ok=ok,
            step_index=self.current_index,
            step_key=self.current_step.key,
            status=self.status,
            message=result.message if result else kwargs.pop("message", None),
            field_errors=dict(result.field_errors) if result else {},
            **kwargs,
        )

    async def _run(self, label: str, call: Any) -> StepResult:
        """Run a handler, turning raised errors into a failed result."""
        try:
            return await call(self.draft)
        except APIError as e:
            logger.info("Wizard %s for user %s rejected: %s", label, self.user_id, e.message)
            return StepResult.failure(e.message, _errors_from_api_error(e))
        except Exception:
            logger.exception("Wizard %s for user %s failed", label, self.user_id)
            return StepResult.failure(GENERIC_FAILURE_MESSAGE)

    def completion(self) -> CompletionStatus:
        return evaluate_completeness(self.draft.snapshot())

    async def update_draft(self, changes: Mapping[str, Any]) -> None:
        async with self._lock:
            self._ensure_open()
            self.draft.update(changes)

    async def add_pending_photo(self, photo: PendingPhoto) -> None:
        async with self._lock:
            if self.is_terminal:
                photo.release()
                self._ensure_open()
            self.draft.add_pending(photo)

    async def discard_pending_photo(self, index: int) -> None:
        """Drop a pending upload.

        Raises:
            NotFoundError: If there is no pending upload at ``index``.
        """
        async with self._lock:
            self._ensure_open()
            if not 0 <= index < len(self.draft.pending_photos):
                raise NotFoundError("Photo non trouvée")
            self.draft.discard_pending(index)

    async def next(self) -> TransitionOutcome:
        """Save the current step and advance; finishes on the last step."""
        async with self._lock:
            self._ensure_open()
            step = self.current_step
            result = await self._run(f"step '{step.key}'", step.handler.validate_and_save)
            if not result.ok:
                return self._outcome(result)
            if self.is_last_step:
                return await self._finish_locked()
            self.current_index += 1
            return self._outcome(result)

    async def previous(self) -> TransitionOutcome:
        """Go back one step without validating."""
        async with self._lock:
            self._ensure_open()
            if self.current_index > 0:
                self.current_index -= 1
            return self._outcome()

    async def skip(self) -> TransitionOutcome:
        """Advance past an optional step without saving it."""
        async with self._lock:
            self._ensure_open()
            step = self.current_step
            if not step.optional:
                return self._outcome(ok=False, message=f"L'étape « {step.title} » est obligatoire")
            if self.is_last_step:
                return await self._finish_locked()
            self.current_index += 1
            return self._outcome()

    async def finish(self) -> TransitionOutcome:
        """Finalize the profile if every required field is filled."""
        async with self._lock:
            self._ensure_open()
            return await self._finish_locked()

    async def _finish_locked(self) -> TransitionOutcome:
        status = self.completion()
        if not status.is_complete:
            return self._outcome(
                ok=False,
                message="Profil incomplet : " + ", ".join(status.missing_fields),
                missing_fields=list(status.missing_fields),
            )

        result = await self._run("finalize", self.finalizer.finalize)
        if not result.ok:
            return self._outcome(result)

        self.status = WizardStatus.FINISHED
        self.draft.release()
        logger.info("Profile wizard finished for user %s", self.user_id)
        return self._outcome(result, navigate_to=self.navigate_to)

    async def abandon(self) -> None:
        """Abandon the wizard and release pending uploads."""
        async with self._lock:
            if self.status is WizardStatus.IN_PROGRESS:
                self.status = WizardStatus.ABANDONED
            self.draft.release()
