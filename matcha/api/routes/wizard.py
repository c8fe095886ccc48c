"""Profile completion wizard routes."""

import logging

from fastapi import APIRouter, File, UploadFile, status

from matcha.api.deps import CurrentUser, Wizards
from matcha.api.middleware.error_handler import ConflictError, NotFoundError
from matcha.api.routes.photos import read_uploads
from matcha.core.config import get_settings
from matcha.schemas.common import MessageResponse
from matcha.schemas.profile import PhotoSummary
from matcha.schemas.wizard import (
    DraftUpdate,
    PendingPhotoInfo,
    WizardStateResponse,
    WizardStepInfo,
    WizardTransitionResponse,
)
from matcha.services.photo_service import PhotoService
from matcha.services.profile_service import ProfileService
from matcha.services.wizard import ProfileWizard, TransitionOutcome, WizardDraft
from matcha.services.wizard_steps import PROFILE_FIELDS, ProfileFinalizer, build_wizard_steps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wizard", tags=["wizard"])

ACCOUNT_FIELDS = ("first_name", "last_name", "email")


def wizard_state(wizard: ProfileWizard) -> WizardStateResponse:
    steps = [
        WizardStepInfo(
            index=index,
            key=step.key,
            title=step.title,
            description=step.description,
            optional=step.optional,
        )
        for index, step in enumerate(wizard.steps)
    ]
    draft = wizard.draft
    return WizardStateResponse(
        status=wizard.status.value,
        step_index=wizard.current_index,
        total_steps=len(steps),
        current_step=steps[wizard.current_index],
        steps=steps,
        draft={k: v for k, v in draft.fields.items() if k != "user_id"},
        photos=[PhotoSummary(**photo.as_dict()) for photo in draft.persisted_photos],
        pending_photos=[
            PendingPhotoInfo(
                index=index,
                filename=photo.filename,
                content_type=photo.content_type,
                size=photo.size,
            )
            for index, photo in enumerate(draft.pending_photos)
        ],
        completion=wizard.completion(),
    )


def transition_response(wizard: ProfileWizard, outcome: TransitionOutcome) -> WizardTransitionResponse:
    return WizardTransitionResponse(
        ok=outcome.ok,
        message=outcome.message,
        field_errors=outcome.field_errors,
        missing_fields=outcome.missing_fields,
        navigate_to=outcome.navigate_to,
        state=wizard_state(wizard),
    )


def require_wizard(wizards: Wizards, user_id: int) -> ProfileWizard:
    wizard = wizards.get(user_id)
    if wizard is None:
        raise NotFoundError("Aucune complétion de profil en cours")
    return wizard


@router.post(
    "",
    response_model=WizardStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start the profile wizard",
    description="Starts a new wizard, pre-filled with the stored profile. Replaces any wizard in progress.",
)
async def start_wizard(user: CurrentUser, wizards: Wizards) -> WizardStateResponse:
    """Start a profile wizard for the caller.

    A user without a profile starts from an empty draft.
    """
    settings = get_settings()
    profiles = ProfileService()
    photos = PhotoService()

    fields: dict = {"user_id": user.user_id}
    profile = await profiles.get_complete_profile(user.user_id)
    if profile is None:
        account = await profiles.get_user(user.user_id) or {}
        fields.update({key: account.get(key) for key in ACCOUNT_FIELDS})
    else:
        fields.update({key: profile.get(key) for key in ACCOUNT_FIELDS})
        fields.update({key: profile.get(key) for key in PROFILE_FIELDS})

    draft = WizardDraft(fields=fields)
    draft.replace_photos(await photos.list_photos(user.user_id))

    wizard = ProfileWizard(
        user_id=user.user_id,
        steps=build_wizard_steps(profiles, photos, settings.wizard_include_personal_info),
        finalizer=ProfileFinalizer(profiles),
        draft=draft,
    )
    wizards.put(wizard)
    logger.info("Profile wizard started for user %s (%d steps)", user.user_id, len(wizard.steps))
    return wizard_state(wizard)


@router.get(
    "",
    response_model=WizardStateResponse,
    summary="Get the wizard state",
)
async def get_wizard(user: CurrentUser, wizards: Wizards) -> WizardStateResponse:
    return wizard_state(require_wizard(wizards, user.user_id))


@router.patch(
    "/draft",
    response_model=WizardStateResponse,
    summary="Update the wizard draft",
    description="Merges the given fields into the draft. Nothing is saved until the step is validated.",
)
async def update_draft(data: DraftUpdate, user: CurrentUser, wizards: Wizards) -> WizardStateResponse:
    wizard = require_wizard(wizards, user.user_id)
    await wizard.update_draft(data.model_dump(exclude_unset=True))
    return wizard_state(wizard)


@router.post(
    "/photos",
    response_model=WizardStateResponse,
    summary="Add photos to the draft",
    description="Holds uploads in the draft; they are stored when the photos step is validated.",
)
async def add_draft_photos(
    user: CurrentUser,
    wizards: Wizards,
    photos: list[UploadFile] = File(..., description="Image files"),
) -> WizardStateResponse:
    """Add pending uploads to the caller's wizard.

    Raises:
        ConflictError: 409 if the photo limit would be exceeded.
    """
    wizard = require_wizard(wizards, user.user_id)
    max_photos = get_settings().max_photos_per_user
    held = len(wizard.draft.photos)
    if held + len(photos) > max_photos:
        raise ConflictError(f"Maximum {max_photos} photos ({held} déjà ajoutée(s))")

    for pending in await read_uploads(photos):
        await wizard.add_pending_photo(pending)
    return wizard_state(wizard)


@router.delete(
    "/photos/{index}",
    response_model=WizardStateResponse,
    summary="Remove a pending photo",
)
async def discard_draft_photo(index: int, user: CurrentUser, wizards: Wizards) -> WizardStateResponse:
    wizard = require_wizard(wizards, user.user_id)
    await wizard.discard_pending_photo(index)
    return wizard_state(wizard)


@router.post(
    "/next",
    response_model=WizardTransitionResponse,
    summary="Validate the current step and continue",
    description="On the last step this finishes the wizard.",
)
async def next_step(user: CurrentUser, wizards: Wizards) -> WizardTransitionResponse:
    wizard = require_wizard(wizards, user.user_id)
    return transition_response(wizard, await wizard.next())


@router.post(
    "/previous",
    response_model=WizardTransitionResponse,
    summary="Go back one step",
)
async def previous_step(user: CurrentUser, wizards: Wizards) -> WizardTransitionResponse:
    wizard = require_wizard(wizards, user.user_id)
    return transition_response(wizard, await wizard.previous())


@router.post(
    "/skip",
    response_model=WizardTransitionResponse,
    summary="Skip an optional step",
)
async def skip_step(user: CurrentUser, wizards: Wizards) -> WizardTransitionResponse:
    wizard = require_wizard(wizards, user.user_id)
    return transition_response(wizard, await wizard.skip())


@router.post(
    "/finish",
    response_model=WizardTransitionResponse,
    summary="Finish the wizard",
    description="Succeeds only when every required field is filled.",
)
async def finish_wizard(user: CurrentUser, wizards: Wizards) -> WizardTransitionResponse:
    wizard = require_wizard(wizards, user.user_id)
    return transition_response(wizard, await wizard.finish())


@router.delete(
    "",
    response_model=MessageResponse,
    summary="Abandon the wizard",
)
async def abandon_wizard(user: CurrentUser, wizards: Wizards) -> MessageResponse:
    wizard = require_wizard(wizards, user.user_id)
    await wizard.abandon()
    wizards.remove(user.user_id)
    return MessageResponse(message="Complétion du profil abandonnée")
