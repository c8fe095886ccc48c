"""Step handlers for the profile completion wizard."""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from matcha.core.geolocation import validate_coordinates
from matcha.schemas.profile import ProfileUpdate, UserInfoUpdate
from matcha.services.completeness import FIELD_SCHEMA, required_field_errors
from matcha.services.photo_service import PhotoService
from matcha.services.profile_service import ProfileService
from matcha.services.wizard import StepResult, WizardDraft, WizardStep

logger = logging.getLogger(__name__)

DETAIL_FIELDS = {"gender", "sexual_orientation", "biography", "interests", "age"}
LOCATION_FIELDS = {"city", "latitude", "longitude"}
PROFILE_FIELDS = DETAIL_FIELDS | LOCATION_FIELDS

_LABELS = {rule.key: rule.label for rule in FIELD_SCHEMA}


def _pick(fields: dict[str, Any], keys: set[str]) -> dict[str, Any]:
    return {key: fields[key] for key in keys if fields.get(key) not in (None, "")}


def _validation_failure(exc: PydanticValidationError) -> StepResult:
    field_errors: dict[str, str] = {}
    for error in exc.errors():
        key = str(error["loc"][0]) if error["loc"] else "__all__"
        message = error["msg"].removeprefix("Value error, ")
        field_errors.setdefault(key, message)
    return StepResult.failure(", ".join(field_errors.values()), field_errors)


def _missing_failure(labels: list[str]) -> StepResult:
    keys = {rule.label: rule.key for rule in FIELD_SCHEMA}
    return StepResult.failure(
        "Champs requis manquants : " + ", ".join(labels),
        {keys[label]: f"{label} requis" for label in labels},
    )


class PersonalInfoStep:
    """First and last name plus email, saved on the account."""

    def __init__(self, profile_service: ProfileService) -> None:
        self.profile_service = profile_service

    async def validate_and_save(self, draft: WizardDraft) -> StepResult:
        try:
            data = UserInfoUpdate(
                first_name=draft.fields.get("first_name") or "",
                last_name=draft.fields.get("last_name") or "",
                email=draft.fields.get("email") or "",
            )
        except PydanticValidationError as e:
            return _validation_failure(e)

        user_id = draft.fields["user_id"]
        await self.profile_service.update_user_info(user_id, data)
        draft.update(data.model_dump())
        return StepResult.success("Informations personnelles enregistrées")


class ProfileDetailsStep:
    """Gender, orientation, biography, interests and age."""

    def __init__(self, profile_service: ProfileService) -> None:
        self.profile_service = profile_service

    async def validate_and_save(self, draft: WizardDraft) -> StepResult:
        missing = required_field_errors(draft.fields, DETAIL_FIELDS)
        if missing:
            return _missing_failure(missing)

        try:
            data = ProfileUpdate(**_pick(draft.fields, DETAIL_FIELDS))
        except PydanticValidationError as e:
            return _validation_failure(e)

        profile = await self.profile_service.update_profile(draft.fields["user_id"], data)
        draft.update({key: profile.get(key) for key in DETAIL_FIELDS})
        return StepResult.success("Profil enregistré")


class PhotosStep:
    """Stores pending uploads; at least one stored photo is required."""

    def __init__(self, photo_service: PhotoService) -> None:
        self.photo_service = photo_service

    async def validate_and_save(self, draft: WizardDraft) -> StepResult:
        if draft.pending_photos:
            try:
                photos = await self.photo_service.upload_photos(
                    draft.fields["user_id"], list(draft.pending_photos)
                )
            finally:
                # Stored uploads are released; rejected ones stay pending.
                draft.pending_photos = [p for p in draft.pending_photos if not p.released]
            draft.replace_photos(photos)

        if not draft.persisted_photos:
            return _missing_failure([_LABELS["photos"]])
        return StepResult.success(f"{len(draft.persisted_photos)} photo(s) enregistrée(s)")


class LocationStep:
    """City or coordinates. The step is optional and may be skipped."""

    def __init__(self, profile_service: ProfileService) -> None:
        self.profile_service = profile_service

    async def validate_and_save(self, draft: WizardDraft) -> StepResult:
        values = _pick(draft.fields, LOCATION_FIELDS)
        has_coordinates = "latitude" in values and "longitude" in values
        if has_coordinates and not validate_coordinates(values["latitude"], values["longitude"]):
            return StepResult.failure(
                "Coordonnées invalides",
                {"latitude": "Coordonnées invalides", "longitude": "Coordonnées invalides"},
            )
        if not has_coordinates and not str(values.get("city", "")).strip():
            return StepResult.failure(
                "Indiquez votre ville ou autorisez la géolocalisation",
                {"city": "Ville requise"},
            )

        try:
            data = ProfileUpdate(**values)
        except PydanticValidationError as e:
            return _validation_failure(e)

        await self.profile_service.update_profile(draft.fields["user_id"], data)
        return StepResult.success("Localisation enregistrée")


class ProfileFinalizer:
    """Writes the whole draft once the profile is complete."""

    def __init__(self, profile_service: ProfileService) -> None:
        self.profile_service = profile_service

    async def finalize(self, draft: WizardDraft) -> StepResult:
        try:
            data = ProfileUpdate(**_pick(draft.fields, PROFILE_FIELDS))
        except PydanticValidationError as e:
            return _validation_failure(e)

        await self.profile_service.update_profile(draft.fields["user_id"], data)
        return StepResult.success("Profil complété avec succès")


def build_wizard_steps(
    profile_service: ProfileService,
    photo_service: PhotoService,
    include_personal_info: bool = False,
) -> list[WizardStep]:
    """Wizard steps in display order.

    Three steps by default; the personal-info step is prepended when
    ``include_personal_info`` is set.
    """
    steps = [
        WizardStep(
            key="profile",
            title="Profil de rencontre",
            description="Parlez-nous de vous et de vos préférences",
            handler=ProfileDetailsStep(profile_service),
        ),
        WizardStep(
            key="photos",
            title="Photos de profil",
            description="Ajoutez des photos pour vous présenter",
            handler=PhotosStep(photo_service),
        ),
        WizardStep(
            key="location",
            title="Localisation",
            description="Permettez-nous de vous localiser pour de meilleures suggestions",
            handler=LocationStep(profile_service),
            optional=True,
        ),
    ]
    if include_personal_info:
        steps.insert(
            0,
            WizardStep(
                key="personal_info",
                title="Informations personnelles",
                description="Vérifiez et complétez vos informations de base",
                handler=PersonalInfoStep(profile_service),
            ),
        )
    return steps
