"""Profile completeness evaluation.

A profile is complete when every required field of ``FIELD_SCHEMA`` passes
its predicate. Optional fields only raise the completion percentage. The
same schema backs profile updates, wizard steps and wizard finish, so there
is exactly one definition of "complete".
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from matcha.schemas.profile import BIOGRAPHY_MIN_LENGTH, CompletionStatus

MISSING_PROFILE_LABEL = "Profil complet"


@dataclass(frozen=True)
class FieldRule:
    """One entry of the completeness schema."""

    key: str
    label: str
    required: bool
    check: Callable[[Mapping[str, Any]], bool]


def _non_empty(key: str) -> Callable[[Mapping[str, Any]], bool]:
    def check(profile: Mapping[str, Any]) -> bool:
        value = profile.get(key)
        if isinstance(value, str):
            return bool(value.strip())
        return bool(value)

    return check


def _non_empty_list(key: str) -> Callable[[Mapping[str, Any]], bool]:
    def check(profile: Mapping[str, Any]) -> bool:
        value = profile.get(key)
        return isinstance(value, (list, tuple)) and len(value) > 0

    return check


def has_valid_biography(profile: Mapping[str, Any]) -> bool:
    biography = profile.get("biography")
    return isinstance(biography, str) and len(biography.strip()) >= BIOGRAPHY_MIN_LENGTH


def has_age(profile: Mapping[str, Any]) -> bool:
    age = profile.get("age")
    return isinstance(age, int) and not isinstance(age, bool)


def has_location(profile: Mapping[str, Any]) -> bool:
    """City set, or both coordinates set."""
    city = profile.get("city")
    if isinstance(city, str) and city.strip():
        return True
    return profile.get("latitude") is not None and profile.get("longitude") is not None


FIELD_SCHEMA: tuple[FieldRule, ...] = (
    FieldRule("gender", "Genre", True, _non_empty("gender")),
    FieldRule("sexual_orientation", "Orientation sexuelle", True, _non_empty("sexual_orientation")),
    FieldRule("biography", "Biographie", True, has_valid_biography),
    FieldRule("interests", "Centres d'intérêt", True, _non_empty_list("interests")),
    FieldRule("photos", "Photos", True, _non_empty_list("photos")),
    FieldRule("age", "Âge", False, has_age),
    FieldRule("location", "Localisation", False, has_location),
)


def _percentage(completed: int, total: int) -> int:
    # Half-up rounding; round() would use banker's rounding.
    return int(completed * 100 / total + 0.5)


def evaluate_completeness(profile: Mapping[str, Any] | None) -> CompletionStatus:
    """Evaluate a profile snapshot against the completeness schema.

    Args:
        profile: Profile-shaped mapping, or None when no profile exists yet.

    Returns:
        CompletionStatus: Completion flag, percentage and the labels of the
        missing required fields in schema order.
    """
    if profile is None or not isinstance(profile, Mapping):
        return CompletionStatus(
            is_complete=False,
            completion_percentage=0,
            missing_fields=[MISSING_PROFILE_LABEL],
        )

    missing_fields: list[str] = []
    completed = 0

    for rule in FIELD_SCHEMA:
        try:
            passed = rule.check(profile)
        except (TypeError, ValueError, AttributeError):
            passed = False

        if passed:
            completed += 1
        elif rule.required:
            missing_fields.append(rule.label)

    return CompletionStatus(
        is_complete=not missing_fields,
        completion_percentage=_percentage(completed, len(FIELD_SCHEMA)),
        missing_fields=missing_fields,
    )


def required_field_errors(profile: Mapping[str, Any], keys: set[str]) -> list[str]:
    """Labels of the failing required fields restricted to ``keys``.

    Used by wizard steps to validate only the fields they own.
    """
    return [
        rule.label
        for rule in FIELD_SCHEMA
        if rule.required and rule.key in keys and not rule.check(profile)
    ]
