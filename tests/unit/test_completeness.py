"""Unit tests for profile completeness evaluation."""

import pytest

from matcha.services.completeness import (
    FIELD_SCHEMA,
    MISSING_PROFILE_LABEL,
    evaluate_completeness,
    required_field_errors,
)


def complete_profile(**overrides):
    profile = {
        "gender": "femme",
        "sexual_orientation": "hetero",
        "biography": "J'aime les randonnées et le cinéma.",
        "interests": ["Cinéma"],
        "photos": [{"id": 1, "is_profile_picture": True}],
        "age": 28,
        "city": "Lyon",
    }
    profile.update(overrides)
    return profile


class TestEvaluateCompleteness:
    """Tests for evaluate_completeness."""

    def test_complete_profile(self) -> None:
        status = evaluate_completeness(complete_profile())

        assert status.is_complete is True
        assert status.completion_percentage == 100
        assert status.missing_fields == []

    def test_gender_and_orientation_only(self) -> None:
        """Two filled fields out of seven rounds to 29%."""
        status = evaluate_completeness(
            {
                "gender": "female",
                "sexual_orientation": "hetero",
                "biography": "",
                "interests": [],
                "photos": [],
            }
        )

        assert status.is_complete is False
        assert status.completion_percentage == 29
        assert status.missing_fields == ["Biographie", "Centres d'intérêt", "Photos"]

    @pytest.mark.parametrize("profile", [None, "not a profile", 42])
    def test_missing_profile_returns_sentinel(self, profile) -> None:
        status = evaluate_completeness(profile)

        assert status.is_complete is False
        assert status.completion_percentage == 0
        assert status.missing_fields == [MISSING_PROFILE_LABEL]

    def test_optional_fields_never_block(self) -> None:
        status = evaluate_completeness(complete_profile(age=None, city=None, latitude=None))

        assert status.is_complete is True
        assert status.completion_percentage == 71

    def test_location_from_coordinates(self) -> None:
        profile = complete_profile(city="", latitude=45.76, longitude=4.83)

        assert evaluate_completeness(profile).completion_percentage == 100

    def test_single_coordinate_is_not_a_location(self) -> None:
        profile = complete_profile(city=None, latitude=45.76, longitude=None)

        assert evaluate_completeness(profile).completion_percentage == 86

    def test_short_biography_is_missing(self) -> None:
        status = evaluate_completeness(complete_profile(biography="   court  "))

        assert status.is_complete is False
        assert status.missing_fields == ["Biographie"]

    def test_whitespace_biography_is_missing(self) -> None:
        status = evaluate_completeness(complete_profile(biography="            "))

        assert "Biographie" in status.missing_fields

    def test_malformed_values_fail_without_raising(self) -> None:
        status = evaluate_completeness(
            complete_profile(interests="Cinéma", biography=12345678901, photos=None, age="28")
        )

        assert status.is_complete is False
        assert status.missing_fields == ["Biographie", "Centres d'intérêt", "Photos"]
        assert status.completion_percentage == 43

    def test_missing_fields_follow_schema_order(self) -> None:
        status = evaluate_completeness({})

        required = [rule.label for rule in FIELD_SCHEMA if rule.required]
        assert status.missing_fields == required
        assert status.completion_percentage == 0

    def test_percentage_never_decreases_as_fields_are_fixed(self) -> None:
        profile: dict = {}
        fixes = [
            ("gender", "homme"),
            ("sexual_orientation", "bi"),
            ("biography", "Une biographie assez longue."),
            ("interests", ["Sport"]),
            ("photos", [{"id": 1}]),
            ("age", 30),
            ("city", "Paris"),
        ]
        previous = evaluate_completeness(profile).completion_percentage

        for key, value in fixes:
            profile[key] = value
            current = evaluate_completeness(profile).completion_percentage
            assert current >= previous
            previous = current

        assert previous == 100

    def test_complete_iff_required_fields_pass(self) -> None:
        for rule in FIELD_SCHEMA:
            profile = complete_profile()
            profile[rule.key if rule.key != "location" else "city"] = None
            status = evaluate_completeness(profile)
            assert status.is_complete is (not rule.required)


class TestRequiredFieldErrors:
    """Tests for required_field_errors."""

    def test_only_reports_requested_keys(self) -> None:
        errors = required_field_errors({"gender": "homme"}, {"gender", "biography", "photos"})

        assert errors == ["Biographie", "Photos"]

    def test_optional_keys_are_ignored(self) -> None:
        assert required_field_errors({}, {"age", "location"}) == []
