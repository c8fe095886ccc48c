"""Candidate filtering, scoring and sorting for the browsing pages.

Every function here is pure and total: malformed-but-present candidate data
(missing interests, null photos, non-numeric ratings) contributes nothing to
a score instead of raising.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from matcha.schemas.browse import BrowseFilters, SortKey, SortOrder
from matcha.schemas.profile import Gender, SexualOrientation

FAME_WEIGHT = 0.3
COMMON_INTEREST_WEIGHT = 10
SAME_CITY_BONUS = 30
RICH_PROFILE_BONUS = 20
RICH_PROFILE_MIN_PHOTOS = 3

EARTH_RADIUS_KM = 6371.0

DEFAULT_ORDER: dict[SortKey, SortOrder] = {
    SortKey.RECOMMENDED: SortOrder.DESC,
    SortKey.AGE: SortOrder.ASC,
    SortKey.FAME_RATING: SortOrder.DESC,
    SortKey.NAME: SortOrder.ASC,
    SortKey.DISTANCE: SortOrder.ASC,
    SortKey.COMMON_INTERESTS: SortOrder.DESC,
}


@dataclass
class RankedCandidate:
    """A candidate together with the values derived relative to the viewer."""

    profile: Mapping[str, Any]
    common_interest_count: int
    recommendation_score: float
    distance_km: float | None

    def as_dict(self) -> dict[str, Any]:
        return {
            **self.profile,
            "common_interest_count": self.common_interest_count,
            "recommendation_score": self.recommendation_score,
            "distance_km": self.distance_km,
        }


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _tags(value: Any) -> set[str]:
    if not isinstance(value, (list, tuple, set)):
        return set()
    return {tag.strip().casefold() for tag in value if isinstance(tag, str) and tag.strip()}


def allowed_genders(gender: Any, orientation: Any) -> frozenset[Gender] | None:
    """Genders a viewer may browse, or None when unrestricted.

    hetero -> the other gender, homo -> the same gender, bi or unspecified
    -> no restriction.
    """
    viewer_gender = Gender.parse(gender)
    viewer_orientation = SexualOrientation.parse(orientation)

    if viewer_gender is None or viewer_orientation in (None, SexualOrientation.BI):
        return None

    if viewer_orientation is SexualOrientation.HOMO:
        return frozenset({viewer_gender})

    other = Gender.FEMME if viewer_gender is Gender.HOMME else Gender.HOMME
    return frozenset({other})


def is_gender_compatible(viewer: Mapping[str, Any], candidate: Mapping[str, Any]) -> bool:
    allowed = allowed_genders(viewer.get("gender"), viewer.get("sexual_orientation"))
    if allowed is None:
        return True
    return Gender.parse(candidate.get("gender")) in allowed


def filter_candidates(
    viewer: Mapping[str, Any],
    candidates: Iterable[Mapping[str, Any]],
) -> list[Mapping[str, Any]]:
    """Keep the candidates whose gender the viewer's orientation allows."""
    return [candidate for candidate in candidates if is_gender_compatible(viewer, candidate)]


def common_interest_count(first: Any, second: Any) -> int:
    """Number of distinct tags present in both lists, compared case-insensitively."""
    return len(_tags(first) & _tags(second))


def calculate_distance_km(
    lat1: Any,
    lon1: Any,
    lat2: Any,
    lon2: Any,
) -> float | None:
    """Great-circle distance in kilometres, or None if a coordinate is missing."""
    coords = [_number(v) for v in (lat1, lon1, lat2, lon2)]
    if any(c is None for c in coords):
        return None
    phi1, lambda1, phi2, lambda2 = (math.radians(c) for c in coords)  # type: ignore[arg-type]

    dphi = phi2 - phi1
    dlambda = lambda2 - lambda1
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))
    return round(EARTH_RADIUS_KM * c, 2)


def _distance(viewer: Mapping[str, Any], candidate: Mapping[str, Any]) -> float | None:
    return calculate_distance_km(
        viewer.get("latitude"),
        viewer.get("longitude"),
        candidate.get("latitude"),
        candidate.get("longitude"),
    )


def recommendation_score(viewer: Mapping[str, Any], candidate: Mapping[str, Any]) -> float:
    """Weighted recommendation heuristic.

    0.3 x fame rating, +10 per shared interest, +30 for the same city,
    +20 when the candidate has a biography and more than two photos.
    """
    score = FAME_WEIGHT * (_number(candidate.get("fame_rating")) or 0.0)
    score += COMMON_INTEREST_WEIGHT * common_interest_count(
        viewer.get("interests"), candidate.get("interests")
    )

    viewer_city = _text(viewer.get("city")).casefold()
    candidate_city = _text(candidate.get("city")).casefold()
    if viewer_city and viewer_city == candidate_city:
        score += SAME_CITY_BONUS

    photos = candidate.get("photos")
    photo_count = len(photos) if isinstance(photos, (list, tuple)) else 0
    if _text(candidate.get("biography")) and photo_count >= RICH_PROFILE_MIN_PHOTOS:
        score += RICH_PROFILE_BONUS

    return round(score, 2)


def passes_filters(
    viewer: Mapping[str, Any],
    candidate: Mapping[str, Any],
    filters: BrowseFilters,
) -> bool:
    """Check the secondary browse filters. Missing candidate data never excludes on age or distance."""
    age = _number(candidate.get("age"))
    if age is not None and not filters.age_min <= age <= filters.age_max:
        return False

    fame = _number(candidate.get("fame_rating")) or 0.0
    if fame < filters.fame_rating_min:
        return False
    if filters.fame_rating_max is not None and fame > filters.fame_rating_max:
        return False

    if filters.location:
        if filters.location.casefold() not in _text(candidate.get("city")).casefold():
            return False

    if filters.interests:
        wanted = [tag.casefold() for tag in filters.interests]
        candidate_tags = _tags(candidate.get("interests"))
        if not any(w in tag for w in wanted for tag in candidate_tags):
            return False

    if filters.min_common_tags:
        shared = common_interest_count(viewer.get("interests"), candidate.get("interests"))
        if shared < filters.min_common_tags:
            return False

    if filters.max_distance_km is not None:
        distance = _distance(viewer, candidate)
        if distance is not None and distance > filters.max_distance_km:
            return False

    return True


def _display_name(candidate: Mapping[str, Any]) -> str:
    return (_text(candidate.get("first_name")) or _text(candidate.get("username"))).casefold()


def sort_candidates(
    ranked: list[RankedCandidate],
    sort: SortKey = SortKey.RECOMMENDED,
    order: SortOrder | None = None,
) -> list[RankedCandidate]:
    """Stable sort on a single key; candidates lacking the key come last in fetch order."""
    direction = order or DEFAULT_ORDER[sort]
    reverse = direction is SortOrder.DESC

    if sort is SortKey.RECOMMENDED:
        return sorted(ranked, key=lambda r: r.recommendation_score, reverse=reverse)

    if sort is SortKey.FAME_RATING:
        return sorted(ranked, key=lambda r: _number(r.profile.get("fame_rating")) or 0.0, reverse=reverse)

    if sort is SortKey.COMMON_INTERESTS:
        return sorted(ranked, key=lambda r: r.common_interest_count, reverse=reverse)

    if sort is SortKey.AGE:
        known = [r for r in ranked if _number(r.profile.get("age")) is not None]
        unknown = [r for r in ranked if _number(r.profile.get("age")) is None]
        return sorted(known, key=lambda r: _number(r.profile.get("age")), reverse=reverse) + unknown

    if sort is SortKey.NAME:
        known = [r for r in ranked if _display_name(r.profile)]
        unknown = [r for r in ranked if not _display_name(r.profile)]
        return sorted(known, key=lambda r: _display_name(r.profile), reverse=reverse) + unknown

    # Distance: true distance when both positions are known, otherwise an
    # approximation by city name.
    measured = [r for r in ranked if r.distance_km is not None]
    by_city = [r for r in ranked if r.distance_km is None and _text(r.profile.get("city"))]
    nowhere = [r for r in ranked if r.distance_km is None and not _text(r.profile.get("city"))]
    return (
        sorted(measured, key=lambda r: r.distance_km, reverse=reverse)
        + sorted(by_city, key=lambda r: _text(r.profile.get("city")).casefold(), reverse=reverse)
        + nowhere
    )


def rank_candidates(
    viewer: Mapping[str, Any],
    candidates: Iterable[Mapping[str, Any]],
    filters: BrowseFilters | None = None,
    sort: SortKey = SortKey.RECOMMENDED,
    order: SortOrder | None = None,
) -> list[RankedCandidate]:
    """Turn a raw candidate list into a display-ready ordering.

    Drops the viewer and duplicate users, applies the gender/orientation
    rule and the secondary filters, derives per-candidate values, then sorts.

    Args:
        viewer: The browsing user's profile.
        candidates: Candidates in fetch order.
        filters: Secondary filters; defaults accept everyone.
        sort: Sort key.
        order: Optional direction overriding the key's default.

    Returns:
        list[RankedCandidate]: Candidates in display order.
    """
    filters = filters or BrowseFilters()
    viewer_id = viewer.get("user_id")
    seen: set[Any] = set()
    ranked: list[RankedCandidate] = []

    for candidate in candidates:
        user_id = candidate.get("user_id")
        if user_id is not None:
            if user_id == viewer_id or user_id in seen:
                continue
            seen.add(user_id)

        if not is_gender_compatible(viewer, candidate):
            continue
        if not passes_filters(viewer, candidate, filters):
            continue

        ranked.append(
            RankedCandidate(
                profile=candidate,
                common_interest_count=common_interest_count(
                    viewer.get("interests"), candidate.get("interests")
                ),
                recommendation_score=recommendation_score(viewer, candidate),
                distance_km=_distance(viewer, candidate),
            )
        )

    return sort_candidates(ranked, sort, order)
