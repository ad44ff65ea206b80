"""Gender/preference reciprocity and the single compatibility score.

Every screen (swipe deck, profile detail, match rows) uses
``compatibility_score`` so the number a user sees is always the same.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..models.profile import EVERYONE, Profile

BASE_SCORE = 50
PREFERENCE_BONUS = 20
ZODIAC_BONUS = 10
POINTS_PER_INTEREST = 2
INTEREST_BONUS_CAP = 10
LOOKING_FOR_BONUS = 5
MIN_SCORE = 50
MAX_SCORE = 99

_GENDERS_FOR_PREFERENCE = {
    "women": ["feminine"],
    "men": ["masculine"],
}

_PREFERENCES_FOR_GENDER = {
    "feminine": {"women", EVERYONE},
    "masculine": {"men", EVERYONE},
}


def _norm(value: Any) -> Optional[str]:
    if isinstance(value, str):
        text = value.strip().lower()
        if text:
            return text
    return None


def acceptable_genders(looking_for: Optional[str]) -> Optional[list[str]]:
    """Genders a user looking for ``looking_for`` wants to see; None means any."""
    return _GENDERS_FOR_PREFERENCE.get(_norm(looking_for) or EVERYONE)


def acceptable_preferences(gender: Optional[str]) -> set[str]:
    """``looking_for`` values that include a user of ``gender``.

    Non-binary and unset genders are only included by ``everyone``.
    """
    return _PREFERENCES_FOR_GENDER.get(_norm(gender) or "", {EVERYONE})


def is_reciprocal_match(seeker: Profile, candidate: Profile) -> bool:
    genders = acceptable_genders(seeker.looking_for)
    if genders is not None and _norm(candidate.gender) not in genders:
        return False
    candidate_pref = _norm(candidate.looking_for) or EVERYONE
    return candidate_pref in acceptable_preferences(seeker.gender)


def compatibility_score(
    seeker: Profile,
    candidate: Profile,
    candidate_interests: Sequence[str] = (),
) -> int:
    score = BASE_SCORE
    if is_reciprocal_match(seeker, candidate):
        score += PREFERENCE_BONUS
    zodiac = _norm(seeker.zodiac_sign)
    if zodiac and zodiac == _norm(candidate.zodiac_sign):
        score += ZODIAC_BONUS
    score += min(INTEREST_BONUS_CAP, POINTS_PER_INTEREST * len(candidate_interests))
    looking_for = _norm(seeker.looking_for)
    if looking_for and looking_for == _norm(candidate.looking_for):
        score += LOOKING_FOR_BONUS
    return max(MIN_SCORE, min(MAX_SCORE, score))


__all__ = [
    "acceptable_genders",
    "acceptable_preferences",
    "compatibility_score",
    "is_reciprocal_match",
]
