"""
Candidate normalization.

Turns raw name suggestions (as produced by a language model) into valid,
deduplicated candidate labels. Normalization is pure and total: malformed
input never raises, it simply yields no candidate.
"""

import re
from typing import Iterable, Optional

# Characters outside the candidate charset
DISALLOWED_CHARS_PATTERN = re.compile(r"[^a-z0-9-]")

# Shape every candidate must have: no leading/trailing hyphen
CANDIDATE_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")

MIN_CANDIDATE_LENGTH = 3


def normalize_candidate(raw: object) -> Optional[str]:
    """
    Normalize a single raw suggestion.

    Steps: lowercase, cut everything from the first ``.`` (an accidental
    TLD), drop characters outside ``[a-z0-9-]``, strip leading and trailing
    hyphens, reject anything shorter than three characters.

    Returns:
        The candidate, or None if nothing valid remains
    """
    if not isinstance(raw, str):
        return None

    value = raw.lower()
    if "." in value:
        value = value.split(".", 1)[0]
    value = DISALLOWED_CHARS_PATTERN.sub("", value)
    value = value.strip("-")

    if len(value) < MIN_CANDIDATE_LENGTH:
        return None
    return value


def normalize(raw_suggestions: Iterable[object]) -> list[str]:
    """
    Normalize raw suggestions into an ordered, duplicate-free candidate list.

    >>> normalize(["FitTrack.com", "fit_track!", "fi"])
    ['fittrack']
    """
    seen: set[str] = set()
    candidates: list[str] = []
    for raw in raw_suggestions or ():
        candidate = normalize_candidate(raw)
        if candidate is None or candidate in seen:
            continue
        seen.add(candidate)
        candidates.append(candidate)
    return candidates


def is_valid_candidate(value: str) -> bool:
    """Check that a string already has canonical candidate form."""
    return (
        isinstance(value, str)
        and len(value) >= MIN_CANDIDATE_LENGTH
        and CANDIDATE_PATTERN.match(value) is not None
    )
