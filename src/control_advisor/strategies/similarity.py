"""Similarity matching against previously documented controls."""
from __future__ import annotations

from typing import Sequence

from control_advisor.models.controls import Control, ExistingControl

MAX_SIMILAR_CONTROLS = 25
MIN_SHARED_TITLE_WORDS = 2
MIN_TITLE_WORD_LENGTH = 4


def _shared_title_words(candidate_title: str, target_title: str) -> int:
    """Count words (longer than 3 chars) of the candidate title found in the target title."""
    return sum(
        1
        for word in candidate_title.split(" ")
        if len(word) >= MIN_TITLE_WORD_LENGTH and word in target_title
    )


def find_similar_controls(
    control: Control,
    existing_controls: Sequence[ExistingControl],
) -> list[ExistingControl]:
    """Collect documented controls related to ``control``.

    A candidate qualifies when it shares the control family or when at least
    two of its title words appear in the target title. Matches are kept in
    encounter order and capped at ``MAX_SIMILAR_CONTROLS``; they are not
    ranked by similarity strength.
    """
    family = control.family
    target_title = (control.title or "").lower()

    matches: list[ExistingControl] = []
    for existing in existing_controls:
        if len(matches) >= MAX_SIMILAR_CONTROLS:
            break
        if not existing.is_documented:
            continue
        if family and existing.family == family:
            matches.append(existing)
            continue
        candidate_title = (existing.title or "").lower()
        if _shared_title_words(candidate_title, target_title) >= MIN_SHARED_TITLE_WORDS:
            matches.append(existing)

    return matches
