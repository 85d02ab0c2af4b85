"""Deterministic implementation text used when no provider writes one."""
from __future__ import annotations

import re
from typing import Optional

from control_advisor.models.controls import Control

MAX_IMPLEMENTATION_LENGTH = 250
BOUNDARY_RATIO = 0.7
MAX_KEY_TERMS = 3

STOP_WORDS = {
    "the", "and", "for", "are", "with", "this", "that", "from",
    "have", "been", "will", "should", "must", "shall",
}

_WHITESPACE = re.compile(r"\s+")


def truncate_implementation_text(
    text: Optional[str],
    max_length: int = MAX_IMPLEMENTATION_LENGTH,
) -> Optional[str]:
    """Collapse whitespace and bound text to ``max_length`` characters.

    Cuts at the last sentence end when it lies past 70% of the budget,
    else at the last word boundary past 70%, else hard.
    """
    if not text:
        return text
    text = _WHITESPACE.sub(" ", text).strip()
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_period = truncated.rfind(".")
    last_space = truncated.rfind(" ")
    if last_period > max_length * BOUNDARY_RATIO:
        truncated = truncated[: last_period + 1]
    elif last_space > max_length * BOUNDARY_RATIO:
        truncated = truncated[:last_space]
    return truncated.strip()


def _key_terms(control: Control) -> list[str]:
    prose = " ".join(part.prose for part in control.parts if part.prose).lower()
    words = [w for w in prose.split() if len(w) >= 4 and w not in STOP_WORDS][:5]
    return list(dict.fromkeys(words))


def generate_generic_implementation(control: Control) -> str:
    """Build a descriptive, control-specific sentence without any provider."""
    title = control.clean_title
    if not title or title == control.id:
        title = f"control {control.id}".strip()

    terms = _key_terms(control)
    if terms:
        text = (
            f"This control addresses {', '.join(terms[:MAX_KEY_TERMS])} requirements. "
            "The implementation is managed through established security processes and "
            "procedures. Regular monitoring ensures effectiveness."
        )
    else:
        text = (
            f"The implementation of {title} is managed through established processes and "
            "procedures. Regular reviews ensure the control remains effective and aligned "
            "with organizational requirements."
        )
    return truncate_implementation_text(text)
