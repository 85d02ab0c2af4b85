"""Majority-vote aggregation of similar controls into one field set."""
from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence

from control_advisor.models.controls import ExistingControl
from control_advisor.models.suggestion import FieldSet

MIN_IMPLEMENTATION_LENGTH = 50


def _most_common(values: Sequence[Optional[str]]) -> Optional[str]:
    """Most frequent non-empty value; ties go to the first value counted."""
    counts = Counter(v for v in values if v)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _distinct_implementation(matches: Sequence[ExistingControl]) -> Optional[str]:
    texts = [
        m.implementation
        for m in matches
        if m.implementation and len(m.implementation) > MIN_IMPLEMENTATION_LENGTH
    ]
    distinct = list(dict.fromkeys(texts))
    # One narrative shared by several controls must not be copied again
    if len(distinct) == 1 and len(matches) > 1:
        return None
    return distinct[0] if distinct else None


def aggregate_similar_controls(matches: Sequence[ExistingControl]) -> FieldSet:
    """Reduce matched controls to a single field set by majority vote."""
    return FieldSet(
        status=_most_common([m.status for m in matches]),
        implementation=_distinct_implementation(matches),
        responsible_party=_most_common([m.responsible_party for m in matches]),
        control_type=_most_common([m.control_type for m in matches]),
        testing_method=_most_common([m.testing_method for m in matches]),
        testing_frequency=_most_common([m.testing_frequency for m in matches]),
        risk_rating=_most_common([m.risk_rating for m in matches]),
    ).with_defaults()
