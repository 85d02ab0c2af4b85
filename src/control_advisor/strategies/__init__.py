"""Suggestion strategies.

- similarity.py: Matching against documented controls
- aggregator.py: Majority vote over matched controls
- fallback_text.py: Generic implementation text and truncation
- selector.py: Tiered strategy selection (import from the module directly)
"""
from control_advisor.strategies.aggregator import aggregate_similar_controls
from control_advisor.strategies.fallback_text import (
    generate_generic_implementation,
    truncate_implementation_text,
)
from control_advisor.strategies.similarity import find_similar_controls

__all__ = [
    "aggregate_similar_controls",
    "find_similar_controls",
    "generate_generic_implementation",
    "truncate_implementation_text",
]
