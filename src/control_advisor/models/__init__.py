"""Data models for control suggestions.

- controls.py: Control, ExistingControl and DescriptionPart inputs
- suggestion.py: FieldSet, GenerationAttemptResult and Suggestion outputs
- templates.py: Static family templates, keyword patterns and defaults
"""
from control_advisor.models.controls import (
    Control,
    DescriptionPart,
    ExistingControl,
)
from control_advisor.models.suggestion import (
    FieldSet,
    GenerationAttemptResult,
    Suggestion,
    SuggestionSource,
)

__all__ = [
    "Control",
    "DescriptionPart",
    "ExistingControl",
    "FieldSet",
    "GenerationAttemptResult",
    "Suggestion",
    "SuggestionSource",
]
