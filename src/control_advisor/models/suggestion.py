"""Suggestion models produced by the pipeline."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Values applied when no strategy supplies a field
DEFAULT_STATUS = "not-assessed"
DEFAULT_RESPONSIBLE_PARTY = "Shared"
DEFAULT_CONTROL_TYPE = "Orchestrated"
DEFAULT_TESTING_METHOD = "Manual Testing"
DEFAULT_TESTING_FREQUENCY = "Quarterly"
DEFAULT_RISK_RATING = "Medium"

CATEGORICAL_FIELDS = (
    "status",
    "responsible_party",
    "control_type",
    "testing_method",
    "testing_frequency",
    "risk_rating",
)


class SuggestionSource(str, Enum):
    """Where the implementation text came from."""
    AI = "ai"                # a remote provider wrote the text
    FALLBACK = "fallback"    # generation was attempted and failed
    TEMPLATE = "template"    # generation was not attempted

    @property
    def label(self) -> str:
        return SOURCE_LABELS[self]


SOURCE_LABELS = {
    SuggestionSource.AI: "AI Generated",
    SuggestionSource.FALLBACK: "Template/Pattern (AI Unavailable)",
    SuggestionSource.TEMPLATE: "Template/Pattern",
}


@dataclass(frozen=True)
class FieldSet:
    """Implementation metadata proposed by one strategy.

    ``None`` means the strategy has no opinion on that field.
    """
    status: Optional[str] = None
    implementation: Optional[str] = None
    responsible_party: Optional[str] = None
    control_type: Optional[str] = None
    testing_method: Optional[str] = None
    testing_frequency: Optional[str] = None
    risk_rating: Optional[str] = None

    def with_defaults(self) -> FieldSet:
        """Fill every missing categorical field with the hard default."""
        return replace(
            self,
            status=self.status or DEFAULT_STATUS,
            responsible_party=self.responsible_party or DEFAULT_RESPONSIBLE_PARTY,
            control_type=self.control_type or DEFAULT_CONTROL_TYPE,
            testing_method=self.testing_method or DEFAULT_TESTING_METHOD,
            testing_frequency=self.testing_frequency or DEFAULT_TESTING_FREQUENCY,
            risk_rating=self.risk_rating or DEFAULT_RISK_RATING,
        )


@dataclass(frozen=True)
class GenerationAttemptResult:
    """Outcome of one orchestrated text generation.

    ``generated`` is the only signal that a remote provider wrote ``text``.
    """
    text: Optional[str]
    generated: bool = False
    attempted: bool = False
    provider: Optional[str] = None
    used_fallback: bool = False
    error: Optional[str] = None


class Suggestion(BaseModel):
    """Proposed implementation metadata for one control."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = DEFAULT_STATUS
    implementation: Optional[str] = None
    responsible_party: str = DEFAULT_RESPONSIBLE_PARTY
    control_type: str = DEFAULT_CONTROL_TYPE
    testing_method: str = DEFAULT_TESTING_METHOD
    testing_frequency: str = DEFAULT_TESTING_FREQUENCY
    risk_rating: str = DEFAULT_RISK_RATING
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: list[str] = Field(default_factory=list)
    source: SuggestionSource = SuggestionSource.TEMPLATE

    @property
    def source_label(self) -> str:
        return self.source.label

    @classmethod
    def minimal(cls, implementation: Optional[str], reason: str) -> Suggestion:
        """Generic zero-confidence suggestion used when the pipeline breaks."""
        return cls(implementation=implementation, confidence=0.0, reasoning=[reason])

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        data["sourceLabel"] = self.source_label
        return data
