"""Tiered strategy selection for control suggestions.

Strategies run in order and a later one only runs while confidence is
still below its level:

    family template (0.8) -> keyword pattern (0.7/0.75)
    -> similar existing controls (0.6) -> generic default (0.4)

The implementation text is then always handed to the provider
orchestrator, with the strategy text as its fallback value.
"""
from __future__ import annotations

from typing import Optional, Sequence

import structlog

from control_advisor.config.settings import SuggestionSettings
from control_advisor.generation.orchestrator import ProviderOrchestrator
from control_advisor.models.controls import Control, ExistingControl
from control_advisor.models.suggestion import (
    FieldSet,
    GenerationAttemptResult,
    Suggestion,
    SuggestionSource,
)
from control_advisor.models.templates import (
    CATEGORY_TEMPLATES,
    CONTROL_PATTERNS,
    CONTROL_TEMPLATES,
    DEFAULT_TITLE_KEYWORDS,
    GENERIC_DEFAULT,
    PATTERN_MIN_MATCHES,
)
from control_advisor.strategies.aggregator import aggregate_similar_controls
from control_advisor.strategies.fallback_text import (
    generate_generic_implementation,
    truncate_implementation_text,
)
from control_advisor.strategies.similarity import find_similar_controls
from control_advisor.utils.error_handler import ProviderError

logger = structlog.get_logger(__name__)

TEMPLATE_CONFIDENCE = 0.8
PATTERN_CONFIDENCE = 0.7
PATTERN_CONFIDENCE_NO_FAMILY_TEMPLATE = 0.75
SIMILARITY_CONFIDENCE = 0.6
DEFAULT_CONFIDENCE = 0.4
DEFAULT_THRESHOLD = 0.5
GENERATED_MIN_CONFIDENCE = 0.7

DEFAULT_REASONING = "Applied default suggestions based on control characteristics"
ERROR_REASONING = "Error generating suggestions"


def match_family_template(control: Control) -> Optional[tuple[str, FieldSet]]:
    """First template of the control's family whose key occurs in the search text."""
    templates = CONTROL_TEMPLATES.get(control.family)
    if not templates:
        return None
    search_text = control.search_text()
    for key, template in templates.items():
        if key in search_text:
            return key, template
    return None


def match_keyword_pattern(search_text: str) -> Optional[tuple[str, int, FieldSet]]:
    """First keyword category with at least two keywords in ``search_text``."""
    for category, keywords in CONTROL_PATTERNS.items():
        hits = sum(1 for keyword in keywords if keyword in search_text)
        if hits >= PATTERN_MIN_MATCHES:
            return category, hits, CATEGORY_TEMPLATES[category]
    return None


def default_for_title(control: Control) -> FieldSet:
    title = control.clean_title.lower()
    for keywords, field_set in DEFAULT_TITLE_KEYWORDS:
        if any(k in title for k in keywords):
            return field_set
    return GENERIC_DEFAULT


def _fallback_reasoning(result: GenerationAttemptResult, has_candidate: bool) -> str:
    error = (result.error or "").lower()
    state = "unavailable" if ("unavailable" in error or "disabled" in error) else "error"
    kind = "template" if has_candidate else "generic"
    return f"Using {kind} implementation (AI Agents {state})"


class SuggestionSelector:
    """Builds a ``Suggestion`` for one control."""

    def __init__(self, orchestrator: ProviderOrchestrator):
        self.orchestrator = orchestrator

    def suggest(
        self,
        control: Control,
        existing_controls: Sequence[ExistingControl],
        settings: SuggestionSettings,
    ) -> Suggestion:
        """Suggest implementation metadata for ``control``.

        Unexpected failures degrade to a zero-confidence generic suggestion.

        Raises:
            ProviderError: generation failed and pattern fallback is disabled.
        """
        logger.info("suggestion_started", control_id=control.id, family=control.family)
        try:
            return self._suggest(control, existing_controls, settings)
        except ProviderError:
            if not settings.provider.fallback_to_pattern_matching:
                raise
            logger.exception("suggestion_failed", control_id=control.id)
        except Exception:
            logger.exception("suggestion_failed", control_id=control.id)
        return Suggestion.minimal(generate_generic_implementation(control), ERROR_REASONING)

    def _suggest(
        self,
        control: Control,
        existing_controls: Sequence[ExistingControl],
        settings: SuggestionSettings,
    ) -> Suggestion:
        fields = FieldSet()
        confidence = 0.0
        reasoning: list[str] = []

        template = match_family_template(control)
        if template:
            key, fields = template
            confidence = TEMPLATE_CONFIDENCE
            reasoning.append(f"Matched template for {control.family} family control: {key}")
            logger.debug("template_matched", control_id=control.id, key=key)

        if confidence < PATTERN_CONFIDENCE:
            pattern = match_keyword_pattern(control.search_text())
            if pattern:
                category, hits, fields = pattern
                confidence = (
                    PATTERN_CONFIDENCE if control.family in CONTROL_TEMPLATES
                    else PATTERN_CONFIDENCE_NO_FAMILY_TEMPLATE
                )
                reasoning.append(f"Pattern matched: {category} ({hits} keywords)")
                logger.debug("pattern_matched", control_id=control.id, category=category, hits=hits)

        if confidence < SIMILARITY_CONFIDENCE and existing_controls:
            matches = find_similar_controls(control, existing_controls)
            if matches:
                fields = aggregate_similar_controls(matches)
                confidence = SIMILARITY_CONFIDENCE
                if fields.implementation:
                    reasoning.append(f"Learned from {len(matches)} similar existing control(s)")
                else:
                    reasoning.append(
                        f"Learned structure from {len(matches)} similar control(s), "
                        "generating unique implementation"
                    )
                logger.debug("similarity_matched", control_id=control.id, matches=len(matches))

        if confidence < DEFAULT_THRESHOLD:
            fields = default_for_title(control)
            confidence = DEFAULT_CONFIDENCE
            reasoning.append(DEFAULT_REASONING)
            logger.debug("default_applied", control_id=control.id)

        fields = fields.with_defaults()
        candidate = truncate_implementation_text(fields.implementation)
        fallback_text = candidate or generate_generic_implementation(control)

        result = self.orchestrator.generate(control, settings.provider, existing_controls, fallback_text)

        if result.generated:
            implementation = result.text
            confidence = max(confidence, GENERATED_MIN_CONFIDENCE)
            source = SuggestionSource.AI
            reasoning.append(
                f"Implementation text generated using AI Engine maintained by {settings.organization_name}"
            )
        elif result.attempted and result.error:
            implementation = result.text or fallback_text
            source = SuggestionSource.FALLBACK
            reasoning.append(_fallback_reasoning(result, bool(candidate)))
        else:
            implementation = result.text or fallback_text
            source = SuggestionSource.TEMPLATE

        suggestion = Suggestion(
            status=fields.status,
            implementation=implementation,
            responsible_party=fields.responsible_party,
            control_type=fields.control_type,
            testing_method=fields.testing_method,
            testing_frequency=fields.testing_frequency,
            risk_rating=fields.risk_rating,
            confidence=confidence,
            reasoning=reasoning,
            source=source,
        )
        logger.info(
            "suggestion_completed",
            control_id=control.id,
            source=source.value,
            confidence=confidence,
        )
        return suggestion
