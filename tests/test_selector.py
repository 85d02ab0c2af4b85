"""Tests for tiered strategy selection."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from control_advisor.config.settings import SuggestionSettings
from control_advisor.generation.orchestrator import ProviderOrchestrator
from control_advisor.models.suggestion import GenerationAttemptResult, SuggestionSource
from control_advisor.models.templates import ACCESS_CONTROL, NETWORK_SECURITY, POLICY_DEFAULT
from control_advisor.strategies.fallback_text import generate_generic_implementation
from control_advisor.strategies.selector import (
    DEFAULT_REASONING,
    ERROR_REASONING,
    SuggestionSelector,
    match_family_template,
    match_keyword_pattern,
)
from control_advisor.utils.error_handler import ProviderConnectionError, ProviderError

from helpers import LONG_REPLY, FakeProvider, make_control, make_existing, make_settings


IMPL_A = "Widgets are inspected by the facilities team every quarter and results are filed."
IMPL_B = "Widget inspections are scheduled in the maintenance system and tracked to closure."


def passthrough_orchestrator(**result_fields) -> MagicMock:
    """Orchestrator mock echoing the fallback text unless told otherwise."""
    orchestrator = MagicMock(spec=ProviderOrchestrator)

    def generate(control, config, existing_controls, fallback_text):
        fields = {"text": fallback_text}
        fields.update(result_fields)
        return GenerationAttemptResult(**fields)

    orchestrator.generate.side_effect = generate
    return orchestrator


def failing_orchestrator(error: ProviderError) -> ProviderOrchestrator:
    providers = {
        "local": FakeProvider("local", [error]),
        "cloud-chat": FakeProvider("cloud-chat", [error]),
    }
    return ProviderOrchestrator(
        provider_factory=lambda kind, config: providers[kind],
        sleep=lambda s: None,
    )


class TestStrategyHelpers:
    """Template and keyword lookups."""

    def test_family_template_first_key_in_order(self):
        key, template = match_family_template(make_control("AC-2", "Account Management"))
        assert key == "account"
        assert template is ACCESS_CONTROL

    def test_unknown_family_has_no_template(self):
        assert match_family_template(make_control("ZZ-1", "Account Management")) is None

    def test_keyword_pattern_needs_two_hits(self):
        assert match_keyword_pattern("firewall only") is None
        category, hits, template = match_keyword_pattern("firewall network segmentation")
        assert (category, hits) == ("network", 3)
        assert template is NETWORK_SECURITY


class TestTemplatePrecedence:
    """Family templates win over every other strategy."""

    def test_end_to_end_account_management_without_ai(self):
        selector = SuggestionSelector(ProviderOrchestrator())
        suggestion = selector.suggest(make_control("AC-2", "Account Management"), [], SuggestionSettings())

        assert suggestion.status == "effective"
        assert suggestion.source == SuggestionSource.TEMPLATE
        assert suggestion.confidence == 0.8
        assert suggestion.implementation == ACCESS_CONTROL.implementation
        assert len(suggestion.implementation) <= 250
        assert suggestion.reasoning == ["Matched template for AC family control: account"]

    def test_template_fields_copied(self):
        selector = SuggestionSelector(passthrough_orchestrator())
        suggestion = selector.suggest(make_control(), [], make_settings(enabled=False))
        assert suggestion.control_type == ACCESS_CONTROL.control_type
        assert suggestion.testing_method == ACCESS_CONTROL.testing_method
        assert suggestion.testing_frequency == ACCESS_CONTROL.testing_frequency
        assert suggestion.risk_rating == ACCESS_CONTROL.risk_rating

    def test_template_text_is_orchestrator_fallback(self):
        orchestrator = passthrough_orchestrator()
        SuggestionSelector(orchestrator).suggest(make_control(), [], make_settings(enabled=False))
        args = orchestrator.generate.call_args.args
        assert args[3] == ACCESS_CONTROL.implementation

    def test_existing_controls_not_consulted_after_template(self):
        existing = [make_existing("AC-3", "Access Enforcement", IMPL_A, status="partial")]
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            make_control(), existing, make_settings(enabled=False)
        )
        assert suggestion.status == "effective"
        assert not any("Learned" in r for r in suggestion.reasoning)


class TestLowerStrategies:
    """Keyword, similarity and default strategies."""

    def test_pattern_without_family_template(self):
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            make_control("XY-1", "Firewall network segmentation"), [], make_settings(enabled=False)
        )
        assert suggestion.confidence == 0.75
        assert suggestion.reasoning == ["Pattern matched: network (3 keywords)"]
        assert suggestion.implementation == NETWORK_SECURITY.implementation

    def test_pattern_within_templated_family(self):
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            make_control("AC-17", "Remote Session Permission Role"), [], make_settings(enabled=False)
        )
        assert suggestion.confidence == 0.7
        assert suggestion.reasoning == ["Pattern matched: access (2 keywords)"]

    def test_similarity_learning(self):
        existing = [make_existing("ZZ-2", "Other", IMPL_A, status="partial", risk_rating="High")]
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            make_control("ZZ-1", "Quarterly Widget Inspection"), existing, make_settings(enabled=False)
        )
        assert suggestion.confidence == 0.6
        assert suggestion.status == "partial"
        assert suggestion.risk_rating == "High"
        assert suggestion.implementation == IMPL_A
        assert suggestion.reasoning == ["Learned from 1 similar existing control(s)"]

    def test_similarity_with_shared_narrative(self):
        existing = [make_existing("ZZ-2", "Other", IMPL_A), make_existing("ZZ-3", "Other", IMPL_A)]
        control = make_control("ZZ-1", "Quarterly Widget Inspection")
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            control, existing, make_settings(enabled=False)
        )
        assert suggestion.reasoning == [
            "Learned structure from 2 similar control(s), generating unique implementation"
        ]
        assert suggestion.implementation == generate_generic_implementation(control)

    def test_no_similar_controls_not_mentioned(self):
        existing = [make_existing("QQ-2", "Other", IMPL_B)]
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            make_control("ZZ-1", "Quarterly Widget Inspection"), existing, make_settings(enabled=False)
        )
        assert suggestion.confidence == 0.4
        assert suggestion.reasoning == [DEFAULT_REASONING]

    def test_policy_default(self):
        suggestion = SuggestionSelector(passthrough_orchestrator()).suggest(
            make_control("ZZ-1", "Widget Policy"), [], make_settings(enabled=False)
        )
        assert suggestion.control_type == POLICY_DEFAULT.control_type
        assert suggestion.testing_frequency == POLICY_DEFAULT.testing_frequency
        assert suggestion.implementation == POLICY_DEFAULT.implementation


class TestGenerationOutcome:
    """Source, confidence and reasoning after the orchestrator runs."""

    def test_generated_text_raises_confidence(self):
        orchestrator = passthrough_orchestrator(
            text=LONG_REPLY, generated=True, attempted=True, provider="local"
        )
        suggestion = SuggestionSelector(orchestrator).suggest(
            make_control("ZZ-1", "Widget Policy"), [], make_settings()
        )
        assert suggestion.source == SuggestionSource.AI
        assert suggestion.source_label == "AI Generated"
        assert suggestion.confidence == 0.7
        assert suggestion.implementation == LONG_REPLY
        assert suggestion.reasoning[-1] == (
            "Implementation text generated using AI Engine maintained by Compliance Team"
        )

    def test_generated_text_keeps_higher_confidence(self):
        orchestrator = passthrough_orchestrator(text=LONG_REPLY, generated=True, attempted=True)
        suggestion = SuggestionSelector(orchestrator).suggest(make_control(), [], make_settings())
        assert suggestion.confidence == 0.8

    def test_failed_generation_uses_template(self):
        selector = SuggestionSelector(failing_orchestrator(ProviderConnectionError("local", "http://x")))
        suggestion = selector.suggest(make_control(), [], make_settings(max_retries=0))

        assert suggestion.source == SuggestionSource.FALLBACK
        assert suggestion.confidence == 0.8
        assert suggestion.implementation == ACCESS_CONTROL.implementation
        assert suggestion.reasoning[-1] == "Using template implementation (AI Agents error)"

    def test_failed_generation_with_generic_text(self):
        existing = [make_existing("ZZ-2", "Other", IMPL_A), make_existing("ZZ-3", "Other", IMPL_A)]
        orchestrator = passthrough_orchestrator(
            attempted=True, used_fallback=True, error="local provider unavailable"
        )
        suggestion = SuggestionSelector(orchestrator).suggest(
            make_control("ZZ-1", "Quarterly Widget Inspection"), existing, make_settings()
        )
        assert suggestion.reasoning[-1] == "Using generic implementation (AI Agents unavailable)"

    def test_generation_credit_requires_generated_flag(self):
        orchestrator = passthrough_orchestrator(text=LONG_REPLY, attempted=True)
        suggestion = SuggestionSelector(orchestrator).suggest(
            make_control("ZZ-1", "Widget Policy"), [], make_settings()
        )
        assert suggestion.source == SuggestionSource.TEMPLATE
        assert suggestion.confidence == 0.4
        assert not any("AI Engine" in r for r in suggestion.reasoning)


class TestErrorPolicy:
    """Failures degrade or surface depending on configuration."""

    def test_fallback_disabled_raises(self):
        selector = SuggestionSelector(failing_orchestrator(ProviderConnectionError("cloud-chat", "http://x")))
        settings = make_settings(provider="cloud-chat", max_retries=0, fallback_to_pattern_matching=False)
        with pytest.raises(ProviderConnectionError):
            selector.suggest(make_control(), [], settings)

    def test_unexpected_error_returns_minimal_suggestion(self):
        orchestrator = MagicMock(spec=ProviderOrchestrator)
        orchestrator.generate.side_effect = RuntimeError("boom")
        control = make_control()
        suggestion = SuggestionSelector(orchestrator).suggest(control, [], make_settings())

        assert suggestion.confidence == 0.0
        assert suggestion.reasoning == [ERROR_REASONING]
        assert suggestion.implementation == generate_generic_implementation(control)
        assert suggestion.source == SuggestionSource.TEMPLATE

    def test_provider_error_with_fallback_enabled_degrades(self):
        orchestrator = MagicMock(spec=ProviderOrchestrator)
        orchestrator.generate.side_effect = ProviderConnectionError("local", "http://x")
        suggestion = SuggestionSelector(orchestrator).suggest(make_control(), [], make_settings())
        assert suggestion.confidence == 0.0
