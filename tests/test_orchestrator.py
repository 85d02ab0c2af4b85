"""Tests for the provider fallback chain."""
from __future__ import annotations

import pytest

from control_advisor.generation.orchestrator import ProviderOrchestrator
from control_advisor.utils.error_handler import (
    ProviderConfigurationError,
    ProviderConnectionError,
    ProviderTimeoutError,
)

from helpers import LONG_REPLY, FakeProvider, RecordingSink, make_control, make_settings


FALLBACK = "Template implementation text used when generation fails."


def make_orchestrator(providers: dict, sink=None, sleeps: list | None = None) -> ProviderOrchestrator:
    """Orchestrator whose factory serves the given fake providers."""
    def factory(kind, config):
        if kind not in providers:
            raise ProviderConfigurationError(kind, f"Unknown provider: {kind}")
        return providers[kind]

    return ProviderOrchestrator(
        telemetry=sink,
        provider_factory=factory,
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
    )


def timeout(provider: str = "cloud-chat") -> ProviderTimeoutError:
    return ProviderTimeoutError(provider, 1.0)


class TestDisabled:
    """Generation switched off in configuration."""

    def test_returns_fallback_without_calls(self):
        local = FakeProvider("local", [LONG_REPLY])
        result = make_orchestrator({"local": local}).generate(
            make_control(), make_settings(enabled=False).provider, [], FALLBACK
        )
        assert result.text == FALLBACK
        assert result.generated is False
        assert result.attempted is False
        assert local.calls == []


class TestPrimaryProvider:
    """Attempts against the configured provider."""

    def test_success_on_first_attempt(self, sink):
        local = FakeProvider("local", ["**Implementation:** " + LONG_REPLY])
        result = make_orchestrator({"local": local}, sink).generate(
            make_control(), make_settings().provider, [], FALLBACK
        )
        assert result.generated is True
        assert result.attempted is True
        assert result.provider == "local"
        assert result.text == LONG_REPLY
        assert [r.status for r in sink.records] == ["success"]

    def test_retry_bound_is_max_retries_plus_one(self):
        primary = FakeProvider("cloud-chat", [timeout()])
        sleeps = []
        result = make_orchestrator({"cloud-chat": primary}, sleeps=sleeps).generate(
            make_control(),
            make_settings(provider="cloud-chat", max_retries=2, use_local_secondary=False).provider,
            [],
            FALLBACK,
        )
        assert len(primary.calls) == 3
        assert sleeps == [1.0, 2.0]
        assert result.generated is False
        assert result.used_fallback is True
        assert result.text == FALLBACK

    def test_recovers_after_failure(self):
        local = FakeProvider("local", [timeout("local"), LONG_REPLY])
        result = make_orchestrator({"local": local}).generate(
            make_control(), make_settings().provider, [], FALLBACK
        )
        assert len(local.calls) == 2
        assert result.generated is True

    def test_short_reply_is_rejected(self, sink):
        local = FakeProvider("local", ["Too short to use."])
        result = make_orchestrator({"local": local}, sink).generate(
            make_control(), make_settings(max_retries=0).provider, [], FALLBACK
        )
        assert result.generated is False
        assert "too short" in result.error
        assert sink.records[0].status == "error"
        assert sink.records[0].response == "Too short to use."

    def test_reply_of_exactly_fifty_chars_is_rejected(self):
        local = FakeProvider("local", ["x" * 49 + "."])
        result = make_orchestrator({"local": local}).generate(
            make_control(), make_settings(max_retries=0).provider, [], FALLBACK
        )
        assert result.generated is False

    def test_max_length_truncates_generated_text(self):
        local = FakeProvider("local", [LONG_REPLY])
        result = make_orchestrator({"local": local}).generate(
            make_control(), make_settings(max_length=60).provider, [], FALLBACK
        )
        assert result.generated is True
        assert len(result.text) <= 60


class TestSecondaryProvider:
    """Local provider as secondary behind a cloud primary."""

    def test_primary_exhausted_before_secondary(self):
        order = []
        primary = FakeProvider("cloud-chat", [timeout()])
        local = FakeProvider("local", [LONG_REPLY])
        primary._call = _tracking(primary._call, order, "cloud-chat")
        local._call = _tracking(local._call, order, "local")

        result = make_orchestrator({"cloud-chat": primary, "local": local}).generate(
            make_control(), make_settings(provider="cloud-chat", max_retries=2).provider, [], FALLBACK
        )
        assert order == ["cloud-chat", "cloud-chat", "cloud-chat", "local"]
        assert result.generated is True
        assert result.provider == "local"

    def test_secondary_gets_two_attempts(self):
        primary = FakeProvider("cloud-chat", [timeout()])
        local = FakeProvider("local", [timeout("local")])
        sleeps = []
        result = make_orchestrator({"cloud-chat": primary, "local": local}, sleeps=sleeps).generate(
            make_control(), make_settings(provider="cloud-chat", max_retries=0).provider, [], FALLBACK
        )
        assert len(primary.calls) == 1
        assert len(local.calls) == 2
        assert sleeps == [1.0]
        assert result.used_fallback is True
        assert result.error == timeout("local").message

    def test_no_secondary_when_disabled(self):
        primary = FakeProvider("cloud-chat", [timeout()])
        local = FakeProvider("local", [LONG_REPLY])
        make_orchestrator({"cloud-chat": primary, "local": local}).generate(
            make_control(),
            make_settings(provider="cloud-chat", max_retries=0, use_local_secondary=False).provider,
            [],
            FALLBACK,
        )
        assert local.calls == []

    def test_no_secondary_for_local_primary(self):
        local = FakeProvider("local", [timeout("local")])
        make_orchestrator({"local": local}).generate(
            make_control(), make_settings(max_retries=1).provider, [], FALLBACK
        )
        assert len(local.calls) == 2


class TestConfigurationErrors:
    """Misconfiguration fails fast."""

    def test_unknown_provider_skips_retries_and_secondary(self):
        local = FakeProvider("local", [LONG_REPLY])
        sleeps = []
        result = make_orchestrator({"local": local}, sleeps=sleeps).generate(
            make_control(), make_settings(provider="cloud-converse").provider, [], FALLBACK
        )
        assert local.calls == []
        assert sleeps == []
        assert result.generated is False
        assert result.used_fallback is True
        assert "Unknown provider" in result.error

    def test_configuration_error_during_call_is_not_retried(self):
        local = FakeProvider("local", [ProviderConfigurationError("local", "Model not configured")])
        make_orchestrator({"local": local}).generate(
            make_control(), make_settings(max_retries=2).provider, [], FALLBACK
        )
        assert len(local.calls) == 1


class TestFallbackDisabled:
    """Pattern fallback switched off."""

    def test_raises_last_error(self):
        primary = FakeProvider("cloud-chat", [timeout()])
        local = FakeProvider("local", [ProviderConnectionError("local", "http://localhost:11434")])
        orchestrator = make_orchestrator({"cloud-chat": primary, "local": local})
        with pytest.raises(ProviderConnectionError):
            orchestrator.generate(
                make_control(),
                make_settings(provider="cloud-chat", fallback_to_pattern_matching=False).provider,
                [],
                FALLBACK,
            )


class TestTelemetry:
    """Every attempt is reported without affecting generation."""

    def test_every_attempt_reported(self, sink):
        local = FakeProvider("local", [timeout("local"), LONG_REPLY], model="mistral:7b")
        make_orchestrator({"local": local}, sink).generate(
            make_control("AC-2"), make_settings().provider, [], FALLBACK
        )
        assert [r.status for r in sink.records] == ["error", "success"]
        record = sink.records[-1]
        assert record.provider == "local"
        assert record.model == "mistral:7b"
        assert record.metadata["control_id"] == "AC-2"
        assert record.metadata["attempt"] == 2
        assert record.usage[1] == len(LONG_REPLY) // 4

    def test_failing_sink_does_not_break_generation(self):
        class BrokenSink(RecordingSink):
            def record(self, record):
                raise OSError("disk full")

        local = FakeProvider("local", [LONG_REPLY])
        result = make_orchestrator({"local": local}, BrokenSink()).generate(
            make_control(), make_settings().provider, [], FALLBACK
        )
        assert result.generated is True


def _tracking(call, order: list, name: str):
    def wrapper(prompt):
        order.append(name)
        return call(prompt)
    return wrapper
