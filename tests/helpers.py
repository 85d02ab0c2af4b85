"""Builders and fakes shared by the test modules."""
from __future__ import annotations

from control_advisor.config.settings import ProviderConfig, SuggestionSettings
from control_advisor.generation.prompt_builder import GenerationPrompt
from control_advisor.generation.providers import ProviderAdapter, ProviderReply
from control_advisor.models.controls import Control, DescriptionPart, ExistingControl


LONG_REPLY = (
    "Accounts are provisioned through the identity platform and reviewed quarterly by system owners."
)


def make_control(
    control_id: str = "AC-2",
    title: str = "Account Management",
    prose: str = "",
    **fields,
) -> Control:
    """Create a test Control."""
    parts = [DescriptionPart(name="statement", prose=prose)] if prose else []
    return Control(id=control_id, title=title, parts=parts, **fields)


def make_existing(
    control_id: str,
    title: str = "",
    implementation: str = "",
    **fields,
) -> ExistingControl:
    """Create a documented reference control."""
    return ExistingControl(id=control_id, title=title, implementation=implementation, **fields)


def make_settings(**provider_fields) -> SuggestionSettings:
    """Settings with generation enabled unless told otherwise."""
    provider_fields.setdefault("enabled", True)
    return SuggestionSettings(
        batch_delay=0,
        provider=ProviderConfig(**provider_fields),
    )


class FakeProvider(ProviderAdapter):
    """Provider adapter returning scripted replies or raising scripted errors."""

    def __init__(self, name: str, outcomes: list, model: str = "fake-model"):
        super().__init__(timeout=1.0, sampling=ProviderConfig().sampling)
        self.name = name
        self._model = model
        self.outcomes = list(outcomes)
        self.calls: list[GenerationPrompt] = []

    @property
    def model(self) -> str:
        return self._model

    def _call(self, prompt: GenerationPrompt) -> ProviderReply:
        self.calls.append(prompt)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return ProviderReply(text=outcome, model=self._model)


class RecordingSink:
    """Telemetry sink keeping every record in memory."""

    def __init__(self):
        self.records = []

    def record(self, record) -> None:
        self.records.append(record)
