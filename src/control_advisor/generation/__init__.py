"""Implementation text generation."""
from control_advisor.generation.normalizer import normalize_response
from control_advisor.generation.orchestrator import ProviderOrchestrator
from control_advisor.generation.prompt_builder import GenerationPrompt, PromptBuilder
from control_advisor.generation.providers import build_provider, check_availability
from control_advisor.generation.telemetry import (
    JsonlTelemetrySink,
    NullTelemetrySink,
    TelemetryRecord,
)

__all__ = [
    "normalize_response",
    "ProviderOrchestrator",
    "GenerationPrompt",
    "PromptBuilder",
    "build_provider",
    "check_availability",
    "JsonlTelemetrySink",
    "NullTelemetrySink",
    "TelemetryRecord",
]
