"""Fallback chain for implementation text generation.

Primary provider -> local secondary -> caller supplied fallback text.

Each provider gets ``max_retries + 1`` attempts with linear backoff
(1s, 2s, ...) between them. A reply is accepted only if its normalized
text is longer than 50 characters. Configuration errors end the chain
at once and go straight to the fallback text.
"""
from __future__ import annotations

import time
from typing import Callable, Optional, Sequence

import structlog

from control_advisor.config.settings import ProviderConfig, ProviderKind
from control_advisor.generation.normalizer import normalize_response
from control_advisor.generation.prompt_builder import GenerationPrompt, PromptBuilder
from control_advisor.generation.providers import ProviderAdapter, build_provider
from control_advisor.generation.telemetry import NullTelemetrySink, TelemetryRecord, TelemetrySink
from control_advisor.models.controls import Control, ExistingControl
from control_advisor.models.suggestion import GenerationAttemptResult
from control_advisor.strategies.fallback_text import truncate_implementation_text
from control_advisor.utils.error_handler import (
    InvalidResponseError,
    ProviderConfigurationError,
    ProviderError,
    handle_provider_error,
)

logger = structlog.get_logger(__name__)

MIN_ACCEPTED_LENGTH = 50
BACKOFF_SECONDS = 1.0
SECONDARY_MAX_RETRIES = 1

ProviderFactory = Callable[[str, ProviderConfig], ProviderAdapter]


class ProviderOrchestrator:
    """Runs the provider fallback chain for one control at a time.

    Holds no per-call state; the provider configuration is passed into
    every ``generate`` call.
    """

    def __init__(
        self,
        cloud_converse_available: bool = False,
        telemetry: Optional[TelemetrySink] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        provider_factory: Optional[ProviderFactory] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cloud_converse_available = cloud_converse_available
        self.telemetry = telemetry or NullTelemetrySink()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._provider_factory = provider_factory or self._default_factory
        self._sleep = sleep
        self._clock = clock

    def _default_factory(self, kind: str, config: ProviderConfig) -> ProviderAdapter:
        return build_provider(kind, config, self.cloud_converse_available)

    def generate(
        self,
        control: Control,
        config: ProviderConfig,
        existing_controls: Sequence[ExistingControl] = (),
        fallback_text: Optional[str] = None,
    ) -> GenerationAttemptResult:
        """Try to generate implementation text for ``control``.

        Raises:
            ProviderError: every provider failed and
                ``fallback_to_pattern_matching`` is disabled.
        """
        if not config.enabled:
            logger.debug("generation_disabled", control_id=control.id)
            return GenerationAttemptResult(text=fallback_text)

        prompt = self.prompt_builder.build(control, existing_controls)
        chain = [(config.provider, config.max_retries)]
        if config.use_local_secondary and config.provider in (
            ProviderKind.CLOUD_CHAT.value,
            ProviderKind.CLOUD_CONVERSE.value,
        ):
            chain.append((ProviderKind.LOCAL.value, SECONDARY_MAX_RETRIES))

        last_error: Optional[ProviderError] = None
        for kind, max_retries in chain:
            try:
                text = self._run_provider(kind, config, max_retries, prompt, control)
            except ProviderConfigurationError as e:
                logger.error("provider_misconfigured", provider=kind, error=e.message)
                last_error = e
                break
            except ProviderError as e:
                logger.warning("provider_exhausted", provider=kind, error=e.message)
                last_error = e
                continue

            if config.max_length:
                text = truncate_implementation_text(text, config.max_length)
            logger.info("generation_succeeded", control_id=control.id, provider=kind, length=len(text))
            return GenerationAttemptResult(text=text, generated=True, attempted=True, provider=kind)

        if not config.fallback_to_pattern_matching:
            logger.error("generation_failed_no_fallback", control_id=control.id)
            raise last_error

        logger.info("generation_fallback", control_id=control.id, error=last_error.message)
        return GenerationAttemptResult(
            text=fallback_text,
            generated=False,
            attempted=True,
            provider=config.provider,
            used_fallback=True,
            error=last_error.message,
        )

    def _run_provider(
        self,
        kind: str,
        config: ProviderConfig,
        max_retries: int,
        prompt: GenerationPrompt,
        control: Control,
    ) -> str:
        provider = self._provider_factory(kind, config)
        last_error: Optional[ProviderError] = None
        for attempt in range(max_retries + 1):
            try:
                return self._attempt(provider, prompt, control, attempt)
            except ProviderConfigurationError:
                raise
            except ProviderError as e:
                last_error = e
                logger.warning(
                    "generation_attempt_failed",
                    provider=provider.name,
                    attempt=attempt + 1,
                    max_attempts=max_retries + 1,
                    error_type=e.error_type,
                    error=e.message,
                )
                if attempt < max_retries:
                    self._sleep(BACKOFF_SECONDS * (attempt + 1))
        raise last_error

    def _attempt(
        self,
        provider: ProviderAdapter,
        prompt: GenerationPrompt,
        control: Control,
        attempt: int,
    ) -> str:
        started = self._clock()
        raw: Optional[str] = None
        try:
            reply = provider.generate(prompt)
            raw = reply.text
            text = normalize_response(raw)
            if not text or len(text) <= MIN_ACCEPTED_LENGTH:
                raise InvalidResponseError(provider.name, "too short")
        except Exception as e:
            error = handle_provider_error(e, provider.name, provider.endpoint, provider.timeout)
            self._report(provider, prompt, control, attempt, started, raw, error=error)
            if error is e:
                raise
            raise error from e

        self._report(
            provider, prompt, control, attempt, started, text,
            input_tokens=reply.input_tokens, output_tokens=reply.output_tokens,
        )
        return text

    def _report(
        self,
        provider: ProviderAdapter,
        prompt: GenerationPrompt,
        control: Control,
        attempt: int,
        started: float,
        response: Optional[str],
        error: Optional[ProviderError] = None,
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
    ) -> None:
        try:
            self.telemetry.record(TelemetryRecord(
                provider=provider.name,
                model=provider.model,
                prompt=prompt.user,
                response=response,
                latency_ms=int((self._clock() - started) * 1000),
                status="error" if error else "success",
                error=error.message if error else None,
                error_type=error.error_type if error else None,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                metadata={
                    "control_id": control.id,
                    "control_family": control.family,
                    "attempt": attempt + 1,
                    "prompt_version": self.prompt_builder.version,
                },
            ))
        except Exception as e:
            logger.warning("telemetry_failed", provider=provider.name, error=str(e))
