"""Adapters around the text generation backends.

- LocalProvider: Ollama-style ``/api/generate`` endpoint (+ ``/api/tags`` health check)
- CloudChatProvider: chat-completions endpoint with bearer credential
- CloudConverseProvider: Bedrock messages API with region/credential auth

Adapters enforce the per-call timeout and raise ``ProviderError``
subclasses; retries and fallback belong to the orchestrator.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
import structlog

from control_advisor.config.settings import (
    CloudChatConfig,
    CloudConverseConfig,
    LocalProviderConfig,
    ProviderConfig,
    ProviderKind,
    SamplingConfig,
)
from control_advisor.generation.prompt_builder import GenerationPrompt
from control_advisor.utils.error_handler import (
    InvalidResponseError,
    ProviderConfigurationError,
    ProviderError,
    handle_provider_error,
)
from control_advisor.utils.llm_client import get_bedrock_client, get_http_client

logger = structlog.get_logger(__name__)

HEALTH_CHECK_TIMEOUT = 5.0

HttpClientFactory = Callable[[float, bool], httpx.Client]


@dataclass(frozen=True)
class ProviderReply:
    """Raw text returned by one provider call."""
    text: str
    model: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class ProviderAdapter:
    """Base class for provider adapters."""

    name: str = ""

    def __init__(self, timeout: float, sampling: SamplingConfig):
        self.timeout = timeout
        self.sampling = sampling

    @property
    def model(self) -> str:
        raise NotImplementedError

    @property
    def endpoint(self) -> str:
        return ""

    def _call(self, prompt: GenerationPrompt) -> ProviderReply:
        raise NotImplementedError

    def generate(self, prompt: GenerationPrompt) -> ProviderReply:
        """Run one generation request, mapping failures to ``ProviderError``."""
        try:
            return self._call(prompt)
        except ProviderError:
            raise
        except Exception as e:
            raise handle_provider_error(e, self.name, self.endpoint, self.timeout) from e


class LocalProvider(ProviderAdapter):
    name = ProviderKind.LOCAL.value

    def __init__(
        self,
        config: LocalProviderConfig,
        timeout: float,
        sampling: SamplingConfig,
        http_client_factory: Optional[HttpClientFactory] = None,
    ):
        super().__init__(timeout, sampling)
        self.config = config
        self._client_factory = http_client_factory or get_http_client

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def endpoint(self) -> str:
        return self.config.url

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_token.strip():
            headers["Authorization"] = f"Bearer {self.config.api_token.strip()}"
        return headers

    def _call(self, prompt: GenerationPrompt) -> ProviderReply:
        payload = {
            "model": self.config.model,
            "system": prompt.system,
            "prompt": prompt.user,
            "stream": False,
            "options": {
                "temperature": self.sampling.temperature,
                "top_p": self.sampling.top_p,
                "num_predict": self.sampling.max_tokens,
            },
        }
        with self._client_factory(self.timeout, self.config.verify_ssl) as client:
            response = client.post(f"{self.config.url}/api/generate", json=payload, headers=self._headers())
            response.raise_for_status()
            data = response.json()

        text = data.get("response") if isinstance(data, dict) else None
        if not text:
            raise InvalidResponseError(self.name, "missing 'response' field")
        return ProviderReply(
            text=text,
            model=self.config.model,
            input_tokens=data.get("prompt_eval_count"),
            output_tokens=data.get("eval_count"),
        )

    def list_models(self) -> list[str]:
        """Names of the models served by the local endpoint."""
        headers = self._headers()
        headers.pop("Content-Type")
        try:
            with self._client_factory(HEALTH_CHECK_TIMEOUT, self.config.verify_ssl) as client:
                response = client.get(f"{self.config.url}/api/tags", headers=headers)
                response.raise_for_status()
                data = response.json()
        except Exception as e:
            raise handle_provider_error(e, self.name, self.endpoint, HEALTH_CHECK_TIMEOUT) from e
        return [m.get("name", "") for m in data.get("models", [])]


class CloudChatProvider(ProviderAdapter):
    name = ProviderKind.CLOUD_CHAT.value
    system_role = "system"

    def __init__(
        self,
        config: CloudChatConfig,
        timeout: float,
        sampling: SamplingConfig,
        http_client_factory: Optional[HttpClientFactory] = None,
    ):
        if not config.api_key:
            raise ProviderConfigurationError(self.name, "Cloud chat API key not configured")
        super().__init__(timeout, sampling)
        self.config = config
        self._client_factory = http_client_factory or get_http_client

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def endpoint(self) -> str:
        return self.config.url

    def _call(self, prompt: GenerationPrompt) -> ProviderReply:
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": self.system_role, "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": self.sampling.temperature,
            "top_p": self.sampling.top_p,
            "max_tokens": self.sampling.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        with self._client_factory(self.timeout, True) as client:
            response = client.post(self.config.url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()

        choices = data.get("choices") or []
        if not choices:
            raise InvalidResponseError(self.name, "no choices")
        usage: dict[str, Any] = data.get("usage") or {}
        return ProviderReply(
            text=choices[0]["message"]["content"] or "",
            model=data.get("model", self.config.model),
            input_tokens=usage.get("prompt_tokens"),
            output_tokens=usage.get("completion_tokens"),
        )


class CloudConverseProvider(ProviderAdapter):
    name = ProviderKind.CLOUD_CONVERSE.value

    def __init__(
        self,
        config: CloudConverseConfig,
        timeout: float,
        sampling: SamplingConfig,
        available: bool,
        client_factory: Optional[Callable[[CloudConverseConfig, float], Any]] = None,
    ):
        if not available:
            raise ProviderConfigurationError(
                self.name,
                "Cloud converse provider is not installed",
                "Install the Bedrock extra: pip install 'anthropic[bedrock]'",
            )
        if not config.region:
            raise ProviderConfigurationError(self.name, "Cloud converse region not configured")
        if not (config.access_key_id and config.secret_access_key):
            raise ProviderConfigurationError(self.name, "Cloud converse credentials not configured")
        super().__init__(timeout, sampling)
        self.config = config
        self._client_factory = client_factory or get_bedrock_client

    @property
    def model(self) -> str:
        return self.config.model_id

    @property
    def endpoint(self) -> str:
        return f"bedrock-runtime.{self.config.region}"

    def _call(self, prompt: GenerationPrompt) -> ProviderReply:
        client = self._client_factory(self.config, self.timeout)
        response = client.messages.create(
            model=self.config.model_id,
            max_tokens=self.sampling.max_tokens,
            temperature=self.sampling.temperature,
            system=prompt.system,
            messages=[{"role": "user", "content": prompt.user}],
        )
        text = "".join(
            block.text for block in (response.content or []) if getattr(block, "type", "") == "text"
        )
        if not text:
            raise InvalidResponseError(self.name, "no text content")
        usage = response.usage
        return ProviderReply(
            text=text,
            model=self.config.model_id,
            input_tokens=usage.input_tokens if usage else None,
            output_tokens=usage.output_tokens if usage else None,
        )


def build_provider(
    kind: str,
    config: ProviderConfig,
    cloud_converse_available: bool,
    http_client_factory: Optional[HttpClientFactory] = None,
) -> ProviderAdapter:
    """Create the adapter for ``kind``; configuration problems raise immediately."""
    if kind == ProviderKind.LOCAL.value:
        return LocalProvider(config.local, config.timeout, config.sampling, http_client_factory)
    if kind == ProviderKind.CLOUD_CHAT.value:
        return CloudChatProvider(config.cloud_chat, config.timeout, config.sampling, http_client_factory)
    if kind == ProviderKind.CLOUD_CONVERSE.value:
        return CloudConverseProvider(
            config.cloud_converse, config.timeout, config.sampling, cloud_converse_available
        )
    raise ProviderConfigurationError(kind or "unknown", f"Unknown provider: {kind}")


def check_availability(config: ProviderConfig, cloud_converse_available: bool) -> dict[str, Any]:
    """Report whether the configured primary provider can be used."""
    if not config.enabled:
        return {"available": False, "reason": "AI generation is disabled in configuration"}

    try:
        provider = build_provider(config.provider, config, cloud_converse_available)
    except ProviderConfigurationError as e:
        return {"available": False, "provider": config.provider, "reason": e.message}

    if not isinstance(provider, LocalProvider):
        return {
            "available": True,
            "provider": provider.name,
            "reason": "Credentials configured (availability not tested)",
        }

    try:
        models = provider.list_models()
    except ProviderError as e:
        logger.error("provider_health_check_failed", provider=provider.name, error=e.message)
        return {
            "available": False,
            "provider": provider.name,
            "url": provider.endpoint,
            "reason": e.message,
        }

    has_model = provider.model in models
    return {
        "available": has_model,
        "provider": provider.name,
        "url": provider.endpoint,
        "models": models,
        "configured_model": provider.model,
        "reason": "Available" if has_model else (
            f"Model {provider.model} not found. Available models: {', '.join(models)}"
        ),
    }
