"""Settings schema for the suggestion pipeline."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_LOCAL_URL = "http://localhost:11434"
DEFAULT_CLOUD_CHAT_URL = "https://api.mistral.ai/v1/chat/completions"


class ProviderKind(str, Enum):
    """Text generation backends."""
    LOCAL = "local"
    CLOUD_CHAT = "cloud-chat"
    CLOUD_CONVERSE = "cloud-converse"

    @property
    def is_cloud(self) -> bool:
        return self is not ProviderKind.LOCAL


def normalize_local_url(url: str) -> str:
    """Add a missing scheme and drop trailing slashes."""
    url = (url or "").strip()
    if not url:
        return url
    if not url.startswith(("http://", "https://")):
        url = f"http://{url}"
    return url.rstrip("/")


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class SamplingConfig(_Section):
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 150


class LocalProviderConfig(_Section):
    url: str = DEFAULT_LOCAL_URL
    model: str = "mistral:7b"
    api_token: str = ""
    verify_ssl: bool = True

    @field_validator("url", mode="before")
    @classmethod
    def _normalize_url(cls, v: Optional[str]) -> str:
        return normalize_local_url(v or DEFAULT_LOCAL_URL)


class CloudChatConfig(_Section):
    url: str = DEFAULT_CLOUD_CHAT_URL
    model: str = "mistral-small-latest"
    api_key: str = ""


class CloudConverseConfig(_Section):
    region: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"
    verify_ssl: bool = True


class ProviderConfig(_Section):
    """Which provider generates text and how failures are handled."""
    enabled: bool = False
    provider: str = ProviderKind.LOCAL.value
    timeout: float = Field(default=180.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    fallback_to_pattern_matching: bool = True
    use_local_secondary: bool = True
    max_length: Optional[int] = Field(default=None, gt=0)
    local: LocalProviderConfig = Field(default_factory=LocalProviderConfig)
    cloud_chat: CloudChatConfig = Field(default_factory=CloudChatConfig)
    cloud_converse: CloudConverseConfig = Field(default_factory=CloudConverseConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)


class TelemetryConfig(_Section):
    enabled: bool = True
    log_dir: str = "logs"
    max_file_bytes: int = 5 * 1024 * 1024


class SuggestionSettings(_Section):
    """Complete configuration for one pipeline invocation."""
    organization_name: str = "Compliance Team"
    batch_delay: float = Field(default=0.5, ge=0)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
