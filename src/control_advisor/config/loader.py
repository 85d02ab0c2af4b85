"""Configuration loader for the control suggestion pipeline.

The file is read again on every ``load()`` so operator changes apply to
the next call without a restart. Callers pass the resulting
``SuggestionSettings`` explicitly into the pipeline.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
import yaml
from pydantic import ValidationError

from control_advisor.config.settings import SuggestionSettings

logger = structlog.get_logger(__name__)

CONFIG_FILE = Path(__file__).parent / "suggestion_config.yaml"
ENV_CONFIG_PATH = "CONTROL_ADVISOR_CONFIG"

# Environment variable -> dot-notation key
ENV_OVERRIDES = {
    "CLOUD_CHAT_API_KEY": "provider.cloud_chat.api_key",
    "AWS_REGION": "provider.cloud_converse.region",
    "AWS_ACCESS_KEY_ID": "provider.cloud_converse.access_key_id",
    "AWS_SECRET_ACCESS_KEY": "provider.cloud_converse.secret_access_key",
}
LOCAL_URL_ENV_KEYS = ("OLLAMA_URL", "OLLAMA_HOST")


def _lookup(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value: Any = data
    for k in key.split("."):
        if isinstance(value, Mapping):
            value = value.get(k)
            if value is None:
                return default
        else:
            return default
    return value


def _assign(data: dict[str, Any], key: str, value: Any) -> None:
    *parents, leaf = key.split(".")
    node = data
    for k in parents:
        child = node.get(k)
        if not isinstance(child, dict):
            child = {}
            node[k] = child
        node = child
    node[leaf] = value


class ConfigLoader:
    """Reads pipeline configuration from a YAML file plus environment."""

    def __init__(self, path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        env_path = os.getenv(ENV_CONFIG_PATH)
        self.path = Path(path) if path else Path(env_path) if env_path else CONFIG_FILE
        self._environ = environ if environ is not None else os.environ
        self._raw: dict[str, Any] = {}

    def _read_file(self) -> dict[str, Any]:
        if not self.path.exists():
            logger.warning("config_file_not_found", path=str(self.path))
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("config_load_failed", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.error("config_not_a_mapping", path=str(self.path))
            return {}
        return data

    def _apply_env_overrides(self, data: dict[str, Any]) -> None:
        if not _lookup(data, "provider.local.url"):
            for env_key in LOCAL_URL_ENV_KEYS:
                if self._environ.get(env_key):
                    _assign(data, "provider.local.url", self._environ[env_key])
                    logger.info("config_env_override", key="provider.local.url", source=env_key)
                    break
        for env_key, key in ENV_OVERRIDES.items():
            if self._environ.get(env_key) and not _lookup(data, key):
                _assign(data, key, self._environ[env_key])
                logger.info("config_env_override", key=key, source=env_key)

    def load(self) -> SuggestionSettings:
        """Read the configuration source and build fresh settings."""
        data = self._read_file()
        self._apply_env_overrides(data)
        self._raw = data
        try:
            settings = SuggestionSettings.model_validate(data)
        except ValidationError as e:
            logger.error("config_invalid", path=str(self.path), errors=e.error_count())
            settings = SuggestionSettings()
        logger.debug(
            "config_loaded",
            path=str(self.path),
            provider=settings.provider.provider,
            enabled=settings.provider.enabled,
        )
        return settings

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw value from the last load by dot-notation key.

        Examples:
            loader.get("provider.local.model")
            loader.get("nonexistent.key", default=100)
        """
        return _lookup(self._raw, key, default)


def load_settings(path: Optional[Path] = None) -> SuggestionSettings:
    """Load settings from ``path`` (or the default location)."""
    return ConfigLoader(path).load()
