"""Configuration for the control suggestion pipeline."""
from control_advisor.config.loader import ConfigLoader, load_settings
from control_advisor.config.settings import (
    ProviderConfig,
    ProviderKind,
    SuggestionSettings,
)

__all__ = [
    "ConfigLoader",
    "ProviderConfig",
    "ProviderKind",
    "SuggestionSettings",
    "load_settings",
]
