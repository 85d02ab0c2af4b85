"""Shared client factories for the text generation providers.

Centralizes creation of HTTP and Bedrock clients with consistent SSL
and timeout handling.
"""
from __future__ import annotations

import importlib.util

import httpx
import structlog
from anthropic import AnthropicBedrock

from control_advisor.config.settings import CloudConverseConfig

logger = structlog.get_logger(__name__)

# Bedrock request signing needs the SDK's optional AWS dependencies
BEDROCK_EXTRA_MODULES = ("boto3", "botocore")


def cloud_converse_available() -> bool:
    """Whether the Bedrock extra of the Anthropic SDK is installed.

    Resolved once at startup and injected into the orchestrator.
    """
    available = all(importlib.util.find_spec(m) is not None for m in BEDROCK_EXTRA_MODULES)
    if not available:
        logger.info("cloud_converse_unavailable", missing_extra="anthropic[bedrock]")
    return available


def get_http_client(timeout: float, verify_ssl: bool = True) -> httpx.Client:
    """Create an httpx client for one provider call.

    Redirects are not followed; a redirecting inference endpoint is
    reported as an error response instead.
    """
    return httpx.Client(
        timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
        verify=verify_ssl,
        follow_redirects=False,
    )


def get_bedrock_client(config: CloudConverseConfig, timeout: float) -> AnthropicBedrock:
    """Create a region/credential authenticated Bedrock messages client.

    SSL verification follows ``config.verify_ssl``; disable it only behind
    an intercepting corporate proxy.
    """
    kwargs = {
        "aws_region": config.region,
        "aws_access_key": config.access_key_id,
        "aws_secret_key": config.secret_access_key,
        "timeout": timeout,
        "max_retries": 0,
    }
    if not config.verify_ssl:
        kwargs["http_client"] = httpx.Client(verify=False, timeout=timeout)
    return AnthropicBedrock(**kwargs)
