from __future__ import annotations

from app.integrations.common import (
    IntegrationDisabledError,
    IntegrationMisconfiguredError,
    settings_str,
    settings_value,
)
from app.integrations.safesearch.base import SafeSearchProvider
from app.integrations.safesearch.mock_provider import MockSafeSearchProvider
from app.integrations.safesearch.vision_provider import VisionSafeSearchProvider


def _is_production(settings) -> bool:
    return settings_str(settings, "RUMMAGE_ENV", "dev").lower() in ("prod", "production")


def build_safesearch_provider(settings) -> SafeSearchProvider:
    provider = settings_str(settings, "SAFESEARCH_PROVIDER", "mock").lower()

    if provider == "disabled":
        raise IntegrationDisabledError("INTEGRATION_DISABLED:safesearch")

    if provider == "mock":
        # The mock approves everything it has not been told about.
        if _is_production(settings):
            raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:safesearch_provider=mock in production")
        return MockSafeSearchProvider()

    if provider != "vision":
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:safesearch_provider={provider}")

    timeout = float(settings_value(settings, "MODERATION_TIMEOUT_SECONDS", 30) or 30)
    return VisionSafeSearchProvider(default_timeout=timeout)


def safesearch_health(settings) -> dict:
    provider = settings_str(settings, "SAFESEARCH_PROVIDER", "mock").lower()
    if provider == "disabled":
        status = "disabled"
    elif provider == "vision":
        status = "configured"
    elif provider == "mock":
        status = "misconfigured" if _is_production(settings) else "mock"
    else:
        status = "misconfigured"
    return {
        "status": status,
        "provider": provider,
    }
