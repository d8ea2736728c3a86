"""
Provider registry.

Maps provider ids to EventProvider classes and builds the enabled providers
from configuration.
"""

from __future__ import annotations

import logging

import httpx

from eventradar.configs.config import Config
from eventradar.ingestion.providers.base import EventProvider, ProviderConfig

logger = logging.getLogger(__name__)

PROVIDER_REGISTRY: dict[str, type[EventProvider]] = {}


def register_provider(provider_id: str):
    """
    Decorate an EventProvider subclass to register it under an id.

    Usage:
        @register_provider("yelp")
        class YelpProvider(EventProvider):
            ...
    """

    def decorator(provider_cls: type[EventProvider]) -> type[EventProvider]:
        PROVIDER_REGISTRY[provider_id] = provider_cls
        return provider_cls

    return decorator


def create_providers_from_config(
    config: dict | None = None,
    settings=None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[EventProvider]:
    """
    Build all enabled providers, in configuration order.

    Providers whose credentials are missing are skipped with a warning.

    Args:
        config: Parsed aggregation.yaml; loaded from Config when omitted
        settings: Application Settings holding provider credentials
        transport: Optional httpx transport shared by all providers

    Returns:
        List of ready-to-use providers
    """
    if config is None:
        config = Config.load_aggregation_config()

    providers: list[EventProvider] = []
    for provider_id, block in (config.get("providers") or {}).items():
        block = block or {}
        if not block.get("enabled", True):
            logger.info(f"Provider '{provider_id}' disabled; skipping")
            continue

        provider_cls = PROVIDER_REGISTRY.get(provider_id)
        if provider_cls is None:
            logger.warning(f"No provider registered for '{provider_id}'; skipping")
            continue

        credentials = {
            name: settings.secret(name) if settings is not None else None
            for name in block.get("credentials") or []
        }
        missing = [name for name, value in credentials.items() if not value]
        if missing:
            logger.warning(
                f"Provider '{provider_id}' missing credentials {missing}; skipping"
            )
            continue

        provider_config = ProviderConfig.from_dict(provider_id, block)
        providers.append(provider_cls(provider_config, credentials, transport=transport))
        logger.info(f"Registered provider: {provider_id}")

    return providers
