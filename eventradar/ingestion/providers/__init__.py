"""
External event providers.

Importing this package registers every built-in provider.

Usage:
    from eventradar.ingestion.providers import create_providers_from_config

    providers = create_providers_from_config(settings=get_settings())
"""

from . import amadeus, ticketmaster, yelp  # noqa: F401  (registers providers)
from .base import EventProvider, ProviderConfig
from .registry import PROVIDER_REGISTRY, create_providers_from_config, register_provider

__all__ = [
    "EventProvider",
    "ProviderConfig",
    "PROVIDER_REGISTRY",
    "register_provider",
    "create_providers_from_config",
]
