"""
Source Adapters for Event Ingestion.

Adapters provide a unified interface for fetching raw payloads from provider
APIs.

Usage:
    from eventradar.ingestion.adapters import APIAdapter, APIAdapterConfig

    adapter = APIAdapter(APIAdapterConfig(source_id="yelp", base_url=url))
    result = await adapter.fetch(latitude=42.36, longitude=-71.06)
"""

from .api_adapter import APIAdapter, APIAdapterConfig
from .base_adapter import AdapterConfig, BaseSourceAdapter, FetchResult

__all__ = [
    "AdapterConfig",
    "BaseSourceAdapter",
    "FetchResult",
    "APIAdapter",
    "APIAdapterConfig",
]
