"""
Base Source Adapter.

Abstract base class defining the interface for all source adapters.
Adapters only move raw payloads; turning them into events is the provider's
job.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class FetchResult:
    """
    Result of a data fetch operation.

    ``success`` means the source answered; an empty ``raw_data`` list with no
    errors is a legitimate "nothing nearby" answer.
    """

    source_id: str
    raw_data: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    fetch_started_at: datetime | None = None
    fetch_ended_at: datetime | None = None

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def total_fetched(self) -> int:
        return len(self.raw_data)

    @property
    def duration_seconds(self) -> float:
        """Calculate fetch duration."""
        if self.fetch_started_at and self.fetch_ended_at:
            return (self.fetch_ended_at - self.fetch_started_at).total_seconds()
        return 0.0


@dataclass
class AdapterConfig:
    """
    Base configuration for source adapters.

    Extended by specific adapter types.
    """

    source_id: str
    request_timeout: float = 30
    max_retries: int = 3
    rate_limit_per_second: float = 1.0
    backoff_base_seconds: float = 1.0
    custom_config: dict[str, Any] = field(default_factory=dict)


class BaseSourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must implement:
        - fetch(): Fetch raw data from the source
        - _validate_config(): Validate adapter-specific configuration
    """

    def __init__(self, config: AdapterConfig):
        """
        Initialize the adapter.

        Args:
            config: AdapterConfig with source-specific settings
        """
        self.config = config
        self.logger = logging.getLogger(f"adapter.{config.source_id}")
        self._validate_config()

    @property
    def source_id(self) -> str:
        """Get the source identifier."""
        return self.config.source_id

    @abstractmethod
    async def fetch(self, **kwargs) -> FetchResult:
        """
        Fetch raw data from the source.

        Args:
            **kwargs: Source-specific fetch parameters

        Returns:
            FetchResult with raw data and metadata
        """

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate adapter-specific configuration.

        Raises:
            ValueError: If configuration is invalid
        """

    async def close(self) -> None:
        """Release any resources held by the adapter."""

    async def __aenter__(self) -> "BaseSourceAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
