"""Configuration loader for the event aggregation service."""

from functools import lru_cache
from pathlib import Path

import yaml


class Config:
    """YAML-backed configuration for providers, search defaults and categories."""

    # This points to eventradar/configs/
    CONFIG_DIR = Path(__file__).parent.resolve()
    # This points to the project root
    PROJECT_ROOT = CONFIG_DIR.parent.parent

    AGGREGATION_CONFIG_PATH = CONFIG_DIR / "aggregation.yaml"
    CATEGORY_MAPPING_PATH = CONFIG_DIR / "category_mapping.yaml"

    @classmethod
    @lru_cache
    def load_aggregation_config(cls) -> dict:
        """Load the YAML configuration for providers, geocoding and sessions."""
        return load_yaml(cls.AGGREGATION_CONFIG_PATH)

    @classmethod
    @lru_cache
    def load_category_mapping(cls) -> dict:
        """Load the provider category -> canonical category table."""
        return load_yaml(cls.CATEGORY_MAPPING_PATH)

    @classmethod
    def get_provider_config(cls, provider_id: str) -> dict:
        """Return the config block of a single provider (empty if absent)."""
        providers = cls.load_aggregation_config().get("providers") or {}
        return providers.get(provider_id) or {}

    @classmethod
    def get_search_defaults(cls) -> dict:
        """Return the default search parameters."""
        return cls.load_aggregation_config().get("search") or {}


def load_yaml(path: Path) -> dict:
    """Read a YAML file into a dict, failing loudly when it is missing."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing config at {path}")

    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
