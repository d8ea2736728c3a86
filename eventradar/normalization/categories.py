"""
Category normalization.

Maps each provider's category vocabulary onto one canonical set. The table is
loaded once from ``category_mapping.yaml``, frozen into read-only mappings and
handed to the normalizer; nothing mutates it afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from eventradar.configs.config import Config

DEFAULT_CATEGORY = "Other"


class CategoryNormalizer:
    """
    Many-to-one mapping from provider categories to canonical categories.

    Lookup keys are lower-cased and stripped. A per-provider override table
    wins over the shared table; unmapped categories pass through unchanged and
    empty ones become the default category.
    """

    def __init__(
        self,
        mapping: Mapping[str, str],
        provider_overrides: Mapping[str, Mapping[str, str]] | None = None,
        default_category: str = DEFAULT_CATEGORY,
    ):
        self._mapping = MappingProxyType(_lower_keys(mapping))
        self._overrides = MappingProxyType(
            {
                provider_id.lower(): MappingProxyType(_lower_keys(table))
                for provider_id, table in (provider_overrides or {}).items()
            }
        )
        self.default_category = default_category

    @classmethod
    def from_config(cls, table: dict | None = None) -> "CategoryNormalizer":
        """
        Build a normalizer from the category mapping YAML.

        Args:
            table: Parsed mapping document; loaded from Config when omitted
        """
        if table is None:
            table = Config.load_category_mapping()
        return cls(
            mapping=table.get("shared") or {},
            provider_overrides=table.get("providers") or {},
            default_category=table.get("default_category") or DEFAULT_CATEGORY,
        )

    @property
    def mapping(self) -> Mapping[str, str]:
        return self._mapping

    @property
    def canonical_categories(self) -> frozenset[str]:
        values = set(self._mapping.values())
        for table in self._overrides.values():
            values.update(table.values())
        values.add(self.default_category)
        return frozenset(values)

    def normalize(self, source_category: str | None, provider_id: str | None = None) -> str:
        """
        Return the canonical category for a provider category.

        Args:
            source_category: Category string as the provider reported it
            provider_id: Provider whose override table should be consulted first

        Returns:
            Canonical category name
        """
        if source_category is None:
            return self.default_category

        raw = str(source_category).strip()
        if not raw:
            return self.default_category

        key = raw.lower()
        if provider_id:
            override = self._overrides.get(provider_id.lower())
            if override and key in override:
                return override[key]

        return self._mapping.get(key, raw)


def _lower_keys(table: Mapping[str, str]) -> dict[str, str]:
    return {str(k).strip().lower(): str(v) for k, v in table.items()}
