"""Catalogue adapter factory.

Uses FakeCatalogue by default. Other adapters are selected with the
CATALOGUE_ADAPTER environment variable.
"""

import os

from storefront.catalogue.port import CatalogueReader

_catalogue_instance: CatalogueReader | None = None


def get_catalogue() -> CatalogueReader:
    """Return the configured catalogue adapter (singleton)."""
    global _catalogue_instance
    if _catalogue_instance is None:
        adapter = os.environ.get("CATALOGUE_ADAPTER", "fake")
        if adapter == "fake":
            from storefront.catalogue.fake_adapter import FakeCatalogue

            _catalogue_instance = FakeCatalogue()
        else:
            raise ValueError(f"Unknown catalogue adapter: {adapter}")
    return _catalogue_instance


def set_catalogue(catalogue: CatalogueReader) -> None:
    """Override the active catalogue (useful for tests)."""
    global _catalogue_instance
    _catalogue_instance = catalogue


def reset_catalogue() -> None:
    """Reset the catalogue singleton (useful for testing)."""
    global _catalogue_instance
    _catalogue_instance = None
