"""HTTP client for the catalog API."""

from .catalog_client import CatalogAPIError, CatalogClient

__all__ = ["CatalogAPIError", "CatalogClient"]
