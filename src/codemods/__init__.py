"""Codemod catalog."""

from .catalog import CatalogOrderError, CodemodCatalog, CodemodDescriptor, DEFAULT_CATALOG

__all__ = [
    "CatalogOrderError",
    "CodemodCatalog",
    "CodemodDescriptor",
    "DEFAULT_CATALOG",
]
