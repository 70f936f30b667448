# ABOUTME: Public API for the Kobo catalog database layer.
# ABOUTME: Exports connection management, catalog queries, and row types.

from kobosync.db.catalog import EPUB_MIME_TYPES, NickelCatalog
from kobosync.db.connection import CATALOG_PATH, open_catalog
from kobosync.db.mapping import CatalogRow, catalog_row_to_metadata

__all__ = [
    "CATALOG_PATH",
    "EPUB_MIME_TYPES",
    "CatalogRow",
    "NickelCatalog",
    "catalog_row_to_metadata",
    "open_catalog",
]
