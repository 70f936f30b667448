# ABOUTME: Rebuilds the metadata store from the catalog, the side-cache and the book files.
# ABOUTME: Catalog presence is authoritative; cached records win; EPUBs fill in the rest.

import html
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from kobosync.db.catalog import EPUB_MIME_TYPES, NickelCatalog
from kobosync.db.mapping import catalog_row_to_metadata, parse_series_number
from kobosync.device.identity import content_id_to_lpath, content_id_to_path
from kobosync.formats.epub import ContainerReader, EpubReadError, PackageMetadata
from kobosync.metadata.store import MetadataStore
from kobosync.metadata.types import BookMetadata

logger = logging.getLogger(__name__)

_AUTHOR_ROLE = "aut"


@dataclass
class ReconcileResult:
    """Summary of a reconciliation pass."""

    cached: int = 0
    synthesized: int = 0
    enrichment_failed: int = 0
    dropped: int = 0

    @property
    def total(self) -> int:
        return self.cached + self.synthesized


def enrich_from_package(metadata: BookMetadata, package: PackageMetadata) -> None:
    """Overlay container-declared metadata onto a record synthesized from the catalog.

    A calibre-scheme identifier is preferred as the record's uuid over a plain
    uuid-scheme one. Only creators with the author role become authors.
    """
    for scheme, value in package.identifiers:
        key = scheme.lower()
        if key == "calibre":
            metadata.uuid = value
        elif key == "uuid":
            if not metadata.uuid:
                metadata.uuid = value
        elif key:
            metadata.identifiers[key] = value

    if package.title:
        metadata.title = package.title
    if package.description:
        metadata.comments = html.unescape(package.description)
    if package.languages:
        metadata.languages.extend(package.languages)

    authors = [name for name, role in package.creators if role == _AUTHOR_ROLE]
    if authors:
        metadata.authors = authors

    if package.publisher:
        metadata.publisher = package.publisher
    if package.date:
        metadata.pubdate = package.date

    meta = package.meta
    if "calibre:timestamp" in meta:
        metadata.timestamp = meta["calibre:timestamp"]
    if "calibre:series" in meta:
        metadata.series = meta["calibre:series"]
    if "calibre:series_index" in meta:
        index = parse_series_number(meta["calibre:series_index"])
        if index is not None:
            metadata.series_index = index
    if "calibre:title_sort" in meta:
        metadata.title_sort = meta["calibre:title_sort"]
    if "calibre:author_link_map" in meta:
        try:
            link_map = json.loads(html.unescape(meta["calibre:author_link_map"]))
        except json.JSONDecodeError:
            link_map = None
        if isinstance(link_map, dict):
            metadata.author_link_map = {str(k): str(v) for k, v in link_map.items()}


def stat_book(metadata: BookMetadata, path: Path) -> None:
    """Fill size and last_modified from the book file, if it can be stat'ed."""
    try:
        stat = path.stat()
    except OSError as exc:
        logger.debug("Cannot stat %s: %s", path, exc)
        return
    metadata.size = stat.st_size
    metadata.last_modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()


def reconcile(
    catalog: NickelCatalog,
    store: MetadataStore,
    reader: ContainerReader,
    root: Path,
    prefix: str,
) -> ReconcileResult:
    """Rebuild the store so it holds exactly the books the catalog knows about.

    The store must already be loaded; its keys are ContentIDs recomputed from
    each cached record's lpath. For every catalog book:

    1. A cached record is adopted verbatim.
    2. Otherwise a record is synthesized from the catalog columns, enriched
       from the EPUB package when the MIME type is an EPUB, and stat'ed for
       size and modification time.

    Cached records without a catalog row are dropped. The rebuilt store is
    saved unconditionally.

    Raises:
        sqlite3.Error: If the catalog query or a row scan fails. Nothing is saved.
    """
    result = ReconcileResult()
    cached = dict(store.items())
    rebuilt: dict[str, BookMetadata] = {}

    for row in catalog.iter_books(prefix):
        content_id = row.content_id
        if content_id in cached:
            rebuilt[content_id] = cached[content_id]
            result.cached += 1
            continue

        logger.info("Book not in cache: %s", content_id)
        book_path = content_id_to_path(root, content_id, prefix)
        metadata = catalog_row_to_metadata(row, content_id_to_lpath(content_id, prefix))

        if row.mime_type in EPUB_MIME_TYPES:
            try:
                enrich_from_package(metadata, reader.read(book_path))
            except EpubReadError as exc:
                logger.warning("Skipping EPUB metadata for %s: %s", content_id, exc)
                result.enrichment_failed += 1

        stat_book(metadata, book_path)
        rebuilt[content_id] = metadata
        result.synthesized += 1

    for content_id in cached.keys() - rebuilt.keys():
        logger.info("Dropping cached record not in catalog: %s", content_id)
        result.dropped += 1

    store.replace(rebuilt)
    store.save()
    logger.info(
        "Reconciled %d book(s): %d cached, %d new, %d dropped",
        result.total,
        result.cached,
        result.synthesized,
        result.dropped,
    )
    return result
