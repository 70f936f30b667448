# ABOUTME: In-memory map of BookMetadata keyed by ContentID, backed by metadata.calibre.
# ABOUTME: The side-cache is always rewritten whole; a corrupt non-empty cache is fatal.

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from kobosync.device.identity import lpath_to_content_id
from kobosync.metadata.jsonfile import CacheCorruptError, read_json_file, write_json_file
from kobosync.metadata.mapping import dict_to_metadata, metadata_to_dict
from kobosync.metadata.types import BookMetadata

logger = logging.getLogger(__name__)

METADATA_CACHE_FILE = "metadata.calibre"


class MetadataStore:
    """Owns the session's metadata map and its on-disk side-cache."""

    def __init__(self, path: Path, prefix: str) -> None:
        self.path = path
        self._prefix = prefix
        self._records: dict[str, BookMetadata] = {}

    def load(self) -> None:
        """Replace the in-memory map with the contents of the side-cache.

        Each record is keyed by the ContentID recomputed from its lpath; the
        on-disk order is kept. A missing or empty file yields an empty store.

        Raises:
            CacheCorruptError: If the file has content that is not a JSON array.
        """
        data = read_json_file(self.path)
        self._records = {}
        if data is None:
            logger.info("No metadata cache at %s, starting empty", self.path)
            return
        if not isinstance(data, list):
            raise CacheCorruptError(f"{self.path} does not hold a JSON array")

        for entry in data:
            if not isinstance(entry, dict):
                raise CacheCorruptError(f"{self.path} holds a non-object entry: {entry!r}")
            metadata = dict_to_metadata(entry)
            self._records[lpath_to_content_id(metadata.lpath, self._prefix)] = metadata
        logger.info("Loaded %d cached record(s) from %s", len(self._records), self.path)

    def save(self) -> None:
        """Write every record to the side-cache, replacing prior content."""
        write_json_file(self.path, [metadata_to_dict(md) for md in self._records.values()])
        logger.debug("Saved %d record(s) to %s", len(self._records), self.path)

    def get(self, content_id: str) -> BookMetadata | None:
        return self._records.get(content_id)

    def put(self, content_id: str, metadata: BookMetadata) -> None:
        """Insert or unconditionally replace the record for content_id."""
        self._records[content_id] = metadata

    def remove(self, content_id: str) -> BookMetadata | None:
        return self._records.pop(content_id, None)

    def replace(self, records: Mapping[str, BookMetadata]) -> None:
        """Swap in a whole new map (used after reconciliation)."""
        self._records = dict(records)

    def items(self) -> list[tuple[str, BookMetadata]]:
        return list(self._records.items())

    def __contains__(self, content_id: object) -> bool:
        return content_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))
