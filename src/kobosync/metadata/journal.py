# ABOUTME: Session-local record of added/changed books, persisted as metadata_update.kobouc.
# ABOUTME: The next session reads the pending file and writes its fields back to the catalog.

import logging
from pathlib import Path

from kobosync.metadata.jsonfile import CacheCorruptError, read_json_file, write_json_file
from kobosync.metadata.mapping import dict_to_metadata, metadata_to_dict
from kobosync.metadata.store import MetadataStore
from kobosync.metadata.types import BookMetadata

logger = logging.getLogger(__name__)

PENDING_UPDATE_FILE = "metadata_update.kobouc"


class UpdateJournal:
    """Tracks the books added or changed during this session.

    Starts empty. Every accumulated record also lands in the live store, so
    readers of the store always see the latest metadata.
    """

    def __init__(self, path: Path, store: MetadataStore) -> None:
        self.path = path
        self._store = store
        self._updates: dict[str, BookMetadata] = {}

    @property
    def updates(self) -> dict[str, BookMetadata]:
        return dict(self._updates)

    def __len__(self) -> int:
        return len(self._updates)

    def accumulate(self, content_id: str, metadata: BookMetadata) -> None:
        """Upsert a record into both the update set and the metadata store."""
        self._updates[content_id] = metadata
        self._store.put(content_id, metadata)

    def discard(self, content_id: str) -> None:
        """Forget a pending update, e.g. after the book was deleted."""
        self._updates.pop(content_id, None)

    def flush(self) -> bool:
        """Write the update set to the pending file if there is anything in it.

        Returns:
            True if the file was written.
        """
        if not self._updates:
            return False
        write_json_file(self.path, [metadata_to_dict(md) for md in self._updates.values()])
        logger.info("Wrote %d pending update(s) to %s", len(self._updates), self.path)
        return True

    def load_pending(self) -> list[BookMetadata]:
        """Read the records left by a previous session.

        Raises:
            CacheCorruptError: If the pending file exists but cannot be parsed.
        """
        data = read_json_file(self.path)
        if data is None:
            return []
        if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
            raise CacheCorruptError(f"{self.path} does not hold a JSON array of objects")
        return [dict_to_metadata(entry) for entry in data]

    def clear_pending(self) -> None:
        """Delete the pending file; its absence means nothing is left to write back."""
        self.path.unlink(missing_ok=True)
