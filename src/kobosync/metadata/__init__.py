# ABOUTME: Metadata package: the BookMetadata record, its side-cache store and update journal.
# ABOUTME: Exports the types most callers need.

from kobosync.metadata.journal import PENDING_UPDATE_FILE, UpdateJournal
from kobosync.metadata.jsonfile import CacheCorruptError
from kobosync.metadata.store import METADATA_CACHE_FILE, MetadataStore
from kobosync.metadata.types import BookMetadata

__all__ = [
    "METADATA_CACHE_FILE",
    "PENDING_UPDATE_FILE",
    "BookMetadata",
    "CacheCorruptError",
    "MetadataStore",
    "UpdateJournal",
]
