# ABOUTME: The explicit per-invocation context: storage layout, catalog, store, journal, thumbnails.
# ABOUTME: open_session() runs write-back and reconciliation; close() is the thumbnail barrier.

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from kobosync.config import SyncOptions
from kobosync.core.reconciler import ReconcileResult, reconcile
from kobosync.core.thumbnails import ThumbnailPipeline
from kobosync.core.writeback import apply_pending_updates
from kobosync.db.catalog import NickelCatalog
from kobosync.db.connection import open_catalog
from kobosync.device.identity import (
    ONBOARD_PREFIX,
    SD_PREFIX,
    content_id_to_lpath,
    content_id_to_path,
    lpath_to_content_id,
)
from kobosync.device.info import DeviceInfo, resolve_device_info, save_device_info
from kobosync.device.profile import DeviceProfile, load_device_profile
from kobosync.formats.epub import ContainerReader, EpubContainerReader
from kobosync.metadata.journal import PENDING_UPDATE_FILE, UpdateJournal
from kobosync.metadata.store import METADATA_CACHE_FILE, MetadataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Storage:
    """Where books live for this session and how their ContentIDs are spelled."""

    root: Path
    prefix: str
    use_sd_card: bool = False

    def content_id(self, lpath: str) -> str:
        return lpath_to_content_id(lpath, self.prefix)

    def lpath(self, content_id: str) -> str:
        return content_id_to_lpath(content_id, self.prefix)

    def book_path(self, content_id: str) -> Path:
        return content_id_to_path(self.root, content_id, self.prefix)


def select_storage(
    onboard_root: Path, sd_root: Path | None, options: SyncOptions
) -> Storage:
    """Use the SD card only when one is mounted and the user prefers it."""
    if sd_root is not None and options.prefer_sd_card:
        return Storage(root=sd_root, prefix=SD_PREFIX, use_sd_card=True)
    return Storage(root=onboard_root, prefix=ONBOARD_PREFIX)


@dataclass
class SyncSession:
    """Everything one run of the engine needs, passed explicitly to each operation."""

    options: SyncOptions
    storage: Storage
    catalog: NickelCatalog
    store: MetadataStore
    journal: UpdateJournal
    thumbnails: ThumbnailPipeline
    profile: DeviceProfile
    device_info: DeviceInfo
    written_back: int = 0
    reconcile_result: ReconcileResult = field(default_factory=ReconcileResult)
    _closed: bool = field(default=False, repr=False)

    def close(self) -> None:
        """Wait for all thumbnail units, persist pending updates, close the catalog.

        Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self.thumbnails.shutdown()
            self.journal.flush()
        finally:
            self.catalog.close()


def open_session(
    onboard_root: Path,
    sd_root: Path | None = None,
    options: SyncOptions | None = None,
    reader: ContainerReader | None = None,
) -> SyncSession:
    """Start a session: open the catalog, apply pending write-back, reconcile.

    Steps, in order:
    1. Select the storage and open the catalog under onboard_root (fatal on failure).
    2. Read the device profile (best-effort).
    3. Read or generate device info, without writing it yet.
    4. Load the side-cache (fatal if corrupt).
    5. Apply the previous session's pending updates inside the catalog
       transaction (fatal if the pending file is corrupt).
    6. Reconcile the side-cache with the catalog, saving the rebuilt cache.
    7. Commit the catalog, delete the pending file and save new device info.

    Until step 7 nothing is persisted apart from the cache saved at the very
    end of step 6: a failure closes the catalog, which rolls back the
    write-back, and leaves the pending and device info files as they were.

    Raises:
        sqlite3.Error: If the catalog cannot be opened, queried or written.
        CacheCorruptError: If a non-empty cache file cannot be parsed.
    """
    options = options or SyncOptions()
    reader = reader or EpubContainerReader()
    storage = select_storage(onboard_root, sd_root, options)
    logger.info(
        "Using %s storage at %s", "SD card" if storage.use_sd_card else "internal", storage.root
    )

    conn = open_catalog(onboard_root)
    catalog = NickelCatalog(conn)
    try:
        profile = load_device_profile(onboard_root)
        logger.info("Device model: %s", profile.name)
        device_info, device_info_changed = resolve_device_info(
            storage.root, profile, use_sd_card=storage.use_sd_card
        )
        store = MetadataStore(storage.root / METADATA_CACHE_FILE, storage.prefix)
        store.load()
        journal = UpdateJournal(storage.root / PENDING_UPDATE_FILE, store)

        written_back = apply_pending_updates(catalog, journal, storage.prefix)
        result = reconcile(catalog, store, reader, storage.root, storage.prefix)

        catalog.commit()
        journal.clear_pending()
        if device_info_changed:
            save_device_info(storage.root, device_info)

        thumbnails = ThumbnailPipeline(
            storage.root, profile, options.thumbnail, use_sd_card=storage.use_sd_card
        )
    except BaseException:
        catalog.close()
        raise

    return SyncSession(
        options=options,
        storage=storage,
        catalog=catalog,
        store=store,
        journal=journal,
        thumbnails=thumbnails,
        profile=profile,
        device_info=device_info,
        written_back=written_back,
        reconcile_result=result,
    )


@contextmanager
def session_scope(
    onboard_root: Path,
    sd_root: Path | None = None,
    options: SyncOptions | None = None,
    reader: ContainerReader | None = None,
) -> Iterator[SyncSession]:
    """Context manager around open_session() that always runs the close barrier."""
    session = open_session(onboard_root, sd_root, options, reader)
    try:
        yield session
    finally:
        session.close()
