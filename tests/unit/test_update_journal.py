# ABOUTME: Unit tests for UpdateJournal, the session's pending-update set.
# ABOUTME: Validates store mirroring, conditional flush and pending-file lifecycle.

import json
from pathlib import Path

import pytest

from kobosync.device.identity import ONBOARD_PREFIX
from kobosync.metadata.journal import PENDING_UPDATE_FILE, UpdateJournal
from kobosync.metadata.jsonfile import CacheCorruptError
from kobosync.metadata.store import METADATA_CACHE_FILE, MetadataStore
from kobosync.metadata.types import BookMetadata


@pytest.fixture
def store(tmp_path: Path) -> MetadataStore:
    return MetadataStore(tmp_path / METADATA_CACHE_FILE, ONBOARD_PREFIX)


@pytest.fixture
def journal(tmp_path: Path, store: MetadataStore) -> UpdateJournal:
    return UpdateJournal(tmp_path / PENDING_UPDATE_FILE, store)


class TestAccumulate:
    """Tests for accumulate and discard."""

    def test_mirrors_into_store(self, journal: UpdateJournal, store: MetadataStore) -> None:
        """An accumulated record is visible in the store immediately."""
        md = BookMetadata(lpath="a.epub", title="A")
        journal.accumulate("cid", md)
        assert store.get("cid") is md
        assert len(journal) == 1

    def test_upsert(self, journal: UpdateJournal) -> None:
        """The same ContentID twice keeps only the latest record."""
        journal.accumulate("cid", BookMetadata(lpath="a.epub", title="Old"))
        journal.accumulate("cid", BookMetadata(lpath="a.epub", title="New"))
        assert len(journal) == 1
        assert journal.updates["cid"].title == "New"

    def test_discard(self, journal: UpdateJournal) -> None:
        """discard() forgets the pending update but not the store record."""
        journal.accumulate("cid", BookMetadata(lpath="a.epub"))
        journal.discard("cid")
        journal.discard("never-there")
        assert len(journal) == 0


class TestFlush:
    """Tests for flush."""

    def test_empty_journal_writes_nothing(self, journal: UpdateJournal) -> None:
        """No updates means no pending file."""
        assert journal.flush() is False
        assert not journal.path.exists()

    def test_writes_array(self, journal: UpdateJournal) -> None:
        """Updates are written as a JSON array of metadata objects."""
        journal.accumulate("cid", BookMetadata(lpath="a.epub", comments="Hello"))
        assert journal.flush() is True
        data = json.loads(journal.path.read_text())
        assert data[0]["lpath"] == "a.epub"
        assert data[0]["comments"] == "Hello"


class TestPending:
    """Tests for load_pending and clear_pending."""

    def test_no_file(self, journal: UpdateJournal) -> None:
        """No pending file means nothing to write back."""
        assert journal.load_pending() == []

    def test_load_after_flush(self, tmp_path: Path, journal: UpdateJournal) -> None:
        """A new journal over the same file sees the flushed records."""
        journal.accumulate("cid", BookMetadata(lpath="a.epub", series="S", series_index=2.0))
        journal.flush()
        fresh = UpdateJournal(journal.path, MetadataStore(tmp_path / "other", ONBOARD_PREFIX))
        pending = fresh.load_pending()
        assert [(md.lpath, md.series, md.series_index) for md in pending] == [("a.epub", "S", 2.0)]
        assert len(fresh) == 0

    def test_corrupt_file(self, journal: UpdateJournal) -> None:
        """A pending file that is not an array of objects is corrupt."""
        journal.path.write_text('{"lpath": "a.epub"}')
        with pytest.raises(CacheCorruptError):
            journal.load_pending()

    def test_clear(self, journal: UpdateJournal) -> None:
        """clear_pending() removes the file and tolerates its absence."""
        journal.path.write_text("[]")
        journal.clear_pending()
        assert not journal.path.exists()
        journal.clear_pending()
