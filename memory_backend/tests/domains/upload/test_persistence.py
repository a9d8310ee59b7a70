"""Tests for domains.upload.services.persistence module."""

import logging

import pytest

from domains.upload.models import ProcessedFile, UploadOptions, UploadResult
from domains.upload.services.persistence import AggregateUpdater, MetadataWriter
from shared.exceptions import (
    BlobDeletionError,
    DeleteFailedError,
    MemoryNotFoundError,
    PersistenceFailedError,
)

USER = "user-123"
MEMORIES = "users/user-123/memories"
FOLDERS = "users/user-123/folders"


def stored_blob(fake_storage, name="1700000000000_abcdefghi.jpg"):
    path = f"users/{USER}/memories/{name}"
    fake_storage.blobs[path] = b"data"
    return UploadResult(file_name=name, storage_path=path, download_url=fake_storage.public_url(path))


def processed_file(size=2048):
    return ProcessedFile(content=b"x" * size, mime_type="image/jpeg", size=size, name="photo.jpg",
                         width=640, height=480, compressed=True)


@pytest.fixture
def writer(fake_documents, fake_storage):
    return MetadataWriter(fake_documents, fake_storage)


class TestPersist:
    """Tests for MetadataWriter.persist."""

    def test_writes_record_and_counters(self, writer, fake_documents, fake_storage):
        """Test record fields and aggregate increments."""
        upload = stored_blob(fake_storage)
        options = UploadOptions(folder_id="folder-1", tags=["beach"], description="Sunset", is_public=True)

        record = writer.persist(USER, processed_file(), upload, options, original_name="IMG_001.HEIC")

        row = fake_documents.read(MEMORIES, record.id)
        assert row["storage_path"] == upload.storage_path
        assert row["download_url"] == upload.download_url
        assert row["original_name"] == "IMG_001.HEIC"
        assert row["file_size"] == 2048
        assert row["tags"] == ["beach"]
        assert row["is_public"] is True
        assert fake_documents.read("users", USER)["storage_used"] == 2048
        assert fake_documents.read("users", USER)["total_files"] == 1
        assert fake_documents.read(FOLDERS, "folder-1")["file_count"] == 1

    def test_write_failure_reports_orphaned_blob(self, writer, fake_documents, fake_storage, caplog):
        """Test persistence failure is distinct from upload failure."""
        fake_documents.fail_writes = True
        upload = stored_blob(fake_storage)

        with pytest.raises(PersistenceFailedError) as exc_info:
            writer.persist(USER, processed_file(), upload)

        assert exc_info.value.storage_path == upload.storage_path
        assert exc_info.value.download_url == upload.download_url
        assert exc_info.value.details["orphaned_blob"] is True
        assert any(getattr(r, "event", None) == "orphaned_blob" for r in caplog.records)
        assert fake_documents.read("users", USER)["total_files"] == 0

    def test_counter_failure_does_not_fail_persist(self, writer, fake_documents, fake_storage, caplog):
        """Test best-effort aggregates are logged, not raised."""
        fake_documents.fail_increments_for.add("users")

        with caplog.at_level(logging.WARNING):
            record = writer.persist(USER, processed_file(), stored_blob(fake_storage))

        assert fake_documents.read(MEMORIES, record.id) is not None
        failures = [r for r in caplog.records if getattr(r, "event", None) == "aggregate_update_failed"]
        assert len(failures) == 1
        assert failures[0].target == "user"


class TestAggregateUpdater:
    """Tests for AggregateUpdater.apply."""

    def test_single_increment_per_target(self, fake_documents):
        """Test user counters change in one atomic call."""
        AggregateUpdater(fake_documents).apply(USER, 500, folder_id="folder-1")

        assert fake_documents.increment_calls == [
            (FOLDERS, "folder-1", {"file_count": 1}),
            ("users", USER, {"storage_used": 500, "total_files": 1}),
        ]

    def test_reports_partial_failure(self, fake_documents):
        """Test outcome flags per target."""
        fake_documents.fail_increments_for.add(FOLDERS)

        outcome = AggregateUpdater(fake_documents).apply(USER, 500, folder_id="folder-1")

        assert outcome.user_updated is True
        assert outcome.folder_updated is False
        assert outcome.ok is False

    def test_missing_folder_is_best_effort(self, fake_documents):
        """Test an unknown folder does not raise."""
        outcome = AggregateUpdater(fake_documents).apply(USER, 500, folder_id="no-such-folder")

        assert outcome.folder_updated is False
        assert fake_documents.read("users", USER)["total_files"] == 1

    def test_no_folder(self, fake_documents):
        """Test folder counters are skipped without a folder."""
        outcome = AggregateUpdater(fake_documents).apply(USER, 500)

        assert outcome.folder_updated is None
        assert outcome.ok is True


class TestDelete:
    """Tests for MetadataWriter.delete."""

    def test_delete_reverses_persist(self, writer, fake_documents, fake_storage):
        """Test counters return to their previous values."""
        upload = stored_blob(fake_storage)
        record = writer.persist(USER, processed_file(), upload, UploadOptions(folder_id="folder-1"))

        result = writer.delete(USER, record.id)

        assert result.success is True
        assert result.deleted_memory_id == record.id
        assert result.aggregates_updated is True
        assert fake_documents.read(MEMORIES, record.id) is None
        assert upload.storage_path not in fake_storage.blobs
        user = fake_documents.read("users", USER)
        assert (user["storage_used"], user["total_files"]) == (0, 0)
        assert fake_documents.read(FOLDERS, "folder-1")["file_count"] == 0

    def test_second_delete_is_not_found(self, writer, fake_documents, fake_storage):
        """Test counters are decremented only once."""
        record = writer.persist(USER, processed_file(), stored_blob(fake_storage))
        writer.delete(USER, record.id)

        with pytest.raises(MemoryNotFoundError):
            writer.delete(USER, record.id)

        assert fake_documents.read("users", USER)["total_files"] == 0

    def test_blob_failure_keeps_record(self, writer, fake_documents, fake_storage):
        """Test the record stays when its blob could not be removed."""
        record = writer.persist(USER, processed_file(), stored_blob(fake_storage))
        fake_storage.delete_error = "storage unavailable"

        with pytest.raises(BlobDeletionError) as exc_info:
            writer.delete(USER, record.id)

        assert "storage unavailable" in str(exc_info.value)
        assert fake_documents.read(MEMORIES, record.id) is not None
        assert fake_documents.read("users", USER)["total_files"] == 1

    def test_missing_blob_still_deletes_record(self, writer, fake_documents, fake_storage, caplog):
        """Test a blob that is already gone does not block deletion."""
        upload = stored_blob(fake_storage)
        record = writer.persist(USER, processed_file(), upload)
        del fake_storage.blobs[upload.storage_path]

        result = writer.delete(USER, record.id)

        assert result.success is True
        assert fake_documents.read(MEMORIES, record.id) is None
        assert "already missing" in caplog.text

    def test_other_users_memory_is_not_found(self, writer, fake_documents, fake_storage):
        """Test records are scoped to their owner."""
        record = writer.persist(USER, processed_file(), stored_blob(fake_storage))

        with pytest.raises(MemoryNotFoundError):
            writer.delete("someone-else", record.id)

    def test_read_failure_is_delete_failure(self, writer, fake_documents, fake_storage):
        """Test a database error while looking up the record is typed."""
        upload = stored_blob(fake_storage)
        record = writer.persist(USER, processed_file(), upload)
        fake_documents.fail_reads = True

        with pytest.raises(DeleteFailedError) as exc_info:
            writer.delete(USER, record.id)

        assert exc_info.value.error_code == "DELETE_FAILED"
        assert exc_info.value.details["memory_id"] == record.id
        assert upload.storage_path in fake_storage.blobs
        fake_documents.fail_reads = False
        assert fake_documents.read(MEMORIES, record.id) is not None
        assert fake_documents.read("users", USER)["total_files"] == 1

    def test_record_delete_failure_reports_dangling_record(self, writer, fake_documents, fake_storage, caplog):
        """Test a failed record delete after blob removal is typed and logged."""
        upload = stored_blob(fake_storage)
        record = writer.persist(USER, processed_file(), upload)
        fake_documents.fail_deletes = True

        with pytest.raises(DeleteFailedError) as exc_info:
            writer.delete(USER, record.id)

        assert exc_info.value.details["storage_path"] == upload.storage_path
        assert upload.storage_path not in fake_storage.blobs
        assert fake_documents.read(MEMORIES, record.id) is not None
        assert fake_documents.read("users", USER)["total_files"] == 1
        dangling = [r for r in caplog.records if getattr(r, "event", None) == "dangling_record"]
        assert len(dangling) == 1
        assert dangling[0].memory_id == record.id
