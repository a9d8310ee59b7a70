"""
Pytest configuration and fixtures for backend tests.

This module provides common fixtures used across all test modules,
including in-memory stand-ins for the object storage and document
database capabilities.
"""

import pytest
import os
import sys
import threading
import time
from io import BytesIO

from PIL import Image

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from shared.database.exceptions import (  # noqa: E402
    DatabaseError,
    DocumentNotFoundError,
    StorageError,
    TransferCancelledError,
)
from shared.database.storage import StoredObject  # noqa: E402


class FakeObjectStorage:
    """In-memory object storage with chunked progress and cancellation.

    Tracks how many ``put`` calls are active at once so tests can check the
    batch concurrency bound.
    """

    def __init__(self, chunk_size=4, chunk_delay=0.0):
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.blobs = {}
        self.metadata = {}
        self.fail_when = None
        self.delete_error = None
        self.active = 0
        self.max_active = 0
        self.put_calls = 0
        self._lock = threading.Lock()

    def put(self, path, data, content_type, custom_metadata=None, on_progress=None,
            should_cancel=None, deadline=None):
        with self._lock:
            self.put_calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.fail_when and self.fail_when(path, data):
                raise StorageError(f"Simulated upload failure for {path}")

            total = len(data)
            offset = 0
            if on_progress:
                on_progress(0, total)
            while offset < total:
                if should_cancel and should_cancel():
                    raise TransferCancelledError(f"Upload of {path} cancelled")
                if deadline is not None and time.monotonic() > deadline:
                    raise StorageError(f"Upload of {path} exceeded its deadline")
                if self.chunk_delay:
                    time.sleep(self.chunk_delay)
                offset = min(offset + self.chunk_size, total)
                if on_progress:
                    on_progress(offset, total)

            with self._lock:
                self.blobs[path] = bytes(data)
                self.metadata[path] = {"content_type": content_type, **(custom_metadata or {})}
            return StoredObject(path=path, download_url=self.public_url(path))
        finally:
            with self._lock:
                self.active -= 1

    def delete(self, path):
        if self.delete_error:
            raise StorageError(self.delete_error)
        with self._lock:
            return self.blobs.pop(path, None) is not None

    def public_url(self, path):
        return f"https://example.supabase.co/storage/v1/object/public/memories/{path}"


class FakeDocumentStore:
    """Thread-safe in-memory document database with atomic increments."""

    def __init__(self):
        self.collections = {}
        self.fail_writes = False
        self.fail_reads = False
        self.fail_deletes = False
        self.fail_increments_for = set()
        self.increment_calls = []
        self._lock = threading.Lock()

    def _collection(self, collection_path):
        return self.collections.setdefault(collection_path.strip('/'), {})

    def seed(self, collection_path, document_id, fields):
        with self._lock:
            self._collection(collection_path)[document_id] = {"id": document_id, **fields}

    def write(self, collection_path, document_id, fields):
        if self.fail_writes:
            raise DatabaseError("Simulated write failure")
        with self._lock:
            self._collection(collection_path)[document_id] = {**fields, "id": document_id}

    def update(self, collection_path, document_id, partial_fields):
        with self._lock:
            row = self._collection(collection_path).get(document_id)
            if row is None:
                raise DocumentNotFoundError(f"Document not found: {collection_path}/{document_id}")
            row.update(partial_fields)

    def read(self, collection_path, document_id):
        if self.fail_reads:
            raise DatabaseError("Simulated read failure")
        with self._lock:
            row = self._collection(collection_path).get(document_id)
            return dict(row) if row is not None else None

    def delete(self, collection_path, document_id):
        if self.fail_deletes:
            raise DatabaseError("Simulated delete failure")
        with self._lock:
            return self._collection(collection_path).pop(document_id, None) is not None

    def increment(self, collection_path, document_id, field, delta):
        self.increment_fields(collection_path, document_id, {field: delta})

    def increment_fields(self, collection_path, document_id, deltas):
        self.increment_calls.append((collection_path, document_id, dict(deltas)))
        if collection_path in self.fail_increments_for:
            raise DatabaseError(f"Simulated increment failure for {collection_path}")
        with self._lock:
            row = self._collection(collection_path).get(document_id)
            if row is None:
                raise DocumentNotFoundError(f"Document not found: {collection_path}/{document_id}")
            for field, delta in deltas.items():
                row[field] = (row.get(field) or 0) + delta


def make_jpeg(width, height, color=(200, 120, 40), fmt="JPEG"):
    """Encode a solid-colour test image."""
    buf = BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color + (255,) if mode == "RGBA" else color
    Image.new(mode, (width, height), fill).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def fake_storage():
    """
    In-memory object storage.

    Returns:
        FakeObjectStorage instance
    """
    return FakeObjectStorage()


@pytest.fixture
def fake_documents():
    """
    In-memory document store with a seeded user and folder.

    Returns:
        FakeDocumentStore instance
    """
    documents = FakeDocumentStore()
    documents.seed("users", "user-123", {"storage_used": 0, "total_files": 0, "plan": "free"})
    documents.seed("users/user-123/folders", "folder-1", {"name": "Holidays", "file_count": 0})
    return documents


@pytest.fixture
def upload_service(fake_storage, fake_documents):
    """
    UploadService wired to the in-memory capabilities.

    Returns:
        UploadService instance
    """
    from domains.upload.services.pipeline import UploadService
    return UploadService(storage=fake_storage, documents=fake_documents)


@pytest.fixture
def small_jpeg():
    """
    Small JPEG that needs no resizing.

    Returns:
        JPEG bytes (64x48)
    """
    return make_jpeg(64, 48)


@pytest.fixture
def image_factory():
    """
    Factory for encoded test images.

    Returns:
        make_jpeg(width, height, color=..., fmt=...) callable
    """
    return make_jpeg


@pytest.fixture
def supabase_env(monkeypatch):
    """
    Supabase environment variables for adapter tests.
    """
    monkeypatch.setenv('SUPABASE_URL', 'https://example.supabase.co/')
    monkeypatch.setenv('SUPABASE_SERVICE_ROLE_KEY', 'service-role-key')
