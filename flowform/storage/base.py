"""
Blob store interface and backend selection.

Files are addressed by hierarchical string paths, e.g.
``dynamicTableEntries/<table id>/<entry id>/<field name>/<filename>``.

    store = get_blob_store()
    path = store.upload(b"...", "taskAttachments/i1/t1/report/report.pdf")
    url = store.get_url(path)      # time-bounded fetch URL
    store.delete(path)             # missing objects are not an error

Backend is chosen by the BLOB_BACKEND config key: "local", "s3" or "memory".
"""

import logging

from flask import current_app

from flowform.core.exceptions import StorageError

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "flowform_blob_store"


class BlobStore:
    """Base class for blob backends."""

    backend = "base"

    def upload(self, content: bytes, path: str, content_type: str | None = None) -> str:
        """Store ``content`` at ``path`` (overwriting) and return the path."""
        raise NotImplementedError

    def delete(self, path: str) -> None:
        """Remove the object at ``path``; succeeds when it is already gone."""
        raise NotImplementedError

    def get_url(self, path: str) -> str:
        """Return a time-bounded fetch URL. Raises BlobNotFoundError."""
        raise NotImplementedError

    def read(self, path: str) -> bytes:
        """Return the object's bytes. Raises BlobNotFoundError."""
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError

    @staticmethod
    def check_path(path: str) -> str:
        """Reject empty, absolute and parent-relative paths."""
        if not path or not isinstance(path, str):
            raise StorageError("Storage path is required", path=path)
        segments = path.split("/")
        if path.startswith("/") or any(s in ("", ".", "..") for s in segments):
            raise StorageError("Invalid storage path", path=path)
        return path


def _build_store(app) -> BlobStore:
    backend = (app.config.get("BLOB_BACKEND") or "local").lower()
    if backend == "local":
        from flowform.storage.local import LocalBlobStore
        return LocalBlobStore(app.config["BLOB_STORAGE_DIR"])
    if backend == "s3":
        from flowform.storage.s3 import S3BlobStore
        return S3BlobStore.from_config(app.config)
    if backend == "memory":
        from flowform.storage.memory import MemoryBlobStore
        return MemoryBlobStore()
    raise RuntimeError(f"Unknown BLOB_BACKEND: {backend}")


def init_blob_store(app, store: BlobStore | None = None) -> BlobStore:
    """Attach a blob store to ``app`` (built from config unless given)."""
    store = store or _build_store(app)
    app.extensions[_EXTENSION_KEY] = store
    logger.debug("Blob store initialised backend=%s", store.backend)
    return store


def get_blob_store() -> BlobStore:
    """The current app's blob store."""
    store = current_app.extensions.get(_EXTENSION_KEY)
    if store is None:
        store = init_blob_store(current_app._get_current_object())
    return store
