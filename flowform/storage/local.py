"""
Local filesystem blob store.

Objects live under BLOB_STORAGE_DIR at their storage path. Fetch URLs
point at the download route with a signed, expiring token:

    /api/v1/files/download?token=<JWT>
"""

import logging
import os
from pathlib import Path

from flask import url_for

from flowform.core.exceptions import BlobNotFoundError, StorageError
from flowform.storage.base import BlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    backend = "local"

    def __init__(self, root: str) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*self.check_path(path).split("/"))

    def upload(self, content: bytes, path: str, content_type: str | None = None) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Upload failed: {exc}", path=path) from exc
        logger.debug("Local blob written path=%s size=%d", path, len(content))
        return path

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug("Local blob already absent path=%s", path)
            return
        except OSError as exc:
            raise StorageError(f"Delete failed: {exc}", path=path) from exc
        self._prune_empty_dirs(target.parent)

    def _prune_empty_dirs(self, directory: Path) -> None:
        root = self.root.resolve()
        current = directory.resolve()
        while current != root and root in current.parents:
            try:
                current.rmdir()
            except OSError:
                break
            current = current.parent

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(path) from None
        except OSError as exc:
            raise StorageError(f"Read failed: {exc}", path=path) from exc

    def get_url(self, path: str) -> str:
        from flowform.services.jwt_service import generate_file_token

        if not self.exists(path):
            raise BlobNotFoundError(path)
        return url_for("files.download", token=generate_file_token(path))

    def __repr__(self):
        return f"<LocalBlobStore {os.fspath(self.root)}>"
