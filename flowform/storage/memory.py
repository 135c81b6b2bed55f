"""In-process blob store used by the testing config."""

from flask import url_for

from flowform.core.exceptions import BlobNotFoundError
from flowform.storage.base import BlobStore


class MemoryBlobStore(BlobStore):
    backend = "memory"

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str | None] = {}

    def upload(self, content: bytes, path: str, content_type: str | None = None) -> str:
        self.check_path(path)
        self.objects[path] = bytes(content)
        self.content_types[path] = content_type
        return path

    def delete(self, path: str) -> None:
        self.check_path(path)
        self.objects.pop(path, None)
        self.content_types.pop(path, None)

    def exists(self, path: str) -> bool:
        return path in self.objects

    def read(self, path: str) -> bytes:
        try:
            return self.objects[path]
        except KeyError:
            raise BlobNotFoundError(path) from None

    def get_url(self, path: str) -> str:
        from flowform.services.jwt_service import generate_file_token

        if path not in self.objects:
            raise BlobNotFoundError(path)
        return url_for("files.download", token=generate_file_token(path))
