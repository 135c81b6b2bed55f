"""
Attachment service — fetch links and downloads for stored files.

Stored values of document-upload fields are storage paths. Clients turn
a path into a time-bounded URL with ``get_download_url``; for the local
and in-memory backends that URL points back at ``/api/v1/files/download``
with a signed token, which ``open_download`` verifies.
"""

import logging
import mimetypes
import posixpath

import jwt as pyjwt

from flowform.core.exceptions import AuthError, StorageError, ValidationError
from flowform.services.jwt_service import decode_file_token
from flowform.storage import BlobStore, get_blob_store

logger = logging.getLogger(__name__)


def get_download_url(path: str, store=None) -> dict:
    """Time-bounded URL for a stored file.

    Raises:
        ValidationError: The path is malformed.
        BlobNotFoundError: Nothing is stored at ``path``.
    """
    try:
        BlobStore.check_path(path)
    except StorageError:
        raise ValidationError("Invalid storage path", details={"path": "invalid"}) from None
    store = store or get_blob_store()
    return {"path": path, "url": store.get_url(path), "filename": posixpath.basename(path)}


def open_download(token: str, store=None) -> tuple[bytes, str, str]:
    """Resolve a signed download token.

    Returns:
        (content, filename, mimetype)

    Raises:
        AuthError: The token is missing, expired or not a file token.
        BlobNotFoundError: The file is gone.
    """
    if not token:
        raise AuthError("Download token is required")
    try:
        payload = decode_file_token(token)
    except pyjwt.ExpiredSignatureError:
        raise AuthError("Download link has expired") from None
    except pyjwt.InvalidTokenError:
        raise AuthError("Download link is invalid") from None

    path = BlobStore.check_path(payload.get("path"))
    store = store or get_blob_store()
    content = store.read(path)
    filename = posixpath.basename(path)
    mimetype = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    logger.debug("File download path=%s size=%d", path, len(content))
    return content, filename, mimetype
