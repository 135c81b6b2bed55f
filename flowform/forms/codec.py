"""
Value Codec — reconcile submitted document-upload values with stored paths.

A submitted value set may hold ``FilePayload`` objects for newly chosen
files; the stored value set holds only storage-path strings. For every
document-upload field of a schema:

    new value                      stored result
    ─────────────────────────────  ──────────────────────────────────────
    FilePayload                    delete old (if any), upload, new path
    None / "" and old existed      delete old, None
    str (existing path)            unchanged
    key absent                     old path preserved

Uploads and deletes raise ``StorageError``; files uploaded earlier in the
same call are removed again, and the caller must not write the
entity row when that happens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from werkzeug.utils import secure_filename

from flowform.core.exceptions import StorageError
from flowform.forms.field_types import is_file_type

logger = logging.getLogger(__name__)

# Top-level storage namespaces per owning entity kind
ENTRY_NAMESPACE = "dynamicTableEntries"
TASK_NAMESPACE = "taskAttachments"


@dataclass
class FilePayload:
    """A binary file chosen by the user and not yet uploaded."""

    filename: str
    content: bytes = field(repr=False)
    content_type: str | None = None

    @classmethod
    def from_storage(cls, storage) -> "FilePayload":
        """Build from a werkzeug ``FileStorage`` (``request.files[...]``)."""
        return cls(
            filename=storage.filename or "upload",
            content=storage.read(),
            content_type=storage.mimetype or None,
        )

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class CodecOperation:
    """One blob-store call made while reconciling a value set."""

    action: str  # "delete" | "upload"
    path: str
    field: str


def entry_path_prefix(table_id: str, entry_id: str) -> list[str]:
    return [ENTRY_NAMESPACE, table_id, entry_id]


def task_path_prefix(workflow_instance_id: str, task_id: str) -> list[str]:
    return [TASK_NAMESPACE, workflow_instance_id, task_id]


def build_storage_path(prefix: list[str], field_name: str, filename: str) -> str:
    """``{prefix...}/{field_name}/{sanitised filename}``"""
    safe_name = secure_filename(filename) or "file"
    return "/".join([*prefix, field_name, safe_name])


def _document_field_names(fields) -> list[str]:
    names = []
    for f in fields:
        field_type = f.get("type") if isinstance(f, dict) else f.field_type
        name = f.get("name") if isinstance(f, dict) else f.name
        if is_file_type(field_type):
            names.append(name)
    return names


def reconcile_file_fields(new_values: dict, current_values: dict | None, fields,
                          store, path_prefix: list[str]) -> tuple[dict, list[CodecOperation]]:
    """Apply upload/delete side effects and return the value map to persist.

    Args:
        new_values: Validated values; document fields may hold FilePayload,
            a path string, None/"" or be absent.
        current_values: The stored value map (None for a new entity).
        fields: The schema's field definitions (models or dicts).
        store: A ``BlobStore``.
        path_prefix: Owning-entity path segments, see ``entry_path_prefix``.

    Returns:
        (values to persist, blob operations performed in order)

    Raises:
        StorageError: An upload or delete failed; nothing should be persisted.
    """
    current_values = current_values or {}
    result = dict(new_values)
    operations: list[CodecOperation] = []

    try:
        for name in _document_field_names(fields):
            _reconcile_field(name, new_values, current_values, result, operations, store, path_prefix)
    except StorageError:
        _discard_uploads(store, operations)
        raise
    return result, operations


def _reconcile_field(name, new_values, current_values, result, operations, store, path_prefix):
    old_path = current_values.get(name) or None

    if name not in new_values:
        if old_path is not None:
            result[name] = old_path
        return

    new_value = new_values[name]

    if isinstance(new_value, FilePayload):
        if old_path:
            store.delete(old_path)
            operations.append(CodecOperation("delete", old_path, name))
        path = build_storage_path(path_prefix, name, new_value.filename)
        result[name] = store.upload(new_value.content, path, content_type=new_value.content_type)
        operations.append(CodecOperation("upload", path, name))
        logger.info("File stored field=%s path=%s size=%d", name, path, new_value.size)
    elif new_value is None or new_value == "":
        if old_path:
            store.delete(old_path)
            operations.append(CodecOperation("delete", old_path, name))
            logger.info("File removed field=%s path=%s", name, old_path)
        result[name] = None
    elif isinstance(new_value, str):
        result[name] = new_value
    else:
        result[name] = old_path


def _discard_uploads(store, operations: list[CodecOperation]) -> None:
    """Remove objects uploaded earlier in a save that then failed.

    Deleted originals cannot be restored; the row keeps pointing at them.
    """
    for op in operations:
        if op.action != "upload":
            continue
        try:
            store.delete(op.path)
        except StorageError as exc:
            logger.warning("Orphaned upload left in storage path=%s: %s", op.path, exc)
        else:
            logger.info("Discarded upload after failed save path=%s", op.path)

