from flowform.storage.base import BlobStore, get_blob_store, init_blob_store

__all__ = ["BlobStore", "get_blob_store", "init_blob_store"]
