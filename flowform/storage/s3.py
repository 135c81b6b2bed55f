"""
S3-compatible blob store (AWS S3, MinIO) via boto3.

Config keys: S3_ENDPOINT_URL, S3_BUCKET, S3_ACCESS_KEY, S3_SECRET_KEY,
S3_REGION, BLOB_URL_EXPIRES.
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from flowform.core.exceptions import BlobNotFoundError, StorageError
from flowform.storage.base import BlobStore

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3BlobStore(BlobStore):
    backend = "s3"

    def __init__(self, client, bucket: str, url_expires: int = 900) -> None:
        self.client = client
        self.bucket = bucket
        self.url_expires = url_expires

    @classmethod
    def from_config(cls, config) -> "S3BlobStore":
        client = boto3.client(
            "s3",
            endpoint_url=config.get("S3_ENDPOINT_URL"),
            aws_access_key_id=config.get("S3_ACCESS_KEY"),
            aws_secret_access_key=config.get("S3_SECRET_KEY"),
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
            region_name=config.get("S3_REGION", "us-east-1"),
        )
        store = cls(client, config["S3_BUCKET"], config.get("BLOB_URL_EXPIRES", 900))
        store.ensure_bucket()
        return store

    def ensure_bucket(self) -> None:
        """Create the bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as exc:
            if _error_code(exc) not in ("404", "NoSuchBucket"):
                logger.warning("Failed to check bucket %s: %s", self.bucket, exc)
                return
            try:
                self.client.create_bucket(Bucket=self.bucket)
                logger.info("Created bucket %s", self.bucket)
            except ClientError as create_error:
                logger.warning("Failed to create bucket %s: %s", self.bucket, create_error)

    def upload(self, content: bytes, path: str, content_type: str | None = None) -> str:
        self.check_path(path)
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket, Key=path, Body=content, **extra)
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 upload failed key=%s: %s", path, exc)
            raise StorageError(f"Upload failed: {exc}", path=path) from exc
        logger.debug("S3 object written key=%s size=%d", path, len(content))
        return path

    def delete(self, path: str) -> None:
        self.check_path(path)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            # 404s are fine during cleanup.
            if _error_code(exc) in _NOT_FOUND_CODES:
                return
            logger.error("S3 delete failed key=%s: %s", path, exc)
            raise StorageError(f"Delete failed: {exc}", path=path) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Delete failed: {exc}", path=path) from exc

    def exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=path)
            return True
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"Lookup failed: {exc}", path=path) from exc

    def read(self, path: str) -> bytes:
        self.check_path(path)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise BlobNotFoundError(path) from None
            raise StorageError(f"Read failed: {exc}", path=path) from exc
        return response["Body"].read()

    def get_url(self, path: str) -> str:
        self.check_path(path)
        if not self.exists(path):
            raise BlobNotFoundError(path)
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=self.url_expires,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Could not sign URL: {exc}", path=path) from exc
