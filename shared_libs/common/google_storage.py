"""
Google Cloud Storage utilities for the file analysis functions.

This module provides a bucket-bound client for reading uploaded documents and
their metadata, and for keeping the workflow's step log next to them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Optional

from google.auth.exceptions import DefaultCredentialsError
from google.cloud import storage
from google.cloud.exceptions import Forbidden, NotFound

from shared_libs.config.all_config import GoogleStorageConfig, google_storage_config

from .text_analyzer import Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObjectMetadata:
    """Subset of object metadata merged into the analysis record."""

    bucket: str
    name: str
    size_bytes: int
    upload_date: Optional[str]
    generation: Optional[int] = None
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bucket": self.bucket,
            "name": self.name,
            "size_bytes": self.size_bytes,
            "upload_date": self.upload_date,
            "generation": self.generation,
            "content_type": self.content_type,
        }


def ensure_ready(func):
    """Decorator to ensure authentication and bucket availability before method execution."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self._ensure_authenticated():
            raise RuntimeError(
                f"Failed to authenticate with Google Cloud Storage for {func.__name__}"
            )
        return func(self, *args, **kwargs)
    return wrapper


class GoogleStorageClient:
    """Google Cloud Storage client bound to a single bucket."""

    def __init__(
        self,
        bucket_name: str,
        config: GoogleStorageConfig = google_storage_config,
        client: Optional[storage.Client] = None,
    ):
        """
        Args:
            bucket_name: Bucket every operation targets
            config: Storage configuration (project id)
            client: Pre-built storage client, mainly for tests and for sharing one client
        """
        self.bucket_name = bucket_name
        self.config = config
        self._client = client
        self._bucket = None
        self._authenticated = False

    def _authenticate(self) -> bool:
        """
        Build the storage client and bucket handle.

        The bucket is not reloaded: functions usually hold object-level
        permissions only, and a missing bucket surfaces as NotFound on first use.
        """
        try:
            if self._client is None:
                if self.config.project_id:
                    self._client = storage.Client(project=self.config.project_id)
                else:
                    self._client = storage.Client()
            self._bucket = self._client.bucket(self.bucket_name)
            self._authenticated = True
            logger.debug(f"Google Cloud Storage client ready for bucket: {self.bucket_name}")
            return True
        except DefaultCredentialsError as e:
            logger.error(f"Authentication failed - No valid credentials found: {e}")
            return False

    def _ensure_authenticated(self) -> bool:
        """Ensure client is authenticated before operations."""
        if not self._authenticated:
            return self._authenticate()
        return True

    @ensure_ready
    def download_document(self, blob_name: str) -> Document:
        """
        Download an object's bytes.

        Raises:
            NotFound: If the object does not exist.
            Forbidden: If the caller may not read it.
        """
        blob = self._bucket.blob(blob_name)
        try:
            content = blob.download_as_bytes()
        except NotFound:
            logger.warning(f"Object gs://{self.bucket_name}/{blob_name} not found")
            raise
        except Forbidden:
            logger.error(f"Access denied to gs://{self.bucket_name}/{blob_name}")
            raise
        logger.info(f"Downloaded gs://{self.bucket_name}/{blob_name} ({len(content)} bytes)")
        return Document(name=blob_name, content=content, bucket=self.bucket_name)

    @ensure_ready
    def get_metadata(self, blob_name: str) -> ObjectMetadata:
        """
        Fetch size and last update time of an object.

        Raises:
            NotFound: If the object does not exist.
        """
        blob = self._bucket.get_blob(blob_name)
        if blob is None:
            raise NotFound(f"Object gs://{self.bucket_name}/{blob_name} not found")

        updated: Optional[datetime] = blob.updated
        return ObjectMetadata(
            bucket=self.bucket_name,
            name=blob_name,
            size_bytes=int(blob.size or 0),
            upload_date=updated.isoformat() if updated else None,
            generation=blob.generation,
            content_type=blob.content_type,
        )

    @ensure_ready
    def download_as_string(self, blob_name: str) -> Optional[str]:
        """
        Download a blob as text.

        Returns:
            Content of the blob, or None if it does not exist.
        """
        try:
            return self._bucket.blob(blob_name).download_as_text()
        except NotFound:
            return None

    @ensure_ready
    def upload_from_string(self, blob_name: str, data: str) -> bool:
        """
        Upload string data to a blob.

        Returns:
            True if upload successful, False otherwise
        """
        try:
            self._bucket.blob(blob_name).upload_from_string(data, content_type="application/json")
            logger.debug(f"String data uploaded to gs://{self.bucket_name}/{blob_name}")
            return True
        except Exception as e:
            logger.error(f"Failed to upload gs://{self.bucket_name}/{blob_name}: {e}")
            return False


def get_storage(bucket_name: str, client: Optional[storage.Client] = None) -> GoogleStorageClient:
    """Create a storage client for a bucket using the global storage configuration."""
    return GoogleStorageClient(bucket_name, google_storage_config, client=client)
