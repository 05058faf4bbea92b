import os
import sys
from dataclasses import replace
from typing import Dict, Optional

import pytest
from flask import Flask
from google.api_core.exceptions import NotFound

# Ensure the repository root is on sys.path so tests can import
# shared_libs.*, services.* and tools.* regardless of how pytest is invoked.
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from shared_libs.common.google_storage import ObjectMetadata  # noqa: E402
from shared_libs.common.text_analyzer import Document  # noqa: E402
from shared_libs.config.all_config import (  # noqa: E402
    RetryConfig,
    ServiceEndpointsConfig,
    WorkflowConfig,
)


class InMemoryStorage:
    """Stand-in for GoogleStorageClient keeping blobs in a dict."""

    def __init__(self, bucket_name: str = "unit-test"):
        self.bucket_name = bucket_name
        self.blobs: Dict[str, bytes] = {}
        self.updated: Dict[str, str] = {}
        self.fail_uploads = False

    def add(self, name: str, content, updated: Optional[str] = "2024-05-01T12:30:00+00:00"):
        self.blobs[name] = content.encode("utf-8") if isinstance(content, str) else content
        self.updated[name] = updated

    def download_document(self, blob_name: str) -> Document:
        if blob_name not in self.blobs:
            raise NotFound(f"{blob_name} not found")
        return Document(name=blob_name, content=self.blobs[blob_name], bucket=self.bucket_name)

    def get_metadata(self, blob_name: str) -> ObjectMetadata:
        if blob_name not in self.blobs:
            raise NotFound(f"{blob_name} not found")
        return ObjectMetadata(
            bucket=self.bucket_name,
            name=blob_name,
            size_bytes=len(self.blobs[blob_name]),
            upload_date=self.updated[blob_name],
            generation=1,
        )

    def download_as_string(self, blob_name: str) -> Optional[str]:
        content = self.blobs.get(blob_name)
        return content.decode("utf-8") if content is not None else None

    def upload_from_string(self, blob_name: str, data: str) -> bool:
        if self.fail_uploads:
            return False
        self.blobs[blob_name] = data.encode("utf-8")
        return True


@pytest.fixture
def in_memory_storage():
    return InMemoryStorage()


@pytest.fixture
def state_storage():
    return InMemoryStorage("state")


@pytest.fixture
def flask_app():
    return Flask(__name__)


@pytest.fixture
def endpoints():
    """Endpoints resolving to a fake project, without OIDC."""
    return ServiceEndpointsConfig(project_id="test-project", region="us-central1", use_oidc_auth=False)


@pytest.fixture
def fast_retry():
    """Retry settings with millisecond delays and a short budget."""
    return RetryConfig(initial_delay=0.001, max_delay=0.002, multiplier=1.0, timeout=0.5)


@pytest.fixture
def workflow_settings():
    return replace(WorkflowConfig(), verbose=False)
