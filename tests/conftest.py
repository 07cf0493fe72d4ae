"""
Pytest configuration and shared fixtures for assetstore tests.

This module provides:
- S3 property fixtures
- A mocked boto3 S3 client wired through the client cache
- Local cache and work area fixtures
- Botocore error factories
"""

from pathlib import Path
from typing import Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from assetstore.core.properties import MappingPropertySource
from assetstore.core.request_context import clear_current_site
from assetstore.s3.client_cache import S3ClientCache
from assetstore.s3.configuration_service import S3ConfigurationService
from assetstore.storage.local import LocalFileCache
from assetstore.storage.protocol import FileWorkArea
from assetstore.storage.s3 import S3FileServiceProvider


# ============================================================================
# Configuration fixtures
# ============================================================================

@pytest.fixture
def s3_properties() -> Dict[str, Optional[str]]:
    """Complete, valid set of aws.s3.* properties.

    Returns:
        dict: Property name to value
    """
    return {
        "aws.s3.secretKey": "test-secret-key",
        "aws.s3.accessKeyId": "AKIATESTACCESSKEY",
        "aws.s3.defaultBucketName": "assets-test",
        "aws.s3.defaultBucketRegion": "us-west-2",
        "aws.s3.endpointURI": "https://s3.amazonaws.com",
        "aws.s3.bucketSubDirectory": "assets",
        "aws.s3.staticAssetFileExtensionPattern": "(png|jpg|gif|css|js)",
    }


@pytest.fixture
def configuration_service(s3_properties: dict) -> S3ConfigurationService:
    return S3ConfigurationService(MappingPropertySource(s3_properties))


# ============================================================================
# Storage fixtures
# ============================================================================

@pytest.fixture
def mock_s3() -> MagicMock:
    """Mock boto3 S3 client.

    Returns:
        MagicMock: Stand-in for ``boto3.client("s3")``
    """
    return MagicMock()


@pytest.fixture
def local_cache(tmp_path: Path) -> LocalFileCache:
    return LocalFileCache(str(tmp_path / "cache"))


@pytest.fixture
def work_area(tmp_path: Path) -> FileWorkArea:
    root = tmp_path / "work"
    root.mkdir()
    return FileWorkArea(file_path_location=str(root))


@pytest.fixture
def provider(
    configuration_service: S3ConfigurationService,
    local_cache: LocalFileCache,
    mock_s3: MagicMock,
) -> S3FileServiceProvider:
    """File service provider whose client cache always hands out ``mock_s3``."""
    return S3FileServiceProvider(
        configuration_service=configuration_service,
        local_cache=local_cache,
        client_cache=S3ClientCache(client_factory=lambda config: mock_s3),
    )


@pytest.fixture(autouse=True)
def reset_site_context():
    clear_current_site()
    yield
    clear_current_site()


# ============================================================================
# Error factories
# ============================================================================

@pytest.fixture
def client_error() -> Callable[..., ClientError]:
    """Factory for botocore ClientErrors.

    Example:
        >>> client_error("NoSuchKey", 404, "GetObject")
    """
    def make(code: str, status: int = 400, operation: str = "GetObject") -> ClientError:
        return ClientError(
            {
                "Error": {"Code": code, "Message": f"{code} (test)"},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )
    return make


def write_file(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.fixture
def make_file() -> Callable[[Path, bytes], Path]:
    return write_file
