"""
assetstore - Amazon S3 storage for site static assets

Persists images, CSS and other static assets in an S3 bucket and caches
downloaded objects on the local filesystem.
"""
from assetstore.core.errors import (
    BatchDeleteError,
    ConfigurationError,
    ErrorCode,
    FileServiceError,
    ScopeError,
    TransferError,
)

__all__ = [
    "BatchDeleteError",
    "ConfigurationError",
    "ErrorCode",
    "FileServiceError",
    "ScopeError",
    "TransferError",
]

__version__ = "1.0.0"
