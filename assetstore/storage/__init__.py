"""File storage backed by Amazon S3 with a local download cache."""

from functools import lru_cache

from assetstore.core.config import settings
from assetstore.core.properties import SettingsPropertySource
from assetstore.s3.client_cache import S3ClientCache
from assetstore.s3.configuration_service import S3ConfigurationService
from .local import LocalFileCache
from .protocol import FileApplicationType, FileWorkArea, LocalResourceCache, TransferResult
from .s3 import S3FileServiceProvider


@lru_cache()
def get_file_service_provider() -> S3FileServiceProvider:
    """Factory function for the process-wide file service provider.

    Wires the ``aws.s3.*`` settings, a client cache and the local file
    cache at ``LOCAL_CACHE_PATH``. Configuration is resolved lazily on the
    first storage call, not here.

    Returns:
        S3FileServiceProvider: Shared provider instance
    """
    return S3FileServiceProvider(
        configuration_service=S3ConfigurationService(SettingsPropertySource(settings)),
        local_cache=LocalFileCache(settings.LOCAL_CACHE_PATH),
        client_cache=S3ClientCache(),
    )


__all__ = [
    "get_file_service_provider",
    "S3FileServiceProvider",
    "LocalFileCache",
    "LocalResourceCache",
    "FileApplicationType",
    "FileWorkArea",
    "TransferResult",
]
