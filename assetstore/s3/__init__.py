"""S3 configuration, client cache and key naming."""

from .client_cache import S3ClientCache
from .configuration import S3Configuration, S3ConfigurationBuilder
from .configuration_service import S3ConfigurationService
from .naming import build_resource_name

__all__ = [
    "S3ClientCache",
    "S3Configuration",
    "S3ConfigurationBuilder",
    "S3ConfigurationService",
    "build_resource_name",
]
