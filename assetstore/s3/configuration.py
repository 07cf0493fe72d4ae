"""Immutable S3 connection settings."""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from assetstore.core.errors import ConfigurationError, ErrorCode


# "s3.amazonaws.com" is the default US East endpoint, which does not accept
# SigV4 requests for buckets in other regions.
GENERIC_ENDPOINT_SUFFIX = "s3.amazonaws.com"
DOMAIN_SUFFIX = ".amazonaws.com"


def regionalize_endpoint(endpoint_uri: Optional[str], region: Optional[str]) -> Optional[str]:
    """Insert the region into a generic S3 endpoint.

    ``https://s3.amazonaws.com`` with ``us-west-2`` becomes
    ``https://s3-us-west-2.amazonaws.com``. Anything not ending in the
    literal generic suffix is returned unchanged, so a rewritten endpoint is
    never rewritten twice.
    """
    if endpoint_uri is None or region is None:
        return endpoint_uri
    if not endpoint_uri.endswith(GENERIC_ENDPOINT_SUFFIX):
        return endpoint_uri

    loc = endpoint_uri.rfind(DOMAIN_SUFFIX)
    if loc <= 0:
        return endpoint_uri
    return f"{endpoint_uri[:loc]}-{region}.{endpoint_uri[loc + 1:]}"


def compile_static_asset_pattern(pattern: str) -> re.Pattern:
    """Compile the static asset extension regex.

    Raises:
        ConfigurationError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigurationError(
            [f"aws.s3.staticAssetFileExtensionPattern is not a valid pattern: {pattern!r} ({exc})"],
            code=ErrorCode.CONFIG_INVALID_PATTERN,
        ) from exc


class S3Configuration(BaseModel):
    """Connection settings for one bucket.

    Endpoint normalisation happens once, during validation. Field order
    matters: ``default_bucket_region`` must be declared before
    ``endpoint_uri`` so the endpoint validator can see the region.

    Equality and hashing only consider the fields that select a client
    (credentials, bucket, region, endpoint, sub-directory), so instances
    can key the client cache.
    """

    model_config = ConfigDict(frozen=True)

    aws_secret_key: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    default_bucket_name: Optional[str] = None
    default_bucket_region: Optional[str] = None
    endpoint_uri: Optional[str] = None
    bucket_sub_directory: Optional[str] = None
    version_sub_directory: Optional[str] = None
    static_asset_file_extension_pattern: Optional[re.Pattern] = None

    @field_validator('endpoint_uri')
    @classmethod
    def fixup_endpoint_for_region(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return regionalize_endpoint(v, info.data.get('default_bucket_region'))

    @field_validator('static_asset_file_extension_pattern', mode='before')
    @classmethod
    def compile_pattern(cls, v: Any) -> Any:
        if isinstance(v, str):
            return compile_static_asset_pattern(v)
        return v

    def _client_identity(self) -> tuple:
        return (
            self.aws_secret_key,
            self.default_bucket_name,
            self.default_bucket_region,
            self.aws_access_key_id,
            self.endpoint_uri,
            self.bucket_sub_directory,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, S3Configuration):
            return NotImplemented
        return self._client_identity() == other._client_identity()

    def __hash__(self) -> int:
        return hash(self._client_identity())

    def is_static_asset(self, extension: Optional[str]) -> bool:
        """Whether objects with this (lower-cased) extension are public-read."""
        if self.static_asset_file_extension_pattern is None or extension is None:
            return False
        return self.static_asset_file_extension_pattern.fullmatch(extension) is not None


class S3ConfigurationBuilder:
    """Setter-style construction of an ``S3Configuration``.

    Setters may be called in any order; normalisation runs in ``build()``.

    Example:
        >>> config = (S3ConfigurationBuilder()
        ...           .endpoint_uri("https://s3.amazonaws.com")
        ...           .default_bucket_region("us-west-2")
        ...           .build())
        >>> config.endpoint_uri
        'https://s3-us-west-2.amazonaws.com'
    """

    def __init__(self):
        self._values: dict = {}

    def _set(self, field: str, value: Any) -> "S3ConfigurationBuilder":
        self._values[field] = value
        return self

    def aws_secret_key(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("aws_secret_key", value)

    def aws_access_key_id(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("aws_access_key_id", value)

    def default_bucket_name(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("default_bucket_name", value)

    def default_bucket_region(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("default_bucket_region", value)

    def endpoint_uri(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("endpoint_uri", value)

    def bucket_sub_directory(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("bucket_sub_directory", value)

    def version_sub_directory(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        return self._set("version_sub_directory", value)

    def static_asset_file_extension_pattern(self, value: Optional[str]) -> "S3ConfigurationBuilder":
        # Compile eagerly so a bad pattern fails at the call that supplied it.
        return self._set(
            "static_asset_file_extension_pattern",
            compile_static_asset_pattern(value) if value else None,
        )

    def build(self) -> S3Configuration:
        return S3Configuration(**self._values)
