"""Resolves the S3 configuration from system properties, once."""

import threading
import time
from functools import lru_cache
from typing import FrozenSet, List, Optional

import boto3

from assetstore.core.errors import ConfigurationError, ErrorCode
from assetstore.core.logging_config import get_logger
from assetstore.core.properties import PropertySource
from assetstore.s3.configuration import S3Configuration, S3ConfigurationBuilder


logger = get_logger(__name__)

SECRET_KEY_PROPERTY = "aws.s3.secretKey"
ACCESS_KEY_ID_PROPERTY = "aws.s3.accessKeyId"
DEFAULT_BUCKET_NAME_PROPERTY = "aws.s3.defaultBucketName"
DEFAULT_BUCKET_REGION_PROPERTY = "aws.s3.defaultBucketRegion"
ENDPOINT_URI_PROPERTY = "aws.s3.endpointURI"
BUCKET_SUB_DIRECTORY_PROPERTY = "aws.s3.bucketSubDirectory"
STATIC_ASSET_PATTERN_PROPERTY = "aws.s3.staticAssetFileExtensionPattern"
VERSION_SUB_DIRECTORY_PROPERTY = "aws.s3.versionSubDirectory"


@lru_cache()
def known_s3_regions() -> FrozenSet[str]:
    """All S3 regions botocore knows about, across every partition."""
    session = boto3.session.Session()
    regions = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("s3", partition_name=partition))
    return frozenset(regions)


def is_known_region(region: Optional[str]) -> bool:
    return bool(region) and region in known_s3_regions()


class S3ConfigurationService:
    """Builds and memoises the ``S3Configuration`` for the process.

    Properties are read on the first ``lookup_configuration()`` call only;
    changed properties are picked up after a restart.
    """

    def __init__(self, property_source: PropertySource):
        self.property_source = property_source
        self._config: Optional[S3Configuration] = None
        self._lock = threading.Lock()

    def lookup_configuration(self) -> S3Configuration:
        """Return the S3 configuration, building it on first use.

        Raises:
            ConfigurationError: Listing every missing or invalid setting
        """
        if self._config is None:
            with self._lock:
                if self._config is None:
                    self._config = self._init_configuration()
        return self._config

    def lookup_property(self, name: str) -> Optional[str]:
        return self.property_source.resolve_property(name)

    def _init_configuration(self) -> S3Configuration:
        started = time.perf_counter()

        builder = (
            S3ConfigurationBuilder()
            .aws_secret_key(self.lookup_property(SECRET_KEY_PROPERTY))
            .default_bucket_name(self.lookup_property(DEFAULT_BUCKET_NAME_PROPERTY))
            .default_bucket_region(self.lookup_property(DEFAULT_BUCKET_REGION_PROPERTY))
            .aws_access_key_id(self.lookup_property(ACCESS_KEY_ID_PROPERTY))
            .endpoint_uri(self.lookup_property(ENDPOINT_URI_PROPERTY))
            .bucket_sub_directory(self.lookup_property(BUCKET_SUB_DIRECTORY_PROPERTY))
            .version_sub_directory(self.lookup_property(VERSION_SUB_DIRECTORY_PROPERTY))
        )

        pattern_violations: List[str] = []
        pattern = self.lookup_property(STATIC_ASSET_PATTERN_PROPERTY)
        if pattern:
            try:
                builder.static_asset_file_extension_pattern(pattern)
            except ConfigurationError as exc:
                pattern_violations = exc.violations

        config = builder.build()

        logger.debug(
            "s3_configuration_resolved",
            endpoint_uri=config.endpoint_uri,
            bucket=config.default_bucket_name,
            bucket_sub_directory=config.bucket_sub_directory,
            region=config.default_bucket_region,
            setup_time_ms=round((time.perf_counter() - started) * 1000, 2),
        )

        blank = [
            name for name, value in (
                (SECRET_KEY_PROPERTY, config.aws_secret_key),
                (ACCESS_KEY_ID_PROPERTY, config.aws_access_key_id),
                (DEFAULT_BUCKET_NAME_PROPERTY, config.default_bucket_name),
            )
            if not value or not value.strip()
        ]
        violations = [f"{name} was blank" for name in blank]
        region_invalid = not is_known_region(config.default_bucket_region)
        if region_invalid:
            violations.append(
                f"{DEFAULT_BUCKET_REGION_PROPERTY} was set to an invalid value of "
                f"{config.default_bucket_region}"
            )
        violations.extend(pattern_violations)

        if blank:
            code = ErrorCode.CONFIG_MISSING_SETTING
        elif region_invalid:
            code = ErrorCode.CONFIG_INVALID_REGION
        else:
            code = ErrorCode.CONFIG_INVALID_PATTERN

        if violations:
            logger.error("s3_configuration_invalid", violations=violations)
            raise ConfigurationError(violations, code=code)

        return config
