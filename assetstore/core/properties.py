"""Key/value property sources for the S3 configuration service."""

from typing import Dict, Mapping, Optional, Protocol

from assetstore.core.config import Settings, settings as default_settings


class PropertySource(Protocol):
    """Resolves a named system property, returning None when it is unset."""

    def resolve_property(self, name: str) -> Optional[str]:
        ...


class MappingPropertySource:
    """Property source backed by a plain mapping.

    Useful when the host application already holds its system properties
    in memory, and in tests.
    """

    def __init__(self, properties: Mapping[str, Optional[str]]):
        self._properties = dict(properties)

    def resolve_property(self, name: str) -> Optional[str]:
        return self._properties.get(name)


class SettingsPropertySource:
    """Exposes the ``AWS_S3_*`` settings under their ``aws.s3.*`` names."""

    PROPERTY_FIELDS: Dict[str, str] = {
        "aws.s3.secretKey": "AWS_S3_SECRET_KEY",
        "aws.s3.accessKeyId": "AWS_S3_ACCESS_KEY_ID",
        "aws.s3.defaultBucketName": "AWS_S3_DEFAULT_BUCKET_NAME",
        "aws.s3.defaultBucketRegion": "AWS_S3_DEFAULT_BUCKET_REGION",
        "aws.s3.endpointURI": "AWS_S3_ENDPOINT_URI",
        "aws.s3.bucketSubDirectory": "AWS_S3_BUCKET_SUB_DIRECTORY",
        "aws.s3.staticAssetFileExtensionPattern": "AWS_S3_STATIC_ASSET_FILE_EXTENSION_PATTERN",
        "aws.s3.versionSubDirectory": "AWS_S3_VERSION_SUB_DIRECTORY",
    }

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings

    def resolve_property(self, name: str) -> Optional[str]:
        field_name = self.PROPERTY_FIELDS.get(name)
        if field_name is None:
            return None
        return getattr(self._settings, field_name)
