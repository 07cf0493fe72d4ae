"""One boto3 S3 client per distinct configuration."""

import threading
from typing import Any, Callable, Dict, Optional

import boto3

from assetstore.core.logging_config import get_logger
from assetstore.s3.configuration import S3Configuration


logger = get_logger(__name__)

ClientFactory = Callable[[S3Configuration], Any]


def create_s3_client(config: S3Configuration):
    """Create an S3 client bound to the configuration's credentials.

    The endpoint override is only applied when an endpoint is configured.
    """
    kwargs = {
        "aws_access_key_id": config.aws_access_key_id,
        "aws_secret_access_key": config.aws_secret_key,
        "region_name": config.default_bucket_region,
    }
    if config.endpoint_uri is not None:
        kwargs["endpoint_url"] = config.endpoint_uri
    return boto3.client("s3", **kwargs)


class S3ClientCache:
    """Lazily builds and keeps S3 clients keyed by configuration value.

    Entries are never evicted or refreshed. Two threads racing on the same
    configuration may both build a client; the first one stored wins and
    both callers get that one.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._client_factory = client_factory or create_s3_client
        self._clients: Dict[S3Configuration, Any] = {}
        self._lock = threading.Lock()

    def get_client(self, config: S3Configuration):
        client = self._clients.get(config)
        if client is not None:
            return client

        client = self._client_factory(config)
        with self._lock:
            cached = self._clients.setdefault(config, client)

        if cached is client:
            logger.debug(
                "s3_client_created",
                bucket=config.default_bucket_name,
                region=config.default_bucket_region,
                endpoint_uri=config.endpoint_uri,
            )
        return cached

    def __len__(self) -> int:
        return len(self._clients)
