"""Local filesystem cache for downloaded S3 objects."""

from pathlib import Path

from assetstore.core.errors import ScopeError
from assetstore.core.logging_config import get_logger


logger = get_logger(__name__)


class LocalFileCache:
    """Local filesystem cache keyed by storage key.

    Objects are mirrored under ``base_path`` using the storage key as the
    relative path, so ``assets/v2/img/a.png`` lands in
    ``<base_path>/assets/v2/img/a.png``.
    """

    def __init__(self, base_path: str):
        """Initialize the local cache.

        Args:
            base_path: Root directory for cached files
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get_local_resource(self, resource_name: str) -> Path:
        """Get the cache path for a storage key.

        Raises:
            ScopeError: If the key would resolve outside the cache root
        """
        relative = resource_name.lstrip("/")
        if ".." in Path(relative).parts:
            raise ScopeError(resource_name, str(self.base_path))
        return self.base_path / relative
