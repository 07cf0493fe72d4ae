"""Collaborator protocols and value types for the file provider."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol


class LocalResourceCache(Protocol):
    """Protocol for the local cache that holds downloaded objects.

    The file provider only needs to know where a key lives on disk; reading
    and eviction stay with the cache.
    """

    def get_local_resource(self, resource_name: str) -> Path:
        """Return the local path for a storage key.

        Args:
            resource_name: Storage key (already composed by resource naming)

        Returns:
            Path: Where the object is, or should be, cached locally
        """
        ...


class FileApplicationType(str, Enum):
    """What a requested file is used for."""

    ALL = "ALL"
    IMAGE = "IMAGE"
    STATIC = "STATIC"
    SITE_MAP = "SITE_MAP"


@dataclass(frozen=True)
class FileWorkArea:
    """A local staging directory whose files are candidates for upload."""

    file_path_location: str


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a copy or move.

    ``warning`` is set when the transfer succeeded but something non-fatal
    went wrong, e.g. the source could not be deleted after a move.
    """

    source_key: str
    destination_key: str
    moved: bool = False
    warning: Optional[str] = None
