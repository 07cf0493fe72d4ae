"""
File Service Error Handling

Standardized error codes and exceptions raised by the asset store.
Every error carries a stable code, a readable message and a details dict,
so host applications can map them onto their own responses.
"""
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for the asset store."""

    # Configuration errors (CONFIG_xxx)
    CONFIG_MISSING_SETTING = "CONFIG_001"
    CONFIG_INVALID_REGION = "CONFIG_002"
    CONFIG_INVALID_PATTERN = "CONFIG_003"

    # Work area errors (SCOPE_xxx)
    SCOPE_OUTSIDE_WORK_AREA = "SCOPE_001"

    # Storage errors (STORAGE_xxx)
    STORAGE_WRITE_FAILED = "STORAGE_001"
    STORAGE_READ_FAILED = "STORAGE_002"
    STORAGE_DELETE_FAILED = "STORAGE_003"
    STORAGE_COPY_FAILED = "STORAGE_004"
    STORAGE_BATCH_DELETE_FAILED = "STORAGE_005"
    STORAGE_LOOKUP_FAILED = "STORAGE_006"


class FileServiceError(Exception):
    """
    Base class for asset store errors.

    Shape:

    {
        "code": "STORAGE_002",
        "message": "Error writing s3://bucket/key to local file system",
        "details": {"key": "images/a.png", "local_path": "/cache/images/a.png"}
    }
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(FileServiceError):
    """One or more S3 settings are missing or invalid.

    ``violations`` lists every problem found, not just the first.
    """

    def __init__(self, violations: List[str], code: ErrorCode = ErrorCode.CONFIG_MISSING_SETTING):
        self.violations = list(violations)
        super().__init__(
            code,
            "Amazon S3 Configuration Error : " + ", ".join(self.violations),
            {"violations": self.violations},
        )


class ScopeError(FileServiceError):
    """A file passed for upload lies outside the declared work area."""

    def __init__(self, path: str, work_area: str):
        self.path = path
        self.work_area = work_area
        super().__init__(
            ErrorCode.SCOPE_OUTSIDE_WORK_AREA,
            f"Attempt to update file {path} that is not in the passed in WorkArea {work_area}",
            {"path": path, "work_area": work_area},
        )


class TransferError(FileServiceError):
    """An I/O or storage API failure during get, put, copy or delete."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        key: str,
        local_path: Optional[str] = None,
        destination_key: Optional[str] = None,
    ):
        self.key = key
        self.local_path = local_path
        self.destination_key = destination_key
        details: Dict[str, Any] = {"key": key}
        if local_path is not None:
            details["local_path"] = local_path
        if destination_key is not None:
            details["destination_key"] = destination_key
        super().__init__(code, message, details)


class BatchDeleteError(FileServiceError):
    """Some keys of a multi-object delete were not removed.

    ``failures`` holds one ``{"key", "code", "message"}`` entry per key that
    failed. Keys that were deleted are not reported here.
    """

    def __init__(self, failures: List[Dict[str, Any]]):
        self.failures = list(failures)
        super().__init__(
            ErrorCode.STORAGE_BATCH_DELETE_FAILED,
            f"No. of objects failed to delete = {len(self.failures)}",
            {"failure_count": len(self.failures), "failures": self.failures},
        )

    @property
    def failure_count(self) -> int:
        return len(self.failures)
