"""Amazon S3 file service provider."""

import os
import time
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, List, Optional, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from assetstore.core.errors import (
    BatchDeleteError,
    ErrorCode,
    ScopeError,
    TransferError,
)
from assetstore.core.logging_config import get_logger
from assetstore.s3.client_cache import S3ClientCache
from assetstore.s3.configuration import S3Configuration
from assetstore.s3.configuration_service import S3ConfigurationService
from assetstore.s3.naming import build_resource_name
from assetstore.storage.protocol import (
    FileApplicationType,
    FileWorkArea,
    LocalResourceCache,
    TransferResult,
)


logger = get_logger(__name__)

T = TypeVar("T")

PUBLIC_READ_ACL = "public-read"
DOWNLOAD_CHUNK_SIZE = 8192
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _error_code(exc: ClientError) -> str:
    return exc.response.get('Error', {}).get('Code', 'Unknown')


def _http_status(exc: ClientError) -> Optional[int]:
    return exc.response.get('ResponseMetadata', {}).get('HTTPStatusCode')


def _is_not_found(exc: ClientError) -> bool:
    return _http_status(exc) == 404 or _error_code(exc) in NOT_FOUND_CODES


def get_extension(file_name: Optional[str]) -> Optional[str]:
    """Lower-cased text after the last dot, or None when there is no dot."""
    if file_name is None:
        return None
    idx = file_name.rfind('.')
    if idx == -1:
        return None
    return file_name[idx + 1:].lower()


class S3FileServiceProvider:
    """Stores site assets in a single S3 bucket and caches downloads locally.

    Every call resolves the (memoised) configuration, picks the client for
    it from the client cache and composes the object key with
    ``build_resource_name``. ``exists``, ``copy_object``, ``move_object``
    and ``delete_multiple_objects`` take raw keys and skip naming.

    Uploads of files whose extension matches the configured static asset
    pattern are stored public-read; everything else keeps the bucket
    default.
    """

    def __init__(
        self,
        configuration_service: S3ConfigurationService,
        local_cache: LocalResourceCache,
        client_cache: Optional[S3ClientCache] = None,
    ):
        """Initialize the provider.

        Args:
            configuration_service: Source of the S3 configuration
            local_cache: Where downloaded objects are written
            client_cache: Client cache; a private one is created when omitted
        """
        self.configuration_service = configuration_service
        self.local_cache = local_cache
        self.client_cache = client_cache if client_cache is not None else S3ClientCache()

    def _get_s3_client(self, s3config: S3Configuration):
        return self.client_cache.get_client(s3config)

    @staticmethod
    def _s3_uri(s3config: S3Configuration, key: str) -> str:
        return f"s3://{s3config.default_bucket_name}/{key}"

    def build_resource_name(self, s3config: S3Configuration, name: str) -> str:
        """Hook for overriding the key used for a resource in S3."""
        return build_resource_name(s3config, name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_resource(
        self,
        name: str,
        application_type: FileApplicationType = FileApplicationType.ALL,
    ) -> Optional[Path]:
        """Download an object into the local cache.

        Args:
            name: Logical resource name (e.g. "/images/foo.png")
            application_type: What the file is used for; informational only

        Returns:
            Path: The cached local file, or None if the key does not exist

        Raises:
            TransferError: On any storage or local I/O failure other than a
                missing key
        """
        s3config = self.configuration_service.lookup_configuration()
        resource_name = self.build_resource_name(s3config, name)
        return_file = self.local_cache.get_local_resource(resource_name)
        s3_uri = self._s3_uri(s3config, resource_name)

        logger.debug(
            "s3_get_resource_started",
            s3_uri=s3_uri,
            name=name,
            application_type=application_type.value,
            local_path=str(return_file),
        )

        s3 = self._get_s3_client(s3config)
        try:
            response = s3.get_object(Bucket=s3config.default_bucket_name, Key=resource_name)
        except ClientError as exc:
            logger.error(
                "s3_get_resource_failed",
                error_code=_error_code(exc),
                s3_uri=s3_uri,
                name=name,
                resource_name=resource_name,
                local_path=str(return_file),
            )
            if _error_code(exc) == "NoSuchKey":
                return None
            raise TransferError(
                ErrorCode.STORAGE_READ_FAILED,
                f"Error reading {s3_uri}: {exc}",
                key=resource_name,
                local_path=str(return_file),
            ) from exc
        except BotoCoreError as exc:
            raise TransferError(
                ErrorCode.STORAGE_READ_FAILED,
                f"Error reading {s3_uri}: {exc}",
                key=resource_name,
                local_path=str(return_file),
            ) from exc

        body = response['Body']
        bytes_written = 0
        try:
            self._ensure_parent_directory(return_file)
            with open(return_file, 'wb') as out:
                for chunk in body.iter_chunks(DOWNLOAD_CHUNK_SIZE):
                    out.write(chunk)
                    bytes_written += len(chunk)
        except (OSError, BotoCoreError) as exc:
            self._discard_partial_download(return_file, s3_uri)
            raise TransferError(
                ErrorCode.STORAGE_READ_FAILED,
                f"Error writing {s3_uri} to local file system at {return_file}",
                key=resource_name,
                local_path=str(return_file),
            ) from exc
        finally:
            self._close_body(body, s3_uri)

        logger.debug(
            "s3_get_resource_success",
            s3_uri=s3_uri,
            local_path=str(return_file),
            bytes_written=bytes_written,
        )
        return return_file

    @staticmethod
    def _close_body(body, s3_uri: str) -> None:
        """Release the response stream; a failure here is logged, never raised."""
        try:
            body.close()
        except (OSError, BotoCoreError) as exc:
            logger.error("s3_get_resource_close_failed", s3_uri=s3_uri, error=str(exc))

    @staticmethod
    def _discard_partial_download(path: Path, s3_uri: str) -> None:
        try:
            if path.is_file():
                path.unlink()
        except OSError as exc:
            logger.error(
                "s3_get_resource_cleanup_failed",
                s3_uri=s3_uri,
                local_path=str(path),
                error=str(exc),
            )

    @staticmethod
    def _ensure_parent_directory(path: Path) -> None:
        parent = path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Another thread may have created it in the meantime.
            if not parent.is_dir():
                raise

    def exists(self, key: str) -> bool:
        """Check whether an object exists at the raw ``key``.

        Raises:
            TransferError: If the lookup fails for a reason other than 404
        """
        s3config = self.configuration_service.lookup_configuration()
        s3 = self._get_s3_client(s3config)
        return self._object_exists(s3, s3config, key)

    def _object_exists(self, s3, s3config: S3Configuration, key: str) -> bool:
        try:
            s3.head_object(Bucket=s3config.default_bucket_name, Key=key)
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise TransferError(
                ErrorCode.STORAGE_LOOKUP_FAILED,
                f"Unable to check existence of {self._s3_uri(s3config, key)}: {exc}",
                key=key,
            ) from exc
        except BotoCoreError as exc:
            raise TransferError(
                ErrorCode.STORAGE_LOOKUP_FAILED,
                f"Unable to check existence of {self._s3_uri(s3config, key)}: {exc}",
                key=key,
            ) from exc
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_or_update_resources(
        self,
        work_area: FileWorkArea,
        files: Iterable[Path],
        remove_files_from_work_area: bool = False,
    ) -> None:
        """Upload files from a work area; see ``add_or_update_resources_for_paths``."""
        self.add_or_update_resources_for_paths(work_area, files, remove_files_from_work_area)

    def add_or_update_resources_for_paths(
        self,
        work_area: FileWorkArea,
        files: Iterable[Path],
        remove_files_from_work_area: bool = False,
    ) -> List[str]:
        """Upload new or changed files from a work area.

        A file is uploaded only when the object is missing or its stored
        size differs from the local size. If the bucket does not exist it
        is created and the whole batch is retried once.

        Args:
            work_area: Staging root the files must live under
            files: Local files to upload
            remove_files_from_work_area: Delete the local files once the
                batch has been stored

        Returns:
            List[str]: Logical names (path relative to the work area root)

        Raises:
            ScopeError: If a file is outside the work area
            TransferError: If the store rejects a lookup or upload
        """
        files = [Path(f) for f in files]
        s3config = self.configuration_service.lookup_configuration()
        s3 = self._get_s3_client(s3config)

        resource_paths = self._with_bucket_retry(
            s3,
            s3config,
            lambda: self._add_or_update_resources_internal(s3config, s3, work_area, files),
        )

        if remove_files_from_work_area:
            for src_file in files:
                src_file.unlink(missing_ok=True)
        return resource_paths

    def _add_or_update_resources_internal(
        self,
        s3config: S3Configuration,
        s3,
        work_area: FileWorkArea,
        files: List[Path],
    ) -> List[str]:
        bucket = s3config.default_bucket_name
        resource_paths = []
        root = os.path.abspath(work_area.file_path_location).rstrip(os.sep)

        for src_file in files:
            absolute_path = os.path.abspath(src_file)
            # Sibling directories sharing the root as a string prefix are outside.
            if not absolute_path.startswith(root + os.sep):
                raise ScopeError(absolute_path, work_area.file_path_location)

            ts1 = time.perf_counter()
            file_name = absolute_path[len(root):]
            resource_name = self.build_resource_name(s3config, file_name)

            try:
                file_size = os.path.getsize(absolute_path)
                existing_size = self._stored_size(s3, bucket, resource_name)
                ts2 = time.perf_counter()

                uploaded = existing_size is None or existing_size != file_size
                if uploaded:
                    put_kwargs = {"Bucket": bucket, "Key": resource_name}
                    if s3config.is_static_asset(get_extension(file_name)):
                        put_kwargs["ACL"] = PUBLIC_READ_ACL

                    with open(absolute_path, 'rb') as body:
                        s3.put_object(Body=body, ContentLength=file_size, **put_kwargs)
            except ClientError as exc:
                if _error_code(exc) == "NoSuchBucket":
                    raise
                raise TransferError(
                    ErrorCode.STORAGE_WRITE_FAILED,
                    f"Unable to copy {absolute_path} to {self._s3_uri(s3config, resource_name)}: {exc}",
                    key=resource_name,
                    local_path=absolute_path,
                ) from exc
            except (OSError, BotoCoreError) as exc:
                raise TransferError(
                    ErrorCode.STORAGE_WRITE_FAILED,
                    f"Unable to copy {absolute_path} to {self._s3_uri(s3config, resource_name)}: {exc}",
                    key=resource_name,
                    local_path=absolute_path,
                ) from exc

            if uploaded:
                ts3 = time.perf_counter()

                logger.debug(
                    "s3_resource_uploaded",
                    src_file=absolute_path,
                    s3_uri=self._s3_uri(s3config, resource_name),
                    public_read="ACL" in put_kwargs,
                    query_time_ms=round((ts2 - ts1) * 1000, 2),
                    upload_time_ms=round((ts3 - ts2) * 1000, 2),
                    total_time_ms=round((ts3 - ts1) * 1000, 2),
                )
            else:
                logger.debug(
                    "s3_resource_unchanged",
                    src_file=absolute_path,
                    s3_uri=self._s3_uri(s3config, resource_name),
                    file_size=file_size,
                    query_time_ms=round((ts2 - ts1) * 1000, 2),
                )

            resource_paths.append(file_name)
        return resource_paths

    @staticmethod
    def _stored_size(s3, bucket: str, key: str) -> Optional[int]:
        """Size of the stored object, or None if it does not exist."""
        try:
            meta = s3.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if _is_not_found(exc):
                return None
            raise
        return meta.get('ContentLength')

    def add_or_update_resource(self, stream: BinaryIO, name: str, size: int) -> None:
        """Upload a single object from a stream.

        Args:
            stream: Binary stream with the object content
            name: Logical resource name
            size: Content length in bytes

        Raises:
            TransferError: If the store rejects the upload
        """
        s3config = self.configuration_service.lookup_configuration()
        s3 = self._get_s3_client(s3config)
        start = stream.tell() if stream.seekable() else None

        def upload():
            if start is not None:
                stream.seek(start)
            self._add_or_update_resource_internal(s3config, s3, stream, name, size)

        self._with_bucket_retry(s3, s3config, upload)

    def _add_or_update_resource_internal(
        self,
        s3config: S3Configuration,
        s3,
        stream: BinaryIO,
        name: str,
        size: int,
    ) -> None:
        resource_name = self.build_resource_name(s3config, name)
        put_kwargs = {
            "Bucket": s3config.default_bucket_name,
            "Key": resource_name,
            "Body": stream,
            "ContentLength": size,
        }
        if s3config.is_static_asset(get_extension(name)):
            put_kwargs["ACL"] = PUBLIC_READ_ACL

        try:
            s3.put_object(**put_kwargs)
        except ClientError as exc:
            if _error_code(exc) == "NoSuchBucket":
                raise
            raise TransferError(
                ErrorCode.STORAGE_WRITE_FAILED,
                f"Unable to write {self._s3_uri(s3config, resource_name)}: {exc}",
                key=resource_name,
            ) from exc
        except BotoCoreError as exc:
            raise TransferError(
                ErrorCode.STORAGE_WRITE_FAILED,
                f"Unable to write {self._s3_uri(s3config, resource_name)}: {exc}",
                key=resource_name,
            ) from exc

        logger.debug(
            "s3_resource_uploaded",
            name=name,
            s3_uri=self._s3_uri(s3config, resource_name),
            public_read="ACL" in put_kwargs,
            size=size,
        )

    def _with_bucket_retry(self, s3, s3config: S3Configuration, operation: Callable[[], T]) -> T:
        """Run ``operation``; on NoSuchBucket create the bucket and run it once more.

        ``operation`` raises ``ClientError`` only for NoSuchBucket and wraps
        every other storage failure itself.
        """
        bucket = s3config.default_bucket_name
        try:
            try:
                return operation()
            except ClientError:
                logger.info("s3_bucket_missing_creating", bucket=bucket)
                self._create_bucket(s3, s3config)
                return operation()
        except ClientError as exc:
            raise TransferError(
                ErrorCode.STORAGE_WRITE_FAILED,
                f"Unable to write to s3://{bucket}: {_error_code(exc)} {exc}",
                key=bucket,
            ) from exc
        except BotoCoreError as exc:
            raise TransferError(
                ErrorCode.STORAGE_WRITE_FAILED,
                f"Unable to write to s3://{bucket}: {exc}",
                key=bucket,
            ) from exc

    @staticmethod
    def _create_bucket(s3, s3config: S3Configuration) -> None:
        create_bucket_kwargs = {"Bucket": s3config.default_bucket_name}
        region = s3config.default_bucket_region
        if region and region != "us-east-1":
            create_bucket_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        s3.create_bucket(**create_bucket_kwargs)

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    def remove_resource(self, name: str) -> bool:
        """Delete an object and its locally cached copy.

        Deleting a key that does not exist is not an error.

        Returns:
            bool: Always True

        Raises:
            TransferError: If the store rejects the delete
        """
        s3config = self.configuration_service.lookup_configuration()
        s3 = self._get_s3_client(s3config)
        resource_name = self.build_resource_name(s3config, name)
        s3_uri = self._s3_uri(s3config, resource_name)

        try:
            s3.delete_object(Bucket=s3config.default_bucket_name, Key=resource_name)
        except (ClientError, BotoCoreError) as exc:
            raise TransferError(
                ErrorCode.STORAGE_DELETE_FAILED,
                f"Unable to delete {s3_uri}: {exc}",
                key=resource_name,
            ) from exc

        local_file = self.local_cache.get_local_resource(resource_name)
        local_file.unlink(missing_ok=True)

        logger.debug("s3_resource_deleted", s3_uri=s3_uri, local_path=str(local_file))
        return True

    def delete_multiple_objects(self, keys: Optional[List[str]]) -> None:
        """Delete many raw keys with one batch request.

        Raises:
            BatchDeleteError: If any key could not be deleted
            TransferError: If the request itself fails
        """
        if not keys:
            return

        s3config = self.configuration_service.lookup_configuration()
        s3 = self._get_s3_client(s3config)
        bucket = s3config.default_bucket_name

        try:
            response = s3.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
            )
        except (ClientError, BotoCoreError) as exc:
            raise TransferError(
                ErrorCode.STORAGE_BATCH_DELETE_FAILED,
                f"Unable to delete {len(keys)} objects from s3://{bucket}: {exc}",
                key=bucket,
            ) from exc

        deleted = response.get('Deleted', [])
        errors = response.get('Errors', [])

        if not errors:
            logger.debug("s3_objects_deleted", bucket=bucket, count=len(deleted), keys=keys)
            return

        failures = [
            {"key": err.get('Key'), "code": err.get('Code'), "message": err.get('Message')}
            for err in errors
        ]
        logger.debug(
            "s3_objects_partially_deleted",
            bucket=bucket,
            deleted_count=len(deleted),
            failed_count=len(failures),
            deleted_keys=[d.get('Key') for d in deleted],
        )
        for failure in failures:
            logger.debug("s3_object_delete_failed", bucket=bucket, **failure)
        raise BatchDeleteError(failures)

    # ------------------------------------------------------------------
    # Copy / move
    # ------------------------------------------------------------------

    def copy_object(
        self,
        src_key: str,
        dest_key: str,
        check_and_succeed_if_already_moved: bool = False,
    ) -> TransferResult:
        """Copy ``src_key`` to ``dest_key`` within the bucket.

        Raises:
            TransferError: If the copy fails and the tolerance rule does not apply
        """
        return self._copy_or_move_object(src_key, dest_key, False, check_and_succeed_if_already_moved)

    def move_object(
        self,
        src_key: str,
        dest_key: str,
        check_and_succeed_if_already_moved: bool = False,
    ) -> TransferResult:
        """Copy then delete the source.

        A failure to delete the source is returned as the result's warning.

        Raises:
            TransferError: If the copy fails and the tolerance rule does not apply
        """
        return self._copy_or_move_object(src_key, dest_key, True, check_and_succeed_if_already_moved)

    def _copy_or_move_object(
        self,
        src_key: str,
        dest_key: str,
        move: bool,
        check_and_succeed_if_already_moved: bool,
    ) -> TransferResult:
        s3config = self.configuration_service.lookup_configuration()
        s3 = self._get_s3_client(s3config)
        bucket = s3config.default_bucket_name

        copy_kwargs = {
            "Bucket": bucket,
            "Key": dest_key,
            "CopySource": {"Bucket": bucket, "Key": src_key},
        }
        # Objects that do not match get the bucket default, same as uploads.
        if s3config.is_static_asset(get_extension(dest_key)):
            copy_kwargs["ACL"] = PUBLIC_READ_ACL

        try:
            s3.copy_object(**copy_kwargs)
        except ClientError as exc:
            if not (_is_not_found(exc) and check_and_succeed_if_already_moved):
                raise TransferError(
                    ErrorCode.STORAGE_COPY_FAILED,
                    f"Unable to copy object from: {src_key} to: {dest_key}",
                    key=src_key,
                    destination_key=dest_key,
                ) from exc

            if not self._object_exists(s3, s3config, dest_key):
                raise TransferError(
                    ErrorCode.STORAGE_COPY_FAILED,
                    f"neither src({src_key}) or dest({dest_key}) exist",
                    key=src_key,
                    destination_key=dest_key,
                ) from exc

            warning = f"src({src_key}) doesn't exist but dest({dest_key}) does, so assuming success"
            logger.warning("s3_copy_source_already_moved", src_key=src_key, dest_key=dest_key)
            return TransferResult(src_key, dest_key, moved=move, warning=warning)
        except BotoCoreError as exc:
            raise TransferError(
                ErrorCode.STORAGE_COPY_FAILED,
                f"Unable to copy object from: {src_key} to: {dest_key}",
                key=src_key,
                destination_key=dest_key,
            ) from exc

        logger.debug("s3_object_copied", bucket=bucket, src_key=src_key, dest_key=dest_key)

        if not move:
            return TransferResult(src_key, dest_key)

        try:
            s3.delete_object(Bucket=bucket, Key=src_key)
        except (ClientError, BotoCoreError) as exc:
            warning = f"Moving object but unable to delete old object: {src_key}"
            logger.error(
                "s3_move_delete_source_failed",
                bucket=bucket,
                src_key=src_key,
                dest_key=dest_key,
                error=str(exc),
                exc_info=True,
            )
            return TransferResult(src_key, dest_key, moved=True, warning=warning)

        logger.debug("s3_object_moved", bucket=bucket, src_key=src_key, dest_key=dest_key)
        return TransferResult(src_key, dest_key, moved=True)
