"""Storage backends and disk handles for stored files."""

import enum
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import IO, Any, Final, final

from typing_extensions import override

from django.core.files.base import ContentFile
from django.core.files.base import File as DjangoFile
from django.core.files.storage import Storage
from django.utils import timezone
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.files.exceptions import ReadOnlyStorageError

logger = logging.getLogger(__name__)

_PATH_SEPARATOR: Final = '/'


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for stored files.

    Extends django-storages S3Storage with:
    - Enhanced error logging
    - Signed URLs with an explicit expiry
    - Listings that carry object sizes
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used.

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Args:
            name: Storage path of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def temporary_url(self, name: str, expires_at: datetime) -> str:
        """Create a signed URL valid until ``expires_at``.

        Args:
            name: Storage path of the file.
            expires_at: Moment the URL stops working.

        Returns:
            Presigned GET URL.
        """
        expire = max(1, int((expires_at - timezone.now()).total_seconds()))
        return self.url(name, expire=expire)

    def list_objects(
        self,
        directory: str = '',
        recursive: bool = False,
    ) -> Iterator[tuple[str, int]]:
        """Yield names and sizes of the objects below a directory.

        Sizes come with the listing, so no request is made per object.

        Args:
            directory: Storage path of the directory.
            recursive: Whether to include objects of subdirectories.

        Yields:
            Storage path and size in bytes of each object.
        """
        root = self._normalize_name('')
        prefix = self._normalize_name(clean_name(directory))
        if prefix and not prefix.endswith(_PATH_SEPARATOR):
            prefix = f'{prefix}{_PATH_SEPARATOR}'

        listing = {'Bucket': self.bucket_name, 'Prefix': prefix}
        if not recursive:
            listing['Delimiter'] = _PATH_SEPARATOR

        paginator = self.connection.meta.client.get_paginator('list_objects_v2')
        for page in paginator.paginate(**listing):
            for entry in page.get('Contents', []):
                key = entry['Key']
                # Directory placeholder objects
                if key.endswith(_PATH_SEPARATOR):
                    continue
                yield key[len(root):], entry['Size']


class Disk(enum.Enum):
    """Logical disks, one per visibility and access mode."""

    PUBLIC = 'public'
    PUBLIC_READONLY = 'public-readonly'
    PRIVATE = 'private'
    PRIVATE_READONLY = 'private-readonly'

    @classmethod
    def for_visibility(cls, is_public: bool, read_only: bool = False) -> 'Disk':
        """Pick the disk for a visibility and access mode.

        Args:
            is_public: Public or private files.
            read_only: Whether writes must be rejected.

        Returns:
            Matching Disk member.
        """
        if is_public:
            return cls.PUBLIC_READONLY if read_only else cls.PUBLIC
        return cls.PRIVATE_READONLY if read_only else cls.PRIVATE

    @property
    def is_public(self) -> bool:
        """Whether the disk holds public files."""
        return self in {Disk.PUBLIC, Disk.PUBLIC_READONLY}

    @property
    def read_only(self) -> bool:
        """Whether the disk rejects writes."""
        return self in {Disk.PUBLIC_READONLY, Disk.PRIVATE_READONLY}


@dataclass(frozen=True, slots=True)
class StorageObject:
    """A file found while listing a disk."""

    path: str
    size: int


def join_path(*parts: str | None) -> str:
    """Join path segments, skipping empty ones.

    Args:
        parts: Path segments, possibly empty or None.

    Returns:
        Segments joined by '/' without leading or trailing slashes.
    """
    cleaned = (
        part.strip(_PATH_SEPARATOR)
        for part in parts
        if part and part.strip(_PATH_SEPARATOR)
    )
    return _PATH_SEPARATOR.join(cleaned)


@final
class StorageDisk:
    """Key/value view of a Django storage, scoped to a directory prefix.

    Paths passed to and returned from a disk are relative to its
    prefix. A read-only disk raises ReadOnlyStorageError on writes.
    """

    def __init__(
        self,
        storage: Storage,
        prefix: str = '',
        read_only: bool = False,
    ) -> None:
        """Initialize disk.

        Args:
            storage: Underlying Django storage.
            prefix: Directory scope inside the storage.
            read_only: Whether writes must be rejected.
        """
        self._storage = storage
        self._prefix = prefix.strip(_PATH_SEPARATOR)
        self._read_only = read_only

    @property
    def storage(self) -> Storage:
        """Get the underlying Django storage."""
        return self._storage

    @property
    def prefix(self) -> str:
        """Get the directory scope."""
        return self._prefix

    @property
    def read_only(self) -> bool:
        """Whether writes are rejected."""
        return self._read_only

    def put(self, path: str, contents: bytes | IO[bytes]) -> str | None:
        """Write contents to a path, replacing any existing object.

        Args:
            path: Destination path relative to the disk.
            contents: Raw bytes or a binary file object.

        Returns:
            Saved path relative to the disk, or None if nothing was saved.
        """
        self._ensure_writable('put', path)
        if isinstance(contents, bytes):
            content: DjangoFile = ContentFile(contents)
        elif isinstance(contents, DjangoFile):
            content = contents
        else:
            content = DjangoFile(contents)

        saved_name = self._storage.save(self._full_path(path), content)
        if not saved_name:
            return None
        return self._relative_path(saved_name)

    def put_file_as(
        self,
        directory: str,
        file_obj: DjangoFile,
        name: str,
    ) -> str | None:
        """Write an uploaded file under a directory with a given name.

        Args:
            directory: Destination directory relative to the disk.
            file_obj: File to write.
            name: Destination file name.

        Returns:
            Saved path relative to the disk, or None if nothing was saved.
        """
        return self.put(join_path(directory, name), file_obj)

    def get(self, path: str) -> bytes | None:
        """Read an object.

        Args:
            path: Path relative to the disk.

        Returns:
            Object bytes, or None when it does not exist.
        """
        full_path = self._full_path(path)
        if not self._storage.exists(full_path):
            return None
        with self._storage.open(full_path, 'rb') as stored:
            return stored.read()

    def exists(self, path: str) -> bool:
        """Check whether an object exists."""
        return self._storage.exists(self._full_path(path))

    def size(self, path: str) -> int:
        """Get object size in bytes."""
        return self._storage.size(self._full_path(path))

    def delete(self, paths: str | list[str]) -> bool:
        """Delete one or more objects.

        Missing objects are skipped.

        Args:
            paths: A path or a list of paths relative to the disk.

        Returns:
            True once every existing object is deleted.
        """
        if isinstance(paths, str):
            paths = [paths]
        for path in paths:
            self._ensure_writable('delete', path)
            full_path = self._full_path(path)
            if self._storage.exists(full_path):
                self._storage.delete(full_path)
            else:
                logger.debug('Nothing to delete at: %s', full_path)
        return True

    def files(
        self,
        directory: str = '',
        recursive: bool = False,
    ) -> list[StorageObject]:
        """List files in a directory.

        Args:
            directory: Directory relative to the disk.
            recursive: Whether to descend into subdirectories.

        Objects removed while listing are skipped.

        Returns:
            Listed files with paths relative to the disk.
        """
        lister = getattr(self._storage, 'list_objects', None)
        if lister is not None:
            return [
                StorageObject(path=self._relative_path(name), size=size)
                for name, size in lister(self._full_path(directory), recursive)
            ]

        found: list[StorageObject] = []
        directories, names = self._listdir(directory)
        for name in names:
            path = join_path(directory, name)
            try:
                size = self.size(path)
            except FileNotFoundError:
                logger.info('Object removed while listing: %s', path)
                continue
            found.append(StorageObject(path=path, size=size))
        if recursive:
            for subdirectory in directories:
                found.extend(
                    self.files(join_path(directory, subdirectory), recursive),
                )
        return found

    def directories(
        self,
        directory: str = '',
        recursive: bool = False,
    ) -> list[str]:
        """List subdirectories of a directory.

        Args:
            directory: Directory relative to the disk.
            recursive: Whether to descend into subdirectories.

        Returns:
            Directory paths relative to the disk.
        """
        found: list[str] = []
        subdirectories, _ = self._listdir(directory)
        for subdirectory in subdirectories:
            path = join_path(directory, subdirectory)
            found.append(path)
            if recursive:
                found.extend(self.directories(path, recursive))
        return found

    def delete_directory(self, directory: str = '') -> bool:
        """Delete every file below a directory.

        Args:
            directory: Directory relative to the disk.

        Returns:
            True once all files are deleted.
        """
        self._ensure_writable('delete directory', directory)
        paths = [stored.path for stored in self.files(directory, recursive=True)]
        logger.info(
            'Deleting %d files below: %s',
            len(paths),
            self._full_path(directory),
        )
        return self.delete(paths)

    def url(self, path: str) -> str:
        """Get the URL for an object."""
        return self._storage.url(self._full_path(path))

    def temporary_url(self, path: str, expires_at: datetime) -> str | None:
        """Get a signed URL that expires at the given moment.

        Args:
            path: Path relative to the disk.
            expires_at: Moment the URL stops working.

        Returns:
            Signed URL, or None when the storage cannot sign URLs.
        """
        signer = getattr(self._storage, 'temporary_url', None)
        if signer is None:
            logger.warning(
                'Storage %s cannot create temporary URLs',
                type(self._storage).__name__,
            )
            return None
        return signer(self._full_path(path), expires_at)

    def _listdir(self, directory: str) -> tuple[list[str], list[str]]:
        try:
            return self._storage.listdir(self._full_path(directory))
        except FileNotFoundError:
            return [], []

    def _full_path(self, path: str) -> str:
        return join_path(self._prefix, path)

    def _relative_path(self, full_path: str) -> str:
        full_path = full_path.strip(_PATH_SEPARATOR)
        if self._prefix and full_path.startswith(
            f'{self._prefix}{_PATH_SEPARATOR}',
        ):
            return full_path[len(self._prefix) + 1:]
        return full_path

    def _ensure_writable(self, operation: str, path: str) -> None:
        if self._read_only:
            raise ReadOnlyStorageError(operation, self._full_path(path))
