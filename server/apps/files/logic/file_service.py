"""File storage service: disks, uploads and access URLs."""

import base64
import binascii
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from functools import cache
from typing import TYPE_CHECKING, Final, TypeAlias, final

import httpx
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.base import File as DjangoFile
from django.core.files.storage import Storage, storages
from django.core.validators import URLValidator
from django.utils import timezone

from server.apps.files.exceptions import FileUploadFailedError
from server.apps.files.infrastructure.metadata import (
    detect_extension,
    detect_mime_type,
    get_file_stem,
    sniff_extension,
    sniff_mime_type,
)
from server.apps.files.infrastructure.storage import (
    Disk,
    StorageDisk,
    StorageObject,
    join_path,
)
from server.apps.files.logic.file_data import FileData
from server.apps.files.logic.naming import (
    build_filename,
    generate_random_name,
    resolve_destination,
)
from server.apps.files.logic.url_policy import (
    refresh_url,
    validate_expire_after,
)

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

    from server.apps.files.models import File

logger = logging.getLogger(__name__)

_DATA_URI_SEPARATOR: Final = ','
_URL_SCHEMES: Final = ('http', 'https')

StoreInput: TypeAlias = DjangoFile | str | list[DjangoFile | str] | tuple[DjangoFile | str, ...]
StoreResult: TypeAlias = 'File | FileData | None'


@final
class FileService:
    """Stores files on the public or private disk and tracks them.

    One service holds the four logical disks (public, private and
    their read-only twins), the signed URL lifetime and the collision
    policy used when original file names are preserved. Every value
    defaults to the matching SIMPLE_FILES_* setting.
    """

    def __init__(  # noqa: WPS211
        self,
        public_storage: Storage | None = None,
        private_storage: Storage | None = None,
        public_prefix: str | None = None,
        private_prefix: str | None = None,
        expire_after: timedelta | None = None,
        overwrite_on_exists: bool | None = None,
        skip_upload_on_exists: bool | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            public_storage: Storage of public files.
            private_storage: Storage of private files.
            public_prefix: Directory scope of public files.
            private_prefix: Directory scope of private files.
            expire_after: Lifetime of signed URLs, at most 7 days.
            overwrite_on_exists: Overwrite files with a preserved name.
            skip_upload_on_exists: Reuse files with a preserved name.
            http_transport: Transport for remote URL fetches.

        Raises:
            ImproperlyConfigured: If expire_after exceeds 7 days.
        """
        if expire_after is None:
            expire_after = timedelta(
                seconds=getattr(settings, 'SIMPLE_FILES_EXPIRE_AFTER', 86400),
            )
        self._expire_after = validate_expire_after(expire_after)

        if overwrite_on_exists is None:
            overwrite_on_exists = getattr(
                settings,
                'SIMPLE_FILES_OVERWRITE_ON_EXISTS',
                False,
            )
        if skip_upload_on_exists is None:
            skip_upload_on_exists = getattr(
                settings,
                'SIMPLE_FILES_SKIP_UPLOAD_ON_EXISTS',
                True,
            )
        self._overwrite_on_exists = overwrite_on_exists
        self._skip_upload_on_exists = skip_upload_on_exists

        self._disks = _build_disks(
            public_storage=public_storage or storages[
                getattr(settings, 'SIMPLE_FILES_PUBLIC_DISK', 'default')
            ],
            private_storage=private_storage or storages[
                getattr(settings, 'SIMPLE_FILES_PRIVATE_DISK', 'default')
            ],
            public_prefix=_setting_or(
                public_prefix,
                'SIMPLE_FILES_PUBLIC_PREFIX',
                'public',
            ),
            private_prefix=_setting_or(
                private_prefix,
                'SIMPLE_FILES_PRIVATE_PREFIX',
                'private',
            ),
        )

        self._http_transport = http_transport
        self._http_timeout = getattr(settings, 'SIMPLE_FILES_URL_TIMEOUT', 10.0)
        self._url_validator = URLValidator(schemes=_URL_SCHEMES)

    @property
    def expire_after(self) -> timedelta:
        """Get the lifetime of signed URLs."""
        return self._expire_after

    @property
    def overwrite_on_exists(self) -> bool:
        """Whether preserved names overwrite existing files."""
        return self._overwrite_on_exists

    @property
    def skip_upload_on_exists(self) -> bool:
        """Whether preserved names reuse existing files."""
        return self._skip_upload_on_exists

    def get_expire_after(self) -> datetime:
        """Get the expiry moment of a URL signed now."""
        return timezone.now() + self._expire_after

    def disk(self, is_public: bool, read_only: bool = False) -> StorageDisk:
        """Get the disk for a visibility.

        Args:
            is_public: Public or private files.
            read_only: Whether to return the read-only handle.

        Returns:
            StorageDisk for the visibility.
        """
        return self._disks[Disk.for_visibility(is_public, read_only)]

    # Storing

    def store(  # noqa: WPS211
        self,
        is_public: bool,
        file: StoreInput,
        owner: 'AbstractBaseUser | None' = None,
        preserve_name: bool = False,
        return_as_model: bool = True,
        tags: Iterable[str] = (),
    ) -> 'StoreResult | list[StoreResult]':
        """Store a file and record its metadata.

        A list or tuple is stored item by item; items stored before a
        failing one stay stored.

        Args:
            is_public: Store on the public or private disk.
            file: Uploaded file, remote URL, base64 string or a list of them.
            owner: Owner of the file; None stores it anonymously.
            preserve_name: Keep the original name of uploaded files.
            return_as_model: Persist a File record instead of returning
                the raw FileData.
            tags: Tag names to attach to the file.

        Returns:
            File or FileData, None when the input could not be
            interpreted, or a list of those for list input.

        Raises:
            FileUploadFailedError: If the storage write fails.
            TypeError: If the input is of an unsupported type.
        """
        tags = list(tags)
        if isinstance(file, (list, tuple)):
            return [
                self.store(
                    is_public,
                    item,
                    owner=owner,
                    preserve_name=preserve_name,
                    return_as_model=return_as_model,
                    tags=tags,
                )
                for item in file
            ]

        owner_id = owner.pk if owner is not None else None
        folder = str(owner_id) if owner_id is not None else ''

        if isinstance(file, DjangoFile):
            file_data = self._store_upload(is_public, folder, file, preserve_name)
        elif isinstance(file, str):
            file_data = self._store_contents(is_public, folder, file)
        else:
            raise TypeError(
                f'Cannot store object of type {type(file).__name__}',
            )

        if file_data is None:
            logger.info('Nothing to store, input was not a file, URL or base64')
            return None

        file_data.owner_id = owner_id
        file_data.tags = tags

        if not return_as_model:
            return file_data
        return file_data.update_or_create()

    def store_publicly(
        self,
        file: StoreInput,
        owner: 'AbstractBaseUser | None' = None,
        preserve_name: bool = False,
        return_as_model: bool = True,
        tags: Iterable[str] = (),
    ) -> 'StoreResult | list[StoreResult]':
        """Store a file on the public disk. See store()."""
        return self.store(
            True,
            file,
            owner=owner,
            preserve_name=preserve_name,
            return_as_model=return_as_model,
            tags=tags,
        )

    def store_privately(
        self,
        file: StoreInput,
        owner: 'AbstractBaseUser | None' = None,
        preserve_name: bool = False,
        return_as_model: bool = True,
        tags: Iterable[str] = (),
    ) -> 'StoreResult | list[StoreResult]':
        """Store a file on the private disk. See store()."""
        return self.store(
            False,
            file,
            owner=owner,
            preserve_name=preserve_name,
            return_as_model=return_as_model,
            tags=tags,
        )

    def contents_from_url(self, value: str) -> bytes | None:
        """Download contents from a remote URL.

        The URL must answer a HEAD request successfully before it is
        downloaded.

        Args:
            value: Candidate URL.

        Returns:
            Downloaded bytes, or None if value is not a reachable URL.
        """
        try:
            self._url_validator(value)
        except ValidationError:
            return None

        try:
            with httpx.Client(
                transport=self._http_transport,
                timeout=self._http_timeout,
                follow_redirects=True,
            ) as client:
                if not client.head(value).is_success:
                    logger.info('HEAD check failed for URL: %s', value)
                    return None
                response = client.get(value)
        except httpx.HTTPError:
            logger.warning('Failed to fetch file from URL: %s', value, exc_info=True)
            return None

        if not response.is_success:
            logger.info(
                'Download failed for URL: %s (status %d)',
                value,
                response.status_code,
            )
            return None
        return response.content or None

    def contents_from_base64(self, value: str) -> bytes | None:
        """Decode a base64 string, with or without a data URI header.

        Args:
            value: Candidate base64 string.

        Returns:
            Decoded bytes, or None if value is not valid base64.
        """
        encoded = value.split(_DATA_URI_SEPARATOR, 1)[-1].strip()
        try:
            contents = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            return None
        return contents or None

    # Disk passthroughs

    def get_files(
        self,
        path: str = '',
        is_public: bool = True,
        recursive: bool = False,
    ) -> list[StorageObject]:
        """List files below a path of a disk."""
        return self.disk(is_public, read_only=True).files(path, recursive)

    def get_directories(
        self,
        path: str = '',
        is_public: bool = True,
        recursive: bool = False,
    ) -> list[str]:
        """List directories below a path of a disk."""
        return self.disk(is_public, read_only=True).directories(path, recursive)

    def get_file(self, path: str, is_public: bool = True) -> bytes | None:
        """Read a file from a disk."""
        return self.disk(is_public, read_only=True).get(path)

    def put_file(
        self,
        path: str,
        contents: bytes,
        is_public: bool = True,
    ) -> str | None:
        """Write raw contents to a disk without recording metadata."""
        return self.disk(is_public).put(path, contents)

    def delete(self, path: str | list[str], is_public: bool = True) -> bool:
        """Delete one or more files from a disk."""
        return self.disk(is_public).delete(path)

    def delete_files(self, path: str = '', is_public: bool = True) -> bool:
        """Delete every file below a path of a disk."""
        return self.disk(is_public).delete_directory(path)

    def exists(self, path: str, is_public: bool = True) -> bool:
        """Check whether a file exists on a disk."""
        return self.disk(is_public, read_only=True).exists(path)

    # URLs

    def url(
        self,
        is_public: bool,
        path: str,
        expires_at: datetime | None = None,
    ) -> str | None:
        """Get a ready-to-use link to a file.

        Args:
            is_public: Disk the file is on.
            path: Path relative to the disk.
            expires_at: Expiry of private links, defaults to the
                configured lifetime from now.

        Returns:
            Permanent URL for public files, signed URL for private
            files, None when the storage cannot sign URLs.
        """
        disk = self.disk(is_public, read_only=True)
        if is_public:
            return disk.url(path)
        return disk.temporary_url(path, expires_at or self.get_expire_after())

    def refresh_url(self, file_instance: 'File') -> None:
        """Refresh the cached URL of a file if needed. See url_policy."""
        refresh_url(
            file_instance,
            self.disk(file_instance.is_public, read_only=True),
            self._expire_after,
        )

    def generate_url(self, file_instance: 'File') -> None:
        """Issue a new URL for a file, expired or not.

        Args:
            file_instance: File to update, not saved here.
        """
        if not self.exists(file_instance.path, file_instance.is_public):
            file_instance.url = None
            file_instance.url_expires_at = None
            return

        expires_at = self.get_expire_after()
        file_instance.url = self.url(
            file_instance.is_public,
            file_instance.path,
            expires_at,
        )
        if file_instance.is_public or file_instance.url is None:
            file_instance.url_expires_at = None
        else:
            file_instance.url_expires_at = expires_at

    def _store_upload(
        self,
        is_public: bool,
        folder: str,
        file_obj: DjangoFile,
        preserve_name: bool,
    ) -> FileData:
        disk = self.disk(is_public)
        mime_type = detect_mime_type(file_obj)
        extension = detect_extension(file_obj, mime_type)
        mime_folder = join_path(folder, mime_type)

        destination = resolve_destination(
            desired_name=get_file_stem(file_obj.name or ''),
            extension=extension,
            folder=mime_folder,
            preserve_original_name=preserve_name,
            overwrite_on_exists=self._overwrite_on_exists,
            skip_upload_on_exists=self._skip_upload_on_exists,
            path_exists=disk.exists,
        )

        path = destination.path
        if not destination.skip_write:
            path = _write(
                destination.path,
                lambda: disk.put_file_as(mime_folder, file_obj, destination.name),
            )

        return FileData(
            path=path,
            name=destination.name,
            is_public=is_public,
            mime_type=mime_type,
            extension=extension,
            size=disk.size(path),
        )

    def _store_contents(
        self,
        is_public: bool,
        folder: str,
        value: str,
    ) -> FileData | None:
        contents = self.contents_from_url(value) or self.contents_from_base64(value)
        if contents is None:
            return None

        mime_type = sniff_mime_type(contents)
        extension = sniff_extension(contents, mime_type)
        name = build_filename(generate_random_name(), extension)
        destination = join_path(folder, mime_type, name)
        disk = self.disk(is_public)
        path = _write(destination, lambda: disk.put(destination, contents))

        return FileData(
            path=path,
            name=name,
            is_public=is_public,
            mime_type=mime_type,
            extension=extension,
            size=disk.size(path),
        )


@cache
def get_file_service() -> FileService:
    """Get the FileService configured from settings.

    The instance is cached; the cache is cleared when a SIMPLE_FILES_*
    setting changes.

    Returns:
        Shared FileService instance.
    """
    return FileService()


def _write(path: str, writer: Callable[[], str | None]) -> str:
    try:
        saved_path = writer()
    except Exception as exc:
        raise FileUploadFailedError(path) from exc
    if not saved_path:
        raise FileUploadFailedError(path)
    return saved_path


def _setting_or(value: str | None, setting_name: str, default: str) -> str:
    if value is not None:
        return value
    return getattr(settings, setting_name, default)


def _build_disks(
    public_storage: Storage,
    private_storage: Storage,
    public_prefix: str,
    private_prefix: str,
) -> dict[Disk, StorageDisk]:
    disks: dict[Disk, StorageDisk] = {}
    for disk in Disk:
        disks[disk] = StorageDisk(
            public_storage if disk.is_public else private_storage,
            prefix=public_prefix if disk.is_public else private_prefix,
            read_only=disk.read_only,
        )
    return disks
