"""Database models for files app."""

import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Final, final

from typing_extensions import override

from django.conf import settings
from django.db import models

if TYPE_CHECKING:
    from server.apps.files.infrastructure.storage import StorageDisk

# Constants for field max lengths
_PATH_MAX_LENGTH: Final = 512
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_EXTENSION_MAX_LENGTH: Final = 32
_TAG_NAME_MAX_LENGTH: Final = 100
_FILEABLE_TYPE_MAX_LENGTH: Final = 100
_FILEABLE_ID_MAX_LENGTH: Final = 64

_PATH_STRIP_CHARS: Final = '/ '


class FileQuerySet(models.QuerySet['File']):
    """Query helpers for File records."""

    def public(self, flag: bool = True) -> 'FileQuerySet':
        """Filter files by public visibility.

        Args:
            flag: False inverts the filter.

        Returns:
            Filtered QuerySet.
        """
        return self.filter(is_public=flag)

    def private(self, flag: bool = True) -> 'FileQuerySet':
        """Filter files by private visibility.

        Args:
            flag: False inverts the filter.

        Returns:
            Filtered QuerySet.
        """
        return self.filter(is_public=not flag)

    def images(self, flag: bool = True) -> 'FileQuerySet':
        """Filter files whose mime type is an image type.

        Args:
            flag: False returns non-image files instead.

        Returns:
            Filtered QuerySet.
        """
        if flag:
            return self.filter(mime_type__startswith='image')
        return self.exclude(mime_type__startswith='image')

    def with_extension(self, extension: str) -> 'FileQuerySet':
        """Filter files by extension."""
        return self.filter(extension=extension)


class ActiveFileManager(models.Manager.from_queryset(FileQuerySet)):  # type: ignore[misc]
    """Default manager that hides soft-deleted files."""

    @override
    def get_queryset(self) -> FileQuerySet:
        """Exclude archived files."""
        return super().get_queryset().filter(deleted_at__isnull=True)


class AllFileManager(models.Manager.from_queryset(FileQuerySet)):  # type: ignore[misc]
    """Manager that includes soft-deleted files."""


@final
class Tag(models.Model):
    """Tag attached to files at upload time."""

    name = models.CharField(
        max_length=_TAG_NAME_MAX_LENGTH,
        unique=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Tag'  # type: ignore[mutable-override]
        verbose_name_plural = 'Tags'  # type: ignore[mutable-override]
        ordering = ['name']

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class File(models.Model):
    """File stored in a public or private storage disk.

    The path is relative to the disk of the file's visibility and
    follows the pattern: {owner_id}/{mime_type}/{name}. Anonymous
    uploads have no owner segment.

    The uuid is the public reference key; the numeric id never leaves
    the database layer.
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        unique=True,
        editable=False,
    )

    # Owner relationship, empty for anonymous uploads
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='uploaded_files',
        null=True,
        blank=True,
    )

    # Relative to the disk of the file's visibility, unique per visibility
    path = models.CharField(
        max_length=_PATH_MAX_LENGTH,
        help_text='Path in storage: {owner_id}/{mime_type}/{name}',
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        null=True,
        blank=True,
        db_index=True,
    )

    extension = models.CharField(
        max_length=_EXTENSION_MAX_LENGTH,
        null=True,
        blank=True,
        db_index=True,
    )

    size = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text='File size in bytes',
    )

    is_public = models.BooleanField(default=True)

    # Cached access URL, refreshed on every save
    url = models.TextField(null=True, blank=True)
    url_expires_at = models.DateTimeField(null=True, blank=True)

    tags = models.ManyToManyField(
        Tag,
        related_name='files',
        blank=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = ActiveFileManager()
    all_objects = AllFileManager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-created_at']
        base_manager_name = 'all_objects'

        indexes = [
            models.Index(
                fields=['owner', '-created_at'],
                name='files_owner_recent_idx',
            ),
        ]

        constraints = [
            models.UniqueConstraint(
                fields=['is_public', 'path'],
                name='files_visibility_path_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        visibility = 'public' if self.is_public else 'private'
        return f'{visibility}:{self.path}'

    @override
    def save(self, *args: object, **kwargs: object) -> None:
        """Normalize the path before saving."""
        self.path = self.path.strip(_PATH_STRIP_CHARS)
        super().save(*args, **kwargs)  # type: ignore[arg-type]

    @property
    def is_image(self) -> bool:
        """Whether the mime type is an image type."""
        return bool(self.mime_type and self.mime_type.startswith('image'))

    @property
    def is_deleted(self) -> bool:
        """Whether the file is archived."""
        return self.deleted_at is not None

    def get_folder_path(self) -> str:
        """Extract folder path from path.

        Example: '1/image/jpeg/photo.jpg' -> '1/image/jpeg'

        Returns:
            Folder path (parent directory of file).
        """
        return str(Path(self.path).parent)

    def get_disk(self, read_only: bool = False) -> 'StorageDisk':
        """Get the storage disk matching the file's visibility.

        Args:
            read_only: Whether to return the read-only handle.

        Returns:
            StorageDisk for this file.
        """
        from server.apps.files.logic.file_service import get_file_service

        return get_file_service().disk(self.is_public, read_only=read_only)

    def get_contents(self) -> bytes | None:
        """Read file contents from storage.

        Returns:
            File bytes, or None when the object is missing.
        """
        return self.get_disk(read_only=True).get(self.path)

    def exists(self) -> bool:
        """Check whether the stored object exists."""
        return self.get_disk(read_only=True).exists(self.path)

    def generate_url(self) -> 'File':
        """Regenerate the access URL unconditionally.

        Unlike the lazy refresh on save, this always issues a new URL
        (and a new expiry for private files) when the object exists.

        Returns:
            This instance, not saved.
        """
        from server.apps.files.logic.file_service import get_file_service

        get_file_service().generate_url(self)
        return self


@final
class Fileable(models.Model):
    """Attachment of a file to an arbitrary owning entity.

    The owner is identified by a registry tag and its primary key
    stored as text, so any model registered with the file relation
    registry can own files.
    """

    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='fileables',
    )

    fileable_type = models.CharField(max_length=_FILEABLE_TYPE_MAX_LENGTH)
    fileable_id = models.CharField(max_length=_FILEABLE_ID_MAX_LENGTH)

    description = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Fileable'  # type: ignore[mutable-override]
        verbose_name_plural = 'Fileables'  # type: ignore[mutable-override]
        ordering = ['-updated_at']

        indexes = [
            models.Index(
                fields=['fileable_type', 'fileable_id'],
                name='fileables_owner_idx',
            ),
        ]

        constraints = [
            # One attachment per owner and file
            models.UniqueConstraint(
                fields=['fileable_type', 'fileable_id', 'file'],
                name='fileables_owner_file_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.fileable_type}:{self.fileable_id} -> {self.file_id}'
