"""Business logic for attaching files to owning entities."""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from django.db import models, transaction

from server.apps.files.logic.file_service import FileService, get_file_service
from server.apps.files.logic.relations import model_tag
from server.apps.files.models import File, Fileable, FileQuerySet

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

logger = logging.getLogger(__name__)


def attach_files(  # noqa: WPS211
    entity: models.Model,
    is_public: bool,
    file: Any,
    owner: 'AbstractBaseUser | None' = None,
    preserve_name: bool = False,
    tags: Iterable[str] = (),
    description: Any = None,
    service: FileService | None = None,
) -> list[File]:
    """Attach files to an entity, keeping its other attachments.

    Args:
        entity: Saved model instance owning the files.
        is_public: Disk for inputs that still need storing.
        file: File rows, uploads, URLs or base64 strings, or a list.
        owner: Uploader of newly stored files.
        preserve_name: Keep original names of newly stored uploads.
        tags: Tags of newly stored files.
        description: JSON description saved on the attachment.
        service: FileService to store with, defaults to the shared one.

    Returns:
        Attached File rows.
    """
    return sync_files_to(
        entity,
        is_public,
        file,
        owner=owner,
        detaching=False,
        preserve_name=preserve_name,
        tags=tags,
        description=description,
        service=service,
    )


def sync_files_to(  # noqa: WPS211
    entity: models.Model,
    is_public: bool,
    file: Any,
    owner: 'AbstractBaseUser | None' = None,
    detaching: bool = True,
    preserve_name: bool = False,
    tags: Iterable[str] = (),
    description: Any = None,
    service: FileService | None = None,
) -> list[File]:
    """Make the given files the attachments of an entity.

    Inputs that are not File rows are stored first.

    Args:
        entity: Saved model instance owning the files.
        is_public: Disk for inputs that still need storing.
        file: File rows, uploads, URLs or base64 strings, or a list.
        owner: Uploader of newly stored files.
        detaching: Remove attachments not in the given files.
        preserve_name: Keep original names of newly stored uploads.
        tags: Tags of newly stored files.
        description: JSON description saved on new attachments.
        service: FileService to store with, defaults to the shared one.

    Returns:
        File rows attached by this call.
    """
    files = _resolve_files(
        file,
        is_public=is_public,
        owner=owner,
        preserve_name=preserve_name,
        tags=tags,
        service=service,
    )
    if not files:
        return []

    fileable_type = model_tag(entity)
    fileable_id = str(entity.pk)

    with transaction.atomic():
        for file_instance in files:
            Fileable.objects.get_or_create(
                fileable_type=fileable_type,
                fileable_id=fileable_id,
                file=file_instance,
                defaults={'description': description},
            )
        if detaching:
            removed, _ = _fileables_of(entity).exclude(
                file__in=[file_instance.pk for file_instance in files],
            ).delete()
            logger.debug('Detached %d files from %s', removed, entity)

    logger.info(
        'Attached %d files to %s:%s',
        len(files),
        fileable_type,
        fileable_id,
    )
    return files


def detach_files(
    entity: models.Model,
    files: File | Iterable[File],
    touch: bool = True,
) -> int:
    """Remove attachments from an entity.

    The files themselves are kept.

    Args:
        entity: Model instance owning the files.
        files: File rows to detach.
        touch: Bump the entity's updated_at, if it has one.

    Returns:
        Number of removed attachments.
    """
    if isinstance(files, File):
        files = [files]
    file_ids = [file_instance.pk for file_instance in files]

    removed, _ = _fileables_of(entity).filter(file__in=file_ids).delete()
    if removed and touch:
        _touch(entity)

    logger.info('Detached %d files from %s', removed, entity)
    return removed


def get_files(entity: models.Model) -> FileQuerySet:
    """Get files attached to an entity, latest attachment first."""
    return File.objects.filter(
        fileables__fileable_type=model_tag(entity),
        fileables__fileable_id=str(entity.pk),
    ).order_by('-fileables__updated_at')


def get_images(entity: models.Model) -> FileQuerySet:
    """Get image files attached to an entity."""
    return get_files(entity).images()


def get_non_images(entity: models.Model) -> FileQuerySet:
    """Get non-image files attached to an entity."""
    return get_files(entity).images(False)


def get_fileables(entity: models.Model) -> models.QuerySet[Fileable]:
    """Get attachments of an entity with their files."""
    return _fileables_of(entity).select_related('file').order_by('-updated_at')


def _fileables_of(entity: models.Model) -> models.QuerySet[Fileable]:
    return Fileable.objects.filter(
        fileable_type=model_tag(entity),
        fileable_id=str(entity.pk),
    )


def _resolve_files(  # noqa: WPS211
    file: Any,
    is_public: bool,
    owner: 'AbstractBaseUser | None',
    preserve_name: bool,
    tags: Iterable[str],
    service: FileService | None,
) -> list[File]:
    items = file if isinstance(file, (list, tuple)) else [file]
    # Empty strings and None are dropped
    items = [item for item in items if item]
    files = [item for item in items if isinstance(item, File)]
    to_store = [item for item in items if not isinstance(item, File)]
    if not to_store:
        return files

    stored = (service or get_file_service()).store(
        is_public,
        to_store,
        owner=owner,
        preserve_name=preserve_name,
        tags=tags,
    )
    files.extend(
        stored_file
        for stored_file in stored
        if isinstance(stored_file, File)
    )
    return files


def _touch(entity: models.Model) -> None:
    field_names = {field.name for field in entity._meta.concrete_fields}
    if 'updated_at' in field_names:
        entity.save(update_fields=['updated_at'])
