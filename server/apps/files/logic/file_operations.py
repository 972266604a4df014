"""Business logic for the lifecycle of stored files."""

import logging
import uuid
from typing import TYPE_CHECKING

from django.db import transaction
from django.utils import timezone

from server.apps.files.models import File, FileQuerySet

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

logger = logging.getLogger(__name__)


def get_file(file_uuid: uuid.UUID | str) -> File:
    """Get an active file by its public key.

    Args:
        file_uuid: UUID of the file.

    Returns:
        File instance.

    Raises:
        File.DoesNotExist: If no active file has this UUID.
    """
    return File.objects.get(uuid=file_uuid)


def list_uploaded_files(owner: 'AbstractBaseUser') -> FileQuerySet:
    """List active files uploaded by a user, newest first.

    Args:
        owner: Uploader of the files.

    Returns:
        QuerySet of File objects.
    """
    return File.objects.filter(owner=owner).prefetch_related('tags')


def touch_file(file_uuid: uuid.UUID | str) -> File:
    """Save a file again so its access URL is refreshed.

    Args:
        file_uuid: UUID of the file.

    Returns:
        Saved File instance.

    Raises:
        File.DoesNotExist: If no active file has this UUID.
    """
    file_instance = get_file(file_uuid)
    file_instance.save()
    logger.debug('File touched: %s', file_instance.path)
    return file_instance


def archive_file(file_uuid: uuid.UUID | str) -> File:
    """Soft delete a file and remove its stored object.

    The record stays in the database with deleted_at set and is hidden
    from File.objects. The stored object is deleted once the record
    is committed, so a failed save leaves it in place. Restoring brings
    the record back without the object.

    Args:
        file_uuid: UUID of the file.

    Returns:
        Archived File instance.

    Raises:
        File.DoesNotExist: If no active file has this UUID.
    """
    file_instance = get_file(file_uuid)

    disk = file_instance.get_disk()
    path = file_instance.path
    with transaction.atomic():
        file_instance.deleted_at = timezone.now()
        file_instance.save()
        # The object is removed only once the archived row is committed
        transaction.on_commit(lambda: disk.delete(path))

    logger.info(
        'File archived: %s (UUID: %s)',
        file_instance.path,
        file_instance.uuid,
    )
    return file_instance


def restore_file(file_uuid: uuid.UUID | str) -> File:
    """Bring an archived file record back.

    Args:
        file_uuid: UUID of the archived file.

    Returns:
        Restored File instance.

    Raises:
        File.DoesNotExist: If no archived file has this UUID.
    """
    file_instance = File.all_objects.get(
        uuid=file_uuid,
        deleted_at__isnull=False,
    )
    file_instance.deleted_at = None
    file_instance.save()

    logger.info(
        'File restored: %s (UUID: %s)',
        file_instance.path,
        file_instance.uuid,
    )
    return file_instance


def force_delete_file(file_uuid: uuid.UUID | str) -> None:
    """Delete a file record for good, archived or not.

    Storage deletion is handled by the post_delete signal handler in
    signals.py. Attachments are removed by the cascade.

    Args:
        file_uuid: UUID of the file.

    Raises:
        File.DoesNotExist: If no file has this UUID.
    """
    try:
        file_instance = File.all_objects.get(uuid=file_uuid)
    except File.DoesNotExist:
        logger.exception('File not found: UUID=%s', file_uuid)
        raise

    with transaction.atomic():
        file_instance.delete()

    logger.info('File record deleted from database: %s', file_instance.path)
