"""Signal handlers for files app."""

import logging

from django.core.signals import setting_changed
from django.db.models.signals import post_delete, pre_save
from django.dispatch import receiver

from server.apps.files.logic.file_service import get_file_service
from server.apps.files.models import File

logger = logging.getLogger(__name__)

_SETTINGS_PREFIX = 'SIMPLE_FILES_'


@receiver(pre_save, sender=File)
def refresh_file_url(
    sender: type[File],
    instance: File,
    raw: bool = False,
    **kwargs: object,
) -> None:
    """Refresh the cached access URL before a File record is saved.

    Args:
        sender: The File model class.
        instance: The File instance being saved.
        raw: True when loading fixtures; storage is not touched then.
        **kwargs: Additional signal arguments.
    """
    if raw:
        return
    get_file_service().refresh_url(instance)


@receiver(post_delete, sender=File)
def delete_file_from_storage(
    sender: type[File],
    instance: File,
    **kwargs: object,
) -> None:
    """Delete the stored object when a File record is deleted.

    This signal handler ensures that when a File record is deleted
    (via the ORM or a cascade), the object on its disk is also
    cleaned up.

    Args:
        sender: The File model class.
        instance: The File instance being deleted.
        **kwargs: Additional signal arguments.
    """
    logger.info(
        'Deleting file from storage after DB delete: %s',
        instance.path,
    )

    try:
        instance.get_disk().delete(instance.path)
    except Exception:
        # DB delete already succeeded, the object is orphaned
        logger.exception(
            'Failed to delete file from storage (orphaned): %s',
            instance.path,
        )


@receiver(setting_changed)
def reset_file_service(setting: str, **kwargs: object) -> None:
    """Drop the cached FileService when its settings change.

    Args:
        setting: Name of the changed setting.
        **kwargs: Additional signal arguments.
    """
    if setting.startswith(_SETTINGS_PREFIX) or setting == 'STORAGES':
        get_file_service.cache_clear()
