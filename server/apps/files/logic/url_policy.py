"""Access URL refresh for stored files."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Final

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

if TYPE_CHECKING:
    from server.apps.files.infrastructure.storage import StorageDisk
    from server.apps.files.models import File

logger = logging.getLogger(__name__)

# Longest lifetime a signed URL may be configured with
MAX_EXPIRE_AFTER: Final = timedelta(days=7)


def validate_expire_after(expire_after: timedelta) -> timedelta:
    """Check the configured signed URL lifetime.

    Args:
        expire_after: Lifetime of signed URLs.

    Returns:
        The same lifetime.

    Raises:
        ImproperlyConfigured: If the lifetime is not positive or longer
            than 7 days.
    """
    if expire_after <= timedelta(0):
        raise ImproperlyConfigured('File expiration must be positive.')
    if expire_after > MAX_EXPIRE_AFTER:
        raise ImproperlyConfigured(
            'File expiration must not be more than 7 days.',
        )
    return expire_after


def refresh_url(
    file_instance: 'File',
    disk: 'StorageDisk',
    expire_after: timedelta,
    now: datetime | None = None,
) -> None:
    """Refresh the cached URL of a file in place.

    Storage is checked when the file was saved before or already has a
    URL. A brand-new file without a URL was just written and is taken
    to exist. Missing objects lose their URL. Public files get a
    permanent URL once; private files get a new signed URL whenever
    the previous one has expired. Archived files have no URL and
    storage is not checked for them.

    Args:
        file_instance: File to update, not saved here.
        disk: Disk of the file's visibility.
        expire_after: Lifetime of signed URLs.
        now: Current time, defaults to timezone.now().
    """
    if file_instance.deleted_at is not None:
        file_instance.url = None
        file_instance.url_expires_at = None
        return

    now = now or timezone.now()
    is_persisted = file_instance.created_at is not None
    if (is_persisted or file_instance.url) and not disk.exists(
        file_instance.path,
    ):
        logger.debug('File missing in storage, clearing URL: %s', file_instance.path)
        file_instance.url = None
        file_instance.url_expires_at = None
        return

    if file_instance.is_public:
        file_instance.url_expires_at = None
        if not file_instance.url:
            file_instance.url = disk.url(file_instance.path)
        return

    expires_at = file_instance.url_expires_at
    if expires_at is None or expires_at <= now:
        issue_temporary_url(file_instance, disk, now + expire_after)


def issue_temporary_url(
    file_instance: 'File',
    disk: 'StorageDisk',
    expires_at: datetime,
) -> bool:
    """Set a new signed URL on a private file.

    Args:
        file_instance: File to update, not saved here.
        disk: Disk of the file's visibility.
        expires_at: Moment the URL stops working.

    Returns:
        True if a URL was issued; the file is untouched otherwise.
    """
    url = disk.temporary_url(file_instance.path, expires_at)
    if not url:
        return False
    file_instance.url = url
    file_instance.url_expires_at = expires_at
    return True
