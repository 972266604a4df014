"""Tests for access URL refresh."""

from datetime import timedelta

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from server.apps.files.logic.url_policy import (
    MAX_EXPIRE_AFTER,
    issue_temporary_url,
    refresh_url,
    validate_expire_after,
)
from server.apps.files.models import File

_EXPIRE_AFTER = timedelta(hours=1)


class FakeDisk:
    """Disk double recording which paths exist."""

    def __init__(self, existing=(), can_sign=True):
        self.existing = set(existing)
        self.can_sign = can_sign
        self.checked = []

    def exists(self, path):
        self.checked.append(path)
        return path in self.existing

    def url(self, path):
        return f'https://cdn.example.com/{path}'

    def temporary_url(self, path, expires_at):
        if not self.can_sign:
            return None
        return f'https://cdn.example.com/{path}?expires={int(expires_at.timestamp())}'


@pytest.mark.parametrize('expire_after', [
    timedelta(seconds=1),
    timedelta(days=1),
    MAX_EXPIRE_AFTER,
])
def test_validate_expire_after_accepts(expire_after):
    """Test lifetimes up to 7 days are accepted."""
    assert validate_expire_after(expire_after) == expire_after


@pytest.mark.parametrize('expire_after', [
    timedelta(0),
    timedelta(seconds=-1),
    timedelta(days=10),
    MAX_EXPIRE_AFTER + timedelta(seconds=1),
])
def test_validate_expire_after_rejects(expire_after):
    """Test non-positive and too long lifetimes are rejected."""
    with pytest.raises(ImproperlyConfigured):
        validate_expire_after(expire_after)


def test_new_public_file_gets_permanent_url():
    """Test an unsaved public file gets a URL without probing."""
    disk = FakeDisk()
    file_instance = File(path='image/png/a.png', is_public=True)

    refresh_url(file_instance, disk, _EXPIRE_AFTER)

    assert not disk.checked
    assert file_instance.url == 'https://cdn.example.com/image/png/a.png'
    assert file_instance.url_expires_at is None


def test_public_url_is_kept():
    """Test an existing public URL is not replaced."""
    disk = FakeDisk(existing={'a.png'})
    file_instance = File(path='a.png', is_public=True, url='https://old/a.png')

    refresh_url(file_instance, disk, _EXPIRE_AFTER)

    assert file_instance.url == 'https://old/a.png'
    assert file_instance.url_expires_at is None


def test_new_private_file_gets_signed_url():
    """Test an unsaved private file gets a signed URL with expiry."""
    now = timezone.now()
    file_instance = File(path='a.pdf', is_public=False)

    refresh_url(file_instance, FakeDisk(), _EXPIRE_AFTER, now=now)

    assert file_instance.url.startswith('https://cdn.example.com/a.pdf?')
    assert file_instance.url_expires_at == now + _EXPIRE_AFTER


def test_private_url_kept_until_expired():
    """Test a valid signed URL is reused."""
    now = timezone.now()
    file_instance = File(
        path='a.pdf',
        is_public=False,
        url='https://signed/a.pdf',
        url_expires_at=now + timedelta(minutes=5),
    )

    refresh_url(file_instance, FakeDisk(existing={'a.pdf'}), _EXPIRE_AFTER, now=now)

    assert file_instance.url == 'https://signed/a.pdf'


def test_expired_private_url_is_reissued():
    """Test an expired signed URL is replaced."""
    now = timezone.now()
    file_instance = File(
        path='a.pdf',
        is_public=False,
        url='https://signed/a.pdf',
        url_expires_at=now - timedelta(seconds=1),
    )

    refresh_url(file_instance, FakeDisk(existing={'a.pdf'}), _EXPIRE_AFTER, now=now)

    assert file_instance.url != 'https://signed/a.pdf'
    assert file_instance.url_expires_at == now + _EXPIRE_AFTER


def test_missing_object_clears_url():
    """Test a file whose object is gone loses its URL."""
    file_instance = File(
        path='a.pdf',
        is_public=False,
        url='https://signed/a.pdf',
        url_expires_at=timezone.now() + timedelta(minutes=5),
    )

    refresh_url(file_instance, FakeDisk(), _EXPIRE_AFTER)

    assert file_instance.url is None
    assert file_instance.url_expires_at is None


def test_saved_file_is_checked():
    """Test a saved file without URL is checked in storage."""
    disk = FakeDisk()
    file_instance = File(path='a.png', is_public=True, created_at=timezone.now())

    refresh_url(file_instance, disk, _EXPIRE_AFTER)

    assert disk.checked == ['a.png']
    assert file_instance.url is None


def test_archived_file_has_no_url():
    """Test archived files lose their URL without a storage check."""
    disk = FakeDisk(existing={'a.pdf'})
    file_instance = File(
        path='a.pdf',
        is_public=False,
        url='https://signed/a.pdf',
        url_expires_at=timezone.now() + timedelta(minutes=5),
        created_at=timezone.now(),
        deleted_at=timezone.now(),
    )

    refresh_url(file_instance, disk, _EXPIRE_AFTER)

    assert disk.checked == []
    assert file_instance.url is None
    assert file_instance.url_expires_at is None


def test_issue_temporary_url_without_signer():
    """Test the file is untouched when the disk cannot sign."""
    file_instance = File(path='a.pdf', is_public=False)
    expires_at = timezone.now() + _EXPIRE_AFTER

    issued = issue_temporary_url(file_instance, FakeDisk(can_sign=False), expires_at)

    assert not issued
    assert file_instance.url is None
    assert file_instance.url_expires_at is None
