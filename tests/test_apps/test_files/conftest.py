"""Shared fixtures for files app tests."""

import base64

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from moto import mock_aws

from server.apps.files.logic.file_service import FileService, get_file_service

User = get_user_model()

# Smallest valid PNG image (1x1 pixel)
PNG_BASE64 = (
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII='
)


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3(settings):
    """Mock S3 service with simple-files bucket.

    STORAGES is reassigned inside the mock so storage instances (and the
    shared FileService) are rebuilt against the mocked endpoint.

    Yields:
        boto3 S3 resource with simple-files bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='simple-files')

        settings.STORAGES = {**settings.STORAGES}

        yield conn


@pytest.fixture
def file_service(mock_s3):
    """FileService configured from settings.

    Returns:
        Shared FileService instance.
    """
    return get_file_service()


@pytest.fixture
def make_file_service(mock_s3):
    """Factory for FileService instances with custom options.

    Returns:
        Callable building a FileService.
    """
    def factory(**options):
        return FileService(**options)

    return factory


@pytest.fixture
def sample_upload():
    """Uploaded JPEG photo.

    Returns:
        SimpleUploadedFile named photo.jpg.
    """
    return SimpleUploadedFile(
        'photo.jpg',
        b'\xff\xd8\xff\xe0fake jpeg content',
        content_type='image/jpeg',
    )


@pytest.fixture
def make_upload():
    """Factory for fresh uploaded files.

    Returns:
        Callable building a SimpleUploadedFile.
    """
    def factory(name='photo.jpg', content=b'fake jpeg', content_type='image/jpeg'):
        return SimpleUploadedFile(name, content, content_type=content_type)

    return factory


@pytest.fixture
def sample_document():
    """Uploaded plain text document.

    Returns:
        SimpleUploadedFile named notes.txt.
    """
    return SimpleUploadedFile(
        'notes.txt',
        b'meeting notes',
        content_type='text/plain',
    )


@pytest.fixture
def png_bytes():
    """Raw bytes of a 1x1 PNG image."""
    return base64.b64decode(PNG_BASE64)


@pytest.fixture
def png_base64():
    """Base64 of a 1x1 PNG image."""
    return PNG_BASE64

