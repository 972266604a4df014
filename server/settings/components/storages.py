"""Django storage configuration for S3-compatible backends.

This module configures django-storages to work with:
- MinIO for local development
- Cloudflare R2 or AWS S3 for production

Public and private files share one bucket. The ``public`` storage hands
out permanent unsigned URLs, the ``default`` storage signs every URL.
Both overwrite on save: collisions are resolved before writing.
"""

from typing import Any, Final

from server.settings.components import config

_S3_OPTIONS: Final[dict[str, Any]] = {
    'bucket_name': config(
        'AWS_STORAGE_BUCKET_NAME',
        default='simple-files',
    ),
    'access_key': config('AWS_ACCESS_KEY_ID', default='minioadmin'),
    'secret_key': config('AWS_SECRET_ACCESS_KEY', default='minioadmin'),
    'endpoint_url': config(
        'AWS_S3_ENDPOINT_URL',
        default=None,
    ),
    'region_name': config(
        'AWS_S3_REGION_NAME',
        default='us-east-1',
    ),
    'file_overwrite': True,  # Name collisions are handled before upload
    'default_acl': None,  # Inherit bucket ACL
}

# Storage configuration dictionary
# Uses S3-compatible storage for user files, local storage for static files
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.files.infrastructure.storage.FileStorage',
        'OPTIONS': {
            **_S3_OPTIONS,
            'querystring_auth': True,
        },
    },
    'public': {
        'BACKEND': 'server.apps.files.infrastructure.storage.FileStorage',
        'OPTIONS': {
            **_S3_OPTIONS,
            'querystring_auth': False,
        },
    },
    'staticfiles': {
        # Keep static files separate from user files
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
