"""Settings for the files app."""

from typing import Final

from server.settings.components import config

# Aliases into STORAGES, one per visibility
SIMPLE_FILES_PUBLIC_DISK = config('SF_PUBLIC_DISK', default='public')
SIMPLE_FILES_PRIVATE_DISK = config('SF_PRIVATE_DISK', default='default')

# Directory scope of each visibility inside its storage
SIMPLE_FILES_PUBLIC_PREFIX = config('SF_PUBLIC_PREFIX', default='public')
SIMPLE_FILES_PRIVATE_PREFIX = config('SF_PRIVATE_PREFIX', default='private')

# Lifetime of signed URLs in seconds, at most 7 days
SIMPLE_FILES_EXPIRE_AFTER = config('SF_EXPIRE_AFTER', cast=int, default=86400)

# Collision policy when preserving original file names
SIMPLE_FILES_OVERWRITE_ON_EXISTS = config(
    'SF_OVERWRITE_ON_EXISTS',
    cast=bool,
    default=False,
)
SIMPLE_FILES_SKIP_UPLOAD_ON_EXISTS = config(
    'SF_SKIP_UPLOAD_ON_EXISTS',
    cast=bool,
    default=True,
)

# Timeout in seconds for fetching remote URLs
SIMPLE_FILES_URL_TIMEOUT = config('SF_URL_TIMEOUT', cast=float, default=10.0)

# Relation name -> model label, registered when the app is ready
SIMPLE_FILES_FILEABLE_MODELS: Final[dict[str, str]] = {
    'users': 'auth.User',
}
