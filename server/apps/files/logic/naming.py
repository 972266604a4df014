"""Destination naming for stored files."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from django.utils import timezone
from django.utils.crypto import get_random_string

from server.apps.files.infrastructure.storage import join_path

logger = logging.getLogger(__name__)

# Length of generated file names
RANDOM_NAME_LENGTH: Final = 40

_EXTENSION_SEPARATOR: Final = '.'


@dataclass(frozen=True, slots=True)
class Destination:
    """Where a file is written and whether the write can be skipped."""

    path: str
    name: str
    skip_write: bool = False


def build_filename(stem: str, extension: str | None) -> str:
    """Join a stem and an extension into a file name.

    Args:
        stem: Name without extension.
        extension: Extension without dot, or None.

    Returns:
        File name without surrounding dots or slashes.
    """
    filename = f'{stem}{_EXTENSION_SEPARATOR}{extension or ""}'
    return filename.strip('/.')


def generate_random_name() -> str:
    """Generate a random file stem."""
    return get_random_string(RANDOM_NAME_LENGTH)


def resolve_destination(  # noqa: WPS211
    desired_name: str,
    extension: str | None,
    folder: str,
    preserve_original_name: bool,
    overwrite_on_exists: bool,
    skip_upload_on_exists: bool,
    path_exists: Callable[[str], bool],
) -> Destination:
    """Decide the destination path of a new file.

    Random names never collide in practice, so storage is only checked
    when the original name is preserved. An existing object is then
    overwritten, reused without writing, or avoided by appending a
    timestamp to the name, depending on the collision policy.

    Args:
        desired_name: Original name stem, without extension.
        extension: Extension without dot, or None.
        folder: Destination folder relative to the disk.
        preserve_original_name: Whether to keep desired_name.
        overwrite_on_exists: Overwrite an existing object.
        skip_upload_on_exists: Reuse an existing object instead of writing.
        path_exists: Checks whether a path exists on the disk.

    Returns:
        Destination with final path, file name and skip flag.
    """
    if not preserve_original_name:
        name = build_filename(generate_random_name(), extension)
        return Destination(path=join_path(folder, name), name=name)

    name = build_filename(desired_name, extension)
    path = join_path(folder, name)

    if not path_exists(path) or overwrite_on_exists:
        return Destination(path=path, name=name)

    if skip_upload_on_exists:
        logger.info('Reusing existing file, upload skipped: %s', path)
        return Destination(path=path, name=name, skip_write=True)

    return _timestamped_destination(
        desired_name,
        extension,
        folder,
        path_exists,
    )


def _timestamped_destination(
    desired_name: str,
    extension: str | None,
    folder: str,
    path_exists: Callable[[str], bool],
) -> Destination:
    stem = f'{desired_name}_{int(timezone.now().timestamp())}'
    name = build_filename(stem, extension)
    path = join_path(folder, name)

    # Same-second uploads of one name get a counter on top
    counter = 1
    while path_exists(path):
        counter += 1
        name = build_filename(f'{stem}_{counter}', extension)
        path = join_path(folder, name)

    logger.info('Name taken, storing as: %s', path)
    return Destination(path=path, name=name)
