"""Metadata extraction utilities for files."""

import mimetypes
from pathlib import Path
from typing import Final

import magic
from django.core.files.base import File as DjangoFile

# Default mime type for files without any type information
DEFAULT_MIME_TYPE: Final = 'application/octet-stream'

# Mime type recorded for synced files whose name has no extension
EMPTY_MIME_TYPE: Final = 'application/x-empty'

# Answer of libmagic when it cannot name an extension
_UNKNOWN_EXTENSION: Final = '???'

_EXTENSION_SEPARATOR: Final = '.'


def detect_mime_type(file_obj: DjangoFile) -> str:
    """Detect MIME type of an uploaded file from its own metadata.

    Uses the content type the client sent with the upload. Files
    without one fall back to Python's mimetypes guess based on the
    file name.

    Args:
        file_obj: Uploaded or local file.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    content_type = getattr(file_obj, 'content_type', None)
    if content_type:
        return content_type

    mime_type, _ = mimetypes.guess_type(file_obj.name or '')
    if mime_type is None:
        return DEFAULT_MIME_TYPE
    return mime_type


def detect_extension(file_obj: DjangoFile, mime_type: str) -> str | None:
    """Detect extension of an uploaded file.

    Args:
        file_obj: Uploaded or local file.
        mime_type: Already detected MIME type, used as fallback.

    Returns:
        Extension without dot (lowercase), or None if unknown.
    """
    extension = get_file_extension(file_obj.name or '')
    if extension:
        return extension
    return guess_extension(mime_type)


def sniff_mime_type(contents: bytes) -> str:
    """Detect MIME type from file contents using python-magic.

    Args:
        contents: Raw file bytes.

    Returns:
        MIME type string reported by libmagic.
    """
    return magic.from_buffer(contents, mime=True)


def sniff_extension(contents: bytes, mime_type: str) -> str | None:
    """Detect extension from file contents using python-magic.

    libmagic may list several extensions ('jpeg/jpg/jpe/jfif'); the
    first one wins. When it answers '???' the extension is looked up
    from the MIME type instead.

    Args:
        contents: Raw file bytes.
        mime_type: Sniffed MIME type, used as fallback.

    Returns:
        Extension without dot, or None if unknown.
    """
    sniffed = magic.Magic(extension=True).from_buffer(contents)
    if sniffed and sniffed != _UNKNOWN_EXTENSION:
        return sniffed.split('/')[0]
    return guess_extension(mime_type)


def guess_extension(mime_type: str | None) -> str | None:
    """Look up the usual extension for a MIME type.

    Args:
        mime_type: MIME type string.

    Returns:
        Extension without dot, or None if the type is unknown.
    """
    if not mime_type:
        return None
    extension = mimetypes.guess_extension(mime_type)
    if extension is None:
        return None
    return extension.lstrip(_EXTENSION_SEPARATOR)


def lookup_mime_type(extension: str) -> str | None:
    """Look up the MIME type registered for an extension.

    Args:
        extension: Extension without dot (e.g., 'jpg', 'tar.gz').

    Returns:
        MIME type, or None when the extension is not in the table.
    """
    if not mimetypes.inited:
        mimetypes.init()
    return mimetypes.types_map.get(
        f'{_EXTENSION_SEPARATOR}{extension.lower()}',
    )


def infer_type_from_name(name: str) -> tuple[str | None, str | None]:
    """Infer extension and MIME type from a file name.

    The suffix after the first dot is tried before the suffix after the
    last dot; the first one found in the lookup table wins. Names
    without a dot get no extension and the empty-file MIME type.

    Example: 'backup.tar.gz' tries 'tar.gz', then 'gz'.

    Args:
        name: File name without directories.

    Returns:
        Tuple of (extension, mime_type); both None when nothing matched.
    """
    if _EXTENSION_SEPARATOR not in name:
        return None, EMPTY_MIME_TYPE

    candidates = (
        name.split(_EXTENSION_SEPARATOR, 1)[1],
        name.rsplit(_EXTENSION_SEPARATOR, 1)[1],
    )
    for candidate in candidates:
        mime_type = lookup_mime_type(candidate)
        if mime_type:
            return candidate, mime_type
    return None, None


def extract_filename(storage_path: str) -> str:
    """Extract filename from storage path.

    Args:
        storage_path: Full path (e.g., '123/image/png/file.png').

    Returns:
        Filename (e.g., 'file.png').
    """
    return Path(storage_path).name


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = Path(filename).suffix
    return extension.lstrip(_EXTENSION_SEPARATOR).lower()


def get_file_stem(filename: str) -> str:
    """Get the part of a file name before its first dot.

    Args:
        filename: Filename, possibly with directories.

    Returns:
        Name before the first dot (e.g., 'archive' for 'archive.tar.gz').
    """
    return Path(filename).name.split(_EXTENSION_SEPARATOR, 1)[0]
