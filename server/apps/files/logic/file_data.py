"""Metadata of a stored file before it becomes a database record."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from django.db import transaction

from server.apps.files.models import File, Tag

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FileData:
    """Metadata collected while storing a file.

    Persisting is keyed by visibility and path: storing the same path
    on the same disk again updates the existing record (reviving it if
    archived) instead of inserting a duplicate.
    """

    path: str
    name: str
    is_public: bool
    owner_id: int | None = None
    mime_type: str | None = None
    extension: str | None = None
    size: int | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)

    def update_or_create(self) -> File:
        """Create or update the File record for this path and visibility.

        Returns:
            Saved File instance.
        """
        defaults = {
            'name': self.name,
            'owner_id': self.owner_id,
            'mime_type': self.mime_type,
            'extension': self.extension,
            'size': self.size,
            'deleted_at': None,
            # Cleared so the pre_save refresh issues a URL for the new object
            'url': None,
            'url_expires_at': None,
        }
        with transaction.atomic():
            file_instance, created = File.all_objects.update_or_create(
                is_public=self.is_public,
                path=self.path,
                defaults=defaults,
            )
            if self.tags:
                file_instance.tags.add(*_get_or_create_tags(self.tags))

        logger.info(
            'File record %s: %s (UUID: %s)',
            'created' if created else 'updated',
            file_instance.path,
            file_instance.uuid,
        )
        return file_instance


def _get_or_create_tags(names: list[str]) -> list[Tag]:
    return [
        Tag.objects.get_or_create(name=name.strip())[0]
        for name in names
        if name.strip()
    ]
