"""Reconcile File records with the objects found on a disk."""

import logging
import uuid
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Final, TypeVar

from django.core.management.color import no_style
from django.db import DatabaseError, connection, transaction
from django.utils import timezone

from server.apps.files.infrastructure.metadata import (
    extract_filename,
    infer_type_from_name,
)
from server.apps.files.infrastructure.storage import StorageDisk, StorageObject
from server.apps.files.logic.file_service import FileService, get_file_service
from server.apps.files.models import File, Fileable

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE: Final = 100

_Item = TypeVar('_Item')


@dataclass(frozen=True, slots=True)
class ChunkReport:
    """Outcome of inserting one chunk of records.

    Index is 1-based.
    """

    index: int
    total: int
    inserted: int
    attempted: int

    @property
    def succeeded(self) -> bool:
        """Whether the chunk inserted any record."""
        return self.inserted > 0


def sync_files(
    is_public: bool,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    service: FileService | None = None,
) -> list[ChunkReport]:
    """Create File records for objects on a disk that have none.

    Objects are listed recursively and inserted in chunks. Paths that
    already have a record are left alone, so syncing an unchanged disk
    again inserts nothing.

    Args:
        is_public: Sync the public or the private disk.
        chunk_size: Number of records per insert.
        service: FileService to sync with, defaults to the shared one.

    Returns:
        One report per chunk, in listing order.

    Raises:
        ValueError: If chunk_size is not positive.
    """
    if chunk_size < 1:
        raise ValueError(f'Chunk size must be positive, got {chunk_size}')

    service = service or get_file_service()
    disk = service.disk(is_public, read_only=True)
    stored_objects = disk.files(recursive=True)
    logger.info(
        'Syncing %d objects from the %s disk',
        len(stored_objects),
        'public' if is_public else 'private',
    )

    now = timezone.now()
    expires_at = now + service.expire_after
    records = [
        _build_record(disk, stored, is_public, now, expires_at)
        for stored in stored_objects
    ]

    chunks = list(_chunked(records, chunk_size))
    return [
        _insert_chunk(chunk, index, len(chunks))
        for index, chunk in enumerate(chunks, start=1)
    ]


def truncate_file_tables() -> None:
    """Empty the attachment, file tag and file tables."""
    tables = [
        Fileable._meta.db_table,
        File.tags.through._meta.db_table,
        File._meta.db_table,
    ]
    statements = connection.ops.sql_flush(
        no_style(),
        tables,
        reset_sequences=True,
    )
    with connection.constraint_checks_disabled():
        connection.ops.execute_sql_flush(statements)
    logger.warning('Truncated tables: %s', ', '.join(tables))


def _build_record(
    disk: StorageDisk,
    stored: StorageObject,
    is_public: bool,
    now: datetime,
    expires_at: datetime,
) -> File:
    extension, mime_type = infer_type_from_name(extract_filename(stored.path))

    if is_public:
        url = disk.url(stored.path)
        url_expires_at = None
    else:
        url = disk.temporary_url(stored.path, expires_at)
        url_expires_at = expires_at if url else None

    return File(
        uuid=uuid.uuid4(),
        is_public=is_public,
        path=stored.path,
        name=extract_filename(stored.path),
        size=stored.size,
        extension=extension,
        mime_type=mime_type,
        url=url,
        url_expires_at=url_expires_at,
        created_at=now,
        updated_at=now,
    )


def _insert_chunk(chunk: list[File], index: int, total: int) -> ChunkReport:
    try:
        with transaction.atomic():
            File.all_objects.bulk_create(chunk, ignore_conflicts=True)
    except DatabaseError:
        logger.exception('Failed to insert chunk %d/%d', index, total)
        return ChunkReport(index=index, total=total, inserted=0, attempted=len(chunk))

    # Only rows of this chunk count, whatever else was written meanwhile
    inserted = File.all_objects.filter(
        uuid__in=[record.uuid for record in chunk],
    ).count()
    logger.info(
        '(Chunk %d/%d) Created records: %d/%d',
        index,
        total,
        inserted,
        len(chunk),
    )
    return ChunkReport(
        index=index,
        total=total,
        inserted=inserted,
        attempted=len(chunk),
    )


def _chunked(items: Sequence[_Item], size: int) -> Iterator[list[_Item]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
