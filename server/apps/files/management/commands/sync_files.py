"""Management command to create File records for objects already in storage."""

import logging
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from server.apps.files.logic.sync_operations import (
    DEFAULT_CHUNK_SIZE,
    ChunkReport,
    sync_files,
    truncate_file_tables,
)
from server.apps.files.models import File

_PRODUCTION: Final = 'production'
_YES_ANSWERS: Final = frozenset(('y', 'yes'))

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Sync files from the public and private disks into the database."""

    help = 'Sync files from storage into the files table'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--truncate',
            '-t',
            action='store_true',
            help='Truncate files tables before syncing',
        )
        parser.add_argument(
            '--force',
            '-f',
            action='store_true',
            help='Force syncing even in production',
        )
        parser.add_argument(
            '--chunk',
            '-c',
            type=int,
            default=DEFAULT_CHUNK_SIZE,
            help=f'Number of files to insert per batch (default: {DEFAULT_CHUNK_SIZE})',
        )
        parser.add_argument(
            '--no-input',
            '--noinput',
            action='store_false',
            dest='interactive',
            help='Answer every prompt with its default',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the sync command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If syncing in production is not confirmed.
        """
        self._interactive = options['interactive']
        chunk_size = options['chunk']
        if chunk_size < 1:
            chunk_size = DEFAULT_CHUNK_SIZE

        if getattr(settings, 'ENVIRONMENT', None) == _PRODUCTION:
            self.stdout.write(self.style.WARNING('PRODUCTION mode detected.'))
            if not self._confirm(
                'Continue syncing even in PRODUCTION?',
                default=options['force'],
            ):
                raise CommandError('Sync aborted in production.')
            self.stdout.write('Proceeding sync in PRODUCTION')

        if File.all_objects.exists():
            self.stdout.write(
                self.style.WARNING('files and fileables tables are not empty.'),
            )
            if self._confirm(
                'Truncate files and fileables tables before syncing?',
                default=options['truncate'],
            ):
                self.stdout.write('Truncating files and fileables tables')
                truncate_file_tables()
                self.stdout.write(
                    self.style.SUCCESS(
                        'Successfully truncated files and fileables tables',
                    ),
                )

        self.stdout.write('Syncing public files')
        self._write_reports(sync_files(True, chunk_size=chunk_size))

        self.stdout.write('Syncing private files')
        self._write_reports(sync_files(False, chunk_size=chunk_size))

    def _write_reports(self, reports: list[ChunkReport]) -> None:
        for report in reports:
            prefix = f'(Chunk {report.index}/{report.total})'
            if report.succeeded:
                self.stdout.write(
                    self.style.SUCCESS(
                        f'{prefix} Successfully created records: '
                        f'{report.inserted}/{report.attempted}',
                    ),
                )
            else:
                self.stdout.write(
                    self.style.ERROR(f'{prefix} Failed to create records.'),
                )

    def _confirm(self, question: str, default: bool) -> bool:
        if not self._interactive:
            return default
        choices = 'Y/n' if default else 'y/N'
        answer = input(f'{question} [{choices}] ').strip().lower()
        if not answer:
            return default
        return answer in _YES_ANSWERS
