"""Tests for sync_files management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from server.apps.files.models import File


@pytest.mark.django_db
class TestSyncFilesCommand:
    """Tests for sync_files management command."""

    def test_syncs_both_disks(self, file_service):
        """Test public and private objects get records."""
        file_service.put_file('a.txt', b'a', is_public=True)
        file_service.put_file('b.txt', b'b', is_public=False)

        out = StringIO()
        call_command('sync_files', '--no-input', stdout=out)

        assert File.objects.public().get().path == 'a.txt'
        assert File.objects.private().get().path == 'b.txt'
        output = out.getvalue()
        assert 'Syncing public files' in output
        assert 'Syncing private files' in output
        assert '(Chunk 1/1) Successfully created records: 1/1' in output

    def test_chunk_option(self, file_service):
        """Test chunk size is taken from the command line."""
        for index in range(3):
            file_service.put_file(f'{index}.txt', b'x')

        out = StringIO()
        call_command('sync_files', '--no-input', '-c', '2', stdout=out)

        assert '(Chunk 1/2) Successfully created records: 2/2' in out.getvalue()
        assert '(Chunk 2/2) Successfully created records: 1/1' in out.getvalue()

    def test_invalid_chunk_falls_back(self, file_service):
        """Test a non-positive chunk size uses the default."""
        file_service.put_file('a.txt', b'a')

        out = StringIO()
        call_command('sync_files', '--no-input', '--chunk', '0', stdout=out)

        assert '(Chunk 1/1) Successfully created records: 1/1' in out.getvalue()

    def test_rerun_reports_failure(self, file_service):
        """Test a second run has nothing to create."""
        file_service.put_file('a.txt', b'a')
        call_command('sync_files', '--no-input', stdout=StringIO())

        out = StringIO()
        call_command('sync_files', '--no-input', stdout=out)

        assert 'files and fileables tables are not empty' in out.getvalue()
        assert '(Chunk 1/1) Failed to create records.' in out.getvalue()
        assert File.objects.count() == 1

    def test_truncate(self, file_service, sample_upload):
        """Test tables are emptied before syncing when asked."""
        stored = file_service.store(True, sample_upload)
        stale = File.objects.create(path='gone.txt', name='gone.txt')

        out = StringIO()
        call_command('sync_files', '--no-input', '--truncate', stdout=out)

        assert 'Successfully truncated files and fileables tables' in out.getvalue()
        assert list(File.objects.values_list('path', flat=True)) == [stored.path]
        assert not File.objects.filter(path=stale.path).exists()

    def test_production_requires_force(self, file_service, settings):
        """Test syncing in production aborts without force."""
        settings.ENVIRONMENT = 'production'
        file_service.put_file('a.txt', b'a')

        with pytest.raises(CommandError):
            call_command('sync_files', '--no-input', stdout=StringIO())

        assert not File.objects.exists()

    def test_production_with_force(self, file_service, settings):
        """Test forcing a production sync."""
        settings.ENVIRONMENT = 'production'
        file_service.put_file('a.txt', b'a')

        out = StringIO()
        call_command('sync_files', '--no-input', '--force', stdout=out)

        assert 'PRODUCTION mode detected.' in out.getvalue()
        assert File.objects.count() == 1

    def test_interactive_confirmation(self, file_service, settings, monkeypatch):
        """Test the production prompt can be answered."""
        settings.ENVIRONMENT = 'production'
        file_service.put_file('a.txt', b'a')
        monkeypatch.setattr('builtins.input', lambda prompt: 'y')

        call_command('sync_files', stdout=StringIO())

        assert File.objects.count() == 1
