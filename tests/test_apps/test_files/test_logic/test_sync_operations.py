"""Tests for syncing File records from storage."""

import pytest

from server.apps.files.logic.sync_operations import (
    ChunkReport,
    sync_files,
    truncate_file_tables,
)
from server.apps.files.models import File, Fileable, Tag


@pytest.mark.django_db
class TestSyncFiles:
    """Tests for sync_files."""

    def test_creates_missing_records(self, file_service):
        """Test every object gets a record with inferred metadata."""
        file_service.put_file('1/image/jpeg/photo.jpg', b'jpeg')
        file_service.put_file('README', b'read me')

        reports = sync_files(True, service=file_service)

        assert reports == [ChunkReport(index=1, total=1, inserted=2, attempted=2)]
        photo = File.objects.get(path='1/image/jpeg/photo.jpg')
        assert photo.name == 'photo.jpg'
        assert photo.size == 4
        assert photo.extension == 'jpg'
        assert photo.mime_type == 'image/jpeg'
        assert photo.is_public
        assert photo.url
        assert photo.url_expires_at is None

        readme = File.objects.get(path='README')
        assert readme.extension is None
        assert readme.mime_type == 'application/x-empty'

    def test_private_records_expire(self, file_service):
        """Test private records get a signed URL with expiry."""
        file_service.put_file('docs/report.pdf', b'%PDF', is_public=False)

        sync_files(False, service=file_service)

        report = File.objects.get()
        assert not report.is_public
        assert report.mime_type == 'application/pdf'
        assert 'Signature' in report.url
        assert report.url_expires_at is not None

    def test_second_sync_inserts_nothing(self, file_service):
        """Test syncing an unchanged disk twice."""
        for index in range(3):
            file_service.put_file(f'text/plain/{index}.txt', b'x')

        first = sync_files(True, service=file_service)
        second = sync_files(True, service=file_service)

        assert first[0].inserted == 3
        assert second == [ChunkReport(index=1, total=1, inserted=0, attempted=3)]
        assert not second[0].succeeded
        assert File.objects.count() == 3

    def test_chunks(self, file_service):
        """Test 150 objects are inserted as chunks of 100 and 50."""
        for index in range(150):
            file_service.put_file(f'bulk/{index:03d}.txt', b'x')

        reports = sync_files(True, chunk_size=100, service=file_service)

        assert reports == [
            ChunkReport(index=1, total=2, inserted=100, attempted=100),
            ChunkReport(index=2, total=2, inserted=50, attempted=50),
        ]
        assert File.objects.count() == 150

    def test_inserted_counts_only_the_chunk(self, file_service, monkeypatch):
        """Test rows written by others during a chunk are not counted."""
        file_service.put_file('a.txt', b'a')
        bulk_create = File.all_objects.bulk_create

        def bulk_create_with_other_writer(objs, **kwargs):
            File.all_objects.create(path='other.txt', name='other.txt', is_public=False)
            return bulk_create(objs, **kwargs)

        monkeypatch.setattr(File.all_objects, 'bulk_create', bulk_create_with_other_writer)

        reports = sync_files(True, service=file_service)

        assert reports == [ChunkReport(index=1, total=1, inserted=1, attempted=1)]
        assert File.objects.count() == 2

    def test_visibilities_are_separate(self, file_service):
        """Test syncing one disk ignores the other."""
        file_service.put_file('a.txt', b'a', is_public=True)
        file_service.put_file('b.txt', b'b', is_public=False)

        sync_files(True, service=file_service)

        assert list(File.objects.values_list('path', flat=True)) == ['a.txt']

    def test_empty_disk(self, file_service):
        """Test an empty disk gives no reports."""
        assert sync_files(True, service=file_service) == []

    def test_invalid_chunk_size(self, file_service):
        """Test chunk size must be positive."""
        with pytest.raises(ValueError):
            sync_files(True, chunk_size=0, service=file_service)


@pytest.mark.django_db
def test_truncate_file_tables(file_service, user, sample_upload):
    """Test files, their tags and attachments are removed."""
    file_instance = file_service.store(True, sample_upload, tags=['avatar'])
    Fileable.objects.create(
        file=file_instance,
        fileable_type='auth.user',
        fileable_id=str(user.pk),
    )

    truncate_file_tables()

    assert not File.all_objects.exists()
    assert not Fileable.objects.exists()
    assert not File.tags.through.objects.exists()
    assert Tag.objects.filter(name='avatar').exists()
    # Stored objects are kept
    assert file_service.exists(file_instance.path)
