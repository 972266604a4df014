import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Tag',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Tag',
                'verbose_name_plural': 'Tags',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uuid', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('path', models.CharField(help_text='Path in storage: {owner_id}/{mime_type}/{name}', max_length=512)),
                ('name', models.CharField(max_length=255)),
                ('mime_type', models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ('extension', models.CharField(blank=True, db_index=True, max_length=32, null=True)),
                ('size', models.PositiveBigIntegerField(blank=True, help_text='File size in bytes', null=True)),
                ('is_public', models.BooleanField(default=True)),
                ('url', models.TextField(blank=True, null=True)),
                ('url_expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_files', to=settings.AUTH_USER_MODEL)),
                ('tags', models.ManyToManyField(blank=True, related_name='files', to='files.tag')),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'base_manager_name': 'all_objects',
                'indexes': [models.Index(fields=['owner', '-created_at'], name='files_owner_recent_idx')],
                'constraints': [models.UniqueConstraint(fields=('is_public', 'path'), name='files_visibility_path_unique')],
            },
        ),
        migrations.CreateModel(
            name='Fileable',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('fileable_type', models.CharField(max_length=100)),
                ('fileable_id', models.CharField(max_length=64)),
                ('description', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('file', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='fileables', to='files.file')),
            ],
            options={
                'verbose_name': 'Fileable',
                'verbose_name_plural': 'Fileables',
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['fileable_type', 'fileable_id'], name='fileables_owner_idx')],
                'constraints': [models.UniqueConstraint(fields=('fileable_type', 'fileable_id', 'file'), name='fileables_owner_file_unique')],
            },
        ),
    ]
