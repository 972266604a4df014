"""Tests for the file relation registry."""

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from server.apps.files.exceptions import RelationshipConflictError
from server.apps.files.logic.relations import (
    FileRelationRegistry,
    file_relations,
    model_tag,
    register_configured_models,
)
from server.apps.files.models import File, Fileable

User = get_user_model()


@pytest.fixture
def registry():
    """Empty registry."""
    return FileRelationRegistry()


def test_model_tag(registry):
    """Test tags are lowercase model labels."""
    assert model_tag(User) == 'auth.user'
    assert model_tag(User(username='someone')) == 'auth.user'
    assert registry.model_for('auth.user') is User


def test_register(registry):
    """Test a registered relation can be looked up."""
    relation = registry.register('groups', Group)

    assert 'groups' in registry
    assert registry.get('groups') == relation
    assert relation.tag == 'auth.group'
    assert list(registry) == [relation]


def test_register_twice_conflicts(registry):
    """Test a relation name can only be taken once."""
    registry.register('groups', Group)

    with pytest.raises(RelationshipConflictError, match='groups'):
        registry.register('groups', User)


def test_register_file_attribute_conflicts(registry):
    """Test names clashing with File attributes are rejected."""
    with pytest.raises(ValueError):
        registry.register('tags', Group)


def test_unknown_relation(registry):
    """Test looking up an unregistered name."""
    with pytest.raises(LookupError):
        registry.get('nothing')


def test_unregister(registry):
    """Test a name can be freed again."""
    registry.register('groups', Group)

    registry.unregister('groups')

    assert 'groups' not in registry
    registry.register('groups', Group)


def test_configured_models_registered_at_startup():
    """Test relations from settings are registered when the app is ready."""
    assert file_relations.get('users').model is User


def test_register_configured_models(registry, settings):
    """Test registration reads the settings and tolerates reruns."""
    settings.SIMPLE_FILES_FILEABLE_MODELS = {'members': 'auth.User'}

    register_configured_models(registry)
    register_configured_models(registry)

    assert registry.get('members').model is User


@pytest.mark.django_db
def test_owners(mock_s3, user, other_user):
    """Test owners of a file are found through its attachments."""
    file_instance = File.objects.create(path='image/png/a.png', name='a.png')
    group = Group.objects.create(name='editors')
    Fileable.objects.create(
        file=file_instance,
        fileable_type='auth.user',
        fileable_id=str(user.pk),
    )
    Fileable.objects.create(
        file=file_instance,
        fileable_type='auth.group',
        fileable_id=str(group.pk),
    )

    assert list(file_relations.owners(file_instance, 'users')) == [user]
