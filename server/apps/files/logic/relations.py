"""Registry of models that can own files through attachments."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import final

from django.apps import apps
from django.conf import settings
from django.db import models

from server.apps.files.exceptions import RelationshipConflictError
from server.apps.files.models import File

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileRelation:
    """A named relation from files to one owning model."""

    name: str
    model: type[models.Model]

    @property
    def tag(self) -> str:
        """Get the fileable_type stored for owners of this model."""
        return model_tag(self.model)


def model_tag(model: type[models.Model] | models.Model) -> str:
    """Get the fileable_type tag for a model or instance.

    Args:
        model: Model class or instance.

    Returns:
        Lowercase model label, e.g. 'auth.user'.
    """
    return model._meta.label_lower


@final
class FileRelationRegistry:
    """Maps relation names to models that own files.

    Owners of a file are looked up by name, e.g.
    ``file_relations.owners(file, 'users')``.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._relations: dict[str, FileRelation] = {}

    def __contains__(self, name: object) -> bool:
        """Whether a relation name is registered."""
        return name in self._relations

    def __iter__(self) -> Iterator[FileRelation]:
        """Iterate over registered relations."""
        return iter(self._relations.values())

    def register(self, name: str, model: type[models.Model]) -> FileRelation:
        """Register a model under a relation name.

        Args:
            name: Relation name, e.g. 'users'.
            model: Model whose instances own files.

        Returns:
            Registered relation.

        Raises:
            RelationshipConflictError: If the name is registered already
                or is an attribute of File.
        """
        if name in self._relations or hasattr(File, name):
            raise RelationshipConflictError(name)

        relation = FileRelation(name=name, model=model)
        self._relations[name] = relation
        logger.debug('Registered file relation %s -> %s', name, relation.tag)
        return relation

    def unregister(self, name: str) -> None:
        """Remove a relation name, if registered."""
        self._relations.pop(name, None)

    def get(self, name: str) -> FileRelation:
        """Get a relation by name.

        Raises:
            LookupError: If the name is not registered.
        """
        try:
            return self._relations[name]
        except KeyError:
            raise LookupError(f'No file relation named: {name}') from None

    def model_for(self, tag: str) -> type[models.Model]:
        """Resolve a fileable_type tag back to its model.

        Args:
            tag: Lowercase model label.

        Returns:
            Model class.

        Raises:
            LookupError: If no installed model has this label.
        """
        return apps.get_model(tag)

    def owners(self, file_instance: File, name: str) -> models.QuerySet:
        """Get the owners of a file for one relation.

        Args:
            file_instance: Attached file.
            name: Registered relation name.

        Returns:
            QuerySet of owning model instances.
        """
        relation = self.get(name)
        owner_ids = file_instance.fileables.filter(
            fileable_type=relation.tag,
        ).values_list('fileable_id', flat=True)
        return relation.model._default_manager.filter(pk__in=list(owner_ids))


file_relations = FileRelationRegistry()


def register_configured_models(
    registry: FileRelationRegistry = file_relations,
) -> None:
    """Register the models listed in SIMPLE_FILES_FILEABLE_MODELS.

    Args:
        registry: Registry to fill.

    Raises:
        RelationshipConflictError: If a name collides.
    """
    configured = getattr(settings, 'SIMPLE_FILES_FILEABLE_MODELS', {})
    for name, label in configured.items():
        if name in registry and registry.get(name).model is apps.get_model(label):
            continue
        registry.register(name, apps.get_model(label))
