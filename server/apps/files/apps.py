"""Django app configuration for files app."""

from typing_extensions import override

from django.apps import AppConfig


class FilesConfig(AppConfig):
    """Configuration for files app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    verbose_name = 'Files'

    @override
    def ready(self) -> None:
        """Import signal handlers and register fileable models."""
        from server.apps.files import signals  # noqa: F401
        from server.apps.files.logic.relations import register_configured_models

        register_configured_models()
