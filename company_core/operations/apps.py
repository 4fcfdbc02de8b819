from django.apps import AppConfig


class OperationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'operations'
    verbose_name = 'River Business Operations'

    def ready(self):
        # Lifecycle notifications and delivery accounting hang off model signals.
        from . import signals  # noqa: F401
