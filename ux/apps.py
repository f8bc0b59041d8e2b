from django.apps import AppConfig


class UxConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ux"

    def ready(self):
        from . import receivers  # noqa: F401
