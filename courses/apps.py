from django.apps import AppConfig


class CoursesConfig(AppConfig):
    """App configuration for the course evaluation ledger."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "courses"

    def ready(self) -> None:
        # Connects the setting_changed receiver that resets the default ledger
        from . import ledger  # noqa: F401
