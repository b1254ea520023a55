"""Django app configuration for Batchman."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BatchmanConfig(AppConfig):
    """Configuration for Batchman app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "batchman"
    verbose_name = _("Lotes de Produção")
