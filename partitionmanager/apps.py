from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PartitionManagerConfig(AppConfig):
    name = "partitionmanager"
    verbose_name = _("Partition manager")

    def ready(self):
        from partitionmanager.conf import PartitionConfig

        # Raises ImproperlyConfigured on malformed PARTITIONMANAGER_* settings.
        PartitionConfig.from_settings()
