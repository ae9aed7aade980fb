from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from partitionmanager.conf import PartitionConfig


class PartitionConfigTest(SimpleTestCase):
    def test_defaults(self):
        config = PartitionConfig.from_settings()

        self.assertEqual(config, PartitionConfig())

    @override_settings(
        PARTITIONMANAGER_DEFAULT_DATABASE="reporting",
        PARTITIONMANAGER_DETACH_CONCURRENTLY=True,
        PARTITIONMANAGER_NAME_PREFIX="p_",
        PARTITIONMANAGER_LOGGER="custom.partitions",
    )
    def test_from_settings(self):
        config = PartitionConfig.from_settings()

        self.assertEqual(config.database, "reporting")
        self.assertTrue(config.detach_concurrently)
        self.assertEqual(config.prefix, "p_")
        self.assertEqual(config.get_logger().name, "custom.partitions")

    @override_settings(PARTITIONMANAGER_VACUUM_AFTER_DROP="yes")
    def test_boolean_settings_are_checked(self):
        with self.assertRaisesMessage(
            ImproperlyConfigured, "PARTITIONMANAGER_VACUUM_AFTER_DROP"
        ):
            PartitionConfig.from_settings()

    def test_replace(self):
        config = PartitionConfig().replace(separator="__")

        self.assertEqual(config.separator, "__")
        self.assertEqual(PartitionConfig().separator, "_")

    def test_logging_can_be_disabled(self):
        logger = PartitionConfig(logging_enabled=False).get_logger()
        self.assertTrue(logger.disabled)

        logger = PartitionConfig().get_logger()
        self.assertFalse(logger.disabled)
