"""
PostgreSQL-specific tests for the partition manager.
"""

from unittest import skipIf

from django.conf import settings
from django.db import connection
from django.test import TransactionTestCase

from partitionmanager.builder import PartitionedTable
from partitionmanager.conf import PartitionConfig
from partitionmanager.dateranges import DateRange
from partitionmanager.exceptions import ApplyError
from partitionmanager.shape import IndexIntention, TableShape
from partitionmanager.specs import SubPartitionSet

SHAPE = TableShape(
    [
        "CREATE TABLE pm_measurement (sensor varchar(64) NOT NULL, "
        "region varchar(16) NOT NULL, value double precision, recorded_at date NOT NULL)"
    ],
    indexes=[IndexIntention("sensor")],
)


@skipIf(settings.TEST_DB_BACKEND != "postgresql", "PostgreSQL-specific test")
class PartitionedTableTest(TransactionTestCase):
    databases = "__all__"

    def setUp(self):
        super().setUp()
        self.config = PartitionConfig()

    def tearDown(self):
        with connection.cursor() as cursor:
            cursor.execute("DROP TABLE IF EXISTS pm_measurement CASCADE")
            cursor.execute("DROP TABLE IF EXISTS pm_measurement_archive CASCADE")
            cursor.execute("DROP SCHEMA IF EXISTS pm_regions CASCADE")
        super().tearDown()

    def _children(self, table: str) -> list[str]:
        with connection.cursor() as cursor:
            cursor.execute(
                """
                SELECT child.relname
                FROM pg_inherits
                JOIN pg_class parent ON parent.oid = pg_inherits.inhparent
                JOIN pg_class child ON child.oid = pg_inherits.inhrelid
                WHERE parent.oid = %s::regclass
                ORDER BY child.relname;
                """,
                [table],
            )
            return [row[0] for row in cursor.fetchall()]

    def _exists(self, table: str) -> bool:
        with connection.cursor() as cursor:
            cursor.execute("SELECT to_regclass(%s) IS NOT NULL", [table])
            return cursor.fetchone()[0]

    def _table(self) -> PartitionedTable:
        return PartitionedTable("pm_measurement", SHAPE, config=self.config).range_by(
            "recorded_at"
        )

    def test_create(self):
        table = (
            self._table()
            .generate_partitions(DateRange.monthly(self.config).start("2024-01-01").count(2))
            .with_default_partition()
        )

        table.create(connection)

        self.assertEqual(
            self._children("pm_measurement"),
            ["pm_measurement_2024_01", "pm_measurement_2024_02", "pm_measurement_default"],
        )
        with connection.cursor() as cursor:
            cursor.execute(
                "INSERT INTO pm_measurement VALUES ('s1', 'us', 1.0, '2024-02-10')"
            )
            cursor.execute("SELECT count(*) FROM pm_measurement_2024_02")
            self.assertEqual(cursor.fetchone()[0], 1)

    def test_subpartitions_in_schema(self):
        regions = (
            SubPartitionSet.list("region", default_schema="pm_regions")
            .add_list("pm_measurement_2024_us", ["us"])
            .add_list("pm_measurement_2024_eu", ["eu"])
        )
        table = (
            self._table()
            .add_range_partition("2024", "2024-01-01", "2025-01-01")
            .with_subpartitions("2024", regions)
        )

        table.create(connection)

        self.assertEqual(
            self._children("pm_measurement_2024"),
            ["pm_measurement_2024_eu", "pm_measurement_2024_us"],
        )
        self.assertTrue(self._exists("pm_regions.pm_measurement_2024_us"))

    def test_failed_create_leaves_nothing_behind(self):
        table = self._table().add_range_partition("2024", "2024-01-01", "2025-01-01")
        table.check("broken", "no_such_column > 0")

        with self.assertRaises(ApplyError):
            table.create(connection)

        self.assertFalse(self._exists("pm_measurement"))
        self.assertFalse(self._exists("pm_measurement_2024"))

    def test_maintenance(self):
        table = self._table().generate_partitions(
            DateRange.yearly(self.config).start("2023-01-01").count(2)
        )
        table.create(connection)
        maintenance = table.maintenance(connection)

        maintenance.detach("pm_measurement_2023")
        self.assertEqual(self._children("pm_measurement"), ["pm_measurement_2024"])

        maintenance.attach("pm_measurement_2023", "2023-01-01", "2024-01-01")
        self.assertEqual(
            self._children("pm_measurement"),
            ["pm_measurement_2023", "pm_measurement_2024"],
        )

        maintenance.drop("pm_measurement_2023")
        maintenance.analyze()
        maintenance.set_partition_pruning(True)
        self.assertFalse(self._exists("pm_measurement_2023"))
