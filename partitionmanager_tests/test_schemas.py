from django.test import SimpleTestCase

from partitionmanager.schemas import SchemaResolver
from partitionmanager.specs import PartitionKind, PartitionSpec, SubPartitionSpec


class SchemaResolverTest(SimpleTestCase):
    def setUp(self):
        self.resolver = SchemaResolver(default="partitions").register(
            PartitionKind.RANGE, "history"
        )

    def test_explicit_schema_wins(self):
        spec = PartitionSpec.range("p2024", 2024, 2025, schema="archive")
        self.assertEqual(self.resolver.resolve_for(spec), "archive")

    def test_kind_schema_before_default(self):
        spec = PartitionSpec.range("p2024", 2024, 2025)
        self.assertEqual(self.resolver.resolve_for(spec), "history")

    def test_default_schema(self):
        spec = PartitionSpec.list("p_us", ["us"])
        self.assertEqual(self.resolver.resolve_for(spec), "partitions")

    def test_nothing_registered(self):
        resolver = SchemaResolver()
        self.assertIsNone(resolver.resolve_for(SubPartitionSpec.hash("h0", 2, 0)))
        self.assertIsNone(resolver.resolve("hash"))

    def test_register_many_accepts_names(self):
        self.resolver.register_many({"list": "lists", "HASH": "buckets"})

        self.assertEqual(self.resolver.resolve(PartitionKind.LIST), "lists")
        self.assertEqual(self.resolver.resolve(PartitionKind.HASH), "buckets")
        self.assertTrue(self.resolver.has_schema_for("list"))

    def test_empty_default_is_none(self):
        self.assertIsNone(SchemaResolver(default="").default)
        self.assertIsNone(self.resolver.set_default("").default)

    def test_copy_is_independent(self):
        other = self.resolver.copy()
        other.register(PartitionKind.LIST, "lists").set_default("elsewhere")

        self.assertFalse(self.resolver.has_schema_for(PartitionKind.LIST))
        self.assertEqual(self.resolver.default, "partitions")

    def test_clear(self):
        self.resolver.clear()
        self.assertEqual(self.resolver.registered, {})
        self.assertIsNone(self.resolver.default)
