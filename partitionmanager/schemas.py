from typing import Dict, Mapping, Optional

from partitionmanager.specs import PartitionKind


class SchemaResolver:
    """
    Decides which schema a partition is created in.

    Resolution order: the schema carried by the partition itself, then the schema registered for
    the partition's kind, then the default schema. When all of them are missing the partition is
    created in the parent table's namespace and :py:meth:`resolve_for` returns ``None``.
    """

    def __init__(self, default: Optional[str] = None):
        self._schemas: Dict[PartitionKind, str] = {}
        self._default = default or None

    @property
    def default(self) -> Optional[str]:
        return self._default

    @property
    def registered(self) -> Dict[PartitionKind, str]:
        return dict(self._schemas)

    def set_default(self, schema: Optional[str]) -> "SchemaResolver":
        self._default = schema or None
        return self

    def register(self, kind, schema: str) -> "SchemaResolver":
        self._schemas[PartitionKind.coerce(kind)] = schema
        return self

    def register_many(self, schemas: Mapping) -> "SchemaResolver":
        for kind, schema in schemas.items():
            self.register(kind, schema)
        return self

    def has_schema_for(self, kind) -> bool:
        return PartitionKind.coerce(kind) in self._schemas

    def resolve(self, kind) -> Optional[str]:
        return self._schemas.get(PartitionKind.coerce(kind)) or self._default

    def resolve_for(self, partition) -> Optional[str]:
        """
        Returns the schema for a partition or sub-partition.

        :param partition: A :py:class:`~partitionmanager.specs.PartitionSpec` or
            :py:class:`~partitionmanager.specs.SubPartitionSpec`.
        :return: The schema name, or ``None`` for the parent table's namespace.
        """
        return partition.schema or self.resolve(partition.kind)

    def clear(self) -> "SchemaResolver":
        self._schemas = {}
        self._default = None
        return self

    def copy(self) -> "SchemaResolver":
        resolver = SchemaResolver(self._default)
        resolver._schemas = dict(self._schemas)
        return resolver
