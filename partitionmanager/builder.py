import copy
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Tuple

from django.db import connections

from partitionmanager.apply import PartitionMaintenance, apply
from partitionmanager.conf import PartitionConfig
from partitionmanager.dateranges import DateRange
from partitionmanager.ddl import (
    Statement,
    StatementRole,
    analyze_sql,
    base_table_name,
    check_constraint_sql,
    create_schema_sql,
    index_name,
    index_sql,
    is_index_statement,
    parent_table_sql,
    partition_key,
    partition_of_sql,
    partition_table_name,
    qualified_name,
    split_schema_name,
    values_clause,
)
from partitionmanager.exceptions import ConfigurationError, SynthesisError
from partitionmanager.schemas import SchemaResolver
from partitionmanager.shape import TableShape
from partitionmanager.specs import PartitionKind, PartitionSpec, SubPartitionSet


@dataclass(frozen=True)
class TableFlags:
    pruning_enabled: bool = True
    detach_concurrently: bool = False
    analyze_after_create: bool = True
    vacuum_after_drop: bool = True

    @classmethod
    def from_config(cls, config: PartitionConfig) -> "TableFlags":
        return cls(
            pruning_enabled=config.enable_partition_pruning,
            detach_concurrently=config.detach_concurrently,
            analyze_after_create=config.analyze_after_create,
            vacuum_after_drop=config.vacuum_after_drop,
        )


class PartitionedTable:
    """
    Builder for a partitioned table and all of its partitions.

    A builder is meant for a single construction session: configure it, then call
    :py:meth:`synthesize` to get the DDL or :py:meth:`create` to run it. Every mutating method
    returns the builder, so calls can be chained::

        PartitionedTable.for_model(Measurement).range_by("recorded_at").add_range_partition(
            "2024", "2024-01-01", "2025-01-01"
        ).with_default_partition().create()

    The builder owns its partition list and schema registrations; use :py:meth:`copy` to branch
    off an independent builder.
    """

    def __init__(
        self,
        table: str,
        shape: Optional[TableShape] = None,
        config: Optional[PartitionConfig] = None,
    ):
        if not table:
            raise ConfigurationError("A partitioned table needs a name")
        self.table = table
        self.config = config or PartitionConfig.from_settings()
        self.flags = TableFlags.from_config(self.config)
        self._shape = None
        self._kind: Optional[PartitionKind] = None
        self._key: Optional[str] = None
        self._partitions: List[PartitionSpec] = []
        self._default_partition: Optional[str] = None
        self._tablespace: Optional[str] = None
        self._schemas = SchemaResolver()
        self._checks: Dict[str, str] = {}
        if shape is not None:
            self.set_shape(shape)

    @classmethod
    def for_model(cls, model, connection=None, config=None) -> "PartitionedTable":
        """
        Start a builder for a Django model's table.

        :param model: The model whose table is partitioned.
        :param connection: Connection used to render the model's ``CREATE TABLE`` statement.
        :param config: Partition configuration, defaults to the one built from settings.
        """
        config = config or PartitionConfig.from_settings()
        if connection is None:
            connection = connections[config.database]
        shape = TableShape.from_model(model, connection)
        return cls(model._meta.db_table, shape=shape, config=config)

    # Inspection

    @property
    def shape(self) -> Optional[TableShape]:
        return self._shape

    @property
    def strategy(self) -> Optional[Tuple[PartitionKind, str]]:
        if self._kind is None:
            return None
        return self._kind, self._key

    @property
    def partitions(self) -> Tuple[PartitionSpec, ...]:
        return tuple(self._partitions)

    @property
    def default_partition(self) -> Optional[str]:
        return self._default_partition

    @property
    def checks(self) -> Dict[str, str]:
        return dict(self._checks)

    @property
    def schemas(self) -> SchemaResolver:
        return self._schemas.copy()

    def copy(self) -> "PartitionedTable":
        other = copy.copy(self)
        other._partitions = list(self._partitions)
        other._checks = dict(self._checks)
        other._schemas = self._schemas.copy()
        return other

    # Table shape and strategy

    def set_shape(self, shape: TableShape) -> "PartitionedTable":
        if not isinstance(shape, TableShape):
            raise ConfigurationError(f"Expected a TableShape, got {shape!r}")
        self._shape = shape
        return self

    def partition_by(self, kind, *columns) -> "PartitionedTable":
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            columns = tuple(columns[0])
        if not columns:
            raise ConfigurationError("partition_by() needs at least one column")
        return self._set_strategy(kind, ", ".join(columns))

    def partition_by_expression(self, kind, expression: str) -> "PartitionedTable":
        return self._set_strategy(kind, expression)

    def range_by(self, *columns) -> "PartitionedTable":
        return self.partition_by(PartitionKind.RANGE, *columns)

    def list_by(self, *columns) -> "PartitionedTable":
        return self.partition_by(PartitionKind.LIST, *columns)

    def hash_by(self, *columns) -> "PartitionedTable":
        return self.partition_by(PartitionKind.HASH, *columns)

    def partition_by_year(self, column: str, kind=PartitionKind.RANGE):
        return self._set_strategy(kind, f"EXTRACT(YEAR FROM {column})")

    def partition_by_month(self, column: str, kind=PartitionKind.RANGE):
        return self._set_strategy(kind, f"DATE_TRUNC('month', {column})")

    def partition_by_day(self, column: str, kind=PartitionKind.RANGE):
        return self._set_strategy(kind, f"DATE_TRUNC('day', {column})")

    def _set_strategy(self, kind, key: str) -> "PartitionedTable":
        if self._kind is not None:
            raise ConfigurationError(
                f"Partition strategy of '{self.table}' is already set to "
                f"{self._kind.value} ({self._key})"
            )
        kind = PartitionKind.coerce(kind)
        if not key or not key.strip():
            raise ConfigurationError("Partition key must not be empty")
        self._kind = kind
        self._key = key
        return self

    # Partitions

    def add_partition(self, partition: PartitionSpec) -> "PartitionedTable":
        if self._kind is None:
            raise ConfigurationError(
                f"Set the partition strategy of '{self.table}' before adding partitions"
            )
        if not isinstance(partition, PartitionSpec):
            raise ConfigurationError(f"Expected a PartitionSpec, got {partition!r}")
        if partition.kind is not self._kind:
            raise ConfigurationError(
                f"Partition '{partition.name}' is {partition.kind.value} but '{self.table}' "
                f"is partitioned by {self._kind.value}"
            )
        if any(existing.name == partition.name for existing in self._partitions):
            raise ConfigurationError(
                f"Duplicate partition name '{partition.name}' on '{self.table}'"
            )
        if partition.name == self._default_partition:
            raise ConfigurationError(
                f"Partition name '{partition.name}' is already used by the default partition"
            )
        self._partitions.append(partition)
        return self

    def add_partitions(self, partitions) -> "PartitionedTable":
        for partition in partitions:
            self.add_partition(partition)
        return self

    def add_range_partition(
        self, name, lower, upper, schema=None, tablespace=None
    ) -> "PartitionedTable":
        return self.add_partition(
            PartitionSpec.range(name, lower, upper, schema, tablespace)
        )

    def add_list_partition(
        self, name, values, schema=None, tablespace=None
    ) -> "PartitionedTable":
        return self.add_partition(PartitionSpec.list(name, values, schema, tablespace))

    def add_hash_partition(
        self, name, modulus, remainder, schema=None, tablespace=None
    ) -> "PartitionedTable":
        return self.add_partition(
            PartitionSpec.hash(name, modulus, remainder, schema, tablespace)
        )

    def hash_partitions(self, count: int, prefix: Optional[str] = None):
        """Add ``count`` hash partitions that together cover the whole hash space."""
        if count < 1:
            raise ConfigurationError(f"Hash partition count must be positive, got {count}")
        if prefix is None:
            separator = self.config.separator
            prefix = f"{base_table_name(self.table)}{separator}part{separator}"
        for remainder in range(count):
            self.add_hash_partition(f"{prefix}{remainder}", count, remainder)
        return self

    def with_subpartitions(
        self, partition_name: str, subpartitions: SubPartitionSet
    ) -> "PartitionedTable":
        """
        Divide an already added partition with ``subpartitions``.

        :raises SynthesisError: If no partition with that name was added.
        """
        if not isinstance(subpartitions, SubPartitionSet):
            raise ConfigurationError(f"Expected a SubPartitionSet, got {subpartitions!r}")
        for index, partition in enumerate(self._partitions):
            if partition.name == partition_name:
                self._partitions[index] = partition.with_subpartitions(subpartitions)
                return self
        raise SynthesisError(
            f"No partition named '{partition_name}' on '{self.table}' to sub-partition"
        )

    def generate_partitions(self, date_range: DateRange) -> "PartitionedTable":
        prefix = f"{self.config.prefix}{base_table_name(self.table)}{self.config.separator}"
        return self.add_partitions(date_range.build(prefix, self.config.suffix))

    def _generate(self, date_range: DateRange, start, count):
        if start is not None:
            date_range.start(start)
        if count is not None:
            date_range.count(count)
        return self.generate_partitions(date_range)

    def generate_daily_partitions(self, start=None, count=None):
        return self._generate(DateRange.daily(self.config), start, count)

    def generate_weekly_partitions(self, start=None, count=None):
        return self._generate(DateRange.weekly(self.config), start, count)

    def generate_monthly_partitions(self, start=None, count=None):
        return self._generate(DateRange.monthly(self.config), start, count)

    def generate_quarterly_partitions(self, start=None, count=None):
        return self._generate(DateRange.quarterly(self.config), start, count)

    def generate_yearly_partitions(self, start=None, count=None):
        return self._generate(DateRange.yearly(self.config), start, count)

    def with_default_partition(self, name: str = "default") -> "PartitionedTable":
        if any(partition.name == name for partition in self._partitions):
            raise ConfigurationError(
                f"Default partition name '{name}' collides with a partition of '{self.table}'"
            )
        self._default_partition = name
        return self

    # Placement, constraints and flags

    def tablespace(self, tablespace: str) -> "PartitionedTable":
        self._tablespace = tablespace
        return self

    def partition_schema(self, schema: str) -> "PartitionedTable":
        self._schemas.set_default(schema)
        return self

    def register_schema(self, kind, schema: str) -> "PartitionedTable":
        self._schemas.register(kind, schema)
        return self

    def register_schemas(self, schemas: Mapping) -> "PartitionedTable":
        self._schemas.register_many(schemas)
        return self

    def check(self, name: str, expression: str) -> "PartitionedTable":
        if name in self._checks:
            raise ConfigurationError(
                f"Check constraint '{name}' is already registered on '{self.table}'"
            )
        self._checks[name] = expression
        return self

    def enable_partition_pruning(self, enable: bool = True) -> "PartitionedTable":
        self.flags = replace(self.flags, pruning_enabled=enable)
        return self

    def detach_concurrently(self, enable: bool = True) -> "PartitionedTable":
        self.flags = replace(self.flags, detach_concurrently=enable)
        return self

    def analyze_after_create(self, enable: bool = True) -> "PartitionedTable":
        self.flags = replace(self.flags, analyze_after_create=enable)
        return self

    def vacuum_after_drop(self, enable: bool = True) -> "PartitionedTable":
        self.flags = replace(self.flags, vacuum_after_drop=enable)
        return self

    # Synthesis

    def synthesize(self) -> List[Statement]:
        """
        Generate the ordered statements that create the partitioned table.

        Order: parent table, other table shape statements, partitions (each followed by its
        sub-partitions), the default partition, indexes, check constraints and ``ANALYZE``.
        Every schema a partition is placed in is created right before its first use.

        :raises ConfigurationError: If the partition strategy or table shape is missing.
        :return: The statements in execution order.
        :rtype: list[Statement]
        """
        if self._kind is None:
            raise ConfigurationError(
                f"Partition key of '{self.table}' is not set. Use partition_by() first."
            )
        if self._shape is None:
            raise ConfigurationError(
                f"Table shape of '{self.table}' is not set. Use set_shape() or for_model()."
            )
        self._check_table_names()

        statements: List[Statement] = []
        created_schemas = set()

        def ensure_schema(schema):
            if schema and schema not in created_schemas:
                created_schemas.add(schema)
                statements.append(
                    Statement(StatementRole.SCHEMA, create_schema_sql(schema), schema)
                )

        statements.append(
            Statement(
                StatementRole.PARENT_TABLE,
                parent_table_sql(
                    self._shape.create_statement, self._kind, self._key, self._tablespace
                ),
                self.table,
            )
        )
        for sql in self._shape.extra_statements:
            # Index statements are replaced by the shape's index intentions.
            if not is_index_statement(sql):
                statements.append(Statement(StatementRole.SHAPE, sql, self.table))

        for partition in self._partitions:
            schema = self._schemas.resolve_for(partition)
            ensure_schema(schema)
            name = partition_table_name(self.table, partition.name, schema, self.config)
            subpartitions = partition.subpartitions
            statements.append(
                Statement(
                    StatementRole.PARTITION,
                    partition_of_sql(
                        name,
                        self.table,
                        values_clause(partition.bounds),
                        partition_by=(
                            partition_key(subpartitions.kind, subpartitions.key)
                            if subpartitions is not None
                            else None
                        ),
                        tablespace=partition.tablespace,
                    ),
                    partition.name,
                )
            )
            if subpartitions is None:
                continue

            parent_schema, _ = split_schema_name(name)
            for child in subpartitions.partitions:
                child_schema = self._schemas.resolve_for(child)
                ensure_schema(child_schema)
                statements.append(
                    Statement(
                        StatementRole.SUBPARTITION,
                        partition_of_sql(
                            qualified_name(child_schema or parent_schema, child.name),
                            name,
                            values_clause(child.bounds),
                            tablespace=child.tablespace,
                        ),
                        child.name,
                    )
                )

        if self._default_partition is not None:
            schema = self._schemas.default
            ensure_schema(schema)
            statements.append(
                Statement(
                    StatementRole.DEFAULT_PARTITION,
                    partition_of_sql(
                        partition_table_name(
                            self.table, self._default_partition, schema, self.config
                        ),
                        self.table,
                        "DEFAULT",
                        tablespace=self._tablespace,
                    ),
                    self._default_partition,
                )
            )

        for index in self._shape.indexes:
            statements.append(
                Statement(
                    StatementRole.INDEX,
                    index_sql(self.table, index),
                    index.name or index_name(self.table, index.columns),
                )
            )

        for name, expression in self._checks.items():
            statements.append(
                Statement(
                    StatementRole.CHECK_CONSTRAINT,
                    check_constraint_sql(self.table, name, expression),
                    name,
                )
            )

        if self.flags.analyze_after_create:
            statements.append(
                Statement(StatementRole.ANALYZE, analyze_sql(self.table), self.table)
            )

        return statements

    def _check_table_names(self) -> None:
        """
        Reject partitions that resolve to the same table.

        ``CREATE TABLE IF NOT EXISTS`` would silently skip the second one.
        """
        owners = {self.table.lower(): "the parent table"}

        def claim(table_name, owner):
            key = table_name.lower()
            if key in owners:
                raise ConfigurationError(
                    f"Table '{table_name}' of '{self.table}' is claimed by both {owners[key]} "
                    f"and {owner}"
                )
            owners[key] = owner

        for partition in self._partitions:
            schema = self._schemas.resolve_for(partition)
            name = partition_table_name(self.table, partition.name, schema, self.config)
            claim(name, f"partition '{partition.name}'")
            if partition.subpartitions is None:
                continue
            parent_schema, _ = split_schema_name(name)
            for child in partition.subpartitions.partitions:
                child_schema = self._schemas.resolve_for(child)
                claim(
                    qualified_name(child_schema or parent_schema, child.name),
                    f"sub-partition '{child.name}'",
                )
        if self._default_partition is not None:
            claim(
                partition_table_name(
                    self.table, self._default_partition, self._schemas.default, self.config
                ),
                f"default partition '{self._default_partition}'",
            )

    def to_sql(self) -> List[str]:
        return [statement.sql for statement in self.synthesize()]

    # Execution

    def create(self, connection=None) -> List[Statement]:
        """Synthesize and apply the table in one transaction, see :py:func:`~partitionmanager.apply.apply`."""
        return apply(self, connection or connections[self.config.database])

    def maintenance(self, connection=None) -> PartitionMaintenance:
        return PartitionMaintenance(
            self.table,
            connection or connections[self.config.database],
            self.config,
            detach_concurrently=self.flags.detach_concurrently,
            vacuum_after_drop=self.flags.vacuum_after_drop,
            partition_pruning=self.flags.pruning_enabled,
        )
