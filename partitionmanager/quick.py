"""
One-shot partition generators for tables that are already partitioned.

Example::

    QuickPartitioner("events", column="created_at").monthly(count=6, start="2024-01-15")

creates ``events_2024_01`` .. ``events_2024_06`` as partitions of ``events`` in a single
transaction.
"""

import datetime
from typing import List, Mapping, Optional

from dateutil.relativedelta import MO, relativedelta
from django.db import connections

from partitionmanager.apply import execute_statements
from partitionmanager.conf import PartitionConfig
from partitionmanager.dateranges import as_date, quarter_of
from partitionmanager.ddl import (
    Statement,
    StatementRole,
    base_table_name,
    create_schema_sql,
    partition_of_sql,
    partition_table_name,
    qualified_name,
    values_clause,
)
from partitionmanager.exceptions import ConfigurationError
from partitionmanager.specs import PartitionSpec


class QuickPartitioner:
    """
    Adds a batch of partitions to an existing partitioned table.

    Partitions are named the way :py:func:`~partitionmanager.ddl.partition_table_name` names them,
    from each partition's start date, list key or hash remainder. With ``dry_run`` the statements
    are returned without being executed.

    :param table: The partitioned parent table.
    :param column: The partition column, required by the date based generators. It only guards
        against running them on the wrong table: the parent's partition key decides the routing.
    :param schema: Schema to create the partitions in, created when missing.
    """

    def __init__(
        self,
        table: str,
        column: Optional[str] = None,
        schema: Optional[str] = None,
        config: Optional[PartitionConfig] = None,
        connection=None,
        dry_run: bool = False,
    ):
        if not table:
            raise ConfigurationError("A partitioned table needs a name")
        self.table = table
        self.column = column
        self.schema = schema
        self.config = config or PartitionConfig.from_settings()
        self.connection = connection
        self.dry_run = dry_run

    def by(self, column: str) -> "QuickPartitioner":
        self.column = column
        return self

    def _require_column(self, column=None):
        column = column or self.column
        if not column:
            raise ConfigurationError(
                f"Partition column of '{self.table}' not specified. Use by() first."
            )
        self.column = column

    def _name(self, suffix) -> str:
        return partition_table_name(base_table_name(self.table), suffix, config=self.config)

    def _range(self, suffix, lower, upper) -> PartitionSpec:
        return PartitionSpec.range(self._name(suffix), lower, upper, self.schema)

    def statements(self, partitions) -> List[Statement]:
        statements = []
        if self.schema:
            statements.append(
                Statement(StatementRole.SCHEMA, create_schema_sql(self.schema), self.schema)
            )
        for partition in partitions:
            statements.append(
                Statement(
                    StatementRole.PARTITION,
                    partition_of_sql(
                        qualified_name(partition.schema, partition.name),
                        self.table,
                        values_clause(partition.bounds),
                    ),
                    partition.name,
                )
            )
        return statements

    def _run(self, partitions) -> List[Statement]:
        statements = self.statements(partitions)
        if self.dry_run:
            return statements
        connection = self.connection or connections[self.config.database]
        return execute_statements(
            self.table, statements, connection, self.config.get_logger()
        )

    def monthly(self, count: int = 12, start=None) -> List[Statement]:
        self._require_column()
        first = (as_date(start) if start else datetime.date.today()).replace(day=1)
        partitions = []
        for index in range(count):
            lower = first + relativedelta(months=index)
            upper = lower + relativedelta(months=1)
            partitions.append(self._range(lower.strftime("%Y_%m"), lower, upper))
        return self._run(partitions)

    def yearly(self, count: int = 5, start_year: Optional[int] = None) -> List[Statement]:
        self._require_column()
        year = start_year or datetime.date.today().year
        partitions = [
            self._range(
                str(year + index),
                datetime.date(year + index, 1, 1),
                datetime.date(year + index + 1, 1, 1),
            )
            for index in range(count)
        ]
        return self._run(partitions)

    def daily(self, count: int = 30, start=None) -> List[Statement]:
        self._require_column()
        first = as_date(start) if start else datetime.date.today()
        partitions = []
        for index in range(count):
            lower = first + datetime.timedelta(days=index)
            upper = lower + datetime.timedelta(days=1)
            partitions.append(self._range(lower.strftime("%Y_%m_%d"), lower, upper))
        return self._run(partitions)

    def weekly(self, count: int = 12, start=None) -> List[Statement]:
        """Weekly partitions starting on the Monday of ``start``'s week, named by ISO week."""
        self._require_column()
        first = (as_date(start) if start else datetime.date.today()) + relativedelta(
            weekday=MO(-1)
        )
        partitions = []
        for index in range(count):
            lower = first + datetime.timedelta(weeks=index)
            upper = lower + datetime.timedelta(weeks=1)
            partitions.append(self._range(lower.strftime("%G_%V"), lower, upper))
        return self._run(partitions)

    def quarterly(self, count: int = 8, start_year: Optional[int] = None) -> List[Statement]:
        """Quarterly partitions starting with Q1 of ``start_year``."""
        self._require_column()
        first = datetime.date(start_year or datetime.date.today().year, 1, 1)
        partitions = []
        for index in range(count):
            lower = first + relativedelta(months=3 * index)
            upper = lower + relativedelta(months=3)
            partitions.append(self._range(f"{lower.year}_q{quarter_of(lower)}", lower, upper))
        return self._run(partitions)

    def by_list(self, column: str, mapping: Mapping) -> List[Statement]:
        """
        One list partition per ``mapping`` item.

        :param mapping: Maps the partition name suffix to a value or a list of values.
        """
        self._require_column(column)
        partitions = [
            PartitionSpec.list(self._name(key), values, self.schema)
            for key, values in mapping.items()
        ]
        return self._run(partitions)

    def by_hash(self, column: str, count: int = 4) -> List[Statement]:
        self._require_column(column)
        if count < 1:
            raise ConfigurationError(f"Hash partition count must be positive, got {count}")
        partitions = [
            PartitionSpec.hash(
                self._name(f"part{self.config.separator}{remainder}"),
                count,
                remainder,
                self.schema,
            )
            for remainder in range(count)
        ]
        return self._run(partitions)
