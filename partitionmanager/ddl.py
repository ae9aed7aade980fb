"""
SQL text for partitioned tables.

Everything in this module is a pure function of its arguments: nothing here talks to a database.
Identifiers are emitted as given, literals are rendered by :py:func:`literal`.
"""

import datetime
import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from partitionmanager.conf import PartitionConfig
from partitionmanager.exceptions import SynthesisError
from partitionmanager.specs import (
    Bound,
    HashBucket,
    ListValues,
    PartitionKind,
    RangeBounds,
)


class StatementRole(str, enum.Enum):
    SCHEMA = "schema"
    PARENT_TABLE = "parent table"
    SHAPE = "table shape"
    PARTITION = "partition"
    SUBPARTITION = "sub-partition"
    DEFAULT_PARTITION = "default partition"
    INDEX = "index"
    CHECK_CONSTRAINT = "check constraint"
    ANALYZE = "analyze"


@dataclass(frozen=True)
class Statement:
    """One synthesized SQL statement and the step it belongs to."""

    role: StatementRole
    sql: str
    target: Optional[str] = None

    def describe(self) -> str:
        if self.target:
            return f"{self.role.value} '{self.target}'"
        return self.role.value

    def __str__(self):
        return self.sql


def literal(value) -> str:
    """
    Render a partition bound value as an SQL literal.

    Numbers and the ``MINVALUE``/``MAXVALUE`` sentinels are left unquoted, dates are rendered as
    ``'YYYY-MM-DD'`` and anything else is quoted as a string.

    :param value: The value to render.
    :return: The SQL literal.
    :rtype: str
    """
    if value is None:
        return "NULL"
    if isinstance(value, Bound):
        return value.value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None and value.time() == datetime.time.min:
            return f"'{value.date().isoformat()}'"
        return f"'{value.isoformat(sep=' ')}'"
    if isinstance(value, datetime.date):
        return f"'{value.isoformat()}'"
    return "'{}'".format(str(value).replace("'", "''"))


def values_clause(bounds) -> str:
    match bounds:
        case RangeBounds(lower=lower, upper=upper):
            return f"FOR VALUES FROM ({literal(lower)}) TO ({literal(upper)})"
        case ListValues(values=values):
            return "FOR VALUES IN ({})".format(", ".join(literal(v) for v in values))
        case HashBucket(modulus=modulus, remainder=remainder):
            return f"FOR VALUES WITH (modulus {modulus}, remainder {remainder})"
        case _:
            raise SynthesisError(f"Unsupported partition bounds: {bounds!r}")


def split_schema_name(qualified_name: str) -> Tuple[Optional[str], str]:
    if "." in qualified_name:
        schema, name = qualified_name.split(".", 1)
        return schema, name
    return None, qualified_name


def base_table_name(table: str) -> str:
    return table.split(".", 1)[-1]


def qualified_name(schema: Optional[str], name: str) -> str:
    return f"{schema}.{name}" if schema else name


def partition_table_name(
    table: str,
    name: str,
    schema: Optional[str] = None,
    config: Optional[PartitionConfig] = None,
) -> str:
    """
    Compute the (qualified) table name of a partition.

    ``<prefix><table><separator><name><suffix>``, unless ``name`` already starts with the parent's
    table name, in which case it is used as-is. The result is qualified with ``schema``, or with the
    parent's own schema when ``schema`` is empty.
    """
    config = config or PartitionConfig()
    parent_schema, base = split_schema_name(table)
    if name.startswith(base) or (config.prefix and name.startswith(config.prefix + base)):
        local_name = name
    else:
        local_name = f"{config.prefix}{base}{config.separator}{name}{config.suffix}"
    return qualified_name(schema or parent_schema, local_name)


def partition_key(kind: PartitionKind, key: str) -> str:
    return f"{kind.value} ({key})"


def parent_table_sql(
    create_statement: str, kind: PartitionKind, key: str, tablespace: Optional[str] = None
) -> str:
    statement = create_statement.rstrip().rstrip(";").rstrip()
    if not statement.endswith(")"):
        raise SynthesisError(
            f"CREATE TABLE statement does not end with its column list: {create_statement!r}"
        )
    sql = f"{statement[:-1].rstrip()}) PARTITION BY {partition_key(kind, key)}"
    if tablespace:
        sql += f" TABLESPACE {tablespace}"
    return sql


def is_index_statement(sql: str) -> bool:
    return "index" in sql.lower()


def create_schema_sql(schema: str) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {schema}"


def partition_of_sql(
    name: str,
    parent: str,
    bound: str,
    partition_by: Optional[str] = None,
    tablespace: Optional[str] = None,
) -> str:
    sql = f"CREATE TABLE IF NOT EXISTS {name} PARTITION OF {parent} {bound}"
    if partition_by:
        sql += f" PARTITION BY {partition_by}"
    if tablespace:
        sql += f" TABLESPACE {tablespace}"
    return sql


def index_name(table: str, columns) -> str:
    column_names = [column.split()[0] for column in columns]
    return "_".join([base_table_name(table), *column_names, "index"])


def index_sql(table: str, index) -> str:
    name = index.name or index_name(table, index.columns)
    unique = "UNIQUE " if index.unique else ""
    columns = ", ".join(index.columns)
    return f"CREATE {unique}INDEX IF NOT EXISTS {name} ON {table} ({columns})"


def check_constraint_sql(table: str, name: str, expression: str) -> str:
    return f"ALTER TABLE {table} ADD CONSTRAINT {name} CHECK ({expression})"


def attach_partition_sql(table: str, partition_table: str, lower, upper) -> str:
    return (
        f"ALTER TABLE {table} ATTACH PARTITION {partition_table} "
        f"{values_clause(RangeBounds(lower, upper))}"
    )


def detach_partition_sql(table: str, partition: str, concurrently: bool = False) -> str:
    sql = f"ALTER TABLE {table} DETACH PARTITION {partition}"
    if concurrently:
        sql += " CONCURRENTLY"
    return sql


def drop_table_sql(table: str) -> str:
    return f"DROP TABLE IF EXISTS {table} CASCADE"


def analyze_sql(table: str) -> str:
    return f"ANALYZE {table}"


def vacuum_sql(table: str, full: bool = False) -> str:
    return f"VACUUM FULL {table}" if full else f"VACUUM {table}"


def partition_pruning_sql(enabled: bool) -> str:
    return f"SET enable_partition_pruning = {'on' if enabled else 'off'}"
