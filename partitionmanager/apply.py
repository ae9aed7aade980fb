from typing import List, Optional

from django.db import DatabaseError, connections, transaction

from partitionmanager.conf import PartitionConfig
from partitionmanager.ddl import (
    Statement,
    analyze_sql,
    attach_partition_sql,
    detach_partition_sql,
    drop_table_sql,
    partition_pruning_sql,
    vacuum_sql,
)
from partitionmanager.exceptions import ApplyError, MaintenanceError


def _connection(connection, config: PartitionConfig):
    if connection is None:
        return connections[config.database]
    return connection


def execute_statements(
    table: str, statements: List[Statement], connection, logger
) -> List[Statement]:
    """
    Run ``statements`` in order inside a single transaction.

    :raises ApplyError: If a statement fails. The transaction is rolled back before this is raised.
    """
    current = None
    try:
        with transaction.atomic(using=connection.alias), connection.cursor() as cursor:
            for statement in statements:
                current = statement
                logger.debug("Executing %s: %s", statement.describe(), statement.sql)
                cursor.execute(statement.sql)
            # Failures past this point come from the commit.
            current = None
    except DatabaseError as exc:
        logger.warning(
            "Rolled back partitioning of %s, %s failed: %s",
            table,
            current.describe() if current is not None else "transaction",
            exc,
        )
        raise ApplyError(table, current, exc) from exc
    logger.info("Applied %d statement(s) for %s", len(statements), table)
    return statements


def apply(table, connection=None) -> List[Statement]:
    """
    Create a partitioned table with all its partitions, indexes and constraints.

    All statements run in one transaction: either everything is created or, on failure, nothing
    is. Configuration and synthesis errors are raised before the database is touched.

    :param table: The :py:class:`~partitionmanager.builder.PartitionedTable` to create.
    :param connection: The Django database connection. Defaults to the configured database.
    :raises ApplyError: If a statement failed; the transaction has been rolled back.
    :return: The executed statements.
    :rtype: list[Statement]
    """
    statements = table.synthesize()
    connection = _connection(connection, table.config)
    return execute_statements(
        table.table, statements, connection, table.config.get_logger()
    )


def drop_if_exists(table: str, connection=None, config=None):
    config = config or PartitionConfig.from_settings()
    PartitionMaintenance(table, connection, config)._run(
        "drop", table, drop_table_sql(table)
    )


class PartitionMaintenance:
    """
    Standalone maintenance operations on a partitioned table.

    Every operation is a single statement of its own, outside any create transaction. A failing
    operation raises :py:class:`~partitionmanager.exceptions.MaintenanceError` and does not undo
    operations that ran before it.
    """

    def __init__(
        self,
        table: str,
        connection=None,
        config: Optional[PartitionConfig] = None,
        *,
        detach_concurrently: Optional[bool] = None,
        vacuum_after_drop: Optional[bool] = None,
        partition_pruning: Optional[bool] = None,
    ):
        self.table = table
        self.config = config or PartitionConfig.from_settings()
        self.connection = _connection(connection, self.config)
        self.detach_concurrently = (
            self.config.detach_concurrently
            if detach_concurrently is None
            else detach_concurrently
        )
        self.vacuum_after_drop = (
            self.config.vacuum_after_drop
            if vacuum_after_drop is None
            else vacuum_after_drop
        )
        self.partition_pruning = (
            self.config.enable_partition_pruning
            if partition_pruning is None
            else partition_pruning
        )
        self.logger = self.config.get_logger()

    def _ensure_outside_transaction(self, operation: str, target: str):
        if self.connection.in_atomic_block:
            raise MaintenanceError(
                operation,
                target,
                message=f"Cannot {operation} '{target}' inside a transaction block",
            )

    def _run(self, operation: str, target: str, sql: str) -> str:
        try:
            with self.connection.cursor() as cursor:
                cursor.execute(sql)
        except DatabaseError as exc:
            self.logger.error("Failed to %s %s: %s", operation, target, exc)
            raise MaintenanceError(operation, target, sql, exc) from exc
        self.logger.info("%s: %s", operation, sql)
        return sql

    def attach(self, partition_table: str, lower, upper) -> str:
        return self._run(
            "attach",
            partition_table,
            attach_partition_sql(self.table, partition_table, lower, upper),
        )

    def detach(self, partition_name: str, concurrently: Optional[bool] = None) -> str:
        if concurrently is None:
            concurrently = self.detach_concurrently
        if concurrently:
            self._ensure_outside_transaction("detach", partition_name)
        return self._run(
            "detach",
            partition_name,
            detach_partition_sql(self.table, partition_name, concurrently),
        )

    def drop(self, partition_name: str, vacuum: Optional[bool] = None) -> List[str]:
        """
        Drop a partition, then vacuum the parent table when ``vacuum`` (or the table default) is
        set.

        :return: The executed statements.
        """
        if vacuum is None:
            vacuum = self.vacuum_after_drop
        if vacuum:
            self._ensure_outside_transaction("vacuum", self.table)
        executed = [self._run("drop", partition_name, drop_table_sql(partition_name))]
        if vacuum:
            executed.append(self.vacuum())
        return executed

    def analyze(self, target: Optional[str] = None) -> str:
        target = target or self.table
        return self._run("analyze", target, analyze_sql(target))

    def vacuum(self, full: bool = False, target: Optional[str] = None) -> str:
        target = target or self.table
        self._ensure_outside_transaction("vacuum", target)
        return self._run("vacuum", target, vacuum_sql(target, full))

    def set_partition_pruning(self, enabled: Optional[bool] = None) -> str:
        """Turn partition pruning on or off for the session, by default as the table is configured."""
        if enabled is None:
            enabled = self.partition_pruning
        return self._run(
            "configure pruning for", self.table, partition_pruning_sql(enabled)
        )
