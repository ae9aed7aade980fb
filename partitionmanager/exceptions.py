class PartitionError(Exception):
    """Base class for all partition manager errors."""


class ConfigurationError(PartitionError):
    """
    The partition specification is incomplete or contradicts itself.

    Raised before any SQL is generated, never retried.
    """


class SynthesisError(PartitionError):
    """An internal inconsistency was found while generating SQL."""


class ApplyError(PartitionError):
    """
    A statement failed while applying a partitioned table definition.

    The surrounding transaction has already been rolled back when this is raised, so nothing from
    the failed apply is left behind. The original database error is available as ``error`` and as
    ``__cause__``.
    """

    def __init__(self, table, statement, error):
        self.table = table
        self.statement = statement
        self.error = error
        step = statement.describe() if statement is not None else "transaction"
        super().__init__(f"Failed to apply partitioning for '{table}' at {step}: {error}")

    @property
    def role(self):
        return self.statement.role if self.statement is not None else None


class MaintenanceError(PartitionError):
    """A standalone maintenance operation (attach, detach, drop, analyze, vacuum) failed."""

    def __init__(self, operation, target, statement=None, error=None, message=None):
        self.operation = operation
        self.target = target
        self.statement = statement
        self.error = error
        if message is None:
            message = f"Failed to {operation} '{target}': {error}"
        super().__init__(message)
