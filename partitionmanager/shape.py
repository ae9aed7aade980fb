from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from django.db import DEFAULT_DB_ALIAS, connections

from partitionmanager.exceptions import ConfigurationError


@dataclass(frozen=True)
class IndexIntention:
    """An index to create on the partitioned parent once all partitions exist."""

    columns: Tuple[str, ...]
    unique: bool = False
    name: Optional[str] = None

    def __post_init__(self):
        columns = (
            (self.columns,) if isinstance(self.columns, str) else tuple(self.columns)
        )
        if not columns:
            raise ConfigurationError("An index needs at least one column")
        object.__setattr__(self, "columns", columns)


@dataclass(frozen=True)
class TableShape:
    """
    The DDL of the unpartitioned table.

    ``statements[0]`` is the ``CREATE TABLE`` statement. Any further statements are created
    alongside the table (foreign keys, comments, sequences, ...) except index statements, which are
    replaced by ``indexes``.
    """

    statements: Tuple[str, ...]
    indexes: Tuple[IndexIntention, ...] = ()

    def __post_init__(self):
        statements = tuple(str(statement) for statement in self.statements)
        if not statements or not statements[0].lstrip().upper().startswith(
            "CREATE TABLE"
        ):
            raise ConfigurationError(
                "A table shape must start with a CREATE TABLE statement"
            )
        object.__setattr__(self, "statements", statements)
        object.__setattr__(self, "indexes", tuple(self.indexes))

    @property
    def create_statement(self) -> str:
        return self.statements[0]

    @property
    def extra_statements(self) -> Tuple[str, ...]:
        return self.statements[1:]

    @classmethod
    def from_model(cls, model, connection=None) -> "TableShape":
        """
        Build the shape of a Django model's table.

        The statements are collected from the connection's schema editor without executing them.

        :param model: The model class.
        :param connection: The database connection whose dialect is used. Defaults to the default
            connection.
        :rtype: TableShape
        """
        if connection is None:
            connection = connections[DEFAULT_DB_ALIAS]
        editor = connection.schema_editor(collect_sql=True)
        # Normally set by __enter__.
        editor.deferred_sql = []
        sql, params = editor.table_sql(model)
        if params:
            sql = sql % tuple(editor.quote_value(param) for param in params)
        statements = [sql]
        statements.extend(str(statement) for statement in editor.deferred_sql)
        return cls(statements=statements, indexes=tuple(_model_indexes(model)))


def _model_indexes(model) -> Iterator[IndexIntention]:
    opts = model._meta
    for field in opts.local_fields:
        if field.primary_key or field.unique:
            continue
        if getattr(field, "db_index", False):
            yield IndexIntention(columns=(field.column,))
    for index in getattr(opts, "indexes", []):
        _check_index(model, index)
        yield IndexIntention(
            columns=tuple(_index_columns(opts, index.fields)),
            name=index.name,
        )


def _index_columns(opts, field_names: Sequence[str]) -> Iterator[str]:
    for field_name in field_names:
        descending = field_name.startswith("-")
        column = opts.get_field(field_name.lstrip("-")).column
        yield f"{column} DESC" if descending else column


def _check_index(model, index) -> None:
    unsupported = [
        feature
        for feature, present in (
            ("expressions", not index.fields),
            ("condition", index.condition is not None),
            ("opclasses", bool(index.opclasses)),
            ("include", bool(index.include)),
        )
        if present
    ]
    if unsupported:
        raise ConfigurationError(
            f"Index '{index.name}' of {model._meta.label} uses {', '.join(unsupported)}, "
            "which cannot be created on a partitioned table by the partition manager"
        )
