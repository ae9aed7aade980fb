"""
Value objects describing partitions.

Every partition carries exactly one of three bounds variants: :py:class:`RangeBounds`,
:py:class:`ListValues` or :py:class:`HashBucket`. The partition kind is derived from the bounds, so
it is fixed once the partition is built. All objects here are frozen; the ``with_*`` and ``add*``
methods return new instances.
"""

import enum
from dataclasses import dataclass, replace
from typing import Any, ClassVar, Optional, Tuple, Union

from partitionmanager.exceptions import ConfigurationError


class PartitionKind(str, enum.Enum):
    RANGE = "RANGE"
    LIST = "LIST"
    HASH = "HASH"

    @classmethod
    def coerce(cls, value) -> "PartitionKind":
        """
        Turn a member or a case-insensitive name into a :py:class:`PartitionKind`.

        :raises ConfigurationError: If the value does not name a partition kind.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigurationError(f"Unknown partition kind: {value!r}") from None


class Bound(enum.Enum):
    MINVALUE = "MINVALUE"
    MAXVALUE = "MAXVALUE"

    def __str__(self):
        return self.value


MINVALUE = Bound.MINVALUE
MAXVALUE = Bound.MAXVALUE


def _normalize_bound(value):
    if isinstance(value, str) and value in ("MINVALUE", "MAXVALUE"):
        return Bound[value]
    return value


def _precedes(lower, upper) -> bool:
    if lower is MAXVALUE or upper is MINVALUE:
        return False
    if lower is MINVALUE or upper is MAXVALUE:
        return True
    try:
        return lower < upper
    except TypeError as exc:
        raise ConfigurationError(
            f"Range bounds {lower!r} and {upper!r} are not comparable"
        ) from exc


def _check_name(name):
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"Partition name must be a non-empty string, got {name!r}")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RangeBounds:
    """``FOR VALUES FROM (lower) TO (upper)``; ``lower`` must sort strictly before ``upper``."""

    lower: Any
    upper: Any

    kind: ClassVar[PartitionKind] = PartitionKind.RANGE

    def __post_init__(self):
        lower = _normalize_bound(self.lower)
        upper = _normalize_bound(self.upper)
        if lower is None or upper is None:
            raise ConfigurationError("Range bounds must not be None")
        if not _precedes(lower, upper):
            raise ConfigurationError(
                f"Range lower bound {lower!r} must be less than upper bound {upper!r}"
            )
        object.__setattr__(self, "lower", lower)
        object.__setattr__(self, "upper", upper)


@dataclass(frozen=True)
class ListValues:
    """``FOR VALUES IN (...)``, an ordered, non-empty set of discrete values."""

    values: Tuple[Any, ...]

    kind: ClassVar[PartitionKind] = PartitionKind.LIST

    def __post_init__(self):
        if not isinstance(self.values, (list, tuple, set, frozenset)):
            values = (self.values,)
        else:
            values = tuple(self.values)
        if not values:
            raise ConfigurationError("List partitions need at least one value")
        seen = []
        for value in values:
            if value in seen:
                raise ConfigurationError(f"Duplicate list partition value {value!r}")
            seen.append(value)
        object.__setattr__(self, "values", values)


@dataclass(frozen=True)
class HashBucket:
    """``FOR VALUES WITH (modulus m, remainder r)`` with ``0 <= r < m``."""

    modulus: int
    remainder: int

    kind: ClassVar[PartitionKind] = PartitionKind.HASH

    def __post_init__(self):
        if not _is_int(self.modulus) or not _is_int(self.remainder):
            raise ConfigurationError("Hash modulus and remainder must be integers")
        if self.modulus < 1:
            raise ConfigurationError(f"Hash modulus must be positive, got {self.modulus}")
        if not 0 <= self.remainder < self.modulus:
            raise ConfigurationError(
                f"Hash remainder {self.remainder} is outside [0, {self.modulus})"
            )


Bounds = Union[RangeBounds, ListValues, HashBucket]
BOUNDS_TYPES = (RangeBounds, ListValues, HashBucket)


@dataclass(frozen=True)
class _Partition:
    name: str
    bounds: Bounds
    schema: Optional[str] = None
    tablespace: Optional[str] = None

    def __post_init__(self):
        _check_name(self.name)
        if not isinstance(self.bounds, BOUNDS_TYPES):
            raise ConfigurationError(
                f"Partition '{self.name}' has unsupported bounds {self.bounds!r}"
            )

    @property
    def kind(self) -> PartitionKind:
        return self.bounds.kind

    @classmethod
    def range(cls, name, lower, upper, schema=None, tablespace=None):
        return cls(name, RangeBounds(lower, upper), schema=schema, tablespace=tablespace)

    @classmethod
    def list(cls, name, values, schema=None, tablespace=None):
        return cls(name, ListValues(values), schema=schema, tablespace=tablespace)

    @classmethod
    def hash(cls, name, modulus, remainder, schema=None, tablespace=None):
        return cls(
            name, HashBucket(modulus, remainder), schema=schema, tablespace=tablespace
        )

    def with_schema(self, schema):
        return replace(self, schema=schema)

    def with_tablespace(self, tablespace):
        return replace(self, tablespace=tablespace)


@dataclass(frozen=True)
class SubPartitionSpec(_Partition):
    """A partition one level below a parent partition. It cannot be divided any further."""


@dataclass(frozen=True)
class SubPartitionSet:
    """
    The strategy and members used to divide a single partition.

    :param kind: How the parent partition is divided.
    :param key: The sub-partition key, a column, an expression or a sequence of columns.
    :param partitions: The sub-partitions, in creation order.
    :param default_schema: Schema given to members added without one.
    """

    kind: PartitionKind
    key: str
    partitions: Tuple[SubPartitionSpec, ...] = ()
    default_schema: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", PartitionKind.coerce(self.kind))
        key = self.key
        if not isinstance(key, str):
            key = ", ".join(key)
        if not key:
            raise ConfigurationError("Sub-partition key must not be empty")
        object.__setattr__(self, "key", key)

        partitions = tuple(self.partitions)
        names = set()
        for partition in partitions:
            if not isinstance(partition, SubPartitionSpec):
                raise ConfigurationError(f"{partition!r} is not a sub-partition")
            if partition.kind is not self.kind:
                raise ConfigurationError(
                    f"Sub-partition '{partition.name}' is {partition.kind.value} "
                    f"but the set is partitioned by {self.kind.value}"
                )
            if partition.name in names:
                raise ConfigurationError(
                    f"Duplicate sub-partition name '{partition.name}'"
                )
            names.add(partition.name)
        object.__setattr__(self, "partitions", partitions)

    @classmethod
    def range(cls, key, default_schema=None) -> "SubPartitionSet":
        return cls(PartitionKind.RANGE, key, default_schema=default_schema)

    @classmethod
    def list(cls, key, default_schema=None) -> "SubPartitionSet":
        return cls(PartitionKind.LIST, key, default_schema=default_schema)

    @classmethod
    def hash(cls, key, default_schema=None) -> "SubPartitionSet":
        return cls(PartitionKind.HASH, key, default_schema=default_schema)

    @property
    def names(self):
        return [partition.name for partition in self.partitions]

    def add(self, partition: SubPartitionSpec) -> "SubPartitionSet":
        if self.default_schema and not partition.schema:
            partition = partition.with_schema(self.default_schema)
        return replace(self, partitions=self.partitions + (partition,))

    def add_range(self, name, lower, upper, schema=None, tablespace=None):
        return self.add(SubPartitionSpec.range(name, lower, upper, schema, tablespace))

    def add_list(self, name, values, schema=None, tablespace=None):
        return self.add(SubPartitionSpec.list(name, values, schema, tablespace))

    def add_hash(self, name, modulus, remainder, schema=None, tablespace=None):
        return self.add(
            SubPartitionSpec.hash(name, modulus, remainder, schema, tablespace)
        )


@dataclass(frozen=True)
class PartitionSpec(_Partition):
    """A partition of a partitioned table, optionally divided again by ``subpartitions``."""

    subpartitions: Optional[SubPartitionSet] = None

    def __post_init__(self):
        super().__post_init__()
        if self.subpartitions is not None and not isinstance(
            self.subpartitions, SubPartitionSet
        ):
            raise ConfigurationError(
                f"Partition '{self.name}' sub-partitions must be a SubPartitionSet"
            )

    @property
    def has_subpartitions(self) -> bool:
        return self.subpartitions is not None

    def with_subpartitions(self, subpartitions: SubPartitionSet) -> "PartitionSpec":
        return replace(self, subpartitions=subpartitions)

