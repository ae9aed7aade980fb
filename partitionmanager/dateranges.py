"""
Generate consecutive date range partitions.

Example::

    partitions = DateRange.monthly().start("2024-01-01").count(12).build(prefix="events_")

produces twelve range partitions named ``events_2024_01`` .. ``events_2024_12``, each covering one
month, where each partition's upper bound is the next one's lower bound.
"""

import datetime
import enum
from typing import Callable, List, Optional

from dateutil import parser
from dateutil.relativedelta import relativedelta

from partitionmanager.conf import PartitionConfig
from partitionmanager.exceptions import ConfigurationError
from partitionmanager.specs import PartitionSpec


class Interval(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def coerce(cls, value) -> "Interval":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(f"Unknown interval: {value!r}") from None

    @property
    def step(self) -> relativedelta:
        return _STEPS[self]

    @property
    def name_format(self) -> str:
        return _NAME_FORMATS[self]


_STEPS = {
    Interval.DAILY: relativedelta(days=1),
    Interval.WEEKLY: relativedelta(weeks=1),
    Interval.MONTHLY: relativedelta(months=1),
    Interval.QUARTERLY: relativedelta(months=3),
    Interval.YEARLY: relativedelta(years=1),
}

# strftime formats, ``%q`` is the quarter number
_NAME_FORMATS = {
    Interval.DAILY: "%Y_%m_%d",
    Interval.WEEKLY: "%G_W%V",
    Interval.MONTHLY: "%Y_%m",
    Interval.QUARTERLY: "%Y_Q%q",
    Interval.YEARLY: "%Y",
}


def quarter_of(value: datetime.date) -> int:
    return (value.month - 1) // 3 + 1


def format_partition_date(value: datetime.date, name_format: str) -> str:
    """
    Format a date for use in a partition name.

    Accepts every :py:meth:`~datetime.date.strftime` directive plus ``%q`` for the quarter (1-4).
    """
    return value.strftime(name_format.replace("%q", str(quarter_of(value))))


def as_date(value) -> datetime.date:
    """
    Coerce ``value`` to a :py:class:`~datetime.date`.

    Datetimes are truncated to their date and strings are parsed with :py:mod:`dateutil`.

    :raises ConfigurationError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return parser.parse(value).date()
        except (ValueError, OverflowError) as exc:
            raise ConfigurationError(f"Invalid date {value!r}") from exc
    raise ConfigurationError(f"Expected a date, got {value!r}")


class DateRange:
    """
    Builder for a sequence of consecutive range partitions of one interval each.

    The sequence ends either after :py:meth:`count` partitions or at the exclusive bound given to
    :py:meth:`to`. Whichever of the two was called last wins: ``count()`` discards an earlier
    ``to()`` and a later ``to()`` takes precedence over the count.

    :py:meth:`build` has no side effects and can be called any number of times.
    """

    DEFAULT_COUNT = 12

    def __init__(self, interval=Interval.MONTHLY, config: Optional[PartitionConfig] = None):
        self._config = config or PartitionConfig.from_settings()
        self._start = datetime.date.today()
        self._end: Optional[datetime.date] = None
        self._count = self.DEFAULT_COUNT
        self._schema: Optional[str] = None
        self.interval(interval)

    @classmethod
    def daily(cls, config=None) -> "DateRange":
        return cls(Interval.DAILY, config)

    @classmethod
    def weekly(cls, config=None) -> "DateRange":
        return cls(Interval.WEEKLY, config)

    @classmethod
    def monthly(cls, config=None) -> "DateRange":
        return cls(Interval.MONTHLY, config)

    @classmethod
    def quarterly(cls, config=None) -> "DateRange":
        return cls(Interval.QUARTERLY, config)

    @classmethod
    def yearly(cls, config=None) -> "DateRange":
        return cls(Interval.YEARLY, config)

    def start(self, value) -> "DateRange":
        self._start = as_date(value)
        return self

    def to(self, value) -> "DateRange":
        self._end = as_date(value)
        return self

    def count(self, count: int) -> "DateRange":
        if count < 0:
            raise ConfigurationError(f"Partition count must not be negative, got {count}")
        self._count = count
        self._end = None
        return self

    def interval(self, value) -> "DateRange":
        """Set the interval; this also resets the name format to the interval's default."""
        self._interval = Interval.coerce(value)
        if self._interval is Interval.MONTHLY:
            self._name_format = self._config.date_format
        elif self._interval is Interval.DAILY:
            self._name_format = self._config.day_format
        else:
            self._name_format = self._interval.name_format
        return self

    def name_format(self, name_format: str) -> "DateRange":
        self._name_format = name_format
        return self

    def default_schema(self, schema: str) -> "DateRange":
        self._schema = schema
        return self

    @property
    def bounds(self):
        return self._start, self._end

    def _make_partition(self, prefix, suffix, lower, upper) -> PartitionSpec:
        name = f"{prefix}{format_partition_date(lower, self._name_format)}{suffix}"
        return PartitionSpec.range(name, lower, upper, schema=self._schema)

    def build(self, prefix: str = "", suffix: str = "") -> List[PartitionSpec]:
        """
        Generate the partitions.

        :param prefix: Prepended to each formatted start date to form the partition name.
        :param suffix: Appended to each partition name.
        :return: The partitions in ascending order.
        :rtype: list[PartitionSpec]
        """
        start = self._start
        step = self._interval.step
        partitions = []

        if self._end is not None:
            if self._end < start:
                raise ConfigurationError(
                    f"Date range end {self._end} is before its start {start}"
                )
            index = 0
            lower = start
            while lower < self._end:
                # The last partition is clamped so the sequence ends exactly at the end bound.
                upper = min(start + step * (index + 1), self._end)
                partitions.append(self._make_partition(prefix, suffix, lower, upper))
                lower = upper
                index += 1
        else:
            for index in range(self._count):
                lower = start + step * index
                upper = start + step * (index + 1)
                partitions.append(self._make_partition(prefix, suffix, lower, upper))

        return partitions

    def generate(
        self, callback: Optional[Callable] = None, prefix: str = ""
    ) -> List[PartitionSpec]:
        partitions = self.build(prefix)
        if callback is not None:
            partitions = [callback(partition) for partition in partitions]
        return partitions
