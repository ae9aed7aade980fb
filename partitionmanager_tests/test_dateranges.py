"""Tests for partitionmanager.dateranges"""

import datetime

import freezegun
from django.test import SimpleTestCase

from partitionmanager.conf import PartitionConfig
from partitionmanager.dateranges import DateRange, Interval, as_date, format_partition_date
from partitionmanager.exceptions import ConfigurationError
from partitionmanager.specs import PartitionKind

d = datetime.date


def bounds(partitions):
    return [(p.bounds.lower, p.bounds.upper) for p in partitions]


class DateRangeTest(SimpleTestCase):
    def setUp(self):
        self.config = PartitionConfig()

    def test_monthly(self):
        partitions = DateRange.monthly(self.config).start("2024-01-01").count(3).build()

        self.assertEqual([p.name for p in partitions], ["2024_01", "2024_02", "2024_03"])
        self.assertEqual(
            bounds(partitions),
            [
                (d(2024, 1, 1), d(2024, 2, 1)),
                (d(2024, 2, 1), d(2024, 3, 1)),
                (d(2024, 3, 1), d(2024, 4, 1)),
            ],
        )
        self.assertTrue(all(p.kind is PartitionKind.RANGE for p in partitions))

    def test_partitions_are_contiguous_for_every_interval(self):
        for interval in Interval:
            with self.subTest(interval=interval):
                partitions = (
                    DateRange(interval, self.config).start(d(2023, 11, 30)).count(14).build()
                )
                self.assertEqual(len(partitions), 14)
                self.assertEqual(partitions[0].bounds.lower, d(2023, 11, 30))
                for previous, current in zip(partitions, partitions[1:]):
                    self.assertEqual(previous.bounds.upper, current.bounds.lower)
                    self.assertLess(current.bounds.lower, current.bounds.upper)

    def test_quarter_rolls_over_into_next_year(self):
        partitions = DateRange.quarterly(self.config).start("2024-10-01").count(2).build()

        self.assertEqual(
            bounds(partitions),
            [(d(2024, 10, 1), d(2025, 1, 1)), (d(2025, 1, 1), d(2025, 4, 1))],
        )
        self.assertEqual([p.name for p in partitions], ["2024_Q4", "2025_Q1"])

    def test_weekly_names_use_iso_weeks(self):
        partitions = DateRange.weekly(self.config).start(d(2024, 12, 30)).count(2).build()

        self.assertEqual([p.name for p in partitions], ["2025_W01", "2025_W02"])

    def test_month_end_start(self):
        partitions = DateRange.monthly(self.config).start(d(2024, 1, 31)).count(3).build()

        self.assertEqual(
            bounds(partitions),
            [
                (d(2024, 1, 31), d(2024, 2, 29)),
                (d(2024, 2, 29), d(2024, 3, 31)),
                (d(2024, 3, 31), d(2024, 4, 30)),
            ],
        )

    def test_end_bound(self):
        partitions = (
            DateRange.daily(self.config).start("2024-01-30").to("2024-02-02").build()
        )

        self.assertEqual(
            [p.name for p in partitions], ["2024_01_30", "2024_01_31", "2024_02_01"]
        )
        self.assertEqual(partitions[-1].bounds.upper, d(2024, 2, 2))

    def test_last_partition_is_clamped_to_end(self):
        partitions = (
            DateRange.monthly(self.config).start("2024-01-01").to("2024-02-15").build()
        )

        self.assertEqual(
            bounds(partitions),
            [(d(2024, 1, 1), d(2024, 2, 1)), (d(2024, 2, 1), d(2024, 2, 15))],
        )

    def test_start_equal_to_end_is_empty(self):
        self.assertEqual(
            DateRange.monthly(self.config).start("2024-01-01").to("2024-01-01").build(),
            [],
        )

    def test_end_before_start(self):
        date_range = DateRange.monthly(self.config).start("2024-03-01").to("2024-01-01")
        with self.assertRaises(ConfigurationError):
            date_range.build()

    def test_count_after_to_wins(self):
        partitions = (
            DateRange.monthly(self.config)
            .start("2024-01-01")
            .to("2025-01-01")
            .count(2)
            .build()
        )
        self.assertEqual(len(partitions), 2)

    def test_to_after_count_wins(self):
        partitions = (
            DateRange.monthly(self.config)
            .start("2024-01-01")
            .count(2)
            .to("2024-06-01")
            .build()
        )
        self.assertEqual(len(partitions), 5)

    def test_zero_and_negative_count(self):
        self.assertEqual(DateRange.yearly(self.config).count(0).build(), [])
        with self.assertRaises(ConfigurationError):
            DateRange.yearly(self.config).count(-1)

    @freezegun.freeze_time("2024-05-10")
    def test_defaults_to_today_and_twelve_partitions(self):
        partitions = DateRange.monthly(self.config).build()

        self.assertEqual(len(partitions), DateRange.DEFAULT_COUNT)
        self.assertEqual(partitions[0].bounds.lower, d(2024, 5, 10))
        self.assertEqual(partitions[0].name, "2024_05")

    def test_build_is_repeatable(self):
        date_range = DateRange.yearly(self.config).start("2020-01-01").count(3)
        self.assertEqual(date_range.build("t_"), date_range.build("t_"))

    def test_prefix_suffix_and_schema(self):
        partitions = (
            DateRange.yearly(self.config)
            .start("2020-01-01")
            .count(1)
            .default_schema("history")
            .build(prefix="events_", suffix="_y")
        )

        self.assertEqual(partitions[0].name, "events_2020_y")
        self.assertEqual(partitions[0].schema, "history")

    def test_configured_formats(self):
        config = PartitionConfig(date_format="%Ym%m", day_format="%Y%m%d")

        monthly = DateRange.monthly(config).start("2024-02-01").count(1).build()
        daily = DateRange.daily(config).start("2024-02-01").count(1).build()

        self.assertEqual(monthly[0].name, "2024m02")
        self.assertEqual(daily[0].name, "20240201")

    def test_interval_resets_name_format(self):
        partitions = (
            DateRange.monthly(self.config)
            .name_format("%B")
            .interval("quarterly")
            .start("2024-04-01")
            .count(1)
            .build()
        )
        self.assertEqual(partitions[0].name, "2024_Q2")

    def test_generate_with_callback(self):
        partitions = (
            DateRange.yearly(self.config)
            .start("2020-01-01")
            .count(2)
            .generate(lambda p: p.with_tablespace("cold"), prefix="t_")
        )

        self.assertEqual([p.name for p in partitions], ["t_2020", "t_2021"])
        self.assertEqual({p.tablespace for p in partitions}, {"cold"})

    def test_unknown_interval(self):
        with self.assertRaises(ConfigurationError):
            DateRange("hourly", self.config)


class HelpersTest(SimpleTestCase):
    def test_as_date(self):
        self.assertEqual(as_date("2024-03-05"), d(2024, 3, 5))
        self.assertEqual(as_date(datetime.datetime(2024, 3, 5, 13, 30)), d(2024, 3, 5))
        self.assertEqual(as_date(d(2024, 3, 5)), d(2024, 3, 5))

    def test_as_date_invalid(self):
        with self.assertRaises(ConfigurationError):
            as_date("not a date")
        with self.assertRaises(ConfigurationError):
            as_date(20240305)

    def test_format_quarter(self):
        self.assertEqual(format_partition_date(d(2024, 8, 1), "%Y_Q%q"), "2024_Q3")
