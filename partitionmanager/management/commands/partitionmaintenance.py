from django.core.management.base import BaseCommand, CommandError
from django.db import connections
from django.db.utils import ConnectionDoesNotExist

from partitionmanager.apply import PartitionMaintenance
from partitionmanager.conf import PartitionConfig
from partitionmanager.dateranges import as_date
from partitionmanager.exceptions import ConfigurationError, MaintenanceError


class Command(BaseCommand):
    help = "Run maintenance operations on a PostgreSQL partitioned table."

    def add_arguments(self, parser):
        subparsers = parser.add_subparsers(dest="subcommand")
        subparsers.required = True

        attach_parser = subparsers.add_parser(
            "attach", help="Attach an existing table as a range partition."
        )
        self._add_common_arguments(attach_parser)
        attach_parser.add_argument("partition", help="Table to attach.")
        attach_parser.add_argument(
            "--from",
            dest="lower",
            type=_parse_bound,
            required=True,
            help="Inclusive lower bound: a date, an integer or MINVALUE.",
        )
        attach_parser.add_argument(
            "--to",
            dest="upper",
            type=_parse_bound,
            required=True,
            help="Exclusive upper bound: a date, an integer or MAXVALUE.",
        )

        detach_parser = subparsers.add_parser(
            "detach", help="Detach a partition from its parent table."
        )
        self._add_common_arguments(detach_parser)
        detach_parser.add_argument("partition", help="Partition to detach.")
        detach_parser.add_argument(
            "--concurrently",
            action="store_true",
            default=None,
            help="Detach without blocking concurrent queries "
            "(defaults to PARTITIONMANAGER_DETACH_CONCURRENTLY).",
        )

        drop_parser = subparsers.add_parser(
            "drop", help="Drop a partition, then vacuum the parent table."
        )
        self._add_common_arguments(drop_parser)
        drop_parser.add_argument("partition", help="Partition to drop.")
        drop_parser.add_argument(
            "--no-vacuum",
            dest="vacuum",
            action="store_false",
            default=None,
            help="Skip the VACUUM after dropping "
            "(defaults to PARTITIONMANAGER_VACUUM_AFTER_DROP).",
        )

        analyze_parser = subparsers.add_parser(
            "analyze", help="Refresh planner statistics of the table."
        )
        self._add_common_arguments(analyze_parser)

        vacuum_parser = subparsers.add_parser("vacuum", help="Vacuum the table.")
        self._add_common_arguments(vacuum_parser)
        vacuum_parser.add_argument(
            "--full", action="store_true", help="Run VACUUM FULL."
        )

    def _add_common_arguments(self, parser):
        parser.add_argument("table", help="The partitioned parent table.")
        parser.add_argument(
            "--database",
            default=None,
            help="Database alias to operate on "
            "(defaults to PARTITIONMANAGER_DEFAULT_DATABASE).",
        )

    def handle(self, *args, **options):
        config = PartitionConfig.from_settings()
        subcommand = options["subcommand"]
        database = options["database"] or config.database
        maintenance = PartitionMaintenance(
            options["table"],
            self._get_postgres_connection(database),
            config.replace(database=database),
        )

        try:
            if subcommand == "attach":
                executed = [
                    maintenance.attach(
                        options["partition"], options["lower"], options["upper"]
                    )
                ]
            elif subcommand == "detach":
                executed = [
                    maintenance.detach(
                        options["partition"], concurrently=options["concurrently"]
                    )
                ]
            elif subcommand == "drop":
                executed = maintenance.drop(options["partition"], vacuum=options["vacuum"])
            elif subcommand == "analyze":
                executed = [maintenance.analyze()]
            elif subcommand == "vacuum":
                executed = [maintenance.vacuum(full=options["full"])]
            else:
                raise CommandError(f"Unknown subcommand: {subcommand}")
        except (ConfigurationError, MaintenanceError) as exc:
            raise CommandError(str(exc)) from exc

        for sql in executed:
            self.stdout.write(sql)

    def _get_postgres_connection(self, alias: str):
        try:
            connection = connections[alias]
        except ConnectionDoesNotExist:
            raise CommandError(f"Unknown database alias '{alias}'.")

        if connection.vendor != "postgresql":
            raise CommandError(
                f"partitionmaintenance only supports PostgreSQL. Database '{alias}' "
                f"uses vendor '{connection.vendor}'."
            )
        return connection


def _parse_bound(value: str):
    if value.upper() in ("MINVALUE", "MAXVALUE"):
        return value.upper()
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return as_date(value)
    except ConfigurationError as exc:
        raise CommandError(f"Invalid partition bound '{value}'.") from exc
