#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Command-line interface for pkg-provides.

Find the packages that install a file, or refresh the provides database.

Environment Variable Support
----------------------------
``PROVIDES_URL``, ``PROVIDES_DB_PATH``, ``PROVIDES_FETCH_ON_UPDATE``,
``PROVIDES_TIMEOUT`` and ``PROVIDES_CONFIG`` override the configuration
file; command-line options override both.

Examples
--------
Fetch or refresh the database::

    $ pkg-provides -u

Which package installs a ``bash`` executable::

    $ pkg-provides '^bash$'

Patterns containing a slash are matched against the full path::

    $ pkg-provides 'bin/python3\\.[0-9]+$'

"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace

from pkgprovides import __version__
from pkgprovides.api import search_database
from pkgprovides.cli.progress import ProgressContext
from pkgprovides.config import ProvidesConfig, load_config
from pkgprovides.display import StaticResolver, default_resolver, render_results, results_to_json
from pkgprovides.exceptions import (
    ConfigError,
    CorruptDatabaseError,
    DatabaseError,
    DatabaseNotFoundError,
    ProvidesError,
    UpdateError,
    ValidationError,
)
from pkgprovides.logging_utils import configure_logging
from pkgprovides.update import fetch_database, update_on_pkg_update

logger = logging.getLogger(__name__)

__all__ = ["main", "create_parser", "get_exit_code_for_exception"]

DESCRIPTION = "A plugin for querying which package provides a particular file"

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 3
EXIT_DATABASE_MISSING = 4
EXIT_DATABASE_ERROR = 5
EXIT_CORRUPT_DATABASE = 6
EXIT_UPDATE_ERROR = 7
EXIT_USAGE = 64  # EX_USAGE from sysexits(3)

CORRUPT_DATABASE_HINT = "Provides database corrupted, perform a forced update to correct it (pkg-provides -u -f)."


def get_exit_code_for_exception(exception: Exception) -> int:
    """Map an exception to an appropriate CLI exit code.

    Parameters
    ----------
    exception : Exception
        The exception to map to an exit code

    Returns
    -------
    int
        The appropriate exit code for the exception type

    """
    if isinstance(exception, (ValidationError, ConfigError)):
        return EXIT_VALIDATION_ERROR

    if isinstance(exception, DatabaseNotFoundError):
        return EXIT_DATABASE_MISSING

    # Most specific database error before the generic one
    if isinstance(exception, CorruptDatabaseError):
        return EXIT_CORRUPT_DATABASE

    if isinstance(exception, DatabaseError):
        return EXIT_DATABASE_ERROR

    if isinstance(exception, UpdateError):
        return EXIT_UPDATE_ERROR

    return EXIT_ERROR


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for ``pkg-provides``."""
    parser = argparse.ArgumentParser(
        prog="pkg-provides",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("pattern", nargs="?", help="Regular expression matched against installed file names")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    update_group = parser.add_argument_group("database update")
    update_group.add_argument("-u", "--update", action="store_true", help="Fetch the provides database")
    update_group.add_argument(
        "-f", "--force", action="store_true", help="With -u, fetch even if the local database is current"
    )
    update_group.add_argument(
        "--on-pkg-update",
        action="store_true",
        help="Refresh the database unless PROVIDES_FETCH_ON_UPDATE=no (for use from pkg update hooks)",
    )

    search_group = parser.add_argument_group("search")
    search_group.add_argument("-i", "--ignore-case", action="store_true", help="Case-insensitive matching")
    search_group.add_argument("--json", action="store_true", help="Print results as JSON")
    search_group.add_argument(
        "--no-repo-lookup",
        action="store_true",
        help="Do not query pkg repositories, print package names and files only",
    )

    config_group = parser.add_argument_group("configuration")
    config_group.add_argument("--db", metavar="PATH", help="Path of the provides database")
    config_group.add_argument("--config", metavar="PATH", help="Configuration file (TOML, YAML or JSON)")

    output_group = parser.add_argument_group("output and logging")
    output_group.add_argument("--no-progress", action="store_true", help="Do not draw progress bars")
    output_group.add_argument("--no-rich", action="store_true", help="Plain output without colors")
    output_group.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )
    output_group.add_argument("-v", "--verbose", action="store_true", help="Shorthand for --log-level DEBUG")
    output_group.add_argument("--trace", action="store_true", help="Debug logging with timestamps and logger names")
    output_group.add_argument("--log-file", metavar="PATH", help="Also write log output to PATH")
    return parser


def _setup_logging_level(parsed_args: argparse.Namespace) -> None:
    """Set up logging level based on command-line arguments."""
    # --trace takes highest precedence, then --verbose, then --log-level
    if parsed_args.trace:
        log_level = logging.DEBUG
    elif parsed_args.verbose and parsed_args.log_level == "WARNING":
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, parsed_args.log_level.upper())

    configure_logging(log_level, log_file=parsed_args.log_file, trace_mode=parsed_args.trace)


def _show_progress(parsed_args: argparse.Namespace) -> bool:
    return not parsed_args.no_progress and sys.stderr.isatty()


def _run_update(parsed_args: argparse.Namespace, config: ProvidesConfig) -> int:
    with ProgressContext(enabled=_show_progress(parsed_args)) as progress:
        if parsed_args.on_pkg_update and not parsed_args.update:
            result = update_on_pkg_update(config, progress_callback=progress.callback)
        else:
            result = fetch_database(config, force=parsed_args.force, progress_callback=progress.callback)

    if result is None:
        return EXIT_SUCCESS
    if result.updated:
        print(f"Provides database updated: {result.database_path}", file=sys.stderr)
    else:
        print("Provides database is up to date", file=sys.stderr)
    return EXIT_SUCCESS


def _run_search(parsed_args: argparse.Namespace, config: ProvidesConfig) -> int:
    with ProgressContext(enabled=_show_progress(parsed_args)) as progress:
        index = search_database(
            parsed_args.pattern,
            config=config,
            ignore_case=parsed_args.ignore_case,
            progress_callback=progress.callback,
        )

    resolver = StaticResolver() if parsed_args.no_repo_lookup else default_resolver()

    if parsed_args.json:
        print(json.dumps(results_to_json(index, resolver), indent=2))
        return EXIT_SUCCESS

    use_rich = not parsed_args.no_rich and sys.stdout.isatty()
    shown = render_results(index, resolver, use_rich=use_rich)
    if not shown:
        logger.info("No package provides a file matching %r", parsed_args.pattern)
    return EXIT_SUCCESS


def main(args: list[str] | None = None) -> int:
    """Run the ``pkg-provides`` command.

    Parameters
    ----------
    args : list[str], optional
        Command-line arguments, defaults to ``sys.argv[1:]``

    Returns
    -------
    int
        Process exit code

    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)
    _setup_logging_level(parsed_args)

    updating = parsed_args.update or parsed_args.on_pkg_update
    if not updating and not parsed_args.pattern:
        parser.print_usage(sys.stderr)
        print(f"\n{DESCRIPTION}", file=sys.stderr)
        return EXIT_USAGE
    if parsed_args.force and not updating:
        print("Error: -f/--force is only valid with -u/--update", file=sys.stderr)
        return EXIT_USAGE

    try:
        config = load_config(parsed_args.config)
        if parsed_args.db:
            config = replace(config, database_path=parsed_args.db)

        if updating:
            return _run_update(parsed_args, config)
        return _run_search(parsed_args, config)
    except CorruptDatabaseError as e:
        logger.debug("Corrupt database: %s", e)
        print(f"Error: {e}\n{CORRUPT_DATABASE_HINT}", file=sys.stderr)
        return get_exit_code_for_exception(e)
    except ProvidesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return get_exit_code_for_exception(e)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_ERROR
