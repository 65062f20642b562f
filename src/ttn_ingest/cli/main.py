# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for TTN Ingest.
"""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from ..config import Config, LOG_LEVELS
from ..errors import ConfigError, IngestError
from ..processing.server import IngestServer, setup_logging

# Logs go to stdout, so status output goes to stderr
console = Console(stderr=True)


@click.command()
@click.version_option(version=__version__, prog_name="ttn-ingest")
@click.argument("db_path", required=False, type=click.Path(dir_okay=False))
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="YAML configuration file"
)
@click.option(
    "--input",
    "input_file",
    type=click.File("rb"),
    default="-",
    help="Read messages from FILE instead of stdin"
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (default: INFO)"
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging"
)
@click.option(
    "--quiet",
    is_flag=True,
    help="Do not print the run summary"
)
def cli(
    db_path: Optional[str],
    config_path: Optional[str],
    input_file,
    log_level: Optional[str],
    debug: bool,
    quiet: bool,
):
    """
    Store TTN uplink messages read from stdin in a SQLite database.

    Each input line is one JSON-encoded uplink message. Malformed lines are
    reported and skipped. DB_PATH defaults to ttn_db.sqlite.

    Examples:
        mosquitto_sub -t '+/devices/+/up' | ttn-ingest
        ttn-ingest uplinks.sqlite --input capture.jsonl
    """
    config = Config(config_path=config_path)
    if db_path:
        config.db_path = db_path
    if log_level:
        config.log_level = log_level.upper()
    if debug:
        config.debug = True

    try:
        config.validate()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    setup_logging(config.effective_log_level)

    server = IngestServer(config)
    try:
        server.setup()
    except IngestError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        server.close()
        sys.exit(1)

    try:
        stats = server.run(input_file)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    finally:
        server.close()

    if not quiet:
        style = "green" if stats.errors == 0 else "yellow"
        console.print(f"[{style}]Done:[/{style}] {escape(stats.summary())}")


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
