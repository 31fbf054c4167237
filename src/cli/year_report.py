#!/usr/bin/env python3
"""
CLI command to print a year report from a JSON export of refuel records.

Usage:
    python -m cli.year_report export.json --year 2025
    python -m cli.year_report export.json --year 2025 --user-id u-42
"""

import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import click

from services.fuel_service import FuelService


class YearParam(click.ParamType):
    """Year selector that rejects anything but a plausible four-digit year."""

    name = "year"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return FuelService.parse_year(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


@click.command()
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--year",
    type=YearParam(),
    default=None,
    help="Year to report on (default: current year)",
)
@click.option(
    "--user-id",
    default=None,
    help="Only use records belonging to this user",
)
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent")
def report(records_file: Path, year: int | None, user_id: str | None, indent: int) -> None:
    """Run the fuel analytics pipeline over RECORDS_FILE and print JSON."""
    if year is None:
        year = FuelService.parse_year(None)

    try:
        payloads = json.loads(records_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        click.echo(f"Could not read {records_file}: {e}", err=True)
        raise SystemExit(1)

    if not isinstance(payloads, list):
        click.echo("Expected a JSON array of records", err=True)
        raise SystemExit(1)

    records = [FuelService.record_from_payload(p) for p in payloads if isinstance(p, dict)]
    if user_id is not None:
        records = [r for r in records if str(r.user_id) == user_id]

    result = FuelService.year_report(records, year)
    click.echo(json.dumps(result.to_dict(), indent=indent, ensure_ascii=False))


if __name__ == "__main__":
    report()
