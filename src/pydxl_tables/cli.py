#!/usr/bin/env python3
"""Command-line interface for pydxl-tables using Typer."""

import json
import logging
from functools import partial
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__
from .codegen import OutputMode, generate as generate_artifact
from .download import (
    DEFAULT_BASE_URL,
    DEFAULT_NAVIGATION_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
    fetch_text,
    make_session,
    parse_navigation,
    scrape_many,
    select_sources,
)
from .errors import FetchError, GenerateError, MergeError, NormalizeError, PyDXLTablesError
from .merge import DEFAULT_TABLE_INDICES, format_grid, merge_tables
from .normalize import normalize_grid
from .serialize import dump_records, load_records
from .types import Device

app = typer.Typer(
    name="pydxl",
    help="Scrape Dynamixel control tables from the ROBOTIS e-Manual and generate lookup modules.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

OutputDirOption = Annotated[
    Path,
    typer.Option("--output-dir", "-o", help="Directory holding per-device JSON tables", envvar="PYDXL_OUTPUT_DIR"),
]
EepromTableOption = Annotated[
    int,
    typer.Option("--eeprom-table", help="Zero-based index of the EEPROM <table> on the page"),
]
RamTableOption = Annotated[
    int,
    typer.Option("--ram-table", help="Zero-based index of the RAM <table> on the page"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _failure_exit_code(error: Exception) -> int:
    """3 for network failures, 2 for pages that do not parse, 4 for anything else."""
    if isinstance(error, FetchError):
        return 3
    if isinstance(error, PyDXLTablesError):
        return 2
    return 4


def table_path(output_dir: Path, device: Device) -> Path:
    """<output_dir>/<SERIES>/<raw-name>.json"""
    return output_dir / device.series.upper() / f"{device.model_id}.json"


def load_devices(tables_dir: Path) -> list[Device]:
    """Read every <SERIES>/<raw-name>.json under tables_dir back into Devices."""
    devices = []
    for path in sorted(tables_dir.glob("*/*.json")):
        records = load_records(path.read_text(encoding="utf-8"))
        devices.append(Device(
            series=path.parent.name,
            model_id=path.stem,
            display_name=path.stem,
            records=records,
        ))
    return devices


# ============================================================================
# Commands
# ============================================================================

@app.command()
def info() -> None:
    """Show the installed version."""
    typer.echo(f"pydxl-tables version: {__version__}")


@app.command()
def scrape(
    dxl: Annotated[Optional[list[str]], typer.Option("--dxl", "-d", help="Device page name to download (repeatable)")] = None,
    series: Annotated[Optional[list[str]], typer.Option("--series", "-s", help="Series to download (repeatable)")] = None,
    navigation_url: Annotated[str, typer.Option("--navigation-url", help="Navigation index YAML", envvar="PYDXL_NAVIGATION_URL")] = DEFAULT_NAVIGATION_URL,
    base_url: Annotated[str, typer.Option("--base-url", help="Base URL for device pages", envvar="PYDXL_BASE_URL")] = DEFAULT_BASE_URL,
    output_dir: OutputDirOption = Path("tables"),
    workers: Annotated[int, typer.Option("--workers", "-w", help="Pages fetched in parallel", envvar="PYDXL_WORKERS")] = DEFAULT_WORKERS,
    timeout: Annotated[float, typer.Option("--timeout", "-t", help="HTTP timeout in seconds", envvar="PYDXL_TIMEOUT")] = DEFAULT_TIMEOUT,
    eeprom_table: EepromTableOption = DEFAULT_TABLE_INDICES[0],
    ram_table: RamTableOption = DEFAULT_TABLE_INDICES[1],
    fail_fast: Annotated[bool, typer.Option("--fail-fast", help="Stop at the first device that fails")] = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Download device pages listed in the navigation index and save each control table as JSON.

    Devices that fail to parse are reported and skipped unless --fail-fast is given.
    """
    setup_logging(verbose)
    session = make_session()
    fetch = partial(fetch_text, session=session, timeout=timeout)

    try:
        sources = select_sources(parse_navigation(fetch(navigation_url), base_url), dxl, series)
    except FetchError as e:
        typer.echo(f"Error: Could not load navigation index: {e}", err=True)
        raise typer.Exit(3)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    if not sources:
        typer.echo("Error: No devices match the selection", err=True)
        raise typer.Exit(2)

    failures = 0
    written = 0
    exit_code = 0
    try:
        with typer.progressbar(length=len(sources), label="Scraping") as progress:
            for outcome in scrape_many(sources, fetch, workers=workers, table_indices=(eeprom_table, ram_table)):
                progress.update(1)
                if outcome.error is not None:
                    failures += 1
                    typer.echo(f"\nError: {outcome.source.raw_name}: {outcome.error}", err=True)
                    if fail_fast:
                        exit_code = _failure_exit_code(outcome.error)
                        break
                    continue
                path = table_path(output_dir, outcome.device)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(dump_records(outcome.device.records), encoding="utf-8")
                written += 1
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)

    if exit_code:
        raise typer.Exit(exit_code)
    typer.echo(f"Wrote {written} tables to {output_dir} ({failures} failed)")
    if failures:
        raise typer.Exit(1)


@app.command()
def convert(
    page: Annotated[Path, typer.Argument(help="Saved device page (HTML)", exists=True, dir_okay=False)],
    eeprom_table: EepromTableOption = DEFAULT_TABLE_INDICES[0],
    ram_table: RamTableOption = DEFAULT_TABLE_INDICES[1],
    grid: Annotated[bool, typer.Option("--grid", help="Print the merged table instead of records")] = False,
    verbose: VerboseOption = False,
) -> None:
    """Merge and normalize a local device page; print its records as JSON."""
    setup_logging(verbose)
    try:
        merged = merge_tables(page.read_text(encoding="utf-8"), (eeprom_table, ram_table))
        if grid:
            typer.echo(format_grid(merged))
            return
        result = normalize_grid(merged)
    except (MergeError, NormalizeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)
    for warning in result.warnings:
        typer.echo(f"Warning: row {warning.row}, {warning.column}: {warning.message}", err=True)
    if result.indirect_range is not None:
        low, high = result.indirect_range
        typer.echo(f"Indirect index range: {low}..{high}", err=True)
    typer.echo(dump_records(result.records), nl=False)


@app.command()
def generate(
    tables_dir: Annotated[Path, typer.Argument(help="Directory written by 'scrape'", exists=True, file_okay=False)],
    output: Annotated[Path, typer.Option("--output", help="Generated Python module")] = Path("dxl_control_tables.py"),
    manifest: Annotated[Optional[Path], typer.Option("--manifest", help="Series manifest (default: next to --output)")] = None,
    mode: Annotated[OutputMode, typer.Option("--mode", help="Lookup returns the address or the full record")] = OutputMode.ADDRESS,
    series: Annotated[Optional[list[str]], typer.Option("--series", "-s", help="Only include these series (repeatable)")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print a JSON summary")] = False,
    verbose: VerboseOption = False,
) -> None:
    """Generate a lookup module and manifest from saved control tables."""
    setup_logging(verbose)
    try:
        devices = load_devices(tables_dir)
        artifact = generate_artifact(devices, mode=mode, enabled_series=series or None)
    except (ValueError, KeyError) as e:
        typer.echo(f"Error: Invalid table file: {e}", err=True)
        raise typer.Exit(2)
    except GenerateError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)

    manifest_path = manifest or output.with_name("manifest.json")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(artifact.source, encoding="utf-8")
    manifest_path.write_text(artifact.manifest, encoding="utf-8")

    if as_json:
        typer.echo(json.dumps({
            "output": str(output),
            "manifest": str(manifest_path),
            "mode": mode.value,
            "fields": len(artifact.field_names),
            "models": list(artifact.models),
        }, indent=2))
    else:
        typer.echo(f"Wrote {output} ({len(artifact.field_names)} fields, {len(artifact.models)} models)")
        typer.echo(f"Wrote {manifest_path}")


if __name__ == "__main__":
    app()
