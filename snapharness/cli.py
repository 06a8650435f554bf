"""CLI entry point for the snapshot harness."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from PIL import Image
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from snapharness.capture.comparator import diff_images, highlight_diff
from snapharness.models.config import HarnessConfig
from snapharness.models.devices import (
    DEVICE_SCREEN_SIZES,
    PHONE_WIDTHS,
    TABLET_WIDTHS,
    ConfigurationSet,
)
from snapharness.reporter.json_report import load_json_report

console = Console()

CONFIGURATION_SETS: dict[str, ConfigurationSet] = {
    "sizes": DEVICE_SCREEN_SIZES,
    "phone-widths": PHONE_WIDTHS,
    "tablet-widths": TABLET_WIDTHS,
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression harness for UI views"""
    setup_logging(verbose)


@cli.command()
@click.option(
    "--set", "set_name",
    type=click.Choice(sorted(CONFIGURATION_SETS)),
    default="sizes",
    help="Configuration set to list",
)
def devices(set_name: str) -> None:
    """List the named device configurations."""
    configurations = CONFIGURATION_SETS[set_name]
    table = Table(title=f"Configurations: {set_name}")
    table.add_column("Label", style="bold")
    table.add_column("Value")
    table.add_column("Tablet")
    for label in configurations:
        entry = configurations[label]
        value = entry.value if not isinstance(entry.value, float) else f"{entry.value:g}"
        table.add_row(label, str(value), "yes" if entry.is_tablet else "")
    console.print(table)


@cli.command()
@click.argument("reference", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("current", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--tolerance", "-t", default=0.0, type=click.FloatRange(0.0, 1.0), help="Allowed differing pixel ratio")
@click.option("--pixel-threshold", default=0, type=click.IntRange(0, 255), help="Per-channel difference ignored")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write a diff image here")
def diff(reference: Path, current: Path, tolerance: float, pixel_threshold: int, output: Path | None) -> None:
    """Compare two images the way snapshot tests do."""
    with Image.open(reference) as ref_img, Image.open(current) as cur_img:
        ref = ref_img.convert("RGBA")
        cur = cur_img.convert("RGBA")
    try:
        ratio, mask = diff_images(ref, cur, pixel_threshold)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        highlight_diff(cur, mask).save(output, format="PNG")
        console.print(f"Diff image: [blue]{output}[/blue]")

    if ratio <= tolerance:
        console.print(f"[green]Match[/green]: {ratio:.2%} differing (tolerance {tolerance:.2%})")
    else:
        console.print(f"[red]Mismatch[/red]: {ratio:.2%} differing (tolerance {tolerance:.2%})")
        sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def report(path: Path) -> None:
    """Summarise a JSON failure report."""
    data, failures = load_json_report(path)
    console.print(
        f"{data.get('tests_run', 0)} snapshot tests, "
        f"[red]{data.get('failed_tests', 0)} failed[/red]"
    )
    if not failures:
        console.print("[green]No snapshot failures[/green]")
        return

    table = Table(title="Snapshot Failures")
    table.add_column("Test", style="bold")
    table.add_column("Configuration")
    table.add_column("Kind")
    table.add_column("Location")
    table.add_column("Message")
    for f in failures:
        where = "/".join(p for p in (f.identifier, f.label or "") if p) or "-"
        table.add_row(f.test_id, where, f.kind.value, str(f.location), f.message)
    console.print(table)


@cli.command()
@click.option("--output", "-o", default="snapshot-config.json", help="Config file path")
def init(output: str) -> None:
    """Create a default configuration file."""
    config_path = Path(output)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    HarnessConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nEnable the fixture from your conftest.py:")
    console.print('  [blue]pytest_plugins = ["snapharness.pytest_plugin"][/blue]')


if __name__ == "__main__":
    cli()
