"""CLI entry point for the preview screenshot validator."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from previewshot.discovery.finder import DiscoveryError
from previewshot.engine.node import TestDescriptor
from previewshot.models.config import ScreenshotTestConfig
from previewshot.models.test_result import RunResult
from previewshot.orchestrator import Orchestrator

console = Console()

DEFAULT_CONFIG = "screenshot-config.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(
    config: str,
    recording_mode: bool,
    threshold: float | None = None,
    test_dirs: tuple[str, ...] = (),
    modules: tuple[str, ...] = (),
) -> ScreenshotTestConfig:
    """Load the config file and apply command-line overrides."""
    try:
        cfg = ScreenshotTestConfig.load(config)
    except FileNotFoundError:
        if config != DEFAULT_CONFIG or not (test_dirs or modules):
            console.print(f"[red]Config file not found: {config}[/red]")
            console.print("Run 'previewshot init' to create a default config.")
            sys.exit(1)
        cfg = ScreenshotTestConfig()
    except ValidationError as e:
        console.print(f"[red]Invalid config {config}:[/red]\n{e}")
        sys.exit(1)

    overrides: dict = {"recording_mode": recording_mode}
    if threshold is not None:
        overrides["image_difference_threshold"] = threshold
    if test_dirs:
        overrides["test_dirs"] = list(test_dirs)
    if modules:
        overrides["test_modules"] = list(modules)
    try:
        return ScreenshotTestConfig.model_validate({**cfg.model_dump(), **overrides})
    except ValidationError as e:
        console.print(f"[red]{e.errors()[0]['msg']}[/red]")
        sys.exit(1)


def _print_summary(result: RunResult, reports: dict[str, str]) -> None:
    title = "Recording Summary" if result.recording_mode else "Validation Summary"
    table = Table(title=title)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run ID", result.run_id)
    table.add_row("Duration", f"{result.duration_seconds}s")
    table.add_row("Screenshots", str(result.total_tests))
    table.add_row("Passed", f"[green]{result.passed}[/green]")
    table.add_row("Failed", f"[red]{result.failed}[/red]")
    table.add_row("Skipped", f"[yellow]{result.skipped}[/yellow]")
    table.add_row("Errors", f"[red]{result.errors}[/red]")
    console.print(table)

    failed = [r for r in result.test_results if r.result in ("fail", "error")]
    if failed:
        failures = Table(title="Failures")
        failures.add_column("Screenshot", style="bold")
        failures.add_column("Result")
        failures.add_column("Diff")
        for r in failed:
            diff = f"{r.diff_percent * 100:.2f}%" if r.diff_percent is not None else "-"
            failures.add_row(r.test_name, f"[red]{r.result.upper()}[/red]", diff)
        console.print(failures)

    if result.engine_error:
        console.print(f"[red]Engine error:[/red] {result.engine_error}")

    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")


def _run(cfg: ScreenshotTestConfig) -> None:
    try:
        result, reports = Orchestrator(cfg).run()
    except DiscoveryError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    _print_summary(result, reports)
    if result.engine_error or result.failed or result.errors:
        sys.exit(1)


config_option = click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
test_dir_option = click.option("--test-dir", "-d", "test_dirs", multiple=True, help="Directory of preview tests (repeatable)")
module_option = click.option("--module", "-m", "modules", multiple=True, help="Module of preview tests (repeatable)")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Preview Screenshot Validator"""
    setup_logging(verbose)


@cli.command()
@config_option
@test_dir_option
@module_option
@click.option("--threshold", "-t", type=float, default=None, help="Allowed difference ratio, 0.0 to 1.0")
def validate(config: str, test_dirs: tuple[str, ...], modules: tuple[str, ...], threshold: float | None) -> None:
    """Render previews and compare them against the reference images."""
    _run(_load_config(config, False, threshold, test_dirs, modules))


@cli.command()
@config_option
@test_dir_option
@module_option
def update(config: str, test_dirs: tuple[str, ...], modules: tuple[str, ...]) -> None:
    """Render previews and record them as the new reference images."""
    _run(_load_config(config, True, None, test_dirs, modules))


def _add_branch(tree: Tree, node: TestDescriptor) -> None:
    for child in node.children:
        label = child.display_name
        if child.unique_id.last_value != label:
            label = f"{label} [dim]{child.unique_id.last_value}[/dim]"
        _add_branch(tree.add(label), child)


@cli.command()
@config_option
@test_dir_option
@module_option
def discover(config: str, test_dirs: tuple[str, ...], modules: tuple[str, ...]) -> None:
    """Print the discovered preview test tree without rendering."""
    cfg = _load_config(config, False, None, test_dirs, modules)
    try:
        root = Orchestrator(cfg).discover()
    except DiscoveryError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    tree = Tree(f"[bold]{root.display_name}[/bold]")
    _add_branch(tree, root)
    console.print(tree)


@cli.command()
@click.option("--test-dir", "-d", "test_dirs", multiple=True, help="Directory of preview tests (repeatable)")
def init(test_dirs: tuple[str, ...]) -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    cfg = ScreenshotTestConfig(test_dirs=list(test_dirs))
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nSet renderer.command to your render worker, then run:")
    console.print("  [blue]previewshot update[/blue]    record reference images")
    console.print("  [blue]previewshot validate[/blue]  compare against them")


if __name__ == "__main__":
    cli()
