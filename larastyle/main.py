from __future__ import annotations

"""
Typer CLI entry point: `larastyle check` and `larastyle rules`.

`check` resolves the configuration (defaults, then the nearest larastyle.toml
or [tool.larastyle] table, then flags), scans the target, prints the
violations and exits with 0 (clean or warnings only), 1 (at least one
error-severity violation) or 2 (configuration error).
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from larastyle.analyzer import scan
from larastyle.config import (
    Config,
    OutputFormat,
    discover_config_file,
    get_default_config,
    load_config,
    parse_severity_overrides,
)
from larastyle.errors import ConfigurationError
from larastyle.reporting.output import ExitCode, report
from larastyle.rules.registry import default_registry

logger = logging.getLogger(__name__)

app = typer.Typer(help="larastyle - Laravel best-practice and naming convention linter.")


def _configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich; INFO with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _resolve_config(
    target: Path,
    config_file: Optional[Path],
    output_format: Optional[OutputFormat],
    enable: Optional[List[str]],
    disable: Optional[List[str]],
    severity: Optional[List[str]],
    jobs: Optional[int],
    timeout: Optional[float],
) -> Config:
    path = config_file if config_file is not None else discover_config_file(target)
    base = load_config(path) if path is not None else get_default_config()
    return base.merged(
        rules=frozenset(enable) if enable else None,
        disabled=base.disabled | frozenset(disable) if disable else None,
        severity_overrides=parse_severity_overrides(severity) if severity else None,
        format=output_format,
        jobs=jobs,
        timeout=timeout,
    )


@app.command()
def check(
    target: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="PHP file or Laravel project directory to check.",
    ),
    output_format: Optional[OutputFormat] = typer.Option(
        None, "--format", "-f", case_sensitive=False, help="Output format: text, json or rich."
    ),
    enable: Optional[List[str]] = typer.Option(
        None, "--enable", "-e", help="Only run these rule ids (repeatable)."
    ),
    disable: Optional[List[str]] = typer.Option(
        None, "--disable", "-d", help="Skip these rule ids (repeatable)."
    ),
    severity: Optional[List[str]] = typer.Option(
        None, "--severity", "-s", help="Override a rule's severity: RULE=warning|error (repeatable)."
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="larastyle.toml or pyproject.toml to use."
    ),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Number of worker threads."),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0.001, help="Abort remaining files after this many seconds."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress and show fix hints."),
) -> None:
    """Check a Laravel project against the best-practice conventions."""
    _configure_logging(verbose)
    registry = default_registry()
    try:
        config = _resolve_config(target, config_file, output_format, enable, disable, severity, jobs, timeout)
        result = scan(target, config, registry)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=int(ExitCode.USAGE))

    if not result.files:
        logger.warning("No PHP files found under %s", target)

    remediations = {rule.id: rule.remediation for rule in registry if rule.remediation}
    code = report(
        result.violations,
        config.format,
        analyzed_files=result.files,
        remediations=remediations,
        verbose=verbose,
    )
    raise typer.Exit(code=int(code))


@app.command()
def rules() -> None:
    """List the built-in rules with their default severity."""
    table = Table(show_header=True, header_style="bold magenta", box=box.SIMPLE)
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Description")
    for rule in default_registry():
        table.add_row(rule.id, rule.severity.value, rule.description)
    Console().print(table)


def main() -> None:
    """Entry point for the `larastyle` script and `python -m larastyle.main`."""
    app()


if __name__ == "__main__":
    main()
