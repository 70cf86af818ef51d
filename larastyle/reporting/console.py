# Rich console output: format violations for terminal display.

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from larastyle.findings.models import Violation

# Severity → Rich style
SEVERITY_STYLE = {
    "error": "bold red",
    "warning": "bold yellow",
}

DEFAULT_SEVERITY_STYLE = "bold white"


def _severity_style(severity: str) -> str:
    return SEVERITY_STYLE.get(severity.lower(), DEFAULT_SEVERITY_STYLE)


def print_violations(
    violations: Sequence[Violation],
    analyzed_files: Optional[Sequence[Path]] = None,
    verbose: bool = False,
    remediations: Optional[Mapping[str, str]] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Print violations using Rich: grouped by file, colored by severity.

    If verbose, shows remediation hints (rule id -> hint from ``remediations``).
    If analyzed_files is provided, adds a per-file summary table.
    """
    console = Console(file=stream) if stream is not None else Console()

    if not violations:
        if analyzed_files:
            _print_file_summary_table(violations, analyzed_files, console)
        console.print(
            Panel(
                f"[green]No convention violations found[/green]"
                f"{f' in {len(analyzed_files)} file(s)' if analyzed_files else ''}.",
                title="larastyle",
                border_style="green",
                box=box.ROUNDED,
            )
        )
        return

    by_file: dict[str, list[Violation]] = {}
    for v in violations:
        by_file.setdefault(v.location.path.as_posix(), []).append(v)

    for path in sorted(by_file):
        file_violations = sorted(by_file[path], key=Violation.sort_key)

        console.print()
        # paths are plain text; a "[id]" directory is not markup
        console.print(Panel(
            Text(path, style="bold cyan"),
            box=box.SIMPLE_HEAD,
            border_style="blue",
            padding=(0, 1),
        ))

        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.SIMPLE,
            padding=(0, 1),
            expand=False,
        )
        table.add_column("Line", justify="right", style="dim", width=5)
        table.add_column("Col", justify="right", style="dim", width=4)
        table.add_column("Severity", width=8)
        table.add_column("Rule", width=28)
        table.add_column("Message", style="white")

        for v in file_violations:
            loc = v.location
            table.add_row(
                str(loc.line),
                str(loc.column),
                Text(v.severity.value.upper(), style=_severity_style(v.severity.value)),
                Text(f"[{v.rule_id}]", style="dim"),
                Text(v.message),
            )

        console.print(table)

        if verbose and remediations:
            seen_rules: set[str] = set()
            for v in file_violations:
                if v.rule_id in seen_rules:
                    continue
                seen_rules.add(v.rule_id)
                hint = remediations.get(v.rule_id)
                if hint:
                    console.print(Text.assemble(("  [Fix] ", "dim"), f"[{v.rule_id}] {hint}"))
            console.print()

    if analyzed_files:
        _print_file_summary_table(violations, analyzed_files, console)

    _print_summary(violations, console)


def _print_file_summary_table(
    violations: Sequence[Violation],
    analyzed_files: Sequence[Path],
    console: Console,
) -> None:
    """Print a table of clean vs offending files."""
    by_path: dict[str, int] = {}
    for v in violations:
        key = v.location.path.as_posix()
        by_path[key] = by_path.get(key, 0) + 1

    table = Table(
        title="Files Summary",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("File", style="white")
    table.add_column("Violations", justify="right", width=10)

    for path, count in sorted(by_path.items()):
        table.add_row(Text(path), Text(str(count), style="bold red"))
    clean = len(analyzed_files) - len(by_path)
    if clean > 0:
        label = f"{clean} other file(s)" if by_path else f"{clean} file(s)"
        table.add_row(Text(label, style="dim"), Text("0", style="bold green"))

    console.print()
    console.print(Panel(table, border_style="cyan", box=box.ROUNDED))


def _print_summary(violations: Sequence[Violation], console: Console) -> None:
    by_severity: dict[str, int] = {}
    for v in violations:
        s = v.severity.value
        by_severity[s] = by_severity.get(s, 0) + 1

    total = len(violations)
    summary_parts = [f"[bold]{total} violation{'s' if total != 1 else ''}[/bold]"]
    for sev in ("error", "warning"):
        if sev in by_severity:
            summary_parts.append(f"[{_severity_style(sev)}]{by_severity[sev]} {sev}[/]")

    console.print()
    console.print(
        Panel(
            " | ".join(summary_parts),
            title="Summary",
            border_style="red" if by_severity.get("error") else "yellow",
            box=box.ROUNDED,
        )
    )
