# Violation output: plain-text and JSON formats, and the process exit code.

from __future__ import annotations

import json
import sys
from enum import IntEnum
from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO

from larastyle.config import OutputFormat
from larastyle.findings.models import Violation, has_errors, sort_violations
from larastyle.reporting.console import print_violations


class ExitCode(IntEnum):
    OK = 0
    VIOLATIONS = 1  # at least one error-severity violation
    USAGE = 2  # bad configuration or arguments


def exit_code_for(violations: Sequence[Violation]) -> ExitCode:
    """Non-zero only when an error-severity violation exists; warnings never fail a run."""
    return ExitCode.VIOLATIONS if has_errors(list(violations)) else ExitCode.OK


def format_text_line(violation: Violation) -> str:
    loc = violation.location
    return f"{loc.path.as_posix()}:{loc.line}: [{violation.severity.value}] {violation.rule_id} — {violation.message}"


def format_text(violations: Sequence[Violation]) -> str:
    return "".join(format_text_line(v) + "\n" for v in violations)


def format_json(violations: Sequence[Violation]) -> str:
    return json.dumps([v.to_record() for v in violations], indent=2, ensure_ascii=False) + "\n"


def report(
    violations: Sequence[Violation],
    format: OutputFormat = OutputFormat.TEXT,
    stream: Optional[TextIO] = None,
    *,
    analyzed_files: Optional[Sequence[Path]] = None,
    remediations: Optional[Mapping[str, str]] = None,
    verbose: bool = False,
) -> ExitCode:
    """
    Write violations in the requested format and return the exit code.

    Violations are re-sorted by (path, line, rule id) so identical input
    always produces byte-identical output.
    """
    ordered = sort_violations(list(violations))
    if stream is None:
        stream = sys.stdout

    if format is OutputFormat.JSON:
        stream.write(format_json(ordered))
    elif format is OutputFormat.RICH:
        print_violations(
            ordered,
            analyzed_files=analyzed_files,
            verbose=verbose,
            remediations=remediations,
            stream=stream,
        )
    else:
        stream.write(format_text(ordered))
    return exit_code_for(ordered)
