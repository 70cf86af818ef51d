# Exception hierarchy for the linter harness.

from __future__ import annotations

from pathlib import Path
from typing import Optional


class LinterError(Exception):
    """Base class for all larastyle errors."""


class ParseError(LinterError):
    """A source file could not be read, decoded or parsed.

    Never fatal: the scan records it as a ``parse-error`` violation and
    moves on to the next file.
    """

    def __init__(self, path: Path, message: str, line: int = 1, column: int = 1) -> None:
        super().__init__(f"{path}:{line}: {message}")
        self.path = path
        self.message = message
        self.line = line
        self.column = column


class DuplicateRuleError(LinterError):
    """A rule id was registered twice."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule '{rule_id}' is already registered")
        self.rule_id = rule_id


class RegistryFrozenError(LinterError):
    """Registration was attempted after the registry was frozen."""


class ConfigurationError(LinterError):
    """Invalid configuration: unknown rule id, bad value, unreadable file."""


class ScanTimeout(LinterError):
    """The process-wide scan deadline passed before all files were analyzed.

    ``partial`` carries the violations collected before the deadline.
    """

    def __init__(self, timeout: float, pending: int, partial: Optional[list] = None) -> None:
        super().__init__(f"Scan timed out after {timeout:g}s with {pending} file(s) not analyzed")
        self.timeout = timeout
        self.pending = pending
        self.partial = list(partial or [])
