# Pydantic data models for convention violations: Violation, Location, Severity.

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

# Harness diagnostics; these ids are reserved and never used by rules.
PARSE_ERROR_ID = "parse-error"
TIMEOUT_ID = "timeout"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class Location(BaseModel):
    """Where in the source a violation was reported (file, line, column)."""

    path: Path
    line: int = Field(..., ge=1, description="1-based line number")
    column: int = Field(1, ge=1, description="1-based column number")
    snippet: Optional[str] = None

    model_config = {"frozen": True}


class Violation(BaseModel):
    """A single breach of a convention (e.g. env() read in a controller at line 42)."""

    rule_id: str
    message: str
    location: Location
    severity: Severity = Severity.WARNING

    model_config = {"frozen": True}

    def sort_key(self) -> tuple[str, int, str, int, str]:
        loc = self.location
        return (loc.path.as_posix(), loc.line, self.rule_id, loc.column, self.message)

    def to_record(self) -> dict[str, Any]:
        """Flat, JSON-serializable record for structured output."""
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "path": self.location.path.as_posix(),
            "line": self.location.line,
            "column": self.location.column,
            "message": self.message,
            "snippet": self.location.snippet,
        }


def sort_violations(violations: list[Violation]) -> list[Violation]:
    """Return violations ordered by (path, line, rule id), independent of discovery order."""
    return sorted(violations, key=Violation.sort_key)


def has_errors(violations: list[Violation]) -> bool:
    return any(v.severity is Severity.ERROR for v in violations)
