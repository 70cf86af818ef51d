from __future__ import annotations

"""
Linter configuration: rule selection, severity overrides, output and scan settings.

Configuration comes from three layers, later ones winning:

1. Defaults (``Config()``).
2. A config file: ``[tool.larastyle]`` in ``pyproject.toml`` or the top-level
   table of ``larastyle.toml``, validated with a pydantic model.
3. Command-line flags (see larastyle.main), applied with ``Config.merged``.

Rule ids are checked against the registry when rules are selected
(larastyle.rules.registry.get_enabled_rules), not here, so this module does
not depend on the rule catalog.
"""

import logging
import tomllib
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from larastyle.errors import ConfigurationError
from larastyle.findings.models import Severity
from larastyle.traversal import DEFAULT_IGNORE_DIRS

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("larastyle.toml", "pyproject.toml")
PYPROJECT_SECTION = "larastyle"

DEFAULT_MAX_METHOD_STATEMENTS = 20
DEFAULT_CONFIG_DIRS = ("config",)


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    RICH = "rich"


@dataclass(frozen=True)
class Config:
    """
    Scanner configuration.

    ``rules`` is the allow list (empty means every registered rule) and
    ``disabled`` the deny list applied after it.
    """

    rules: frozenset[str] = frozenset()
    disabled: frozenset[str] = frozenset()
    severity_overrides: Mapping[str, Severity] = field(default_factory=dict)
    format: OutputFormat = OutputFormat.TEXT
    jobs: int = 1
    timeout: Optional[float] = None
    max_method_statements: int = DEFAULT_MAX_METHOD_STATEMENTS
    config_dirs: tuple[str, ...] = DEFAULT_CONFIG_DIRS
    ignore_dirs: frozenset[str] = DEFAULT_IGNORE_DIRS

    def merged(self, **updates: Any) -> Config:
        """Return a copy with the given non-None fields replaced."""
        changes = {key: value for key, value in updates.items() if value is not None}
        if "severity_overrides" in changes:
            changes["severity_overrides"] = {**self.severity_overrides, **changes["severity_overrides"]}
        return replace(self, **changes)


class ConfigFile(BaseModel):
    """Schema of the ``[tool.larastyle]`` table. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    rules: list[str] = Field(default_factory=list, alias="enable")
    disabled: list[str] = Field(default_factory=list, alias="disable")
    severity: dict[str, Severity] = Field(default_factory=dict)
    format: OutputFormat = OutputFormat.TEXT
    jobs: int = Field(1, ge=1)
    timeout: Optional[float] = Field(None, gt=0)
    max_method_statements: int = Field(DEFAULT_MAX_METHOD_STATEMENTS, ge=1)
    config_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_CONFIG_DIRS))
    extra_ignore_dirs: list[str] = Field(default_factory=list)

    def to_config(self) -> Config:
        return Config(
            rules=frozenset(self.rules),
            disabled=frozenset(self.disabled),
            severity_overrides=dict(self.severity),
            format=self.format,
            jobs=self.jobs,
            timeout=self.timeout,
            max_method_statements=self.max_method_statements,
            config_dirs=tuple(self.config_dirs),
            ignore_dirs=DEFAULT_IGNORE_DIRS | frozenset(self.extra_ignore_dirs),
        )


def get_default_config() -> Config:
    """Return the default configuration: every rule enabled, text output."""
    return Config()


def _read_table(path: Path) -> Optional[dict[str, Any]]:
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
    if path.name == "pyproject.toml":
        return data.get("tool", {}).get(PYPROJECT_SECTION)
    return data


def load_config(path: Path) -> Config:
    """
    Load configuration from a ``larastyle.toml`` or ``pyproject.toml`` file.

    A pyproject.toml without a ``[tool.larastyle]`` table yields the defaults.

    Raises:
        ConfigurationError: unreadable file, invalid TOML, or a value that
            fails validation (unknown key, bad severity, jobs < 1, ...).
    """
    table = _read_table(path)
    if table is None:
        logger.debug("No [tool.%s] table in %s; using defaults", PYPROJECT_SECTION, path)
        return get_default_config()
    try:
        parsed = ConfigFile.model_validate(table)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{e}") from e
    logger.info("Loaded configuration from %s", path)
    return parsed.to_config()


def discover_config_file(start: Path) -> Optional[Path]:
    """
    Find the nearest config file at or above start.

    ``larastyle.toml`` wins over ``pyproject.toml`` in the same directory; a
    pyproject.toml only counts if it has a ``[tool.larastyle]`` table.
    """
    current = start.resolve()
    if current.is_file():
        current = current.parent
    for directory in (current, *current.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if not candidate.is_file():
                continue
            if name == "pyproject.toml" and _read_table(candidate) is None:
                continue
            return candidate
    return None


def parse_severity_overrides(items: Iterable[str]) -> dict[str, Severity]:
    """
    Parse ``rule-id=level`` pairs from the command line.

    >>> parse_severity_overrides(["method-too-long=error"])
    {'method-too-long': <Severity.ERROR: 'error'>}
    """
    overrides: dict[str, Severity] = {}
    for item in items:
        rule_id, sep, level = item.partition("=")
        if not sep or not rule_id.strip():
            raise ConfigurationError(f"Expected RULE=LEVEL, got {item!r}")
        try:
            overrides[rule_id.strip()] = Severity(level.strip().lower())
        except ValueError as e:
            choices = ", ".join(s.value for s in Severity)
            raise ConfigurationError(f"Unknown severity {level!r} for {rule_id}; expected one of: {choices}") from e
    return overrides
