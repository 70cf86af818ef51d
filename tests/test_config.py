"""Tests for configuration loading and merging."""

from pathlib import Path

import pytest

from larastyle.config import (
    Config,
    OutputFormat,
    discover_config_file,
    get_default_config,
    load_config,
    parse_severity_overrides,
)
from larastyle.errors import ConfigurationError
from larastyle.findings.models import Severity
from larastyle.traversal import DEFAULT_IGNORE_DIRS


def test_default_config():
    config = get_default_config()
    assert config.rules == frozenset()
    assert config.disabled == frozenset()
    assert config.format is OutputFormat.TEXT
    assert config.jobs == 1
    assert config.timeout is None
    assert config.config_dirs == ("config",)
    assert config.ignore_dirs == DEFAULT_IGNORE_DIRS


def test_load_larastyle_toml(tmp_path):
    path = tmp_path / "larastyle.toml"
    path.write_text(
        """
disable = ["route-closure"]
format = "json"
jobs = 4
timeout = 30
max_method_statements = 40
extra_ignore_dirs = ["legacy"]

[severity]
method-too-long = "error"
"""
    )
    config = load_config(path)
    assert config.disabled == frozenset({"route-closure"})
    assert config.format is OutputFormat.JSON
    assert config.jobs == 4
    assert config.timeout == 30
    assert config.max_method_statements == 40
    assert config.severity_overrides == {"method-too-long": Severity.ERROR}
    assert "legacy" in config.ignore_dirs
    assert "vendor" in config.ignore_dirs


def test_load_pyproject_table(tmp_path):
    path = tmp_path / "pyproject.toml"
    path.write_text('[project]\nname = "app"\n\n[tool.larastyle]\nenable = ["raw-sql"]\n')
    assert load_config(path).rules == frozenset({"raw-sql"})


def test_pyproject_without_table_gives_defaults(tmp_path):
    path = tmp_path / "pyproject.toml"
    path.write_text('[project]\nname = "app"\n')
    assert load_config(path) == Config()


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "larastyle.toml"
    path.write_text('colour = "red"\n')
    with pytest.raises(ConfigurationError, match="colour"):
        load_config(path)


def test_invalid_values_rejected(tmp_path):
    path = tmp_path / "larastyle.toml"
    path.write_text("jobs = 0\n")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_invalid_toml_rejected(tmp_path):
    path = tmp_path / "larastyle.toml"
    path.write_text("disable = [\n")
    with pytest.raises(ConfigurationError, match="Invalid TOML"):
        load_config(path)


def test_discover_config_file(tmp_path):
    (tmp_path / "app" / "Models").mkdir(parents=True)
    (tmp_path / "pyproject.toml").write_text('[tool.larastyle]\njobs = 2\n')
    assert discover_config_file(tmp_path / "app" / "Models") == tmp_path / "pyproject.toml"

    (tmp_path / "larastyle.toml").write_text("jobs = 3\n")
    assert discover_config_file(tmp_path / "app") == tmp_path / "larastyle.toml"


def test_discover_skips_pyproject_without_table(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "app"\n')
    found = discover_config_file(tmp_path)
    assert found is None or found.parent != tmp_path


def test_parse_severity_overrides():
    assert parse_severity_overrides(["raw-sql=warning", "method-too-long = ERROR"]) == {
        "raw-sql": Severity.WARNING,
        "method-too-long": Severity.ERROR,
    }


@pytest.mark.parametrize("item", ["raw-sql", "=error", "raw-sql=fatal"])
def test_parse_severity_overrides_rejects_bad_input(item):
    with pytest.raises(ConfigurationError):
        parse_severity_overrides([item])


def test_merged_ignores_none_and_merges_overrides():
    base = Config(jobs=2, severity_overrides={"raw-sql": Severity.WARNING})
    merged = base.merged(jobs=None, timeout=5.0, severity_overrides={"method-too-long": Severity.ERROR})
    assert merged.jobs == 2
    assert merged.timeout == 5.0
    assert merged.severity_overrides == {"raw-sql": Severity.WARNING, "method-too-long": Severity.ERROR}
    assert base.timeout is None
