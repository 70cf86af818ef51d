# Analysis orchestration: apply rules to source units and run whole-tree scans.

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from larastyle.builder import analysis_failure, build_file, parse_error_violation
from larastyle.config import Config
from larastyle.errors import ParseError, ScanTimeout
from larastyle.findings.models import TIMEOUT_ID, Location, Severity, Violation, sort_violations
from larastyle.model import SourceUnit
from larastyle.rules.base import Rule
from larastyle.rules.registry import RuleRegistry, default_registry, get_enabled_rules
from larastyle.traversal import find_php_files, find_project_root

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Outcome of a scan: sorted violations, the files considered, and whether the deadline hit."""

    violations: list[Violation] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
    timed_out: bool = False


def analyze_unit(
    unit: SourceUnit,
    rules: Sequence[Rule],
    config: Optional[Config] = None,
) -> list[Violation]:
    """
    Run every rule over one unit.

    A rule that raises is logged and skipped; it never hides the results of
    the other rules.
    """
    violations: list[Violation] = []
    for rule in rules:
        try:
            violations.extend(rule.run(unit, config))
        except Exception:
            logger.exception("Rule %s failed on %s", rule.id, unit.path)
    return violations


def apply_severity_overrides(
    violations: Iterable[Violation],
    overrides: Mapping[str, Severity],
) -> list[Violation]:
    if not overrides:
        return list(violations)
    return [
        v.model_copy(update={"severity": overrides[v.rule_id]}) if v.rule_id in overrides else v
        for v in violations
    ]


def analyze(
    units: Iterable[SourceUnit],
    rules: Sequence[Rule],
    severity_overrides: Optional[Mapping[str, Severity]] = None,
    config: Optional[Config] = None,
) -> list[Violation]:
    """
    Apply every rule to every unit and return the violations in canonical
    (path, line, rule id) order, whatever order they were produced in.
    """
    if config is None:
        config = Config()
    if severity_overrides is None:
        severity_overrides = config.severity_overrides
    violations: list[Violation] = []
    for unit in units:
        violations.extend(analyze_unit(unit, rules, config))
    return sort_violations(apply_severity_overrides(violations, severity_overrides))


def _scan_file(
    path: Path,
    base: Path,
    rules: Sequence[Rule],
    config: Config,
    project_root: Optional[Path] = None,
) -> list[Violation]:
    """
    Worker: build and analyze one file. Owns its parser, tree and unit.

    Any failure becomes a ``parse-error`` violation for the file, so a file
    that cannot be analyzed is always reported and fails the run.
    """
    try:
        unit = build_file(path, root=base, project_root=project_root)
    except ParseError as e:
        logger.warning("Skipping %s: %s", path, e.message)
        return [parse_error_violation(e)]
    except Exception as e:
        logger.exception("Failed to model %s", path)
        return [parse_error_violation(analysis_failure(path, base, e))]
    return analyze_unit(unit, rules, config)


def _timeout_violation(target: Path, error: ScanTimeout) -> Violation:
    return Violation(
        rule_id=TIMEOUT_ID,
        message=str(error),
        severity=Severity.ERROR,
        location=Location(path=Path(target.name) if target.is_file() else Path("."), line=1),
    )


def _collect(
    futures: dict[Future[list[Violation]], Path],
    timeout: Optional[float],
) -> list[Violation]:
    """
    Gather results as workers finish.

    Raises:
        ScanTimeout: the deadline passed; already collected violations are
            attached as ``partial``.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    pending = set(futures)
    collected: list[Violation] = []
    while pending:
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
        if not done:
            raise ScanTimeout(timeout or 0.0, len(pending), partial=collected)
        for future in done:
            path = futures[future]
            try:
                collected.extend(future.result())
            except Exception:
                logger.exception("Analysis of %s failed", path)
    return collected


def scan(
    target: Path,
    config: Optional[Config] = None,
    registry: Optional[RuleRegistry] = None,
) -> ScanResult:
    """
    Scan a file or directory tree.

    The registry is frozen, enabled rules are resolved from config, and each
    file is built and analyzed by a worker in a thread pool of
    ``config.jobs`` threads. When ``config.timeout`` seconds pass, pending
    files are cancelled and a single ``timeout`` violation is added to the
    partial results.

    Raises:
        ConfigurationError: config names an unknown rule id.
        FileNotFoundError: target does not exist.
    """
    if config is None:
        config = Config()
    if registry is None:
        registry = default_registry()
    registry.freeze()
    rules = list(get_enabled_rules(config, registry))

    target = target.resolve()
    if target.is_file():
        files, base = [target], target.parent
    else:
        files, base = find_php_files(target, ignore_dirs=config.ignore_dirs), target
    project_root = find_project_root(target)

    logger.info("Scanning %d file(s) with %d rule(s) using %d worker(s)", len(files), len(rules), config.jobs)
    result = ScanResult(files=files)

    executor = ThreadPoolExecutor(max_workers=max(1, config.jobs), thread_name_prefix="larastyle")
    try:
        futures = {
            executor.submit(_scan_file, path, base, rules, config, project_root): path for path in files
        }
        violations = _collect(futures, config.timeout)
    except ScanTimeout as e:
        logger.warning("%s", e)
        violations = [*e.partial, _timeout_violation(target, e)]
        result.timed_out = True
    finally:
        executor.shutdown(wait=not result.timed_out, cancel_futures=True)

    result.violations = sort_violations(apply_severity_overrides(violations, config.severity_overrides))
    logger.info("Scan complete: %d violation(s)", len(result.violations))
    return result
