# Rule interface (abstract base class): defines the contract all convention rules implement.
# Concrete rules subclass Rule and override the visit_* hooks they care about.

from __future__ import annotations

from abc import ABC
from typing import Iterable, Optional

from larastyle.config import Config
from larastyle.findings.models import Location, Severity, Violation
from larastyle.model import ClassNode, MethodNode, RouteNode, SourceUnit


class Rule(ABC):
    """
    Abstract base class for all convention rules.

    Subclasses must define:
    - id: str — unique rule identifier (e.g. "env-outside-config")
    - name: str — human-readable rule name (e.g. "Direct .env access")
    - severity: default Severity (overridable through Config.severity_overrides)

    The source model is a closed set of node kinds, so a rule is a visitor:
    run() dispatches the unit, each class, each method (and top-level
    function, with cls=None) and each route registration to the matching
    visit_* hook. Hooks must not keep state between calls; the analyzer
    may call run() for different files from different threads.
    """

    id: str
    name: str
    severity: Severity = Severity.WARNING
    description: str = ""
    remediation: Optional[str] = None

    def run(self, unit: SourceUnit, config: Optional[Config]) -> list[Violation]:
        """
        Analyze one file and return any violations.

        Args:
            unit: Structural model of the file.
            config: Scanner config (thresholds, config directories). None
                    means defaults.

        Returns:
            List of Violation objects; empty if the file follows the convention.
        """
        if config is None:
            config = Config()
        violations: list[Violation] = list(self.visit_unit(unit, config))
        for cls in unit.classes:
            violations.extend(self.visit_class(cls, unit, config))
            for method in cls.methods:
                violations.extend(self.visit_method(method, cls, unit, config))
        for func in unit.functions:
            violations.extend(self.visit_method(func, None, unit, config))
        for route in unit.routes:
            violations.extend(self.visit_route(route, unit, config))
        return violations

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        return ()

    def visit_class(self, cls: ClassNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        return ()

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        return ()

    def visit_route(self, route: RouteNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        return ()

    def violation(
        self,
        unit: SourceUnit,
        line: int,
        message: str,
        column: int = 1,
        snippet: Optional[str] = None,
    ) -> Violation:
        """Build a Violation for this rule at a location in unit."""
        return Violation(
            rule_id=self.id,
            message=message,
            severity=self.severity,
            location=Location(path=unit.path, line=line, column=column, snippet=snippet),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"
