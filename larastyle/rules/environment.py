# Environment access detection: .env reads outside config files and raw PHP superglobals.

from __future__ import annotations

from typing import Iterable

from larastyle.config import Config
from larastyle.findings.models import Severity, Violation
from larastyle.model import CallKind, SourceUnit
from larastyle.rules.base import Rule

ENV_FUNCTIONS = frozenset({"env", "getenv"})

# superglobal -> Laravel replacement
SUPERGLOBALS = {
    "_GET": "request()->query()",
    "_POST": "request()->input()",
    "_REQUEST": "request()->input()",
    "_COOKIE": "request()->cookie()",
    "_FILES": "request()->file()",
    "_SERVER": "request()->server()",
    "_SESSION": "session()",
}


class EnvOutsideConfigRule(Rule):
    """
    Flags direct reads of the environment (env(), getenv(), $_ENV) outside
    config files. Once the configuration is cached, env() returns null
    everywhere except inside config/*.php.
    """

    id = "env-outside-config"
    name = "Direct .env access"
    severity = Severity.ERROR
    description = "Do not get data from the .env file directly; read it through config()."
    remediation = (
        "Read the value in a config file ('key' => env('APP_KEY')) and use config('app.key') in code."
    )

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        if unit.is_under(config.config_dirs):
            return []
        found: list[Violation] = []
        for call in unit.iter_calls():
            if call.kind is CallKind.FUNCTION and call.name.rsplit("\\", 1)[-1] in ENV_FUNCTIONS:
                found.append(
                    self.violation(
                        unit,
                        call.line,
                        f"'{call.name}()' reads the environment directly; use config() instead.",
                        column=call.column,
                        snippet=call.text,
                    )
                )
        for var in unit.iter_variables():
            if var.name == "_ENV":
                found.append(
                    self.violation(
                        unit,
                        var.line,
                        "'$_ENV' reads the environment directly; use config() instead.",
                        column=var.column,
                    )
                )
        return found


class SuperglobalAccessRule(Rule):
    """Flags $_GET, $_POST, $_SERVER and the other request superglobals."""

    id = "superglobal-access"
    name = "Superglobal access"
    severity = Severity.ERROR
    description = "Use Laravel's request and session helpers instead of PHP superglobals."
    remediation = "Inject Illuminate\\Http\\Request or use request()/session() helpers."

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        return [
            self.violation(
                unit,
                var.line,
                f"'${var.name}' bypasses the request object; use {SUPERGLOBALS[var.name]} instead.",
                column=var.column,
            )
            for var in unit.iter_variables()
            if var.name in SUPERGLOBALS
        ]
