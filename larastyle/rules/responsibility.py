# Single responsibility and skinny-controller checks.

from __future__ import annotations

from typing import Iterable, Optional

from larastyle.config import Config
from larastyle.findings.models import Violation
from larastyle.model import CallKind, CallNode, ClassNode, MethodNode, SourceUnit
from larastyle.rules.base import Rule
from larastyle.rules.queries import is_query_start

REQUEST_TYPES = frozenset({"Request", "Illuminate\\Http\\Request"})
VALIDATE_METHODS = frozenset({"validate", "validateWithBag"})

# Classes that are fine to construct directly: values, exceptions, responses.
NEW_EXEMPT_SUFFIXES = (
    "Exception",
    "Error",
    "Response",
    "Resource",
    "Collection",
    "Carbon",
    "CarbonImmutable",
    "DateTime",
    "DateTimeImmutable",
    "DateInterval",
)
NEW_EXEMPT_CLASSES = frozenset({"stdClass", "ArrayObject", "ArrayIterator", "SplObjectStorage", "SplQueue"})


class MethodTooLongRule(Rule):
    """Flags methods whose bodies hold more statements than max_method_statements."""

    id = "method-too-long"
    name = "Method too long"
    description = "A class and a method should have only one responsibility."
    remediation = "Split the method into smaller, single-purpose methods."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        limit = config.max_method_statements
        if method.statement_count <= limit:
            return []
        return [
            self.violation(
                unit,
                method.line,
                f"'{method.name}' has {method.statement_count} statements (limit {limit}); "
                "it probably does more than one thing.",
                column=method.column,
            )
        ]


def _is_inline_validation(call: CallNode, method: MethodNode) -> bool:
    if call.kind is CallKind.STATIC:
        return call.short_receiver == "Validator" and call.name == "make"
    if call.kind is not CallKind.METHOD or call.name not in VALIDATE_METHODS:
        return False
    receiver = call.receiver or ""
    if receiver in ("$this", "request()"):
        return True
    if receiver.startswith("$") and "->" not in receiver:
        param = method.parameter(receiver[1:])
        if param is not None and param.type_name is not None:
            return param.type_name in REQUEST_TYPES
        return receiver == "$request"
    return False


class ValidationInControllerRule(Rule):
    """Flags inline validation in controllers; it belongs in a FormRequest class."""

    id = "validation-in-controller"
    name = "Validation in controller"
    description = "Move validation from controllers to Request classes."
    remediation = "Create a FormRequest (php artisan make:request) and type-hint it in the action."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        if cls is None or not cls.is_controller:
            return []
        return [
            self.violation(
                unit,
                call.line,
                f"'{method.name}' validates input inline; move the rules to a FormRequest class.",
                column=call.column,
                snippet=call.text,
            )
            for call in method.calls
            if _is_inline_validation(call, method)
        ]


class QueryInControllerRule(Rule):
    """Flags Eloquent/DB queries written directly in controller actions."""

    id = "query-in-controller"
    name = "Query in controller"
    description = "Fat models, skinny controllers: put DB related logic into Eloquent models."
    remediation = "Move the query into a model scope or method and call that from the controller."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        if cls is None or not cls.is_controller:
            return []
        return [
            self.violation(
                unit,
                call.line,
                f"Query '{call.short_receiver}::{call.name}()' in controller; move it into the model.",
                column=call.column,
                snippet=call.text,
            )
            for call in method.calls
            if is_query_start(call)
        ]


class PreferDependencyInjectionRule(Rule):
    """Flags `new Service` in controllers instead of resolving through the container."""

    id = "prefer-dependency-injection"
    name = "Direct instantiation"
    description = "Use the service container or facades instead of new Class."
    remediation = "Type-hint the dependency in the constructor or action so the container injects it."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        if cls is None or not cls.is_controller:
            return []
        found: list[Violation] = []
        for call in method.calls:
            if call.kind is not CallKind.NEW:
                continue
            short = call.name.rsplit("\\", 1)[-1]
            if short in NEW_EXEMPT_CLASSES or short.endswith(NEW_EXEMPT_SUFFIXES):
                continue
            found.append(
                self.violation(
                    unit,
                    call.line,
                    f"'new {short}' couples '{cls.name}' to a concrete class; inject it instead.",
                    column=call.column,
                    snippet=call.text,
                )
            )
        return found
