# Laravel naming conventions for controllers, models, relationships, methods, variables and contracts.

from __future__ import annotations

import re
from typing import Iterable, Optional

from larastyle.config import Config
from larastyle.findings.models import Violation
from larastyle.model import ClassKind, ClassNode, MethodNode, SourceUnit
from larastyle.rules.base import Rule
from larastyle.rules.words import (
    is_camel_case,
    is_pascal_case,
    is_uncountable,
    looks_plural,
    to_camel_case,
)

CONTROLLER_SUFFIX = "Controller"

SINGULAR_RELATIONS = frozenset({"hasOne", "belongsTo", "morphOne", "morphTo", "hasOneThrough"})
PLURAL_RELATIONS = frozenset(
    {"hasMany", "belongsToMany", "morphMany", "morphToMany", "morphedByMany", "hasManyThrough"}
)

INTERFACE_PREFIX = re.compile(r"^I[A-Z][a-z]")

# Variables PHP or Laravel name for us.
RESERVED_VARIABLES = frozenset({"this", "GLOBALS"})


class ControllerNamingRule(Rule):
    """Controllers are singular PascalCase with a Controller suffix: ArticleController."""

    id = "controller-naming"
    name = "Controller naming"
    description = "Controller names are singular: ArticleController, not ArticlesController."
    remediation = "Rename the class, e.g. ArticlesController -> ArticleController."

    def visit_class(self, cls: ClassNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        if not cls.is_controller or cls.name == CONTROLLER_SUFFIX:
            return []
        if not cls.name.endswith(CONTROLLER_SUFFIX):
            message = f"Controller '{cls.name}' should end with '{CONTROLLER_SUFFIX}'."
        elif not is_pascal_case(cls.name):
            message = f"Controller '{cls.name}' should be PascalCase."
        else:
            stem = cls.name[: -len(CONTROLLER_SUFFIX)]
            if not looks_plural(stem):
                return []
            message = f"Controller '{cls.name}' should be singular ('{stem}' reads as plural)."
        return [self.violation(unit, cls.line, message, column=cls.column)]


class ModelNamingRule(Rule):
    """Models are singular PascalCase: User, not Users."""

    id = "model-naming"
    name = "Model naming"
    description = "Model names are singular: User, not Users."
    remediation = "Rename the model to the singular form; the table name stays plural."

    def visit_class(self, cls: ClassNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        if not cls.is_model:
            return []
        if not is_pascal_case(cls.name):
            message = f"Model '{cls.name}' should be PascalCase."
        elif looks_plural(cls.name):
            message = f"Model '{cls.name}' should be singular."
        else:
            return []
        return [self.violation(unit, cls.line, message, column=cls.column)]


class RelationshipNamingRule(Rule):
    """
    hasOne/belongsTo relationship methods are singular (articleComment),
    hasMany/belongsToMany ones plural (articleComments).
    """

    id = "relationship-naming"
    name = "Relationship naming"
    description = "To-one relationship methods are singular, to-many relationship methods are plural."
    remediation = "Rename the relationship method, e.g. comment() -> comments() for hasMany."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        if cls is None or is_uncountable(method.name):
            return []
        relation = next(
            (
                call.chain[0]
                for call in method.calls
                if call.root == "$this" and call.chain and call.chain[0] in SINGULAR_RELATIONS | PLURAL_RELATIONS
            ),
            None,
        )
        if relation is None:
            return []
        plural = looks_plural(method.name)
        if relation in SINGULAR_RELATIONS and plural:
            expected = "singular"
        elif relation in PLURAL_RELATIONS and not plural:
            expected = "plural"
        else:
            return []
        return [
            self.violation(
                unit,
                method.line,
                f"Relationship '{method.name}' uses {relation}() and should be {expected}.",
                column=method.column,
            )
        ]


class MethodNamingRule(Rule):
    """Class methods are camelCase: getAll, not get_all. Magic methods are exempt."""

    id = "method-naming"
    name = "Method naming"
    description = "Method names are camelCase."
    remediation = "Rename the method to camelCase."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        # plain PHP functions follow the snake_case helper convention
        if cls is None or method.is_magic or is_camel_case(method.name):
            return []
        return [
            self.violation(
                unit,
                method.line,
                f"Method '{method.name}' should be camelCase ('{to_camel_case(method.name)}').",
                column=method.column,
            )
        ]


class VariableNamingRule(Rule):
    """Assigned variables are camelCase: $articlesWithAuthor."""

    id = "variable-naming"
    name = "Variable naming"
    description = "Variable names are camelCase."
    remediation = "Rename the variable to camelCase."

    def _check(self, assignments, unit: SourceUnit) -> list[Violation]:
        found: list[Violation] = []
        seen: set[str] = set()
        for assignment in assignments:
            name = assignment.target
            if assignment.target_kind != "variable" or name in seen or name in RESERVED_VARIABLES:
                continue
            seen.add(name)
            if is_camel_case(name):
                continue
            found.append(
                self.violation(
                    unit,
                    assignment.line,
                    f"Variable '${name}' should be camelCase ('${to_camel_case(name)}').",
                    column=assignment.column,
                )
            )
        return found

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        return self._check(unit.assignments, unit)

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        return self._check(method.assignments, unit)


class InterfaceNamingRule(Rule):
    """Contracts are adjectives or nouns: Authenticatable, not AuthenticationInterface or IAuth."""

    id = "interface-naming"
    name = "Contract naming"
    description = "Contract (interface) names are adjectives or nouns without an Interface suffix."
    remediation = "Drop the 'Interface' suffix or 'I' prefix, e.g. AuthenticationInterface -> Authenticatable."

    def visit_class(self, cls: ClassNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        if cls.kind is not ClassKind.INTERFACE:
            return []
        if cls.name.endswith("Interface") and cls.name != "Interface":
            message = f"Contract '{cls.name}' should not end with 'Interface'."
        elif INTERFACE_PREFIX.match(cls.name):
            message = f"Contract '{cls.name}' should not use an 'I' prefix."
        else:
            return []
        return [self.violation(unit, cls.line, message, column=cls.column)]
