# Rule registry: ordered, id-keyed collection of rule instances.
#
# There is no module-level registry. Callers build one (default_registry())
# and pass it explicitly; the analyzer freezes it before a scan starts.

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Sequence

from larastyle.config import Config
from larastyle.errors import ConfigurationError, DuplicateRuleError, RegistryFrozenError
from larastyle.findings.models import PARSE_ERROR_ID, TIMEOUT_ID
from larastyle.rules.base import Rule

logger = logging.getLogger(__name__)

RESERVED_IDS = frozenset({PARSE_ERROR_ID, TIMEOUT_ID})


class RuleRegistry:
    """Rules keyed by id, applied in insertion order."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        self._frozen = False
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        """
        Add a rule.

        Raises:
            DuplicateRuleError: a rule with the same id is already registered
                (the registry is left unchanged).
            RegistryFrozenError: the registry has been frozen.
            ValueError: the rule uses a reserved diagnostic id.
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{rule.id}': registry is frozen")
        if rule.id in RESERVED_IDS:
            raise ValueError(f"Rule id '{rule.id}' is reserved for diagnostics")
        if rule.id in self._rules:
            raise DuplicateRuleError(rule.id)
        self._rules[rule.id] = rule
        logger.debug("Registered rule %s", rule.id)

    def freeze(self) -> None:
        """Make the registry read-only. Idempotent."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise ConfigurationError(f"Unknown rule id: {rule_id}") from None

    def ids(self) -> list[str]:
        return list(self._rules)

    def check_ids(self, ids: Iterable[str]) -> None:
        """Raise ConfigurationError naming every id that is not registered."""
        unknown = sorted(set(ids) - self._rules.keys())
        if unknown:
            known = ", ".join(self._rules)
            raise ConfigurationError(f"Unknown rule id(s): {', '.join(unknown)}. Known rules: {known}")

    def enabled(self, allow: Iterable[str] = (), deny: Iterable[str] = ()) -> list[Rule]:
        """
        Return the rules selected by an allow list and a deny list.

        An empty allow list selects every rule. Order is insertion order.

        Raises:
            ConfigurationError: either list names an unknown rule id.
        """
        allow = set(allow)
        deny = set(deny)
        self.check_ids(allow | deny)
        return [
            rule
            for rule_id, rule in self._rules.items()
            if (not allow or rule_id in allow) and rule_id not in deny
        ]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules.values()))

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules


def builtin_rules() -> list[Rule]:
    """Fresh instances of every built-in rule, in catalog order."""
    from larastyle.rules.environment import EnvOutsideConfigRule, SuperglobalAccessRule
    from larastyle.rules.facades import PreferHelperRule
    from larastyle.rules.naming import (
        ControllerNamingRule,
        InterfaceNamingRule,
        MethodNamingRule,
        ModelNamingRule,
        RelationshipNamingRule,
        VariableNamingRule,
    )
    from larastyle.rules.queries import NPlusOneQueryRule, PreferMassAssignmentRule, RawSqlRule
    from larastyle.rules.responsibility import (
        MethodTooLongRule,
        PreferDependencyInjectionRule,
        QueryInControllerRule,
        ValidationInControllerRule,
    )
    from larastyle.rules.routes import RouteClosureRule, RouteNameNamingRule, RouteUriNamingRule

    return [
        MethodTooLongRule(),
        ValidationInControllerRule(),
        QueryInControllerRule(),
        PreferDependencyInjectionRule(),
        RawSqlRule(),
        NPlusOneQueryRule(),
        PreferMassAssignmentRule(),
        EnvOutsideConfigRule(),
        SuperglobalAccessRule(),
        ControllerNamingRule(),
        ModelNamingRule(),
        RelationshipNamingRule(),
        MethodNamingRule(),
        VariableNamingRule(),
        InterfaceNamingRule(),
        RouteUriNamingRule(),
        RouteNameNamingRule(),
        RouteClosureRule(),
        PreferHelperRule(),
    ]


def default_registry() -> RuleRegistry:
    """Build a new registry holding the built-in rule catalog."""
    return RuleRegistry(builtin_rules())


def get_enabled_rules(config: Optional[Config] = None, registry: Optional[RuleRegistry] = None) -> Sequence[Rule]:
    """
    Return the rules selected by config from registry (defaults for either).

    Also validates that every severity override names a registered rule.

    Raises:
        ConfigurationError: config references an unknown rule id.
    """
    if config is None:
        config = Config()
    if registry is None:
        registry = default_registry()
    registry.check_ids(config.severity_overrides)
    return registry.enabled(config.rules, config.disabled)
