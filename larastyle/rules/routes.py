# Route file conventions: URI and route-name shape, no logic in route closures.

from __future__ import annotations

from typing import Iterable

from larastyle.config import Config
from larastyle.findings.models import Violation
from larastyle.model import ActionKind, RouteNode, SourceUnit
from larastyle.rules.base import Rule
from larastyle.rules.words import KEBAB_SEGMENT, ROUTE_PARAMETER, is_snake_case

# Route::resource('photos.comments', ...) names nested resources with dots
RESOURCE_VERBS = frozenset({"resource", "apiResource", "singleton"})


def bad_uri_segments(route: RouteNode) -> list[str]:
    """Segments of the route URI that are neither kebab-case words nor {parameters}."""
    if route.uri is None:
        return []
    if route.verb in RESOURCE_VERBS:
        segments = route.uri.split(".")
    else:
        segments = [s for s in route.uri.strip("/").split("/") if s]
    return [s for s in segments if not (KEBAB_SEGMENT.match(s) or ROUTE_PARAMETER.match(s))]


class RouteUriNamingRule(Rule):
    """Route URIs are lowercase kebab-case: /article-comments/{comment}."""

    id = "route-uri-naming"
    name = "Route URI naming"
    description = "Route URIs are plural, lowercase and kebab-case: articles/1, not Articles_List/1."
    remediation = "Use lowercase, hyphen-separated URI segments."

    def visit_route(self, route: RouteNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        bad = bad_uri_segments(route)
        if not bad:
            return []
        return [
            self.violation(
                unit,
                route.line,
                f"Route URI '{route.uri}' has segment(s) {', '.join(repr(s) for s in bad)} "
                "that are not lowercase kebab-case.",
                column=route.column,
            )
        ]


class RouteNameNamingRule(Rule):
    """Route names are snake_case with dot notation: users.show_active."""

    id = "route-name-naming"
    name = "Route name naming"
    description = "Route names use snake_case and dot notation: users.show_active."
    remediation = "Rename the route, e.g. 'users.showActive' -> 'users.show_active'."

    def visit_route(self, route: RouteNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        if route.name is None:
            return []
        if all(is_snake_case(part) for part in route.name.split(".")):
            return []
        return [
            self.violation(
                unit,
                route.line,
                f"Route name '{route.name}' should be snake_case with dot notation.",
                column=route.column,
            )
        ]


class RouteClosureRule(Rule):
    """Flags closures used as route actions; route files register routes, controllers hold logic."""

    id = "route-closure"
    name = "Logic in routes"
    description = "Never put any logic in routes files."
    remediation = "Move the closure body into a controller action: Route::get('/x', [XController::class, 'show'])."

    def visit_route(self, route: RouteNode, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        if route.action_kind is not ActionKind.CLOSURE:
            return []
        target = f" '{route.uri}'" if route.uri is not None else ""
        return [
            self.violation(
                unit,
                route.line,
                f"Route{target} uses a closure; move the logic into a controller.",
                column=route.column,
            )
        ]
