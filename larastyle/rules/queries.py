# Query detection: raw SQL, queries inside loops (N+1), and field-by-field model filling.

from __future__ import annotations

from typing import Iterable, Optional

from larastyle.config import Config
from larastyle.findings.models import Violation
from larastyle.model import CallKind, CallNode, ClassNode, MethodNode, SourceUnit
from larastyle.rules.base import Rule
from larastyle.rules.words import is_pascal_case

DB_FACADE = "DB"

RAW_DB_METHODS = frozenset(
    {"raw", "select", "selectOne", "insert", "update", "delete", "statement", "unprepared", "affectingStatement"}
)
RAW_BUILDER_METHODS = frozenset(
    {
        "whereRaw",
        "orWhereRaw",
        "selectRaw",
        "orderByRaw",
        "groupByRaw",
        "havingRaw",
        "orHavingRaw",
        "fromRaw",
    }
)

# Static calls that start an Eloquent/DB query: User::where(...), DB::table(...).
QUERY_STARTERS = frozenset(
    {
        "query",
        "table",
        "all",
        "find",
        "findOrFail",
        "findMany",
        "first",
        "firstWhere",
        "firstOrFail",
        "firstOrCreate",
        "firstOrNew",
        "updateOrCreate",
        "create",
        "insert",
        "upsert",
        "destroy",
        "with",
        "withCount",
        "has",
        "doesntHave",
        "latest",
        "oldest",
        "orderBy",
        "select",
        "paginate",
        "count",
        "pluck",
    }
)
# Calls that execute a built query and hit the database.
QUERY_TERMINALS = frozenset(
    {
        "all",
        "get",
        "first",
        "firstOrFail",
        "firstWhere",
        "find",
        "findOrFail",
        "findMany",
        "paginate",
        "simplePaginate",
        "cursorPaginate",
        "exists",
        "doesntExist",
        "count",
        "sum",
        "avg",
        "max",
        "min",
        "pluck",
        "value",
    }
)
# Collection methods; a chain starting with these works on loaded data.
COLLECTION_METHODS = frozenset(
    {"filter", "map", "each", "reject", "sortBy", "sortByDesc", "keyBy", "groupBy", "values", "unique", "flatten"}
)
# Static receivers that are never Eloquent models.
NON_MODEL_CLASSES = frozenset(
    {
        "self",
        "static",
        "parent",
        "App",
        "Arr",
        "Auth",
        "Cache",
        "Carbon",
        "Config",
        "Cookie",
        "Crypt",
        "Event",
        "File",
        "Gate",
        "Hash",
        "Http",
        "Lang",
        "Log",
        "Mail",
        "Notification",
        "Queue",
        "Redirect",
        "Request",
        "Response",
        "Route",
        "Schema",
        "Session",
        "Storage",
        "Str",
        "URL",
        "Validator",
        "View",
    }
)
NON_MODEL_SUFFIXES = ("Request", "Resource", "Collection", "Enum", "Facade", "Helper")

MASS_ASSIGNMENT_MIN_FIELDS = 3
REQUEST_SOURCES = ("$request->", "request(", "$request[")


def is_model_like(receiver: Optional[str]) -> bool:
    """True if a static-call receiver looks like a model class or the DB facade."""
    if not receiver:
        return False
    short = receiver.rsplit("\\", 1)[-1]
    if short == DB_FACADE:
        return True
    return is_pascal_case(short) and short not in NON_MODEL_CLASSES and not short.endswith(NON_MODEL_SUFFIXES)


def is_query_start(call: CallNode) -> bool:
    """A static call that begins (or is) a database query: User::where(), DB::table()."""
    if call.kind is not CallKind.STATIC or not is_model_like(call.receiver):
        return False
    if call.short_receiver == DB_FACADE:
        return call.name != "raw"
    return call.name in QUERY_STARTERS or call.name.startswith("where")


def executes_query(call: CallNode) -> bool:
    """
    True if the call is the first point in its chain that hits the database.

    ``User::find(1)`` and ``$user->posts()->where(...)->get()`` qualify;
    ``$request->get('q')`` (no builder in the chain), ``collect($x)->first()``
    and ``->get()->pluck()``'s pluck (already executed) do not.
    """
    if call.kind is CallKind.STATIC:
        return is_model_like(call.receiver) and (
            call.name in QUERY_TERMINALS or (call.short_receiver == DB_FACADE and call.name in RAW_DB_METHODS)
        )
    if call.kind is not CallKind.METHOD or call.name not in QUERY_TERMINALS:
        return False
    if len(call.chain) < 2 or call.root_kind is CallKind.FUNCTION:
        return False
    if call.chain[0] in COLLECTION_METHODS:
        return False
    if call.root_kind is CallKind.STATIC and not is_model_like(call.root):
        return False
    return not any(name in QUERY_TERMINALS for name in call.chain[:-1])


class RawSqlRule(Rule):
    """Flags raw SQL through the DB facade and *Raw() builder methods."""

    id = "raw-sql"
    name = "Raw SQL query"
    description = "Prefer Eloquent over the query builder and raw SQL queries."
    remediation = "Express the query with Eloquent relationships, scopes and builder methods."

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        found: list[Violation] = []
        for call in unit.iter_calls():
            if call.kind is CallKind.STATIC and call.short_receiver == DB_FACADE and call.name in RAW_DB_METHODS:
                message = f"Raw SQL through DB::{call.name}(); prefer Eloquent."
            elif call.kind in (CallKind.METHOD, CallKind.STATIC) and call.name in RAW_BUILDER_METHODS:
                message = f"Raw SQL fragment in {call.name}(); prefer Eloquent builder methods."
            else:
                continue
            found.append(self.violation(unit, call.line, message, column=call.column, snippet=call.text))
        return found


class NPlusOneQueryRule(Rule):
    """Flags queries executed inside loop bodies (the N + 1 query problem)."""

    id = "n-plus-one-query"
    name = "Query inside loop"
    description = "Do not execute queries in loops; eager load relationships instead."
    remediation = "Load the data once before the loop, e.g. Model::with('relation')->get()."

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        return [
            self.violation(
                unit,
                call.line,
                f"'{call.name}()' runs a query on every loop iteration; eager load with with() before the loop.",
                column=call.column,
                snippet=call.text,
            )
            for call in unit.iter_calls()
            if call.in_loop and executes_query(call)
        ]


class PreferMassAssignmentRule(Rule):
    """Flags methods that copy request fields onto a model one property at a time."""

    id = "prefer-mass-assignment"
    name = "Field-by-field assignment"
    description = "Use mass assignment instead of assigning request fields one by one."
    remediation = "Use $model->fill($request->validated()) or Model::create($request->validated())."

    def visit_method(
        self,
        method: MethodNode,
        cls: Optional[ClassNode],
        unit: SourceUnit,
        config: Config,
    ) -> Iterable[Violation]:
        copied = [
            assignment
            for assignment in method.assignments
            if assignment.target_kind == "property"
            and not assignment.target.startswith("$this->")
            and any(source in assignment.value for source in REQUEST_SOURCES)
        ]
        if len(copied) < MASS_ASSIGNMENT_MIN_FIELDS:
            return []
        first = copied[0]
        return [
            self.violation(
                unit,
                first.line,
                f"'{method.name}' assigns {len(copied)} request fields one by one; use mass assignment.",
                column=first.column,
            )
        ]
