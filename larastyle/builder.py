# Source model builder: turn a parsed PHP file into an immutable SourceUnit.
#
# Only the shapes the rules need are extracted (classes, methods, calls,
# assignments, variable reads, route registrations); no name resolution or
# type inference happens here.

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional

from tree_sitter import Node as TSNode
from tree_sitter import Parser

from larastyle.context import FileContext, create_context, get_line_col, get_source_span, walk
from larastyle.errors import ParseError
from larastyle.findings.models import PARSE_ERROR_ID, Location, Severity, Violation
from larastyle.model import (
    ActionKind,
    Argument,
    Assignment,
    CallKind,
    CallNode,
    ClassKind,
    ClassNode,
    MethodNode,
    Parameter,
    RouteNode,
    SourceUnit,
    VariableRef,
)
from larastyle.traversal import find_php_files, find_project_root

logger = logging.getLogger(__name__)

CLASS_DECLARATIONS = {
    "class_declaration": ClassKind.CLASS,
    "interface_declaration": ClassKind.INTERFACE,
    "trait_declaration": ClassKind.TRAIT,
    "enum_declaration": ClassKind.ENUM,
}
# `new class extends Migration { ... }`; older grammars use the long name
ANONYMOUS_CLASSES = frozenset({"anonymous_class", "anonymous_class_creation_expression"})
ANONYMOUS_CLASS_NAME = "class@anonymous"

FUNCTION_DECLARATIONS = frozenset({"method_declaration", "function_definition"})
CLOSURES = frozenset({"anonymous_function", "anonymous_function_creation_expression", "arrow_function"})
MEMBER_CALLS = frozenset({"member_call_expression", "nullsafe_member_call_expression"})
CALL_EXPRESSIONS = MEMBER_CALLS | {
    "function_call_expression",
    "scoped_call_expression",
    "object_creation_expression",
}
LOOPS = frozenset({"foreach_statement", "for_statement", "while_statement", "do_statement"})
NAME_TYPES = frozenset({"name", "qualified_name", "relative_name"})
STRING_LITERALS = frozenset({"string", "encapsed_string"})
DECLARATION_BODIES = frozenset({"declaration_list", "enum_declaration_list"})

ROUTE_FACADE = "Route"
ROUTE_VERBS = frozenset(
    {
        "get",
        "post",
        "put",
        "patch",
        "delete",
        "options",
        "any",
        "match",
        "resource",
        "apiResource",
        "singleton",
        "view",
        "redirect",
        "permanentRedirect",
    }
)


def _walk_skipping(node: TSNode, skip: frozenset[str]) -> Iterator[TSNode]:
    """Like context.walk, but does not enter children whose type is in skip."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(child for child in reversed(current.children) if child.type not in skip)


def _same_node(a: Optional[TSNode], b: Optional[TSNode]) -> bool:
    if a is None or b is None:
        return False
    return (a.type, a.start_byte, a.end_byte) == (b.type, b.start_byte, b.end_byte)


def _end_line(node: TSNode) -> int:
    return node.end_point[0] + 1


def _short_name(name: str) -> str:
    return name.lstrip("\\").rsplit("\\", 1)[-1]


class _UnitBuilder:
    """Single-use builder over one FileContext."""

    def __init__(self, context: FileContext) -> None:
        self.context = context
        self.namespace: Optional[str] = None
        self.classes: list[ClassNode] = []
        self.functions: list[MethodNode] = []

    def text(self, node: Optional[TSNode]) -> str:
        if node is None:
            return ""
        return get_source_span(self.context, node)

    def build(self) -> SourceUnit:
        root = self.context.root_node
        self._scan_declarations(root)

        calls, assignments, variables, _ = self._collect(root, skip=FUNCTION_DECLARATIONS)
        routes = tuple(self._routes(root))
        source = self.context.source
        line_count = source.count(b"\n") + (0 if source.endswith(b"\n") or not source else 1)

        unit = SourceUnit(
            path=self.context.display_path,
            line_count=line_count,
            origin=self.context.path,
            classes=tuple(self.classes),
            functions=tuple(self.functions),
            routes=routes,
            calls=calls,
            assignments=assignments,
            variables=variables,
        )
        logger.debug(
            "Built unit %s: %d class(es), %d function(s), %d route(s), %d top-level call(s)",
            unit.path,
            len(unit.classes),
            len(unit.functions),
            len(unit.routes),
            len(unit.calls),
        )
        return unit

    # -- declarations -------------------------------------------------------

    def _scan_declarations(self, node: TSNode) -> None:
        """Collect classes and top-level functions, descending through statements."""
        # worklist in document order; popped from the end
        pending = list(reversed(node.named_children))
        while pending:
            child = pending.pop()
            if child.type == "namespace_definition":
                self.namespace = self.text(child.child_by_field_name("name")) or None
                body = child.child_by_field_name("body")
                if body is not None:
                    pending.extend(reversed(body.named_children))
            elif child.type in CLASS_DECLARATIONS:
                self.classes.append(self._build_class(child, CLASS_DECLARATIONS[child.type]))
            elif child.type in ANONYMOUS_CLASSES or (
                child.type == "object_creation_expression"
                and any(c.type in DECLARATION_BODIES for c in child.children)
            ):
                self.classes.append(self._build_class(child, ClassKind.CLASS))
            elif child.type == "function_definition":
                self.functions.append(self._build_method(child, None))
            elif child.type == "method_declaration":
                # only reachable through an unexpected nesting; methods belong to classes
                continue
            else:
                # if (! function_exists('x')) { function x() {} } and friends
                pending.extend(reversed(child.named_children))

    def _build_class(self, node: TSNode, kind: ClassKind) -> ClassNode:
        name_node = node.child_by_field_name("name")
        name = self.text(name_node) if name_node is not None else ANONYMOUS_CLASS_NAME
        extends: tuple[str, ...] = ()
        implements: tuple[str, ...] = ()
        body: Optional[TSNode] = node.child_by_field_name("body")
        for child in node.children:
            if child.type == "base_clause":
                extends = self._names(child)
            elif child.type == "class_interface_clause":
                implements = self._names(child)
            elif body is None and child.type in DECLARATION_BODIES:
                body = child

        methods: tuple[MethodNode, ...] = ()
        if body is not None:
            methods = tuple(
                self._build_method(member, name)
                for member in body.named_children
                if member.type == "method_declaration"
            )

        line, col = get_line_col(node)
        return ClassNode(
            name=name,
            kind=kind,
            line=line,
            column=col,
            namespace=self.namespace,
            extends=extends,
            implements=implements,
            methods=methods,
        )

    def _names(self, clause: TSNode) -> tuple[str, ...]:
        return tuple(
            self.text(child).lstrip("\\") for child in clause.named_children if child.type in NAME_TYPES
        )

    def _build_method(self, node: TSNode, class_name: Optional[str]) -> MethodNode:
        line, col = get_line_col(node)
        body = node.child_by_field_name("body")
        if body is not None:
            calls, assignments, variables, statements = self._collect(body)
        else:
            calls, assignments, variables, statements = (), (), (), 0
        return MethodNode(
            name=self.text(node.child_by_field_name("name")),
            line=line,
            column=col,
            end_line=_end_line(node),
            class_name=class_name,
            parameters=self._parameters(node.child_by_field_name("parameters")),
            calls=calls,
            assignments=assignments,
            variables=variables,
            statement_count=statements,
        )

    def _parameters(self, node: Optional[TSNode]) -> tuple[Parameter, ...]:
        if node is None:
            return ()
        params: list[Parameter] = []
        for child in node.named_children:
            name_node = child.child_by_field_name("name")
            if name_node is None:
                continue
            type_node = child.child_by_field_name("type")
            params.append(
                Parameter(
                    name=self.text(name_node).lstrip("&.$"),
                    type_name=self.text(type_node).lstrip("?\\") if type_node is not None else None,
                )
            )
        return tuple(params)

    # -- bodies -------------------------------------------------------------

    def _collect(
        self,
        node: TSNode,
        skip: frozenset[str] = frozenset(),
    ) -> tuple[tuple[CallNode, ...], tuple[Assignment, ...], tuple[VariableRef, ...], int]:
        calls: list[CallNode] = []
        assignments: list[Assignment] = []
        variables: list[VariableRef] = []
        statements = 0
        for current in _walk_skipping(node, skip):
            kind = current.type
            if kind in CALL_EXPRESSIONS:
                call = self._call(current)
                if call is not None:
                    calls.append(call)
            elif kind == "assignment_expression":
                assignments.append(self._assignment(current))
            elif kind == "variable_name":
                line, col = get_line_col(current)
                variables.append(VariableRef(name=self.text(current).lstrip("$"), line=line, column=col))
            if kind.endswith("_statement") and kind != "compound_statement":
                statements += 1
        return tuple(calls), tuple(assignments), tuple(variables), statements

    def _assignment(self, node: TSNode) -> Assignment:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is not None and left.type == "variable_name":
            target_kind = "variable"
            target = self.text(left).lstrip("$")
        elif left is not None and left.type in ("member_access_expression", "nullsafe_member_access_expression"):
            target_kind = "property"
            target = self.text(left)
        else:
            target_kind = "other"
            target = self.text(left)
        line, col = get_line_col(node)
        return Assignment(
            target=target,
            target_kind=target_kind,
            value=self.text(right),
            line=line,
            column=col,
        )

    def _call(self, node: TSNode) -> Optional[CallNode]:
        kind = node.type
        line, col = get_line_col(node)
        common = {
            "line": line,
            "column": col,
            "text": self.text(node),
            "arguments": self._arguments(node),
            "in_loop": self._in_loop(node),
        }

        if kind == "function_call_expression":
            function = node.child_by_field_name("function")
            if function is None or function.type not in NAME_TYPES:
                return None  # $callback(), (fn () => 1)()
            name = self.text(function).lstrip("\\")
            return CallNode(
                kind=CallKind.FUNCTION,
                name=name,
                chain=(name,),
                root=name,
                root_kind=CallKind.FUNCTION,
                **common,
            )

        if kind == "scoped_call_expression":
            scope = self.text(node.child_by_field_name("scope")).lstrip("\\")
            name = self.text(node.child_by_field_name("name"))
            return CallNode(
                kind=CallKind.STATIC,
                name=name,
                receiver=scope,
                chain=(name,),
                root=scope,
                root_kind=CallKind.STATIC,
                **common,
            )

        if kind in MEMBER_CALLS:
            chain, root, root_kind = self._chain(node)
            return CallNode(
                kind=CallKind.METHOD,
                name=self.text(node.child_by_field_name("name")),
                receiver=self.text(node.child_by_field_name("object")),
                chain=chain,
                root=root,
                root_kind=root_kind,
                **common,
            )

        # object_creation_expression
        class_node = next((c for c in node.named_children if c.type in NAME_TYPES), None)
        if class_node is None:
            return None  # new class {...}, new $className
        name = self.text(class_node).lstrip("\\")
        return CallNode(kind=CallKind.NEW, name=name, root=name, root_kind=CallKind.NEW, **common)

    def _chain(self, node: TSNode) -> tuple[tuple[str, ...], Optional[str], Optional[CallKind]]:
        """Walk a fluent call chain down to its root expression."""
        names: list[str] = []
        current: Optional[TSNode] = node
        while current is not None and current.type in MEMBER_CALLS:
            names.append(self.text(current.child_by_field_name("name")))
            current = current.child_by_field_name("object")

        root: Optional[str] = self.text(current) if current is not None else None
        root_kind: Optional[CallKind] = None
        if current is not None:
            if current.type == "scoped_call_expression":
                names.append(self.text(current.child_by_field_name("name")))
                root = self.text(current.child_by_field_name("scope")).lstrip("\\")
                root_kind = CallKind.STATIC
            elif current.type == "function_call_expression":
                function = self.text(current.child_by_field_name("function")).lstrip("\\")
                names.append(function)
                root = function
                root_kind = CallKind.FUNCTION
            elif current.type == "object_creation_expression":
                class_node = next((c for c in current.named_children if c.type in NAME_TYPES), None)
                root = self.text(class_node).lstrip("\\") if class_node is not None else root
                root_kind = CallKind.NEW
        names.reverse()
        return tuple(names), root, root_kind

    def _argument_nodes(self, node: TSNode) -> list[TSNode]:
        args = node.child_by_field_name("arguments")
        if args is None:
            args = next((c for c in node.named_children if c.type == "arguments"), None)
        if args is None:
            return []
        values: list[TSNode] = []
        for arg in args.named_children:
            if arg.type != "argument" or not arg.named_children:
                continue
            # named arguments are (name, value); the value is always last
            values.append(arg.named_children[-1])
        return values

    def _arguments(self, node: TSNode) -> tuple[Argument, ...]:
        return tuple(
            Argument(text=self.text(value), node_type=value.type, literal=self._string_literal(value))
            for value in self._argument_nodes(node)
        )

    def _string_literal(self, node: TSNode) -> Optional[str]:
        """Value of a plain quoted string; None for interpolated strings and non-strings."""
        if node.type not in STRING_LITERALS:
            return None
        raw = self.text(node)
        if len(raw) < 2 or raw[0] not in "'\"" or raw[-1] != raw[0]:
            return None
        if node.type == "encapsed_string" and any(
            child.type not in ("string_content", "string_value", "escape_sequence")
            for child in node.named_children
        ):
            return None
        return raw[1:-1]

    def _in_loop(self, node: TSNode) -> bool:
        """True if node sits inside the body of a loop within its own function."""
        parent = node.parent
        while parent is not None and parent.type not in FUNCTION_DECLARATIONS:
            if parent.type in LOOPS:
                body = parent.child_by_field_name("body")
                if body is None and parent.named_children:
                    named = parent.named_children
                    body = named[0] if parent.type == "do_statement" else named[-1]
                if body is not None and body.start_byte <= node.start_byte and node.end_byte <= body.end_byte:
                    return True
            parent = parent.parent
        return False

    # -- routes -------------------------------------------------------------

    def _routes(self, root: TSNode) -> Iterator[RouteNode]:
        for node in walk_calls(root):
            if node.type == "scoped_call_expression":
                scope = node.child_by_field_name("scope")
                if _short_name(self.text(scope)) != ROUTE_FACADE:
                    continue
            elif node.type in MEMBER_CALLS:
                if not self._chain_starts_at_route(node):
                    continue
            else:
                continue
            verb = self.text(node.child_by_field_name("name"))
            if verb in ROUTE_VERBS:
                yield self._route(node, verb)

    def _chain_starts_at_route(self, node: TSNode) -> bool:
        current: Optional[TSNode] = node
        while current is not None and current.type in MEMBER_CALLS:
            current = current.child_by_field_name("object")
        if current is None or current.type != "scoped_call_expression":
            return False
        return _short_name(self.text(current.child_by_field_name("scope"))) == ROUTE_FACADE

    def _route(self, node: TSNode, verb: str) -> RouteNode:
        values = self._argument_nodes(node)
        # Route::match(['get', 'post'], '/uri', $action)
        offset = 1 if verb == "match" else 0
        uri = self._string_literal(values[offset]) if len(values) > offset else None
        action_kind: Optional[ActionKind] = None
        action: Optional[str] = None
        if len(values) > offset + 1:
            action_kind, action = self._route_action(values[offset + 1])
        line, col = get_line_col(node)
        return RouteNode(
            verb=verb,
            line=line,
            column=col,
            uri=uri,
            name=self._route_name(node),
            action_kind=action_kind,
            action=action,
        )

    def _route_action(self, node: TSNode) -> tuple[ActionKind, Optional[str]]:
        if node.type in CLOSURES:
            return ActionKind.CLOSURE, None
        if node.type == "class_constant_access_expression":
            return ActionKind.CONTROLLER, self.text(node).removesuffix("::class").lstrip("\\")
        if node.type == "array_creation_expression":
            elements = [e.named_children[-1] for e in node.named_children if e.named_children]
            if elements and elements[0].type == "class_constant_access_expression":
                controller = self.text(elements[0]).removesuffix("::class").lstrip("\\")
                method = self._string_literal(elements[1]) if len(elements) > 1 else None
                return ActionKind.CONTROLLER, f"{controller}@{method}" if method else controller
            return ActionKind.OTHER, self.text(node)
        literal = self._string_literal(node)
        if literal is not None and "@" in literal:
            return ActionKind.STRING, literal
        if literal is not None:
            return ActionKind.OTHER, literal
        return ActionKind.OTHER, self.text(node)

    def _route_name(self, node: TSNode) -> Optional[str]:
        """Find ->name('...') chained after the registration call."""
        current = node
        while current.parent is not None and current.parent.type in MEMBER_CALLS:
            parent = current.parent
            if not _same_node(parent.child_by_field_name("object"), current):
                break
            if self.text(parent.child_by_field_name("name")) == "name":
                values = self._argument_nodes(parent)
                if values:
                    return self._string_literal(values[0])
            current = parent
        return None


def walk_calls(root: TSNode) -> Iterator[TSNode]:
    """Yield every call expression node under root in document order."""
    for node in walk(root):
        if node.type in CALL_EXPRESSIONS:
            yield node


def display_path_for(path: Path, root: Optional[Path]) -> Path:
    """Path relative to root when possible, otherwise the path unchanged."""
    if root is None:
        return path
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def build_unit(context: FileContext) -> SourceUnit:
    """Build the structural model of one parsed file."""
    return _UnitBuilder(context).build()


def build_file(
    path: Path,
    root: Optional[Path] = None,
    parser: Optional[Parser] = None,
    project_root: Optional[Path] = None,
) -> SourceUnit:
    """
    Read, parse and model one PHP file.

    Reported paths are relative to root; the unit's origin is relative to
    project_root when given.

    Raises:
        ParseError: the file is unreadable or has syntax errors.
    """
    context = create_context(path, parser=parser, display_path=display_path_for(path, root))
    unit = build_unit(context)
    if project_root is not None:
        unit = replace(unit, origin=display_path_for(path, project_root))
    return unit


def parse_error_violation(error: ParseError) -> Violation:
    """Record a per-file parse failure as a diagnostic violation."""
    return Violation(
        rule_id=PARSE_ERROR_ID,
        message=f"File could not be analyzed: {error.message}",
        severity=Severity.ERROR,
        location=Location(path=error.path, line=error.line, column=error.column),
    )


def analysis_failure(path: Path, root: Optional[Path], error: Exception) -> ParseError:
    """Wrap an unexpected failure while modelling a file as a ParseError at line 1."""
    return ParseError(display_path_for(path, root), f"internal error ({type(error).__name__}: {error})")


def build_units(
    root: Path,
    ignore_dirs: Optional[frozenset[str]] = None,
) -> tuple[list[SourceUnit], list[Violation]]:
    """
    Model every PHP file under root (or the single file root).

    Returns (units, diagnostics): one unit per file that was modelled, and
    one parse-error violation per file that was not. Failures never stop
    the remaining files from being built.
    """
    root = root.resolve()
    if root.is_file():
        files, base = [root], root.parent
    else:
        files, base = find_php_files(root, ignore_dirs=ignore_dirs), root
    project_root = find_project_root(root)

    units: list[SourceUnit] = []
    diagnostics: list[Violation] = []
    for path in files:
        try:
            units.append(build_file(path, root=base, project_root=project_root))
        except ParseError as e:
            logger.warning("Skipping %s: %s", path, e.message)
            diagnostics.append(parse_error_violation(e))
        except Exception as e:
            logger.exception("Failed to model %s", path)
            diagnostics.append(parse_error_violation(analysis_failure(path, base, e)))
    return units, diagnostics
