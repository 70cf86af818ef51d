# Source model: immutable, tagged-variant structural nodes that rules match against.
#
# The builder (larastyle.builder) is the only producer. Every collection is a
# tuple and every node is a frozen dataclass, so a SourceUnit cannot change
# once analysis starts.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional


class CallKind(str, Enum):
    FUNCTION = "function"  # env('APP_KEY')
    METHOD = "method"  # $user->posts()
    STATIC = "static"  # User::where(...)
    NEW = "new"  # new User()


class ClassKind(str, Enum):
    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"
    ENUM = "enum"


class ActionKind(str, Enum):
    CLOSURE = "closure"  # Route::get('/', function () { ... })
    CONTROLLER = "controller"  # [UserController::class, 'index'] or UserController::class
    STRING = "string"  # 'UserController@index'
    OTHER = "other"


@dataclass(frozen=True)
class Argument:
    """One call argument: raw text, node type, and the literal value for plain strings."""

    text: str
    node_type: str
    literal: Optional[str] = None


@dataclass(frozen=True)
class CallNode:
    """
    A call expression.

    ``chain`` lists the fluent method names from the root of the expression up
    to and including this call, so ``User::where(...)->first()`` has
    ``chain == ("where", "first")``, ``root == "User"`` and ``root_kind ==
    CallKind.STATIC``. ``receiver`` is the immediate object or scope text.
    """

    kind: CallKind
    name: str
    line: int
    column: int
    text: str
    receiver: Optional[str] = None
    chain: tuple[str, ...] = ()
    root: Optional[str] = None
    root_kind: Optional[CallKind] = None
    arguments: tuple[Argument, ...] = ()
    in_loop: bool = False

    @property
    def short_receiver(self) -> Optional[str]:
        """Receiver without namespace qualification (``\\Illuminate\\Support\\Facades\\DB`` -> ``DB``)."""
        if self.receiver is None:
            return None
        return self.receiver.rsplit("\\", 1)[-1]


@dataclass(frozen=True)
class Parameter:
    name: str
    type_name: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    """``target = value``; target_kind is "variable", "property" or "other"."""

    target: str
    target_kind: str
    value: str
    line: int
    column: int


@dataclass(frozen=True)
class VariableRef:
    name: str  # without the leading "$"
    line: int
    column: int


@dataclass(frozen=True)
class MethodNode:
    """A class method, or a top-level function when ``class_name`` is None."""

    name: str
    line: int
    column: int
    end_line: int
    class_name: Optional[str] = None
    parameters: tuple[Parameter, ...] = ()
    calls: tuple[CallNode, ...] = ()
    assignments: tuple[Assignment, ...] = ()
    variables: tuple[VariableRef, ...] = ()
    statement_count: int = 0

    @property
    def is_magic(self) -> bool:
        return self.name.startswith("__")

    def parameter(self, name: str) -> Optional[Parameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


@dataclass(frozen=True)
class ClassNode:
    name: str
    kind: ClassKind
    line: int
    column: int
    namespace: Optional[str] = None
    extends: tuple[str, ...] = ()
    implements: tuple[str, ...] = ()
    methods: tuple[MethodNode, ...] = ()

    @property
    def qualified_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}\\{self.name}"
        return self.name

    @property
    def is_controller(self) -> bool:
        if self.kind is not ClassKind.CLASS:
            return False
        return self.name.endswith("Controller") or any(
            base.rsplit("\\", 1)[-1] == "Controller" for base in self.extends
        )

    @property
    def is_model(self) -> bool:
        if self.kind is not ClassKind.CLASS:
            return False
        bases = {base.rsplit("\\", 1)[-1] for base in self.extends}
        if bases & MODEL_BASE_CLASSES:
            return True
        return bool(self.namespace) and self.namespace.split("\\")[-1] == "Models" and bool(self.extends)


# Eloquent base classes a model can extend directly.
MODEL_BASE_CLASSES = frozenset({"Model", "Authenticatable", "Pivot", "MorphPivot", "User"})


@dataclass(frozen=True)
class RouteNode:
    """A route registration such as ``Route::get('/users', [UserController::class, 'index'])``."""

    verb: str
    line: int
    column: int
    uri: Optional[str] = None
    name: Optional[str] = None
    action_kind: Optional[ActionKind] = None
    action: Optional[str] = None


@dataclass(frozen=True)
class SourceUnit:
    """
    Structural representation of one PHP file.

    ``calls``, ``assignments`` and ``variables`` hold what sits outside any
    method or function body (route files, config files, closures at file
    scope); everything inside a body belongs to its MethodNode.

    ``path`` is the reported path, relative to the scan target. ``origin``
    is where the file sits in the project (relative to the Laravel project
    root when one is found, absolute otherwise); directory membership
    checks use it so that scanning ``config/`` directly still knows the
    files are config files.
    """

    path: Path
    line_count: int = 0
    origin: Optional[Path] = None
    classes: tuple[ClassNode, ...] = ()
    functions: tuple[MethodNode, ...] = ()
    routes: tuple[RouteNode, ...] = ()
    calls: tuple[CallNode, ...] = ()
    assignments: tuple[Assignment, ...] = ()
    variables: tuple[VariableRef, ...] = ()

    def iter_methods(self) -> Iterator[tuple[Optional[ClassNode], MethodNode]]:
        """Yield (enclosing class or None, method) for every method and function."""
        for cls in self.classes:
            for method in cls.methods:
                yield cls, method
        for func in self.functions:
            yield None, func

    def iter_calls(self) -> Iterator[CallNode]:
        """Every call in the file, each exactly once."""
        yield from self.calls
        for _, method in self.iter_methods():
            yield from method.calls

    def iter_variables(self) -> Iterator[VariableRef]:
        yield from self.variables
        for _, method in self.iter_methods():
            yield from method.variables

    def is_under(self, directories: tuple[str, ...] | frozenset[str]) -> bool:
        """True if any parent directory of this unit's file is named in ``directories``."""
        where = self.origin if self.origin is not None else self.path
        return any(part in directories for part in where.parts[:-1])
