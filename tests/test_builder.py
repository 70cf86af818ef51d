"""Tests for larastyle.builder: PHP source -> SourceUnit."""

import dataclasses
from pathlib import Path

import pytest

from larastyle import builder
from larastyle.builder import build_file, build_unit, build_units, display_path_for, parse_error_violation
from larastyle.context import FileContext
from larastyle.errors import ParseError
from larastyle.findings.models import PARSE_ERROR_ID, Severity
from larastyle.model import ActionKind, CallKind, ClassKind, Parameter
from larastyle.parser import create_parser, parse_bytes


def _unit(source: bytes, path: Path | None = None):
    """Parse source and build its SourceUnit."""
    if path is None:
        path = Path("app/Http/Controllers/UserController.php")
    tree = parse_bytes(source, parser=create_parser())
    ctx = FileContext(path=path, source=source, tree=tree)
    return build_unit(ctx)


CONTROLLER = b"""<?php

namespace App\\Http\\Controllers;

use App\\Models\\User;
use Illuminate\\Http\\Request;

class UserController extends Controller implements HasMiddleware
{
    public function index(Request $request)
    {
        $users = User::where('active', 1)->get();
        foreach ($users as $user) {
            $posts = $user->posts()->latest()->get();
        }
        return view('users.index', compact('users'));
    }

    protected function store_user(?Request $request, int $id = 0): void
    {
        $this->service->save($request->all());
    }
}
"""

ROUTES = b"""<?php

use App\\Http\\Controllers\\UserController;
use Illuminate\\Support\\Facades\\Route;

Route::get('/users', [UserController::class, 'index'])->name('users.index');
Route::post('/users', 'UserController@store');
Route::middleware('auth')->group(function () {
    Route::get('/profile', function () {
        return view('profile');
    })->name('profile');
    Route::middleware('verified')->put('/profile/{user}', [UserController::class, 'update']);
});
Route::resource('photos', PhotoController::class);
Route::match(['get', 'post'], '/search', [SearchController::class, 'show']);
"""


class TestClasses:
    def test_class_declaration(self):
        unit = _unit(CONTROLLER)
        assert len(unit.classes) == 1
        cls = unit.classes[0]
        assert cls.name == "UserController"
        assert cls.kind is ClassKind.CLASS
        assert cls.namespace == "App\\Http\\Controllers"
        assert cls.qualified_name == "App\\Http\\Controllers\\UserController"
        assert cls.extends == ("Controller",)
        assert cls.implements == ("HasMiddleware",)
        assert cls.line == 8
        assert cls.is_controller
        assert not cls.is_model

    def test_interface_trait_and_model(self):
        unit = _unit(
            b"""<?php
namespace App\\Models;

interface Billable {}

trait HasUuid {}

class Invoice extends Model {}
""",
            path=Path("app/Models/Invoice.php"),
        )
        kinds = {cls.name: cls.kind for cls in unit.classes}
        assert kinds == {"Billable": ClassKind.INTERFACE, "HasUuid": ClassKind.TRAIT, "Invoice": ClassKind.CLASS}
        invoice = next(cls for cls in unit.classes if cls.name == "Invoice")
        assert invoice.is_model
        assert not invoice.is_controller

    def test_anonymous_migration_class(self):
        unit = _unit(
            b"""<?php

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('users', function (Blueprint $table) {
            $table->id();
        });
    }
};
""",
            path=Path("database/migrations/2024_01_01_000000_create_users_table.php"),
        )
        assert [cls.name for cls in unit.classes] == ["class@anonymous"]
        assert [m.name for m in unit.classes[0].methods] == ["up"]


class TestMethods:
    def test_methods_and_parameters(self):
        cls = _unit(CONTROLLER).classes[0]
        index, store = cls.methods
        assert index.name == "index"
        assert index.class_name == "UserController"
        assert index.line == 10
        assert index.parameters == (Parameter("request", "Request"),)
        assert store.parameters == (Parameter("request", "Request"), Parameter("id", "int"))
        assert store.parameter("id") == Parameter("id", "int")
        assert store.parameter("missing") is None

    def test_statement_count(self):
        index = _unit(CONTROLLER).classes[0].methods[0]
        # two assignments, the foreach and the return
        assert index.statement_count == 4

    def test_static_call_and_chain(self):
        index = _unit(CONTROLLER).classes[0].methods[0]
        where = next(c for c in index.calls if c.name == "where")
        assert where.kind is CallKind.STATIC
        assert where.receiver == "User"
        assert where.line == 12
        assert not where.in_loop

        first_get, loop_get = [c for c in index.calls if c.name == "get"]
        assert first_get.kind is CallKind.METHOD
        assert first_get.chain == ("where", "get")
        assert first_get.root == "User"
        assert first_get.root_kind is CallKind.STATIC
        assert not first_get.in_loop

        assert loop_get.chain == ("posts", "latest", "get")
        assert loop_get.root == "$user"
        assert loop_get.root_kind is None
        assert loop_get.in_loop

    def test_function_calls_and_arguments(self):
        index = _unit(CONTROLLER).classes[0].methods[0]
        view = next(c for c in index.calls if c.name == "view")
        assert view.kind is CallKind.FUNCTION
        assert view.root_kind is CallKind.FUNCTION
        assert view.arguments[0].literal == "users.index"
        assert view.arguments[1].literal is None
        assert view.arguments[1].text == "compact('users')"

    def test_member_receiver_text(self):
        store = _unit(CONTROLLER).classes[0].methods[1]
        save = next(c for c in store.calls if c.name == "save")
        assert save.receiver == "$this->service"
        assert save.chain == ("save",)

    def test_assignments_and_variables(self):
        index = _unit(CONTROLLER).classes[0].methods[0]
        assert [(a.target, a.target_kind) for a in index.assignments] == [("users", "variable"), ("posts", "variable")]
        names = {v.name for v in index.variables}
        assert {"users", "user", "posts"} <= names

    def test_property_assignment(self):
        unit = _unit(
            b"""<?php
class ProfileController
{
    public function update($request)
    {
        $this->user->name = $request->name;
    }
}
"""
        )
        (assignment,) = unit.classes[0].methods[0].assignments
        assert assignment.target_kind == "property"
        assert assignment.target == "$this->user->name"
        assert assignment.value == "$request->name"

    def test_new_expression(self):
        unit = _unit(b"<?php\n$mailer = new \\App\\Services\\Mailer($config);\n")
        (call,) = unit.calls
        assert call.kind is CallKind.NEW
        assert call.name == "App\\Services\\Mailer"


class TestTopLevel:
    def test_helper_functions_inside_guard(self):
        unit = _unit(
            b"""<?php

if (! function_exists('money')) {
    function money($amount)
    {
        return number_format($amount, 2);
    }
}

$total = money(10);
""",
            path=Path("app/helpers.php"),
        )
        assert [f.name for f in unit.functions] == ["money"]
        assert unit.functions[0].class_name is None
        assert [c.name for c in unit.functions[0].calls] == ["number_format"]
        assert [c.name for c in unit.calls] == ["function_exists", "money"]
        assert sorted(c.name for c in unit.iter_calls()) == ["function_exists", "money", "number_format"]

    def test_iter_calls_yields_each_call_once(self):
        unit = _unit(CONTROLLER)
        assert len(list(unit.iter_calls())) == sum(len(m.calls) for _, m in unit.iter_methods()) + len(unit.calls)

    def test_line_count(self):
        assert _unit(b"<?php\n$a = 1;\n$b = 2;\n").line_count == 3
        assert _unit(b"<?php\n$a = 1;").line_count == 2

    def test_unit_is_immutable(self):
        unit = _unit(CONTROLLER)
        with pytest.raises(dataclasses.FrozenInstanceError):
            unit.path = Path("other.php")
        with pytest.raises(dataclasses.FrozenInstanceError):
            unit.classes[0].name = "Other"


class TestRoutes:
    def test_route_registrations(self):
        unit = _unit(ROUTES, path=Path("routes/web.php"))
        assert [r.verb for r in unit.routes] == ["get", "post", "get", "put", "resource", "match"]
        assert [r.line for r in unit.routes] == [6, 7, 9, 12, 14, 15]

    def test_route_details(self):
        get_users, post_users, profile, put_profile, photos, search = _unit(ROUTES).routes

        assert get_users.uri == "/users"
        assert get_users.name == "users.index"
        assert get_users.action_kind is ActionKind.CONTROLLER
        assert get_users.action == "UserController@index"

        assert post_users.action_kind is ActionKind.STRING
        assert post_users.action == "UserController@store"
        assert post_users.name is None

        assert profile.action_kind is ActionKind.CLOSURE
        assert profile.name == "profile"

        assert put_profile.uri == "/profile/{user}"
        assert put_profile.action == "UserController@update"

        assert photos.uri == "photos"
        assert photos.action == "PhotoController"

        assert search.uri == "/search"
        assert search.action == "SearchController@show"

    def test_non_route_static_calls_ignored(self):
        unit = _unit(b"<?php\nCache::get('users');\nRouter::get('/x');\n")
        assert unit.routes == ()


class TestFiles:
    def test_display_path_for(self, tmp_path):
        assert display_path_for(tmp_path / "app" / "User.php", tmp_path) == Path("app/User.php")
        assert display_path_for(Path("/elsewhere/User.php"), tmp_path) == Path("/elsewhere/User.php")
        assert display_path_for(tmp_path / "x.php", None) == tmp_path / "x.php"

    def test_build_file_relative_path(self, tmp_path):
        php_file = tmp_path / "app" / "Models" / "User.php"
        php_file.parent.mkdir(parents=True)
        php_file.write_bytes(b"<?php\nnamespace App\\Models;\n\nclass User extends Authenticatable {}\n")
        unit = build_file(php_file, root=tmp_path)
        assert unit.path == Path("app/Models/User.php")
        assert unit.classes[0].is_model

    def test_build_file_syntax_error(self, tmp_path):
        php_file = tmp_path / "broken.php"
        php_file.write_bytes(b"<?php\nclass Broken {\n    public function x( {\n")
        with pytest.raises(ParseError):
            build_file(php_file, root=tmp_path)

    def test_build_units_is_fail_soft(self, tmp_path):
        (tmp_path / "a.php").write_bytes(b"<?php\n$a = 1;\n")
        (tmp_path / "b.php").write_bytes(b"<?php\nclass Broken {\n    public function x( {\n")
        (tmp_path / "c.php").write_bytes(b"<?php\n$c = 3;\n")
        units, diagnostics = build_units(tmp_path)
        assert [u.path for u in units] == [Path("a.php"), Path("c.php")]
        assert len(diagnostics) == 1
        assert diagnostics[0].rule_id == PARSE_ERROR_ID
        assert diagnostics[0].location.path == Path("b.php")

    def test_build_units_single_file(self, tmp_path):
        php_file = tmp_path / "web.php"
        php_file.write_bytes(b"<?php\n$a = 1;\n")
        units, diagnostics = build_units(php_file)
        assert [u.path for u in units] == [Path("web.php")]
        assert diagnostics == []

    def test_parse_error_violation(self):
        violation = parse_error_violation(ParseError(Path("b.php"), "syntax error", line=3, column=5))
        assert violation.rule_id == PARSE_ERROR_ID
        assert violation.severity is Severity.ERROR
        assert violation.location.line == 3
        assert violation.location.column == 5
        assert "syntax error" in violation.message

    def test_build_units_reports_unexpected_failures(self, tmp_path, monkeypatch):
        (tmp_path / "a.php").write_bytes(b"<?php\n$a = 1;\n")
        (tmp_path / "b.php").write_bytes(b"<?php\n$b = 2;\n")
        real_build_file = builder.build_file

        def failing_build_file(path, *args, **kwargs):
            if path.name == "a.php":
                raise RecursionError("maximum recursion depth exceeded")
            return real_build_file(path, *args, **kwargs)

        monkeypatch.setattr(builder, "build_file", failing_build_file)
        units, diagnostics = build_units(tmp_path)
        assert [u.path for u in units] == [Path("b.php")]
        assert [(d.rule_id, d.location.path, d.severity) for d in diagnostics] == [
            (PARSE_ERROR_ID, Path("a.php"), Severity.ERROR)
        ]
        assert "RecursionError" in diagnostics[0].message

    def test_deep_nesting_builds(self):
        terms = " . ".join(["'a'"] * 3000)
        unit = _unit(f"<?php\n$x = {terms};\nfunction f() {{ return env('A'); }}\n".encode())
        assert [a.target for a in unit.assignments] == ["x"]
        assert [f.name for f in unit.functions] == ["f"]
        assert [c.name for c in unit.iter_calls()] == ["env"]

    def test_origin_relative_to_project_root(self, tmp_path):
        php_file = tmp_path / "config" / "app.php"
        php_file.parent.mkdir()
        php_file.write_bytes(b"<?php\nreturn [];\n")
        unit = build_file(php_file, root=tmp_path / "config", project_root=tmp_path)
        assert unit.path == Path("app.php")
        assert unit.origin == Path("config/app.php")
        assert unit.is_under(("config",))
        assert build_file(php_file, root=tmp_path / "config").origin == php_file
