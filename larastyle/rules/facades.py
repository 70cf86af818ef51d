# Shorter syntax detection: facade and builder calls that have a more readable helper.

from __future__ import annotations

from typing import Iterable, Optional

from larastyle.config import Config
from larastyle.findings.models import Violation
from larastyle.model import CallKind, CallNode, SourceUnit
from larastyle.rules.base import Rule

# (facade, method) -> shorter equivalent
FACADE_HELPERS = {
    ("Session", "get"): "session('key')",
    ("Session", "put"): "session(['key' => $value])",
    ("Request", "get"): "request('key')",
    ("Request", "input"): "request('key')",
    ("Redirect", "back"): "back()",
    ("Redirect", "to"): "redirect('/path')",
    ("Redirect", "route"): "to_route('name')",
    ("Carbon", "now"): "now()",
    ("Carbon", "today"): "today()",
    ("App", "make"): "app(Class::class)",
    ("View", "make"): "view('name')",
    ("Auth", "user"): "auth()->user()",
}


def _literal(call: CallNode, index: int) -> Optional[str]:
    if index >= len(call.arguments):
        return None
    return call.arguments[index].literal


def shorter_form(call: CallNode) -> Optional[str]:
    """The shorter, more readable form of call, or None if it is already short."""
    if call.kind is CallKind.STATIC:
        helper = FACADE_HELPERS.get((call.short_receiver or "", call.name))
        if helper is not None:
            return helper
    elif call.kind is not CallKind.METHOD:
        return None
    # $request->session()->get('cart')
    elif call.name == "get" and len(call.chain) >= 2 and call.chain[-2] == "session":
        return "session('key')"
    # ->where('column', '=', 1), User::where('column', '=', 1)
    if call.name in ("where", "orWhere") and len(call.arguments) == 3 and _literal(call, 1) == "=":
        return f"->{call.name}('column', $value)"
    # ->orderBy('created_at', 'desc')
    if call.name == "orderBy" and _literal(call, 0) == "created_at":
        direction = (_literal(call, 1) or "asc").lower()
        return "->latest()" if direction == "desc" else "->oldest()"
    return None


class PreferHelperRule(Rule):
    """Flags long-form facade and builder calls that have shorter Laravel helpers."""

    id = "prefer-helper"
    name = "Shorter syntax available"
    description = "Use shorter and more readable syntax where possible."
    remediation = "Session::get('cart') -> session('cart'); Redirect::back() -> back(); orderBy('created_at', 'desc') -> latest()."

    def visit_unit(self, unit: SourceUnit, config: Config) -> Iterable[Violation]:
        found: list[Violation] = []
        for call in unit.iter_calls():
            helper = shorter_form(call)
            if helper is None:
                continue
            found.append(
                self.violation(
                    unit,
                    call.line,
                    f"Use {helper} instead of '{call.text.splitlines()[0]}'.",
                    column=call.column,
                    snippet=call.text,
                )
            )
        return found
