"""Jinja rendering for email subjects and bodies inside workflow actions.

Templates run in a locked sandbox: no attribute access, no callables and
only a short list of formatting filters.
"""

from __future__ import annotations

from typing import Any, Iterable, Tuple

from jinja2 import StrictUndefined, TemplateSyntaxError, Undefined, meta
from jinja2.sandbox import ImmutableSandboxedEnvironment

FORMAT_FILTERS = frozenset(
    ("default", "lower", "upper", "title", "capitalize", "trim", "replace", "round", "length", "join", "int", "float")
)
VALUE_TESTS = frozenset(("defined", "undefined", "none", "equalto"))


class _LockedSandbox(ImmutableSandboxedEnvironment):
    def is_safe_attribute(self, obj, attr, value) -> bool:
        return False

    def is_safe_callable(self, obj) -> bool:
        return False


def _only(mapping: dict, allowed: frozenset) -> dict:
    return {name: fn for name, fn in mapping.items() if name in allowed}


def _env(strict: bool) -> _LockedSandbox:
    env = _LockedSandbox(autoescape=False, undefined=StrictUndefined if strict else Undefined)
    env.globals = {}
    env.filters = _only(env.filters, FORMAT_FILTERS)
    env.tests = _only(env.tests, VALUE_TESTS)
    return env


def _plain(value: Any) -> Any:
    """Reduce workflow context values to JSON-like data before rendering."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(key): _plain(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_plain(val) for val in value]
    return str(value)


def undeclared_variables(template_text: str | None) -> set[str]:
    if not template_text:
        return set()
    return set(meta.find_undeclared_variables(_env(strict=False).parse(template_text)))


def template_syntax_errors(templates: Iterable[Tuple[str, str | None]]) -> list[dict]:
    """Parse each `(label, text)` pair and report syntax errors; nothing is rendered."""
    env = _env(strict=False)
    errors: list[dict] = []
    for label, source in templates:
        if not isinstance(source, str) or not source:
            continue
        try:
            env.parse(source)
        except TemplateSyntaxError as exc:
            errors.append({"label": label, "message": f"{label}: {exc.message}", "line": exc.lineno or 1})
    return errors


def render_template(text: str | None, context: dict[str, Any] | None, strict: bool = True) -> str:
    return _env(strict=strict).from_string(text or "").render(_plain(context or {}) or {})
