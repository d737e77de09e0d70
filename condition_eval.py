"""Condition expressions for workflow actions (`field OP literal`)."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict

COMPARISON_RE = re.compile(r"(\w+)\s*(===|!==|==|!=|>=|<=|>|<)\s*(.+)")
_IDENT_RE = re.compile(r"^\w+$")
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_QUOTED_RE = re.compile(r"^['\"].*['\"]$")

_MISSING = object()


@dataclass
class ConditionEvalError(Exception):
    code: str
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base


class ConditionSchemaError(ConditionEvalError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("CONDITION_SCHEMA_ERROR", message, path)


class VarResolveError(ConditionEvalError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("CONDITION_VAR_UNRESOLVED", message, path)


class TypeErrorInCondition(ConditionEvalError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("CONDITION_TYPE_ERROR", message, path)


def condition_scope(context: dict | None) -> Dict[str, Any]:
    """Flatten a workflow context into the names a condition may reference."""
    context = context or {}
    scope: Dict[str, Any] = {}
    for key in ("formData", "currentData", "variables"):
        value = context.get(key)
        if isinstance(value, dict):
            scope.update(value)
    for key in ("recordId", "entityId"):
        if context.get(key) is not None:
            scope[key] = context[key]
    return scope


def parse_literal(raw: str) -> Any:
    text = raw.strip()
    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None
    if _QUOTED_RE.match(text) and len(text) >= 2:
        return text[1:-1]
    if text == "":
        return 0
    if _NUMBER_RE.match(text):
        number = float(text)
        return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    return text


def to_number(value: Any) -> float:
    if value is _MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        return float(text) if _NUMBER_RE.match(text) else math.nan
    return math.nan


def _strict_equal(left: Any, right: Any) -> bool:
    if left is _MISSING or right is _MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if left is None or right is None:
        return left is right
    numeric = (int, float)
    if isinstance(left, numeric) and isinstance(right, numeric):
        return float(left) == float(right)
    if type(left) is not type(right):
        return False
    return left == right


def is_truthy(value: Any) -> bool:
    if value is None or value is False or value is _MISSING:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    # containers are truthy even when empty
    return True


def _compare(op: str, left: Any, right: Any) -> bool:
    if op in ("===", "=="):
        return _strict_equal(left, right)
    if op in ("!==", "!="):
        return not _strict_equal(left, right)
    a, b = to_number(left), to_number(right)
    if op == ">":
        return a > b
    if op == ">=":
        return a >= b
    if op == "<":
        return a < b
    return a <= b


def evaluate(expr: Any, scope: Dict[str, Any]) -> bool:
    """Strict evaluation against a flattened scope; raises ConditionEvalError."""
    if not isinstance(expr, str):
        raise TypeErrorInCondition("Condition must be a string", "condition")
    text = expr.strip()
    if not text:
        raise ConditionSchemaError("Empty condition", "condition")
    if text.startswith("confirm("):
        # no dialog on the server; confirmations always proceed
        return True
    match = COMPARISON_RE.search(text)
    if match:
        field, op, raw = match.groups()
        return _compare(op, scope.get(field, _MISSING), parse_literal(raw))
    if _IDENT_RE.match(text):
        if text not in scope:
            raise VarResolveError(f"Unresolved field: {text}", text)
        return is_truthy(scope[text])
    raise ConditionSchemaError(f"Unrecognized condition: {text}", "condition")


def evaluate_condition(expr: Any, context: dict | None, fail_open: bool = True) -> bool:
    """Evaluate against a workflow context; any evaluation error yields `fail_open`."""
    try:
        return evaluate(expr, condition_scope(context))
    except ConditionEvalError:
        return fail_open
