from __future__ import annotations

import json
import re
from typing import Any, Dict

TOKEN_RE = re.compile(r"\{(\w+(?:\.\w+)*)\}")

_MISSING = object()


def _walk(root: Any, path: str) -> Any:
    current = root
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def stringify(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def interpolate(template: Any, context: dict | None) -> Any:
    """Replace `{path.to.value}` tokens; unresolved tokens stay as written."""
    if not isinstance(template, str):
        return template

    def _sub(match: re.Match) -> str:
        path = match.group(1)
        value = _walk(context or {}, path)
        if value is _MISSING:
            value = _walk((context or {}).get("variables") or {}, path)
        if value is _MISSING:
            return match.group(0)
        return stringify(value)

    return TOKEN_RE.sub(_sub, template)


def resolve_value(value: Any, context: dict | None) -> Any:
    return interpolate(value, context) if isinstance(value, str) else value


def interpolate_mapping(payload: Any, context: dict | None) -> Any:
    """Interpolate the top-level string values of a mapping."""
    if not isinstance(payload, dict):
        return payload
    return {key: resolve_value(val, context) for key, val in payload.items()}


def resolve_data(source: str | None, context: dict | None) -> Dict[str, Any]:
    context = context or {}
    if source == "current_data":
        return dict(context.get("currentData") or {})
    if source == "variables":
        return dict(context.get("variables") or {})
    return dict(context.get("formData") or {})
