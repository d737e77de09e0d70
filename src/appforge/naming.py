"""Naming helpers shared by the builders (ids, labels, plurals)."""

from __future__ import annotations

import re
import uuid

_WORD_SPLIT = re.compile(r"[^A-Za-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _words(value: str) -> list[str]:
    value = _CAMEL_BOUNDARY.sub(" ", value or "")
    return [w for w in _WORD_SPLIT.split(value) if w]


def title_case(value: str) -> str:
    parts = _words(value)
    return " ".join(p[:1].upper() + p[1:] for p in parts) if parts else value


def kebab_case(value: str) -> str:
    return "-".join(w.lower() for w in _words(value))


def camel_case(value: str) -> str:
    parts = [w.lower() for w in _words(value)]
    if not parts:
        return ""
    return parts[0] + "".join(p[:1].upper() + p[1:] for p in parts[1:])


def pluralize(word: str) -> str:
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.lower().endswith(("sses", "xes", "ches", "shes", "zes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def slug_id(name: str) -> str:
    """App id: kebab slug plus an 8-char random suffix."""
    base = kebab_case(name) or "app"
    return f"{base}-{uuid.uuid4().hex[:8]}"
