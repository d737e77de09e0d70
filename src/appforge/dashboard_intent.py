"""Dashboard intent: section roles, priorities, time scopes and validation.

A dashboard reads as a narrative, Now -> Work -> Context. Section order is
canonical (today, in-progress, upcoming, summary, history), at most two
sections are primary, and only the actionable roles carry actions.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List

ROLE_ORDER: Dict[str, int] = {
    "today": 0,
    "in-progress": 1,
    "upcoming": 2,
    "summary": 3,
    "history": 4,
}

PRIORITY_ORDER: Dict[str, int] = {
    "primary": 0,
    "secondary": 1,
    "tertiary": 2,
}

ACTIONABLE_ROLES = ("today", "in-progress", "upcoming")

MAX_PRIMARY_SECTIONS = 2

TIME_SCOPES = ("now", "today", "this-week", "this-month", "all-time")

TIME_SCOPE_LABELS = {
    "now": "Right Now",
    "today": "Today",
    "this-week": "This Week",
    "this-month": "This Month",
    "all-time": "All Time",
}

TIME_SCOPE_SHORT_LABELS = {
    "now": "Now",
    "today": "Today",
    "this-week": "Week",
    "this-month": "Month",
    "all-time": "Total",
}

ACTIVE_STATUSES = {"active", "in_progress", "in-progress", "started", "running", "open"}
PENDING_STATUSES = {"pending", "waiting", "queued", "scheduled", "new", "draft"}
OVERDUE_STATUSES = {"overdue", "late", "expired", "past_due", "past-due"}


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _aligned_now(value: datetime, now: datetime | None) -> datetime:
    if now is None:
        now = datetime.now(value.tzinfo) if value.tzinfo else datetime.now()
    elif value.tzinfo and not now.tzinfo:
        now = now.replace(tzinfo=value.tzinfo)
    elif now.tzinfo and not value.tzinfo:
        now = now.replace(tzinfo=None)
    return now


def matches_time_scope(value: Any, scope: str, now: datetime | None = None) -> bool:
    """Pure predicate: does a date value fall in the time scope relative to now."""
    if scope == "all-time":
        return True
    moment = _parse_datetime(value)
    if moment is None:
        return False
    now = _aligned_now(moment, now)
    if scope == "now":
        return now - timedelta(hours=1) <= moment <= now
    if scope == "today":
        return moment.date() == now.date()
    if scope == "this-week":
        # Weeks start on Sunday.
        start = (now - timedelta(days=(now.weekday() + 1) % 7)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        return start <= moment < start + timedelta(days=7)
    if scope == "this-month":
        return moment.year == now.year and moment.month == now.month
    return False


def filter_by_time_scope(
    items: Iterable[dict],
    scope: str,
    date_field: str = "createdAt",
    now: datetime | None = None,
) -> list[dict]:
    out = []
    for item in items:
        value = item.get(date_field) if isinstance(item, dict) else None
        if not value:
            if scope == "all-time":
                out.append(item)
            continue
        if matches_time_scope(value, scope, now):
            out.append(item)
    return out


def _has_status(item: dict, statuses: set[str]) -> bool:
    status = item.get("status") or item.get("state")
    return isinstance(status, str) and status.lower() in statuses


def should_show_action(action: dict, records: List[dict]) -> bool:
    rule = action.get("visibilityRule") or "always"
    if rule == "if-active":
        return any(_has_status(r, ACTIVE_STATUSES) for r in records)
    if rule == "if-pending":
        return any(_has_status(r, PENDING_STATUSES) for r in records)
    if rule == "if-overdue":
        return any(_has_status(r, OVERDUE_STATUSES) for r in records)
    if rule == "if-empty":
        return len(records) == 0
    return True


def filter_visible_actions(actions: List[dict], records: List[dict]) -> list[dict]:
    return [a for a in actions if should_show_action(a, records)]


def can_have_actions(role: str) -> bool:
    return role in ACTIONABLE_ROLES


def validate_section(section: dict) -> dict:
    normalized = dict(section)
    if not can_have_actions(normalized.get("role")):
        normalized.pop("actions", None)
    return normalized


def sort_sections(sections: List[dict]) -> list[dict]:
    return sorted(
        sections,
        key=lambda s: (ROLE_ORDER.get(s.get("role"), 99), PRIORITY_ORDER.get(s.get("priority"), 99)),
    )


def validate_dashboard_intent(intent: dict) -> dict:
    """Return a canonical copy of a composed or externally supplied intent."""
    sections = sort_sections([validate_section(s) for s in intent.get("sections") or []])

    if sections and sections[0].get("role") == "summary" and not any(s.get("role") == "today" for s in sections):
        swap = next((i for i, s in enumerate(sections) if s.get("role") != "summary"), None)
        if swap:
            sections[0], sections[swap] = sections[swap], sections[0]

    primary_count = 0
    constrained = []
    for section in sections:
        if section.get("priority") == "primary":
            primary_count += 1
            if primary_count > MAX_PRIMARY_SECTIONS:
                section = dict(section, priority="secondary")
        constrained.append(section)

    out = dict(intent)
    out["sections"] = constrained
    return out


def format_metric_label(metric: dict, include_time_scope: bool = False) -> str:
    scope = metric.get("timeScope") or "all-time"
    if not include_time_scope or scope == "all-time":
        return metric.get("label") or ""
    return f"{metric.get('label')} ({TIME_SCOPE_SHORT_LABELS.get(scope, scope)})"


def infer_layout_hint(section: dict) -> str:
    if section.get("layoutHint"):
        return section["layoutHint"]
    if section.get("metrics"):
        return "stats-row"
    if section.get("listEntity") and section.get("role") == "history":
        return "data-table"
    return "card-list"
