"""Sidebar, navbar, rules and default page for a generated app.

Pages tagged with a `surface` (customer, provider, patient, staff) get their
own navigation tree; untagged pages belong to the admin surface.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List

from entity_inference import feature_ids

SURFACES = ("admin", "staff", "customer", "provider", "patient")

GROUP_ORDER = ("main", "data", "views", "reports", "settings")
GROUP_LABELS = {"data": "Data", "views": "Views", "reports": "Reports", "settings": "Settings"}

PAGE_TYPE_ICONS: Dict[str, str] = {
    "list": "📋",
    "detail": "📄",
    "form": "📝",
    "dashboard": "📊",
    "calendar": "📅",
    "kanban": "📌",
    "table": "📊",
    "gallery": "🖼️",
    "timeline": "📈",
    "chat": "💬",
    "settings": "⚙️",
    "custom": "📄",
}

_SURFACE_PATTERNS = {
    "customer": [
        r"\b(customers?|clients?|guests?|members?|tenants?)\s+(can|should|will|need to|are able to|be able to)\b",
        r"\b(online|web)\s*(ordering|booking|reservation|appointment|purchase|shop)",
        r"\b(browse|view|see)\s+(the\s+)?(menu|catalog|products?|services?|items?)\b",
        r"\b(checkout|check out|pay online|online payment)\b",
        r"\b(track|tracking)\s+(their\s+)?(order|status|delivery|shipment)\b",
        r"\b(customers?|clients?|tenants?)\s*(portal|app|interface|access)\b",
        r"\b(place|make|submit)\s+(an?\s+)?(orders?|bookings?|reservations?)\b",
        r"\bself[- ]?service\b",
        r"\b(two[- ]?sided|customer[- ]?facing)\b",
    ],
    "provider": [
        r"\b(providers?|doctors?|therapists?|physicians?|nurses?|clinicians?)\s+(can|should|will|need to|view|create|manage)\b",
        r"\b(provider|doctor|therapist)\s*(portal|app|interface|dashboard|view)\b",
        r"\bprovider[- ]?facing\b",
        r"\b(treatment|clinical|soap)\s*(notes?|records?)\b",
        r"\b(assigned|my)\s*patients?\b",
    ],
    "patient": [
        r"\bpatients?\s+(can|should|will|need to|are able to|be able to|view|book|see)\b",
        r"\bpatient\s*(portal|app|interface|dashboard|view|access)\b",
        r"\bpatient[- ]?facing\b",
        r"\b(view|see|access).{0,15}(treatment|medical|health)\s*(notes?|records?|history)\b",
        r"\b(message|contact).{0,15}(care team|doctor|provider|therapist)\b",
        r"\b(intake|consent)\s*forms?\b",
    ],
    "staff": [
        r"\b(staff|employees?|technicians?|workers?)\s+(can|should|will|need to|view|manage)\b",
        r"\b(staff|employee|technician)\s*(portal|app|view)\b",
    ],
}


def detect_surfaces(text: str | None, explicit: Iterable[str] | None = None) -> list[str]:
    """Audience surfaces an app needs; admin always comes first."""
    found = ["admin"]
    wanted = {s for s in explicit or [] if s in SURFACES}
    lowered = text or ""
    for surface, patterns in _SURFACE_PATTERNS.items():
        if surface in wanted or any(re.search(p, lowered, re.IGNORECASE) for p in patterns):
            wanted.add(surface)
    # a patient portal replaces the generic customer portal
    if "patient" in wanted:
        wanted.discard("customer")
    for surface in SURFACES[1:]:
        if surface in wanted:
            found.append(surface)
    return found


def page_surface(page: dict) -> str:
    surface = page.get("surface")
    return surface if surface in SURFACES else "admin"


def _infer_group(page: dict, entities: List[dict]) -> str:
    page_type = page.get("type")
    page_id = page.get("id") if isinstance(page.get("id"), str) else ""
    if page_type == "dashboard" or page_id == "dashboard":
        return "main"
    if page_type in ("settings", "profile") or "settings" in page_id:
        return "settings"
    if page_type in ("report", "chart") or "report" in page_id:
        return "reports"
    if page_type in ("calendar", "kanban", "timeline", "gallery"):
        return "views"
    if page_type == "list" and page.get("entity"):
        return "main" if entities and entities[0].get("id") == page.get("entity") else "data"
    return "main"


def _nav(page: dict) -> dict:
    nav = page.get("navigation")
    return nav if isinstance(nav, dict) else {}


def _nav_order(page: dict) -> float:
    order = _nav(page).get("order", 99)
    return order if isinstance(order, (int, float)) and not isinstance(order, bool) else 99


def _menu_item(page: dict, entities_by_id: Dict[str, dict]) -> dict:
    entity_ref = page.get("entity")
    entity = entities_by_id.get(entity_ref) if isinstance(entity_ref, str) else None
    page_type = page.get("type") if isinstance(page.get("type"), str) else ""
    return {
        "pageId": page["id"],
        "label": page.get("name") or page["id"],
        "icon": page.get("icon") or (entity or {}).get("icon") or PAGE_TYPE_ICONS.get(page_type, "📄"),
        "route": page.get("route"),
    }


def build_sidebar_groups(pages: List[dict], entities: List[dict]) -> list[dict]:
    grouped: Dict[str, list] = {}
    for page in pages:
        if not isinstance(page.get("id"), str):
            continue
        nav = _nav(page)
        if nav.get("showInSidebar") is False:
            continue
        group = nav.get("group") if isinstance(nav.get("group"), str) and nav["group"] else _infer_group(page, entities)
        grouped.setdefault(group, []).append(page)
    entities_by_id = {e["id"]: e for e in entities if isinstance(e.get("id"), str)}
    groups = []
    for group_id in GROUP_ORDER + tuple(g for g in grouped if g not in GROUP_ORDER):
        members = grouped.get(group_id)
        if not members:
            continue
        members.sort(key=_nav_order)
        group = {"id": group_id, "items": [_menu_item(p, entities_by_id) for p in members]}
        if group_id in GROUP_LABELS:
            group["label"] = GROUP_LABELS[group_id]
            group["collapsible"] = group_id != "data" or len(members) > 4
        groups.append(group)
    return groups


def build_rules(pages: List[dict]) -> list[dict]:
    rules = []
    for page in pages:
        rules.append({"id": f"nav-to-{page['id']}", "from": "*", "to": page["id"], "trigger": "link"})
        if page.get("type") in ("detail", "form"):
            list_page = next((p for p in pages if p.get("type") == "list" and p.get("entity") == page.get("entity")), None)
            if list_page:
                rules.append({"id": f"back-from-{page['id']}", "from": page["id"], "to": list_page["id"], "trigger": "button"})
    return rules


def determine_default_page(pages: List[dict]) -> str:
    for page in pages:
        if page.get("type") == "dashboard" or page.get("id") == "dashboard":
            return page["id"]
    for page in pages:
        if page.get("type") == "list":
            return page["id"]
    return pages[0]["id"] if pages else "home"


def _footer_items(pages: List[dict]) -> list[dict]:
    items = []
    if any(p.get("type") == "settings" for p in pages):
        items.append({"pageId": "settings", "label": "Settings", "icon": "⚙️"})
    items.append({"action": "open-help", "label": "Help", "icon": "❓"})
    items.append({"action": "logout", "label": "Log Out", "icon": "🚪"})
    return items


def _tree(pages: List[dict], entities: List[dict], features: Any, with_actions: bool) -> dict:
    groups = build_sidebar_groups(pages, entities)
    ids = set(feature_ids(features))
    return {
        "sidebar": {
            "enabled": True,
            "position": "left",
            "collapsible": True,
            "width": "256px",
            "groups": groups,
            "items": [item for group in groups for item in group["items"]],
            "footerItems": _footer_items(pages),
        },
        "navbar": {
            "enabled": True,
            "showLogo": True,
            "showSearch": any(isinstance(e.get("displayConfig"), dict) and e["displayConfig"].get("searchFields") for e in entities),
            "showNotifications": bool(ids & {"notifications", "reminders"}),
            "showUserMenu": True,
            "actions": [
                {"id": f"quick-add-{e['id']}", "label": f"Add {e.get('name')}", "icon": "+", "action": f"navigate-{e['id']}-form"}
                for e in entities[:2]
            ]
            if with_actions
            else [],
        },
        "breadcrumbs": {"enabled": True, "showHome": True, "separator": "/"},
        "rules": build_rules(pages),
        "defaultPage": determine_default_page(pages),
    }


def build(pages: List[dict], entities: List[dict], features: Any = None) -> dict:
    """Navigation for the admin surface (all untagged pages)."""
    admin_pages = [p for p in pages if page_surface(p) == "admin"]
    return _tree(admin_pages or pages, entities, features, True)


def build_surface_navigation(pages: List[dict], entities: List[dict], features: Any = None) -> dict:
    """One navigation tree per surface present in `pages`."""
    out: Dict[str, dict] = {}
    for surface in SURFACES:
        members = [p for p in pages if page_surface(p) == surface]
        if not members:
            continue
        out[surface] = _tree(members, entities, features, surface == "admin")
    return out


def generate_breadcrumbs(page_id: str, pages: List[dict]) -> list[dict]:
    page = next((p for p in pages if p.get("id") == page_id), None)
    if page is None:
        return []
    crumbs = [{"label": "Home", "pageId": determine_default_page(pages)}]
    parent_id = (page.get("navigation") or {}).get("parentPageId")
    parent = next((p for p in pages if p.get("id") == parent_id), None) if parent_id else None
    if parent:
        crumbs.append({"label": parent.get("name"), "pageId": parent["id"]})
    if page.get("type") in ("detail", "form") and page.get("entity"):
        list_page = next((p for p in pages if p.get("type") == "list" and p.get("entity") == page["entity"]), None)
        if list_page and list_page["id"] != parent_id:
            crumbs.append({"label": list_page.get("name"), "pageId": list_page["id"]})
    crumbs.append({"label": page.get("name")})
    return crumbs
