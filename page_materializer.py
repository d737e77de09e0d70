"""Expand a schema's pages into renderable component trees (MaterializedApp).

Every builder returns a list of nodes shaped
`{id, componentId, props, children?, intent?}`; `componentId` is the key the
front-end renderer registry dispatches on.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from appforge.dashboard_intent import TIME_SCOPE_LABELS, format_metric_label, infer_layout_hint
from appforge.naming import kebab_case, singularize

from dashboard_compose import compose, find_primary_date_field
from entity_inference import feature_ids
from page_builder import entity_route

logger = logging.getLogger("appforge.page_materializer")

INTERNAL_FIELD_IDS = {"id", "createdAt", "updatedAt", "created_at", "updated_at"}
MAX_TABLE_COLUMNS = 6

PERSON_KEYWORDS = (
    "customer", "client", "member", "patient", "contact", "user", "employee", "staff", "student", "tenant",
    "guest", "visitor", "lead", "prospect", "homeowner", "caregiver", "recipient", "owner", "instructor",
    "trainer", "technician", "provider", "attendee", "participant",
)
ITEM_KEYWORDS = (
    "product", "item", "order", "service", "appointment", "booking", "invoice", "payment", "class",
    "equipment", "property", "listing", "task", "project", "job", "ticket", "reservation", "session",
    "schedule", "vehicle", "unit", "lease", "contract", "quote", "estimate", "material",
)
TABLE_KEYWORDS = (
    "invoice", "order", "payment", "product", "item", "appointment", "booking", "reservation", "job", "task",
    "lease", "contract", "quote", "estimate", "material", "equipment", "vehicle", "property", "unit",
)
# card list reads better than a grid for people
CARD_LIST_KEYWORDS = (
    "member", "client", "customer", "patient", "contact", "user", "employee", "staff", "student", "tenant", "guest",
)

INPUT_KINDS = {
    "string": "text",
    "text": "textarea",
    "number": "number",
    "boolean": "checkbox",
    "date": "date",
    "datetime": "datetime-local",
    "time": "time",
    "email": "email",
    "phone": "tel",
    "url": "url",
    "currency": "number",
    "percentage": "number",
    "richtext": "textarea",
    "enum": "select",
    "reference": "select",
    "image": "file",
    "file": "file",
    "address": "textarea",
}

COLUMN_FORMATS = {
    "date": "date",
    "datetime": "date",
    "currency": "currency",
    "phone": "phone",
    "email": "email",
    "enum": "badge",
}

COMPONENT_TYPE_MAP = {
    "page-header": "container",
    "stat-card": "card",
    "stats-grid": "container",
    "field-display": "text",
    "field-grid": "container",
    "checkbox": "input",
    "select": "input",
    "textarea": "input",
    "text-input": "input",
    "date-input": "input",
    "datetime-input": "input",
    "number-input": "input",
    "email-input": "input",
    "phone-input": "input",
    "url-input": "input",
    "file-upload": "input",
    "reference-select": "input",
    "data-table": "dataTable",
    "data-list": "list",
    "nav-list": "list",
}

PAGE_ICONS = {
    "dashboard": "📊",
    "list": "📋",
    "form": "📝",
    "detail": "📄",
    "calendar": "📅",
    "kanban": "📌",
    "table": "📊",
    "chart": "📈",
    "chat": "💬",
    "messaging": "💬",
    "settings": "⚙️",
}

SHELL_LAYOUTS = {
    "dashboard-02": {"sidebarPosition": "left", "sidebarStyle": "full", "headerStyle": "standard", "contentWidth": "contained"},
    "dashboard-03": {"sidebarPosition": "left", "sidebarStyle": "compact", "headerStyle": "prominent", "contentWidth": "full"},
    "dashboard-04": {"sidebarPosition": "left", "sidebarStyle": "full", "headerStyle": "standard", "contentWidth": "contained"},
    "dashboard-05": {"sidebarPosition": "left", "sidebarStyle": "compact", "headerStyle": "minimal", "contentWidth": "full"},
    "dashboard-06": {"sidebarPosition": "left", "sidebarStyle": "full", "headerStyle": "prominent", "contentWidth": "contained"},
    "dashboard-07": {"sidebarPosition": "left", "sidebarStyle": "compact", "headerStyle": "standard", "contentWidth": "full"},
}

BORDER_RADIUS = {"none": "0", "small": "0.25rem", "medium": "0.5rem", "large": "1rem"}

_FONT_SIZES = {"xs": "0.75rem", "sm": "0.875rem", "base": "1rem", "lg": "1.125rem", "xl": "1.25rem", "2xl": "1.5rem", "3xl": "2rem"}
_SPACING = {"xs": "0.25rem", "sm": "0.5rem", "md": "1rem", "lg": "1.5rem", "xl": "2rem", "2xl": "3rem"}


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _label(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _lower(value: Any) -> str:
    return (_label(value) or "").lower()


def _ident(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _order(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def _clean_field(field: dict) -> dict:
    field = dict(field, id=_ident(field.get("id")), name=_label(field.get("name")), type=_ident(field.get("type")))
    for key in ("displayOptions", "reference"):
        if key in field:
            field[key] = _as_dict(field[key])
    if "enumOptions" in field:
        field["enumOptions"] = [o for o in _as_list(field["enumOptions"]) if isinstance(o, dict)]
    return field


def _clean_entity(entity: dict) -> dict:
    """Copy of `entity` with string ids/names and well-typed sub-objects."""
    entity = dict(
        entity,
        id=_ident(entity.get("id")),
        name=_label(entity.get("name")),
        pluralName=_label(entity.get("pluralName")),
        displayConfig=_as_dict(entity.get("displayConfig")),
    )
    entity["fields"] = [_clean_field(f) for f in _as_list(entity.get("fields")) if isinstance(f, dict)]
    entity["fields"] = [f for f in entity["fields"] if f["id"]]
    return entity


def _clean_entities(entities: Any) -> list[dict]:
    cleaned = [_clean_entity(e) for e in _as_list(entities) if isinstance(e, dict)]
    return [e for e in cleaned if e["id"]]


def _clean_page(page: dict) -> dict:
    page = dict(page)
    for key in ("id", "name", "route", "type", "entity", "icon", "surface"):
        if key in page:
            page[key] = _label(page[key])
    for key in ("layout", "autoLayout", "navigation", "settings"):
        page[key] = _as_dict(page.get(key))
    page["components"] = _as_list(page.get("components"))
    return page


def _industry(ctx: dict) -> dict:
    industry = ctx.get("industry")
    if isinstance(industry, str):
        return {"id": industry}
    return _as_dict(industry)


def _node(node_id: str, component_id: str, props: dict | None = None, children: list | None = None, **extra: Any) -> dict:
    node = {"id": node_id, "componentId": component_id, "props": props or {}}
    if children is not None:
        node["children"] = children
    node.update(extra)
    return node


def _text(node_id: str, text: str, variant: str = "body", **props: Any) -> dict:
    return _node(node_id, "text", {"text": text, "variant": variant, **props})


def _fields(entity: dict | None) -> list[dict]:
    return [f for f in _as_list((entity or {}).get("fields")) if isinstance(f, dict) and isinstance(f.get("id"), str) and f["id"]]


def _hidden(field: dict) -> bool:
    return bool(_as_dict(field.get("displayOptions")).get("hidden"))


def _plural(entity: dict) -> str:
    return _label(entity.get("pluralName")) or f"{_label(entity.get('name')) or _label(entity.get('id')) or 'Item'}s"


# Entity resolution


def resolve_entity(page: dict, entities: List[dict]) -> dict | None:
    """Entity bound to `page`: exact id, else a strict name/route match, else None."""
    entities = [e for e in entities or [] if isinstance(e, dict)]
    wanted = page.get("entity")
    if wanted:
        for entity in entities:
            if entity.get("id") == wanted:
                return entity
    page_name = _lower(page.get("name"))
    route = _lower(page.get("route"))
    for entity in entities:
        name = _lower(entity.get("name"))
        plural = _plural(entity).lower()
        eid = _lower(entity.get("id"))
        if not eid:
            continue
        if (
            (name and name in page_name)
            or plural in page_name
            or eid in page_name
            or eid in route
            or (page_name and page_name in {name, plural})
        ):
            return entity
    return None


# Cards and columns


def card_type_for(entity: dict | None) -> str:
    if not entity:
        return "card"
    name = _lower(entity.get("name"))
    if any(k in name for k in PERSON_KEYWORDS):
        return "personCard"
    if any(k in name for k in ITEM_KEYWORDS):
        return "itemCard"
    return "card"


def should_use_data_table(entity: dict | None) -> bool:
    if not entity:
        return False
    name = _lower(entity.get("name"))
    if any(k in name for k in CARD_LIST_KEYWORDS):
        return False
    if any(k in name for k in TABLE_KEYWORDS):
        return True
    return len(_fields(entity)) > 5


def card_config(entity: dict | None, card_type: str) -> dict:
    if not entity:
        return {}
    fields = _fields(entity)

    def first(predicate: Callable[[dict], bool]) -> str | None:
        return next((f["id"] for f in fields if predicate(f)), None)

    name_field = first(lambda f: f["id"] in {"name", "title"} or "name" in _lower(f.get("name")))
    email_field = first(lambda f: f.get("type") == "email" or f["id"] == "email")
    phone_field = first(lambda f: f.get("type") == "phone" or f["id"] == "phone")
    image_field = first(lambda f: f.get("type") == "image" or f["id"] in {"avatar", "image", "photo"})
    status_field = first(lambda f: f.get("type") == "enum" and f["id"] in {"status", "state"})
    price_field = first(lambda f: f.get("type") == "currency" or f["id"] in {"price", "amount"})
    subtitle_field = first(lambda f: f["id"] in {"subtitle", "role", "position", "type"})

    if card_type == "personCard":
        mappings = []
        secondary = [{"label": "Edit", "icon": "✏️"}]
        if email_field:
            mappings.append({"field": email_field, "type": "email", "icon": "✉️"})
            secondary.append({"label": "Email", "icon": "✉️"})
        if phone_field:
            mappings.append({"field": phone_field, "type": "phone", "icon": "📞"})
            secondary.append({"label": "Call", "icon": "📞"})
        return {
            "type": "personCard",
            "nameField": name_field or "name",
            "avatarField": image_field,
            "subtitleField": subtitle_field,
            "fieldMappings": mappings,
            "statusField": status_field,
            "primaryAction": {"label": "View", "icon": "👁️"},
            "secondaryActions": secondary,
        }
    if card_type == "itemCard":
        skip = {name_field, image_field, price_field} | INTERNAL_FIELD_IDS
        return {
            "type": "itemCard",
            "titleField": name_field or "name",
            "imageField": image_field,
            "subtitleField": subtitle_field,
            "priceField": price_field,
            "statusField": status_field,
            "fieldMappings": [{"field": f["id"], "label": f.get("name")} for f in fields if f["id"] not in skip][:4],
            "actions": [{"label": "View", "icon": "👁️"}, {"label": "Edit", "icon": "✏️"}],
        }
    return {"type": "card", "titleField": name_field or "name"}


def table_columns(entity: dict | None) -> list[dict]:
    if not entity or not _fields(entity):
        return [{"id": "name", "header": "Name", "field": "name", "sortable": True}]
    columns = []
    for field in _fields(entity):
        if field["id"] in INTERNAL_FIELD_IDS or _hidden(field):
            continue
        column = {"id": field["id"], "header": field.get("name") or field["id"], "field": field["id"], "sortable": True}
        if field.get("type") in COLUMN_FORMATS:
            column["format"] = COLUMN_FORMATS[field["type"]]
        columns.append(column)
        if len(columns) == MAX_TABLE_COLUMNS:
            break
    return columns


def _list_widget(node_id: str, entity: dict, limit: int = 5, show_actions: bool = True, **props: Any) -> dict:
    kind = card_type_for(entity)
    return _node(
        node_id,
        "list",
        {
            "source": entity["id"],
            "limit": limit,
            "compact": True,
            "showActions": show_actions,
            "cardType": kind,
            "cardConfig": card_config(entity, kind),
            "entityName": entity.get("name"),
            **props,
        },
    )


def _page_header(page: dict, title: str, actions: list) -> dict:
    return _node(
        f"{page['id']}-header",
        "container",
        {"className": "flex justify-between items-center mb-6"},
        [_text(f"{page['id']}-title", title, "h1"), *actions],
    )


# Page builders


def materialize_list_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    plural = _plural(entity) if entity else (page.get("name") or "Items")
    name = entity.get("name") if entity else singularize(plural)
    eid = entity["id"] if entity else singularize(plural).lower().replace(" ", "")
    route = entity_route(entity) if entity else page.get("route") or f"/{eid}s"
    add_button = _node(
        f"{eid}-add-btn",
        "button",
        {"label": f"Add {name}", "variant": "primary", "action": "navigate", "route": f"{route}/new"},
    )
    header = _page_header(page, plural, [add_button])
    if entity is None:
        return [
            header,
            _node(
                f"{page['id']}-not-configured",
                "container",
                {"className": "flex flex-col items-center justify-center py-12 text-center"},
                [
                    _text(f"{page['id']}-not-configured-icon", "📋", "h1"),
                    _text(f"{page['id']}-not-configured-title", f"{plural} Not Configured", "h3"),
                    _text(
                        f"{page['id']}-not-configured-desc",
                        f"The {plural.lower()} feature is not yet set up for this app.",
                        "p",
                    ),
                ],
            ),
        ]
    empty = f'No {plural.lower()} yet. Click "Add {name}" to create one.'
    if should_use_data_table(entity):
        body = _node(
            f"{page['id']}-table",
            "dataTable",
            {
                "source": eid,
                "columns": table_columns(entity),
                "searchable": True,
                "searchPlaceholder": f"Search {plural.lower()}...",
                "paginated": True,
                "pageSize": 10,
                "emptyMessage": empty,
            },
        )
    else:
        kind = card_type_for(entity)
        body = _node(
            f"{page['id']}-list",
            "list",
            {
                "source": eid,
                "showActions": True,
                "emptyMessage": empty,
                "cardType": kind,
                "entityName": name,
                "cardConfig": card_config(entity, kind),
            },
        )
    return [header, body]


def materialize_form_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    name = entity.get("name") if entity else "Item"
    eid = entity["id"] if entity else "item"
    fields = [f for f in _fields(entity) if f["id"] not in INTERNAL_FIELD_IDS and not _hidden(f)]
    if not fields:
        fields = [
            {"id": "name", "name": "Name", "type": "string", "required": True},
            {"id": "description", "name": "Description", "type": "text", "required": False},
        ]
    inputs = []
    for field in fields:
        label = field.get("name") or field["id"]
        props = {
            "name": field["id"],
            "label": label,
            "type": INPUT_KINDS.get(field.get("type"), "text"),
            "required": bool(field.get("required")),
            "placeholder": f"Enter {label.lower()}",
        }
        if field.get("type") == "enum" and field.get("enumOptions"):
            props["options"] = [
                {"value": o.get("value"), "label": o.get("label")} for o in _as_list(field["enumOptions"]) if isinstance(o, dict)
            ]
        if field.get("type") == "reference" and isinstance(field.get("reference"), dict):
            props["source"] = field["reference"].get("targetEntity")
        inputs.append(_node(f"field-{field['id']}", "input", props))
    back = _node(
        f"nav-{eid}-list",
        "button",
        {"label": "← Back", "variant": "ghost", "action": "navigate", "route": entity_route(entity) if entity else f"/{eid}s"},
    )
    return [
        _page_header(page, f"Add {name}", [back]),
        _node(f"{eid}-form", "form", {"submitLabel": f"Save {name}", "source": eid}, inputs),
    ]


def materialize_detail_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    name = entity.get("name") if entity else "Item"
    eid = entity["id"] if entity else "item"
    fields = [f for f in _fields(entity) if f["id"] != "id" and not _hidden(f)]
    if not fields:
        fields = [{"id": "name", "name": "Name"}, {"id": "description", "name": "Description"}]
    displays = [
        _node(f"display-{f['id']}", "text", {"label": f.get("name") or f["id"], "field": f["id"], "variant": "field"})
        for f in fields
    ]
    actions = _node(
        f"{page['id']}-actions",
        "container",
        {"className": "flex gap-2"},
        [
            _node(f"{eid}-edit-btn", "button", {"label": "Edit", "variant": "secondary"}),
            _node(f"{eid}-delete-btn", "button", {"label": "Delete", "variant": "danger"}),
        ],
    )
    return [
        _page_header(page, name, [actions]),
        _node(f"{page['id']}-card", "card", {"source": eid}, displays),
    ]


# Dashboard


def _section_intent(section: dict, emphasis: str = "normal") -> dict:
    return {
        "role": section.get("role"),
        "priority": section.get("priority"),
        "timeScope": section.get("timeScope"),
        "layoutHint": infer_layout_hint(section),
        "emphasis": emphasis,
    }


def _stat_cards(section: dict, compact: bool) -> list[dict]:
    cards = []
    for index, metric in enumerate(section.get("metrics") or []):
        props = {
            "title": format_metric_label(metric, include_time_scope=compact),
            "metric": metric.get("sourceMetric"),
            "format": metric.get("format") or "number",
            "timeScope": metric.get("timeScope"),
        }
        if metric.get("icon"):
            props["icon"] = metric["icon"]
        if compact:
            props["compact"] = True
        elif metric.get("emphasize"):
            props["emphasize"] = True
        cards.append(_node(f"{section['id']}-stat-{index}", "statsCard", props))
    return cards


def _today_builder(section: dict, entities_by_id: Dict[str, dict]) -> dict:
    return _node(
        f"section-{section['id']}",
        "container",
        {"title": section.get("title"), "subtitle": TIME_SCOPE_LABELS.get(section.get("timeScope") or "today"), "className": "grid grid-cols-2 lg:grid-cols-4 gap-4"},
        _stat_cards(section, compact=False),
        intent=_section_intent(section, "high"),
    )


def _actionable_builder(section: dict, entities_by_id: Dict[str, dict]) -> dict:
    entity = entities_by_id.get(section.get("listEntity") or "")
    children = []
    if entity:
        extra = {"filter": section["listFilter"]} if section.get("listFilter") else {}
        children.append(_list_widget(f"section-{section['id']}-list", entity, section.get("limit") or 5, True, **extra))
    for action in section.get("actions") or []:
        children.append(
            _node(
                f"section-{section['id']}-action-{action.get('actionId')}",
                "button",
                {
                    "label": action.get("label"),
                    "variant": action.get("variant") or "secondary",
                    "entity": action.get("entity"),
                    "visibilityRule": action.get("visibilityRule") or "always",
                },
            )
        )
    return _node(
        f"section-{section['id']}",
        "card",
        {"title": section.get("title"), "className": "h-fit"},
        children,
        intent=_section_intent(section),
    )


def _summary_builder(section: dict, entities_by_id: Dict[str, dict]) -> dict:
    return _node(
        f"section-{section['id']}",
        "container",
        {"title": section.get("title"), "className": "grid grid-cols-3 gap-2"},
        _stat_cards(section, compact=True),
        intent=_section_intent(section, "low"),
    )


def _history_builder(section: dict, entities_by_id: Dict[str, dict]) -> dict:
    entity = entities_by_id.get(section.get("listEntity") or "")
    table = _node(
        f"section-{section['id']}-table",
        "dataTable",
        {
            "source": section.get("listEntity"),
            "columns": table_columns(entity),
            "paginated": True,
            "pageSize": section.get("limit") or 10,
            "timeScope": section.get("timeScope"),
        },
    )
    return _node(
        f"section-{section['id']}",
        "card",
        {"title": section.get("title")},
        [table],
        intent=_section_intent(section, "low"),
    )


SECTION_BUILDERS: Dict[str, Callable[[dict, Dict[str, dict]], dict]] = {
    "today": _today_builder,
    "in-progress": _actionable_builder,
    "upcoming": _actionable_builder,
    "summary": _summary_builder,
    "history": _history_builder,
}

_INDUSTRY_QUICK_ACTIONS = {
    "gym": ("quick-checkin", "Quick Check-In", "✅"),
    "salon": ("quick-book", "New Booking", "📅"),
    "medical": ("quick-book", "New Booking", "📅"),
    "plumber": ("quick-job", "New Job", "🔧"),
    "electrician": ("quick-job", "New Job", "🔧"),
    "contractor": ("quick-job", "New Job", "🔧"),
}


def dashboard_quick_actions(entities: List[dict], industry_id: str | None) -> list[dict]:
    if not entities:
        return []
    primary = entities[0]
    actions = [
        _node(
            "quick-add",
            "button",
            {
                "label": f"Add {primary.get('name')}",
                "variant": "primary",
                "icon": "+",
                "action": "navigate",
                "route": f"{entity_route(primary)}/new",
            },
        )
    ]
    extra = _INDUSTRY_QUICK_ACTIONS.get(industry_id or "")
    if extra:
        node_id, label, icon = extra
        actions.append(_node(node_id, "button", {"label": label, "variant": "secondary", "icon": icon}))
    return actions


def _recent_activity(entities: List[dict]) -> dict:
    return _node(
        "recent-activity",
        "activityFeed",
        {
            "title": "Recent Activity",
            "sources": [e["id"] for e in entities],
            "limit": 10,
            "emptyMessage": "No activity yet. New records will show up here.",
        },
    )


def materialize_dashboard_page(page: dict, entities: List[dict], ctx: dict) -> list[dict]:
    industry = _industry(ctx)
    industry_id = _label(industry.get("id"))
    kit = {"id": industry_id, "dashboardTemplate": ctx.get("dashboardTemplate")}
    intent = compose(entities, kit)
    entities_by_id = {e["id"]: e for e in entities}
    components = [
        _node(
            "dashboard-header",
            "container",
            {"className": "flex justify-between items-center mb-6"},
            [
                _text("dashboard-title", page.get("name") or intent.get("title") or "Dashboard", "h1"),
                _node("dashboard-actions", "container", {"className": "flex gap-2"}, dashboard_quick_actions(entities, industry_id)),
            ],
        )
    ]
    for section in intent.get("sections") or []:
        builder = SECTION_BUILDERS.get(section.get("role"))
        if builder is None:
            logger.debug("dashboard_section_skipped section_id=%s role=%s", section.get("id"), section.get("role"))
            continue
        components.append(builder(section, entities_by_id))
    components.append(_recent_activity(entities))
    return components


# Views bound to a single field


def materialize_calendar_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    date_field = find_primary_date_field(entity) if entity else None
    settings = _as_dict(_as_dict(page.get("settings")).get("calendar"))
    return [
        _text("calendar-header", page.get("name") or "Calendar", "h1"),
        _node(
            "calendar-view",
            "calendar",
            {
                "source": entity["id"] if entity else "event",
                "dateField": settings.get("dateField") or (date_field or {}).get("id") or "date",
                "titleField": _as_dict((entity or {}).get("displayConfig")).get("titleField") or "name",
                "view": settings.get("defaultView") or "month",
            },
        ),
    ]


def materialize_kanban_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    status = next((f for f in _fields(entity) if f.get("type") == "enum" and f["id"] in {"status", "stage"}), None)
    options = [o for o in _as_list((status or {}).get("enumOptions")) if isinstance(o, dict)] or [
        {"value": "todo", "label": "To Do", "color": "#9ca3af"},
        {"value": "in_progress", "label": "In Progress", "color": "#60a5fa"},
        {"value": "done", "label": "Done", "color": "#34d399"},
    ]
    return [
        _text("kanban-header", f"{(entity or {}).get('name') or 'Item'} Board", "h1"),
        _node(
            "kanban-board",
            "kanban",
            {
                "source": entity["id"] if entity else "item",
                "columnField": status["id"] if status else "status",
                "columns": [{"id": o.get("value"), "title": o.get("label"), "color": o.get("color")} for o in options],
                "titleField": _as_dict((entity or {}).get("displayConfig")).get("titleField") or "name",
            },
        ),
    ]


def _message_field(entity: dict | None, candidates: tuple, fallback: str) -> str:
    ids = {f["id"] for f in _fields(entity)}
    return next((c for c in candidates if c in ids), fallback)


def materialize_chat_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    compose_button = _node(f"{page['id']}-compose", "button", {"label": "New Conversation", "variant": "primary", "icon": "✏️"})
    return [
        _page_header(page, page.get("name") or "Messaging", [compose_button]),
        _node(
            f"{page['id']}-chat",
            "chat",
            {
                "source": entity["id"] if entity else "message",
                "messageField": _message_field(entity, ("message", "body", "content", "text"), "message"),
                "senderField": _message_field(entity, ("sender", "from", "author"), "sender"),
                "timestampField": _message_field(entity, ("timestamp", "sentAt", "createdAt"), "timestamp"),
                "currentUser": "me",
                "placeholder": "Type a message...",
            },
        ),
    ]


def materialize_table_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    eid = entity["id"] if entity else "item"
    name = entity.get("name") if entity else "Item"
    plural = _plural(entity) if entity else "Items"
    by_id = {f["id"]: f for f in _fields(entity)}
    field_ids = [fid for fid in _as_list(_as_dict((entity or {}).get("displayConfig")).get("listFields")) if isinstance(fid, str) and fid]
    field_ids = field_ids or list(by_id)
    columns = [
        {
            "id": fid,
            "header": (by_id.get(fid) or {}).get("name") or fid[:1].upper() + fid[1:].replace("_", " "),
            "field": fid,
            "sortable": True,
        }
        for fid in field_ids
    ]
    add_button = _node(
        f"{eid}-add-btn",
        "button",
        {"label": f"Add {name}", "variant": "primary", "action": "navigate", "route": f"{entity_route(entity) if entity else '/items'}/new"},
    )
    return [
        _page_header(page, page.get("name") or plural, [add_button]),
        _node(
            f"{page['id']}-table",
            "dataTable",
            {
                "source": eid,
                "columns": columns,
                "searchable": True,
                "searchPlaceholder": f"Search {plural.lower()}...",
                "paginated": True,
                "pageSize": 10,
                "emptyMessage": f"No {plural.lower()} found.",
            },
        ),
    ]


def materialize_component(component: dict) -> dict:
    kind = _label(component.get("type")) or _label(component.get("componentId")) or "container"
    node = _node(
        component.get("id") or kind,
        COMPONENT_TYPE_MAP.get(kind, kind),
        dict(_as_dict(component.get("props"))),
    )
    children = [materialize_component(c) for c in _as_list(component.get("children")) if isinstance(c, dict)]
    if children:
        node["children"] = children
    for key in ("styles", "events", "intent"):
        if component.get(key):
            node[key] = component[key]
    return node


def materialize_generic_page(page: dict, entity: dict | None, ctx: dict) -> list[dict]:
    components = [c for c in page.get("components") or [] if isinstance(c, dict)]
    if components:
        return [materialize_component(c) for c in components]
    return [
        _text("page-title", page.get("name") or "Page", "h1"),
        _text("page-content", "Page content goes here...", "body"),
    ]


PAGE_BUILDERS: Dict[str, Callable[[dict, dict | None, dict], list]] = {
    "list": materialize_list_page,
    "form": materialize_form_page,
    "detail": materialize_detail_page,
    "calendar": materialize_calendar_page,
    "kanban": materialize_kanban_page,
    "table": materialize_table_page,
    "chat": materialize_chat_page,
    "messaging": materialize_chat_page,
}


def page_icon(page: dict, entity: dict | None) -> str:
    return (entity or {}).get("icon") or page.get("icon") or PAGE_ICONS.get(page.get("type"), "📄")


def materialize_page(page: dict, entities: List[dict], ctx: dict) -> dict:
    page = _clean_page(page)
    entities = _clean_entities(entities)
    ctx = _as_dict(ctx)
    if not page.get("id"):
        page["id"] = kebab_case(page.get("name") or "") or "page"
    entity = resolve_entity(page, entities)
    if page.get("type") == "dashboard":
        components = materialize_dashboard_page(page, entities, ctx)
    else:
        components = PAGE_BUILDERS.get(page.get("type"), materialize_generic_page)(page, entity, ctx)
    layout = page["layout"]
    auto = page["autoLayout"]
    nav = page["navigation"]
    settings = page["settings"]
    return {
        "id": page.get("id"),
        "name": page.get("name"),
        "route": page.get("route"),
        "type": page.get("type"),
        "entityId": entity["id"] if entity else None,
        "surface": page.get("surface") or "admin",
        "layout": {
            "type": layout.get("type") or "single-column",
            "showHeader": auto.get("showHeader", True),
            "showSidebar": auto.get("showSidebar", True),
            "showFooter": auto.get("showFooter", False),
            "sidebarPosition": "left",
            "headerHeight": auto.get("headerHeight") or "64px",
            "sidebarWidth": auto.get("sidebarWidth") or "250px",
        },
        "components": components,
        "navigation": {
            "showInSidebar": nav.get("showInSidebar", True),
            "showInNavbar": nav.get("showInNavbar", False),
            "order": _order(nav.get("order")),
            "icon": page_icon(page, entity),
            "label": page.get("name"),
        },
        "settings": {k: settings[k] for k in ("pagination", "search", "filters", "sorting") if k in settings},
    }


# App-level pieces


def materialize_shell(ctx: dict) -> dict:
    features = set(feature_ids(ctx.get("features")))
    industry = _industry(ctx)
    dashboard_type = _label(industry.get("dashboardType")) or "operations"
    if features & {"invoices", "payments", "billing", "accounting", "invoicing"}:
        shell_id, name = "dashboard-05", "Data Specialist Shell"
    elif features & {"inventory", "products", "catalog", "stock"}:
        shell_id, name = "dashboard-07", "Inventory Shell"
    elif dashboard_type == "health":
        shell_id, name = "dashboard-04", "Health & Fitness Shell"
    elif dashboard_type == "service":
        shell_id, name = "dashboard-03", "Service Provider Shell"
    elif dashboard_type == "sales":
        shell_id, name = "dashboard-06", "Sales & CRM Shell"
    else:
        shell_id, name = "dashboard-02", "Standard Business Shell"
    return {
        "id": shell_id,
        "name": name,
        "dashboardType": dashboard_type,
        "layout": dict(SHELL_LAYOUTS[shell_id]),
        "features": {
            "showQuickActions": True,
            "showRecentActivity": shell_id in {"dashboard-02", "dashboard-05", "dashboard-06"},
            "showSearch": True,
            "showUserMenu": True,
            "showNotifications": bool(features & {"notifications", "alerts", "reminders", "scheduling", "appointments", "calendar"}),
        },
    }


def _in_sidebar(page: dict) -> bool:
    if not page["navigation"]["showInSidebar"] or page.get("type") in {"form", "detail"}:
        return False
    page_id = _lower(page.get("id"))
    if "-form" in page_id or "-detail" in page_id or "add-" in page_id or page_id.endswith("-add"):
        return False
    name = _lower(page.get("name"))
    if name.startswith("add ") or name.endswith(" details"):
        return False
    return not ("new " in name and "dashboard" not in name)


def materialize_navigation(blueprint: dict, pages: List[dict]) -> dict:
    nav = _as_dict(blueprint.get("navigation"))
    sidebar = _as_dict(nav.get("sidebar"))
    items = sorted((p for p in pages if _in_sidebar(p)), key=lambda p: _order(p["navigation"]["order"]))
    page_ids = {p.get("id") for p in pages}
    wanted = _label(nav.get("defaultPage"))
    default_page = wanted if wanted in page_ids else None
    return {
        "sidebar": {
            "enabled": sidebar.get("enabled", True),
            "position": sidebar.get("position") or "left",
            "collapsible": sidebar.get("collapsible", True),
            "items": [
                {"pageId": p["id"], "icon": p["navigation"]["icon"], "label": p["navigation"]["label"], "route": p["route"]}
                for p in items
            ],
        },
        "defaultPage": default_page or (pages[0]["id"] if pages else "home"),
    }


def materialize_theme(blueprint: dict) -> dict:
    theme = _as_dict(blueprint.get("theme"))
    dark = theme.get("mode") == "dark"
    palette = _as_dict(theme.get("colors"))
    colors = {
        "primary": theme.get("primaryColor") or palette.get("primary") or "#8b5cf6",
        "secondary": theme.get("secondaryColor") or palette.get("secondary") or "#6d28d9",
        "accent": theme.get("accentColor") or palette.get("accent") or "#a78bfa",
        "background": palette.get("background") or ("#1a1a2e" if dark else "#ffffff"),
        "surface": palette.get("surface") or ("#16213e" if dark else "#f8fafc"),
        "text": palette.get("text") or ("#ffffff" if dark else "#1e293b"),
        "textSecondary": palette.get("textMuted") or ("#94a3b8" if dark else "#64748b"),
    }
    out = {
        "mode": "dark" if dark else "light",
        "colors": colors,
        "typography": {
            "fontFamily": theme.get("fontFamily") or "system-ui, -apple-system, sans-serif",
            "fontSize": dict(_FONT_SIZES),
        },
        "spacing": dict(_SPACING),
        "borderRadius": BORDER_RADIUS.get(_label(theme.get("borderRadius")) or "medium", "0.5rem"),
    }
    for key in ("designSystem", "surfaceIntent", "customVars"):
        if theme.get(key):
            out[key] = theme[key]
    return out


def materialize_data_models(entities: List[dict]) -> list[dict]:
    return [
        {
            "id": e["id"],
            "name": e.get("name"),
            "fields": [
                {"id": f["id"], "name": f.get("name"), "type": f.get("type"), "required": bool(f.get("required"))}
                for f in _fields(e)
            ],
        }
        for e in entities
    ]


def materialize_flows(workflows: List[dict]) -> list[dict]:
    flows = []
    for workflow in _as_list(workflows):
        if not isinstance(workflow, dict):
            continue
        trigger = _as_dict(workflow.get("trigger"))
        flows.append(
            {
                "id": workflow.get("id"),
                "name": workflow.get("name"),
                "enabled": workflow.get("enabled", True),
                "trigger": {"type": trigger.get("type"), "componentId": trigger.get("componentId")},
                "actions": [
                    {
                        "type": a.get("type"),
                        "modelId": _as_dict(a.get("config")).get("entityId"),
                        "model": _as_dict(a.get("config")).get("entityId"),
                        "config": _as_dict(a.get("config")),
                    }
                    for a in _as_list(workflow.get("actions"))
                    if isinstance(a, dict)
                ],
            }
        )
    return flows


def materialize(blueprint: dict, context: dict | None = None) -> dict:
    """Expand `blueprint` into a MaterializedApp. Malformed input degrades, never raises."""
    ctx = context if isinstance(context, dict) else {}
    blueprint = blueprint if isinstance(blueprint, dict) else {}
    entities = _clean_entities(blueprint.get("entities"))
    pages = [materialize_page(p, entities, ctx) for p in _as_list(blueprint.get("pages")) if isinstance(p, dict)]
    app = {
        "id": blueprint.get("id"),
        "name": blueprint.get("name"),
        "description": blueprint.get("description"),
        "pages": pages,
        "navigation": materialize_navigation(blueprint, pages),
        "shell": materialize_shell(ctx),
        "industry": ctx.get("industry"),
        "terminology": ctx.get("terminology"),
        "theme": materialize_theme(blueprint),
        "dataModels": materialize_data_models(entities),
        "flows": materialize_flows(blueprint.get("workflows")),
    }
    logger.info("app_materialized app_id=%s pages=%s shell=%s", app["id"], len(pages), app["shell"]["id"])
    return app
