"""Page definitions per entity: list, form, detail, calendar, kanban, gallery."""

from __future__ import annotations

from typing import Any, Dict, List

from appforge.naming import kebab_case

from entity_inference import feature_ids

INPUT_TYPES: Dict[str, str] = {
    "boolean": "checkbox",
    "enum": "select",
    "reference": "reference-select",
    "richtext": "rich-text-editor",
    "text": "textarea",
    "date": "date-picker",
    "datetime": "datetime-picker",
    "time": "time-picker",
    "number": "number-input",
    "currency": "currency-input",
    "percentage": "percentage-input",
    "email": "email-input",
    "phone": "phone-input",
    "url": "url-input",
    "image": "image-upload",
    "file": "file-upload",
    "address": "address-input",
}

_STAT_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ec4899", "#8b5cf6"]
_HIDDEN_IDS = {"id", "createdAt", "updatedAt"}


def entity_route(entity: dict) -> str:
    return "/" + (kebab_case(entity.get("pluralName") or entity.get("name") or entity["id"]) or entity["id"])


def _display(entity: dict) -> dict:
    return entity.get("displayConfig") or {}


def _visible_fields(entity: dict, editable: bool = False) -> list[dict]:
    out = []
    for field in entity.get("fields") or []:
        options = field.get("displayOptions") or {}
        if field.get("id") in _HIDDEN_IDS or options.get("hidden"):
            continue
        if editable and (options.get("readonly") or field.get("computed")):
            continue
        out.append(field)
    return out


def _page(page_id: str, name: str, route: str, page_type: str, components: list, sections: list, **extra: Any) -> dict:
    page = {
        "id": page_id,
        "name": name,
        "route": route,
        "type": page_type,
        "layout": {"type": "single-column", "sections": sections},
        "components": components,
        "navigation": {"showInSidebar": False},
    }
    page.update(extra)
    return page


def _header(component_id: str, title: str | None = None, children: list | None = None, **props: Any) -> dict:
    header = {"id": component_id, "type": "page-header", "props": dict(props)}
    if title is not None:
        header["props"]["title"] = title
    if children:
        header["children"] = children
    return header


def _button(component_id: str, label: str, workflow_id: str | None = None, **props: Any) -> dict:
    button = {"id": component_id, "type": "button", "props": {"label": label, **props}}
    if workflow_id:
        button["events"] = {"onClick": workflow_id}
    return button


def should_generate_calendar(entity: dict, features: Any) -> bool:
    has_date = any(
        f.get("type") in ("date", "datetime") and f.get("id") not in _HIDDEN_IDS for f in entity.get("fields") or []
    )
    ids = set(feature_ids(features))
    return has_date and (bool(ids & {"calendar", "scheduling", "appointments"}) or "schedulable" in (entity.get("behaviors") or []))


def status_field(entity: dict) -> dict | None:
    return next(
        (f for f in entity.get("fields") or [] if f.get("type") == "enum" and f.get("id") in {"status", "stage"}),
        None,
    )


def should_generate_kanban(entity: dict, features: Any) -> bool:
    ids = set(feature_ids(features))
    tracking = bool(ids & {"pipelines", "status_tracking"}) or "trackable" in (entity.get("behaviors") or [])
    return status_field(entity) is not None and tracking


def should_generate_gallery(entity: dict) -> bool:
    return any(f.get("type") == "image" for f in entity.get("fields") or [])


def _columns(entity: dict, field_ids: List[str]) -> list[dict]:
    by_id = {f.get("id"): f for f in entity.get("fields") or []}
    columns = []
    for field_id in field_ids:
        field = by_id.get(field_id)
        if not field:
            columns.append({"id": field_id, "label": field_id})
            continue
        columns.append({"id": field_id, "label": field.get("name"), "type": field.get("type"), "sortable": True})
    return columns


def _filter_components(entity: dict) -> list[dict]:
    by_id = {f.get("id"): f for f in entity.get("fields") or []}
    filters = []
    for field_id in _display(entity).get("filterFields") or []:
        field = by_id.get(field_id) or {}
        filters.append(
            {
                "id": f"filter-{field_id}",
                "type": "select",
                "props": {
                    "placeholder": f"Filter by {field.get('name', field_id)}",
                    "options": [{"value": o.get("value"), "label": o.get("label")} for o in field.get("enumOptions") or []],
                    "clearable": True,
                },
            }
        )
    return filters


def build_list_page(entity: dict, is_default: bool = False, order: int = 10) -> dict:
    eid = entity["id"]
    display = _display(entity)
    plural = entity.get("pluralName") or f"{entity.get('name')}s"
    search_fields = display.get("searchFields") or []
    list_fields = display.get("listFields") or []
    components = [
        _header(
            f"{eid}-list-header",
            plural,
            [_button(f"{eid}-add-btn", f"Add {entity['name']}", f"navigate-{eid}-form", variant="primary", icon="+")],
        ),
        {
            "id": f"{eid}-toolbar",
            "type": "toolbar",
            "props": {},
            "children": [
                {
                    "id": f"{eid}-search",
                    "type": "search-input",
                    "props": {"placeholder": f"Search {plural.lower()}...", "fields": search_fields},
                },
                *_filter_components(entity),
            ],
        },
        {
            "id": f"{eid}-data-table",
            "type": "data-table",
            "props": {"source": eid, "columns": _columns(entity, list_fields), "showActions": True, "selectable": True},
            "events": {"onRowClick": f"navigate-{eid}-detail", "onEdit": f"navigate-{eid}-edit", "onDelete": f"delete-{eid}"},
        },
        {"id": f"{eid}-pagination", "type": "pagination", "props": {"pageSize": 20, "showPageSizeOptions": True}},
    ]
    behaviors = entity.get("behaviors") or []
    if "assignable" in behaviors or "archivable" in behaviors:
        actions = []
        if "assignable" in behaviors:
            actions.append({"id": "assign", "label": "Assign"})
        if "archivable" in behaviors:
            actions.append({"id": "archive", "label": "Archive"})
        actions.append({"id": "delete", "label": "Delete", "variant": "danger"})
        components.insert(2, {"id": f"{eid}-bulk-actions", "type": "bulk-actions", "props": {"actions": actions}})
    by_id = {f.get("id"): f for f in entity.get("fields") or []}
    return _page(
        f"{eid}-list",
        plural,
        "/" if is_default else entity_route(entity),
        "list",
        components,
        [
            {"id": "header", "type": "header", "components": [f"{eid}-list-header"]},
            {"id": "toolbar", "type": "row", "components": [f"{eid}-toolbar"]},
            {"id": "main", "type": "main", "components": [f"{eid}-data-table", f"{eid}-pagination"]},
        ],
        entity=eid,
        icon=entity.get("icon"),
        settings={
            "pagination": {"enabled": True, "pageSize": 20},
            "search": {"enabled": True, "placeholder": f"Search {plural.lower()}...", "fields": search_fields},
            "sorting": {"enabled": True, "defaultField": list_fields[0] if list_fields else "createdAt", "defaultDirection": "desc"},
            "filters": [
                {"field": f, "type": "select", "label": (by_id.get(f) or {}).get("name", f)}
                for f in display.get("filterFields") or []
            ],
        },
        navigation={"showInSidebar": True, "order": 0 if is_default else order},
    )


def _input(field: dict) -> dict:
    props: Dict[str, Any] = {
        "name": field["id"],
        "label": field.get("name") or field["id"],
        "required": bool(field.get("required")),
        "placeholder": f"Enter {(field.get('name') or field['id']).lower()}",
    }
    if field.get("type") == "enum":
        props["options"] = [{"value": o.get("value"), "label": o.get("label")} for o in field.get("enumOptions") or []]
    reference = field.get("reference")
    if isinstance(reference, dict):
        props["source"] = reference.get("targetEntity")
        props["displayField"] = reference.get("displayField", "name")
    return {"id": f"field-{field['id']}", "type": INPUT_TYPES.get(field.get("type"), "text-input"), "props": props}


def build_form_page(entity: dict) -> dict:
    eid = entity["id"]
    fields = _visible_fields(entity, editable=True)
    required = [_input(f) for f in fields if f.get("required")]
    optional = [_input(f) for f in fields if not f.get("required")]
    children = []
    if required:
        children.append({"id": "required-section", "type": "form-section", "props": {"title": "Required Information"}, "children": required})
    if optional:
        children.append(
            {
                "id": "optional-section",
                "type": "form-section",
                "props": {"title": "Additional Information", "collapsible": True},
                "children": optional,
            }
        )
    components = [
        _header(f"{eid}-form-header", f"Add {entity['name']}", showBack=True, backLabel=entity.get("pluralName")),
        {
            "id": f"{eid}-form",
            "type": "form",
            "props": {"submitLabel": f"Save {entity['name']}", "cancelLabel": "Cancel"},
            "events": {"onSubmit": f"create-{eid}", "onCancel": f"navigate-{eid}-list"},
            "children": children,
        },
    ]
    return _page(
        f"{eid}-form",
        f"Add {entity['name']}",
        f"{entity_route(entity)}/new",
        "form",
        components,
        [
            {"id": "header", "type": "header", "components": [f"{eid}-form-header"]},
            {"id": "main", "type": "main", "components": [f"{eid}-form"]},
        ],
        entity=eid,
    )


def build_detail_page(entity: dict) -> dict:
    eid = entity["id"]
    fields = _visible_fields(entity)
    primary, secondary = fields[:4], fields[4:]

    def _grid(grid_id: str, chunk: list) -> dict:
        return {
            "id": grid_id,
            "type": "field-grid",
            "props": {"columns": 2},
            "children": [
                {
                    "id": f"detail-{f['id']}",
                    "type": "field-display",
                    "props": {"label": f.get("name"), "field": f["id"], "type": f.get("type")},
                }
                for f in chunk
            ],
        }

    components = [
        _header(
            f"{eid}-detail-header",
            None,
            [
                _button(f"{eid}-edit-btn", "Edit", f"navigate-{eid}-edit", variant="secondary"),
                _button(f"{eid}-delete-btn", "Delete", f"delete-{eid}", variant="ghost"),
            ],
            showBack=True,
            titleField=_display(entity).get("titleField", "name"),
        ),
        {"id": f"{eid}-info-card", "type": "card", "props": {"title": "Details"}, "children": [_grid(f"{eid}-field-grid", primary)]},
    ]
    if secondary:
        components.append(
            {
                "id": f"{eid}-additional-card",
                "type": "card",
                "props": {"title": "Additional Information", "collapsible": True},
                "children": [_grid(f"{eid}-additional-grid", secondary)],
            }
        )
    related = [r for r in entity.get("relationships") or [] if isinstance(r, dict) and r.get("type") in ("one_to_many", "many_to_many")]
    if related:
        components.append(
            {
                "id": f"{eid}-related",
                "type": "tabs",
                "props": {},
                "children": [
                    {
                        "id": f"related-{rel['targetEntity']}",
                        "type": "tab-panel",
                        "props": {"label": rel["targetEntity"]},
                        "children": [
                            {
                                "id": f"related-{rel['targetEntity']}-list",
                                "type": "data-table",
                                "props": {"source": rel["targetEntity"], "filter": f"{rel.get('foreignKey')} = $record.id", "compact": True},
                            }
                        ],
                    }
                    for rel in related
                ],
            }
        )
    components.append({"id": f"{eid}-metadata", "type": "metadata-footer", "props": {"showCreated": True, "showUpdated": True}})
    return _page(
        f"{eid}-detail",
        f"{entity['name']} Details",
        f"{entity_route(entity)}/:id",
        "detail",
        components,
        [
            {"id": "header", "type": "header", "components": [f"{eid}-detail-header"]},
            {"id": "main", "type": "main", "components": [c["id"] for c in components[1:]]},
        ],
        entity=eid,
    )


def build_calendar_page(entity: dict) -> dict:
    eid = entity["id"]
    fields = [f for f in entity.get("fields") or [] if f.get("id") not in _HIDDEN_IDS]
    date_field = next((f["id"] for f in fields if f.get("type") in ("date", "datetime")), "date")
    end_field = next((f["id"] for f in fields if "end" in f["id"].lower() and f.get("type") in ("date", "datetime")), None)
    calendar = {
        "dateField": date_field,
        "endDateField": end_field,
        "titleField": _display(entity).get("titleField", "name"),
        "views": ["month", "week", "day", "agenda"],
        "defaultView": "month",
    }
    components = [
        _header(
            f"{eid}-calendar-header",
            f"{entity['name']} Calendar",
            [_button(f"{eid}-calendar-add-btn", f"Add {entity['name']}", f"navigate-{eid}-form", variant="primary")],
        ),
        {
            "id": f"{eid}-calendar-view",
            "type": "calendar",
            "props": {"source": eid, **calendar},
            "events": {"onEventClick": f"navigate-{eid}-detail"},
        },
    ]
    return _page(
        f"{eid}-calendar",
        f"{entity['name']} Calendar",
        f"{entity_route(entity)}/calendar",
        "calendar",
        components,
        [
            {"id": "header", "type": "header", "components": [f"{eid}-calendar-header"]},
            {"id": "main", "type": "main", "components": [f"{eid}-calendar-view"]},
        ],
        entity=eid,
        icon="📅",
        settings={"calendar": calendar},
        navigation={"showInSidebar": True, "order": 50},
    )


def build_kanban_page(entity: dict) -> dict:
    eid = entity["id"]
    status = status_field(entity)
    options = (status or {}).get("enumOptions") or [
        {"value": "todo", "label": "To Do"},
        {"value": "in_progress", "label": "In Progress"},
        {"value": "done", "label": "Done"},
    ]
    column_field = (status or {}).get("id", "status")
    components = [
        _header(
            f"{eid}-kanban-header",
            f"{entity['name']} Board",
            [_button(f"{eid}-kanban-add-btn", f"Add {entity['name']}", f"navigate-{eid}-form", variant="primary")],
        ),
        {
            "id": f"{eid}-kanban-board",
            "type": "kanban",
            "props": {
                "source": eid,
                "columnField": column_field,
                "columns": [{"id": o.get("value"), "title": o.get("label"), "color": o.get("color")} for o in options],
                "titleField": _display(entity).get("titleField", "name"),
                "draggable": True,
            },
            "events": {"onCardClick": f"navigate-{eid}-detail", "onCardMove": f"change-{eid}-status"},
        },
    ]
    return _page(
        f"{eid}-kanban",
        f"{entity['name']} Board",
        f"{entity_route(entity)}/board",
        "kanban",
        components,
        [
            {"id": "header", "type": "header", "components": [f"{eid}-kanban-header"]},
            {"id": "main", "type": "main", "components": [f"{eid}-kanban-board"]},
        ],
        entity=eid,
        icon="📋",
        navigation={"showInSidebar": True, "order": 30},
    )


def build_gallery_page(entity: dict) -> dict:
    eid = entity["id"]
    image_field = next((f["id"] for f in entity.get("fields") or [] if f.get("type") == "image"), "image")
    components = [
        _header(f"{eid}-gallery-header", f"{entity['name']} Gallery"),
        {
            "id": f"{eid}-gallery-grid",
            "type": "image-grid",
            "props": {
                "source": eid,
                "imageField": image_field,
                "titleField": _display(entity).get("titleField", "name"),
                "columns": 4,
                "aspectRatio": "square",
            },
        },
    ]
    return _page(
        f"{eid}-gallery",
        f"{entity['name']} Gallery",
        f"{entity_route(entity)}/gallery",
        "gallery",
        components,
        [
            {"id": "header", "type": "header", "components": [f"{eid}-gallery-header"]},
            {"id": "main", "type": "main", "components": [f"{eid}-gallery-grid"]},
        ],
        entity=eid,
        icon="🖼️",
        navigation={"showInSidebar": True, "order": 40},
    )


def generate_for_entity(
    entity: dict,
    features: Any = None,
    is_default: bool = False,
    order: int = 10,
) -> list[dict]:
    pages = [build_list_page(entity, is_default, order), build_form_page(entity), build_detail_page(entity)]
    if should_generate_calendar(entity, features):
        pages.append(build_calendar_page(entity))
    if should_generate_kanban(entity, features):
        pages.append(build_kanban_page(entity))
    if should_generate_gallery(entity):
        pages.append(build_gallery_page(entity))
    return pages


def generate_dashboard(entities: List[dict], features: Any = None) -> dict:
    shown = entities[:4]
    stats = [
        {
            "id": f"stat-{e['id']}",
            "type": "stat-card",
            "props": {"title": e.get("pluralName"), "icon": e.get("icon") or "📊", "color": _STAT_COLORS[i % len(_STAT_COLORS)]},
            "bindings": {"value": f"{e['id']}.count"},
        }
        for i, e in enumerate(shown)
    ]
    recent = [
        {
            "id": f"recent-{e['id']}",
            "type": "card",
            "props": {"title": f"Recent {e.get('pluralName')}"},
            "children": [
                {
                    "id": f"recent-{e['id']}-list",
                    "type": "data-list",
                    "props": {"source": e["id"], "limit": 5, "compact": True, "titleField": _display(e).get("titleField", "name")},
                }
            ],
        }
        for e in entities[:2]
    ]
    quick = {
        "id": "quick-actions",
        "type": "button-group",
        "props": {},
        "children": [
            _button(f"quick-add-{e['id']}", f"Add {e['name']}", f"navigate-{e['id']}-form", variant="outline", icon="+")
            for e in entities[:3]
        ],
    }
    components = [
        _header("dashboard-header", "Dashboard", subtitle="Overview of your data"),
        {"id": "stats-grid", "type": "grid", "props": {"columns": max(1, min(len(entities), 4)), "gap": "md"}, "children": stats},
        quick,
        {"id": "recent-section", "type": "grid", "props": {"columns": 2, "gap": "lg"}, "children": recent},
    ]
    if entities and set(feature_ids(features)) & {"analytics", "reports"}:
        components.append(
            {
                "id": "analytics-chart",
                "type": "card",
                "props": {"title": "Analytics"},
                "children": [
                    {
                        "id": "analytics-chart-content",
                        "type": "line-chart",
                        "props": {"source": entities[0]["id"], "xField": "createdAt", "yField": "count", "groupBy": "day"},
                    }
                ],
            }
        )
    return _page(
        "dashboard",
        "Dashboard",
        "/",
        "dashboard",
        components,
        [
            {"id": "header", "type": "header", "components": ["dashboard-header"]},
            {"id": "stats", "type": "grid", "components": ["stats-grid"]},
            {"id": "actions", "type": "row", "components": ["quick-actions"]},
            {"id": "recent", "type": "grid", "components": ["recent-section"]},
        ],
        icon="📊",
        settings={"refreshInterval": 60},
        navigation={"showInSidebar": True, "order": 0},
    )


def generate_settings_page() -> dict:
    components = [
        {
            "id": "settings-nav",
            "type": "nav-list",
            "props": {
                "items": [
                    {"label": "General", "value": "general"},
                    {"label": "Appearance", "value": "appearance"},
                    {"label": "Notifications", "value": "notifications"},
                    {"label": "Integrations", "value": "integrations"},
                    {"label": "Data", "value": "data"},
                ]
            },
        },
        {
            "id": "settings-content",
            "type": "card",
            "props": {"title": "Settings"},
            "children": [
                {
                    "id": "settings-form",
                    "type": "form",
                    "props": {"submitLabel": "Save Changes"},
                    "children": [
                        {"id": "app-name", "type": "text-input", "props": {"label": "App Name", "name": "appName"}},
                        {"id": "timezone", "type": "select", "props": {"label": "Timezone", "name": "timezone"}},
                        {"id": "date-format", "type": "select", "props": {"label": "Date Format", "name": "dateFormat"}},
                    ],
                }
            ],
        },
    ]
    page = _page(
        "settings",
        "Settings",
        "/settings",
        "settings",
        components,
        [
            {"id": "nav", "type": "sidebar", "components": ["settings-nav"]},
            {"id": "content", "type": "main", "components": ["settings-content"]},
        ],
        icon="⚙️",
        navigation={"showInSidebar": True, "order": 99, "group": "settings"},
    )
    page["layout"]["type"] = "sidebar-left"
    return page
