"""Schema validation and repair.

`validate` never mutates its input: all repairs happen on a deep copy, and
each one is reported as an issue with `autoFixed: True`. Running it again on
`fixedSchema` reports no further fixes.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List

from app.template_render import template_syntax_errors
from appforge.design_systems import DEFAULT_DESIGN_SYSTEM_ID, design_system_to_theme, get_design_system

from navigation_builder import PAGE_TYPE_ICONS
from workflow_builder import crud_workflows

logger = logging.getLogger("appforge.schema_harden")

Issue = Dict[str, Any]

_INVISIBLE_TYPES = {"spacer", "divider", "modal", "hidden"}


def _issue(code: str, message: str, path: str, severity: str = "warning", auto_fixed: bool = True) -> Issue:
    return {"severity": severity, "path": path, "message": message, "autoFixed": auto_fixed, "code": code}


def _default_fields() -> list[dict]:
    return [
        {"id": "id", "name": "ID", "type": "string", "required": True, "unique": True},
        {"id": "name", "name": "Name", "type": "string", "required": True, "unique": False},
        {"id": "createdAt", "name": "Created At", "type": "datetime", "required": False, "unique": False},
        {"id": "updatedAt", "name": "Updated At", "type": "datetime", "required": False, "unique": False},
    ]


def _default_layout() -> dict:
    return {
        "type": "single-column",
        "sections": [
            {"id": "header", "type": "header", "components": []},
            {"id": "main", "type": "main", "components": []},
        ],
    }


def _default_enum_options() -> list[dict]:
    return [
        {"value": "option1", "label": "Option 1", "color": "#60a5fa"},
        {"value": "option2", "label": "Option 2", "color": "#34d399"},
    ]


def _default_theme() -> dict:
    return design_system_to_theme(get_design_system(DEFAULT_DESIGN_SYSTEM_ID), "light")


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _order(value: Any) -> float:
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


def _default_components(page: dict, entity: dict | None) -> list[dict]:
    page_id = page.get("id") or "page"
    title = page.get("name") or (entity or {}).get("pluralName") or "Home"
    header = {"id": f"{page_id}-header", "type": "container", "props": {}, "children": [
        {"id": f"{page_id}-title", "type": "text", "props": {"text": title, "variant": "h1"}},
    ]}
    components = [header]
    if entity and page.get("type", "list") == "list":
        header["children"].append(
            {"id": f"{entity['id']}-add-btn", "type": "button", "props": {"label": f"Add {entity.get('name')}", "variant": "primary"}}
        )
        components.append({"id": f"{page_id}-list", "type": "list", "props": {"source": entity["id"]}})
    elif entity and page.get("type") == "form":
        components.append(
            {"id": f"{entity['id']}-form", "type": "form", "props": {"submitLabel": f"Save {entity.get('name')}", "source": entity["id"]}}
        )
    return components


# Passes


def _check_structure(schema: dict, issues: List[Issue]) -> None:
    if not schema.get("id"):
        schema["id"] = str(uuid.uuid4())
        issues.append(_issue("structure.id", "Missing schema ID, generated new one", "id"))
    if _blank(schema.get("name")):
        schema["name"] = "My App"
        issues.append(_issue("structure.name", "Missing app name, set default", "name"))
    version = schema.get("version")
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        schema["version"] = 1
        issues.append(_issue("structure.version", "Invalid version, set to 1", "version", "info"))
    for key in ("entities", "pages", "workflows"):
        if not isinstance(schema.get(key), list):
            schema[key] = []
            issues.append(_issue(f"structure.{key}", f"Missing {key} array, initialized empty", key))
        else:
            kept = [item for item in schema[key] if isinstance(item, dict)]
            if len(kept) != len(schema[key]):
                schema[key] = kept
                issues.append(_issue(f"structure.{key}", f"Dropped non-object entries from {key}", key))
    if not isinstance(schema.get("navigation"), dict):
        schema["navigation"] = {"rules": [], "defaultPage": "", "sidebar": {"enabled": True, "position": "left", "collapsible": True, "items": []}}
        issues.append(_issue("structure.navigation", "Missing navigation, set defaults", "navigation"))


def _check_fields(entity: dict, path: str, first_entity_id: str, issues: List[Issue]) -> None:
    fields = entity.get("fields")
    if not isinstance(fields, list) or not [f for f in fields if isinstance(f, dict)]:
        entity["fields"] = _default_fields()
        issues.append(_issue("entity.fields", "Missing or empty fields, added defaults", f"{path}.fields"))
    else:
        entity["fields"] = [f for f in fields if isinstance(f, dict)]
    fields = entity["fields"]
    id_field = next((f for f in fields if f.get("id") == "id"), None)
    if id_field is None:
        fields.insert(0, {"id": "id", "name": "ID", "type": "string", "required": True, "unique": True})
        issues.append(_issue("entity.id_field", "Missing ID field, added", f"{path}.fields"))
    elif not (id_field.get("required") and id_field.get("unique")):
        id_field["required"] = True
        id_field["unique"] = True
        issues.append(_issue("entity.id_field", "ID field must be required and unique, fixed", f"{path}.fields"))
    for j, field in enumerate(fields):
        field_path = f"{path}.fields[{j}]"
        if _blank(field.get("id")):
            field["id"] = f"field-{j}"
            issues.append(_issue("field.id", "Missing field ID, generated one", f"{field_path}.id"))
        if _blank(field.get("name")):
            field["name"] = field["id"]
            issues.append(_issue("field.name", "Missing field name, used ID", f"{field_path}.name", "info"))
        if _blank(field.get("type")):
            field["type"] = "string"
            issues.append(_issue("field.type", "Missing field type, defaulted to string", f"{field_path}.type"))
        if field["type"] == "reference" and not isinstance(field.get("reference"), dict):
            field["reference"] = {"targetEntity": first_entity_id, "displayField": "name", "relationship": "many_to_one"}
            issues.append(
                _issue("field.reference", "Reference field missing reference config, added default", f"{field_path}.reference")
            )
        if field["type"] == "enum" and not _as_list(field.get("enumOptions")):
            field["enumOptions"] = _default_enum_options()
            issues.append(_issue("field.enum_options", "Enum field missing options, added defaults", f"{field_path}.enumOptions"))


def _check_entities(schema: dict, issues: List[Issue]) -> None:
    entities = schema["entities"]
    if not entities:
        entities.append(
            {
                "id": "item",
                "name": "Item",
                "pluralName": "Items",
                "fields": _default_fields(),
                "displayConfig": {"titleField": "name", "listFields": ["name"], "searchFields": ["name"]},
            }
        )
        issues.append(_issue("entity.default", "No entities defined, added default Item entity", "entities"))
    for i, entity in enumerate(entities):
        path = f"entities[{i}]"
        if _blank(entity.get("id")):
            entity["id"] = f"entity-{i}"
            issues.append(_issue("entity.id", "Missing entity ID, generated one", f"{path}.id"))
        if _blank(entity.get("name")):
            entity["name"] = f"Entity {i + 1}"
            issues.append(_issue("entity.name", "Missing entity name, generated one", f"{path}.name"))
        if _blank(entity.get("pluralName")):
            entity["pluralName"] = entity["name"] + "s"
            issues.append(_issue("entity.plural_name", "Missing plural name, derived from name", f"{path}.pluralName", "info"))
        _check_fields(entity, path, entities[0]["id"], issues)
        if not isinstance(entity.get("displayConfig"), dict):
            fields = entity["fields"]
            entity["displayConfig"] = {
                "titleField": next((f["id"] for f in fields if f["id"] != "id"), "id"),
                "listFields": [f["id"] for f in fields[:4]],
                "searchFields": [f["id"] for f in fields if f.get("type") == "string"],
            }
            issues.append(_issue("entity.display_config", "Missing display config, generated from fields", f"{path}.displayConfig", "info"))


def _check_components(components: list, path: str, page_id: str, issues: List[Issue]) -> list:
    kept = []
    for i, component in enumerate(components):
        component_path = f"{path}[{i}]"
        if not isinstance(component, dict):
            issues.append(_issue("component.invalid", "Dropped non-object component", component_path))
            continue
        if _blank(component.get("id")):
            component["id"] = f"{page_id}-component-{i}"
            issues.append(_issue("component.id", "Missing component ID, generated one", f"{component_path}.id"))
        if _blank(component.get("type")) and _blank(component.get("componentId")):
            component["type"] = "text"
            issues.append(_issue("component.type", "Missing component type, defaulted to text", f"{component_path}.type"))
        if not isinstance(component.get("props"), dict):
            component["props"] = {}
            issues.append(_issue("component.props", "Missing component props, initialized empty", f"{component_path}.props", "info"))
        if isinstance(component.get("children"), list) and component["children"]:
            component["children"] = _check_components(component["children"], f"{component_path}.children", component["id"], issues)
        kept.append(component)
    return kept


def _claim_home_route(pages: list, issues: List[Issue]) -> None:
    owners = [i for i, p in enumerate(pages) if p.get("route") == "/"]
    if not owners:
        index = next((i for i, p in enumerate(pages) if p.get("type") == "dashboard"), 0)
        pages[index]["route"] = "/"
        issues.append(_issue("page.home_route", 'No home page (route "/"), assigned one', f"pages[{index}].route"))
        return
    keep = next((i for i in owners if pages[i].get("type") == "dashboard"), owners[0])
    for index in owners:
        if index == keep:
            continue
        pages[index]["route"] = f"/{pages[index]['id']}"
        issues.append(_issue("page.home_route", 'Duplicate home route "/", re-routed page', f"pages[{index}].route"))


def _check_pages(schema: dict, issues: List[Issue]) -> None:
    pages = schema["pages"]
    entities_by_id = {e["id"]: e for e in schema["entities"]}
    if not pages:
        entity = schema["entities"][0]
        page = {
            "id": "home",
            "name": entity.get("pluralName") or "Home",
            "route": "/",
            "type": "list",
            "entity": entity["id"],
            "layout": _default_layout(),
            "navigation": {"showInSidebar": True, "order": 0},
        }
        page["components"] = _default_components(page, entity)
        pages.append(page)
        issues.append(_issue("page.default", "No pages defined, added default home page", "pages"))
    seen_ids: set[str] = set()
    for i, page in enumerate(pages):
        path = f"pages[{i}]"
        if _blank(page.get("id")):
            page["id"] = f"page-{i}"
            issues.append(_issue("page.id", "Missing page ID, generated one", f"{path}.id"))
        if page["id"] in seen_ids:
            page["id"] = f"{page['id']}-{i}"
            issues.append(_issue("page.duplicate_id", "Duplicate page ID, renamed", f"{path}.id"))
        seen_ids.add(page["id"])
        if _blank(page.get("name")):
            page["name"] = f"Page {i + 1}"
            issues.append(_issue("page.name", "Missing page name, generated one", f"{path}.name"))
        if _blank(page.get("route")):
            page["route"] = f"/{page['id']}"
            issues.append(_issue("page.route", "Missing page route, generated one", f"{path}.route"))
        if _blank(page.get("type")):
            page["type"] = "list"
            issues.append(_issue("page.type", "Missing page type, defaulted to list", f"{path}.type"))
        if not isinstance(page.get("layout"), dict):
            page["layout"] = _default_layout()
            issues.append(_issue("page.layout", "Missing page layout, set default", f"{path}.layout"))
        if not _as_list(page.get("components")):
            entity_ref = page.get("entity")
            page["components"] = _default_components(page, entities_by_id.get(entity_ref) if isinstance(entity_ref, str) else None)
            issues.append(_issue("page.components", "Missing or empty components, generated defaults", f"{path}.components"))
        page["components"] = _check_components(page["components"], f"{path}.components", page["id"], issues)
        if not isinstance(page.get("navigation"), dict):
            page["navigation"] = {"showInSidebar": True, "order": i}
            issues.append(_issue("page.navigation", "Missing page navigation, set defaults", f"{path}.navigation", "info"))
    _claim_home_route(pages, issues)


def _workflow_entities(workflow: dict) -> set[str]:
    found = set()
    trigger = workflow.get("trigger") if isinstance(workflow.get("trigger"), dict) else {}
    if isinstance(trigger.get("entityId"), str):
        found.add(trigger["entityId"])
    stack = list(_as_list(workflow.get("actions")))
    while stack:
        action = stack.pop()
        if not isinstance(action, dict):
            continue
        config = action.get("config") if isinstance(action.get("config"), dict) else {}
        if isinstance(config.get("entityId"), str):
            found.add(config["entityId"])
        stack.extend(_as_list(action.get("thenActions")) + _as_list(action.get("elseActions")))
    return found


def _check_actions(actions: list, path: str, issues: List[Issue]) -> list:
    kept = []
    for j, action in enumerate(actions):
        action_path = f"{path}[{j}]"
        if not isinstance(action, dict):
            issues.append(_issue("action.invalid", "Dropped non-object action", action_path))
            continue
        if not action.get("id"):
            action["id"] = f"action-{j}"
            issues.append(_issue("action.id", "Missing action ID, generated one", f"{action_path}.id", "info"))
        if _blank(action.get("type")):
            action["type"] = "show_notification"
            issues.append(_issue("action.type", "Missing action type, defaulted to notification", f"{action_path}.type"))
        if not isinstance(action.get("config"), dict):
            action["config"] = {}
            issues.append(_issue("action.config", "Missing action config, initialized empty", f"{action_path}.config", "info"))
        for branch in ("thenActions", "elseActions"):
            if isinstance(action.get(branch), list):
                action[branch] = _check_actions(action[branch], f"{action_path}.{branch}", issues)
        kept.append(action)
    return kept


def _check_workflows(schema: dict, issues: List[Issue]) -> None:
    workflows = schema["workflows"]
    covered = set()
    for workflow in workflows:
        covered |= _workflow_entities(workflow)
    for entity in schema["entities"]:
        if entity["id"] in covered:
            continue
        existing = {w.get("id") for w in workflows}
        workflows.extend(w for w in crud_workflows(entity) if w["id"] not in existing)
        issues.append(_issue("workflow.crud", f"No workflows for entity {entity['id']}, generated CRUD workflows", "workflows", "info"))
    for i, workflow in enumerate(workflows):
        path = f"workflows[{i}]"
        if _blank(workflow.get("id")):
            workflow["id"] = f"workflow-{i}"
            issues.append(_issue("workflow.id", "Missing workflow ID, generated one", f"{path}.id"))
        if _blank(workflow.get("name")):
            workflow["name"] = f"Workflow {i + 1}"
            issues.append(_issue("workflow.name", "Missing workflow name, generated one", f"{path}.name"))
        if not isinstance(workflow.get("enabled"), bool):
            workflow["enabled"] = True
            issues.append(_issue("workflow.enabled", "Missing enabled flag, set to true", f"{path}.enabled", "info"))
        if not isinstance(workflow.get("trigger"), dict) or _blank(workflow["trigger"].get("type")):
            workflow["trigger"] = {"type": "button_click"}
            issues.append(_issue("workflow.trigger", "Missing workflow trigger, added default", f"{path}.trigger"))
        actions = _check_actions(_as_list(workflow.get("actions")), f"{path}.actions", issues)
        if not actions:
            actions = [{"id": "default-action", "type": "show_notification", "config": {"message": "Action executed", "type": "info"}}]
            issues.append(_issue("workflow.actions", "Missing or empty actions, added default", f"{path}.actions"))
        workflow["actions"] = actions


def _check_navigation(schema: dict, issues: List[Issue]) -> None:
    nav = schema["navigation"]
    pages = schema["pages"]
    if not isinstance(nav.get("rules"), list):
        nav["rules"] = []
        issues.append(_issue("navigation.rules", "Missing navigation rules, initialized empty", "navigation.rules", "info"))
    page_ids = {p["id"] for p in pages}
    if _blank(nav.get("defaultPage")) or nav["defaultPage"] not in page_ids:
        home = next((p["id"] for p in pages if p.get("route") == "/"), None)
        nav["defaultPage"] = home or (pages[0]["id"] if pages else "home")
        issues.append(_issue("navigation.default_page", "Invalid or missing default page, set to home page", "navigation.defaultPage"))
    if not isinstance(nav.get("sidebar"), dict):
        nav["sidebar"] = {"enabled": True, "position": "left", "collapsible": True, "items": []}
        issues.append(_issue("navigation.sidebar", "Missing sidebar config, set defaults", "navigation.sidebar"))
    sidebar = nav["sidebar"]
    if not _as_list(sidebar.get("items")) and not _as_list(sidebar.get("groups")):
        visible = [p for p in pages if (p.get("navigation") or {}).get("showInSidebar") is not False]
        visible.sort(key=lambda p: _order(p["navigation"].get("order")))
        sidebar["items"] = [
            {"pageId": p["id"], "label": p["name"], "icon": PAGE_TYPE_ICONS.get(p.get("type"), "📄"), "route": p.get("route")}
            for p in visible
        ]
        issues.append(_issue("navigation.sidebar_items", "Empty sidebar items, generated from pages", "navigation.sidebar.items", "info"))


def _check_theme(schema: dict, issues: List[Issue]) -> None:
    theme = schema.get("theme")
    if not isinstance(theme, dict):
        schema["theme"] = _default_theme()
        issues.append(_issue("theme.missing", "Missing theme, set default design system", "theme"))
        return
    if _blank(theme.get("primaryColor")):
        primary = (theme.get("colors") if isinstance(theme.get("colors"), dict) else {}).get("primary")
        theme["primaryColor"] = primary if not _blank(primary) else _default_theme()["primaryColor"]
        issues.append(_issue("theme.primary_color", "Missing primary color, set default", "theme.primaryColor"))
    if theme.get("mode") not in ("light", "dark"):
        theme["mode"] = "light"
        issues.append(_issue("theme.mode", "Missing theme mode, set to light", "theme.mode", "info"))
    if _blank(theme.get("borderRadius")):
        theme["borderRadius"] = "medium"
        issues.append(_issue("theme.border_radius", "Missing border radius, set to medium", "theme.borderRadius", "info"))


def _check_cross_references(schema: dict, issues: List[Issue]) -> None:
    entity_ids = {e["id"] for e in schema["entities"]}
    for page in schema["pages"]:
        if page.get("entity") and (not isinstance(page["entity"], str) or page["entity"] not in entity_ids):
            page.pop("entity")
            issues.append(_issue("xref.page_entity", "Page references non-existent entity, removed", f"pages.{page['id']}.entity"))
    for entity in schema["entities"]:
        for field in entity["fields"]:
            if field.get("type") != "reference":
                continue
            target = (field.get("reference") or {}).get("targetEntity")
            if not isinstance(target, str) or target not in entity_ids:
                field["type"] = "string"
                field.pop("reference", None)
                issues.append(
                    _issue(
                        "xref.field_reference",
                        "Reference to non-existent entity, changed to string",
                        f"entities.{entity['id']}.fields.{field['id']}",
                    )
                )


def _visible(components: list) -> bool:
    for component in components:
        if not isinstance(component, dict) or (component.get("props") or {}).get("hidden"):
            continue
        kind = next((v for v in (component.get("type"), component.get("componentId")) if isinstance(v, str) and v), None)
        if kind not in _INVISIBLE_TYPES:
            return True
        if _visible(_as_list(component.get("children"))):
            return True
    return False


def _ensure_renderable(schema: dict, issues: List[Issue]) -> None:
    for page in schema["pages"]:
        if _visible(page["components"]):
            continue
        components = [
            {"id": f"{page['id']}-title", "type": "text", "props": {"text": page["name"], "variant": "h1"}},
            {"id": f"{page['id']}-content", "type": "text", "props": {"text": f"Welcome to {page['name']}. Start adding content!", "variant": "body"}},
        ]
        if page.get("entity"):
            components.append({"id": f"{page['id']}-list", "type": "list", "props": {"source": page["entity"]}})
        page["components"] = components
        issues.append(_issue("render.blank_page", "Page had no visible content, added defaults", f"pages.{page['id']}.components"))


def _walk_actions(actions: list, path: str):
    for j, action in enumerate(actions):
        if not isinstance(action, dict):
            continue
        yield f"{path}[{j}]", action
        for branch in ("thenActions", "elseActions"):
            yield from _walk_actions(_as_list(action.get(branch)), f"{path}[{j}].{branch}")


def _check_email_templates(schema: dict, issues: List[Issue]) -> None:
    for i, workflow in enumerate(schema["workflows"]):
        for path, action in _walk_actions(workflow["actions"], f"workflows[{i}].actions"):
            if action.get("type") != "send_email":
                continue
            config = action["config"]
            labels = [(key, config.get(key)) for key in ("subject", "body", "html")]
            for error in template_syntax_errors(labels):
                issues.append(
                    _issue(
                        "workflow.email_template",
                        f"Email template syntax error in {error['message']} (line {error['line']})",
                        f"{path}.config.{error['label']}",
                        auto_fixed=False,
                    )
                )


_PASSES = (
    _check_structure,
    _check_entities,
    _check_pages,
    _check_workflows,
    _check_navigation,
    _check_theme,
    _check_cross_references,
    _ensure_renderable,
    _check_email_templates,
)


def validate(schema: Any) -> dict:
    """Check and repair a schema; returns `{valid, issues, fixedSchema}`."""
    fixed = copy.deepcopy(schema) if isinstance(schema, dict) else {}
    issues: List[Issue] = []
    if not isinstance(schema, dict):
        issues.append(_issue("structure.root", "Schema is not an object, started from empty", ""))
    for check in _PASSES:
        check(fixed, issues)
    valid = not any(i["severity"] == "error" and not i["autoFixed"] for i in issues)
    fixes = sum(1 for i in issues if i["autoFixed"])
    if fixes:
        logger.info("schema_repaired schema_id=%s fixes=%s", fixed.get("id"), fixes)
    return {"valid": valid, "issues": issues, "fixedSchema": fixed}
