"""Blueprint synthesis: intent -> complete app schema, and small revisions of one."""

from __future__ import annotations

import copy
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from appforge.naming import camel_case, kebab_case, slug_id, title_case

from entity_builder import build_from_inference, build_from_name
from entity_inference import (
    extract_main_noun,
    feature_ids,
    industry_id,
    infer_from_features,
    infer_from_intelligence,
    resolve_relationships,
)
from navigation_builder import build as build_navigation
from navigation_builder import build_surface_navigation, detect_surfaces
from page_builder import (
    build_calendar_page,
    build_detail_page,
    build_form_page,
    build_gallery_page,
    build_kanban_page,
    build_list_page,
    generate_dashboard,
    generate_for_entity,
    generate_settings_page,
    should_generate_calendar,
)
from theme_builder import STYLE_KEYWORDS, build_theme
from workflow_builder import crud_workflows, generate_all, navigation_workflows

logger = logging.getLogger("appforge.blueprint_synth")

GENERATOR_ID = "appforge-blueprint-synth"
REVISION_CONFIDENCE = 0.7
MAX_SUGGESTIONS = 3

NO_ENTITIES_WARNING = "No entities could be inferred. Using default entity structure."

INDUSTRY_ICONS = {
    "trades": "🔧",
    "services": "💼",
    "healthcare": "🏥",
    "real_estate": "🏠",
    "fitness": "💪",
    "retail": "🛒",
    "hospitality": "🍽️",
    "creative": "🎨",
    "technology": "💻",
    "home": "🏡",
}

DEFAULT_SETTINGS = {"locale": "en", "dateFormat": "YYYY-MM-DD", "timeFormat": "HH:mm", "currency": "USD"}

_NAME_PATTERN = re.compile(r"(?:called?|named?)\s+['\"]?([^'\"]+)['\"]?", re.IGNORECASE)

_SURFACE_TITLES = {
    "staff": ("Staff Home", "Today's assignments"),
    "customer": ("Customer Home", "Welcome back"),
    "provider": ("Provider Dashboard", "Your schedule and patients"),
    "patient": ("Patient Home", "Your care at a glance"),
}


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str | None:
    return value.strip() or None if isinstance(value, str) else None


def _industry_name(intelligence: dict) -> str | None:
    industry = intelligence.get("industry")
    if isinstance(industry, dict):
        return industry.get("name")
    return None


def _source_text(context: dict, intelligence: dict) -> str:
    text = context.get("text")
    if isinstance(text, str) and text:
        return text
    original = _as_dict(intelligence.get("parsed")).get("original")
    return original if isinstance(original, str) else ""


def _build_entities(context: dict, intelligence: dict, industry: str | None) -> list[dict]:
    if intelligence.get("entities"):
        entities = infer_from_intelligence(intelligence, industry)
        if entities:
            return entities
    if intelligence.get("features"):
        entities = infer_from_features(intelligence["features"], industry)
        if entities:
            return entities
    noun = extract_main_noun(_source_text(context, intelligence))
    if noun:
        return [build_from_name(noun, industry)]
    return []


def _build_pages(entities: List[dict], features: Any) -> list[dict]:
    pages = []
    has_dashboard = len(entities) > 1 or "dashboard" in feature_ids(features)
    if has_dashboard:
        pages.append(generate_dashboard(entities, features))
    for index, entity in enumerate(entities):
        pages.extend(
            generate_for_entity(
                entity,
                features,
                is_default=not has_dashboard and len(entities) == 1 and index == 0,
                order=index * 10,
            )
        )
    pages.append(generate_settings_page())
    return pages


def _surface_pages(surface: str, entities: List[dict]) -> list[dict]:
    title, subtitle = _SURFACE_TITLES[surface]
    pages = []
    for index, entity in enumerate(entities[:3]):
        page = build_list_page(entity, order=index + 1)
        page["id"] = f"{surface}-{entity['id']}-list"
        page["route"] = f"/{surface}/{kebab_case(entity.get('pluralName') or entity['name'])}"
        page["surface"] = surface
        pages.append(page)
    home = {
        "id": f"{surface}-home",
        "name": title,
        "route": f"/{surface}",
        "type": "custom",
        "surface": surface,
        "layout": {"type": "single-column", "sections": [{"id": "main", "type": "main", "components": [f"{surface}-home-header"]}]},
        "components": [
            {"id": f"{surface}-home-header", "type": "page-header", "props": {"title": title, "subtitle": subtitle}},
            *[
                {
                    "id": f"{surface}-{p['entity']}-preview",
                    "type": "data-list",
                    "props": {"source": p["entity"], "limit": 5, "compact": True},
                }
                for p in pages
            ],
        ],
        "navigation": {"showInSidebar": True, "order": 0},
    }
    return [home, *pages]


def _app_name(context: dict, intelligence: dict, entities: List[dict]) -> str:
    if isinstance(context.get("appName"), str) and context["appName"].strip():
        return context["appName"].strip()
    match = _NAME_PATTERN.search(_source_text(context, intelligence))
    if match and match.group(1).strip():
        return title_case(match.group(1).strip())
    industry_name = _industry_name(intelligence)
    if industry_name:
        return f"{industry_name} App"
    if entities:
        return f"{entities[0]['name']} Manager"
    return "My App"


def _description(intelligence: dict, entities: List[dict]) -> str:
    names = ", ".join(e.get("pluralName", "").lower() for e in entities)
    return f"A {_industry_name(intelligence) or 'your'} app to help you manage {names}."


def _app_icon(entities: List[dict], industry: str | None) -> str:
    if entities and entities[0].get("icon"):
        return entities[0]["icon"]
    return INDUSTRY_ICONS.get(industry or "", "📱")


def _feature_flags(features: Any) -> dict:
    flags = {"auth": True, "search": True, "exports": True}
    ids = set(feature_ids(features))
    if ids & {"notifications", "reminders"}:
        flags["notifications"] = True
    if ids & {"analytics", "reports"}:
        flags["analytics"] = True
    return flags


def calculate_confidence(intelligence: dict | None, entity_count: int, feature_count: int) -> float:
    confidence = 0.5
    if intelligence is not None:
        raw = intelligence.get("confidence")
        confidence += 0.2 * (raw if isinstance(raw, (int, float)) and not isinstance(raw, bool) else 0.5)
    if entity_count >= 2:
        confidence += 0.1
    if entity_count >= 4:
        confidence += 0.1
    if feature_count > 2:
        confidence += 0.1
    return min(round(confidence, 4), 1.0)


def _suggestions(schema: dict, context: dict) -> list[str]:
    suggestions: list[str] = []
    entities = schema["entities"]
    if len(entities) == 1:
        suggestions.append(f"Would you like to add related data types to {entities[0]['pluralName']}?")
    has_calendar = any(p.get("type") == "calendar" for p in schema["pages"])
    has_invoice = any(e.get("id") == "invoice" for e in entities)
    for entity in entities:
        behaviors = entity.get("behaviors") or []
        if "schedulable" in behaviors and not has_calendar:
            suggestions.append(f"Would you like a calendar view for {entity['pluralName']}?")
        if "billable" in behaviors and not has_invoice:
            message = "Would you like to add invoicing capabilities?"
            if message not in suggestions:
                suggestions.append(message)
    if not context.get("themePreference"):
        suggestions.append('You can customize the look by saying "make it more modern" or "use a minimal style".')
    return suggestions[:MAX_SUGGESTIONS]


def _result(schema: dict, confidence: float, suggestions: list, warnings: list, input_length: int) -> dict:
    return {
        "schema": schema,
        "confidence": confidence,
        "suggestions": suggestions,
        "warnings": warnings,
        "metadata": {
            "generatedAt": _now(),
            "inputLength": input_length,
            "entityCount": len(schema.get("entities") or []),
            "pageCount": len(schema.get("pages") or []),
            "workflowCount": len(schema.get("workflows") or []),
        },
    }


def generate(context: dict | None = None) -> dict:
    """Synthesize a full app schema. Missing input falls back, never raises."""
    context = _as_dict(context)
    intelligence_raw = context.get("intelligence")
    intelligence = _as_dict(intelligence_raw)
    warnings: list[str] = []

    industry = industry_id(intelligence.get("industry")) or industry_id(context.get("industry"))
    features = intelligence.get("features") if isinstance(intelligence.get("features"), list) else []
    text = _source_text(context, intelligence)

    entities = _build_entities(context, intelligence, industry)
    if not entities:
        warnings.append(NO_ENTITIES_WARNING)
        entities = [build_from_name("Item", industry)]

    pages = _build_pages(entities, features)
    surfaces = detect_surfaces(text, _as_list(context.get("surfaces")))
    for surface in surfaces[1:]:
        pages.extend(_surface_pages(surface, entities))

    workflows = generate_all(entities, features, industry)
    navigation = build_navigation(pages, entities, features)

    layout = _as_dict(intelligence.get("layout"))
    theme = build_theme(
        design_system_id=_text(context.get("designSystemId")),
        keyword=_text(context.get("themePreference")),
        industry=industry,
        adjectives=[a for a in _as_list(_as_dict(intelligence.get("parsed")).get("adjectives")) if isinstance(a, str)],
        mode=_text(context.get("mode")),
        preference=_as_dict(layout.get("theme")),
    )

    app_name = _app_name(context, intelligence, entities)
    confidence = calculate_confidence(
        intelligence if isinstance(intelligence_raw, dict) else None, len(entities), len(features)
    )
    schema = {
        "id": slug_id(app_name),
        "version": 1,
        "name": app_name,
        "description": _description(intelligence, entities),
        "icon": _app_icon(entities, industry),
        "industry": industry,
        "entities": entities,
        "pages": pages,
        "workflows": workflows,
        "navigation": navigation,
        "theme": theme,
        "settings": dict(DEFAULT_SETTINGS),
        "features": _feature_flags(features),
        "metadata": {
            "createdAt": _now(),
            "generatedBy": GENERATOR_ID,
            "confidence": confidence,
            "sourceInput": text or None,
        },
    }
    if len(surfaces) > 1:
        schema["surfaceNavigation"] = build_surface_navigation(pages, entities, features)

    logger.info(
        "blueprint_generated app_id=%s entities=%s pages=%s workflows=%s confidence=%.2f",
        schema["id"],
        len(entities),
        len(pages),
        len(workflows),
        confidence,
    )
    return _result(schema, confidence, _suggestions(schema, context), warnings, len(text))


# Revisions


def _has_feature(schema: dict, feature_id: str) -> bool:
    if feature_id == "invoicing":
        return any(e.get("id") == "invoice" for e in schema["entities"])
    if feature_id == "calendar":
        return any(p.get("type") == "calendar" for p in schema["pages"])
    if feature_id == "kanban":
        return any(p.get("type") == "kanban" for p in schema["pages"])
    return False


def _add_entity_to_schema(schema: dict, entity: dict) -> None:
    schema["entities"].append(entity)
    page_ids = {_text(p.get("id")) for p in schema["pages"]}
    schema["pages"].extend(p for p in generate_for_entity(entity, None, order=len(schema["entities"]) * 10) if p["id"] not in page_ids)
    workflow_ids = {_text(w.get("id")) for w in schema["workflows"]}
    new_workflows = crud_workflows(entity) + navigation_workflows([entity])
    schema["workflows"].extend(w for w in new_workflows if w["id"] not in workflow_ids)


def _schema_features(schema: dict) -> list[str]:
    """Feature ids recorded on a schema by its `features` flags."""
    return [name for name, enabled in _as_dict(schema.get("features")).items() if enabled is True]


def _rebuild_navigation(schema: dict) -> None:
    features = _schema_features(schema)
    pages = [p for p in schema["pages"] if _text(p.get("id"))]
    entities = [e for e in schema["entities"] if _text(e.get("id"))]
    schema["navigation"] = build_navigation(pages, entities, features)
    if schema.get("surfaceNavigation"):
        schema["surfaceNavigation"] = build_surface_navigation(pages, entities, features)


def _apply_add_feature(schema: dict, intelligence: dict, context: dict, warnings: list, features: list | None = None) -> None:
    features = features if features is not None else _as_list(intelligence.get("features"))
    for feature in features:
        feature = {"id": feature} if isinstance(feature, str) else _as_dict(feature)
        fid = feature.get("id")
        confidence = feature.get("confidence", 1.0)
        if not fid or not isinstance(confidence, (int, float)) or confidence <= 0.5 or _has_feature(schema, fid):
            continue
        if fid == "invoicing":
            _add_entity_to_schema(schema, build_from_name("Invoice", schema.get("industry")))
            _rebuild_navigation(schema)
        elif fid == "calendar":
            candidates = [_page_target(e) for e in schema["entities"] if _text(e.get("id"))]
            target = next((e for e in candidates if "schedulable" in e["behaviors"]), None)
            if target is None:
                target = next((e for e in candidates if should_generate_calendar(e, ["calendar"])), None)
            if target is None:
                warnings.append("No schedulable entity for a calendar view")
                continue
            schema["pages"].append(build_calendar_page(target))
            _rebuild_navigation(schema)


def _apply_add_entity(schema: dict, intelligence: dict, context: dict, warnings: list) -> None:
    existing = {_text(e.get("id")) for e in schema["entities"]}
    added = False
    for inferred in _as_list(intelligence.get("entities")):
        inferred = {"name": inferred} if isinstance(inferred, str) else _as_dict(inferred)
        name = _text(inferred.get("name")) or _text(inferred.get("id"))
        if not name:
            continue
        entity_id = _text(inferred.get("id")) or camel_case(name)
        if entity_id in existing:
            continue
        entity = build_from_inference(dict(inferred, name=name), schema.get("industry"), schema["entities"])
        _add_entity_to_schema(schema, entity)
        existing.add(entity["id"])
        added = True
    if added:
        resolve_relationships(schema["entities"])
        _rebuild_navigation(schema)


_PAGE_BUILDERS: Dict[str, Callable[[dict], dict]] = {
    "list": build_list_page,
    "form": build_form_page,
    "detail": build_detail_page,
    "calendar": build_calendar_page,
    "kanban": build_kanban_page,
    "gallery": build_gallery_page,
}


def _page_target(entity: dict) -> dict:
    """Entity as the page builders expect it: string id and name, dict fields with ids, string behaviors."""
    fields = [
        dict(f, type=_text(f.get("type")) or "string")
        for f in _as_list(entity.get("fields"))
        if isinstance(f, dict) and _text(f.get("id"))
    ]
    return dict(
        entity,
        name=_text(entity.get("name")) or title_case(entity["id"]),
        pluralName=_text(entity.get("pluralName")),
        fields=fields,
        behaviors=[b for b in _as_list(entity.get("behaviors")) if isinstance(b, str)],
    )


def _apply_add_page(schema: dict, intelligence: dict, context: dict, warnings: list) -> None:
    page_type = _as_dict(intelligence.get("layout")).get("primaryLayout") or context.get("pageType") or "list"
    builder = _PAGE_BUILDERS.get(page_type) if isinstance(page_type, str) else None
    if builder is None:
        warnings.append(f"Unsupported page type: {page_type}")
        return
    wanted = context.get("entity")
    nouns = [n.lower() for n in _as_list(_as_dict(intelligence.get("parsed")).get("nouns")) if isinstance(n, str)]
    target = None
    for entity in schema["entities"]:
        if not _text(entity.get("id")):
            continue
        names = {(_text(entity.get(key)) or "").lower() for key in ("id", "name", "pluralName")}
        if (wanted and wanted in (entity.get("id"), entity.get("name"))) or names & set(nouns):
            target = entity
            break
    target = target or next((e for e in schema["entities"] if _text(e.get("id"))), None)
    if target is None:
        warnings.append("No entity to attach the page to")
        return
    page = builder(_page_target(target))
    if any(p.get("id") == page["id"] for p in schema["pages"]):
        warnings.append(f"Page already exists: {page['id']}")
        return
    schema["pages"].append(page)
    _rebuild_navigation(schema)


def _apply_design_change(schema: dict, intelligence: dict, context: dict, warnings: list) -> None:
    preference = _as_dict(_as_dict(intelligence.get("layout")).get("theme"))
    adjectives = [a for a in _as_list(_as_dict(intelligence.get("parsed")).get("adjectives")) if isinstance(a, str)]
    keyword = _text(context.get("themePreference")) or _text(preference.get("style"))
    system_id = _text(context.get("designSystemId")) or _text(preference.get("designSystem"))
    if not (keyword or system_id or adjectives or preference):
        warnings.append("No design change requested")
        return
    schema["theme"] = build_theme(
        design_system_id=system_id,
        keyword=keyword,
        industry=schema.get("industry") if not adjectives else None,
        adjectives=adjectives,
        mode=_text(context.get("mode")) or _text(_as_dict(schema.get("theme")).get("mode")),
        preference=preference,
    )


def _apply_general_modification(schema: dict, intelligence: dict, context: dict, warnings: list) -> None:
    parsed = _as_dict(intelligence.get("parsed"))
    keywords = {w.lower() for w in _as_list(parsed.get("nouns")) + _as_list(parsed.get("adjectives")) if isinstance(w, str)}
    style_words = set(STYLE_KEYWORDS) | {"modern", "professional", "elegant", "dark", "light"}
    if keywords & style_words:
        style = sorted(keywords & style_words)[0]
        _apply_design_change(schema, intelligence, dict(context, themePreference=context.get("themePreference") or style), warnings)
    if keywords & {"invoice", "invoices", "invoicing"}:
        _apply_add_feature(schema, intelligence, context, warnings, [{"id": "invoicing", "confidence": 0.9}])
    if keywords & {"calendar", "schedule", "scheduling"}:
        _apply_add_feature(schema, intelligence, context, warnings, [{"id": "calendar", "confidence": 0.9}])


_REVISIONS: Dict[str, Callable[[dict, dict, dict, list], None]] = {
    "add_feature": _apply_add_feature,
    "add_entity": _apply_add_entity,
    "add_page": _apply_add_page,
    "change_design": _apply_design_change,
    "modify_app": _apply_general_modification,
}


def revise(schema: dict, context: dict | None = None) -> dict:
    """Apply one narrowly scoped change to a copy of an existing schema."""
    context = _as_dict(context)
    intelligence = _as_dict(context.get("intelligence"))
    revised = copy.deepcopy(schema) if isinstance(schema, dict) else {}
    for key in ("entities", "pages", "workflows"):
        revised[key] = [item for item in _as_list(revised.get(key)) if isinstance(item, dict)]
    warnings: list[str] = []
    intent = _as_dict(intelligence.get("parsed")).get("intent") or context.get("intent")
    apply = _REVISIONS.get(intent) if isinstance(intent, str) else None
    if apply is None:
        warnings.append(f"Unknown revision intent: {intent}")
    else:
        apply(revised, intelligence, context, warnings)
    revised["metadata"] = dict(_as_dict(revised.get("metadata")), updatedAt=_now())
    version = revised.get("version")
    revised["version"] = (version if isinstance(version, int) and version > 0 else 1) + 1
    logger.info("blueprint_revised app_id=%s intent=%s version=%s", revised.get("id"), intent, revised["version"])
    return _result(revised, REVISION_CONFIDENCE, [], warnings, len(_source_text(context, intelligence)))
