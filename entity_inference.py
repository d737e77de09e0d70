from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from appforge.naming import camel_case, singularize

from entity_builder import build_from_inference, build_from_name, make_field

logger = logging.getLogger("appforge.entity_inference")

_BOOLEAN_PREFIXES = ("is", "has", "can", "should")
_BOOLEAN_WORDS = ("active", "enabled", "completed", "done", "paid", "verified", "approved")

_FIELD_TYPE_RULES = [
    ("datetime", ("datetime", "timestamp")),
    ("date", ("date", "birthday", "due", "deadline", "born")),
    ("time", ("time",)),
    ("currency", ("price", "cost", "amount", "total", "fee", "rate", "salary", "budget")),
    ("percentage", ("percent", "ratio")),
    ("number", ("count", "quantity", "number", "age", "size", "width", "height", "weight", "score", "rating", "level")),
]

_MEDIA_RULES = [
    ("image", ("image", "photo", "picture", "avatar", "logo", "thumbnail", "icon")),
    ("file", ("file", "attachment", "document", "resume", "pdf", "upload")),
]

_LONG_TEXT = ("description", "notes", "content", "body", "bio", "summary", "details", "comment")

# Feature id -> entity name the feature implies, and ids that already satisfy it.
IMPLIED_ENTITIES = {
    "invoicing": ("Invoice", {"invoice"}),
    "scheduling": ("Appointment", {"appointment", "booking", "event"}),
    "appointments": ("Appointment", {"appointment", "booking", "event"}),
    "calendar": ("Appointment", {"appointment", "booking", "event"}),
    "messaging": ("Message", {"message", "notification"}),
    "notifications": ("Message", {"message", "notification"}),
    "documents": ("Document", {"document"}),
    "user_management": ("User", {"user"}),
    "roles": ("User", {"user"}),
}

FEATURE_ENTITY_SUGGESTIONS = [
    ({"crud", "search", "filtering"}, "Item", 0.5),
    ({"client_portal", "messaging", "notifications"}, "Client", 0.8),
    ({"calendar", "scheduling", "appointments", "reminders"}, "Appointment", 0.9),
    ({"invoicing", "payments", "billing"}, "Invoice", 0.9),
    ({"inventory"}, "Product", 0.9),
    ({"job_tracking", "pipelines", "status_tracking"}, "Job", 0.8),
]

INDUSTRY_ENTITY_SUGGESTIONS: Dict[str, List[tuple]] = {
    "trades": [("Job", 0.9), ("Client", 0.9)],
    "healthcare": [("Patient", 0.9), ("Appointment", 0.9)],
    "real_estate": [("Property", 0.9), ("Client", 0.8)],
    "fitness": [("Workout", 0.9), ("Exercise", 0.8)],
    "services": [("Service", 0.9), ("Client", 0.9), ("Appointment", 0.8)],
}

_LEADING_VERBS = re.compile(r"^(build|create|make|design|develop)\s+(me\s+)?(an?\s+)?", re.IGNORECASE)
_TRAILING_NOUNS = re.compile(r"\s+(app|application|system|tool|manager|tracker)$", re.IGNORECASE)


def _is_boolean_name(lower: str, raw: str) -> bool:
    for prefix in _BOOLEAN_PREFIXES:
        if raw.startswith(prefix) and len(raw) > len(prefix) and raw[len(prefix)].isupper():
            return True
        if lower.startswith(prefix + "_") or lower.startswith(prefix + " "):
            return True
    return any(word in lower for word in _BOOLEAN_WORDS)


def infer_field_type(field_name: str, entity_name: str = "") -> str:
    """Best-guess field type from a field's name."""
    raw = (field_name or "").strip()
    lower = raw.lower()
    if not lower:
        return "string"
    if "email" in lower or lower == "e-mail":
        return "email"
    if any(k in lower for k in ("phone", "mobile", "tel")) or lower == "cell":
        return "phone"
    if any(k in lower for k in ("url", "website", "link", "href")):
        return "url"
    for field_type, keys in _FIELD_TYPE_RULES:
        if any(k in lower for k in keys):
            return field_type
    if _is_boolean_name(lower, raw):
        return "boolean"
    for field_type, keys in _MEDIA_RULES:
        if any(k in lower for k in keys):
            return field_type
    if lower == "address" or "location" in lower or "street" in lower:
        return "address"
    if any(k in lower for k in _LONG_TEXT):
        return "richtext"
    if lower != "id" and (raw.endswith("Id") or lower.endswith("_id")):
        return "reference"
    return "string"


def feature_ids(features: Any) -> list[str]:
    out = []
    if not isinstance(features, (list, tuple)):
        return out
    for feature in features:
        if isinstance(feature, str):
            out.append(feature)
        elif isinstance(feature, dict) and isinstance(feature.get("id"), str) and feature["id"]:
            out.append(feature["id"])
    return out


def industry_id(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("id") if isinstance(value.get("id"), str) else None
    if isinstance(value, str) and value:
        return value
    return None


def implied_entities(features: Any, existing_ids: set[str], industry: str | None = None) -> list[dict]:
    implied: list[dict] = []
    for fid in feature_ids(features):
        rule = IMPLIED_ENTITIES.get(fid)
        if not rule:
            continue
        name, satisfied_by = rule
        if existing_ids & satisfied_by:
            continue
        entity = build_from_name(name, industry)
        if entity["id"] in existing_ids or any(e["id"] == entity["id"] for e in implied):
            continue
        implied.append(entity)
    return implied


def suggest_entities_from_features(features: Any, industry: str | None = None) -> list[tuple]:
    ids = set(feature_ids(features))
    suggestions = [(name, confidence) for keys, name, confidence in FEATURE_ENTITY_SUGGESTIONS if ids & keys]
    if industry and not suggestions:
        suggestions = list(INDUSTRY_ENTITY_SUGGESTIONS.get(industry) or [("Item", 0.5)])
    # stable sort keeps declaration order for ties
    return sorted(suggestions, key=lambda s: -s[1])


def infer_from_features(features: Any, industry: str | None = None) -> list[dict]:
    entities = []
    for name, _confidence in suggest_entities_from_features(features, industry):
        entity = build_from_name(name, industry)
        if not any(e["id"] == entity["id"] for e in entities):
            entities.append(entity)
    return entities


def resolve_relationships(entities: List[dict]) -> None:
    """Bind `<target>Id` reference fields to existing entities and add back-references."""
    entities = [e for e in entities if isinstance(e, dict) and isinstance(e.get("id"), str)]
    by_id = {e["id"]: e for e in entities}
    for entity in entities:
        fields = entity.get("fields") if isinstance(entity.get("fields"), list) else []
        for field in fields:
            if not isinstance(field, dict) or field.get("type") != "reference" or field.get("reference"):
                continue
            if not isinstance(field.get("id"), str):
                continue
            target_id = re.sub(r"(Id|_id)$", "", field["id"])
            target = by_id.get(target_id) or by_id.get(camel_case(target_id))
            if target is None:
                field["type"] = "string"
                continue
            field["reference"] = {
                "targetEntity": target["id"],
                "displayField": (target.get("displayConfig") or {}).get("titleField", "name"),
                "relationship": "many_to_one",
            }
            target.setdefault("relationships", []).append(
                {
                    "id": f"{entity['id']}-{target['id']}",
                    "type": "one_to_many",
                    "targetEntity": entity["id"],
                    "foreignKey": field["id"],
                    "backReference": str(entity.get("pluralName") or f"{entity['id']}s").lower(),
                }
            )


def add_computed_fields(entities: List[dict], features: Any) -> None:
    ids = set(feature_ids(features))
    for entity in entities:
        fields = entity.setdefault("fields", [])
        field_ids = {f.get("id") for f in fields}
        behaviors = entity.get("behaviors") or []
        if "billable" in behaviors and "total" not in field_ids:
            if any("item" in (f.get("id") or "").lower() or "line" in (f.get("id") or "").lower() for f in fields):
                fields.append(
                    make_field(
                        "total",
                        "Total",
                        "currency",
                        computed={"expression": "SUM(items.amount)", "dependencies": ["items"]},
                        displayOptions={"readonly": True},
                    )
                )
        if "trackable" in behaviors and "progress_tracking" in ids and "progress" not in field_ids:
            fields.append(
                make_field(
                    "progress",
                    "Progress",
                    "percentage",
                    computed={"expression": "COUNT(tasks.completed) / COUNT(tasks) * 100", "dependencies": ["tasks"]},
                    displayOptions={"readonly": True},
                )
            )


def infer_from_intelligence(intelligence: dict, industry: str | None = None) -> list[dict]:
    industry = industry_id(intelligence.get("industry")) or industry
    features = intelligence.get("features") or []
    hints = intelligence.get("entities")
    entities: list[dict] = []
    for inferred in hints if isinstance(hints, list) else []:
        if isinstance(inferred, str):
            inferred = {"name": inferred}
        if not isinstance(inferred, dict):
            continue
        name = next((v.strip() for v in (inferred.get("name"), inferred.get("id")) if isinstance(v, str) and v.strip()), None)
        if not name:
            logger.debug("entity_inference_skipped hint=%r", inferred)
            continue
        inferred = dict(inferred, name=name)
        entity = build_from_inference(inferred, industry, entities)
        if any(e["id"] == entity["id"] for e in entities):
            logger.info("entity_inference_duplicate entity_id=%s", entity["id"])
            continue
        entities.append(entity)
    entities.extend(implied_entities(features, {e["id"] for e in entities}, industry))
    resolve_relationships(entities)
    add_computed_fields(entities, features)
    return entities


def extract_main_noun(text: str) -> str | None:
    cleaned = _LEADING_VERBS.sub("", (text or "").strip().lower())
    cleaned = _TRAILING_NOUNS.sub("", cleaned).strip()
    words = [w for w in re.split(r"\s+", cleaned) if w]
    if not words:
        return None
    word = re.sub(r"[^a-z0-9]", "", words[0])
    return singularize(word) if word else None
