"""Entity construction: template fields, behaviors, display config."""

from __future__ import annotations

from typing import Any, Dict, List

from appforge.naming import camel_case, pluralize, title_case

EnumOption = Dict[str, str]

FIELD_TYPES = {
    "string",
    "text",
    "number",
    "boolean",
    "date",
    "datetime",
    "time",
    "email",
    "phone",
    "url",
    "currency",
    "percentage",
    "richtext",
    "enum",
    "reference",
    "image",
    "file",
    "address",
}

INTERNAL_FIELD_IDS = {"id", "createdAt", "updatedAt", "created_at", "updated_at"}

_OPTION_COLORS = ["#9ca3af", "#60a5fa", "#34d399", "#f87171", "#fbbf24", "#a78bfa"]

_ENTITY_ICONS = [
    ("client", "👤"),
    ("customer", "👤"),
    ("contact", "👤"),
    ("user", "👤"),
    ("person", "👤"),
    ("patient", "👤"),
    ("member", "👤"),
    ("job", "🔧"),
    ("task", "✅"),
    ("project", "📋"),
    ("work", "💼"),
    ("invoice", "📄"),
    ("payment", "💳"),
    ("order", "🛒"),
    ("bill", "📃"),
    ("appointment", "📅"),
    ("event", "📆"),
    ("booking", "🗓️"),
    ("schedule", "📆"),
    ("product", "📦"),
    ("item", "📦"),
    ("inventory", "📦"),
    ("stock", "📦"),
    ("property", "🏠"),
    ("listing", "🏠"),
    ("house", "🏡"),
    ("workout", "💪"),
    ("exercise", "🏋️"),
    ("recipe", "📖"),
    ("meal", "🍽️"),
    ("message", "💬"),
    ("note", "📝"),
    ("comment", "💭"),
    ("document", "📄"),
    ("file", "📁"),
    ("attachment", "📎"),
]


def make_field(
    field_id: str,
    name: str | None = None,
    field_type: str = "string",
    required: bool = False,
    unique: bool = False,
    **extra: Any,
) -> dict:
    field = {
        "id": field_id,
        "name": name or title_case(field_id),
        "type": field_type if field_type in FIELD_TYPES else "string",
        "required": required,
        "unique": unique,
    }
    field.update(extra)
    return field


def enum_options(*values: str) -> list[EnumOption]:
    return [
        {"value": value, "label": title_case(value), "color": _OPTION_COLORS[idx % len(_OPTION_COLORS)]}
        for idx, value in enumerate(values)
    ]


def enum_field(field_id: str, values: List[str], required: bool = False, name: str | None = None) -> dict:
    return make_field(field_id, name, "enum", required=required, enumOptions=enum_options(*values))


def id_field() -> dict:
    return make_field("id", "ID", "string", required=True, unique=True, displayOptions={"hidden": True})


def timestamp_fields() -> list[dict]:
    return [
        make_field("createdAt", "Created At", "datetime", displayOptions={"hidden": True}),
        make_field("updatedAt", "Updated At", "datetime", displayOptions={"hidden": True}),
    ]


def _template_fields(name: str) -> list[dict]:
    lower = name.lower()
    if any(k in lower for k in ("client", "customer", "contact", "patient", "member", "student", "tenant")):
        return [
            make_field("email", "Email", "email", required=True),
            make_field("phone", "Phone", "phone"),
            make_field("company", "Company"),
            make_field("address", "Address", "address"),
            make_field("notes", "Notes", "richtext"),
        ]
    if any(k in lower for k in ("job", "project", "task")):
        return [
            make_field("description", "Description", "text"),
            enum_field("status", ["pending", "in_progress", "completed", "cancelled"], required=True),
            enum_field("priority", ["low", "medium", "high"]),
            make_field("dueDate", "Due Date", "date"),
        ]
    if any(k in lower for k in ("invoice", "payment", "order")):
        return [
            make_field("amount", "Amount", "currency", required=True),
            enum_field("status", ["draft", "pending", "paid", "overdue"], required=True),
            make_field("dueDate", "Due Date", "date"),
            make_field("paidDate", "Paid Date", "date"),
        ]
    if any(k in lower for k in ("appointment", "event", "booking", "session", "lesson", "reservation")):
        return [
            make_field("date", "Date", "datetime", required=True),
            make_field("endDate", "End Date", "datetime"),
            make_field("location", "Location", "address"),
            enum_field("status", ["scheduled", "confirmed", "cancelled", "completed"]),
            make_field("notes", "Notes", "text"),
        ]
    if any(k in lower for k in ("product", "item", "inventory")):
        return [
            make_field("sku", "SKU", unique=True),
            make_field("description", "Description", "text"),
            make_field("price", "Price", "currency", required=True),
            make_field("cost", "Cost", "currency"),
            make_field("quantity", "Quantity", "number"),
            make_field("image", "Image", "image"),
        ]
    return [make_field("description", "Description", "text")]


def _industry_fields(name: str, industry: str | None) -> list[dict]:
    lower = name.lower()
    if industry == "trades" and any(k in lower for k in ("job", "project", "task")):
        return [
            make_field("serviceAddress", "Service Address", "address"),
            make_field("estimatedDuration", "Estimated Duration", "number"),
            make_field("photos", "Photos", "image"),
        ]
    if industry == "healthcare" and any(k in lower for k in ("patient", "client")):
        return [
            make_field("dateOfBirth", "Date of Birth", "date"),
            make_field("insuranceId", "Insurance ID"),
            make_field("emergencyContact", "Emergency Contact", "phone"),
        ]
    if industry == "real_estate" and any(k in lower for k in ("property", "listing")):
        return [
            make_field("bedrooms", "Bedrooms", "number"),
            make_field("bathrooms", "Bathrooms", "number"),
            make_field("sqft", "Square Feet", "number"),
            make_field("yearBuilt", "Year Built", "number"),
        ]
    if industry == "fitness" and any(k in lower for k in ("workout", "exercise", "session")):
        return [
            make_field("sets", "Sets", "number"),
            make_field("reps", "Reps", "number"),
            make_field("weight", "Weight", "number"),
            make_field("duration", "Duration", "number"),
        ]
    return []


def _merge_fields(base: list[dict], extra: list[dict]) -> list[dict]:
    seen = {f["id"] for f in base}
    out = list(base)
    for field in extra:
        if field["id"] not in seen:
            out.append(field)
            seen.add(field["id"])
    return out


def ensure_standard_fields(fields: list[dict]) -> list[dict]:
    """id first, a name/title field second, timestamps last."""
    rest = [f for f in fields if f.get("id") not in {"id", "createdAt", "updatedAt"}]
    if not any(f.get("id") in {"name", "title"} for f in rest):
        rest.insert(0, make_field("name", "Name", "string", required=True))
    return [id_field(), *rest, *timestamp_fields()]


def infer_behaviors(fields: list[dict]) -> list[str]:
    behaviors: list[str] = []
    ids = {f.get("id", "").lower() for f in fields}
    types = {f.get("type") for f in fields}
    if ids & {"status", "stage", "state"}:
        behaviors.append("trackable")
    if ids & {"assignedto", "assignee", "owner"}:
        behaviors.append("assignable")
    if any(f.get("type") in {"date", "datetime"} and f.get("id") not in {"createdAt", "updatedAt"} for f in fields):
        behaviors.append("schedulable")
    if "currency" in types or ids & {"price", "amount", "cost", "total"}:
        behaviors.append("billable")
    if types & {"file", "image"}:
        behaviors.append("attachable")
    return behaviors


def suggest_icon(name: str, behaviors: List[str] | None = None) -> str:
    lower = name.lower()
    for key, icon in _ENTITY_ICONS:
        if key in lower:
            return icon
    behaviors = behaviors or []
    if "schedulable" in behaviors:
        return "📅"
    if "billable" in behaviors:
        return "💰"
    if "trackable" in behaviors:
        return "📊"
    return "📋"


def build_display_config(fields: list[dict]) -> dict:
    visible = [f for f in fields if not (f.get("displayOptions") or {}).get("hidden")]
    title = next((f["id"] for f in visible if f.get("id") in {"name", "title", "subject"}), None)
    if title is None:
        title = visible[0]["id"] if visible else "id"
    config = {
        "titleField": title,
        "listFields": [f["id"] for f in visible if f.get("id") != "id"][:5],
        "searchFields": [f["id"] for f in visible if f.get("type") in {"string", "text", "email"}][:3],
        "filterFields": [f["id"] for f in visible if f.get("type") == "enum"],
    }
    subtitle = next((f["id"] for f in visible if f.get("id") in {"status", "type", "category"}), None)
    if subtitle:
        config["subtitleField"] = subtitle
    image = next((f["id"] for f in fields if f.get("type") == "image"), None)
    if image:
        config["imageField"] = image
    return config


def build_crud_rules(behaviors: List[str]) -> dict:
    return {
        "create": {"enabled": True, "confirmation": False, "successMessage": "Created successfully!"},
        "read": {"enabled": True, "pageSize": 20},
        "update": {"enabled": True, "confirmation": False, "successMessage": "Updated successfully!"},
        "delete": {"enabled": True, "confirmation": True, "softDelete": "archivable" in behaviors},
    }


def _assemble(entity_id: str, name: str, plural: str | None, fields: list[dict], extra_behaviors: List[str] | None, icon: str | None) -> dict:
    fields = ensure_standard_fields(fields)
    behaviors = infer_behaviors(fields)
    for behavior in extra_behaviors or []:
        if behavior not in behaviors:
            behaviors.append(behavior)
    return {
        "id": entity_id,
        "name": name,
        "pluralName": plural or pluralize(name),
        "icon": icon or suggest_icon(name, behaviors),
        "fields": fields,
        "behaviors": behaviors,
        "displayConfig": build_display_config(fields),
        "crud": build_crud_rules(behaviors),
    }


def build_from_name(name: str, industry: str | None = None) -> dict:
    name = title_case(name if isinstance(name, str) else "") or "Item"
    fields = _merge_fields(_template_fields(name), _industry_fields(name, industry))
    return _assemble(camel_case(name), name, None, fields, None, None)


def _text(value: Any) -> str | None:
    return value.strip() or None if isinstance(value, str) else None


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def build_from_inference(inferred: dict, industry: str | None = None, existing: List[dict] | None = None) -> dict:
    """Entity from an intelligence-inferred entity hint.

    Non-string names, ids and types in the hint are ignored rather than trusted.
    """
    from entity_inference import infer_field_type

    name = title_case(_text(inferred.get("name")) or _text(inferred.get("id")) or "Item")
    fields = []
    for raw in _list(inferred.get("fields")):
        if isinstance(raw, str):
            raw = {"name": raw}
        if not isinstance(raw, dict):
            continue
        label = _text(raw.get("name")) or _text(raw.get("id")) or ""
        field_id = _text(raw.get("id")) or camel_case(label)
        if not field_id:
            continue
        field_type = _text(raw.get("type")) or infer_field_type(label, name)
        extra = {}
        if field_type == "enum":
            options = raw.get("enumOptions") or raw.get("options")
            if isinstance(options, list) and options and all(isinstance(o, str) for o in options):
                options = enum_options(*options)
            elif not (isinstance(options, list) and all(isinstance(o, dict) for o in options)):
                options = None
            extra["enumOptions"] = options or enum_options("active", "inactive")
        fields.append(
            make_field(
                field_id,
                title_case(label) if label else None,
                field_type,
                required=bool(raw.get("required")),
                unique=bool(raw.get("unique")),
                **extra,
            )
        )
    if not [f for f in fields if f["id"] not in INTERNAL_FIELD_IDS]:
        fields = _template_fields(name)
    fields = _merge_fields(fields, _industry_fields(name, industry))
    entity = _assemble(
        _text(inferred.get("id")) or camel_case(name),
        name,
        _text(inferred.get("pluralName")),
        fields,
        [b for b in _list(inferred.get("behaviors")) if isinstance(b, str)],
        _text(inferred.get("suggestedIcon")),
    )
    existing_ids = {e.get("id") for e in existing or [] if isinstance(e, dict)}
    relationships = []
    for rel in _list(inferred.get("relationships")):
        if not isinstance(rel, dict) or not _text(rel.get("targetEntity")):
            continue
        target = _text(rel.get("targetEntity"))
        relationships.append(
            {
                "id": f"{entity['id']}-{target}",
                "type": _text(rel.get("type")) or "many_to_one",
                "targetEntity": target,
                "foreignKey": _text(rel.get("fieldName")) or f"{target}Id",
                "backReference": pluralize(entity["id"]) if target in existing_ids else None,
            }
        )
    if relationships:
        entity["relationships"] = relationships
    return entity
