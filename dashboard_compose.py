"""Compose a DashboardIntent from entity definitions and an industry kit."""

from __future__ import annotations

from typing import Any, Dict, List

from appforge.dashboard_intent import sort_sections, validate_dashboard_intent

INDUSTRY_SECTION_CONFIGS: Dict[str, dict] = {
    "bakery": {
        "todayTitle": "Today at the Bakery",
        "inProgressTitle": "Orders in Progress",
        "upcomingTitle": "Upcoming Catering",
        "summaryTitle": "Bakery Performance",
        "primaryEntity": "order",
        "secondaryEntities": ["product", "customer"],
        "actionLabels": {"markReady": "Mark as Baked", "startProduction": "Start Baking", "completeOrder": "Order Ready for Pickup"},
        "metricLabels": {"orders.count": "Orders", "orders.total": "Sales", "products.count": "Products"},
    },
    "restaurant": {
        "todayTitle": "Today's Service",
        "inProgressTitle": "Active Orders",
        "upcomingTitle": "Upcoming Reservations",
        "summaryTitle": "Restaurant Overview",
        "primaryEntity": "order",
        "secondaryEntities": ["reservation", "menuItem"],
        "actionLabels": {"markReady": "Ready to Serve", "startPreparing": "Start Preparing", "confirmReservation": "Confirm Reservation"},
        "metricLabels": {"orders.count": "Orders", "tables.occupied": "Tables Occupied", "reservations.count": "Reservations"},
    },
    "medical": {
        "todayTitle": "Today's Schedule",
        "inProgressTitle": "Patients Waiting",
        "upcomingTitle": "Upcoming Appointments",
        "summaryTitle": "Practice Overview",
        "primaryEntity": "appointment",
        "secondaryEntities": ["patient", "treatmentNote"],
        "actionLabels": {"checkIn": "Check In Patient", "startAppointment": "Start Appointment", "completeNote": "Complete Treatment Note"},
        "metricLabels": {"appointments.count": "Appointments", "patients.count": "Patients", "treatmentNotes.pending": "Pending Notes"},
    },
    "gym": {
        "todayTitle": "Today at the Gym",
        "inProgressTitle": "Active Classes",
        "upcomingTitle": "Today's Schedule",
        "summaryTitle": "Gym Performance",
        "primaryEntity": "classSchedule",
        "secondaryEntities": ["member", "membership"],
        "actionLabels": {"checkIn": "Check In", "startClass": "Start Class", "renewMembership": "Renew Membership"},
        "metricLabels": {"members.active": "Active Members", "classes.today": "Classes Today", "memberships.expiring": "Expiring Soon"},
    },
    "construction": {
        "todayTitle": "Today's Work",
        "inProgressTitle": "Active Projects",
        "upcomingTitle": "Scheduled Tasks",
        "summaryTitle": "Project Overview",
        "primaryEntity": "project",
        "secondaryEntities": ["task", "invoice"],
        "actionLabels": {"updateProgress": "Update Progress", "markComplete": "Mark Complete", "approveChange": "Approve Change Order"},
        "metricLabels": {"projects.active": "Active Projects", "tasks.overdue": "Overdue Tasks", "invoices.outstanding": "Outstanding"},
    },
    "realEstate": {
        "todayTitle": "Today's Activity",
        "inProgressTitle": "Active Maintenance",
        "upcomingTitle": "Upcoming Leases",
        "summaryTitle": "Property Overview",
        "primaryEntity": "property",
        "secondaryEntities": ["tenant", "maintenanceRequest"],
        "actionLabels": {"collectRent": "Record Payment", "assignMaintenance": "Assign Technician", "renewLease": "Renew Lease"},
        "metricLabels": {"properties.occupancy": "Occupancy Rate", "rent.collected": "Rent Collected", "maintenance.open": "Open Requests"},
    },
    "tutoring": {
        "todayTitle": "Today's Lessons",
        "inProgressTitle": "Active Sessions",
        "upcomingTitle": "Scheduled Lessons",
        "summaryTitle": "Teaching Overview",
        "primaryEntity": "lesson",
        "secondaryEntities": ["student", "homework"],
        "actionLabels": {"startLesson": "Start Lesson", "completeLesson": "Complete Lesson", "assignHomework": "Assign Homework"},
        "metricLabels": {"lessons.today": "Lessons Today", "students.active": "Active Students", "homework.pending": "Pending Homework"},
    },
    "default": {
        "todayTitle": "Today at a Glance",
        "inProgressTitle": "In Progress",
        "upcomingTitle": "Coming Up",
        "summaryTitle": "Overall Performance",
        "actionLabels": {"markComplete": "Mark Complete", "create": "Create New", "edit": "Edit"},
    },
}

_STATUS_VALUES = {"pending", "in_progress", "active", "new", "processing"}
_PENDING_VALUES = {"pending", "new", "waiting", "queued", "scheduled", "draft", "confirmed"}
_ACTIVE_VALUES = {"active", "in_progress", "in-progress", "processing", "started", "running"}
_DATE_FIELD_IDS = ("date", "scheduledDate", "appointmentDate", "dueDate", "eventDate", "orderDate", "startDate")
_TRANSACTIONAL = ("order", "booking", "appointment", "transaction", "invoice", "payment")
_HISTORY_HINTS = ("order", "transaction", "appointment", "booking")
_REVENUE_IDS = {"total", "amount", "price", "revenue"}
_TIMESTAMP_IDS = {"createdAt", "updatedAt"}


def section_config(industry_id: str | None, overrides: dict | None = None) -> dict:
    """Section config for an industry, with optional overrides merged on a copy."""
    base = INDUSTRY_SECTION_CONFIGS.get(industry_id or "") or INDUSTRY_SECTION_CONFIGS["default"]
    config = dict(base)
    for key, value in (overrides or {}).items():
        if key in {"actionLabels", "metricLabels"} and isinstance(value, dict):
            config[key] = {**(base.get(key) or {}), **value}
        else:
            config[key] = value
    return config


def _fields(entity: dict) -> list[dict]:
    return [f for f in entity.get("fields") or [] if isinstance(f, dict)]


def _option_values(field: dict) -> list[str]:
    return [str(o.get("value")) for o in field.get("enumOptions") or [] if isinstance(o, dict) and o.get("value") is not None]


def _plural(entity: dict) -> str:
    return entity.get("pluralName") or f"{entity.get('name') or entity.get('id')}s"


def find_status_entities(entities: List[dict]) -> list[dict]:
    def has_status(field: dict) -> bool:
        if field.get("id") == "status" or "status" in (field.get("name") or "").lower():
            return True
        return field.get("type") == "enum" and any(v.lower() in _STATUS_VALUES for v in _option_values(field))

    return [e for e in entities if any(has_status(f) for f in _fields(e))]


def find_schedulable_entities(entities: List[dict]) -> list[dict]:
    # createdAt/updatedAt are bookkeeping, not a schedule
    return [
        e
        for e in entities
        if any(
            (f.get("type") in {"date", "datetime"} and f.get("id") not in _TIMESTAMP_IDS) or f.get("id") in _DATE_FIELD_IDS
            for f in _fields(e)
        )
    ]


def find_primary_date_field(entity: dict) -> dict | None:
    fields = _fields(entity)
    for field_id in _DATE_FIELD_IDS + ("createdAt",):
        for field in fields:
            if field.get("id") == field_id:
                return field
    return next((f for f in fields if f.get("type") in {"date", "datetime"}), None)


def find_status_field(entity: dict) -> dict | None:
    return next((f for f in _fields(entity) if f.get("id") == "status" or (f.get("name") or "").lower() == "status"), None)


def pending_statuses(status_field: dict) -> list[str]:
    if not status_field.get("enumOptions"):
        return ["pending", "new"]
    return [v for v in _option_values(status_field) if v.lower() in _PENDING_VALUES]


def active_statuses(status_field: dict) -> list[str]:
    if not status_field.get("enumOptions"):
        return ["active", "in_progress"]
    return [v for v in _option_values(status_field) if v.lower() in _ACTIVE_VALUES]


def _kpi_scope(label: str) -> str:
    lower = label.lower()
    if "week" in lower:
        return "this-week"
    if "month" in lower:
        return "this-month"
    return "today"


def _today_section(entities: List[dict], config: dict, template: dict | None) -> dict:
    labels = config.get("metricLabels") or {}
    metrics = []
    kpis = (template or {}).get("kpis") or []
    if kpis:
        for index, kpi in enumerate(kpis[:4]):
            label = kpi.get("label") or kpi.get("metric") or ""
            metric = {
                "sourceMetric": kpi.get("metric"),
                "label": labels.get(kpi.get("metric")) or label,
                "timeScope": _kpi_scope(label),
                "emphasize": index == 0,
                "format": kpi.get("format") or "number",
            }
            if kpi.get("icon"):
                metric["icon"] = kpi["icon"]
            metrics.append(metric)
    else:
        schedulable = find_schedulable_entities(entities)
        if schedulable:
            key = f"{schedulable[0]['id']}.count"
            metrics.append(
                {
                    "sourceMetric": key,
                    "label": labels.get(key) or f"{_plural(schedulable[0])} Today",
                    "timeScope": "today",
                    "emphasize": True,
                    "format": "number",
                }
            )
        for entity in entities:
            currency = next((f for f in _fields(entity) if f.get("type") == "currency"), None)
            if currency:
                key = f"{entity['id']}.{currency['id']}"
                metrics.append({"sourceMetric": key, "label": labels.get(key) or "Revenue Today", "timeScope": "today", "format": "currency"})
                break
    return {
        "id": "today",
        "role": "today",
        "priority": "primary",
        "title": config.get("todayTitle") or "Today at a Glance",
        "timeScope": "today",
        "layoutHint": "stats-row",
        "metrics": metrics,
    }


def _pick(candidates: List[dict], config: dict) -> dict:
    wanted = config.get("primaryEntity")
    return next((e for e in candidates if e.get("id") == wanted), candidates[0]) if wanted else candidates[0]


def _in_progress_section(status_entities: List[dict], config: dict) -> dict:
    entity = _pick(status_entities, config)
    labels = config.get("actionLabels") or {}
    status = find_status_field(entity)
    pending = pending_statuses(status) if status else ["pending"]
    actions = [
        {
            "actionId": "markComplete",
            "label": labels.get("markComplete") or "Mark Complete",
            "entity": entity["id"],
            "visibilityRule": "if-pending",
            "variant": "primary",
        }
    ]
    if pending:
        actions.append(
            {
                "actionId": "startProcessing",
                "label": labels.get("startProcessing") or "Start",
                "entity": entity["id"],
                "visibilityRule": "if-pending",
                "variant": "secondary",
            }
        )
    section = {
        "id": "in-progress",
        "role": "in-progress",
        "priority": "secondary",
        "title": config.get("inProgressTitle") or f"{_plural(entity)} in Progress",
        "listEntity": entity["id"],
        "layoutHint": "card-list",
        "actions": actions,
        "limit": 5,
    }
    if pending:
        section["listFilter"] = "status:" + ",".join(pending)
    return section


def _upcoming_section(schedulable: List[dict], config: dict) -> dict:
    entity = _pick(schedulable, config)
    labels = config.get("actionLabels") or {}
    date_field = find_primary_date_field(entity)
    section = {
        "id": "upcoming",
        "role": "upcoming",
        "priority": "secondary",
        "title": config.get("upcomingTitle") or f"Upcoming {_plural(entity)}",
        "timeScope": "this-week",
        "listEntity": entity["id"],
        "layoutHint": "calendar" if len(schedulable) > 1 else "card-list",
        "limit": 5,
    }
    if date_field:
        section["listFilter"] = f"{date_field['id']}:>today"
    if find_status_field(entity):
        section["actions"] = [
            {
                "actionId": "confirm",
                "label": labels.get("confirm") or "Confirm",
                "entity": entity["id"],
                "visibilityRule": "if-pending",
                "variant": "primary",
            }
        ]
    return section


def _summary_section(entities: List[dict], config: dict) -> dict:
    labels = config.get("metricLabels") or {}
    metrics = []
    for entity in entities[:3]:
        key = f"{entity['id']}.count"
        metrics.append({"sourceMetric": key, "label": labels.get(key) or f"Total {_plural(entity)}", "timeScope": "all-time", "format": "number"})
    for entity in entities:
        revenue = next(
            (f for f in _fields(entity) if f.get("type") == "currency" and (f.get("id") or "").lower() in _REVENUE_IDS),
            None,
        )
        if revenue:
            metrics.append(
                {
                    "sourceMetric": f"{entity['id']}.{revenue['id']}.sum",
                    "label": labels.get("revenue.total") or "Total Revenue",
                    "timeScope": "all-time",
                    "format": "currency",
                }
            )
            break
    return {
        "id": "summary",
        "role": "summary",
        "priority": "tertiary",
        "title": config.get("summaryTitle") or "Overall Performance",
        "timeScope": "all-time",
        "layoutHint": "stats-row",
        "metrics": metrics,
    }


def _history_section(entities: List[dict]) -> dict:
    entity = next((e for e in entities if any(h in e["id"] for h in _HISTORY_HINTS)), entities[0])
    return {
        "id": "history",
        "role": "history",
        "priority": "tertiary",
        "title": f"Recent {_plural(entity)}",
        "timeScope": "this-month",
        "listEntity": entity["id"],
        "layoutHint": "data-table",
        "limit": 10,
    }


def _dashboard_title(config: dict) -> str:
    title = (config.get("todayTitle") or "").replace("Today at ", "").replace("Today's ", "")
    return title or "Dashboard"


def compose(entities: List[dict] | None, industry_config: Any = None) -> dict:
    """Build, sort and validate the dashboard narrative for `entities`.

    `industry_config` is an industry kit dict (`{id, dashboardTemplate}`) or
    a bare industry id.
    """
    entities = [e for e in entities or [] if isinstance(e, dict) and isinstance(e.get("id"), str) and e["id"]]
    if not entities:
        return {"title": "Dashboard", "sections": []}
    if isinstance(industry_config, dict):
        industry_id = industry_config.get("id")
        template = industry_config.get("dashboardTemplate")
    else:
        industry_id = industry_config if isinstance(industry_config, str) else None
        template = None
    config = section_config(industry_id)

    sections = [_today_section(entities, config, template)]
    status_entities = find_status_entities(entities)
    if status_entities:
        sections.append(_in_progress_section(status_entities, config))
    schedulable = find_schedulable_entities(entities)
    if schedulable:
        sections.append(_upcoming_section(schedulable, config))
    sections.append(_summary_section(entities, config))
    transactional = any(t in e["id"].lower() for e in entities for t in _TRANSACTIONAL)
    if transactional and len(entities) > 2:
        sections.append(_history_section(entities))

    return validate_dashboard_intent(
        {"title": _dashboard_title(config), "sections": sort_sections(sections), "refreshInterval": 60}
    )
