"""Workflow definitions for generated apps.

Every action emitted here uses a type the workflow engine registers by
default; confirmations are `conditional` actions on `confirm(...)`.
"""

from __future__ import annotations

from typing import Any, List

from entity_inference import feature_ids
from page_builder import status_field


def _action(action_id: str, action_type: str, **config: Any) -> dict:
    return {"id": action_id, "type": action_type, "config": config}


def _notify(action_id: str, message: str, kind: str = "success") -> dict:
    return _action(action_id, "show_notification", message=message, type=kind)


def _workflow(workflow_id: str, name: str, trigger: dict, actions: list, description: str | None = None, on_error: dict | None = None) -> dict:
    workflow = {"id": workflow_id, "name": name, "enabled": True, "trigger": trigger, "actions": actions}
    if description:
        workflow["description"] = description
    if on_error:
        workflow["onError"] = on_error
    return workflow


def _required_rules(entity: dict) -> list[dict]:
    rules = []
    for field in entity.get("fields") or []:
        if not field.get("required") or field.get("id") == "id":
            continue
        rules.append({"field": field["id"], "rule": "required", "message": f"{field.get('name', field['id'])} is required"})
        if field.get("type") == "email":
            rules.append({"field": field["id"], "rule": "email", "message": f"{field.get('name')} must be a valid email"})
    return rules


def crud_workflows(entity: dict) -> list[dict]:
    eid = entity["id"]
    name = entity.get("name") or eid
    lower = name.lower()
    crud = entity.get("crud") or {}
    soft_delete = bool((crud.get("delete") or {}).get("softDelete"))
    workflows = [
        _workflow(
            f"create-{eid}",
            f"Create {name}",
            {"type": "form_submit", "componentId": f"{eid}-form"},
            [
                _action("validate", "validate", rules=_required_rules(entity)),
                _action("create-record", "create_record", entityId=eid, source="form_data"),
                _notify("show-success", f"{name} created successfully!"),
                _action("refresh", "refresh_data", entityId=eid),
                _action("navigate-list", "navigate", pageId=f"{eid}-list"),
            ],
            f"Creates a new {lower} record",
            {"action": "stop", "notification": f"Failed to create {lower}"},
        ),
        _workflow(
            f"update-{eid}",
            f"Update {name}",
            {"type": "form_submit", "componentId": f"{eid}-edit-form"},
            [
                _action("validate", "validate", rules=_required_rules(entity)),
                _action("update-record", "update_record", entityId=eid, source="form_data"),
                _notify("show-success", f"{name} updated successfully!"),
                _action("navigate-detail", "navigate", pageId=f"{eid}-detail", params={"id": "{recordId}"}),
            ],
            f"Updates an existing {lower} record",
            {"action": "stop", "notification": f"Failed to update {lower}"},
        ),
    ]
    if soft_delete:
        remove = _action("delete-record", "update_record", entityId=eid, data={"deletedAt": "{variables.now}"})
    else:
        remove = _action("delete-record", "delete_record", entityId=eid)
    workflows.append(
        _workflow(
            f"delete-{eid}",
            f"Delete {name}",
            {"type": "button_click", "componentId": f"{eid}-delete-btn"},
            [
                {
                    "id": "confirm-delete",
                    "type": "conditional",
                    "config": {},
                    "condition": f'confirm("Are you sure you want to delete this {lower}?")',
                    "thenActions": [
                        remove,
                        _notify("show-success", f"{name} deleted", "info"),
                        _action("refresh", "refresh_data", entityId=eid),
                        _action("navigate-list", "navigate", pageId=f"{eid}-list"),
                    ],
                }
            ],
            f"Deletes a {lower} record",
        )
    )
    status = status_field(entity)
    if "trackable" in (entity.get("behaviors") or []) and status and status.get("enumOptions"):
        workflows.append(
            _workflow(
                f"change-{eid}-status",
                f"Change {name} Status",
                {"type": "field_change", "entityId": eid, "fieldId": status["id"]},
                [
                    _action("update-status", "update_record", entityId=eid, data={status["id"]: "{variables.newValue}"}),
                    _notify("show-notification", "Status changed to {variables.newValue}"),
                ],
            )
        )
    return workflows


def navigation_workflows(entities: List[dict]) -> list[dict]:
    workflows = []
    for entity in entities:
        eid = entity["id"]
        name = entity.get("name") or eid
        workflows.extend(
            [
                _workflow(
                    f"navigate-{eid}-list",
                    f"Go to {entity.get('pluralName') or name}",
                    {"type": "button_click", "componentId": f"nav-{eid}-list"},
                    [_action("navigate", "navigate", pageId=f"{eid}-list")],
                ),
                _workflow(
                    f"navigate-{eid}-form",
                    f"Add {name}",
                    {"type": "button_click", "componentId": f"{eid}-add-btn"},
                    [_action("navigate", "navigate", pageId=f"{eid}-form")],
                ),
                _workflow(
                    f"navigate-{eid}-detail",
                    f"View {name}",
                    {"type": "button_click", "componentId": f"{eid}-view-btn"},
                    [_action("navigate", "navigate", pageId=f"{eid}-detail", params={"id": "{recordId}"})],
                ),
                _workflow(
                    f"navigate-{eid}-edit",
                    f"Edit {name}",
                    {"type": "button_click", "componentId": f"{eid}-edit-btn"},
                    [_action("navigate", "navigate", pageId=f"{eid}-form", params={"id": "{recordId}", "mode": "edit"})],
                ),
            ]
        )
    return workflows


def _date_field(entity: dict) -> dict | None:
    return next(
        (
            f
            for f in entity.get("fields") or []
            if f.get("type") in {"date", "datetime"} and f.get("id") not in {"createdAt", "updatedAt"}
        ),
        None,
    )


def feature_workflows(features: Any, entities: List[dict]) -> list[dict]:
    ids = set(feature_ids(features))
    workflows = []
    if ids & {"email", "notifications"}:
        for entity in entities:
            eid = entity["id"]
            title_field = (entity.get("displayConfig") or {}).get("titleField", "name")
            workflows.append(
                _workflow(
                    f"email-on-{eid}-create",
                    f"Email on {entity['name']} Created",
                    {"type": "record_create", "entityId": eid},
                    [
                        _action(
                            "send-email",
                            "send_email",
                            to="{user.email}",
                            subject=f"New {entity['name']}: {{currentData.{title_field}}}",
                            body=f"A new {entity['name'].lower()} has been created.",
                        )
                    ],
                )
            )
    if "reminders" in ids:
        for entity in entities:
            if "schedulable" not in (entity.get("behaviors") or []) or _date_field(entity) is None:
                continue
            workflows.append(
                _workflow(
                    f"reminder-{entity['id']}",
                    f"{entity['name']} Reminder",
                    {"type": "schedule", "schedule": "0 9 * * *", "entityId": entity["id"]},
                    [_notify("send-notification", f"You have a {entity['name'].lower()} scheduled for today.", "info")],
                )
            )
    if "invoicing" in ids:
        for entity in entities:
            if "billable" not in (entity.get("behaviors") or []) or entity["id"] == "invoice":
                continue
            workflows.append(
                _workflow(
                    f"generate-invoice-{entity['id']}",
                    f"Generate Invoice from {entity['name']}",
                    {"type": "button_click", "componentId": f"{entity['id']}-generate-invoice-btn"},
                    [
                        _action(
                            "create-invoice",
                            "create_invoice",
                            entityId="invoice",
                            customerId="{recordId}",
                            notes=f"Generated from {entity['name'].lower()} {{recordId}}",
                        ),
                        _action("open-modal", "show_modal", modalId="invoice-modal", data={"sourceEntity": entity["id"]}),
                    ],
                )
            )
    if "approvals" in ids:
        for entity in entities:
            if "trackable" not in (entity.get("behaviors") or []):
                continue
            eid = entity["id"]
            workflows.append(
                _workflow(
                    f"approve-{eid}",
                    f"Approve {entity['name']}",
                    {"type": "button_click", "componentId": f"{eid}-approve-btn"},
                    [
                        _action("update-status", "update_record", entityId=eid, data={"status": "approved", "approvedBy": "{user.id}"}),
                        _notify("notify", f"{entity['name']} approved"),
                    ],
                )
            )
            workflows.append(
                _workflow(
                    f"reject-{eid}",
                    f"Reject {entity['name']}",
                    {"type": "button_click", "componentId": f"{eid}-reject-btn"},
                    [
                        _action("show-modal", "show_modal", modalId="rejection-reason-modal"),
                        _action(
                            "update-status",
                            "update_record",
                            entityId=eid,
                            data={"status": "rejected", "rejectionReason": "{formData.reason}"},
                        ),
                    ],
                )
            )
    return workflows


def industry_workflows(industry: str | None, entities: List[dict]) -> list[dict]:
    by_id = {e["id"]: e for e in entities}
    if industry in {"trades", "services"}:
        job = by_id.get("job") or by_id.get("service") or by_id.get("workOrder")
        if job is None:
            return []
        actions = [
            _action("update-status", "update_record", entityId=job["id"], data={"status": "completed"}),
        ]
        if "invoice" in by_id:
            actions.append(
                {
                    "id": "conditional-invoice",
                    "type": "conditional",
                    "config": {},
                    "condition": "autoInvoice === true",
                    "thenActions": [
                        _action(
                            "create-invoice",
                            "create_record",
                            entityId="invoice",
                            data={"name": "Invoice for {currentData.name}", "amount": "{currentData.total}", "status": "pending"},
                        )
                    ],
                }
            )
        actions.append(
            _action(
                "notify-customer",
                "send_email",
                to="{currentData.email}",
                subject="Your job has been completed",
                body="Hi, {currentData.name} has been completed.",
            )
        )
        return [
            _workflow("complete-job", "Complete Job", {"type": "button_click", "componentId": "complete-job-btn"}, actions)
        ]
    if industry == "healthcare":
        appointment = by_id.get("appointment") or by_id.get("booking")
        if appointment is None:
            return []
        return [
            _workflow(
                "appointment-reminder",
                "Send Appointment Reminder",
                {"type": "schedule", "schedule": "0 9 * * *", "entityId": appointment["id"]},
                [
                    _action("find-appointments", "set_variable", name="reminderDate", value="{variables.tomorrow}"),
                    _action(
                        "send-sms",
                        "send_sms",
                        to="{currentData.phone}",
                        message="Reminder: You have an appointment on {variables.reminderDate}",
                    ),
                ],
            )
        ]
    if industry == "real_estate":
        showing = by_id.get("showing")
        if showing is None:
            return []
        return [
            _workflow(
                "showing-followup",
                "Showing Follow-up",
                {"type": "schedule", "schedule": "0 10 * * *", "entityId": showing["id"]},
                [
                    _action(
                        "send-email",
                        "send_email",
                        to="{currentData.email}",
                        subject="Thank you for viewing {currentData.property}",
                        body="Thanks for coming to the showing. Let us know if you have questions.",
                    )
                ],
            )
        ]
    return []


def generate_all(entities: List[dict], features: Any = None, industry: str | None = None) -> list[dict]:
    workflows = []
    for entity in entities:
        workflows.extend(crud_workflows(entity))
    workflows.extend(navigation_workflows(entities))
    workflows.extend(feature_workflows(features, entities))
    workflows.extend(industry_workflows(industry, entities))
    return workflows
