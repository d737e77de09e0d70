"""Built-in workflow action handlers.

Every handler has the signature `handler(action, context, api, engine)` and
returns an action result `{success, data?, error?, nextAction?}`. Failures are
reported in the result, never raised. `api` is the caller's record/UI API;
its methods may be plain functions or coroutines.
"""

from __future__ import annotations

import inspect
import math
import os
import re
from typing import Any, Awaitable, Callable, Dict
from urllib.parse import urlparse

import httpx

from condition_eval import evaluate_condition, to_number
from interpolation import interpolate, interpolate_mapping, resolve_data, resolve_value, stringify

HTTP_TIMEOUT = float(os.getenv("APPFORGE_HTTP_TIMEOUT", "30"))

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ActionHandler = Callable[[dict, dict, Any, Any], Awaitable[dict]]


async def _call(fn: Any, *args: Any) -> Any:
    value = fn(*args)
    if inspect.isawaitable(value):
        value = await value
    return value


def _config(action: dict) -> dict:
    return action.get("config") or {}


def _integration_request(context: dict, payload: dict) -> dict:
    return {
        "appId": context.get("appId"),
        "userId": (context.get("user") or {}).get("id"),
        "payload": payload,
        "variables": context.get("variables") or {},
    }


def _fail(exc: Exception) -> dict:
    return {"success": False, "error": str(exc) or exc.__class__.__name__}


def _record_id(action: dict, context: dict) -> Any:
    return context.get("recordId") or _config(action).get("recordId")


def _record_data(config: dict, context: dict) -> dict:
    if isinstance(config.get("data"), dict):
        return interpolate_mapping(config["data"], context)
    return resolve_data(config.get("source"), context)


async def create_record(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        data = _record_data(config, context)
        result = await _call(api.create_record, config.get("entityId"), data)
        return {"success": True, "data": result}
    except Exception as exc:
        return _fail(exc)


async def update_record(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        data = _record_data(config, context)
        result = await _call(api.update_record, config.get("entityId"), _record_id(action, context), data)
        return {"success": True, "data": result}
    except Exception as exc:
        return _fail(exc)


async def delete_record(action: dict, context: dict, api: Any, engine: Any) -> dict:
    try:
        await _call(api.delete_record, _config(action).get("entityId"), _record_id(action, context))
        return {"success": True}
    except Exception as exc:
        return _fail(exc)


async def navigate(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    await _call(api.navigate, config.get("pageId"), config.get("params"))
    return {"success": True}


async def show_notification(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    message = interpolate(config.get("message") or "", context)
    await _call(api.show_notification, message, config.get("type") or "success")
    return {"success": True}


async def show_modal(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    await _call(api.show_modal, config.get("modalId"), config.get("data"))
    return {"success": True}


async def close_modal(action: dict, context: dict, api: Any, engine: Any) -> dict:
    await _call(api.close_modal, _config(action).get("modalId"))
    return {"success": True}


async def refresh_data(action: dict, context: dict, api: Any, engine: Any) -> dict:
    await _call(api.refresh_data, _config(action).get("entityId"))
    return {"success": True}


async def set_variable(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    name = config.get("name")
    value = resolve_value(config.get("value"), context)
    await _call(api.set_variable, name, value)
    context.setdefault("variables", {})[name] = value
    return {"success": True, "data": {name: value}}


def validate_field(value: Any, rule: str) -> bool:
    if rule == "required":
        return value is not None and value != ""
    if rule == "email":
        return isinstance(value, str) and bool(_EMAIL_RE.match(value))
    if rule == "url":
        if not isinstance(value, str):
            return False
        parsed = urlparse(value)
        return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)
    if rule == "number":
        return value is not None and not math.isnan(to_number(value))
    if rule.startswith("pattern:"):
        try:
            return re.search(rule[len("pattern:"):], stringify(value)) is not None
        except re.error:
            return False
    if rule.startswith("min:"):
        return to_number(value) >= to_number(rule[len("min:"):])
    if rule.startswith("max:"):
        return to_number(value) <= to_number(rule[len("max:"):])
    return True


async def validate(action: dict, context: dict, api: Any, engine: Any) -> dict:
    form = context.get("formData") or {}
    errors = []
    for rule in _config(action).get("rules") or []:
        if not validate_field(form.get(rule.get("field")), rule.get("rule") or ""):
            errors.append(rule.get("message") or f"{rule.get('field')} is invalid")
    if errors:
        await _call(api.show_notification, errors[0], "error")
        return {"success": False, "error": ", ".join(errors), "nextAction": "stop"}
    return {"success": True}


async def conditional(action: dict, context: dict, api: Any, engine: Any) -> dict:
    condition = action.get("condition")
    passed = evaluate_condition(condition, context, engine.fail_open) if condition else True
    branch = action.get("thenActions") if passed else action.get("elseActions")
    # branch results do not affect the conditional itself
    for child in branch or []:
        await engine.execute_action(child, context, api)
    return {"success": True}


async def _send_json(engine: Any, method: str, url: str, headers: dict | None, body: Any) -> Any:
    merged = {"Content-Type": "application/json", **(headers or {})}
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, transport=engine.transport) as client:
        response = await client.request(method, url, headers=merged, json=body)
    return response


async def call_api(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        url = interpolate(config.get("url") or "", context)
        method = (config.get("method") or "GET").upper()
        headers = config.get("headers")
        body = interpolate_mapping(config.get("body"), context) if config.get("body") else None
        rest = await engine.integrations.execute_action(
            "rest_api", method.lower(), _integration_request(context, {"path": url, "body": body, "headers": headers})
        )
        if rest.get("success"):
            return {"success": True, "data": rest.get("data")}
        response = await _send_json(engine, method, url, headers, body)
        if response.is_error:
            return {"success": False, "error": f"API call failed: {response.reason_phrase}"}
        return {"success": True, "data": response.json()}
    except Exception as exc:
        return _fail(exc)


async def _notify_outcome(api: Any, result: dict, sent: str, failed: str) -> dict:
    if result.get("success"):
        await _call(api.show_notification, sent, "success")
        return {"success": True, "data": result.get("data")}
    await _call(api.show_notification, result.get("error") or failed, "error")
    return {"success": False, "error": result.get("error") or failed}


async def send_email(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        payload = {
            "to": interpolate(config.get("to") or "", context),
            "subject": interpolate(config.get("subject") or "", context),
            "body": interpolate(config.get("body") or "", context),
            "html": interpolate(config["html"], context) if config.get("html") else None,
        }
        result = await engine.integrations.execute_action("email", "send_email", _integration_request(context, payload))
        return await _notify_outcome(api, result, "Email sent successfully", "Failed to send email")
    except Exception as exc:
        await _call(api.show_notification, "Failed to send email", "error")
        return _fail(exc)


async def send_sms(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        payload = {
            "to": interpolate(config.get("to") or "", context),
            "message": interpolate(config.get("message") or "", context),
        }
        result = await engine.integrations.execute_action("twilio", "send_sms", _integration_request(context, payload))
        return await _notify_outcome(api, result, "SMS sent successfully", "Failed to send SMS")
    except Exception as exc:
        await _call(api.show_notification, "Failed to send SMS", "error")
        return _fail(exc)


async def schedule_event(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        title = interpolate(config.get("title") or "", context)
        description = interpolate(config["description"], context) if config.get("description") else None
        start, end = config.get("startTime"), config.get("endTime")
        attendees = config.get("attendees")
        entity_id = config.get("entityId")
        calendar = await engine.integrations.execute_action(
            "google_calendar",
            "create_event",
            _integration_request(
                context,
                {"summary": title, "start": start, "end": end or start, "description": description, "attendees": attendees},
            ),
        )
        record: Dict[str, Any] = {"title": title, "startTime": start}
        for key, value in (("description", description), ("endTime", end), ("attendees", attendees)):
            if value:
                record[key] = value
        if calendar.get("success"):
            if entity_id:
                event_id = (calendar.get("data") or {}).get("id") if isinstance(calendar.get("data"), dict) else None
                await _call(api.create_record, entity_id, {**record, "calendarEventId": event_id})
            await _call(api.show_notification, "Event scheduled successfully", "success")
            return {"success": True, "data": calendar.get("data")}
        if entity_id:
            created = await _call(api.create_record, entity_id, record)
            await _call(api.show_notification, "Event scheduled successfully", "success")
            return {"success": True, "data": created}
        await _call(api.show_notification, "Event scheduled (calendar integration not configured)", "info")
        return {"success": True, "data": {"title": title, "startTime": start}}
    except Exception as exc:
        return _fail(exc)


async def create_invoice(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        customer_id = interpolate(config["customerId"], context) if config.get("customerId") else context.get("recordId")
        if not customer_id:
            return {"success": False, "error": "Customer ID is required for invoice creation"}
        items = config.get("items") or []
        notes = interpolate(config["notes"], context) if config.get("notes") else None
        stripe = await engine.integrations.execute_action(
            "stripe",
            "create_invoice",
            _integration_request(context, {"customerId": customer_id, "items": items, "description": notes}),
        )
        subtotal = sum(to_number(item.get("quantity") or 0) * to_number(item.get("price") or 0) for item in items)
        tax = subtotal * to_number(config["taxRate"]) if config.get("taxRate") else 0
        invoice: Dict[str, Any] = {
            "customerId": customer_id,
            "items": items,
            "subtotal": subtotal,
            "tax": tax,
            "total": subtotal + tax,
            "status": "draft",
        }
        if config.get("dueDate"):
            invoice["dueDate"] = config["dueDate"]
        if notes:
            invoice["notes"] = notes
        stripe_data = stripe.get("data") if stripe.get("success") else None
        if isinstance(stripe_data, dict) and stripe_data.get("id"):
            invoice["stripeInvoiceId"] = stripe_data["id"]
        created = await _call(api.create_record, config.get("entityId"), invoice)
        await _call(api.show_notification, "Invoice created successfully", "success")
        data = dict(created) if isinstance(created, dict) else {"record": created}
        data["stripeInvoice"] = stripe_data
        return {"success": True, "data": data}
    except Exception as exc:
        return _fail(exc)


async def trigger_webhook(action: dict, context: dict, api: Any, engine: Any) -> dict:
    config = _config(action)
    try:
        url = interpolate(config["url"], context) if config.get("url") else None
        if not url:
            return {"success": False, "error": "Webhook URL not configured"}
        payload = config.get("payload") or context.get("formData") or context.get("currentData") or {}
        response = await _send_json(
            engine, (config.get("method") or "POST").upper(), url, config.get("headers"), interpolate_mapping(payload, context)
        )
        if response.is_error:
            return {"success": False, "error": f"Webhook call failed: {response.reason_phrase}"}
        try:
            data = response.json()
        except ValueError:
            data = {}
        return {"success": True, "data": data}
    except Exception as exc:
        return _fail(exc)


DEFAULT_HANDLERS: Dict[str, ActionHandler] = {
    "create_record": create_record,
    "update_record": update_record,
    "delete_record": delete_record,
    "navigate": navigate,
    "show_notification": show_notification,
    "show_modal": show_modal,
    "close_modal": close_modal,
    "refresh_data": refresh_data,
    "set_variable": set_variable,
    "validate": validate,
    "conditional": conditional,
    "call_api": call_api,
    "send_email": send_email,
    "send_sms": send_sms,
    "schedule_event": schedule_event,
    "create_invoice": create_invoice,
    "trigger_webhook": trigger_webhook,
    "webhook": trigger_webhook,
}
