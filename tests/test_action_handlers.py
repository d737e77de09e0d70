import asyncio
import json
import os
import sys
import unittest

import httpx


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from action_handlers import validate_field
from app.stores import MemoryRecordApi
from integrations import IntegrationRegistry
from workflow_engine import WorkflowEngine, new_context


class SyncApi:
    """Record/UI API with plain (non-async) methods."""

    def __init__(self) -> None:
        self.calls = []

    def create_record(self, entity_id, data):
        self.calls.append(("create", entity_id, data))
        return {"id": "rec-1", "data": data}

    def update_record(self, entity_id, record_id, data):
        self.calls.append(("update", entity_id, record_id, data))
        return {"data": data}

    def delete_record(self, entity_id, record_id):
        raise KeyError("gone")

    def show_notification(self, message, severity="info"):
        self.calls.append(("notify", message, severity))

    def navigate(self, page_id, params=None):
        self.calls.append(("navigate", page_id, params))


class TestValidateField(unittest.TestCase):
    def test_rules(self) -> None:
        self.assertFalse(validate_field("", "required"))
        self.assertTrue(validate_field(0, "required"))
        self.assertTrue(validate_field("a@b.co", "email"))
        self.assertFalse(validate_field("a@b", "email"))
        self.assertTrue(validate_field("https://example.com", "url"))
        self.assertFalse(validate_field("example", "url"))
        self.assertTrue(validate_field("12.5", "number"))
        self.assertFalse(validate_field("abc", "number"))
        self.assertTrue(validate_field("AB-12", r"pattern:^[A-Z]{2}-\d+$"))
        self.assertFalse(validate_field("ab", "pattern:["))
        self.assertTrue(validate_field(5, "min:3"))
        self.assertFalse(validate_field(5, "max:3"))
        self.assertTrue(validate_field("anything", "unknown-rule"))


class TestRecordAndUiHandlers(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = WorkflowEngine()

    def _exec(self, action, context, api):
        return asyncio.run(self.engine.execute_action(action, context, api))

    def test_sync_api_methods_supported(self) -> None:
        api = SyncApi()
        ctx = new_context(app_id="app", record_id="r9", current_data={"status": "open"})
        created = self._exec({"type": "create_record", "config": {"entityId": "job", "source": "current_data"}}, ctx, api)
        self.assertEqual(created["data"]["id"], "rec-1")
        updated = self._exec({"type": "update_record", "config": {"entityId": "job", "data": {"note": "id {recordId}"}}}, ctx, api)
        self.assertTrue(updated["success"])
        self.assertEqual(api.calls[1], ("update", "job", "r9", {"note": "id r9"}))

    def test_record_errors_reported(self) -> None:
        result = self._exec({"type": "delete_record", "config": {"entityId": "job"}}, new_context(record_id="r1"), SyncApi())
        self.assertFalse(result["success"])
        self.assertIn("gone", result["error"])

    def test_update_missing_record(self) -> None:
        result = self._exec(
            {"type": "update_record", "config": {"entityId": "job", "recordId": "nope"}}, new_context(form_data={}), MemoryRecordApi()
        )
        self.assertFalse(result["success"])

    def test_ui_effects(self) -> None:
        api = MemoryRecordApi()
        ctx = new_context()
        self._exec({"type": "navigate", "config": {"pageId": "client-list"}}, ctx, api)
        self._exec({"type": "show_modal", "config": {"modalId": "confirm"}}, ctx, api)
        self._exec({"type": "close_modal", "config": {"modalId": "confirm"}}, ctx, api)
        self._exec({"type": "refresh_data", "config": {"entityId": "client"}}, ctx, api)
        self._exec({"type": "show_notification", "config": {"message": "Saved"}}, ctx, api)
        self.assertEqual(
            [e["type"] for e in api.effects], ["navigate", "show_modal", "close_modal", "refresh", "notification"]
        )
        self.assertEqual(api.effects[-1]["severity"], "success")


class TestExternalHandlers(unittest.TestCase):
    def setUp(self) -> None:
        self.requests = []
        self.status = 200

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if self.status >= 400:
                return httpx.Response(self.status, text="nope")
            return httpx.Response(200, json={"ok": True, "echo": json.loads(request.content or b"null")})

        self.integrations = IntegrationRegistry()
        self.engine = WorkflowEngine(integrations=self.integrations, transport=httpx.MockTransport(handler))
        self.api = MemoryRecordApi()

    def _exec(self, action, context=None):
        return asyncio.run(self.engine.execute_action(action, context or new_context(app_id="app"), self.api))

    def test_call_api_direct_request(self) -> None:
        ctx = new_context(app_id="app", form_data={"name": "Ada"})
        result = self._exec(
            {
                "type": "call_api",
                "config": {"url": "https://api.example.com/users/{formData.name}", "method": "post", "body": {"name": "{formData.name}"}},
            },
            ctx,
        )
        self.assertTrue(result["success"])
        self.assertEqual(result["data"]["echo"], {"name": "Ada"})
        self.assertEqual(self.requests[0].method, "POST")
        self.assertEqual(str(self.requests[0].url), "https://api.example.com/users/Ada")

    def test_call_api_error_status(self) -> None:
        self.status = 500
        result = self._exec({"type": "call_api", "config": {"url": "https://api.example.com/x"}})
        self.assertEqual(result, {"success": False, "error": "API call failed: Internal Server Error"})

    def test_call_api_prefers_rest_integration(self) -> None:
        self.integrations.register("rest_api", "get", lambda req: {"path": req["payload"]["path"]})
        result = self._exec({"type": "call_api", "config": {"url": "/items"}})
        self.assertEqual(result, {"success": True, "data": {"path": "/items"}})
        self.assertEqual(self.requests, [])

    def test_send_email_without_provider(self) -> None:
        result = self._exec({"type": "send_email", "config": {"to": "a@b.co", "subject": "Hi", "body": "Body"}})
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "Integration not configured: email.send_email")
        self.assertEqual(self.api.notifications()[0]["severity"], "error")

    def test_send_email_through_provider(self) -> None:
        sent = []
        self.integrations.register("email", "send_email", lambda req: sent.append(req["payload"]) or {"id": "m1"})
        ctx = new_context(app_id="app", form_data={"email": "ada@example.com"})
        result = self._exec({"type": "send_email", "config": {"to": "{formData.email}", "subject": "Hi", "body": "Welcome"}}, ctx)
        self.assertTrue(result["success"])
        self.assertEqual(sent[0]["to"], "ada@example.com")
        self.assertEqual(self.api.notifications()[0]["message"], "Email sent successfully")

    def test_send_sms_through_provider(self) -> None:
        self.integrations.register("twilio", "send_sms", lambda req: {"sid": "SM1"})
        result = self._exec({"type": "send_sms", "config": {"to": "+15550100", "message": "On my way"}})
        self.assertEqual(result, {"success": True, "data": {"sid": "SM1"}})

    def test_schedule_event_fallbacks(self) -> None:
        result = self._exec({"type": "schedule_event", "config": {"title": "Visit", "startTime": "2024-05-01T09:00:00Z"}})
        self.assertTrue(result["success"])
        self.assertEqual(self.api.notifications()[-1]["message"], "Event scheduled (calendar integration not configured)")
        stored = self._exec(
            {"type": "schedule_event", "config": {"title": "Visit", "startTime": "2024-05-01T09:00:00Z", "entityId": "appointment"}}
        )
        self.assertTrue(stored["success"])
        self.assertEqual(self.api.store.list("appointment")[0]["title"], "Visit")

    def test_schedule_event_with_calendar(self) -> None:
        self.integrations.register("google_calendar", "create_event", lambda req: {"id": "evt-1"})
        result = self._exec(
            {"type": "schedule_event", "config": {"title": "Visit", "startTime": "2024-05-01T09:00:00Z", "entityId": "appointment"}}
        )
        self.assertEqual(result["data"], {"id": "evt-1"})
        self.assertEqual(self.api.store.list("appointment")[0]["calendarEventId"], "evt-1")

    def test_create_invoice_requires_customer(self) -> None:
        result = self._exec({"type": "create_invoice", "config": {"entityId": "invoice"}})
        self.assertEqual(result, {"success": False, "error": "Customer ID is required for invoice creation"})

    def test_create_invoice_totals(self) -> None:
        self.integrations.register("stripe", "create_invoice", lambda req: {"id": "in_123"})
        result = self._exec(
            {
                "type": "create_invoice",
                "config": {
                    "entityId": "invoice",
                    "customerId": "cus_1",
                    "items": [{"description": "Labor", "quantity": 2, "price": 50}, {"description": "Parts", "quantity": 1, "price": 20}],
                    "taxRate": 0.1,
                },
            }
        )
        self.assertTrue(result["success"])
        record = self.api.store.list("invoice")[0]
        self.assertEqual(record["subtotal"], 120)
        self.assertAlmostEqual(record["tax"], 12.0)
        self.assertAlmostEqual(record["total"], 132.0)
        self.assertEqual(record["status"], "draft")
        self.assertEqual(record["stripeInvoiceId"], "in_123")
        self.assertEqual(result["data"]["stripeInvoice"], {"id": "in_123"})

    def test_trigger_webhook(self) -> None:
        missing = self._exec({"type": "trigger_webhook", "config": {}})
        self.assertEqual(missing, {"success": False, "error": "Webhook URL not configured"})
        ctx = new_context(app_id="app", form_data={"id": "r1"})
        result = self._exec({"type": "webhook", "config": {"url": "https://hooks.example.com/in"}}, ctx)
        self.assertTrue(result["success"])
        self.assertEqual(self.requests[-1].method, "POST")
        self.assertEqual(result["data"]["echo"], {"id": "r1"})
        self.status = 404
        failed = self._exec({"type": "trigger_webhook", "config": {"url": "https://hooks.example.com/in"}}, ctx)
        self.assertEqual(failed["error"], "Webhook call failed: Not Found")


if __name__ == "__main__":
    unittest.main()
