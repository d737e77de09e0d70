import copy
import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from blueprint_synth import generate
from schema_harden import validate


def _codes(result):
    return [i["code"] for i in result["issues"]]


def _fixes(result):
    return [i for i in result["issues"] if i["autoFixed"]]


class TestDefaults(unittest.TestCase):
    def test_empty_schema_is_filled_in(self) -> None:
        result = validate({})
        schema = result["fixedSchema"]
        self.assertTrue(result["valid"])
        self.assertEqual(schema["name"], "My App")
        self.assertEqual(schema["version"], 1)
        self.assertEqual([e["id"] for e in schema["entities"]], ["item"])
        self.assertEqual(schema["pages"][0]["id"], "home")
        self.assertEqual(schema["pages"][0]["route"], "/")
        self.assertEqual(schema["navigation"]["defaultPage"], "home")
        self.assertIn("create-item", [w["id"] for w in schema["workflows"]])
        self.assertEqual(schema["theme"]["designSystem"], "modern-saas")
        for code in ("structure.id", "structure.name", "entity.default", "page.default", "workflow.crud", "theme.missing"):
            self.assertIn(code, _codes(result))

    def test_non_object_root(self) -> None:
        result = validate(["not", "a", "schema"])
        self.assertEqual(result["issues"][0]["code"], "structure.root")
        self.assertEqual(result["fixedSchema"]["name"], "My App")

    def test_issue_shape(self) -> None:
        issue = validate({})["issues"][0]
        self.assertEqual(sorted(issue), ["autoFixed", "code", "message", "path", "severity"])
        version = next(i for i in validate({})["issues"] if i["code"] == "structure.version")
        self.assertEqual(version["severity"], "info")


class TestRepairs(unittest.TestCase):
    def _schema(self):
        return {
            "id": "app-1",
            "name": "Shop",
            "version": 3,
            "entities": [
                {
                    "id": "order",
                    "name": "Order",
                    "fields": [
                        {"id": "id", "name": "ID", "type": "string"},
                        {"id": "status", "name": "Status", "type": "enum"},
                        {"id": "customerId", "name": "Customer", "type": "reference", "reference": {"targetEntity": "customer"}},
                        {"id": "note"},
                    ],
                },
                "garbage",
            ],
            "pages": [
                {"id": "order-list", "name": "Orders", "route": "/", "type": "list", "entity": "order"},
                {"id": "order-list", "name": "Dashboard", "route": "/", "type": "dashboard"},
                {"id": "ghost", "name": "Ghost", "route": "/ghost", "type": "list", "entity": "missing", "components": [{"id": "sp", "type": "spacer"}]},
            ],
            "workflows": [
                {
                    "id": "notify",
                    "trigger": {"type": "button_click", "componentId": "go"},
                    "actions": [
                        "bad",
                        {"type": "send_email", "config": {"entityId": "order", "to": "a@b.co", "subject": "Hi {{ name", "body": "ok"}},
                    ],
                }
            ],
            "theme": {"mode": "purple", "colors": {"primary": "#123456"}},
        }

    def test_entity_and_field_repairs(self) -> None:
        result = validate(self._schema())
        order = result["fixedSchema"]["entities"][0]
        fields = {f["id"]: f for f in order["fields"]}
        self.assertEqual(len(result["fixedSchema"]["entities"]), 1)
        self.assertTrue(fields["id"]["required"] and fields["id"]["unique"])
        self.assertEqual(len(fields["status"]["enumOptions"]), 2)
        self.assertEqual(fields["customerId"]["type"], "string")
        self.assertNotIn("reference", fields["customerId"])
        self.assertEqual(fields["note"]["type"], "string")
        self.assertEqual(fields["note"]["name"], "note")
        self.assertEqual(order["pluralName"], "Orders")
        self.assertIn("displayConfig", order)
        for code in ("structure.entities", "entity.id_field", "field.enum_options", "xref.field_reference", "field.type"):
            self.assertIn(code, _codes(result))

    def test_wrongly_typed_names_are_repaired(self) -> None:
        schema = {
            "name": 7,
            "entities": [{"id": "a", "name": 5, "fields": [{"id": 3, "name": ["x"]}]}],
            "pages": [
                {"id": "q", "name": "Q", "route": "/q", "type": "list", "entity": "a", "navigation": {"order": 1}},
                {"id": "p", "name": "P", "route": "/", "type": "list", "entity": ["a"], "navigation": {"order": None}},
            ],
        }
        result = validate(schema)
        fixed = result["fixedSchema"]
        entity = fixed["entities"][0]
        self.assertEqual(fixed["name"], "My App")
        self.assertEqual(entity["name"], "Entity 1")
        self.assertEqual(entity["pluralName"], "Entity 1s")
        self.assertEqual(entity["fields"][1]["id"], "field-1")
        self.assertEqual(entity["fields"][1]["name"], "field-1")
        self.assertEqual(entity["fields"][1]["type"], "string")
        self.assertNotIn("entity", fixed["pages"][1])
        self.assertIn("xref.page_entity", _codes(result))
        self.assertEqual([i["pageId"] for i in fixed["navigation"]["sidebar"]["items"]], ["p", "q"])
        self.assertEqual(_fixes(validate(fixed)), [])

    def test_page_repairs(self) -> None:
        result = validate(self._schema())
        pages = result["fixedSchema"]["pages"]
        self.assertEqual([p["id"] for p in pages], ["order-list", "order-list-1", "ghost"])
        routes = {p["id"]: p["route"] for p in pages}
        self.assertEqual(routes["order-list-1"], "/")
        self.assertEqual(routes["order-list"], "/order-list")
        self.assertNotIn("entity", pages[2])
        self.assertEqual(pages[2]["components"][0]["props"]["text"], "Ghost")
        for code in ("page.duplicate_id", "page.home_route", "xref.page_entity", "render.blank_page", "page.components"):
            self.assertIn(code, _codes(result))

    def test_workflow_repairs(self) -> None:
        result = validate(self._schema())
        workflow = result["fixedSchema"]["workflows"][0]
        self.assertEqual(workflow["name"], "Workflow 1")
        self.assertTrue(workflow["enabled"])
        self.assertEqual(len(workflow["actions"]), 1)
        self.assertEqual(workflow["actions"][0]["id"], "action-1")
        self.assertNotIn("workflow.crud", _codes(result))
        self.assertIn("action.invalid", _codes(result))

    def test_email_template_warning_is_not_fixed(self) -> None:
        result = validate(self._schema())
        issue = next(i for i in result["issues"] if i["code"] == "workflow.email_template")
        self.assertFalse(issue["autoFixed"])
        self.assertEqual(issue["severity"], "warning")
        self.assertTrue(issue["path"].endswith(".config.subject"))
        self.assertTrue(result["valid"])

    def test_theme_repairs(self) -> None:
        theme = validate(self._schema())["fixedSchema"]["theme"]
        self.assertEqual(theme["primaryColor"], "#123456")
        self.assertEqual(theme["mode"], "light")
        self.assertEqual(theme["borderRadius"], "medium")

    def test_input_not_mutated(self) -> None:
        schema = self._schema()
        original = copy.deepcopy(schema)
        validate(schema)
        self.assertEqual(schema, original)

    def test_second_pass_fixes_nothing(self) -> None:
        for schema in ({}, self._schema(), None):
            with self.subTest(schema=bool(schema)):
                fixed = validate(schema)["fixedSchema"]
                again = validate(fixed)
                self.assertEqual(_fixes(again), [])
                self.assertEqual(again["fixedSchema"], fixed)


class TestGeneratedSchemas(unittest.TestCase):
    def test_generated_schema_validates(self) -> None:
        schema = generate({"intelligence": {"entities": ["Client", "Job"], "features": ["invoicing"]}})["schema"]
        result = validate(schema)
        self.assertTrue(result["valid"])
        self.assertNotIn("workflow.crud", _codes(result))
        self.assertNotIn("page.home_route", _codes(result))
        self.assertEqual(result["fixedSchema"]["navigation"]["defaultPage"], "dashboard")


if __name__ == "__main__":
    unittest.main()
