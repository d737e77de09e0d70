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

from blueprint_synth import NO_ENTITIES_WARNING, REVISION_CONFIDENCE, calculate_confidence, generate, revise


def _crm_context(**extra):
    context = {
        "intelligence": {
            "confidence": 1.0,
            "entities": [{"name": "Client"}, {"name": "Job", "fields": ["title", "clientId"]}],
            "features": [{"id": "invoicing"}],
        }
    }
    context.update(extra)
    return context


class TestGenerate(unittest.TestCase):
    def test_empty_input_falls_back_to_item(self) -> None:
        result = generate({})
        schema = result["schema"]
        self.assertIn(NO_ENTITIES_WARNING, result["warnings"])
        self.assertEqual([e["id"] for e in schema["entities"]], ["item"])
        self.assertEqual(schema["name"], "Item Manager")
        self.assertEqual(schema["version"], 1)
        self.assertEqual(result["confidence"], 0.5)
        page_ids = [p["id"] for p in schema["pages"]]
        self.assertNotIn("dashboard", page_ids)
        self.assertEqual(schema["pages"][0]["route"], "/")
        self.assertEqual(page_ids[-1], "settings")
        self.assertNotIn("surfaceNavigation", schema)

    def test_none_context(self) -> None:
        self.assertEqual(generate(None)["schema"]["entities"][0]["id"], "item")

    def test_intelligence_drives_entities(self) -> None:
        result = generate(_crm_context())
        schema = result["schema"]
        self.assertEqual([e["id"] for e in schema["entities"]], ["client", "job", "invoice"])
        self.assertEqual(schema["pages"][0]["id"], "dashboard")
        self.assertEqual(schema["navigation"]["defaultPage"], "dashboard")
        self.assertAlmostEqual(result["confidence"], 0.8)
        self.assertEqual(schema["metadata"]["confidence"], result["confidence"])
        metadata = result["metadata"]
        self.assertEqual(metadata["entityCount"], 3)
        self.assertEqual(metadata["pageCount"], len(schema["pages"]))
        self.assertEqual(metadata["workflowCount"], len(schema["workflows"]))
        self.assertIn("create-client", [w["id"] for w in schema["workflows"]])
        self.assertLessEqual(len(result["suggestions"]), 3)

    def test_non_string_entity_hints(self) -> None:
        result = generate({"intelligence": {"entities": [{"name": 4}]}})
        self.assertIn(NO_ENTITIES_WARNING, result["warnings"])
        self.assertEqual([e["id"] for e in result["schema"]["entities"]], ["item"])
        hints = [
            {"name": "Gadget", "fields": ["x", None, {"name": 3}, {"id": "size", "type": 5}]},
            {"id": "gizmo", "name": 7},
            ["not", "a", "hint"],
        ]
        schema = generate({"intelligence": {"entities": hints}})["schema"]
        self.assertEqual([e["id"] for e in schema["entities"]], ["gadget", "gizmo"])
        field_ids = [f["id"] for f in schema["entities"][0]["fields"]]
        self.assertIn("x", field_ids)
        self.assertIn("size", field_ids)
        self.assertIsInstance(schema["entities"][1]["name"], str)

    def test_app_name_sources(self) -> None:
        named = generate(_crm_context(appName="  Field Desk "))
        self.assertEqual(named["schema"]["name"], "Field Desk")
        called = generate(_crm_context(text="a crm called 'crumb co'"))
        self.assertEqual(called["schema"]["name"], "Crumb Co")
        self.assertEqual(called["metadata"]["inputLength"], len("a crm called 'crumb co'"))
        industry = _crm_context()
        industry["intelligence"]["industry"] = {"id": "trades", "name": "Trades"}
        self.assertEqual(generate(industry)["schema"]["name"], "Trades App")
        self.assertEqual(generate(_crm_context())["schema"]["name"], "Client Manager")

    def test_ids_are_slugged(self) -> None:
        schema = generate(_crm_context(appName="Field Desk"))["schema"]
        self.assertRegex(schema["id"], r"^field-desk-[0-9a-f]{8}$")

    def test_customer_surface(self) -> None:
        schema = generate(_crm_context(text="Customers can check their job status"))["schema"]
        page_ids = [p["id"] for p in schema["pages"]]
        self.assertIn("customer-home", page_ids)
        self.assertIn("customer-client-list", page_ids)
        self.assertEqual(sorted(schema["surfaceNavigation"]), ["admin", "customer"])

    def test_theme_preference_silences_theme_suggestion(self) -> None:
        suggestions = generate(_crm_context(themePreference="minimal"))["suggestions"]
        self.assertFalse(any("customize the look" in s for s in suggestions))

    def test_confidence_scoring(self) -> None:
        self.assertEqual(calculate_confidence(None, 1, 0), 0.5)
        self.assertAlmostEqual(calculate_confidence({}, 1, 0), 0.6)
        self.assertAlmostEqual(calculate_confidence({"confidence": 0.5}, 2, 3), 0.8)
        self.assertEqual(calculate_confidence({"confidence": 1.0}, 5, 5), 1.0)


class TestRevise(unittest.TestCase):
    def setUp(self) -> None:
        self.schema = generate(
            {"intelligence": {"entities": [{"name": "Client"}, {"name": "Appointment"}]}}
        )["schema"]

    def test_add_invoicing_feature(self) -> None:
        original = copy.deepcopy(self.schema)
        result = revise(self.schema, {"intelligence": {"parsed": {"intent": "add_feature"}, "features": [{"id": "invoicing", "confidence": 0.9}]}})
        revised = result["schema"]
        self.assertIn("invoice", [e["id"] for e in revised["entities"]])
        self.assertIn("invoice-list", [p["id"] for p in revised["pages"]])
        self.assertIn("create-invoice", [w["id"] for w in revised["workflows"]])
        self.assertEqual(revised["version"], self.schema["version"] + 1)
        self.assertEqual(result["confidence"], REVISION_CONFIDENCE)
        self.assertEqual(self.schema, original)

    def test_low_confidence_features_ignored(self) -> None:
        result = revise(self.schema, {"intent": "add_feature", "intelligence": {"features": [{"id": "invoicing", "confidence": 0.3}]}})
        self.assertNotIn("invoice", [e["id"] for e in result["schema"]["entities"]])

    def test_add_entity(self) -> None:
        result = revise(self.schema, {"intent": "add_entity", "intelligence": {"entities": [{"name": "Vehicle"}, {"name": "Client"}]}})
        ids = [e["id"] for e in result["schema"]["entities"]]
        self.assertEqual(ids, ["client", "appointment", "vehicle"])
        self.assertIn("vehicle-list", [p["id"] for p in result["schema"]["pages"]])

    def test_add_page_and_duplicate(self) -> None:
        result = revise(self.schema, {"intent": "add_page", "pageType": "kanban", "entity": "client"})
        self.assertIn("client-kanban", [p["id"] for p in result["schema"]["pages"]])
        again = revise(result["schema"], {"intent": "add_page", "pageType": "kanban", "entity": "client"})
        self.assertIn("Page already exists: client-kanban", again["warnings"])
        unsupported = revise(self.schema, {"intent": "add_page", "pageType": "spreadsheet"})
        self.assertIn("Unsupported page type: spreadsheet", unsupported["warnings"])

    def test_change_design(self) -> None:
        result = revise(self.schema, {"intent": "change_design", "designSystemId": "luxury-refinement"})
        self.assertEqual(result["schema"]["theme"]["designSystem"], "luxury-refinement")
        nothing = revise(self.schema, {"intent": "change_design"})
        self.assertIn("No design change requested", nothing["warnings"])
        self.assertEqual(nothing["schema"]["theme"], self.schema["theme"])

    def test_unknown_intent(self) -> None:
        result = revise(self.schema, {"intent": "teleport"})
        self.assertEqual(result["warnings"], ["Unknown revision intent: teleport"])
        self.assertEqual(result["schema"]["version"], 2)

    def test_string_nouns_do_not_raise(self) -> None:
        result = revise(self.schema, {"intelligence": {"parsed": {"intent": "modify_app", "nouns": "invoice"}}})
        self.assertNotIn("invoice", [e["id"] for e in result["schema"]["entities"]])
        result = revise(self.schema, {"intelligence": {"parsed": {"intent": "add_page", "nouns": "client"}}})
        self.assertIn("client-list", [p["id"] for p in result["schema"]["pages"]])

    def test_add_page_skips_entities_without_ids(self) -> None:
        schema = copy.deepcopy(self.schema)
        schema["entities"].insert(0, {"name": "Ghost", "fields": "none"})
        result = revise(schema, {"intent": "add_page", "pageType": "kanban"})
        self.assertIn("client-kanban", [p["id"] for p in result["schema"]["pages"]])

    def test_add_entity_ignores_non_string_names(self) -> None:
        result = revise(self.schema, {"intent": "add_entity", "intelligence": {"entities": [{"name": 5}]}})
        self.assertEqual([e["id"] for e in result["schema"]["entities"]], ["client", "appointment"])
        self.assertEqual(result["schema"]["pages"], self.schema["pages"])

    def test_entity_with_non_string_name_gets_pages(self) -> None:
        schema = copy.deepcopy(self.schema)
        schema["entities"] = [{"id": "gear", "name": 5, "fields": [{"id": "title", "type": ["x"]}], "behaviors": 3}]
        schema["pages"] = []
        result = revise(schema, {"intent": "add_page", "pageType": "list"})
        self.assertTrue(any(p["id"].startswith("gear") for p in result["schema"]["pages"]))
        calendar = revise(schema, {"intent": "add_feature", "intelligence": {"features": [{"id": "calendar"}]}})
        self.assertIn("No schedulable entity for a calendar view", calendar["warnings"])

    def test_revision_keeps_feature_driven_navigation(self) -> None:
        schema = generate({"intelligence": {"entities": [{"name": "Client"}], "features": [{"id": "notifications"}]}})["schema"]
        self.assertTrue(schema["navigation"]["navbar"]["showNotifications"])
        result = revise(schema, {"intent": "add_page", "pageType": "kanban", "entity": "client"})
        self.assertIn("client-kanban", [p["id"] for p in result["schema"]["pages"]])
        self.assertTrue(result["schema"]["navigation"]["navbar"]["showNotifications"])

    def test_non_dict_schema(self) -> None:
        result = revise(None, {"intent": "add_entity", "intelligence": {"entities": ["Pet"]}})
        self.assertEqual([e["id"] for e in result["schema"]["entities"]], ["pet"])
        self.assertEqual(result["schema"]["version"], 2)


if __name__ == "__main__":
    unittest.main()
