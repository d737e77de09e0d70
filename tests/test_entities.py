import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from entity_builder import build_from_inference, build_from_name, ensure_standard_fields, infer_behaviors, make_field
from entity_inference import (
    extract_main_noun,
    infer_field_type,
    infer_from_features,
    infer_from_intelligence,
    resolve_relationships,
)


def _field_ids(entity):
    return [f["id"] for f in entity["fields"]]


class TestFieldTypes(unittest.TestCase):
    def test_inference_by_name(self) -> None:
        cases = {
            "email": "email",
            "phoneNumber": "phone",
            "website": "url",
            "dueDate": "date",
            "price": "currency",
            "quantity": "number",
            "isActive": "boolean",
            "avatar": "image",
            "address": "address",
            "notes": "richtext",
            "clientId": "reference",
            "title": "string",
            "": "string",
        }
        for name, expected in cases.items():
            with self.subTest(name=name):
                self.assertEqual(infer_field_type(name), expected)


class TestEntityBuilder(unittest.TestCase):
    def test_person_template(self) -> None:
        client = build_from_name("client")
        self.assertEqual(client["id"], "client")
        self.assertEqual(client["pluralName"], "Clients")
        self.assertEqual(
            _field_ids(client), ["id", "name", "email", "phone", "company", "address", "notes", "createdAt", "updatedAt"]
        )
        email = next(f for f in client["fields"] if f["id"] == "email")
        self.assertTrue(email["required"])
        self.assertEqual(client["displayConfig"]["titleField"], "name")

    def test_trackable_job(self) -> None:
        job = build_from_name("Job")
        status = next(f for f in job["fields"] if f["id"] == "status")
        self.assertEqual([o["value"] for o in status["enumOptions"]], ["pending", "in_progress", "completed", "cancelled"])
        self.assertIn("trackable", job["behaviors"])
        self.assertIn("schedulable", job["behaviors"])

    def test_schedulable_and_billable(self) -> None:
        appointment = build_from_name("Appointment")
        date_field = next(f for f in appointment["fields"] if f["id"] == "date")
        self.assertEqual(date_field["type"], "datetime")
        self.assertIn("schedulable", appointment["behaviors"])
        invoice = build_from_name("Invoice")
        self.assertIn("billable", invoice["behaviors"])
        self.assertEqual(invoice["pluralName"], "Invoices")

    def test_industry_fields(self) -> None:
        job = build_from_name("Job", "trades")
        self.assertIn("serviceAddress", _field_ids(job))
        self.assertNotIn("serviceAddress", _field_ids(build_from_name("Job")))

    def test_standard_fields_order(self) -> None:
        fields = ensure_standard_fields([make_field("title", "Title"), make_field("createdAt", "Created", "datetime")])
        ids = [f["id"] for f in fields]
        self.assertEqual(ids, ["id", "title", "createdAt", "updatedAt"])
        self.assertTrue(fields[0]["required"] and fields[0]["unique"])

    def test_timestamps_do_not_schedule(self) -> None:
        self.assertEqual(infer_behaviors(ensure_standard_fields([])), [])

    def test_from_inference_fields(self) -> None:
        entity = build_from_inference(
            {"name": "pet", "fields": ["Breed", {"name": "Status", "type": "enum", "options": ["alive", "adopted"]}, "ownerEmail"]}
        )
        self.assertEqual(entity["name"], "Pet")
        ids = _field_ids(entity)
        self.assertEqual(ids[:2], ["id", "name"])
        self.assertIn("breed", ids)
        status = next(f for f in entity["fields"] if f["id"] == "status")
        self.assertEqual([o["value"] for o in status["enumOptions"]], ["alive", "adopted"])
        self.assertEqual(next(f for f in entity["fields"] if f["id"] == "ownerEmail")["type"], "email")


class TestEntityInference(unittest.TestCase):
    def test_main_noun(self) -> None:
        self.assertEqual(extract_main_noun("Build me a recipes app"), "recipe")
        self.assertEqual(extract_main_noun("make boxes"), "box")
        self.assertEqual(extract_main_noun("create an inventory tracker"), "inventory")
        self.assertIsNone(extract_main_noun("   "))

    def test_features_suggest_entities(self) -> None:
        ids = [e["id"] for e in infer_from_features(["invoicing", "calendar"])]
        self.assertEqual(sorted(ids), ["appointment", "invoice"])
        self.assertEqual([e["id"] for e in infer_from_features([], "healthcare")], ["patient", "appointment"])

    def test_intelligence_with_implied_entities_and_references(self) -> None:
        intelligence = {
            "entities": [{"name": "Client"}, {"name": "Job", "fields": ["title", "clientId", "vendorId"]}],
            "features": [{"id": "invoicing"}],
        }
        entities = infer_from_intelligence(intelligence)
        ids = [e["id"] for e in entities]
        self.assertEqual(ids, ["client", "job", "invoice"])
        job = entities[1]
        client_ref = next(f for f in job["fields"] if f["id"] == "clientId")
        self.assertEqual(client_ref["type"], "reference")
        self.assertEqual(client_ref["reference"]["targetEntity"], "client")
        vendor = next(f for f in job["fields"] if f["id"] == "vendorId")
        self.assertEqual(vendor["type"], "string")
        self.assertEqual(entities[0]["relationships"][0]["foreignKey"], "clientId")

    def test_duplicate_entities_dropped(self) -> None:
        entities = infer_from_intelligence({"entities": ["Client", "client"]})
        self.assertEqual([e["id"] for e in entities], ["client"])

    def test_resolve_relationships_is_idempotent_for_bound_fields(self) -> None:
        client = build_from_name("Client")
        job = build_from_inference({"name": "Job", "fields": ["clientId"]})
        entities = [client, job]
        resolve_relationships(entities)
        resolve_relationships(entities)
        self.assertEqual(len(client["relationships"]), 1)


if __name__ == "__main__":
    unittest.main()
