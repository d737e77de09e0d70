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
from entity_builder import build_from_name
from page_builder import generate_for_entity
from page_materializer import (
    MAX_TABLE_COLUMNS,
    card_type_for,
    materialize,
    materialize_component,
    materialize_form_page,
    materialize_list_page,
    materialize_navigation,
    materialize_page,
    materialize_shell,
    materialize_theme,
    resolve_entity,
    should_use_data_table,
    table_columns,
)


def _order():
    return {
        "id": "order",
        "name": "Order",
        "pluralName": "Orders",
        "fields": [
            {"id": "id", "name": "ID", "type": "string"},
            {"id": "total", "name": "Total", "type": "currency"},
            {
                "id": "status",
                "name": "Status",
                "type": "enum",
                "enumOptions": [{"value": "pending", "label": "Pending"}, {"value": "completed", "label": "Completed"}],
            },
            {"id": "orderDate", "name": "Order Date", "type": "date"},
            {"id": "createdAt", "name": "Created", "type": "datetime"},
        ],
    }


def _ids(nodes):
    return [n["id"] for n in nodes]


class TestEntityResolution(unittest.TestCase):
    def setUp(self) -> None:
        self.entities = [build_from_name("Client"), build_from_name("Job")]

    def test_exact_then_name_then_route(self) -> None:
        self.assertEqual(resolve_entity({"entity": "job"}, self.entities)["id"], "job")
        self.assertEqual(resolve_entity({"name": "All Clients"}, self.entities)["id"], "client")
        self.assertEqual(resolve_entity({"name": "Board", "route": "/job/board"}, self.entities)["id"], "job")
        self.assertIsNone(resolve_entity({"name": "Reports", "route": "/reports"}, self.entities))

    def test_card_and_table_choices(self) -> None:
        self.assertEqual(card_type_for(build_from_name("Customer")), "personCard")
        self.assertEqual(card_type_for(build_from_name("Order")), "itemCard")
        self.assertEqual(card_type_for({"id": "widget", "name": "Widget"}), "card")
        self.assertEqual(card_type_for(None), "card")
        self.assertFalse(should_use_data_table(build_from_name("Client")))
        self.assertTrue(should_use_data_table(build_from_name("Invoice")))

    def test_table_columns(self) -> None:
        columns = table_columns(_order())
        self.assertEqual([c["id"] for c in columns], ["total", "status", "orderDate"])
        self.assertEqual([c.get("format") for c in columns], ["currency", "badge", "date"])
        self.assertLessEqual(len(table_columns(build_from_name("Client"))), MAX_TABLE_COLUMNS)
        self.assertEqual(table_columns(None), [{"id": "name", "header": "Name", "field": "name", "sortable": True}])


class TestPageBuilders(unittest.TestCase):
    def test_list_page_for_people(self) -> None:
        client = build_from_name("Client")
        header, body = materialize_list_page({"id": "client-list"}, client, {})
        button = header["children"][1]
        self.assertEqual(button["props"]["route"], "/clients/new")
        self.assertEqual(button["props"]["action"], "navigate")
        self.assertEqual(body["componentId"], "list")
        self.assertEqual(body["props"]["cardType"], "personCard")
        self.assertEqual(body["props"]["cardConfig"]["nameField"], "name")

    def test_list_page_for_transactions(self) -> None:
        _, body = materialize_list_page({"id": "order-list"}, _order(), {})
        self.assertEqual(body["componentId"], "dataTable")
        self.assertEqual(body["props"]["searchPlaceholder"], "Search orders...")

    def test_unbound_list_page(self) -> None:
        nodes = materialize_list_page({"id": "widgets", "name": "Widgets", "route": "/widgets"}, None, {})
        self.assertEqual(nodes[1]["id"], "widgets-not-configured")
        self.assertEqual(nodes[1]["children"][1]["props"]["text"], "Widgets Not Configured")

    def test_form_page(self) -> None:
        header, form = materialize_form_page({"id": "order-form"}, _order(), {})
        self.assertEqual(header["children"][0]["props"]["text"], "Add Order")
        self.assertEqual(_ids(form["children"]), ["field-total", "field-status", "field-orderDate"])
        status = form["children"][1]["props"]
        self.assertEqual(status["type"], "select")
        self.assertEqual(status["options"][0], {"value": "pending", "label": "Pending"})
        self.assertEqual(form["children"][0]["props"]["type"], "number")
        self.assertEqual(form["props"]["submitLabel"], "Save Order")

    def test_form_page_without_fields(self) -> None:
        _, form = materialize_form_page({"id": "x"}, None, {})
        self.assertEqual(_ids(form["children"]), ["field-name", "field-description"])

    def test_dashboard_page(self) -> None:
        entities = [_order(), build_from_name("Product"), build_from_name("Customer")]
        page = materialize_page({"id": "dashboard", "name": "Home", "type": "dashboard", "route": "/"}, entities, {"industry": {"id": "bakery"}})
        ids = _ids(page["components"])
        self.assertEqual(ids[0], "dashboard-header")
        self.assertEqual(ids[-1], "recent-activity")
        self.assertIn("section-today", ids)
        self.assertIn("section-summary", ids)
        today = page["components"][ids.index("section-today")]
        self.assertEqual(today["intent"]["emphasis"], "high")
        quick = page["components"][0]["children"][1]["children"][0]
        self.assertEqual(quick["props"]["route"], "/orders/new")

    def test_generic_page_keeps_components(self) -> None:
        page = {
            "id": "about",
            "name": "About",
            "type": "custom",
            "components": [
                {"id": "hdr", "type": "page-header", "props": {"title": "About"}, "children": [{"id": "t", "type": "text-input"}]},
            ],
        }
        node = materialize_page(page, [], {})["components"][0]
        self.assertEqual(node["componentId"], "container")
        self.assertEqual(node["children"][0]["componentId"], "input")
        self.assertEqual(materialize_component({"type": "sparkline"})["componentId"], "sparkline")

    def test_page_envelope(self) -> None:
        page = materialize_page({"name": "Job Board", "type": "kanban", "entity": "job"}, [build_from_name("Job")], {})
        self.assertEqual(page["id"], "job-board")
        self.assertEqual(page["entityId"], "job")
        self.assertEqual(page["surface"], "admin")
        self.assertEqual(page["navigation"]["icon"], build_from_name("Job").get("icon") or "📌")
        board = page["components"][1]
        self.assertEqual(board["props"]["columnField"], "status")


class TestAppLevel(unittest.TestCase):
    def test_shell_selection(self) -> None:
        self.assertEqual(materialize_shell({"features": ["invoicing"]})["id"], "dashboard-05")
        self.assertEqual(materialize_shell({"features": [{"id": "inventory"}]})["id"], "dashboard-07")
        self.assertEqual(materialize_shell({"industry": {"dashboardType": "health"}})["id"], "dashboard-04")
        shell = materialize_shell({})
        self.assertEqual(shell["id"], "dashboard-02")
        self.assertTrue(shell["features"]["showRecentActivity"])
        self.assertFalse(shell["features"]["showNotifications"])
        self.assertTrue(materialize_shell({"features": ["calendar"]})["features"]["showNotifications"])

    def test_navigation_hides_forms(self) -> None:
        client = build_from_name("Client")
        pages = [materialize_page(p, [client], {}) for p in generate_for_entity(client)]
        nav = materialize_navigation({"navigation": {"defaultPage": "nope"}}, pages)
        self.assertEqual([i["pageId"] for i in nav["sidebar"]["items"]], ["client-list"])
        self.assertEqual(nav["defaultPage"], "client-list")
        self.assertEqual(materialize_navigation({}, [])["defaultPage"], "home")

    def test_theme_defaults(self) -> None:
        dark = materialize_theme({"theme": {"mode": "dark", "borderRadius": "large"}})
        self.assertEqual(dark["colors"]["background"], "#1a1a2e")
        self.assertEqual(dark["borderRadius"], "1rem")
        light = materialize_theme({})
        self.assertEqual(light["mode"], "light")
        self.assertEqual(light["borderRadius"], "0.5rem")

    def test_materialize_generated_blueprint(self) -> None:
        schema = generate({"intelligence": {"entities": ["Client", "Job"]}})["schema"]
        app = materialize(schema, {"features": []})
        self.assertEqual(
            sorted(app),
            sorted(["id", "name", "description", "pages", "navigation", "shell", "industry", "terminology", "theme", "dataModels", "flows"]),
        )
        self.assertEqual(len(app["pages"]), len(schema["pages"]))
        self.assertEqual(app["navigation"]["defaultPage"], "dashboard")
        self.assertEqual([m["id"] for m in app["dataModels"]], ["client", "job"])
        create = next(f for f in app["flows"] if f["id"] == "create-client")
        self.assertEqual(create["trigger"]["componentId"], "client-form")

    def test_malformed_input_degrades(self) -> None:
        app = materialize(None, None)
        self.assertEqual(app["pages"], [])
        self.assertEqual(app["navigation"]["defaultPage"], "home")
        self.assertEqual(app["flows"], [])

    def test_industry_given_as_string(self) -> None:
        schema = generate({"intelligence": {"entities": ["Patient", "Appointment"], "industry": "medical"}})["schema"]
        self.assertEqual(schema["industry"], "medical")
        app = materialize(schema, {"industry": schema["industry"]})
        self.assertEqual(app["industry"], "medical")
        self.assertEqual(app["shell"]["id"], "dashboard-02")
        dashboard = next(p for p in app["pages"] if p["type"] == "dashboard")
        self.assertEqual(dashboard["components"][0]["id"], "dashboard-header")

    def test_null_navigation_order_sorts_first(self) -> None:
        pages = [
            {"id": "b", "name": "Beta", "route": "/b", "type": "custom", "navigation": {"order": 2}},
            {"id": "a", "name": "Alpha", "route": "/a", "type": "custom", "navigation": {"order": None}},
            {"id": "c", "name": "Gamma", "route": "/c", "type": "custom", "navigation": {"order": "x"}},
        ]
        app = materialize({"pages": pages})
        self.assertEqual([i["pageId"] for i in app["navigation"]["sidebar"]["items"]], ["a", "c", "b"])
        self.assertEqual(app["pages"][1]["navigation"]["order"], 0)

    def test_wrongly_typed_sub_objects(self) -> None:
        blueprint = {
            "id": "odd",
            "theme": "dark",
            "navigation": ["nope"],
            "entities": [{"id": "gadget", "name": 3, "fields": [{"id": "size", "name": 7, "type": ["number"]}, "junk"]}, {"id": 9}],
            "pages": [
                {"id": "gadgets", "name": "Gadgets", "type": "list", "entity": "gadget", "navigation": "x", "settings": 4},
                {"id": "cal", "name": "Calendar", "type": "calendar", "entity": "gadget", "settings": {"calendar": "month"}},
                {"id": "about", "type": ["custom"], "components": "none"},
            ],
            "workflows": [{"id": "w", "trigger": "onClick", "actions": [{"type": "navigate", "config": "x"}, "bad"]}],
        }
        app = materialize(blueprint, {"industry": ["x"], "features": "invoicing"})
        self.assertEqual(app["theme"]["mode"], "light")
        self.assertEqual(app["theme"]["borderRadius"], "0.5rem")
        self.assertEqual([m["id"] for m in app["dataModels"]], ["gadget"])
        self.assertEqual(app["dataModels"][0]["name"], "3")
        self.assertEqual(app["pages"][0]["entityId"], "gadget")
        self.assertTrue(app["pages"][0]["navigation"]["showInSidebar"])
        self.assertEqual(app["pages"][2]["type"], None)
        self.assertEqual(app["flows"][0]["trigger"], {"type": None, "componentId": None})
        self.assertEqual(app["flows"][0]["actions"][0]["config"], {})
        self.assertEqual(app["shell"]["id"], "dashboard-02")

    def test_non_string_entity_names(self) -> None:
        entities = [{"id": "thing", "name": 3, "pluralName": ["Things"]}]
        self.assertEqual(resolve_entity({"name": "Thing list", "route": "/thing"}, entities)["id"], "thing")
        self.assertEqual(card_type_for({"id": "x", "name": 5}), "card")
        self.assertFalse(should_use_data_table({"id": "x", "name": None}))
        self.assertEqual(materialize_shell({"industry": "medical"})["id"], "dashboard-02")
        self.assertEqual(materialize_shell({"industry": {"dashboardType": "health"}})["id"], "dashboard-04")


if __name__ == "__main__":
    unittest.main()
