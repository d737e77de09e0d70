import os
import sys
import unittest
from datetime import datetime


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from appforge.dashboard_intent import (
    filter_by_time_scope,
    filter_visible_actions,
    format_metric_label,
    infer_layout_hint,
    matches_time_scope,
    should_show_action,
    validate_dashboard_intent,
)
from dashboard_compose import compose, section_config


NOW = datetime(2024, 5, 15, 12, 0, 0)


def _order():
    return {
        "id": "order",
        "name": "Order",
        "pluralName": "Orders",
        "fields": [
            {"id": "id", "type": "string"},
            {"id": "total", "name": "Total", "type": "currency"},
            {
                "id": "status",
                "name": "Status",
                "type": "enum",
                "enumOptions": [{"value": "pending"}, {"value": "in_progress"}, {"value": "completed"}],
            },
            {"id": "orderDate", "name": "Order Date", "type": "date"},
            {"id": "createdAt", "type": "datetime"},
        ],
    }


def _product():
    return {"id": "product", "name": "Product", "pluralName": "Products", "fields": [{"id": "name", "type": "string"}, {"id": "createdAt", "type": "datetime"}]}


def _customer():
    return {"id": "customer", "name": "Customer", "pluralName": "Customers", "fields": [{"id": "email", "type": "email"}]}


class TestTimeScopes(unittest.TestCase):
    def test_scopes(self) -> None:
        self.assertTrue(matches_time_scope("2024-05-15T09:00:00Z", "today", NOW))
        self.assertFalse(matches_time_scope("2024-05-14T23:00:00", "today", NOW))
        self.assertTrue(matches_time_scope("2024-05-15T11:30:00", "now", NOW))
        self.assertFalse(matches_time_scope("2024-05-15T10:30:00", "now", NOW))
        self.assertTrue(matches_time_scope("2024-05-12T00:00:00", "this-week", NOW))
        self.assertTrue(matches_time_scope("2024-05-18T23:00:00", "this-week", NOW))
        self.assertFalse(matches_time_scope("2024-05-19T00:00:00", "this-week", NOW))
        self.assertFalse(matches_time_scope("2024-05-11T23:59:00", "this-week", NOW))
        self.assertTrue(matches_time_scope("2024-05-01", "this-month", NOW))
        self.assertTrue(matches_time_scope("garbage", "all-time", NOW))
        self.assertFalse(matches_time_scope("garbage", "today", NOW))

    def test_out_of_range_timestamps(self) -> None:
        self.assertTrue(matches_time_scope(1715774400000, "this-month", NOW))
        for value in (1e300, float("inf"), float("nan"), -1e300):
            with self.subTest(value=value):
                self.assertFalse(matches_time_scope(value, "today", NOW))
        self.assertTrue(matches_time_scope(float("inf"), "all-time", NOW))

    def test_filter_by_time_scope(self) -> None:
        items = [{"createdAt": "2024-05-15T08:00:00"}, {"createdAt": "2024-04-01T08:00:00"}, {"name": "undated"}]
        self.assertEqual(len(filter_by_time_scope(items, "today", now=NOW)), 1)
        self.assertEqual(len(filter_by_time_scope(items, "all-time", now=NOW)), 3)


class TestActionsAndLabels(unittest.TestCase):
    def test_visibility_rules(self) -> None:
        records = [{"status": "Pending"}, {"status": "completed"}]
        self.assertTrue(should_show_action({"visibilityRule": "if-pending"}, records))
        self.assertFalse(should_show_action({"visibilityRule": "if-active"}, records))
        self.assertFalse(should_show_action({"visibilityRule": "if-overdue"}, records))
        self.assertTrue(should_show_action({"visibilityRule": "if-empty"}, []))
        self.assertTrue(should_show_action({}, records))
        visible = filter_visible_actions([{"actionId": "a", "visibilityRule": "if-empty"}, {"actionId": "b"}], records)
        self.assertEqual([a["actionId"] for a in visible], ["b"])

    def test_metric_labels_and_layout(self) -> None:
        metric = {"label": "Orders", "timeScope": "this-week"}
        self.assertEqual(format_metric_label(metric), "Orders")
        self.assertNotEqual(format_metric_label(metric, include_time_scope=True), "Orders")
        self.assertEqual(format_metric_label({"label": "Orders"}, include_time_scope=True), "Orders")
        self.assertEqual(infer_layout_hint({"metrics": [{}]}), "stats-row")
        self.assertEqual(infer_layout_hint({"listEntity": "order", "role": "history"}), "data-table")
        self.assertEqual(infer_layout_hint({"layoutHint": "calendar", "metrics": [{}]}), "calendar")
        self.assertEqual(infer_layout_hint({"listEntity": "order", "role": "upcoming"}), "card-list")


class TestValidateIntent(unittest.TestCase):
    def test_sorting_primary_cap_and_action_stripping(self) -> None:
        intent = {
            "title": "X",
            "sections": [
                {"id": "s", "role": "summary", "priority": "primary", "actions": [{"actionId": "nope"}]},
                {"id": "u", "role": "upcoming", "priority": "primary"},
                {"id": "t", "role": "today", "priority": "primary"},
                {"id": "i", "role": "in-progress", "priority": "primary", "actions": [{"actionId": "go"}]},
            ],
        }
        out = validate_dashboard_intent(intent)
        sections = out["sections"]
        self.assertEqual([s["role"] for s in sections], ["today", "in-progress", "upcoming", "summary"])
        self.assertEqual(sum(1 for s in sections if s["priority"] == "primary"), 2)
        self.assertNotIn("actions", sections[3])
        self.assertEqual(sections[1]["actions"], [{"actionId": "go"}])
        self.assertEqual(intent["sections"][0]["priority"], "primary")

    def test_summary_not_first_without_today(self) -> None:
        out = validate_dashboard_intent(
            {"sections": [{"id": "s", "role": "summary", "priority": "tertiary"}, {"id": "h", "role": "history", "priority": "tertiary"}]}
        )
        self.assertEqual(out["sections"][0]["role"], "history")


class TestCompose(unittest.TestCase):
    def test_empty_entities(self) -> None:
        self.assertEqual(compose([]), {"title": "Dashboard", "sections": []})
        self.assertEqual(compose(None, "bakery"), {"title": "Dashboard", "sections": []})

    def test_bakery_dashboard(self) -> None:
        intent = compose([_order(), _product(), _customer()], "bakery")
        self.assertEqual(intent["title"], "the Bakery")
        self.assertEqual(intent["refreshInterval"], 60)
        ids = [s["id"] for s in intent["sections"]]
        self.assertEqual(ids, ["today", "in-progress", "upcoming", "summary", "history"])
        today = intent["sections"][0]
        self.assertEqual(today["title"], "Today at the Bakery")
        self.assertEqual(today["metrics"][0]["sourceMetric"], "order.count")
        self.assertEqual(today["metrics"][1]["format"], "currency")
        progress = intent["sections"][1]
        self.assertEqual(progress["listEntity"], "order")
        self.assertEqual(progress["listFilter"], "status:pending")
        upcoming = intent["sections"][2]
        self.assertEqual(upcoming["listFilter"], "orderDate:>today")
        summary = intent["sections"][3]
        self.assertEqual(summary["metrics"][0]["label"], "Total Orders")
        self.assertEqual(summary["metrics"][-1]["sourceMetric"], "order.total.sum")
        self.assertNotIn("actions", summary)

    def test_timestamps_do_not_make_entities_schedulable(self) -> None:
        intent = compose([_product()])
        self.assertEqual([s["id"] for s in intent["sections"]], ["today", "summary"])
        self.assertEqual(intent["title"], "a Glance")

    def test_kit_template_kpis(self) -> None:
        kit = {"id": "gym", "dashboardTemplate": {"kpis": [{"metric": "members.active", "label": "Members"}, {"metric": "x", "label": "Visits this week"}]}}
        today = compose([_customer()], kit)["sections"][0]
        self.assertEqual(today["metrics"][0]["label"], "Active Members")
        self.assertTrue(today["metrics"][0]["emphasize"])
        self.assertEqual(today["metrics"][1]["timeScope"], "this-week")

    def test_section_config_overrides(self) -> None:
        config = section_config("bakery", {"actionLabels": {"extra": "Extra"}, "todayTitle": "Hi"})
        self.assertEqual(config["todayTitle"], "Hi")
        self.assertEqual(config["actionLabels"]["markReady"], "Mark as Baked")
        self.assertEqual(config["actionLabels"]["extra"], "Extra")
        self.assertEqual(section_config("unknown")["todayTitle"], "Today at a Glance")


if __name__ == "__main__":
    unittest.main()
