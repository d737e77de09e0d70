import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from interpolation import interpolate, interpolate_mapping, resolve_data, resolve_value, stringify


class TestInterpolation(unittest.TestCase):
    def setUp(self) -> None:
        self.ctx = {
            "appId": "app-1",
            "formData": {"name": "Ada", "tags": ["a", "b"]},
            "currentData": {"total": 12.0},
            "variables": {"greeting": "Hi", "user": {"email": "ada@example.com"}},
        }

    def test_paths_resolve_against_context(self) -> None:
        self.assertEqual(interpolate("{formData.name} / {appId}", self.ctx), "Ada / app-1")
        self.assertEqual(interpolate("{formData.tags.1}", self.ctx), "b")
        self.assertEqual(interpolate("Total {currentData.total}", self.ctx), "Total 12")

    def test_variables_fallback(self) -> None:
        self.assertEqual(interpolate("{greeting}, {user.email}", self.ctx), "Hi, ada@example.com")

    def test_unresolved_tokens_stay_literal(self) -> None:
        self.assertEqual(interpolate("Hello {formData.missing}", self.ctx), "Hello {formData.missing}")
        self.assertEqual(interpolate("{ not a token }", self.ctx), "{ not a token }")

    def test_non_string_passthrough(self) -> None:
        self.assertEqual(interpolate(5, self.ctx), 5)
        self.assertIsNone(resolve_value(None, self.ctx))
        self.assertEqual(resolve_value("{greeting}", self.ctx), "Hi")

    def test_stringify(self) -> None:
        self.assertEqual(stringify(None), "null")
        self.assertEqual(stringify(True), "true")
        self.assertEqual(stringify(3.0), "3")
        self.assertEqual(stringify({"a": 1}), '{"a":1}')

    def test_interpolate_mapping_top_level_only(self) -> None:
        out = interpolate_mapping({"to": "{user.email}", "count": 2, "nested": {"x": "{greeting}"}}, self.ctx)
        self.assertEqual(out["to"], "ada@example.com")
        self.assertEqual(out["count"], 2)
        self.assertEqual(out["nested"], {"x": "{greeting}"})

    def test_resolve_data_sources(self) -> None:
        self.assertEqual(resolve_data(None, self.ctx)["name"], "Ada")
        self.assertEqual(resolve_data("current_data", self.ctx), {"total": 12.0})
        self.assertEqual(resolve_data("variables", self.ctx)["greeting"], "Hi")
        self.assertEqual(resolve_data("form_data", {}), {})


if __name__ == "__main__":
    unittest.main()
