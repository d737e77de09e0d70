import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from condition_eval import (
    ConditionSchemaError,
    TypeErrorInCondition,
    VarResolveError,
    condition_scope,
    evaluate,
    evaluate_condition,
    parse_literal,
)


class TestConditionEval(unittest.TestCase):
    def setUp(self) -> None:
        self.scope = {"status": "open", "count": 3, "active": True, "empty": "", "nothing": None}

    def test_equality_operators(self) -> None:
        self.assertTrue(evaluate("status === 'open'", self.scope))
        self.assertTrue(evaluate('status == "open"', self.scope))
        self.assertFalse(evaluate("status !== 'open'", self.scope))
        self.assertTrue(evaluate("status != closed", self.scope))
        self.assertTrue(evaluate("count === 3", self.scope))
        self.assertTrue(evaluate("active === true", self.scope))
        self.assertTrue(evaluate("nothing === null", self.scope))

    def test_strict_equality_does_not_coerce(self) -> None:
        self.assertFalse(evaluate("count === '3'", self.scope))
        self.assertFalse(evaluate("active === 1", self.scope))

    def test_numeric_comparisons(self) -> None:
        self.assertTrue(evaluate("count > 2", self.scope))
        self.assertTrue(evaluate("count >= 3", self.scope))
        self.assertFalse(evaluate("count < 3", self.scope))
        self.assertTrue(evaluate("count <= 3.5", self.scope))

    def test_missing_field_never_matches(self) -> None:
        self.assertFalse(evaluate("missing === null", self.scope))
        self.assertTrue(evaluate("missing !== 'x'", self.scope))
        self.assertFalse(evaluate("missing > 0", self.scope))
        self.assertFalse(evaluate("missing < 0", self.scope))

    def test_bare_identifier_truthiness(self) -> None:
        self.assertTrue(evaluate("active", self.scope))
        self.assertFalse(evaluate("empty", self.scope))
        self.assertFalse(evaluate("nothing", self.scope))
        with self.assertRaises(VarResolveError):
            evaluate("unknown", self.scope)

    def test_confirm_always_passes(self) -> None:
        self.assertTrue(evaluate("confirm('Delete this record?')", {}))

    def test_errors(self) -> None:
        with self.assertRaises(TypeErrorInCondition):
            evaluate(42, self.scope)
        with self.assertRaises(ConditionSchemaError):
            evaluate("   ", self.scope)
        with self.assertRaises(ConditionSchemaError):
            evaluate("a + b", self.scope)

    def test_parse_literal(self) -> None:
        self.assertIs(parse_literal("true"), True)
        self.assertIsNone(parse_literal("null"))
        self.assertEqual(parse_literal("'done'"), "done")
        self.assertEqual(parse_literal("10"), 10)
        self.assertEqual(parse_literal("2.5"), 2.5)
        self.assertEqual(parse_literal("pending"), "pending")

    def test_scope_merges_context(self) -> None:
        ctx = {
            "formData": {"status": "draft"},
            "currentData": {"status": "open", "total": 10},
            "variables": {"step": 2},
            "recordId": "r1",
        }
        scope = condition_scope(ctx)
        self.assertEqual(scope["status"], "open")
        self.assertEqual(scope["total"], 10)
        self.assertEqual(scope["step"], 2)
        self.assertEqual(scope["recordId"], "r1")

    def test_evaluate_condition_fail_modes(self) -> None:
        ctx = {"formData": {"amount": 50}}
        self.assertTrue(evaluate_condition("amount > 10", ctx))
        self.assertFalse(evaluate_condition("amount > 100", ctx))
        self.assertTrue(evaluate_condition("no_such_field", ctx))
        self.assertFalse(evaluate_condition("no_such_field", ctx, fail_open=False))
        self.assertFalse(evaluate_condition("1 +", ctx, fail_open=False))


if __name__ == "__main__":
    unittest.main()
