"""Tests for condition evaluation."""

import math

import pytest

from aariba.compiler import compile_condition
from aariba.conditions import Comparison, CompOp, Exists, Logic, LogicOp, total_order_key
from aariba.expressions import VariableNotFound, program
from aariba.parser import Lexer, Parser


def condition(source: str):
    parser = Parser(Lexer(source))
    cond = parser.parse_condition()
    parser.consume("EOF")
    return compile_condition(cond)


class TestComparison:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("1 < 2", True),
            ("2 < 2", False),
            ("2 <= 2", True),
            ("3 > 2", True),
            ("2 >= 3", False),
            ("2 == 2", True),
            ("2 != 2", False),
        ],
    )
    def test_operators(self, source, expected):
        assert condition(source).evaluate() is expected

    def test_operands_are_expressions(self):
        cond = condition("$a * 2 > b + 1")
        assert cond.evaluate({"a": 3.0}, {"b": 4.0}) is True

    def test_compiled_shape(self):
        cond = condition("$hp <= 0")
        assert isinstance(cond, Comparison)
        assert cond.op is CompOp.LE
        assert cond.left.global_variables() == ["hp"]

    def test_missing_variable_raises(self):
        with pytest.raises(VariableNotFound):
            condition("$hp > 0").evaluate({})


class TestTotalOrder:
    def test_nan_equals_nan(self):
        assert CompOp.EQ.compare(math.nan, math.nan)
        assert not CompOp.NE.compare(math.nan, math.nan)

    def test_nan_above_infinity(self):
        assert CompOp.GT.compare(math.nan, math.inf)
        assert CompOp.LT.compare(1.0, math.nan)
        assert CompOp.NE.compare(math.nan, 1.0)

    def test_signed_zero(self):
        assert CompOp.EQ.compare(-0.0, 0.0)

    def test_sort_key(self):
        values = [math.nan, 1.0, -math.inf, math.inf, -2.0]
        ordered = sorted(values, key=total_order_key)
        assert ordered[:4] == [-math.inf, -2.0, 1.0, math.inf]
        assert math.isnan(ordered[4])

    def test_nan_from_expression(self):
        assert condition("0 / 0 > 1 / 0").evaluate() is True
        assert condition("0 / 0 == 0 / 0").evaluate() is True


class TestLogic:
    def test_and_short_circuits(self):
        """A false left side never evaluates the right side."""
        assert condition("1 > 2 && $missing > 0").evaluate({}) is False

    def test_or_short_circuits(self):
        assert condition("1 < 2 || $missing > 0").evaluate({}) is True

    def test_right_side_evaluated_when_needed(self):
        with pytest.raises(VariableNotFound):
            condition("1 < 2 && $missing > 0").evaluate({})
        with pytest.raises(VariableNotFound):
            condition("1 > 2 || $missing > 0").evaluate({})

    def test_truth_table(self):
        t = Comparison(left=program(1), op=CompOp.EQ, right=program(1))
        f = Comparison(left=program(1), op=CompOp.EQ, right=program(2))
        assert Logic(left=t, op=LogicOp.AND, right=t).evaluate() is True
        assert Logic(left=t, op=LogicOp.AND, right=f).evaluate() is False
        assert Logic(left=f, op=LogicOp.OR, right=t).evaluate() is True
        assert Logic(left=f, op=LogicOp.OR, right=f).evaluate() is False

    def test_grouping(self):
        assert condition("(1 > 2 || 2 > 1) && 3 > 2").evaluate() is True
        assert condition("1 > 2 || 2 > 1 && 1 > 2").evaluate() is False


class TestExists:
    def test_unbound(self):
        assert Exists(name="x").evaluate({}) is False

    def test_bound(self):
        assert Exists(name="x").evaluate({"x": 0.0}) is True

    def test_ignores_locals(self):
        assert Exists(name="x").evaluate({}, {"x": 1.0}) is False

    def test_no_global_context(self):
        assert condition("exists($x)").evaluate(None) is False

    def test_combined_with_comparison(self):
        """exists() guards a comparison that would otherwise fail."""
        cond = condition("exists($shield) && $shield > 0")
        assert cond.evaluate({}) is False
        assert cond.evaluate({"shield": 5.0}) is True
