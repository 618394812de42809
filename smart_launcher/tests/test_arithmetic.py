"""Tests for the symbolic and worded arithmetic parsers."""

import pytest

from smart_launcher.core.arithmetic import (
    parse_math_expression,
    parse_text_math_expression,
)
from smart_launcher.models.schemas import CommandHandler, CommandPriority


def _value(results):
    assert len(results) == 1
    return results[0].value


class TestSymbolicArithmetic:
    """Test conventional infix expressions."""

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("1 + 1", "2"),
            ("2^10 / 4", "256"),
            ("(1 + 2) * 3", "9"),
            ("10 / 4", "2.5"),
            ("1 / 3", "0.33"),
            ("5 x 3", "15"),
            ("6 × 7", "42"),
            ("8 ÷ 2", "4"),
            ("1,000 + 1", "1001"),
            ("2 + 2 =", "4"),
            ("-3 + 1", "-2"),
            ("sqrt(16)", "4"),
            ("7 % 4", "3"),
        ],
    )
    def test_evaluates_expression(self, query, expected):
        assert _value(parse_math_expression(query)) == expected

    def test_result_is_a_top_priority_formula(self):
        result = parse_math_expression("1 + 1")[0]

        assert result.handler == CommandHandler.FORMULA_RESULT.value
        assert result.label == "2"
        assert result.smart_match is True
        assert result.priority == CommandPriority.TOP

    @pytest.mark.parametrize(
        "query", ["42", "-5", "pi", "hello", "", "1 / 0", "2 ** 100000", "__import__('os')"]
    )
    def test_rejects_non_expressions(self, query):
        assert parse_math_expression(query) == []

    def test_rejects_overlong_input(self):
        assert parse_math_expression(" + ".join(["1"] * 200)) == []


class TestWordedArithmetic:
    """Test arithmetic written in words."""

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("one plus one plus one", "3"),
            ("what is five times six?", "30"),
            ("two to the power of ten", "1024"),
            ("five factorial", "120"),
            ("three squared plus four squared", "25"),
            ("minus five plus two", "-3"),
            ("twenty percent of fifty", "10"),
            ("20% of 50", "10"),
            ("square root of sixteen", "4"),
            ("square root of ten times log seven", "2.67"),
            ("one hundred and twenty-three minus three", "120"),
            ("ten divided by four", "2.5"),
            ("cube root of twenty-seven", "3"),
        ],
    )
    def test_evaluates_words(self, query, expected):
        assert _value(parse_text_math_expression(query)) == expected

    def test_division_by_zero_has_no_result(self):
        assert parse_text_math_expression("ten divided by zero") == []

    @pytest.mark.parametrize(
        "query", ["seven", "hello world", "five seven plus one", "plus", "two hundred factorial"]
    )
    def test_rejects_non_expressions(self, query):
        assert parse_text_math_expression(query) == []
