"""Tests for rule condition parsing and evaluation."""

import pytest

from changegate.core.rules.conditions import (
    FieldEquals,
    Unconditional,
    parse_condition,
    stringify,
)


class TestStringify:
    """Tests for the string form of payload values."""

    def test_none_renders_null(self):
        """Test that a missing value renders as 'null'."""
        assert stringify(None) == "null"

    def test_booleans_render_lowercase(self):
        """Test that booleans render as true/false."""
        assert stringify(True) == "true"
        assert stringify(False) == "false"

    def test_numbers_and_strings(self):
        """Test plain values use str()."""
        assert stringify(42) == "42"
        assert stringify("HIGH") == "HIGH"


class TestParseCondition:
    """Tests for parse_condition."""

    def test_none_is_unconditional(self):
        """Test that an absent condition always holds."""
        condition = parse_condition(None)
        assert isinstance(condition, Unconditional)
        assert condition.evaluate({}) is True

    def test_blank_is_unconditional(self):
        """Test that a blank condition always holds."""
        assert isinstance(parse_condition("   "), Unconditional)

    def test_field_equals(self):
        """Test parsing a field=value condition."""
        condition = parse_condition("level=HIGH")
        assert condition == FieldEquals(field="level", expected="HIGH")

    def test_whitespace_is_trimmed(self):
        """Test that spaces around the field and value are ignored."""
        assert parse_condition(" level = HIGH ") == FieldEquals(field="level", expected="HIGH")

    @pytest.mark.parametrize("expression", ["level", "a=b=c", "=HIGH", "level=", "amount>100"])
    def test_unrecognised_forms_always_hold(self, expression):
        """Test that anything but a two-part equality evaluates true."""
        condition = parse_condition(expression)
        assert isinstance(condition, Unconditional)
        assert condition.expression == expression
        assert condition.evaluate({"level": "LOW"}) is True


class TestFieldEquals:
    """Tests for FieldEquals evaluation."""

    def test_matching_value(self):
        """Test a matching field value."""
        assert FieldEquals("level", "HIGH").evaluate({"level": "HIGH"}) is True

    def test_different_value(self):
        """Test a different field value."""
        assert FieldEquals("level", "HIGH").evaluate({"level": "MEDIUM"}) is False

    def test_comparison_is_case_sensitive(self):
        """Test that 'high' does not match 'HIGH'."""
        assert FieldEquals("level", "HIGH").evaluate({"level": "high"}) is False

    def test_missing_field_compares_as_null(self):
        """Test that a missing field only matches the literal 'null'."""
        assert FieldEquals("level", "HIGH").evaluate({}) is False
        assert FieldEquals("level", "null").evaluate({}) is True

    def test_none_data(self):
        """Test evaluation against no payload at all."""
        assert FieldEquals("level", "HIGH").evaluate(None) is False

    def test_boolean_field(self):
        """Test booleans compare against true/false."""
        assert FieldEquals("completed", "true").evaluate({"completed": True}) is True
        assert FieldEquals("completed", "True").evaluate({"completed": True}) is False

    def test_numeric_field(self):
        """Test numbers compare by their string form."""
        assert FieldEquals("priority", "3").evaluate({"priority": 3}) is True
