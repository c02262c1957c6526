"""Tests for rule matching."""

from changegate.core.rules import (
    Operation,
    RoleRequirement,
    Rule,
    RuleCatalog,
    RuleMatcher,
    default_catalog,
    describe_requirements,
)


def _rule(item_type="TODO", operation=Operation.CREATE, condition=None, priority=0, role="ADMIN"):
    return Rule(item_type, operation, {role: RoleRequirement.required()}, condition=condition, priority=priority)


class TestRuleMatcher:
    """Tests for RuleMatcher.match_rule."""

    def test_no_rules_no_match(self):
        """Test that an empty catalog gates nothing."""
        matcher = RuleMatcher(RuleCatalog([]))
        assert matcher.match_rule("TODO", Operation.CREATE, {}) is None

    def test_highest_priority_wins(self):
        """Test that the highest priority applicable rule is chosen."""
        low = _rule(priority=1)
        high = _rule(priority=10, role="MANAGER")
        matcher = RuleMatcher(RuleCatalog([low, high]))
        assert matcher.match_rule("TODO", Operation.CREATE, {}) is high

    def test_tie_goes_to_first_declared(self):
        """Test that equal priorities resolve to declaration order."""
        first = _rule(priority=5, role="ADMIN")
        second = _rule(priority=5, role="MANAGER")
        assert RuleMatcher(RuleCatalog([first, second])).match_rule("TODO", Operation.CREATE, {}) is first
        assert RuleMatcher(RuleCatalog([second, first])).match_rule("TODO", Operation.CREATE, {}) is second

    def test_condition_filters(self):
        """Test that rules whose condition fails are skipped."""
        conditional = _rule(condition="level=HIGH", priority=100)
        fallback = _rule(priority=0, role="MANAGER")
        matcher = RuleMatcher(RuleCatalog([conditional, fallback]))
        assert matcher.match_rule("TODO", Operation.CREATE, {"level": "HIGH"}) is conditional
        assert matcher.match_rule("TODO", Operation.CREATE, {"level": "LOW"}) is fallback

    def test_unrecognised_condition_matches(self):
        """Test that an unparsable condition behaves as unconditional."""
        rule = _rule(condition="amount>1000")
        matcher = RuleMatcher(RuleCatalog([rule]))
        assert matcher.match_rule("TODO", Operation.CREATE, {"amount": 5}) is rule

    def test_item_type_and_operation_must_match(self):
        """Test filtering on item type and operation."""
        matcher = RuleMatcher(RuleCatalog([_rule()]))
        assert matcher.match_rule("INVOICE", Operation.CREATE, {}) is None
        assert matcher.match_rule("TODO", Operation.DELETE, {}) is None

    def test_default_catalog_levels(self):
        """Test the built-in level rules."""
        matcher = RuleMatcher(default_catalog())

        high = matcher.match_rule("TODO", Operation.CREATE, {"level": "HIGH"})
        assert high.priority == 100
        assert high.mandatory_roles == ["ADMIN", "MANAGER"]

        medium = matcher.match_rule("TODO", Operation.UPDATE, {"level": "MEDIUM"})
        assert medium.mandatory_roles == ["MANAGER"]

        assert matcher.match_rule("TODO", Operation.CREATE, {"level": "LOW"}) is None
        assert matcher.match_rule("TODO", Operation.DELETE, {}) is None

    def test_requires_approval(self):
        """Test the boolean shortcut."""
        matcher = RuleMatcher(default_catalog())
        assert matcher.requires_approval("INVOICE", Operation.CREATE, {})
        assert not matcher.requires_approval("TODO", Operation.CREATE, {"level": "LOW"})
        assert not matcher.requires_approval("UNKNOWN", Operation.CREATE, {})


class TestDescribeRequirements:
    """Tests for describe_requirements."""

    def test_mandatory_only(self):
        """Test a rule with mandatory roles only."""
        rule = Rule("TODO", Operation.CREATE, {
            "ADMIN": RoleRequirement.required(),
            "MANAGER": RoleRequirement.required(),
        })
        assert describe_requirements(rule) == "Requires approval from: ADMIN, MANAGER"

    def test_optional_only(self):
        """Test a rule with optional roles only."""
        rule = Rule("INVOICE", Operation.DELETE, {
            "ADMIN": RoleRequirement.optional(),
            "MANAGER": RoleRequirement.optional(),
        })
        assert describe_requirements(rule) == "Optional approvers: ADMIN, MANAGER (at least one required)"

    def test_mixed(self):
        """Test a rule with both kinds."""
        rule = Rule("INVOICE", Operation.UPDATE, {
            "MANAGER": RoleRequirement.required(),
            "ADMIN": RoleRequirement.optional(),
        })
        assert describe_requirements(rule) == "Requires approval from: MANAGER. Optional approvers: ADMIN"
