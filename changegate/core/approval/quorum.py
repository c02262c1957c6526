"""Decision aggregation.

Decides whether the roles that have approved a request satisfy its rule.
"""

from typing import Iterable, List, Set

from changegate.core.rules.catalog import Rule


def mandatory_roles(rule: Rule) -> List[str]:
    """Roles that must all approve."""
    return rule.mandatory_roles


def optional_roles(rule: Rule) -> List[str]:
    """Roles of which one suffices when the rule has no mandatory roles."""
    return rule.optional_roles


def eligible_roles(rule: Rule) -> List[str]:
    """Every role allowed to decide under the rule (mandatory first)."""
    return mandatory_roles(rule) + optional_roles(rule)


def is_satisfied(rule: Rule, approved_roles: Iterable[str]) -> bool:
    """
    Check if the approving roles satisfy the rule's quorum.

    With any mandatory role present, every mandatory role must have
    approved and optional roles are ignored. With only optional roles, at
    least one of them must have approved.

    Args:
        rule: Governing approval rule
        approved_roles: Roles of the approvers who said yes (duplicates ignored)

    Returns:
        True if the quorum is met
    """
    approved: Set[str] = {str(getattr(role, "value", role)) for role in approved_roles}

    required = mandatory_roles(rule)
    if required:
        return all(role in approved for role in required)

    return any(role in approved for role in optional_roles(rule))
