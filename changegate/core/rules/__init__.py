"""Approval rule catalog and matching."""

from .catalog import (
    DEFAULT_RULES,
    Operation,
    Role,
    RoleRequirement,
    Rule,
    RuleCatalog,
    default_catalog,
)
from .conditions import Condition, FieldEquals, Unconditional, parse_condition
from .matcher import RuleMatcher, describe_requirements

__all__ = [
    "DEFAULT_RULES",
    "Operation",
    "Role",
    "RoleRequirement",
    "Rule",
    "RuleCatalog",
    "default_catalog",
    "Condition",
    "FieldEquals",
    "Unconditional",
    "parse_condition",
    "RuleMatcher",
    "describe_requirements",
]
