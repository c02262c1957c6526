"""Approval rule definitions and the rule catalog.

A rule maps an item type and operation (plus an optional condition on the
proposed data) to the roles whose approval is needed. The catalog is built
once at startup and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from changegate.core.errors import ConfigurationError
from .conditions import Condition, parse_condition


class Operation(str, Enum):
    """Mutating operations that can be gated."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Role(str, Enum):
    """Roles referenced by the built-in rules."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"


@dataclass(frozen=True)
class RoleRequirement:
    """Whether a role's approval is mandatory or optional for a rule."""

    mandatory: bool

    @classmethod
    def required(cls) -> "RoleRequirement":
        return cls(mandatory=True)

    @classmethod
    def optional(cls) -> "RoleRequirement":
        return cls(mandatory=False)

    @property
    def kind(self) -> str:
        return "mandatory" if self.mandatory else "optional"


@dataclass(frozen=True)
class Rule:
    """
    A single approval rule.

    ``role_requirements`` maps role name to requirement. It is frozen into a
    read-only mapping on construction and must not be empty.
    """
    item_type: str
    operation: Operation
    role_requirements: Mapping[str, RoleRequirement]
    condition: Optional[str] = None
    priority: int = 0
    predicate: Condition = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "operation", Operation(self.operation))
        if not self.role_requirements:
            raise ConfigurationError(
                f"Rule for {self.item_type} {self.operation.value} has no role requirements"
            )
        roles = {str(getattr(role, "value", role)): req for role, req in self.role_requirements.items()}
        object.__setattr__(self, "role_requirements", MappingProxyType(roles))
        object.__setattr__(self, "predicate", parse_condition(self.condition))

    @property
    def mandatory_roles(self) -> List[str]:
        return [role for role, req in self.role_requirements.items() if req.mandatory]

    @property
    def optional_roles(self) -> List[str]:
        return [role for role, req in self.role_requirements.items() if not req.mandatory]

    def matches(self, item_type: str, operation: Operation, data: Optional[Mapping[str, Any]]) -> bool:
        """Check if this rule applies to the given item type, operation and data."""
        if self.item_type != item_type or self.operation != operation:
            return False
        return self.predicate.evaluate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to dictionary for serialization."""
        return {
            "item_type": self.item_type,
            "operation": self.operation.value,
            "condition": self.condition,
            "priority": self.priority,
            "roles": {role: req.kind for role, req in self.role_requirements.items()},
        }


class RuleCatalog:
    """Immutable, ordered collection of approval rules.

    Declaration order is significant: the matcher uses it to break
    priority ties.
    """

    def __init__(self, rules: Sequence[Rule]):
        for rule in rules:
            if not isinstance(rule, Rule):
                raise ConfigurationError(f"Not an approval rule: {rule!r}")
        self._rules = tuple(rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> tuple:
        return self._rules


_BOTH_REQUIRED = {Role.ADMIN: RoleRequirement.required(), Role.MANAGER: RoleRequirement.required()}
_MANAGER_REQUIRED = {Role.MANAGER: RoleRequirement.required()}
_EITHER_OPTIONAL = {Role.ADMIN: RoleRequirement.optional(), Role.MANAGER: RoleRequirement.optional()}

# Low-level todos and anything without a rule execute immediately.
DEFAULT_RULES: List[Rule] = [
    # Todos: gated by level
    Rule("TODO", Operation.CREATE, _BOTH_REQUIRED, condition="level=HIGH", priority=100),
    Rule("TODO", Operation.CREATE, _MANAGER_REQUIRED, condition="level=MEDIUM", priority=50),
    Rule("TODO", Operation.UPDATE, _BOTH_REQUIRED, condition="level=HIGH", priority=100),
    Rule("TODO", Operation.UPDATE, _MANAGER_REQUIRED, condition="level=MEDIUM", priority=50),
    Rule("TODO", Operation.DELETE, _BOTH_REQUIRED, condition="level=HIGH", priority=100),
    Rule("TODO", Operation.DELETE, _MANAGER_REQUIRED, condition="level=MEDIUM", priority=50),

    # Invoices: always gated
    Rule("INVOICE", Operation.CREATE, _MANAGER_REQUIRED),
    Rule("INVOICE", Operation.UPDATE, _MANAGER_REQUIRED),
    Rule("INVOICE", Operation.DELETE, _EITHER_OPTIONAL),
]


def default_catalog() -> RuleCatalog:
    """Catalog of the built-in rules."""
    return RuleCatalog(DEFAULT_RULES)
