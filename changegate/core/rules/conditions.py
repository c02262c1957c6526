"""Rule condition predicates.

A rule condition is a small predicate evaluated against the proposed item
data. Only field equality (``"level=HIGH"``) is understood today; any other
expression parses to :class:`Unconditional`, which always holds. New
comparators are added by subclassing :class:`Condition` and teaching
:func:`parse_condition` to recognise them; the matcher only ever calls
``evaluate``.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional


def stringify(value: Any) -> str:
    """String form used when comparing payload values to condition literals."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Condition:
    """Predicate over a structural key/value payload."""

    def evaluate(self, data: Optional[Mapping[str, Any]]) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Unconditional(Condition):
    """Always true. Used for absent and unrecognised conditions."""

    expression: Optional[str] = None

    def evaluate(self, data: Optional[Mapping[str, Any]]) -> bool:
        return True


@dataclass(frozen=True)
class FieldEquals(Condition):
    """``field=value``: true when ``data[field]`` renders as ``value``."""

    field: str
    expected: str

    def evaluate(self, data: Optional[Mapping[str, Any]]) -> bool:
        actual = (data or {}).get(self.field)
        return stringify(actual) == self.expected


def parse_condition(expression: Optional[str]) -> Condition:
    """Parse a condition expression into a predicate.

    Args:
        expression: Condition string, or None for an unconditional rule

    Returns:
        Condition instance
    """
    if expression is None or not expression.strip():
        return Unconditional()

    if "=" in expression:
        parts = [part.strip() for part in expression.split("=")]
        if len(parts) == 2 and parts[0] and parts[1]:
            return FieldEquals(field=parts[0], expected=parts[1])

    # Not understood yet: treated as always-true
    return Unconditional(expression=expression)
