"""Rule matching.

Selects the single rule that governs an (item type, operation, data) triple.
"""

import logging
from typing import Any, Mapping, Optional

from .catalog import Operation, Rule, RuleCatalog

logger = logging.getLogger(__name__)


class RuleMatcher:
    """
    Resolves the governing approval rule for a proposed change.

    Among the rules whose item type, operation and condition all match, the
    one with the highest priority wins. Equal priorities resolve to the rule
    declared first in the catalog.
    """

    def __init__(self, catalog: RuleCatalog):
        self.catalog = catalog

    def match_rule(
        self,
        item_type: str,
        operation: Operation,
        data: Optional[Mapping[str, Any]],
    ) -> Optional[Rule]:
        """
        Find the matching rule.

        Args:
            item_type: Target item type (e.g. "TODO")
            operation: Operation being requested
            data: Proposed item data the conditions are evaluated against

        Returns:
            The governing rule, or None when the operation needs no approval
        """
        best: Optional[Rule] = None
        for rule in self.catalog:
            if not rule.matches(item_type, operation, data):
                continue
            if best is None or rule.priority > best.priority:
                best = rule

        if best is not None:
            logger.debug(
                f"Matched rule {best.item_type}/{best.operation.value} "
                f"condition={best.condition!r} priority={best.priority}"
            )
        return best

    def requires_approval(
        self,
        item_type: str,
        operation: Operation,
        data: Optional[Mapping[str, Any]],
    ) -> bool:
        """Check whether an operation must go through the approval workflow."""
        return self.match_rule(item_type, operation, data) is not None


def describe_requirements(rule: Rule) -> str:
    """Human-readable summary of who needs to approve under a rule."""
    mandatory = rule.mandatory_roles
    optional = rule.optional_roles

    parts = []
    if mandatory:
        parts.append("Requires approval from: " + ", ".join(mandatory))
    if optional:
        text = "Optional approvers: " + ", ".join(optional)
        if not mandatory:
            text += " (at least one required)"
        parts.append(text)
    return ". ".join(parts)
