"""Approval request states and transitions.

State Machine Diagram:

    ┌──────────┐  record_approval  ┌────────────────────┐
    │ PENDING  │──────────────────►│ PARTIALLY_APPROVED │◄─┐ record_approval
    └────┬─────┘                   └─────────┬──────────┘──┘
         │                                   │
         ├──────────── approve ──────────────┤──► APPROVED ──fail_execution──► REJECTED
         ├──────────── reject ───────────────┤──► REJECTED
         └──────────── withdraw ─────────────┘──► WITHDRAWN

APPROVED, REJECTED and WITHDRAWN are terminal for callers. The single
edge out of APPROVED is taken by the engine itself when the approved change
cannot be applied.
"""

from enum import Enum
from typing import Set, Dict, Optional, NamedTuple


class RequestStatus(str, Enum):
    """States of an approval request."""

    # Active states
    PENDING = "PENDING"                        # Awaiting the first decision
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"  # Some approvals in, quorum not met

    # Terminal states
    APPROVED = "APPROVED"      # Quorum met and change applied
    REJECTED = "REJECTED"      # Vetoed, or the approved change failed to apply
    WITHDRAWN = "WITHDRAWN"    # Cancelled by the requester


class RequestTransition(str, Enum):
    """Actions that trigger state transitions."""

    RECORD_APPROVAL = "record_approval"  # approval recorded, quorum not met
    APPROVE = "approve"                  # quorum met
    REJECT = "reject"                    # any rejecting decision
    WITHDRAW = "withdraw"                # requester cancels
    FAIL_EXECUTION = "fail_execution"    # APPROVED → REJECTED when dispatch fails


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: RequestStatus
    to_state: RequestStatus
    transition: RequestTransition


# States a request can still be decided or withdrawn from
ACTIVE_STATES: Set[RequestStatus] = {
    RequestStatus.PENDING,
    RequestStatus.PARTIALLY_APPROVED,
}

TERMINAL_STATES: Set[RequestStatus] = {
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.WITHDRAWN,
}


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(RequestStatus.APPROVED, RequestStatus.REJECTED, RequestTransition.FAIL_EXECUTION),
]

for _state in (RequestStatus.PENDING, RequestStatus.PARTIALLY_APPROVED):
    TRANSITION_RULES.extend([
        TransitionRule(_state, RequestStatus.PARTIALLY_APPROVED, RequestTransition.RECORD_APPROVAL),
        TransitionRule(_state, RequestStatus.APPROVED, RequestTransition.APPROVE),
        TransitionRule(_state, RequestStatus.REJECTED, RequestTransition.REJECT),
        TransitionRule(_state, RequestStatus.WITHDRAWN, RequestTransition.WITHDRAW),
    ])

# Build lookup tables for efficient access
VALID_TRANSITIONS: Dict[RequestStatus, Set[RequestTransition]] = {}
TRANSITION_TARGETS: Dict[tuple[RequestStatus, RequestTransition], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.transition)
    TRANSITION_TARGETS[(rule.from_state, rule.transition)] = rule


def is_active(state: RequestStatus) -> bool:
    """Check if a request in this state still accepts decisions."""
    return RequestStatus(state) in ACTIVE_STATES


def can_transition(from_state: RequestStatus, transition: RequestTransition) -> bool:
    """Check if a transition is valid from the given state."""
    valid = VALID_TRANSITIONS.get(from_state, set())
    return transition in valid


def get_transition_rule(from_state: RequestStatus, transition: RequestTransition) -> Optional[TransitionRule]:
    """Get the transition rule for a state/action combination."""
    return TRANSITION_TARGETS.get((from_state, transition))


def get_target_state(from_state: RequestStatus, transition: RequestTransition) -> Optional[RequestStatus]:
    """Get the target state for a transition."""
    rule = get_transition_rule(from_state, transition)
    return rule.to_state if rule else None
