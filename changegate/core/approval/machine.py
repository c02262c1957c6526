"""Approval request state machine implementation.

Validates transitions for a single request and records them so the service
can persist an audit trail.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from changegate.core.errors import TransitionError
from .states import (
    RequestStatus,
    RequestTransition,
    can_transition,
    get_target_state,
    is_active,
    TERMINAL_STATES,
)


class RequestStateMachine:
    """
    State machine for one approval request.

    Manages transitions between request states with:
    - Validation against the transition table
    - A record per transition, persisted by the service as history rows
    """

    def __init__(self, request_id: Optional[int], current_state: RequestStatus):
        """
        Initialize the state machine.

        Args:
            request_id: ID of the approval request
            current_state: Current request status
        """
        self.request_id = request_id
        self._state = RequestStatus(current_state)
        self._transition_history: list[Dict[str, Any]] = []

    @property
    def state(self) -> RequestStatus:
        """Current state of the request."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in TERMINAL_STATES

    @property
    def is_active(self) -> bool:
        """Check if the request can still be decided or withdrawn."""
        return is_active(self._state)

    def can_perform(self, transition: RequestTransition) -> bool:
        """Check if a transition can be performed from current state."""
        return can_transition(self._state, transition)

    def transition(
        self,
        transition: RequestTransition,
        *,
        user_id: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> RequestStatus:
        """
        Perform a state transition.

        Args:
            transition: The transition to perform
            user_id: ID of user performing the transition
            comment: Optional comment

        Returns:
            The new state after transition

        Raises:
            TransitionError: If the transition is invalid
        """
        if not self.can_perform(transition):
            raise TransitionError(
                f"Cannot perform {transition.value} from state {self._state.value}",
                self._state,
                transition,
            )

        new_state = get_target_state(self._state, transition)

        record = {
            "request_id": self.request_id,
            "from_state": self._state.value,
            "to_state": new_state.value,
            "transition": transition.value,
            "user_id": user_id,
            "comment": comment,
            "timestamp": datetime.utcnow(),
        }
        self._transition_history.append(record)
        self._state = new_state

        return self._state

    def get_history(self) -> list[Dict[str, Any]]:
        """Get the transitions performed through this machine."""
        return self._transition_history.copy()
