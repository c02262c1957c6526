"""Approval workflow module for ChangeGate.

Implements the request state machine, quorum evaluation, execution dispatch
and the workflow service that ties them together.
"""

from .states import RequestStatus, RequestTransition, ACTIVE_STATES, TERMINAL_STATES, VALID_TRANSITIONS
from .machine import RequestStateMachine
from .quorum import is_satisfied, eligible_roles, mandatory_roles, optional_roles
from .dispatcher import ExecutionDispatcher
from .locks import KeyedLockRegistry
from .service import ApprovalWorkflowService

__all__ = [
    "RequestStatus",
    "RequestTransition",
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "RequestStateMachine",
    "is_satisfied",
    "eligible_roles",
    "mandatory_roles",
    "optional_roles",
    "ExecutionDispatcher",
    "KeyedLockRegistry",
    "ApprovalWorkflowService",
]
