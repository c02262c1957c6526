"""Error taxonomy for the approval engine.

Every engine entry point either returns the affected request or raises one of
these. The API layer maps each kind onto an HTTP status.
"""

from typing import Any, Optional


class ApprovalError(Exception):
    """Base class for all engine errors."""

    code = "approval_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ApprovalError):
    """A referenced request, user or target item does not exist."""

    code = "not_found"


class ConflictError(ApprovalError):
    """An invariant would be violated by the attempted operation."""

    code = "conflict"


class TransitionError(ConflictError):
    """Raised when a state transition is invalid."""

    code = "invalid_transition"

    def __init__(self, message: str, from_state: Any, transition: Any):
        super().__init__(message)
        self.from_state = from_state
        self.transition = transition


class InvalidRequestError(ApprovalError):
    """The caller supplied arguments the engine cannot act on."""

    code = "invalid_request"


class NoApprovalRequiredError(InvalidRequestError):
    """No rule matches; the operation may proceed without approval."""

    code = "no_approval_required"


class ConfigurationError(ApprovalError):
    """Deployment or configuration defect, never a user error."""

    code = "configuration_error"


class ExecutionFailedError(ApprovalError):
    """The request was approved but the domain store call failed.

    The request has already been moved to REJECTED when this is raised.
    """

    code = "execution_failed"

    def __init__(self, message: str, request: Optional[Any] = None):
        super().__init__(message)
        self.request = request
