"""Database models for ChangeGate."""

from changegate.db.models.user import User
from changegate.db.models.approval import ApprovalRequest, ApprovalDecision, RequestHistory
from changegate.db.models.todo import Todo
from changegate.db.models.invoice import Invoice

__all__ = [
    "User",
    "ApprovalRequest",
    "ApprovalDecision",
    "RequestHistory",
    "Todo",
    "Invoice",
]
