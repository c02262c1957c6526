"""API routers for ChangeGate."""

from . import approvals
from . import items
from . import users
from . import health

__all__ = [
    "approvals",
    "items",
    "users",
    "health",
]
