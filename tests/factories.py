"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that database-generated fields (id, created_at, etc.) are populated.
All fields have sensible defaults but can be overridden via keyword arguments.

Usage::

    from tests.factories import create_user, create_todo

    def test_something(db_session):
        user = create_user(db_session, role="MANAGER")
        todo = create_todo(db_session, level="HIGH", user=user)
        assert todo.user_id == user.id
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from changegate.db.models import Invoice, Todo, User


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


def create_user(
    session: Session,
    *,
    username: Optional[str] = None,
    role: str = "USER",
    email: Optional[str] = None,
) -> User:
    n = _next_id()
    user = User(
        username=username or f"user{n}",
        role=role,
        email=email,
    )
    session.add(user)
    session.flush()
    return user


# ---------------------------------------------------------------------------
# Todo
# ---------------------------------------------------------------------------


def create_todo(
    session: Session,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    level: str = "LOW",
    completed: bool = False,
    user: Optional[User] = None,
) -> Todo:
    n = _next_id()
    todo = Todo(
        title=title or f"Todo {n}",
        description=description,
        level=level,
        completed=completed,
        user_id=user.id if user else None,
    )
    session.add(todo)
    session.flush()
    return todo


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------


def create_invoice(
    session: Session,
    *,
    user: User,
    amount: str = "100.00",
    status: str = "CREATED",
    level: str = "MEDIUM",
    invoice_id: Optional[str] = None,
) -> Invoice:
    invoice = Invoice(
        invoice_id=invoice_id or str(uuid.uuid4()),
        amount=Decimal(amount),
        status=status,
        level=level,
        user_id=user.id,
    )
    session.add(invoice)
    session.flush()
    return invoice
