"""Domain stores that execute approved changes."""

from typing import List

from sqlalchemy.orm import Session

from .base import DomainStore, LEVELS
from .todo import TodoStore
from .invoice import InvoiceStore, INVOICE_STATUSES


def default_stores(db: Session) -> List[DomainStore]:
    """Stores for the built-in item types, bound to one session."""
    return [TodoStore(db), InvoiceStore(db)]


__all__ = [
    "DomainStore",
    "LEVELS",
    "TodoStore",
    "InvoiceStore",
    "INVOICE_STATUSES",
    "default_stores",
]
