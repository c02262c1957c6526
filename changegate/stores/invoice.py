import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from changegate.core.errors import InvalidRequestError
from changegate.db.models import Invoice
from .base import DomainStore, LEVELS

INVOICE_STATUSES = ("CREATED", "SENT", "PAID", "CANCELLED")


class InvoiceStore(DomainStore):
    """Invoices. Every mutation is gated by the built-in rules."""

    item_type = "INVOICE"
    model = Invoice
    diff_fields = ("invoice_id", "amount", "status", "level")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("amount") is None:
            raise InvalidRequestError("Invoice amount is required")
        if data.get("user_id") is None:
            raise InvalidRequestError("Invoice owner (user_id) is required")

        invoice = Invoice(
            invoice_id=self._parse_invoice_id(data.get("invoice_id")),
            amount=self._parse_amount(data["amount"]),
            status=self._check_choice("status", data.get("status") or "CREATED", INVOICE_STATUSES),
            level=self._check_choice("level", data.get("level") or "MEDIUM", LEVELS),
            user_id=data["user_id"],
        )
        self.db.add(invoice)
        self.db.flush()
        return self.to_dict(invoice)

    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        invoice = self._get(item_id)

        if data.get("amount") is not None:
            invoice.amount = self._parse_amount(data["amount"])
        if data.get("status") is not None:
            invoice.status = self._check_choice("status", data["status"], INVOICE_STATUSES)
        if data.get("level") is not None:
            invoice.level = self._check_choice("level", data["level"], LEVELS)
        if data.get("user_id") is not None:
            invoice.user_id = data["user_id"]

        self.db.flush()
        return self.to_dict(invoice)

    def to_dict(self, item: Invoice) -> Dict[str, Any]:
        return {
            "id": item.id,
            "invoice_id": item.invoice_id,
            "amount": self._format_amount(item.amount),
            "status": item.status,
            "level": item.level,
            "user_id": item.user_id,
            "created_at": item.created_at.isoformat() if item.created_at else None,
            "updated_at": item.updated_at.isoformat() if item.updated_at else None,
        }

    @staticmethod
    def _parse_amount(value: Any) -> Decimal:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise InvalidRequestError(f"Invalid invoice amount: {value!r}")
        if not amount.is_finite():
            raise InvalidRequestError(f"Invalid invoice amount: {value!r}")
        return amount.quantize(Decimal("0.01"))

    @staticmethod
    def _format_amount(amount: Any) -> Optional[str]:
        if amount is None:
            return None
        return str(Decimal(str(amount)).quantize(Decimal("0.01")))

    @staticmethod
    def _parse_invoice_id(value: Any) -> str:
        if value is None:
            return str(uuid.uuid4())
        try:
            return str(uuid.UUID(str(value)))
        except ValueError:
            raise InvalidRequestError(f"Invalid invoice_id: {value!r}")
