import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey

from changegate.db.base import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(16), nullable=False, default="CREATED")  # CREATED, SENT, PAID, CANCELLED
    level = Column(String(8), nullable=False, default="MEDIUM")  # LOW, MEDIUM, HIGH
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_id} {self.amount} [{self.status}]>"
