"""Approval workflow database models.

Stores approval requests, the decisions cast on them and their state
transition history.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Text, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship

from changegate.db.base import Base


class ApprovalRequest(Base):
    """
    A proposed change to a business item awaiting approval.

    At most one active request may exist per target item; ``active_key`` is
    set while the request is active and has a target, and cleared when it
    reaches a terminal state.
    """
    __tablename__ = "approval_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Target identification
    target_item_type = Column(String(50), nullable=False, index=True)  # TODO, INVOICE
    target_item_id = Column(Integer, nullable=True, index=True)  # None for CREATE
    operation = Column(String(20), nullable=False)  # CREATE, UPDATE, DELETE
    requested_data = Column(JSON, nullable=False, default=dict)

    # Workflow state
    status = Column(String(50), nullable=False, default="PENDING", index=True)
    status_reason = Column(Text, nullable=True)
    active_key = Column(String(120), nullable=True, unique=True)

    # Request tracking
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    requester = relationship("User", foreign_keys=[requester_id])
    decisions = relationship(
        "ApprovalDecision",
        back_populates="request",
        order_by="ApprovalDecision.id",
    )
    history = relationship(
        "RequestHistory",
        back_populates="request",
        order_by="RequestHistory.id",
    )

    def __repr__(self) -> str:
        return f"<ApprovalRequest {self.id} {self.operation} {self.target_item_type}:{self.target_item_id} [{self.status}]>"


class ApprovalDecision(Base):
    """
    One approver's answer on a request.

    Append-only; each approver decides a given request at most once.
    """
    __tablename__ = "approval_decisions"
    __table_args__ = (
        UniqueConstraint("request_id", "approver_id", name="uq_decision_request_approver"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Role held by the approver when the decision was made
    approver_role = Column(String(50), nullable=False)
    approved = Column(Boolean, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    request = relationship("ApprovalRequest", back_populates="decisions")
    approver = relationship("User")

    def __repr__(self) -> str:
        verdict = "approved" if self.approved else "rejected"
        return f"<ApprovalDecision request={self.request_id} approver={self.approver_id} {verdict}>"


class RequestHistory(Base):
    """
    Records all state transitions for approval requests.

    Provides a complete audit trail of the approval workflow.
    """
    __tablename__ = "approval_request_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False, index=True)

    # Transition details
    from_state = Column(String(50), nullable=False)
    to_state = Column(String(50), nullable=False)
    transition = Column(String(50), nullable=False)

    # Actor
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    request = relationship("ApprovalRequest", back_populates="history")

    def __repr__(self) -> str:
        return f"<RequestHistory {self.from_state} -> {self.to_state}>"
