"""Schemas for approval requests, decisions and diffs."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ApprovalRequestCreate(BaseModel):
    item_type: str = Field(..., min_length=1, description="Target item type, e.g. TODO")
    target_item_id: Optional[int] = Field(None, description="Target item ID, omitted for CREATE")
    operation: str = Field(..., description="CREATE, UPDATE or DELETE")
    data: Dict[str, Any] = Field(default_factory=dict, description="Proposed item fields")


class ApprovalCheck(BaseModel):
    item_type: str
    operation: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ApprovalCheckResponse(BaseModel):
    requires_approval: bool
    requirements: Optional[str] = None
    rule: Optional[Dict[str, Any]] = None


class DecisionSubmit(BaseModel):
    approved: bool
    comment: Optional[str] = None


class ApprovalRequestResponse(BaseModel):
    id: int
    target_item_type: str
    target_item_id: Optional[int]
    operation: str
    requested_data: Dict[str, Any]
    status: str
    status_reason: Optional[str]
    requester_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PendingApprovalResponse(BaseModel):
    """Returned with 202 when an item operation was routed for approval."""
    message: str
    approval_request: ApprovalRequestResponse


class ApprovalDecisionResponse(BaseModel):
    id: int
    request_id: int
    approver_id: int
    approver_role: str
    approved: bool
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class RequestHistoryResponse(BaseModel):
    id: int
    from_state: str
    to_state: str
    transition: str
    user_id: Optional[int]
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class FieldDiffResponse(BaseModel):
    field_name: str
    old_value: Any = None
    new_value: Any = None
    change_type: str


class ApprovalDiffResponse(BaseModel):
    request_id: int
    item_type: str
    operation: str
    changes: List[FieldDiffResponse]
