"""Approval workflow API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from changegate.api.deps import get_diff_service, get_workflow_service
from changegate.api.schemas.approvals import (
    ApprovalCheck,
    ApprovalCheckResponse,
    ApprovalDecisionResponse,
    ApprovalDiffResponse,
    ApprovalRequestCreate,
    ApprovalRequestResponse,
    DecisionSubmit,
    FieldDiffResponse,
    RequestHistoryResponse,
)
from changegate.core.approval import ApprovalWorkflowService
from changegate.core.rules import describe_requirements
from changegate.services.diff import DiffService

router = APIRouter(prefix="/approval-requests", tags=["approvals"])


@router.post("", response_model=ApprovalRequestResponse, status_code=status.HTTP_201_CREATED)
def create_approval_request(
    body: ApprovalRequestCreate,
    requester_id: int = Query(...),
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Create an approval request for a gated operation."""
    request = workflow.create(
        body.item_type,
        body.target_item_id,
        body.operation,
        body.data,
        requester_id,
    )
    return ApprovalRequestResponse.model_validate(request)


@router.post("/check", response_model=ApprovalCheckResponse)
def check_approval_required(
    body: ApprovalCheck,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Tell whether an operation would need approval, and from whom."""
    rule = workflow.governing_rule(body.item_type, body.operation, body.data)
    if rule is None:
        return ApprovalCheckResponse(requires_approval=False)
    return ApprovalCheckResponse(
        requires_approval=True,
        requirements=describe_requirements(rule),
        rule=rule.to_dict(),
    )


@router.get("/by-requester/{user_id}", response_model=List[ApprovalRequestResponse])
def list_requests_by_requester(
    user_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    return [ApprovalRequestResponse.model_validate(r) for r in workflow.list_by_requester(user_id)]


@router.get("/pending-for-approver/{user_id}", response_model=List[ApprovalRequestResponse])
def list_pending_for_approver(
    user_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Active requests the user can still decide."""
    return [ApprovalRequestResponse.model_validate(r) for r in workflow.list_pending_for_approver(user_id)]


@router.get("/{request_id}", response_model=ApprovalRequestResponse)
def get_approval_request(
    request_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    return ApprovalRequestResponse.model_validate(workflow.get_request(request_id))


@router.get("/{request_id}/records", response_model=List[ApprovalDecisionResponse])
def list_decisions(
    request_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    return [ApprovalDecisionResponse.model_validate(d) for d in workflow.list_decisions(request_id)]


@router.get("/{request_id}/history", response_model=List[RequestHistoryResponse])
def list_history(
    request_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    return [RequestHistoryResponse.model_validate(h) for h in workflow.list_history(request_id)]


@router.get("/{request_id}/diff", response_model=ApprovalDiffResponse)
def get_request_diff(
    request_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
    diff_service: DiffService = Depends(get_diff_service),
):
    """Field-by-field view of the change a request proposes."""
    request = workflow.get_request(request_id)
    diffs = diff_service.generate_diff(
        request.target_item_type,
        request.operation,
        request.target_item_id,
        request.requested_data,
    )
    return ApprovalDiffResponse(
        request_id=request.id,
        item_type=request.target_item_type,
        operation=request.operation,
        changes=[FieldDiffResponse(**d.to_dict()) for d in diffs],
    )


@router.post("/{request_id}/respond", response_model=ApprovalRequestResponse)
def respond_to_request(
    request_id: int,
    body: DecisionSubmit,
    approver_id: int = Query(...),
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Approve or reject a request."""
    request = workflow.decide(request_id, approver_id, body.approved, body.comment)
    return ApprovalRequestResponse.model_validate(request)


@router.post("/{request_id}/withdraw", response_model=ApprovalRequestResponse)
def withdraw_request(
    request_id: int,
    user_id: int = Query(...),
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Withdraw a request (requester only)."""
    return ApprovalRequestResponse.model_validate(workflow.withdraw(request_id, user_id))
