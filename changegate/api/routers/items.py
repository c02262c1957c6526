"""Item endpoints.

Mutations are routed through the approval workflow when a rule matches
(202 with the request) and executed immediately otherwise.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from changegate.api.deps import get_db, get_workflow_service
from changegate.api.schemas.approvals import ApprovalRequestResponse, PendingApprovalResponse
from changegate.core.approval import ApprovalWorkflowService
from changegate.core.errors import NotFoundError
from changegate.core.rules import Operation
from changegate.stores import DomainStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/items", tags=["items"])


def _store(item_type: str, workflow: ApprovalWorkflowService) -> DomainStore:
    if not workflow.dispatcher.supports(item_type):
        raise NotFoundError(f"Unknown item type: {item_type}")
    return workflow.dispatcher.store_for(item_type)


def _require_user(user_id: int, workflow: ApprovalWorkflowService) -> None:
    if workflow.users.find_by_id(user_id) is None:
        raise NotFoundError(f"Requester not found: {user_id}")


def _pending(message: str, request) -> JSONResponse:
    body = PendingApprovalResponse(
        message=message,
        approval_request=ApprovalRequestResponse.model_validate(request),
    )
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body.model_dump(mode="json"))


@router.get("/{item_type}", response_model=List[Dict[str, Any]])
def list_items(
    item_type: str,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    return _store(item_type.upper(), workflow).list_items()


@router.get("/{item_type}/{item_id}", response_model=Dict[str, Any])
def get_item(
    item_type: str,
    item_id: int,
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    return _store(item_type.upper(), workflow).get(item_id)


@router.post("/{item_type}")
def create_item(
    item_type: str,
    data: Dict[str, Any] = Body(...),
    requester_id: int = Query(...),
    db: Session = Depends(get_db),
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Create an item, or request approval to create it."""
    item_type = item_type.upper()
    store = _store(item_type, workflow)
    _require_user(requester_id, workflow)

    if workflow.requires_approval(item_type, Operation.CREATE, data):
        request = workflow.create(item_type, None, Operation.CREATE, data, requester_id)
        logger.info(f"{item_type} creation requires approval. Request ID: {request.id}")
        return _pending(f"{item_type} creation requires approval", request)

    item = store.create(data)
    db.commit()
    logger.info(f"{item_type} created immediately (no approval required): {item['id']}")
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=item)


@router.put("/{item_type}/{item_id}")
def update_item(
    item_type: str,
    item_id: int,
    data: Dict[str, Any] = Body(...),
    requester_id: int = Query(...),
    db: Session = Depends(get_db),
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Update an item, or request approval to update it."""
    item_type = item_type.upper()
    store = _store(item_type, workflow)
    _require_user(requester_id, workflow)
    store.current_data(item_id)

    if workflow.requires_approval(item_type, Operation.UPDATE, data):
        request = workflow.create(item_type, item_id, Operation.UPDATE, data, requester_id)
        logger.info(f"{item_type} update requires approval. Request ID: {request.id}")
        return _pending(f"{item_type} update requires approval", request)

    item = store.update(item_id, data)
    db.commit()
    logger.info(f"{item_type} updated immediately (no approval required): {item_id}")
    return item


@router.delete("/{item_type}/{item_id}")
def delete_item(
    item_type: str,
    item_id: int,
    requester_id: int = Query(...),
    db: Session = Depends(get_db),
    workflow: ApprovalWorkflowService = Depends(get_workflow_service),
):
    """Delete an item, or request approval to delete it.

    Rules are matched against the item's current values, so level-based
    rules apply to deletes.
    """
    item_type = item_type.upper()
    store = _store(item_type, workflow)
    _require_user(requester_id, workflow)
    current = store.current_data(item_id)

    if workflow.requires_approval(item_type, Operation.DELETE, current):
        request = workflow.create(item_type, item_id, Operation.DELETE, current, requester_id)
        logger.info(f"{item_type} deletion requires approval. Request ID: {request.id}")
        return _pending(f"{item_type} deletion requires approval", request)

    store.delete(item_id)
    db.commit()
    logger.info(f"{item_type} deleted immediately (no approval required): {item_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
