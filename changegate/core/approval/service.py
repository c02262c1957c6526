"""Approval workflow service.

Provides the high-level API for the approval engine: creating requests,
recording decisions, withdrawing, and querying. Drives the request state
machine, persists every transition, executes approved changes through the
dispatcher and notifies the people involved.
"""

import logging
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from changegate.core.errors import (
    ConfigurationError,
    ConflictError,
    ExecutionFailedError,
    InvalidRequestError,
    NoApprovalRequiredError,
    NotFoundError,
)
from changegate.core.rules.catalog import Operation, Rule
from changegate.core.rules.matcher import RuleMatcher
from changegate.db.models import ApprovalDecision, ApprovalRequest, RequestHistory, User
from changegate.services.notifications import NotificationEvent, Notifier
from changegate.services.users import UserDirectory
from .dispatcher import ExecutionDispatcher
from .locks import KeyedLockRegistry
from .machine import RequestStateMachine
from .quorum import eligible_roles, is_satisfied
from .states import ACTIVE_STATES, TERMINAL_STATES, RequestStatus, RequestTransition

logger = logging.getLogger(__name__)

EXECUTION_FAILURE_PREFIX = "Failed to execute change: "


class ApprovalWorkflowService:
    """
    High-level service for the approval workflow.

    Handles:
    - Creating requests for gated operations
    - Recording decisions and aggregating them into a verdict
    - Executing approved changes in the same transaction
    - Withdrawal by the requester
    - Querying requests, decisions and history
    """

    def __init__(
        self,
        db: Session,
        matcher: RuleMatcher,
        dispatcher: ExecutionDispatcher,
        notifier: Optional[Notifier] = None,
        users: Optional[UserDirectory] = None,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        """
        Initialize the workflow service.

        Args:
            db: Database session shared with the domain stores
            matcher: Rule matcher over the active catalog
            dispatcher: Executes approved changes
            notifier: Receives workflow events (optional)
            users: User lookups (defaults to a directory on ``db``)
            locks: Keyed lock registry (defaults to the process-wide one)
        """
        self.db = db
        self.matcher = matcher
        self.dispatcher = dispatcher
        self.notifier = notifier
        self.users = users or UserDirectory(db)
        self.locks = locks or KeyedLockRegistry()

    def requires_approval(
        self,
        item_type: str,
        operation: Operation,
        data: Optional[Mapping[str, Any]],
    ) -> bool:
        """Check if an operation must go through the approval workflow."""
        return self.governing_rule(item_type, operation, data) is not None

    def governing_rule(
        self,
        item_type: str,
        operation: Operation,
        data: Optional[Mapping[str, Any]],
    ) -> Optional[Rule]:
        """The rule an operation would be gated by, or None."""
        return self.matcher.match_rule(item_type, self._operation(operation), data)

    def rule_for(self, request: ApprovalRequest) -> Optional[Rule]:
        """Re-resolve the rule governing a stored request."""
        return self.matcher.match_rule(
            request.target_item_type,
            self._operation(request.operation),
            request.requested_data,
        )

    def create(
        self,
        item_type: str,
        target_item_id: Optional[int],
        operation: Operation,
        data: Optional[Mapping[str, Any]],
        requester_id: int,
    ) -> ApprovalRequest:
        """
        Create a new approval request.

        Args:
            item_type: Target item type (e.g. "TODO")
            target_item_id: Target item ID (None for CREATE)
            operation: Operation being requested
            data: Proposed item data
            requester_id: ID of the user making the request

        Returns:
            The persisted request in PENDING status

        Raises:
            NotFoundError: If the requester or the target item does not exist
            InvalidRequestError: If UPDATE or DELETE lack a target
            NoApprovalRequiredError: If no rule matches
            ConfigurationError: If no store handles the item type
            ConflictError: If the item already has an active request
        """
        operation = self._operation(operation)
        data = dict(data or {})

        requester = self.users.find_by_id(requester_id)
        if requester is None:
            raise NotFoundError(f"Requester not found: {requester_id}")

        if operation == Operation.CREATE:
            if target_item_id is not None:
                raise InvalidRequestError("CREATE requests cannot target an existing item")
        elif target_item_id is None:
            raise InvalidRequestError(f"Target item ID required for {operation.value}")

        rule = self.matcher.match_rule(item_type, operation, data)
        if rule is None:
            raise NoApprovalRequiredError(
                f"No approval rule found for {item_type} {operation.value}. "
                f"Operation can proceed immediately."
            )

        store = self.dispatcher.store_for(item_type)

        if target_item_id is None:
            guard = nullcontext()
        else:
            guard = self.locks.hold(("item", item_type, target_item_id))

        with guard:
            if target_item_id is not None:
                store.current_data(target_item_id)

                existing = self._find_active(item_type, target_item_id)
                if existing is not None:
                    logger.warning(
                        f"Rejected duplicate request for {item_type}:{target_item_id} "
                        f"(active request #{existing.id})"
                    )
                    raise ConflictError(
                        f"There is already an active approval request for this item: #{existing.id}"
                    )

            now = datetime.utcnow()
            request = ApprovalRequest(
                target_item_type=item_type,
                target_item_id=target_item_id,
                operation=operation.value,
                requested_data=data,
                status=RequestStatus.PENDING.value,
                requester_id=requester.id,
                active_key=self._active_key(item_type, target_item_id),
                created_at=now,
                updated_at=now,
            )
            self.db.add(request)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Concurrent request creation for {item_type}:{target_item_id}")
                raise ConflictError(
                    f"There is already an active approval request for this item: {item_type}:{target_item_id}"
                )

        logger.info(
            f"Created approval request #{request.id}: {operation.value} {item_type}"
            f" (item={target_item_id}, requester={requester.id})"
        )

        approvers = self.users.find_by_roles(eligible_roles(rule))
        self._notify(NotificationEvent.REQUESTED, request, approvers)
        return request

    def decide(
        self,
        request_id: int,
        approver_id: int,
        approved: bool,
        comment: Optional[str] = None,
    ) -> ApprovalRequest:
        """
        Submit an approval or rejection for a request.

        Notifications go out after the request lock is released.

        Args:
            request_id: Approval request ID
            approver_id: ID of the user deciding
            approved: True to approve, False to reject
            comment: Optional comment explaining the decision

        Returns:
            The updated request

        Raises:
            NotFoundError: If the request or approver does not exist
            ConflictError: If the request is not active, the approver already
                decided, or the approver's role is not part of the rule
            ConfigurationError: If the governing rule no longer exists and
                the decision is an approval
            ExecutionFailedError: If the approved change could not be applied;
                the request is REJECTED by then
        """
        failure: Optional[ExecutionFailedError] = None

        with self.locks.hold(("request", request_id)):
            try:
                request, event, extra = self._decide_locked(request_id, approver_id, approved, comment)
            except ExecutionFailedError as e:
                failure = e
                request, event, extra = e.request, NotificationEvent.REJECTED, {"reason": e.request.status_reason}
            except Exception:
                self.db.rollback()
                raise

        self._notify_requester(event, request, extra)
        if failure is not None:
            raise failure
        return request

    def _decide_locked(
        self,
        request_id: int,
        approver_id: int,
        approved: bool,
        comment: Optional[str],
    ) -> Tuple[ApprovalRequest, NotificationEvent, Optional[Dict[str, Any]]]:
        """Record a decision and transition the request; returns what to notify."""
        request = self._load_for_update(request_id)
        machine = RequestStateMachine(request.id, request.status)

        if not machine.is_active:
            logger.warning(f"Decision on inactive request #{request_id} ({request.status})")
            raise ConflictError(
                f"Request #{request_id} is no longer pending (status: {request.status})"
            )

        approver = self.users.find_by_id(approver_id)
        if approver is None:
            raise NotFoundError(f"Approver not found: {approver_id}")

        if self._has_decided(request_id, approver_id):
            logger.warning(f"Approver {approver_id} already decided request #{request_id}")
            raise ConflictError("You have already submitted a decision for this request")

        rule = self.rule_for(request)
        if rule is None:
            if approved:
                logger.error(f"Approval rule no longer exists for request #{request_id}")
                raise ConfigurationError(f"Approval rule no longer exists for request #{request_id}")
            logger.warning(f"Approval rule no longer exists for request #{request_id}; accepting rejection")
        elif approver.role not in rule.role_requirements:
            logger.warning(
                f"Approver {approver_id} with role {approver.role} is not eligible for request #{request_id}"
            )
            raise ConflictError(f"Role {approver.role} cannot decide request #{request_id}")

        self._record_decision(request, approver, approved, comment)

        if not approved:
            request.status_reason = comment
            self._apply_transition(request, machine, RequestTransition.REJECT, user_id=approver.id, comment=comment)
            self.db.commit()
            return request, NotificationEvent.REJECTED, {"reason": comment}

        if not is_satisfied(rule, self._approved_roles(request_id)):
            self._apply_transition(
                request, machine, RequestTransition.RECORD_APPROVAL, user_id=approver.id, comment=comment
            )
            self.db.commit()
            return request, NotificationEvent.APPROVER_RESPONDED, {"approver": approver.username}

        self._apply_transition(request, machine, RequestTransition.APPROVE, user_id=approver.id, comment=comment)
        try:
            self.dispatcher.apply(request)
            self.db.commit()
        except ConfigurationError:
            self.db.rollback()
            logger.error(f"Cannot execute request #{request_id}: dispatcher misconfigured")
            raise
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Execution of approved request #{request_id} failed: {e}")
            failed = self._record_execution_failure(request_id, approver, comment, e)
            raise ExecutionFailedError(
                f"Failed to execute approved change: {e}", request=failed
            ) from e

        return request, NotificationEvent.APPROVED, None

    def withdraw(self, request_id: int, user_id: int) -> ApprovalRequest:
        """
        Withdraw an active request.

        Raises:
            NotFoundError: If the request does not exist
            ConflictError: If the request is not active or the user is not
                its requester
        """
        with self.locks.hold(("request", request_id)):
            request = self._load_for_update(request_id)
            machine = RequestStateMachine(request.id, request.status)

            if not machine.is_active:
                raise ConflictError("Cannot withdraw a request that is not pending")
            if request.requester_id != user_id:
                logger.warning(f"User {user_id} tried to withdraw request #{request_id} of another user")
                raise ConflictError("Only the requester can withdraw this request")

            self._apply_transition(request, machine, RequestTransition.WITHDRAW, user_id=user_id)
            self.db.commit()

        rule = self.rule_for(request)
        if rule is None:
            logger.warning(f"No rule for withdrawn request #{request_id}; approvers not notified")
        else:
            approvers = self.users.find_by_roles(eligible_roles(rule))
            self._notify(NotificationEvent.WITHDRAWN, request, approvers)

        return request

    def get_request(self, request_id: int) -> ApprovalRequest:
        """Get a request by ID (NotFoundError if missing)."""
        request = self.db.query(ApprovalRequest).filter(ApprovalRequest.id == request_id).first()
        if request is None:
            raise NotFoundError(f"Approval request not found: {request_id}")
        return request

    def list_by_requester(self, user_id: int) -> List[ApprovalRequest]:
        """All requests made by a user, oldest first."""
        return (
            self.db.query(ApprovalRequest)
            .filter(ApprovalRequest.requester_id == user_id)
            .order_by(ApprovalRequest.id)
            .all()
        )

    def list_pending_for_approver(self, user_id: int) -> List[ApprovalRequest]:
        """
        Active requests a user may still decide.

        A request qualifies when its rule lists the user's role and the user
        has not decided it yet.
        """
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")

        decided = select(ApprovalDecision.request_id).where(ApprovalDecision.approver_id == user_id)
        candidates = (
            self.db.query(ApprovalRequest)
            .filter(
                and_(
                    ApprovalRequest.status.in_([s.value for s in ACTIVE_STATES]),
                    ApprovalRequest.id.not_in(decided),
                )
            )
            .order_by(ApprovalRequest.created_at.asc(), ApprovalRequest.id.asc())
            .all()
        )

        pending = []
        for request in candidates:
            rule = self.rule_for(request)
            if rule is not None and user.role in rule.role_requirements:
                pending.append(request)
        return pending

    def list_decisions(self, request_id: int) -> List[ApprovalDecision]:
        """Decisions recorded on a request, in order."""
        self.get_request(request_id)
        return (
            self.db.query(ApprovalDecision)
            .filter(ApprovalDecision.request_id == request_id)
            .order_by(ApprovalDecision.id)
            .all()
        )

    def list_history(self, request_id: int) -> List[RequestHistory]:
        """State transitions of a request, in order."""
        self.get_request(request_id)
        return (
            self.db.query(RequestHistory)
            .filter(RequestHistory.request_id == request_id)
            .order_by(RequestHistory.id)
            .all()
        )

    def _record_execution_failure(
        self,
        request_id: int,
        approver: User,
        comment: Optional[str],
        error: Exception,
    ) -> ApprovalRequest:
        """Persist the final decision and move the request to REJECTED."""
        request = self._load_for_update(request_id)
        machine = RequestStateMachine(request.id, request.status)

        self._record_decision(request, approver, True, comment)
        self._apply_transition(request, machine, RequestTransition.APPROVE, user_id=approver.id, comment=comment)

        reason = f"{EXECUTION_FAILURE_PREFIX}{error}"
        request.status_reason = reason
        self._apply_transition(request, machine, RequestTransition.FAIL_EXECUTION, comment=reason)
        self.db.commit()
        self.db.refresh(request)
        return request

    def _apply_transition(
        self,
        request: ApprovalRequest,
        machine: RequestStateMachine,
        transition: RequestTransition,
        *,
        user_id: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> RequestStatus:
        new_state = machine.transition(transition, user_id=user_id, comment=comment)
        record = machine.get_history()[-1]

        request.status = new_state.value
        request.updated_at = record["timestamp"]
        if machine.is_terminal:
            request.active_key = None

        self.db.add(RequestHistory(
            request_id=request.id,
            from_state=record["from_state"],
            to_state=record["to_state"],
            transition=record["transition"],
            user_id=record["user_id"],
            comment=record["comment"],
            created_at=record["timestamp"],
        ))
        self.db.flush()

        logger.info(f"Request #{request.id}: {record['from_state']} -> {record['to_state']} ({record['transition']})")
        return new_state

    def _record_decision(
        self,
        request: ApprovalRequest,
        approver: User,
        approved: bool,
        comment: Optional[str],
    ) -> ApprovalDecision:
        decision = ApprovalDecision(
            request_id=request.id,
            approver_id=approver.id,
            approver_role=approver.role,
            approved=bool(approved),
            comment=comment,
        )
        self.db.add(decision)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("You have already submitted a decision for this request")
        return decision

    def _approved_roles(self, request_id: int) -> set:
        rows = (
            self.db.query(ApprovalDecision.approver_role)
            .filter(
                and_(
                    ApprovalDecision.request_id == request_id,
                    ApprovalDecision.approved.is_(True),
                )
            )
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def _has_decided(self, request_id: int, approver_id: int) -> bool:
        return self.db.query(ApprovalDecision.id).filter(
            and_(
                ApprovalDecision.request_id == request_id,
                ApprovalDecision.approver_id == approver_id,
            )
        ).first() is not None

    def _find_active(self, item_type: str, item_id: int) -> Optional[ApprovalRequest]:
        return self.db.query(ApprovalRequest).filter(
            and_(
                ApprovalRequest.target_item_type == item_type,
                ApprovalRequest.target_item_id == item_id,
                ApprovalRequest.status.in_([s.value for s in ACTIVE_STATES]),
            )
        ).first()

    def _load_for_update(self, request_id: int) -> ApprovalRequest:
        request = (
            self.db.query(ApprovalRequest)
            .filter(ApprovalRequest.id == request_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if request is None:
            raise NotFoundError(f"Approval request not found: {request_id}")
        return request

    def _notify_requester(
        self,
        event: NotificationEvent,
        request: ApprovalRequest,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        requester = self.users.find_by_id(request.requester_id)
        self._notify(event, request, [requester] if requester else [], extra)

    def _notify(
        self,
        event: NotificationEvent,
        request: ApprovalRequest,
        recipients: Iterable[User],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(event, request, list(recipients), extra)
        except Exception:
            logger.exception(f"Notifier failed for {event.value} on request #{request.id}")

    @staticmethod
    def _active_key(item_type: str, item_id: Optional[int]) -> Optional[str]:
        if item_id is None:
            return None
        return f"{item_type}:{item_id}"

    @staticmethod
    def _operation(operation: Any) -> Operation:
        try:
            return Operation(str(getattr(operation, "value", operation)).upper())
        except ValueError:
            raise InvalidRequestError(f"Unsupported operation: {operation}")
