"""Approval workflow for discount escalations."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from langsmith import traceable
from sales_agent.approvals.repository import ApprovalRepository
from sales_agent.models.domain import ApprovalRequest, ApprovalStatus

logger = logging.getLogger(__name__)

# Allowed transitions out of each status; terminal statuses have none.
TRANSITIONS = {
    ApprovalStatus.PENDING: {
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.EXPIRED,
        ApprovalStatus.CANCELLED,
    },
}


class InvalidApprovalTransition(ValueError):
    """Raised when an approval is moved along a transition the workflow does not allow."""


class ApprovalNotFound(KeyError):
    """Raised when an approval id is unknown."""


class ApprovalService:
    """
    State machine for approval requests.

    Requests are created PENDING and move exactly once to a terminal
    status: APPROVED or REJECTED by the approver, EXPIRED on timeout,
    or CANCELLED when a newer request supersedes them.
    """

    def __init__(self, repository: Optional[ApprovalRepository] = None):
        """
        Initialize approval service.

        Args:
            repository: Approval store
        """
        self.repository = repository or ApprovalRepository()

    @traceable(name="create_approval_request")
    def create_approval(self, requested_percent: int, approver: str) -> ApprovalRequest:
        """
        Create an approval request.

        Args:
            requested_percent: Discount awaiting approval
            approver: Approver the request is sent to

        Returns:
            Created ApprovalRequest in PENDING status
        """
        approval_id = f"APR-{uuid.uuid4().hex[:8].upper()}"
        approval = self.repository.create_approval(
            approval_id=approval_id,
            requested_percent=requested_percent,
            approver=approver,
            created_at=_utcnow(),
        )
        logger.info(f"APPROVALS: created {approval_id} for {requested_percent}% -> {approver}")
        return approval

    def get_approval(self, approval_id: str) -> Optional[ApprovalRequest]:
        return self.repository.get_approval(approval_id)

    @traceable(name="update_approval_status")
    def transition(self, approval_id: str, status: ApprovalStatus) -> ApprovalRequest:
        """
        Move an approval to a new status.

        Args:
            approval_id: Approval ID
            status: Target status

        Returns:
            Updated ApprovalRequest

        Raises:
            ApprovalNotFound: If the approval does not exist
            InvalidApprovalTransition: If the transition is not allowed
        """
        approval = self.repository.get_approval(approval_id)
        if approval is None:
            raise ApprovalNotFound(approval_id)

        allowed = TRANSITIONS.get(approval.status, set())
        if status not in allowed:
            raise InvalidApprovalTransition(
                f"Approval {approval_id} cannot move from {approval.status.value} to {status.value}"
            )

        updated = self.repository.update_approval_status(
            approval_id=approval_id,
            status=status,
            resolved_at=_utcnow(),
        )
        logger.info(f"APPROVALS: {approval_id} {approval.status.value} -> {status.value}")
        return updated

    def resolve(self, approval_id: str, status: ApprovalStatus) -> ApprovalRequest:
        """Record the approver's verdict (APPROVED or REJECTED)."""
        if status not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            raise InvalidApprovalTransition("Status must be APPROVED or REJECTED")
        return self.transition(approval_id, status)

    def expire(self, approval_id: str) -> ApprovalRequest:
        return self.transition(approval_id, ApprovalStatus.EXPIRED)

    def cancel(self, approval_id: str) -> ApprovalRequest:
        return self.transition(approval_id, ApprovalStatus.CANCELLED)

    def is_pending(self, approval_id: str) -> bool:
        approval = self.get_approval(approval_id)
        return approval is not None and approval.status == ApprovalStatus.PENDING

    def is_approved(self, approval_id: str) -> bool:
        approval = self.get_approval(approval_id)
        return approval is not None and approval.status == ApprovalStatus.APPROVED

    def discard(self, approval_id: str) -> bool:
        """Forget an approval whose session has ended."""
        deleted = self.repository.delete_approval(approval_id)
        if deleted:
            logger.debug(f"APPROVALS: discarded {approval_id}")
        return deleted


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
