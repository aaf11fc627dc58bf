"""In-memory approval store."""
from datetime import datetime
from typing import Dict, List, Optional
from sales_agent.models.domain import ApprovalRequest, ApprovalStatus


class ApprovalRepository:
    """Repository for approval records, kept for the lifetime of the process."""

    def __init__(self):
        """Initialize an empty repository."""
        self._approvals: Dict[str, ApprovalRequest] = {}

    def create_approval(
        self,
        approval_id: str,
        requested_percent: int,
        approver: str,
        created_at: datetime,
    ) -> ApprovalRequest:
        """
        Create a new pending approval request.

        Args:
            approval_id: Unique approval identifier
            requested_percent: Discount awaiting approval
            approver: Approver the request goes to
            created_at: Creation timestamp

        Returns:
            Created ApprovalRequest
        """
        approval = ApprovalRequest(
            approval_id=approval_id,
            status=ApprovalStatus.PENDING,
            requested_percent=requested_percent,
            approver=approver,
            created_at=created_at,
        )
        self._approvals[approval_id] = approval
        return approval

    def get_approval(self, approval_id: str) -> Optional[ApprovalRequest]:
        return self._approvals.get(approval_id)

    def update_approval_status(
        self,
        approval_id: str,
        status: ApprovalStatus,
        resolved_at: datetime,
    ) -> Optional[ApprovalRequest]:
        """
        Update approval status.

        Args:
            approval_id: Approval ID
            status: New status
            resolved_at: Resolution timestamp

        Returns:
            Updated ApprovalRequest if found, None otherwise
        """
        approval = self._approvals.get(approval_id)
        if approval is None:
            return None

        updated = approval.model_copy(update={"status": status, "resolved_at": resolved_at})
        self._approvals[approval_id] = updated
        return updated

    def list_approvals(self, status: Optional[ApprovalStatus] = None) -> List[ApprovalRequest]:
        """List approvals in creation order, optionally filtered by status."""
        approvals = list(self._approvals.values())
        if status is None:
            return approvals
        return [a for a in approvals if a.status == status]

    def delete_approval(self, approval_id: str) -> bool:
        """
        Delete an approval record.

        Args:
            approval_id: Approval ID

        Returns:
            True if deleted, False if not found
        """
        return self._approvals.pop(approval_id, None) is not None
