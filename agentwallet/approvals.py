"""Approval Queue - human review of escalated transfers.

When a compliant transfer is at or above a wallet's approval threshold, the
transfer lifecycle records it as blocked and parks it here instead of
executing it. A human (or an operator tool) then:
- Approves it, which runs a brand-new transfer attempt for the same
  destination and amount, re-checked against the wallet's current state
- Rejects it, which just closes the request; no transfer is attempted

The queue itself never moves funds. It only tracks request state.
"""

from typing import Dict, List, Optional
from enum import Enum
from uuid import uuid4
from datetime import datetime, UTC
from pydantic import BaseModel, Field

from agentwallet.exceptions import ApprovalAlreadyResolved, UnknownApproval


class ApprovalStatus(str, Enum):
    """Status of a pending approval."""
    PENDING = "pending"  # Waiting for a human decision
    APPROVED = "approved"  # Approved; a new transfer attempt was made
    REJECTED = "rejected"  # Rejected; nothing was transferred


class PendingApproval(BaseModel):
    """A transfer waiting for human approval.

    Lifecycle:
    1. Enqueue: created by the transfer lifecycle (PENDING)
    2a. Approve: a fresh transfer attempt is run (APPROVED)
    2b. Reject: closed without a transfer (REJECTED)

    Approved and rejected are terminal.

    Attributes:
        approval_id (str): Unique identifier, also stored on the blocked
            TransactionRecord that created it
        destination (str): Requested recipient public id
        amount (int): Requested amount in lamports
        requested_at (datetime): When the transfer was escalated
        status (ApprovalStatus): Current status
        resolved_at (Optional[datetime]): When it was approved or rejected
        resolution_reason (Optional[str]): Optional note from the reviewer
        record_id (Optional[str]): Audit record produced by approving it
    """

    approval_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique approval identifier"
    )
    destination: str = Field(description="Recipient public id")
    amount: int = Field(gt=0, description="Requested amount in lamports")
    requested_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Escalation timestamp"
    )
    status: ApprovalStatus = Field(
        default=ApprovalStatus.PENDING,
        description="Current approval status"
    )
    resolved_at: Optional[datetime] = Field(
        default=None,
        description="Resolution timestamp"
    )
    resolution_reason: Optional[str] = Field(
        default=None,
        description="Reviewer note"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Record produced by approval"
    )

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    def mark_approved(self) -> None:
        """Mark approval as approved."""
        self.status = ApprovalStatus.APPROVED
        self.resolved_at = datetime.now(UTC)

    def mark_rejected(self, reason: Optional[str] = None) -> None:
        """Mark approval as rejected."""
        self.status = ApprovalStatus.REJECTED
        self.resolved_at = datetime.now(UTC)
        self.resolution_reason = reason


class ApprovalQueue:
    """Per-wallet store of escalated transfers.

    Key Operations:
    - **enqueue**: park an escalated transfer
    - **claim**: move a request from PENDING to APPROVED before re-running it
    - **reject**: move a request from PENDING to REJECTED
    - **pending / list_approvals**: query requests

    Usage Example:
        ```python
        queue = ApprovalQueue()
        request = queue.enqueue("9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin", 600_000_000)

        for item in queue.pending():
            print(item.approval_id, item.amount)

        queue.reject(request.approval_id, reason="Not this week")
        queue.reject(request.approval_id)  # raises ApprovalAlreadyResolved
        ```
    """

    def __init__(self):
        self._approvals: Dict[str, PendingApproval] = {}

    def enqueue(self, destination: str, amount: int) -> PendingApproval:
        approval = PendingApproval(destination=destination, amount=amount)
        self._approvals[approval.approval_id] = approval
        return approval

    def get(self, approval_id: str) -> PendingApproval:
        """Get an approval by ID.

        Raises:
            UnknownApproval: If no approval with this ID exists
        """
        approval = self._approvals.get(approval_id)
        if approval is None:
            raise UnknownApproval(approval_id)
        return approval

    def claim(self, approval_id: str) -> PendingApproval:
        """Mark a pending approval as approved and return it.

        Claiming happens before the new transfer attempt runs, so the same
        request can never be executed twice.

        Raises:
            UnknownApproval: If no approval with this ID exists
            ApprovalAlreadyResolved: If it was already approved or rejected
        """
        approval = self._require_pending(approval_id)
        approval.mark_approved()
        return approval

    def reject(self, approval_id: str, reason: Optional[str] = None) -> PendingApproval:
        """Mark a pending approval as rejected and return it.

        Raises:
            UnknownApproval: If no approval with this ID exists
            ApprovalAlreadyResolved: If it was already approved or rejected
        """
        approval = self._require_pending(approval_id)
        approval.mark_rejected(reason)
        return approval

    def pending(self) -> List[PendingApproval]:
        """Approvals still waiting for a decision, oldest first."""
        return [a for a in self._approvals.values() if a.is_pending]

    def list_approvals(self, status: Optional[ApprovalStatus] = None) -> List[PendingApproval]:
        approvals = list(self._approvals.values())
        if status is not None:
            approvals = [a for a in approvals if a.status == status]
        return approvals

    def _require_pending(self, approval_id: str) -> PendingApproval:
        approval = self.get(approval_id)
        if not approval.is_pending:
            raise ApprovalAlreadyResolved(approval_id, approval.status.value)
        return approval

    def __len__(self) -> int:
        return len(self._approvals)
