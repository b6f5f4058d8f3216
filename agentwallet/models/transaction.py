"""Transaction records - the immutable audit trail of transfer attempts.

Every call into the transfer lifecycle produces exactly one TransactionRecord,
whatever the outcome. Records are frozen once created and are only ever
appended to a wallet's history.
"""

from enum import Enum
from typing import Optional
from uuid import uuid4
from datetime import datetime, UTC
from pydantic import BaseModel, ConfigDict, Field


class TransactionStatus(str, Enum):
    """Outcome of a single transfer attempt.

    Attributes:
        SUCCESS (str): Signed, broadcast and confirmed on the ledger.
        FAILED (str): Passed policy but signing, broadcast or confirmation
            raised. The wallet stays usable; nothing is retried.
        BLOCKED (str): Rejected by policy, or escalated for human approval.
            Nothing was signed.
    """
    SUCCESS = "success"
    FAILED = "failed"
    BLOCKED = "blocked"


# Signature placeholders for attempts that never produced a ledger signature
SIGNATURE_BLOCKED = "BLOCKED"
SIGNATURE_PENDING_APPROVAL = "PENDING_APPROVAL"
SIGNATURE_FAILED = "FAILED"

APPROVAL_REQUIRED_REASON = "Requires human approval (above threshold)"


class TransactionRecord(BaseModel):
    """A single, immutable audit entry for one transfer attempt.

    Anatomy:
    1. **What happened** (status, reason)
    2. **Proof** (signature: the ledger signature, or a sentinel such as
       ``BLOCKED`` when nothing reached the ledger)
    3. **Value movement** (source, destination, amount)
    4. **When** (timestamp, UTC)

    Usage Example:
        ```python
        record = TransactionRecord(
            signature=SIGNATURE_BLOCKED,
            source="7Np41oeYqPefeNQEHSv1UDhYrehxin3NStELsSKCT4K2",
            destination="9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin",
            amount=100_000_000,
            status=TransactionStatus.BLOCKED,
            reason="Exceeds per-transaction limit of 0.05 units",
        )
        record.amount = 1  # raises: records are frozen
        ```

    Attributes:
        record_id (str): Unique id for this audit entry.
        signature (str): Ledger signature, or one of the SIGNATURE_* sentinels.
        source (str): Public id of the sending wallet.
        destination (str): Public id of the intended recipient.
        amount (int): Requested amount in lamports.
        timestamp (datetime): UTC time the attempt was recorded.
        status (TransactionStatus): success, failed or blocked.
        reason (Optional[str]): Why the attempt was blocked or failed.
        approval_id (Optional[str]): Id of the pending approval created for an
            escalated transfer, or of the approval that authorised this one.
    """

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique audit entry ID"
    )
    signature: str = Field(description="Ledger signature or sentinel")
    source: str = Field(description="Sending wallet public id")
    destination: str = Field(description="Recipient public id")
    amount: int = Field(description="Requested amount in lamports")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Record timestamp"
    )
    status: TransactionStatus = Field(description="Outcome of the attempt")
    reason: Optional[str] = Field(
        default=None,
        description="Block or failure reason"
    )
    approval_id: Optional[str] = Field(
        default=None,
        description="Related pending approval, if any"
    )

    @property
    def is_success(self) -> bool:
        return self.status == TransactionStatus.SUCCESS

    @property
    def is_pending_approval(self) -> bool:
        """True for an attempt that was escalated rather than rejected."""
        return self.signature == SIGNATURE_PENDING_APPROVAL
