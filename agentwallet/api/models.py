"""Pydantic models for the AgentWallet HTTP API."""

from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from agentwallet.approvals import PendingApproval
from agentwallet.agent_wallet import AgentWallet
from agentwallet.models import SpendingPolicy, TransactionRecord


# -------- Common --------

class ErrorResponse(BaseModel):
    detail: str


# -------- Wallets --------

class PolicyResponse(BaseModel):
    max_transaction_amount: int
    daily_limit_amount: int
    allowed_targets: Optional[List[str]] = None
    requires_approval: bool
    approval_threshold_amount: int

    @classmethod
    def from_policy(cls, policy: SpendingPolicy) -> "PolicyResponse":
        return cls(
            max_transaction_amount=policy.max_transaction_amount,
            daily_limit_amount=policy.daily_limit_amount,
            allowed_targets=sorted(policy.allowed_targets) if policy.allowed_targets is not None else None,
            requires_approval=policy.requires_approval,
            approval_threshold_amount=policy.approval_threshold_amount,
        )


class WalletResponse(BaseModel):
    agent_id: str
    agent_name: str
    role: str
    public_id: str
    balance: int
    daily_spent: int
    is_active: bool
    total_transactions: int
    pending_approvals: int
    policy: PolicyResponse

    @classmethod
    def from_wallet(cls, wallet: AgentWallet) -> "WalletResponse":
        summary = wallet.get_summary()
        return cls(
            agent_id=summary.agent_id,
            agent_name=summary.agent_name,
            role=summary.role,
            public_id=summary.public_id,
            balance=summary.balance,
            daily_spent=summary.daily_spent,
            is_active=summary.is_active,
            total_transactions=summary.total_transactions,
            pending_approvals=len(wallet.pending_approvals()),
            policy=PolicyResponse.from_policy(wallet.policy),
        )


class UpdatePolicyRequest(BaseModel):
    """Only the fields present in the request body are changed.

    Send ``"allowed_targets": null`` to remove the whitelist.
    """

    model_config = ConfigDict(extra="forbid")

    max_transaction_amount: Optional[int] = Field(default=None, ge=0)
    daily_limit_amount: Optional[int] = Field(default=None, ge=0)
    allowed_targets: Optional[List[str]] = None
    requires_approval: Optional[bool] = None
    approval_threshold_amount: Optional[int] = Field(default=None, ge=0)

    @field_validator(
        "max_transaction_amount", "daily_limit_amount", "requires_approval", "approval_threshold_amount",
    )
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ImportWalletRequest(BaseModel):
    envelope: Dict[str, Any]
    passphrase: str
    agent_id: str
    agent_name: str
    role: str


# -------- Audit --------

class TransactionResponse(BaseModel):
    record_id: str
    signature: str
    source: str
    destination: str
    amount: int
    timestamp: datetime
    status: str
    reason: Optional[str] = None
    approval_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionResponse":
        return cls(
            record_id=record.record_id,
            signature=record.signature,
            source=record.source,
            destination=record.destination,
            amount=record.amount,
            timestamp=record.timestamp,
            status=record.status.value,
            reason=record.reason,
            approval_id=record.approval_id,
        )


# -------- Approvals --------

class ApprovalResponse(BaseModel):
    approval_id: str
    destination: str
    amount: int
    requested_at: datetime
    status: str
    resolved_at: Optional[datetime] = None
    resolution_reason: Optional[str] = None
    record_id: Optional[str] = None

    @classmethod
    def from_approval(cls, approval: PendingApproval) -> "ApprovalResponse":
        return cls(
            approval_id=approval.approval_id,
            destination=approval.destination,
            amount=approval.amount,
            requested_at=approval.requested_at,
            status=approval.status.value,
            resolved_at=approval.resolved_at,
            resolution_reason=approval.resolution_reason,
            record_id=approval.record_id,
        )


class RejectRequest(BaseModel):
    reason: Optional[str] = None


# -------- Fleet --------

class FleetActionResponse(BaseModel):
    affected: int


class FleetSummaryResponse(BaseModel):
    total_agents: int
    active_agents: int
    total_balance: int
    total_transactions: int
    success_rate: float
