"""Core data models for AgentWallet."""

from agentwallet.models.policy import (
    SpendingPolicy,
    PolicyUpdate,
    DEFAULT_POLICY,
    LAMPORTS_PER_UNIT,
)
from agentwallet.models.transaction import (
    TransactionRecord,
    TransactionStatus,
    SIGNATURE_BLOCKED,
    SIGNATURE_PENDING_APPROVAL,
    SIGNATURE_FAILED,
    APPROVAL_REQUIRED_REASON,
)
from agentwallet.models.decision import Decision, DecisionOutcome, ViolationCode
from agentwallet.models.wallet import (
    WalletMetadata,
    WalletState,
    WalletSummary,
    next_utc_midnight,
)
from agentwallet.models.fleet import FleetSummary, FundingResult

__all__ = [
    "SpendingPolicy",
    "PolicyUpdate",
    "DEFAULT_POLICY",
    "LAMPORTS_PER_UNIT",
    "TransactionRecord",
    "TransactionStatus",
    "SIGNATURE_BLOCKED",
    "SIGNATURE_PENDING_APPROVAL",
    "SIGNATURE_FAILED",
    "APPROVAL_REQUIRED_REASON",
    "Decision",
    "DecisionOutcome",
    "ViolationCode",
    "WalletMetadata",
    "WalletState",
    "WalletSummary",
    "next_utc_midnight",
    "FleetSummary",
    "FundingResult",
]
