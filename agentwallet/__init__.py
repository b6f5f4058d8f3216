"""AgentWallet - policy-enforced wallets for autonomous agents."""

__version__ = "0.1.0"

# Main interfaces
from agentwallet.agent_wallet import AgentWallet
from agentwallet.fleet_registry import FleetRegistry

# Core models (for advanced usage)
from agentwallet.models import (
    SpendingPolicy,
    PolicyUpdate,
    DEFAULT_POLICY,
    LAMPORTS_PER_UNIT,
    WalletMetadata,
    WalletState,
    WalletSummary,
    TransactionRecord,
    TransactionStatus,
    Decision,
    DecisionOutcome,
    ViolationCode,
    FleetSummary,
    FundingResult,
)

# Components (for advanced usage)
from agentwallet.policy_engine import PolicyEngine
from agentwallet.transfer_lifecycle import TransferLifecycle
from agentwallet.approvals import ApprovalQueue, PendingApproval, ApprovalStatus
from agentwallet.keystore import EncryptedExport
from agentwallet.config import WalletSettings, get_settings
from agentwallet.signing import SecretMaterial, SigningProvider, Ed25519SigningProvider
from agentwallet.ledger import (
    ChainReference,
    FundingSource,
    LedgerClient,
    InMemoryLedger,
    JsonRpcLedgerClient,
)
from agentwallet.exceptions import (
    AgentWalletError,
    DuplicateAgent,
    UnknownAgent,
    UnknownApproval,
    ApprovalAlreadyResolved,
    PolicyBypassNotAuthorized,
    DecryptionError,
    LedgerError,
    LedgerRPCError,
)

__all__ = [
    # Main interfaces
    "AgentWallet",
    "FleetRegistry",
    # Models
    "SpendingPolicy",
    "PolicyUpdate",
    "DEFAULT_POLICY",
    "LAMPORTS_PER_UNIT",
    "WalletMetadata",
    "WalletState",
    "WalletSummary",
    "TransactionRecord",
    "TransactionStatus",
    "Decision",
    "DecisionOutcome",
    "ViolationCode",
    "FleetSummary",
    "FundingResult",
    # Components
    "PolicyEngine",
    "TransferLifecycle",
    "ApprovalQueue",
    "PendingApproval",
    "ApprovalStatus",
    "EncryptedExport",
    "WalletSettings",
    "get_settings",
    "SecretMaterial",
    "SigningProvider",
    "Ed25519SigningProvider",
    "ChainReference",
    "FundingSource",
    "LedgerClient",
    "InMemoryLedger",
    "JsonRpcLedgerClient",
    # Errors
    "AgentWalletError",
    "DuplicateAgent",
    "UnknownAgent",
    "UnknownApproval",
    "ApprovalAlreadyResolved",
    "PolicyBypassNotAuthorized",
    "DecryptionError",
    "LedgerError",
    "LedgerRPCError",
]
