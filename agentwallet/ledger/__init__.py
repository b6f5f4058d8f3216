"""Ledger collaborators for AgentWallet."""

from agentwallet.ledger.base import (
    ChainReference,
    FundingSource,
    LedgerClient,
    SignedTransfer,
    TransferPayload,
)
from agentwallet.ledger.in_memory import InMemoryLedger
from agentwallet.ledger.json_rpc import JsonRpcLedgerClient

__all__ = [
    "ChainReference",
    "FundingSource",
    "LedgerClient",
    "SignedTransfer",
    "TransferPayload",
    "InMemoryLedger",
    "JsonRpcLedgerClient",
]
