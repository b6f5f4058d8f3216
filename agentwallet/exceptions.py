"""Exception hierarchy for AgentWallet.

Only caller mistakes and malformed input are raised. Business outcomes
(policy blocks, approval escalations, failed broadcasts) are returned as
values - see ``Decision`` and ``TransactionRecord``.

Registry misuse errors also derive from ``ValueError`` so existing
``except ValueError`` call sites keep working.
"""

from typing import Any, Dict, Optional


class AgentWalletError(Exception):
    """Base class for every error raised by this package."""


class DuplicateAgent(AgentWalletError, ValueError):
    """An agent id is already registered in the fleet."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent wallet with ID '{agent_id}' already exists")


class UnknownAgent(AgentWalletError, ValueError):
    """No wallet is registered under the requested agent id."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"No wallet found for agent '{agent_id}'")


class UnknownApproval(AgentWalletError, ValueError):
    """No pending approval exists with the requested id."""

    def __init__(self, approval_id: str):
        self.approval_id = approval_id
        super().__init__(f"No pending approval with ID '{approval_id}'")


class ApprovalAlreadyResolved(AgentWalletError, ValueError):
    """The approval was already approved or rejected."""

    def __init__(self, approval_id: str, status: str):
        self.approval_id = approval_id
        self.status = status
        super().__init__(f"Approval '{approval_id}' is already {status}")


class PolicyBypassNotAuthorized(AgentWalletError, PermissionError):
    """An unchecked transfer was requested without the explicit opt-in flag."""


class DecryptionError(AgentWalletError, ValueError):
    """An encrypted export could not be authenticated or parsed.

    Raised for a wrong passphrase, a tampered envelope, or malformed input.
    The message never says which of those it was.
    """


class LedgerError(AgentWalletError):
    """A ledger collaborator failed to answer or rejected a transfer."""


class LedgerRPCError(LedgerError):
    """The JSON-RPC endpoint returned an error object."""

    def __init__(self, message: str, error: Optional[Dict[str, Any]] = None):
        self.error = error or {}
        super().__init__(message)
