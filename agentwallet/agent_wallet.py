"""Agent Wallet - the single entry point a decision source uses to spend.

An AgentWallet bundles:
- The agent's signing identity (held opaquely, never logged)
- Its WalletMetadata (who owns it, which SpendingPolicy applies)
- Its WalletState (balance mirror, daily spend, audit trail, active flag)
- A TransferLifecycle that runs every transfer under the wallet's lock
- An ApprovalQueue for escalated transfers

Decision sources only ever call ``transfer``. Policy changes, pause/resume,
approvals and exports are operator actions.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from agentwallet.approvals import ApprovalQueue, PendingApproval
from agentwallet.exceptions import DecryptionError, PolicyBypassNotAuthorized
from agentwallet.keystore import DEFAULT_SCRYPT_N, EncryptedExport, decrypt_secret, encrypt_secret, parse_envelope
from agentwallet.ledger.base import LedgerClient
from agentwallet.models import (
    Decision,
    PolicyUpdate,
    SpendingPolicy,
    TransactionRecord,
    TransactionStatus,
    WalletMetadata,
    WalletState,
    WalletSummary,
    next_utc_midnight,
)
from agentwallet.policy_engine import Clock, PolicyEngine
from agentwallet.signing import SecretMaterial, SigningProvider
from agentwallet.transfer_lifecycle import TransferLifecycle

logger = logging.getLogger(__name__)


class AgentWallet:
    """A policy-enforced wallet owned by one autonomous agent.

    Usage Example:
        ```python
        ledger = InMemoryLedger()
        wallet = AgentWallet(
            WalletMetadata(
                agent_id="trader-1",
                agent_name="Trader",
                role="liquidity-provider",
                policy=DEFAULT_POLICY,
            ),
            ledger=ledger,
            signer=Ed25519SigningProvider(),
        )
        await ledger.request_funds(wallet.public_id, 1_000_000_000)

        record = await wallet.transfer(peer.public_id, 50_000_000)
        if record.status == TransactionStatus.BLOCKED:
            print(f"Blocked: {record.reason}")

        for item in wallet.pending_approvals():
            await wallet.approve(item.approval_id)
        ```
    """

    def __init__(
        self,
        metadata: WalletMetadata,
        ledger: LedgerClient,
        signer: SigningProvider,
        *,
        secret: Optional[SecretMaterial] = None,
        engine: Optional[PolicyEngine] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize the wallet.

        Args:
            metadata (WalletMetadata): Owner and policy
            ledger (LedgerClient): Ledger used for balances and transfers
            signer (SigningProvider): Provider that owns the key material
            secret (Optional[SecretMaterial]): Existing identity to use.
                A new one is generated when omitted.
            engine (Optional[PolicyEngine]): Policy engine to validate with
            clock (Optional[Callable[[], datetime]]): Clock for a default engine
        """
        if secret is None:
            public_id, secret = signer.generate_identity()
        else:
            public_id = signer.public_id_for(secret)

        self.metadata = metadata
        self.ledger = ledger
        self.signer = signer
        self.engine = engine or PolicyEngine(clock=clock)
        self._secret = secret
        self._state = WalletState(
            public_id=public_id,
            daily_spent_reset_at=next_utc_midnight(self.engine.clock()),
        )
        self._approvals = ApprovalQueue()
        self._lifecycle = TransferLifecycle(
            metadata=self.metadata,
            state=self._state,
            secret=secret,
            ledger=ledger,
            signer=signer,
            engine=self.engine,
            approvals=self._approvals,
        )
        logger.info("Created wallet for agent %s (%s): %s", metadata.agent_id, metadata.role, public_id)

    # ========== Identity & state ==========

    @property
    def public_id(self) -> str:
        return self._state.public_id

    @property
    def agent_id(self) -> str:
        return self.metadata.agent_id

    @property
    def state(self) -> WalletState:
        return self._state

    @property
    def policy(self) -> SpendingPolicy:
        return self.metadata.policy

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    async def refresh_balance(self) -> int:
        """Re-read the balance from the ledger.

        Raises:
            LedgerError: If the ledger cannot be reached
        """
        return await self._lifecycle.refresh_balance()

    # ========== Transfers ==========

    def validate_transfer(self, amount: int, target: str) -> Decision:
        """Dry-run the policy checks against the current state."""
        return self.engine.validate(amount, target, self._state, self.metadata.policy)

    async def transfer(self, destination: str, amount: int) -> TransactionRecord:
        """Transfer funds, subject to the wallet's policy.

        Never raises for policy blocks or ledger failures; inspect
        ``record.status`` and ``record.reason`` instead.

        Args:
            destination (str): Recipient public id
            amount (int): Amount in lamports

        Returns:
            TransactionRecord: Exactly one record, also appended to the audit log
        """
        return await self._lifecycle.run(destination, amount)

    async def transfer_unchecked(self, destination: str, amount: int, *,
                                 bypass_policy: bool = False) -> TransactionRecord:
        """Transfer without any policy check. Operator use only.

        The paused flag, limits, whitelist and approval threshold are all
        ignored. The attempt is still recorded in the audit log.

        Raises:
            PolicyBypassNotAuthorized: Unless ``bypass_policy=True`` is passed
        """
        if bypass_policy is not True:
            raise PolicyBypassNotAuthorized(
                f"Unchecked transfer from agent '{self.agent_id}' requires bypass_policy=True"
            )
        logger.warning("Policy bypass: agent %s sending %d to %s", self.agent_id, amount, destination)
        return await self._lifecycle.run(destination, amount, skip_policy=True)

    # ========== Approvals ==========

    def pending_approvals(self) -> List[PendingApproval]:
        return self._approvals.pending()

    def list_approvals(self) -> List[PendingApproval]:
        return self._approvals.list_approvals()

    async def approve(self, approval_id: str) -> TransactionRecord:
        """Approve an escalated transfer and attempt it again.

        The new attempt re-runs every policy check except the approval
        threshold, against the wallet's state at approval time. It produces
        its own record, carrying the same ``approval_id``.

        Raises:
            UnknownApproval: If no such approval exists
            ApprovalAlreadyResolved: If it was already approved or rejected
        """
        approval = self._approvals.claim(approval_id)
        logger.info("Approval %s granted for agent %s", approval_id, self.agent_id)
        record = await self._lifecycle.run(
            approval.destination, approval.amount,
            skip_approval=True, approval_id=approval_id,
        )
        approval.record_id = record.record_id
        return record

    def reject(self, approval_id: str, reason: Optional[str] = None) -> PendingApproval:
        """Reject an escalated transfer. No transfer and no new record.

        Raises:
            UnknownApproval: If no such approval exists
            ApprovalAlreadyResolved: If it was already approved or rejected
        """
        approval = self._approvals.reject(approval_id, reason)
        logger.info("Approval %s rejected for agent %s", approval_id, self.agent_id)
        return approval

    # ========== Operator controls ==========

    def deactivate(self) -> None:
        """Pause the wallet. Every later transfer is blocked until reactivated."""
        self._state.is_active = False
        logger.info("Wallet for agent %s paused", self.agent_id)

    def reactivate(self) -> None:
        self._state.is_active = True
        logger.info("Wallet for agent %s resumed", self.agent_id)

    def update_policy(self, update: Optional[PolicyUpdate] = None, **fields: Any) -> SpendingPolicy:
        """Merge a partial policy into the current one.

        Accepts either a PolicyUpdate or keyword fields. Takes effect for the
        next validation; a transfer already past validation is not affected.

        Example:
            ```python
            wallet.update_policy(max_transaction_amount=200_000_000)
            wallet.update_policy(PolicyUpdate(allowed_targets=None))  # drop whitelist
            ```
        """
        if update is None:
            update = PolicyUpdate.from_fields(**fields)
        elif fields:
            raise TypeError("Pass either a PolicyUpdate or keyword fields, not both")

        self.metadata.policy = self.metadata.policy.merged(update)
        logger.info("Policy updated for agent %s: %s", self.agent_id, sorted(update.changed_fields()))
        return self.metadata.policy

    # ========== Reporting ==========

    def get_audit_log(self) -> List[TransactionRecord]:
        """Copy of every transfer attempt, oldest first."""
        return self._state.audit_log()

    def get_summary(self) -> WalletSummary:
        state = self._state
        return WalletSummary(
            agent_id=self.metadata.agent_id,
            agent_name=self.metadata.agent_name,
            role=self.metadata.role,
            public_id=state.public_id,
            balance=state.balance,
            daily_spent=state.daily_spent,
            daily_limit=self.metadata.policy.daily_limit_amount,
            total_transactions=state.transaction_count,
            successful_transactions=state.count_by_status(TransactionStatus.SUCCESS),
            blocked_transactions=state.count_by_status(TransactionStatus.BLOCKED),
            failed_transactions=state.count_by_status(TransactionStatus.FAILED),
            is_active=state.is_active,
        )

    # ========== Export / import ==========

    def export_secret(self) -> str:
        """Export the signing secret in plain text. Treat it as a password."""
        logger.warning("Plain-text secret exported for agent %s", self.agent_id)
        return self.signer.export_secret(self._secret)

    def export_encrypted(self, passphrase: str, scrypt_n: int = DEFAULT_SCRYPT_N) -> EncryptedExport:
        """Export the signing secret encrypted under ``passphrase``."""
        return encrypt_secret(
            self.signer.export_secret(self._secret),
            passphrase,
            public_id=self.public_id,
            agent_id=self.agent_id,
            scrypt_n=scrypt_n,
        )

    @classmethod
    def import_encrypted(
        cls,
        envelope: Union[EncryptedExport, str, bytes, Dict],
        passphrase: str,
        ledger: LedgerClient,
        signer: SigningProvider,
        metadata: WalletMetadata,
        **kwargs: Any,
    ) -> "AgentWallet":
        """Rebuild a wallet from an encrypted export.

        The restored wallet has the same public id, an empty audit log and a
        zero balance until ``refresh_balance`` is awaited.

        Raises:
            DecryptionError: Wrong passphrase, tampered or malformed envelope,
                or an identity whose public id differs from the envelope's
        """
        envelope = parse_envelope(envelope)
        exported = decrypt_secret(envelope, passphrase)
        try:
            public_id, secret = signer.identity_from_export(exported)
        except ValueError as e:
            raise DecryptionError("Encrypted export does not contain a valid identity") from e
        if public_id != envelope.public_id:
            raise DecryptionError("Encrypted export does not match its public id")
        return cls(metadata, ledger, signer, secret=secret, **kwargs)

    def __repr__(self) -> str:
        return (
            f"AgentWallet(agent_id={self.agent_id!r}, public_id={self.public_id!r}, "
            f"active={self.is_active})"
        )
