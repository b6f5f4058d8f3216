"""Transfer Lifecycle - turns a transfer intent into exactly one audit record.

Every invocation moves through the same states:

    Requested -> Validating -> Blocked                    (policy said no)
                            -> Blocked (pending approval) (escalated)
                            -> Executing -> Success
                                         -> Failed

and appends exactly one TransactionRecord to the wallet's history, whatever
the outcome. Policy blocks and ledger failures are returned as records, not
raised, so a decision source can keep running after a bad transfer.
Cancellation is the one exception that propagates, and it is recorded as a
FAILED attempt first.
"""

import asyncio
import logging
from typing import Optional

from agentwallet.approvals import ApprovalQueue
from agentwallet.ledger.base import LedgerClient, SignedTransfer, TransferPayload
from agentwallet.models import (
    APPROVAL_REQUIRED_REASON,
    SIGNATURE_BLOCKED,
    SIGNATURE_FAILED,
    SIGNATURE_PENDING_APPROVAL,
    TransactionRecord,
    TransactionStatus,
    WalletMetadata,
    WalletState,
)
from agentwallet.policy_engine import PolicyEngine, format_units
from agentwallet.signing import SecretMaterial, SigningProvider

logger = logging.getLogger(__name__)

CANCELLED_BEFORE_BROADCAST_REASON = "Transfer cancelled before broadcast"
CANCELLED_DURING_BROADCAST_REASON = "Transfer cancelled during broadcast; it may still land"


class TransferLifecycle:
    """Runs transfers for a single wallet.

    Concurrency:
        Each lifecycle owns an ``asyncio.Lock``. The whole
        refresh -> validate -> execute -> record sequence runs while holding
        it, so two transfers on the same wallet are serialized and can never
        both pass the balance and daily-limit checks against the same
        snapshot. Transfers on different wallets do not share a lock and run
        concurrently.

    Execution steps (suspension points are the awaited ledger calls):
    1. Fetch a recent chain reference
    2. Build the TransferPayload and sign the ledger's transfer message for it
    3. Broadcast and wait for confirmation
    4. Add the amount to ``daily_spent``, record success, refresh the balance

    A paused wallet is blocked before step 1 and before the balance refresh,
    so it makes no ledger calls.

    Any exception in steps 1-3 produces a FAILED record with the error text.
    Nothing is retried. A cancellation during step 3 records FAILED with the
    transfer signature and still adds the amount to ``daily_spent``, since
    the ledger may have accepted it.

    Usage Example:
        ```python
        lifecycle = TransferLifecycle(
            metadata=metadata,
            state=state,
            secret=secret,
            ledger=ledger,
            signer=signer,
            engine=PolicyEngine(),
            approvals=ApprovalQueue(),
        )
        record = await lifecycle.run(destination, 20_000_000)
        print(record.status, record.signature)
        ```
    """

    def __init__(
        self,
        metadata: WalletMetadata,
        state: WalletState,
        secret: SecretMaterial,
        ledger: LedgerClient,
        signer: SigningProvider,
        engine: PolicyEngine,
        approvals: ApprovalQueue,
    ):
        self.metadata = metadata
        self.state = state
        self.ledger = ledger
        self.signer = signer
        self.engine = engine
        self.approvals = approvals
        self._secret = secret
        self._lock = asyncio.Lock()

    @property
    def is_busy(self) -> bool:
        """True while a transfer holds the wallet's lock."""
        return self._lock.locked()

    async def refresh_balance(self) -> int:
        """Read the balance from the ledger into the wallet state.

        Raises:
            LedgerError: If the ledger cannot be reached
        """
        balance = await self.ledger.get_balance(self.state.public_id)
        self.state.balance = balance
        return balance

    async def run(
        self,
        destination: str,
        amount: int,
        *,
        skip_approval: bool = False,
        skip_policy: bool = False,
        approval_id: Optional[str] = None,
    ) -> TransactionRecord:
        """Run one transfer attempt and record its outcome.

        Args:
            destination (str): Recipient public id
            amount (int): Amount in lamports
            skip_approval (bool): Execute even if the amount would normally be
                escalated. Used when a human already approved it.
            skip_policy (bool): Skip every policy check. Only reachable through
                ``AgentWallet.transfer_unchecked``.
            approval_id (Optional[str]): Approval that authorised this attempt,
                copied onto the record

        Returns:
            TransactionRecord: The single record appended for this attempt
        """
        async with self._lock:
            recorded = self.state.transaction_count
            try:
                return await self._attempt(destination, amount, skip_approval, skip_policy, approval_id)
            except asyncio.CancelledError:
                if self.state.transaction_count == recorded:
                    logger.warning(
                        "Transfer of %s units from %s to %s cancelled before broadcast",
                        format_units(amount), self.metadata.agent_id, destination,
                    )
                    self._record(
                        destination, amount, TransactionStatus.FAILED, SIGNATURE_FAILED,
                        reason=CANCELLED_BEFORE_BROADCAST_REASON, approval_id=approval_id,
                    )
                raise

    async def _attempt(
        self,
        destination: str,
        amount: int,
        skip_approval: bool,
        skip_policy: bool,
        approval_id: Optional[str],
    ) -> TransactionRecord:
        if not skip_policy:
            inactive = self.engine.check_active(self.state)
            if inactive is not None:
                return self._record(
                    destination, amount, TransactionStatus.BLOCKED, SIGNATURE_BLOCKED,
                    reason=inactive.reason, approval_id=approval_id,
                )

        try:
            await self.refresh_balance()
        except Exception as e:
            logger.warning("Balance refresh failed for %s before transfer: %s", self.state.public_id, e)
            return self._record(
                destination, amount, TransactionStatus.FAILED, SIGNATURE_FAILED,
                reason=f"Balance refresh failed: {e}", approval_id=approval_id,
            )

        if not skip_policy:
            decision = self.engine.validate(amount, destination, self.state, self.metadata.policy)

            if not decision.is_allowed:
                return self._record(
                    destination, amount, TransactionStatus.BLOCKED, SIGNATURE_BLOCKED,
                    reason=decision.reason, approval_id=approval_id,
                )

            if decision.requires_approval and not skip_approval:
                pending = self.approvals.enqueue(destination, amount)
                logger.info(
                    "Transfer of %s units from %s to %s escalated for approval (%s)",
                    format_units(amount), self.metadata.agent_id, destination, pending.approval_id,
                )
                return self._record(
                    destination, amount, TransactionStatus.BLOCKED, SIGNATURE_PENDING_APPROVAL,
                    reason=APPROVAL_REQUIRED_REASON, approval_id=pending.approval_id,
                )

        return await self._execute(destination, amount, approval_id)

    async def _execute(self, destination: str, amount: int,
                       approval_id: Optional[str]) -> TransactionRecord:
        broadcasting = False
        try:
            chain_ref = await self.ledger.get_recent_reference()
            payload = TransferPayload.build(self.state.public_id, destination, amount, chain_ref)
            signature = self.signer.sign(self._secret, self.ledger.transfer_message(payload))
            signed = SignedTransfer(payload=payload, signature=signature)
            broadcasting = True
            confirmed = await self.ledger.broadcast_and_confirm(signed)
        except asyncio.CancelledError:
            if not broadcasting:
                raise
            # The transfer may have landed, so it counts against today's limit.
            self.state.daily_spent += amount
            logger.warning(
                "Transfer of %s units from %s to %s cancelled during broadcast (%s)",
                format_units(amount), self.metadata.agent_id, destination, signature,
            )
            self._record(
                destination, amount, TransactionStatus.FAILED, signature,
                reason=CANCELLED_DURING_BROADCAST_REASON, approval_id=approval_id,
            )
            raise
        except Exception as e:
            logger.warning(
                "Transfer of %s units from %s to %s failed: %s",
                format_units(amount), self.metadata.agent_id, destination, e,
            )
            return self._record(
                destination, amount, TransactionStatus.FAILED, SIGNATURE_FAILED,
                reason=str(e), approval_id=approval_id,
            )

        self.state.daily_spent += amount
        record = self._record(
            destination, amount, TransactionStatus.SUCCESS, confirmed, approval_id=approval_id,
        )
        logger.info(
            "Transfer of %s units from %s to %s confirmed: %s",
            format_units(amount), self.metadata.agent_id, destination, confirmed,
        )

        try:
            await self.refresh_balance()
        except Exception as e:
            # The transfer landed; a stale balance is corrected by the next refresh.
            logger.warning("Balance refresh after transfer %s failed: %s", confirmed, e)
        return record

    def _record(
        self,
        destination: str,
        amount: int,
        status: TransactionStatus,
        signature: str,
        reason: Optional[str] = None,
        approval_id: Optional[str] = None,
    ) -> TransactionRecord:
        record = TransactionRecord(
            signature=signature,
            source=self.state.public_id,
            destination=destination,
            amount=amount,
            timestamp=self.engine.clock(),
            status=status,
            reason=reason,
            approval_id=approval_id,
        )
        return self.state.append_record(record)
