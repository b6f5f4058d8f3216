"""In-memory ledger.

Implements LedgerClient and FundingSource entirely in process. It is the
default ledger for tests and local simulations and requires no network.
It behaves like a real ledger where the wallet core can observe it:
- balances only change through confirmed transfers and funding
- signatures are verified against the sender's public id
- references expire after ``reference_ttl`` blocks
- overdrafts are rejected at broadcast time
"""

import asyncio
import logging
import secrets
from collections import deque
from typing import Deque, Dict, List, Optional

import base58

from agentwallet.exceptions import LedgerError
from agentwallet.ledger.base import ChainReference, FundingSource, LedgerClient, SignedTransfer
from agentwallet.signing import Ed25519SigningProvider, SigningProvider

logger = logging.getLogger(__name__)


class InMemoryLedger(LedgerClient, FundingSource):
    """Ledger and faucet backed by dictionaries.

    Every confirmed transfer or funding advances the block height by one.

    Failure injection:
        ``inject_failure(operation, message)`` queues an error for the next
        call of ``operation`` ("balance", "reference", "broadcast" or
        "fund"). Queued errors are raised in FIFO order, one per call.

    Usage Example:
        ```python
        ledger = InMemoryLedger()
        await ledger.request_funds(wallet.public_id, 1_000_000_000)
        await wallet.refresh_balance()

        ledger.inject_failure("broadcast", "node unavailable")
        record = await wallet.transfer(peer.public_id, 10_000_000)
        assert record.status == TransactionStatus.FAILED
        ```

    Attributes:
        reference_ttl (int): Blocks a reference stays valid for.
        latency (float): Seconds every call sleeps before answering.
        max_fund_amount (Optional[int]): Per-request funding cap; larger
            requests are refused like a faucet would.
    """

    OPERATIONS = ("balance", "reference", "broadcast", "fund")

    def __init__(
        self,
        verifier: Optional[SigningProvider] = None,
        reference_ttl: int = 150,
        latency: float = 0.0,
        max_fund_amount: Optional[int] = None,
    ):
        self.verifier = verifier or Ed25519SigningProvider()
        self.reference_ttl = reference_ttl
        self.latency = latency
        self.max_fund_amount = max_fund_amount

        self._balances: Dict[str, int] = {}
        self._references: Dict[str, int] = {}
        self._confirmed: Dict[str, SignedTransfer] = {}
        self._failures: Dict[str, Deque[str]] = {op: deque() for op in self.OPERATIONS}
        self.block_height = 0

    # ========== Test / simulation helpers ==========

    def set_balance(self, public_id: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Balance cannot be negative")
        self._balances[public_id] = amount

    def balance_of(self, public_id: str) -> int:
        return self._balances.get(public_id, 0)

    def advance_blocks(self, count: int = 1) -> int:
        self.block_height += count
        return self.block_height

    def inject_failure(self, operation: str, message: str = "injected failure") -> None:
        if operation not in self._failures:
            raise ValueError(f"Unknown operation '{operation}', expected one of {self.OPERATIONS}")
        self._failures[operation].append(message)

    def confirmed_transfers(self) -> List[SignedTransfer]:
        return list(self._confirmed.values())

    # ========== LedgerClient ==========

    async def get_balance(self, public_id: str) -> int:
        await self._enter("balance")
        return self._balances.get(public_id, 0)

    async def get_recent_reference(self) -> ChainReference:
        await self._enter("reference")
        reference = base58.b58encode(secrets.token_bytes(32)).decode()
        expiry_height = self.block_height + self.reference_ttl
        self._references[reference] = expiry_height
        return ChainReference(reference=reference, expiry_height=expiry_height)

    async def broadcast_and_confirm(self, signed: SignedTransfer) -> str:
        await self._enter("broadcast")
        payload = signed.payload

        if signed.signature in self._confirmed:
            raise LedgerError("Transaction already processed")

        expiry = self._references.get(payload.reference)
        if expiry is None:
            raise LedgerError("Blockhash not found")
        if self.block_height > expiry or payload.expiry_height != expiry:
            raise LedgerError("Transaction expired: block height exceeded")

        if not self.verifier.verify(payload.source, self.transfer_message(payload), signed.signature):
            raise LedgerError("Signature verification failed")

        available = self._balances.get(payload.source, 0)
        if available < payload.amount:
            raise LedgerError(
                f"Insufficient funds for transfer: account has {available}, needs {payload.amount}"
            )

        self._balances[payload.source] = available - payload.amount
        self._balances[payload.destination] = self._balances.get(payload.destination, 0) + payload.amount
        self._confirmed[signed.signature] = signed
        self.block_height += 1
        return signed.signature

    # ========== FundingSource ==========

    async def request_funds(self, public_id: str, amount: int) -> str:
        await self._enter("fund")
        if amount <= 0:
            raise LedgerError("Funding amount must be positive")
        if self.max_fund_amount is not None and amount > self.max_fund_amount:
            raise LedgerError(f"Funding request of {amount} exceeds faucet limit of {self.max_fund_amount}")

        self._balances[public_id] = self._balances.get(public_id, 0) + amount
        self.block_height += 1
        signature = base58.b58encode(secrets.token_bytes(64)).decode()
        logger.debug("Funded %s with %d (height %d)", public_id, amount, self.block_height)
        return signature

    async def _enter(self, operation: str) -> None:
        await asyncio.sleep(self.latency)
        queued = self._failures[operation]
        if queued:
            raise LedgerError(queued.popleft())
