"""Payment relay behavior - executes queued payments in order.

The relay makes no decisions of its own: whatever is queued is paid, one
payment per step, oldest first. Every payment still goes through the
wallet's policy, so a queued payment can end up blocked or escalated.
"""

from collections import deque
from typing import Deque, List, Optional, Sequence
from pydantic import BaseModel, Field

from agentwallet.models import TransactionRecord
from agentwallet.policy_engine import format_units
from agents.base.base_agent import (
    AgentAction,
    AgentBehavior,
    AgentDecision,
    AgentRole,
    MarketSnapshot,
    WalletHandle,
)


class QueuedPayment(BaseModel):
    """A payment waiting in the relay queue."""
    destination: str = Field(description="Recipient public id")
    amount: int = Field(gt=0, description="Amount in lamports")
    memo: str = Field(default="", description="What the payment is for")


class PaymentRelayBehavior(AgentBehavior):
    """FIFO payment queue.

    Example:
        ```python
        relay = PaymentRelayBehavior()
        relay.queue_payment(vendor_id, 15_000_000, "API credits")
        relay.queue_payment(vendor_id, 5_000_000, "storage")

        runner = AgentRunner(wallet, relay)
        await runner.step(MarketSnapshot())  # pays "API credits"
        await runner.step(MarketSnapshot())  # pays "storage"
        await runner.step(MarketSnapshot())  # holds: queue empty
        ```
    """

    role = AgentRole.PAYMENT_RELAY

    def __init__(self):
        self._queue: Deque[QueuedPayment] = deque()

    def queue_payment(self, destination: str, amount: int, memo: str = "") -> QueuedPayment:
        payment = QueuedPayment(destination=destination, amount=amount, memo=memo)
        self._queue.append(payment)
        return payment

    @property
    def queued(self) -> List[QueuedPayment]:
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def observe(self, snapshot: MarketSnapshot) -> AgentDecision:
        if not self._queue:
            return AgentDecision.hold("Payment queue is empty. Waiting for instructions.")

        head = self._queue[0]
        return AgentDecision(
            action=AgentAction.TRANSFER,
            amount=head.amount,
            target=head.destination,
            reasoning=f"Processing queued payment of {format_units(head.amount)} units: {head.memo}",
            confidence=1.0,
        )

    async def act(
        self,
        decision: AgentDecision,
        wallet: WalletHandle,
        peers: Sequence[str],
    ) -> Optional[TransactionRecord]:
        if decision.action != AgentAction.TRANSFER or not self._queue:
            return None

        # A payment leaves the queue once attempted, whatever the outcome.
        payment = self._queue.popleft()
        return await wallet.transfer(payment.destination, payment.amount)
