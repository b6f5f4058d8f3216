"""Base agent types - the contract between decision sources and wallets.

A decision source ("behavior") looks at a market snapshot, decides what to
do, and then acts on that decision through a wallet. This module provides:
- MarketSnapshot / AgentDecision: the values passed between the two steps
- AgentBehavior: the abstract class every decision source implements
- WalletHandle: the narrow view of a wallet a behavior is allowed to use
- AgentRunner: drives one behavior against one wallet and keeps an action log

A behavior never sees the AgentWallet itself. It only gets a WalletHandle,
whose only spending method is the policy-checked ``transfer``.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from enum import Enum
from datetime import datetime, UTC
from pydantic import BaseModel, Field

from agentwallet.agent_wallet import AgentWallet
from agentwallet.models import TransactionRecord

logger = logging.getLogger(__name__)


class AgentRole(str, Enum):
    """Role tag an agent is created with."""
    LIQUIDITY_PROVIDER = "liquidity-provider"
    TREASURY_MANAGER = "treasury-manager"
    ARBITRAGE_BOT = "arbitrage-bot"
    PAYMENT_RELAY = "payment-relay"
    MONITOR = "monitor"


class AgentAction(str, Enum):
    """What a behavior decided to do."""
    TRANSFER = "transfer"
    HOLD = "hold"
    REBALANCE = "rebalance"
    ALERT = "alert"


class MarketSnapshot(BaseModel):
    """Market conditions a behavior observes before deciding.

    Attributes:
        price (float): Reference price of the ledger's native unit
        network_congestion (str): "low", "medium" or "high"
        timestamp (datetime): When the snapshot was taken
    """
    price: float = Field(default=0.0, ge=0, description="Native unit price")
    network_congestion: str = Field(
        default="low",
        pattern="^(low|medium|high)$",
        description="Network congestion level"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Snapshot time"
    )


class AgentDecision(BaseModel):
    """Output of ``AgentBehavior.observe``.

    Attributes:
        action (AgentAction): Chosen action
        amount (Optional[int]): Lamports to move, for transfer-like actions
        target (Optional[str]): Destination public id, if any
        reasoning (str): Human-readable explanation
        confidence (float): 0.0 to 1.0
    """
    action: AgentAction = Field(description="Chosen action")
    amount: Optional[int] = Field(default=None, gt=0, description="Amount in lamports")
    target: Optional[str] = Field(default=None, description="Destination public id")
    reasoning: str = Field(default="", description="Why this action was chosen")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Decision confidence")

    @classmethod
    def hold(cls, reasoning: str) -> "AgentDecision":
        return cls(action=AgentAction.HOLD, reasoning=reasoning)


class WalletHandle:
    """The part of an AgentWallet a behavior may use.

    Read-only identity and balance, plus the policy-checked ``transfer``.
    Policy changes, pause/resume, approvals, bypass and export are not
    reachable from here.
    """

    __slots__ = ("_wallet",)

    def __init__(self, wallet: AgentWallet):
        self._wallet = wallet

    @property
    def agent_id(self) -> str:
        return self._wallet.agent_id

    @property
    def public_id(self) -> str:
        return self._wallet.public_id

    @property
    def balance(self) -> int:
        return self._wallet.state.balance

    @property
    def is_active(self) -> bool:
        return self._wallet.is_active

    async def transfer(self, destination: str, amount: int) -> TransactionRecord:
        return await self._wallet.transfer(destination, amount)

    def __repr__(self) -> str:
        return f"WalletHandle(agent_id={self.agent_id!r})"


class AgentBehavior(ABC):
    """Abstract base class for decision sources.

    Subclasses implement ``observe`` (pure: snapshot -> decision) and
    ``act`` (carry the decision out through the wallet handle).

    Example:
        ```python
        class Tipper(AgentBehavior):
            role = AgentRole.MONITOR

            def observe(self, snapshot):
                if snapshot.network_congestion == "low":
                    return AgentDecision(
                        action=AgentAction.TRANSFER,
                        amount=1_000_000,
                        target=TIP_JAR,
                        reasoning="Cheap network, send a tip",
                    )
                return AgentDecision.hold("Network busy")

            async def act(self, decision, wallet, peers):
                if decision.action != AgentAction.TRANSFER:
                    return None
                return await wallet.transfer(decision.target, decision.amount)
        ```
    """

    role: AgentRole = AgentRole.MONITOR

    @abstractmethod
    def observe(self, snapshot: MarketSnapshot) -> AgentDecision:
        """Decide what to do given the current market snapshot."""
        pass

    @abstractmethod
    async def act(
        self,
        decision: AgentDecision,
        wallet: WalletHandle,
        peers: Sequence[str],
    ) -> Optional[TransactionRecord]:
        """Carry out a decision.

        Args:
            decision: Output of ``observe``
            wallet: Handle to the agent's own wallet
            peers: Public ids of the other agents in the fleet

        Returns:
            The transfer record if a transfer was attempted, else None
        """
        pass


class AgentRunner:
    """Runs one behavior against one wallet.

    Each ``step`` is observe -> act. Every step is written to ``action_log``
    as a timestamped line and to the module logger.

    Example:
        ```python
        relay = PaymentRelayBehavior()
        runner = AgentRunner(registry.get("relay"), relay)

        relay.queue_payment(merchant_id, 20_000_000, "invoice #12")
        record = await runner.step(MarketSnapshot(price=142.0))
        print(runner.action_log[-1])
        ```
    """

    def __init__(self, wallet: AgentWallet, behavior: AgentBehavior):
        self.behavior = behavior
        self.handle = WalletHandle(wallet)
        self.action_log: List[str] = []

    @property
    def agent_id(self) -> str:
        return self.handle.agent_id

    def log(self, message: str) -> None:
        entry = f"[{datetime.now(UTC).isoformat()}] [{self.agent_id}] {message}"
        self.action_log.append(entry)
        logger.info("[%s] %s", self.agent_id, message)

    async def step(self, snapshot: MarketSnapshot,
                   peers: Sequence[str] = ()) -> Optional[TransactionRecord]:
        """Run a single observe/act cycle.

        Args:
            snapshot: Market conditions to observe
            peers: Public ids of the other agents

        Returns:
            The transfer record, or None if the behavior did not transfer
        """
        decision = self.behavior.observe(snapshot)
        self.log(
            f"Decision: {decision.action.value} "
            f"(confidence {decision.confidence:.0%}) - {decision.reasoning}"
        )

        record = await self.behavior.act(decision, self.handle, list(peers))
        if record is not None:
            detail = f": {record.reason}" if record.reason else ""
            self.log(f"Transfer {record.status.value}{detail}")
        return record
