"""
Decision sources that drive AgentWallet wallets.

This module provides the behavior interface, the runner that connects a
behavior to a wallet, and a queue-driven payment relay.
"""

from agents.base.base_agent import (
    AgentAction,
    AgentBehavior,
    AgentDecision,
    AgentRole,
    AgentRunner,
    MarketSnapshot,
    WalletHandle,
)
from agents.payment_relay import PaymentRelayBehavior, QueuedPayment

__all__ = [
    "AgentAction",
    "AgentBehavior",
    "AgentDecision",
    "AgentRole",
    "AgentRunner",
    "MarketSnapshot",
    "WalletHandle",
    "PaymentRelayBehavior",
    "QueuedPayment",
]
