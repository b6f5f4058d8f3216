"""Base agent types module."""

from agents.base.base_agent import (
    AgentAction,
    AgentBehavior,
    AgentDecision,
    AgentRole,
    AgentRunner,
    MarketSnapshot,
    WalletHandle,
)

__all__ = [
    "AgentAction",
    "AgentBehavior",
    "AgentDecision",
    "AgentRole",
    "AgentRunner",
    "MarketSnapshot",
    "WalletHandle",
]
