"""Fleet-level reporting models."""

from typing import Optional
from pydantic import BaseModel, Field


class FleetSummary(BaseModel):
    """Aggregate view over every wallet in a FleetRegistry.

    Derived on demand from the wallets' current state; never stored.

    Attributes:
        total_agents (int): Number of registered wallets.
        active_agents (int): Wallets not currently paused.
        total_balance (int): Sum of last-known balances, in lamports.
        total_transactions (int): Audit records across all wallets.
        success_rate (float): Successful records / all records. Exactly 0.0
            when there are no records.
    """

    total_agents: int = Field(ge=0)
    active_agents: int = Field(ge=0)
    total_balance: int = Field(ge=0)
    total_transactions: int = Field(ge=0)
    success_rate: float = Field(ge=0.0, le=1.0)


class FundingResult(BaseModel):
    """Outcome of funding one agent during a bulk funding run."""

    agent_id: str
    amount: int
    signature: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None
