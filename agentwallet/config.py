"""Runtime settings for AgentWallet.

Values come from ``AGENTWALLET_*`` environment variables or a ``.env`` file.
Nothing reads them at import time: build a WalletSettings (or call
``get_settings()``) and pass it to the components that need it.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentwallet.models import LAMPORTS_PER_UNIT, SpendingPolicy


class WalletSettings(BaseSettings):
    """AgentWallet configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTWALLET_",
        env_file=".env",
        extra="ignore",
    )

    # Ledger RPC
    rpc_url: str = "https://api.devnet.solana.com"
    commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    rpc_timeout_seconds: float = Field(default=30.0, gt=0)
    confirm_timeout_seconds: float = Field(default=60.0, gt=0)
    confirm_poll_seconds: float = Field(default=0.5, gt=0)

    # Fleet funding; faucets rate limit, hence the delay
    fund_delay_seconds: float = Field(default=2.0, ge=0)
    max_fund_amount: int = Field(default=2 * LAMPORTS_PER_UNIT, gt=0)

    # Policy applied when a wallet is created without one
    default_max_transaction_amount: int = Field(default=LAMPORTS_PER_UNIT // 10, ge=0)
    default_daily_limit_amount: int = Field(default=3 * LAMPORTS_PER_UNIT // 10, ge=0)
    default_requires_approval: bool = True
    default_approval_threshold_amount: int = Field(default=LAMPORTS_PER_UNIT // 2, ge=0)

    # Encrypted export key derivation cost (scrypt N, power of two)
    scrypt_n: int = Field(default=2 ** 14, ge=2, le=2 ** 17)

    def default_policy(self) -> SpendingPolicy:
        return SpendingPolicy(
            max_transaction_amount=self.default_max_transaction_amount,
            daily_limit_amount=self.default_daily_limit_amount,
            requires_approval=self.default_requires_approval,
            approval_threshold_amount=self.default_approval_threshold_amount,
        )


@lru_cache()
def get_settings() -> WalletSettings:
    return WalletSettings()
