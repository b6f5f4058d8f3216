"""Wallet models - identity metadata and the mutable spend/audit state.

This module provides:
- WalletMetadata: who owns the wallet and which policy governs it
- WalletState: balance, daily spend counter, audit history and active flag
- WalletSummary: a read-only snapshot used for reporting
"""

from typing import List, Tuple
from datetime import datetime, timedelta, UTC
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from agentwallet.models.policy import SpendingPolicy
from agentwallet.models.transaction import TransactionRecord, TransactionStatus


def next_utc_midnight(now: datetime) -> datetime:
    """Return the first UTC midnight strictly after ``now``.

    The daily spend window is a fixed calendar day in UTC, so the boundary
    depends only on the date of ``now``, never on when money was last spent.

    Args:
        now (datetime): Reference time (naive values are treated as UTC)

    Returns:
        datetime: Timezone-aware UTC midnight of the following day

    Example:
        ```python
        next_utc_midnight(datetime(2024, 5, 1, 23, 59, tzinfo=UTC))
        # datetime(2024, 5, 2, 0, 0, tzinfo=UTC)
        next_utc_midnight(datetime(2024, 5, 2, 0, 0, tzinfo=UTC))
        # datetime(2024, 5, 3, 0, 0, tzinfo=UTC)
        ```
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    now = now.astimezone(UTC)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


class WalletMetadata(BaseModel):
    """Owner metadata for one agent wallet.

    Attributes:
        agent_id (str): Identifier, unique within a FleetRegistry.
        agent_name (str): Display name.
        role (str): Free-form role tag (e.g. "treasury-manager").
        created_at (datetime): UTC creation time.
        policy (SpendingPolicy): Current spending policy. Replaced wholesale by
            ``AgentWallet.update_policy``; never mutated in place.
    """

    model_config = ConfigDict(validate_assignment=True)

    agent_id: str = Field(min_length=1, description="Unique agent identifier")
    agent_name: str = Field(description="Display name")
    role: str = Field(description="Role tag")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Creation timestamp"
    )
    policy: SpendingPolicy = Field(description="Current spending policy")


class WalletState(BaseModel):
    """Mutable state of a single wallet.

    WalletState is created with the wallet (balance 0) and lives exactly as
    long as the wallet that owns it.

    Invariants:
    - The transaction history only grows. There is no API to remove, reorder
      or replace a record; ``audit_log()`` hands out copies.
    - ``daily_spent`` only increases between resets and is zeroed only when
      the clock crosses ``daily_spent_reset_at`` (checked lazily by the
      policy engine).
    - ``is_active`` changes only through explicit pause/resume.
    - ``balance`` mirrors the ledger. It is written by balance refreshes, never
      computed locally from transfers.

    Attributes:
        public_id (str): The wallet's public address on the ledger.
        balance (int): Last balance read from the ledger, in lamports.
        daily_spent (int): Successful spend in the current UTC day.
        daily_spent_reset_at (datetime): Next reset boundary (UTC midnight).
        is_active (bool): False while the wallet is paused.
    """

    model_config = ConfigDict(validate_assignment=True)

    public_id: str = Field(description="Ledger public address")
    balance: int = Field(default=0, ge=0, description="Ledger balance in lamports")
    daily_spent: int = Field(default=0, ge=0, description="Spent today in lamports")
    daily_spent_reset_at: datetime = Field(
        default_factory=lambda: next_utc_midnight(datetime.now(UTC)),
        description="Next daily reset boundary"
    )
    is_active: bool = Field(default=True, description="False when paused")

    _history: List[TransactionRecord] = PrivateAttr(default_factory=list)

    def append_record(self, record: TransactionRecord) -> TransactionRecord:
        """Append a record to the audit trail. The only way history changes."""
        self._history.append(record)
        return record

    def audit_log(self) -> List[TransactionRecord]:
        """Return a copy of the audit trail, oldest first.

        Mutating the returned list has no effect on the wallet.
        """
        return list(self._history)

    @property
    def history(self) -> Tuple[TransactionRecord, ...]:
        """Read-only view of the audit trail."""
        return tuple(self._history)

    @property
    def transaction_count(self) -> int:
        return len(self._history)

    def count_by_status(self, status: TransactionStatus) -> int:
        return sum(1 for r in self._history if r.status == status)


class WalletSummary(BaseModel):
    """Point-in-time reporting snapshot of one wallet. Never stored."""

    agent_id: str
    agent_name: str
    role: str
    public_id: str
    balance: int
    daily_spent: int
    daily_limit: int
    total_transactions: int
    successful_transactions: int
    blocked_transactions: int
    failed_transactions: int
    is_active: bool
