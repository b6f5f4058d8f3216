"""Spending policy model - the declarative limits gating a wallet's transfers.

This module provides the SpendingPolicy class that every transfer is checked
against, and PolicyUpdate, the partial form used to change a live policy
without restating every field.
"""

from typing import Any, Dict, Optional, Set
from pydantic import BaseModel, ConfigDict, Field, field_validator


LAMPORTS_PER_UNIT = 1_000_000_000


class SpendingPolicy(BaseModel):
    """Per-wallet spending rules.

    A SpendingPolicy combines four independent controls:
    - **Per-transaction cap**: no single transfer may exceed it
    - **Daily cap**: total successful spend per UTC calendar day
    - **Target whitelist**: optional set of destinations the wallet may pay
    - **Approval threshold**: transfers at or above it are escalated for human
      review instead of being executed (only when ``requires_approval`` is set)

    All amounts are integers in the ledger's smallest unit (lamports).

    Note:
        The daily cap resets at a fixed UTC midnight, not 24 hours after the
        last spend. A wallet that spends its whole cap at 23:59 UTC can spend
        it again at 00:00 UTC.

    Usage Example:
        ```python
        policy = SpendingPolicy(
            max_transaction_amount=50_000_000,       # 0.05 units
            daily_limit_amount=200_000_000,          # 0.2 units
            allowed_targets={"9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"},
            requires_approval=True,
            approval_threshold_amount=500_000_000,   # 0.5 units
        )

        policy.is_target_allowed("9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin")  # True
        policy.needs_approval(600_000_000)  # True
        ```

    Attributes:
        max_transaction_amount (int): Largest amount allowed in one transfer.
        daily_limit_amount (int): Largest cumulative successful spend per UTC day.
        allowed_targets (Optional[Set[str]]): Whitelisted destination public ids.
            None means any destination is allowed.
        requires_approval (bool): Whether the approval threshold is enforced.
        approval_threshold_amount (int): Amount at or above which a compliant
            transfer needs human approval.
    """

    max_transaction_amount: int = Field(
        ge=0,
        description="Per-transaction cap in lamports"
    )
    daily_limit_amount: int = Field(
        ge=0,
        description="Daily (UTC calendar day) cap in lamports"
    )
    allowed_targets: Optional[Set[str]] = Field(
        default=None,
        description="Whitelisted destinations (None = any destination)"
    )
    requires_approval: bool = Field(
        default=False,
        description="Escalate transfers at or above the approval threshold"
    )
    approval_threshold_amount: int = Field(
        default=0,
        ge=0,
        description="Amount at or above which approval is required"
    )

    def is_target_allowed(self, target: str) -> bool:
        """Check a destination against the whitelist.

        Args:
            target (str): Destination public id

        Returns:
            bool: True when no whitelist is configured or target is a member
        """
        if self.allowed_targets is None:
            return True
        return target in self.allowed_targets

    def needs_approval(self, amount: int) -> bool:
        """Check whether an otherwise-compliant amount must be escalated.

        The threshold is inclusive: an amount equal to it needs approval.

        Args:
            amount (int): Transfer amount in lamports

        Returns:
            bool: True if ``requires_approval`` is set and amount >= threshold
        """
        return self.requires_approval and amount >= self.approval_threshold_amount

    def merged(self, update: "PolicyUpdate") -> "SpendingPolicy":
        """Return a new policy with the fields set on ``update`` applied.

        Fields the update does not mention are left untouched. Setting
        ``allowed_targets=None`` explicitly removes the whitelist.

        Args:
            update (PolicyUpdate): Partial policy

        Returns:
            SpendingPolicy: New, validated policy; ``self`` is not modified

        Example:
            ```python
            base = SpendingPolicy(max_transaction_amount=100, daily_limit_amount=300)
            raised = base.merged(PolicyUpdate(max_transaction_amount=200))
            assert raised.max_transaction_amount == 200
            assert raised.daily_limit_amount == 300
            ```
        """
        data = self.model_dump()
        data.update(update.model_dump(exclude_unset=True))
        return SpendingPolicy.model_validate(data)


class PolicyUpdate(BaseModel):
    """A partial SpendingPolicy. Only explicitly set fields are merged."""

    model_config = ConfigDict(extra="forbid")

    max_transaction_amount: Optional[int] = Field(default=None, ge=0)
    daily_limit_amount: Optional[int] = Field(default=None, ge=0)
    allowed_targets: Optional[Set[str]] = None
    requires_approval: Optional[bool] = None
    approval_threshold_amount: Optional[int] = Field(default=None, ge=0)

    @field_validator(
        "max_transaction_amount", "daily_limit_amount", "requires_approval", "approval_threshold_amount",
    )
    @classmethod
    def reject_null(cls, v):
        """Only ``allowed_targets`` may be cleared with None; omit a field to keep it."""
        if v is None:
            raise ValueError("may be omitted but not null")
        return v

    @classmethod
    def from_fields(cls, **fields: Any) -> "PolicyUpdate":
        return cls.model_validate(fields)

    def changed_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


DEFAULT_POLICY = SpendingPolicy(
    max_transaction_amount=LAMPORTS_PER_UNIT // 10,
    daily_limit_amount=3 * LAMPORTS_PER_UNIT // 10,
    requires_approval=True,
    approval_threshold_amount=LAMPORTS_PER_UNIT // 2,
)
