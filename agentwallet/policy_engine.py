"""Policy Engine - deterministic, fail-fast validation of transfer intents.

The PolicyEngine decides whether a (amount, target) intent may be executed
against a wallet. It:
- Resets the daily spend counter when a UTC midnight has been crossed
- Runs the checks in a fixed order and stops at the first violation
- Escalates otherwise-compliant large transfers for human approval

It never signs, broadcasts or records anything. The only state it touches is
the lazy daily reset on the WalletState it is given.
"""

import logging
from typing import Callable, Optional
from datetime import datetime, UTC

from agentwallet.models import (
    Decision,
    ViolationCode,
    SpendingPolicy,
    WalletState,
    LAMPORTS_PER_UNIT,
    next_utc_midnight,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_units(amount: int) -> str:
    """Render a lamport amount in whole units, e.g. 50_000_000 -> '0.05'."""
    return f"{amount / LAMPORTS_PER_UNIT:g}"


class PolicyEngine:
    """Validates transfer intents against a wallet's state and policy.

    Check order (first failure wins):
    1. Wallet is active
    2. Amount is strictly positive
    3. Amount does not exceed the current balance
    4. Amount does not exceed the per-transaction cap
    5. Today's spend plus amount does not exceed the daily cap
    6. Target is whitelisted (only if a whitelist is configured)
    7. Approval escalation (only reached when 1-6 all pass)

    Daily reset:
        Before any check, if the engine's clock is at or past
        ``state.daily_spent_reset_at``, ``daily_spent`` is zeroed and the
        boundary moves to the next UTC midnight. The window is a calendar day
        in UTC, not a rolling 24 hours. Naive clock readings are taken as UTC.

    Usage Example:
        ```python
        engine = PolicyEngine()
        decision = engine.validate(
            amount=20_000_000,
            target="9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin",
            state=wallet.state,
            policy=wallet.policy,
        )
        if not decision.is_allowed:
            print(decision.reason)
        ```
    """

    def __init__(self, clock: Optional[Clock] = None):
        """Initialize the engine.

        Args:
            clock (Optional[Callable[[], datetime]]): Source of the current
                time, used for the daily reset. Defaults to ``datetime.now(UTC)``.
        """
        self.clock = clock or utc_now

    def reset_daily_limit_if_needed(self, state: WalletState) -> bool:
        """Zero the daily counter if the reset boundary has passed.

        Args:
            state (WalletState): Wallet state to update in place

        Returns:
            bool: True if a reset happened
        """
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        if now < state.daily_spent_reset_at:
            return False
        logger.debug(
            "Daily spend reset for %s (was %d, boundary %s)",
            state.public_id, state.daily_spent, state.daily_spent_reset_at.isoformat(),
        )
        state.daily_spent = 0
        state.daily_spent_reset_at = next_utc_midnight(now)
        return True

    def check_active(self, state: WalletState) -> Optional[Decision]:
        """The blocked decision for a paused wallet, or None when it is active."""
        if not state.is_active:
            return Decision.blocked(ViolationCode.DEACTIVATED, "Wallet is deactivated")
        return None

    def validate(
        self,
        amount: int,
        target: str,
        state: WalletState,
        policy: SpendingPolicy,
    ) -> Decision:
        """Validate a proposed transfer.

        Args:
            amount (int): Requested amount in lamports
            target (str): Destination public id
            state (WalletState): The sending wallet's state
            policy (SpendingPolicy): The sending wallet's policy

        Returns:
            Decision: Allowed, approval-required, or blocked with the first
            violated check and a readable reason
        """
        self.reset_daily_limit_if_needed(state)
        decision = self._evaluate(amount, target, state, policy)

        if decision.is_allowed:
            logger.debug("Transfer %s -> %s of %d: %s", state.public_id, target, amount, decision.outcome.value)
        else:
            logger.info(
                "Transfer %s -> %s of %d blocked: %s",
                state.public_id, target, amount, decision.reason,
            )
        return decision

    def _evaluate(
        self,
        amount: int,
        target: str,
        state: WalletState,
        policy: SpendingPolicy,
    ) -> Decision:
        inactive = self.check_active(state)
        if inactive is not None:
            return inactive

        if amount <= 0:
            return Decision.blocked(
                ViolationCode.INVALID_AMOUNT,
                f"Invalid amount: {amount} lamports (must be positive)",
            )

        if amount > state.balance:
            return Decision.blocked(
                ViolationCode.INSUFFICIENT_BALANCE,
                f"Insufficient balance: have {format_units(state.balance)} units, "
                f"need {format_units(amount)} units",
            )

        if amount > policy.max_transaction_amount:
            return Decision.blocked(
                ViolationCode.PER_TRANSACTION_LIMIT,
                f"Exceeds per-transaction limit of {format_units(policy.max_transaction_amount)} units",
            )

        if state.daily_spent + amount > policy.daily_limit_amount:
            return Decision.blocked(
                ViolationCode.DAILY_LIMIT,
                f"Would exceed daily limit of {format_units(policy.daily_limit_amount)} units "
                f"(spent today: {format_units(state.daily_spent)} units)",
            )

        if not policy.is_target_allowed(target):
            return Decision.blocked(
                ViolationCode.TARGET_NOT_WHITELISTED,
                f"Target {target} is not in the allowed destinations whitelist",
            )

        if policy.needs_approval(amount):
            return Decision.approval_required()

        return Decision.allowed()
