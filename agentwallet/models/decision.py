"""Policy decisions - the result of validating a transfer intent.

A Decision is a value, not an exception: callers branch on ``outcome``
instead of catching errors.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DecisionOutcome(str, Enum):
    """What the policy engine concluded about a transfer intent.

    Attributes:
        ALLOWED (str): Every check passed; the transfer may be executed.
        APPROVAL_REQUIRED (str): Every check passed, but the amount is at or
            above the approval threshold. Not executed without human approval.
        BLOCKED (str): A check failed. ``violation`` says which one.
    """
    ALLOWED = "allowed"
    APPROVAL_REQUIRED = "approval_required"
    BLOCKED = "blocked"


class ViolationCode(str, Enum):
    """The first failed check, in evaluation order."""
    DEACTIVATED = "DEACTIVATED"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    PER_TRANSACTION_LIMIT = "PER_TRANSACTION_LIMIT"
    DAILY_LIMIT = "DAILY_LIMIT"
    TARGET_NOT_WHITELISTED = "TARGET_NOT_WHITELISTED"


class Decision(BaseModel):
    """Result of ``PolicyEngine.validate``.

    Usage Example:
        ```python
        decision = engine.validate(amount, target, wallet.state, wallet.policy)

        if decision.outcome == DecisionOutcome.BLOCKED:
            print(f"{decision.violation.value}: {decision.reason}")
        elif decision.requires_approval:
            print("Escalating to a human")
        else:
            print("Go ahead")
        ```

    Attributes:
        outcome (DecisionOutcome): Allowed, approval required, or blocked.
        violation (Optional[ViolationCode]): Failed check, when blocked.
        reason (Optional[str]): Human-readable explanation, when blocked.
    """

    model_config = ConfigDict(frozen=True)

    outcome: DecisionOutcome = Field(description="Validation outcome")
    violation: Optional[ViolationCode] = Field(
        default=None,
        description="Which check failed (blocked decisions only)"
    )
    reason: Optional[str] = Field(
        default=None,
        description="Explanation (blocked decisions only)"
    )

    @classmethod
    def allowed(cls) -> "Decision":
        return cls(outcome=DecisionOutcome.ALLOWED)

    @classmethod
    def approval_required(cls) -> "Decision":
        return cls(outcome=DecisionOutcome.APPROVAL_REQUIRED)

    @classmethod
    def blocked(cls, violation: ViolationCode, reason: str) -> "Decision":
        return cls(outcome=DecisionOutcome.BLOCKED, violation=violation, reason=reason)

    @property
    def is_allowed(self) -> bool:
        """True for both plain and approval-required allowances."""
        return self.outcome != DecisionOutcome.BLOCKED

    @property
    def requires_approval(self) -> bool:
        return self.outcome == DecisionOutcome.APPROVAL_REQUIRED

    def __repr__(self) -> str:
        if self.outcome == DecisionOutcome.BLOCKED:
            return f"Decision(blocked, violation={self.violation.value})"
        return f"Decision({self.outcome.value})"
