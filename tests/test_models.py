"""Tests for AgentWallet data models."""

import pytest
from datetime import datetime, UTC, timedelta, timezone

from agentwallet.models import (
    APPROVAL_REQUIRED_REASON,
    DEFAULT_POLICY,
    LAMPORTS_PER_UNIT,
    SIGNATURE_PENDING_APPROVAL,
    Decision,
    DecisionOutcome,
    FleetSummary,
    FundingResult,
    PolicyUpdate,
    SpendingPolicy,
    TransactionRecord,
    TransactionStatus,
    ViolationCode,
    WalletMetadata,
    WalletState,
    next_utc_midnight,
)


TARGET = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


class TestSpendingPolicy:
    """Tests for SpendingPolicy model."""

    def test_default_policy(self):
        assert DEFAULT_POLICY.max_transaction_amount == LAMPORTS_PER_UNIT // 10
        assert DEFAULT_POLICY.daily_limit_amount == 3 * LAMPORTS_PER_UNIT // 10
        assert DEFAULT_POLICY.requires_approval is True
        assert DEFAULT_POLICY.approval_threshold_amount == LAMPORTS_PER_UNIT // 2
        assert DEFAULT_POLICY.allowed_targets is None

    def test_negative_limits_rejected(self):
        with pytest.raises(ValueError):
            SpendingPolicy(max_transaction_amount=-1, daily_limit_amount=10)

    def test_whitelist(self):
        policy = SpendingPolicy(max_transaction_amount=1, daily_limit_amount=1, allowed_targets={TARGET})

        assert policy.is_target_allowed(TARGET)
        assert not policy.is_target_allowed("someone-else")

    def test_no_whitelist_allows_everything(self):
        assert DEFAULT_POLICY.is_target_allowed("anyone")

    def test_empty_whitelist_allows_nothing(self):
        policy = SpendingPolicy(max_transaction_amount=1, daily_limit_amount=1, allowed_targets=set())
        assert not policy.is_target_allowed(TARGET)

    def test_approval_threshold_is_inclusive(self):
        policy = SpendingPolicy(
            max_transaction_amount=100, daily_limit_amount=100,
            requires_approval=True, approval_threshold_amount=50,
        )
        assert policy.needs_approval(50)
        assert not policy.needs_approval(49)

    def test_threshold_ignored_without_flag(self):
        policy = SpendingPolicy(max_transaction_amount=100, daily_limit_amount=100, approval_threshold_amount=0)
        assert not policy.needs_approval(100)


class TestPolicyUpdate:

    def test_merge_only_set_fields(self):
        merged = DEFAULT_POLICY.merged(PolicyUpdate(daily_limit_amount=5))

        assert merged.daily_limit_amount == 5
        assert merged.max_transaction_amount == DEFAULT_POLICY.max_transaction_amount
        assert DEFAULT_POLICY.daily_limit_amount == 3 * LAMPORTS_PER_UNIT // 10

    def test_explicit_none_clears_whitelist(self):
        policy = DEFAULT_POLICY.merged(PolicyUpdate(allowed_targets={TARGET}))
        assert policy.merged(PolicyUpdate(allowed_targets=None)).allowed_targets is None
        assert policy.merged(PolicyUpdate()).allowed_targets == {TARGET}

    @pytest.mark.parametrize("field", [
        "max_transaction_amount",
        "daily_limit_amount",
        "requires_approval",
        "approval_threshold_amount",
    ])
    def test_null_rejected_at_construction(self, field):
        with pytest.raises(ValueError, match="not null"):
            PolicyUpdate.from_fields(**{field: None})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            PolicyUpdate.from_fields(daily_cap=5)

    def test_changed_fields(self):
        update = PolicyUpdate.from_fields(requires_approval=False)
        assert update.changed_fields() == {"requires_approval": False}


class TestNextUtcMidnight:

    def test_late_evening(self):
        now = datetime(2024, 5, 1, 23, 59, 59, tzinfo=UTC)
        assert next_utc_midnight(now) == datetime(2024, 5, 2, tzinfo=UTC)

    def test_exact_midnight_moves_to_next_day(self):
        now = datetime(2024, 5, 2, tzinfo=UTC)
        assert next_utc_midnight(now) == datetime(2024, 5, 3, tzinfo=UTC)

    def test_naive_treated_as_utc(self):
        assert next_utc_midnight(datetime(2024, 12, 31, 12)) == datetime(2025, 1, 1, tzinfo=UTC)

    def test_other_timezone_converted(self):
        # 2024-05-01 22:00 at UTC-5 is already 2024-05-02 03:00 UTC
        now = datetime(2024, 5, 1, 22, tzinfo=timezone(timedelta(hours=-5)))
        assert next_utc_midnight(now) == datetime(2024, 5, 3, tzinfo=UTC)


class TestTransactionRecord:

    def test_frozen(self):
        record = TransactionRecord(
            signature="sig", source="a", destination="b", amount=1, status=TransactionStatus.SUCCESS,
        )
        with pytest.raises(ValueError):
            record.status = TransactionStatus.FAILED

    def test_defaults(self):
        record = TransactionRecord(
            signature="sig", source="a", destination="b", amount=1, status=TransactionStatus.SUCCESS,
        )
        assert record.record_id
        assert record.timestamp.tzinfo is not None
        assert record.reason is None
        assert record.is_success

    def test_pending_approval(self):
        record = TransactionRecord(
            signature=SIGNATURE_PENDING_APPROVAL, source="a", destination="b", amount=1,
            status=TransactionStatus.BLOCKED, reason=APPROVAL_REQUIRED_REASON,
        )
        assert record.is_pending_approval
        assert not record.is_success


class TestWalletState:

    def test_history_only_grows(self):
        state = WalletState(public_id="pk")
        record = TransactionRecord(
            signature="s", source="pk", destination="b", amount=1, status=TransactionStatus.FAILED,
        )
        state.append_record(record)

        state.audit_log().clear()
        assert state.transaction_count == 1
        assert state.history == (record,)
        assert state.count_by_status(TransactionStatus.FAILED) == 1

    def test_negative_balance_rejected(self):
        state = WalletState(public_id="pk")
        with pytest.raises(ValueError):
            state.balance = -1

    def test_metadata_requires_agent_id(self):
        with pytest.raises(ValueError):
            WalletMetadata(agent_id="", agent_name="x", role="monitor", policy=DEFAULT_POLICY)


class TestDecision:

    def test_factories(self):
        assert Decision.allowed().is_allowed
        assert Decision.approval_required().is_allowed
        assert Decision.approval_required().requires_approval

        blocked = Decision.blocked(ViolationCode.DAILY_LIMIT, "too much")
        assert blocked.outcome == DecisionOutcome.BLOCKED
        assert not blocked.is_allowed

    def test_repr(self):
        assert repr(Decision.allowed()) == "Decision(allowed)"
        assert repr(Decision.blocked(ViolationCode.DEACTIVATED, "x")) == "Decision(blocked, violation=DEACTIVATED)"


class TestFleetModels:

    def test_success_rate_bounds(self):
        with pytest.raises(ValueError):
            FleetSummary(total_agents=1, active_agents=1, total_balance=0, total_transactions=1, success_rate=1.5)

    def test_funding_result(self):
        assert FundingResult(agent_id="a", amount=1, signature="s").success
        assert not FundingResult(agent_id="a", amount=1, error="boom").success
