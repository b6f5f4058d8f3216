"""Tests for decision sources driving wallets."""

import pytest

from agents import (
    AgentAction,
    AgentBehavior,
    AgentDecision,
    AgentRole,
    AgentRunner,
    MarketSnapshot,
    PaymentRelayBehavior,
    WalletHandle,
)
from agentwallet import (
    LAMPORTS_PER_UNIT,
    Ed25519SigningProvider,
    FleetRegistry,
    InMemoryLedger,
    TransactionStatus,
)


UNIT = LAMPORTS_PER_UNIT
VENDOR = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def wallet(ledger):
    registry = FleetRegistry(ledger, Ed25519SigningProvider())
    wallet = registry.create("relay", "Relay", AgentRole.PAYMENT_RELAY.value)
    ledger.set_balance(wallet.public_id, UNIT)
    return wallet


@pytest.fixture
def relay():
    return PaymentRelayBehavior()


class TestModels:

    def test_snapshot_congestion_values(self):
        assert MarketSnapshot(network_congestion="high").network_congestion == "high"
        with pytest.raises(ValueError):
            MarketSnapshot(network_congestion="extreme")

    def test_decision_bounds(self):
        with pytest.raises(ValueError):
            AgentDecision(action=AgentAction.TRANSFER, amount=0)
        with pytest.raises(ValueError):
            AgentDecision(action=AgentAction.HOLD, confidence=1.5)

    def test_behavior_is_abstract(self):
        with pytest.raises(TypeError):
            AgentBehavior()


class TestWalletHandle:

    def test_exposes_only_safe_surface(self, wallet):
        handle = WalletHandle(wallet)

        assert handle.agent_id == "relay"
        assert handle.public_id == wallet.public_id
        for name in ("deactivate", "update_policy", "transfer_unchecked", "export_secret", "approve"):
            assert not hasattr(handle, name)

    def test_cannot_grow_attributes(self, wallet):
        handle = WalletHandle(wallet)
        with pytest.raises(AttributeError):
            handle.extra = 1


class TestPaymentRelay:

    def test_empty_queue_holds(self, relay):
        decision = relay.observe(MarketSnapshot())
        assert decision.action == AgentAction.HOLD
        assert "queue is empty" in decision.reasoning

    def test_observe_does_not_consume(self, relay):
        relay.queue_payment(VENDOR, 1_000, "invoice")
        relay.observe(MarketSnapshot())
        assert len(relay) == 1

    @pytest.mark.asyncio
    async def test_pays_in_fifo_order(self, relay, wallet, ledger):
        relay.queue_payment(VENDOR, UNIT // 100, "first")
        relay.queue_payment(VENDOR, UNIT // 50, "second")
        runner = AgentRunner(wallet, relay)

        first = await runner.step(MarketSnapshot())
        second = await runner.step(MarketSnapshot())
        third = await runner.step(MarketSnapshot())

        assert first.amount == UNIT // 100
        assert second.amount == UNIT // 50
        assert third is None
        assert ledger.balance_of(VENDOR) == UNIT // 100 + UNIT // 50

    @pytest.mark.asyncio
    async def test_blocked_payment_leaves_queue(self, relay, wallet):
        relay.queue_payment(VENDOR, UNIT, "too big")
        runner = AgentRunner(wallet, relay)

        record = await runner.step(MarketSnapshot())

        assert record.status == TransactionStatus.BLOCKED
        assert len(relay) == 0
        assert len(wallet.get_audit_log()) == 1

    @pytest.mark.asyncio
    async def test_runner_logs_each_step(self, relay, wallet):
        relay.queue_payment(VENDOR, UNIT // 100, "invoice #12")
        runner = AgentRunner(wallet, relay)

        await runner.step(MarketSnapshot())
        await runner.step(MarketSnapshot())

        assert len(runner.action_log) == 3
        assert "[relay] Decision: transfer" in runner.action_log[0]
        assert "invoice #12" in runner.action_log[0]
        assert runner.action_log[1].endswith("Transfer success")
        assert "Decision: hold" in runner.action_log[2]

    @pytest.mark.asyncio
    async def test_paused_wallet_blocks_behavior(self, relay, wallet):
        relay.queue_payment(VENDOR, UNIT // 100)
        wallet.deactivate()

        record = await AgentRunner(wallet, relay).step(MarketSnapshot())

        assert record.status == TransactionStatus.BLOCKED
        assert record.reason == "Wallet is deactivated"
