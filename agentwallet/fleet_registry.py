"""Fleet Registry - creation and coordination of many agent wallets.

The FleetRegistry is responsible for:
- Creating wallets and keeping agent ids unique
- Looking wallets up by agent id
- Funding agents from a FundingSource (one at a time, rate-limit friendly)
- Refreshing every balance concurrently
- Encrypted export and import of fleet members
- Pausing and resuming the whole fleet
- Fleet-wide reporting

There is no module-level registry. Build one per process (or per test) and
pass it to whatever needs it, e.g. ``agentwallet.api.create_app(registry)``.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from agentwallet.agent_wallet import AgentWallet
from agentwallet.config import WalletSettings
from agentwallet.exceptions import DuplicateAgent, LedgerError, UnknownAgent
from agentwallet.keystore import EncryptedExport
from agentwallet.ledger.base import FundingSource, LedgerClient
from agentwallet.models import (
    LAMPORTS_PER_UNIT,
    FleetSummary,
    FundingResult,
    SpendingPolicy,
    TransactionStatus,
    WalletMetadata,
)
from agentwallet.policy_engine import Clock, PolicyEngine, format_units
from agentwallet.signing import SecretMaterial, SigningProvider

logger = logging.getLogger(__name__)


class FleetRegistry:
    """Registry and coordinator for a fleet of agent wallets.

    Storage:
        In-memory dictionary keyed by agent id, in creation order. Wallets
        are never removed.

    Concurrency:
        Each wallet serializes its own transfers. The registry adds no
        cross-wallet locking, so fleet-wide operations are not atomic:

        - ``pause_all`` is fail-safe. If it is interrupted, some wallets are
          paused and the rest are as before; the fleet is only ever more
          restricted than it was.
        - ``resume_all`` is not. If it is interrupted, some wallets are live
          again while others are still paused. Re-run ``resume_all`` to
          completion, or check ``summary().active_agents``.

    Usage Example:
        ```python
        ledger = InMemoryLedger()
        registry = FleetRegistry(ledger, Ed25519SigningProvider())

        registry.create_fleet([
            {"agent_id": "treasury", "agent_name": "Treasury", "role": "treasury-manager"},
            {"agent_id": "relay", "agent_name": "Relay", "role": "payment-relay"},
        ])
        results = await registry.fund_all(LAMPORTS_PER_UNIT)
        await registry.refresh_all()

        summary = registry.summary()
        print(f"{summary.active_agents}/{summary.total_agents} active")
        ```
    """

    def __init__(
        self,
        ledger: LedgerClient,
        signer: SigningProvider,
        funding: Optional[FundingSource] = None,
        settings: Optional[WalletSettings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize the registry.

        Args:
            ledger (LedgerClient): Ledger shared by every wallet
            signer (SigningProvider): Signing provider shared by every wallet
            funding (Optional[FundingSource]): Where ``fund_agent`` gets funds.
                Defaults to ``ledger`` when it is also a FundingSource.
            settings (Optional[WalletSettings]): Defaults for policy, funding
                cap and funding delay
            clock (Optional[Callable[[], datetime]]): Clock for every wallet's
                policy engine
        """
        if funding is None and isinstance(ledger, FundingSource):
            funding = ledger

        self.ledger = ledger
        self.signer = signer
        self.funding = funding
        self.settings = settings or WalletSettings()
        self.clock = clock
        self._wallets: Dict[str, AgentWallet] = {}

    # ========== Creation & lookup ==========

    def create(
        self,
        agent_id: str,
        agent_name: str,
        role: str,
        policy: Optional[SpendingPolicy] = None,
        secret: Optional[SecretMaterial] = None,
    ) -> AgentWallet:
        """Create and register a wallet.

        Args:
            agent_id (str): Unique agent identifier
            agent_name (str): Display name
            role (str): Role tag
            policy (Optional[SpendingPolicy]): Spending policy; the settings'
                default policy when omitted
            secret (Optional[SecretMaterial]): Existing identity to reuse

        Returns:
            AgentWallet: The new wallet (balance 0 until funded or refreshed)

        Raises:
            DuplicateAgent: If ``agent_id`` is already registered
        """
        if agent_id in self._wallets:
            raise DuplicateAgent(agent_id)

        metadata = WalletMetadata(
            agent_id=agent_id,
            agent_name=agent_name,
            role=role,
            policy=policy or self.settings.default_policy(),
        )
        wallet = AgentWallet(
            metadata,
            self.ledger,
            self.signer,
            secret=secret,
            engine=PolicyEngine(clock=self.clock),
        )
        self._wallets[agent_id] = wallet
        return wallet

    def register(self, wallet: AgentWallet) -> AgentWallet:
        """Register an already-built wallet (e.g. one restored from an export).

        Raises:
            DuplicateAgent: If its agent id is already registered
        """
        if wallet.agent_id in self._wallets:
            raise DuplicateAgent(wallet.agent_id)
        self._wallets[wallet.agent_id] = wallet
        return wallet

    def create_fleet(self, configs: Iterable[Mapping[str, Any]]) -> List[AgentWallet]:
        """Create one wallet per config mapping.

        Each mapping holds ``agent_id``, ``agent_name``, ``role`` and an
        optional ``policy``. Wallets created before a duplicate id is hit stay
        registered.
        """
        return [
            self.create(
                cfg["agent_id"],
                cfg["agent_name"],
                cfg["role"],
                policy=cfg.get("policy"),
            )
            for cfg in configs
        ]

    def get(self, agent_id: str) -> AgentWallet:
        """Get a wallet by agent id.

        Raises:
            UnknownAgent: If no wallet is registered under ``agent_id``
        """
        wallet = self._wallets.get(agent_id)
        if wallet is None:
            raise UnknownAgent(agent_id)
        return wallet

    def contains(self, agent_id: str) -> bool:
        return agent_id in self._wallets

    def list_wallets(self) -> List[AgentWallet]:
        """All wallets in creation order (a copy)."""
        return list(self._wallets.values())

    def __len__(self) -> int:
        return len(self._wallets)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._wallets

    # ========== Export / import ==========

    def export_agent(self, agent_id: str, passphrase: str) -> EncryptedExport:
        """Encrypted export of one agent's identity at ``settings.scrypt_n`` cost."""
        return self.get(agent_id).export_encrypted(passphrase, scrypt_n=self.settings.scrypt_n)

    def import_agent(
        self,
        envelope: Union[EncryptedExport, str, Dict[str, Any]],
        passphrase: str,
        agent_id: str,
        agent_name: str,
        role: str,
        policy: Optional[SpendingPolicy] = None,
    ) -> AgentWallet:
        """Restore an encrypted export as a new fleet member.

        The restored wallet starts with an empty audit log; its spending
        history does not travel with the export.

        Raises:
            DuplicateAgent: If ``agent_id`` is already registered
            DecryptionError: If the envelope cannot be decrypted or verified
        """
        if agent_id in self._wallets:
            raise DuplicateAgent(agent_id)

        metadata = WalletMetadata(
            agent_id=agent_id,
            agent_name=agent_name,
            role=role,
            policy=policy or self.settings.default_policy(),
        )
        wallet = AgentWallet.import_encrypted(
            envelope,
            passphrase,
            self.ledger,
            self.signer,
            metadata,
            engine=PolicyEngine(clock=self.clock),
        )
        logger.info("Imported agent %s (%s)", agent_id, wallet.public_id)
        return self.register(wallet)

    # ========== Funding & balances ==========

    async def fund_agent(self, agent_id: str, amount: int = LAMPORTS_PER_UNIT) -> str:
        """Fund one agent, wait for confirmation and refresh its balance.

        The amount is capped at ``settings.max_fund_amount``.

        Returns:
            str: Funding transaction signature

        Raises:
            UnknownAgent: If the agent does not exist
            LedgerError: If funding is refused or no funding source is set
        """
        wallet = self.get(agent_id)
        if self.funding is None:
            raise LedgerError("No funding source configured")

        capped = min(amount, self.settings.max_fund_amount)
        signature = await self.funding.request_funds(wallet.public_id, capped)
        await wallet.refresh_balance()
        logger.info("Funded agent %s with %s units: %s", agent_id, format_units(capped), signature)
        return signature

    async def fund_all(self, amount: int = LAMPORTS_PER_UNIT,
                       delay_seconds: Optional[float] = None) -> List[FundingResult]:
        """Fund every agent, one at a time.

        Waits ``delay_seconds`` (default ``settings.fund_delay_seconds``)
        between agents. A failure is logged and skipped; the remaining agents
        are still funded.

        Returns:
            List[FundingResult]: One result per agent, in creation order
        """
        if delay_seconds is None:
            delay_seconds = self.settings.fund_delay_seconds

        results: List[FundingResult] = []
        wallets = self.list_wallets()
        for index, wallet in enumerate(wallets):
            capped = min(amount, self.settings.max_fund_amount)
            try:
                signature = await self.fund_agent(wallet.agent_id, amount)
                results.append(FundingResult(agent_id=wallet.agent_id, amount=capped, signature=signature))
            except Exception as e:
                logger.warning("Funding failed for agent %s: %s", wallet.agent_id, e)
                results.append(FundingResult(agent_id=wallet.agent_id, amount=capped, error=str(e)))

            if delay_seconds > 0 and index < len(wallets) - 1:
                await asyncio.sleep(delay_seconds)
        return results

    async def refresh_all(self) -> Dict[str, BaseException]:
        """Refresh every wallet's balance concurrently.

        Returns:
            Dict[str, BaseException]: Errors by agent id. Empty when every
            refresh succeeded. A failing wallet keeps its previous balance.
        """
        wallets = self.list_wallets()
        outcomes = await asyncio.gather(
            *(w.refresh_balance() for w in wallets),
            return_exceptions=True,
        )

        failures: Dict[str, BaseException] = {}
        for wallet, outcome in zip(wallets, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Balance refresh failed for agent %s: %s", wallet.agent_id, outcome)
                failures[wallet.agent_id] = outcome
        return failures

    # ========== Pause / resume ==========

    def pause(self, agent_id: str) -> AgentWallet:
        wallet = self.get(agent_id)
        wallet.deactivate()
        return wallet

    def resume(self, agent_id: str) -> AgentWallet:
        wallet = self.get(agent_id)
        wallet.reactivate()
        return wallet

    def pause_all(self) -> int:
        """Pause every wallet. Returns how many were paused."""
        wallets = self.list_wallets()
        for wallet in wallets:
            wallet.deactivate()
        logger.info("Paused %d agents", len(wallets))
        return len(wallets)

    def resume_all(self) -> int:
        """Resume every wallet. Returns how many were resumed.

        Not atomic; see the class docstring.
        """
        wallets = self.list_wallets()
        for wallet in wallets:
            wallet.reactivate()
        logger.info("Resumed %d agents", len(wallets))
        return len(wallets)

    # ========== Reporting ==========

    def summary(self) -> FleetSummary:
        wallets = self.list_wallets()
        total_transactions = sum(w.state.transaction_count for w in wallets)
        successful = sum(w.state.count_by_status(TransactionStatus.SUCCESS) for w in wallets)

        return FleetSummary(
            total_agents=len(wallets),
            active_agents=sum(1 for w in wallets if w.is_active),
            total_balance=sum(w.state.balance for w in wallets),
            total_transactions=total_transactions,
            success_rate=successful / total_transactions if total_transactions else 0.0,
        )

    def __repr__(self) -> str:
        return f"FleetRegistry(agents={len(self._wallets)})"
