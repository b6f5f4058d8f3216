"""JSON-RPC ledger client.

Talks to a ledger node over JSON-RPC 2.0 using ``requests``. Blocking HTTP
calls run in a worker thread (``asyncio.to_thread``) so a slow node never
stalls the event loop driving the rest of the fleet.

Methods used: getBalance, getLatestBlockhash, sendTransaction,
getSignatureStatuses, requestAirdrop.

Transfers go on the wire as legacy Solana transactions holding a single
System-program transfer instruction, built with ``solders``.
"""

import asyncio
import base64
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from agentwallet.config import WalletSettings
from agentwallet.exceptions import LedgerError, LedgerRPCError
from agentwallet.ledger.base import (
    ChainReference,
    FundingSource,
    LedgerClient,
    SignedTransfer,
    TransferPayload,
)

logger = logging.getLogger(__name__)


class JsonRpcLedgerClient(LedgerClient, FundingSource):
    """Ledger client for a JSON-RPC node.

    Handles request formatting, error unwrapping and confirmation polling.

    Usage Example:
        ```python
        settings = WalletSettings(rpc_url="https://api.devnet.solana.com")
        ledger = JsonRpcLedgerClient(settings)
        balance = await ledger.get_balance("9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin")
        ```
    """

    def __init__(self, settings: WalletSettings, session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            settings (WalletSettings): RPC url, commitment and timeouts
            session (Optional[requests.Session]): Session to reuse (tests pass a mock)
        """
        self.settings = settings
        self.rpc_url = settings.rpc_url
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "User-Agent": "AgentWallet/0.1",
        })
        self._request_id = 0

    def _rpc(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a blocking JSON-RPC call and return its ``result``.

        Raises:
            LedgerRPCError: If the node answers with an error object
            LedgerError: On HTTP, timeout or connection failures
        """
        self._request_id += 1
        body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = self.session.post(
                self.rpc_url,
                json=body,
                timeout=self.settings.rpc_timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise LedgerError(f"RPC {method} to {self.rpc_url} timed out") from e
        except requests.exceptions.ConnectionError as e:
            raise LedgerError(f"Failed to connect to {self.rpc_url}") from e
        except requests.exceptions.HTTPError as e:
            raise LedgerError(f"RPC {method} failed: {e}") from e
        except ValueError as e:
            raise LedgerError(f"RPC {method} returned invalid JSON") from e

        if "error" in data:
            error = data["error"] or {}
            raise LedgerRPCError(error.get("message", "Unknown RPC error"), error)
        return data.get("result")

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        return await asyncio.to_thread(self._rpc, method, params)

    async def get_balance(self, public_id: str) -> int:
        result = await self._call("getBalance", [public_id, {"commitment": self.settings.commitment}])
        return int(result["value"])

    async def get_recent_reference(self) -> ChainReference:
        result = await self._call("getLatestBlockhash", [{"commitment": self.settings.commitment}])
        value = result["value"]
        return ChainReference(
            reference=value["blockhash"],
            expiry_height=int(value["lastValidBlockHeight"]),
        )

    # ========== Wire format ==========

    @staticmethod
    def build_message(payload: TransferPayload) -> Message:
        """System-program transfer from ``source`` (also fee payer) to ``destination``.

        Raises:
            ValueError: If an address or the blockhash is not valid base58
        """
        source = Pubkey.from_string(payload.source)
        instruction = transfer(TransferParams(
            from_pubkey=source,
            to_pubkey=Pubkey.from_string(payload.destination),
            lamports=payload.amount,
        ))
        return Message.new_with_blockhash([instruction], source, Hash.from_string(payload.reference))

    def transfer_message(self, payload: TransferPayload) -> bytes:
        return bytes(self.build_message(payload))

    def build_transaction(self, signed: SignedTransfer) -> Transaction:
        message = self.build_message(signed.payload)
        return Transaction.populate(message, [Signature.from_string(signed.signature)])

    # ========== Transfers ==========

    async def broadcast_and_confirm(self, signed: SignedTransfer) -> str:
        encoded = base64.b64encode(bytes(self.build_transaction(signed))).decode()
        signature = await self._call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.settings.commitment}],
        )
        logger.info("Transaction sent: %s", signature)
        await self._wait_for_confirmation(signature)
        return signature

    async def request_funds(self, public_id: str, amount: int) -> str:
        signature = await self._call("requestAirdrop", [public_id, amount])
        await self._wait_for_confirmation(signature)
        return signature

    async def _wait_for_confirmation(self, signature: str) -> None:
        """Poll getSignatureStatuses until confirmed, failed or timed out."""
        deadline = time.monotonic() + self.settings.confirm_timeout_seconds
        while True:
            result = await self._call("getSignatureStatuses", [[signature]])
            if self._is_confirmed(signature, result):
                return
            if time.monotonic() >= deadline:
                raise LedgerError(
                    f"Transaction {signature} was not confirmed within "
                    f"{self.settings.confirm_timeout_seconds}s; it may still land"
                )
            await asyncio.sleep(self.settings.confirm_poll_seconds)

    def _is_confirmed(self, signature: str, result: Dict[str, Any]) -> bool:
        statuses = (result or {}).get("value") or []
        if not statuses or statuses[0] is None:
            return False
        status = statuses[0]
        if status.get("err"):
            raise LedgerError(f"Transaction {signature} failed: {status['err']}")
        confirmation = status.get("confirmationStatus", "")
        if self.settings.commitment == "finalized":
            return confirmation == "finalized"
        if self.settings.commitment == "confirmed":
            return confirmation in ("confirmed", "finalized")
        return confirmation in ("processed", "confirmed", "finalized")

    def close(self) -> None:
        self.session.close()
