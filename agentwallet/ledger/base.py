"""Base Ledger Client Interface.

Defines the collaborators the wallet core uses to talk to the distributed
ledger, and the payload types exchanged with them. Implementations can be
in-process (InMemoryLedger) or remote (JsonRpcLedgerClient).
"""

import json
from abc import ABC, abstractmethod
from pydantic import BaseModel, ConfigDict, Field


class ChainReference(BaseModel):
    """A recent-state reference used as an anti-replay token.

    A transfer signed against a reference is only accepted by the ledger
    until the chain reaches ``expiry_height``.

    Attributes:
        reference (str): Opaque recent-state identifier (a blockhash).
        expiry_height (int): Last block height at which it is valid.
    """

    model_config = ConfigDict(frozen=True)

    reference: str = Field(description="Recent blockhash or equivalent")
    expiry_height: int = Field(ge=0, description="Last valid block height")


class TransferPayload(BaseModel):
    """The unsigned body of a value transfer.

    ``to_bytes()`` is its canonical encoding, sorted-key compact JSON. It is
    what gets signed unless the ledger defines its own transfer message.
    """

    model_config = ConfigDict(frozen=True)

    source: str = Field(description="Sending public id (fee payer)")
    destination: str = Field(description="Receiving public id")
    amount: int = Field(gt=0, description="Amount in lamports")
    reference: str = Field(description="ChainReference.reference")
    expiry_height: int = Field(ge=0, description="ChainReference.expiry_height")

    @classmethod
    def build(cls, source: str, destination: str, amount: int,
              chain_ref: ChainReference) -> "TransferPayload":
        return cls(
            source=source,
            destination=destination,
            amount=amount,
            reference=chain_ref.reference,
            expiry_height=chain_ref.expiry_height,
        )

    def to_bytes(self) -> bytes:
        return json.dumps(self.model_dump(), sort_keys=True, separators=(",", ":")).encode()


class SignedTransfer(BaseModel):
    """A transfer payload plus the sender's signature over the ledger's transfer message."""

    model_config = ConfigDict(frozen=True)

    payload: TransferPayload
    signature: str = Field(description="Encoded signature of the transfer message")


class LedgerClient(ABC):
    """Abstract base class for ledger clients.

    All methods are coroutines: they are the only points where a transfer
    suspends.

    - **get_balance**: authoritative balance of an address
    - **get_recent_reference**: fresh anti-replay token for signing
    - **broadcast_and_confirm**: submit a signed transfer and wait for it

    ``transfer_message`` gives the exact bytes the sender must sign for a
    payload. Ledgers with their own wire format override it.

    Usage Example:
        ```python
        class MyLedger(LedgerClient):
            async def get_balance(self, public_id):
                ...

            async def get_recent_reference(self):
                return ChainReference(reference="...", expiry_height=1200)

            async def broadcast_and_confirm(self, signed):
                ...
                return signed.signature
        ```
    """

    @abstractmethod
    async def get_balance(self, public_id: str) -> int:
        """Get the confirmed balance of ``public_id`` in lamports.

        Raises:
            LedgerError: If the ledger cannot be reached
        """
        pass

    @abstractmethod
    async def get_recent_reference(self) -> ChainReference:
        """Get a recent reference to sign a new transfer against.

        Raises:
            LedgerError: If the ledger cannot be reached
        """
        pass

    @abstractmethod
    async def broadcast_and_confirm(self, signed: SignedTransfer) -> str:
        """Submit a signed transfer and wait until it is confirmed.

        Returns:
            str: The transfer's ledger signature

        Raises:
            LedgerError: If the transfer is rejected, expires or times out.
                A timeout does not prove the transfer did not land.
        """
        pass

    def transfer_message(self, payload: TransferPayload) -> bytes:
        """Bytes the sender signs for ``payload``. Defaults to its canonical JSON."""
        return payload.to_bytes()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class FundingSource(ABC):
    """Something that can put funds into an address (a faucet or treasury)."""

    @abstractmethod
    async def request_funds(self, public_id: str, amount: int) -> str:
        """Credit ``amount`` lamports to ``public_id`` and wait for confirmation.

        Returns:
            str: Signature of the funding transaction

        Raises:
            LedgerError: If funding is refused (e.g. rate limited)
        """
        pass
