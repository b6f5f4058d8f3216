"""Tests for the ledger collaborators."""

import base64
import json
import pytest
import requests
from unittest.mock import MagicMock

import base58
from solders.signature import Signature
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction

from agentwallet import (
    DEFAULT_POLICY,
    LAMPORTS_PER_UNIT,
    AgentWallet,
    ChainReference,
    Ed25519SigningProvider,
    InMemoryLedger,
    JsonRpcLedgerClient,
    LedgerError,
    LedgerRPCError,
    TransactionStatus,
    WalletMetadata,
    WalletSettings,
)
from agentwallet.ledger import SignedTransfer, TransferPayload


@pytest.fixture
def signer():
    return Ed25519SigningProvider()


@pytest.fixture
def ledger(signer):
    return InMemoryLedger(verifier=signer, reference_ttl=5)


@pytest.fixture
def sender(signer, ledger):
    public_id, secret = signer.generate_identity()
    ledger.set_balance(public_id, 1_000)
    return public_id, secret


@pytest.fixture
def receiver(signer):
    return signer.generate_identity()[0]


async def signed_transfer(ledger, signer, sender, destination, amount):
    public_id, secret = sender
    chain_ref = await ledger.get_recent_reference()
    payload = TransferPayload.build(public_id, destination, amount, chain_ref)
    return SignedTransfer(payload=payload, signature=signer.sign(secret, payload.to_bytes()))


class TestTransferPayload:

    def test_canonical_bytes_are_stable(self):
        ref = ChainReference(reference="abc", expiry_height=10)
        a = TransferPayload.build("src", "dst", 5, ref)
        b = TransferPayload(expiry_height=10, reference="abc", amount=5, destination="dst", source="src")
        assert a.to_bytes() == b.to_bytes()
        assert json.loads(a.to_bytes())["amount"] == 5

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            TransferPayload.build("src", "dst", 0, ChainReference(reference="abc", expiry_height=1))


class TestInMemoryLedger:

    @pytest.mark.asyncio
    async def test_transfer_moves_funds(self, ledger, signer, sender, receiver):
        signed = await signed_transfer(ledger, signer, sender, receiver, 300)
        height = ledger.block_height

        signature = await ledger.broadcast_and_confirm(signed)

        assert signature == signed.signature
        assert await ledger.get_balance(sender[0]) == 700
        assert await ledger.get_balance(receiver) == 300
        assert ledger.block_height == height + 1

    @pytest.mark.asyncio
    async def test_replay_rejected(self, ledger, signer, sender, receiver):
        signed = await signed_transfer(ledger, signer, sender, receiver, 100)
        await ledger.broadcast_and_confirm(signed)

        with pytest.raises(LedgerError, match="already processed"):
            await ledger.broadcast_and_confirm(signed)
        assert ledger.balance_of(receiver) == 100

    @pytest.mark.asyncio
    async def test_expired_reference_rejected(self, ledger, signer, sender, receiver):
        signed = await signed_transfer(ledger, signer, sender, receiver, 100)
        ledger.advance_blocks(6)

        with pytest.raises(LedgerError, match="expired"):
            await ledger.broadcast_and_confirm(signed)

    @pytest.mark.asyncio
    async def test_unknown_reference_rejected(self, ledger, signer, sender, receiver):
        public_id, secret = sender
        payload = TransferPayload.build(public_id, receiver, 1, ChainReference(reference="made-up", expiry_height=99))
        signed = SignedTransfer(payload=payload, signature=signer.sign(secret, payload.to_bytes()))

        with pytest.raises(LedgerError, match="Blockhash not found"):
            await ledger.broadcast_and_confirm(signed)

    @pytest.mark.asyncio
    async def test_forged_signature_rejected(self, ledger, signer, sender, receiver):
        _, other_secret = signer.generate_identity()
        signed = await signed_transfer(ledger, signer, (sender[0], other_secret), receiver, 100)

        with pytest.raises(LedgerError, match="Signature verification failed"):
            await ledger.broadcast_and_confirm(signed)
        assert ledger.balance_of(sender[0]) == 1_000

    @pytest.mark.asyncio
    async def test_overdraft_rejected(self, ledger, signer, sender, receiver):
        signed = await signed_transfer(ledger, signer, sender, receiver, 5_000)
        with pytest.raises(LedgerError, match="Insufficient funds"):
            await ledger.broadcast_and_confirm(signed)

    @pytest.mark.asyncio
    async def test_request_funds(self, ledger, receiver):
        signature = await ledger.request_funds(receiver, 250)
        assert signature
        assert ledger.balance_of(receiver) == 250

    @pytest.mark.asyncio
    async def test_request_funds_cap_and_validation(self, receiver):
        ledger = InMemoryLedger(max_fund_amount=100)
        with pytest.raises(LedgerError, match="faucet limit"):
            await ledger.request_funds(receiver, 101)
        with pytest.raises(LedgerError, match="positive"):
            await ledger.request_funds(receiver, 0)

    @pytest.mark.asyncio
    async def test_injected_failures_are_fifo_and_single_use(self, ledger, receiver):
        ledger.inject_failure("balance", "first")
        ledger.inject_failure("balance", "second")

        with pytest.raises(LedgerError, match="first"):
            await ledger.get_balance(receiver)
        with pytest.raises(LedgerError, match="second"):
            await ledger.get_balance(receiver)
        assert await ledger.get_balance(receiver) == 0

    def test_inject_unknown_operation(self, ledger):
        with pytest.raises(ValueError):
            ledger.inject_failure("teleport")

    def test_negative_balance_rejected(self, ledger, receiver):
        with pytest.raises(ValueError):
            ledger.set_balance(receiver, -1)


def rpc_response(result=None, error=None, status=200):
    response = MagicMock()
    response.status_code = status
    body = {"jsonrpc": "2.0", "id": 1}
    if error is not None:
        body["error"] = error
    else:
        body["result"] = result
    response.json.return_value = body
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Server Error")
    return response


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def rpc_settings():
    return WalletSettings(
        rpc_url="http://ledger.test",
        confirm_timeout_seconds=0.05,
        confirm_poll_seconds=0.01,
    )


@pytest.fixture
def client(rpc_settings, session):
    return JsonRpcLedgerClient(rpc_settings, session=session)


BLOCKHASH = base58.b58encode(bytes(range(1, 33))).decode()


@pytest.fixture
def rpc_transfer(client, signer):
    source, secret = signer.generate_identity()
    destination, _ = signer.generate_identity()
    payload = TransferPayload(source=source, destination=destination, amount=5, reference=BLOCKHASH, expiry_height=10)
    return SignedTransfer(payload=payload, signature=signer.sign(secret, client.transfer_message(payload)))


def sent_body(session, call_index=0):
    return session.post.call_args_list[call_index].kwargs["json"]


class TestJsonRpcLedgerClient:

    @pytest.mark.asyncio
    async def test_get_balance(self, client, session):
        session.post.return_value = rpc_response({"context": {"slot": 1}, "value": 1234})

        assert await client.get_balance("addr") == 1234

        body = sent_body(session)
        assert body["method"] == "getBalance"
        assert body["params"] == ["addr", {"commitment": "confirmed"}]
        assert body["jsonrpc"] == "2.0"
        assert session.post.call_args.kwargs["timeout"] == client.settings.rpc_timeout_seconds

    @pytest.mark.asyncio
    async def test_get_recent_reference(self, client, session):
        session.post.return_value = rpc_response(
            {"value": {"blockhash": "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N", "lastValidBlockHeight": 3090}}
        )

        ref = await client.get_recent_reference()

        assert ref.reference == "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"
        assert ref.expiry_height == 3090
        assert sent_body(session)["method"] == "getLatestBlockhash"

    @pytest.mark.asyncio
    async def test_broadcast_and_confirm(self, client, session, rpc_transfer):
        session.post.side_effect = [
            rpc_response(rpc_transfer.signature),
            rpc_response({"value": [None]}),
            rpc_response({"value": [{"confirmationStatus": "processed", "err": None}]}),
            rpc_response({"value": [{"confirmationStatus": "confirmed", "err": None}]}),
        ]

        assert await client.broadcast_and_confirm(rpc_transfer) == rpc_transfer.signature

        send = sent_body(session, 0)
        expected = Transaction.populate(
            JsonRpcLedgerClient.build_message(rpc_transfer.payload),
            [Signature.from_string(rpc_transfer.signature)],
        )
        assert send["method"] == "sendTransaction"
        assert send["params"] == [
            base64.b64encode(bytes(expected)).decode(),
            {"encoding": "base64", "preflightCommitment": "confirmed"},
        ]
        assert sent_body(session, 1)["method"] == "getSignatureStatuses"
        assert sent_body(session, 1)["params"] == [[rpc_transfer.signature]]

    @pytest.mark.asyncio
    async def test_wire_transaction_is_signed_system_transfer(self, client, session, rpc_transfer):
        session.post.side_effect = [
            rpc_response(rpc_transfer.signature),
            rpc_response({"value": [{"confirmationStatus": "confirmed", "err": None}]}),
        ]
        await client.broadcast_and_confirm(rpc_transfer)

        tx = Transaction.from_bytes(base64.b64decode(sent_body(session, 0)["params"][0]))
        tx.verify()
        payload = rpc_transfer.payload
        assert str(tx.signatures[0]) == rpc_transfer.signature
        assert str(tx.message.recent_blockhash) == BLOCKHASH
        assert [str(key) for key in tx.message.account_keys] == [
            payload.source, payload.destination, str(SYSTEM_PROGRAM_ID),
        ]

    def test_invalid_address_rejected(self, client):
        payload = TransferPayload(source="a", destination="b", amount=5, reference=BLOCKHASH, expiry_height=10)
        with pytest.raises(ValueError):
            client.transfer_message(payload)

    @pytest.mark.asyncio
    async def test_confirmation_error(self, client, session, rpc_transfer):
        session.post.side_effect = [
            rpc_response(rpc_transfer.signature),
            rpc_response({"value": [{"confirmationStatus": "processed", "err": {"InstructionError": [0, "Custom"]}}]}),
        ]

        with pytest.raises(LedgerError, match="failed"):
            await client.broadcast_and_confirm(rpc_transfer)

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self, client, session, rpc_transfer):
        session.post.side_effect = [rpc_response(rpc_transfer.signature)] + [rpc_response({"value": [None]})] * 50

        with pytest.raises(LedgerError, match="not confirmed"):
            await client.broadcast_and_confirm(rpc_transfer)

    @pytest.mark.asyncio
    async def test_rpc_error_object(self, client, session):
        session.post.return_value = rpc_response(error={"code": -32002, "message": "Blockhash not found"})

        with pytest.raises(LedgerRPCError, match="Blockhash not found") as exc_info:
            await client.get_balance("addr")
        assert exc_info.value.error["code"] == -32002

    @pytest.mark.asyncio
    async def test_request_airdrop(self, client, session):
        session.post.side_effect = [
            rpc_response("airdrop-sig"),
            rpc_response({"value": [{"confirmationStatus": "finalized", "err": None}]}),
        ]

        assert await client.request_funds("addr", 1_000_000_000) == "airdrop-sig"
        assert sent_body(session)["params"] == ["addr", 1_000_000_000]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc, message", [
        (requests.exceptions.Timeout("slow"), "timed out"),
        (requests.exceptions.ConnectionError("refused"), "Failed to connect"),
    ])
    async def test_transport_errors(self, client, session, exc, message):
        session.post.side_effect = exc
        with pytest.raises(LedgerError, match=message):
            await client.get_balance("addr")

    @pytest.mark.asyncio
    async def test_http_error(self, client, session):
        session.post.return_value = rpc_response(status=503)
        with pytest.raises(LedgerError, match="503"):
            await client.get_balance("addr")

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, session):
        response = rpc_response()
        response.json.side_effect = ValueError("no json")
        session.post.return_value = response

        with pytest.raises(LedgerError, match="invalid JSON"):
            await client.get_balance("addr")

    def test_finalized_commitment_waits_for_finalized(self, session):
        client = JsonRpcLedgerClient(WalletSettings(commitment="finalized"), session=session)
        confirmed = {"value": [{"confirmationStatus": "confirmed", "err": None}]}
        finalized = {"value": [{"confirmationStatus": "finalized", "err": None}]}

        assert client._is_confirmed("s", confirmed) is False
        assert client._is_confirmed("s", finalized) is True


class TestJsonRpcWalletTransfer:
    """A wallet transfer through the JSON-RPC client against a scripted node."""

    @pytest.fixture
    def node(self, session):
        sent = []

        def respond(url, json, timeout):
            method = json["method"]
            if method == "getBalance":
                return rpc_response({"context": {"slot": 1}, "value": LAMPORTS_PER_UNIT})
            if method == "getLatestBlockhash":
                return rpc_response({"value": {"blockhash": BLOCKHASH, "lastValidBlockHeight": 100}})
            if method == "sendTransaction":
                tx = Transaction.from_bytes(base64.b64decode(json["params"][0]))
                tx.verify()
                sent.append(tx)
                return rpc_response(str(tx.signatures[0]))
            return rpc_response({"value": [{"confirmationStatus": "confirmed", "err": None}]})

        session.post.side_effect = respond
        return sent

    @pytest.mark.asyncio
    async def test_transfer_sends_verifiable_transaction(self, client, signer, node, receiver):
        metadata = WalletMetadata(agent_id="relay", agent_name="Relay", role="payment-relay", policy=DEFAULT_POLICY)
        wallet = AgentWallet(metadata, client, signer)

        record = await wallet.transfer(receiver, LAMPORTS_PER_UNIT // 100)

        assert record.status == TransactionStatus.SUCCESS
        assert len(node) == 1
        assert record.signature == str(node[0].signatures[0])
        assert str(node[0].message.account_keys[0]) == wallet.public_id
        assert wallet.state.daily_spent == LAMPORTS_PER_UNIT // 100
