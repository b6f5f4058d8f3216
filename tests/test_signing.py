"""Tests for the Ed25519 signing provider."""

import base58
import pytest

from agentwallet import Ed25519SigningProvider, SecretMaterial


@pytest.fixture
def signer():
    return Ed25519SigningProvider()


class TestEd25519SigningProvider:

    def test_generate_identity(self, signer):
        public_id, secret = signer.generate_identity()

        assert len(base58.b58decode(public_id)) == 32
        assert isinstance(secret, SecretMaterial)
        assert signer.public_id_for(secret) == public_id

    def test_identities_are_unique(self, signer):
        assert signer.generate_identity()[0] != signer.generate_identity()[0]

    def test_sign_and_verify(self, signer):
        public_id, secret = signer.generate_identity()
        signature = signer.sign(secret, b"payload")

        assert len(base58.b58decode(signature)) == 64
        assert signer.verify(public_id, b"payload", signature) is True
        assert signer.verify(public_id, b"other payload", signature) is False

    def test_verify_with_wrong_key(self, signer):
        _, secret = signer.generate_identity()
        other_public_id, _ = signer.generate_identity()
        signature = signer.sign(secret, b"payload")

        assert signer.verify(other_public_id, b"payload", signature) is False

    @pytest.mark.parametrize("public_id, signature", [
        ("not-base58-0OIl", "1111"),
        ("1111", "1111"),
    ])
    def test_verify_garbage_is_false(self, signer, public_id, signature):
        assert signer.verify(public_id, b"payload", signature) is False

    def test_export_is_seed_plus_public_key(self, signer):
        public_id, secret = signer.generate_identity()
        raw = base58.b58decode(signer.export_secret(secret))

        assert len(raw) == 64
        assert base58.b58encode(raw[32:]).decode() == public_id

    def test_identity_from_export(self, signer):
        public_id, secret = signer.generate_identity()
        restored_id, restored = signer.identity_from_export(signer.export_secret(secret))

        assert restored_id == public_id
        assert restored == secret

    @pytest.mark.parametrize("exported", [
        "0OIl",
        base58.b58encode(b"\x01" * 32).decode(),
    ])
    def test_identity_from_bad_export(self, signer, exported):
        with pytest.raises(ValueError):
            signer.identity_from_export(exported)

    def test_identity_from_mismatched_export(self, signer):
        _, secret = signer.generate_identity()
        other_public_id, _ = signer.generate_identity()
        forged = base58.b58encode(secret.reveal() + base58.b58decode(other_public_id)).decode()

        with pytest.raises(ValueError, match="does not match"):
            signer.identity_from_export(forged)
