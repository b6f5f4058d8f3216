"""Ed25519 signing provider.

Keys are Ed25519 (PyNaCl). Public ids, signatures and exported secrets are
base58 strings, the encoding Solana-style ledgers use for addresses.
The exported secret is the 64-byte seed||public-key form.
"""

from typing import Tuple

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from agentwallet.signing.base import SecretMaterial, SigningProvider


SEED_LENGTH = 32
EXPORTED_SECRET_LENGTH = 64


class Ed25519SigningProvider(SigningProvider):
    """In-process Ed25519 signer.

    The SecretMaterial it produces holds the 32-byte seed.
    """

    def generate_identity(self) -> Tuple[str, SecretMaterial]:
        signing_key = SigningKey.generate()
        secret = SecretMaterial(signing_key.encode())
        return self._encode_public(signing_key.verify_key), secret

    def public_id_for(self, secret: SecretMaterial) -> str:
        return self._encode_public(self._signing_key(secret).verify_key)

    def sign(self, secret: SecretMaterial, payload: bytes) -> str:
        signed = self._signing_key(secret).sign(payload)
        return base58.b58encode(signed.signature).decode()

    def verify(self, public_id: str, payload: bytes, signature: str) -> bool:
        try:
            verify_key = VerifyKey(base58.b58decode(public_id))
            verify_key.verify(payload, base58.b58decode(signature))
        except (BadSignatureError, ValueError, TypeError):
            return False
        return True

    def export_secret(self, secret: SecretMaterial) -> str:
        signing_key = self._signing_key(secret)
        keypair = signing_key.encode() + signing_key.verify_key.encode()
        return base58.b58encode(keypair).decode()

    def identity_from_export(self, exported: str) -> Tuple[str, SecretMaterial]:
        try:
            raw = base58.b58decode(exported)
        except ValueError as e:
            raise ValueError("Exported secret is not valid base58") from e

        if len(raw) != EXPORTED_SECRET_LENGTH:
            raise ValueError(
                f"Exported secret must decode to {EXPORTED_SECRET_LENGTH} bytes, got {len(raw)}"
            )

        seed, public = raw[:SEED_LENGTH], raw[SEED_LENGTH:]
        signing_key = SigningKey(seed)
        if signing_key.verify_key.encode() != public:
            raise ValueError("Exported secret does not match its embedded public key")
        return self._encode_public(signing_key.verify_key), SecretMaterial(seed)

    @staticmethod
    def _signing_key(secret: SecretMaterial) -> SigningKey:
        return SigningKey(secret.reveal())

    @staticmethod
    def _encode_public(verify_key: VerifyKey) -> str:
        return base58.b58encode(verify_key.encode()).decode()
