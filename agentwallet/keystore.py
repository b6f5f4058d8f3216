"""Keystore - passphrase-encrypted export of a wallet's signing identity.

The exported secret is encrypted with AES-256-GCM under a key derived from
the passphrase with scrypt. The wallet's public id and agent id travel in
clear text next to the ciphertext but are bound to it as associated data, so
changing any byte of the envelope makes decryption fail instead of yielding
a different identity.

Envelope (JSON, bytes hex-encoded):

    {"version": 1, "kdf": "scrypt", "kdf_n": 16384, "salt": "...",
     "iv": "...", "cipher_text": "...", "public_id": "...", "agent_id": "..."}
"""

import secrets
from typing import Dict, Literal, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import BaseModel, Field, ValidationError, field_validator

from agentwallet.exceptions import DecryptionError


ENVELOPE_VERSION = 1
SALT_LENGTH = 16
IV_LENGTH = 12
KEY_LENGTH = 32
TAG_LENGTH = 16
SCRYPT_R = 8
SCRYPT_P = 1
DEFAULT_SCRYPT_N = 2 ** 14
MAX_SCRYPT_N = 2 ** 17


class EncryptedExport(BaseModel):
    """An encrypted signing identity.

    Safe to store or transmit: without the passphrase it reveals only the
    public id and agent id.

    Attributes:
        version (int): Envelope format version
        kdf (str): Key derivation function, always "scrypt"
        kdf_n (int): scrypt cost parameter used for this envelope, a power of
            two no larger than MAX_SCRYPT_N
        salt (str): Hex scrypt salt (16 bytes)
        iv (str): Hex AES-GCM nonce (12 bytes)
        cipher_text (str): Hex ciphertext with the 16-byte GCM tag appended
        public_id (str): Public id of the encrypted identity
        agent_id (str): Agent the identity belonged to when exported
    """

    version: Literal[1] = ENVELOPE_VERSION
    kdf: Literal["scrypt"] = "scrypt"
    kdf_n: int = Field(default=DEFAULT_SCRYPT_N, ge=2, le=MAX_SCRYPT_N)
    salt: str
    iv: str
    cipher_text: str
    public_id: str
    agent_id: str

    @field_validator("kdf_n")
    @classmethod
    def check_power_of_two(cls, v: int) -> int:
        if v & (v - 1):
            raise ValueError("kdf_n must be a power of two")
        return v

    def associated_data(self) -> bytes:
        return f"{self.version}:{self.public_id}:{self.agent_id}".encode()


def _derive_key(passphrase: str, salt: bytes, n: int) -> bytes:
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=n, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt_secret(
    exported_secret: str,
    passphrase: str,
    public_id: str,
    agent_id: str,
    scrypt_n: int = DEFAULT_SCRYPT_N,
) -> EncryptedExport:
    """Encrypt an exported secret under a passphrase.

    Args:
        exported_secret (str): Output of ``SigningProvider.export_secret``
        passphrase (str): Passphrase to derive the key from
        public_id (str): Public id of the identity (bound as associated data)
        agent_id (str): Owning agent id (bound as associated data)
        scrypt_n (int): scrypt cost parameter (power of two, at most MAX_SCRYPT_N)

    Returns:
        EncryptedExport: The envelope

    Raises:
        ValueError: If the passphrase is empty or ``scrypt_n`` is out of range
    """
    if not passphrase:
        raise ValueError("Passphrase must not be empty")

    salt = secrets.token_bytes(SALT_LENGTH)
    iv = secrets.token_bytes(IV_LENGTH)
    envelope = EncryptedExport(
        kdf_n=scrypt_n,
        salt=salt.hex(),
        iv=iv.hex(),
        cipher_text="",
        public_id=public_id,
        agent_id=agent_id,
    )
    key = _derive_key(passphrase, salt, scrypt_n)
    cipher_text = AESGCM(key).encrypt(iv, exported_secret.encode("utf-8"), envelope.associated_data())
    return envelope.model_copy(update={"cipher_text": cipher_text.hex()})


def parse_envelope(data: Union[EncryptedExport, str, bytes, Dict]) -> EncryptedExport:
    """Accept an envelope model, its JSON text or bytes, or a decoded dict.

    Raises:
        DecryptionError: If the input is not a well-formed envelope
    """
    if isinstance(data, EncryptedExport):
        return data
    try:
        if isinstance(data, (str, bytes)):
            return EncryptedExport.model_validate_json(data)
        return EncryptedExport.model_validate(data)
    except ValidationError as e:
        raise DecryptionError("Malformed encrypted export") from e


def decrypt_secret(envelope: Union[EncryptedExport, str, bytes, Dict], passphrase: str) -> str:
    """Decrypt an envelope and return the exported secret.

    Raises:
        DecryptionError: Wrong passphrase, tampered envelope, or malformed input.
            The message does not say which.
    """
    envelope = parse_envelope(envelope)
    try:
        salt = bytes.fromhex(envelope.salt)
        iv = bytes.fromhex(envelope.iv)
        cipher_text = bytes.fromhex(envelope.cipher_text)
    except ValueError as e:
        raise DecryptionError("Malformed encrypted export") from e

    if len(salt) != SALT_LENGTH or len(iv) != IV_LENGTH or len(cipher_text) <= TAG_LENGTH:
        raise DecryptionError("Malformed encrypted export")

    try:
        key = _derive_key(passphrase, salt, envelope.kdf_n)
        plain = AESGCM(key).decrypt(iv, cipher_text, envelope.associated_data())
        return plain.decode("utf-8")
    except (InvalidTag, ValueError, MemoryError) as e:
        raise DecryptionError("Could not decrypt export: wrong passphrase or corrupted data") from e
