"""Signing Provider Interface.

Defines the collaborator that owns key generation and signature production.
The wallet core never touches raw key bytes; it holds an opaque
SecretMaterial and hands it back to the provider.
"""

from abc import ABC, abstractmethod
from typing import Tuple


class SecretMaterial:
    """Opaque holder for a signing secret.

    The bytes are only reachable through ``reveal()``, which signing providers
    call. ``repr`` and ``str`` never include them, so a secret that ends up in
    a log line or a traceback does not leak.
    """

    __slots__ = ("_secret",)

    def __init__(self, secret: bytes):
        self._secret = bytes(secret)

    def reveal(self) -> bytes:
        return self._secret

    def __repr__(self) -> str:
        return "SecretMaterial(<redacted>)"

    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretMaterial):
            return NotImplemented
        return self._secret == other._secret

    def __hash__(self) -> int:
        return hash(self._secret)


class SigningProvider(ABC):
    """Abstract base class for signing providers.

    A signing provider handles everything key-related for a wallet:

    - **generate_identity**: create a fresh (public id, secret) pair
    - **sign**: sign a payload with a secret
    - **export_secret**: the one explicit path that turns a secret into a string
    - **identity_from_export**: rebuild an identity from an exported secret

    Usage Example:
        ```python
        signer = Ed25519SigningProvider()
        public_id, secret = signer.generate_identity()

        signature = signer.sign(secret, b"payload")
        assert signer.verify(public_id, b"payload", signature)
        ```
    """

    @abstractmethod
    def generate_identity(self) -> Tuple[str, SecretMaterial]:
        """Generate a new keypair.

        Returns:
            Tuple[str, SecretMaterial]: (public id, secret)
        """
        pass

    @abstractmethod
    def public_id_for(self, secret: SecretMaterial) -> str:
        """Derive the public id belonging to a secret."""
        pass

    @abstractmethod
    def sign(self, secret: SecretMaterial, payload: bytes) -> str:
        """Sign ``payload`` and return the encoded signature."""
        pass

    @abstractmethod
    def verify(self, public_id: str, payload: bytes, signature: str) -> bool:
        """Check a signature produced by ``sign``."""
        pass

    @abstractmethod
    def export_secret(self, secret: SecretMaterial) -> str:
        """Encode a secret for storage. Treat the result as a password."""
        pass

    @abstractmethod
    def identity_from_export(self, exported: str) -> Tuple[str, SecretMaterial]:
        """Rebuild (public id, secret) from ``export_secret`` output.

        Raises:
            ValueError: If ``exported`` is not a valid exported secret
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
