"""Signing providers for AgentWallet."""

from agentwallet.signing.base import SecretMaterial, SigningProvider
from agentwallet.signing.ed25519 import Ed25519SigningProvider

__all__ = [
    "SecretMaterial",
    "SigningProvider",
    "Ed25519SigningProvider",
]
