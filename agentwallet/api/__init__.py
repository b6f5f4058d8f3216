"""HTTP administration API for AgentWallet."""

from agentwallet.api.app import create_app

__all__ = ["create_app"]
