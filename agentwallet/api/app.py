"""FastAPI application for the AgentWallet administration API."""

from fastapi import FastAPI

from agentwallet import __version__
from agentwallet.api.routes import router
from agentwallet.fleet_registry import FleetRegistry


def create_app(registry: FleetRegistry) -> FastAPI:
    """Build an API app bound to ``registry``.

    Usage Example:
        ```python
        registry = FleetRegistry(InMemoryLedger(), Ed25519SigningProvider())
        app = create_app(registry)
        # uvicorn.run(app)
        ```
    """
    app = FastAPI(
        title="AgentWallet API",
        version=__version__,
        description="Administration API for policy-enforced agent wallets",
    )

    # Inject registry into app state for route access
    app.state.registry = registry

    # Mount routes
    app.include_router(router, prefix="/v1")

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "version": app.version, "agents": len(registry)}

    return app
