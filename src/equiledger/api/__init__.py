"""HTTP API: chat webhooks and dashboard endpoints."""

from equiledger.api.app import create_app

__all__ = ["create_app"]
