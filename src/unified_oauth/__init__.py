# PUBLIC_INTERFACE
"""
Unified OAuth connection framework.

Provides vendor OAuth adapters behind one Provider contract, a registry that
dispatches lifecycle calls by provider id, and a FastAPI application factory
exposing connection lifecycle endpoints.
"""

__all__ = ["create_app"]

from .app import create_app  # noqa: E402
