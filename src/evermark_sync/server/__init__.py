"""HTTP server."""

from .app import VALID_ACTIONS, create_app

__all__ = ["create_app", "VALID_ACTIONS"]
