"""HTTP control surface for a local recitation session."""

from .app import create_app

__all__ = ["create_app"]
