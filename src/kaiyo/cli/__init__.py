"""Command-line interface for Kaiyo."""

from .app import app

__all__ = ["app"]
