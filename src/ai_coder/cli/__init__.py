"""Command-line interface for ai-coder."""

from .app import app

__all__ = ["app"]
