"""Web interface for the operating expense planner."""

from .app import create_app

__all__ = ["create_app"]
