"""Startup and shutdown of the backing-service connections."""

from .manager import build_lifespan

__all__ = ["build_lifespan"]
