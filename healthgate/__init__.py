"""Dependency health probes and graceful drain for a FastAPI service."""

__version__ = "1.0.0"
