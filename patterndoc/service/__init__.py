"""Read-only HTTP service over a pattern catalog."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
