"""HTTP ingress for single-file uploads."""
from .app import create_app

__all__ = ["create_app"]
