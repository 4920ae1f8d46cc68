"""HTTP service implementing the remote store."""

from .server import create_app, run_local_server

__all__ = ["create_app", "run_local_server"]
