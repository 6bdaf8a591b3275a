"""
HTTP health/status surface for the timing tracker.
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
