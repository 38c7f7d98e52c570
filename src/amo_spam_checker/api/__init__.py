"""HTTP API for the spam checker."""

from .server import create_app

app = create_app()

__all__ = ["app", "create_app"]
