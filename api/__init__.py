"""HTTP transports: incremental JSON and server-sent events."""

from api.app import create_app

__all__ = ["create_app"]
