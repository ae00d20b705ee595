"""Room host package: wraps the hold'em engine with WebSocket networking."""

from .server import HostServer

__all__ = ["HostServer"]
