"""Lobby server package: wraps the Hold'em engine with WebSocket networking."""

from .server import HostServer

__all__ = ["HostServer"]
