"""
WebSocket server and event handling for draft rooms.
"""

from .server import DraftRoomServer, create_app

__all__ = ["DraftRoomServer", "create_app"]
