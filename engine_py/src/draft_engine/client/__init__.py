"""
Client-side synchronization: merged draft view and reconnecting session.
"""

from .session import ConnectionSession, SessionState
from .view import DraftView, ViewUpdate

__all__ = ["ConnectionSession", "SessionState", "DraftView", "ViewUpdate"]
