"""Draft error codes and exceptions"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes reported to clients."""
    NOT_FOUND = "NOT_FOUND"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    ONLY_CAPTAIN_MAY_BAN = "ONLY_CAPTAIN_MAY_BAN"
    CHAMPION_UNAVAILABLE = "CHAMPION_UNAVAILABLE"
    DRAFT_NOT_IN_PROGRESS = "DRAFT_NOT_IN_PROGRESS"
    DRAFT_ALREADY_COMPLETE = "DRAFT_ALREADY_COMPLETE"
    SLOT_OCCUPIED = "SLOT_OCCUPIED"
    CAPTAIN_SLOT_TAKEN = "CAPTAIN_SLOT_TAKEN"
    DRAFT_IN_PROGRESS = "DRAFT_IN_PROGRESS"
    INVALID_TEAM = "INVALID_TEAM"
    NOT_IN_ROOM = "NOT_IN_ROOM"
    INVALID_EVENT = "INVALID_EVENT"
    CONNECTION_TIMEOUT = "CONNECTION_TIMEOUT"
    MESSAGE_DELIVERY_FAILED = "MESSAGE_DELIVERY_FAILED"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    INTERNAL = "INTERNAL"


class DraftError(Exception):
    """Base exception for draft-related errors."""
    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code.value}] {message}")
