"""
Local merged view of a draft room.

Server pushes are either syncs (a full snapshot replayed to a joining or
reconnecting client, applied without animation) or live updates (a step
that was just applied, shown exactly once).
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

SYNC = "sync"
LIVE = "live"

SYNC_TYPES = {
    "room_created",
    "room_joined",
    "team_switched",
    "draft_reset",
    "fearless_toggled",
    "fearless_reset",
}
LIVE_TYPES = {"draft_started", "draft_update"}

ROSTER_KEYS = {
    "bluePlayerName": "blue",
    "redPlayerName": "red",
    "blueCaptain": "blue_captain",
    "redCaptain": "red_captain",
    "hostName": "host",
    "spectators": "spectators",
}


@dataclass
class ViewUpdate:
    """What a pushed message did to the view."""
    kind: str
    draft_state: Dict[str, Any]
    champion: Optional[str] = None
    team: Optional[str] = None
    action: Optional[str] = None
    changed: bool = True

    @property
    def animate(self) -> bool:
        return self.kind == LIVE and self.champion is not None


def _progress(state: Dict[str, Any]) -> Tuple[int, int]:
    return state.get("draftNumber", 0), state.get("currentTurn", 0)


class DraftView:
    """Client copy of one room: draft state, roster and own seat."""

    def __init__(self):
        self.draft_state: Optional[Dict[str, Any]] = None
        self.room_code: Optional[str] = None
        self.team: Optional[str] = None
        self.is_host = False
        self.is_captain = False
        self.fearless_enabled = False
        self.roster: Dict[str, Any] = {
            "blue": None,
            "red": None,
            "blue_captain": None,
            "red_captain": None,
            "host": None,
            "spectators": [],
        }

    def apply(self, message: Dict[str, Any]) -> Optional[ViewUpdate]:
        """
        Merge a server message into the view.

        Returns:
            ViewUpdate when the draft state was touched, None when the
            message carries no draft state or is a stale live update
        """
        kind = message.get("type")
        self._track_seat(message)
        self._track_roster(message)

        state = message.get("draftState")
        if state is None:
            return None

        if kind in LIVE_TYPES and not message.get("sync"):
            return self._apply_live(message, state)
        if kind in SYNC_TYPES or message.get("sync"):
            return self._apply_sync(state)

        logger.debug(f"Ignoring draft state carried by {kind}")
        return None

    def _apply_sync(self, state: Dict[str, Any]) -> ViewUpdate:
        changed = state != self.draft_state
        self.draft_state = copy.deepcopy(state)
        return ViewUpdate(kind=SYNC, draft_state=self.draft_state, changed=changed)

    def _apply_live(self, message: Dict[str, Any], state: Dict[str, Any]) -> Optional[ViewUpdate]:
        if self.draft_state is not None and _progress(state) <= _progress(self.draft_state):
            logger.debug(f"Dropping stale {message.get('type')} at {_progress(state)}")
            return None
        self.draft_state = copy.deepcopy(state)
        return ViewUpdate(
            kind=LIVE,
            draft_state=self.draft_state,
            champion=message.get("champion"),
            team=message.get("team"),
            action=message.get("action"),
        )

    def _track_seat(self, message: Dict[str, Any]):
        kind = message.get("type")
        if kind in ("room_created", "room_joined"):
            self.room_code = message.get("roomCode", self.room_code)
            self.is_captain = message.get("isCaptain", False)
        if kind in ("room_created", "room_joined", "team_switched"):
            self.team = message.get("team", self.team)
            self.is_host = message.get("isHost", self.is_host)
        if "fearlessDraftEnabled" in message:
            self.fearless_enabled = message["fearlessDraftEnabled"]
        if kind == "fearless_toggled":
            self.fearless_enabled = message.get("enabled", self.fearless_enabled)

    def _track_roster(self, message: Dict[str, Any]):
        for key, name in ROSTER_KEYS.items():
            if key in message:
                self.roster[name] = message[key]

    def reset(self):
        """Forget the room, e.g. after leaving it."""
        self.__init__()
