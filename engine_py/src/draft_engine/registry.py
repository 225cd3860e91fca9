"""Room registry with idle-room garbage collection"""

import asyncio
import logging
import random
from typing import Callable, Dict, List, Optional

from .config import ServerConfig
from .constants import ROOM_CODE_ALPHABET
from .engine import is_empty
from .errors import DraftError, ErrorCode
from .models import Room

logger = logging.getLogger(__name__)


def generate_room_code(length: int = 6, rng: random.Random = None) -> str:
    rng = rng or random
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


class RoomRegistry:
    """
    Owns every room of the process.

    Cleanup timers are one-shot ``loop.call_later`` handles; arming a timer
    for a room cancels the previous one, so there is at most one per room.
    """

    def __init__(self, config: Optional[ServerConfig] = None, code_factory: Callable[[], str] = None):
        self.config = config or ServerConfig()
        self._code_factory = code_factory or (lambda: generate_room_code(self.config.room_code_length))
        self._rooms: Dict[str, Room] = {}
        self._cleanup_timers: Dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def create_room(self, room_id: Optional[str] = None, pinned: bool = False) -> Room:
        """Create a room, generating a fresh code when no id is given."""
        if room_id is None:
            room_id = self._allocate_code()
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(id=room_id, pinned=pinned)
            self._rooms[room_id] = room
            logger.info(f"Created new room: {room_id}")
        self.cancel_cleanup(room_id)
        return room

    def _allocate_code(self) -> str:
        for _ in range(self.config.max_code_attempts):
            code = self._code_factory()
            if code not in self._rooms:
                return code
        raise DraftError(ErrorCode.RESOURCE_EXHAUSTED, "Could not allocate a free room code")

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def require_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise DraftError(ErrorCode.NOT_FOUND, f"Room {room_id} not found")
        return room

    def default_room(self) -> Room:
        """Return the pinned default room, materializing it on first use."""
        return self.create_room(self.config.default_room_id, pinned=True)

    def is_default(self, room_id: str) -> bool:
        return room_id == self.config.default_room_id

    def delete_room(self, room_id: str) -> bool:
        """Delete a room. Pinned rooms are never deleted."""
        room = self._rooms.get(room_id)
        if room is not None and room.pinned:
            logger.info(f"Refusing to delete pinned room {room_id}")
            return False
        self.cancel_cleanup(room_id)
        if room is None:
            return False
        del self._rooms[room_id]
        logger.info(f"Deleted room: {room_id}")
        return True

    def schedule_cleanup(self, room_id: str, delay: Optional[float] = None):
        """Arm the idle timer for a room, replacing any pending one."""
        room = self._rooms.get(room_id)
        if room is None or room.pinned:
            return
        if delay is None:
            delay = self.config.room_cleanup_delay
        self.cancel_cleanup(room_id, quiet=True)
        loop = asyncio.get_running_loop()
        self._cleanup_timers[room_id] = loop.call_later(delay, self._expire, room_id)
        logger.info(f"Scheduled cleanup for room {room_id} in {delay} seconds")

    def cancel_cleanup(self, room_id: str, quiet: bool = False):
        handle = self._cleanup_timers.pop(room_id, None)
        if handle is not None:
            handle.cancel()
            if not quiet:
                logger.info(f"Cancelled cleanup for room {room_id}")

    def has_pending_cleanup(self, room_id: str) -> bool:
        return room_id in self._cleanup_timers

    def _expire(self, room_id: str):
        self._cleanup_timers.pop(room_id, None)
        room = self._rooms.get(room_id)
        if room is None:
            return
        with room.lock:
            still_empty = is_empty(room)
        if still_empty:
            self.delete_room(room_id)
        else:
            logger.info(f"Room {room_id} is occupied again, skipping cleanup")

    def shutdown(self):
        """Cancel every pending cleanup timer."""
        for handle in self._cleanup_timers.values():
            handle.cancel()
        self._cleanup_timers.clear()
