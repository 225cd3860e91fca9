"""
Binding of live connections to rooms and seats.
"""

import logging
import uuid
from typing import Dict, Optional

from ..constants import REPLACED_BY_RECONNECT
from ..engine import is_empty, is_host, occupy, slot_of, vacate
from ..errors import ErrorCode
from ..models import Role, Room
from ..registry import RoomRegistry
from ..serialization import serialize_draft_state, serialize_roster
from ..validate import ActionResult
from .broadcast import Broadcaster
from .events import (
    OpponentDisconnectedEvent, OpponentJoinedEvent, PlayerDisconnectedEvent,
    RoomCreatedEvent, RoomJoinedEvent, RoomUpdateEvent, create_error_event
)

logger = logging.getLogger(__name__)


class Connection:
    """A live WebSocket. Identity is the object itself."""

    def __init__(self, websocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex[:8]

    async def send_text(self, text: str):
        await self.websocket.send_text(text)

    async def close(self, code: int = 1000, reason: str = ""):
        await self.websocket.close(code=code, reason=reason)

    def __repr__(self) -> str:
        return f"Connection({self.id})"


class ConnectionManager:
    """
    Binds each connection to at most one (room, seat) pair.

    Every seat change goes through this class. Failures are reported to the
    requesting connection only and leave the room untouched.
    """

    def __init__(self, registry: RoomRegistry, broadcaster: Optional[Broadcaster] = None):
        self.registry = registry
        self.broadcaster = broadcaster or Broadcaster()
        self.connection_rooms: Dict[object, str] = {}

    @property
    def connection_count(self) -> int:
        return len(self.connection_rooms)

    def room_for(self, connection) -> Optional[Room]:
        room_id = self.connection_rooms.get(connection)
        if room_id is None:
            return None
        return self.registry.get_room(room_id)

    def seat_event(self, event_class, room: Room, connection, **extra):
        """Build a room_created/room_joined style event for a seated connection."""
        with room.lock:
            slot = slot_of(room, connection)
            team = slot.role.team
            return event_class(
                room_code=room.id,
                team=slot.role,
                is_host=is_host(room, connection),
                is_captain=team is not None and room.captains[team] == slot.display_name,
                draft_state=serialize_draft_state(room.draft_state),
                fearless_draft_enabled=room.fearless_enabled,
                **serialize_roster(room),
                **extra
            )

    def roster_event(self, event_class, room: Room, **extra):
        with room.lock:
            return event_class(**serialize_roster(room), **extra)

    async def _reject(self, connection, code: ErrorCode, message: str) -> ActionResult:
        logger.warning(f"Rejected {connection}: {code.value} {message}")
        await self.broadcaster.send(connection, create_error_event(code, message))
        return ActionResult.error(code, message)

    def _lookup(self, room_id: str) -> Optional[Room]:
        room = self.registry.get_room(room_id)
        if room is None and self.registry.is_default(room_id):
            room = self.registry.default_room()
        return room

    async def _leave_other_room(self, connection, room_id: str):
        current = self.connection_rooms.get(connection)
        if current is not None and current != room_id:
            await self.detach(connection)

    async def create(self, connection, display_name: str) -> Room:
        """Create a room with the caller seated blue as host."""
        await self.detach(connection)
        room = self.registry.create_room()
        occupy(room, connection, Role.BLUE, display_name)
        with room.lock:
            room.host = connection
            room.host_name = display_name
        self.connection_rooms[connection] = room.id
        logger.info(f"Room {room.id} created by {display_name} (blue team)")
        await self.broadcaster.send(connection, self.seat_event(RoomCreatedEvent, room, connection))
        return room

    async def attach(
        self,
        connection,
        room_id: str,
        desired_role: Role,
        display_name: str,
        claim_captain: bool = False
    ) -> ActionResult:
        """Seat a connection in an existing room, falling back to spectator."""
        room = self._lookup(room_id)
        if room is None:
            return await self._reject(connection, ErrorCode.NOT_FOUND, "Room not found")

        await self._leave_other_room(connection, room.id)
        result = occupy(room, connection, desired_role, display_name, claim_captain)
        if not result:
            return await self._reject(connection, result.error_code, result.error_message)

        self.connection_rooms[connection] = room.id
        self.registry.cancel_cleanup(room.id)
        role = result.payload["role"]
        logger.info(f"{display_name} joined room {room.id} ({role.value})")

        await self.broadcaster.send(connection, self.seat_event(RoomJoinedEvent, room, connection, sync=False))
        if role.team is not None:
            event = self.roster_event(OpponentJoinedEvent, room, opponent_name=display_name, team=role)
        else:
            event = self.roster_event(RoomUpdateEvent, room)
        await self.broadcaster.broadcast(room, event, exclude=connection)
        return result

    async def rejoin(
        self,
        connection,
        room_id: str,
        claimed_role: Role,
        display_name: str,
        claim_captain: bool = False
    ) -> ActionResult:
        """
        Re-seat a reconnecting client and replay the current state as a sync.

        A team slot still held by a different connection under the same
        display name is treated as the client's own half-open connection and
        is evicted.
        """
        room = self._lookup(room_id)
        if room is None:
            return await self._reject(connection, ErrorCode.NOT_FOUND, "Room not found")

        await self._leave_other_room(connection, room.id)
        team = claimed_role.team
        stale = None
        with room.lock:
            if team is not None:
                captain = room.captains[team]
                captain_conflict = claim_captain and captain is not None and captain != display_name
                slot = room.slot_for(team)
                if (not captain_conflict and slot is not None and slot.connection is not connection
                        and slot.display_name == display_name):
                    stale = slot.connection
                    vacate(room, stale)
            result = occupy(room, connection, claimed_role, display_name, claim_captain)
            if result and room.host is None and room.host_name == display_name:
                room.host = connection
        if not result:
            return await self._reject(connection, result.error_code, result.error_message)

        if stale is not None:
            self.connection_rooms.pop(stale, None)
            await self._close_stale(stale)

        self.connection_rooms[connection] = room.id
        self.registry.cancel_cleanup(room.id)
        role = result.payload["role"]
        logger.info(f"{display_name} rejoined room {room.id} ({role.value})")

        await self.broadcaster.send(connection, self.seat_event(RoomJoinedEvent, room, connection, sync=True))
        await self.broadcaster.broadcast(room, self.roster_event(RoomUpdateEvent, room), exclude=connection)
        return result

    async def _close_stale(self, connection):
        try:
            await connection.close(code=1000, reason=REPLACED_BY_RECONNECT)
        except Exception as e:
            logger.warning(f"Could not close stale {connection}: {e}")

    async def detach(self, connection) -> Optional[Role]:
        """Vacate the connection's seat and notify the rest of the room."""
        room_id = self.connection_rooms.pop(connection, None)
        if room_id is None:
            return None
        room = self.registry.get_room(room_id)
        if room is None:
            return None

        role = vacate(room, connection)
        if role is None:
            return None
        logger.info(f"Player disconnected from room {room.id} ({role.value})")

        await self.broadcaster.broadcast(room, self.roster_event(PlayerDisconnectedEvent, room, team=role))
        if role.team is not None:
            opponent = room.slot_for(role.team.opponent)
            if opponent is not None:
                await self.broadcaster.send(opponent.connection, OpponentDisconnectedEvent(team=role.team))

        with room.lock:
            empty = is_empty(room)
        if empty:
            self.registry.schedule_cleanup(room.id)
        return role
