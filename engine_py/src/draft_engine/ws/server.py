"""
FastAPI WebSocket server for draft rooms.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import requests
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..champions import ChampionCatalog
from ..config import ServerConfig
from ..engine import (
    apply_action, is_host, reset_draft_by_host, reset_session_used_champions,
    start_draft, switch_role, toggle_session_mode
)
from ..errors import ErrorCode
from ..models import Role, Room
from ..registry import RoomRegistry
from ..serialization import serialize_draft_state, serialize_room
from .broadcast import Broadcaster
from .connections import Connection, ConnectionManager
from .events import (
    AckEvent, CreateRoomEvent, DraftActionEvent, DraftResetEvent, DraftStartedEvent,
    DraftUpdateEvent, FearlessResetEvent, FearlessToggledEvent, InvalidEventError,
    JoinRoomEvent, MalformedEventError, PingEvent, RejoinRoomEvent, RequestStateEvent,
    ResetDraftEvent, ResetFearlessEvent, RoomUpdateEvent, StartDraftEvent, SwitchTeamEvent,
    TeamSwitchedEvent, ToggleFearlessEvent, create_ack_event, create_error_event,
    create_pong_event, decode_message, parse_inbound_event
)

logger = logging.getLogger(__name__)


def _is_message_id(value) -> bool:
    """Only int or str ids from a rejected frame are echoed back."""
    return isinstance(value, (int, str)) and not isinstance(value, bool)


class DraftRoomServer:
    """Parses inbound frames once and dispatches them to typed handlers."""

    def __init__(self, registry: RoomRegistry, manager: ConnectionManager):
        self.registry = registry
        self.manager = manager
        self.broadcaster = manager.broadcaster
        self._handlers = {
            CreateRoomEvent: self.handle_create_room,
            JoinRoomEvent: self.handle_join_room,
            RejoinRoomEvent: self.handle_rejoin_room,
            SwitchTeamEvent: self.handle_switch_team,
            StartDraftEvent: self.handle_start_draft,
            ResetDraftEvent: self.handle_reset_draft,
            DraftActionEvent: self.handle_draft_action,
            ToggleFearlessEvent: self.handle_toggle_fearless,
            ResetFearlessEvent: self.handle_reset_fearless,
            RequestStateEvent: self.handle_request_state,
            PingEvent: self.handle_ping,
            AckEvent: self.handle_ack,
        }

    async def handle_raw(self, connection, raw):
        """Handle one inbound frame. Never raises."""
        try:
            data = decode_message(raw)
            event = parse_inbound_event(data)
        except MalformedEventError as e:
            logger.warning(f"Dropping malformed message from {connection}: {e}")
            return
        except InvalidEventError as e:
            await self.send_error(connection, ErrorCode.INVALID_EVENT, str(e))
            message_id = data.get("messageId")
            if data.get("requiresAck") and _is_message_id(message_id):
                await self.broadcaster.send(connection, create_ack_event(message_id))
            return

        try:
            await self._handlers[type(event)](connection, event)
        except Exception as e:
            logger.exception(f"Error handling {event.type.value} from {connection}: {e}")
            await self.send_error(connection, ErrorCode.INTERNAL, "Internal server error")

        # Acked once the intent has been processed, whatever the outcome
        if event.requires_ack and event.message_id is not None:
            await self.broadcaster.send(connection, create_ack_event(event.message_id))

    async def disconnect(self, connection):
        await self.manager.detach(connection)

    async def send_error(self, connection, code: ErrorCode, message: str):
        logger.warning(f"Rejected {connection}: {code.value} {message}")
        await self.broadcaster.send(connection, create_error_event(code, message))

    async def _current_room(self, connection) -> Optional[Room]:
        room = self.manager.room_for(connection)
        if room is None:
            await self.send_error(connection, ErrorCode.NOT_IN_ROOM, "Not in a room")
        return room

    def _draft_snapshot(self, room: Room):
        with room.lock:
            return serialize_draft_state(room.draft_state)

    # Seat handlers

    async def handle_create_room(self, connection, event: CreateRoomEvent):
        await self.manager.create(connection, event.player_name)

    async def handle_join_room(self, connection, event: JoinRoomEvent):
        await self.manager.attach(
            connection,
            event.room_code,
            event.team or Role.RED,
            event.player_name,
            event.is_captain,
        )

    async def handle_rejoin_room(self, connection, event: RejoinRoomEvent):
        await self.manager.rejoin(
            connection,
            event.room_code,
            event.team,
            event.player_name,
            event.is_captain,
        )

    async def handle_switch_team(self, connection, event: SwitchTeamEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        async with room.fanout_lock:
            result = switch_role(room, connection, event.team, event.player_name)
            if not result:
                await self.send_error(connection, result.error_code, result.error_message)
                return
            role = result.payload["role"]
            logger.info(f"{event.player_name} switched to {role.value} in room {room.id}")
            reply = self.manager.roster_event(
                TeamSwitchedEvent,
                room,
                team=role,
                is_host=is_host(room, connection),
                draft_state=self._draft_snapshot(room),
            )
            await self.broadcaster.send(connection, reply)
            await self.broadcaster.broadcast(
                room, self.manager.roster_event(RoomUpdateEvent, room), exclude=connection
            )

    # Draft handlers

    async def handle_start_draft(self, connection, event: StartDraftEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        async with room.fanout_lock:
            result = start_draft(room, connection)
            if not result:
                await self.send_error(connection, result.error_code, result.error_message)
                return
            await self.broadcaster.broadcast(room, DraftStartedEvent(draft_state=self._draft_snapshot(room)))

    async def handle_reset_draft(self, connection, event: ResetDraftEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        async with room.fanout_lock:
            result = reset_draft_by_host(room, connection)
            if not result:
                await self.send_error(connection, result.error_code, result.error_message)
                return
            await self.broadcaster.broadcast(room, DraftResetEvent(draft_state=self._draft_snapshot(room)))

    async def handle_draft_action(self, connection, event: DraftActionEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        async with room.fanout_lock:
            result = apply_action(room, event.champion, connection)
            if not result:
                await self.send_error(connection, result.error_code, result.error_message)
                return
            update = DraftUpdateEvent(
                draft_state=self._draft_snapshot(room),
                champion=result.payload["champion"],
                team=result.payload["team"],
                action=result.payload["action"],
            )
            await self.broadcaster.broadcast(room, update)

    async def handle_toggle_fearless(self, connection, event: ToggleFearlessEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        async with room.fanout_lock:
            result = toggle_session_mode(room, connection, event.enabled)
            if not result:
                await self.send_error(connection, result.error_code, result.error_message)
                return
            await self.broadcaster.broadcast(
                room, FearlessToggledEvent(enabled=event.enabled, draft_state=self._draft_snapshot(room))
            )

    async def handle_reset_fearless(self, connection, event: ResetFearlessEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        async with room.fanout_lock:
            result = reset_session_used_champions(room, connection)
            if not result:
                await self.send_error(connection, result.error_code, result.error_message)
                return
            await self.broadcaster.broadcast(room, FearlessResetEvent(draft_state=self._draft_snapshot(room)))

    # Session handlers

    async def handle_request_state(self, connection, event: RequestStateEvent):
        room = await self._current_room(connection)
        if room is None:
            return
        await self.broadcaster.send(connection, DraftUpdateEvent(draft_state=self._draft_snapshot(room), sync=True))

    async def handle_ping(self, connection, event: PingEvent):
        await self.broadcaster.send(connection, create_pong_event(event.timestamp))

    async def handle_ack(self, connection, event: AckEvent):
        logger.debug(f"{connection} acknowledged {event.message_id}")


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """Build the FastAPI app with a fresh registry."""
    config = config or ServerConfig.from_env()
    registry = RoomRegistry(config)
    manager = ConnectionManager(registry, Broadcaster())
    server = DraftRoomServer(registry, manager)
    catalog = ChampionCatalog(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        registry.shutdown()

    app = FastAPI(title="Draft Room Server", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.registry = registry
    app.state.manager = manager
    app.state.server = server
    app.state.champions = catalog

    @app.get("/")
    async def root():
        return {"message": "Draft Room Server", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "rooms": len(registry),
            "connections": manager.connection_count,
        }

    @app.get("/api/champions")
    def get_champions():
        try:
            return app.state.champions.get_champions()
        except (requests.RequestException, KeyError, IndexError, ValueError) as e:
            logger.error(f"Champion catalog unavailable: {e}")
            raise HTTPException(status_code=502, detail="Champion data unavailable")

    @app.get("/api/draft/default-room")
    async def get_default_room():
        return {"roomId": registry.default_room().id}

    @app.get("/api/draft/{room_id}")
    async def get_draft(room_id: str):
        room = registry.get_room(room_id.upper())
        if room is None:
            raise HTTPException(status_code=404, detail="Room not found")
        return serialize_room(room)

    @app.websocket("/ws")
    @app.websocket("/")
    async def websocket_endpoint(websocket: WebSocket):
        """Main WebSocket endpoint."""
        await websocket.accept()
        connection = Connection(websocket)
        logger.info(f"New WebSocket connection {connection}")
        try:
            while True:
                raw = await websocket.receive_text()
                await server.handle_raw(connection, raw)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected {connection}")
        except Exception as e:
            logger.error(f"WebSocket error for {connection}: {e}")
        finally:
            await server.disconnect(connection)

    return app
