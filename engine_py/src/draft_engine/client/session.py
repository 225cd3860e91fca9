"""
Reconnecting WebSocket session for a draft room client.

One ConnectionSession per logical session. It owns the transport, the
outbound queue, the table of messages awaiting acknowledgment, and the
heartbeat and reconnect timers.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import orjson
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import ClientConfig
from ..constants import CONNECTION_LOST_NOTICE, RECONNECTING_NOTICE
from ..errors import ErrorCode
from .view import DraftView, ViewUpdate

logger = logging.getLogger(__name__)

# Intents the server must confirm with an ack
CRITICAL_TYPES = {"create_room", "join_room", "start_draft", "draft_action"}
SEATING_TYPES = {"create_room", "join_room"}

CONNECT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class PendingMessage:
    """A critical message waiting for its ack."""
    message_id: int
    message: Dict[str, Any]
    attempts: int = 0
    timer: Optional[asyncio.Task] = None

    def cancel_timer(self):
        if self.timer is not None and self.timer is not asyncio.current_task():
            self.timer.cancel()
        self.timer = None


class ConnectionSession:
    """
    Client side of the draft protocol.

    Callbacks are plain callables:
        on_message(message, update): every server message with the view update it caused
        on_status(text): human readable connection status
        on_error(code, message): server errors and CONNECTION_TIMEOUT
        on_send_failed(message, code): a critical message was never acknowledged
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        connect: Optional[Callable] = None,
        view: Optional[DraftView] = None,
        on_message: Optional[Callable[[Dict[str, Any], Optional[ViewUpdate]], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str, str], None]] = None,
        on_send_failed: Optional[Callable[[Dict[str, Any], ErrorCode], None]] = None,
    ):
        self.config = config or ClientConfig()
        self._connect = connect or websockets.connect
        self.view = view or DraftView()
        self.on_message = on_message
        self.on_status = on_status
        self.on_error = on_error
        self.on_send_failed = on_send_failed

        self.state = SessionState.DISCONNECTED
        self.attempt = 0
        self.pending_acks: Dict[int, PendingMessage] = {}
        self.outbound: List[Dict[str, Any]] = []
        self.player_name: Optional[str] = None
        self.latency: Optional[float] = None
        self.missed_pongs = 0

        self.transport = None
        self._next_id = 1
        self._closing = False
        self._reader_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

    # Connection lifecycle

    async def connect(self) -> bool:
        """Open the transport. A failed first attempt enters the reconnect cycle."""
        self._closing = False
        self.state = SessionState.CONNECTING
        try:
            transport = await self._connect(self.config.url)
        except CONNECT_ERRORS as e:
            logger.warning(f"Could not connect to {self.config.url}: {e}")
            self._begin_reconnect()
            return False
        await self._on_open(transport, rejoin=False)
        return True

    async def leave(self):
        """Abandon the session: stop every timer, drop queued work, close the transport."""
        self._closing = True
        for task in (self._reconnect_task, self._heartbeat_task, self._reader_task):
            if task is not None and task is not asyncio.current_task():
                task.cancel()
        self._reconnect_task = self._heartbeat_task = self._reader_task = None

        for pending in self.pending_acks.values():
            pending.cancel_timer()
        self.pending_acks.clear()
        self.outbound.clear()

        transport, self.transport = self.transport, None
        if transport is not None:
            try:
                await transport.close()
            except CONNECT_ERRORS as e:
                logger.debug(f"Error closing transport: {e}")
        self.state = SessionState.DISCONNECTED
        self.attempt = 0
        self.view.reset()
        logger.info("Left draft session")

    async def _on_open(self, transport, rejoin: bool):
        self.transport = transport
        self.state = SessionState.CONNECTED
        self.attempt = 0
        self.missed_pongs = 0
        self._reader_task = asyncio.create_task(self._read_loop(transport))
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(f"Connected to {self.config.url}")

        if rejoin:
            await self._rejoin()
        for pending in list(self.pending_acks.values()):
            await self._transmit(pending)

        queued, self.outbound = self.outbound, []
        for message in queued:
            await self._send_now(message)

    async def _rejoin(self):
        view = self.view
        if view.room_code is None or view.team is None:
            return
        # The seat is reclaimed by rejoin_room; replaying a create or join would open a second seat
        for message_id in [i for i, p in self.pending_acks.items() if p.message["type"] in SEATING_TYPES]:
            self.pending_acks.pop(message_id).cancel_timer()
        await self._send_now({
            "type": "rejoin_room",
            "roomCode": view.room_code,
            "team": view.team,
            "playerName": self.player_name or "Player",
            "isCaptain": view.is_captain,
        })
        logger.info(f"Rejoining room {view.room_code} as {view.team}")

    def _on_transport_lost(self):
        self._stop_heartbeat()
        self.transport = None
        for pending in self.pending_acks.values():
            pending.cancel_timer()
        if self._closing:
            self.state = SessionState.DISCONNECTED
            return
        logger.warning("Connection lost")
        self._begin_reconnect()

    def _begin_reconnect(self):
        self.state = SessionState.RECONNECTING
        self._notify_status(RECONNECTING_NOTICE)
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self):
        while self.attempt < self.config.max_reconnect_attempts:
            delay = self.config.backoff_delay(self.attempt)
            self.attempt += 1
            logger.info(
                f"Reconnect attempt {self.attempt}/{self.config.max_reconnect_attempts} in {delay}s"
            )
            await asyncio.sleep(delay)
            try:
                transport = await self._connect(self.config.url)
            except CONNECT_ERRORS as e:
                logger.warning(f"Reconnect attempt {self.attempt} failed: {e}")
                continue
            self._reconnect_task = None
            await self._on_open(transport, rejoin=True)
            return

        self._reconnect_task = None
        self.state = SessionState.DISCONNECTED
        logger.error(f"Giving up after {self.attempt} reconnect attempts")
        self._fail_pending()
        self._notify_status(CONNECTION_LOST_NOTICE)
        self._notify_error(ErrorCode.CONNECTION_TIMEOUT, "Could not reconnect to the draft server")

    # Inbound

    async def _read_loop(self, transport):
        try:
            async for raw in transport:
                self._handle_raw(raw)
        except (ConnectionClosed, OSError) as e:
            logger.info(f"Transport closed: {e}")
        finally:
            if transport is self.transport:
                self._on_transport_lost()

    def _handle_raw(self, raw):
        try:
            message = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Dropping unparseable server message: {e}")
            return
        if not isinstance(message, dict):
            logger.warning("Dropping server message that is not a JSON object")
            return

        kind = message.get("type")
        if kind == "pong":
            self._on_pong(message)
            return
        if kind == "ack":
            self._on_ack(message)
            return
        if kind == "error":
            self._notify_error(message.get("code"), message.get("message"))
        if kind in ("room_created", "room_joined", "team_switched"):
            self.player_name = self._own_name(message) or self.player_name

        update = self.view.apply(message)
        if self.on_message:
            self.on_message(message, update)

    def _own_name(self, message: Dict[str, Any]) -> Optional[str]:
        team = message.get("team")
        if team in ("blue", "red"):
            return message.get(f"{team}PlayerName")
        return None

    def _on_pong(self, message: Dict[str, Any]):
        self.missed_pongs = 0
        sent = message.get("timestamp")
        if sent is not None:
            self.latency = time.time() * 1000 - sent

    def _on_ack(self, message: Dict[str, Any]):
        pending = self.pending_acks.pop(message.get("messageId"), None)
        if pending is None:
            logger.debug(f"Ack for unknown message {message.get('messageId')}")
            return
        pending.cancel_timer()

    # Outbound

    async def send(self, message: Dict[str, Any]):
        """Send an intent. Critical intents are tracked until acknowledged."""
        if message["type"] in CRITICAL_TYPES:
            message_id = self._next_id
            self._next_id += 1
            pending = PendingMessage(
                message_id=message_id,
                message={**message, "messageId": message_id, "requiresAck": True},
            )
            self.pending_acks[message_id] = pending
            await self._transmit(pending)
        elif self.state is SessionState.CONNECTED:
            await self._send_now(message)
        else:
            self.outbound.append(message)

    async def _transmit(self, pending: PendingMessage):
        # Unconnected sends wait for the resend that follows the next open
        if self.state is not SessionState.CONNECTED:
            return
        pending.cancel_timer()
        pending.attempts += 1
        await self._send_now(pending.message)
        pending.timer = asyncio.create_task(self._await_ack(pending))

    async def _await_ack(self, pending: PendingMessage):
        await asyncio.sleep(self.config.ack_timeout * 2 ** (pending.attempts - 1))
        pending.timer = None
        if pending.message_id not in self.pending_acks:
            return
        if pending.attempts >= self.config.max_send_attempts:
            del self.pending_acks[pending.message_id]
            logger.error(f"No ack for {pending.message['type']} after {pending.attempts} attempts")
            if self.on_send_failed:
                self.on_send_failed(pending.message, ErrorCode.MESSAGE_DELIVERY_FAILED)
            return
        logger.warning(f"Re-sending {pending.message['type']} (attempt {pending.attempts + 1})")
        await self._transmit(pending)

    def _fail_pending(self):
        """Report every unacknowledged critical message as undelivered and forget it."""
        pending_messages = list(self.pending_acks.values())
        self.pending_acks.clear()
        for pending in pending_messages:
            pending.cancel_timer()
            logger.error(f"Dropping unacknowledged {pending.message['type']} ({pending.message_id})")
            if self.on_send_failed:
                self.on_send_failed(pending.message, ErrorCode.MESSAGE_DELIVERY_FAILED)

    async def _send_now(self, message: Dict[str, Any]) -> bool:
        if self.transport is None:
            return False
        try:
            await self.transport.send(orjson.dumps(message).decode())
            return True
        except (ConnectionClosed, OSError) as e:
            logger.warning(f"Send of {message['type']} failed: {e}")
            return False

    # Heartbeat

    async def _heartbeat_loop(self):
        while True:
            await asyncio.sleep(self.config.heartbeat_interval)
            if self.missed_pongs >= self.config.max_missed_pongs:
                logger.warning(f"{self.missed_pongs} pings unanswered, forcing reconnect")
                transport = self.transport
                self._heartbeat_task = None
                if transport is not None:
                    await transport.close()
                return
            self.missed_pongs += 1
            await self._send_now({"type": "ping", "timestamp": time.time() * 1000})

    def _stop_heartbeat(self):
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    # Callbacks

    def _notify_status(self, text: str):
        if self.on_status:
            self.on_status(text)

    def _notify_error(self, code, message: Optional[str]):
        logger.warning(f"Draft error {code}: {message}")
        if self.on_error:
            self.on_error(code, message)

    # Intents

    async def create_room(self, player_name: str):
        self.player_name = player_name
        await self.send({"type": "create_room", "playerName": player_name})

    async def join_room(self, room_code: str, player_name: str, team: Optional[str] = None, is_captain: bool = False):
        self.player_name = player_name
        message = {"type": "join_room", "roomCode": room_code, "playerName": player_name, "isCaptain": is_captain}
        if team is not None:
            message["team"] = team
        await self.send(message)

    async def start_draft(self):
        await self.send({"type": "start_draft"})

    async def reset_draft(self):
        await self.send({"type": "reset_draft"})

    async def send_draft_action(self, champion: str):
        await self.send({"type": "draft_action", "champion": champion})

    async def toggle_fearless(self, enabled: bool):
        await self.send({"type": "toggle_fearless", "enabled": enabled})

    async def reset_fearless(self):
        await self.send({"type": "reset_fearless"})

    async def switch_team(self, team: str):
        await self.send({"type": "switch_team", "team": team, "playerName": self.player_name or "Player"})

    async def request_state(self):
        await self.send({"type": "request_state"})
