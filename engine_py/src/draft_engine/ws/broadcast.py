"""
Fan-out of server events to the connections seated in a room.
"""

import logging
from typing import Any, Dict, List, Union

import orjson

from ..models import Room
from .events import OutboundEvent

logger = logging.getLogger(__name__)


def encode_event(event: Union[OutboundEvent, Dict[str, Any]]) -> str:
    """Encode an outbound event as a JSON text frame."""
    if isinstance(event, OutboundEvent):
        event = event.to_message()
    return orjson.dumps(event).decode()


class Broadcaster:
    """Sends events to single connections or to a whole room."""

    async def send(self, connection, event: Union[OutboundEvent, Dict[str, Any]]) -> bool:
        """Send an event to one connection. Returns False if the send failed."""
        return await self._send_text(connection, encode_event(event))

    async def broadcast(
        self,
        room: Room,
        event: Union[OutboundEvent, Dict[str, Any]],
        exclude=None
    ) -> List[Any]:
        """
        Send an event to blue, red and every spectator of a room.

        The event is encoded once. A recipient whose send fails is logged and
        skipped; delivery to the others continues.

        Returns:
            Connections whose send failed
        """
        text = encode_event(event)
        with room.lock:
            recipients = [c for c in room.connections() if c is not exclude]

        failed = []
        for connection in recipients:
            if not await self._send_text(connection, text):
                failed.append(connection)
        return failed

    async def _send_text(self, connection, text: str) -> bool:
        try:
            await connection.send_text(text)
            return True
        except Exception as e:
            logger.error(f"Error sending to {connection}: {e}")
            return False
