"""
WebSocket event models and validation.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..constants import DEFAULT_PLAYER_NAME, MAX_CHAMPION_LENGTH, MAX_NAME_LENGTH
from ..errors import ErrorCode
from ..models import Action, Role, Team


class MalformedEventError(ValueError):
    """Payload is not a JSON object with a known type. Dropped without reply."""


class InvalidEventError(ValueError):
    """Known event type with invalid fields. Reported to the sender."""


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    REJOIN_ROOM = "rejoin_room"
    SWITCH_TEAM = "switch_team"
    START_DRAFT = "start_draft"
    RESET_DRAFT = "reset_draft"
    DRAFT_ACTION = "draft_action"
    TOGGLE_FEARLESS = "toggle_fearless"
    SET_BRAVERY_MODE = "set_bravery_mode"
    RESET_FEARLESS = "reset_fearless"
    RESET_BRAVERY_SESSION = "reset_bravery_session"
    REQUEST_STATE = "request_state"
    PING = "ping"
    ACK = "ack"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    ROOM_CREATED = "room_created"
    ROOM_JOINED = "room_joined"
    OPPONENT_JOINED = "opponent_joined"
    OPPONENT_DISCONNECTED = "opponent_disconnected"
    DRAFT_STARTED = "draft_started"
    DRAFT_UPDATE = "draft_update"
    DRAFT_RESET = "draft_reset"
    TEAM_SWITCHED = "team_switched"
    ROOM_UPDATE = "room_update"
    PLAYER_DISCONNECTED = "player_disconnected"
    FEARLESS_TOGGLED = "fearless_toggled"
    FEARLESS_RESET = "fearless_reset"
    ERROR = "error"
    PONG = "pong"
    ACK = "ack"


MessageId = Union[int, str]


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model. Wire names are camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: EventType
    message_id: Optional[MessageId] = None
    requires_ack: bool = False
    timestamp: Optional[Union[int, float]] = None


def _normalize_room_code(v: str) -> str:
    return v.strip().upper()


class CreateRoomEvent(BaseEvent):
    """Create a room and take the blue seat as host."""
    type: EventType = EventType.CREATE_ROOM
    player_name: str = Field(DEFAULT_PLAYER_NAME, min_length=1, max_length=MAX_NAME_LENGTH)


class JoinRoomEvent(BaseEvent):
    """Join an existing room."""
    type: EventType = EventType.JOIN_ROOM
    room_code: str = Field(..., min_length=1, max_length=50)
    player_name: str = Field(DEFAULT_PLAYER_NAME, min_length=1, max_length=MAX_NAME_LENGTH)
    team: Optional[Role] = None
    is_captain: bool = False

    @field_validator('room_code')
    @classmethod
    def normalize_room_code(cls, v):
        return _normalize_room_code(v)


class RejoinRoomEvent(BaseEvent):
    """Reclaim a seat after a reconnect."""
    type: EventType = EventType.REJOIN_ROOM
    room_code: str = Field(..., min_length=1, max_length=50)
    team: Role
    player_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    is_captain: bool = False

    @field_validator('room_code')
    @classmethod
    def normalize_room_code(cls, v):
        return _normalize_room_code(v)


class SwitchTeamEvent(BaseEvent):
    """Switch seat. The team value is checked by the state machine."""
    type: EventType = EventType.SWITCH_TEAM
    team: str = Field(..., min_length=1, max_length=20)
    player_name: str = Field(DEFAULT_PLAYER_NAME, min_length=1, max_length=MAX_NAME_LENGTH)


class StartDraftEvent(BaseEvent):
    type: EventType = EventType.START_DRAFT


class ResetDraftEvent(BaseEvent):
    type: EventType = EventType.RESET_DRAFT


class DraftActionEvent(BaseEvent):
    """Ban or pick a champion for the sender's team."""
    type: EventType = EventType.DRAFT_ACTION
    champion: str = Field(..., min_length=1, max_length=MAX_CHAMPION_LENGTH)


class ToggleFearlessEvent(BaseEvent):
    type: EventType = EventType.TOGGLE_FEARLESS
    enabled: bool


class ResetFearlessEvent(BaseEvent):
    type: EventType = EventType.RESET_FEARLESS


class RequestStateEvent(BaseEvent):
    """Request a full state sync."""
    type: EventType = EventType.REQUEST_STATE


class PingEvent(BaseEvent):
    type: EventType = EventType.PING
    timestamp: Union[int, float]


class AckEvent(BaseEvent):
    type: EventType = EventType.ACK
    message_id: MessageId


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    RejoinRoomEvent,
    SwitchTeamEvent,
    StartDraftEvent,
    ResetDraftEvent,
    DraftActionEvent,
    ToggleFearlessEvent,
    ResetFearlessEvent,
    RequestStateEvent,
    PingEvent,
    AckEvent,
]


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.REJOIN_ROOM: RejoinRoomEvent,
    EventType.SWITCH_TEAM: SwitchTeamEvent,
    EventType.START_DRAFT: StartDraftEvent,
    EventType.RESET_DRAFT: ResetDraftEvent,
    EventType.DRAFT_ACTION: DraftActionEvent,
    EventType.TOGGLE_FEARLESS: ToggleFearlessEvent,
    EventType.SET_BRAVERY_MODE: ToggleFearlessEvent,
    EventType.RESET_FEARLESS: ResetFearlessEvent,
    EventType.RESET_BRAVERY_SESSION: ResetFearlessEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
    EventType.PING: PingEvent,
    EventType.ACK: AckEvent,
}


# Outbound event models
class OutboundEvent(BaseModel):
    """Base outbound event model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: OutboundEventType

    def to_message(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RosterFields(OutboundEvent):
    """Seat occupancy carried by roster-changing events."""
    blue_player_name: Optional[str] = None
    red_player_name: Optional[str] = None
    blue_captain: Optional[str] = None
    red_captain: Optional[str] = None
    host_name: Optional[str] = None
    spectators: List[str] = Field(default_factory=list)


class RoomCreatedEvent(RosterFields):
    type: OutboundEventType = OutboundEventType.ROOM_CREATED
    room_code: str
    team: Role
    is_host: bool
    is_captain: bool = False
    draft_state: Dict[str, Any]
    fearless_draft_enabled: bool


class RoomJoinedEvent(RoomCreatedEvent):
    """Join confirmation. ``sync`` marks a reconnect replay."""
    type: OutboundEventType = OutboundEventType.ROOM_JOINED
    sync: bool = False


class OpponentJoinedEvent(RosterFields):
    type: OutboundEventType = OutboundEventType.OPPONENT_JOINED
    opponent_name: str
    team: Role


class OpponentDisconnectedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.OPPONENT_DISCONNECTED
    team: Team


class PlayerDisconnectedEvent(RosterFields):
    type: OutboundEventType = OutboundEventType.PLAYER_DISCONNECTED
    team: Role


class RoomUpdateEvent(RosterFields):
    type: OutboundEventType = OutboundEventType.ROOM_UPDATE


class DraftStartedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.DRAFT_STARTED
    draft_state: Dict[str, Any]


class DraftUpdateEvent(OutboundEvent):
    """Full draft state after a change. Live updates name the step just applied."""
    type: OutboundEventType = OutboundEventType.DRAFT_UPDATE
    draft_state: Dict[str, Any]
    champion: Optional[str] = None
    team: Optional[Team] = None
    action: Optional[Action] = None
    sync: bool = False


class DraftResetEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.DRAFT_RESET
    draft_state: Dict[str, Any]


class TeamSwitchedEvent(RosterFields):
    type: OutboundEventType = OutboundEventType.TEAM_SWITCHED
    team: Role
    is_host: bool
    draft_state: Dict[str, Any]


class FearlessToggledEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.FEARLESS_TOGGLED
    enabled: bool
    draft_state: Dict[str, Any]


class FearlessResetEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.FEARLESS_RESET
    draft_state: Dict[str, Any]


class ErrorEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str


class PongEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.PONG
    timestamp: Union[int, float]


class AckReplyEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ACK
    message_id: MessageId


def decode_message(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Decode a raw WebSocket frame into a JSON object."""
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MalformedEventError(f"Unparseable payload: {e}")
    if not isinstance(data, dict):
        raise MalformedEventError("Payload is not a JSON object")
    return data


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into the appropriate event model.

    Args:
        data: Decoded event data from the WebSocket

    Returns:
        Parsed event model

    Raises:
        MalformedEventError: If the type is missing or unknown
        InvalidEventError: If the fields do not match the type's schema
    """
    event_type = data.get("type")

    if not event_type:
        raise MalformedEventError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise MalformedEventError(f"Unknown event type: {event_type}")

    event_class = EVENT_MAP[event_type]

    try:
        return event_class.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidEventError(f"Invalid {event_type.value} event: {fields}")


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message)


def create_pong_event(timestamp) -> PongEvent:
    return PongEvent(timestamp=timestamp)


def create_ack_event(message_id: MessageId) -> AckReplyEvent:
    return AckReplyEvent(message_id=message_id)
