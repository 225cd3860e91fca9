"""Draft models and data structures"""

import asyncio
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class Team(str, Enum):
    BLUE = "blue"
    RED = "red"

    @property
    def opponent(self) -> "Team":
        return Team.RED if self is Team.BLUE else Team.BLUE


class Action(str, Enum):
    BAN = "ban"
    PICK = "pick"


class Phase(str, Enum):
    IDLE = "idle"
    DRAFTING = "drafting"
    COMPLETE = "complete"


class Role(str, Enum):
    BLUE = "blue"
    RED = "red"
    SPECTATOR = "spectator"

    @property
    def team(self) -> Optional[Team]:
        if self is Role.SPECTATOR:
            return None
        return Team(self.value)


@dataclass(frozen=True)
class DraftStep:
    team: Team
    action: Action


@dataclass
class DraftState:
    phase: Phase = Phase.IDLE
    current_turn: int = 0
    current_team: Optional[Team] = None  # None unless drafting
    current_action: Optional[Action] = None
    blue_bans: List[str] = field(default_factory=list)
    red_bans: List[str] = field(default_factory=list)
    blue_picks: List[str] = field(default_factory=list)
    red_picks: List[str] = field(default_factory=list)
    fearless_used_champions: List[str] = field(default_factory=list)  # snapshot for transmission
    draft_number: int = 0

    def bans_for(self, team: Team) -> List[str]:
        return self.blue_bans if team is Team.BLUE else self.red_bans

    def picks_for(self, team: Team) -> List[str]:
        return self.blue_picks if team is Team.BLUE else self.red_picks

    def all_selected(self) -> List[str]:
        return self.blue_bans + self.red_bans + self.blue_picks + self.red_picks


@dataclass
class ParticipantSlot:
    connection: Any
    display_name: str
    role: Role


@dataclass
class Room:
    id: str
    draft_state: DraftState = field(default_factory=DraftState)
    blue: Optional[ParticipantSlot] = None
    red: Optional[ParticipantSlot] = None
    spectators: List[ParticipantSlot] = field(default_factory=list)
    host: Any = None  # connection holding host authority
    host_name: Optional[str] = None  # survives host disconnects
    captains: Dict[Team, Optional[str]] = field(
        default_factory=lambda: {Team.BLUE: None, Team.RED: None}
    )
    fearless_enabled: bool = False
    fearless_used: Set[str] = field(default_factory=set)
    pinned: bool = False
    created_at: float = field(default_factory=time.monotonic)
    idle_since: Optional[float] = None
    draft_number: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    # held across a mutation and its broadcast so fan-out order matches commit order
    fanout_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def slot_for(self, team: Team) -> Optional[ParticipantSlot]:
        return self.blue if team is Team.BLUE else self.red

    def participants(self) -> List[ParticipantSlot]:
        slots = [slot for slot in (self.blue, self.red) if slot is not None]
        return slots + list(self.spectators)

    def connections(self) -> List[Any]:
        return [slot.connection for slot in self.participants()]
