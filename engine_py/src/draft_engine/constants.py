"""Draft constants and the tournament pick/ban order"""

from typing import Tuple

from .models import Action, DraftStep, Team

# Tournament draft order (modern pro play)
DRAFT_ORDER: Tuple[DraftStep, ...] = (
    # Ban phase 1
    DraftStep(Team.BLUE, Action.BAN),
    DraftStep(Team.RED, Action.BAN),
    DraftStep(Team.BLUE, Action.BAN),
    DraftStep(Team.RED, Action.BAN),
    DraftStep(Team.BLUE, Action.BAN),
    DraftStep(Team.RED, Action.BAN),
    # Pick phase 1
    DraftStep(Team.BLUE, Action.PICK),
    DraftStep(Team.RED, Action.PICK),
    DraftStep(Team.RED, Action.PICK),
    DraftStep(Team.BLUE, Action.PICK),
    DraftStep(Team.BLUE, Action.PICK),
    DraftStep(Team.RED, Action.PICK),
    # Ban phase 2
    DraftStep(Team.RED, Action.BAN),
    DraftStep(Team.BLUE, Action.BAN),
    DraftStep(Team.RED, Action.BAN),
    DraftStep(Team.BLUE, Action.BAN),
    # Pick phase 2
    DraftStep(Team.RED, Action.PICK),
    DraftStep(Team.BLUE, Action.PICK),
    DraftStep(Team.RED, Action.PICK),
    DraftStep(Team.BLUE, Action.PICK),
)

DRAFT_LENGTH = len(DRAFT_ORDER)

# Ambiguous characters (0/O, 1/I) removed
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

DEFAULT_PLAYER_NAME = "Player"
MAX_NAME_LENGTH = 30
MAX_CHAMPION_LENGTH = 50

REPLACED_BY_RECONNECT = "replaced_by_reconnect"
CONNECTION_LOST_NOTICE = "connection lost, please refresh"
RECONNECTING_NOTICE = "Reconnecting..."
