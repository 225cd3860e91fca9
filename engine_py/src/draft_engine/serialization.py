"""
State serialization for transmission to clients.
"""

from typing import Any, Dict, Optional

from .models import DraftState, Room, Team


def _value(member) -> Optional[str]:
    return member.value if member is not None else None


def serialize_draft_state(state: DraftState) -> Dict[str, Any]:
    """
    Serialize a draft state into its wire form.

    Lists are copied so a snapshot never aliases live room state.
    """
    return {
        "phase": state.phase.value,
        "currentTurn": state.current_turn,
        "currentTeam": _value(state.current_team),
        "currentAction": _value(state.current_action),
        "blueBans": list(state.blue_bans),
        "redBans": list(state.red_bans),
        "bluePicks": list(state.blue_picks),
        "redPicks": list(state.red_picks),
        "fearlessUsedChampions": list(state.fearless_used_champions),
        "draftNumber": state.draft_number,
    }


def serialize_roster(room: Room) -> Dict[str, Any]:
    """Serialize who occupies which seat in a room."""
    return {
        "bluePlayerName": room.blue.display_name if room.blue else None,
        "redPlayerName": room.red.display_name if room.red else None,
        "blueCaptain": room.captains.get(Team.BLUE),
        "redCaptain": room.captains.get(Team.RED),
        "hostName": room.host_name,
        "spectators": [slot.display_name for slot in room.spectators],
    }


def serialize_room(room: Room) -> Dict[str, Any]:
    """Point-in-time snapshot of a room for the HTTP API."""
    with room.lock:
        return {
            "roomId": room.id,
            "draftState": serialize_draft_state(room.draft_state),
            "fearlessDraftEnabled": room.fearless_enabled,
            "roster": serialize_roster(room),
        }
