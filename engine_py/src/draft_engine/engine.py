"""Room state machine: draft lifecycle, turn enforcement and seat occupancy"""

import logging
import time
from typing import Optional

from .constants import DRAFT_LENGTH, DRAFT_ORDER
from .errors import ErrorCode
from .models import Action, DraftState, ParticipantSlot, Phase, Role, Room
from .validate import ActionResult, describe_step, validate_draft_action, validate_role_switch

logger = logging.getLogger(__name__)


# Seat lookups

def slot_of(room: Room, connection) -> Optional[ParticipantSlot]:
    """Find the slot held by a connection, if any."""
    for slot in room.participants():
        if slot.connection is connection:
            return slot
    return None


def role_of(room: Room, connection) -> Optional[Role]:
    slot = slot_of(room, connection)
    return slot.role if slot else None


def is_empty(room: Room) -> bool:
    return room.blue is None and room.red is None and not room.spectators


def is_host(room: Room, connection) -> bool:
    return connection is not None and room.host is connection


def _claim_host(room: Room, connection) -> bool:
    """Resolve host authority, letting a seated team player claim a vacant host seat."""
    if is_host(room, connection):
        return True
    if room.host is not None:
        return False
    slot = slot_of(room, connection)
    if slot is None or slot.role is Role.SPECTATOR:
        return False
    room.host = connection
    room.host_name = slot.display_name
    logger.info(f"{slot.display_name} claimed host of room {room.id}")
    return True


def occupy(
    room: Room,
    connection,
    desired_role: Role,
    display_name: str,
    claim_captain: bool = False
) -> ActionResult:
    """
    Seat a connection in a room.

    A taken team slot falls back to spectator. Captaincy is claimed only when
    it is unclaimed or already held under the same display name. A connection
    already seated here keeps its seat while a draft is running; any other
    resolved role is refused.
    """
    with room.lock:
        role = desired_role
        team = role.team
        if team is not None:
            slot = room.slot_for(team)
            if slot is not None and slot.connection is not connection:
                role = Role.SPECTATOR
                team = None

        current = slot_of(room, connection)
        moving = current is not None and current.role is not role
        if moving and room.draft_state.phase is Phase.DRAFTING:
            return ActionResult.error(
                ErrorCode.DRAFT_IN_PROGRESS,
                "Cannot switch teams during an active draft"
            )

        if claim_captain and team is not None:
            captain = room.captains[team]
            if captain is not None and captain != display_name:
                return ActionResult.error(
                    ErrorCode.CAPTAIN_SLOT_TAKEN,
                    f"{team.value.capitalize()} team already has a captain ({captain})"
                )

        if moving and current.role.team is not None:
            if room.captains[current.role.team] == current.display_name:
                room.captains[current.role.team] = None
        _vacate(room, connection)
        _seat(room, connection, role, display_name)
        if claim_captain and team is not None:
            room.captains[team] = display_name
        room.idle_since = None
        return ActionResult.ok(role=role)


def _seat(room: Room, connection, role: Role, display_name: str):
    slot = ParticipantSlot(connection=connection, display_name=display_name, role=role)
    if role is Role.BLUE:
        room.blue = slot
    elif role is Role.RED:
        room.red = slot
    else:
        room.spectators.append(slot)


def _vacate(room: Room, connection) -> Optional[ParticipantSlot]:
    slot = slot_of(room, connection)
    if slot is None:
        return None
    if slot.role is Role.BLUE:
        room.blue = None
    elif slot.role is Role.RED:
        room.red = None
    else:
        room.spectators = [s for s in room.spectators if s.connection is not connection]
    return slot


def vacate(room: Room, connection) -> Optional[Role]:
    """
    Remove a connection from its seat.

    Host authority is released but the host's name is kept, as are captain
    claims, so the same player can take both back on rejoin.
    """
    with room.lock:
        slot = _vacate(room, connection)
        if room.host is connection:
            room.host = None
        if is_empty(room):
            room.idle_since = time.monotonic()
        return slot.role if slot else None


# Draft lifecycle

def reset_draft(room: Room) -> DraftState:
    """Replace the draft with a fresh idle one, keeping roster, captains and host."""
    with room.lock:
        room.draft_state = DraftState(
            fearless_used_champions=_fearless_snapshot(room),
            draft_number=room.draft_number,
        )
        return room.draft_state


def reset_draft_by_host(room: Room, connection) -> ActionResult:
    with room.lock:
        if not _claim_host(room, connection):
            return ActionResult.error(
                ErrorCode.NOT_AUTHORIZED,
                "Only the host can reset the draft"
            )
        reset_draft(room)
        logger.info(f"Draft reset in room {room.id}")
        return ActionResult.ok()


def start_draft(room: Room, connection) -> ActionResult:
    """Reset and begin a draft. Calling it again restarts the draft."""
    with room.lock:
        if not _claim_host(room, connection):
            return ActionResult.error(
                ErrorCode.NOT_AUTHORIZED,
                "Only the host can start the draft"
            )
        room.draft_number += 1
        state = reset_draft(room)
        state.phase = Phase.DRAFTING
        _point_at(state, 0)
        logger.info(f"Draft #{room.draft_number} started in room {room.id}")
        return ActionResult.ok()


def apply_action(room: Room, champion: str, connection) -> ActionResult:
    """
    Apply a ban or pick for the acting connection's team.

    Validation and mutation happen under the room lock, so two requests for
    the same turn can never both pass against the same current_turn.
    """
    with room.lock:
        state = room.draft_state
        slot = slot_of(room, connection)
        result = validate_draft_action(
            room,
            champion,
            slot.role if slot else None,
            slot.display_name if slot else None,
        )
        if not result:
            if result.error_code is ErrorCode.DRAFT_ALREADY_COMPLETE:
                _finish(state)
            return result

        step = result.payload["step"]
        applied_turn = state.current_turn
        if step.action is Action.BAN:
            state.bans_for(step.team).append(champion)
        else:
            state.picks_for(step.team).append(champion)
            if room.fearless_enabled:
                room.fearless_used.add(champion)
                state.fearless_used_champions = _fearless_snapshot(room)

        state.current_turn += 1
        if state.current_turn < DRAFT_LENGTH:
            _point_at(state, state.current_turn)
        else:
            _finish(state)
            logger.info(f"Draft #{room.draft_number} complete in room {room.id}")

        logger.debug(f"Room {room.id} turn {applied_turn}: {describe_step(step)} {champion}")
        return ActionResult.ok(
            team=step.team,
            action=step.action,
            champion=champion,
            turn=applied_turn,
        )


def _point_at(state: DraftState, turn: int):
    step = DRAFT_ORDER[turn]
    state.current_team = step.team
    state.current_action = step.action


def _finish(state: DraftState):
    state.phase = Phase.COMPLETE
    state.current_team = None
    state.current_action = None


# Fearless session mode

def _fearless_snapshot(room: Room):
    return sorted(room.fearless_used) if room.fearless_enabled else []


def toggle_session_mode(room: Room, connection, enabled: bool) -> ActionResult:
    """Enable or disable Fearless mode without touching the used-champion set."""
    with room.lock:
        if not _claim_host(room, connection):
            return ActionResult.error(
                ErrorCode.NOT_AUTHORIZED,
                "Only the host can toggle Fearless Draft"
            )
        room.fearless_enabled = enabled
        room.draft_state.fearless_used_champions = _fearless_snapshot(room)
        logger.info(f"Fearless Draft {'enabled' if enabled else 'disabled'} in room {room.id}")
        return ActionResult.ok(enabled=enabled)


def reset_session_used_champions(room: Room, connection) -> ActionResult:
    with room.lock:
        if not _claim_host(room, connection):
            return ActionResult.error(
                ErrorCode.NOT_AUTHORIZED,
                "Only the host can reset the Fearless session"
            )
        room.fearless_used.clear()
        room.draft_state.fearless_used_champions = []
        logger.info(f"Fearless session reset in room {room.id}")
        return ActionResult.ok()


# Role changes

def switch_role(room: Room, connection, to_role: str, display_name: str) -> ActionResult:
    """Move a seated connection to another team or to the spectators."""
    with room.lock:
        current = role_of(room, connection)
        result = validate_role_switch(room, connection, current, to_role)
        if not result:
            return result

        target = result.payload["role"]
        old_team = current.team
        if old_team is not None and target is not current:
            if room.captains[old_team] == slot_of(room, connection).display_name:
                room.captains[old_team] = None
        _vacate(room, connection)
        _seat(room, connection, target, display_name)
        if room.host is connection:
            room.host_name = display_name
        return ActionResult.ok(role=target, previous=current)
