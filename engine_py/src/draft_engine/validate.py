"""
Validation for draft actions and role changes.
"""

from typing import Any, Dict, Optional

from .constants import DRAFT_LENGTH, DRAFT_ORDER
from .errors import ErrorCode
from .models import Action, DraftStep, Phase, Role, Room


class ActionResult:
    """Result of a state machine operation."""

    def __init__(
        self,
        success: bool,
        error_code: Optional[ErrorCode] = None,
        error_message: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None
    ):
        self.success = success
        self.error_code = error_code
        self.error_message = error_message
        self.payload = payload or {}

    @classmethod
    def ok(cls, **payload) -> 'ActionResult':
        """Create a successful result."""
        return cls(success=True, payload=payload)

    @classmethod
    def error(cls, error_code: ErrorCode, error_message: str) -> 'ActionResult':
        """Create an error result."""
        return cls(success=False, error_code=error_code, error_message=error_message)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        if self.success:
            return f"ActionResult(ok, {self.payload})"
        return f"ActionResult({self.error_code.value}: {self.error_message})"


def validate_draft_action(
    room: Room,
    champion: str,
    role: Optional[Role],
    display_name: Optional[str] = None
) -> ActionResult:
    """
    Validate a ban or pick against the current turn.

    The checks run in a fixed order so that two colliding requests for the
    same turn fail deterministically: phase, completion, turn ownership,
    captaincy, availability.

    Args:
        room: Room whose draft is being acted on
        champion: Champion identifier
        role: Role held by the acting connection, or None if it holds none
        display_name: Display name of the acting connection

    Returns:
        ActionResult carrying the resolved DraftStep on success
    """
    state = room.draft_state

    if not champion:
        return ActionResult.error(ErrorCode.INVALID_EVENT, "Champion is required")

    if state.phase is not Phase.DRAFTING:
        return ActionResult.error(
            ErrorCode.DRAFT_NOT_IN_PROGRESS,
            "Draft not in progress"
        )

    if state.current_turn >= DRAFT_LENGTH:
        return ActionResult.error(
            ErrorCode.DRAFT_ALREADY_COMPLETE,
            "Draft already complete"
        )

    step = DRAFT_ORDER[state.current_turn]

    if role is None or role.team is not step.team:
        return ActionResult.error(ErrorCode.NOT_YOUR_TURN, "Not your turn")

    if step.action is Action.BAN:
        captain = room.captains.get(step.team)
        if captain is not None and captain != display_name:
            return ActionResult.error(
                ErrorCode.ONLY_CAPTAIN_MAY_BAN,
                f"Only the {step.team.value} captain ({captain}) may ban"
            )

    if champion in state.all_selected():
        return ActionResult.error(
            ErrorCode.CHAMPION_UNAVAILABLE,
            f"{champion} is already banned or picked"
        )

    if room.fearless_enabled and champion in room.fearless_used:
        return ActionResult.error(
            ErrorCode.CHAMPION_UNAVAILABLE,
            f"{champion} was already used in this Fearless session"
        )

    return ActionResult.ok(step=step)


def validate_role_switch(room: Room, connection, current: Optional[Role], target: str) -> ActionResult:
    """Validate a role change request."""
    try:
        target_role = Role(target)
    except ValueError:
        return ActionResult.error(ErrorCode.INVALID_TEAM, f"Invalid team: {target}")

    if current is None:
        return ActionResult.error(ErrorCode.NOT_IN_ROOM, "Not in a room")

    if room.draft_state.phase is Phase.DRAFTING:
        return ActionResult.error(
            ErrorCode.DRAFT_IN_PROGRESS,
            "Cannot switch teams during an active draft"
        )

    if target_role.team is not None:
        slot = room.slot_for(target_role.team)
        if slot is not None and slot.connection is not connection:
            return ActionResult.error(
                ErrorCode.SLOT_OCCUPIED,
                f"{target_role.team.value.capitalize()} team is already occupied"
            )

    return ActionResult.ok(role=target_role)


def describe_step(step: DraftStep) -> str:
    return f"{step.team.value} {step.action.value}"
