"""
Tests for the draft room state machine.
"""

import random

import pytest
from draft_engine.constants import DRAFT_LENGTH, DRAFT_ORDER
from draft_engine.engine import (
    apply_action, is_empty, occupy, reset_draft_by_host, reset_session_used_champions,
    role_of, start_draft, switch_role, toggle_session_mode, vacate
)
from draft_engine.errors import ErrorCode
from draft_engine.models import Action, Phase, Role, Room, Team

CHAMPIONS = [f"Champ{i:02d}" for i in range(40)]


def make_room(fearless=False):
    """Room with Alice (blue, host) and Bob (red)."""
    room = Room(id="TEST01", fearless_enabled=fearless)
    blue, red = object(), object()
    occupy(room, blue, Role.BLUE, "Alice")
    room.host = blue
    room.host_name = "Alice"
    occupy(room, red, Role.RED, "Bob")
    return room, blue, red


def actor_for(turn, blue, red):
    return blue if DRAFT_ORDER[turn].team is Team.BLUE else red


def run_draft(room, blue, red, champions):
    for turn, champion in enumerate(champions):
        result = apply_action(room, champion, actor_for(turn, blue, red))
        assert result, result


def test_draft_order_table():
    """Test the twenty-step tournament order."""
    expected = [
        "blue ban", "red ban", "blue ban", "red ban", "blue ban", "red ban",
        "blue pick", "red pick", "red pick", "blue pick", "blue pick", "red pick",
        "red ban", "blue ban", "red ban", "blue ban",
        "red pick", "blue pick", "red pick", "blue pick",
    ]
    assert DRAFT_LENGTH == 20
    assert [f"{s.team.value} {s.action.value}" for s in DRAFT_ORDER] == expected


def test_start_draft():
    """Test starting a draft points at the first blue ban."""
    room, blue, red = make_room()
    result = start_draft(room, blue)

    assert result.success
    state = room.draft_state
    assert state.phase is Phase.DRAFTING
    assert state.current_turn == 0
    assert state.current_team is Team.BLUE
    assert state.current_action is Action.BAN
    assert state.draft_number == 1


def test_start_draft_requires_host():
    room, blue, red = make_room()
    result = start_draft(room, red)

    assert not result.success
    assert result.error_code is ErrorCode.NOT_AUTHORIZED
    assert room.draft_state.phase is Phase.IDLE


def test_vacant_host_claimed_by_team_player():
    """Test a seated team player takes over a vacant host seat."""
    room, blue, red = make_room()
    vacate(room, blue)
    assert room.host is None
    assert room.host_name == "Alice"

    result = start_draft(room, red)
    assert result.success
    assert room.host is red
    assert room.host_name == "Bob"


def test_spectator_cannot_claim_host():
    room, blue, red = make_room()
    watcher = object()
    occupy(room, watcher, Role.SPECTATOR, "Carol")
    vacate(room, blue)

    result = start_draft(room, watcher)
    assert result.error_code is ErrorCode.NOT_AUTHORIZED


def test_action_before_start():
    room, blue, red = make_room()
    result = apply_action(room, "Ahri", blue)
    assert result.error_code is ErrorCode.DRAFT_NOT_IN_PROGRESS


def test_not_your_turn():
    """Test acting out of turn leaves the draft untouched."""
    room, blue, red = make_room()
    start_draft(room, blue)

    result = apply_action(room, "Ahri", red)
    assert result.error_code is ErrorCode.NOT_YOUR_TURN
    assert room.draft_state.current_turn == 0
    assert room.draft_state.red_bans == []


def test_spectator_and_stranger_cannot_act():
    room, blue, red = make_room()
    watcher = object()
    occupy(room, watcher, Role.SPECTATOR, "Carol")
    start_draft(room, blue)

    assert apply_action(room, "Ahri", watcher).error_code is ErrorCode.NOT_YOUR_TURN
    assert apply_action(room, "Ahri", object()).error_code is ErrorCode.NOT_YOUR_TURN


def test_empty_champion():
    room, blue, red = make_room()
    start_draft(room, blue)
    assert apply_action(room, "", blue).error_code is ErrorCode.INVALID_EVENT


def test_duplicate_champion():
    """Test a banned champion cannot be banned or picked again."""
    room, blue, red = make_room()
    start_draft(room, blue)
    assert apply_action(room, "Ahri", blue)

    result = apply_action(room, "Ahri", red)
    assert result.error_code is ErrorCode.CHAMPION_UNAVAILABLE
    assert room.draft_state.current_turn == 1


def test_apply_action_payload():
    room, blue, red = make_room()
    start_draft(room, blue)
    result = apply_action(room, "Ahri", blue)

    assert result.payload == {"team": Team.BLUE, "action": Action.BAN, "champion": "Ahri", "turn": 0}
    assert room.draft_state.blue_bans == ["Ahri"]
    assert room.draft_state.current_team is Team.RED


def test_full_draft_completes():
    """Test twenty legal actions complete the draft."""
    room, blue, red = make_room()
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])

    state = room.draft_state
    assert state.phase is Phase.COMPLETE
    assert state.current_turn == DRAFT_LENGTH
    assert state.current_team is None
    assert state.current_action is None
    assert len(state.blue_bans) == len(state.red_bans) == 5
    assert len(state.blue_picks) == len(state.red_picks) == 5
    assert state.blue_picks == ["Champ06", "Champ09", "Champ10", "Champ17", "Champ19"]

    result = apply_action(room, "Extra", blue)
    assert result.error_code is ErrorCode.DRAFT_NOT_IN_PROGRESS


def test_exhausted_turn_pointer_is_repaired():
    """Test a drafting state past the last step reports completion and fixes the phase."""
    room, blue, red = make_room()
    start_draft(room, blue)
    room.draft_state.current_turn = DRAFT_LENGTH

    result = apply_action(room, "Ahri", blue)
    assert result.error_code is ErrorCode.DRAFT_ALREADY_COMPLETE
    assert room.draft_state.phase is Phase.COMPLETE
    assert room.draft_state.current_team is None


def test_restart_clears_lists():
    room, blue, red = make_room()
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:7])
    start_draft(room, blue)

    state = room.draft_state
    assert state.all_selected() == []
    assert state.current_turn == 0
    assert state.draft_number == 2


def test_reset_draft_by_host():
    room, blue, red = make_room()
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:3])

    assert reset_draft_by_host(room, red).error_code is ErrorCode.NOT_AUTHORIZED
    assert reset_draft_by_host(room, blue).success
    state = room.draft_state
    assert state.phase is Phase.IDLE
    assert state.all_selected() == []
    assert state.draft_number == 1
    assert room.blue.display_name == "Alice"


def test_only_captain_may_ban():
    """Test bans are reserved to a designated captain while picks are not."""
    room, blue, red = make_room()
    room.captains[Team.BLUE] = "Carol"
    start_draft(room, blue)

    result = apply_action(room, "Ahri", blue)
    assert result.error_code is ErrorCode.ONLY_CAPTAIN_MAY_BAN

    room.captains[Team.BLUE] = None
    run_draft(room, blue, red, CHAMPIONS[:6])
    room.captains[Team.BLUE] = "Carol"
    assert apply_action(room, "Ahri", blue).success


def test_captain_claim():
    room = Room(id="TEST01")
    alice = object()
    result = occupy(room, alice, Role.BLUE, "Alice", claim_captain=True)

    assert result.payload["role"] is Role.BLUE
    assert room.captains[Team.BLUE] == "Alice"


def test_captain_slot_taken():
    """Test a second captain claim fails without touching the room."""
    room = Room(id="TEST01")
    alice = object()
    occupy(room, alice, Role.BLUE, "Alice", claim_captain=True)
    vacate(room, alice)
    assert room.captains[Team.BLUE] == "Alice"

    zed = object()
    result = occupy(room, zed, Role.BLUE, "Zed", claim_captain=True)
    assert result.error_code is ErrorCode.CAPTAIN_SLOT_TAKEN
    assert room.blue is None
    assert role_of(room, zed) is None

    again = occupy(room, object(), Role.BLUE, "Alice", claim_captain=True)
    assert again.success


def test_reseating_mid_draft():
    """Test a seated player may re-take its own seat during a draft but not move."""
    room, blue, red = make_room()
    start_draft(room, blue)

    assert occupy(room, blue, Role.SPECTATOR, "Alice").error_code is ErrorCode.DRAFT_IN_PROGRESS
    assert occupy(room, blue, Role.RED, "Alice").error_code is ErrorCode.DRAFT_IN_PROGRESS
    assert room.blue.connection is blue
    assert room.spectators == []

    assert occupy(room, blue, Role.BLUE, "Alice").payload["role"] is Role.BLUE
    assert apply_action(room, "Ahri", blue).success


def test_reseating_clears_captaincy_when_idle():
    room = Room(id="TEST01")
    alice = object()
    occupy(room, alice, Role.BLUE, "Alice", claim_captain=True)

    assert occupy(room, alice, Role.RED, "Alice").payload["role"] is Role.RED
    assert room.captains[Team.BLUE] is None
    assert room.blue is None
    assert room.red.connection is alice


def test_taken_slot_falls_back_to_spectator():
    room, blue, red = make_room()
    late = object()
    result = occupy(room, late, Role.BLUE, "Carol")

    assert result.payload["role"] is Role.SPECTATOR
    assert room.blue.connection is blue
    assert [s.display_name for s in room.spectators] == ["Carol"]


def test_vacate_marks_room_idle():
    room, blue, red = make_room()
    assert vacate(room, blue) is Role.BLUE
    assert room.idle_since is None
    assert vacate(room, red) is Role.RED
    assert is_empty(room)
    assert room.idle_since is not None
    assert vacate(room, red) is None


def test_switch_role_errors():
    room, blue, red = make_room()
    assert switch_role(room, blue, "purple", "Alice").error_code is ErrorCode.INVALID_TEAM
    assert switch_role(room, object(), "spectator", "X").error_code is ErrorCode.NOT_IN_ROOM
    assert switch_role(room, blue, "red", "Alice").error_code is ErrorCode.SLOT_OCCUPIED

    start_draft(room, blue)
    assert switch_role(room, blue, "spectator", "Alice").error_code is ErrorCode.DRAFT_IN_PROGRESS


def test_switch_role_moves_seat_and_drops_captaincy():
    room, blue, red = make_room()
    room.captains[Team.BLUE] = "Alice"

    result = switch_role(room, blue, "spectator", "Alice")
    assert result.payload == {"role": Role.SPECTATOR, "previous": Role.BLUE}
    assert room.blue is None
    assert room.captains[Team.BLUE] is None
    assert role_of(room, blue) is Role.SPECTATOR
    assert room.host is blue

    assert switch_role(room, blue, "blue", "Alicia").success
    assert room.blue.display_name == "Alicia"
    assert room.host_name == "Alicia"


def test_switch_role_after_completion():
    room, blue, red = make_room()
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])
    assert switch_role(room, red, "spectator", "Bob").success


def test_fearless_blocks_previous_picks():
    """Test picks from earlier drafts stay unavailable in Fearless mode."""
    room, blue, red = make_room(fearless=True)
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])
    picks = room.draft_state.blue_picks + room.draft_state.red_picks
    assert room.draft_state.fearless_used_champions == sorted(picks)

    start_draft(room, blue)
    assert room.draft_state.fearless_used_champions == sorted(picks)

    result = apply_action(room, picks[0], blue)
    assert result.error_code is ErrorCode.CHAMPION_UNAVAILABLE
    # bans are not remembered
    assert apply_action(room, "Champ00", blue).success


def test_fearless_toggle_keeps_set():
    room, blue, red = make_room(fearless=True)
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])

    assert toggle_session_mode(room, red, False).error_code is ErrorCode.NOT_AUTHORIZED
    assert toggle_session_mode(room, blue, False).success
    assert room.draft_state.fearless_used_champions == []
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])

    assert toggle_session_mode(room, blue, True).success
    assert len(room.draft_state.fearless_used_champions) == 10


def test_reset_session_used_champions():
    room, blue, red = make_room(fearless=True)
    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])

    assert reset_session_used_champions(room, red).error_code is ErrorCode.NOT_AUTHORIZED
    assert reset_session_used_champions(room, blue).success
    assert room.fearless_used == set()
    assert room.draft_state.fearless_used_champions == []

    start_draft(room, blue)
    run_draft(room, blue, red, CHAMPIONS[:20])
    assert room.draft_state.phase is Phase.COMPLETE


def test_fearless_drafts_are_disjoint():
    room, blue, red = make_room(fearless=True)
    seen = set()
    for _ in range(3):
        start_draft(room, blue)
        pool = [c for c in CHAMPIONS if c not in room.fearless_used]
        run_draft(room, blue, red, pool[:20])
        picks = set(room.draft_state.blue_picks + room.draft_state.red_picks)
        assert not picks & seen
        seen |= picks
    assert room.fearless_used == seen


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_traffic_keeps_invariants(seed):
    """Test uniqueness and turn monotonicity under random legal and illegal actions."""
    rng = random.Random(seed)
    room, blue, red = make_room()
    watcher = object()
    occupy(room, watcher, Role.SPECTATOR, "Carol")
    start_draft(room, blue)

    for _ in range(5000):
        if room.draft_state.phase is Phase.COMPLETE:
            break
        before = room.draft_state.current_turn
        step = DRAFT_ORDER[before]
        actor = rng.choice([blue, red, watcher])
        result = apply_action(room, rng.choice(CHAMPIONS[:30]), actor)

        if result.success:
            assert room.draft_state.current_turn == before + 1
            assert actor is (blue if step.team is Team.BLUE else red)
        else:
            assert room.draft_state.current_turn == before

    selected = room.draft_state.all_selected()
    assert len(selected) == len(set(selected))
    assert room.draft_state.phase is Phase.COMPLETE
