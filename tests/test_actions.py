from __future__ import annotations

import json
from datetime import timedelta

import fakeredis
import pytest

from chain_reaction.actions import ActionRejected, apply_move, apply_timeout, apply_undo, restart_room, start_room
from chain_reaction.api.models import BoardSize, GameStatus, PlayerJoin, RoomCreateRequest, RoomSettings
from chain_reaction.config import EngineSettings
from chain_reaction.game_store import create_room, get_history, require_room, update_state
from chain_reaction.streams import RoomStream

ENGINE = EngineSettings()


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


def _room(r, t0, **settings):
    request = RoomCreateRequest(
        host_id="alice",
        players=[PlayerJoin(player_id="alice"), PlayerJoin(player_id="bob")],
        settings=RoomSettings(board_size=BoardSize(rows=3, cols=3), **settings),
    )
    room = create_room(r=r, request=request)
    start_room(r=r, room_id=room.room_id, host_id="alice", settings=ENGINE, now=t0)
    return room.room_id


def _event_types(r, room_id) -> list[str]:
    return [fields["type"] for _, fields in r.xrange(RoomStream(room_id=str(room_id)).key)]


def test_move_is_persisted_and_published(r, t0) -> None:
    room_id = _room(r, t0)

    outcome = apply_move(r=r, room_id=room_id, player_id="alice", row=0, col=0, settings=ENGINE, now=t0)

    stored = require_room(r=r, room_id=room_id)
    assert stored.state.move_count == 1
    assert stored.state.current_player_id == "bob"
    assert outcome.animations.placement.id == "placement-0-0"
    assert _event_types(r, room_id) == ["game_started", "move_applied"]

    _, fields = r.xrange(RoomStream(room_id=str(room_id)).key)[-1]
    assert fields["player_id"] == "alice"
    assert json.loads(fields["is_runaway"]) is False
    assert json.loads(fields["animations"])["placement"]["row"] == 0

    (entry,) = get_history(r=r, room_id=room_id)
    assert entry.player_id == "alice"
    assert entry.state.move_count == 0


def test_rejected_move_changes_nothing(r, t0) -> None:
    room_id = _room(r, t0)

    with pytest.raises(ActionRejected) as exc:
        apply_move(r=r, room_id=room_id, player_id="bob", row=0, col=0, settings=ENGINE, now=t0)

    assert exc.value.reason == "not_your_turn"
    assert require_room(r=r, room_id=room_id).state.move_count == 0
    assert get_history(r=r, room_id=room_id) == []
    assert _event_types(r, room_id) == ["game_started"]


def test_stale_turn_of_another_player_is_skipped_before_the_move(r, t0) -> None:
    room_id = _room(r, t0, move_time_limit_seconds=30)
    apply_move(r=r, room_id=room_id, player_id="alice", row=0, col=0, settings=ENGINE, now=t0 + timedelta(seconds=5))

    # Bob never moved; alice plays again once his clock has run out.
    apply_move(r=r, room_id=room_id, player_id="alice", row=1, col=1, settings=ENGINE, now=t0 + timedelta(seconds=40))

    state = require_room(r=r, room_id=room_id).state
    assert state.move_count == 2
    assert state.current_player_id == "bob"


def test_mover_whose_clock_ran_out_is_skipped(r, t0) -> None:
    room_id = _room(r, t0, move_time_limit_seconds=30)

    with pytest.raises(ActionRejected) as exc:
        apply_move(r=r, room_id=room_id, player_id="alice", row=0, col=0, settings=ENGINE, now=t0 + timedelta(seconds=31))

    assert exc.value.reason == "move_timeout"
    state = require_room(r=r, room_id=room_id).state
    assert state.current_player_id == "bob"
    assert state.move_count == 0
    assert _event_types(r, room_id)[-1] == "turn_skipped"


def test_expired_game_clock_ends_the_game_on_next_move(r, t0) -> None:
    room_id = _room(r, t0, game_time_limit_minutes=10)
    apply_move(r=r, room_id=room_id, player_id="alice", row=1, col=1, settings=ENGINE, now=t0 + timedelta(seconds=5))

    with pytest.raises(ActionRejected) as exc:
        apply_move(r=r, room_id=room_id, player_id="bob", row=0, col=0, settings=ENGINE, now=t0 + timedelta(minutes=11))

    assert exc.value.reason == "game_timeout"
    state = require_room(r=r, room_id=room_id).state
    assert state.status == GameStatus.finished
    assert state.winner == "alice"
    assert _event_types(r, room_id)[-1] == "game_timed_out"


def test_apply_timeout_requires_an_expired_clock(r, t0) -> None:
    room_id = _room(r, t0, move_time_limit_seconds=30)

    with pytest.raises(ActionRejected) as exc:
        apply_timeout(r=r, room_id=room_id, kind="move", settings=ENGINE, now=t0 + timedelta(seconds=10))
    assert exc.value.reason == "no_timeout"

    result = apply_timeout(r=r, room_id=room_id, kind="move", settings=ENGINE, now=t0 + timedelta(seconds=45))
    assert result.message == "Move timed out. Turn has been skipped."
    assert result.room.state.current_player_id == "bob"


def test_expired_game_clock_wins_over_a_move_timeout_poll(r, t0) -> None:
    room_id = _room(r, t0, game_time_limit_minutes=1, move_time_limit_seconds=10)

    result = apply_timeout(r=r, room_id=room_id, kind="move", settings=ENGINE, now=t0 + timedelta(minutes=5))

    state = require_room(r=r, room_id=room_id).state
    assert state.status == GameStatus.finished
    assert state.winner == "alice"
    assert state.current_player_id == "alice"
    assert result.message == "Game timed out. Winner determined by highest orb count."
    assert _event_types(r, room_id)[-1] == "game_timed_out"


def test_apply_timeout_on_finished_game(r, t0) -> None:
    room_id = _room(r, t0, game_time_limit_minutes=1)
    apply_timeout(r=r, room_id=room_id, kind="game", settings=ENGINE, now=t0 + timedelta(minutes=2))

    with pytest.raises(ActionRejected) as exc:
        apply_timeout(r=r, room_id=room_id, kind="game", settings=ENGINE, now=t0 + timedelta(minutes=3))

    assert exc.value.reason == "game_not_active"


def test_undo_round_trip(r, t0) -> None:
    room_id = _room(r, t0, undo_enabled=True)
    apply_move(r=r, room_id=room_id, player_id="alice", row=2, col=2, settings=ENGINE, now=t0)

    result = apply_undo(r=r, room_id=room_id, player_id="alice", settings=ENGINE, now=t0 + timedelta(seconds=2))

    assert result.room.state.move_count == 0
    assert result.room.state.grid[2][2].orbs == 0
    assert result.room.state.current_player_id == "alice"
    assert get_history(r=r, room_id=room_id) == []
    assert _event_types(r, room_id)[-1] == "move_undone"


def test_undo_by_other_player_is_rejected(r, t0) -> None:
    room_id = _room(r, t0, undo_enabled=True)
    apply_move(r=r, room_id=room_id, player_id="alice", row=2, col=2, settings=ENGINE, now=t0)

    with pytest.raises(ActionRejected) as exc:
        apply_undo(r=r, room_id=room_id, player_id="bob", settings=ENGINE)

    assert exc.value.reason == "not_your_move"
    assert len(get_history(r=r, room_id=room_id)) == 1


def test_history_is_capped(r, t0) -> None:
    room_id = _room(r, t0)
    engine = EngineSettings(history_limit=2)
    for i, (player, cell) in enumerate([("alice", (0, 0)), ("bob", (2, 2)), ("alice", (1, 1))]):
        apply_move(r=r, room_id=room_id, player_id=player, row=cell[0], col=cell[1], settings=engine, now=t0 + timedelta(seconds=i))

    history = get_history(r=r, room_id=room_id)
    assert [h.state.move_count for h in history] == [1, 2]


def test_only_host_can_start_or_restart(r, t0) -> None:
    request = RoomCreateRequest(
        host_id="alice",
        players=[PlayerJoin(player_id="alice"), PlayerJoin(player_id="bob")],
        settings=RoomSettings(board_size=BoardSize(rows=3, cols=3)),
    )
    room = create_room(r=r, request=request)

    with pytest.raises(ActionRejected) as exc:
        start_room(r=r, room_id=room.room_id, host_id="bob", settings=ENGINE, now=t0)
    assert exc.value.reason == "not_host"

    start_room(r=r, room_id=room.room_id, host_id="alice", settings=ENGINE, now=t0)
    with pytest.raises(ActionRejected) as exc:
        start_room(r=r, room_id=room.room_id, host_id="alice", settings=ENGINE, now=t0)
    assert exc.value.reason == "cannot_start"

    with pytest.raises(ActionRejected) as exc:
        restart_room(r=r, room_id=room.room_id, host_id="alice", settings=ENGINE, now=t0)
    assert exc.value.reason == "cannot_restart"


def test_restart_after_finish_clears_history(r, t0) -> None:
    room_id = _room(r, t0)
    apply_move(r=r, room_id=room_id, player_id="alice", row=0, col=0, settings=ENGINE, now=t0)
    room = require_room(r=r, room_id=room_id)
    update_state(r=r, room=room, state=room.state.model_copy(update={"status": GameStatus.finished, "winner": "alice"}))

    later = t0 + timedelta(minutes=1)
    result = restart_room(r=r, room_id=room_id, host_id="alice", settings=ENGINE, now=later)

    assert result.room.state.status == GameStatus.active
    assert result.room.state.move_count == 0
    assert result.room.started_at == later
    assert get_history(r=r, room_id=room_id) == []
    assert _event_types(r, room_id)[-1] == "game_restarted"


def test_create_room_validates_host_and_capacity(r) -> None:
    with pytest.raises(ValueError, match="Host"):
        create_room(
            r=r,
            request=RoomCreateRequest(host_id="carol", players=[PlayerJoin(player_id="alice"), PlayerJoin(player_id="bob")]),
        )
    with pytest.raises(ValueError, match="At most 2"):
        create_room(
            r=r,
            request=RoomCreateRequest(
                host_id="a",
                players=[PlayerJoin(player_id=p) for p in "abc"],
                settings=RoomSettings(max_players=2),
            ),
        )
