from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID

import redis

from chain_reaction.animations import plan_move_animations
from chain_reaction.api.models import GameState, GameStatus, HistoryEntry, MoveAnimations, Room
from chain_reaction.config import EngineSettings
from chain_reaction.core.grid import pretty
from chain_reaction.game_setup import restart_game, start_game
from chain_reaction.game_store import (
    clear_history,
    get_history,
    pop_history,
    push_history,
    require_room,
    update_state,
)
from chain_reaction.lock import room_lock
from chain_reaction.moves import process_move
from chain_reaction.streams import RoomStream, publish_event, publish_many
from chain_reaction.timeouts import check_timeouts, handle_move_timeout, resolve_game_timeout
from chain_reaction.turn_processing.validators import MoveError
from chain_reaction.undo import UndoError, undo_last_move

logger = logging.getLogger(__name__)

TimeoutKind = Literal["game", "move"]


class ActionRejected(ValueError):
    """A request the game rules refuse. `reason` is a stable, machine-readable code."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


@dataclass(frozen=True, slots=True)
class MoveOutcome:
    room: Room
    wave_count: int
    is_runaway: bool
    animations: MoveAnimations
    event_ids: list[str]


@dataclass(frozen=True, slots=True)
class ActionResult:
    room: Room
    message: str
    event_ids: list[str]


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _state_event(*, room: Room, type: str, **extra: str) -> tuple[str, dict[str, str]]:
    state = room.state
    fields = {
        "type": type,
        "room_id": str(room.room_id),
        "status": state.status.value,
        "move_count": str(state.move_count),
        "current_player_id": state.current_player_id,
        "winner": state.winner or "",
        "ts": _now().isoformat(),
    }
    fields.update(extra)
    return RoomStream(room_id=str(room.room_id)).key, fields


def _game_started_at(room: Room) -> datetime:
    return room.started_at or room.created_at


def _require_host(room: Room, host_id: str, verb: str) -> None:
    if room.host_id != host_id:
        raise ActionRejected("not_host", f"Only the room host can {verb} the game")


def apply_move(
    *,
    r: redis.Redis,
    room_id: UUID,
    player_id: str,
    row: int,
    col: int,
    settings: EngineSettings,
    now: datetime | None = None,
) -> MoveOutcome:
    """Entry point for a player's move.

    - acquire the per-room lock
    - resolve expired clocks first (a game timeout ends the game; a move timeout skips the turn)
    - run the move through the pure move processor
    - persist the new state plus an undo snapshot
    - publish the move (with its animation records) to the room's event stream
    """

    now = now or _now()

    with room_lock(r=r, room_id=str(room_id), ttl_ms=settings.lock_ttl_ms):
        room = require_room(r=r, room_id=room_id)
        state = room.state

        if state.status == GameStatus.active:
            check = check_timeouts(state, room.settings, _game_started_at(room), now=now)

            if check.is_game_timeout and check.winner is not None:
                room = update_state(r=r, room=room, state=resolve_game_timeout(state, check.winner))
                publish_many(r=r, entries=[_state_event(room=room, type="game_timed_out")])
                logger.info("room %s: game clock expired, winner %s", room_id, check.winner)
                raise ActionRejected("game_timeout", "Game has timed out. Winner determined by highest orb count.")

            if check.is_move_timeout:
                skipped = handle_move_timeout(state, now=now)
                if state.current_player_id == player_id:
                    room = update_state(r=r, room=room, state=skipped)
                    publish_many(r=r, entries=[_state_event(room=room, type="turn_skipped", player_id=player_id)])
                    logger.info("room %s: %s ran out of time, turn skipped", room_id, player_id)
                    raise ActionRejected("move_timeout", "Your turn has timed out and been skipped")
                state = skipped

        result = process_move(state, player_id, row, col, max_waves=settings.max_waves, now=now)
        if result.error is not None or result.state is None:
            error = result.error or MoveError.game_not_active
            logger.info("room %s: move by %s at (%d, %d) rejected: %s", room_id, player_id, row, col, error.value)
            raise ActionRejected(error.value, error.message)

        mover = state.player(player_id)
        color = mover.color if mover is not None else ""
        animations = plan_move_animations(state.grid, player_id, color, row, col, max_waves=settings.max_waves)

        push_history(
            r=r,
            room_id=room_id,
            entry=HistoryEntry(state=state, player_id=player_id, row=row, col=col, recorded_at=now),
            limit=settings.history_limit,
        )
        room = update_state(r=r, room=room, state=result.state)

        event = _state_event(
            room=room,
            type="move_applied",
            player_id=player_id,
            row=str(row),
            col=str(col),
            wave_count=str(result.wave_count),
            is_runaway=json.dumps(result.is_runaway),
            animations=animations.model_dump_json(),
        )
        ids = publish_many(r=r, entries=[event])

        logger.info(
            "room %s: %s played (%d, %d), %d wave(s), status=%s",
            room_id,
            player_id,
            row,
            col,
            result.wave_count,
            room.state.status.value,
        )
        logger.debug("room %s board:\n%s", room_id, pretty(room.state.grid))

        return MoveOutcome(
            room=room,
            wave_count=result.wave_count,
            is_runaway=result.is_runaway,
            animations=animations,
            event_ids=ids,
        )


def apply_timeout(
    *,
    r: redis.Redis,
    room_id: UUID,
    kind: TimeoutKind,
    settings: EngineSettings,
    now: datetime | None = None,
) -> ActionResult:
    """Resolve an expired clock reported by a polling client."""

    now = now or _now()

    with room_lock(r=r, room_id=str(room_id), ttl_ms=settings.lock_ttl_ms):
        room = require_room(r=r, room_id=room_id)
        state = room.state

        if state.status != GameStatus.active:
            raise ActionRejected("game_not_active", "Game is not active")

        check = check_timeouts(state, room.settings, _game_started_at(room), now=now)

        # An expired game clock ends the game whichever clock the client reported.
        new_state: GameState
        if check.is_game_timeout and check.winner is not None:
            new_state = resolve_game_timeout(state, check.winner)
            message = "Game timed out. Winner determined by highest orb count."
            event_type = "game_timed_out"
        elif kind == "move" and check.is_move_timeout:
            new_state = handle_move_timeout(state, now=now)
            message = "Move timed out. Turn has been skipped."
            event_type = "turn_skipped"
        else:
            raise ActionRejected("no_timeout", f"No {kind} timeout detected")

        room = update_state(r=r, room=room, state=new_state)
        ids = publish_many(r=r, entries=[_state_event(room=room, type=event_type)])
        logger.info("room %s: %s", room_id, message)
        return ActionResult(room=room, message=message, event_ids=ids)


def apply_undo(
    *,
    r: redis.Redis,
    room_id: UUID,
    player_id: str,
    settings: EngineSettings,
    now: datetime | None = None,
) -> ActionResult:
    with room_lock(r=r, room_id=str(room_id), ttl_ms=settings.lock_ttl_ms):
        room = require_room(r=r, room_id=room_id)
        history = get_history(r=r, room_id=room_id)

        result = undo_last_move(room.state, history, player_id, room.settings, now=now)
        if result.error is not None or result.state is None:
            error = result.error or UndoError.no_history
            raise ActionRejected(error.value, error.message)

        pop_history(r=r, room_id=room_id)
        room = update_state(r=r, room=room, state=result.state)
        ids = publish_many(r=r, entries=[_state_event(room=room, type="move_undone", player_id=player_id)])
        logger.info("room %s: %s undid their last move", room_id, player_id)
        return ActionResult(room=room, message="Move undone successfully", event_ids=ids)


def start_room(
    *,
    r: redis.Redis,
    room_id: UUID,
    host_id: str,
    settings: EngineSettings,
    now: datetime | None = None,
) -> ActionResult:
    now = now or _now()

    with room_lock(r=r, room_id=str(room_id), ttl_ms=settings.lock_ttl_ms):
        room = require_room(r=r, room_id=room_id)
        _require_host(room, host_id, "start")

        try:
            state = start_game(room.state, now=now)
        except ValueError as e:
            raise ActionRejected("cannot_start", str(e)) from e

        room = update_state(r=r, room=room, state=state, started_at=now)
        _, fields = _state_event(room=room, type="game_started")
        event_id = publish_event(r=r, stream=RoomStream(room_id=str(room_id)), fields=fields)
        logger.info("room %s: game started with %d players", room_id, len(state.players))
        return ActionResult(room=room, message="Game started", event_ids=[event_id])


def restart_room(
    *,
    r: redis.Redis,
    room_id: UUID,
    host_id: str,
    settings: EngineSettings,
    now: datetime | None = None,
) -> ActionResult:
    now = now or _now()

    with room_lock(r=r, room_id=str(room_id), ttl_ms=settings.lock_ttl_ms):
        room = require_room(r=r, room_id=room_id)
        _require_host(room, host_id, "restart")

        try:
            state = restart_game(room.state, now=now)
        except ValueError as e:
            raise ActionRejected("cannot_restart", str(e)) from e

        clear_history(r=r, room_id=room_id)
        room = update_state(r=r, room=room, state=state, started_at=now)
        _, fields = _state_event(room=room, type="game_restarted")
        event_id = publish_event(r=r, stream=RoomStream(room_id=str(room_id)), fields=fields)
        logger.info("room %s: game restarted", room_id)
        return ActionResult(room=room, message="Game restarted", event_ids=[event_id])
