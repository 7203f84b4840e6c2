from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from chain_reaction.api.models import GameState, RoomSettings
from chain_reaction.core.grid import count_player_orbs
from chain_reaction.fsm import transition
from chain_reaction.turn_processing.turns import next_player


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class TimeoutCheck:
    is_game_timeout: bool
    is_move_timeout: bool
    # Only set for a game timeout.
    winner: str | None = None


def _expired(started_at: datetime, limit: timedelta | None, now: datetime) -> bool:
    if not limit:
        return False
    return now - started_at > limit


def leading_player(state: GameState) -> str | None:
    """Non-eliminated player with the most orbs on the board; first in turn order on a tie."""

    counts = count_player_orbs(state.grid, state.players)
    best_id: str | None = None
    best_orbs = -1
    for player, orbs in zip(state.players, counts):
        if not player.is_eliminated and orbs > best_orbs:
            best_orbs = orbs
            best_id = player.id
    return best_id


def check_timeouts(
    state: GameState,
    settings: RoomSettings,
    game_started_at: datetime,
    *,
    now: datetime | None = None,
) -> TimeoutCheck:
    """Report which clocks have run out. Pure: applying the result is up to the caller.

    Both flags can be set at once; callers should resolve the game timeout first.
    """

    now = now or _now()

    game_limit = (
        timedelta(minutes=settings.game_time_limit_minutes) if settings.game_time_limit_minutes else None
    )
    move_limit = (
        timedelta(seconds=settings.move_time_limit_seconds) if settings.move_time_limit_seconds else None
    )

    is_game_timeout = _expired(game_started_at, game_limit, now)
    is_move_timeout = _expired(state.turn_started_at, move_limit, now)

    winner = leading_player(state) if is_game_timeout else None
    return TimeoutCheck(is_game_timeout=is_game_timeout, is_move_timeout=is_move_timeout, winner=winner)


def handle_move_timeout(state: GameState, *, now: datetime | None = None) -> GameState:
    """Skip the current player's turn. Grid and move count are left alone."""

    return state.model_copy(
        update={
            "current_player_id": next_player(state.players, state.current_player_id),
            "turn_started_at": now or _now(),
        }
    )


def resolve_game_timeout(state: GameState, winner: str) -> GameState:
    return state.model_copy(update={"status": transition(state.status, "declare_winner"), "winner": winner})


def time_remaining(started_at: datetime, limit_seconds: float, *, now: datetime | None = None) -> timedelta:
    now = now or _now()
    remaining = timedelta(seconds=limit_seconds) - (now - started_at)
    return max(remaining, timedelta(0))


def is_time_expired(started_at: datetime, limit_seconds: float, *, now: datetime | None = None) -> bool:
    return time_remaining(started_at, limit_seconds, now=now) == timedelta(0)


def format_clock(remaining: timedelta) -> str:
    """MM:SS with seconds rounded up, so a clock never shows 00:00 while time is left."""

    total = math.ceil(remaining.total_seconds())
    minutes, seconds = divmod(max(total, 0), 60)
    return f"{minutes:02d}:{seconds:02d}"
