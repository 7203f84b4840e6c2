from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from chain_reaction.api.models import GameState, GameStatus, Player, PlayerJoin
from chain_reaction.core.grid import create_grid
from chain_reaction.fsm import transition
from chain_reaction.turn_processing.turns import active_players

# Vibrant, distinct colours; seat order picks the colour.
PLAYER_COLORS: tuple[str, ...] = (
    "#FF6B6B",  # red
    "#4ECDC4",  # teal
    "#45B7D1",  # blue
    "#96CEB4",  # green
    "#FFEAA7",  # yellow
    "#DDA0DD",  # plum
    "#98D8C8",  # mint
    "#F7DC6F",  # light yellow
)

MAX_PLAYERS = len(PLAYER_COLORS)
MIN_PLAYERS_TO_START = 2


def _now() -> datetime:
    return datetime.now(tz=UTC)


def color_for_seat(seat: int) -> str:
    return PLAYER_COLORS[seat % len(PLAYER_COLORS)]


def build_players(joins: Sequence[PlayerJoin]) -> tuple[Player, ...]:
    if not joins:
        raise ValueError("At least one player is required")
    if len(joins) > MAX_PLAYERS:
        raise ValueError(f"At most {MAX_PLAYERS} players allowed")

    ids = [j.player_id for j in joins]
    if len(set(ids)) != len(ids):
        raise ValueError("Player ids must be unique")

    return tuple(
        Player(id=j.player_id, name=j.name or j.player_id, color=color_for_seat(seat))
        for seat, j in enumerate(joins)
    )


def new_game_state(players: Sequence[Player], rows: int, cols: int, *, now: datetime | None = None) -> GameState:
    """A fresh lobby game on an empty board. The first player in the list moves first."""

    if not players:
        raise ValueError("At least one player is required")

    return GameState(
        grid=create_grid(rows, cols),
        players=tuple(players),
        current_player_id=players[0].id,
        move_count=0,
        turn_started_at=now or _now(),
        status=GameStatus.lobby,
        winner=None,
    )


def start_game(state: GameState, *, now: datetime | None = None) -> GameState:
    if state.status != GameStatus.lobby:
        raise ValueError("Game has already started or finished")
    if len(active_players(state.players)) < MIN_PLAYERS_TO_START:
        raise ValueError(f"Need at least {MIN_PLAYERS_TO_START} players to start the game")

    return state.model_copy(
        update={"status": transition(state.status, "begin"), "turn_started_at": now or _now()}
    )


def restart_game(state: GameState, *, now: datetime | None = None) -> GameState:
    """Start over with the same players and board size once a game is over.

    This builds a new game value; the finished game's status is never walked back.
    """

    if state.status not in {GameStatus.finished, GameStatus.runaway}:
        raise ValueError("Game must be finished to restart")

    players = tuple(
        p.model_copy(update={"is_eliminated": False, "orb_count": 0, "color": color_for_seat(seat)})
        for seat, p in enumerate(state.players)
    )
    fresh = new_game_state(players, len(state.grid), len(state.grid[0]), now=now)
    return start_game(fresh, now=now)
