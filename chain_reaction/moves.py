from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from chain_reaction.api.models import Cell, GameState, Grid
from chain_reaction.core.explosions import MAX_EXPLOSION_WAVES, simulate
from chain_reaction.fsm import transition
from chain_reaction.turn_processing.turns import check_eliminated, check_win, next_player
from chain_reaction.turn_processing.validators import MoveError, can_make_move, is_valid_move


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class MoveResult:
    """Outcome of `process_move`.

    On failure only `error` is set; no partial state is ever returned.
    """

    success: bool
    state: GameState | None = None
    error: MoveError | None = None
    is_runaway: bool = False
    wave_count: int = 0

    @staticmethod
    def rejected(error: MoveError) -> "MoveResult":
        return MoveResult(success=False, error=error)


def place_orb_on_grid(grid: Grid, player_id: str, row: int, col: int) -> Grid:
    cell = grid[row][col]
    placed = Cell(orbs=cell.orbs + 1, owner_id=player_id, capacity=cell.capacity)

    grid_row = grid[row]
    new_row = grid_row[:col] + (placed,) + grid_row[col + 1 :]
    return grid[:row] + (new_row,) + grid[row + 1 :]


def process_move(
    state: GameState,
    player_id: str,
    row: int,
    col: int,
    *,
    max_waves: int = MAX_EXPLOSION_WAVES,
    now: datetime | None = None,
) -> MoveResult:
    """Apply one orb placement and everything it sets off.

    Steps: status gate, legality checks, place the orb, resolve explosions,
    then either end the game as a runaway (the mover wins outright), or refresh
    eliminations and either declare a winner or pass the turn on.
    """

    blocked = can_make_move(state)
    if blocked is not None:
        return MoveResult.rejected(blocked)

    validation = is_valid_move(state, player_id, row, col)
    if validation.error is not None:
        return MoveResult.rejected(validation.error)

    next_state = state.model_copy(
        update={
            "move_count": state.move_count + 1,
            "turn_started_at": now or _now(),
            "grid": place_orb_on_grid(state.grid, player_id, row, col),
        }
    )

    explosion = simulate(next_state.grid, player_id, max_waves)
    next_state = next_state.model_copy(update={"grid": explosion.grid})

    if explosion.is_runaway:
        next_state = next_state.model_copy(
            update={"status": transition(next_state.status, "declare_runaway"), "winner": player_id}
        )
        return MoveResult(success=True, state=next_state, is_runaway=True, wave_count=explosion.wave_count)

    next_state = next_state.model_copy(update={"players": check_eliminated(next_state)})

    winner = check_win(next_state.players)
    if winner is not None:
        next_state = next_state.model_copy(
            update={"status": transition(next_state.status, "declare_winner"), "winner": winner}
        )
    else:
        next_state = next_state.model_copy(
            update={"current_player_id": next_player(next_state.players, player_id)}
        )

    return MoveResult(success=True, state=next_state, wave_count=explosion.wave_count)
