from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from chain_reaction.api.models import GameState, GameStatus
from chain_reaction.core.grid import in_bounds


class MoveError(StrEnum):
    game_finished = "game_finished"
    game_runaway = "game_runaway"
    game_not_started = "game_not_started"
    game_not_active = "game_not_active"
    player_not_found = "player_not_found"
    player_eliminated = "player_eliminated"
    not_your_turn = "not_your_turn"
    invalid_coordinates = "invalid_coordinates"
    cell_owned_by_other = "cell_owned_by_other"

    @property
    def message(self) -> str:
        return _MOVE_ERROR_MESSAGES[self]


_MOVE_ERROR_MESSAGES: dict[MoveError, str] = {
    MoveError.game_finished: "Game has finished",
    MoveError.game_runaway: "Game ended due to runaway chain reaction",
    MoveError.game_not_started: "Game has not started yet",
    MoveError.game_not_active: "Game is not active",
    MoveError.player_not_found: "Player not found",
    MoveError.player_eliminated: "You have been eliminated and are now spectating",
    MoveError.not_your_turn: "Not your turn",
    MoveError.invalid_coordinates: "Invalid coordinates",
    MoveError.cell_owned_by_other: "Cell is owned by another player",
}


@dataclass(frozen=True, slots=True)
class MoveContext:
    """The move being checked. Small and immutable so it can be logged as-is."""

    player_id: str
    row: int
    col: int


@dataclass(frozen=True, slots=True)
class MoveValidation:
    valid: bool
    error: MoveError | None = None

    @staticmethod
    def ok() -> "MoveValidation":
        return MoveValidation(valid=True)

    @staticmethod
    def rejected(error: MoveError) -> "MoveValidation":
        return MoveValidation(valid=False, error=error)


class MoveValidator(ABC):
    """A small, composable check. Returns the rejection reason, or None to pass."""

    @abstractmethod
    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ActiveGameValidator(MoveValidator):
    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        if state.status != GameStatus.active:
            return MoveError.game_not_active
        return None


@dataclass(frozen=True, slots=True)
class KnownPlayerValidator(MoveValidator):
    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        if state.player(ctx.player_id) is None:
            return MoveError.player_not_found
        return None


@dataclass(frozen=True, slots=True)
class NotEliminatedValidator(MoveValidator):
    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        player = state.player(ctx.player_id)
        if player is not None and player.is_eliminated:
            return MoveError.player_eliminated
        return None


@dataclass(frozen=True, slots=True)
class CurrentTurnValidator(MoveValidator):
    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        if state.current_player_id != ctx.player_id:
            return MoveError.not_your_turn
        return None


@dataclass(frozen=True, slots=True)
class BoundsValidator(MoveValidator):
    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        rows = len(state.grid)
        cols = len(state.grid[0]) if rows else 0
        if not in_bounds(ctx.row, ctx.col, rows, cols):
            return MoveError.invalid_coordinates
        return None


@dataclass(frozen=True, slots=True)
class CellOwnershipValidator(MoveValidator):
    """Empty cells and the mover's own cells are playable, whatever their orb count."""

    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveError | None:
        cell = state.grid[ctx.row][ctx.col]
        if cell.owner_id is not None and cell.owner_id != ctx.player_id:
            return MoveError.cell_owned_by_other
        return None


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[MoveValidator, ...]

    def validate(self, *, ctx: MoveContext, state: GameState) -> MoveValidation:
        for v in self.validators:
            error = v.validate(ctx=ctx, state=state)
            if error is not None:
                return MoveValidation.rejected(error)
        return MoveValidation.ok()


# Order matters: bounds must pass before the cell is looked up.
DEFAULT_MOVE_PIPELINE = ValidatorPipeline(
    validators=(
        ActiveGameValidator(),
        KnownPlayerValidator(),
        NotEliminatedValidator(),
        CurrentTurnValidator(),
        BoundsValidator(),
        CellOwnershipValidator(),
    )
)


def can_make_move(state: GameState) -> MoveError | None:
    """Status gate with the specific reason a non-active game refuses moves."""

    if state.status == GameStatus.finished:
        return MoveError.game_finished
    if state.status == GameStatus.runaway:
        return MoveError.game_runaway
    if state.status == GameStatus.lobby:
        return MoveError.game_not_started
    if state.status != GameStatus.active:
        return MoveError.game_not_active
    return None


def is_valid_move(state: GameState, player_id: str, row: int, col: int) -> MoveValidation:
    ctx = MoveContext(player_id=player_id, row=row, col=col)
    return DEFAULT_MOVE_PIPELINE.validate(ctx=ctx, state=state)
