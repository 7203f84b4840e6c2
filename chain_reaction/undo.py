from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from chain_reaction.api.models import GameState, GameStatus, HistoryEntry, RoomSettings


class UndoError(StrEnum):
    undo_disabled = "undo_disabled"
    game_not_active = "game_not_active"
    no_moves = "no_moves"
    no_history = "no_history"
    not_your_move = "not_your_move"

    @property
    def message(self) -> str:
        return _UNDO_ERROR_MESSAGES[self]


_UNDO_ERROR_MESSAGES: dict[UndoError, str] = {
    UndoError.undo_disabled: "Undo is not enabled for this game",
    UndoError.game_not_active: "Game is not active",
    UndoError.no_moves: "No moves to undo",
    UndoError.no_history: "No previous game state available",
    UndoError.not_your_move: "You can only undo your own moves",
}


@dataclass(frozen=True, slots=True)
class UndoResult:
    success: bool
    state: GameState | None = None
    error: UndoError | None = None


def undo_last_move(
    state: GameState,
    history: Sequence[HistoryEntry],
    player_id: str,
    settings: RoomSettings,
    *,
    now: datetime | None = None,
) -> UndoResult:
    """Roll back to the state recorded before the most recent move.

    `history` is oldest-first; only its last entry is considered.
    """

    if not settings.undo_enabled:
        return UndoResult(success=False, error=UndoError.undo_disabled)
    if state.status != GameStatus.active:
        return UndoResult(success=False, error=UndoError.game_not_active)
    if state.move_count == 0:
        return UndoResult(success=False, error=UndoError.no_moves)
    if not history:
        return UndoResult(success=False, error=UndoError.no_history)

    last = history[-1]
    if last.player_id != player_id:
        return UndoResult(success=False, error=UndoError.not_your_move)

    restored = last.state.model_copy(update={"turn_started_at": now or datetime.now(tz=UTC)})
    return UndoResult(success=True, state=restored)
