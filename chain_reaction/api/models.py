from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Cell(BaseModel):
    model_config = ConfigDict(frozen=True)

    orbs: int = Field(default=0, ge=0)
    owner_id: str | None = None
    # Critical mass; derived from the cell's position when the grid is built.
    capacity: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _owner_iff_orbs(self) -> "Cell":
        if (self.owner_id is not None) != (self.orbs > 0):
            raise ValueError("owner_id must be set exactly when the cell holds orbs")
        return self


Grid = tuple[tuple[Cell, ...], ...]


class Player(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    color: str = "#FF6B6B"

    # Cached sum of orbs on owned cells; refreshed by the elimination pass.
    orb_count: int = Field(default=0, ge=0)

    # Once set, never cleared for the lifetime of a game.
    is_eliminated: bool = False
    is_connected: bool = True


class GameStatus(StrEnum):
    lobby = "lobby"
    active = "active"
    finished = "finished"
    runaway = "runaway"


class GameState(BaseModel):
    model_config = ConfigDict(frozen=True)

    grid: Grid
    players: tuple[Player, ...]
    current_player_id: str
    move_count: int = Field(default=0, ge=0)
    turn_started_at: datetime
    status: GameStatus = GameStatus.lobby
    winner: str | None = None

    @model_validator(mode="after")
    def _winner_iff_over(self) -> "GameState":
        is_over = self.status in {GameStatus.finished, GameStatus.runaway}
        if (self.winner is not None) != is_over:
            raise ValueError("winner must be set exactly when the game is finished or runaway")
        return self

    def player(self, player_id: str) -> Player | None:
        return next((p for p in self.players if p.id == player_id), None)


class BoardSize(BaseModel):
    rows: int = Field(default=8, ge=2, le=30)
    cols: int = Field(default=6, ge=2, le=30)


class RoomSettings(BaseModel):
    max_players: int = Field(default=4, ge=2, le=8)
    board_size: BoardSize = Field(default_factory=BoardSize)

    # Both limits are optional; None (or 0) disables the clock.
    game_time_limit_minutes: float | None = Field(default=None, ge=0)
    move_time_limit_seconds: float | None = Field(default=None, ge=0)

    undo_enabled: bool = False
    is_private: bool = False


class Room(BaseModel):
    room_id: UUID
    host_id: str
    settings: RoomSettings
    state: GameState
    created_at: datetime
    last_updated_at: datetime

    # Set when the game leaves the lobby; the game clock counts from here.
    started_at: datetime | None = None


class HistoryEntry(BaseModel):
    """Snapshot taken before a move, used to undo it."""

    state: GameState
    player_id: str
    row: int
    col: int
    recorded_at: datetime


class PlayerJoin(BaseModel):
    player_id: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(default=None, max_length=30)


class RoomCreateRequest(BaseModel):
    host_id: str = Field(..., min_length=1, max_length=64)
    players: list[PlayerJoin] = Field(..., min_length=1, max_length=8)
    settings: RoomSettings = Field(default_factory=RoomSettings)


class MoveRequest(BaseModel):
    row: int
    col: int


class TimeoutRequest(BaseModel):
    type: Literal["game", "move"]


class RestartRequest(BaseModel):
    host_id: str


class StartRequest(BaseModel):
    host_id: str


class PlacementRecord(BaseModel):
    id: str
    row: int
    col: int
    color: str


class ExplosionRecord(BaseModel):
    id: str
    row: int
    col: int
    color: str
    wave: int
    delay_ms: int


class OrbMovementRecord(BaseModel):
    id: str
    from_row: int
    from_col: int
    to_row: int
    to_col: int
    color: str
    wave: int
    delay_ms: int


class MoveAnimations(BaseModel):
    placement: PlacementRecord
    explosions: list[ExplosionRecord] = Field(default_factory=list)
    orb_movements: list[OrbMovementRecord] = Field(default_factory=list)


class MoveResponse(BaseModel):
    room: Room
    wave_count: int
    is_runaway: bool = False
    animations: MoveAnimations


class TimeoutResponse(BaseModel):
    room: Room
    message: str


class RoomListResponse(BaseModel):
    rooms: list[Room]
