from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

import redis

from chain_reaction.api.models import GameState, HistoryEntry, Room, RoomCreateRequest
from chain_reaction.game_setup import build_players, new_game_state


ROOMS_SET_KEY = "chain_reaction:rooms"
ROOM_KEY_PREFIX = "chain_reaction:room:"  # + {uuid}


class RoomNotFoundError(ValueError):
    pass


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _room_key(room_id: UUID) -> str:
    return f"{ROOM_KEY_PREFIX}{room_id}"


def _history_key(room_id: UUID) -> str:
    return f"{ROOM_KEY_PREFIX}{room_id}:history"


def save_room(*, r: redis.Redis, room: Room) -> Room:
    room = room.model_copy(update={"last_updated_at": _now()})
    r.set(_room_key(room.room_id), room.model_dump_json())
    return room


def get_room(*, r: redis.Redis, room_id: UUID) -> Room | None:
    raw = r.get(_room_key(room_id))
    if not raw:
        return None
    return Room.model_validate_json(raw)


def require_room(*, r: redis.Redis, room_id: UUID) -> Room:
    room = get_room(r=r, room_id=room_id)
    if room is None:
        raise RoomNotFoundError("Room not found")
    return room


def create_room(*, r: redis.Redis, request: RoomCreateRequest) -> Room:
    settings = request.settings
    if len(request.players) > settings.max_players:
        raise ValueError(f"At most {settings.max_players} players allowed in this room")
    if request.host_id not in {p.player_id for p in request.players}:
        raise ValueError("Host must be one of the players")

    now = _now()
    players = build_players(request.players)
    state = new_game_state(players, settings.board_size.rows, settings.board_size.cols, now=now)

    room = Room(
        room_id=uuid4(),
        host_id=request.host_id,
        settings=settings,
        state=state,
        created_at=now,
        last_updated_at=now,
        started_at=None,
    )
    r.set(_room_key(room.room_id), room.model_dump_json())
    r.sadd(ROOMS_SET_KEY, str(room.room_id))
    return room


def update_state(*, r: redis.Redis, room: Room, state: GameState, **changes: object) -> Room:
    return save_room(r=r, room=room.model_copy(update={"state": state, **changes}))


def list_rooms(*, r: redis.Redis) -> list[Room]:
    ids = sorted(r.smembers(ROOMS_SET_KEY))
    out: list[Room] = []
    for sid in ids:
        try:
            rid = UUID(sid)
        except ValueError:
            continue
        room = get_room(r=r, room_id=rid)
        if room is not None:
            out.append(room)
    out.sort(key=lambda rm: rm.created_at, reverse=True)
    return out


def push_history(*, r: redis.Redis, room_id: UUID, entry: HistoryEntry, limit: int = 10) -> None:
    """Append a pre-move snapshot, keeping only the newest `limit` entries."""

    key = _history_key(room_id)
    r.rpush(key, entry.model_dump_json())
    r.ltrim(key, -limit, -1)


def get_history(*, r: redis.Redis, room_id: UUID) -> list[HistoryEntry]:
    """Oldest-first."""

    return [HistoryEntry.model_validate_json(raw) for raw in r.lrange(_history_key(room_id), 0, -1)]


def pop_history(*, r: redis.Redis, room_id: UUID) -> HistoryEntry | None:
    raw = r.rpop(_history_key(room_id))
    if not raw:
        return None
    return HistoryEntry.model_validate_json(raw)


def clear_history(*, r: redis.Redis, room_id: UUID) -> None:
    r.delete(_history_key(room_id))
