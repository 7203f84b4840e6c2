from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, status

from chain_reaction.actions import (
    ActionRejected,
    apply_move,
    apply_timeout,
    apply_undo,
    restart_room,
    start_room,
)
from chain_reaction.api.deps import get_redis, get_settings
from chain_reaction.api.models import (
    MoveRequest,
    MoveResponse,
    RestartRequest,
    Room,
    RoomCreateRequest,
    RoomListResponse,
    StartRequest,
    TimeoutRequest,
    TimeoutResponse,
)
from chain_reaction.config import EngineSettings
from chain_reaction.game_store import RoomNotFoundError, create_room, get_room, list_rooms
from chain_reaction.lock import RoomBusyError

router = APIRouter()

T = TypeVar("T")


def _run(fn: Callable[[], T]) -> T:
    """Call a service function, translating its errors into HTTP responses."""

    try:
        return fn()
    except RoomNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except RoomBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ActionRejected as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"reason": e.reason, "message": e.message},
        ) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/game", response_model=Room, status_code=status.HTTP_201_CREATED)
async def create_room_route(payload: RoomCreateRequest, r: redis.Redis = Depends(get_redis)) -> Room:
    return _run(lambda: create_room(r=r, request=payload))


@router.get("/game", response_model=RoomListResponse)
async def list_rooms_route(r: redis.Redis = Depends(get_redis)) -> RoomListResponse:
    return RoomListResponse(rooms=list_rooms(r=r))


@router.get("/game/{room_id}", response_model=Room)
async def get_room_route(room_id: UUID, r: redis.Redis = Depends(get_redis)) -> Room:
    room = get_room(r=r, room_id=room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.post("/game/{room_id}/start", response_model=Room)
async def start_route(
    room_id: UUID,
    payload: StartRequest,
    r: redis.Redis = Depends(get_redis),
    settings: EngineSettings = Depends(get_settings),
) -> Room:
    result = _run(lambda: start_room(r=r, room_id=room_id, host_id=payload.host_id, settings=settings))
    return result.room


@router.post("/game/{room_id}/player/{player_id}/move", response_model=MoveResponse)
async def move_route(
    room_id: UUID,
    player_id: str,
    payload: MoveRequest,
    r: redis.Redis = Depends(get_redis),
    settings: EngineSettings = Depends(get_settings),
) -> MoveResponse:
    outcome = _run(
        lambda: apply_move(
            r=r,
            room_id=room_id,
            player_id=player_id,
            row=payload.row,
            col=payload.col,
            settings=settings,
        )
    )
    return MoveResponse(
        room=outcome.room,
        wave_count=outcome.wave_count,
        is_runaway=outcome.is_runaway,
        animations=outcome.animations,
    )


@router.post("/game/{room_id}/timeout", response_model=TimeoutResponse)
async def timeout_route(
    room_id: UUID,
    payload: TimeoutRequest,
    r: redis.Redis = Depends(get_redis),
    settings: EngineSettings = Depends(get_settings),
) -> TimeoutResponse:
    result = _run(lambda: apply_timeout(r=r, room_id=room_id, kind=payload.type, settings=settings))
    return TimeoutResponse(room=result.room, message=result.message)


@router.post("/game/{room_id}/player/{player_id}/undo", response_model=Room)
async def undo_route(
    room_id: UUID,
    player_id: str,
    r: redis.Redis = Depends(get_redis),
    settings: EngineSettings = Depends(get_settings),
) -> Room:
    result = _run(lambda: apply_undo(r=r, room_id=room_id, player_id=player_id, settings=settings))
    return result.room


@router.post("/game/{room_id}/restart", response_model=Room)
async def restart_route(
    room_id: UUID,
    payload: RestartRequest,
    r: redis.Redis = Depends(get_redis),
    settings: EngineSettings = Depends(get_settings),
) -> Room:
    result = _run(lambda: restart_room(r=r, room_id=room_id, host_id=payload.host_id, settings=settings))
    return result.room
