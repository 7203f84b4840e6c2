from __future__ import annotations

import logging
from contextlib import contextmanager

import redis

logger = logging.getLogger(__name__)


class RoomBusyError(ValueError):
    pass


@contextmanager
def room_lock(*, r: redis.Redis, room_id: str, ttl_ms: int = 5_000):
    """Best-effort per-room exclusive section.

    Every state change for a room happens inside this block, so two moves can
    never be applied against the same snapshot. Fails fast instead of waiting;
    the caller decides whether to retry.
    """

    key = f"lock:room:{room_id}"
    acquired = r.set(key, "1", nx=True, px=ttl_ms)
    if not acquired:
        logger.info("room %s is busy, rejecting concurrent update", room_id)
        raise RoomBusyError("Room is busy")
    try:
        yield
    finally:
        r.delete(key)
