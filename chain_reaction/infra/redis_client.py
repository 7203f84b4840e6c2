from __future__ import annotations

import os

import redis

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def get_redis_url() -> str:
    """Room store location: `CHAIN_REACTION_REDIS_URL`, else the shared `REDIS_URL`, else a local default."""

    for name in ("CHAIN_REACTION_REDIS_URL", "REDIS_URL"):
        url = os.environ.get(name, "").strip()
        if url:
            return url
    return DEFAULT_REDIS_URL


def create_room_store_client() -> redis.Redis:
    # Rooms, history and events are all stored as text, so replies come back as str.
    return redis.Redis.from_url(get_redis_url(), decode_responses=True)
