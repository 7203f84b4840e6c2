from __future__ import annotations

from collections.abc import Generator

import redis

from chain_reaction.config import EngineSettings, settings_from_env
from chain_reaction.infra.redis_client import create_room_store_client


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_room_store_client()
    try:
        yield client
    finally:
        client.close()


def get_settings() -> EngineSettings:
    return settings_from_env()
