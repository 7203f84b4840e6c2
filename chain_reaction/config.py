from __future__ import annotations

import os
from dataclasses import dataclass

from chain_reaction.core.explosions import MAX_EXPLOSION_WAVES


@dataclass(frozen=True, slots=True)
class EngineSettings:
    # Cap on explosion waves per move; hitting it ends the game as a runaway.
    max_waves: int = MAX_EXPLOSION_WAVES
    # How many pre-move snapshots are kept per room for undo.
    history_limit: int = 10
    # Per-room lock lifetime, so a crashed holder can't wedge a room.
    lock_ttl_ms: int = 5_000


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer (got {raw!r})") from e
    if value < 1:
        raise RuntimeError(f"{name} must be at least 1 (got {value})")
    return value


def settings_from_env() -> EngineSettings:
    return EngineSettings(
        max_waves=_int_from_env("CHAIN_REACTION_MAX_WAVES", MAX_EXPLOSION_WAVES),
        history_limit=_int_from_env("CHAIN_REACTION_HISTORY_LIMIT", 10),
        lock_ttl_ms=_int_from_env("CHAIN_REACTION_LOCK_TTL_MS", 5_000),
    )
