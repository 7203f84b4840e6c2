from __future__ import annotations

from datetime import UTC, datetime

import pytest


@pytest.fixture(autouse=True)
def _hermetic_engine_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of a developer's shell/.env engine overrides."""

    for name in ("CHAIN_REACTION_MAX_WAVES", "CHAIN_REACTION_HISTORY_LIMIT", "CHAIN_REACTION_LOCK_TTL_MS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def t0() -> datetime:
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to an in-memory fakeredis instance."""

    from collections.abc import Generator

    import fakeredis
    from fastapi.testclient import TestClient

    from chain_reaction.api.deps import get_redis
    from chain_reaction.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
