from __future__ import annotations

import itertools

import pytest
from starlette.testclient import TestClient

from kasbah_guard.config import Settings
from kasbah_guard.guard.authority import DecisionAuthority
from kasbah_guard.transport.http_server import create_http_app

START_MS = 1_700_000_000_000
TTL_MS = 60_000


class FakeClock:
    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def sequential_ids(prefix: str = "ticket"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def authority(clock: FakeClock) -> DecisionAuthority:
    return DecisionAuthority(
        ttl_ms=TTL_MS,
        max_events=50,
        clock=clock,
        id_factory=sequential_ids(),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def client(authority: DecisionAuthority, settings: Settings) -> TestClient:
    app = create_http_app(authority=authority, settings=settings)
    with TestClient(app) as test_client:
        yield test_client
