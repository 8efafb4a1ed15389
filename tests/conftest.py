"""Shared test fixtures.

Tests run against a throwaway SQLite database (aiosqlite), without Redis,
and with upstream nodes replaced by fakes, so no network access is needed.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

os.environ.setdefault("BLOCKTIME_REDIS_URL", "")
os.environ.setdefault("BLOCKTIME_JWT_SECRET", "test-jwt-secret-with-enough-entropy")
os.environ.setdefault("BLOCKTIME_CRON_SECRET", "test-cron-secret")
os.environ.setdefault("BLOCKTIME_LOG_FORMAT", "console")
os.environ.setdefault("BLOCKTIME_PUBLIC_BASE_URL", "https://blocktotime.test")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from blocktime.auth.jwt import create_access_token  # noqa: E402
from blocktime.config import get_settings  # noqa: E402
from blocktime.database import Database  # noqa: E402
from blocktime.db.base import Base  # noqa: E402
from blocktime.estimation.aggregator import AggregateEstimate, Confidence  # noqa: E402
from blocktime.estimation.exceptions import AllSourcesFailedError  # noqa: E402
from blocktime.estimation.service import EstimationService  # noqa: E402
from blocktime.estimation.sources import SourceResult  # noqa: E402
from blocktime.main import create_app  # noqa: E402
from blocktime.networks import Network  # noqa: E402
from blocktime.notifications.scheduler import NotificationScheduler  # noqa: E402

get_settings.cache_clear()

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeAggregator:
    """Stands in for ConsensusAggregator with a controllable chain head."""

    def __init__(self, current_height: int = 1_000_000, avg_block_time_ms: float = 2000.0) -> None:
        self.current_height = current_height
        self.avg_block_time_ms = avg_block_time_ms
        self.error: Exception | None = None
        self.calls: list[Network] = []

    async def aggregate(self, network: Network) -> AggregateEstimate:
        self.calls.append(network)
        if self.error is not None:
            raise self.error
        result = SourceResult(
            height=self.current_height, avg_block_time_ms=self.avg_block_time_ms, endpoint="https://node.test"
        )
        return AggregateEstimate(
            current_height=self.current_height,
            avg_block_time_ms=self.avg_block_time_ms,
            confidence=Confidence.HIGH,
            sources={"evm_rpc": result, "tendermint_rpc": result, "cosmos_rest": result},
        )

    def fail_all(self) -> None:
        self.error = AllSourcesFailedError({"evm_rpc": "down", "tendermint_rpc": "down", "cosmos_rest": "down"})


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def aggregator() -> FakeAggregator:
    return FakeAggregator()


@pytest.fixture
def estimation(aggregator: FakeAggregator, clock: Callable[[], datetime]) -> EstimationService:
    return EstimationService(aggregator, clock=clock)  # type: ignore[arg-type]


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """A fresh SQLite database with all tables created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'blocktime.db'}")
    await db.open()
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.close()


@pytest.fixture
def notifier() -> AsyncMock:
    """Notifier double: builds real messages, records dispatches."""
    from blocktime.notifications.delivery import Notifier

    mock = AsyncMock(spec=Notifier)
    real = Notifier(slack=None, email=None, base_url="https://blocktotime.test")  # type: ignore[arg-type]
    mock.build_message.side_effect = real.build_message
    mock.dispatch.return_value = ["slack"]
    return mock


@pytest.fixture
def scheduler(
    database: Database,
    estimation: EstimationService,
    notifier: AsyncMock,
    clock: Callable[[], datetime],
) -> NotificationScheduler:
    return NotificationScheduler(database, estimation, notifier, clock=clock)


@pytest.fixture
def app(database: Database, estimation: EstimationService, scheduler: NotificationScheduler) -> FastAPI:
    """The application with test handles on ``app.state`` in place of the lifespan."""
    application = create_app()
    application.state.db = database
    application.state.redis = None
    application.state.estimation = estimation
    application.state.scheduler = scheduler
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client over the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def owner_token() -> str:
    return create_access_token("owner-1")


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, owner_token: str) -> AsyncClient:
    """Client authenticated as ``owner-1``."""
    client.headers["Authorization"] = f"Bearer {owner_token}"
    return client
