"""Shared pytest configuration and fixtures."""

import contextlib
import sqlite3
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.auth.guard import AdminAuthGuard, initialize
from src.config import Settings, get_settings
from src.monitor.service import IntegrationHealthMonitor
from src.store import db
from tests.fakes import FakeClock, VirtualScheduler, make_settings


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit real services (requires .env with valid credentials)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e flag to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Block .env loading so a developer's local credentials never leak into tests.

    Sets Settings.model_config['env_file'] = None before each test (except e2e).
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def store_path(tmp_path: Path) -> str:
    return str(tmp_path / "pharmacy.db")


@pytest.fixture
def mock_settings(store_path: str) -> Generator[Settings]:
    """Provide test settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    settings = make_settings(store_db_path=store_path)
    with (
        patch("src.config.get_settings", return_value=settings),
        patch("src.api.main.get_settings", return_value=settings),
        patch("src.cli.get_settings", return_value=settings),
        patch("src.monitor.service.get_settings", return_value=settings),
        patch("src.monitor.alerts.get_settings", return_value=settings),
        patch("src.store.db.get_settings", return_value=settings),
    ):
        yield settings


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at the real current time (token expiry is checked against real time)."""
    return FakeClock()


@pytest.fixture
def fixed_clock() -> FakeClock:
    """Clock pinned to mid-day so "today"/"this week" windows are deterministic."""
    return FakeClock(datetime(2026, 3, 15, 12, 0, tzinfo=UTC))


@pytest.fixture
def scheduler(fixed_clock: FakeClock) -> VirtualScheduler:
    return VirtualScheduler(fixed_clock)


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


@pytest.fixture
def guard(mock_settings: Settings, clock: FakeClock) -> AdminAuthGuard:
    result = initialize(mock_settings, clock=clock)
    assert result.guard is not None
    return result.guard


@pytest.fixture
def connect(store_path: str) -> Callable[[], sqlite3.Connection]:
    return lambda: db.get_connection(store_path)


@pytest.fixture
def store_conn(connect: Callable[[], sqlite3.Connection]) -> Generator[sqlite3.Connection]:
    with contextlib.closing(connect()) as conn:
        yield conn


@pytest.fixture
def alerter() -> MagicMock:
    return MagicMock(return_value=False)


@pytest.fixture
def monitor(
    mock_settings: Settings,
    connect: Callable[[], sqlite3.Connection],
    scheduler: VirtualScheduler,
    fixed_clock: FakeClock,
    alerter: MagicMock,
) -> IntegrationHealthMonitor:
    return IntegrationHealthMonitor(
        settings=mock_settings,
        connect=connect,
        scheduler=scheduler,
        clock=fixed_clock,
        alerter=alerter,
    )
