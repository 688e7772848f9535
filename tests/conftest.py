"""Shared test fixtures for seedprobe tests."""

import logging
import os

import pytest

from seedprobe.cache import DetectionCache, MemoryBackend
from seedprobe.config import CacheConfig
from seedprobe.snapshot import SchemaSnapshot


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handlers and levels installed by setup_logging (the CLI calls it)."""
    logger = logging.getLogger("seedprobe")
    handlers = list(logger.handlers)
    level, propagate = logger.level, logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run with no user/project config files and no SEEDPROBE_* variables."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("SEEDPROBE_"):
            monkeypatch.delenv(key)
    return tmp_path


@pytest.fixture
def memory_cache(clock):
    """In-memory cache that stores any result regardless of confidence."""
    return DetectionCache(
        CacheConfig(min_confidence_to_cache=0.0), backend=MemoryBackend(), clock=clock
    )


@pytest.fixture
def empty_snapshot():
    return SchemaSnapshot()


@pytest.fixture
def individual_snapshot():
    """Accounts owning posts: a single-user platform."""
    return SchemaSnapshot.build(
        tables=["accounts", "posts"],
        relationships=[("accounts", "posts", "account_id")],
    )


@pytest.fixture
def team_snapshot():
    """Accounts and posts plus team, membership and organization tables."""
    return SchemaSnapshot.build(
        tables=["accounts", "posts", "teams", "team_members", "organizations"],
        relationships=[("accounts", "posts", "account_id")],
    )


@pytest.fixture
def hybrid_snapshot():
    """Content owned by users or teams, accounts reaching both."""
    return SchemaSnapshot.build(
        tables=["users", "accounts", "teams", "team_members", "posts", "shares"],
        relationships=[
            ("accounts", "users", "user_id"),
            ("accounts", "team_members", "member_id"),
            ("posts", "users", "user_id"),
            ("posts", "teams", "team_id"),
            ("shares", "users", "user_id"),
            ("shares", "teams", "team_id"),
            ("posts", "accounts", "owner_context_id"),
        ],
        columns={"posts": ["id", "user_id", "team_id", "body"]},
    )
