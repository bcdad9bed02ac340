"""Shared pytest fixtures for csv-issue-sync tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import FakeTracker

from csv_issue_sync.config import Config
from csv_issue_sync.config_schema import SyncOptions
from csv_issue_sync.sync.engine import SyncEngine


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live GitHub repository",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    return tmp_path / "issues.csv"


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_engine(csv_path, tracker, sleeps):
    """Factory building a ``SyncEngine`` over ``csv_path`` and ``tracker``."""

    def _make(status_board=None, **options) -> SyncEngine:
        options.setdefault("csv_path", str(csv_path))
        return SyncEngine(
            tracker,
            SyncOptions(**options),
            status_board=status_board,
            sleep=sleeps.append,
        )

    return _make


@pytest.fixture
def mock_config() -> Config:
    """A valid Config for transport tests."""
    return Config(
        github_token="ghp_test",
        github_owner="acme",
        github_repo="widgets",
        project_number=3,
    )
