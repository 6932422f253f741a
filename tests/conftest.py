"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from bufrank.config import BufrankConfig, ProjectConfig
from bufrank.state import AppState, createAppState

# Marker no real ancestor of tmp_path will ever contain
TEST_MARKER = ".bufrank-test-root"


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def config(data_dir: Path) -> BufrankConfig:
    return BufrankConfig(
        data_dir=str(data_dir),
        project=ProjectConfig(markers=[TEST_MARKER], max_histories=3),
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project root with a nested source dir."""
    root = tmp_path / "work" / "proj"
    (root / "src" / "pkg").mkdir(parents=True)
    (root / TEST_MARKER).touch()
    return root


@pytest.fixture
def loose_dir(tmp_path: Path) -> Path:
    """A directory outside any project."""
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def state(config: BufrankConfig, loose_dir: Path) -> AppState:
    return createAppState(config, cwd=loose_dir)


@pytest.fixture
def project_state(config: BufrankConfig, project_dir: Path) -> AppState:
    return createAppState(config, cwd=project_dir)
