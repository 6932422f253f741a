"""Tests for service layer and AppState — ranking, reset, persistence, project switches."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bufrank.config import BufrankConfig, ScoringConfig
from bufrank.models import BufferInfo
from bufrank.persistence import loadHistory, loadInto
from bufrank.project import hashPath
from bufrank.service import (
    svcPrune,
    svcRankedList,
    svcRecordAccess,
    svcResetScore,
    svcSave,
    svcScore,
    svcSwitchProject,
)
from bufrank.state import AppState, createAppState, defer, runDeferred

# ── AppState ─────────────────────────────────────────────────


class TestCreateAppState:
    def test_globalContextOutsideProject(self, state: AppState, data_dir: Path):
        assert state.context.project_root is None
        assert state.context.storage_path == str(data_dir / "global.json")
        assert len(state.store) == 0

    def test_projectContext(self, project_state: AppState, project_dir: Path, data_dir: Path):
        assert project_state.context.project_root == str(project_dir)
        expected = data_dir / "projects" / f"{hashPath(project_dir)}.json"
        assert project_state.context.storage_path == str(expected)

    def test_loadsExistingHistory(self, config: BufrankConfig, project_dir: Path):
        first = createAppState(config, cwd=project_dir)
        svcRecordAccess(first, "/p/a.py", now=100)
        svcSave(first)

        second = createAppState(config, cwd=project_dir / "src")
        assert second.store.get("/p/a.py").count == 1

    def test_independentStates(self, config: BufrankConfig, loose_dir: Path):
        a = createAppState(config, cwd=loose_dir)
        b = createAppState(config, cwd=loose_dir)
        svcRecordAccess(a, "/x", now=1)
        assert "/x" not in b.store

    def test_storeUsesConfiguredWeights(self, data_dir: Path, loose_dir: Path):
        cfg = BufrankConfig(
            data_dir=str(data_dir),
            scoring=ScoringConfig(frequency_weight=1.0, recency_weight=0.0),
        )
        st = createAppState(cfg, cwd=loose_dir)
        assert svcRecordAccess(st, "/x", now=5)["total_score"] == pytest.approx(1.0)


class TestDeferred:
    def test_fifoOrder(self, state: AppState):
        calls: list[int] = []
        defer(state, lambda: calls.append(1))
        defer(state, lambda: calls.append(2))
        defer(state, lambda: calls.append(3))
        assert calls == []
        assert runDeferred(state) == 3
        assert calls == [1, 2, 3]
        assert runDeferred(state) == 0

    def test_failingCallbackDoesNotStopQueue(self, state: AppState):
        calls: list[str] = []

        def boom() -> None:
            raise RuntimeError("refresh failed")

        defer(state, boom)
        defer(state, lambda: calls.append("after"))
        assert runDeferred(state) == 2
        assert calls == ["after"]


# ── Scoring ──────────────────────────────────────────────────


class TestSvcRecordAccess:
    def test_recordsAndReturnsRecord(self, state: AppState):
        result = svcRecordAccess(state, "/a", now=1000)
        assert result == {
            "recorded": True,
            "path": "/a",
            "count": 1,
            "last_access": 1000,
            "total_score": pytest.approx(1.0),
        }

    def test_emptyPath(self, state: AppState):
        assert svcRecordAccess(state, "")["recorded"] is False
        assert len(state.store) == 0

    def test_defaultsToWallClock(self, state: AppState):
        result = svcRecordAccess(state, "/a")
        assert result["last_access"] > 1_600_000_000


class TestSvcScore:
    def test_known(self, state: AppState):
        svcRecordAccess(state, "/a", now=10)
        assert svcScore(state, "/a") == {
            "path": "/a",
            "score": pytest.approx(1.0),
            "count": 1,
            "last_access": 10,
        }

    def test_unknown(self, state: AppState):
        assert svcScore(state, "/nope")["score"] == 0.0


class TestSvcRankedList:
    def test_endToEndDefaultWeights(self, state: AppState):
        svcRecordAccess(state, "/a", now=100)
        svcRecordAccess(state, "/b", now=200)
        svcRecordAccess(state, "/a", now=300)
        buffers = [BufferInfo(id=1, path="/b"), BufferInfo(id=2, path="/a")]
        ranked = svcRankedList(state, buffers)
        assert [e.path for e in ranked] == ["/a", "/b"]
        assert ranked[0].score == pytest.approx(2 * 0.4 + 0.6)
        assert ranked[1].score == pytest.approx(0.4 + 0.6)

    def test_untrackedBuffersScoreZero(self, state: AppState):
        svcRecordAccess(state, "/seen", now=1)
        ranked = svcRankedList(
            state, [BufferInfo(id=1, path="/new"), BufferInfo(id=2, path="/seen")]
        )
        assert [(e.path, e.score) for e in ranked] == [("/seen", 1.0), ("/new", 0.0)]

    def test_allTrackedWhenNoBuffers(self, state: AppState):
        svcRecordAccess(state, "/a", now=1)
        svcRecordAccess(state, "/b", now=2)
        svcRecordAccess(state, "/b", now=3)
        assert [e.path for e in svcRankedList(state)] == ["/b", "/a"]


class TestSvcResetScore:
    def test_resetPersists(self, state: AppState):
        svcRecordAccess(state, "/a", now=1)
        assert svcResetScore(state, "/a") is True
        on_disk = loadHistory(state.context.storage_path)
        assert on_disk["/a"].count == 0
        assert on_disk["/a"].total_score == 0.0

    def test_refreshIsDeferred(self, state: AppState):
        svcRecordAccess(state, "/a", now=1)
        refreshed: list[bool] = []
        svcResetScore(state, "/a", refresh=lambda: refreshed.append(True))
        assert refreshed == []
        runDeferred(state)
        assert refreshed == [True]

    def test_resetTwice(self, state: AppState):
        svcRecordAccess(state, "/a", now=1)
        assert svcResetScore(state, "/a") is True
        assert svcResetScore(state, "/a") is False

    def test_nothingToReset(self, state: AppState):
        refreshed: list[bool] = []
        assert svcResetScore(state, "/nope", refresh=lambda: refreshed.append(True)) is False
        runDeferred(state)
        assert refreshed == []
        assert not Path(state.context.storage_path).exists()


# ── Persistence ──────────────────────────────────────────────


class TestSvcSave:
    def test_reloadDiscardsUnsavedMemory(self, project_state: AppState):
        svcRecordAccess(project_state, "/p/saved.py", now=1)
        svcSave(project_state)
        svcRecordAccess(project_state, "/p/unsaved.py", now=2)
        # Load replaces wholesale; newer in-memory records are dropped
        loadInto(project_state.store, project_state.context.storage_path)
        assert project_state.store.paths() == ["/p/saved.py"]

    def test_saveWritesStorageFile(self, project_state: AppState):
        svcRecordAccess(project_state, "/p/x.py", now=42)
        assert svcSave(project_state) is True
        data = json.loads(Path(project_state.context.storage_path).read_text())
        assert data["/p/x.py"]["last_access"] == 42


class TestSvcPrune:
    def test_usesConfiguredMax(self, state: AppState, data_dir: Path):
        projects = data_dir / "projects"
        for i in range(5):
            (projects / f"{i}.json").write_text("{}")
        # fixture config keeps 3
        assert svcPrune(state) == 2
        assert len(list(projects.glob("*.json"))) == 3

    def test_explicitMax(self, state: AppState, data_dir: Path):
        projects = data_dir / "projects"
        for i in range(2):
            (projects / f"{i}.json").write_text("{}")
        assert svcPrune(state, max_count=1) == 1


class TestSvcSwitchProject:
    def test_switchSavesOldAndLoadsNew(
        self, state: AppState, project_dir: Path, config: BufrankConfig
    ):
        # Pre-existing history for the project
        proj = createAppState(config, cwd=project_dir)
        svcRecordAccess(proj, "/p/main.py", now=5)
        svcSave(proj)

        svcRecordAccess(state, "/scratch/notes.txt", now=10)
        assert svcSwitchProject(state, project_dir / "src") is True
        assert state.context.project_root == str(project_dir)
        assert state.store.paths() == ["/p/main.py"]

        global_history = loadHistory(Path(config.data_dir) / "global.json")
        assert list(global_history) == ["/scratch/notes.txt"]

    def test_switchToProjectWithoutHistoryStartsEmpty(
        self, state: AppState, project_dir: Path
    ):
        svcRecordAccess(state, "/scratch/notes.txt", now=10)
        assert svcSwitchProject(state, project_dir) is True
        assert len(state.store) == 0

    def test_sameProjectIsNoop(self, project_state: AppState, project_dir: Path):
        svcRecordAccess(project_state, "/p/a.py", now=1)
        assert svcSwitchProject(project_state, project_dir / "src" / "pkg") is False
        assert project_state.store.paths() == ["/p/a.py"]

    def test_switchBackReloadsSavedHistory(
        self, project_state: AppState, project_dir: Path, loose_dir: Path
    ):
        svcRecordAccess(project_state, "/p/a.py", now=1)
        svcSwitchProject(project_state, loose_dir)
        assert project_state.context.project_root is None
        assert len(project_state.store) == 0
        svcSwitchProject(project_state, project_dir)
        assert project_state.store.paths() == ["/p/a.py"]
