"""Service layer — ranking and history operations over an AppState."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from pathlib import Path

from bufrank.models import BufferInfo, RankedEntry
from bufrank.persistence import loadInto, saveHistory
from bufrank.project import resolveContext
from bufrank.retention import pruneHistories
from bufrank.scoring import rankBuffers
from bufrank.state import AppState, defer


def _now() -> int:
    return int(time.time())


# ── Scoring ──────────────────────────────────────────────────


def svcRecordAccess(state: AppState, path: str, now: int | None = None) -> dict:
    """Count one visit to ``path``. Empty paths are ignored."""
    record = state.store.recordAccess(path, _now() if now is None else now)
    if record is None:
        return {"recorded": False, "path": path}
    return {"recorded": True, "path": path, **record.model_dump()}


def svcScore(state: AppState, path: str) -> dict:
    record = state.store.get(path)
    return {
        "path": path,
        "score": state.store.getScore(path),
        "count": record.count if record else 0,
        "last_access": record.last_access if record else 0,
    }


def svcRankedList(
    state: AppState,
    buffers: Iterable[BufferInfo] | None = None,
) -> list[RankedEntry]:
    """Rank host buffers by frecency. Without buffers, every tracked path is a candidate."""
    if buffers is None:
        buffers = [BufferInfo(id=i, path=p) for i, p in enumerate(state.store.paths(), start=1)]
    return rankBuffers(buffers, state.store)


def svcResetScore(
    state: AppState,
    path: str,
    refresh: Callable[[], object] | None = None,
) -> bool:
    """Zero a file's history and persist. ``refresh`` runs deferred, after the save."""
    if not state.store.resetScore(path):
        return False
    saveHistory(state.store, state.context.storage_path)
    if refresh is not None:
        defer(state, refresh)
    return True


# ── Persistence ──────────────────────────────────────────────


def svcSave(state: AppState) -> bool:
    return saveHistory(state.store, state.context.storage_path)


def svcPrune(state: AppState, max_count: int | None = None) -> int:
    limit = state.config.project.max_histories if max_count is None else max_count
    return pruneHistories(state.context.data_dir, limit)


def svcSwitchProject(state: AppState, cwd: str | Path) -> bool:
    """Save the current history, then move to the project owning ``cwd``.

    Returns True when the storage file changed. The new project's history
    starts empty unless its file loads.
    """
    saveHistory(state.store, state.context.storage_path)
    context = resolveContext(state.config.project.markers, state.config.data_dir, cwd)
    if context.storage_path == state.context.storage_path:
        state.context = context
        return False
    state.context = context
    state.store.replaceAll({})
    loadInto(state.store, context.storage_path)
    return True
