"""Application state container — one per editor session, passed explicitly."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from bufrank.config import BufrankConfig, loadConfig
from bufrank.history import HistoryStore
from bufrank.models import ProjectContext
from bufrank.persistence import loadInto
from bufrank.project import resolveContext

logger = logging.getLogger("bufrank")


@dataclass
class AppState:
    config: BufrankConfig
    context: ProjectContext
    store: HistoryStore
    deferred: deque[Callable[[], object]] = field(default_factory=deque)


def createAppState(
    config: BufrankConfig | None = None,
    cwd: str | Path | None = None,
) -> AppState:
    """Create AppState — loads config, resolves the project, loads its history."""
    cfg = config or loadConfig()
    context = resolveContext(cfg.project.markers, cfg.data_dir, cwd)
    store = HistoryStore(cfg.scoring)
    loadInto(store, context.storage_path)
    logger.info(
        "bufrank starting — project: %s, history: %s (%d records)",
        context.project_root or "(global)",
        context.storage_path,
        len(store),
    )
    return AppState(config=cfg, context=context, store=store)


def defer(state: AppState, callback: Callable[[], object]) -> None:
    """Queue work to run once the current operation settles."""
    state.deferred.append(callback)


def runDeferred(state: AppState) -> int:
    """Run queued callbacks in FIFO order. A failing callback doesn't stop the rest."""
    ran = 0
    while state.deferred:
        callback = state.deferred.popleft()
        try:
            callback()
        except Exception:
            logger.exception("Deferred callback failed")
        ran += 1
    return ran
