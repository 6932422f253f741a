"""Editor lifecycle hook handlers — buf-enter, focus-lost, session-end, dir-changed."""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any

from bufrank.service import svcPrune, svcRecordAccess, svcSave, svcSwitchProject
from bufrank.state import AppState

logger = logging.getLogger("bufrank")

BUF_ENTER = "buf_enter"
FOCUS_LOST = "focus_lost"
SESSION_END = "session_end"
DIR_CHANGED = "dir_changed"
EVENTS = (BUF_ENTER, FOCUS_LOST, SESSION_END, DIR_CHANGED)

Handler = Callable[[dict[str, Any]], Any]


class HookRegistry:
    """Event name -> subscribers. The host's integration layer feeds events in."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = {e: [] for e in EVENTS}

    def subscribe(self, event: str, handler: Handler) -> None:
        if event not in self._subscribers:
            raise ValueError(f"Unknown event {event!r}; expected one of {', '.join(EVENTS)}")
        self._subscribers[event].append(handler)

    def subscribers(self, event: str) -> list[Handler]:
        return list(self._subscribers.get(event, []))

    def dispatch(self, event: str, data: dict[str, Any] | None = None) -> list[Any]:
        """Call every subscriber in order. A failing handler is logged and skipped."""
        results: list[Any] = []
        for handler in self._subscribers.get(event, []):
            try:
                results.append(handler(data or {}))
            except Exception:
                logger.exception("Hook handler for %s failed", event)
        return results


# ── Hook entry points ────────────────────────────────────────


def hookBufEnter(state: AppState, data: dict) -> dict:
    """BufEnter: count a visit to the focused file."""
    path = data.get("path", "")
    return svcRecordAccess(state, path, data.get("now"))


def hookFocusLost(state: AppState, data: dict) -> dict:
    """FocusLost: persist, then opportunistically prune old projects."""
    saved = svcSave(state)
    pruned = svcPrune(state)
    return {"saved": saved, "pruned": pruned}


def hookSessionEnd(state: AppState, data: dict) -> dict:
    """Session end: persist and prune."""
    saved = svcSave(state)
    pruned = svcPrune(state)
    return {"saved": saved, "pruned": pruned}


def hookDirChanged(state: AppState, data: dict) -> dict:
    """DirChanged: persist the old project, then resolve and load the new one."""
    cwd = data.get("cwd", "")
    if not cwd:
        return {}
    switched = svcSwitchProject(state, cwd)
    pruned = svcPrune(state)
    return {
        "switched": switched,
        "pruned": pruned,
        "project_root": state.context.project_root,
        "storage_path": state.context.storage_path,
    }


def registerHooks(registry: HookRegistry, state: AppState) -> HookRegistry:
    """Subscribe the default handlers, bound to ``state``."""
    registry.subscribe(BUF_ENTER, partial(hookBufEnter, state))
    registry.subscribe(FOCUS_LOST, partial(hookFocusLost, state))
    registry.subscribe(SESSION_END, partial(hookSessionEnd, state))
    registry.subscribe(DIR_CHANGED, partial(hookDirChanged, state))
    return registry
