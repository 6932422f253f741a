"""Keep only the most recently touched per-project history files."""

from __future__ import annotations

import logging
from pathlib import Path

from bufrank.project import PROJECTS_DIR

logger = logging.getLogger("bufrank")


def pruneHistories(data_dir: str | Path, max_count: int) -> int:
    """Delete project histories beyond the ``max_count`` newest by mtime. Returns files removed.

    The global history is never a candidate. Files that vanish or can't be
    deleted are skipped.
    """
    max_count = max(max_count, 0)
    projects = Path(data_dir).expanduser() / PROJECTS_DIR
    if not projects.is_dir():
        return 0

    dated: list[tuple[float, Path]] = []
    for path in projects.glob("*.json"):
        try:
            dated.append((path.stat().st_mtime, path))
        except OSError:
            continue
    if len(dated) <= max_count:
        return 0

    dated.sort(key=lambda item: item[0], reverse=True)
    removed = 0
    for _, path in dated[max_count:]:
        try:
            path.unlink()
            removed += 1
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)
    if removed:
        logger.info("Pruned %d old project histories", removed)
    return removed
