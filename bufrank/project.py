"""Project root detection and hash-bucketed storage paths."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterable
from pathlib import Path

from bufrank.models import ProjectContext

GLOBAL_FILE = "global.json"
PROJECTS_DIR = "projects"
HASH_LENGTH = 16


def findProjectRoot(start: str | Path, markers: Iterable[str]) -> Path | None:
    """Nearest ancestor of ``start`` (inclusive) holding any marker file or directory."""
    markers = list(markers)
    current = Path(os.path.normpath(Path(start).expanduser().absolute()))
    if current.is_file():
        current = current.parent
    for directory in (current, *current.parents):
        if any((directory / m).exists() for m in markers):
            return directory
    return None


def hashPath(path: str | Path) -> str:
    """Short content-derived name for a project root. Not reversible, not a secret."""
    return hashlib.sha256(str(path).encode("utf-8")).hexdigest()[:HASH_LENGTH]


def ensureDirectories(data_dir: str | Path) -> tuple[Path, Path]:
    """Create the data dir and its projects/ subdir. Returns (data_dir, projects_dir)."""
    base = Path(data_dir).expanduser()
    projects = base / PROJECTS_DIR
    projects.mkdir(parents=True, exist_ok=True)
    return base, projects


def resolveContext(
    markers: Iterable[str],
    data_dir: str | Path,
    start: str | Path | None = None,
) -> ProjectContext:
    """Pick the history file for the working context: per-project, or the shared global one."""
    base, projects = ensureDirectories(data_dir)
    root = findProjectRoot(start if start is not None else Path.cwd(), markers)
    if root is None:
        return ProjectContext(
            project_root=None, storage_path=str(base / GLOBAL_FILE), data_dir=str(base)
        )
    return ProjectContext(
        project_root=str(root),
        storage_path=str(projects / f"{hashPath(root)}.json"),
        data_dir=str(base),
    )
