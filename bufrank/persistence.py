"""JSON snapshot persistence with write-temp, fsync, rename."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from bufrank.history import HistoryStore
from bufrank.models import AccessRecord

logger = logging.getLogger("bufrank")


def _tempPath(path: Path) -> Path:
    return path.with_name(path.name + ".tmp")


def saveHistory(store: HistoryStore, file_path: str | Path) -> bool:
    """Write the whole store to ``file_path`` atomically. Returns False on failure.

    The temp file is fsynced before ``os.replace``, so a crash leaves either
    the previous snapshot or the new one, never a partial file.
    """
    path = Path(file_path)
    tmp = _tempPath(path)
    try:
        payload = json.dumps({k: v.model_dump() for k, v in store.snapshot().items()})
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to save history to %s: %s", path, e)
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            pass
        return False
    logger.debug("Saved %d records to %s", len(store), path)
    return True


def loadHistory(file_path: str | Path) -> dict[str, AccessRecord] | None:
    """Read a snapshot. Missing, empty, or malformed files all return None."""
    path = Path(file_path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    if not content.strip():
        return None

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    records: dict[str, AccessRecord] = {}
    for key, value in data.items():
        if not isinstance(value, dict):
            return None
        try:
            records[key] = AccessRecord.model_validate(value)
        except ValidationError:
            return None
    return records


def loadInto(store: HistoryStore, file_path: str | Path) -> bool:
    """Replace the store's contents from disk. Leaves the store untouched if nothing loads."""
    records = loadHistory(file_path)
    if records is None:
        return False
    store.replaceAll(records)
    logger.debug("Loaded %d records from %s", len(records), file_path)
    return True
