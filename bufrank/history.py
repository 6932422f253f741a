"""In-memory access history keyed by absolute file path."""

from __future__ import annotations

import logging

from bufrank.config import ScoringConfig
from bufrank.models import AccessRecord
from bufrank.scoring import calculateScore

logger = logging.getLogger("bufrank")

_ZEROED = AccessRecord()


class HistoryStore:
    """Path -> AccessRecord mapping with a score cached on every access.

    ``total_score`` is only recomputed by ``recordAccess``; reads return the
    cached value as-is.
    """

    def __init__(
        self,
        scoring: ScoringConfig | None = None,
        records: dict[str, AccessRecord] | None = None,
    ):
        self.scoring = scoring or ScoringConfig()
        self._records: dict[str, AccessRecord] = dict(records or {})

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def get(self, path: str) -> AccessRecord | None:
        return self._records.get(path)

    def paths(self) -> list[str]:
        return list(self._records)

    def snapshot(self) -> dict[str, AccessRecord]:
        """Deep copy of every record, safe to serialize while the store keeps mutating."""
        return {path: rec.model_copy() for path, rec in self._records.items()}

    def recordAccess(self, path: str, now: float) -> AccessRecord | None:
        """Count one visit at ``now`` (truncated to whole seconds) and refresh the cached score.

        Empty path is a no-op.
        """
        if not path:
            return None
        record = self._records.get(path)
        if record is None:
            record = AccessRecord()
            self._records[path] = record

        now = int(now)
        record.count += 1
        record.last_access = now
        # Score must reflect the access just recorded
        record.total_score = calculateScore(path, record, now, self.scoring)

        logger.debug(
            "Updated history for %s: count=%d score=%.4f", path, record.count, record.total_score
        )
        return record

    def getScore(self, path: str) -> float:
        record = self._records.get(path)
        return record.total_score if record else 0.0

    def resetScore(self, path: str) -> bool:
        """Zero an existing record. Returns False when there was nothing to reset.

        An already-zeroed record counts as nothing to reset, so a second reset
        in a row returns False.
        """
        record = self._records.get(path)
        if record is None or record == _ZEROED:
            return False
        self._records[path] = AccessRecord()
        return True

    def replaceAll(self, records: dict[str, AccessRecord]) -> None:
        """Discard everything in memory and adopt ``records`` (no merge)."""
        self._records = dict(records)
