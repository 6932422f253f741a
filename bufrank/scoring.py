"""Frecency scoring: blend of access frequency and logarithmically decaying recency."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING

from bufrank.config import ScoringConfig
from bufrank.models import AccessRecord, BufferInfo, RankedEntry

if TYPE_CHECKING:
    from bufrank.history import HistoryStore

FREQUENCY_CAP = 100
logger = logging.getLogger("bufrank")


def calculateScore(
    path: str,
    record: AccessRecord | None,
    now: int | None = None,
    scoring: ScoringConfig | None = None,
) -> float:
    """Frecency score for one file.

    Components:
    - Recency: 1 / (1 + ln(seconds_since_access) * recency_decay), 1.0 right after access
    - Frequency: access count, capped at 100

    An unseen path counts as zero visits accessed right now. An empty path scores 0.
    """
    if not isinstance(path, str) or not path:
        return 0.0
    if now is None:
        now = int(time.time())
    cfg = scoring or ScoringConfig()
    if record is None:
        record = AccessRecord(count=0, last_access=now)

    time_delta = max(now - record.last_access, 1)
    recency_score = 1.0 / (1.0 + math.log(time_delta) * cfg.recency_decay)
    frequency_score = min(record.count, FREQUENCY_CAP)

    return frequency_score * cfg.frequency_weight + recency_score * cfg.recency_weight


def isTrackable(buffer: BufferInfo) -> bool:
    """Only listed, named, regular-file buffers are ranked (no terminals, help, etc)."""
    return buffer.listed and buffer.path != "" and buffer.buftype == ""


def rankBuffers(buffers: Iterable[BufferInfo], store: HistoryStore) -> list[RankedEntry]:
    """Rank buffers by cached score, highest first. Ties keep enumeration order."""
    entries = [
        RankedEntry(id=b.id, path=b.path, score=store.getScore(b.path), modified=b.modified)
        for b in buffers
        if isTrackable(b)
    ]
    entries.sort(key=lambda e: e.score, reverse=True)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Sorted buffer scores:")
        for e in entries:
            logger.debug("  %s: %.4f", e.path, e.score)
    return entries
