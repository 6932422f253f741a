"""Pydantic models for access records, project context, and ranked buffers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class AccessRecord(BaseModel):
    """Per-file access history. Field names match the on-disk JSON keys."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    count: int = 0
    last_access: int = 0  # epoch seconds, 0 = never scored
    total_score: float = 0.0

    @field_validator("last_access", mode="before")
    @classmethod
    def _wholeSeconds(cls, v: object) -> object:
        # Hosts may hand over float epochs (time.time())
        if isinstance(v, float):
            return int(v)
        return v


class ProjectContext(BaseModel):
    project_root: str | None = None  # None = no recognized project
    storage_path: str
    data_dir: str

    @property
    def is_global(self) -> bool:
        return self.project_root is None


class BufferInfo(BaseModel):
    """A live editor buffer as enumerated by the host."""

    id: int
    path: str
    modified: bool = False
    listed: bool = True
    buftype: str = ""


class RankedEntry(BaseModel):
    id: int
    path: str
    score: float
    modified: bool = False
