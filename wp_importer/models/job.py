from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

STAT_KINDS = ("authors", "categories", "tags", "media", "posts", "pages", "comments")

JobStatus = Literal["idle", "running", "success", "error", "cancelled"]


class KindStats(BaseModel):
    total: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0


class ImportStats(BaseModel):
    """Per-kind counters, safe to update from several worker threads."""

    authors: KindStats = Field(default_factory=KindStats)
    categories: KindStats = Field(default_factory=KindStats)
    tags: KindStats = Field(default_factory=KindStats)
    media: KindStats = Field(default_factory=KindStats)
    posts: KindStats = Field(default_factory=KindStats)
    pages: KindStats = Field(default_factory=KindStats)
    comments: KindStats = Field(default_factory=KindStats)

    _lock: Any = PrivateAttr(default_factory=threading.Lock)

    def set_total(self, kind: str, total: int) -> None:
        with self._lock:
            getattr(self, kind).total = total

    def increment(self, kind: str, counter: str) -> None:
        if counter not in ("imported", "skipped", "failed"):
            raise ValueError(f"Unknown counter: {counter}")
        with self._lock:
            stats = getattr(self, kind)
            setattr(stats, counter, getattr(stats, counter) + 1)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {kind: getattr(self, kind).model_dump() for kind in STAT_KINDS}


class ImportResult(BaseModel):
    status: Literal["success", "error", "cancelled"]
    stats: Dict[str, Dict[str, int]]
    message: Optional[str] = None


class ImportJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(default_factory=lambda: uuid.uuid4().hex, alias="jobId")
    in_progress: bool = Field(False, alias="inProgress")
    status: JobStatus = "idle"
    started_at: Optional[datetime] = Field(None, alias="startTime")
    ended_at: Optional[datetime] = Field(None, alias="endTime")
    initiator: Optional[str] = Field(None, alias="userId")
    file_name: Optional[str] = Field(None, alias="fileName")
    stats: Optional[ImportStats] = None
    error: Optional[str] = None

    def snapshot(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json", exclude={"stats"})
        data["stats"] = self.stats.snapshot() if self.stats is not None else None
        return data
