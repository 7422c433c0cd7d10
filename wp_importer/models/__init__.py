"""
Pydantic models for source records, job state and statistics.
"""

from .job import ImportJob, ImportResult, ImportStats, KindStats, STAT_KINDS
from .records import (
    AttachmentRecord,
    AuthorRecord,
    CategoryRecord,
    CommentRecord,
    PageRecord,
    PostRecord,
    SourceRecord,
    TagRecord,
    map_status,
)

__all__ = [
    "ImportJob",
    "ImportResult",
    "ImportStats",
    "KindStats",
    "STAT_KINDS",
    "AttachmentRecord",
    "AuthorRecord",
    "CategoryRecord",
    "CommentRecord",
    "PageRecord",
    "PostRecord",
    "SourceRecord",
    "TagRecord",
    "map_status",
]
