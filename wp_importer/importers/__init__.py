"""
Per-kind importers.

Each importer turns extracted records into target entities with the
idempotent create loop of :class:`~wp_importer.importers.base.RecordImporter`.
"""

from .base import CancellationToken, RecordImporter
from .comments import CommentImporter, CommentThreadLinker
from .content import PageImporter, PostImporter
from .media import MediaAsset, MediaImporter, MediaPipeline
from .taxonomy import AuthorImporter, CategoryImporter, TagImporter

__all__ = [
    "CancellationToken",
    "RecordImporter",
    "CommentImporter",
    "CommentThreadLinker",
    "PageImporter",
    "PostImporter",
    "MediaAsset",
    "MediaImporter",
    "MediaPipeline",
    "AuthorImporter",
    "CategoryImporter",
    "TagImporter",
]
