"""
Threaded comment import in two passes.

The first pass creates every comment attached to an imported post or
page; comments whose item was not imported are skipped.  Parents cannot
be set at creation time because a reply may appear before its parent in
the file, so the second pass, :class:`CommentThreadLinker`, runs once
every comment exists and points each reply at its parent's new id.
Replies whose parent was not created stay top-level.
"""

from __future__ import annotations

from typing import Iterable

from ..utils.errors import report_error, report_ok
from .base import RecordImporter


class CommentImporter(RecordImporter):
    stats_kind = "comments"
    map_kind = "comment"
    collection = "comments"
    error_code = "COMMENT_IMPORT"

    def should_skip(self, record) -> bool:
        return record.target_post(self.resolver) is None


class CommentThreadLinker:
    def __init__(self, store, resolver, token=None) -> None:
        self.store = store
        self.resolver = resolver
        self.token = token

    def run(self, records: Iterable) -> int:
        """Set ``parent`` on created replies; returns the number of links made."""
        linked = 0
        for record in records:
            if self.token is not None:
                self.token.raise_if_cancelled()
            parent_key = record.parent_key
            if parent_key is None:
                continue
            comment_id = self.resolver.resolve("comment", record.comment_id)
            parent_id = self.resolver.resolve("comment", parent_key)
            if not comment_id or not parent_id:
                continue
            try:
                self.store.update("comments", comment_id, {"parent": parent_id})
                linked += 1
            except Exception as e:
                report_error("COMMENT_LINK", record, e)
        if linked:
            report_ok("COMMENT_LINK", None, {"linked": linked})
        return linked
