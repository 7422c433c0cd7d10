"""
High-level orchestration of the WordPress import.

This module defines an :class:`ImportCoordinator` class that ties
together the extractor, the identifier resolver and the per-kind
importers into a complete pipeline.  Phases run strictly in this order,
because later phases resolve identifiers recorded by earlier ones:

1. authors
2. categories
3. tags
4. media (featured images must be known before posts)
5. posts
6. pages
7. comments, then the comment thread linker

Record-level failures are absorbed by the importers.  Anything else
(a malformed file, an unexpected exception) ends the run with
``status="error"`` and the statistics gathered so far.  The source file
is deleted when the run ends, whatever the outcome.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import requests

from .extractors.wxr_extractor import load_document
from .importers import (
    AuthorImporter,
    CancellationToken,
    CategoryImporter,
    CommentImporter,
    CommentThreadLinker,
    MediaImporter,
    MediaPipeline,
    PageImporter,
    PostImporter,
    TagImporter,
)
from .migrators.content_store import ContentStore
from .models.job import ImportResult, ImportStats
from .resolver import IdentifierResolver
from .utils.errors import ImportCancelled, log_message, report_error

PHASES = ("authors", "categories", "tags", "media", "posts", "pages", "comments")

DEFAULT_OPTIONS: Dict[str, bool] = {f"import_{phase}": True for phase in PHASES}


class ImportCoordinator:
    """
    Runs one import of one WXR file into a content store.  The
    coordinator owns the run's :class:`ImportStats` and
    :class:`IdentifierResolver`; both are discarded with it.
    """

    def __init__(
        self,
        file_path: str,
        config: Dict[str, Any],
        store: ContentStore,
        *,
        options: Optional[Dict[str, bool]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.file_path = file_path
        self.config = config
        self.store = store
        self.options = {**DEFAULT_OPTIONS, **(options or {})}
        self.session = session
        self.stats = ImportStats()
        self.resolver = IdentifierResolver()

    def log_message(self, message: str, level: str = "INFO") -> None:
        log_message(message, level)

    def media_pipeline(self) -> MediaPipeline:
        import_cfg = self.config["import"]
        media_cfg = self.config["media"]
        return MediaPipeline(
            os.path.join(import_cfg["upload_root"], import_cfg["media_subdir"]),
            import_cfg["public_prefix"],
            session=self.session,
            timeout=media_cfg["timeout"],
            max_attempts=media_cfg["max_attempts"],
            base_delay=media_cfg["base_delay"],
            rpm=media_cfg["rpm"],
        )

    def run(self, user_id: Optional[str], token: Optional[CancellationToken] = None) -> ImportResult:
        """
        Import the whole file on behalf of ``user_id``, the fallback
        author of imported content.

        :param user_id: Target id of the operator running the import.
        :param token: Checked between records; once set the run stops
            with ``status="cancelled"``.
        :return: The terminal status with per-kind statistics.
        """
        token = token or CancellationToken()
        self.resolver = IdentifierResolver(default_author_id=user_id)
        self.log_message(f"Starting WordPress import of {self.file_path}")
        try:
            document = load_document(self.file_path)
            self._run_phases(document, token)
            self.log_message(f"WordPress import completed: {self.stats.snapshot()}")
            return ImportResult(status="success", stats=self.stats.snapshot())
        except ImportCancelled as e:
            self.log_message("WordPress import stopped after cancellation", level="WARNING")
            return ImportResult(status="cancelled", stats=self.stats.snapshot(), message=str(e))
        except Exception as e:
            self.log_message(f"WordPress import failed: {e}", level="ERROR")
            return ImportResult(status="error", stats=self.stats.snapshot(), message=str(e))
        finally:
            self._remove_source_file()

    def _run_phases(self, document, token: CancellationToken) -> None:
        common = (self.store, self.resolver, self.stats, token)
        stable_keys = self.config["import"]["stable_post_keys"]

        if self.options["import_authors"]:
            self.log_message("Importing authors")
            AuthorImporter(*common).run(document.authors())
        if self.options["import_categories"]:
            self.log_message("Importing categories")
            CategoryImporter(*common).run(document.categories())
        if self.options["import_tags"]:
            self.log_message("Collecting tags")
            TagImporter(*common).run(document.tags())
        if self.options["import_media"]:
            self.log_message("Importing media")
            MediaImporter(
                *common,
                pipeline=self.media_pipeline(),
                max_workers=self.config["media"]["max_workers"],
                dry_run=self.config["import"]["dry_run"],
            ).run(document.attachments())
        if self.options["import_posts"]:
            self.log_message("Importing posts")
            PostImporter(*common).run(document.posts(stable_keys=stable_keys))
        if self.options["import_pages"]:
            self.log_message("Importing pages")
            PageImporter(*common).run(document.pages(stable_keys=stable_keys))
        if self.options["import_comments"]:
            self.log_message("Importing comments")
            comments = document.comments()
            CommentImporter(*common).run(comments)
            linked = CommentThreadLinker(self.store, self.resolver, token).run(comments)
            self.log_message(f"Linked {linked} comment replies")

    def _remove_source_file(self) -> None:
        try:
            os.remove(self.file_path)
        except OSError as e:
            report_error("SOURCE_CLEANUP", None, e)
