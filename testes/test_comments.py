import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wp_importer.importers.comments import CommentImporter, CommentThreadLinker
from wp_importer.migrators.content_store import InMemoryContentStore
from wp_importer.models.job import ImportStats
from wp_importer.models.records import CommentRecord
from wp_importer.resolver import IdentifierResolver
from wp_importer.utils.errors import RecordError


def comment(comment_id, post_id, parent="0", approved="1"):
    return CommentRecord(comment_id=comment_id, post_id=post_id, parent=parent, approved=approved, content=f"c{comment_id}")


def setup():
    store = InMemoryContentStore()
    resolver = IdentifierResolver(default_author_id="operator")
    resolver.record("post", "1", "post-1")
    resolver.record("page", "10", "page-10")
    return store, resolver, ImportStats()


def test_comments_on_unknown_items_are_skipped():
    store, resolver, stats = setup()
    records = [comment("1", "1"), comment("2", "10", approved="0"), comment("3", "99")]

    CommentImporter(store, resolver, stats).run(records)

    assert stats.comments.model_dump() == {"total": 3, "imported": 2, "skipped": 1, "failed": 0}
    first = store.get("comments", resolver.resolve("comment", "1"))
    assert first["post"] == "post-1"
    assert first["status"] == "approved"
    assert first["user"] == "operator"
    second = store.get("comments", resolver.resolve("comment", "2"))
    assert second["post"] == "page-10"
    assert second["status"] == "pending"
    assert resolver.resolve("comment", "3") is None


def test_linker_rewires_replies_regardless_of_order():
    store, resolver, stats = setup()
    # reply listed before its parent
    records = [comment("5", "1", parent="4"), comment("4", "1"), comment("6", "1", parent="5")]
    CommentImporter(store, resolver, stats).run(records)

    linked = CommentThreadLinker(store, resolver).run(records)

    assert linked == 2
    for record in records:
        created = store.get("comments", resolver.resolve("comment", record.comment_id))
        if record.parent_key is None:
            assert "parent" not in created
        else:
            assert created["parent"] == resolver.resolve("comment", record.parent_key)


def test_replies_to_skipped_comments_stay_top_level():
    store, resolver, stats = setup()
    records = [comment("90", "99"), comment("7", "1", parent="90")]
    CommentImporter(store, resolver, stats).run(records)

    assert CommentThreadLinker(store, resolver).run(records) == 0
    reply = store.get("comments", resolver.resolve("comment", "7"))
    assert "parent" not in reply


def test_linker_errors_are_not_fatal(report_dir):
    store, resolver, stats = setup()
    records = [comment("1", "1"), comment("2", "1", parent="1"), comment("3", "1", parent="1")]
    CommentImporter(store, resolver, stats).run(records)

    class FlakyUpdates(InMemoryContentStore):
        def __init__(self, inner):
            self.__dict__.update(inner.__dict__)
            self.failed_once = False

        def update(self, collection, entity_id, changes):
            if not self.failed_once:
                self.failed_once = True
                raise RecordError("timeout")
            super().update(collection, entity_id, changes)

    assert CommentThreadLinker(FlakyUpdates(store), resolver).run(records) == 1
    assert "COMMENT_LINK" in (report_dir / "errors.jsonl").read_text(encoding="utf-8")
