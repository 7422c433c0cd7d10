import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_importer import import_tool
from wp_importer.import_tool import ImportCoordinator
from wp_importer.migrators.content_store import InMemoryContentStore
from wxr_samples import HERO_URL, FakeSession, png_bytes, scenario_wxr


@pytest.fixture
def store():
    store = InMemoryContentStore()
    store.create("users", {"email": "alice@example.com", "name": "Alice"})
    return store


def run_scenario(config, store, path, options=None):
    coordinator = ImportCoordinator(
        path, config, store, options=options, session=FakeSession({HERO_URL: png_bytes(800, 400)})
    )
    return coordinator, coordinator.run("operator")


def post_by_title(store, title):
    return next(p for p in store.all("posts") if p["title"] == title)


def test_full_scenario(config, store, write_wxr):
    path = write_wxr(scenario_wxr())

    coordinator, result = run_scenario(config, store, path)

    assert result.status == "success"
    assert result.message is None
    assert result.stats == {
        "authors": {"total": 2, "imported": 1, "skipped": 1, "failed": 0},
        "categories": {"total": 3, "imported": 3, "skipped": 0, "failed": 0},
        "tags": {"total": 2, "imported": 2, "skipped": 0, "failed": 0},
        "media": {"total": 3, "imported": 1, "skipped": 1, "failed": 1},
        "posts": {"total": 5, "imported": 5, "skipped": 0, "failed": 0},
        "pages": {"total": 1, "imported": 1, "skipped": 0, "failed": 0},
        "comments": {"total": 10, "imported": 8, "skipped": 2, "failed": 0},
    }
    resolver = coordinator.resolver

    first = post_by_title(store, "First post")
    assert first["author"] == resolver.resolve("author", "alice")
    assert first["featuredImage"] == resolver.resolve("media", "101")
    assert first["categories"] == [resolver.resolve("category", "news")]
    assert first["tags"] == ["Python"]
    assert first["status"] == "published"

    second = post_by_title(store, "Second post")
    assert "featuredImage" not in second
    assert second["author"] == resolver.resolve("author", "bob")

    third = post_by_title(store, "Third post")
    assert third["author"] == "operator"
    assert third["status"] == "draft"
    assert post_by_title(store, "Fourth post")["status"] == "scheduled"
    assert post_by_title(store, "Fifth post")["tags"] == ["Tips & Tricks"]

    about = post_by_title(store, "About")
    assert about["tags"] == ["page", "wordpress-import"]
    assert [c["name"] for c in store.all("categories")] == ["News", "Travel Notes", "Recipes", "Page"]

    comments = {c["id"]: c for c in store.all("comments")}
    assert len(comments) == 8
    assert comments[resolver.resolve("comment", "2")]["parent"] == resolver.resolve("comment", "1")
    assert comments[resolver.resolve("comment", "5")]["parent"] == resolver.resolve("comment", "4")
    assert comments[resolver.resolve("comment", "5")]["status"] == "pending"
    for top_level in ("1", "3", "7", "8"):
        assert "parent" not in comments[resolver.resolve("comment", top_level)]
    assert resolver.resolve("comment", "90") is None

    assert not os.path.exists(path)


def test_reimport_skips_everything_with_a_natural_key(config, store, write_wxr):
    run_scenario(config, store, write_wxr(scenario_wxr()))

    _, result = run_scenario(config, store, write_wxr(scenario_wxr()))

    assert result.status == "success"
    for kind in ("authors", "categories"):
        assert result.stats[kind]["skipped"] == result.stats[kind]["total"]
        assert result.stats[kind]["imported"] == 0
    assert result.stats["media"]["skipped"] == 2
    assert result.stats["media"]["imported"] == 0
    assert len(store.all("users")) == 2
    assert len(store.all("media")) == 1
    assert len(store.all("categories")) == 4


def test_malformed_file_ends_in_error_and_is_removed(config, store, write_wxr):
    path = write_wxr("<rss><channel><item></rss>")

    _, result = run_scenario(config, store, path)

    assert result.status == "error"
    assert result.message
    assert all(kind["total"] == 0 for kind in result.stats.values())
    assert not os.path.exists(path)


def test_unexpected_failure_keeps_partial_stats(config, store, write_wxr, monkeypatch):
    def explode(self, records):
        raise RuntimeError("post selection failed")

    monkeypatch.setattr(import_tool.PostImporter, "select", explode)
    path = write_wxr(scenario_wxr())

    _, result = run_scenario(config, store, path)

    assert result.status == "error"
    assert result.message == "post selection failed"
    assert result.stats["authors"]["imported"] == 1
    assert result.stats["media"]["imported"] == 1
    assert result.stats["comments"]["total"] == 0
    assert not os.path.exists(path)


def test_phase_options_leave_out_phases(config, store, write_wxr):
    options = {"import_media": False, "import_comments": False, "import_pages": False}

    _, result = run_scenario(config, store, write_wxr(scenario_wxr()), options=options)

    assert result.status == "success"
    assert result.stats["media"]["total"] == 0
    assert result.stats["comments"]["total"] == 0
    assert result.stats["pages"]["total"] == 0
    assert result.stats["posts"]["imported"] == 5
    assert store.all("media") == []
    assert all("featuredImage" not in p for p in store.all("posts"))


def test_stable_post_keys_make_posts_idempotent(config, store, write_wxr):
    config["import"]["stable_post_keys"] = True
    run_scenario(config, store, write_wxr(scenario_wxr()))

    _, result = run_scenario(config, store, write_wxr(scenario_wxr()))

    assert result.stats["posts"]["skipped"] == 5
    assert result.stats["pages"]["skipped"] == 1
    assert post_by_title(store, "First post")["slug"] == "first-post-wp1"


def test_dry_run_does_not_download(config, write_wxr):
    config["import"]["dry_run"] = True
    store = InMemoryContentStore()
    session = FakeSession({})
    coordinator = ImportCoordinator(write_wxr(scenario_wxr()), config, store, session=session)

    result = coordinator.run("operator")

    assert result.status == "success"
    assert session.calls == []
    assert result.stats["media"]["imported"] == 2
    assert not os.path.exists(os.path.join(config["import"]["upload_root"], "wp-import", "hero.png"))
    assert post_by_title(store, "First post")["featuredImage"] == coordinator.resolver.resolve("media", "101")
