from __future__ import annotations

from ..utils.errors import report_error
from .base import RecordImporter


class AuthorImporter(RecordImporter):
    stats_kind = "authors"
    map_kind = "author"
    collection = "users"
    lookup_field = "email"
    error_code = "AUTHOR_IMPORT"


class CategoryImporter(RecordImporter):
    stats_kind = "categories"
    map_kind = "category"
    collection = "categories"
    lookup_field = "slug"
    error_code = "CATEGORY_IMPORT"


class TagImporter(RecordImporter):
    """Collects ``slug -> name`` for posts; tags are plain strings on the target."""

    stats_kind = "tags"
    map_kind = "tag"
    error_code = "TAG_IMPORT"

    def import_record(self, record) -> None:
        try:
            name = record.to_create_payload(self.resolver)["name"]
            if not record.slug or not name:
                raise ValueError("tag without slug or name")
            self.resolver.record(self.map_kind, record.slug, name)
            self.stats.increment(self.stats_kind, "imported")
        except Exception as e:
            report_error(self.error_code, record, e)
            self.stats.increment(self.stats_kind, "failed")
