from __future__ import annotations

from typing import Optional

from ..models.records import PAGE_CATEGORY_KEY, PAGE_CATEGORY_NAME
from ..utils.text import slugify
from .base import RecordImporter


class PostImporter(RecordImporter):
    """Posts, with categories, tags, author and featured image resolved.

    A featured image missing from the media map (not an image, failed
    download) is simply left out of the payload.
    """

    stats_kind = "posts"
    map_kind = "post"
    collection = "posts"
    lookup_field = "slug"
    error_code = "POST_IMPORT"


class PageImporter(PostImporter):
    """Pages become posts filed under a single ``Page`` category."""

    stats_kind = "pages"
    map_kind = "page"
    error_code = "PAGE_IMPORT"

    def ensure_page_category(self) -> Optional[str]:
        category_id = self.resolver.resolve("category", PAGE_CATEGORY_KEY)
        if category_id:
            return category_id
        slug = slugify(PAGE_CATEGORY_NAME)
        category_id = self.store.find("categories", "slug", slug)
        if not category_id:
            category_id = self.store.create(
                "categories",
                {"name": PAGE_CATEGORY_NAME, "slug": slug, "description": "WordPress imported pages"},
            )
        self.resolver.record("category", PAGE_CATEGORY_KEY, category_id)
        return category_id

    def create(self, record) -> str:
        # Created lazily so a file without pages leaves no empty category behind
        self.ensure_page_category()
        return super().create(record)
