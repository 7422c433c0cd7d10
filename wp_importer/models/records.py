"""
Intermediate records extracted from a WXR file.

Every WordPress entity kind has its own model.  They share a small
interface used by the importers:

``source_key()``
    The identifier other WXR elements use to refer to the record.
``natural_key()``
    The value used to detect an entity imported by a previous run.
``to_create_payload(resolver)``
    The body sent to the content store, with cross references resolved
    through an :class:`~wp_importer.resolver.IdentifierResolver`.
"""

from __future__ import annotations

import random
import secrets
from datetime import datetime
from posixpath import basename
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..utils.text import make_excerpt, normalize_label, slugify

PLACEHOLDER_EMAIL_DOMAIN = "imported.placeholder"
PAGE_CATEGORY_NAME = "Page"
PAGE_CATEGORY_KEY = "wp-import:page"
PAGE_TAGS = ["page", "wordpress-import"]

_STATUS_MAP = {
    "draft": "draft",
    "future": "scheduled",
    "private": "published",
    "publish": "published",
}


def map_status(wp_status: Optional[str]) -> str:
    """Translate a WordPress post status, unknown values become ``draft``."""
    return _STATUS_MAP.get((wp_status or "").strip().lower(), "draft")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class BaseRecord(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    def source_key(self) -> str:
        raise NotImplementedError

    def natural_key(self) -> str:
        raise NotImplementedError

    def label(self) -> str:
        return self.source_key()

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        raise NotImplementedError


class AuthorRecord(BaseRecord):
    kind: Literal["author"] = "author"
    author_id: str = ""
    login: str
    email: str = ""
    display_name: str = ""
    first_name: str = ""
    last_name: str = ""
    description: str = ""

    def source_key(self) -> str:
        return self.login

    def natural_key(self) -> str:
        if self.email:
            return self.email.lower()
        return f"{self.login}@{PLACEHOLDER_EMAIL_DOMAIN}".lower()

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        # Imported users must reset this before logging in
        password = secrets.token_urlsafe(18)
        return {
            "name": self.display_name or self.login,
            "email": self.natural_key(),
            "username": self.login,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "password": password,
            "passwordConfirm": password,
            "role": "author",
            "bio": self.description,
            "emailVerified": True,
        }


class CategoryRecord(BaseRecord):
    kind: Literal["category"] = "category"
    term_id: str = ""
    nicename: str
    name: str
    parent: str = ""
    description: str = ""

    def source_key(self) -> str:
        return self.nicename

    def natural_key(self) -> str:
        return slugify(self.name)

    def label(self) -> str:
        return self.name

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        # parent is dropped, imported categories are flat
        return {
            "name": normalize_label(self.name),
            "slug": self.natural_key(),
            "description": self.description,
        }


class TagRecord(BaseRecord):
    kind: Literal["tag"] = "tag"
    term_id: str = ""
    slug: str
    name: str

    def source_key(self) -> str:
        return self.slug

    def natural_key(self) -> str:
        return self.slug

    def label(self) -> str:
        return self.name

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        return {"name": normalize_label(self.name)}


class AttachmentRecord(BaseRecord):
    kind: Literal["attachment"] = "attachment"
    post_id: str
    title: str = ""
    url: str = ""
    mime_type: str = ""
    excerpt: str = ""
    content: str = ""

    def source_key(self) -> str:
        return self.post_id

    def natural_key(self) -> str:
        """File name taken from the URL path, ``""`` when none can be derived safely."""
        # Decode first so an encoded separator cannot survive into the name
        path = unquote(urlparse(self.url).path).replace("\\", "/")
        name = basename(path)
        if name in ("", ".", ".."):
            return ""
        return name

    def label(self) -> str:
        return self.title or self.url

    @property
    def effective_mime_type(self) -> str:
        return self.mime_type or "image/jpeg"

    def is_image(self) -> bool:
        return self.effective_mime_type.startswith("image/")

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        return {
            "alt": self.title,
            "title": self.title,
            "caption": self.excerpt,
            "description": self.content,
            "mimeType": self.effective_mime_type,
            "uploadedBy": resolver.default_author_id,
        }


class PostRecord(BaseRecord):
    kind: Literal["post"] = "post"
    post_id: str
    title: str = ""
    content: str = ""
    excerpt: str = ""
    status: str = ""
    creator: str = ""
    pub_date: Optional[datetime] = None
    post_date: Optional[datetime] = None
    post_date_gmt: Optional[datetime] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    meta: Dict[str, str] = Field(default_factory=dict)
    stable_key: bool = False

    _slug: Optional[str] = PrivateAttr(default=None)

    def source_key(self) -> str:
        return self.post_id

    def label(self) -> str:
        return self.title

    def natural_key(self) -> str:
        if self._slug is None:
            base = slugify(self.title) or self.kind
            if self.stable_key:
                self._slug = f"{base}-wp{self.post_id}"
            else:
                self._slug = f"{base}-{random.randint(1000, 9999)}"
        return self._slug

    def _category_ids(self, resolver) -> List[str]:
        ids: List[str] = []
        for nicename in self.categories:
            category_id = resolver.resolve("category", nicename)
            if category_id and category_id not in ids:
                ids.append(category_id)
        return ids

    def _tag_names(self, resolver) -> List[str]:
        names: List[str] = []
        for slug in self.tags:
            name = resolver.resolve("tag", slug)
            if name and name not in names:
                names.append(name)
        return names

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "title": normalize_label(self.title),
            "slug": self.natural_key(),
            "content": self.content,
            "excerpt": self.excerpt or make_excerpt(self.content),
            "author": resolver.resolve("author", self.creator) or resolver.default_author_id,
            "categories": self._category_ids(resolver),
            "tags": self._tag_names(resolver),
            "status": map_status(self.status),
            "publishedAt": _iso(self.pub_date),
            "createdAt": _iso(self.post_date),
            "updatedAt": _iso(self.post_date_gmt),
        }
        featured_image = resolver.resolve("media", self.meta.get("_thumbnail_id"))
        if featured_image:
            payload["featuredImage"] = featured_image
        return payload


class PageRecord(PostRecord):
    kind: Literal["page"] = "page"

    def _category_ids(self, resolver) -> List[str]:
        page_category = resolver.resolve("category", PAGE_CATEGORY_KEY)
        return [page_category] if page_category else []

    def _tag_names(self, resolver) -> List[str]:
        return list(PAGE_TAGS)


class CommentRecord(BaseRecord):
    kind: Literal["comment"] = "comment"
    comment_id: str
    post_id: str
    author: str = ""
    author_email: str = ""
    author_url: str = ""
    content: str = ""
    date: Optional[datetime] = None
    approved: str = ""
    parent: str = ""

    def source_key(self) -> str:
        return self.comment_id

    def natural_key(self) -> str:
        return f"{self.post_id}:{self.comment_id}"

    def label(self) -> str:
        return f"comment {self.comment_id} on {self.post_id}"

    @property
    def parent_key(self) -> Optional[str]:
        if not self.parent or self.parent == "0":
            return None
        return self.parent

    def target_post(self, resolver) -> Optional[str]:
        return resolver.resolve("post", self.post_id) or resolver.resolve("page", self.post_id)

    def to_create_payload(self, resolver) -> Dict[str, Any]:
        return {
            "content": self.content,
            "post": self.target_post(resolver),
            "user": resolver.default_author_id,
            "authorName": self.author,
            "authorEmail": self.author_email,
            "authorUrl": self.author_url,
            "status": "approved" if self.approved == "1" else "pending",
            "createdAt": _iso(self.date),
            "updatedAt": _iso(self.date),
        }


SourceRecord = Annotated[
    Union[AuthorRecord, CategoryRecord, TagRecord, AttachmentRecord, PostRecord, PageRecord, CommentRecord],
    Field(discriminator="kind"),
]
